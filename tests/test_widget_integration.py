"""The widget engine driving the real backend through an in-process HTTP transport."""

from datetime import timedelta

import httpx
import pytest
from conftest import BOT_REPLY, OPERATOR_HEADERS, FakeClock

from chatwidget.services.replies import HANDOFF_REPLY
from chatwidget.widget.controller import WidgetController, WidgetState
from chatwidget.widget.session_store import SessionStore
from chatwidget.widget.storage import MemoryKeyValueStore
from chatwidget.widget.transport import WidgetTransport

LONG = 3600.0


def make_controller(http_client, tenant_id="acme", clock=None):
    sessions = SessionStore(
        MemoryKeyValueStore(),
        inactivity_window=timedelta(minutes=60),
        away_window=timedelta(minutes=15),
        clock=clock or FakeClock(),
    )
    return WidgetController(
        tenant_id,
        WidgetTransport("http://test", client=http_client),
        sessions,
        poll_interval=LONG,
        config_interval=LONG,
        sweep_interval=LONG,
    )


@pytest.fixture
def http_client(api):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=api), base_url="http://test")


@pytest.mark.asyncio
async def test_handoff_round_trip(http_client, tenant):
    controller = make_controller(http_client)
    await controller.mount()
    controller.open()

    await controller.send("When are you open?")
    await controller.send("Can I talk to a human?")
    await controller.send("Hello, anyone there?")

    resp = await http_client.post(
        "/api/chat/manual",
        json={"tenantId": "acme", "sessionId": controller.session_id, "message": "Hi, Kari here!"},
        headers=OPERATOR_HEADERS,
    )
    assert resp.status_code == 200

    appended = await controller.poll_once()
    assert [m.content for m in appended] == ["Hi, Kari here!"]
    assert await controller.poll_once() == []

    contents = [m.content for m in controller.transcript.messages]
    assert contents == [
        "Hello from Acme!",
        "When are you open?",
        BOT_REPLY,
        "Can I talk to a human?",
        HANDOFF_REPLY,
        "Hello, anyone there?",
        "Hi, Kari here!",
    ]
    assert contents.count(BOT_REPLY) == 1
    assert controller.transcript.server_message_cursor == 6

    controller.unmount()
    await http_client.aclose()


@pytest.mark.asyncio
async def test_unknown_tenant_fails_to_load(http_client):
    controller = make_controller(http_client, tenant_id="missing")

    await controller.mount()

    assert controller.state is WidgetState.FAILED
    assert controller.load_error == "Tenant not found"
    await http_client.aclose()


@pytest.mark.asyncio
async def test_unreachable_backend_shows_connection_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://test")
    controller = make_controller(client)

    await controller.mount()

    assert controller.state is WidgetState.FAILED
    assert controller.load_error == "Could not connect to the chat service"
    await client.aclose()
