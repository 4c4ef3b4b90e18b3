import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPERATOR_API_KEYS"] = "test-key"
os.environ.pop("TELEGRAM_BOT_TOKEN", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from chatwidget import models  # noqa: E402
from chatwidget.api import chat as chat_api  # noqa: E402
from chatwidget.database import Base, get_db  # noqa: E402
from chatwidget.main import app  # noqa: E402
from chatwidget.services.replies import StaticReplyGenerator, get_reply_generator  # noqa: E402

OPERATOR_HEADERS = {"X-API-Key": "test-key"}
BOT_REPLY = "Our opening hours are 9-17 on weekdays."


class FakeRedis:
    def __init__(self) -> None:
        self._data: dict = {}
        self.ttls: dict = {}

    def setex(self, key, ttl, value):
        self._data[key] = value
        self.ttls[key] = ttl
        return True

    def set(self, key, value):
        self._data[key] = value
        return True

    def get(self, key):
        return self._data.get(key)

    def delete(self, key):
        return 1 if self._data.pop(key, None) is not None else 0

    def exists(self, key):
        return 1 if key in self._data else 0


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now += minutes * 60 + seconds


class Notifications:
    def __init__(self) -> None:
        self.escalations = []
        self.customer_messages = []

    async def escalation(self, tenant_id, session_id, text):
        self.escalations.append((tenant_id, session_id, text))

    async def customer_message(self, tenant_id, session_id, text):
        self.customer_messages.append((tenant_id, session_id, text))


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(chat_api, "redis_client", fake)
    return fake


@pytest.fixture
def notifications(monkeypatch):
    recorder = Notifications()
    monkeypatch.setattr(chat_api, "notify_escalation", recorder.escalation)
    monkeypatch.setattr(chat_api, "notify_customer_message", recorder.customer_message)
    return recorder


@pytest.fixture
def api(session_factory, fake_redis, notifications):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_reply_generator] = lambda: StaticReplyGenerator(BOT_REPLY)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api):
    return TestClient(api)


@pytest.fixture
def tenant(db):
    acme = models.Tenant(
        id="acme",
        business_name="Acme",
        greeting="Hello from Acme!",
        position="bottom-left",
        widget_size="large",
        contact_email="support@acme.test",
    )
    db.add(acme)
    db.commit()
    return acme
