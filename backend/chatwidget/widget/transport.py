"""HTTP client for the chat backend endpoints used by the widget."""
import logging
from typing import Iterable, List, Optional

import httpx
from pydantic import ValidationError

from ..schemas import ChatReplyOut, HistoryMessage, HistoryOut, WidgetConfigOut, WidgetConfigResponse
from .errors import ConfigLoadError, TransportError
from .transcript import Message

logger = logging.getLogger(__name__)


class WidgetTransport:
    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 20.0):
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response):
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"Invalid JSON from {response.request.url}") from exc

    async def fetch_config(self, tenant_id: str) -> WidgetConfigOut:
        try:
            response = await self._request("GET", f"/api/widget-config/{tenant_id}")
            body = WidgetConfigResponse.model_validate(self._json(response))
        except TransportError as exc:
            raise ConfigLoadError("Could not connect to the chat service") from exc
        except ValidationError as exc:
            raise ConfigLoadError("Could not load chat") from exc

        if not body.success or body.config is None:
            raise ConfigLoadError(body.error or "Could not load chat")
        return body.config

    async def send_message(self, tenant_id: str, session_id: str, message: str) -> ChatReplyOut:
        """POST a visitor message. Non-success responses come back with ``success=False``."""
        response = await self._request(
            "POST", f"/api/chat/{tenant_id}", json={"message": message, "sessionId": session_id}
        )
        if response.is_error:
            try:
                data = response.json()
            except ValueError:
                data = None
            detail = data.get("detail") if isinstance(data, dict) else None
            return ChatReplyOut(success=False, error=str(detail or response.status_code))
        data = self._json(response)
        try:
            return ChatReplyOut.model_validate(data)
        except ValidationError as exc:
            raise TransportError("Unexpected chat reply payload") from exc

    async def fetch_history(self, tenant_id: str, session_id: str) -> List[HistoryMessage]:
        response = await self._request(
            "GET", "/api/chat/history", params={"tenantId": tenant_id, "sessionId": session_id}
        )
        if response.is_error:
            raise TransportError(f"History request returned {response.status_code}")
        try:
            body = HistoryOut.model_validate(self._json(response))
        except ValidationError as exc:
            raise TransportError("Unexpected history payload") from exc
        if not body.success:
            raise TransportError("History request was not successful")
        return body.messages

    async def send_summary(self, tenant_id: str, session_id: str, email: str, messages: Iterable[Message]) -> bool:
        response = await self._request(
            "POST",
            "/api/chat/send-summary",
            json={
                "tenantId": tenant_id,
                "sessionId": session_id,
                "customerEmail": email,
                "messages": [{"role": m.role, "content": m.content} for m in messages],
            },
        )
        return response.is_success

    async def report_typing(self, tenant_id: str, session_id: str) -> None:
        await self._request(
            "PUT", "/api/chat/typing", json={"tenantId": tenant_id, "sessionId": session_id, "who": "customer"}
        )

    async def mark_read(self, tenant_id: str, session_id: str) -> None:
        await self._request(
            "PUT", "/api/chat/read", json={"tenantId": tenant_id, "sessionId": session_id, "who": "customer"}
        )
