"""Binds page lifecycle events to the session store.

Departures are recorded when the page is hidden or unloaded; returning to the
page re-resolves the session. A periodic sweep catches tabs that stay open and
idle without ever changing visibility.
"""
import logging
from typing import Awaitable, Callable, Optional

from .. import config
from .scheduler import PeriodicTask
from .session_store import SessionStore

logger = logging.getLogger(__name__)

SWEEP_INTERVAL = config.WIDGET_SWEEP_SECONDS

RotationHandler = Callable[[str], Awaitable[None]]


class ActivityTracker:
    def __init__(
        self,
        tenant_id: str,
        sessions: SessionStore,
        current_session: Callable[[], Optional[str]],
        on_rotation: RotationHandler,
        sweep_interval: float = SWEEP_INTERVAL,
    ):
        self.tenant_id = tenant_id
        self.sessions = sessions
        self.current_session = current_session
        self.on_rotation = on_rotation
        self.sweep_task = PeriodicTask(sweep_interval, self.sweep, name=f"idle-sweep:{tenant_id}")

    def start(self) -> None:
        self.sweep_task.start()

    def stop(self) -> None:
        self.sweep_task.stop()

    def on_hidden(self) -> None:
        self.sessions.record_departure(self.tenant_id)

    def on_unload(self) -> None:
        self.sessions.record_departure(self.tenant_id)

    def on_open(self) -> None:
        self.sessions.record_activity(self.tenant_id)

    def on_send(self) -> None:
        self.sessions.record_activity(self.tenant_id)

    async def _resolve_and_compare(self) -> bool:
        session_id = self.sessions.resolve_session(self.tenant_id)
        if session_id != self.current_session():
            await self.on_rotation(session_id)
            return True
        return False

    async def on_visible(self) -> bool:
        """Re-resolve the session; True when it rotated."""
        return await self._resolve_and_compare()

    async def sweep(self) -> bool:
        if self.sessions.expiry_reason(self.tenant_id) != "inactive":
            return False
        logger.info("Idle sweep expired the widget session for tenant %s", self.tenant_id)
        return await self._resolve_and_compare()
