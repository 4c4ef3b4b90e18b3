"""Anonymous visitor identity that survives page loads but expires.

Two independent windows decide when a session is discarded: the inactivity
window counts from the last visitor interaction, the away window counts from
the moment the page was hidden or unloaded.
"""
import logging
import random
import string
import time
from datetime import timedelta
from typing import Callable, Optional

from .. import config
from .errors import StorageError
from .storage import KeyValueStore, scoped_key

logger = logging.getLogger(__name__)

SESSION_KEY = "session"
LAST_ACTIVITY_KEY = "last_activity"
LEFT_AT_KEY = "left_at"

INACTIVITY_WINDOW = timedelta(minutes=config.WIDGET_INACTIVITY_MINUTES)
AWAY_WINDOW = timedelta(minutes=config.WIDGET_AWAY_MINUTES)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id(now: float) -> str:
    suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=9))
    return f"session_{int(now * 1000)}_{suffix}"


class SessionStore:
    def __init__(
        self,
        storage: KeyValueStore,
        inactivity_window: timedelta = INACTIVITY_WINDOW,
        away_window: timedelta = AWAY_WINDOW,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.inactivity_window = inactivity_window
        self.away_window = away_window
        self.clock = clock

    # Storage failures degrade to "nothing stored"
    def _get(self, name: str, tenant_id: str) -> Optional[str]:
        try:
            return self.storage.get(scoped_key(name, tenant_id))
        except StorageError as exc:
            logger.debug("Widget storage read failed: %s", exc)
            return None

    def _set(self, name: str, tenant_id: str, value: str) -> None:
        try:
            self.storage.set(scoped_key(name, tenant_id), value)
        except StorageError as exc:
            logger.debug("Widget storage write failed: %s", exc)

    def _remove(self, name: str, tenant_id: str) -> None:
        try:
            self.storage.remove(scoped_key(name, tenant_id))
        except StorageError as exc:
            logger.debug("Widget storage remove failed: %s", exc)

    def _timestamp(self, name: str, tenant_id: str) -> Optional[float]:
        """Stored timestamp in seconds. Raises ValueError for unreadable values."""
        raw = self._get(name, tenant_id)
        if raw is None:
            return None
        return int(raw) / 1000.0

    def _stamp(self, name: str, tenant_id: str, now: float) -> None:
        self._set(name, tenant_id, str(int(now * 1000)))

    def expiry_reason(self, tenant_id: str, now: Optional[float] = None) -> Optional[str]:
        """Return ``"inactive"``, ``"away"``, ``"corrupt"`` or None.

        The inactivity check wins over the away check.
        """
        now = self.clock() if now is None else now
        try:
            last_activity = self._timestamp(LAST_ACTIVITY_KEY, tenant_id)
            left_at = self._timestamp(LEFT_AT_KEY, tenant_id)
        except ValueError:
            return "corrupt"
        if last_activity is not None and now - last_activity > self.inactivity_window.total_seconds():
            return "inactive"
        if left_at is not None and now - left_at > self.away_window.total_seconds():
            return "away"
        return None

    def is_expired(self, tenant_id: str) -> bool:
        return self.expiry_reason(tenant_id) is not None

    def current_session(self, tenant_id: str) -> Optional[str]:
        return self._get(SESSION_KEY, tenant_id) or None

    def resolve_session(self, tenant_id: str) -> str:
        now = self.clock()
        session_id = self.current_session(tenant_id)
        reason = self.expiry_reason(tenant_id, now)

        if session_id is None or reason is not None:
            session_id = generate_session_id(now)
            self._set(SESSION_KEY, tenant_id, session_id)
            logger.info("Minted widget session for tenant %s (%s)", tenant_id, reason or "new visitor")

        # Resolving means the visitor is here
        self._remove(LEFT_AT_KEY, tenant_id)
        self._stamp(LAST_ACTIVITY_KEY, tenant_id, now)
        return session_id

    def record_activity(self, tenant_id: str) -> None:
        self._stamp(LAST_ACTIVITY_KEY, tenant_id, self.clock())

    def record_departure(self, tenant_id: str) -> None:
        self._stamp(LEFT_AT_KEY, tenant_id, self.clock())
