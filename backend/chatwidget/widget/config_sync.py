# backend/chatwidget/widget/config_sync.py
import logging
from typing import Awaitable, Callable

from .. import config
from ..schemas import WidgetConfigOut
from .errors import TransportError
from .scheduler import PeriodicTask

logger = logging.getLogger(__name__)

CONFIG_POLL_INTERVAL = config.WIDGET_CONFIG_POLL_SECONDS


class ConfigSync:
    """Keeps the display settings fresh while the widget is mounted.

    A failed refresh changes nothing; the next tick tries again.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[WidgetConfigOut]],
        apply: Callable[[WidgetConfigOut], None],
        interval: float = CONFIG_POLL_INTERVAL,
    ):
        self.fetch = fetch
        self.apply = apply
        self.task = PeriodicTask(interval, self.refresh, name="config-sync")

    def start(self) -> None:
        self.task.start()

    def stop(self) -> None:
        self.task.stop()

    async def refresh(self) -> bool:
        try:
            new_config = await self.fetch()
        except TransportError as exc:
            logger.debug("Config refresh failed: %s", exc)
            return False
        self.apply(new_config)
        return True
