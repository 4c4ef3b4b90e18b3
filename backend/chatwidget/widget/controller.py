"""Session controller for one mounted chat widget.

The widget moves through an explicit set of states::

    UNINITIALIZED -> LOADING -> READY_CLOSED <-> READY_OPEN
                     LOADING -> FAILED

All state changes go through ``next_state``. Entering ``READY_OPEN`` starts
the history poll and leaving it stops the poll, so the poll never runs while
the panel is closed. ``session_epoch`` counts rotations; results of requests
started in an earlier epoch are dropped when they arrive.
"""
import logging
from enum import Enum
from typing import Any, List, Optional

from .. import config
from ..schemas import WidgetConfigOut
from .activity import SWEEP_INTERVAL, ActivityTracker
from .config_sync import CONFIG_POLL_INTERVAL, ConfigSync
from .errors import ConfigLoadError, InvalidTransition, TransportError
from .frame import FrameBridge, parse_toggle
from .reconciler import MessageReconciler
from .scheduler import PeriodicTask
from .session_store import SessionStore
from .transcript import Message, Transcript, email_offer_kind, strip_control_markers
from .transport import WidgetTransport

logger = logging.getLogger(__name__)

HISTORY_POLL_INTERVAL = config.WIDGET_HISTORY_POLL_SECONDS

SEND_FAILED_MESSAGE = "Sorry, something went wrong. Please try again."
CONNECTION_FAILED_MESSAGE = "Could not send the message. Check your internet connection."


class WidgetState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY_CLOSED = "ready_closed"
    READY_OPEN = "ready_open"
    FAILED = "failed"


class WidgetEvent(str, Enum):
    MOUNT = "mount"
    CONFIG_LOADED = "config_loaded"
    CONFIG_FAILED = "config_failed"
    OPEN = "open"
    CLOSE = "close"


TRANSITIONS = {
    (WidgetState.UNINITIALIZED, WidgetEvent.MOUNT): WidgetState.LOADING,
    (WidgetState.LOADING, WidgetEvent.CONFIG_LOADED): WidgetState.READY_CLOSED,
    (WidgetState.LOADING, WidgetEvent.CONFIG_FAILED): WidgetState.FAILED,
    (WidgetState.READY_CLOSED, WidgetEvent.OPEN): WidgetState.READY_OPEN,
    (WidgetState.READY_OPEN, WidgetEvent.CLOSE): WidgetState.READY_CLOSED,
}


def next_state(state: WidgetState, event: WidgetEvent) -> WidgetState:
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransition(state, event) from None


class WidgetController:
    def __init__(
        self,
        tenant_id: str,
        transport: WidgetTransport,
        sessions: SessionStore,
        frame: Optional[FrameBridge] = None,
        poll_interval: float = HISTORY_POLL_INTERVAL,
        config_interval: float = CONFIG_POLL_INTERVAL,
        sweep_interval: float = SWEEP_INTERVAL,
    ):
        self.tenant_id = tenant_id
        self.transport = transport
        self.sessions = sessions
        self.frame = frame or FrameBridge()

        self.state = WidgetState.UNINITIALIZED
        self.config: Optional[WidgetConfigOut] = None
        self.load_error: Optional[str] = None
        self.session_id: Optional[str] = None
        self.session_epoch = 0
        self.transcript = Transcript()
        self.input_value = ""
        self.is_sending = False
        self.email_offer: Optional[str] = None
        self.input_focus_requested = False

        self.activity = ActivityTracker(
            tenant_id, sessions, lambda: self.session_id, self.rotate, sweep_interval=sweep_interval
        )
        self.reconciler = MessageReconciler(self._fetch_log)
        self.config_sync = ConfigSync(
            lambda: self.transport.fetch_config(self.tenant_id), self.apply_config, interval=config_interval
        )
        self.poll_task = PeriodicTask(poll_interval, self.poll_once, name=f"history-poll:{tenant_id}")

    # -- state -----------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.state is WidgetState.READY_OPEN

    @property
    def is_visible(self) -> bool:
        """False while loading, after a failed load and for disabled tenants."""
        if self.state not in (WidgetState.READY_CLOSED, WidgetState.READY_OPEN):
            return False
        return self.config is not None and self.config.is_enabled

    def _apply(self, event: WidgetEvent) -> None:
        previous = self.state
        self.state = next_state(previous, event)

        if self.state is WidgetState.READY_OPEN:
            self.poll_task.start()
        elif previous is WidgetState.READY_OPEN:
            self.poll_task.stop()

        if WidgetState.READY_OPEN in (previous, self.state):
            self.frame.send_state(self.is_open)

    # -- lifecycle -------------------------------------------------------

    async def mount(self) -> None:
        self._apply(WidgetEvent.MOUNT)
        self.session_id = self.sessions.resolve_session(self.tenant_id)

        try:
            widget_config = await self.transport.fetch_config(self.tenant_id)
        except ConfigLoadError as exc:
            logger.warning("Widget for tenant %s failed to load: %s", self.tenant_id, exc)
            self.load_error = str(exc)
            self._apply(WidgetEvent.CONFIG_FAILED)
            return

        self.config = widget_config
        self.transcript.reset(widget_config.greeting)
        self._apply(WidgetEvent.CONFIG_LOADED)
        self.frame.send_position(widget_config.position)
        self.frame.send_size(widget_config.widget_size)

        self.activity.start()
        self.config_sync.start()

    def unmount(self) -> None:
        self.poll_task.stop()
        self.activity.stop()
        self.config_sync.stop()

    async def rotate(self, session_id: str) -> None:
        """Hard reset onto a new session: nothing from the old one carries over."""
        logger.info("Widget session rotated for tenant %s", self.tenant_id)
        self.session_id = session_id
        self.session_epoch += 1
        self.transcript.reset(self.config.greeting if self.config else None)
        self.email_offer = None

    def open(self) -> None:
        if not self.is_visible or self.is_open:
            return
        self._apply(WidgetEvent.OPEN)
        self.activity.on_open()
        self.input_focus_requested = True

    def close(self) -> None:
        if not self.is_open:
            return
        self._apply(WidgetEvent.CLOSE)
        self.input_focus_requested = False

    def apply_config(self, widget_config: WidgetConfigOut) -> None:
        """Swap in refreshed display settings; the transcript is left alone."""
        previous = self.config
        self.config = widget_config

        if previous is None or previous.position != widget_config.position:
            self.frame.send_position(widget_config.position)
        if previous is None or previous.widget_size != widget_config.widget_size:
            self.frame.send_size(widget_config.widget_size)
        if not widget_config.is_enabled and self.is_open:
            logger.info("Tenant %s disabled the widget, closing the panel", self.tenant_id)
            self.close()

    # -- host page -------------------------------------------------------

    def handle_frame_message(self, data: Any) -> None:
        is_open = parse_toggle(data)
        if is_open is None:
            return
        if is_open:
            self.open()
        else:
            self.close()

    async def on_visibility_change(self, visible: bool) -> bool:
        if not visible:
            self.activity.on_hidden()
            return False
        return await self.activity.on_visible()

    def on_unload(self) -> None:
        self.activity.on_unload()

    # -- outbound --------------------------------------------------------

    async def send(self, text: Optional[str] = None) -> bool:
        """Send a visitor message. Returns False when the send was rejected."""
        text = (self.input_value if text is None else text).strip()
        if not text or self.is_sending or not self.is_open or not self.session_id:
            return False

        self.is_sending = True
        epoch = self.session_epoch
        session_id = self.session_id
        self.transcript.append("user", text)
        self.input_value = ""
        self.activity.on_send()

        try:
            try:
                reply = await self.transport.send_message(self.tenant_id, session_id, text)
            except TransportError as exc:
                logger.warning("Sending a widget message failed: %s", exc)
                if epoch == self.session_epoch:
                    self.transcript.append("assistant", CONNECTION_FAILED_MESSAGE)
                return True

            if epoch != self.session_epoch:
                logger.debug("Dropping reply for a rotated session")
                return True

            if not reply.success:
                self.transcript.append("assistant", SEND_FAILED_MESSAGE)
            elif reply.is_manual_mode and not reply.escalated:
                # A human agent is answering; the reply arrives through the poll.
                pass
            else:
                content = reply.reply or ""
                self.email_offer = email_offer_kind(content) or self.email_offer
                content = strip_control_markers(content)
                if content:
                    self.transcript.append("assistant", content)
            return True
        finally:
            self.is_sending = False

    async def send_summary(self, email: str) -> bool:
        if not self.session_id:
            return False
        try:
            accepted = await self.transport.send_summary(
                self.tenant_id, self.session_id, email, self.transcript.messages
            )
        except TransportError as exc:
            logger.warning("Email summary request failed: %s", exc)
            return False
        if accepted:
            self.email_offer = None
        return accepted

    async def notify_typing(self) -> None:
        if not self.session_id:
            return
        try:
            await self.transport.report_typing(self.tenant_id, self.session_id)
        except TransportError as exc:
            logger.debug("Typing report failed: %s", exc)

    # -- inbound ---------------------------------------------------------

    async def _fetch_log(self):
        return await self.transport.fetch_history(self.tenant_id, self.session_id)

    async def poll_once(self) -> List[Message]:
        if not self.is_open or not self.session_id:
            return []

        epoch = self.session_epoch
        appended = await self.reconciler.poll(self.transcript, is_current=lambda: epoch == self.session_epoch)
        if appended:
            try:
                await self.transport.mark_read(self.tenant_id, self.session_id)
            except TransportError as exc:
                logger.debug("Read receipt failed: %s", exc)
        return appended
