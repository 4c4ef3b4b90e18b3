"""Messages exchanged between the widget frame and the host page.

The set of event types is closed. Outbound payloads carry a contract version;
inbound payloads that do not match the contract are ignored.
"""
from enum import Enum
from typing import Any, Callable, Dict, Optional

CONTRACT_VERSION = 1


class FrameEventType(str, Enum):
    STATE = "botsy-state"
    POSITION = "botsy-position"
    SIZE = "botsy-size"
    TOGGLE = "botsy-toggle"


def state_event(is_open: bool) -> Dict[str, Any]:
    return {"type": FrameEventType.STATE.value, "v": CONTRACT_VERSION, "isOpen": is_open}


def position_event(position: str) -> Dict[str, Any]:
    side = "left" if "left" in (position or "") else "right"
    return {"type": FrameEventType.POSITION.value, "v": CONTRACT_VERSION, "position": side}


def size_event(size: str) -> Dict[str, Any]:
    return {"type": FrameEventType.SIZE.value, "v": CONTRACT_VERSION, "size": size or "medium"}


def parse_toggle(data: Any) -> Optional[bool]:
    """Return the requested open state of a ``botsy-toggle`` command, else None."""
    if not isinstance(data, dict):
        return None
    if data.get("type") != FrameEventType.TOGGLE.value:
        return None
    is_open = data.get("isOpen")
    if not isinstance(is_open, bool):
        return None
    return is_open


class FrameBridge:
    def __init__(self, post: Optional[Callable[[Dict[str, Any]], None]] = None):
        self.post = post or (lambda payload: None)

    def send_state(self, is_open: bool) -> None:
        self.post(state_event(is_open))

    def send_position(self, position: str) -> None:
        self.post(position_event(position))

    def send_size(self, size: str) -> None:
        self.post(size_event(size))
