import itertools
from dataclasses import dataclass, field
from typing import List, Optional

EMAIL_REQUEST_MARKER = "[EMAIL_REQUEST]"
OFFER_EMAIL_MARKER = "[OFFER_EMAIL]"
CONTROL_MARKERS = (EMAIL_REQUEST_MARKER, OFFER_EMAIL_MARKER)

GREETING_ID = "greeting"

_local_ids = itertools.count(1)


def next_local_id() -> str:
    return f"local-{next(_local_ids)}"


def strip_control_markers(text: str) -> str:
    for marker in CONTROL_MARKERS:
        text = text.replace(marker, "")
    return text.strip()


def email_offer_kind(text: str) -> Optional[str]:
    """Which email summary prompt a reply asks for, if any."""
    if EMAIL_REQUEST_MARKER in text:
        return "request"
    if OFFER_EMAIL_MARKER in text:
        return "offer"
    return None


@dataclass
class Message:
    id: str
    role: str
    content: str
    is_manual: bool = False


@dataclass
class Transcript:
    """The visitor's local view of the conversation."""

    messages: List[Message] = field(default_factory=list)
    server_message_cursor: int = 0

    def __len__(self):
        return len(self.messages)

    def reset(self, greeting: Optional[str] = None) -> None:
        self.messages = []
        self.server_message_cursor = 0
        if greeting:
            self.messages.append(Message(id=GREETING_ID, role="assistant", content=greeting))

    def append(self, role: str, content: str, is_manual: bool = False) -> Message:
        message = Message(id=next_local_id(), role=role, content=content, is_manual=is_manual)
        self.messages.append(message)
        return message

    def contains_content(self, content: str) -> bool:
        return any(m.content == content for m in self.messages)

    def advance_cursor(self, position: int) -> None:
        self.server_message_cursor = max(self.server_message_cursor, position)
