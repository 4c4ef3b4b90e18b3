# backend/chatwidget/services/summary.py
import html
import logging
import re
from typing import Iterable

import httpx

from .. import config
from ..schemas import SummaryMessage

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CONTROL_MARKERS = ("[EMAIL_REQUEST]", "[OFFER_EMAIL]")
RESEND_URL = "https://api.resend.com/emails"


class SummaryNotConfigured(Exception):
    pass


class SummaryDeliveryFailed(Exception):
    pass


def is_valid_email(address) -> bool:
    return bool(address) and bool(EMAIL_PATTERN.match(address))


def render_summary_html(business_name: str, messages: Iterable[SummaryMessage]) -> str:
    """Render the transcript as a simple HTML email body.

    Messages carrying control markers are left out, everything else is escaped.
    """
    name = html.escape(business_name)
    rows = []
    for m in messages:
        if any(marker in m.content for marker in CONTROL_MARKERS):
            continue
        sender = "You" if m.role == "user" else name
        body = html.escape(m.content).replace("\n", "<br>")
        rows.append(f"<p><strong>{sender}:</strong> {body}</p>")

    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>Conversation summary from {name}</title></head>"
        "<body style=\"font-family: sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;\">"
        "<h1>Conversation summary</h1>"
        f"<p>From your chat with {name}</p>"
        f"<div>{''.join(rows)}</div>"
        f"<p style=\"font-size: 12px; color: #6b7a94;\">This email was sent automatically by {name}.</p>"
        "</body></html>"
    )


async def send_summary_email(to_address: str, business_name: str, messages: Iterable[SummaryMessage]) -> None:
    if not config.RESEND_API_KEY:
        raise SummaryNotConfigured()

    payload = {
        "from": f"{business_name} <{config.SUMMARY_FROM_ADDRESS}>",
        "to": to_address,
        "subject": f"Conversation summary from {business_name}",
        "html": render_summary_html(business_name, messages),
    }
    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            response = await client.post(
                RESEND_URL,
                headers={"Authorization": f"Bearer {config.RESEND_API_KEY}"},
                json=payload,
            )
            response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Summary email delivery failed: %s", exc)
        raise SummaryDeliveryFailed() from exc
