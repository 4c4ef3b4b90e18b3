"""Reply generation for visitor messages.

The language model is an external collaborator: the chat endpoint only needs
``generate(message, tenant=..., history=...) -> str``. When no Groq key is
configured a static reply is returned so the widget stays usable.
"""
import logging
import re
from typing import Dict, List, Optional

import httpx

from .. import config

logger = logging.getLogger(__name__)

ESCALATION_MARKER = "[ESCALATE]"

HANDOFF_REPLY = (
    "I've passed your message on to a member of our team. "
    "They will reply here in this chat shortly."
)
FALLBACK_REPLY = (
    "Thanks for your message! I can't answer that right now, "
    "but you can ask to talk to a person and someone from our team will help you."
)

HUMAN_REQUEST_PATTERN = re.compile(
    r"\b(human|person|agent|operator|real person|someone from (your|the) team|"
    r"menneske|kundeservice|ansatt)\b",
    re.IGNORECASE,
)
HUMAN_REQUEST_VERBS = re.compile(r"\b(talk|speak|chat|connect|transfer|snakke|prate)\b", re.IGNORECASE)


def wants_human(message: str) -> bool:
    """True when the visitor explicitly asks to be handed to a person."""
    return bool(HUMAN_REQUEST_PATTERN.search(message) and HUMAN_REQUEST_VERBS.search(message))


def requests_escalation(reply: str) -> bool:
    return ESCALATION_MARKER in reply


def strip_escalation_marker(reply: str) -> str:
    return reply.replace(ESCALATION_MARKER, "").strip()


class ReplyGenerator:
    async def generate(self, message: str, *, tenant, history: List[Dict[str, str]]) -> str:
        raise NotImplementedError


class StaticReplyGenerator(ReplyGenerator):
    def __init__(self, reply: str = FALLBACK_REPLY):
        self.reply = reply

    async def generate(self, message, *, tenant, history):
        return self.reply


class GroqReplyGenerator(ReplyGenerator):
    """Chat completions against Groq's OpenAI compatible API."""

    def __init__(self, api_key: str, model: str = config.GROQ_MODEL, url: str = config.GROQ_API_URL,
                 timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def _system_prompt(self, tenant) -> str:
        name = tenant.business_name if tenant is not None else "the business"
        bot_name = tenant.bot_name if tenant is not None else "Botsy"
        return (
            f"You are {bot_name}, the customer service assistant for {name}. "
            "Answer briefly and politely in the customer's language. "
            f"If the customer needs help only a person can give, start your answer with {ESCALATION_MARKER}."
        )

    async def generate(self, message, *, tenant, history):
        messages = [{"role": "system", "content": self._system_prompt(tenant)}]
        messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        messages.append({"role": "user", "content": message})

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                self.url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"model": self.model, "messages": messages, "temperature": 0.5, "max_tokens": 500},
            )
            response.raise_for_status()

        try:
            data = response.json()
            return data["choices"][0]["message"]["content"] or FALLBACK_REPLY
        except (ValueError, KeyError, IndexError, TypeError):
            logger.warning("Unexpected completion payload from Groq")
            return FALLBACK_REPLY


def get_reply_generator() -> ReplyGenerator:
    if config.GROQ_API_KEY:
        return GroqReplyGenerator(config.GROQ_API_KEY)
    return StaticReplyGenerator()
