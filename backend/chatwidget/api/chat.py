import logging
from datetime import datetime
from typing import Optional

import httpx
import redis
from fastapi import APIRouter, Depends, HTTPException, Query, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from .. import config, models, schemas
from ..bot.telegram_bot import notify_customer_message, notify_escalation
from ..database import engine, get_db
from ..services import summary
from ..services.replies import (
    HANDOFF_REPLY,
    ReplyGenerator,
    get_reply_generator,
    requests_escalation,
    strip_escalation_marker,
    wants_human,
)
from .auth import operator_api_keys, verify_operator
from .widget import DEMO_TENANT_ID

logger = logging.getLogger(__name__)

# Redis
redis_client = redis.from_url(config.REDIS_URL, decode_responses=True)

TYPING_TTL_SECONDS = 3

models.Base.metadata.create_all(bind=engine)

router = APIRouter()


def _typing_key(who: str, tenant_id: str, session_id: str) -> str:
    return f"typing_{who}:{tenant_id}:{session_id}"


def _clear_typing(who: str, tenant_id: str, session_id: str) -> None:
    try:
        redis_client.delete(_typing_key(who, tenant_id, session_id))
    except redis.RedisError as exc:
        logger.debug("Could not clear typing flag: %s", exc)


def _is_typing(who: str, tenant_id: str, session_id: str) -> bool:
    try:
        return bool(redis_client.exists(_typing_key(who, tenant_id, session_id)))
    except redis.RedisError as exc:
        logger.debug("Could not read typing flag: %s", exc)
        return False


def _find_conversation(db: Session, tenant_id: str, session_id: str) -> Optional[models.Conversation]:
    return db.query(models.Conversation).filter(
        models.Conversation.tenant_id == tenant_id,
        models.Conversation.session_id == session_id,
    ).first()


def _require_conversation(db: Session, tenant_id: str, session_id: str) -> models.Conversation:
    conversation = _find_conversation(db, tenant_id, session_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Chat session not found")
    return conversation


def _get_or_create_conversation(db: Session, tenant_id: str, session_id: str) -> models.Conversation:
    conversation = _find_conversation(db, tenant_id, session_id)
    if conversation is None:
        conversation = models.Conversation(tenant_id=tenant_id, session_id=session_id)
        db.add(conversation)
        db.commit()
        db.refresh(conversation)
    return conversation


async def _escalate(db: Session, conversation: models.Conversation, text: str) -> schemas.ChatReplyOut:
    conversation.is_manual_mode = True
    db.add(models.Escalation(
        tenant_id=conversation.tenant_id,
        session_id=conversation.session_id,
        customer_message=text,
    ))
    db.add(models.Message(conversation_id=conversation.id, role="assistant", content=HANDOFF_REPLY))
    db.commit()
    logger.info("Conversation %s escalated to a human agent", conversation.id)

    await notify_escalation(conversation.tenant_id, conversation.session_id, text)
    return schemas.ChatReplyOut(success=True, reply=HANDOFF_REPLY, is_manual_mode=True, escalated=True)


# === HISTORY ===
@router.get("/chat/history", response_model=schemas.HistoryOut)
def get_history(
        tenant_id: str = Query(..., alias="tenantId"),
        session_id: str = Query(..., alias="sessionId"),
        db: Session = Depends(get_db)
):
    conversation = _find_conversation(db, tenant_id, session_id)
    if conversation is None:
        return schemas.HistoryOut(success=True)

    return schemas.HistoryOut(
        success=True,
        messages=[
            schemas.HistoryMessage(role=m.role, content=m.content, timestamp=m.created_at, is_manual=m.is_manual)
            for m in conversation.messages
        ],
        is_manual_mode=conversation.is_manual_mode,
        agent_typing=_is_typing("agent", tenant_id, session_id),
        customer_typing=_is_typing("customer", tenant_id, session_id),
        last_read_by_agent=conversation.last_read_by_agent,
        last_read_by_customer=conversation.last_read_by_customer,
    )


# === MANUAL MODE (operators) ===
@router.get("/chat/manual")
def get_manual_status(
        tenant_id: str = Query(..., alias="tenantId"),
        session_id: str = Query(..., alias="sessionId"),
        db: Session = Depends(get_db),
        _: str = Depends(verify_operator)
):
    conversation = _require_conversation(db, tenant_id, session_id)
    return {"success": True, "isManualMode": conversation.is_manual_mode}


@router.put("/chat/manual")
def toggle_manual_mode(
        body: schemas.ManualToggleIn,
        db: Session = Depends(get_db),
        _: str = Depends(verify_operator)
):
    conversation = _require_conversation(db, body.tenant_id, body.session_id)
    conversation.is_manual_mode = body.is_manual
    db.commit()
    logger.info("Conversation %s manual mode set to %s", conversation.id, body.is_manual)
    return {"success": True, "isManualMode": body.is_manual}


@router.post("/chat/manual")
def send_manual_message(
        body: schemas.ManualMessageIn,
        db: Session = Depends(get_db),
        _: str = Depends(verify_operator)
):
    if not body.message or not body.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    conversation = _require_conversation(db, body.tenant_id, body.session_id)
    db.add(models.Message(
        conversation_id=conversation.id,
        role="assistant",
        content=body.message.strip(),
        is_manual=True,
    ))
    conversation.is_manual_mode = True
    conversation.updated_at = datetime.utcnow()
    db.commit()

    _clear_typing("agent", body.tenant_id, body.session_id)
    return {"success": True}


# === TYPING ===
@router.put("/chat/typing")
def set_typing(body: schemas.PresenceIn):
    try:
        redis_client.setex(_typing_key(body.who, body.tenant_id, body.session_id), TYPING_TTL_SECONDS, "1")
    except redis.RedisError as exc:
        logger.warning("Could not store typing flag: %s", exc)
        raise HTTPException(status_code=503, detail="Typing status unavailable")
    return {"success": True}


# === READ RECEIPTS ===
@router.put("/chat/read")
def mark_read(
        body: schemas.PresenceIn,
        db: Session = Depends(get_db),
        api_key: Optional[str] = Security(APIKeyHeader(name="X-API-Key", auto_error=False))
):
    if body.who == "agent" and api_key not in operator_api_keys():
        raise HTTPException(status_code=403, detail="Invalid API key")

    conversation = _require_conversation(db, body.tenant_id, body.session_id)
    if body.who == "agent":
        conversation.last_read_by_agent = datetime.utcnow()
    else:
        conversation.last_read_by_customer = datetime.utcnow()
    db.commit()
    return {"success": True}


# === FEEDBACK ===
@router.post("/chat/feedback")
def submit_feedback(body: schemas.FeedbackIn, db: Session = Depends(get_db)):
    db.add(models.Feedback(
        tenant_id=body.tenant_id,
        session_id=body.session_id,
        message_index=body.message_index,
        rating=body.rating,
        message_content=body.message_content or "",
    ))
    db.commit()
    return {"success": True}


# === EMAIL SUMMARY ===
@router.post("/chat/send-summary")
async def send_summary(body: schemas.SummaryIn, db: Session = Depends(get_db)):
    if not summary.is_valid_email(body.customer_email):
        raise HTTPException(status_code=400, detail="Invalid email address")
    if not body.messages:
        raise HTTPException(status_code=400, detail="No messages to summarise")

    tenant = db.get(models.Tenant, body.tenant_id)
    business_name = tenant.business_name if tenant else "The business"

    try:
        await summary.send_summary_email(body.customer_email, business_name, body.messages)
    except summary.SummaryNotConfigured:
        raise HTTPException(status_code=503, detail="Email is not configured. Please contact the business directly.")
    except summary.SummaryDeliveryFailed:
        raise HTTPException(status_code=502, detail="Could not send the email. Please try again later.")
    return {"success": True, "message": "Email sent"}


# === VISITOR MESSAGE ===
@router.post("/chat/{tenant_id}", response_model=schemas.ChatReplyOut)
async def chat_reply(
        tenant_id: str,
        body: schemas.ChatRequest,
        db: Session = Depends(get_db),
        generator: ReplyGenerator = Depends(get_reply_generator)
):
    text = (body.message or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail="Message is required")
    if not body.session_id:
        raise HTTPException(status_code=400, detail="Session ID is required")

    if tenant_id == DEMO_TENANT_ID:
        reply = await generator.generate(text, tenant=None, history=[])
        return schemas.ChatReplyOut(success=True, reply=strip_escalation_marker(reply))

    tenant = db.get(models.Tenant, tenant_id)
    if tenant is None:
        raise HTTPException(status_code=404, detail="Tenant not found")
    if not tenant.is_enabled:
        raise HTTPException(status_code=403, detail="Chat is not enabled for this tenant")

    conversation = _get_or_create_conversation(db, tenant_id, body.session_id)
    history = [{"role": m.role, "content": m.content} for m in conversation.messages]

    db.add(models.Message(conversation_id=conversation.id, role="user", content=text))
    conversation.is_active = True
    conversation.updated_at = datetime.utcnow()
    db.commit()
    _clear_typing("customer", tenant_id, body.session_id)

    if conversation.is_manual_mode:
        # The agent answers through /chat/manual; the widget picks it up by polling.
        await notify_customer_message(tenant_id, body.session_id, text)
        return schemas.ChatReplyOut(success=True, reply="", is_manual_mode=True, escalated=False)

    if wants_human(text):
        return await _escalate(db, conversation, text)

    try:
        reply = await generator.generate(text, tenant=tenant, history=history)
    except httpx.HTTPError as exc:
        logger.error("Reply generation failed for tenant %s: %s", tenant_id, exc)
        raise HTTPException(status_code=502, detail="Could not generate a reply")

    if requests_escalation(reply):
        return await _escalate(db, conversation, text)

    db.add(models.Message(conversation_id=conversation.id, role="assistant", content=reply))
    db.commit()
    return schemas.ChatReplyOut(success=True, reply=reply)
