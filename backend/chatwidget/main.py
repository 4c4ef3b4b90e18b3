# backend/chatwidget/main.py
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from . import config
from .api import chat, widget
from .bot.telegram_bot import start_telegram_bot
from .database import SessionLocal
from .models import Conversation

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def deactivate_stale_conversations(db: Session, now: Optional[datetime] = None) -> int:
    cutoff = (now or datetime.utcnow()) - timedelta(days=config.CHAT_INACTIVE_DAYS)
    count = db.query(Conversation).filter(
        Conversation.updated_at < cutoff,
        Conversation.is_active == True  # noqa: E712
    ).update({Conversation.is_active: False}, synchronize_session=False)
    db.commit()
    return count


async def cleanup_inactive_chats():
    while True:
        await asyncio.sleep(3600)
        with SessionLocal() as db:
            count = deactivate_stale_conversations(db)
        if count:
            logger.info("Deactivated %d idle conversations", count)


@asynccontextmanager
async def lifespan(app: FastAPI):
    tasks = []
    if config.TELEGRAM_BOT_TOKEN:
        tasks.append(asyncio.create_task(start_telegram_bot()))
    tasks.append(asyncio.create_task(cleanup_inactive_chats()))
    yield
    for t in tasks:
        t.cancel()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API
app.include_router(widget.router, prefix="/api")
app.include_router(chat.router, prefix="/api")
