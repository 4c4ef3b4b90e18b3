import logging
from typing import Optional

from aiogram import Bot, Dispatcher, types
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, WebAppInfo
from aiogram.utils.text_decorations import html_decoration

from .. import config

logger = logging.getLogger(__name__)

dp = Dispatcher()
_bot: Optional[Bot] = None


def get_bot() -> Optional[Bot]:
    global _bot
    if not config.TELEGRAM_BOT_TOKEN:
        return None
    if _bot is None:
        _bot = Bot(token=config.TELEGRAM_BOT_TOKEN, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    return _bot


@dp.message()
async def cmd_start(message: types.Message):
    await message.answer("✅ Support bot is running. Escalated chats will show up here.")


async def start_telegram_bot():
    bot = get_bot()
    if bot is None:
        return
    await dp.start_polling(bot)


def _conversation_keyboard(tenant_id: str, session_id: str) -> InlineKeyboardMarkup:
    web_app_url = f"{config.DASHBOARD_URL}/operator?tenant_id={tenant_id}&session_id={session_id}"
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="💬 Open chat", web_app=WebAppInfo(url=web_app_url))]
    ])


async def _broadcast(text: str, tenant_id: str, session_id: str) -> None:
    bot = get_bot()
    if bot is None:
        return
    keyboard = _conversation_keyboard(tenant_id, session_id)
    for op_id in config.OPERATOR_CHAT_IDS:
        try:
            await bot.send_message(op_id, text, reply_markup=keyboard)
        except TelegramAPIError as exc:
            logger.warning("Could not alert operator %s: %s", op_id, exc)


async def notify_escalation(tenant_id: str, session_id: str, text: str) -> None:
    await _broadcast(
        f"🙋 A visitor asked for a person:\n\n{html_decoration.quote(text)}\n\n"
        f"Tenant: {html_decoration.quote(tenant_id)}",
        tenant_id,
        session_id,
    )


async def notify_customer_message(tenant_id: str, session_id: str, text: str) -> None:
    await _broadcast(
        f"📩 New message:\n\n{html_decoration.quote(text)}\n\nTenant: {html_decoration.quote(tenant_id)}",
        tenant_id,
        session_id,
    )
