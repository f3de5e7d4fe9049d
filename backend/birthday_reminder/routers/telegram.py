"""Telegram bot webhook, account linking and test message routes."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from birthday_reminder.config import settings
from birthday_reminder.database import get_db
from birthday_reminder.deps import get_bot_sender, get_now
from birthday_reminder.schemas.telegram import (
    TelegramLinkOut,
    TelegramLinkRequest,
    TelegramTestRequest,
    TelegramUpdate,
)
from birthday_reminder.services import notification_texts, telegram_service
from birthday_reminder.services.birthday_service import ensure_user
from birthday_reminder.services.settings_service import get_user_settings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/webhook")
def webhook(
    update: TelegramUpdate,
    db: Session = Depends(get_db),
    bot=Depends(get_bot_sender),
    now=Depends(get_now),
):
    """Receive a bot update and answer /start, /status and /help."""
    telegram_service.handle_update(db, update, bot, settings.TELEGRAM_LINK_CODE_TTL_MINUTES, now)
    return {"ok": True}


@router.get("/webhook")
def webhook_status():
    return {"ok": True, "message": "Telegram webhook endpoint is active"}


@router.post("/link", response_model=TelegramLinkOut)
def link(
    payload: TelegramLinkRequest,
    db: Session = Depends(get_db),
    bot=Depends(get_bot_sender),
    now=Depends(get_now),
):
    """Attach the chat that issued ``link_code`` to the user."""
    return telegram_service.link_account(
        db, payload.user_id, payload.link_code, bot, settings.TELEGRAM_LINK_CODE_TTL_MINUTES, now
    )


@router.post("/test")
def send_test(
    payload: TelegramTestRequest,
    db: Session = Depends(get_db),
    bot=Depends(get_bot_sender),
):
    """Send a test message (or a sample birthday reminder) to the linked chat."""
    ensure_user(db, payload.user_id)
    chat_id = get_user_settings(db, payload.user_id).telegram_chat_id
    if not chat_id:
        raise HTTPException(status_code=404, detail="Telegram is not linked")

    if payload.test_birthday:
        text = notification_texts.birthday_reminder_text("Test Person", 0, 30)
    else:
        text = payload.message or notification_texts.BOT_TEST_TEXT
    result = bot.send_message(chat_id, text)
    if not result.ok:
        logger.error("Test message to chat %s failed: %s", chat_id, result.description)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.description or "Telegram send failed")
    logger.info("Sent Telegram test message to user %s", payload.user_id)
    return {"success": True}
