"""Telegram account linking and bot command handling.

Linking flow:
1. The user sends /start to the bot; the webhook issues a one-time code
   (one pending code per chat, reissuing replaces the previous code).
2. The user enters the code in the app; ``link_account`` verifies it is
   known and younger than the TTL, stores the chat id in the user's settings
   and deletes the pending code.
"""
import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from birthday_reminder.models.setting import SettingKey, UserSetting
from birthday_reminder.models.telegram_link import TelegramPendingLink
from birthday_reminder.schemas.telegram import TelegramUpdate
from birthday_reminder.services import notification_texts
from birthday_reminder.services.birthday_service import ensure_user
from birthday_reminder.services.settings_service import delete_setting, upsert_setting
from birthday_reminder.services.telegram_sender import TelegramBotSender

logger = logging.getLogger(__name__)

LINK_CODE_ALPHABET = string.ascii_uppercase + string.digits
LINK_CODE_LENGTH = 8


def generate_link_code() -> str:
    return "".join(secrets.choice(LINK_CODE_ALPHABET) for _ in range(LINK_CODE_LENGTH))


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def issue_link_code(
    db: Session,
    chat_id: str,
    username: Optional[str],
    first_name: Optional[str],
    now: datetime,
) -> str:
    code = generate_link_code()
    pending = db.query(TelegramPendingLink).filter(TelegramPendingLink.chat_id == chat_id).first()
    if pending is None:
        pending = TelegramPendingLink(chat_id=chat_id)
        db.add(pending)
    pending.link_code = code
    pending.username = username
    pending.first_name = first_name
    pending.created_at = now
    db.commit()
    logger.info("Issued Telegram link code for chat %s", chat_id)
    return code


def is_chat_linked(db: Session, chat_id: str) -> bool:
    return (
        db.query(UserSetting)
        .filter(UserSetting.key == SettingKey.telegram_chat_id, UserSetting.value == chat_id)
        .first()
        is not None
    )


def handle_update(
    db: Session,
    update: TelegramUpdate,
    bot: TelegramBotSender,
    ttl_minutes: int,
    now: datetime,
) -> None:
    """Dispatch a bot command. Unknown commands and non-text updates are ignored."""
    message = update.message
    if message is None or not message.text:
        return

    chat_id = str(message.chat.id)
    command = message.text.strip().split()[0].split("@")[0].lower()
    sender = message.from_user

    if command == "/start":
        try:
            code = issue_link_code(
                db,
                chat_id,
                sender.username if sender else None,
                sender.first_name if sender else None,
                now,
            )
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not store link code for chat %s", chat_id)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")
        text = notification_texts.link_code_text(code, ttl_minutes)
    elif command == "/status":
        linked = is_chat_linked(db, chat_id)
        text = notification_texts.BOT_LINKED_TEXT if linked else notification_texts.BOT_NOT_LINKED_TEXT
    elif command == "/help":
        text = notification_texts.BOT_HELP_TEXT
    else:
        logger.debug("Ignoring Telegram message in chat %s: %r", chat_id, message.text[:50])
        return

    result = bot.send_message(chat_id, text)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.description or "Telegram send failed")


def link_account(
    db: Session,
    user_id: str,
    link_code: str,
    bot: TelegramBotSender,
    ttl_minutes: int,
    now: datetime,
) -> dict:
    ensure_user(db, user_id)
    pending = (
        db.query(TelegramPendingLink)
        .filter(TelegramPendingLink.link_code == link_code.strip().upper())
        .first()
    )
    if not pending:
        raise HTTPException(status_code=404, detail="Invalid or expired code")

    chat_id, username, first_name = pending.chat_id, pending.username, pending.first_name
    if now - _as_aware(pending.created_at) > timedelta(minutes=ttl_minutes):
        db.delete(pending)
        db.commit()
        logger.info("Rejected expired Telegram link code for chat %s", chat_id)
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Code expired")

    upsert_setting(db, user_id, SettingKey.telegram_chat_id, chat_id)
    if username:
        upsert_setting(db, user_id, SettingKey.telegram_username, username)
    else:
        delete_setting(db, user_id, SettingKey.telegram_username)
    db.delete(pending)
    db.commit()
    logger.info("Linked Telegram chat %s to user %s", chat_id, user_id)

    result = bot.send_message(chat_id, notification_texts.BOT_LINK_CONFIRMED_TEXT)
    if not result.ok:
        logger.warning("Link confirmation to chat %s failed: %s", chat_id, result.description)
    return {"success": True, "username": username, "first_name": first_name}


def unlink_account(db: Session, user_id: str) -> None:
    delete_setting(db, user_id, SettingKey.telegram_chat_id)
    delete_setting(db, user_id, SettingKey.telegram_username)
    db.commit()
    logger.info("Unlinked Telegram for user %s", user_id)
