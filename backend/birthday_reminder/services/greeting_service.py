"""Prepared greetings: one text per birthday, sendable to the linked Telegram chat."""
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from birthday_reminder.models.greeting import Greeting
from birthday_reminder.services import notification_texts
from birthday_reminder.services.birthday_service import ensure_user, get_birthday
from birthday_reminder.services.settings_service import get_user_settings
from birthday_reminder.services.telegram_sender import TelegramBotSender

logger = logging.getLogger(__name__)


def _owned_birthday(db: Session, user_id: str, birthday_id: str):
    birthday = get_birthday(db, birthday_id)
    if birthday.user_id != user_id:
        raise HTTPException(status_code=404, detail="Birthday not found")
    return birthday


def upsert_greeting(db: Session, user_id: str, birthday_id: str, text: str) -> Greeting:
    ensure_user(db, user_id)
    _owned_birthday(db, user_id, birthday_id)
    greeting = db.query(Greeting).filter(Greeting.birthday_id == birthday_id).first()
    if greeting is None:
        greeting = Greeting(user_id=user_id, birthday_id=birthday_id, text=text)
        db.add(greeting)
    else:
        greeting.text = text
    db.commit()
    db.refresh(greeting)
    logger.info("Saved greeting for birthday %s", birthday_id)
    return greeting


def list_greetings(db: Session, user_id: str) -> list[Greeting]:
    return db.query(Greeting).filter(Greeting.user_id == user_id).all()


def get_greeting(db: Session, birthday_id: str) -> Greeting:
    greeting = db.query(Greeting).filter(Greeting.birthday_id == birthday_id).first()
    if not greeting:
        raise HTTPException(status_code=404, detail="Greeting not found")
    return greeting


def delete_greeting(db: Session, birthday_id: str) -> None:
    greeting = get_greeting(db, birthday_id)
    db.delete(greeting)
    db.commit()
    logger.info("Deleted greeting for birthday %s", birthday_id)


def send_greeting(db: Session, user_id: str, birthday_id: str, bot: TelegramBotSender) -> None:
    """Send the saved greeting to the user's own Telegram chat, ready to forward."""
    birthday = _owned_birthday(db, user_id, birthday_id)
    greeting = get_greeting(db, birthday_id)
    chat_id = get_user_settings(db, user_id).telegram_chat_id
    if not chat_id:
        raise HTTPException(status_code=404, detail="Telegram is not linked")

    result = bot.send_message(chat_id, notification_texts.greeting_text(birthday.full_name, greeting.text))
    if not result.ok:
        logger.error("Greeting for birthday %s not delivered: %s", birthday_id, result.description)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.description or "Telegram send failed")
    logger.info("Sent greeting for birthday %s to chat %s", birthday_id, chat_id)
