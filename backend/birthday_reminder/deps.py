"""FastAPI dependencies for the external senders and the clock.

Tests override these through ``app.dependency_overrides``.
"""
from datetime import datetime, timezone
from functools import lru_cache

from birthday_reminder.config import settings
from birthday_reminder.services.push_sender import FirebasePushSender
from birthday_reminder.services.telegram_sender import TelegramBotSender


@lru_cache
def get_push_sender() -> FirebasePushSender:
    return FirebasePushSender(settings.FIREBASE_SERVICE_ACCOUNT_KEY, icon_url=settings.PUSH_ICON_URL)


@lru_cache
def get_bot_sender() -> TelegramBotSender:
    return TelegramBotSender(settings.TELEGRAM_BOT_TOKEN, api_base=settings.TELEGRAM_API_BASE)


def get_now() -> datetime:
    return datetime.now(timezone.utc)
