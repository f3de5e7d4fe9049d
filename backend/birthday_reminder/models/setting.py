"""UserSetting ORM model: sparse (user_id, key, value) rows.

Rows are folded into a typed ``UserSettings`` structure by
``user_settings.fold_settings``; call sites never read raw rows.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from birthday_reminder.database import Base


class SettingKey:
    timezone = "timezone"
    default_notification_time = "default_notification_time"
    default_notification_times = "default_notification_times"
    notifications_enabled = "notifications_enabled"
    browser_notifications_enabled = "browser_notifications_enabled"
    telegram_notifications_enabled = "telegram_notifications_enabled"
    telegram_chat_id = "telegram_chat_id"
    telegram_username = "telegram_username"


class UserSetting(Base):
    __tablename__ = "settings"

    user_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
