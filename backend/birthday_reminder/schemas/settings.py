"""Pydantic schemas for per-user settings."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, field_validator

from birthday_reminder.services.schedule_rules import merge_times
from birthday_reminder.services.user_settings import UserSettings


class SettingsUpdate(BaseModel):
    timezone: Optional[str] = None
    detected_timezone: Optional[str] = None  # browser-reported zone used to resolve "auto"
    default_notification_times: Optional[list[str]] = None
    notifications_enabled: Optional[bool] = None
    browser_notifications_enabled: Optional[bool] = None
    telegram_notifications_enabled: Optional[bool] = None

    @field_validator("default_notification_times")
    @classmethod
    def check_times(cls, v):
        return merge_times(v) if v is not None else v


class SettingsOut(BaseModel):
    user_id: str
    timezone: Optional[str] = None
    default_notification_times: list[str] = []
    notifications_enabled: bool = True
    browser_notifications_enabled: bool = True
    telegram_notifications_enabled: bool = True
    telegram_linked: bool = False
    telegram_username: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: UserSettings) -> "SettingsOut":
        return cls(
            user_id=settings.user_id,
            timezone=settings.timezone.to_storage() if settings.timezone else None,
            default_notification_times=settings.default_notification_times,
            notifications_enabled=settings.notifications_enabled,
            browser_notifications_enabled=settings.browser_notifications_enabled,
            telegram_notifications_enabled=settings.telegram_notifications_enabled,
            telegram_linked=settings.telegram_chat_id is not None,
            telegram_username=settings.telegram_username,
        )


class SettingRowOut(BaseModel):
    user_id: str
    key: str
    value: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
