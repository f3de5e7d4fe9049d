"""Pydantic schemas for cron runs and notification diagnostics."""
from __future__ import annotations
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel

from birthday_reminder.schemas.push_token import PushDeliveryOut


class DeliveryOut(BaseModel):
    birthday_id: str
    name: str
    matched_time: str
    timezone: str
    push: Optional[PushDeliveryOut] = None
    telegram_sent: Optional[bool] = None
    telegram_error: Optional[str] = None
    skipped_reason: Optional[str] = None
    error: Optional[str] = None

    model_config = {"from_attributes": True}


class DispatchReportOut(BaseModel):
    success: bool = True
    message: str
    timestamp: datetime
    birthdays_checked: int
    birthdays_today: int
    due: int
    notifications_sent: int
    deliveries: list[DeliveryOut] = []
    malformed: list[str] = []

    model_config = {"from_attributes": True}


class EvaluationOut(BaseModel):
    birthday_id: str
    user_id: str
    name: str
    birth_date: Optional[date] = None
    due: bool
    birthday_today: bool
    matched_time: Optional[str] = None
    local_time: Optional[str] = None
    local_date: Optional[date] = None
    notification_times: list[str]
    timezone: str
    age: Optional[int] = None
    error: Optional[str] = None


class NotificationTimesReport(BaseModel):
    server_time_utc: datetime
    total_birthdays: int
    birthdays: list[EvaluationOut]


class SetupCheckOut(BaseModel):
    timestamp: datetime
    firebase_configured: bool
    telegram_configured: bool
    scheduler_enabled: bool
    total_users: int
    users_with_tokens: int
    total_tokens: int
    enabled_birthdays: int
    birthdays_today: int
    due_now: int
    issues: list[str]
