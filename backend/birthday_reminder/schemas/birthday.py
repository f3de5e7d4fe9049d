"""Pydantic schemas for Birthdays."""
from __future__ import annotations
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from birthday_reminder.models.birthday import MAX_NOTIFICATION_TIMES
from birthday_reminder.services.schedule_rules import TimezoneChoice, TimezoneKind, is_valid_timezone, merge_times, normalize_time


def _validate_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


def _validate_times(value: Optional[list[str]]) -> Optional[list[str]]:
    if value is None:
        return value
    times = merge_times(value)
    if len(times) > MAX_NOTIFICATION_TIMES:
        raise ValueError(f"at most {MAX_NOTIFICATION_TIMES} notification times are allowed")
    return times


def _validate_timezone(value: Optional[str]) -> Optional[str]:
    choice = TimezoneChoice.parse(value)
    if choice is None:
        return None
    if choice.kind is TimezoneKind.explicit and not is_valid_timezone(choice.zone):
        raise ValueError(f"unknown timezone {choice.zone!r}")
    return choice.to_storage()


class BirthdayBase(BaseModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    photo_url: Optional[str] = None
    notes: Optional[str] = None
    notification_time: Optional[str] = None
    notification_times: Optional[list[str]] = None
    timezone: Optional[str] = None

    @field_validator("notification_time")
    @classmethod
    def check_time(cls, v):
        return normalize_time(v) if v else None

    @field_validator("notification_times")
    @classmethod
    def check_times(cls, v):
        return _validate_times(v)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        return _validate_timezone(v)


class BirthdayCreateItem(BirthdayBase):
    """A birthday row without an owner; bulk add supplies ``user_id`` once."""
    first_name: str
    last_name: str
    birth_date: date
    notification_enabled: bool = True

    @field_validator("first_name", "last_name")
    @classmethod
    def check_name(cls, v):
        return _validate_name(v)


class BirthdayCreate(BirthdayCreateItem):
    user_id: str


class BirthdayUpdate(BirthdayBase):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birth_date: Optional[date] = None
    notification_enabled: Optional[bool] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def check_name(cls, v):
        return _validate_name(v)


class BirthdayOut(BaseModel):
    id: str
    user_id: str
    first_name: str
    last_name: str
    birth_date: date
    phone: Optional[str] = None
    email: Optional[str] = None
    photo_url: Optional[str] = None
    notes: Optional[str] = None
    notification_enabled: bool
    notification_time: Optional[str] = None
    notification_times: Optional[list[str]] = None
    timezone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BulkBirthdayCreate(BaseModel):
    user_id: str
    birthdays: list[BirthdayCreateItem] = Field(..., min_length=1)


class BulkDeleteRequest(BaseModel):
    user_id: str
    ids: list[str] = Field(..., min_length=1)


class BulkDeleteResult(BaseModel):
    deleted: int


class UpcomingBirthdayOut(BaseModel):
    birthday: BirthdayOut
    next_date: date
    days_until: int
    turning_age: int

