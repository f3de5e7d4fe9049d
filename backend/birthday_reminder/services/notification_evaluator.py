"""Notification scheduler evaluator.

Pure decision logic shared by every trigger (cron endpoints, diagnostics,
the in-process scheduler): given the current instant, decide which birthday
records are due for a reminder right now.

Process per record:
1. Resolve the effective timezone (record zone, then user zone, else UTC).
2. Project the instant into that zone using pytz (DST-aware).
3. The record is a candidate only if local month/day equal the birth month/day.
4. Build the effective time set: record times, legacy single time, user
   defaults; normalized to HH:MM:SS and deduplicated in first-seen order.
5. Due iff the local time truncated to the minute (HH:MM:00) is in the set.

A malformed record is reported as not due with ``error`` set; it never
aborts the batch.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Mapping, Optional

import pytz

from birthday_reminder.services.schedule_rules import UTC_ZONE, TimezoneChoice, TimezoneKind, merge_times
from birthday_reminder.services.user_settings import UserSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationResult:
    birthday_id: str
    user_id: str
    due: bool
    birthday_today: bool
    matched_time: Optional[str]
    local_time: Optional[str]
    local_date: Optional[date]
    notification_times: tuple[str, ...]
    timezone: str
    age: Optional[int]
    error: Optional[str] = None


def as_utc(now: datetime) -> datetime:
    """Return ``now`` as an aware UTC datetime; naive values are taken as UTC."""
    if now.tzinfo is None:
        return pytz.utc.localize(now)
    return now.astimezone(pytz.utc)


def resolve_timezone_name(record_timezone: Optional[str], user_settings: Optional[UserSettings]) -> str:
    """Pick the zone name to evaluate a record in, before validating it."""
    record_choice = TimezoneChoice.parse(record_timezone)
    if record_choice is not None:
        if record_choice.kind is TimezoneKind.disabled:
            return UTC_ZONE
        if record_choice.kind is TimezoneKind.explicit:
            return record_choice.zone

    user_choice = user_settings.timezone if user_settings else None
    if user_choice is not None and user_choice.kind is TimezoneKind.explicit:
        return user_choice.zone
    return UTC_ZONE


def load_zone(name: str, birthday_id: Optional[str] = None):
    """Return (tzinfo, name); unknown zones fall back to UTC."""
    try:
        return pytz.timezone(name), name
    except pytz.UnknownTimeZoneError:
        logger.warning("Unknown timezone %r for birthday %s, evaluating in UTC", name, birthday_id)
        return pytz.utc, UTC_ZONE


def to_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise ValueError(f"Invalid birth_date: {value!r}")


def effective_times(record, user_settings: Optional[UserSettings]) -> list[str]:
    individual = record.notification_times or []
    if not isinstance(individual, (list, tuple)):
        raise ValueError(f"notification_times must be a list, got {type(individual).__name__}")
    legacy = [record.notification_time] if record.notification_time else []
    defaults = user_settings.default_notification_times if user_settings else []
    return merge_times(individual, legacy, defaults)


def evaluate_record(record, now: datetime, user_settings: Optional[UserSettings] = None) -> EvaluationResult:
    """Evaluate a single record at ``now``."""
    zone_name = resolve_timezone_name(record.timezone, user_settings)
    zone, zone_name = load_zone(zone_name, record.id)
    local_now = as_utc(now).astimezone(zone)
    current_time = f"{local_now.hour:02d}:{local_now.minute:02d}:00"

    try:
        birth_date = to_date(record.birth_date)
        times = effective_times(record, user_settings)
    except (ValueError, TypeError) as exc:
        logger.warning("Skipping malformed birthday %s: %s", record.id, exc)
        return EvaluationResult(
            birthday_id=record.id,
            user_id=record.user_id,
            due=False,
            birthday_today=False,
            matched_time=None,
            local_time=current_time,
            local_date=local_now.date(),
            notification_times=(),
            timezone=zone_name,
            age=None,
            error=str(exc),
        )

    birthday_today = (birth_date.month, birth_date.day) == (local_now.month, local_now.day)
    matched = current_time if birthday_today and current_time in times else None

    return EvaluationResult(
        birthday_id=record.id,
        user_id=record.user_id,
        due=matched is not None,
        birthday_today=birthday_today,
        matched_time=matched,
        local_time=current_time,
        local_date=local_now.date(),
        notification_times=tuple(times),
        timezone=zone_name,
        age=local_now.year - birth_date.year,
    )


def evaluate_batch(
    records: Iterable,
    now: datetime,
    settings_by_user: Optional[Mapping[str, UserSettings]] = None,
) -> list[EvaluationResult]:
    """Evaluate every record independently; one bad record never blocks the rest."""
    settings_by_user = settings_by_user or {}
    return [evaluate_record(record, now, settings_by_user.get(record.user_id)) for record in records]
