"""Settings service: read and upsert the sparse per-user settings rows."""
import json
import logging
from typing import Any, Iterable, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from birthday_reminder.models.setting import SettingKey, UserSetting
from birthday_reminder.services.schedule_rules import (
    TimezoneChoice,
    TimezoneKind,
    is_valid_timezone,
    merge_times,
)
from birthday_reminder.services.user_settings import UserSettings, fold_settings

logger = logging.getLogger(__name__)

BOOLEAN_KEYS = (
    SettingKey.notifications_enabled,
    SettingKey.browser_notifications_enabled,
    SettingKey.telegram_notifications_enabled,
)


def load_settings_map(db: Session, user_ids: Optional[Iterable[str]] = None) -> dict[str, UserSettings]:
    """Fetch settings rows once and fold them into typed settings keyed by user."""
    query = db.query(UserSetting)
    if user_ids is not None:
        ids = list(set(user_ids))
        if not ids:
            return {}
        query = query.filter(UserSetting.user_id.in_(ids))
    return fold_settings(query.order_by(UserSetting.updated_at).all())


def get_user_settings(db: Session, user_id: str) -> UserSettings:
    return load_settings_map(db, [user_id]).get(user_id, UserSettings(user_id=user_id))


def list_setting_rows(db: Session, user_id: str) -> list[UserSetting]:
    return db.query(UserSetting).filter(UserSetting.user_id == user_id).order_by(UserSetting.key).all()


def upsert_setting(db: Session, user_id: str, key: str, value: Optional[str]) -> None:
    """Write one key; there is at most one row per (user, key). Caller commits."""
    row = db.query(UserSetting).filter(UserSetting.user_id == user_id, UserSetting.key == key).first()
    if row is None:
        db.add(UserSetting(user_id=user_id, key=key, value=value))
    else:
        row.value = value


def delete_setting(db: Session, user_id: str, key: str) -> None:
    db.query(UserSetting).filter(UserSetting.user_id == user_id, UserSetting.key == key).delete()


def resolve_timezone_for_write(timezone: str, detected_timezone: Optional[str] = None) -> str:
    """Validate a timezone before storing it.

    ``auto`` is resolved to the browser-detected zone when one is supplied and
    valid; otherwise it is stored as the sentinel and evaluated as unset.
    """
    choice = TimezoneChoice.parse(timezone)
    if choice is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Timezone must not be empty")

    if choice.kind is TimezoneKind.auto:
        if detected_timezone and is_valid_timezone(detected_timezone):
            return detected_timezone
        return choice.to_storage()

    if choice.kind is TimezoneKind.explicit and not is_valid_timezone(choice.zone):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown timezone: {choice.zone}",
        )
    return choice.to_storage()


def update_settings(db: Session, user_id: str, updates: dict[str, Any]) -> UserSettings:
    """Apply a partial typed update, then return the re-folded settings."""
    detected = updates.pop("detected_timezone", None)

    if "timezone" in updates:
        if updates["timezone"] is None:
            delete_setting(db, user_id, SettingKey.timezone)
        else:
            stored = resolve_timezone_for_write(updates["timezone"], detected)
            upsert_setting(db, user_id, SettingKey.timezone, stored)

    if "default_notification_times" in updates:
        try:
            times = merge_times(updates["default_notification_times"] or [])
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
        upsert_setting(db, user_id, SettingKey.default_notification_times, json.dumps(times))
        # The legacy single default mirrors the first entry of the list
        if times:
            upsert_setting(db, user_id, SettingKey.default_notification_time, times[0])
        else:
            delete_setting(db, user_id, SettingKey.default_notification_time)

    for key in BOOLEAN_KEYS:
        if key in updates and updates[key] is not None:
            upsert_setting(db, user_id, key, "true" if updates[key] else "false")

    db.commit()
    logger.info("Updated settings %s for user %s", sorted(updates), user_id)
    return get_user_settings(db, user_id)
