"""Typed per-user settings folded from sparse key/value rows."""
import json
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from birthday_reminder.models.setting import SettingKey
from birthday_reminder.services.schedule_rules import TimezoneChoice, normalize_time

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


@dataclass
class UserSettings:
    user_id: str
    timezone: Optional[TimezoneChoice] = None
    default_notification_times: list[str] = field(default_factory=list)
    notifications_enabled: bool = True
    browser_notifications_enabled: bool = True
    telegram_notifications_enabled: bool = True
    telegram_chat_id: Optional[str] = None
    telegram_username: Optional[str] = None


def parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def _parse_time_list(user_id: str, raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    try:
        values = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed default_notification_times for user %s: %r", user_id, raw)
        return []
    if not isinstance(values, list):
        logger.warning("default_notification_times for user %s is not a list: %r", user_id, raw)
        return []
    return values


def _normalized_defaults(user_id: str, single: Optional[str], many: list) -> list[str]:
    times: list[str] = []
    candidates = ([single] if single else []) + list(many)
    for raw in candidates:
        try:
            normalized = normalize_time(raw)
        except ValueError:
            logger.warning("Skipping invalid default notification time %r for user %s", raw, user_id)
            continue
        if normalized not in times:
            times.append(normalized)
    return times


def fold_settings(rows: Iterable) -> dict[str, UserSettings]:
    """Fold (user_id, key, value) rows into one ``UserSettings`` per user.

    Rows are applied in order, so for a repeated (user, key) the last row wins.
    Unknown keys are ignored.
    """
    raw: dict[str, dict[str, Optional[str]]] = {}
    for row in rows:
        raw.setdefault(row.user_id, {})[row.key] = row.value

    folded: dict[str, UserSettings] = {}
    for user_id, values in raw.items():
        folded[user_id] = UserSettings(
            user_id=user_id,
            timezone=TimezoneChoice.parse(values.get(SettingKey.timezone)),
            default_notification_times=_normalized_defaults(
                user_id,
                values.get(SettingKey.default_notification_time),
                _parse_time_list(user_id, values.get(SettingKey.default_notification_times)),
            ),
            notifications_enabled=parse_bool(values.get(SettingKey.notifications_enabled), True),
            browser_notifications_enabled=parse_bool(values.get(SettingKey.browser_notifications_enabled), True),
            telegram_notifications_enabled=parse_bool(values.get(SettingKey.telegram_notifications_enabled), True),
            telegram_chat_id=values.get(SettingKey.telegram_chat_id) or None,
            telegram_username=values.get(SettingKey.telegram_username) or None,
        )
    return folded
