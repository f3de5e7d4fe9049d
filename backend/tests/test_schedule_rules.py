"""Tests for time normalization, timezone choices, settings folding and date helpers."""
from datetime import date
from types import SimpleNamespace

import pytest

from birthday_reminder.services.date_logic import days_until_birthday, next_birthday, turning_age
from birthday_reminder.services.schedule_rules import TimezoneChoice, TimezoneKind, merge_times, normalize_time
from birthday_reminder.services.user_settings import fold_settings, parse_bool


def row(user_id, key, value):
    return SimpleNamespace(user_id=user_id, key=key, value=value)


class TestNormalizeTime:
    def test_accepted_forms(self):
        assert normalize_time("9:00") == "09:00:00"
        assert normalize_time("09:00") == "09:00:00"
        assert normalize_time(" 18:30:15 ") == "18:30:15"

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "", "9", 900, None])
    def test_rejected_forms(self, value):
        with pytest.raises(ValueError):
            normalize_time(value)

    def test_merge_keeps_first_occurrence(self):
        assert merge_times(["09:00", "10:00"], ["09:00:00", "08:00"]) == ["09:00:00", "10:00:00", "08:00:00"]


class TestTimezoneChoice:
    def test_sentinels(self):
        assert TimezoneChoice.parse("auto").kind is TimezoneKind.auto
        assert TimezoneChoice.parse("Disabled").kind is TimezoneKind.disabled
        assert TimezoneChoice.parse("  ") is None
        assert TimezoneChoice.parse(None) is None

    def test_explicit_round_trip(self):
        choice = TimezoneChoice.parse("Europe/Warsaw")
        assert choice.kind is TimezoneKind.explicit
        assert choice.to_storage() == "Europe/Warsaw"


class TestFoldSettings:
    """Sparse rows become one typed settings object per user."""

    def test_defaults_when_no_rows(self):
        assert fold_settings([]) == {}

    def test_fold(self):
        folded = fold_settings([
            row("u1", "timezone", "Asia/Tokyo"),
            row("u1", "default_notification_time", "8:00"),
            row("u1", "default_notification_times", '["09:00", "08:00:00"]'),
            row("u1", "notifications_enabled", "false"),
            row("u1", "telegram_chat_id", "12345"),
            row("u2", "timezone", "auto"),
        ])
        u1 = folded["u1"]
        assert u1.timezone.zone == "Asia/Tokyo"
        assert u1.default_notification_times == ["08:00:00", "09:00:00"]
        assert u1.notifications_enabled is False
        assert u1.browser_notifications_enabled is True
        assert u1.telegram_chat_id == "12345"
        assert folded["u2"].timezone.kind is TimezoneKind.auto

    def test_malformed_values_are_skipped(self):
        folded = fold_settings([
            row("u1", "default_notification_times", "not json"),
            row("u1", "default_notification_time", "99:99"),
        ])
        assert folded["u1"].default_notification_times == []

    def test_last_row_wins(self):
        folded = fold_settings([row("u1", "timezone", "UTC"), row("u1", "timezone", "Europe/Warsaw")])
        assert folded["u1"].timezone.zone == "Europe/Warsaw"

    def test_parse_bool(self):
        assert parse_bool("TRUE", False) is True
        assert parse_bool("0", True) is False
        assert parse_bool("maybe", True) is True
        assert parse_bool(None, False) is False


class TestDateLogic:
    def test_next_birthday_later_this_year(self):
        assert next_birthday(date(1990, 6, 1), date(2025, 5, 15)) == date(2025, 6, 1)

    def test_next_birthday_rolls_over(self):
        assert next_birthday(date(1990, 1, 1), date(2025, 5, 15)) == date(2026, 1, 1)

    def test_today_is_zero_days(self):
        assert days_until_birthday(date(1990, 5, 15), date(2025, 5, 15)) == 0

    def test_feb_29_in_common_year(self):
        assert next_birthday(date(2000, 2, 29), date(2025, 1, 10)) == date(2025, 2, 28)
        assert next_birthday(date(2000, 2, 29), date(2027, 12, 1)) == date(2028, 2, 29)

    def test_turning_age(self):
        assert turning_age(date(1990, 5, 15), date(2025, 5, 15)) == 35
