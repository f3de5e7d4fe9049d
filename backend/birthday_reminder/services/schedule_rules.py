"""Time-of-day and timezone primitives shared by validation and evaluation.

Stored timezone strings overload IANA zone names with the UI sentinels
``auto`` and ``disabled``; ``TimezoneChoice`` parses them into a tagged
value so no caller compares magic strings.
"""
import enum
import re
from dataclasses import dataclass
from typing import Iterable, Optional

import pytz

UTC_ZONE = "UTC"

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


class TimezoneKind(str, enum.Enum):
    explicit = "explicit"
    auto = "auto"
    disabled = "disabled"


@dataclass(frozen=True)
class TimezoneChoice:
    kind: TimezoneKind
    zone: Optional[str] = None

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["TimezoneChoice"]:
        """Parse a stored timezone string. Empty or missing means unset (None)."""
        if value is None:
            return None
        text = str(value).strip()
        if not text:
            return None
        lowered = text.lower()
        if lowered == TimezoneKind.auto.value:
            return cls(TimezoneKind.auto)
        if lowered == TimezoneKind.disabled.value:
            return cls(TimezoneKind.disabled)
        return cls(TimezoneKind.explicit, text)

    def to_storage(self) -> str:
        if self.kind is TimezoneKind.explicit:
            return self.zone
        return self.kind.value


def is_valid_timezone(name: str) -> bool:
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def normalize_time(value) -> str:
    """Normalize ``H:MM``, ``HH:MM`` or ``HH:MM:SS`` to ``HH:MM:SS``.

    Raises ValueError for anything that is not a valid 24-hour time.
    """
    if not isinstance(value, str):
        raise ValueError(f"Notification time must be a string, got {type(value).__name__}")
    match = _TIME_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid notification time: {value!r}")

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3)) if match.group(3) is not None else 0
    if hour > 23 or minute > 59 or second > 59:
        raise ValueError(f"Invalid notification time: {value!r}")
    return f"{hour:02d}:{minute:02d}:{second:02d}"


def merge_times(*sources: Iterable[str]) -> list[str]:
    """Normalize and concatenate time lists, keeping the first occurrence of each."""
    merged: list[str] = []
    for source in sources:
        for raw in source:
            normalized = normalize_time(raw)
            if normalized not in merged:
                merged.append(normalized)
    return merged
