"""Clock times and timestamp conversions used by the Night Light blobs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import re
from typing import Tuple

from .errors import ValidationError


# 100-ns intervals between 1601-01-01 (FILETIME epoch) and 1970-01-01.
HECTONANOS_1601_TO_1970 = 116_444_736_000_000_000
HECTONANOS_PER_SEC = 10_000_000
LATEST_FILETIME = 0x7FFF35F4F06C58F0

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(am|pm)?$")


def _check_component(name: str, value: object, upper: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= upper:
        raise ValidationError(f"{name} must be 0-{upper}, got {value!r}")


@dataclass(frozen=True, order=True)
class TimeOfDay:
    hour: int
    minute: int

    def __post_init__(self) -> None:
        _check_component("hour", self.hour, 23)
        _check_component("minute", self.minute, 59)

    @classmethod
    def parse(cls, text: str) -> "TimeOfDay":
        """Parse ``"H:MM"`` (24-hour) or ``"H:MMam"``/``"H:MMpm"`` (12-hour)."""
        match = _CLOCK_RE.match(text.lower())
        if match is None:
            raise ValueError(f"not a clock time: {text!r}")
        hour = int(match.group(1))
        minute = int(match.group(2))
        meridiem = match.group(3)
        if meridiem is not None:
            if not 1 <= hour <= 12:
                raise ValueError(f"12-hour clock hour must be 1-12, got {hour}")
            hour %= 12
            if meridiem == "pm":
                hour += 12
        return cls(hour, minute)

    @property
    def is_midnight(self) -> bool:
        return self.hour == 0 and self.minute == 0

    def hour_meridiem(self) -> Tuple[int, str]:
        if self.hour == 0:
            return 12, "am"
        if self.hour == 12:
            return 12, "pm"
        if self.hour > 12:
            return self.hour - 12, "pm"
        return self.hour, "am"

    def format(self, use_12_hour_clock: bool = False) -> str:
        if use_12_hour_clock:
            hour, meridiem = self.hour_meridiem()
            return f"{hour:02}:{self.minute:02}{meridiem}"
        return f"{self.hour:02}:{self.minute:02}"

    def __str__(self) -> str:
        return self.format()


MIDNIGHT = TimeOfDay(0, 0)


@dataclass(frozen=True)
class TimeFrame:
    """A start/end pair; equal times mean a zero-length night."""

    start: TimeOfDay
    end: TimeOfDay

    @classmethod
    def parse(cls, text: str) -> "TimeFrame":
        """Parse ``"20:21-6:00"`` style ranges (no spaces around the dash)."""
        parts = text.split("-")
        if len(parts) != 2:
            raise ValueError(f"not a time frame: {text!r}")
        return cls(TimeOfDay.parse(parts[0]), TimeOfDay.parse(parts[1]))

    def format(self, use_12_hour_clock: bool = False) -> str:
        return f"{self.start.format(use_12_hour_clock)}-{self.end.format(use_12_hour_clock)}"

    def __str__(self) -> str:
        return self.format()


def filetime_from_unix(seconds: float) -> int:
    return int(round(seconds * HECTONANOS_PER_SEC)) + HECTONANOS_1601_TO_1970


def filetime_to_datetime(filetime: int) -> datetime:
    """Return an aware UTC datetime (microsecond precision) for a FILETIME.

    Raises ValueError past LATEST_DATETIME_FILETIME (year 9999).
    """
    micros = (filetime - HECTONANOS_1601_TO_1970) // 10
    try:
        return _UNIX_EPOCH + timedelta(microseconds=micros)
    except OverflowError:
        raise ValueError(f"FILETIME {filetime} lies beyond the datetime range") from None


def datetime_to_filetime(value: datetime) -> int:
    if value.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    delta = value - _UNIX_EPOCH
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    return micros * 10 + HECTONANOS_1601_TO_1970


def unix_to_datetime(seconds: int) -> datetime:
    try:
        return _UNIX_EPOCH + timedelta(seconds=seconds)
    except OverflowError:
        raise ValueError(f"epoch seconds {seconds} lie beyond the datetime range") from None


# Last FILETIME tick that still maps into datetime.max.
LATEST_DATETIME_FILETIME = datetime_to_filetime(datetime.max.replace(tzinfo=timezone.utc)) + 9
