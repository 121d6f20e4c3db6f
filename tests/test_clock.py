from datetime import datetime, timezone
from pathlib import Path
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from nightlight.clock import (  # noqa: E402
    HECTONANOS_1601_TO_1970,
    LATEST_DATETIME_FILETIME,
    LATEST_FILETIME,
    MIDNIGHT,
    TimeFrame,
    TimeOfDay,
    datetime_to_filetime,
    filetime_from_unix,
    filetime_to_datetime,
    unix_to_datetime,
)
from nightlight.errors import ValidationError  # noqa: E402


@pytest.mark.parametrize(
    "text,start,end",
    [
        ("20:21-6:00", (20, 21), (6, 0)),
        ("08:00pm-05:45AM", (20, 0), (5, 45)),
        ("9:59-9:59am", (9, 59), (9, 59)),
        ("12:00am-12:30pm", (0, 0), (12, 30)),
    ],
)
def test_time_frame_parse(text: str, start: tuple, end: tuple) -> None:
    assert TimeFrame.parse(text) == TimeFrame(TimeOfDay(*start), TimeOfDay(*end))


@pytest.mark.parametrize(
    "text",
    ["9:59-9:59am-", "10:00 - 10:00", "10.00-10.00", "10:00-10:60", "10:00-24:00", "0:00pm-1:00", ""],
)
def test_time_frame_parse_rejects(text: str) -> None:
    with pytest.raises(ValueError):
        TimeFrame.parse(text)


@pytest.mark.parametrize("hour,minute", [(24, 0), (-1, 0), (0, 60), (True, 0), (1.5, 0)])
def test_time_of_day_range(hour: object, minute: object) -> None:
    with pytest.raises(ValidationError):
        TimeOfDay(hour, minute)  # type: ignore[arg-type]


def test_time_of_day_format() -> None:
    assert TimeOfDay(20, 5).format() == "20:05"
    assert TimeOfDay(20, 5).format(use_12_hour_clock=True) == "08:05pm"
    assert MIDNIGHT.format(use_12_hour_clock=True) == "12:00am"
    assert TimeOfDay(12, 0).hour_meridiem() == (12, "pm")
    assert str(TimeFrame(TimeOfDay(21, 0), TimeOfDay(7, 0))) == "21:00-07:00"
    assert MIDNIGHT.is_midnight
    assert TimeOfDay(0, 1) > MIDNIGHT


def test_filetime_epoch_offset() -> None:
    assert filetime_from_unix(0) == HECTONANOS_1601_TO_1970
    assert filetime_to_datetime(HECTONANOS_1601_TO_1970) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert filetime_from_unix(1.5) == HECTONANOS_1601_TO_1970 + 15_000_000


def test_filetime_datetime_roundtrip() -> None:
    moment = datetime(2020, 9, 25, 20, 51, 7, 891709, tzinfo=timezone.utc)
    filetime = datetime_to_filetime(moment)
    assert filetime == 132455406678917090
    assert filetime_to_datetime(filetime) == moment
    # Sub-microsecond ticks are truncated.
    assert filetime_to_datetime(filetime + 9) == moment


def test_datetime_to_filetime_needs_timezone() -> None:
    with pytest.raises(ValueError):
        datetime_to_filetime(datetime(2020, 1, 1))


def test_unix_to_datetime() -> None:
    assert unix_to_datetime(1700191264) == datetime(2023, 11, 17, 3, 21, 4, tzinfo=timezone.utc)


def test_filetime_to_datetime_stops_at_year_9999() -> None:
    latest = datetime.max.replace(tzinfo=timezone.utc)
    assert filetime_to_datetime(LATEST_DATETIME_FILETIME) == latest
    for filetime in (LATEST_DATETIME_FILETIME + 1, LATEST_FILETIME):
        with pytest.raises(ValueError, match="beyond the datetime range"):
            filetime_to_datetime(filetime)


def test_unix_to_datetime_out_of_range() -> None:
    with pytest.raises(ValueError, match="beyond the datetime range"):
        unix_to_datetime(2**64 - 1)
