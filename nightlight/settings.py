"""The Night Light settings blob.

Body layout after the prologue (bracketed parts are optional)::

    00 [02 01] [c2 0a 00] [ca 14 <time>] 00 [ca 1e <time>] 00
    [cf 28 <zigzag kelvin>] [ca 32 <time>] 00 [ca 3c <time>] 00
    [c2 46 01] 00 00 00 00

``<time>`` is ``[0e <hour>] [2e <minute>]``.  Only the flag bytes and
payloads carry known meaning; the bare ``00`` bytes are kept as framing.
"""

from __future__ import annotations

import math
from typing import ClassVar, Tuple

from .blob import Blob
from .clock import MIDNIGHT, TimeFrame, TimeOfDay
from .errors import ValidationError
from .fields import FieldSpec, Payload, framing
from .schedule import LocationSource, ScheduleType, effective_schedule_type
from .store import SETTINGS_LOCATION, BlobLocation


# Lowest and highest Kelvin values the settings app accepts (as of Oct. 2023).
MIN_COLOR_TEMPERATURE = 1200
MAX_COLOR_TEMPERATURE = 6500
# What Windows applies while the color temperature slot is absent.
DEFAULT_COLOR_TEMPERATURE = 4000
# Explicit schedule offered before the user picks one.
FALLBACK_SCHEDULED_NIGHT = TimeFrame(TimeOfDay(21, 0), TimeOfDay(7, 0))

SETTINGS_FIELDS: Tuple[FieldSpec, ...] = (
    framing("zero_lead"),
    FieldSpec("schedule_active", b"\x02\x01"),
    FieldSpec("explicit_schedule", b"\xc2\x0a", qualifier=b"\x00"),
    FieldSpec("start_time", b"\xca\x14", Payload.TIME_OF_DAY),
    framing("zero_after_start"),
    FieldSpec("end_time", b"\xca\x1e", Payload.TIME_OF_DAY),
    framing("zero_after_end"),
    FieldSpec("color_temperature", b"\xcf\x28", Payload.ZIGZAG_VLQ),
    FieldSpec("sunset_time", b"\xca\x32", Payload.TIME_OF_DAY),
    framing("zero_after_sunset"),
    FieldSpec("sunrise_time", b"\xca\x3c", Payload.TIME_OF_DAY),
    framing("zero_after_sunrise"),
    FieldSpec("preview_active", b"\xc2\x46", qualifier=b"\x01"),
)


def _warmth_for(kelvin: int) -> float:
    span = MAX_COLOR_TEMPERATURE - MIN_COLOR_TEMPERATURE
    return 1.0 - (kelvin - MIN_COLOR_TEMPERATURE) / span


DEFAULT_WARMTH = _warmth_for(DEFAULT_COLOR_TEMPERATURE)


class SettingsBlob(Blob):
    FIELDS = SETTINGS_FIELDS
    LOCATION: ClassVar[BlobLocation] = SETTINGS_LOCATION

    @classmethod
    def fallback(cls, now: float) -> "SettingsBlob":
        """Stand-in for a missing value, with the defaults the settings app shows."""
        settings = cls(int(now))
        settings.scheduled_night = FALLBACK_SCHEDULED_NIGHT
        settings.color_temperature = DEFAULT_COLOR_TEMPERATURE
        return settings

    def _set_flag(self, name: str, value: bool) -> None:
        if not isinstance(value, bool):
            raise ValidationError(f"{name} must be a bool, got {value!r}")
        self.set(name, True if value else None)

    # -- flags -------------------------------------------------------------

    @property
    def schedule_active(self) -> bool:
        return self.is_set("schedule_active")

    @schedule_active.setter
    def schedule_active(self, value: bool) -> None:
        self._set_flag("schedule_active", value)

    @property
    def explicit_schedule(self) -> bool:
        """Whether the user picked explicit clock times over sunset-to-sunrise."""
        return self.is_set("explicit_schedule")

    @explicit_schedule.setter
    def explicit_schedule(self, value: bool) -> None:
        self._set_flag("explicit_schedule", value)

    @property
    def schedule_type(self) -> ScheduleType:
        """The stored choice; see :meth:`effective_schedule_type` for what applies."""
        return ScheduleType.EXPLICIT if self.explicit_schedule else ScheduleType.SUNSET_TO_SUNRISE

    @schedule_type.setter
    def schedule_type(self, value: ScheduleType) -> None:
        if not isinstance(value, ScheduleType):
            raise ValidationError(f"schedule_type must be a ScheduleType, got {value!r}")
        self.explicit_schedule = value is ScheduleType.EXPLICIT

    def effective_schedule_type(self, location: LocationSource) -> ScheduleType:
        return effective_schedule_type(self, location)

    @property
    def preview_active(self) -> bool:
        """Hard switch to the night color temperature, as while dragging the slider."""
        return self.is_set("preview_active")

    @preview_active.setter
    def preview_active(self, value: bool) -> None:
        self._set_flag("preview_active", value)

    # -- clock times -------------------------------------------------------

    @property
    def start_time(self) -> TimeOfDay | None:
        return self.get("start_time")  # type: ignore[return-value]

    @start_time.setter
    def start_time(self, value: TimeOfDay | None) -> None:
        self.set("start_time", value)

    @property
    def end_time(self) -> TimeOfDay | None:
        return self.get("end_time")  # type: ignore[return-value]

    @end_time.setter
    def end_time(self, value: TimeOfDay | None) -> None:
        self.set("end_time", value)

    @property
    def sunset_time(self) -> TimeOfDay | None:
        return self.get("sunset_time")  # type: ignore[return-value]

    @sunset_time.setter
    def sunset_time(self, value: TimeOfDay | None) -> None:
        self.set("sunset_time", value)

    @property
    def sunrise_time(self) -> TimeOfDay | None:
        return self.get("sunrise_time")  # type: ignore[return-value]

    @sunrise_time.setter
    def sunrise_time(self, value: TimeOfDay | None) -> None:
        self.set("sunrise_time", value)

    @property
    def scheduled_night(self) -> TimeFrame:
        """Explicit schedule; an unset time reads as midnight, as Windows reads it."""
        return TimeFrame(self.start_time or MIDNIGHT, self.end_time or MIDNIGHT)

    @scheduled_night.setter
    def scheduled_night(self, frame: TimeFrame) -> None:
        if not isinstance(frame, TimeFrame):
            raise ValidationError(f"scheduled_night must be a TimeFrame, got {frame!r}")
        self.check("start_time", frame.start)
        self.check("end_time", frame.end)
        self.start_time = frame.start
        self.end_time = frame.end

    @property
    def sunset_to_sunrise(self) -> TimeFrame | None:
        """Location-derived night, or None while both times are midnight/unset.

        Windows maintains these itself; they are exposed read-only.
        """
        frame = TimeFrame(self.sunset_time or MIDNIGHT, self.sunrise_time or MIDNIGHT)
        if frame.start.is_midnight and frame.end.is_midnight:
            return None
        return frame

    # -- color temperature -------------------------------------------------

    @property
    def color_temperature(self) -> int | None:
        """Night color temperature in Kelvin; None means the platform default.

        A decoded value may lie outside the accepted range if Windows changed
        its limits.
        """
        return self.get("color_temperature")  # type: ignore[return-value]

    @color_temperature.setter
    def color_temperature(self, kelvin: int | None) -> None:
        if kelvin is not None:
            if isinstance(kelvin, bool) or not isinstance(kelvin, int):
                raise ValidationError(f"color temperature must be an int, got {kelvin!r}")
            if not MIN_COLOR_TEMPERATURE <= kelvin <= MAX_COLOR_TEMPERATURE:
                raise ValidationError(
                    f"color temperature must be {MIN_COLOR_TEMPERATURE}-"
                    f"{MAX_COLOR_TEMPERATURE} K, got {kelvin}"
                )
        self.set("color_temperature", kelvin)

    @property
    def color_temperature_in_range(self) -> int | None:
        kelvin = self.color_temperature
        if kelvin is None:
            return None
        return min(max(kelvin, MIN_COLOR_TEMPERATURE), MAX_COLOR_TEMPERATURE)

    @property
    def warmth(self) -> float | None:
        """The "Strength" slider: 0.0 at the coldest, 1.0 at the warmest Kelvin value."""
        kelvin = self.color_temperature_in_range
        return None if kelvin is None else _warmth_for(kelvin)

    @warmth.setter
    def warmth(self, value: float | None) -> None:
        if value is None:
            self.color_temperature = None
            return
        if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
            raise ValidationError(f"warmth must be a number, got {value!r}")
        if not 0.0 <= value <= 1.0:
            raise ValidationError(f"warmth must be 0.0-1.0, got {value}")
        span = MAX_COLOR_TEMPERATURE - MIN_COLOR_TEMPERATURE
        self.color_temperature = int(round(span * (1.0 - value) + MIN_COLOR_TEMPERATURE))
