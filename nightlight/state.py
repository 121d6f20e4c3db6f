"""The Night Light state blob.

Body layout after the prologue::

    00 [10 00] [d0 0a 02] c6 14 <vlq FILETIME> 00 00 00 00

``10 00`` marks the night color temperature as currently in effect and
``d0 0a 02`` that the last transition was manual rather than scheduled.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar, Tuple

from .blob import Blob
from .clock import LATEST_FILETIME, datetime_to_filetime, filetime_from_unix, filetime_to_datetime
from .errors import MalformedField, ValidationError
from .fields import FieldSpec, Payload, framing
from .store import STATE_LOCATION, BlobLocation


STATE_FIELDS: Tuple[FieldSpec, ...] = (
    framing("zero_lead"),
    FieldSpec("currently_active", b"\x10", qualifier=b"\x00"),
    FieldSpec("manually_transitioned", b"\xd0\x0a", qualifier=b"\x02"),
    FieldSpec("change_filetime", b"\xc6\x14", Payload.VLQ),
)


class TransitionCause(Enum):
    MANUAL = "manual"
    SCHEDULE = "schedule"


class StateBlob(Blob):
    FIELDS = STATE_FIELDS
    LOCATION: ClassVar[BlobLocation] = STATE_LOCATION

    @classmethod
    def from_bytes(cls, data: bytes) -> "StateBlob":
        state = super().from_bytes(data)
        filetime = state.change_filetime
        if filetime is not None and filetime > LATEST_FILETIME:
            raise MalformedField(f"change_filetime {filetime} is past the latest FILETIME")
        return state

    @classmethod
    def fallback(cls, now: float) -> "StateBlob":
        """Stand-in for a missing value: inactive, manually switched off at ``now``."""
        state = cls(int(now))
        state.manually_transitioned = True
        state.change_filetime = filetime_from_unix(now)
        return state

    @property
    def currently_active(self) -> bool:
        """Whether the night color temperature is in effect, manually or by schedule."""
        return self.is_set("currently_active")

    @currently_active.setter
    def currently_active(self, value: bool) -> None:
        if not isinstance(value, bool):
            raise ValidationError(f"currently_active must be a bool, got {value!r}")
        self.set("currently_active", True if value else None)

    @property
    def manually_transitioned(self) -> bool:
        return self.is_set("manually_transitioned")

    @manually_transitioned.setter
    def manually_transitioned(self, value: bool) -> None:
        if not isinstance(value, bool):
            raise ValidationError(f"manually_transitioned must be a bool, got {value!r}")
        self.set("manually_transitioned", True if value else None)

    @property
    def transition_cause(self) -> TransitionCause:
        return TransitionCause.MANUAL if self.manually_transitioned else TransitionCause.SCHEDULE

    @property
    def change_filetime(self) -> int | None:
        """When the state last changed, as a Windows FILETIME (100 ns since 1601)."""
        return self.get("change_filetime")  # type: ignore[return-value]

    @change_filetime.setter
    def change_filetime(self, value: int | None) -> None:
        if value is not None:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"change_filetime must be an int, got {value!r}")
            if not 0 <= value <= LATEST_FILETIME:
                raise ValidationError(f"change_filetime out of FILETIME range: {value}")
        self.set("change_filetime", value)

    @property
    def changed_at(self) -> datetime | None:
        """``change_filetime`` as a datetime; ValidationError past year 9999."""
        filetime = self.change_filetime
        if filetime is None:
            return None
        try:
            return filetime_to_datetime(filetime)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    @changed_at.setter
    def changed_at(self, value: datetime | None) -> None:
        if value is None:
            self.change_filetime = None
            return
        try:
            filetime = datetime_to_filetime(value)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        self.change_filetime = filetime
