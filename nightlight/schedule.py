"""Schedule modes and the location-permission rule that overrides them."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Union

from .store import LOCATION_CONSENT_PATHS, PermissionReader

if TYPE_CHECKING:
    from .settings import SettingsBlob


ALLOW = "Allow"


class ScheduleType(Enum):
    SUNSET_TO_SUNRISE = "sunset_to_sunrise"  # Based on the user's location.
    EXPLICIT = "explicit"


LocationSource = Union[bool, PermissionReader]


def location_services_enabled(permissions: PermissionReader) -> bool:
    """True only if every consent value reads exactly ``"Allow"``."""
    return all(permissions.read(path) == ALLOW for path in LOCATION_CONSENT_PATHS)


def effective_schedule_type(settings: "SettingsBlob", location: LocationSource) -> ScheduleType:
    """The schedule Windows actually follows.

    An explicit schedule is the silent fallback whenever location services
    are unavailable, whatever the stored choice says.
    """
    if settings.explicit_schedule:
        return ScheduleType.EXPLICIT
    enabled = location if isinstance(location, bool) else location_services_enabled(location)
    return ScheduleType.SUNSET_TO_SUNRISE if enabled else ScheduleType.EXPLICIT
