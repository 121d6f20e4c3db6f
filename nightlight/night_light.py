"""High-level access to both Night Light blobs.

Writing the raw blobs independently can leave Windows in states that only
a log-off repairs:

- changing schedule-related settings may make Windows rewrite the state
  blob, so changing both in one go can have one of them silently undone;
- preview mode must not be switched or held on while anything that may
  flip the active state changes;
- after log-on, changing only the color temperature has no visible effect
  until preview mode was switched on once (see :meth:`NightLight.initialize`).

:class:`NightLight` reads both blobs, remembers what it read, and on
:meth:`NightLight.write` refuses change combinations known to misbehave.
Instances expire shortly after loading to keep the read-write window small.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Tuple

from .clock import filetime_from_unix
from .errors import BlobNotFound, Expired, IrreconcilableChanges, PreviewInProgress
from .guard import WriteGuard
from .schedule import LocationSource, ScheduleType, location_services_enabled
from .settings import MAX_COLOR_TEMPERATURE, SettingsBlob
from .state import StateBlob
from .store import BlobStore


logger = logging.getLogger(__name__)

EXPIRATION_TIMEOUT = 1.0
REASONABLE_INIT_DELAY = 0.2

# Settings whose change may make Windows flip the active state.
STATE_CHANGING_SETTINGS: Tuple[str, ...] = (
    "schedule_active",
    "explicit_schedule",
    "start_time",
    "end_time",
)


class NightLight:
    def __init__(
        self,
        store: BlobStore,
        location: Optional[LocationSource] = None,
        *,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
        expiration_timeout: float = EXPIRATION_TIMEOUT,
        lenient: bool = False,
    ) -> None:
        """With ``lenient``, a missing value makes both blobs start from their ``fallback``."""
        self.settings_guard: WriteGuard[SettingsBlob] = WriteGuard(store, SettingsBlob, clock=clock)
        self.state_guard: WriteGuard[StateBlob] = WriteGuard(store, StateBlob, clock=clock)
        self.clock = clock
        self.monotonic = monotonic
        self.expiration_timeout = expiration_timeout
        self.lenient = lenient
        if location is None or isinstance(location, bool):
            self.location_enabled = location
        else:
            self.location_enabled = location_services_enabled(location)
        self.reload()

    def reload(self) -> None:
        try:
            self.settings = self.settings_guard.read()
            self.state = self.state_guard.read()
        except BlobNotFound as exc:
            if not self.lenient:
                raise
            logger.info("%s; using default settings and state", exc)
            now = self.clock()
            self.settings = SettingsBlob.fallback(now)
            self.state = StateBlob.fallback(now)
        self._loaded_settings = self.settings.copy()
        self._loaded_state = self.state.copy()
        self._loaded_at = self.monotonic()

    @property
    def active(self) -> bool:
        return self.state.currently_active

    @active.setter
    def active(self, value: bool) -> None:
        self.state.currently_active = value

    @property
    def effective_schedule_type(self) -> Optional[ScheduleType]:
        """None when the location state is unknown and the stored choice is sunset-to-sunrise."""
        if self.settings.explicit_schedule:
            return ScheduleType.EXPLICIT
        if self.location_enabled is None:
            return None
        return self.settings.effective_schedule_type(self.location_enabled)

    @property
    def expired(self) -> bool:
        return self.monotonic() - self._loaded_at > self.expiration_timeout

    def _changed(self, name: str) -> bool:
        return self.settings.get(name) != self._loaded_settings.get(name)

    def pending_changes(self) -> Tuple[bool, bool]:
        """Return ``(state_changed, settings_changed)`` after checking they can coexist."""
        state_changed = self.state.currently_active != self._loaded_state.currently_active
        settings_changed = self.settings != self._loaded_settings
        state_changing = any(self._changed(name) for name in STATE_CHANGING_SETTINGS)
        preview_changed = self._changed("preview_active")

        if state_changed and state_changing:
            raise IrreconcilableChanges("active state vs. state-changing settings")

        if (self.settings.preview_active or preview_changed) and (state_changed or state_changing):
            if not preview_changed:
                raise PreviewInProgress(
                    "preview is active; refusing to change the active state or schedule"
                )
            if state_changed:
                raise IrreconcilableChanges("active state vs. preview mode")
            raise IrreconcilableChanges("state-changing settings vs. preview mode")

        return state_changed, settings_changed

    def write(self) -> Tuple[bool, bool]:
        """Write whichever blobs changed: settings first, then state.

        Returns ``(state_written, settings_written)``.
        """
        if self.expired:
            raise Expired(
                f"more than {self.expiration_timeout}s passed between reading and writing"
            )
        state_changed, settings_changed = self.pending_changes()

        if settings_changed:
            self.settings_guard.stamp(self.settings)
            self.settings_guard.write(self.settings, expected=self._loaded_settings)
            self._loaded_settings = self.settings.copy()

        if state_changed:
            # A schedule-driven transition is only ever written by Windows itself.
            self.state.manually_transitioned = True
            self.state.change_filetime = filetime_from_unix(self.clock())
            self.state_guard.stamp(self.state)
            self.state_guard.write(self.state, expected=self._loaded_state)
            self._loaded_state = self.state.copy()

        if not (state_changed or settings_changed):
            logger.debug("nothing changed; no write issued")
        return state_changed, settings_changed

    @classmethod
    def initialize(
        cls,
        store: BlobStore,
        delay: float = REASONABLE_INIT_DELAY,
        *,
        also_wait_after: bool = False,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> bool:
        """Briefly switch preview mode on so later color changes take effect.

        Needed once per log-on session before changing only the color
        temperature; also restores the temperature after the screen comes
        back on.  While Night Light is inactive the temperature is set to
        the coldest value during the preview to keep it invisible.  Returns
        False without writing if preview mode was already active.
        """
        settings_guard = WriteGuard(store, SettingsBlob, clock=clock)
        if settings_guard.read().preview_active:
            return False

        invisible = not WriteGuard(store, StateBlob, clock=clock).read().currently_active
        previous: List[Optional[int]] = []

        def on_enter(settings: SettingsBlob) -> None:
            if invisible:
                previous.append(settings.color_temperature)
                settings.color_temperature = MAX_COLOR_TEMPERATURE

        def on_exit(settings: SettingsBlob) -> None:
            if invisible:
                settings.set("color_temperature", previous[0])

        with settings_guard.preview(on_enter, on_exit):
            sleep(delay)
        if also_wait_after:
            sleep(delay)
        return True
