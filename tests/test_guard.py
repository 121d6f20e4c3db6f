"""Read-compare-write protection and preview bracketing."""

import logging
from pathlib import Path
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from nightlight.errors import (  # noqa: E402
    ExternalIoError,
    MalformedPrologue,
    PreviewInProgress,
    StaleWrite,
)
from nightlight.guard import TIMESTAMP_STEP, WriteGuard  # noqa: E402
from nightlight.settings import SettingsBlob  # noqa: E402
from nightlight.state import StateBlob  # noqa: E402
from nightlight.store import SETTINGS_LOCATION, STATE_LOCATION, MemoryBlobStore  # noqa: E402


STORED_TS = 1698408446


def _seed(**values: object) -> MemoryBlobStore:
    settings = SettingsBlob(timestamp=STORED_TS)
    for name, value in values.items():
        setattr(settings, name, value)
    return MemoryBlobStore({SETTINGS_LOCATION: settings.to_bytes()})


def _stored(store: MemoryBlobStore) -> SettingsBlob:
    return SettingsBlob.from_bytes(store.get(SETTINGS_LOCATION))


@pytest.fixture
def store() -> MemoryBlobStore:
    return _seed(color_temperature=3000)


@pytest.fixture
def guard(store: MemoryBlobStore) -> WriteGuard:
    return WriteGuard(store, SettingsBlob, clock=lambda: 0.0)


def test_older_timestamp_is_rejected(store: MemoryBlobStore, guard: WriteGuard, caplog) -> None:
    candidate = guard.read()
    candidate.color_temperature = 2000
    candidate.timestamp = STORED_TS - 1

    with caplog.at_level(logging.WARNING, logger="nightlight.guard"):
        with pytest.raises(StaleWrite) as excinfo:
            guard.write(candidate)
    assert excinfo.value.candidate == STORED_TS - 1
    assert excinfo.value.stored == STORED_TS
    assert store.writes == []
    assert "stale" in caplog.text


@pytest.mark.parametrize("offset", [0, 1])
def test_same_or_newer_timestamp_is_accepted(store: MemoryBlobStore, guard: WriteGuard, offset: int) -> None:
    candidate = guard.read()
    candidate.color_temperature = 2000
    candidate.timestamp = STORED_TS + offset

    data = guard.write(candidate)
    assert store.writes == [(SETTINGS_LOCATION, data)]
    assert _stored(store) == candidate


def test_stamp_moves_past_read_timestamp(store: MemoryBlobStore) -> None:
    candidate = WriteGuard(store, SettingsBlob, clock=lambda: 0.0).read()
    WriteGuard(store, SettingsBlob, clock=lambda: 0.0).stamp(candidate)
    assert candidate.timestamp == STORED_TS + TIMESTAMP_STEP

    later = WriteGuard(store, SettingsBlob, clock=lambda: STORED_TS + 100.7)
    assert later.stamp(later.read()).timestamp == STORED_TS + 100


def test_update_writes_one_stamped_blob(store: MemoryBlobStore, guard: WriteGuard) -> None:
    def warmer(settings: SettingsBlob) -> None:
        settings.color_temperature = 2500

    written = guard.update(warmer)
    assert written.timestamp == STORED_TS + TIMESTAMP_STEP
    assert len(store.writes) == 1
    assert _stored(store).color_temperature == 2500


def test_update_without_change_skips_write(store: MemoryBlobStore, guard: WriteGuard) -> None:
    def same(settings: SettingsBlob) -> None:
        settings.color_temperature = 3000

    guard.update(same)
    assert store.writes == []


def test_expected_value_detects_external_change(store: MemoryBlobStore, guard: WriteGuard) -> None:
    original = guard.read()

    # Someone else changes the value without advancing its timestamp.
    external = original.copy()
    external.schedule_active = True
    store.put(SETTINGS_LOCATION, external.to_bytes())

    candidate = original.copy()
    candidate.color_temperature = 2000
    guard.stamp(candidate)
    with pytest.raises(StaleWrite):
        guard.write(candidate, expected=original)
    assert store.writes == []


def test_write_without_stored_value() -> None:
    store = MemoryBlobStore()
    guard = WriteGuard(store, SettingsBlob)
    assert guard.stored_timestamp() is None

    guard.write(SettingsBlob(timestamp=5))
    assert guard.stored_timestamp() == 5


def test_write_checks_blob_type(store: MemoryBlobStore, guard: WriteGuard) -> None:
    with pytest.raises(TypeError):
        guard.write(StateBlob(timestamp=STORED_TS))  # type: ignore[arg-type]


def test_store_errors_propagate(store: MemoryBlobStore, guard: WriteGuard) -> None:
    store.fail_writes = True
    candidate = guard.read()
    candidate.timestamp += 1
    with pytest.raises(ExternalIoError):
        guard.write(candidate)


def test_malformed_stored_value_blocks_write(store: MemoryBlobStore, guard: WriteGuard) -> None:
    store.put(SETTINGS_LOCATION, b"\x00\x01\x02")
    with pytest.raises(MalformedPrologue):
        guard.write(SettingsBlob(timestamp=STORED_TS + 10))
    assert store.writes == []


def test_guard_uses_blob_location() -> None:
    store = MemoryBlobStore()
    assert WriteGuard(store, StateBlob).location == STATE_LOCATION
    assert WriteGuard(store, SettingsBlob).location == SETTINGS_LOCATION


# -- preview -------------------------------------------------------------------


def test_preview_sets_and_clears_flag(store: MemoryBlobStore, guard: WriteGuard) -> None:
    with guard.preview():
        assert guard.in_preview
        assert _stored(store).preview_active is True
    assert not guard.in_preview
    assert _stored(store).preview_active is False

    timestamps = [SettingsBlob.from_bytes(data).timestamp for _, data in store.writes]
    assert timestamps == [STORED_TS + 2, STORED_TS + 4]


def test_preview_is_cleared_when_body_raises(store: MemoryBlobStore, guard: WriteGuard) -> None:
    with pytest.raises(RuntimeError):
        with guard.preview():
            raise RuntimeError("interrupted")
    assert not guard.in_preview
    assert _stored(store).preview_active is False
    assert len(store.writes) == 2


def test_preview_refuses_nesting(store: MemoryBlobStore, guard: WriteGuard) -> None:
    with guard.preview():
        with pytest.raises(PreviewInProgress):
            with guard.preview():
                pass
        with pytest.raises(PreviewInProgress):
            guard.clear_preview()
    assert _stored(store).preview_active is False


def test_preview_refuses_stored_preview() -> None:
    store = _seed(preview_active=True)
    guard = WriteGuard(store, SettingsBlob)
    with pytest.raises(PreviewInProgress):
        with guard.preview():
            pass
    assert store.writes == []


def test_preview_hooks_share_the_flag_writes(store: MemoryBlobStore, guard: WriteGuard) -> None:
    def cold(settings: SettingsBlob) -> None:
        settings.color_temperature = 6500

    def restore(settings: SettingsBlob) -> None:
        settings.color_temperature = 3000

    with guard.preview(cold, restore):
        pass

    entered, left = (SettingsBlob.from_bytes(data) for _, data in store.writes)
    assert (entered.preview_active, entered.color_temperature) == (True, 6500)
    assert (left.preview_active, left.color_temperature) == (False, 3000)


def test_run_in_preview(store: MemoryBlobStore, guard: WriteGuard) -> None:
    def warmer(settings: SettingsBlob) -> None:
        settings.color_temperature = 1900

    result = guard.run_in_preview(warmer)
    assert result.preview_active is True
    assert result.color_temperature == 1900
    assert len(store.writes) == 3
    assert _stored(store).preview_active is False
    assert _stored(store).color_temperature == 1900


def test_clear_preview_recovers_leftover_flag() -> None:
    store = _seed(preview_active=True, color_temperature=3000)
    cleared = WriteGuard(store, SettingsBlob).clear_preview()
    assert cleared.preview_active is False
    assert _stored(store).preview_active is False
    assert _stored(store).color_temperature == 3000


def test_preview_needs_settings_guard() -> None:
    guard = WriteGuard(MemoryBlobStore(), StateBlob)
    with pytest.raises(TypeError):
        with guard.preview():
            pass
