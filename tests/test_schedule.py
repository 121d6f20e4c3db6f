from itertools import product
from pathlib import Path
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from nightlight.errors import BlobNotFound, ExternalIoError  # noqa: E402
from nightlight.schedule import (  # noqa: E402
    ScheduleType,
    effective_schedule_type,
    location_services_enabled,
)
from nightlight.settings import SettingsBlob  # noqa: E402
from nightlight.store import (  # noqa: E402
    LOCATION_CONSENT_PATHS,
    SETTINGS_LOCATION,
    MemoryBlobStore,
    MemoryPermissionReader,
)


def _settings(explicit: bool) -> SettingsBlob:
    settings = SettingsBlob()
    settings.explicit_schedule = explicit
    return settings


@pytest.mark.parametrize("explicit,grants", list(product([False, True], product([True, False], repeat=3))))
def test_effective_schedule_type_truth_table(explicit: bool, grants: tuple) -> None:
    # Every consent value is either "Allow" or "Deny".
    reader = MemoryPermissionReader(
        {path: "Allow" if granted else "Deny" for path, granted in zip(LOCATION_CONSENT_PATHS, grants)}
    )
    expected = (
        ScheduleType.EXPLICIT if explicit or not all(grants) else ScheduleType.SUNSET_TO_SUNRISE
    )
    assert effective_schedule_type(_settings(explicit), reader) is expected
    assert _settings(explicit).effective_schedule_type(reader) is expected


@pytest.mark.parametrize("value", ["allow", "Allow ", "", "Deny"])
def test_consent_comparison_is_exact(value: str) -> None:
    assert not location_services_enabled(MemoryPermissionReader.uniform(value))


def test_missing_consent_value_counts_as_disabled() -> None:
    reader = MemoryPermissionReader.uniform("Allow")
    del reader.values[LOCATION_CONSENT_PATHS[2]]
    assert not location_services_enabled(reader)
    assert effective_schedule_type(_settings(False), reader) is ScheduleType.EXPLICIT


def test_boolean_location_source() -> None:
    assert effective_schedule_type(_settings(False), True) is ScheduleType.SUNSET_TO_SUNRISE
    assert effective_schedule_type(_settings(False), False) is ScheduleType.EXPLICIT
    assert effective_schedule_type(_settings(True), True) is ScheduleType.EXPLICIT


def test_memory_store_reports_missing_value() -> None:
    store = MemoryBlobStore()
    with pytest.raises(BlobNotFound):
        store.get(SETTINGS_LOCATION)
    assert issubclass(BlobNotFound, OSError)


def test_memory_store_records_writes() -> None:
    store = MemoryBlobStore({SETTINGS_LOCATION: b"seed"})
    assert store.get(SETTINGS_LOCATION) == b"seed"
    assert store.writes == []

    store.write(SETTINGS_LOCATION.key, SETTINGS_LOCATION.name, b"new")
    assert store.writes == [(SETTINGS_LOCATION, b"new")]

    store.fail_writes = True
    with pytest.raises(ExternalIoError):
        store.write(SETTINGS_LOCATION.key, SETTINGS_LOCATION.name, b"again")
    assert store.get(SETTINGS_LOCATION) == b"new"
