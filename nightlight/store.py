"""Interfaces to the key-value store and the permission store.

The blobs live in the per-user registry; this package never talks to the
registry itself.  Callers pass an object satisfying :class:`BlobStore`
(and, for location checks, :class:`PermissionReader`).  In-memory
implementations are provided for tests and offline tooling.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Protocol, Tuple

from .errors import BlobNotFound, ExternalIoError


CLOUD_STORE_CURRENT = (
    r"HKEY_CURRENT_USER\SOFTWARE\Microsoft\Windows\CurrentVersion"
    r"\CloudStore\Store\DefaultAccount\Current"
)
LOCATION_CONSENT_SUBKEY = (
    r"SOFTWARE\Microsoft\Windows\CurrentVersion\CapabilityAccessManager\ConsentStore\location"
)


@dataclass(frozen=True)
class BlobLocation:
    key: str
    name: str = "Data"

    def __str__(self) -> str:
        return f"{self.key}\\{self.name}"


SETTINGS_LOCATION = BlobLocation(
    CLOUD_STORE_CURRENT
    + r"\default$windows.data.bluelightreduction.settings"
    + r"\windows.data.bluelightreduction.settings"
)
STATE_LOCATION = BlobLocation(
    CLOUD_STORE_CURRENT
    + r"\default$windows.data.bluelightreduction.bluelightreductionstate"
    + r"\windows.data.bluelightreduction.bluelightreductionstate"
)

# Machine-wide, current-user apps, current-user desktop apps.
LOCATION_CONSENT_PATHS: Tuple[str, str, str] = (
    "HKEY_LOCAL_MACHINE\\" + LOCATION_CONSENT_SUBKEY + "\\Value",
    "HKEY_CURRENT_USER\\" + LOCATION_CONSENT_SUBKEY + "\\Value",
    "HKEY_CURRENT_USER\\" + LOCATION_CONSENT_SUBKEY + "\\NonPackaged\\Value",
)


class BlobStore(Protocol):
    def read(self, key: str, name: str) -> bytes:
        """Return the stored bytes or raise BlobNotFound / ExternalIoError."""

    def write(self, key: str, name: str, data: bytes) -> None:
        """Store ``data`` or raise ExternalIoError."""


class PermissionReader(Protocol):
    def read(self, key_path: str) -> Optional[str]:
        """Return the string value at ``key_path``, or None if it does not exist."""


class MemoryBlobStore:
    """Dictionary-backed :class:`BlobStore` that records every write."""

    def __init__(self, values: Mapping[BlobLocation, bytes] | None = None) -> None:
        self._values: Dict[Tuple[str, str], bytes] = {}
        self.writes: List[Tuple[BlobLocation, bytes]] = []
        self.fail_writes = False
        for location, data in (values or {}).items():
            self.put(location, data)

    def read(self, key: str, name: str) -> bytes:
        try:
            return self._values[(key, name)]
        except KeyError:
            raise BlobNotFound(f"no value {name!r} under {key}") from None

    def write(self, key: str, name: str, data: bytes) -> None:
        if self.fail_writes:
            raise ExternalIoError(f"write to {key}\\{name} refused")
        self._values[(key, name)] = bytes(data)
        self.writes.append((BlobLocation(key, name), bytes(data)))

    def put(self, location: BlobLocation, data: bytes) -> None:
        """Seed or externally overwrite a value without recording a write."""
        self._values[(location.key, location.name)] = bytes(data)

    def get(self, location: BlobLocation) -> bytes:
        return self.read(location.key, location.name)


class MemoryPermissionReader:
    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self.values: Dict[str, str] = dict(values or {})

    def read(self, key_path: str) -> Optional[str]:
        return self.values.get(key_path)

    @classmethod
    def uniform(cls, value: str) -> "MemoryPermissionReader":
        return cls({path: value for path in LOCATION_CONSENT_PATHS})
