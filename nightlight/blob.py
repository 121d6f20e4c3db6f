"""In-memory model shared by the settings and state blobs.

A :class:`Blob` holds the prologue timestamp, one slot per table entry
(present with a value, or absent) and the opaque tail.  Decoding then
encoding an unmodified blob reproduces the input byte for byte:

    ``SettingsBlob.from_bytes(data).to_bytes() == data``
"""

from __future__ import annotations

import copy
from typing import ClassVar, Dict, Iterator, Tuple, TypeVar

from .errors import ValidationError
from .fields import FieldSpec, emit_fields, encode_payload, scan_fields
from .prologue import build_prologue, split_prologue
from .vlq import U64_MAX


DEFAULT_TAIL = b"\x00\x00\x00\x00"  # Observed after every captured body; meaning unknown.

B = TypeVar("B", bound="Blob")


class Blob:
    FIELDS: ClassVar[Tuple[FieldSpec, ...]] = ()
    _BY_NAME: ClassVar[Dict[str, Tuple[int, FieldSpec]]] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        cls._BY_NAME = {spec.name: (idx, spec) for idx, spec in enumerate(cls.FIELDS)}

    def __init__(self, timestamp: int = 0, *, tail: bytes = DEFAULT_TAIL) -> None:
        self.timestamp = timestamp
        self.tail = bytes(tail)
        self._values: Dict[str, object] = {
            spec.name: True for spec in self.FIELDS if spec.framing
        }
        self._raw: Dict[str, bytes] = {}
        self._resolved = len(self.FIELDS)

    # -- codec -------------------------------------------------------------

    @classmethod
    def from_bytes(cls: type[B], data: bytes) -> B:
        prologue, body = split_prologue(bytes(data))
        scan = scan_fields(body, cls.FIELDS)
        blob = cls(prologue.timestamp, tail=scan.tail)
        blob._values = dict(scan.values)
        blob._raw = dict(scan.raw_payloads)
        blob._resolved = scan.resolved
        return blob

    def to_bytes(self) -> bytes:
        body = emit_fields(self.FIELDS, self._values, self._raw) + self.tail
        return build_prologue(self.timestamp, len(body)) + body

    # -- slots -------------------------------------------------------------

    @property
    def timestamp(self) -> int:
        """Unix seconds of the last change, as recorded in the prologue."""
        return self._timestamp

    @timestamp.setter
    def timestamp(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= U64_MAX:
            raise ValidationError(f"timestamp must be an unsigned 64-bit integer, got {value!r}")
        self._timestamp = value

    @property
    def has_opaque_data(self) -> bool:
        """True when the tail holds more than zero padding."""
        return any(self.tail)

    def _spec(self, name: str) -> Tuple[int, FieldSpec]:
        try:
            return self._BY_NAME[name]
        except KeyError:
            raise KeyError(f"{type(self).__name__} has no field {name!r}") from None

    def is_set(self, name: str) -> bool:
        self._spec(name)
        return name in self._values

    def get(self, name: str) -> object | None:
        self._spec(name)
        return self._values.get(name)

    def check(self, name: str, value: object) -> None:
        """Raise ValidationError if ``value`` cannot be stored in slot ``name``."""
        index, spec = self._spec(name)
        if spec.framing:
            raise ValidationError(f"{name} is a framing byte and cannot be set")
        if index >= self._resolved and self.has_opaque_data:
            raise ValidationError(
                f"{name} lies beyond unrecognized data and cannot be set without reordering it"
            )
        encode_payload(spec, value)

    def set(self, name: str, value: object) -> None:
        """Store ``value`` in slot ``name``; ``None`` removes the slot."""
        if value is None:
            self.unset(name)
            return
        self.check(name, value)
        self._values[name] = value
        self._raw.pop(name, None)

    def unset(self, name: str) -> None:
        _, spec = self._spec(name)
        if spec.framing:
            raise ValidationError(f"{name} is a framing byte and cannot be removed")
        self._values.pop(name, None)
        self._raw.pop(name, None)

    def present_fields(self) -> Iterator[Tuple[str, object]]:
        """Yield ``(name, value)`` for every present non-framing slot in table order."""
        for spec in self.FIELDS:
            if not spec.framing and spec.name in self._values:
                yield spec.name, self._values[spec.name]

    def copy(self: B) -> B:
        clone = copy.copy(self)
        clone._values = dict(self._values)
        clone._raw = dict(self._raw)
        return clone

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return (
            self.timestamp == other.timestamp
            and self._values == other._values
            and self.tail == other.tail
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={value!r}" for name, value in self.present_fields())
        tail = f", tail={self.tail.hex(' ')}" if self.tail != DEFAULT_TAIL else ""
        return f"{type(self).__name__}(timestamp={self.timestamp}, {fields}{tail})"
