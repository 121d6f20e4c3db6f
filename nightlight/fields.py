"""Tagged optional-field tables and the scanner/emitter that walks them.

A blob body is a fixed-order sequence of optional slots.  Each slot
starts with a short tag (plus, for some flags, a qualifier byte) and is
either present with its payload or missing entirely; there is no
"false"/"zero" encoding for a missing slot.

Framing slots are the bare ``00`` bytes seen between subsections.  Their
meaning is unknown, so they are tracked as presence-only slots and
re-emitted exactly where they were found.

Scanning stops at the first byte sequence that matches no tag still
expected by the table; everything from there on is the opaque tail.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Sequence, Tuple

from .clock import TimeOfDay
from .errors import MalformedField, MalformedVlq, ValidationError
from .vlq import decode_vlq, decode_zigzag_vlq, encode_vlq, encode_zigzag_vlq


HOUR_TAG = b"\x0e"
MINUTE_TAG = b"\x2e"
FRAMING_BYTE = b"\x00"


class Payload(Enum):
    NONE = "none"
    TIME_OF_DAY = "time_of_day"
    VLQ = "vlq"
    ZIGZAG_VLQ = "zigzag_vlq"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    tag: bytes
    payload: Payload = Payload.NONE
    qualifier: bytes = b""
    framing: bool = False

    @property
    def signature(self) -> bytes:
        return self.tag + self.qualifier


def framing(name: str) -> FieldSpec:
    return FieldSpec(name=name, tag=FRAMING_BYTE, framing=True)


@dataclass
class ScanResult:
    values: Dict[str, object] = field(default_factory=dict)
    raw_payloads: Dict[str, bytes] = field(default_factory=dict)
    resolved: int = 0  # index of the first table entry the scanner never reached
    tail: bytes = b""


def decode_time_of_day(data: bytes, offset: int) -> Tuple[TimeOfDay, int]:
    """Decode ``[0e <hour>] [2e <minute>]``; an omitted part is zero."""
    pos = offset
    hour = minute = 0
    if data[pos : pos + 1] == HOUR_TAG:
        hour, used = decode_vlq(data, pos + 1)
        pos += 1 + used
    if data[pos : pos + 1] == MINUTE_TAG:
        minute, used = decode_vlq(data, pos + 1)
        pos += 1 + used
    return TimeOfDay(hour, minute), pos - offset


def encode_time_of_day(value: TimeOfDay) -> bytes:
    out = bytearray()
    if value.hour:
        out += HOUR_TAG + encode_vlq(value.hour)
    if value.minute:
        out += MINUTE_TAG + encode_vlq(value.minute)
    return bytes(out)


def decode_payload(spec: FieldSpec, data: bytes, offset: int) -> Tuple[object, int]:
    if spec.payload is Payload.NONE:
        return True, 0
    if spec.payload is Payload.TIME_OF_DAY:
        return decode_time_of_day(data, offset)
    if spec.payload is Payload.VLQ:
        return decode_vlq(data, offset)
    if spec.payload is Payload.ZIGZAG_VLQ:
        return decode_zigzag_vlq(data, offset)
    raise AssertionError(f"unhandled payload kind {spec.payload}")


def encode_payload(spec: FieldSpec, value: object) -> bytes:
    """Canonical payload bytes for ``value``; raises ValidationError if unencodable."""
    if spec.payload is Payload.NONE:
        if value is not True:
            raise ValidationError(f"{spec.name} is a presence flag, got {value!r}")
        return b""
    if spec.payload is Payload.TIME_OF_DAY:
        if not isinstance(value, TimeOfDay):
            raise ValidationError(f"{spec.name} needs a TimeOfDay, got {value!r}")
        return encode_time_of_day(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{spec.name} needs an integer, got {value!r}")
    try:
        if spec.payload is Payload.VLQ:
            return encode_vlq(value)
        return encode_zigzag_vlq(value)
    except ValueError as exc:
        raise ValidationError(f"{spec.name}: {exc}") from exc


def _find_next(table: Sequence[FieldSpec], start: int, body: bytes, pos: int) -> int | None:
    for index in range(start, len(table)):
        if body.startswith(table[index].tag, pos):
            return index
    return None


def scan_fields(body: bytes, table: Sequence[FieldSpec]) -> ScanResult:
    """Split ``body`` into the slots of ``table`` plus the opaque tail.

    Slots whose tag is not found before a later slot's tag are absent; no
    bytes are skipped speculatively.  A tag that matches but is followed by
    the wrong qualifier or an undecodable payload raises MalformedField.
    """
    result = ScanResult()
    pos = 0
    index = 0

    while index < len(table) and pos < len(body):
        found = _find_next(table, index, body, pos)
        if found is None:
            break
        spec = table[found]
        pos += len(spec.tag)

        if spec.qualifier:
            if not body.startswith(spec.qualifier, pos):
                raise MalformedField(
                    f"{spec.name}: expected qualifier {spec.qualifier.hex(' ')} at 0x{pos:04X}"
                )
            pos += len(spec.qualifier)

        try:
            value, used = decode_payload(spec, body, pos)
        except MalformedVlq as exc:
            raise MalformedVlq(f"{spec.name}: {exc}") from exc
        except ValidationError as exc:
            raise MalformedField(f"{spec.name}: bad payload at 0x{pos:04X}: {exc}") from exc

        result.values[spec.name] = value
        if spec.payload is not Payload.NONE:
            result.raw_payloads[spec.name] = body[pos : pos + used]
        pos += used
        index = found + 1

    result.resolved = index if pos < len(body) else len(table)
    result.tail = body[pos:]
    return result


def emit_fields(
    table: Sequence[FieldSpec],
    values: Mapping[str, object],
    raw_payloads: Mapping[str, bytes] | None = None,
) -> bytes:
    """Emit present slots in table order; remembered payload bytes win."""
    raw_payloads = raw_payloads or {}
    out = bytearray()
    for spec in table:
        if spec.name not in values:
            continue
        out += spec.signature
        raw = raw_payloads.get(spec.name)
        out += raw if raw is not None else encode_payload(spec, values[spec.name])
    return bytes(out)
