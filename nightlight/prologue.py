"""The prologue shared by the CloudStore values Night Light uses.

Layout (both blobs)::

    43 42 01 00 0a 02 01 00 2a 06 <vlq epoch secs> 2a 2b 0e <vlq body len> 43 42 01
    \\___________ head __________/                  \\_____/                 \\_____/
                                                 length marker          body marker

The body length counts every byte after the body marker.  The epoch
seconds record the last change; Windows discards a write whose value is
not newer than what it last stored (see :mod:`nightlight.guard`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .errors import MalformedPrologue, MalformedVlq
from .vlq import decode_vlq, encode_vlq


PROLOGUE_HEAD = bytes([0x43, 0x42, 0x01, 0x00, 0x0A, 0x02, 0x01, 0x00, 0x2A, 0x06])
LENGTH_MARKER = bytes([0x2A, 0x2B, 0x0E])
BODY_MARKER = bytes([0x43, 0x42, 0x01])


@dataclass(frozen=True)
class Prologue:
    timestamp: int
    body_length: int
    body_offset: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "Prologue":
        if data[: len(PROLOGUE_HEAD)] != PROLOGUE_HEAD:
            raise MalformedPrologue(f"bad prologue head: {data[:len(PROLOGUE_HEAD)].hex(' ')}")
        pos = len(PROLOGUE_HEAD)

        try:
            timestamp, used = decode_vlq(data, pos)
        except MalformedVlq as exc:
            raise MalformedPrologue(f"bad prologue timestamp: {exc}") from exc
        pos += used

        if data[pos : pos + len(LENGTH_MARKER)] != LENGTH_MARKER:
            raise MalformedPrologue(f"expected length marker at 0x{pos:04X}")
        pos += len(LENGTH_MARKER)

        try:
            body_length, used = decode_vlq(data, pos)
        except MalformedVlq as exc:
            raise MalformedPrologue(f"bad prologue body length: {exc}") from exc
        pos += used

        if data[pos : pos + len(BODY_MARKER)] != BODY_MARKER:
            raise MalformedPrologue(f"expected body marker at 0x{pos:04X}")
        pos += len(BODY_MARKER)

        remaining = len(data) - pos
        if remaining != body_length:
            raise MalformedPrologue(
                f"body length prefix says {body_length} bytes, {remaining} follow"
            )
        return cls(timestamp=timestamp, body_length=body_length, body_offset=pos)


def build_prologue(timestamp: int, body_length: int) -> bytes:
    return b"".join(
        (
            PROLOGUE_HEAD,
            encode_vlq(timestamp),
            LENGTH_MARKER,
            encode_vlq(body_length),
            BODY_MARKER,
        )
    )


def split_prologue(data: bytes) -> Tuple[Prologue, bytes]:
    prologue = Prologue.from_bytes(data)
    return prologue, data[prologue.body_offset :]


def read_timestamp(data: bytes) -> int:
    """Decode only the prologue and return its change timestamp."""
    return Prologue.from_bytes(data).timestamp
