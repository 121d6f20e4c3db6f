"""Variable-length quantity (VLQ) and zigzag integer helpers.

VLQs store 7 data bits per byte, least-significant group first.  A set
high bit means another group follows; the first byte with the high bit
clear ends the number.  Over-long encodings (e.g. ``80 00`` for zero) are
accepted when decoding; encoding always emits the shortest form.
"""

from __future__ import annotations

from typing import Tuple

from .errors import MalformedVlq


VLQ_BITS = 64
U64_MAX = (1 << VLQ_BITS) - 1
I64_MIN = -(1 << (VLQ_BITS - 1))
I64_MAX = (1 << (VLQ_BITS - 1)) - 1

CONTINUATION_BIT = 0x80
DATA_MASK = 0x7F


def encode_vlq(value: int) -> bytes:
    if value < 0 or value > U64_MAX:
        raise ValueError(f"VLQ value out of unsigned 64-bit range: {value}")

    out = bytearray()
    while True:
        byte = value & DATA_MASK
        value >>= 7
        if value:
            out.append(byte | CONTINUATION_BIT)
        else:
            out.append(byte)
            return bytes(out)


def decode_vlq(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode one VLQ at ``offset``.

    Returns ``(value, consumed)``.  Raises :class:`MalformedVlq` when the
    data ends before a terminating byte, or when a group would place set
    bits at or beyond bit 64.
    """
    value = 0
    shift = 0
    pos = offset
    while True:
        if pos >= len(data):
            raise MalformedVlq(f"truncated VLQ starting at 0x{offset:04X}")
        byte = data[pos]
        pos += 1

        if shift == 63 and byte & 0xFE:
            # The tenth byte may only carry bit 63 and must end the number.
            raise MalformedVlq(f"VLQ starting at 0x{offset:04X} overflows 64 bits")
        value |= (byte & DATA_MASK) << shift
        shift += 7

        if not byte & CONTINUATION_BIT:
            return value, pos - offset


def zigzag_encode(value: int) -> int:
    if value < I64_MIN or value > I64_MAX:
        raise ValueError(f"zigzag value out of signed 64-bit range: {value}")
    if value >= 0:
        return value << 1
    return (-value << 1) - 1


def zigzag_decode(encoded: int) -> int:
    if encoded & 1:
        return -((encoded + 1) >> 1)
    return encoded >> 1


def encode_zigzag_vlq(value: int) -> bytes:
    return encode_vlq(zigzag_encode(value))


def decode_zigzag_vlq(data: bytes, offset: int = 0) -> Tuple[int, int]:
    raw, consumed = decode_vlq(data, offset)
    return zigzag_decode(raw), consumed
