"""
Variable-length integer codec used by every trace record.

Unsigned values are written little-endian in groups of seven bits, with the
high bit of each byte set when more bytes follow. Signed deltas go through a
zigzag mapping first so that small negative values stay short.
"""

from __future__ import annotations

from typing import Tuple

from ..exceptions import TraceDecodeError, TruncatedRecordError

UINT32_MAX = (1 << 32) - 1
UINT64_MAX = (1 << 64) - 1
INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

# zigzag(INT64_MIN) needs 65 bits, which still fits in ten groups of seven.
MAX_VARINT_BYTES = 10


def _encode(value: int) -> bytes:
    out = bytearray()
    while value >= 0x80:
        out.append(0x80 | (value & 0x7F))
        value >>= 7
    out.append(value)
    return bytes(out)


def encode_uvarint32(value: int) -> bytes:
    if not 0 <= value <= UINT32_MAX:
        raise ValueError(f"{value} does not fit in an unsigned 32-bit varint")
    return _encode(value)


def encode_uvarint64(value: int) -> bytes:
    if not 0 <= value <= UINT64_MAX:
        raise ValueError(f"{value} does not fit in an unsigned 64-bit varint")
    return _encode(value)


def zigzag_encode(value: int) -> int:
    """Map a signed integer onto the non-negative integers.

    Non-negative values double, negative values become ``2 * |v| + 1``.
    """
    if value >= 0:
        return value << 1
    return ((-value) << 1) | 1


def zigzag_decode(value: int) -> int:
    if value & 1:
        return -(value >> 1)
    return value >> 1


def encode_svarint64(value: int) -> bytes:
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"{value} does not fit in a signed 64-bit varint")
    return _encode(zigzag_encode(value))


def decode_uvarint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode one unsigned varint.

    Args:
        data: Buffer holding the encoded bytes.
        offset: Position of the first byte of the varint.

    Returns:
        The decoded value and the offset just past it.

    Raises:
        TraceDecodeError: If the buffer ends mid-varint or the varint is
            longer than any 64-bit encoder would produce.
    """
    result = 0
    shift = 0
    position = offset
    for _ in range(MAX_VARINT_BYTES):
        if position >= len(data):
            raise TruncatedRecordError(f"Truncated varint at offset {offset}")
        byte = data[position]
        position += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, position
        shift += 7
    raise TraceDecodeError(f"Varint at offset {offset} exceeds {MAX_VARINT_BYTES} bytes")


def decode_svarint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    value, position = decode_uvarint(data, offset)
    return zigzag_decode(value), position


def encoded_length(value: int) -> int:
    """Number of bytes ``value`` occupies as an unsigned varint."""
    return max(1, -(-value.bit_length() // 7))


__all__ = [
    "UINT32_MAX",
    "UINT64_MAX",
    "INT64_MIN",
    "INT64_MAX",
    "decode_svarint",
    "decode_uvarint",
    "encode_svarint64",
    "encode_uvarint32",
    "encode_uvarint64",
    "encoded_length",
    "zigzag_decode",
    "zigzag_encode",
]
