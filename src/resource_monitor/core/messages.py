"""
Record framing for trace files.

Every record starts with an 8-byte little-endian nanosecond timestamp and a
one-byte message type, followed by a type-specific payload:

    DEVICE_LIST := varint(count) | count x (NUL-terminated name)
    METRICS     := varint(count) | count x fields x (uvarint | zigzag svarint)
    TOTALS      := 2 x 8-byte little-endian unsigned integers
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ..exceptions import TraceDecodeError, TruncatedRecordError
from .varint import (
    decode_svarint,
    decode_uvarint,
    encode_svarint64,
    encode_uvarint32,
    encode_uvarint64,
)

HEADER = struct.Struct("<qB")
TOTALS = struct.Struct("<QQ")


class MessageType(enum.IntEnum):
    DEVICE_LIST = 0
    METRICS = 1
    TOTALS = 2


class DeltaKind(enum.Enum):
    """How a collector turns two snapshots into the values it writes."""

    UNSIGNED = "unsigned"
    SIGNED = "signed"
    ABSOLUTE = "absolute"


@dataclass(frozen=True)
class MetricLayout:
    """Shape of one family's METRICS rows."""

    family: str
    fields: Tuple[str, ...]
    delta_kind: DeltaKind

    @property
    def field_count(self) -> int:
        return len(self.fields)

    @property
    def signed(self) -> bool:
        return self.delta_kind is DeltaKind.SIGNED


def encode_header(timestamp: int, message_type: MessageType) -> bytes:
    return HEADER.pack(timestamp, int(message_type))


def encode_device_list(names: Sequence[str]) -> bytes:
    parts = [encode_uvarint32(len(names))]
    for name in names:
        raw = name.encode("utf-8")
        if b"\x00" in raw:
            raise ValueError(f"Device name {name!r} contains a NUL byte")
        parts.append(raw + b"\x00")
    return b"".join(parts)


def encode_metrics(rows: Sequence[Sequence[int]], signed: bool = False) -> bytes:
    encode_field = encode_svarint64 if signed else encode_uvarint64
    parts = [encode_uvarint32(len(rows))]
    for row in rows:
        parts.extend(encode_field(int(value)) for value in row)
    return b"".join(parts)


def encode_totals(mem_total: int, swap_total: int) -> bytes:
    return TOTALS.pack(mem_total, swap_total)


def encode_record(timestamp: int, message_type: MessageType, payload: bytes) -> bytes:
    return encode_header(timestamp, message_type) + payload


def decode_device_list(data: bytes, offset: int) -> Tuple[List[str], int]:
    count, position = decode_uvarint(data, offset)
    names: List[str] = []
    for _ in range(count):
        end = data.find(b"\x00", position)
        if end < 0:
            raise TruncatedRecordError(f"Unterminated device name at offset {position}")
        names.append(data[position:end].decode("utf-8", "replace"))
        position = end + 1
    return names, position


def decode_metrics(
    data: bytes, offset: int, field_count: int, signed: bool = False
) -> Tuple[List[List[int]], int]:
    decode_field = decode_svarint if signed else decode_uvarint
    count, position = decode_uvarint(data, offset)
    rows: List[List[int]] = []
    for _ in range(count):
        row = []
        for _ in range(field_count):
            value, position = decode_field(data, position)
            row.append(value)
        rows.append(row)
    return rows, position


def decode_totals(data: bytes, offset: int) -> Tuple[Tuple[int, int], int]:
    end = offset + TOTALS.size
    if end > len(data):
        raise TruncatedRecordError(f"Truncated totals payload at offset {offset}")
    return TOTALS.unpack_from(data, offset), end


def decode_header(data: bytes, offset: int) -> Tuple[int, MessageType, int]:
    end = offset + HEADER.size
    if end > len(data):
        raise TruncatedRecordError(f"Truncated record header at offset {offset}")
    timestamp, raw_type = HEADER.unpack_from(data, offset)
    try:
        message_type = MessageType(raw_type)
    except ValueError as exc:
        raise TraceDecodeError(f"Unknown message type {raw_type} at offset {offset}") from exc
    return timestamp, message_type, end
