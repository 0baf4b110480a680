import struct

import pytest

from resource_monitor.core.messages import (
    HEADER,
    MessageType,
    decode_device_list,
    decode_header,
    decode_metrics,
    decode_totals,
    encode_device_list,
    encode_metrics,
    encode_record,
    encode_totals,
)
from resource_monitor.exceptions import TraceDecodeError, TruncatedRecordError


def test_header_layout():
    """Tests the 9-byte little-endian record header."""
    record = encode_record(0x0102030405060708, MessageType.METRICS, b"")
    assert len(record) == HEADER.size == 9
    assert record == struct.pack("<q", 0x0102030405060708) + b"\x01"


def test_device_list_payload():
    payload = encode_device_list(["sda", "nvme0n1"])
    assert payload == b"\x02sda\x00nvme0n1\x00"
    assert decode_device_list(payload, 0) == (["sda", "nvme0n1"], len(payload))


def test_device_list_rejects_nul():
    with pytest.raises(ValueError):
        encode_device_list(["bad\x00name"])


def test_empty_device_list():
    assert encode_device_list([]) == b"\x00"


def test_unsigned_metrics_payload():
    payload = encode_metrics([[50, 0], [300, 1]])
    assert payload == b"\x02" + b"\x32\x00" + b"\xac\x02\x01"
    rows, position = decode_metrics(payload, 0, field_count=2)
    assert rows == [[50, 0], [300, 1]]
    assert position == len(payload)


def test_signed_metrics_payload():
    payload = encode_metrics([[-5, 5]], signed=True)
    assert payload == b"\x01\x0b\x0a"
    rows, _ = decode_metrics(payload, 0, field_count=2, signed=True)
    assert rows == [[-5, 5]]


def test_totals_payload():
    payload = encode_totals(16000000, 2000000)
    assert payload == struct.pack("<QQ", 16000000, 2000000)
    assert decode_totals(payload, 0) == ((16000000, 2000000), 16)


def test_decode_header_unknown_type():
    data = struct.pack("<qB", 1, 9)
    with pytest.raises(TraceDecodeError):
        decode_header(data, 0)


def test_truncated_payloads():
    """Tests that short buffers are reported as truncated records."""
    with pytest.raises(TruncatedRecordError):
        decode_header(b"\x00" * 5, 0)
    with pytest.raises(TruncatedRecordError):
        decode_totals(b"\x00" * 10, 0)
    with pytest.raises(TruncatedRecordError):
        decode_device_list(b"\x01sda", 0)
    with pytest.raises(TruncatedRecordError):
        decode_metrics(b"\x02\x01\x01", 0, field_count=2)
