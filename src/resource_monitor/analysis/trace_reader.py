"""Offline decoding of trace files written by the resource monitor.

Each trace file holds one metric family. Decoding needs the family's layout
to know how many fields a METRICS row carries and whether they are zigzag
encoded, so readers are always called with the family name.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from os import PathLike
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from resource_monitor.collectors import LAYOUTS
from resource_monitor.core.messages import (
    MessageType,
    MetricLayout,
    decode_device_list,
    decode_header,
    decode_metrics,
    decode_totals,
)
from resource_monitor.core.sink import read_trace_bytes
from resource_monitor.exceptions import TraceDecodeError, TruncatedRecordError

try:
    import pandas as pd
except ModuleNotFoundError:  # pragma: no cover - exercised only when pandas missing
    pd = None  # type: ignore

# Families without DEVICE_LIST records report a single implicit device.
IMPLICIT_DEVICE = "host"


@dataclass
class TraceRecord:
    timestamp: int
    message_type: MessageType
    device_names: Optional[List[str]] = None
    values: Optional[List[List[int]]] = None
    totals: Optional[Tuple[int, int]] = None


def _layout_for(family: str) -> MetricLayout:
    try:
        return LAYOUTS[family]
    except KeyError:
        raise ValueError(
            f"Unknown metric family {family!r}; expected one of {sorted(LAYOUTS)}"
        ) from None


def iter_trace_records(
    path: Union[str, PathLike], family: str, compression: str = "none"
) -> Iterator[TraceRecord]:
    """Decode the records of a trace file in order.

    Args:
        path: Trace file produced by the monitor.
        family: Metric family of the file, e.g. ``"proc-stat"``.
        compression: Compression used when the file was written.

    Yields:
        One TraceRecord per record. METRICS records carry the device names
        of the device list they belong to.

    Raises:
        TraceDecodeError: If a METRICS record disagrees with the latest
            device list or a varint is malformed. A file that ends mid-record
            stops decoding with a warning instead.
    """
    yield from iter_records(read_trace_bytes(path, compression), family)


def iter_records(data: bytes, family: str) -> Iterator[TraceRecord]:
    """Decode already decompressed trace bytes; see ``iter_trace_records``."""
    layout = _layout_for(family)
    device_names: Optional[List[str]] = None
    offset = 0
    while offset < len(data):
        try:
            timestamp, message_type, position = decode_header(data, offset)
            if message_type is MessageType.DEVICE_LIST:
                names, position = decode_device_list(data, position)
                device_names = names
                record = TraceRecord(timestamp, message_type, device_names=list(names))
            elif message_type is MessageType.METRICS:
                rows, position = decode_metrics(
                    data, position, layout.field_count, signed=layout.signed
                )
                names = device_names if device_names is not None else [IMPLICIT_DEVICE]
                if len(rows) != len(names):
                    raise TraceDecodeError(
                        f"METRICS record at offset {offset} has {len(rows)} devices, "
                        f"device list has {len(names)}"
                    )
                record = TraceRecord(
                    timestamp, message_type, device_names=list(names), values=rows
                )
            else:
                totals, position = decode_totals(data, position)
                record = TraceRecord(timestamp, message_type, totals=tuple(totals))
        except TruncatedRecordError as exc:
            warnings.warn(f"Encountered truncated record ({exc}); stopping parse.")
            return
        offset = position
        yield record


def load_trace_records(
    path: Union[str, PathLike], family: str, compression: str = "none"
) -> List[TraceRecord]:
    return list(iter_trace_records(path, family, compression))


def build_metrics_dataframe(records: Sequence[TraceRecord], family: str) -> "pd.DataFrame":
    """Flatten METRICS records into one DataFrame row per device per record."""

    if pd is None:  # pragma: no cover - pandas absent only in constrained envs
        raise ImportError(
            "pandas is required for build_metrics_dataframe(). "
            "Install the 'analysis' extra: pip install resource-monitor[analysis]"
        )

    layout = _layout_for(family)
    columns = ["timestamp", "device"] + list(layout.fields)
    rows = []
    for record in records:
        if record.message_type is not MessageType.METRICS:
            continue
        for device, values in zip(record.device_names or [], record.values or []):
            rows.append([record.timestamp, device] + list(values))

    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns)
