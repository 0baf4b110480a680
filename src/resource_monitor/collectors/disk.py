from __future__ import annotations

from typing import Optional

from ..core.messages import DeltaKind, MetricLayout
from .base import ProcFileReader, RawSample, VariableDeviceSource, parse_counters

DISK_LAYOUT = MetricLayout(
    family="proc-diskstats",
    fields=(
        "read_completed",
        "read_sectors",
        "read_time_ms",
        "write_completed",
        "write_sectors",
        "write_time_ms",
        "io_time_ms",
    ),
    delta_kind=DeltaKind.UNSIGNED,
)

# Older kernels expose 11 counters per line, newer ones append discard/flush stats.
_MIN_COUNTERS = 11
# reads, sectors read, ms reading, writes, sectors written, ms writing, ms doing I/O
_COLUMNS = (0, 2, 3, 4, 6, 7, 9)


class ProcDiskstatsReader(ProcFileReader):
    """Block device counters from /proc/diskstats."""

    FILE_NAME = "diskstats"

    def parse_line(self, line: str) -> Optional[RawSample]:
        parts = line.split()
        if len(parts) < 3 + _MIN_COUNTERS:
            return None
        counters = parse_counters(parts[3:3 + _MIN_COUNTERS])
        if counters is None:
            return None
        return RawSample(
            name=parts[2],
            values=tuple(counters[column] for column in _COLUMNS),
        )


class DiskTraceSource(VariableDeviceSource):
    LAYOUT = DISK_LAYOUT
