from __future__ import annotations

from typing import Optional

from ..core.messages import DeltaKind, MetricLayout
from .base import FixedDeviceSource, ProcFileReader, RawSample, parse_counters

CPU_LAYOUT = MetricLayout(
    family="proc-stat",
    fields=(
        "user",
        "nice",
        "system",
        "idle",
        "iowait",
        "irq",
        "softirq",
        "steal",
        "guest",
        "guest_nice",
    ),
    delta_kind=DeltaKind.UNSIGNED,
)


class ProcStatReader(ProcFileReader):
    """Per-core time counters from /proc/stat.

    The first line holds the all-CPU aggregate and is skipped; reading stops
    at the first line that is not ``cpuN`` followed by ten counters.
    """

    FILE_NAME = "stat"
    SKIP_LINES = 1

    def parse_line(self, line: str) -> Optional[RawSample]:
        parts = line.split()
        field_count = CPU_LAYOUT.field_count
        if len(parts) < field_count + 1:
            return None
        label = parts[0]
        if not label.startswith("cpu") or not label[3:].isdigit():
            return None
        values = parse_counters(parts[1:field_count + 1])
        if values is None:
            return None
        return RawSample(name=label, values=values)


class CPUTraceSource(FixedDeviceSource):
    """CPU time deltas per core, in clock ticks."""

    LAYOUT = CPU_LAYOUT
