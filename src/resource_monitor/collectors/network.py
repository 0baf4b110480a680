from __future__ import annotations

from typing import Optional

from ..core.messages import DeltaKind, MetricLayout
from .base import ProcFileReader, RawSample, VariableDeviceSource, parse_counters

NETWORK_LAYOUT = MetricLayout(
    family="proc-net-dev",
    fields=("recv_bytes", "recv_packets", "send_bytes", "send_packets"),
    delta_kind=DeltaKind.UNSIGNED,
)

_NET_DEV_COLUMNS = 16


class ProcNetDevReader(ProcFileReader):
    """Interface counters from /proc/net/dev, after its two header lines."""

    FILE_NAME = "net/dev"
    SKIP_LINES = 2

    def parse_line(self, line: str) -> Optional[RawSample]:
        if ":" not in line:
            return None
        name, rest = line.split(":", 1)
        name = name.strip()
        parts = rest.split()
        if not name or len(parts) < _NET_DEV_COLUMNS:
            return None
        counters = parse_counters(parts[:_NET_DEV_COLUMNS])
        if counters is None:
            return None
        return RawSample(
            name=name,
            values=(counters[0], counters[1], counters[8], counters[9]),
        )


class NetworkTraceSource(VariableDeviceSource):
    LAYOUT = NETWORK_LAYOUT
