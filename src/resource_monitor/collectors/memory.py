from __future__ import annotations

import logging
import time
from typing import Dict, Optional

from ..core.messages import DeltaKind, MetricLayout
from ..core.streaming import TraceWriter
from ..exceptions import SourceUnavailableError
from ..memory.snapshot import SnapshotBuffer
from .base import Clock, ProcFileReader, RawSample, SourceReader, TraceSource

LOG = logging.getLogger(__name__)

MEMORY_LAYOUT = MetricLayout(
    family="proc-meminfo",
    fields=("mem_used", "mem_free", "mem_available", "swap_free"),
    delta_kind=DeltaKind.SIGNED,
)

_UINT64_MASK = 0xFFFFFFFFFFFFFFFF


class ProcMeminfoReader(ProcFileReader):
    """``Key: value [kB]`` pairs from /proc/meminfo, in file order."""

    FILE_NAME = "meminfo"

    def parse_line(self, line: str) -> Optional[RawSample]:
        parts = line.split()
        if len(parts) < 2 or not parts[0].endswith(":"):
            return None
        try:
            value = int(parts[1])
        except ValueError:
            return None
        return RawSample(name=parts[0][:-1], values=(value,))


class MemoryTraceSource(TraceSource):
    """Signed memory deltas for the whole host plus memory/swap totals.

    Memory has no device list; METRICS rows always hold one entry. A TOTALS
    record precedes METRICS whenever MemTotal or SwapTotal changed since the
    last recorded totals, which start at zero.
    """

    LAYOUT = MEMORY_LAYOUT

    def __init__(
        self,
        writer: TraceWriter,
        reader: SourceReader,
        clock: Clock = time.time_ns,
    ) -> None:
        super().__init__(writer, reader, clock)
        self.snapshot = SnapshotBuffer(1, self.LAYOUT.field_count)
        self.mem_total = 0
        self.swap_total = 0

    def poll(self) -> None:
        timestamp = self.clock()
        try:
            samples = self.reader.read()
        except SourceUnavailableError as exc:
            LOG.warning("%s: skipping poll: %s", self.name, exc)
            return

        fields: Dict[str, int] = {}
        for sample in samples:
            if sample.name is not None:
                fields[sample.name] = sample.values[0]

        mem_total = fields.get("MemTotal", 0)
        swap_total = fields.get("SwapTotal", 0)
        mem_free = fields.get("MemFree", 0)
        buff_and_cache = (
            fields.get("Buffers", 0) + fields.get("Cached", 0) + fields.get("SReclaimable", 0)
        )
        mem_used = (mem_total - mem_free - buff_and_cache) & _UINT64_MASK

        self.snapshot.store(
            0,
            (
                mem_used,
                mem_free,
                fields.get("MemAvailable", 0),
                fields.get("SwapFree", 0),
            ),
        )

        if mem_total != self.mem_total or swap_total != self.swap_total:
            self.mem_total = mem_total
            self.swap_total = swap_total
            self.writer.write_totals(timestamp, mem_total, swap_total)
            LOG.debug("%s: totals now %d/%d kB", self.name, mem_total, swap_total)

        self._emit_metrics(timestamp)
