"""
Base classes for trace sources and the readers that feed them.
"""

from __future__ import annotations

import abc
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import numpy as np

from ..core.messages import DeltaKind, MetricLayout
from ..core.streaming import TraceWriter
from ..exceptions import CollectorRuntimeError, SourceUnavailableError
from ..memory.snapshot import SnapshotBuffer
from .devices import DeviceTable

LOG = logging.getLogger(__name__)

Clock = Callable[[], int]


@dataclass(frozen=True)
class RawSample:
    """One line of a source: an optional device name and its raw values."""

    name: Optional[str]
    values: Tuple[int, ...]


class SourceReader(abc.ABC):
    """Contract for the pluggable readers of kernel-exposed sources."""

    @property
    def available(self) -> bool:
        return True

    @abc.abstractmethod
    def read(self) -> List[RawSample]:
        """Return the current samples in source order."""

    def enumerate(self) -> List[str]:
        """Return the device names only."""
        return [sample.name or "" for sample in self.read()]

    def close(self) -> None:
        pass


class ProcFileReader(SourceReader):
    """Reader for a text file under the proc root.

    The first malformed or short line ends the data; it is not an error.
    """

    FILE_NAME: str = ""
    SKIP_LINES: int = 0

    def __init__(self, proc_root: Path = Path("/proc")) -> None:
        self.path = Path(proc_root) / self.FILE_NAME

    def read(self) -> List[RawSample]:
        try:
            with self.path.open("r", encoding="ascii", errors="replace") as f:
                lines = f.read().splitlines()
        except OSError as exc:
            raise SourceUnavailableError(f"Cannot read {self.path}: {exc}") from exc

        samples: List[RawSample] = []
        for line in lines[self.SKIP_LINES:]:
            sample = self.parse_line(line)
            if sample is None:
                break
            samples.append(sample)
        return samples

    @abc.abstractmethod
    def parse_line(self, line: str) -> Optional[RawSample]:
        """Parse one line, or return None to stop reading."""


def parse_counters(parts: List[str]) -> Optional[Tuple[int, ...]]:
    try:
        return tuple(int(part) for part in parts)
    except ValueError:
        return None


class TraceSource(abc.ABC):
    """A collector bound to its device table, snapshot buffer and trace file."""

    LAYOUT: MetricLayout

    def __init__(
        self,
        writer: TraceWriter,
        reader: SourceReader,
        clock: Clock = time.time_ns,
    ) -> None:
        self.writer = writer
        self.reader = reader
        self.clock = clock
        self.active = reader.available
        self.snapshot: Optional[SnapshotBuffer] = None
        self._closed = False

    @property
    def name(self) -> str:
        return self.LAYOUT.family

    @abc.abstractmethod
    def poll(self) -> None:
        """Sample the source once and append its records."""

    def flush(self) -> None:
        self.writer.flush()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.reader.close()
        finally:
            self.writer.close()
            self.snapshot = None
        LOG.debug("Trace source %s closed", self.name)

    def _metric_rows(self) -> List[List[int]]:
        assert self.snapshot is not None
        kind = self.LAYOUT.delta_kind
        if kind is DeltaKind.SIGNED:
            rows: np.ndarray = self.snapshot.signed_deltas()
        elif kind is DeltaKind.ABSOLUTE:
            rows = self.snapshot.current
        else:
            rows = self.snapshot.deltas()
        return rows.tolist()

    def _emit_metrics(self, timestamp: int) -> None:
        self.writer.write_metrics(timestamp, self._metric_rows(), signed=self.LAYOUT.signed)
        self.snapshot.swap()


class FixedDeviceSource(TraceSource):
    """Source whose device count is fixed at startup, such as CPU cores.

    Devices are identified by position only; names are read once for the
    initial device list.
    """

    def __init__(
        self,
        writer: TraceWriter,
        reader: SourceReader,
        clock: Clock = time.time_ns,
    ) -> None:
        super().__init__(writer, reader, clock)
        timestamp = self.clock()
        try:
            names = self.reader.enumerate()
        except SourceUnavailableError as exc:
            LOG.warning("%s: %s; starting with no devices", self.name, exc)
            names = []
        self.devices = DeviceTable(names)
        self.short_read = False
        self.snapshot = SnapshotBuffer(len(self.devices), self.LAYOUT.field_count)
        self.writer.write_device_list(timestamp, self.devices.names)
        LOG.info("%s: monitoring %d devices", self.name, len(self.devices))

    def poll(self) -> None:
        timestamp = self.clock()
        try:
            samples = self.reader.read()
        except SourceUnavailableError as exc:
            LOG.warning("%s: skipping poll: %s", self.name, exc)
            return
        if len(samples) < len(self.devices):
            if not self.short_read:
                self.short_read = True
                LOG.warning(
                    "%s: skipping polls: read %d of %d devices",
                    self.name,
                    len(samples),
                    len(self.devices),
                )
            return
        if self.short_read:
            self.short_read = False
            LOG.info("%s: all %d devices readable again", self.name, len(self.devices))
        for device in self.devices:
            self.snapshot.store(device.ordinal, samples[device.ordinal].values)
        self._emit_metrics(timestamp)


class VariableDeviceSource(TraceSource):
    """Source whose devices may appear, vanish or be renamed between polls.

    Every poll compares the names read, position by position, against the
    active device table. Any difference (count, name, or order) starts a new
    epoch: a fresh enumeration, zeroed snapshot buffers, a DEVICE_LIST record
    and an all-zero METRICS record for the poll.
    """

    def __init__(
        self,
        writer: TraceWriter,
        reader: SourceReader,
        clock: Clock = time.time_ns,
    ) -> None:
        super().__init__(writer, reader, clock)
        self.devices = DeviceTable([])
        self.snapshot = SnapshotBuffer(0, self.LAYOUT.field_count)
        self.reenumerations = 0
        if self.active:
            self._enumerate(self.clock(), epoch=0)
            LOG.info("%s: monitoring %d devices", self.name, len(self.devices))

    def poll(self) -> None:
        if not self.active:
            return
        timestamp = self.clock()
        try:
            samples = self.reader.read()
        except SourceUnavailableError as exc:
            LOG.warning("%s: %s", self.name, exc)
            samples = []

        if not self.devices.matches([sample.name or "" for sample in samples]):
            self.reenumerations += 1
            self._enumerate(timestamp, epoch=self.devices.epoch + 1)
            LOG.info(
                "%s: device set changed, now %d devices: %s",
                self.name,
                len(self.devices),
                ", ".join(self.devices.names),
            )
            self._emit_metrics(timestamp)
            return

        for ordinal, sample in enumerate(samples):
            self.snapshot.store(ordinal, sample.values)
        self._emit_metrics(timestamp)

    def _enumerate(self, timestamp: int, epoch: int) -> None:
        try:
            names = self.reader.enumerate()
        except SourceUnavailableError as exc:
            LOG.warning("%s: %s", self.name, exc)
            names = []
        try:
            devices = DeviceTable(names, epoch=epoch)
        except ValueError as exc:
            raise CollectorRuntimeError(f"{self.name}: {exc}") from exc
        self.devices = devices
        self.snapshot.reset(len(self.devices))
        self.writer.write_device_list(timestamp, self.devices.names)
