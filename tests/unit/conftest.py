import io
from pathlib import Path
from typing import List

import pytest

from resource_monitor.analysis import iter_records
from resource_monitor.collectors import RawSample
from resource_monitor.core.streaming import TraceWriter


class CapturingSink(io.BytesIO):
    """In-memory sink that keeps its content after close."""

    def __init__(self):
        super().__init__()
        self.content = b""
        self.flushes = 0

    def flush(self):
        self.flushes += 1
        super().flush()

    def close(self):
        if not self.closed:
            self.content = self.getvalue()
        super().close()

    def data(self) -> bytes:
        return self.content if self.closed else self.getvalue()


class FakeClock:
    def __init__(self, start: int = 1_000, step: int = 0):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


class FakeReader:
    """Source reader fed from a list of prepared polls."""

    def __init__(self, polls: List[List[tuple]]):
        self.polls = list(polls)
        self.current: List[tuple] = self.polls.pop(0) if self.polls else []
        self.closed = False

    def advance(self):
        self.current = self.polls.pop(0)

    @property
    def available(self) -> bool:
        return True

    def read(self):
        return [RawSample(name=name, values=tuple(values)) for name, values in self.current]

    def enumerate(self):
        return [name for name, _ in self.current]

    def close(self):
        self.closed = True


@pytest.fixture
def sink():
    return CapturingSink()


@pytest.fixture
def writer(sink):
    return TraceWriter(sink, buffer_size=4096, name="test")


@pytest.fixture
def decode(sink, writer):
    """Flush the writer and decode what reached the sink."""

    def _decode(family: str):
        writer.flush()
        return list(iter_records(sink.data(), family))

    return _decode


PROC_STAT = """cpu  300 0 200 1000 10 0 5 0 0 0
cpu0 100 0 50 500 5 0 2 0 0 0
cpu1 200 0 150 500 5 0 3 0 0 0
intr 12345 0 0
ctxt 999
"""

PROC_MEMINFO = """MemTotal:       16000000 kB
MemFree:         4000000 kB
MemAvailable:    9000000 kB
Buffers:          500000 kB
Cached:          3000000 kB
SwapCached:            0 kB
SwapTotal:       2000000 kB
SwapFree:        1500000 kB
SReclaimable:     200000 kB
"""

PROC_NET_DEV = """Inter-|   Receive                                                |  Transmit
 face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed
    lo:    1000      10    0    0    0     0          0         0     1000      10    0    0    0     0       0          0
  eth0:  500000     400    0    0    0     0          0         0   250000     300    0    0    0     0       0          0
"""

PROC_DISKSTATS = """   8       0 sda 100 5 2000 40 50 3 800 60 0 90 100 0 0 0 0
   8      16 sdb 10 0 200 4 5 0 80 6 0 9 10 0 0 0 0
"""


@pytest.fixture
def proc_root(tmp_path) -> Path:
    """A fake proc filesystem holding two CPUs, two interfaces and two disks."""
    root = tmp_path / "proc"
    (root / "net").mkdir(parents=True)
    (root / "stat").write_text(PROC_STAT)
    (root / "meminfo").write_text(PROC_MEMINFO)
    (root / "net" / "dev").write_text(PROC_NET_DEV)
    (root / "diskstats").write_text(PROC_DISKSTATS)
    return root


@pytest.fixture
def make_reader():
    return FakeReader


@pytest.fixture
def clock():
    return FakeClock(step=10)
