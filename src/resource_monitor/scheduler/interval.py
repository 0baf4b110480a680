"""
Fixed-period scheduler that polls every trace source once per tick.
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Callable, List, Sequence

from ..collectors.base import TraceSource

LOG = logging.getLogger(__name__)

NANOSECONDS_PER_SECOND = 1_000_000_000


class SchedulerState(enum.Enum):
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class Scheduler:
    """Single-threaded polling loop over already-enumerated trace sources.

    Each tick starts at ``clock()``, polls the sources in registration order
    and then sleeps until ``tick_start + period_ns``. ``stop()`` and
    ``request_flush()`` only set flags, so both are safe to call from signal
    handlers; the loop acts on them at the next tick boundary.
    """

    def __init__(
        self,
        sources: Sequence[TraceSource],
        period_ns: int,
        clock: Callable[[], int] = time.monotonic_ns,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if period_ns <= 0:
            raise ValueError("Scheduler period must be positive")
        self.sources: List[TraceSource] = list(sources)
        self.period_ns = period_ns
        self.clock = clock
        self.sleep = sleep
        self.ticks = 0
        self._state = SchedulerState.RUNNING
        self._stop_requested = False
        self._flush_requested = False

    @property
    def state(self) -> SchedulerState:
        return self._state

    def stop(self) -> None:
        if self._state is SchedulerState.RUNNING:
            self._stop_requested = True
            self._state = SchedulerState.STOPPING

    def request_flush(self) -> None:
        self._flush_requested = True

    def run(self) -> None:
        """Poll until ``stop()`` is observed, then close every source."""
        if self._state is SchedulerState.STOPPED:
            raise RuntimeError("Scheduler has already stopped")

        LOG.info(
            "Polling %d sources every %.3f ms",
            len(self.sources),
            self.period_ns / 1_000_000,
        )
        try:
            while not self._stop_requested:
                tick_start = self.clock()
                self._tick()
                if self._flush_requested:
                    self._flush_requested = False
                    self._flush_sources()
                if self._stop_requested:
                    break
                remaining = tick_start + self.period_ns - self.clock()
                if remaining > 0:
                    self.sleep(remaining / NANOSECONDS_PER_SECOND)
        finally:
            self._close_sources()
            self._state = SchedulerState.STOPPED
            LOG.info("Scheduler stopped after %d ticks", self.ticks)

    def _tick(self) -> None:
        for source in self.sources:
            try:
                source.poll()
            except Exception:
                LOG.exception("Polling %s failed", source.name)
        self.ticks += 1

    def _flush_sources(self) -> None:
        LOG.info("Flushing %d sources on request", len(self.sources))
        for source in self.sources:
            try:
                source.flush()
            except Exception:
                LOG.exception("Flushing %s failed", source.name)

    def _close_sources(self) -> None:
        for source in self.sources:
            try:
                source.close()
            except Exception:
                LOG.exception("Closing %s failed", source.name)
