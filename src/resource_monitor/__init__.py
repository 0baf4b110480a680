"""
resource-monitor: low-overhead resource telemetry agent

Samples CPU, memory, network, disk and GPU counters at a fixed period and
writes them as compact snapshot-delta records to one binary trace file per
metric family.
"""

from resource_monitor.core.config import MonitorConfig
from resource_monitor.core.streaming import TraceWriter
from resource_monitor.collectors import LAYOUTS, TraceSource
from resource_monitor.scheduler import Scheduler, SchedulerState

__version__ = "0.1.0"

__all__ = [
    "LAYOUTS",
    "MonitorConfig",
    "Scheduler",
    "SchedulerState",
    "TraceSource",
    "TraceWriter",
    "__version__",
]
