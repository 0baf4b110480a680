from .config import MonitorConfig
from .sink import open_trace_sink, trace_path
from .streaming import TraceWriter

__all__ = ["MonitorConfig", "TraceWriter", "open_trace_sink", "trace_path"]
