"""Offline helpers for reading trace files."""

from .trace_reader import (
    TraceRecord,
    build_metrics_dataframe,
    iter_records,
    iter_trace_records,
    load_trace_records,
)

__all__ = [
    "TraceRecord",
    "build_metrics_dataframe",
    "iter_records",
    "iter_trace_records",
    "load_trace_records",
]
