"""Available trace source implementations."""

from .base import (
    FixedDeviceSource,
    ProcFileReader,
    RawSample,
    SourceReader,
    TraceSource,
    VariableDeviceSource,
)
from .cpu import CPU_LAYOUT, CPUTraceSource, ProcStatReader
from .devices import Device, DeviceTable
from .disk import DISK_LAYOUT, DiskTraceSource, ProcDiskstatsReader
from .memory import MEMORY_LAYOUT, MemoryTraceSource, ProcMeminfoReader
from .network import NETWORK_LAYOUT, NetworkTraceSource, ProcNetDevReader
from .nvidia import GPU_LAYOUT, GPUTraceSource, NvmlReader

LAYOUTS = {
    layout.family: layout
    for layout in (CPU_LAYOUT, MEMORY_LAYOUT, NETWORK_LAYOUT, DISK_LAYOUT, GPU_LAYOUT)
}

__all__ = [
    "CPUTraceSource",
    "Device",
    "DeviceTable",
    "DiskTraceSource",
    "FixedDeviceSource",
    "GPUTraceSource",
    "LAYOUTS",
    "MemoryTraceSource",
    "NetworkTraceSource",
    "NvmlReader",
    "ProcDiskstatsReader",
    "ProcFileReader",
    "ProcMeminfoReader",
    "ProcNetDevReader",
    "ProcStatReader",
    "RawSample",
    "SourceReader",
    "TraceSource",
    "VariableDeviceSource",
]
