"""
NVIDIA GPU utilisation through NVML.
"""

from __future__ import annotations

import logging
from typing import List, Set

import pynvml

from ..core.messages import DeltaKind, MetricLayout
from .base import RawSample, SourceReader, VariableDeviceSource

LOG = logging.getLogger(__name__)

GPU_LAYOUT = MetricLayout(
    family="nvidia",
    fields=("gpu_utilization", "memory_utilization", "pcie_tx_bytes", "pcie_rx_bytes"),
    delta_kind=DeltaKind.ABSOLUTE,
)


def _decode_name(raw) -> str:
    # Older bindings return bytes, current ones str.
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


class NvmlReader(SourceReader):
    """Per-GPU utilisation samples read from NVML.

    NVML is initialised once at construction. When that fails the reader is
    unavailable for its whole lifetime; the failure is logged a single time.
    A device whose query fails still reports a row of zeros, so the device
    list stays stable while it misbehaves.
    """

    def __init__(self, pcie_throughput: bool = False) -> None:
        self.pcie_throughput = pcie_throughput
        self._initialized = False
        self._failing: Set[str] = set()
        try:
            pynvml.nvmlInit()
        except pynvml.NVMLError as exc:
            LOG.warning("NVML unavailable, GPU monitoring disabled: %r", exc)
            return
        self._initialized = True
        LOG.info("NVML initialised (PCIe throughput %s)", "on" if pcie_throughput else "off")

    @property
    def available(self) -> bool:
        return self._initialized

    def _handles(self) -> List[tuple]:
        handles = []
        try:
            count = pynvml.nvmlDeviceGetCount()
            for index in range(count):
                handle = pynvml.nvmlDeviceGetHandleByIndex(index)
                name = _decode_name(pynvml.nvmlDeviceGetName(handle))
                handles.append((f"{index}:{name}", handle))
        except pynvml.NVMLError as exc:
            LOG.debug("NVML device walk stopped early: %r", exc)
        return handles

    def read(self) -> List[RawSample]:
        if not self._initialized:
            return []
        samples: List[RawSample] = []
        for name, handle in self._handles():
            try:
                util = pynvml.nvmlDeviceGetUtilizationRates(handle)
                tx_bytes = rx_bytes = 0
                if self.pcie_throughput:
                    # NVML reports KB/s.
                    tx_bytes = 1024 * pynvml.nvmlDeviceGetPcieThroughput(
                        handle, pynvml.NVML_PCIE_UTIL_TX_BYTES
                    )
                    rx_bytes = 1024 * pynvml.nvmlDeviceGetPcieThroughput(
                        handle, pynvml.NVML_PCIE_UTIL_RX_BYTES
                    )
            except pynvml.NVMLError as exc:
                if name not in self._failing:
                    self._failing.add(name)
                    LOG.warning("%s: NVML query failed, reporting zeros: %r", name, exc)
                samples.append(RawSample(name=name, values=(0,) * GPU_LAYOUT.field_count))
                continue
            if name in self._failing:
                self._failing.discard(name)
                LOG.info("%s: NVML queries recovered", name)
            samples.append(
                RawSample(
                    name=name,
                    values=(int(util.gpu), int(util.memory), int(tx_bytes), int(rx_bytes)),
                )
            )
        return samples

    def enumerate(self) -> List[str]:
        if not self._initialized:
            return []
        return [name for name, _ in self._handles()]

    def close(self) -> None:
        if not self._initialized:
            return
        self._initialized = False
        try:
            pynvml.nvmlShutdown()
        except pynvml.NVMLError as exc:
            LOG.warning("NVML shutdown failed: %r", exc)


class GPUTraceSource(VariableDeviceSource):
    """Raw GPU utilisation per device; values are written as-is, not as deltas."""

    LAYOUT = GPU_LAYOUT
