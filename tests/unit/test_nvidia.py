import logging
from types import SimpleNamespace

import pytest

from resource_monitor.collectors import nvidia
from resource_monitor.collectors.nvidia import GPUTraceSource, NvmlReader
from resource_monitor.core.messages import MessageType


class FakeNVMLError(Exception):
    pass


class FakeNvml:
    """Stand-in for the pynvml module backed by a mutable device list."""

    NVMLError = FakeNVMLError
    NVML_PCIE_UTIL_TX_BYTES = 0
    NVML_PCIE_UTIL_RX_BYTES = 1

    def __init__(self, devices, init_error=False):
        self.devices = devices
        self.init_error = init_error
        self.shutdowns = 0
        self.pcie_queries = 0

    def nvmlInit(self):
        if self.init_error:
            raise FakeNVMLError("NVML Shared Library Not Found")

    def nvmlShutdown(self):
        self.shutdowns += 1

    def nvmlDeviceGetCount(self):
        return len(self.devices)

    def nvmlDeviceGetHandleByIndex(self, index):
        return index

    def nvmlDeviceGetName(self, handle):
        return self.devices[handle]["name"]

    def nvmlDeviceGetUtilizationRates(self, handle):
        device = self.devices[handle]
        if device.get("lost"):
            raise FakeNVMLError("GPU is lost")
        return SimpleNamespace(gpu=device["gpu"], memory=device["memory"])

    def nvmlDeviceGetPcieThroughput(self, handle, counter):
        self.pcie_queries += 1
        return self.devices[handle]["pcie"][counter]


@pytest.fixture
def fake_nvml(monkeypatch):
    fake = FakeNvml(
        [
            {"name": b"Tesla T4", "gpu": 40, "memory": 10, "pcie": (2, 3)},
            {"name": "Tesla T4", "gpu": 90, "memory": 70, "pcie": (5, 7)},
        ]
    )
    monkeypatch.setattr(nvidia, "pynvml", fake)
    return fake


def test_reader_names_are_unique(fake_nvml):
    """Tests that identical products get distinct index-prefixed names."""
    assert NvmlReader().enumerate() == ["0:Tesla T4", "1:Tesla T4"]


def test_reader_pcie_disabled_by_default(fake_nvml):
    samples = NvmlReader().read()
    assert samples[0].values == (40, 10, 0, 0)
    assert fake_nvml.pcie_queries == 0


def test_reader_pcie_in_bytes(fake_nvml):
    samples = NvmlReader(pcie_throughput=True).read()
    assert samples[1].values == (90, 70, 5 * 1024, 7 * 1024)


def test_reader_reports_zeros_for_failing_device(fake_nvml):
    fake_nvml.devices[0]["lost"] = True
    samples = NvmlReader().read()
    assert [sample.name for sample in samples] == ["0:Tesla T4", "1:Tesla T4"]
    assert samples[0].values == (0, 0, 0, 0)
    assert samples[1].values == (90, 70, 0, 0)


def test_lost_gpu_keeps_device_list_stable(fake_nvml, writer, decode, clock, caplog):
    """Tests that a GPU failing across polls neither re-enumerates nor hides the others."""
    fake_nvml.devices[1]["lost"] = True
    source = GPUTraceSource(writer, NvmlReader(), clock)
    with caplog.at_level(logging.WARNING):
        for _ in range(4):
            source.poll()

    records = decode("nvidia")
    types = [record.message_type for record in records]
    assert types.count(MessageType.DEVICE_LIST) == 1
    assert types.count(MessageType.METRICS) == 4
    assert records[-1].values == [[40, 10, 0, 0], [0, 0, 0, 0]]
    assert source.reenumerations == 0
    assert caplog.text.count("NVML query failed") == 1

    del fake_nvml.devices[1]["lost"]
    source.poll()
    assert decode("nvidia")[-1].values == [[40, 10, 0, 0], [90, 70, 0, 0]]


def test_gpu_values_are_absolute(fake_nvml, writer, decode, clock):
    """Tests that GPU utilisation is written raw, not as a delta."""
    source = GPUTraceSource(writer, NvmlReader(), clock)
    source.poll()
    source.poll()

    records = decode("nvidia")
    assert [record.message_type for record in records] == [
        MessageType.DEVICE_LIST,
        MessageType.METRICS,
        MessageType.METRICS,
    ]
    assert records[1].values == records[2].values == [[40, 10, 0, 0], [90, 70, 0, 0]]


def test_gpu_removed_reenumerates(fake_nvml, writer, decode, clock):
    source = GPUTraceSource(writer, NvmlReader(), clock)
    fake_nvml.devices.pop()
    source.poll()

    records = decode("nvidia")
    assert records[-2].device_names == ["0:Tesla T4"]
    assert records[-1].values == [[0, 0, 0, 0]]


def test_nvml_init_failure_disables_source(monkeypatch, writer, decode, clock, caplog):
    """Tests that a missing GPU runtime degrades to a silent no-op source."""
    fake = FakeNvml([], init_error=True)
    monkeypatch.setattr(nvidia, "pynvml", fake)

    with caplog.at_level(logging.WARNING):
        source = GPUTraceSource(writer, NvmlReader(), clock)
        source.poll()
        source.poll()

    assert not source.active
    assert caplog.text.count("GPU monitoring disabled") == 1
    assert decode("nvidia") == []
    source.close()
    assert fake.shutdowns == 0


def test_close_shuts_nvml_down(fake_nvml, writer, clock):
    source = GPUTraceSource(writer, NvmlReader(), clock)
    source.close()
    source.close()
    assert fake_nvml.shutdowns == 1
