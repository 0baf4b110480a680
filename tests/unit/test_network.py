from resource_monitor.collectors.network import NetworkTraceSource, ProcNetDevReader
from resource_monitor.core.messages import MessageType


def test_net_dev_reader(proc_root):
    """Tests that receive/transmit bytes and packets are picked per interface."""
    samples = ProcNetDevReader(proc_root).read()
    assert [sample.name for sample in samples] == ["lo", "eth0"]
    assert samples[0].values == (1000, 10, 1000, 10)
    assert samples[1].values == (500000, 400, 250000, 300)


def test_net_dev_reader_handles_unspaced_counters(proc_root):
    (proc_root / "net" / "dev").write_text(
        "header\nheader\n"
        "wlan0:123 4 0 0 0 0 0 0 567 8 0 0 0 0 0 0\n"
    )
    samples = ProcNetDevReader(proc_root).read()
    assert samples[0].name == "wlan0"
    assert samples[0].values == (123, 4, 567, 8)


def test_interface_added(proc_root, writer, decode, clock):
    """Tests that a new interface triggers a fresh device list."""
    source = NetworkTraceSource(writer, ProcNetDevReader(proc_root), clock)
    source.poll()
    with (proc_root / "net" / "dev").open("a") as f:
        f.write("  tun0:  10 1 0 0 0 0 0 0 20 2 0 0 0 0 0 0\n")
    source.poll()
    source.poll()

    records = decode("proc-net-dev")
    assert [record.message_type for record in records] == [
        MessageType.DEVICE_LIST,
        MessageType.METRICS,
        MessageType.DEVICE_LIST,
        MessageType.METRICS,
        MessageType.METRICS,
    ]
    assert records[2].device_names == ["lo", "eth0", "tun0"]
    assert records[3].values == [[0, 0, 0, 0]] * 3
    # The poll after a new epoch is measured from a zero baseline.
    assert records[4].values[2] == [10, 1, 20, 2]
    assert source.reenumerations == 1
