"""
`resource-monitor` command line interface that runs the trace sources.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import signal
import sys
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from ..collectors import (
    CPUTraceSource,
    DiskTraceSource,
    GPUTraceSource,
    MemoryTraceSource,
    NetworkTraceSource,
    NvmlReader,
    ProcDiskstatsReader,
    ProcMeminfoReader,
    ProcNetDevReader,
    ProcStatReader,
    SourceReader,
    TraceSource,
)
from ..core.config import MonitorConfig
from ..core.sink import open_trace_sink
from ..core.streaming import TraceWriter
from ..exceptions import ConfigurationError, MonitorError, PidFileError, SinkOpenError
from ..scheduler import Scheduler


LOG = logging.getLogger("resource_monitor")

PRESETS = {
    "default": MonitorConfig.default,
    "fine-grained": MonitorConfig.fine_grained,
    "low-overhead": MonitorConfig.low_overhead,
}


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="resource-monitor",
        description="Sample CPU, memory, network, disk and GPU counters into binary trace files.",
    )
    parser.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        default="default",
        help="Base configuration; --monitor-interval and --compression override it.",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Existing directory that receives one trace file per metric family.",
    )
    parser.add_argument(
        "-i",
        "--monitor-interval",
        type=int,
        metavar="MS",
        help="Sampling period in milliseconds (preset default: 100).",
    )
    parser.add_argument(
        "-p",
        "--pid-file",
        type=Path,
        default=Path("/tmp/resource-monitor.pid"),
        help="PID file created exclusively at startup and removed on exit.",
    )
    parser.add_argument("--no-pid-file", action="store_true", help="Do not write a PID file.")
    parser.add_argument("--no-cpu", action="store_true", help="Disable CPU monitoring.")
    parser.add_argument("--no-gpu", action="store_true", help="Disable GPU monitoring.")
    parser.add_argument("--no-memory", action="store_true", help="Disable memory monitoring.")
    parser.add_argument("--no-network", action="store_true", help="Disable network monitoring.")
    parser.add_argument("--no-disk", action="store_true", help="Disable disk monitoring.")
    parser.add_argument(
        "--compression",
        type=str,
        choices=["none", "lz4", "zstd"],
        help="Compress trace files as a whole stream (preset default: none).",
    )
    parser.add_argument(
        "--host-id",
        type=str,
        help="Identifier used in trace file names (defaults to the hostname).",
    )
    parser.add_argument(
        "--proc-root",
        type=Path,
        default=Path("/proc"),
        help="Root of the proc filesystem to read counters from.",
    )
    parser.add_argument(
        "--gpu-pcie-throughput",
        action="store_true",
        help="Also sample PCIe throughput per GPU (slow NVML query).",
    )
    parser.add_argument(
        "--write-buffer-size",
        type=int,
        default=4 * 4096,
        help="Bytes buffered per trace file before writing to disk.",
    )
    parser.add_argument(
        "--log",
        type=str,
        default="INFO",
        help="Log level (DEBUG, INFO, WARNING, ERROR).",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_config(args: argparse.Namespace) -> MonitorConfig:
    config = dataclasses.replace(
        PRESETS[args.preset](),
        pid_file=None if args.no_pid_file else args.pid_file,
        enable_cpu_monitoring=not args.no_cpu,
        enable_memory_monitoring=not args.no_memory,
        enable_network_monitoring=not args.no_network,
        enable_disk_monitoring=not args.no_disk,
        enable_gpu_monitoring=not args.no_gpu,
        write_buffer_size=args.write_buffer_size,
        host_id=args.host_id,
        proc_root=args.proc_root,
        gpu_pcie_throughput=args.gpu_pcie_throughput,
    ).with_output_directory(args.output_dir)
    if args.monitor_interval is not None:
        config.with_interval(args.monitor_interval)
    if args.compression is not None:
        config.with_compression(args.compression)
    return config


class PidFile:
    """PID file created with O_EXCL so two agents never share a pid path."""

    def __init__(self, path: Path) -> None:
        self.path = path

    @classmethod
    def create(cls, path: Path) -> "PidFile":
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        except FileExistsError as exc:
            raise PidFileError(
                f"PID file {path} already exists; is another monitor running?"
            ) from exc
        except OSError as exc:
            raise PidFileError(f"Cannot create PID file {path}: {exc}") from exc
        with os.fdopen(fd, "w") as f:
            f.write(f"{os.getpid()}\n")
        return cls(path)

    def remove(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            LOG.warning("PID file %s vanished before exit", self.path)


def _open_source(
    config: MonitorConfig,
    source_cls: type,
    make_reader: Callable[[], SourceReader],
    clock: Callable[[], int],
) -> TraceSource:
    family = source_cls.LAYOUT.family
    reader = make_reader()
    try:
        sink = open_trace_sink(
            config.output_directory, family, config.resolved_host_id(), config.compression
        )
    except SinkOpenError:
        reader.close()
        raise
    writer = TraceWriter(sink, config.write_buffer_size, name=family)
    try:
        return source_cls(writer, reader, clock)
    except Exception:
        writer.close()
        reader.close()
        raise


def build_trace_sources(
    config: MonitorConfig, clock: Callable[[], int] = time.time_ns
) -> List[TraceSource]:
    """Open one trace file per enabled family and enumerate its devices.

    Sources already built are closed again if a later one fails.
    """
    proc_root = config.proc_root
    candidates = [
        (config.enable_cpu_monitoring, CPUTraceSource, lambda: ProcStatReader(proc_root)),
        (config.enable_memory_monitoring, MemoryTraceSource, lambda: ProcMeminfoReader(proc_root)),
        (config.enable_network_monitoring, NetworkTraceSource, lambda: ProcNetDevReader(proc_root)),
        (config.enable_disk_monitoring, DiskTraceSource, lambda: ProcDiskstatsReader(proc_root)),
        (
            config.enable_gpu_monitoring,
            GPUTraceSource,
            lambda: NvmlReader(pcie_throughput=config.gpu_pcie_throughput),
        ),
    ]

    sources: List[TraceSource] = []
    try:
        for enabled, source_cls, make_reader in candidates:
            if enabled:
                sources.append(_open_source(config, source_cls, make_reader, clock))
    except Exception:
        for source in sources:
            source.close()
        raise
    return sources


def install_signal_handlers(scheduler: Scheduler) -> Dict[int, object]:
    """Route SIGINT/SIGTERM to ``stop()`` and SIGUSR1 to ``request_flush()``.

    Returns the previous handlers so they can be restored.
    """
    handlers = {
        signal.SIGINT: lambda signum, frame: scheduler.stop(),
        signal.SIGTERM: lambda signum, frame: scheduler.stop(),
        signal.SIGUSR1: lambda signum, frame: scheduler.request_flush(),
    }
    return {signum: signal.signal(signum, handler) for signum, handler in handlers.items()}


def restore_signal_handlers(previous: Dict[int, object]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log)

    try:
        config = build_config(args)
    except ConfigurationError as exc:
        LOG.error("Invalid configuration: %s", exc)
        return 1

    pid_file = None
    if config.pid_file is not None:
        try:
            pid_file = PidFile.create(config.pid_file)
        except PidFileError as exc:
            LOG.error("%s", exc)
            return 1

    try:
        try:
            sources = build_trace_sources(config)
        except MonitorError as exc:
            LOG.error("Startup failed: %s", exc)
            return 1
        if not sources:
            LOG.error("No trace sources enabled.")
            return 1

        scheduler = Scheduler(sources, config.monitor_period_ns)
        previous_handlers = install_signal_handlers(scheduler)
        try:
            scheduler.run()
        finally:
            restore_signal_handlers(previous_handlers)
        LOG.info("Monitor stopped cleanly.")
    finally:
        if pid_file is not None:
            pid_file.remove()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
