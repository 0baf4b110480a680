import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from resource_monitor.exceptions import ConfigurationError

NANOSECONDS_PER_MILLISECOND = 1_000_000
MIN_WRITE_BUFFER_SIZE = 64


@dataclass
class MonitorConfig:
    """Configuration for the resource monitor."""

    output_directory: Path = Path(".")
    monitor_interval_ms: int = 100
    pid_file: Optional[Path] = Path("/tmp/resource-monitor.pid")
    enable_cpu_monitoring: bool = True
    enable_memory_monitoring: bool = True
    enable_network_monitoring: bool = True
    enable_disk_monitoring: bool = True
    enable_gpu_monitoring: bool = True
    compression: str = "none"
    write_buffer_size: int = 4 * 4096
    host_id: Optional[str] = None
    proc_root: Path = Path("/proc")
    gpu_pcie_throughput: bool = False

    def __post_init__(self):
        self.output_directory = Path(self.output_directory)
        self.proc_root = Path(self.proc_root)
        if self.pid_file is not None:
            self.pid_file = Path(self.pid_file)
        if int(self.monitor_interval_ms) <= 0:
            raise ConfigurationError("Monitoring interval must be a positive integer")
        if self.compression not in ["none", "lz4", "zstd"]:
            raise ConfigurationError("Compression must be 'none', 'lz4', or 'zstd'")
        if self.write_buffer_size < MIN_WRITE_BUFFER_SIZE:
            raise ConfigurationError(
                f"Write buffer must hold at least {MIN_WRITE_BUFFER_SIZE} bytes"
            )
        if self.host_id is not None and ("/" in self.host_id or not self.host_id):
            raise ConfigurationError("Host identifier must be a non-empty file name part")

    @classmethod
    def default(cls) -> "MonitorConfig":
        """Every collector, 100 ms period, raw trace files."""
        return cls()

    @classmethod
    def fine_grained(cls) -> "MonitorConfig":
        """10 ms period for short, detailed captures."""
        return cls(monitor_interval_ms=10)

    @classmethod
    def low_overhead(cls) -> "MonitorConfig":
        """One sample per second, Zstd-compressed trace files."""
        return cls(monitor_interval_ms=1000, compression="zstd")

    @property
    def monitor_period_ns(self) -> int:
        return int(self.monitor_interval_ms) * NANOSECONDS_PER_MILLISECOND

    def resolved_host_id(self) -> str:
        """Host identifier used in trace file names."""
        return self.host_id or socket.gethostname()

    def with_interval(self, interval_ms: int) -> "MonitorConfig":
        """Override the sampling interval.

        Args:
            interval_ms: Milliseconds between consecutive samples

        Returns:
            Self for method chaining
        """
        if interval_ms <= 0:
            raise ConfigurationError("Monitoring interval must be a positive integer")
        self.monitor_interval_ms = interval_ms
        return self

    def with_compression(self, algo: str) -> "MonitorConfig":
        """Override trace file compression.

        Args:
            algo: Compression algorithm ('none', 'lz4', 'zstd')

        Returns:
            Self for method chaining
        """
        if algo not in ["none", "lz4", "zstd"]:
            raise ConfigurationError("Compression must be 'none', 'lz4', or 'zstd'")
        self.compression = algo
        return self

    def with_output_directory(self, directory: Path) -> "MonitorConfig":
        """Override the trace output directory.

        Args:
            directory: Existing directory to write trace files into

        Returns:
            Self for method chaining
        """
        self.output_directory = Path(directory)
        return self
