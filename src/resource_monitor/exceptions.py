"""Custom exceptions used by the resource_monitor package."""


class MonitorError(RuntimeError):
    """Base class for resource monitor errors."""


class ConfigurationError(MonitorError, ValueError):
    """Raised when monitor options are invalid."""


class SinkOpenError(MonitorError):
    """Raised when a trace output file cannot be created."""


class PidFileError(MonitorError):
    """Raised when the PID file cannot be created."""


class SourceUnavailableError(MonitorError):
    """Raised when a kernel-exposed source cannot be read for one poll."""


class CollectorRuntimeError(MonitorError):
    """Raised when collectors encounter runtime errors sampling data."""


class TraceDecodeError(MonitorError, ValueError):
    """Raised when a trace file contains bytes no encoder would produce."""


class TruncatedRecordError(TraceDecodeError):
    """Raised when a trace file ends in the middle of a record."""
