import logging
from typing import BinaryIO, Optional, Sequence

from resource_monitor.core.messages import (
    MessageType,
    encode_device_list,
    encode_metrics,
    encode_record,
    encode_totals,
)
from resource_monitor.memory.write_buffer import WriteBuffer

LOG = logging.getLogger(__name__)


class TraceWriter:
    """Buffered, record-aligned writer for one trace file."""

    def __init__(
        self,
        sink: BinaryIO,
        buffer_size: int = 4 * 4096,
        name: str = "",
    ):
        """Bind the writer to an open binary sink.

        The buffer is flushed in full right before a record that would not
        fit, so a flush boundary never falls inside a record.
        """
        self.sink: Optional[BinaryIO] = sink
        self.write_buffer = WriteBuffer(buffer_size)
        self.name = name
        self.records_written = 0
        self.bytes_written = 0

    @property
    def closed(self) -> bool:
        return self.sink is None

    def write_record(self, timestamp: int, message_type: MessageType, payload: bytes) -> None:
        """Append one framed record."""
        if self.sink is None:
            raise RuntimeError(f"Trace writer {self.name!r} is closed.")
        record = encode_record(timestamp, message_type, payload)
        if not self.write_buffer.fits(len(record)):
            self.flush()
        if len(record) > self.write_buffer.capacity:
            self._write_through(record)
        else:
            self.write_buffer.put(record)
        self.records_written += 1
        LOG.debug(
            "%s: %s record at t=%d (%d bytes)",
            self.name,
            message_type.name,
            timestamp,
            len(record),
        )

    def write_device_list(self, timestamp: int, names: Sequence[str]) -> None:
        self.write_record(timestamp, MessageType.DEVICE_LIST, encode_device_list(names))

    def write_metrics(
        self, timestamp: int, rows: Sequence[Sequence[int]], signed: bool = False
    ) -> None:
        self.write_record(timestamp, MessageType.METRICS, encode_metrics(rows, signed=signed))

    def write_totals(self, timestamp: int, mem_total: int, swap_total: int) -> None:
        self.write_record(timestamp, MessageType.TOTALS, encode_totals(mem_total, swap_total))

    def flush(self) -> None:
        """Hand every buffered byte to the sink."""
        if self.sink is None:
            return
        data = self.write_buffer.drain()
        if data:
            self._write_through(data)
        self.sink.flush()

    def close(self) -> None:
        """Flush and close the sink. Safe to call more than once."""
        if self.sink is None:
            return
        try:
            self.flush()
        finally:
            self.sink.close()
            self.sink = None

    def _write_through(self, data: bytes) -> None:
        assert self.sink is not None
        view = memoryview(data)
        while view:
            written = self.sink.write(view)
            # Raw unbuffered files may accept only part of the data.
            if written is None:
                written = len(view)
            view = view[written:]
        self.bytes_written += len(data)
