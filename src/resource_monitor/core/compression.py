from abc import ABC, abstractmethod
from typing import BinaryIO

import lz4.frame
import zstandard as zstd


class CompressionStrategy(ABC):
    """Wraps trace files in an optional streaming compressor."""

    suffix: str = ""

    @abstractmethod
    def open_writer(self, path: str) -> BinaryIO: ...

    @abstractmethod
    def read_all(self, path: str) -> bytes: ...


class NoneStrategy(CompressionStrategy):
    """Raw passthrough: the file holds the trace records as written."""

    def open_writer(self, path: str) -> BinaryIO:
        # Records are already batched by the trace writer's own buffer.
        return open(path, "wb", buffering=0)

    def read_all(self, path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()


class LZ4Strategy(CompressionStrategy):
    suffix = ".lz4"

    def __init__(self, compression_level: int = 1):
        self.compression_level = compression_level

    def open_writer(self, path: str) -> BinaryIO:
        return lz4.frame.open(path, mode="wb", compression_level=self.compression_level)

    def read_all(self, path: str) -> bytes:
        with lz4.frame.open(path, mode="rb") as f:
            return f.read()


class ZstdStrategy(CompressionStrategy):
    suffix = ".zst"

    def __init__(self, compression_level: int = 3):
        self.cctx = zstd.ZstdCompressor(level=compression_level)
        self.dctx = zstd.ZstdDecompressor()

    def open_writer(self, path: str) -> BinaryIO:
        raw = open(path, "wb")
        try:
            return self.cctx.stream_writer(raw, closefd=True, write_return_read=True)
        except Exception:
            raw.close()
            raise

    def read_all(self, path: str) -> bytes:
        with open(path, "rb") as f:
            with self.dctx.stream_reader(f) as reader:
                return reader.readall()


class SinkCompressionManager:
    """Looks up the compression strategy for trace sinks by name."""

    def __init__(self):
        self.strategies = {
            "none": NoneStrategy(),
            "lz4": LZ4Strategy(),
            "zstd": ZstdStrategy(),
        }

    def get(self, name: str) -> CompressionStrategy:
        if name not in self.strategies:
            raise ValueError(f"Unsupported compression strategy: {name}")
        return self.strategies[name]
