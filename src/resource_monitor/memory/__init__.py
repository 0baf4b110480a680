from .snapshot import SnapshotBuffer
from .write_buffer import WriteBuffer

__all__ = ["SnapshotBuffer", "WriteBuffer"]
