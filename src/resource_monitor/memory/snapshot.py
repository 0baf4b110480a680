from typing import Sequence

import numpy as np


class SnapshotBuffer:
    """
    Double-buffered per-device counter storage.

    ``previous`` holds the last reported snapshot and ``current`` the one being
    filled by the running poll. Both are ``uint64`` arrays of shape
    ``(device_count, field_count)``; subtraction wraps modulo 2**64, so a
    counter that went backwards shows up as a huge delta rather than an error.
    """

    def __init__(self, device_count: int, field_count: int):
        if device_count < 0:
            raise ValueError("Device count must not be negative")
        if field_count <= 0:
            raise ValueError("Field count must be positive")
        self.field_count = field_count
        self.previous = np.zeros((device_count, field_count), dtype=np.uint64)
        self.current = np.zeros((device_count, field_count), dtype=np.uint64)

    @property
    def device_count(self) -> int:
        return self.current.shape[0]

    def store(self, ordinal: int, values: Sequence[int]) -> None:
        """
        Writes one device's raw values into the ``current`` slot.

        Args:
            ordinal (int): Row of the device in the active device table.
            values (Sequence[int]): Exactly ``field_count`` counters.
        """
        if len(values) != self.field_count:
            raise ValueError(
                f"Expected {self.field_count} values, got {len(values)}"
            )
        self.current[ordinal] = [int(value) & 0xFFFFFFFFFFFFFFFF for value in values]

    def deltas(self) -> np.ndarray:
        """Returns ``current - previous`` as unsigned 64-bit values."""
        return self.current - self.previous

    def signed_deltas(self) -> np.ndarray:
        """Returns ``current - previous`` reinterpreted as signed 64-bit values."""
        return (self.current - self.previous).view(np.int64)

    def swap(self) -> None:
        """Exchanges the two slots without copying."""
        self.previous, self.current = self.current, self.previous

    def reset(self, device_count: int) -> None:
        """Reallocates both slots for a new device table, zero-filled."""
        self.previous = np.zeros((device_count, self.field_count), dtype=np.uint64)
        self.current = np.zeros((device_count, self.field_count), dtype=np.uint64)

    def __len__(self) -> int:
        return self.device_count
