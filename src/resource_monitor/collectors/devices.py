"""
Device tables: the ordered set of devices a trace source reports on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence, Tuple


@dataclass(frozen=True)
class Device:
    name: str
    ordinal: int


class DeviceTable:
    """Immutable, ordered device list for one epoch of a trace source.

    A changed enumeration never edits a table; the source builds a new one.
    """

    __slots__ = ("_devices", "epoch")

    def __init__(self, names: Iterable[str], epoch: int = 0) -> None:
        devices = tuple(Device(name=name, ordinal=index) for index, name in enumerate(names))
        seen = set()
        for device in devices:
            if device.name in seen:
                raise ValueError(f"Duplicate device name {device.name!r}")
            seen.add(device.name)
        self._devices: Tuple[Device, ...] = devices
        self.epoch = epoch

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(device.name for device in self._devices)

    def matches(self, names: Sequence[str]) -> bool:
        """True when ``names`` lists exactly this table's devices, in order."""
        if len(names) != len(self._devices):
            return False
        return all(device.name == name for device, name in zip(self._devices, names))

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[Device]:
        return iter(self._devices)

    def __getitem__(self, ordinal: int) -> Device:
        return self._devices[ordinal]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DeviceTable):
            return NotImplemented
        return self._devices == other._devices

    def __hash__(self) -> int:
        return hash(self._devices)

    def __repr__(self) -> str:
        return f"DeviceTable(epoch={self.epoch}, names={list(self.names)!r})"
