"""Discovered peripheral handles."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DeviceHandle:
    """Identifier and display name of a discovered peripheral.

    Attributes:
        identifier: Stable platform identifier (MAC address or CoreBluetooth UUID)
        name: Advertised name, if any
        details: Platform object backing the handle (e.g. bleak's BLEDevice)
    """
    identifier: str
    name: str | None = None
    details: Any = field(default=None, compare=False, repr=False)

    @property
    def display_name(self) -> str:
        return self.name or "Unknown"


class DeviceRegistry:
    """Ordered collection of the handles discovered during one session."""

    def __init__(self) -> None:
        self._devices: dict[str, DeviceHandle] = {}

    def add(self, handle: DeviceHandle) -> bool:
        """Register a handle.

        Returns:
            True if the identifier was not known before
        """
        if handle.identifier in self._devices:
            return False
        self._devices[handle.identifier] = handle
        return True

    def get(self, identifier: str) -> DeviceHandle | None:
        return self._devices.get(identifier)

    def clear(self) -> None:
        self._devices.clear()

    def __contains__(self, handle: object) -> bool:
        if isinstance(handle, DeviceHandle):
            return handle.identifier in self._devices
        return handle in self._devices

    def __iter__(self) -> Iterator[DeviceHandle]:
        return iter(list(self._devices.values()))

    def __len__(self) -> int:
        return len(self._devices)
