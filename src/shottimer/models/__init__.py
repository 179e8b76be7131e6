"""Data models for shot timer sessions."""

from .device import DeviceHandle, DeviceRegistry
from .enums import AdapterState, LinkStateKind, ShotState
from .link_state import CharacteristicSet, LinkState
from .shot import ShotFrame

__all__ = [
    "AdapterState",
    "CharacteristicSet",
    "DeviceHandle",
    "DeviceRegistry",
    "LinkState",
    "LinkStateKind",
    "ShotFrame",
    "ShotState",
]
