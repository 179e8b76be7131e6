"""Link lifecycle state values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .device import DeviceHandle
from .enums import LinkStateKind


@dataclass(frozen=True)
class LinkState:
    """Current stage of a device session.

    ``device`` is set while a device is attached to the session and
    ``reason`` only for FAILED.
    """
    kind: LinkStateKind
    device: DeviceHandle | None = None
    reason: str | None = None

    @classmethod
    def idle(cls) -> LinkState:
        return cls(LinkStateKind.IDLE)

    @classmethod
    def failed(cls, reason: str, device: DeviceHandle | None = None) -> LinkState:
        return cls(LinkStateKind.FAILED, device=device, reason=reason)

    def __str__(self) -> str:
        if self.reason:
            return f"{self.kind.value}({self.reason})"
        return self.kind.value


@dataclass
class CharacteristicSet:
    """UART characteristics resolved during negotiation.

    ``rx`` is the write target, ``tx`` the notification source.
    """
    rx: Any = None
    tx: Any = None

    @property
    def is_complete(self) -> bool:
        return self.rx is not None and self.tx is not None

    def clear(self) -> None:
        self.rx = None
        self.tx = None
