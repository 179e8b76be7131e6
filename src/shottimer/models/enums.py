from __future__ import annotations

from enum import Enum, IntEnum


class ShotState(IntEnum):
    """Timer state carried in byte 1 of every shot frame.

    Values are the raw wire codes.
    """
    ACTIVE = 0x03
    START = 0x05
    STOPPED = 0x08


class LinkStateKind(Enum):
    """Lifecycle stages of one device session."""
    IDLE = "idle"
    CONNECTING = "connecting"
    DISCOVERING_SERVICES = "discovering_services"
    DISCOVERING_CHARACTERISTICS = "discovering_characteristics"
    SUBSCRIBING_NOTIFICATIONS = "subscribing_notifications"
    READY = "ready"
    DISCONNECTING = "disconnecting"
    DISCONNECTED = "disconnected"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """True once the session is over and a new connect may start."""
        return self in _TERMINAL_KINDS

    @property
    def is_negotiating(self) -> bool:
        """True while the link is being set up but is not yet usable."""
        return self in _NEGOTIATING_KINDS


_TERMINAL_KINDS = frozenset({
    LinkStateKind.DISCONNECTED,
    LinkStateKind.UNSUPPORTED,
    LinkStateKind.FAILED,
})

_NEGOTIATING_KINDS = frozenset({
    LinkStateKind.CONNECTING,
    LinkStateKind.DISCOVERING_SERVICES,
    LinkStateKind.DISCOVERING_CHARACTERISTICS,
    LinkStateKind.SUBSCRIBING_NOTIFICATIONS,
})


class AdapterState(Enum):
    """Bluetooth radio availability as reported by the platform."""
    UNKNOWN = "unknown"
    RESETTING = "resetting"
    UNSUPPORTED = "unsupported"
    UNAUTHORIZED = "unauthorized"
    POWERED_OFF = "powered_off"
    POWERED_ON = "powered_on"

    @property
    def is_available(self) -> bool:
        return self is AdapterState.POWERED_ON
