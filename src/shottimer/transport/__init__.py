"""BLE transport layer."""

from .base import LinkCallbacks, Transport
from .bleak_transport import BleakTransport

__all__ = ["BleakTransport", "LinkCallbacks", "Transport"]
