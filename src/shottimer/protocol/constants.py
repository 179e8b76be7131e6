"""Protocol constants for the Nordic UART shot timer service."""

from __future__ import annotations

from typing import Final

# Nordic UART service
UART_SERVICE_UUID: Final = "6E400001-B5A3-F393-E0A9-E50E24DCCA9E"
UART_RX_CHARACTERISTIC_UUID: Final = "6E400002-B5A3-F393-E0A9-E50E24DCCA9E"  # write
UART_TX_CHARACTERISTIC_UUID: Final = "6E400003-B5A3-F393-E0A9-E50E24DCCA9E"  # notify

# Frame layout
MIN_FRAME_LENGTH: Final = 14  # byte 0 is reserved, 1-13 carry shot data

# Text commands understood by the timer firmware
COMMAND_START: Final = "COM START"
COMMAND_STOP: Final = "COM STOP"


def normalize_uuid(uuid: str) -> str:
    """Return the lower-case form used for UUID comparisons."""
    return uuid.lower()
