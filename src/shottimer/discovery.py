"""One-shot discovery of shot timers."""

from __future__ import annotations

import logging

from bleak import BleakScanner
from bleak.exc import BleakError

from .exceptions import TransportUnavailableError
from .models.device import DeviceHandle
from .protocol import UART_SERVICE_UUID

_LOGGER = logging.getLogger(__name__)


async def discover_devices(
        timeout: float = 10.0,
        name_filter: str | None = None,
) -> list[DeviceHandle]:
    """Scan for peripherals advertising the UART service.

    Args:
        timeout: Scan duration in seconds (default: 10)
        name_filter: Optional case-insensitive substring the name must contain

    Returns:
        Discovered devices in the order they were first seen

    Raises:
        TransportUnavailableError: If the Bluetooth adapter cannot scan
    """
    _LOGGER.debug("Scanning for %.1fs", timeout)
    try:
        found = await BleakScanner.discover(
            timeout=timeout,
            service_uuids=[UART_SERVICE_UUID],
        )
    except BleakError as e:
        raise TransportUnavailableError(f"Bluetooth unavailable: {e}") from e

    devices: list[DeviceHandle] = []
    for ble_device in found:
        name = ble_device.name
        if name_filter and name_filter.lower() not in (name or "").lower():
            continue
        devices.append(DeviceHandle(identifier=ble_device.address, name=name, details=ble_device))

    _LOGGER.info("Found %d device(s)", len(devices))
    return devices
