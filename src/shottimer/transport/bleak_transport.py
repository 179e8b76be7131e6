"""Transport capability implemented with bleak."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from functools import partial
from typing import TYPE_CHECKING, Any

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..models.device import DeviceHandle
from ..models.enums import AdapterState
from .base import LinkCallbacks

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.scanner import AdvertisementData
    from bleak.backends.service import BleakGATTService

_LOGGER = logging.getLogger(__name__)


class BleakTransport:
    """Runs transport requests as tasks on the running asyncio loop.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Writes are serialized in request order
    - Notifications are forwarded in arrival order

    Every request must be made from the event loop thread.
    """

    def __init__(
            self,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
            adapter: str | None = None,
    ):
        """Initialize bleak transport.

        Args:
            timeout: Connection and address lookup timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
            adapter: Bluetooth adapter to scan with, e.g. "hci0" (default: system default)
        """
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache
        self.adapter = adapter

        self._callbacks: LinkCallbacks | None = None
        self._scanner: BleakScanner | None = None
        self._client: BleakClient | None = None
        self._link_session: int | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._write_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[Any]] = set()

    def bind(self, callbacks: LinkCallbacks) -> None:
        self._callbacks = callbacks

    async def start(self) -> None:
        """Report the adapter as powered on.

        bleak has no adapter state query; a failing scan later reports the
        adapter as powered off.
        """
        self._require_callbacks().handle_adapter_state(AdapterState.POWERED_ON)

    async def close(self) -> None:
        """Stop scanning, cancel pending work and drop the link."""
        if self._scanner is not None:
            scanner, self._scanner = self._scanner, None
            await self._stop_scanner(scanner)

        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
        # Let in-flight disconnects and writes finish
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if self._client is not None:
            client, self._client = self._client, None
            self._link_session = None
            try:
                await client.disconnect()
            except BleakError as e:
                _LOGGER.warning("Error during disconnect: %s", e)

    # Transport requests

    def scan(self, service_uuid: str) -> None:
        if self._scanner is not None:
            return
        kwargs: dict[str, Any] = {}
        if self.adapter:
            kwargs["adapter"] = self.adapter
        self._scanner = BleakScanner(
            detection_callback=self._detection_callback,
            service_uuids=[service_uuid],
            **kwargs,
        )
        self._spawn(self._start_scanner(self._scanner))

    def stop_scan(self) -> None:
        if self._scanner is None:
            return
        scanner, self._scanner = self._scanner, None
        self._spawn(self._stop_scanner(scanner))

    def connect(self, session: int, device: DeviceHandle) -> None:
        self._connect_task = self._spawn(self._connect(session, device))

    def disconnect(self, session: int, device: DeviceHandle) -> None:
        if self._connect_task is not None and not self._connect_task.done():
            _LOGGER.debug("Cancelling pending connection to %s", device.identifier)
            self._connect_task.cancel()
        if self._client is not None:
            client, self._client = self._client, None
            self._spawn(self._disconnect(session, client))

    def discover_services(self, session: int, service_uuid: str) -> None:
        self._spawn(self._discover_services(session, service_uuid))

    def discover_characteristics(self, session: int, service: BleakGATTService) -> None:
        self._spawn(self._discover_characteristics(session, service))

    def subscribe(self, session: int, characteristic: BleakGATTCharacteristic) -> None:
        self._spawn(self._subscribe(session, characteristic))

    def write(self, session: int, characteristic: BleakGATTCharacteristic, data: bytes) -> None:
        self._spawn(self._write(session, characteristic, data))

    # Request implementations

    async def _start_scanner(self, scanner: BleakScanner) -> None:
        try:
            await scanner.start()
        except BleakError as e:
            _LOGGER.warning("Failed to start scanning: %s", e)
            if self._scanner is scanner:
                self._scanner = None
            self._require_callbacks().handle_adapter_state(AdapterState.POWERED_OFF)
            return
        _LOGGER.debug("Scanning started")

    async def _stop_scanner(self, scanner: BleakScanner) -> None:
        try:
            await scanner.stop()
        except BleakError as e:
            _LOGGER.warning("Error stopping scanner: %s", e)

    async def _connect(self, session: int, device: DeviceHandle) -> None:
        callbacks = self._require_callbacks()
        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                device.identifier,
                self.max_attempts,
            )

            # Resolve the address to a BLEDevice if the handle has none
            if isinstance(device.details, BLEDevice):
                ble_device = device.details
            else:
                ble_device = await BleakScanner.find_device_by_address(
                    device.identifier,
                    timeout=self.timeout,
                )
                if ble_device is None:
                    callbacks.handle_connect_failed(
                        session, f"Device {device.identifier} not found during scan"
                    )
                    return

            client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=ble_device,
                name=device.display_name,
                disconnected_callback=partial(self._disconnected_callback, session),
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            callbacks.handle_connect_failed(session, f"Connection timeout after {self.timeout}s")
            return
        except BleakError as e:
            callbacks.handle_connect_failed(session, str(e) or type(e).__name__)
            return

        self._client = client
        self._link_session = session
        callbacks.handle_connected(session)

    async def _disconnect(self, session: int, client: BleakClient) -> None:
        try:
            _LOGGER.debug("Disconnecting from %s", client.address)
            await client.disconnect()
        except BleakError as e:
            _LOGGER.warning("Error during disconnect: %s", e)
        self._report_disconnected(session)

    async def _discover_services(self, session: int, service_uuid: str) -> None:
        client = self._client
        if client is None or not client.is_connected:
            self._require_callbacks().handle_services_discovered(session, {}, error="Not connected")
            return

        services = {service.uuid: service for service in client.services}
        _LOGGER.debug("Services discovered: %s", ", ".join(services) or "none")
        self._require_callbacks().handle_services_discovered(session, services)

    async def _discover_characteristics(self, session: int, service: BleakGATTService) -> None:
        characteristics = {char.uuid: char for char in service.characteristics}
        _LOGGER.debug("Characteristics discovered: %s", ", ".join(characteristics) or "none")
        self._require_callbacks().handle_characteristics_discovered(session, characteristics)

    async def _subscribe(self, session: int, characteristic: BleakGATTCharacteristic) -> None:
        client = self._client
        callbacks = self._require_callbacks()
        if client is None:
            callbacks.handle_subscribed(session, error="Not connected")
            return
        try:
            await client.start_notify(
                characteristic,
                partial(self._notification_callback, session),
            )
        except BleakError as e:
            callbacks.handle_subscribed(session, error=str(e))
            return
        _LOGGER.debug("Notifications started")
        callbacks.handle_subscribed(session)

    async def _write(self, session: int, characteristic: BleakGATTCharacteristic, data: bytes) -> None:
        callbacks = self._require_callbacks()
        async with self._write_lock:
            client = self._client
            if client is None:
                callbacks.handle_write_result(session, error="Not connected")
                return
            try:
                await client.write_gatt_char(characteristic, data, response=True)
            except BleakError as e:
                callbacks.handle_write_result(session, error=str(e))
                return
        callbacks.handle_write_result(session)

    # bleak callbacks

    def _detection_callback(self, device: BLEDevice, advertisement_data: AdvertisementData) -> None:
        handle = DeviceHandle(
            identifier=device.address,
            name=device.name or advertisement_data.local_name,
            details=device,
        )
        self._require_callbacks().handle_device_discovered(handle)

    def _disconnected_callback(self, session: int, client: BleakClient) -> None:
        if self._link_session == session:
            self._client = None
        self._report_disconnected(session)

    def _notification_callback(
            self,
            session: int,
            sender: BleakGATTCharacteristic,
            data: bytearray,
    ) -> None:
        self._require_callbacks().handle_notification(session, sender.uuid, bytes(data))

    # Helpers

    def _report_disconnected(self, session: int) -> None:
        # bleak may report a requested disconnect through both paths
        if self._link_session != session:
            return
        self._link_session = None
        self._require_callbacks().handle_disconnected(session)

    def _require_callbacks(self) -> LinkCallbacks:
        if self._callbacks is None:
            raise RuntimeError("Transport is not bound to a state machine")
        return self._callbacks

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
