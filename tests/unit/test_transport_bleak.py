"""Test the bleak transport against fake bleak objects."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from bleak.exc import BleakError

from shottimer.models.device import DeviceHandle
from shottimer.models.enums import AdapterState
from shottimer.protocol import (
    UART_RX_CHARACTERISTIC_UUID,
    UART_SERVICE_UUID,
    UART_TX_CHARACTERISTIC_UUID,
)
from shottimer.transport import bleak_transport
from shottimer.transport.bleak_transport import BleakTransport

RX = SimpleNamespace(uuid=UART_RX_CHARACTERISTIC_UUID.lower())
TX = SimpleNamespace(uuid=UART_TX_CHARACTERISTIC_UUID.lower())
UART = SimpleNamespace(uuid=UART_SERVICE_UUID.lower(), characteristics=[RX, TX])


class _RecordingCallbacks:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def __getattr__(self, name):
        if not name.startswith("handle_"):
            raise AttributeError(name)

        def record(*args, **kwargs):
            self.calls.append((name, *args, *kwargs.values()))

        return record

    def named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


class _FakeClient:
    def __init__(self, disconnected_callback=None) -> None:
        self.address = "AA:BB:CC:DD:EE:FF"
        self.is_connected = True
        self.services = [UART]
        self.written: list[tuple] = []
        self.notify_handler = None
        self.write_error: Exception | None = None
        self.notify_error: Exception | None = None
        self._disconnected_callback = disconnected_callback

    async def start_notify(self, characteristic, handler) -> None:
        if self.notify_error:
            raise self.notify_error
        self.notify_handler = handler

    async def write_gatt_char(self, characteristic, data, response) -> None:
        if self.write_error:
            raise self.write_error
        self.written.append((characteristic, bytes(data), response))

    async def disconnect(self) -> None:
        self.is_connected = False
        if self._disconnected_callback:
            self._disconnected_callback(self)


class _FakeScanner:
    instances: list[_FakeScanner] = []
    start_error: Exception | None = None
    found: object | None = object()

    def __init__(self, detection_callback=None, service_uuids=None, **kwargs) -> None:
        self.detection_callback = detection_callback
        self.service_uuids = service_uuids
        self.kwargs = kwargs
        self.running = False
        _FakeScanner.instances.append(self)

    async def start(self) -> None:
        if _FakeScanner.start_error:
            raise _FakeScanner.start_error
        self.running = True

    async def stop(self) -> None:
        self.running = False

    @classmethod
    async def find_device_by_address(cls, address, timeout):
        return cls.found


@pytest.fixture
def fake_bleak(monkeypatch):
    """Replace bleak entry points used by the transport."""
    state = SimpleNamespace(client=None, connect_kwargs=None, connect_error=None)

    async def fake_establish_connection(**kwargs):
        state.connect_kwargs = kwargs
        if state.connect_error:
            raise state.connect_error
        state.client = _FakeClient(kwargs["disconnected_callback"])
        return state.client

    _FakeScanner.instances = []
    _FakeScanner.start_error = None
    _FakeScanner.found = object()
    monkeypatch.setattr(bleak_transport, "establish_connection", fake_establish_connection)
    monkeypatch.setattr(bleak_transport, "BleakScanner", _FakeScanner)
    return state


@pytest.fixture
def callbacks() -> _RecordingCallbacks:
    return _RecordingCallbacks()


@pytest.fixture
def transport(callbacks) -> BleakTransport:
    link = BleakTransport(timeout=1.0, max_attempts=2)
    link.bind(callbacks)
    return link


async def _drain(transport: BleakTransport) -> None:
    while transport._tasks:
        await asyncio.gather(*list(transport._tasks))


DEVICE = DeviceHandle(identifier="AA:BB:CC:DD:EE:FF", name="AMG Lab COMMANDER")


async def _connected(transport: BleakTransport, session: int = 1) -> None:
    transport.connect(session, DEVICE)
    await _drain(transport)


class TestScan:
    """Test scanning and adapter reporting."""

    @pytest.mark.asyncio
    async def test_start_reports_powered_on(self, transport, callbacks):
        """start() reports a powered-on adapter."""
        await transport.start()
        assert callbacks.named("handle_adapter_state") == [
            ("handle_adapter_state", AdapterState.POWERED_ON)
        ]

    @pytest.mark.asyncio
    async def test_scan_filters_on_service(self, transport, fake_bleak):
        """scan() starts one scanner filtered by the service UUID."""
        transport.scan(UART_SERVICE_UUID)
        transport.scan(UART_SERVICE_UUID)
        await _drain(transport)

        assert len(_FakeScanner.instances) == 1
        assert _FakeScanner.instances[0].service_uuids == [UART_SERVICE_UUID]
        assert _FakeScanner.instances[0].running is True

    @pytest.mark.asyncio
    async def test_detection_reports_device(self, transport, callbacks, fake_bleak):
        """Advertisements become DeviceHandles carrying the bleak device."""
        transport.scan(UART_SERVICE_UUID)
        await _drain(transport)
        ble_device = SimpleNamespace(address="11:22:33:44:55:66", name=None)

        _FakeScanner.instances[0].detection_callback(
            ble_device, SimpleNamespace(local_name="AMG Timer")
        )

        (call,) = callbacks.named("handle_device_discovered")
        handle = call[1]
        assert handle.identifier == "11:22:33:44:55:66"
        assert handle.name == "AMG Timer"
        assert handle.details is ble_device

    @pytest.mark.asyncio
    async def test_scan_failure_reports_powered_off(self, transport, callbacks, fake_bleak):
        """A scanner that cannot start reports the adapter as off."""
        _FakeScanner.start_error = BleakError("No Bluetooth adapters found.")

        transport.scan(UART_SERVICE_UUID)
        await _drain(transport)

        assert callbacks.named("handle_adapter_state") == [
            ("handle_adapter_state", AdapterState.POWERED_OFF)
        ]

    @pytest.mark.asyncio
    async def test_stop_scan(self, transport, fake_bleak):
        """stop_scan() stops the running scanner."""
        transport.scan(UART_SERVICE_UUID)
        await _drain(transport)

        transport.stop_scan()
        await _drain(transport)

        assert _FakeScanner.instances[0].running is False


class TestConnect:
    """Test connection handling."""

    @pytest.mark.asyncio
    async def test_connect_success(self, transport, callbacks, fake_bleak):
        """A successful connection reports connected with the session token."""
        await _connected(transport, session=7)

        assert callbacks.named("handle_connected") == [("handle_connected", 7)]
        assert fake_bleak.connect_kwargs["max_attempts"] == 2
        assert fake_bleak.connect_kwargs["use_services_cache"] is True

    @pytest.mark.asyncio
    async def test_connect_device_not_found(self, transport, callbacks, fake_bleak):
        """An address that cannot be resolved reports a connect failure."""
        _FakeScanner.found = None

        await _connected(transport, session=3)

        (call,) = callbacks.named("handle_connect_failed")
        assert call[1] == 3
        assert "not found" in call[2]

    @pytest.mark.asyncio
    async def test_connect_error(self, transport, callbacks, fake_bleak):
        """bleak errors are reported, not raised."""
        fake_bleak.connect_error = BleakError("le-connection-abort-by-local")

        await _connected(transport)

        assert callbacks.named("handle_connect_failed") == [
            ("handle_connect_failed", 1, "le-connection-abort-by-local")
        ]

    @pytest.mark.asyncio
    async def test_connect_timeout(self, transport, callbacks, fake_bleak):
        """Timeouts are reported as connect failures."""
        fake_bleak.connect_error = asyncio.TimeoutError()

        await _connected(transport)

        (call,) = callbacks.named("handle_connect_failed")
        assert "timeout" in call[2]

    @pytest.mark.asyncio
    async def test_disconnect_reports_once(self, transport, callbacks, fake_bleak):
        """A requested disconnect is reported once even if bleak also calls back."""
        await _connected(transport)

        transport.disconnect(1, DEVICE)
        await _drain(transport)

        assert callbacks.named("handle_disconnected") == [("handle_disconnected", 1)]

    @pytest.mark.asyncio
    async def test_link_loss_reported(self, transport, callbacks, fake_bleak):
        """An unexpected disconnect is reported with the session token."""
        await _connected(transport, session=4)

        fake_bleak.connect_kwargs["disconnected_callback"](fake_bleak.client)

        assert callbacks.named("handle_disconnected") == [("handle_disconnected", 4)]

    @pytest.mark.asyncio
    async def test_disconnect_without_link(self, transport, callbacks, fake_bleak):
        """Disconnecting with nothing connected is harmless."""
        transport.disconnect(1, DEVICE)
        await _drain(transport)

        assert callbacks.calls == []


class TestGatt:
    """Test service, characteristic, notification and write handling."""

    @pytest.mark.asyncio
    async def test_discover_services(self, transport, callbacks, fake_bleak):
        """Services are reported keyed by UUID."""
        await _connected(transport)

        transport.discover_services(1, UART_SERVICE_UUID)
        await _drain(transport)

        (call,) = callbacks.named("handle_services_discovered")
        assert call[1] == 1
        assert call[2] == {UART_SERVICE_UUID.lower(): UART}

    @pytest.mark.asyncio
    async def test_discover_services_not_connected(self, transport, callbacks, fake_bleak):
        """Service discovery without a link reports an error."""
        transport.discover_services(1, UART_SERVICE_UUID)
        await _drain(transport)

        (call,) = callbacks.named("handle_services_discovered")
        assert call[2] == {}
        assert call[3] == "Not connected"

    @pytest.mark.asyncio
    async def test_discover_characteristics(self, transport, callbacks, fake_bleak):
        """Characteristics are reported keyed by UUID."""
        await _connected(transport)

        transport.discover_characteristics(1, UART)
        await _drain(transport)

        (call,) = callbacks.named("handle_characteristics_discovered")
        assert call[2] == {RX.uuid: RX, TX.uuid: TX}

    @pytest.mark.asyncio
    async def test_subscribe_forwards_notifications(self, transport, callbacks, fake_bleak):
        """Notifications are forwarded as bytes with the sender UUID."""
        await _connected(transport, session=2)

        transport.subscribe(2, TX)
        await _drain(transport)
        fake_bleak.client.notify_handler(TX, bytearray(b"\x00\x03"))

        assert callbacks.named("handle_subscribed") == [("handle_subscribed", 2)]
        assert callbacks.named("handle_notification") == [
            ("handle_notification", 2, TX.uuid, b"\x00\x03")
        ]

    @pytest.mark.asyncio
    async def test_subscribe_failure(self, transport, callbacks, fake_bleak):
        """A failed start_notify is reported with the error."""
        await _connected(transport)
        fake_bleak.client.notify_error = BleakError("Notify not permitted")

        transport.subscribe(1, TX)
        await _drain(transport)

        assert callbacks.named("handle_subscribed") == [
            ("handle_subscribed", 1, "Notify not permitted")
        ]

    @pytest.mark.asyncio
    async def test_writes_keep_request_order(self, transport, callbacks, fake_bleak):
        """Writes go out with response, in the order requested."""
        await _connected(transport)

        transport.write(1, RX, b"COM START")
        transport.write(1, RX, b"\x01\x02")
        await _drain(transport)

        assert fake_bleak.client.written == [(RX, b"COM START", True), (RX, b"\x01\x02", True)]
        assert callbacks.named("handle_write_result") == [
            ("handle_write_result", 1),
            ("handle_write_result", 1),
        ]

    @pytest.mark.asyncio
    async def test_write_failure_reported(self, transport, callbacks, fake_bleak):
        """A rejected write is reported, not raised."""
        await _connected(transport)
        fake_bleak.client.write_error = BleakError("Write not permitted")

        transport.write(1, RX, b"COM STOP")
        await _drain(transport)

        assert callbacks.named("handle_write_result") == [
            ("handle_write_result", 1, "Write not permitted")
        ]
