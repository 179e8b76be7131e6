"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import Any

import pytest

from shottimer.link import LinkStateMachine
from shottimer.models.device import DeviceHandle
from shottimer.models.enums import AdapterState
from shottimer.protocol import (
    UART_RX_CHARACTERISTIC_UUID,
    UART_SERVICE_UUID,
    UART_TX_CHARACTERISTIC_UUID,
)

# Example frame: active, shot 5 of 10, T=1.00s, split=50, first=2.00s, last=4.00s, round 1
SAMPLE_FRAME = bytes.fromhex("0003050a0064003200c801900001")


class FakeTransport:
    """Records every request; tests deliver the outcomes by hand."""

    def __init__(self) -> None:
        self.callbacks = None
        self.calls: list[tuple[Any, ...]] = []
        self.started = False
        self.closed = False

    def bind(self, callbacks) -> None:
        self.callbacks = callbacks

    async def start(self) -> None:
        self.started = True
        self.callbacks.handle_adapter_state(AdapterState.POWERED_ON)

    async def close(self) -> None:
        self.closed = True

    def scan(self, service_uuid: str) -> None:
        self.calls.append(("scan", service_uuid))

    def stop_scan(self) -> None:
        self.calls.append(("stop_scan",))

    def connect(self, session: int, device: DeviceHandle) -> None:
        self.calls.append(("connect", session, device))

    def disconnect(self, session: int, device: DeviceHandle) -> None:
        self.calls.append(("disconnect", session, device))

    def discover_services(self, session: int, service_uuid: str) -> None:
        self.calls.append(("discover_services", session, service_uuid))

    def discover_characteristics(self, session: int, service: Any) -> None:
        self.calls.append(("discover_characteristics", session, service))

    def subscribe(self, session: int, characteristic: Any) -> None:
        self.calls.append(("subscribe", session, characteristic))

    def write(self, session: int, characteristic: Any, data: bytes) -> None:
        self.calls.append(("write", session, characteristic, data))

    def requests(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def device() -> DeviceHandle:
    return DeviceHandle(identifier="AA:BB:CC:DD:EE:FF", name="AMG Lab COMMANDER")


@pytest.fixture
def machine(transport: FakeTransport, events: list, device: DeviceHandle) -> LinkStateMachine:
    """State machine that has already discovered the test device."""
    link = LinkStateMachine(transport, events.append)
    link.handle_device_discovered(device)
    events.clear()
    return link


def services() -> dict[str, str]:
    """Service discovery result containing the UART service."""
    return {UART_SERVICE_UUID.lower(): "uart-service"}


def characteristics() -> dict[str, str]:
    """Characteristic discovery result containing RX and TX."""
    return {
        UART_RX_CHARACTERISTIC_UUID.lower(): "rx-char",
        UART_TX_CHARACTERISTIC_UUID.lower(): "tx-char",
    }


def negotiate(link: LinkStateMachine, device: DeviceHandle) -> int:
    """Drive a machine from IDLE to READY and return the session token."""
    link.connect(device)
    session = link.session
    link.handle_connected(session)
    link.handle_services_discovered(session, services())
    link.handle_characteristics_discovered(session, characteristics())
    link.handle_subscribed(session)
    return session
