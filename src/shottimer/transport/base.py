"""Transport capability consumed by the link state machine.

Every request is fire-and-forget: the transport reports the outcome later
through the LinkCallbacks it is bound to, echoing the session token it was
given so stale outcomes can be discarded.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from ..models.device import DeviceHandle
from ..models.enums import AdapterState


class LinkCallbacks(Protocol):
    """Outcome reports a transport delivers to the state machine."""

    def handle_adapter_state(self, state: AdapterState) -> None: ...

    def handle_device_discovered(self, device: DeviceHandle) -> None: ...

    def handle_connected(self, session: int) -> None: ...

    def handle_connect_failed(self, session: int, reason: str) -> None: ...

    def handle_disconnected(self, session: int, error: str | None = None) -> None: ...

    def handle_services_discovered(
        self,
        session: int,
        services: Mapping[str, Any],
        error: str | None = None,
    ) -> None: ...

    def handle_characteristics_discovered(
        self,
        session: int,
        characteristics: Mapping[str, Any],
        error: str | None = None,
    ) -> None: ...

    def handle_subscribed(self, session: int, error: str | None = None) -> None: ...

    def handle_write_result(self, session: int, error: str | None = None) -> None: ...

    def handle_notification(self, session: int, characteristic_uuid: str, data: bytes) -> None: ...


class Transport(Protocol):
    """Requests the state machine makes of the BLE platform.

    Service and characteristic mappings passed back to the callbacks are
    keyed by lower-case UUID; their values are opaque references that are
    handed back to the transport unchanged.
    """

    def bind(self, callbacks: LinkCallbacks) -> None:
        """Set the receiver of outcome reports."""

    async def start(self) -> None:
        """Report the initial adapter state to the bound callbacks."""

    async def close(self) -> None:
        """Release platform resources."""

    def scan(self, service_uuid: str) -> None:
        """Start reporting peripherals advertising service_uuid."""

    def stop_scan(self) -> None:
        """Stop an active scan, if any."""

    def connect(self, session: int, device: DeviceHandle) -> None:
        """Start connecting to device."""

    def disconnect(self, session: int, device: DeviceHandle) -> None:
        """Tear down or cancel the link to device. Safe when not connected."""

    def discover_services(self, session: int, service_uuid: str) -> None:
        """Look up service_uuid on the connected peripheral."""

    def discover_characteristics(self, session: int, service: Any) -> None:
        """List the characteristics of a discovered service."""

    def subscribe(self, session: int, characteristic: Any) -> None:
        """Enable notifications on characteristic."""

    def write(self, session: int, characteristic: Any, data: bytes) -> None:
        """Write data to characteristic with response."""
