"""Link lifecycle state machine for one shot timer session."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .events import (
    AdapterStateChanged,
    ConnectRequested,
    DecodeFailed,
    DeviceDiscovered,
    EventSink,
    LinkEvent,
    LinkStateChanged,
    ShotEvent,
    UnsupportedDevice,
)
from .exceptions import (
    AlreadyConnectedError,
    AlreadyConnectingError,
    InvalidFrameError,
    NotReadyError,
)
from .models.device import DeviceHandle, DeviceRegistry
from .models.enums import AdapterState, LinkStateKind
from .models.link_state import CharacteristicSet, LinkState
from .protocol import (
    UART_RX_CHARACTERISTIC_UUID,
    UART_SERVICE_UUID,
    UART_TX_CHARACTERISTIC_UUID,
    FrameCodec,
    normalize_uuid,
    to_hex_pairs,
)
from .transport.base import Transport

_LOGGER = logging.getLogger(__name__)

_SERVICE_KEY = normalize_uuid(UART_SERVICE_UUID)
_RX_KEY = normalize_uuid(UART_RX_CHARACTERISTIC_UUID)
_TX_KEY = normalize_uuid(UART_TX_CHARACTERISTIC_UUID)


class LinkStateMachine:
    """Drives one device connection from discovery to teardown.

    The machine issues requests to a Transport and advances only when the
    transport reports the matching outcome. Each connect() starts a new
    session token; outcomes carrying an older token, or arriving in a state
    that does not expect them, are dropped.

    Lifecycle:
        IDLE -> CONNECTING -> DISCOVERING_SERVICES -> DISCOVERING_CHARACTERISTICS
        -> SUBSCRIBING_NOTIFICATIONS -> READY -> DISCONNECTING -> DISCONNECTED

    Negotiation ends in UNSUPPORTED when the UART service or either of its
    characteristics is missing, and any non-terminal state ends in FAILED
    when the transport cannot connect.

    Usage:
        machine = LinkStateMachine(transport, sink=events)
        machine.handle_adapter_state(AdapterState.POWERED_ON)  # starts scanning
        machine.connect(handle)
        ...
        machine.send("COM START")
    """

    def __init__(
            self,
            transport: Transport,
            sink: EventSink,
            codec: FrameCodec | None = None,
    ):
        """Initialize state machine.

        Args:
            transport: BLE transport capability; bound to this machine
            sink: Receiver of consumer-facing events, called in order
            codec: Frame codec (default: new FrameCodec)
        """
        self._transport = transport
        self._sink = sink
        self._codec = codec or FrameCodec()

        self._state = LinkState.idle()
        self._session = 0
        self._device: DeviceHandle | None = None
        self._characteristics = CharacteristicSet()

        self.devices = DeviceRegistry()
        self.adapter_state = AdapterState.UNKNOWN

        transport.bind(self)

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def session(self) -> int:
        """Token of the current session."""
        return self._session

    @property
    def device(self) -> DeviceHandle | None:
        return self._device

    @property
    def codec(self) -> FrameCodec:
        return self._codec

    @property
    def characteristics(self) -> CharacteristicSet:
        return self._characteristics

    @property
    def is_connected(self) -> bool:
        """True while a link to the peripheral is up."""
        return self._state.kind in (
            LinkStateKind.DISCOVERING_SERVICES,
            LinkStateKind.DISCOVERING_CHARACTERISTICS,
            LinkStateKind.SUBSCRIBING_NOTIFICATIONS,
            LinkStateKind.READY,
        )

    @property
    def is_ready(self) -> bool:
        return self._state.kind is LinkStateKind.READY

    # Caller API

    def connect(self, device: DeviceHandle) -> None:
        """Start a session with a discovered device.

        Allowed from IDLE, DISCONNECTED and FAILED, and also from
        UNSUPPORTED so another device can be tried after a rejection.

        Raises:
            AlreadyConnectingError: If a negotiation is in progress
            AlreadyConnectedError: If a link is up or being torn down
        """
        kind = self._state.kind
        if kind in (LinkStateKind.READY, LinkStateKind.DISCONNECTING):
            raise AlreadyConnectedError(
                f"Already connected to {self._device.display_name if self._device else 'device'}"
            )
        if kind.is_negotiating:
            raise AlreadyConnectingError(f"Connection already in progress ({self._state})")

        self._session += 1
        self._device = device
        self._characteristics.clear()
        self._emit(ConnectRequested(device))

        if device not in self.devices:
            _LOGGER.warning("Cannot find peripheral %s", device.identifier)
            self._fail("cannot find peripheral")
            return

        _LOGGER.info("Connecting to %s (%s)", device.display_name, device.identifier)
        self._transport.stop_scan()
        self._transition(LinkStateKind.CONNECTING)
        self._transport.connect(self._session, device)

    def disconnect(self) -> None:
        """Tear down the current session.

        Valid in any state. Before the link is up the pending connect is
        cancelled and the session finishes immediately; otherwise the
        machine waits in DISCONNECTING for the transport to confirm.
        """
        kind = self._state.kind
        if kind is LinkStateKind.IDLE or kind.is_terminal:
            _LOGGER.debug("No active session to disconnect (%s)", self._state)
            return
        if kind is LinkStateKind.DISCONNECTING:
            return

        if kind is LinkStateKind.CONNECTING:
            _LOGGER.info("Cancelling connection to %s", self._device.display_name)
        else:
            _LOGGER.info("Disconnecting from %s", self._device.display_name)

        self._transition(LinkStateKind.DISCONNECTING)
        self._transport.disconnect(self._session, self._device)

        if kind is LinkStateKind.CONNECTING:
            # No link exists to confirm the teardown; late outcomes of the
            # cancelled attempt carry the old token.
            self._session += 1
            self._finish_disconnect()

    def send(self, command: str | bytes | bytearray | list[int]) -> None:
        """Write a command to the RX characteristic.

        Text is sent as UTF-8, bytes unchanged. The write outcome is only
        logged.

        Raises:
            NotReadyError: If the link is not READY
        """
        if not self.is_ready or self._characteristics.rx is None:
            raise NotReadyError(f"Link not ready (state: {self._state})")

        payload = self._codec.encode(command)
        _LOGGER.debug("Writing %d bytes: %s", len(payload), payload.hex())
        self._transport.write(self._session, self._characteristics.rx, payload)

    # Transport callbacks

    def handle_adapter_state(self, state: AdapterState) -> None:
        """Record adapter availability; scanning starts once powered on."""
        _LOGGER.debug("Adapter state: %s", state.value)
        self.adapter_state = state
        self._emit(AdapterStateChanged(state))

        if state.is_available:
            self._transport.scan(UART_SERVICE_UUID)
        else:
            _LOGGER.warning("Bluetooth unavailable: %s", state.value)

    def handle_device_discovered(self, device: DeviceHandle) -> None:
        if self.devices.add(device):
            _LOGGER.debug("Discovered %s (%s)", device.display_name, device.identifier)
            self._emit(DeviceDiscovered(device))

    def handle_connected(self, session: int) -> None:
        if not self._expects(session, LinkStateKind.CONNECTING, "connected"):
            return

        _LOGGER.info("Connected to %s", self._device.display_name)
        self._transition(LinkStateKind.DISCOVERING_SERVICES)
        self._transport.discover_services(session, UART_SERVICE_UUID)

    def handle_connect_failed(self, session: int, reason: str) -> None:
        if not self._is_current(session, "connect failed"):
            return
        kind = self._state.kind
        if kind is LinkStateKind.IDLE or kind.is_terminal:
            return

        _LOGGER.warning("Failed to connect to %s: %s", self._device.display_name, reason)
        self._fail(reason)

    def handle_disconnected(self, session: int, error: str | None = None) -> None:
        if not self._is_current(session, "disconnected"):
            return

        kind = self._state.kind
        if kind is LinkStateKind.UNSUPPORTED:
            _LOGGER.debug("Unsupported device disconnected")
            self._characteristics.clear()
            self._codec.reset()
            return
        if kind is LinkStateKind.IDLE or kind.is_terminal:
            return

        if kind is not LinkStateKind.DISCONNECTING:
            if error:
                _LOGGER.warning("Link lost: %s", error)
            else:
                _LOGGER.warning("Link lost")
            self._transition(LinkStateKind.DISCONNECTING)

        self._finish_disconnect()

    def handle_services_discovered(
            self,
            session: int,
            services: Mapping[str, Any],
            error: str | None = None,
    ) -> None:
        if not self._expects(session, LinkStateKind.DISCOVERING_SERVICES, "services"):
            return

        if error:
            self._reject_device(f"service discovery failed: {error}")
            return

        service = _normalized(services).get(_SERVICE_KEY)
        if service is None:
            self._reject_device("UART service not found")
            return

        _LOGGER.debug("UART service found")
        self._transition(LinkStateKind.DISCOVERING_CHARACTERISTICS)
        self._transport.discover_characteristics(session, service)

    def handle_characteristics_discovered(
            self,
            session: int,
            characteristics: Mapping[str, Any],
            error: str | None = None,
    ) -> None:
        if not self._expects(
            session, LinkStateKind.DISCOVERING_CHARACTERISTICS, "characteristics"
        ):
            return

        if error:
            self._reject_device(f"characteristic discovery failed: {error}")
            return

        found = _normalized(characteristics)
        rx = found.get(_RX_KEY)
        tx = found.get(_TX_KEY)
        if rx is None or tx is None:
            self._reject_device(
                "UART service does not have required characteristics "
                f"(rx={'found' if rx is not None else 'missing'}, "
                f"tx={'found' if tx is not None else 'missing'})"
            )
            return

        self._characteristics.rx = rx
        self._characteristics.tx = tx
        _LOGGER.debug("Enabling notifications for %s", UART_TX_CHARACTERISTIC_UUID)
        self._transition(LinkStateKind.SUBSCRIBING_NOTIFICATIONS)
        self._transport.subscribe(session, tx)

    def handle_subscribed(self, session: int, error: str | None = None) -> None:
        if not self._expects(
            session, LinkStateKind.SUBSCRIBING_NOTIFICATIONS, "subscription"
        ):
            return

        if error:
            # Left in SUBSCRIBING_NOTIFICATIONS; the link stays up but no
            # shot events will arrive.
            _LOGGER.warning("Enabling notifications failed: %s", error)
            return

        self._codec.reset()
        self._transition(LinkStateKind.READY)

    def handle_write_result(self, session: int, error: str | None = None) -> None:
        if not self._is_current(session, "write result"):
            return
        if error:
            _LOGGER.warning("Writing value to characteristic failed: %s", error)
        else:
            _LOGGER.debug("Data written successfully")

    def handle_notification(self, session: int, characteristic_uuid: str, data: bytes) -> None:
        if not self._expects(session, LinkStateKind.READY, "notification"):
            return
        if normalize_uuid(characteristic_uuid) != _TX_KEY:
            _LOGGER.debug("Ignoring notification from %s", characteristic_uuid)
            return

        _LOGGER.debug("Data received: %s", " ".join(to_hex_pairs(data)))

        try:
            frame = self._codec.decode(data)
        except InvalidFrameError as e:
            _LOGGER.warning("Invalid frame (%d bytes): %s", len(data), e)
            self._emit(DecodeFailed(len(data)))
            return

        self._emit(ShotEvent(frame))

    # Internals

    def _is_current(self, session: int, what: str) -> bool:
        if session != self._session:
            _LOGGER.debug(
                "Ignoring stale %s callback (session %d, current %d)",
                what,
                session,
                self._session,
            )
            return False
        return True

    def _expects(self, session: int, kind: LinkStateKind, what: str) -> bool:
        if not self._is_current(session, what):
            return False
        if self._state.kind is not kind:
            _LOGGER.debug("Ignoring %s callback in state %s", what, self._state)
            return False
        return True

    def _reject_device(self, reason: str) -> None:
        _LOGGER.warning(
            "%s not supported: %s. Try turning Bluetooth off and on again to clear the cache.",
            self._device.display_name,
            reason,
        )
        self._transition(LinkStateKind.UNSUPPORTED)
        self._emit(UnsupportedDevice(self._device))
        self._transport.disconnect(self._session, self._device)

    def _fail(self, reason: str) -> None:
        self._characteristics.clear()
        self._set_state(LinkState.failed(reason, self._device))

    def _finish_disconnect(self) -> None:
        self._characteristics.clear()
        self._codec.reset()
        _LOGGER.info("Disconnected from %s", self._device.display_name)
        self._transition(LinkStateKind.DISCONNECTED)

    def _transition(self, kind: LinkStateKind) -> None:
        self._set_state(LinkState(kind, device=self._device))

    def _set_state(self, state: LinkState) -> None:
        previous = self._state
        self._state = state
        _LOGGER.debug("Link state %s -> %s", previous, state)
        self._emit(LinkStateChanged(state=state, previous=previous))

    def _emit(self, event: LinkEvent) -> None:
        self._sink(event)


def _normalized(refs: Mapping[str, Any]) -> dict[str, Any]:
    return {normalize_uuid(uuid): ref for uuid, ref in refs.items()}
