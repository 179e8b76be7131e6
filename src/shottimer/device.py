"""Main shot timer client class."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable

from .events import (
    DEFAULT_MAX_EVENTS,
    AdapterStateChanged,
    EventQueue,
    LinkEvent,
    LinkStateChanged,
    ShotEvent,
)
from .exceptions import (
    BLETimeoutError,
    ConnectFailedError,
    InvalidLinkStateError,
    NegotiationFailedError,
    TransportUnavailableError,
)
from .link import LinkStateMachine
from .models.device import DeviceHandle
from .models.enums import AdapterState, LinkStateKind, ShotState
from .models.link_state import LinkState
from .models.shot import ShotFrame
from .protocol import COMMAND_START, COMMAND_STOP
from .transport import BleakTransport, Transport

_LOGGER = logging.getLogger(__name__)

_CONNECT_OUTCOMES = frozenset({
    LinkStateKind.READY,
    LinkStateKind.DISCONNECTED,
    LinkStateKind.UNSUPPORTED,
    LinkStateKind.FAILED,
})

_SESSION_END = frozenset({
    LinkStateKind.DISCONNECTED,
    LinkStateKind.UNSUPPORTED,
    LinkStateKind.FAILED,
})


class ShotTimer:
    """BLE shot timer client.

    Combines a BleakTransport, a LinkStateMachine and an ordered event
    queue behind an async API.

    Usage:
        async with ShotTimer() as timer:
            devices = await timer.scan(timeout=5.0)
            await timer.connect(devices[0])
            await timer.start_timer()
            async for shot in timer.shots():
                print(shot.current_shot_index, shot.split_time_seconds)
    """

    def __init__(
            self,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
            ready_timeout: float = 10.0,
            adapter: str | None = None,
            transport: Transport | None = None,
            max_events: int = DEFAULT_MAX_EVENTS,
    ):
        """Initialize shot timer client.

        Args:
            timeout: BLE connection and scan timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching (default: True)
            ready_timeout: Time allowed for negotiation to reach READY (default: 10)
            adapter: Bluetooth adapter name, e.g. "hci0" (default: system default)
            transport: Custom transport (default: BleakTransport from the options above)
            max_events: Unread events kept before the oldest are dropped (default: 256)
        """
        self.timeout = timeout
        self.ready_timeout = ready_timeout

        self._transport = transport or BleakTransport(
            timeout=timeout,
            max_attempts=max_attempts,
            use_services_cache=use_services_cache,
            adapter=adapter,
        )
        self._events = EventQueue(max_events)
        self._waiters: list[tuple[frozenset[LinkStateKind], asyncio.Future[LinkState]]] = []
        self._machine = LinkStateMachine(self._transport, self._dispatch)

    async def __aenter__(self) -> ShotTimer:
        """Power up the transport and start scanning."""
        await self._transport.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect and release the transport."""
        self._machine.disconnect()
        await self._transport.close()

    @property
    def state(self) -> LinkState:
        return self._machine.state

    @property
    def device(self) -> DeviceHandle | None:
        return self._machine.device

    @property
    def devices(self) -> list[DeviceHandle]:
        """Devices discovered so far, in discovery order."""
        return list(self._machine.devices)

    @property
    def is_connected(self) -> bool:
        return self._machine.is_connected

    @property
    def is_ready(self) -> bool:
        return self._machine.is_ready

    @property
    def last_shot_state(self) -> ShotState | None:
        """Shot state of the most recent frame in this session, if any."""
        return self._machine.codec.last_observed_state

    async def scan(self, timeout: float | None = None) -> list[DeviceHandle]:
        """Collect scan results for a while.

        Args:
            timeout: Seconds to wait (default: the client timeout)

        Returns:
            All devices discovered so far

        Raises:
            TransportUnavailableError: If the adapter is not powered on
        """
        self._check_adapter()
        await asyncio.sleep(self.timeout if timeout is None else timeout)
        self._check_adapter()
        return self.devices

    async def connect(self, device: DeviceHandle) -> None:
        """Connect and wait until the link is READY.

        Devices found with discover_devices() are adopted into this
        session's discovery list. Unread events from earlier sessions are
        discarded. Any failure while waiting tears the attempt down.

        Raises:
            AlreadyConnectingError: If a negotiation is in progress
            AlreadyConnectedError: If already connected
            ConnectFailedError: If the link could not be established
            NegotiationFailedError: If the device lacks the UART service
            TransportUnavailableError: If the adapter is switched off meanwhile
            BLETimeoutError: If the link is not READY within ready_timeout
        """
        self._check_adapter()
        kind = self.state.kind
        if kind is LinkStateKind.IDLE or kind.is_terminal:
            # Drop events left over from earlier sessions
            self._events.clear()
        if device not in self._machine.devices:
            self._machine.handle_device_discovered(device)

        waiter = self._add_waiter(_CONNECT_OUTCOMES)
        try:
            self._machine.connect(device)
        except InvalidLinkStateError:
            self._remove_waiter(waiter)
            raise

        try:
            state = await asyncio.wait_for(waiter, timeout=self.ready_timeout)
        except asyncio.TimeoutError as e:
            _LOGGER.warning("%s not ready after %.1fs", device.display_name, self.ready_timeout)
            self._machine.disconnect()
            raise BLETimeoutError(
                f"Link not ready after {self.ready_timeout}s (state: {self.state})"
            ) from e
        except (Exception, asyncio.CancelledError):
            self._machine.disconnect()
            raise
        finally:
            self._remove_waiter(waiter)

        if state.kind is LinkStateKind.FAILED:
            raise ConnectFailedError(f"Failed to connect: {state.reason}")
        if state.kind is LinkStateKind.UNSUPPORTED:
            raise NegotiationFailedError(
                f"{device.display_name} does not provide the UART service"
            )
        if state.kind is LinkStateKind.DISCONNECTED:
            raise ConnectFailedError("Disconnected during negotiation")

        _LOGGER.info("%s ready", device.display_name)

    async def disconnect(self, timeout: float | None = None) -> None:
        """Disconnect and wait for the session to end.

        Raises:
            BLETimeoutError: If the transport does not confirm the teardown
        """
        if self.state.kind is LinkStateKind.IDLE or self.state.kind.is_terminal:
            return

        waiter = self._add_waiter(_SESSION_END)
        try:
            self._machine.disconnect()
            await asyncio.wait_for(
                waiter,
                timeout=self.timeout if timeout is None else timeout,
            )
        except asyncio.TimeoutError as e:
            raise BLETimeoutError("Disconnect was not confirmed") from e
        finally:
            self._remove_waiter(waiter)

    async def send(self, command: str | bytes | bytearray | list[int]) -> None:
        """Send a command to the timer.

        Raises:
            NotReadyError: If the link is not READY
        """
        self._machine.send(command)

    async def start_timer(self) -> None:
        """Send the start command ("COM START")."""
        await self.send(COMMAND_START)

    async def stop_timer(self) -> None:
        """Send the stop command ("COM STOP")."""
        await self.send(COMMAND_STOP)

    async def read_event(self, timeout: float | None = None) -> LinkEvent:
        """Read the next event in emission order.

        Raises:
            BLETimeoutError: If no event arrives within timeout
        """
        return await self._events.get(timeout)

    async def shots(self) -> AsyncIterator[ShotFrame]:
        """Yield decoded shots until the session ends."""
        while True:
            event = await self._events.get()
            if isinstance(event, ShotEvent):
                yield event.frame
            elif isinstance(event, LinkStateChanged) and event.state.kind in _SESSION_END:
                return

    # Internals

    def _dispatch(self, event: LinkEvent) -> None:
        self._events(event)

        if isinstance(event, LinkStateChanged):
            for kinds, waiter in self._waiters:
                if event.state.kind in kinds and not waiter.done():
                    waiter.set_result(event.state)
        elif isinstance(event, AdapterStateChanged) and not event.available:
            for _, waiter in self._waiters:
                if not waiter.done():
                    waiter.set_exception(
                        TransportUnavailableError(f"Bluetooth unavailable: {event.state.value}")
                    )

    def _check_adapter(self) -> None:
        state = self._machine.adapter_state
        if state is not AdapterState.UNKNOWN and not state.is_available:
            raise TransportUnavailableError(f"Bluetooth unavailable: {state.value}")

    def _add_waiter(self, kinds: Iterable[LinkStateKind]) -> asyncio.Future[LinkState]:
        waiter: asyncio.Future[LinkState] = asyncio.get_running_loop().create_future()
        self._waiters.append((frozenset(kinds), waiter))
        return waiter

    def _remove_waiter(self, waiter: asyncio.Future[LinkState]) -> None:
        self._waiters = [(k, w) for k, w in self._waiters if w is not waiter]
        if not waiter.done():
            waiter.cancel()
        elif not waiter.cancelled():
            # Mark a stored exception as retrieved
            waiter.exception()
