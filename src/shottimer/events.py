"""Events emitted to the consumer of a device session.

Events are delivered through a single sink callable, in the order the
state machine produced them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from .exceptions import BLETimeoutError
from .models.device import DeviceHandle
from .models.enums import AdapterState
from .models.link_state import LinkState
from .models.shot import ShotFrame

_LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 256


@dataclass(frozen=True)
class AdapterStateChanged:
    """Bluetooth adapter availability changed."""

    state: AdapterState

    @property
    def available(self) -> bool:
        return self.state.is_available


@dataclass(frozen=True)
class DeviceDiscovered:
    """A peripheral advertising the UART service was seen for the first time."""

    device: DeviceHandle


@dataclass(frozen=True)
class ConnectRequested:
    """connect() accepted a device and the session started."""

    device: DeviceHandle


@dataclass(frozen=True)
class LinkStateChanged:
    """The link entered a new lifecycle state."""

    state: LinkState
    previous: LinkState


@dataclass(frozen=True)
class UnsupportedDevice:
    """The peripheral lacks the UART service or its characteristics."""

    device: DeviceHandle | None


@dataclass(frozen=True)
class ShotEvent:
    """A notification decoded into a shot frame."""

    frame: ShotFrame


@dataclass(frozen=True)
class DecodeFailed:
    """A notification could not be decoded."""

    payload_length: int


LinkEvent = Union[
    AdapterStateChanged,
    DeviceDiscovered,
    ConnectRequested,
    LinkStateChanged,
    UnsupportedDevice,
    ShotEvent,
    DecodeFailed,
]

EventSink = Callable[[LinkEvent], None]


class EventQueue:
    """Ordered asyncio delivery channel usable as an EventSink.

    The queue holds at most maxsize events. When it is full the oldest
    event is dropped to make room, so a consumer that never reads does
    not grow it without limit.
    """

    def __init__(self, maxsize: int = DEFAULT_MAX_EVENTS) -> None:
        if maxsize < 1:
            raise ValueError(f"maxsize must be at least 1, got {maxsize}")
        self._queue: asyncio.Queue[LinkEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def __call__(self, event: LinkEvent) -> None:
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
            _LOGGER.debug("Event queue full, dropped oldest event (%d dropped)", self.dropped)
        self._queue.put_nowait(event)

    async def get(self, timeout: float | None = None) -> LinkEvent:
        """Wait for the next event.

        Raises:
            BLETimeoutError: If no event arrives within timeout
        """
        if timeout is None:
            return await self._queue.get()
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise BLETimeoutError(f"No event received within {timeout}s") from e

    def clear(self) -> None:
        """Discard all pending events."""
        while not self._queue.empty():
            self._queue.get_nowait()

    def empty(self) -> bool:
        return self._queue.empty()

    def qsize(self) -> int:
        return self._queue.qsize()
