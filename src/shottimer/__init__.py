"""Shot Timer BLE Client Package.

Pure Python package for reading shot data from BLE shot timers over the
Nordic UART service.
"""

from .device import ShotTimer
from .discovery import discover_devices
from .events import (
    AdapterStateChanged,
    ConnectRequested,
    DecodeFailed,
    DeviceDiscovered,
    EventQueue,
    EventSink,
    LinkEvent,
    LinkStateChanged,
    ShotEvent,
    UnsupportedDevice,
)
from .exceptions import (
    AlreadyConnectedError,
    AlreadyConnectingError,
    BLETimeoutError,
    ConnectFailedError,
    InvalidFrameError,
    InvalidLinkStateError,
    NegotiationFailedError,
    NotReadyError,
    ShotTimerError,
    TransportUnavailableError,
)
from .link import LinkStateMachine
from .models import (
    AdapterState,
    CharacteristicSet,
    DeviceHandle,
    DeviceRegistry,
    LinkState,
    LinkStateKind,
    ShotFrame,
    ShotState,
)
from .protocol import (
    UART_RX_CHARACTERISTIC_UUID,
    UART_SERVICE_UUID,
    UART_TX_CHARACTERISTIC_UUID,
    FrameCodec,
    decode_shot_frame,
    encode_command,
    parse_shot_frame,
)
from .transport import BleakTransport, LinkCallbacks, Transport

__version__ = "0.1.0"

__all__ = [
    # Main API
    "ShotTimer",
    "LinkStateMachine",
    "discover_devices",
    # Transport
    "BleakTransport",
    "LinkCallbacks",
    "Transport",
    # Events
    "AdapterStateChanged",
    "ConnectRequested",
    "DecodeFailed",
    "DeviceDiscovered",
    "EventQueue",
    "EventSink",
    "LinkEvent",
    "LinkStateChanged",
    "ShotEvent",
    "UnsupportedDevice",
    # Exceptions
    "ShotTimerError",
    "TransportUnavailableError",
    "ConnectFailedError",
    "NegotiationFailedError",
    "BLETimeoutError",
    "InvalidLinkStateError",
    "NotReadyError",
    "AlreadyConnectingError",
    "AlreadyConnectedError",
    "InvalidFrameError",
    # Models
    "AdapterState",
    "CharacteristicSet",
    "DeviceHandle",
    "DeviceRegistry",
    "LinkState",
    "LinkStateKind",
    "ShotFrame",
    "ShotState",
    # Protocol
    "FrameCodec",
    "decode_shot_frame",
    "parse_shot_frame",
    "encode_command",
    # Constants
    "UART_SERVICE_UUID",
    "UART_RX_CHARACTERISTIC_UUID",
    "UART_TX_CHARACTERISTIC_UUID",
]
