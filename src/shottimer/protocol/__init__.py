"""Shot timer wire protocol."""

from .commands import build_start_command, build_stop_command, encode_command
from .constants import (
    COMMAND_START,
    COMMAND_STOP,
    MIN_FRAME_LENGTH,
    UART_RX_CHARACTERISTIC_UUID,
    UART_SERVICE_UUID,
    UART_TX_CHARACTERISTIC_UUID,
    normalize_uuid,
)
from .frames import (
    FrameCodec,
    decode_shot_frame,
    decode_shot_state,
    parse_hex_pairs,
    parse_shot_frame,
    to_hex_pairs,
)

__all__ = [
    "UART_SERVICE_UUID",
    "UART_RX_CHARACTERISTIC_UUID",
    "UART_TX_CHARACTERISTIC_UUID",
    "MIN_FRAME_LENGTH",
    "COMMAND_START",
    "COMMAND_STOP",
    "normalize_uuid",
    "encode_command",
    "build_start_command",
    "build_stop_command",
    "FrameCodec",
    "to_hex_pairs",
    "parse_hex_pairs",
    "parse_shot_frame",
    "decode_shot_frame",
    "decode_shot_state",
]
