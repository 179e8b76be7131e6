"""Outbound command encoding.

Commands go out exactly as the caller's bytes: text commands are UTF-8
encoded, byte commands pass through. No framing, checksum or length
prefix is added.
"""

from __future__ import annotations

from .constants import COMMAND_START, COMMAND_STOP


def encode_command(command: str | bytes | bytearray | list[int]) -> bytes:
    """Encode a command for a write to the RX characteristic.

    Args:
        command: Text command, or raw command bytes (a list of ints is
            accepted as a byte array)

    Returns:
        Write payload

    Raises:
        TypeError: If command is of an unsupported type
        ValueError: If a list element is outside 0-255
    """
    if isinstance(command, str):
        return command.encode("utf-8")
    if isinstance(command, (bytes, bytearray)):
        return bytes(command)
    if isinstance(command, list):
        return bytes(command)
    raise TypeError(f"Unsupported command type: {type(command).__name__}")


def build_start_command() -> bytes:
    """Build the text command that arms the timer.

    Returns:
        Command bytes: b"COM START"
    """
    return encode_command(COMMAND_START)


def build_stop_command() -> bytes:
    """Build the text command that stops the timer.

    Returns:
        Command bytes: b"COM STOP"
    """
    return encode_command(COMMAND_STOP)
