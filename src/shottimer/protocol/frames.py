"""Shot frame decoding.

Notifications from the TX characteristic are handled as a sequence of
two-digit lower-case hex strings, one per byte. Frames carry at least
14 bytes:

    [0]      reserved (no meaning assigned)
    [1]      shot state code (3=active, 5=start, 8=stopped)
    [2]      current shot index
    [3]      total shots
    [4-5]    current shot time, 1/100 s
    [6-7]    split time, 1/100 s
    [8-9]    first shot time, 1/100 s
    [10-11]  last shot time, 1/100 s
    [12-13]  current round

Multi-byte fields are the concatenated hex pairs read as one big-endian
hex number.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..exceptions import InvalidFrameError
from ..models.enums import ShotState
from ..models.shot import ShotFrame
from .commands import encode_command
from .constants import MIN_FRAME_LENGTH

_LOGGER = logging.getLogger(__name__)


def to_hex_pairs(data: bytes | bytearray) -> list[str]:
    """Convert raw bytes to lower-case two-digit hex strings."""
    return [f"{byte:02x}" for byte in data]


def parse_hex_pairs(*pairs: str) -> int:
    """Concatenate hex pair strings and parse them as one hex number.

    Raises:
        InvalidFrameError: If the digits are not valid hexadecimal
    """
    digits = "".join(pairs)
    try:
        return int(digits, 16)
    except ValueError as e:
        raise InvalidFrameError(f"Invalid hex digits: {digits!r}") from e


def decode_shot_state(code: int) -> ShotState:
    """Map a wire code to a ShotState, defaulting unknown codes to ACTIVE."""
    try:
        return ShotState(code)
    except ValueError:
        _LOGGER.debug("Unknown shot state code 0x%02x, assuming ACTIVE", code)
        return ShotState.ACTIVE


def parse_shot_frame(hex_pairs: Sequence[str]) -> ShotFrame:
    """Decode a shot frame from its hex pair representation.

    Args:
        hex_pairs: One two-digit hex string per payload byte

    Returns:
        Decoded ShotFrame

    Raises:
        InvalidFrameError: If fewer than 14 pairs are given or a pair is not hex
    """
    if len(hex_pairs) < MIN_FRAME_LENGTH:
        raise InvalidFrameError(
            f"Frame too short: {len(hex_pairs)} bytes (need at least {MIN_FRAME_LENGTH})"
        )

    state_code = parse_hex_pairs(hex_pairs[1])

    return ShotFrame(
        shot_state=decode_shot_state(state_code),
        current_shot_index=parse_hex_pairs(hex_pairs[2]),
        total_shots=parse_hex_pairs(hex_pairs[3]),
        current_shot_time_seconds=parse_hex_pairs(hex_pairs[4], hex_pairs[5]) / 100,
        split_time_hundredths=parse_hex_pairs(hex_pairs[6], hex_pairs[7]),
        first_shot_time_seconds=parse_hex_pairs(hex_pairs[8], hex_pairs[9]) / 100,
        last_shot_time_seconds=parse_hex_pairs(hex_pairs[10], hex_pairs[11]) / 100,
        current_round=parse_hex_pairs(hex_pairs[12], hex_pairs[13]),
        raw_state_code=state_code,
    )


def decode_shot_frame(payload: bytes | bytearray) -> ShotFrame:
    """Decode a raw notification payload into a ShotFrame.

    Raises:
        InvalidFrameError: If the payload is shorter than 14 bytes
    """
    return parse_shot_frame(to_hex_pairs(payload))


class FrameCodec:
    """Translates between commands/notifications and protocol bytes.

    The only state kept is the last decoded shot state, which is reset at
    the start of every ready session.
    """

    def __init__(self) -> None:
        self.last_observed_state: ShotState | None = None

    def reset(self) -> None:
        """Forget the last observed shot state."""
        self.last_observed_state = None

    @staticmethod
    def encode(command: str | bytes | bytearray | list[int]) -> bytes:
        return encode_command(command)

    def decode(self, payload: bytes | bytearray) -> ShotFrame:
        """Decode one notification payload.

        Raises:
            InvalidFrameError: If the payload is not a valid frame
        """
        frame = decode_shot_frame(payload)
        self.last_observed_state = frame.shot_state
        return frame
