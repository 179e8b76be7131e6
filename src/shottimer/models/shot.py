"""Decoded shot frame model."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import ShotState


@dataclass(frozen=True, slots=True)
class ShotFrame:
    """One decoded shot-timer notification.

    Times are reported by the timer in hundredths of a second. The split
    is kept as the raw hundredths value; the other times are converted to
    seconds when decoding.

    Attributes:
        shot_state: Timer state (unknown wire codes decode as ACTIVE)
        current_shot_index: Index of the shot this frame reports
        total_shots: Shots recorded in the current string
        split_time_hundredths: Time since the previous shot, in 1/100 s
        first_shot_time_seconds: Time from the start beep to the first shot
        current_shot_time_seconds: Time from the start beep to this shot
        last_shot_time_seconds: Time from the start beep to the last shot
        current_round: Round (string) number
        raw_state_code: Wire code the shot state was decoded from
    """
    shot_state: ShotState
    current_shot_index: int
    total_shots: int
    split_time_hundredths: int
    first_shot_time_seconds: float
    current_shot_time_seconds: float
    last_shot_time_seconds: float
    current_round: int
    raw_state_code: int

    @property
    def is_state_defaulted(self) -> bool:
        """True when the wire code was unknown and ACTIVE was assumed."""
        try:
            ShotState(self.raw_state_code)
        except ValueError:
            return True
        return False

    @property
    def split_time_seconds(self) -> float:
        return self.split_time_hundredths / 100
