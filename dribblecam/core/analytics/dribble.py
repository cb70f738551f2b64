"""Dribble counting from a one-dimensional ball position stream.

A dribble is a downstroke deep enough to arm a "pending bounce" followed by a
reversal upward, with enough total amplitude and outside the cooldown window of
the previous count. The deadzone discards per-frame jitter before any of that
is evaluated.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

DEFAULT_DEADZONE = 0.02
DEFAULT_MIN_AMPLITUDE = 0.08
DEFAULT_MIN_DOWN_TRAVEL = 0.05
DEFAULT_COOLDOWN_S = 0.4


class Direction(str, Enum):
    DOWN = "down"
    UP = "up"
    NONE = "none"


@dataclass(frozen=True)
class DribbleConfig:
    deadzone: float = DEFAULT_DEADZONE
    min_amplitude: float = DEFAULT_MIN_AMPLITUDE
    min_down_travel: float = DEFAULT_MIN_DOWN_TRAVEL
    cooldown_s: float = DEFAULT_COOLDOWN_S


@dataclass(frozen=True)
class DribbleMotionState:
    last_pos: float | None = None
    min_pos: float | None = None
    max_pos: float | None = None
    last_direction: Direction = Direction.NONE
    last_count_at: float | None = None
    count: int = 0
    pending_bounce: bool = False


def classify(delta: float, deadzone: float) -> Direction:
    if abs(delta) < deadzone:
        return Direction.NONE
    return Direction.DOWN if delta < 0 else Direction.UP


def step_dribble(
    state: DribbleMotionState,
    position: float,
    timestamp: float,
    config: DribbleConfig = DribbleConfig(),
) -> tuple[DribbleMotionState, bool]:
    """Feed one position sample; return the new state and whether a dribble was counted."""

    p = float(position)
    if state.last_pos is None:
        return replace(state, last_pos=p, min_pos=p, max_pos=p), False

    direction = classify(p - state.last_pos, config.deadzone)
    min_pos = state.min_pos
    max_pos = state.max_pos
    pending = state.pending_bounce
    count = state.count
    last_count_at = state.last_count_at
    counted = False

    if direction is Direction.DOWN:
        if min_pos is None or p < min_pos:
            min_pos = p
        if max_pos is not None and max_pos - p >= config.min_down_travel:
            pending = True

    if direction is Direction.UP:
        if max_pos is None or p > max_pos:
            max_pos = p

    if direction is Direction.UP and state.last_direction is Direction.DOWN and pending:
        amplitude = abs(max_pos - min_pos) if min_pos is not None and max_pos is not None else 0.0
        cooled = last_count_at is None or timestamp - last_count_at > config.cooldown_s
        if cooled and amplitude >= config.min_amplitude:
            count += 1
            last_count_at = timestamp
            min_pos = max_pos = p
            pending = False
            counted = True

    if direction is Direction.DOWN and state.last_direction is Direction.UP:
        # New downstroke before a bounce qualified: drop the stale oscillation.
        max_pos = state.last_pos
        min_pos = p
        pending = False

    new_state = DribbleMotionState(
        last_pos=p,
        min_pos=min_pos,
        max_pos=max_pos,
        last_direction=direction if direction is not Direction.NONE else state.last_direction,
        last_count_at=last_count_at,
        count=count,
        pending_bounce=pending,
    )
    return new_state, counted


class DribbleCounter:
    """Stateful wrapper around `step_dribble`."""

    def __init__(self, config: DribbleConfig | None = None) -> None:
        self.config = config or DribbleConfig()
        self.state = DribbleMotionState()

    @property
    def count(self) -> int:
        return self.state.count

    def update(self, position: float, timestamp: float) -> bool:
        self.state, counted = step_dribble(self.state, position, timestamp, self.config)
        return counted

    def reset(self) -> None:
        self.state = DribbleMotionState()
