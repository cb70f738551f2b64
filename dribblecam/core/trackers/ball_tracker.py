from __future__ import annotations

import math
from dataclasses import dataclass, replace

from dribblecam.core.types import (
    ChosenDetection,
    Detection,
    LastKnown,
    Point,
    TrackHistoryEntry,
    Tracked,
)


@dataclass(frozen=True)
class TrackerConfig:
    max_match_distance: float = 0.20
    max_gap_frames: int = 30
    history_size: int = 5
    confidence_weight: float = 0.7
    proximity_weight: float = 0.3
    # proximity = 1 / (1 + falloff * distance)
    proximity_falloff: float = 5.0


@dataclass(frozen=True)
class TrackerState:
    """Single-ball tracker state; replaced, never mutated, by `step_tracker`."""

    last_position: Point | None = None
    frames_since_detection: int = 0
    history: tuple[TrackHistoryEntry, ...] = ()


def distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def history_mean(history: tuple[TrackHistoryEntry, ...]) -> Point:
    n = float(len(history))
    return (
        sum(e.center[0] for e in history) / n,
        sum(e.center[1] for e in history) / n,
    )


def _most_confident(detections: list[Detection]) -> Detection:
    return max(detections, key=lambda d: d.confidence)


def select_candidate(
    state: TrackerState,
    detections: list[Detection],
    config: TrackerConfig = TrackerConfig(),
) -> Detection:
    """Pick the ball among this frame's (non-empty) candidates.

    Recent history wins over raw confidence: candidates near the mean of the
    history ring score higher than isolated high-confidence outliers.
    """

    if state.history:
        mean = history_mean(state.history)

        def score(det: Detection) -> float:
            proximity = 1.0 / (1.0 + config.proximity_falloff * distance(det.center, mean))
            return config.confidence_weight * det.confidence + config.proximity_weight * proximity

        return max(detections, key=score)

    if state.last_position is not None:
        last = state.last_position
        nearest = min(detections, key=lambda d: distance(d.center, last))
        if distance(nearest.center, last) <= config.max_match_distance:
            return nearest
        return _most_confident(detections)

    return _most_confident(detections)


def step_tracker(
    state: TrackerState,
    detections: list[Detection],
    timestamp: float,
    config: TrackerConfig = TrackerConfig(),
) -> tuple[TrackerState, ChosenDetection]:
    """Advance the tracker by one frame.

    Returns the new state and the frame's chosen detection: `Tracked` when a
    candidate was accepted, `LastKnown` while bridging a gap, `None` when there
    is nothing to report (cold start or track lost).
    """

    if detections:
        chosen = select_candidate(state, detections, config)
        entry = TrackHistoryEntry(
            center=chosen.center, confidence=chosen.confidence, timestamp=timestamp
        )
        history: tuple[TrackHistoryEntry, ...] = ()
        if config.history_size > 0:
            history = (*state.history, entry)[-config.history_size :]
        new_state = TrackerState(
            last_position=chosen.center,
            frames_since_detection=0,
            history=history,
        )
        return new_state, Tracked(center=chosen.center, confidence=chosen.confidence, box=chosen.box)

    frames = state.frames_since_detection + 1
    if frames > config.max_gap_frames:
        return TrackerState(last_position=None, frames_since_detection=frames, history=()), None
    new_state = replace(state, frames_since_detection=frames)
    if state.last_position is None:
        return new_state, None
    return new_state, LastKnown(center=state.last_position, frames_since_seen=frames)


class BallTracker:
    """Stateful wrapper around `step_tracker` owned by the tracking context."""

    def __init__(self, config: TrackerConfig | None = None) -> None:
        self.config = config or TrackerConfig()
        self.state = TrackerState()

    @property
    def is_lost(self) -> bool:
        return self.state.last_position is None

    def update(self, detections: list[Detection], timestamp: float) -> ChosenDetection:
        self.state, chosen = step_tracker(self.state, list(detections), timestamp, self.config)
        return chosen

    def reset(self) -> None:
        self.state = TrackerState()
