"""Shared type definitions used across the pipeline.

This module centralizes the small, stable types exchanged between the decoder,
validator, tracker and dribble counter (boxes, detections, per-frame results) so
each stage can stay strongly typed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

import numpy as np

Frame = np.ndarray

Point = tuple[float, float]


@dataclass(frozen=True)
class RawBox:
    """Center-form box straight out of the model tensor.

    Coordinates are either normalized to [0, 1] or expressed in model-input
    pixels; the validator decides which.
    """

    x: float
    y: float
    w: float
    h: float
    conf: float


@dataclass(frozen=True)
class ValidatedBox:
    """Top-left form box normalized and clamped to the unit square."""

    x: float
    y: float
    w: float
    h: float
    conf: float

    @property
    def center(self) -> Point:
        return (self.x + self.w / 2.0, self.y + self.h / 2.0)


@dataclass(frozen=True)
class Detection:
    """One validated ball candidate for a frame."""

    center: Point
    confidence: float
    box: ValidatedBox


@dataclass(frozen=True)
class TrackHistoryEntry:
    center: Point
    confidence: float
    timestamp: float


@dataclass(frozen=True)
class Tracked:
    """The tracker picked a detection in this frame."""

    center: Point
    confidence: float
    box: ValidatedBox


@dataclass(frozen=True)
class LastKnown:
    """No detection this frame; the last accepted position is still within the gap limit."""

    center: Point
    frames_since_seen: int


ChosenDetection = Union[Tracked, LastKnown, None]


class DecodeStatus(str, Enum):
    OK = "ok"
    BAD_SHAPE = "bad_shape"
    NO_FRAME = "no_frame"
    INFERENCE_FAILED = "inference_failed"


@dataclass
class DetectionBatch:
    """Output of the real-time stage, handed to the tracking stage."""

    timestamp: float
    frame_width: int
    frame_height: int
    detections: list[Detection] = field(default_factory=list)
    status: DecodeStatus = DecodeStatus.OK
    error: str | None = None
    message: str | None = None
    # Session epoch observed when the frame was captured.
    epoch: int = 0
    # Capture order, assigned by the real-time stage; timestamps can tie on coarse clocks.
    seq: int = 0


@dataclass
class FrameResult:
    """Per-frame payload published to the UI."""

    frame_id: int
    timestamp: float
    frame_width: int
    frame_height: int
    chosen: ChosenDetection
    count: int = 0
    status: DecodeStatus = DecodeStatus.OK
    error: str | None = None
    message: str | None = None

    @property
    def tracked(self) -> bool:
        return isinstance(self.chosen, Tracked)

    @property
    def last_known(self) -> LastKnown | None:
        return self.chosen if isinstance(self.chosen, LastKnown) else None
