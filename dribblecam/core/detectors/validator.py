"""Normalization and plausibility checks for decoded ball boxes."""

from __future__ import annotations

import math
from dataclasses import dataclass

from dribblecam.core.types import Detection, RawBox, ValidatedBox

COORDINATE_SPACES = ("auto", "normalized", "pixel")

# Any |coordinate| above this is taken as pixel space when coordinate_space="auto".
PIXEL_SPACE_MAGNITUDE = 2.0


@dataclass(frozen=True)
class BoxConstraints:
    min_area: float = 0.001
    max_area: float = 0.3
    min_dimension: float = 0.01
    min_aspect_ratio: float = 0.5
    max_aspect_ratio: float = 2.0
    model_input_size: float = 960.0
    coordinate_space: str = "auto"


def _clamp(v: float, lo: float, hi: float) -> float:
    return lo if v < lo else hi if v > hi else v


def is_pixel_space(box: RawBox, coordinate_space: str = "auto") -> bool:
    """Return whether ``box`` is expressed in model-input pixels."""

    if coordinate_space == "pixel":
        return True
    if coordinate_space == "normalized":
        return False
    return (
        abs(box.x) > PIXEL_SPACE_MAGNITUDE
        or abs(box.y) > PIXEL_SPACE_MAGNITUDE
        or abs(box.w) > PIXEL_SPACE_MAGNITUDE
        or abs(box.h) > PIXEL_SPACE_MAGNITUDE
    )


def normalize_box(box: RawBox, constraints: BoxConstraints = BoxConstraints()) -> ValidatedBox | None:
    """Convert a center-form box to a top-left box clamped to the unit square.

    Returns ``None`` for non-finite input or when clamping leaves an empty box.
    """

    if not all(math.isfinite(v) for v in (box.x, box.y, box.w, box.h)):
        return None

    scale = 1.0
    if is_pixel_space(box, constraints.coordinate_space):
        scale = float(constraints.model_input_size)

    w = abs(box.w) / scale
    h = abs(box.h) / scale
    x = box.x / scale - w / 2.0
    y = box.y / scale - h / 2.0

    x = _clamp(x, 0.0, 1.0)
    y = _clamp(y, 0.0, 1.0)
    w = _clamp(w, 0.0, 1.0 - x)
    h = _clamp(h, 0.0, 1.0 - y)
    if w <= 0.0 or h <= 0.0:
        return None
    return ValidatedBox(x=x, y=y, w=w, h=h, conf=box.conf)


def is_plausible_ball(box: ValidatedBox, constraints: BoxConstraints = BoxConstraints()) -> bool:
    """Area, minimum side and aspect checks for a roughly round object."""

    area = box.w * box.h
    if area < constraints.min_area or area > constraints.max_area:
        return False
    if min(box.w, box.h) < constraints.min_dimension:
        return False
    aspect = box.w / box.h
    return constraints.min_aspect_ratio <= aspect <= constraints.max_aspect_ratio


def validate_box(box: RawBox, constraints: BoxConstraints = BoxConstraints()) -> ValidatedBox | None:
    normalized = normalize_box(box, constraints)
    if normalized is None or not is_plausible_ball(normalized, constraints):
        return None
    return normalized


def to_detections(boxes: list[RawBox], constraints: BoxConstraints = BoxConstraints()) -> list[Detection]:
    """Validate decoded boxes, preserving their confidence order."""

    out: list[Detection] = []
    for raw in boxes:
        bb = validate_box(raw, constraints)
        if bb is None:
            continue
        out.append(Detection(center=bb.center, confidence=bb.conf, box=bb))
    return out
