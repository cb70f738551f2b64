"""Decoding of the raw ball-detector output tensor.

The detector is a single-class YOLO export whose output is shaped ``[1, 5, N]``:
five channels (x, y, w, h, confidence) for each of N anchors. Decoding applies a
confidence threshold and greedy non-max suppression; everything else (coordinate
space, clamping, plausibility) belongs to the validator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from dribblecam.core.types import DecodeStatus, RawBox

EXPECTED_CHANNELS = 5


@dataclass
class DecodeResult:
    boxes: list[RawBox] = field(default_factory=list)
    status: DecodeStatus = DecodeStatus.OK


def iou(a: RawBox, b: RawBox) -> float:
    """Intersection-over-union of two center-form boxes."""

    ax1, ay1 = a.x - a.w / 2.0, a.y - a.h / 2.0
    ax2, ay2 = a.x + a.w / 2.0, a.y + a.h / 2.0
    bx1, by1 = b.x - b.w / 2.0, b.y - b.h / 2.0
    bx2, by2 = b.x + b.w / 2.0, b.y + b.h / 2.0

    inter_w = max(0.0, min(ax2, bx2) - max(ax1, bx1))
    inter_h = max(0.0, min(ay2, by2) - max(ay1, by1))
    inter = inter_w * inter_h
    union = a.w * a.h + b.w * b.h - inter
    if union <= 0:
        return 0.0
    return inter / union


def nms(boxes: list[RawBox], iou_threshold: float) -> list[RawBox]:
    """Greedy NMS; ``boxes`` must already be sorted by confidence, descending."""

    kept: list[RawBox] = []
    for box in boxes:
        suppress = False
        for k in kept:
            if iou(box, k) > iou_threshold:
                suppress = True
                break
        if not suppress:
            kept.append(box)
    return kept


def _as_array(tensor: Any) -> np.ndarray | None:
    if tensor is None:
        return None
    try:
        arr = np.asarray(tensor, dtype=np.float64)
    except (TypeError, ValueError):
        return None
    return arr


def decode_output(
    tensor: Any,
    conf_threshold: float,
    iou_threshold: float,
) -> DecodeResult:
    """Turn one raw output tensor into candidate boxes, highest confidence first.

    A tensor that is not shaped ``[1, 5, N]`` yields an empty result with
    ``DecodeStatus.BAD_SHAPE``; this function never raises on bad input.
    """

    arr = _as_array(tensor)
    if arr is None or arr.ndim != 3 or arr.shape[0] != 1 or arr.shape[1] != EXPECTED_CHANNELS:
        return DecodeResult(status=DecodeStatus.BAD_SHAPE)

    if arr.shape[2] == 0:
        return DecodeResult()

    xs, ys, ws, hs, confs = arr[0]
    keep = (
        np.isfinite(arr[0]).all(axis=0)
        & (confs >= conf_threshold)
        & (ws > 0)
        & (hs > 0)
    )
    idx = np.flatnonzero(keep)
    if idx.size == 0:
        return DecodeResult()

    # Stable sort keeps anchor order among equal confidences.
    order = idx[np.argsort(-confs[idx], kind="stable")]
    candidates = [
        RawBox(
            x=float(xs[i]),
            y=float(ys[i]),
            w=float(ws[i]),
            h=float(hs[i]),
            conf=float(confs[i]),
        )
        for i in order
    ]
    return DecodeResult(boxes=nms(candidates, iou_threshold))
