from __future__ import annotations

import argparse
import json
from pathlib import Path

import cv2
import numpy as np

from dribblecam.api.schemas.models import FrameSchema
from dribblecam.core.analytics.dribble import DribbleCounter
from dribblecam.core.analytics.pipeline import BallPipeline
from dribblecam.core.analytics.session import DrillSession
from dribblecam.core.config.settings import (
    DribbleSettings,
    box_constraints_from_settings,
    dribble_config_from_settings,
    load_settings,
    settings_to_dict,
    tracker_config_from_settings,
)
from dribblecam.core.detectors.ball import BallDetector
from dribblecam.core.detectors.onnx_model import OnnxBallModel
from dribblecam.core.trackers.ball_tracker import BallTracker

# CLI flag (argparse dest) -> settings field.
CLI_OVERRIDES = {
    "model": "model_path",
    "input_size": "model_input_size",
    "coordinate_space": "coordinate_space",
    "conf": "confidence_threshold",
    "iou": "iou_threshold",
    "report_conf": "report_min_confidence",
    "axis": "position_axis",
    "max_gap_frames": "max_gap_frames",
    "history_size": "history_size",
    "deadzone": "deadzone",
    "min_amplitude": "min_amplitude",
    "min_down_travel": "min_down_travel",
    "cooldown": "cooldown_s",
}


class _MockModel:
    def run(self, frame):  # pragma: no cover - trivial
        return np.zeros((1, 5, 0), dtype=np.float32)


def resolve_settings(args) -> DribbleSettings:
    """Config file and `DBC_` env values, with any CLI flags given on top."""

    overrides = {
        field: getattr(args, dest)
        for dest, field in CLI_OVERRIDES.items()
        if getattr(args, dest, None) is not None
    }
    return DribbleSettings(**{**settings_to_dict(load_settings()), **overrides})


def run(args):
    cap = cv2.VideoCapture(args.input)
    if not cap.isOpened():
        raise SystemExit(f"Cannot open video {args.input}")
    fps = float(args.fps or cap.get(cv2.CAP_PROP_FPS) or 25.0)

    settings = resolve_settings(args)
    model = (
        _MockModel()
        if args.mock
        else OnnxBallModel(settings.model_path, input_size=settings.model_input_size)
    )
    # Replays count from the first frame: no countdown, no time limit.
    session = DrillSession(
        counter=DribbleCounter(dribble_config_from_settings(settings)),
        countdown_s=0.0,
        duration_s=None,
    )
    pipeline = BallPipeline(
        detector=BallDetector(
            model,
            conf_threshold=settings.confidence_threshold,
            iou_threshold=settings.iou_threshold,
            constraints=box_constraints_from_settings(settings),
        ),
        tracker=BallTracker(tracker_config_from_settings(settings)),
        session=session,
        report_min_confidence=settings.report_min_confidence,
        position_axis=settings.position_axis,
    )
    session.start()

    outputs = []
    frame_index = 0
    while True:
        ok, frame = cap.read()
        if not ok:
            break
        # Timestamps from the frame index keep replays deterministic.
        result = pipeline.process(frame, timestamp=frame_index / fps)
        frame_index += 1
        if result is not None:
            outputs.append(FrameSchema.from_result(result).to_payload())
        if args.max_frames and frame_index >= args.max_frames:
            break
    cap.release()
    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(outputs, f, indent=2)
    print(f"Wrote {len(outputs)} frame results to {out_path}")
    print(f"Dribbles: {session.count}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Count dribbles in a video file",
        epilog="Tuning flags default to the config file (DBC_CONFIG) and DBC_ env values.",
    )
    parser.add_argument("--input", required=True, help="Path to video file")
    parser.add_argument("--output", required=True, help="Where to save JSON output")
    parser.add_argument("--model", default=None)
    parser.add_argument("--input-size", type=int, default=None, help="Model input resolution")
    parser.add_argument("--coordinate-space", choices=("auto", "normalized", "pixel"), default=None)
    parser.add_argument("--conf", type=float, default=None)
    parser.add_argument("--iou", type=float, default=None)
    parser.add_argument("--report-conf", type=float, default=None)
    parser.add_argument("--axis", choices=("x", "y"), default=None)
    parser.add_argument("--max-gap-frames", type=int, default=None)
    parser.add_argument("--history-size", type=int, default=None)
    parser.add_argument("--deadzone", type=float, default=None)
    parser.add_argument("--min-amplitude", type=float, default=None)
    parser.add_argument("--min-down-travel", type=float, default=None)
    parser.add_argument("--cooldown", type=float, default=None, help="Seconds between dribbles")
    parser.add_argument("--fps", type=float, default=0.0, help="Override the container FPS")
    parser.add_argument("--max-frames", type=int, default=0, help="Limit frames for quick tests")
    parser.add_argument(
        "--mock", action="store_true", help="Use an empty model output (no model file needed)"
    )
    return parser


if __name__ == "__main__":
    run(build_parser().parse_args())
