"""Export the trained ball detector to ONNX (CPU-only).

The ONNX graph keeps the raw ``[1, 5, N]`` head (no embedded NMS) because the
backend decodes and suppresses boxes itself.

This script is intentionally simple and print-oriented.
"""

from __future__ import annotations

import os


def main() -> int:
    """Run an ONNX export for the configured weights."""

    # Do not let Ultralytics auto-install GPU runtimes as part of export.
    os.environ.setdefault("ULTRALYTICS_AUTOUPDATE", "0")

    from ultralytics import YOLO

    try:
        weights = os.getenv("DBC_MODEL_WEIGHTS", "basketball_detector.pt")
        imgsz = int(os.getenv("DBC_MODEL_INPUT_SIZE", "960"))
        print(f"Loading {weights}...")
        model = YOLO(weights)
        print("Exporting to ONNX...")
        path = model.export(format="onnx", imgsz=imgsz, device="cpu", nms=False)
        print(f"Success! Wrote {path}")
        return 0
    except Exception as e:
        print(f"Failed: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
