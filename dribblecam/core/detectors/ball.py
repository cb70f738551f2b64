"""Real-time detection stage: model call, tensor decode and box validation."""

from __future__ import annotations

import logging

from dribblecam.core.detectors.decoder import decode_output
from dribblecam.core.detectors.onnx_model import BallModel
from dribblecam.core.detectors.validator import BoxConstraints, to_detections
from dribblecam.core.types import DecodeStatus, DetectionBatch, Frame

logger = logging.getLogger(__name__)


class BallDetector:
    """Turns one camera frame into a `DetectionBatch`.

    This is the error boundary for the real-time context: a failing model call
    or a malformed tensor produces a batch with zero detections and a status,
    never an exception.
    """

    def __init__(
        self,
        model: BallModel,
        conf_threshold: float = 0.05,
        iou_threshold: float = 0.45,
        constraints: BoxConstraints | None = None,
    ) -> None:
        self.model = model
        self.conf_threshold = conf_threshold
        self.iou_threshold = iou_threshold
        self.constraints = constraints or BoxConstraints()

    def detect(
        self, frame: Frame | None, timestamp: float, epoch: int = 0, seq: int = 0
    ) -> DetectionBatch:
        if frame is None or getattr(frame, "ndim", 0) < 2:
            return DetectionBatch(
                timestamp=timestamp,
                frame_width=0,
                frame_height=0,
                status=DecodeStatus.NO_FRAME,
                message="Missing frame buffer",
                epoch=epoch,
                seq=seq,
            )

        h, w = frame.shape[:2]
        try:
            tensor = self.model.run(frame)
        except Exception as exc:
            logger.exception("Ball model inference failed")
            return DetectionBatch(
                timestamp=timestamp,
                frame_width=int(w),
                frame_height=int(h),
                status=DecodeStatus.INFERENCE_FAILED,
                error="inference_failed",
                message=str(exc),
                epoch=epoch,
                seq=seq,
            )

        decoded = decode_output(tensor, self.conf_threshold, self.iou_threshold)
        if decoded.status is not DecodeStatus.OK:
            logger.debug("Rejected model output: %s", decoded.status.value)
        return DetectionBatch(
            timestamp=timestamp,
            frame_width=int(w),
            frame_height=int(h),
            detections=to_detections(decoded.boxes, self.constraints),
            status=decoded.status,
            epoch=epoch,
            seq=seq,
        )
