"""Ball pipeline orchestration.

This module ties together detection, tracking and dribble counting. It is split
in two stages so the engine can run them on different threads:

- `detect()` runs on the real-time context (model + decode + validate)
- `track()` runs on the tracking context (tracker + session/counter)

`process()` chains both synchronously for offline replay and tests.
"""

from __future__ import annotations

import logging
import time

from dribblecam.core.analytics.session import DrillSession
from dribblecam.core.detectors.ball import BallDetector
from dribblecam.core.trackers.ball_tracker import BallTracker
from dribblecam.core.types import DetectionBatch, Frame, FrameResult, Tracked

logger = logging.getLogger(__name__)

AXES = {"x": 0, "y": 1}


class BallPipeline:
    """End-to-end per-frame ball processing."""

    def __init__(
        self,
        detector: BallDetector,
        tracker: BallTracker | None = None,
        session: DrillSession | None = None,
        report_min_confidence: float = 0.7,
        position_axis: str = "x",
    ) -> None:
        if position_axis not in AXES:
            raise ValueError("position_axis must be x|y")
        self.detector = detector
        self.tracker = tracker or BallTracker()
        self.session = session or DrillSession()
        self.report_min_confidence = report_min_confidence
        self.position_axis = position_axis
        self.frame_id = 0
        self._captured = 0
        self._last_applied_seq: int | None = None

    def detect(self, frame: Frame | None, timestamp: float | None = None) -> DetectionBatch:
        """Real-time stage. Stamps the batch with the session epoch and a capture sequence."""

        ts = time.monotonic() if timestamp is None else float(timestamp)
        self._captured += 1
        return self.detector.detect(frame, ts, epoch=self.session.epoch, seq=self._captured)

    def track(self, batch: DetectionBatch) -> FrameResult | None:
        """Tracking stage. Returns None for a batch captured before the last one applied."""

        if self._last_applied_seq is not None and batch.seq <= self._last_applied_seq:
            logger.debug(
                "Discarding out-of-order batch seq=%d (last=%d)",
                batch.seq,
                self._last_applied_seq,
            )
            return None
        self._last_applied_seq = batch.seq
        self.frame_id += 1

        chosen = self.tracker.update(batch.detections, batch.timestamp)
        if isinstance(chosen, Tracked) and chosen.confidence >= self.report_min_confidence:
            coordinate = chosen.center[AXES[self.position_axis]]
            if self.session.report_position(coordinate, batch.timestamp, epoch=batch.epoch):
                logger.debug("Dribble counted at ts=%.3f", batch.timestamp)

        return FrameResult(
            frame_id=self.frame_id,
            timestamp=batch.timestamp,
            frame_width=batch.frame_width,
            frame_height=batch.frame_height,
            chosen=chosen,
            count=self.session.count,
            status=batch.status,
            error=batch.error,
            message=batch.message,
        )

    def process(self, frame: Frame | None, timestamp: float | None = None) -> FrameResult | None:
        return self.track(self.detect(frame, timestamp))
