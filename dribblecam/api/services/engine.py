from __future__ import annotations

import logging
import threading
import time
from collections import deque
from pathlib import Path

from dribblecam.core.analytics.dribble import DribbleCounter
from dribblecam.core.analytics.pipeline import BallPipeline
from dribblecam.core.analytics.session import DrillSession
from dribblecam.core.config.settings import (
    DribbleSettings,
    box_constraints_from_settings,
    dribble_config_from_settings,
    tracker_config_from_settings,
)
from dribblecam.core.detectors.ball import BallDetector
from dribblecam.core.detectors.onnx_model import BallModel, OnnxBallModel
from dribblecam.core.handoff import FrameHandoff, LatestValue
from dribblecam.core.trackers.ball_tracker import BallTracker
from dribblecam.core.types import DetectionBatch, FrameResult
from dribblecam.core.video_sources.base import FileSource, VideoSource, WebcamSource

logger = logging.getLogger(__name__)


class DrillEngine:
    """Runs the capture → detect → track pipeline on two threads.

    - capture thread (real-time): reads a frame, runs the model and decoder,
      and offers the batch to the handoff without ever waiting on it
    - track thread: applies batches in capture order to the tracker and the
      drill session, then publishes the latest `FrameResult`
    """

    def __init__(
        self,
        settings: DribbleSettings,
        model: BallModel | None = None,
        session: DrillSession | None = None,
    ) -> None:
        self.settings = settings
        if session is None:
            session = DrillSession(
                counter=DribbleCounter(dribble_config_from_settings(settings)),
                countdown_s=settings.countdown_s,
                duration_s=settings.drill_duration_s,
            )
        else:
            # Carried over from a previous engine; a running drill keeps going.
            session.configure(
                dribble_config_from_settings(settings),
                settings.countdown_s,
                settings.drill_duration_s,
            )
        self.session = session
        self.pipeline = BallPipeline(
            detector=BallDetector(
                model or OnnxBallModel(settings.model_path, input_size=settings.model_input_size),
                conf_threshold=settings.confidence_threshold,
                iou_threshold=settings.iou_threshold,
                constraints=box_constraints_from_settings(settings),
            ),
            tracker=BallTracker(tracker_config_from_settings(settings)),
            session=self.session,
            report_min_confidence=settings.report_min_confidence,
            position_axis=settings.position_axis,
        )
        self._target_fps = float(settings.target_fps)
        self._handoff: FrameHandoff[DetectionBatch] = FrameHandoff(settings.handoff_capacity)
        self._latest_result: LatestValue[FrameResult] = LatestValue()
        self._lock = threading.Lock()
        self._processed_times: deque[float] = deque()
        self._fps = 0.0
        self.source: VideoSource | None = None
        self.running = False
        self._capture_thread: threading.Thread | None = None
        self._track_thread: threading.Thread | None = None
        self.last_error: str | None = None

    def _make_source(self) -> VideoSource:
        """Instantiate the configured `VideoSource`."""

        if self.settings.video_source == "file":
            if not self.settings.video_path:
                raise RuntimeError("video_path is required for a file source")
            video_path = Path(self.settings.video_path)
            if not video_path.exists():
                raise RuntimeError(f"Video path not found: {video_path}")
            return FileSource(str(video_path))
        return WebcamSource(self.settings.camera_index, fps=self._target_fps)

    def start(self) -> None:
        """Start background threads.

        Safe to call multiple times; subsequent calls while running are ignored.
        """

        if self.running:
            return
        try:
            self.source = self._make_source()
        except Exception:
            self.last_error = "Failed to initialize video source"
            logger.exception(self.last_error)
            return
        self.running = True
        self.last_error = None
        self._capture_thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._track_thread = threading.Thread(target=self._track_loop, daemon=True)
        self._capture_thread.start()
        self._track_thread.start()
        logger.info("Drill engine started (source=%s)", self.settings.video_source)

    def stop(self) -> None:
        """Stop background threads and close the video source."""

        self.running = False
        if self._capture_thread and self._capture_thread.is_alive():
            self._capture_thread.join(timeout=2)
        if self._track_thread and self._track_thread.is_alive():
            self._track_thread.join(timeout=2)
        if self.source:
            self.source.close()
            self.source = None
        self._handoff.clear()

    def _capture_loop(self) -> None:
        logger.debug("Capture loop started")
        while self.running and self.source:
            frame = self.source.read()
            if frame is None:
                time.sleep(0.005)
                continue
            started = time.monotonic()
            try:
                batch = self.pipeline.detect(frame, started)
            except Exception:
                self.last_error = "Detection failed"
                logger.exception(self.last_error)
                continue
            self._handoff.offer(batch)
            if batch.error:
                self.last_error = batch.message or batch.error

            if self._target_fps > 0:
                budget = 1.0 / self._target_fps
                elapsed = time.monotonic() - started
                if elapsed > budget:
                    logger.debug("Frame over budget: %.1f ms", elapsed * 1000.0)
                else:
                    time.sleep(budget - elapsed)

    def _track_loop(self) -> None:
        logger.debug("Track loop started")
        while self.running:
            batch = self._handoff.take(timeout=0.5)
            if batch is None:
                continue
            try:
                result = self.pipeline.track(batch)
            except Exception:
                self.last_error = "Tracking failed"
                logger.exception(self.last_error)
                continue
            if result is None:
                continue
            self.publish(result)

    def publish(self, result: FrameResult) -> None:
        """Record a frame result for API readers and refresh the processed FPS."""

        now = time.perf_counter()
        with self._lock:
            self._processed_times.append(now)
            while self._processed_times and (now - self._processed_times[0]) > 1.0:
                self._processed_times.popleft()
            if len(self._processed_times) >= 2:
                span = now - self._processed_times[0]
                if span > 0:
                    self._fps = float((len(self._processed_times) - 1) / span)
        self._latest_result.set(result)

    def latest_result(self) -> FrameResult | None:
        return self._latest_result.get()

    def fps(self) -> float:
        with self._lock:
            return self._fps

    def dropped_batches(self) -> int:
        return self._handoff.dropped

    def latest_versioned(self) -> tuple[int, FrameResult | None]:
        """Return the latest frame result with a version that bumps on every publish."""

        return self._latest_result.get_versioned()
