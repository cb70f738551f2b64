"""Video source abstractions.

The engine consumes frames through a small interface (`VideoSource`) so the
capture implementation (webcam/file) can be swapped without affecting the ball
pipeline.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod

import cv2

from dribblecam.core.types import Frame

logger = logging.getLogger(__name__)


class VideoSource(ABC):
    """Base interface for anything that can produce video frames."""

    @abstractmethod
    def read(self) -> Frame | None:
        """Return the next frame, or `None` when unavailable."""

        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release any underlying resources."""

        raise NotImplementedError


class OpenCVSource(VideoSource):
    """A `VideoSource` backed by `cv2.VideoCapture`."""

    def __init__(self, source: str | int) -> None:
        self.cap = cv2.VideoCapture(source)
        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open video source: {source}")

    def read(self) -> Frame | None:
        ok, frame = self.cap.read()
        if not ok:
            return None
        return frame

    def close(self) -> None:
        self.cap.release()


class WebcamSource(OpenCVSource):
    """Webcam capture that always hands out the newest frame.

    A reader thread drains the driver buffer continuously so a slow consumer
    sees fresh frames instead of a growing backlog.
    """

    def __init__(self, index: int = 0, fps: float = 25.0) -> None:
        super().__init__(index)
        try:
            self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        except Exception:
            logger.debug("CAP_PROP_BUFFERSIZE not supported by this backend")
        if fps > 0:
            self.cap.set(cv2.CAP_PROP_FPS, float(fps))

        self._lock = threading.Lock()
        self._running = True
        self._latest_frame: Frame | None = None
        self._latest_seq = 0
        self._delivered_seq = 0
        self._reader_thread = threading.Thread(target=self._reader_loop, daemon=True)
        self._reader_thread.start()

    def _reader_loop(self) -> None:
        while self._running:
            ok, frame = self.cap.read()
            if ok:
                with self._lock:
                    self._latest_frame = frame
                    self._latest_seq += 1
            else:
                time.sleep(0.01)

    def read(self) -> Frame | None:
        with self._lock:
            frame = self._latest_frame
            seq = self._latest_seq
        # Don't hand out the same frame twice.
        if frame is None or seq == self._delivered_seq:
            return None
        self._delivered_seq = seq
        return frame

    def close(self) -> None:
        self._running = False
        try:
            if self._reader_thread.is_alive():
                self._reader_thread.join(timeout=1)
        finally:
            self.cap.release()


class FileSource(OpenCVSource):
    """Video file played back at its native frame rate, looping at EOF."""

    def __init__(self, path: str) -> None:
        super().__init__(path)
        self._start_perf: float | None = None
        self._frame_index = 0
        fps = float(self.cap.get(cv2.CAP_PROP_FPS) or 0.0)
        self._source_fps: float | None = fps if fps > 0.0 else None

    def _pace(self) -> None:
        if self._source_fps is None or self._start_perf is None:
            return
        expected = self._frame_index / self._source_fps
        delay = expected - (time.perf_counter() - self._start_perf)
        if delay > 0:
            time.sleep(delay)

    def read(self) -> Frame | None:
        if self._start_perf is None:
            self._start_perf = time.perf_counter()
            self._frame_index = 0

        ok, frame = self.cap.read()
        if not ok:
            if not self.cap.set(cv2.CAP_PROP_POS_FRAMES, 0):
                return None
            self._start_perf = time.perf_counter()
            self._frame_index = 0
            ok, frame = self.cap.read()
            if not ok:
                return None
        self._frame_index += 1
        self._pace()
        return frame
