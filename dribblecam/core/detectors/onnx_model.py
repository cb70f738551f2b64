"""ONNX Runtime integration for the ball detector model.

The pipeline only needs "frame in, raw ``[1, 5, N]`` tensor out"; `BallModel` is
that contract, and `OnnxBallModel` is the production implementation. The
onnxruntime session is created lazily on first use so constructing the engine
stays cheap and tests can inject a stub model instead.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Protocol

import cv2
import numpy as np
import onnxruntime as ort

from dribblecam.core.types import Frame

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS = ("CPUExecutionProvider",)


class BallModel(Protocol):
    """Minimal inference interface expected by `BallDetector`."""

    def run(self, frame: Frame) -> np.ndarray:
        """Return the raw detector output for one frame."""


def preprocess(frame: Frame, input_size: int) -> np.ndarray:
    """Resize (scale-fill, no letterbox) a BGR frame into a float32 NCHW blob."""

    resized = cv2.resize(frame, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)
    blob = rgb.astype(np.float32) / 255.0
    return np.ascontiguousarray(blob.transpose(2, 0, 1)[None, ...])


class OnnxBallModel:
    """Ball detector backed by an ONNX export of a single-class YOLO model."""

    def __init__(
        self,
        model_path: str,
        input_size: int = 960,
        providers: tuple[str, ...] = DEFAULT_PROVIDERS,
    ) -> None:
        self.model_path = model_path
        self.input_size = int(input_size)
        self.providers = tuple(providers)
        self._session: Any | None = None
        self._input_name: str | None = None
        self._lock = threading.Lock()

    def _ensure_session(self) -> Any:
        """Create the onnxruntime session once (thread-safe)."""

        if self._session is not None:
            return self._session
        with self._lock:
            if self._session is None:
                if not Path(self.model_path).exists():
                    raise FileNotFoundError(f"Model not found: {self.model_path}")
                session = ort.InferenceSession(self.model_path, providers=list(self.providers))
                self._input_name = session.get_inputs()[0].name
                self._session = session
                logger.info("Loaded ball model %s", self.model_path)
        return self._session

    def run(self, frame: Frame) -> np.ndarray:
        session = self._ensure_session()
        blob = preprocess(frame, self.input_size)
        outputs = session.run(None, {self._input_name: blob})
        return np.asarray(outputs[0])
