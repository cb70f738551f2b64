"""Cross-thread handoff primitives.

`FrameHandoff` carries detection batches from the real-time capture thread to
the tracking thread. The producer never blocks: when the buffer is full the
oldest pending item is dropped. `LatestValue` publishes the newest output for
readers (API routes) that only care about the current value.
"""

from __future__ import annotations

import logging
import threading
from queue import Empty, Full, Queue
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FrameHandoff(Generic[T]):
    def __init__(self, capacity: int = 8) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be >= 1")
        self._queue: Queue[T] = Queue(maxsize=capacity)
        self._drop_lock = threading.Lock()
        self.dropped = 0

    def offer(self, item: T) -> bool:
        """Enqueue without blocking; returns False when an older item was dropped."""

        with self._drop_lock:
            dropped = False
            while True:
                try:
                    self._queue.put_nowait(item)
                    break
                except Full:
                    try:
                        self._queue.get_nowait()
                        self.dropped += 1
                        dropped = True
                    except Empty:
                        pass
            if dropped:
                logger.debug("Handoff full; dropped oldest pending batch")
            return not dropped

    def take(self, timeout: float | None = None) -> T | None:
        """Return the oldest pending item, or None after ``timeout`` seconds."""

        try:
            return self._queue.get(timeout=timeout)
        except Empty:
            return None

    def clear(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except Empty:
                return

    def __len__(self) -> int:
        return self._queue.qsize()


class LatestValue(Generic[T]):
    """Last-value cell: writers overwrite, readers never wait on writers for long."""

    def __init__(self, value: T | None = None) -> None:
        self._lock = threading.Lock()
        self._value = value
        self._version = 0

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value
            self._version += 1

    def get(self) -> T | None:
        with self._lock:
            return self._value

    def get_versioned(self) -> tuple[int, T | None]:
        with self._lock:
            return self._version, self._value
