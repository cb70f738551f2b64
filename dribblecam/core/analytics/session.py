"""Drill session lifecycle and the gate in front of the dribble counter."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from dribblecam.core.analytics.dribble import DribbleConfig, DribbleCounter

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    IDLE = "idle"
    COUNTDOWN = "countdown"
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(frozen=True)
class SessionSnapshot:
    phase: SessionPhase
    count: int
    epoch: int
    countdown_remaining: float | None = None
    time_remaining: float | None = None


class DrillSession:
    """Start/end control plus a gated `report_position` for one drill.

    Every `start()`/`end()` bumps an epoch. Position reports stamped with an
    older epoch (frames captured before the change) are discarded, so a result
    still in flight when a drill ends can never leak into the next one.
    """

    def __init__(
        self,
        counter: DribbleCounter | None = None,
        countdown_s: float = 3.0,
        duration_s: float | None = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.counter = counter or DribbleCounter()
        self.countdown_s = max(0.0, float(countdown_s))
        self.duration_s = duration_s
        self._clock = clock
        self._lock = threading.Lock()
        self._epoch = 0
        self._phase = SessionPhase.IDLE
        self._started_at: float | None = None
        self._pending: tuple[DribbleConfig, float, float | None] | None = None

    @property
    def epoch(self) -> int:
        with self._lock:
            return self._epoch

    @property
    def count(self) -> int:
        with self._lock:
            return self.counter.count

    @property
    def phase(self) -> SessionPhase:
        with self._lock:
            return self._refresh_phase(self._clock())

    def _refresh_phase(self, now: float) -> SessionPhase:
        """Advance countdown → active → finished from elapsed time (lock held)."""

        if self._started_at is None or self._phase in (SessionPhase.IDLE, SessionPhase.FINISHED):
            return self._phase
        elapsed = now - self._started_at
        if elapsed < self.countdown_s:
            self._phase = SessionPhase.COUNTDOWN
        elif self.duration_s is None or elapsed < self.countdown_s + self.duration_s:
            self._phase = SessionPhase.ACTIVE
        else:
            self._phase = SessionPhase.FINISHED
            logger.info("Drill finished with %d dribbles", self.counter.count)
        return self._phase

    def configure(
        self, config: DribbleConfig, countdown_s: float, duration_s: float | None
    ) -> None:
        """Queue new counter and timing settings; they take effect on the next `start()`.

        A drill in progress keeps its phase, count and thresholds.
        """

        with self._lock:
            self._pending = (config, max(0.0, float(countdown_s)), duration_s)

    def start(self) -> int:
        """Start (or restart) a drill; returns the new epoch."""

        with self._lock:
            if self._pending is not None:
                self.counter.config, self.countdown_s, self.duration_s = self._pending
                self._pending = None
            self._epoch += 1
            self.counter.reset()
            self._started_at = self._clock()
            self._phase = SessionPhase.COUNTDOWN
            self._refresh_phase(self._started_at)
            logger.info("Drill started (epoch=%d)", self._epoch)
            return self._epoch

    def end(self) -> None:
        """Stop accepting positions and reset the count. Idempotent."""

        with self._lock:
            self._epoch += 1
            self.counter.reset()
            self._started_at = None
            self._phase = SessionPhase.IDLE

    reset = end

    def is_active(self) -> bool:
        return self.phase is SessionPhase.ACTIVE

    def report_position(self, coordinate: float, timestamp: float, epoch: int | None = None) -> bool:
        """Feed one position to the counter; returns True when a dribble was counted.

        Ignored unless the drill is active and ``epoch`` (when given) matches
        the current session.
        """

        with self._lock:
            if self._refresh_phase(self._clock()) is not SessionPhase.ACTIVE:
                return False
            if epoch is not None and epoch != self._epoch:
                logger.debug("Discarding position from stale epoch %d", epoch)
                return False
            return self.counter.update(coordinate, timestamp)

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            now = self._clock()
            phase = self._refresh_phase(now)
            countdown_remaining = None
            time_remaining = None
            if self._started_at is not None:
                elapsed = now - self._started_at
                if phase is SessionPhase.COUNTDOWN:
                    countdown_remaining = max(0.0, self.countdown_s - elapsed)
                if self.duration_s is not None and phase in (
                    SessionPhase.COUNTDOWN,
                    SessionPhase.ACTIVE,
                ):
                    time_remaining = max(
                        0.0, min(self.duration_s, self.countdown_s + self.duration_s - elapsed)
                    )
                elif phase is SessionPhase.FINISHED:
                    time_remaining = 0.0
            return SessionSnapshot(
                phase=phase,
                count=self.counter.count,
                epoch=self._epoch,
                countdown_remaining=countdown_remaining,
                time_remaining=time_remaining,
            )
