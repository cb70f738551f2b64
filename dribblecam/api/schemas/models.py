"""Pydantic models for the HTTP/WS API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from dribblecam.core.analytics.session import SessionSnapshot
from dribblecam.core.config.settings import DribbleSettings
from dribblecam.core.types import FrameResult, LastKnown, Tracked


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BallSchema(_CamelModel):
    """Chosen ball box (normalized, top-left form) and its center."""

    x: float
    y: float
    w: float
    h: float
    center_x: float
    center_y: float
    confidence: float


class LastKnownSchema(_CamelModel):
    center_x: float
    center_y: float
    frames_since_seen: int


class FrameSchema(_CamelModel):
    """Per-frame output contract consumed by the UI."""

    frame_width: int
    frame_height: int
    timestamp: float
    detections: list[BallSchema]
    tracked: bool
    last_known: LastKnownSchema | None = None
    count: int = 0
    status: str = "ok"
    error: str | None = None
    message: str | None = None

    @classmethod
    def from_result(cls, result: FrameResult) -> FrameSchema:
        detections: list[BallSchema] = []
        last_known = None
        chosen = result.chosen
        if isinstance(chosen, Tracked):
            detections.append(
                BallSchema(
                    x=chosen.box.x,
                    y=chosen.box.y,
                    w=chosen.box.w,
                    h=chosen.box.h,
                    center_x=chosen.center[0],
                    center_y=chosen.center[1],
                    confidence=chosen.confidence,
                )
            )
        elif isinstance(chosen, LastKnown):
            last_known = LastKnownSchema(
                center_x=chosen.center[0],
                center_y=chosen.center[1],
                frames_since_seen=chosen.frames_since_seen,
            )
        return cls(
            frame_width=result.frame_width,
            frame_height=result.frame_height,
            timestamp=result.timestamp,
            detections=detections,
            tracked=result.tracked,
            last_known=last_known,
            count=result.count,
            status=result.status.value,
            error=result.error,
            message=result.message,
        )

    def to_payload(self) -> dict:
        """JSON-ready dict with camelCase keys; `lastKnown` only when present."""

        payload = self.model_dump(by_alias=True)
        if payload.get("lastKnown") is None:
            payload.pop("lastKnown", None)
        return payload


class SessionSchema(BaseModel):
    """Drill session state."""

    phase: str
    count: int
    countdown_remaining: float | None = None
    time_remaining: float | None = None

    @classmethod
    def from_snapshot(cls, snap: SessionSnapshot) -> SessionSchema:
        return cls(
            phase=snap.phase.value,
            count=snap.count,
            countdown_remaining=snap.countdown_remaining,
            time_remaining=snap.time_remaining,
        )


class StatsSchema(BaseModel):
    """High-level summary stats payload."""

    fps: float
    tracked: bool
    count: int
    phase: str
    dropped_batches: int = 0
    error: str | None = None


def _default(name: str):
    return DribbleSettings.model_fields[name].default


class ConfigSchema(BaseModel):
    """Runtime configuration payload.

    Defaults come from `DribbleSettings`, and a payload is accepted only if
    `DribbleSettings` accepts it.
    """

    video_source: str = _default("video_source")
    video_path: str | None = _default("video_path")
    camera_index: int = _default("camera_index")
    model_path: str = _default("model_path")
    model_input_size: int = _default("model_input_size")
    coordinate_space: str = _default("coordinate_space")
    confidence_threshold: float = _default("confidence_threshold")
    iou_threshold: float = _default("iou_threshold")
    min_box_area: float = _default("min_box_area")
    max_box_area: float = _default("max_box_area")
    min_box_dimension: float = _default("min_box_dimension")
    min_aspect_ratio: float = _default("min_aspect_ratio")
    max_aspect_ratio: float = _default("max_aspect_ratio")
    max_match_distance: float = _default("max_match_distance")
    max_gap_frames: int = _default("max_gap_frames")
    history_size: int = _default("history_size")
    deadzone: float = _default("deadzone")
    min_amplitude: float = _default("min_amplitude")
    min_down_travel: float = _default("min_down_travel")
    cooldown_s: float = _default("cooldown_s")
    report_min_confidence: float = _default("report_min_confidence")
    position_axis: str = _default("position_axis")
    countdown_s: float = _default("countdown_s")
    drill_duration_s: float | None = _default("drill_duration_s")
    target_fps: float = _default("target_fps")
    handoff_capacity: int = _default("handoff_capacity")

    @model_validator(mode="after")
    def _validate_with_settings(self) -> ConfigSchema:
        try:
            DribbleSettings(**self.model_dump())
        except ValidationError as exc:
            raise ValueError(
                "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors())
            ) from None
        return self
