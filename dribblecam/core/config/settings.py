"""Backend configuration.

Settings are loaded from YAML defaults and overridden by environment variables
prefixed with `DBC_`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dribblecam.core.analytics.dribble import DribbleConfig
from dribblecam.core.detectors.validator import COORDINATE_SPACES, BoxConstraints
from dribblecam.core.trackers.ball_tracker import TrackerConfig


class DribbleSettings(BaseSettings):
    """Runtime configuration loaded from YAML defaults and `DBC_` env overrides."""

    video_source: str = Field("webcam", description="webcam|file")
    video_path: str | None = None
    camera_index: int = 0

    model_path: str = "basketball_detector.onnx"
    model_input_size: int = 960
    # "auto" guesses pixel vs normalized output per box; pin it once the export is known.
    coordinate_space: str = Field("auto", description="auto|normalized|pixel")

    confidence_threshold: float = 0.05
    iou_threshold: float = 0.45
    min_box_area: float = 0.001
    max_box_area: float = 0.3
    min_box_dimension: float = 0.01
    min_aspect_ratio: float = 0.5
    max_aspect_ratio: float = 2.0

    max_match_distance: float = 0.20
    max_gap_frames: int = 30
    history_size: int = 5

    deadzone: float = 0.02
    min_amplitude: float = 0.08
    min_down_travel: float = 0.05
    cooldown_s: float = 0.4
    report_min_confidence: float = 0.7
    # The drill runs in landscape, so the ball's vertical travel shows up on x.
    position_axis: str = Field("x", description="x|y")

    countdown_s: float = 3.0
    drill_duration_s: float | None = 60.0

    # 0 means "run as fast as possible".
    target_fps: float = 25.0
    handoff_capacity: int = 8

    model_config = SettingsConfigDict(env_prefix="DBC_", validate_assignment=True)

    @field_validator("video_source")
    @classmethod
    def _validate_source(cls, v: str) -> str:
        if v not in {"webcam", "file"}:
            raise ValueError("video_source must be webcam|file")
        return v

    @field_validator("coordinate_space")
    @classmethod
    def _validate_coordinate_space(cls, v: str) -> str:
        v2 = str(v).strip().lower()
        if v2 not in COORDINATE_SPACES:
            raise ValueError("coordinate_space must be auto|normalized|pixel")
        return v2

    @field_validator("position_axis")
    @classmethod
    def _validate_axis(cls, v: str) -> str:
        v2 = str(v).strip().lower()
        if v2 not in {"x", "y"}:
            raise ValueError("position_axis must be x|y")
        return v2

    @field_validator("model_input_size", "handoff_capacity")
    @classmethod
    def _validate_positive_int(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be >= 1")
        return v

    @field_validator("max_gap_frames", "history_size", "camera_index")
    @classmethod
    def _validate_non_negative_int(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("confidence_threshold", "iou_threshold", "report_min_confidence")
    @classmethod
    def _validate_unit_interval(cls, v: float) -> float:
        if not 0.0 <= float(v) <= 1.0:
            raise ValueError("must be in [0, 1]")
        return float(v)

    @field_validator("min_box_area", "max_box_area", "min_box_dimension")
    @classmethod
    def _validate_box_fraction(cls, v: float) -> float:
        if not 0.0 <= float(v) <= 1.0:
            raise ValueError("box bounds must be fractions in [0, 1]")
        return float(v)

    @field_validator("min_aspect_ratio", "max_aspect_ratio")
    @classmethod
    def _validate_aspect(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("aspect ratio bounds must be > 0")
        return float(v)

    @field_validator(
        "max_match_distance",
        "deadzone",
        "min_amplitude",
        "min_down_travel",
        "cooldown_s",
        "countdown_s",
        "target_fps",
    )
    @classmethod
    def _validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return float(v)

    @field_validator("drill_duration_s")
    @classmethod
    def _validate_duration(cls, v: float | None) -> float | None:
        if v is None:
            return v
        if v <= 0:
            raise ValueError("drill_duration_s must be > 0 (or null for no limit)")
        return float(v)


def settings_to_dict(settings: DribbleSettings) -> dict[str, Any]:
    return settings.model_dump()


def _config_path() -> Path:
    """Return the YAML configuration path (defaults to config/dribblecam.config.yml)."""

    return Path(os.getenv("DBC_CONFIG", "config/dribblecam.config.yml"))


def load_settings() -> DribbleSettings:
    """Load settings from YAML and environment variables.

    YAML provides defaults; environment variables override.
    """

    data: dict[str, Any] = {}
    path = _config_path()
    if path.exists():
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    env_settings = DribbleSettings()
    env_overrides: dict[str, Any] = {
        name: getattr(env_settings, name) for name in env_settings.model_fields_set
    }

    merged = {**data, **env_overrides}
    return DribbleSettings(**merged)


def box_constraints_from_settings(settings: DribbleSettings) -> BoxConstraints:
    return BoxConstraints(
        min_area=settings.min_box_area,
        max_area=settings.max_box_area,
        min_dimension=settings.min_box_dimension,
        min_aspect_ratio=settings.min_aspect_ratio,
        max_aspect_ratio=settings.max_aspect_ratio,
        model_input_size=float(settings.model_input_size),
        coordinate_space=settings.coordinate_space,
    )


def tracker_config_from_settings(settings: DribbleSettings) -> TrackerConfig:
    return TrackerConfig(
        max_match_distance=settings.max_match_distance,
        max_gap_frames=settings.max_gap_frames,
        history_size=settings.history_size,
    )


def dribble_config_from_settings(settings: DribbleSettings) -> DribbleConfig:
    return DribbleConfig(
        deadzone=settings.deadzone,
        min_amplitude=settings.min_amplitude,
        min_down_travel=settings.min_down_travel,
        cooldown_s=settings.cooldown_s,
    )
