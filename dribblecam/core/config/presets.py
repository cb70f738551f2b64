from __future__ import annotations

from typing import Any


# Tuning presets for the dribble counter and detector gates.
#
# Notes:
# - deadzone rejects per-frame jitter; raise it for shaky handheld footage
# - min_amplitude / min_down_travel reject half bounces and hand fakes
# - cooldown_s is the shortest time between two counted dribbles


PRESETS: dict[str, dict[str, Any]] = {
    # Values the drill ships with.
    "default": {
        "deadzone": 0.02,
        "min_amplitude": 0.08,
        "min_down_travel": 0.05,
        "cooldown_s": 0.4,
        "report_min_confidence": 0.7,
    },
    # Low, fast dribbles (crossovers close to the floor).
    "sensitive": {
        "deadzone": 0.015,
        "min_amplitude": 0.05,
        "min_down_travel": 0.03,
        "cooldown_s": 0.25,
        "report_min_confidence": 0.6,
    },
    # Busy backgrounds or a distant camera; fewer false counts.
    "strict": {
        "deadzone": 0.03,
        "min_amplitude": 0.12,
        "min_down_travel": 0.08,
        "cooldown_s": 0.5,
        "report_min_confidence": 0.8,
        "max_gap_frames": 15,
    },
}


PRESET_LABELS: dict[str, str] = {
    "default": "Default",
    "sensitive": "Low dribbles",
    "strict": "Strict",
}


def list_presets() -> list[dict[str, Any]]:
    return [
        {
            "id": preset_id,
            "label": PRESET_LABELS.get(preset_id, preset_id),
            "settings": PRESETS[preset_id],
        }
        for preset_id in PRESETS.keys()
    ]


def preset_patch(preset_id: str) -> dict[str, Any]:
    if preset_id not in PRESETS:
        raise KeyError(preset_id)
    return dict(PRESETS[preset_id])
