import pytest

from dribblecam.core.config.presets import PRESETS, list_presets, preset_patch
from dribblecam.core.config.settings import DribbleSettings


def test_list_presets_has_labels_and_settings():
    presets = list_presets()
    assert [p["id"] for p in presets] == list(PRESETS)
    default = next(p for p in presets if p["id"] == "default")
    assert default["label"] == "Default"
    assert default["settings"]["cooldown_s"] == 0.4


def test_preset_patch_returns_copy():
    patch = preset_patch("strict")
    patch["deadzone"] = 99
    assert PRESETS["strict"]["deadzone"] == 0.03


def test_unknown_preset_raises():
    with pytest.raises(KeyError):
        preset_patch("nope")


@pytest.mark.parametrize("preset_id", list(PRESETS))
def test_presets_are_valid_settings(preset_id):
    DribbleSettings(**preset_patch(preset_id))
