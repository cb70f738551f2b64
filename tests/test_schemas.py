import pytest
from pydantic import ValidationError

from dribblecam.api.schemas.models import ConfigSchema
from dribblecam.core.config.settings import DribbleSettings, settings_to_dict


def test_config_schema_defaults_match_settings():
    assert ConfigSchema().model_dump() == settings_to_dict(DribbleSettings())
    assert set(ConfigSchema.model_fields) == set(DribbleSettings.model_fields)


@pytest.mark.parametrize(
    "patch",
    [
        {"max_box_area": 1.5},
        {"min_aspect_ratio": 0},
        {"drill_duration_s": 0},
        {"coordinate_space": "meters"},
        {"video_source": "rtsp"},
        {"handoff_capacity": 0},
    ],
)
def test_config_schema_rejects_what_settings_reject(patch):
    with pytest.raises(ValidationError):
        DribbleSettings(**patch)
    with pytest.raises(ValidationError):
        ConfigSchema(**patch)


def test_config_schema_accepts_null_duration():
    assert ConfigSchema(drill_duration_s=None).drill_duration_s is None
