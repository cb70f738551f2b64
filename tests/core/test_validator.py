import pytest

from dribblecam.core.detectors.validator import (
    BoxConstraints,
    is_pixel_space,
    normalize_box,
    to_detections,
    validate_box,
)
from dribblecam.core.types import RawBox


def _in_unit_square(bb):
    eps = 1e-9
    return (
        0.0 <= bb.x <= 1.0
        and 0.0 <= bb.y <= 1.0
        and 0.0 < bb.w <= 1.0
        and 0.0 < bb.h <= 1.0
        and bb.x + bb.w <= 1.0 + eps
        and bb.y + bb.h <= 1.0 + eps
    )


@pytest.mark.parametrize(
    "raw",
    [
        RawBox(0.5, 0.5, 0.1, 0.1, 0.9),
        RawBox(0.98, 0.98, 0.1, 0.1, 0.9),
        RawBox(0.01, 0.5, 0.1, 0.1, 0.9),
        RawBox(-0.5, -0.5, 0.3, 0.3, 0.9),
        RawBox(1.5, 0.5, 0.3, 0.3, 0.9),
        RawBox(950.0, 10.0, 60.0, 60.0, 0.9),
        RawBox(480.0, 480.0, 2000.0, 2000.0, 0.9),
        RawBox(0.5, 0.5, 1.9, 1.9, 0.9),
    ],
)
def test_returned_boxes_stay_in_unit_square(raw):
    bb = normalize_box(raw)
    if bb is not None:
        assert _in_unit_square(bb)
    checked = validate_box(raw)
    if checked is not None:
        assert _in_unit_square(checked)


def test_center_form_is_converted_to_top_left():
    bb = validate_box(RawBox(0.5, 0.4, 0.1, 0.1, 0.8))
    assert bb is not None
    assert bb.x == pytest.approx(0.45)
    assert bb.y == pytest.approx(0.35)
    assert bb.center == pytest.approx((0.5, 0.4))
    assert bb.conf == 0.8


def test_pixel_space_is_divided_by_model_input_size():
    bb = validate_box(RawBox(480.0, 240.0, 96.0, 96.0, 0.9))
    assert bb is not None
    assert bb.x == pytest.approx(0.45)
    assert bb.y == pytest.approx(0.2)
    assert bb.w == pytest.approx(0.1)


def test_explicit_coordinate_space_overrides_heuristic():
    raw = RawBox(1.5, 1.5, 1.0, 1.0, 0.9)
    assert is_pixel_space(raw) is False
    assert is_pixel_space(raw, "pixel") is True
    assert is_pixel_space(RawBox(480.0, 10.0, 20.0, 20.0, 0.9), "normalized") is False

    bb = normalize_box(raw, BoxConstraints(coordinate_space="pixel"))
    assert bb is not None
    assert bb.w == pytest.approx(1.0 / 960.0)


def test_aspect_ratio_three_is_rejected():
    assert validate_box(RawBox(0.5, 0.5, 0.3, 0.1, 0.9)) is None
    assert validate_box(RawBox(0.5, 0.5, 0.1, 0.3, 0.9)) is None


def test_square_box_with_sufficient_area_is_accepted():
    assert validate_box(RawBox(0.5, 0.5, 0.1, 0.1, 0.9)) is not None


def test_area_and_dimension_bounds():
    # area 0.0004 < 0.001
    assert validate_box(RawBox(0.5, 0.5, 0.02, 0.02, 0.9)) is None
    # area 0.36 > 0.3
    assert validate_box(RawBox(0.5, 0.5, 0.6, 0.6, 0.9)) is None
    # shorter side below min_dimension with a relaxed area bound
    relaxed = BoxConstraints(
        min_area=0.0, min_dimension=0.05, min_aspect_ratio=0.1, max_aspect_ratio=10.0
    )
    assert validate_box(RawBox(0.5, 0.5, 0.2, 0.04, 0.9), relaxed) is None


def test_box_clamped_at_the_edge_can_fail_aspect():
    # Mostly off-frame: clamping leaves a thin sliver.
    assert validate_box(RawBox(1.04, 0.5, 0.1, 0.1, 0.9)) is None


def test_fully_outside_box_is_dropped():
    assert normalize_box(RawBox(3.0, 0.5, 0.1, 0.1, 0.9), BoxConstraints(coordinate_space="normalized")) is None


def test_non_finite_box_is_dropped():
    assert normalize_box(RawBox(float("nan"), 0.5, 0.1, 0.1, 0.9)) is None
    assert normalize_box(RawBox(0.5, 0.5, float("inf"), 0.1, 0.9)) is None


def test_to_detections_preserves_order_and_drops_invalid():
    raws = [
        RawBox(0.5, 0.5, 0.1, 0.1, 0.9),
        RawBox(0.5, 0.5, 0.3, 0.1, 0.8),
        RawBox(0.2, 0.2, 0.08, 0.08, 0.7),
    ]
    dets = to_detections(raws)
    assert [d.confidence for d in dets] == [0.9, 0.7]
    assert dets[0].center == pytest.approx((0.5, 0.5))
    assert dets[1].box.w == pytest.approx(0.08)
