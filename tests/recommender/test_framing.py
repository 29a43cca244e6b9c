import math

import pytest

from nightframe.errors import ComputationError
from nightframe.recommender.capture import suggest_capture
from nightframe.recommender.framing import (
    field_of_view,
    fill_ratio,
    fov_deg,
    framing_score,
    npf_limit_s,
    pixel_scale_arcsec,
)
from nightframe.recommender.types import EquipmentProfile, MountCapability


def test_aps_c_at_200mm(aps_c_equipment):
    fov = field_of_view(aps_c_equipment)
    assert fov.short_deg == pytest.approx(4.46, abs=0.01)
    assert fov.width_deg == pytest.approx(6.72, abs=0.01)
    fill = fill_ratio(1.3, fov.short_deg)
    assert fill == pytest.approx(0.29, abs=0.01)
    assert framing_score(fill) >= 0.98


def test_framing_peak():
    assert framing_score(0.3) == 1.0


@pytest.mark.parametrize("fill", [0.0, -0.2, float("nan"), float("inf")])
def test_framing_zero_for_degenerate_fill(fill):
    assert framing_score(fill) == 0.0


def test_framing_decreases_away_from_peak():
    below = [framing_score(f) for f in (0.3, 0.25, 0.2, 0.1, 0.05)]
    above = [framing_score(f) for f in (0.3, 0.35, 0.5, 0.8, 1.5)]
    assert all(a > b for a, b in zip(below, below[1:]))
    assert all(a > b for a, b in zip(above, above[1:]))


def test_framing_in_unit_interval():
    for i in range(1, 400):
        score = framing_score(i / 100.0)
        assert 0.0 <= score <= 1.0


def test_fill_ratio_zero_fov_is_error():
    with pytest.raises(ComputationError):
        fill_ratio(1.0, 0.0)


def test_fill_ratio_non_finite_fov_is_error():
    with pytest.raises(ComputationError):
        fill_ratio(1.0, math.inf)


def test_fov_rejects_bad_focal_length():
    with pytest.raises(ComputationError):
        fov_deg(23.5, 0.0)
    with pytest.raises(ComputationError):
        fov_deg(23.5, math.inf)


def test_pixel_scale():
    assert pixel_scale_arcsec(3.76, 200.0) == pytest.approx(3.878, abs=0.001)


def test_npf_limit_grows_toward_pole():
    equator = npf_limit_s(2.8, 4.0, 14.0, dec_deg=0.0)
    assert equator == pytest.approx((35 * 2.8 + 13.7 * 4.0) / 14.0)
    assert npf_limit_s(2.8, 4.0, 14.0, dec_deg=60.0) == pytest.approx(equator * 2.0)


def test_capture_tracker_defaults():
    equipment = EquipmentProfile(23.5, 15.6, 200.0, 4.0)
    capture = suggest_capture(MountCapability.TRACKER, equipment)
    assert capture.sub_exposure_s == 60.0
    assert capture.gain == 100
    assert capture.subs == 50
    assert capture.notes == "Tracker: moderate subs recommended"
    assert capture.npf_limit_s is None
    assert capture.pixel_scale_arcsec is None


def test_capture_guided():
    equipment = EquipmentProfile(23.5, 15.6, 200.0, 4.0)
    capture = suggest_capture(MountCapability.GUIDED, equipment)
    assert capture.sub_exposure_s == 180.0
    assert capture.notes == "Guided mount: longer subs OK"


def test_capture_fixed_mount_wide_lens_keeps_table_value():
    equipment = EquipmentProfile(23.5, 15.6, 14.0, 2.8, pixel_um=4.0)
    capture = suggest_capture(MountCapability.FIXED, equipment)
    assert capture.sub_exposure_s == 10.0
    assert capture.subs == 50
    assert capture.npf_limit_s == pytest.approx(10.9)


def test_capture_fixed_mount_capped_by_npf(aps_c_equipment):
    capture = suggest_capture(MountCapability.FIXED, aps_c_equipment)
    assert capture.sub_exposure_s == 1.0
    assert capture.subs == 500
    assert "NPF" in capture.notes
    assert capture.pixel_scale_arcsec == pytest.approx(3.88)
