from nightframe.util.format import deg_to_dms, format_angle, hours_to_hms


def test_hours_to_hms_zero():
    assert hours_to_hms(0.0) == "00:00:00"


def test_hours_to_hms_half_hour():
    assert hours_to_hms(5.5) == "05:30:00"


def test_hours_to_hms_wrap():
    # 24h wraps back to 00
    assert hours_to_hms(24.0) == "00:00:00"


def test_hours_to_hms_precision():
    assert hours_to_hms(1.0, precision=1) == "01:00:00.0"


def test_hours_to_hms_rounding_carry():
    # 23:59:59.96 with 1 decimal should round to 00:00:00.0
    hours = ((24 * 3600) - 0.04) / 3600.0
    assert hours_to_hms(hours, precision=1) == "00:00:00.0"


def test_deg_to_dms_positive():
    assert deg_to_dms(41.5) == "+41:30:00"


def test_deg_to_dms_negative():
    assert deg_to_dms(-10.0) == "-10:00:00"


def test_deg_to_dms_small_negative():
    assert deg_to_dms(-0.0001, precision=2).startswith("-00:00:")


def test_format_angle_unknown_style():
    try:
        format_angle(0.0, style="unknown")
    except ValueError as e:
        assert "Unknown angle style" in str(e)
    else:
        raise AssertionError("Expected ValueError for unknown style")


def test_format_angle_deg():
    assert format_angle(180.0, style="deg", precision=1) == "180.0°"


def test_format_angle_arcmin():
    assert format_angle(1.5, style="arcmin", precision=1) == "90.0'"


def test_format_angle_hms():
    # 15 degrees = 1 hour
    assert format_angle(15.0, style="hms") == "01:00:00.00"


def test_format_angle_dms():
    assert format_angle(-5.5, style="dms", precision=0) == "-05:30:00"
