import datetime
import itertools

import pytest

from nightframe.recommender.scoring import (
    ScoringWeights,
    clamp_limit,
    final_score,
    local_month,
    rank,
    rotate_best_months,
    seasonal_factor,
    visibility_score,
)
from nightframe.recommender.types import (
    ScoredTarget,
    SuggestedCapture,
    Target,
    VisibilityWindow,
)

UTC = datetime.timezone.utc
START = datetime.datetime(2025, 1, 15, 0, 0, tzinfo=UTC)


def _window(hours, alt_max):
    return VisibilityWindow(
        start_utc=START,
        end_utc=START + datetime.timedelta(hours=hours),
        alt_max_deg=alt_max,
    )


def _scored(index, score, window=True):
    target = Target(
        id=f"T{index}",
        name=f"Target {index}",
        type="Galaxy",
        size_deg=1.0,
        ra_hours=0.0,
        dec_deg=0.0,
        ra_hms="00:00:00",
        dec_dms="+00:00:00",
    )
    return ScoredTarget(
        target=target,
        fill_ratio=0.3,
        framing_score=1.0,
        visibility_score=0.5,
        seasonal_factor=0.0,
        visible_hours=1.0,
        score=score,
        suggested_capture=SuggestedCapture(60.0, 100, 50, "Tracker: moderate subs recommended"),
        catalog_index=index,
        window=_window(1.0, 40.0) if window else None,
    )


def test_visibility_score_half_night():
    score, hours = visibility_score(_window(4.0, 40.0), night_hours=8.0)
    assert hours == pytest.approx(4.0)
    assert score == pytest.approx(0.5)


def test_visibility_score_fallback_night_hours():
    with_night, _ = visibility_score(_window(4.0, 40.0), night_hours=8.0)
    without_night, _ = visibility_score(_window(4.0, 40.0), night_hours=None)
    assert with_night == without_night


def test_visibility_score_capped():
    score, _ = visibility_score(_window(12.0, 89.0), night_hours=10.0)
    assert score == 1.0


def test_visibility_score_without_window():
    assert visibility_score(None, night_hours=10.0) == (0.0, 0.0)


def test_final_score_bounds():
    grid = [0.0, 0.25, 0.5, 0.75, 1.0]
    for v, f, s in itertools.product(grid, grid, [0.0, 1.0]):
        assert 0.0 <= final_score(v, f, s) <= 1.0
    assert final_score(1.0, 1.0, 1.0) == 1.0
    assert final_score(0.0, 0.0, 0.0) == 0.0


def test_final_score_weighting():
    assert final_score(0.5, 1.0, 1.0) == pytest.approx(0.65)


def test_final_score_rounded():
    assert final_score(0.3333333, 0.0, 0.0) == 0.233


def test_local_month_uses_longitude():
    when = datetime.datetime(2025, 2, 1, 2, 0, tzinfo=UTC)
    assert local_month(when, -75.0) == 1
    assert local_month(when, 0.0) == 2


def test_rotate_best_months_southern():
    assert rotate_best_months([12, 1, 2], -30.0) == (6, 7, 8)
    assert rotate_best_months([12, 1, 2], 30.0) == (12, 1, 2)


def test_seasonal_factor():
    assert seasonal_factor((12, 1, 2), 1, 40.0) == 1.0
    assert seasonal_factor((12, 1, 2), 7, 40.0) == 0.0
    assert seasonal_factor((12, 1, 2), 7, -35.0) == 1.0
    assert seasonal_factor((), 1, 40.0) == 0.0


def test_rank_sorts_by_score_then_catalog_order():
    scored = [_scored(3, 0.5), _scored(0, 0.9), _scored(2, 0.5), _scored(1, 0.5)]
    ranked = rank(scored, limit=10)
    assert [s.catalog_index for s in ranked] == [0, 1, 2, 3]


def test_rank_drops_targets_without_window():
    ranked = rank([_scored(0, 0.9, window=False), _scored(1, 0.1)], limit=10)
    assert [s.catalog_index for s in ranked] == [1]


def test_rank_truncates():
    scored = [_scored(i, 0.5) for i in range(20)]
    assert len(rank(scored, limit=5)) == 5


@pytest.mark.parametrize(
    "limit,expected",
    [(None, 200), (0, 1), (-3, 1), (50, 50), (1000, 1000), (5000, 1000)],
)
def test_clamp_limit(limit, expected):
    assert clamp_limit(limit) == expected


def test_weights_overrides():
    weights = ScoringWeights.from_overrides({"framing": 0.3, "seasonal": 0})
    assert weights.framing == 0.3
    assert weights.seasonal == 0.0
    assert weights.visibility == 0.7


def test_weights_unknown_override_rejected():
    with pytest.raises(ValueError):
        ScoringWeights.from_overrides({"brightness": 1.0})
