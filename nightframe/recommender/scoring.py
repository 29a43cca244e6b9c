import datetime
from dataclasses import dataclass, fields, replace
from typing import Iterable, Sequence

from .types import ScoredTarget, VisibilityWindow

MAX_LIMIT = 1000
DEFAULT_LIMIT = 200


@dataclass(frozen=True)
class ScoringWeights:
    visibility: float = 0.7
    framing: float = 0.2
    seasonal: float = 0.1
    duration: float = 0.6
    altitude: float = 0.4
    ideal_fill: float = 0.3
    fill_sigma: float = 0.15
    altitude_ref_deg: float = 80.0
    fallback_night_hours: float = 8.0

    @classmethod
    def from_overrides(cls, overrides: dict | None) -> "ScoringWeights":
        weights = cls()
        if not overrides:
            return weights
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown scoring settings: {', '.join(unknown)}")
        return replace(weights, **{k: float(v) for k, v in overrides.items()})


def local_month(when: datetime.datetime, lon_deg: float) -> int:
    if when.tzinfo is None:
        when = when.replace(tzinfo=datetime.timezone.utc)
    local = when.astimezone(datetime.timezone.utc) + datetime.timedelta(minutes=lon_deg * 4.0)
    return local.month


def rotate_best_months(months: Iterable[int], lat_deg: float) -> tuple[int, ...]:
    months = tuple(months)
    if lat_deg >= 0:
        return months
    # +6 months for the southern hemisphere season flip
    return tuple(((m + 5) % 12) + 1 for m in months)


def seasonal_factor(best_months: Sequence[int], month: int, lat_deg: float) -> float:
    if not best_months:
        return 0.0
    return 1.0 if month in rotate_best_months(best_months, lat_deg) else 0.0


def visibility_score(
    window: VisibilityWindow | None,
    night_hours: float | None,
    weights: ScoringWeights = ScoringWeights(),
) -> tuple[float, float]:
    """Return ``(visibility_score, visible_hours)`` for a sampled window."""
    if window is None:
        return 0.0, 0.0
    visible_hours = window.hours
    if night_hours:
        duration = _clamp(visible_hours / night_hours)
    else:
        duration = _clamp(visible_hours / weights.fallback_night_hours)
    altitude = _clamp(window.alt_max_deg / weights.altitude_ref_deg)
    score = weights.duration * duration + weights.altitude * altitude
    return round(score, 3), visible_hours


def final_score(
    visibility: float,
    framing: float,
    seasonal: float,
    weights: ScoringWeights = ScoringWeights(),
) -> float:
    total = weights.visibility * visibility + weights.framing * framing + weights.seasonal * seasonal
    return round(_clamp(total), 3)


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, int(limit)))


def rank(scored: Iterable[ScoredTarget], limit: int | None = DEFAULT_LIMIT) -> list[ScoredTarget]:
    visible = [s for s in scored if s.window is not None]
    visible.sort(key=lambda s: (-s.score, s.catalog_index))
    return visible[: clamp_limit(limit)]


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))
