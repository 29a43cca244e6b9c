"""Sun/Moon ephemeris used to bound the observing night.

The default provider is built on the low-precision solar and lunar positions in
:mod:`nightframe.recommender.astro`. Twilight instants are found by stepping the
Sun's altitude through the half-day on either side of local solar noon and
bisecting each bracketed horizon crossing.
"""

import datetime
import functools
import logging
from abc import ABC, abstractmethod
from typing import Callable, Mapping, Sequence

from .astro import moon_altitude_deg, moon_illumination_fraction, sun_altitude_deg
from .types import MoonInfo, NightWindow

logger = logging.getLogger(__name__)

SUNSET_ALT_DEG = -0.833
CIVIL_ALT_DEG = -6.0
ASTRONOMICAL_ALT_DEG = -18.0

# Distinct (day, lat, lon) nights remembered per provider.
INSTANTS_CACHE_SIZE = 256

# Evening instants are looked up on the local date, morning instants on the
# following local date. Each tuple lists names from most to least preferred.
EVENING_PREFERENCE = ("night", "dusk", "sunset")
MORNING_PREFERENCE = ("night_end", "dawn", "sunrise")

NIGHT_SOURCES = {
    "night": "astronomical",
    "dusk": "civil",
    "sunset": "sunset",
}

_EVENING_THRESHOLDS = {
    "sunset": SUNSET_ALT_DEG,
    "dusk": CIVIL_ALT_DEG,
    "night": ASTRONOMICAL_ALT_DEG,
}
_MORNING_THRESHOLDS = {
    "sunrise": SUNSET_ALT_DEG,
    "dawn": CIVIL_ALT_DEG,
    "night_end": ASTRONOMICAL_ALT_DEG,
}

Instants = Mapping[str, "datetime.datetime | None"]


def resolve_instant(
    instants: Instants,
    preference: Sequence[str],
) -> tuple[str, datetime.datetime] | None:
    """Return the first available ``(name, instant)`` in preference order."""
    for name in preference:
        value = instants.get(name)
        if value is not None:
            return name, value
    return None


class EphemerisProvider(ABC):
    name: str

    @abstractmethod
    def twilight_instants(self, day: datetime.date, lat_deg: float, lon_deg: float) -> Instants:
        raise NotImplementedError

    @abstractmethod
    def moon(self, when: datetime.datetime, lat_deg: float, lon_deg: float) -> MoonInfo:
        raise NotImplementedError

    def night_window(self, day: datetime.date, lat_deg: float, lon_deg: float) -> NightWindow | None:
        evening = resolve_instant(self.twilight_instants(day, lat_deg, lon_deg), EVENING_PREFERENCE)
        next_day = day + datetime.timedelta(days=1)
        morning = resolve_instant(self.twilight_instants(next_day, lat_deg, lon_deg), MORNING_PREFERENCE)
        if evening is None or morning is None:
            logger.info("No night interval on %s at lat %.2f, lon %.2f", day, lat_deg, lon_deg)
            return None
        evening_name, start = evening
        _, end = morning
        if start >= end:
            logger.info("Degenerate night interval on %s at lat %.2f, lon %.2f", day, lat_deg, lon_deg)
            return None
        return NightWindow(start_utc=start, end_utc=end, source=NIGHT_SOURCES[evening_name])


class LowPrecisionEphemeris(EphemerisProvider):
    name = "low_precision"

    def __init__(
        self,
        step_min: float = 10.0,
        sun_altitude_fn: Callable[[datetime.datetime, float, float], float] = sun_altitude_deg,
    ) -> None:
        self._step = datetime.timedelta(minutes=step_min)
        self._sun_altitude = sun_altitude_fn
        self._cached_instants = functools.lru_cache(maxsize=INSTANTS_CACHE_SIZE)(self._compute_instants)

    def twilight_instants(self, day: datetime.date, lat_deg: float, lon_deg: float) -> Instants:
        return self._cached_instants(day, round(lat_deg, 6), round(lon_deg, 6))

    def _compute_instants(self, day: datetime.date, lat_deg: float, lon_deg: float) -> Instants:
        noon = _local_solar_noon_utc(day, lon_deg)
        half_day = datetime.timedelta(hours=12)
        instants: dict[str, datetime.datetime | None] = {}
        evening = self._altitude_samples(noon, noon + half_day, lat_deg, lon_deg)
        for name, threshold in _EVENING_THRESHOLDS.items():
            instants[name] = self._find_crossing(evening, threshold, rising=False, lat_deg=lat_deg, lon_deg=lon_deg)
        morning = self._altitude_samples(noon - half_day, noon, lat_deg, lon_deg)
        for name, threshold in _MORNING_THRESHOLDS.items():
            instants[name] = self._find_crossing(morning, threshold, rising=True, lat_deg=lat_deg, lon_deg=lon_deg)
        return instants

    def moon(self, when: datetime.datetime, lat_deg: float, lon_deg: float) -> MoonInfo:
        return MoonInfo(
            illumination=round(moon_illumination_fraction(when), 3),
            altitude_deg=round(moon_altitude_deg(when, lat_deg, lon_deg), 1),
        )

    def _altitude_samples(
        self,
        start: datetime.datetime,
        end: datetime.datetime,
        lat_deg: float,
        lon_deg: float,
    ) -> list[tuple[datetime.datetime, float]]:
        samples = []
        t = start
        while t <= end:
            samples.append((t, self._sun_altitude(t, lat_deg, lon_deg)))
            t += self._step
        return samples

    def _find_crossing(
        self,
        samples: list[tuple[datetime.datetime, float]],
        threshold: float,
        *,
        rising: bool,
        lat_deg: float,
        lon_deg: float,
    ) -> datetime.datetime | None:
        for (t0, a0), (t1, a1) in zip(samples, samples[1:]):
            if rising and a0 < threshold <= a1:
                return self._bisect(t0, t1, threshold, rising, lat_deg, lon_deg)
            if not rising and a0 > threshold >= a1:
                return self._bisect(t0, t1, threshold, rising, lat_deg, lon_deg)
        return None

    def _bisect(
        self,
        lo: datetime.datetime,
        hi: datetime.datetime,
        threshold: float,
        rising: bool,
        lat_deg: float,
        lon_deg: float,
    ) -> datetime.datetime:
        while (hi - lo) > datetime.timedelta(seconds=1):
            mid = lo + (hi - lo) / 2
            above = self._sun_altitude(mid, lat_deg, lon_deg) > threshold
            if above != rising:
                lo = mid
            else:
                hi = mid
        return (lo + (hi - lo) / 2).replace(microsecond=0)


def _local_solar_noon_utc(day: datetime.date, lon_deg: float) -> datetime.datetime:
    noon = datetime.datetime(day.year, day.month, day.day, 12, 0, tzinfo=datetime.timezone.utc)
    return noon - datetime.timedelta(minutes=lon_deg * 4.0)
