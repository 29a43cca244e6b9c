import datetime
from typing import Callable

from .astro import altitude_deg, transit_altitude_deg
from .ephemeris import EphemerisProvider
from .types import NightWindow, ObserverContext, Target, VisibilityWindow

MIN_STEP_MIN = 10
MAX_STEP_MIN = 20

AltitudeFn = Callable[[datetime.datetime, float, float, float, float], float]


def local_civil_date(when: datetime.datetime, lon_deg: float) -> datetime.date:
    """Observer's calendar date, approximating local time as 4 minutes per degree."""
    if when.tzinfo is None:
        when = when.replace(tzinfo=datetime.timezone.utc)
    local = when.astimezone(datetime.timezone.utc) + datetime.timedelta(minutes=lon_deg * 4.0)
    return local.date()


def can_reach(target: Target, lat_deg: float, min_alt_deg: float) -> bool:
    return transit_altitude_deg(lat_deg, target.dec_deg) >= min_alt_deg


class VisibilitySampler:
    def __init__(
        self,
        ephemeris: EphemerisProvider,
        step_min: int = MIN_STEP_MIN,
        altitude_fn: AltitudeFn = altitude_deg,
    ) -> None:
        self._ephemeris = ephemeris
        self._step_min = _check_step(step_min)
        self._altitude = altitude_fn
        self._nights: dict[tuple[datetime.date, float, float], NightWindow | None] = {}

    @property
    def step_min(self) -> int:
        return self._step_min

    def night_for(self, observer: ObserverContext, reference: datetime.datetime | None = None) -> NightWindow | None:
        reference = reference or observer.when_utc
        day = local_civil_date(reference, observer.longitude_deg)
        key = (day, observer.latitude_deg, observer.longitude_deg)
        if key not in self._nights:
            self._nights[key] = self._ephemeris.night_window(day, observer.latitude_deg, observer.longitude_deg)
        return self._nights[key]

    def sample(
        self,
        target: Target,
        observer: ObserverContext,
        reference: datetime.datetime | None = None,
        min_alt_deg: float = 10.0,
        step_min: int | None = None,
    ) -> VisibilityWindow | None:
        step_min = self._step_min if step_min is None else _check_step(step_min)
        night = self.night_for(observer, reference)
        if night is None:
            return None
        lat = observer.latitude_deg
        lon = observer.longitude_deg
        if not can_reach(target, lat, min_alt_deg):
            return None

        step = datetime.timedelta(minutes=step_min)
        max_alt = -90.0
        max_alt_time = None
        first_visible = None
        last_visible = None
        t = night.start_utc
        while t <= night.end_utc:
            alt = self._altitude(t, lat, lon, target.ra_hours, target.dec_deg)
            if alt > max_alt:
                max_alt = alt
                max_alt_time = t
            if alt >= min_alt_deg:
                if first_visible is None:
                    first_visible = t
                last_visible = t
            t += step

        if first_visible is None or last_visible is None:
            return None
        return VisibilityWindow(
            start_utc=first_visible,
            end_utc=last_visible + step,
            alt_max_deg=round(max_alt, 1),
            alt_max_utc=max_alt_time,
        )


def _check_step(step_min: int) -> int:
    if not MIN_STEP_MIN <= step_min <= MAX_STEP_MIN:
        raise ValueError(f"Sampling step must be between {MIN_STEP_MIN} and {MAX_STEP_MIN} minutes")
    return step_min
