import datetime
import math
import re
from dataclasses import dataclass

J2000_JD = 2451545.0

_SEPARATORS = re.compile(r"[:\s]+")


@dataclass(frozen=True)
class ParsedAngle:
    value: float
    ok: bool


def _split_sexagesimal(text: str) -> tuple[list[float], bool]:
    parts = [p for p in _SEPARATORS.split(text.strip()) if p]
    ok = 1 <= len(parts) <= 3
    values: list[float] = []
    for part in parts[:3]:
        try:
            value = float(part)
        except ValueError:
            value = 0.0
            ok = False
        if not math.isfinite(value):
            value = 0.0
            ok = False
        values.append(abs(value))
    while len(values) < 3:
        values.append(0.0)
    return values, ok


def parse_ra_hms(text: str | None) -> ParsedAngle:
    """Parse ``H:M:S`` into decimal hours in [0, 24).

    Malformed components count as zero and clear the ``ok`` flag. Right
    ascension is unsigned, so a ``+`` or ``-`` also clears it.
    """
    if not text or not text.strip():
        return ParsedAngle(0.0, False)
    signed = "+" in text or "-" in text
    (h, m, s), ok = _split_sexagesimal(text.replace("+", "").replace("-", ""))
    hours = (h + m / 60.0 + s / 3600.0) % 24.0
    return ParsedAngle(hours, ok and not signed)


def parse_dec_dms(text: str | None) -> ParsedAngle:
    """Parse ``±D:M:S`` into decimal degrees in [-90, 90]."""
    if not text or not text.strip():
        return ParsedAngle(0.0, False)
    stripped = text.strip()
    sign = -1.0 if stripped.startswith("-") else 1.0
    (d, m, s), ok = _split_sexagesimal(stripped.lstrip("+-"))
    deg = sign * (d + m / 60.0 + s / 3600.0)
    if deg > 90.0 or deg < -90.0:
        ok = False
        deg = max(-90.0, min(90.0, deg))
    return ParsedAngle(deg, ok)


def normalize_deg(angle: float) -> float:
    return angle % 360.0


def julian_date(dt: datetime.datetime) -> float:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    dt = dt.astimezone(datetime.timezone.utc)
    year = dt.year
    month = dt.month
    day = dt.day + (dt.hour + (dt.minute + (dt.second + dt.microsecond / 1e6) / 60.0) / 60.0) / 24.0
    if month <= 2:
        year -= 1
        month += 12
    a = math.floor(year / 100)
    b = 2 - a + math.floor(a / 4)
    jd = math.floor(365.25 * (year + 4716)) + math.floor(30.6001 * (month + 1)) + day + b - 1524.5
    return jd


def days_since_j2000(dt: datetime.datetime) -> float:
    return julian_date(dt) - J2000_JD


def gmst_deg(dt: datetime.datetime) -> float:
    d = days_since_j2000(dt)
    t = d / 36525.0
    gmst = 280.46061837 + 360.98564736629 * d + 0.000387933 * t * t - (t * t * t) / 38710000.0
    return normalize_deg(gmst)


def local_sidereal_time_deg(dt: datetime.datetime, longitude_deg: float) -> float:
    return normalize_deg(gmst_deg(dt) + longitude_deg)


def hour_angle_deg(dt: datetime.datetime, longitude_deg: float, ra_hours: float) -> float:
    return normalize_deg(local_sidereal_time_deg(dt, longitude_deg) - ra_hours * 15.0)


def altitude_from_hour_angle(lat_deg: float, dec_deg: float, ha_deg: float) -> float:
    phi = math.radians(lat_deg)
    delta = math.radians(dec_deg)
    h = math.radians(ha_deg)
    sin_alt = math.sin(phi) * math.sin(delta) + math.cos(phi) * math.cos(delta) * math.cos(h)
    return math.degrees(math.asin(max(-1.0, min(1.0, sin_alt))))


def altitude_deg(
    dt: datetime.datetime,
    lat_deg: float,
    lon_deg: float,
    ra_hours: float,
    dec_deg: float,
) -> float:
    return altitude_from_hour_angle(lat_deg, dec_deg, hour_angle_deg(dt, lon_deg, ra_hours))


def alt_az_deg(
    dt: datetime.datetime,
    lat_deg: float,
    lon_deg: float,
    ra_hours: float,
    dec_deg: float,
) -> tuple[float, float]:
    ha = math.radians(hour_angle_deg(dt, lon_deg, ra_hours))
    phi = math.radians(lat_deg)
    delta = math.radians(dec_deg)
    alt = altitude_from_hour_angle(lat_deg, dec_deg, math.degrees(ha))
    y = -math.sin(ha) * math.cos(delta)
    x = math.sin(delta) * math.cos(phi) - math.cos(delta) * math.sin(phi) * math.cos(ha)
    az = normalize_deg(math.degrees(math.atan2(y, x)))
    return alt, az


def transit_altitude_deg(lat_deg: float, dec_deg: float) -> float:
    return 90.0 - abs(lat_deg - dec_deg)


def sun_ra_dec_deg(dt: datetime.datetime) -> tuple[float, float]:
    """Apparent Sun position as (RA hours, Dec degrees), good to ~0.01°."""
    n = days_since_j2000(dt)
    l = math.radians((280.460 + 0.9856474 * n) % 360.0)
    g = math.radians((357.528 + 0.9856003 * n) % 360.0)
    lam = l + math.radians(1.915) * math.sin(g) + math.radians(0.020) * math.sin(2 * g)
    eps = math.radians(23.439 - 0.0000004 * n)
    ra = math.atan2(math.cos(eps) * math.sin(lam), math.cos(lam))
    dec = math.asin(math.sin(eps) * math.sin(lam))
    return normalize_deg(math.degrees(ra)) / 15.0, math.degrees(dec)


def moon_ra_dec_deg(dt: datetime.datetime) -> tuple[float, float]:
    n = days_since_j2000(dt)
    l = math.radians((218.316 + 13.176396 * n) % 360.0)
    m = math.radians((134.963 + 13.064993 * n) % 360.0)
    f = math.radians((93.272 + 13.229350 * n) % 360.0)
    lam = l + math.radians(6.289) * math.sin(m)
    beta = math.radians(5.128) * math.sin(f)
    eps = math.radians(23.439 - 0.0000004 * n)
    sin_dec = math.sin(beta) * math.cos(eps) + math.cos(beta) * math.sin(eps) * math.sin(lam)
    dec = math.asin(max(-1.0, min(1.0, sin_dec)))
    y = math.sin(lam) * math.cos(eps) - math.tan(beta) * math.sin(eps)
    x = math.cos(lam)
    ra = math.atan2(y, x)
    return normalize_deg(math.degrees(ra)) / 15.0, math.degrees(dec)


def angular_separation_deg(ra1_hours: float, dec1_deg: float, ra2_hours: float, dec2_deg: float) -> float:
    ra1 = math.radians(ra1_hours * 15.0)
    ra2 = math.radians(ra2_hours * 15.0)
    dec1 = math.radians(dec1_deg)
    dec2 = math.radians(dec2_deg)
    cos_sep = math.sin(dec1) * math.sin(dec2) + math.cos(dec1) * math.cos(dec2) * math.cos(ra1 - ra2)
    cos_sep = max(-1.0, min(1.0, cos_sep))
    return math.degrees(math.acos(cos_sep))


def moon_illumination_fraction(dt: datetime.datetime) -> float:
    ra_sun, dec_sun = sun_ra_dec_deg(dt)
    ra_moon, dec_moon = moon_ra_dec_deg(dt)
    elong = math.radians(angular_separation_deg(ra_sun, dec_sun, ra_moon, dec_moon))
    return (1.0 - math.cos(elong)) / 2.0


def sun_altitude_deg(dt: datetime.datetime, lat_deg: float, lon_deg: float) -> float:
    ra, dec = sun_ra_dec_deg(dt)
    return altitude_deg(dt, lat_deg, lon_deg, ra, dec)


def moon_altitude_deg(dt: datetime.datetime, lat_deg: float, lon_deg: float) -> float:
    ra, dec = moon_ra_dec_deg(dt)
    return altitude_deg(dt, lat_deg, lon_deg, ra, dec)
