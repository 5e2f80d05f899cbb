"""Low-precision lunar and solar ephemeris: phase, illumination, rise and set."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

JD_2000_0 = 2451545.0
JD_UNIX_EPOCH = 2440587.5
EARTH_RADIUS_KM = 6378.137
HORIZON_ALT_DEG = -0.566

NEW_MOON_MAX = 0.01
QUARTER_MIN = 0.49
QUARTER_MAX = 0.51
GIBBOUS_MIN = 0.99

_PHASE_DELTA_JD = 3.0 / (24.0 * 60.0)
_SCAN_STEP_JD = 5.0 / (24.0 * 60.0)
_REFINE_TOLERANCE_JD = 1.0 / (24.0 * 60.0 * 60.0)
_REFINE_MAX_ITERATIONS = 100

ALWAYS_ABOVE = "Always Above Horizon"
ALWAYS_BELOW = "Always Below Horizon"
NOT_AVAILABLE = "N/A"

# Periodic terms: (coefficient, D, M_sun, M_moon, F) multipliers.
_LONGITUDE_TERMS = (
    (6.28875, 0, 0, 1, 0),
    (1.27401, 2, 0, 0, 0),
    (0.65831, 0, 0, 0, 2),
    (-0.18581, 0, 1, 0, 0),
    (-0.11433, 0, 0, 1, 2),
    (0.05877, 2, 0, -1, 0),
    (0.05730, 2, 0, 1, 0),
    (0.05322, 0, 1, 0, 2),
    (0.04620, 0, 0, -1, 2),
    (0.04092, 2, -1, 0, 0),
    (0.03044, 0, 1, 1, 0),
    (0.01526, 2, 0, 0, -2),
    (0.01130, 0, -1, 1, 0),
    (0.01024, 0, -1, 0, 2),
    (-0.00914, 2, 1, 0, 0),
    (0.00422, 2, 0, 0, 2),
    (0.00386, 2, 0, 0, -3),
    (0.00366, 0, 0, 3, 0),
    (0.00293, 0, 2, 0, 0),
    (0.00276, -2, 0, 2, 0),
    (0.00252, 2, 0, 2, 0),
    (0.00224, 2, -1, 1, 0),
)

_LATITUDE_TERMS = (
    (5.12819, 0, 0, 0, 1),
    (0.28060, 0, 0, 1, 1),
    (0.27769, 0, 0, -1, 1),
    (0.17320, 0, 1, 0, 1),
    (0.05538, 2, 0, 0, 1),
    (0.04627, 2, 0, 0, -1),
    (0.03257, 2, 0, -1, 1),
    (0.01633, 2, 1, 0, -1),
    (0.00809, 2, 0, 1, 1),
    (0.00769, 0, 0, 2, 1),
    (0.00755, 2, 0, -1, 2),
    (0.00705, 2, 1, 0, 1),
    (0.00583, 2, -1, 0, 1),
    (0.00517, 2, 0, 0, 2),
    (0.00412, 2, 1, 0, -2),
    (0.00388, 2, 0, 1, 2),
    (0.00277, 2, 0, 1, 2),
)

_DISTANCE_TERMS = (
    (-20905.0, 0, 0, 1, 0),
    (-3699.0, 2, 0, -1, 0),
    (-2956.0, 2, 0, 0, 0),
    (-569.0, 0, 0, 0, 2),
    (246.0, 2, 0, 0, -2),
    (209.0, 0, 1, 1, 0),
    (105.0, 0, 1, 0, 0),
    (-103.0, 0, -1, 1, 0),
    (-57.0, 2, 0, 1, 0),
    (-48.0, 0, 0, 1, 2),
    (46.0, 2, -1, -1, 0),
    (38.0, 2, 0, 1, 0),
    (-30.0, 2, 0, 1, 1),
    (-24.0, -2, 0, 1, 0),
    (-22.0, 2, 0, 0, -1),
    (15.0, 0, 0, 1, -2),
    (-13.0, 2, 0, 1, 1),
    (-12.0, 2, 1, 0, 0),
    (10.0, 0, 1, 0, -2),
    (8.0, 2, 1, 0, 1),
    (7.0, 0, 0, 1, 1),
    (-6.0, 2, 1, 0, -1),
    (-5.0, -2, 0, 1, 2),
    (-4.0, 2, 0, 1, -1),
    (4.0, 2, 1, 1, 0),
    (-4.0, 2, -2, 0, 0),
    (-3.0, -2, -1, 1, 0),
    (-3.0, 0, 1, 0, -1),
    (-3.0, 2, 0, 0, 2),
    (3.0, 0, 1, 1, -1),
    (-3.0, 0, 1, 0, 2),
    (-3.0, 2, -1, -1, 0),
    (3.0, 2, -1, 1, 0),
    (3.0, 0, 1, 1, 1),
    (-3.0, -2, 0, 1, 1),
    (-2.0, 2, 0, -1, -1),
)


@dataclass(frozen=True)
class SolarCoords:
    """Apparent solar ecliptic longitude (degrees) and distance (AU)."""

    ecliptic_longitude: float
    radius_vector: float


@dataclass(frozen=True)
class LunarCoords:
    """Lunar ecliptic longitude and latitude (degrees) and distance (km)."""

    ecliptic_longitude: float
    ecliptic_latitude: float
    radius_vector: float


def normalize_degrees(angle: float) -> float:
    """Reduce an angle in degrees to the range [0, 360)."""
    result = math.fmod(angle, 360.0)
    if result < 0:
        result += 360.0
    return result


def normalize_radians(angle: float) -> float:
    """Reduce an angle in radians to the range [0, 2*pi)."""
    result = math.fmod(angle, 2.0 * math.pi)
    if result < 0:
        result += 2.0 * math.pi
    return result


def julian_day(moment: datetime) -> float:
    """Julian day of a moment; naive datetimes are taken as UTC."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    year, month = moment.year, moment.month
    day = (
        moment.day
        + moment.hour / 24.0
        + moment.minute / 1440.0
        + (moment.second + moment.microsecond / 1e6) / 86400.0
    )
    if month <= 2:
        year -= 1
        month += 12
    a = math.floor(year / 100.0)
    b = 2 - a + math.floor(a / 4.0)
    return math.floor(365.25 * (year + 4716)) + math.floor(30.6001 * (month + 1)) + day + b - 1524.5


def _timestamp(jd: float) -> int:
    return int((jd - JD_UNIX_EPOCH) * 86400.0)


def julian_day_to_datetime(jd: float, tz: tzinfo | None = None) -> datetime:
    """Aware datetime for a Julian day, in ``tz`` or the system's local zone."""
    return datetime.fromtimestamp(_timestamp(jd), timezone.utc).astimezone(tz)


def format_clock(moment: datetime) -> str:
    """Twelve-hour clock text such as ``07:05 PM``."""
    hour = moment.hour
    suffix = "PM" if hour >= 12 else "AM"
    if hour == 0:
        hour = 12
    elif hour > 12:
        hour -= 12
    return f"{hour:02d}:{moment.minute:02d} {suffix}"


def gmst(jd: float) -> float:
    """Greenwich mean sidereal time in degrees."""
    t = (jd - JD_2000_0) / 36525.0
    value = (
        280.46061837
        + 360.98564736629 * (jd - JD_2000_0)
        + 0.000387933 * t * t
        - t * t * t / 38710000.0
    )
    return normalize_degrees(value)


def obliquity_and_nutation(jd: float) -> tuple[float, float, float]:
    """Mean obliquity, nutation in longitude and in obliquity, all in degrees."""
    t = (jd - JD_2000_0) / 36525.0
    epsilon0_arcsec = 84381.448 - 46.8150 * t - 0.00059 * t * t + 0.001813 * t * t * t
    epsilon0 = epsilon0_arcsec / 3600.0

    l_prime = math.radians(normalize_degrees(218.3164477 + 481267.88123421 * t))
    f = math.radians(normalize_degrees(93.2720950 + 483202.0175 * t))
    omega = math.radians(normalize_degrees(125.04452 - 1934.13626 * t))

    delta_psi = (
        -17.200 * math.sin(omega)
        - 1.319 * math.sin(2 * l_prime)
        - 0.227 * math.sin(2 * f)
        + 0.206 * math.sin(2 * omega)
    ) / 3600.0
    delta_epsilon = (
        9.202 * math.cos(omega)
        + 0.573 * math.cos(2 * l_prime)
        + 0.098 * math.cos(2 * f)
        - 0.090 * math.cos(2 * omega)
    ) / 3600.0
    return epsilon0, delta_psi, delta_epsilon


def solar_coordinates(jd: float) -> SolarCoords:
    """Approximate apparent position of the Sun."""
    d = jd - JD_2000_0
    m = math.radians(normalize_degrees(357.5291092 + 0.985600283 * d))
    center = 1.9148 * math.sin(m) + 0.0200 * math.sin(2 * m) + 0.0003 * math.sin(3 * m)
    mean_longitude = normalize_degrees(280.46646 + 0.98564736 * d)
    longitude = normalize_degrees(mean_longitude + center)
    radius = 1.00014 - 0.01671 * math.cos(m) - 0.00014 * math.cos(2 * m)
    return SolarCoords(longitude, radius)


def _series(terms, func, d, m_sun, m_moon, f) -> float:
    return sum(
        coef * func(kd * d + ks * m_sun + km * m_moon + kf * f)
        for coef, kd, ks, km, kf in terms
    )


def lunar_coordinates(jd: float) -> LunarCoords:
    """Approximate geocentric position of the Moon."""
    days = jd - JD_2000_0
    l_moon = normalize_degrees(218.3164477 + 13.17639647 * days)
    m_moon = normalize_degrees(134.9634114 + 13.06499295 * days)
    m_sun = normalize_degrees(357.5291092 + 0.985600283 * days)
    f = normalize_degrees(93.2720950 + 13.22935035 * days)
    l_sun = normalize_degrees(280.46646 + 0.98564736 * days)
    d = normalize_degrees(l_moon - l_sun)

    args = (math.radians(d), math.radians(m_sun), math.radians(m_moon), math.radians(f))
    longitude = normalize_degrees(l_moon + _series(_LONGITUDE_TERMS, math.sin, *args))
    latitude = _series(_LATITUDE_TERMS, math.sin, *args)
    distance = 385000.0 + _series(_DISTANCE_TERMS, math.cos, *args)
    return LunarCoords(longitude, latitude, distance)


def illuminated_fraction(jd: float) -> float:
    """Fraction of the lunar disc that is lit, from 0 to 1."""
    sun = solar_coordinates(jd)
    moon = lunar_coordinates(jd)
    cos_elongation = math.cos(math.radians(moon.ecliptic_latitude)) * math.cos(
        math.radians(moon.ecliptic_longitude - sun.ecliptic_longitude)
    )
    phase_angle = math.acos(-cos_elongation)
    return (1.0 + math.cos(phase_angle)) / 2.0


def phase_and_illumination(jd: float) -> tuple[str, str]:
    """Phase name and illumination percentage text (one decimal)."""
    fraction = illuminated_fraction(jd)
    illumination = f"{fraction * 100.0:.1f}"
    waxing = illuminated_fraction(jd + _PHASE_DELTA_JD) > fraction

    if fraction < NEW_MOON_MAX:
        phase = "New Moon"
    elif fraction < QUARTER_MIN:
        phase = "Waxing Crescent" if waxing else "Waning Crescent"
    elif fraction <= QUARTER_MAX:
        phase = "First Quarter" if waxing else "Last Quarter"
    elif fraction < GIBBOUS_MIN:
        phase = "Waxing Gibbous" if waxing else "Waning Gibbous"
    else:
        phase = "Full Moon"
    return phase, illumination


def moon_altitude(jd: float, longitude: float, latitude: float) -> float:
    """Topocentric altitude of the Moon in degrees for an observer."""
    moon = lunar_coordinates(jd)
    mean_obliquity, delta_psi, delta_epsilon = obliquity_and_nutation(jd)

    obliquity = math.radians(mean_obliquity + delta_epsilon)
    ecl_lon = math.radians(moon.ecliptic_longitude + delta_psi)
    ecl_lat = math.radians(moon.ecliptic_latitude)

    ra = normalize_radians(
        math.atan2(
            math.sin(ecl_lon) * math.cos(obliquity) - math.tan(ecl_lat) * math.sin(obliquity),
            math.cos(ecl_lon),
        )
    )
    dec = math.asin(
        math.sin(ecl_lat) * math.cos(obliquity)
        + math.cos(ecl_lat) * math.sin(obliquity) * math.sin(ecl_lon)
    )

    lat_rad = math.radians(latitude)
    lon_rad = math.radians(longitude)
    lst = normalize_radians(math.radians(gmst(jd)) + lon_rad)
    lha = normalize_radians(lst - ra)

    sin_phi = math.sin(lat_rad)
    cos_phi = math.cos(lat_rad)
    sin_parallax = math.sin(math.asin(EARTH_RADIUS_KM / moon.radius_vector))

    denom = math.cos(dec) - cos_phi * sin_parallax * math.cos(lha)
    delta_alpha = math.atan2(-cos_phi * sin_parallax * math.sin(lha), denom)
    topo_ra = ra + delta_alpha
    topo_dec = math.atan2(math.sin(dec) - sin_phi * sin_parallax, denom * math.cos(delta_alpha))
    topo_lha = normalize_radians(lst - topo_ra)

    sin_h = math.sin(topo_dec) * sin_phi + math.cos(topo_dec) * cos_phi * math.cos(topo_lha)
    return math.degrees(math.asin(sin_h))


def refine_crossing(start: float, end: float, longitude: float, latitude: float, target: float) -> float:
    """Bisect [start, end] for the moment the Moon's altitude crosses ``target``."""
    for _ in range(_REFINE_MAX_ITERATIONS):
        if abs(end - start) < _REFINE_TOLERANCE_JD:
            break
        mid = (start + end) / 2.0
        diff_mid = moon_altitude(mid, longitude, latitude) - target
        diff_start = moon_altitude(start, longitude, latitude) - target
        if diff_start * diff_mid < 0:
            end = mid
        else:
            start = mid
    return (start + end) / 2.0


def local_midnight_jd(jd: float, tz: tzinfo | None = None) -> float:
    """Julian day of the start of the local calendar day containing ``jd``."""
    stamp = _timestamp(jd)
    if tz is None:
        local = datetime.fromtimestamp(stamp).replace(hour=0, minute=0, second=0, microsecond=0)
        midnight = datetime.fromtimestamp(int(local.timestamp()), timezone.utc)
    else:
        local = datetime.fromtimestamp(stamp, tz).replace(hour=0, minute=0, second=0, microsecond=0)
        midnight = local.astimezone(timezone.utc)
    return julian_day(midnight)


def _scan_crossings(jd: float, longitude: float, latitude: float) -> tuple[list[float], list[float]]:
    rises: list[float] = []
    sets: list[float] = []
    start = jd - 1.0
    end = jd + 1.0
    prev_jd = start
    prev_alt = moon_altitude(start, longitude, latitude)
    current = start + _SCAN_STEP_JD
    while current <= end:
        alt = moon_altitude(current, longitude, latitude)
        if prev_alt < HORIZON_ALT_DEG <= alt:
            rises.append(refine_crossing(prev_jd, current, longitude, latitude, HORIZON_ALT_DEG))
        elif prev_alt > HORIZON_ALT_DEG >= alt:
            sets.append(refine_crossing(prev_jd, current, longitude, latitude, HORIZON_ALT_DEG))
        prev_alt, prev_jd = alt, current
        current += _SCAN_STEP_JD
    return rises, sets


def rise_and_set(jd: float, longitude: float, latitude: float, tz: tzinfo | None = None) -> tuple[str, str]:
    """Moonrise and moonset text for the local day containing ``jd``."""
    rises, sets = _scan_crossings(jd, longitude, latitude)
    day_start = local_midnight_jd(jd, tz)
    day_end = day_start + 1.0

    def describe(crossings: list[float]) -> str:
        in_day = [c for c in crossings if day_start <= c < day_end]
        if in_day:
            return format_clock(julian_day_to_datetime(min(in_day), tz))
        alt_start = moon_altitude(day_start, longitude, latitude)
        alt_end = moon_altitude(day_end - 0.0001, longitude, latitude)
        if alt_start > HORIZON_ALT_DEG and alt_end > HORIZON_ALT_DEG:
            return ALWAYS_ABOVE
        if alt_start < HORIZON_ALT_DEG and alt_end < HORIZON_ALT_DEG:
            return ALWAYS_BELOW
        return NOT_AVAILABLE

    return describe(rises), describe(sets)


@dataclass(frozen=True)
class MoonInfo:
    """Phase, illumination and rise/set times of the Moon for an observer."""

    phase: str
    illumination: str
    rise_time: str
    set_time: str

    @classmethod
    def compute(
        cls,
        latitude: float,
        longitude: float,
        when: datetime | None = None,
        tz: tzinfo | None = None,
    ) -> "MoonInfo":
        """Compute the Moon's state at ``when`` (default: now, whole seconds)."""
        if when is None:
            when = datetime.now(timezone.utc).replace(microsecond=0)
        jd = julian_day(when)
        phase, illumination = phase_and_illumination(jd)
        rise, set_ = rise_and_set(jd, longitude, latitude, tz)
        return cls(phase, illumination, rise, set_)