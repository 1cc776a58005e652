"""
Astronomical Calculation Module for Night Visibility

This module provides the closed-form calculations behind the visibility engine:
- Time conversions (JD, GMST, LST)
- Equatorial to horizontal coordinate transformation
- Approximate geocentric Moon position and phase
- Angular separation between two positions

Every function takes its instant explicitly; nothing here reads the clock.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import NamedTuple
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

DEG_TO_RAD = math.pi / 180.0
RAD_TO_DEG = 180.0 / math.pi
HOURS_TO_RAD = math.pi / 12.0
RAD_TO_HOURS = 12.0 / math.pi
JD_EPOCH_2000 = 2451545.0  # JD for 2000-01-01 12:00 UT
DAYS_PER_CENTURY = 36525.0
AZIMUTH_EPSILON = 1e-7  # cos(alt)*cos(lat) below this is zenith, nadir or pole

SYNODIC_MONTH = 29.53058867  # days
KNOWN_NEW_MOON = datetime(2000, 1, 6, 18, 14, tzinfo=timezone.utc)


# ============================================================================
# Value Types
# ============================================================================

@dataclass(frozen=True)
class ObserverLocation:
    """Observer position in degrees; longitude is east positive"""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class EquatorialCoordinates:
    """Right ascension (hours) and declination (degrees)"""
    ra: float
    dec: float


# The Moon's position has the same shape as any catalog position
MoonPosition = EquatorialCoordinates


@dataclass(frozen=True)
class HorizontalCoordinates:
    """Altitude and azimuth in degrees (azimuth from north, eastward)"""
    altitude: float
    azimuth: float


class MoonElements(NamedTuple):
    """Mean lunar elements in degrees, not reduced to [0, 360)"""
    mean_longitude: float
    mean_anomaly: float
    argument_of_latitude: float
    mean_elongation: float
    ascending_node: float


@dataclass(frozen=True)
class MoonPhase:
    """Lunar phase: fraction of the synodic cycle, name and illumination"""
    phase: float  # 0 = new, 0.5 = full
    name: str
    illumination: int  # percent, 0-100


# ============================================================================
# Helpers
# ============================================================================

def normalize_angle(angle: float) -> float:
    """Reduce an angle in degrees to [0, 360)."""
    angle = angle % 360.0
    # -1e-15 % 360.0 rounds to 360.0
    if angle >= 360.0:
        angle = 0.0
    return angle


def normalize_hours(hours: float) -> float:
    """Reduce an hour value to [0, 24)."""
    hours = hours % 24.0
    if hours >= 24.0:
        hours = 0.0
    return hours


def _clamp_unit(value: float) -> float:
    # Floating-point overshoot guard for asin/acos
    if value > 1.0:
        return 1.0
    if value < -1.0:
        return -1.0
    return value


def _to_utc(instant: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are taken as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


# ============================================================================
# Time Conversion Functions
# ============================================================================

def julian_day(instant: datetime) -> float:
    """
    Calculate the Julian Day for an instant (Gregorian calendar, UTC).

    Args:
        instant: Datetime; naive values are interpreted as UTC

    Returns:
        Julian Day
    """
    utc = _to_utc(instant)

    day = (utc.day +
           utc.hour / 24.0 +
           utc.minute / 1440.0 +
           (utc.second + utc.microsecond / 1e6) / 86400.0)

    year = utc.year
    month = utc.month

    # Adjust for January/February
    if month <= 2:
        year -= 1
        month += 12

    a = math.floor(year / 100)
    b = 2 - a + math.floor(a / 4)

    return (math.floor(365.25 * (year + 4716)) +
            math.floor(30.6001 * (month + 1)) +
            day + b - 1524.5)


def jd_to_datetime(jd: float) -> datetime:
    """
    Convert Julian Day to an aware UTC datetime.

    Args:
        jd: Julian Day

    Returns:
        Datetime in UTC, rounded to the nearest microsecond
    """
    # Algorithm from Meeus
    jd_frac = jd + 0.5
    z = int(jd_frac)
    f = jd_frac - z

    if z < 2299161:
        a = z
    else:
        alpha = int((z - 1867216.25) / 36524.25)
        a = z + 1 + alpha - int(alpha / 4)

    b = a + 1524
    c = int((b - 122.1) / 365.25)
    d = int(365.25 * c)
    e = int((b - d) / 30.6001)

    day = b - d - int(30.6001 * e)
    month = e - 1 if e < 14 else e - 13
    year = c - 4716 if month > 2 else c - 4715

    midnight = datetime(year, month, day, tzinfo=timezone.utc)
    return midnight + timedelta(microseconds=round(f * 86400e6))


def julian_centuries(jd: float) -> float:
    """Julian centuries elapsed since J2000.0."""
    return (jd - JD_EPOCH_2000) / DAYS_PER_CENTURY


def gmst(jd: float) -> float:
    """
    Calculate Greenwich Mean Sidereal Time (IAU 1982 expression).

    Args:
        jd: Julian Day (UT)

    Returns:
        GMST in hours (0-24)
    """
    t = julian_centuries(jd)

    gmst_deg = (280.46061837 +
                360.98564736629 * (jd - JD_EPOCH_2000) +
                0.000387933 * t * t -
                t * t * t / 38710000.0)

    return normalize_angle(gmst_deg) / 15.0


def local_sidereal_time(instant: datetime, longitude: float) -> float:
    """
    Calculate Local Sidereal Time.

    Args:
        instant: Datetime of the observation
        longitude: Observer longitude in degrees (east positive)

    Returns:
        LST in hours (0-24)
    """
    return normalize_hours(gmst(julian_day(instant)) + longitude / 15.0)


# ============================================================================
# Coordinate Transformation Functions
# ============================================================================

def hour_angle(lst_hours: float, ra: float) -> float:
    """
    Hour angle of an object, normalized to [-12, 12] hours.

    Args:
        lst_hours: Local sidereal time in hours
        ra: Right ascension in hours
    """
    ha = lst_hours - ra
    while ha < -12.0:
        ha += 24.0
    while ha > 12.0:
        ha -= 24.0
    return ha


def equatorial_to_horizontal(ra: float, dec: float, observer: ObserverLocation,
                             instant: datetime) -> HorizontalCoordinates:
    """
    Calculate altitude and azimuth of an object for one instant.

    Args:
        ra: Right ascension in hours
        dec: Declination in degrees
        observer: Observer location
        instant: Datetime of the observation

    Returns:
        HorizontalCoordinates with altitude in [-90, 90] and azimuth in [0, 360)
    """
    lst_hours = local_sidereal_time(instant, observer.longitude)
    ha = hour_angle(lst_hours, ra)

    # Convert to radians
    ha_rad = ha * HOURS_TO_RAD
    dec_rad = dec * DEG_TO_RAD
    lat_rad = observer.latitude * DEG_TO_RAD

    # Calculate altitude
    sin_alt = _clamp_unit(math.sin(dec_rad) * math.sin(lat_rad) +
                          math.cos(dec_rad) * math.cos(lat_rad) * math.cos(ha_rad))
    alt_rad = math.asin(sin_alt)
    alt = alt_rad * RAD_TO_DEG

    # Calculate azimuth; undefined at zenith/nadir and for an observer at a pole
    denominator = math.cos(alt_rad) * math.cos(lat_rad)
    if abs(denominator) < AZIMUTH_EPSILON:
        logger.debug(f"Azimuth undefined at alt={alt:.6f}, lat={observer.latitude:.6f}; using 0")
        return HorizontalCoordinates(altitude=alt, azimuth=0.0)

    cos_az = _clamp_unit((math.sin(dec_rad) - sin_alt * math.sin(lat_rad)) / denominator)
    az = math.acos(cos_az) * RAD_TO_DEG

    # Objects west of the meridian
    if math.sin(ha_rad) > 0:
        az = 360.0 - az

    return HorizontalCoordinates(altitude=alt, azimuth=normalize_angle(az))


# ============================================================================
# Moon Calculations
# ============================================================================

def moon_mean_elements(jd: float) -> MoonElements:
    """
    Mean elements of the lunar orbit, linear in Julian centuries from J2000.0.

    Args:
        jd: Julian Day

    Returns:
        MoonElements in degrees
    """
    t = julian_centuries(jd)
    return MoonElements(
        mean_longitude=218.3165 + 481267.8813 * t,
        mean_anomaly=134.9634 + 477198.8675 * t,
        argument_of_latitude=93.2721 + 483202.0175 * t,
        mean_elongation=297.8502 + 445267.1115 * t,
        ascending_node=125.0446 - 1934.1363 * t,
    )


def moon_equatorial_position(instant: datetime) -> MoonPosition:
    """
    Calculate approximate geocentric Moon position.

    Uses the largest periodic terms of the lunar theory; accurate to a few
    tenths of a degree, which is enough for a visibility overlay.

    Args:
        instant: Datetime of the observation

    Returns:
        MoonPosition with RA in hours and Dec in degrees
    """
    jd = julian_day(instant)
    t = julian_centuries(jd)
    el = moon_mean_elements(jd)

    m = el.mean_anomaly * DEG_TO_RAD
    f = el.argument_of_latitude * DEG_TO_RAD
    d = el.mean_elongation * DEG_TO_RAD
    m_sun = (357.5291 + 35999.0503 * t) * DEG_TO_RAD

    # Ecliptic longitude
    lon = (el.mean_longitude +
           6.289 * math.sin(m) +
           1.274 * math.sin(2 * d - m) +
           0.658 * math.sin(2 * d) +
           0.214 * math.sin(2 * m) -
           0.186 * math.sin(m_sun) -
           0.114 * math.sin(2 * f))

    # Ecliptic latitude
    lat = (5.128 * math.sin(f) +
           0.281 * math.sin(m + f) +
           0.278 * math.sin(m - f) +
           0.173 * math.sin(2 * d - f))

    lon_rad = normalize_angle(lon) * DEG_TO_RAD
    lat_rad = lat * DEG_TO_RAD

    # Mean obliquity of the ecliptic
    eps_rad = (23.439291 - 0.0130042 * t) * DEG_TO_RAD

    # Convert to equatorial coordinates
    ra_rad = math.atan2(math.sin(lon_rad) * math.cos(eps_rad) - math.tan(lat_rad) * math.sin(eps_rad),
                        math.cos(lon_rad))
    dec_rad = math.asin(_clamp_unit(math.sin(lat_rad) * math.cos(eps_rad) +
                                    math.cos(lat_rad) * math.sin(eps_rad) * math.sin(lon_rad)))

    return MoonPosition(ra=normalize_hours(ra_rad * RAD_TO_HOURS),
                        dec=dec_rad * RAD_TO_DEG)


_PHASE_BOUNDS = [0.0625, 0.1875, 0.3125, 0.4375, 0.5625, 0.6875, 0.8125, 0.9375]

PHASE_NAMES = {
    "en": ["New Moon", "Waxing Crescent", "First Quarter", "Waxing Gibbous",
           "Full Moon", "Waning Gibbous", "Last Quarter", "Waning Crescent"],
    "es": ["Luna nueva", "Creciente", "Cuarto creciente", "Gibosa creciente",
           "Luna llena", "Gibosa menguante", "Cuarto menguante", "Menguante"],
}


def moon_phase(instant: datetime, language: str = "en") -> MoonPhase:
    """
    Lunar phase from the mean synodic month.

    Args:
        instant: Datetime of interest
        language: Phase name language ("en" or "es")

    Returns:
        MoonPhase with phase in [0, 1) and illumination in percent
    """
    names = PHASE_NAMES.get(language, PHASE_NAMES["en"])

    days = (_to_utc(instant) - KNOWN_NEW_MOON).total_seconds() / 86400.0
    phase = (days % SYNODIC_MONTH) / SYNODIC_MONTH
    illumination = round((1.0 - math.cos(2.0 * math.pi * phase)) * 50.0)

    # Past the last bound wraps back to new
    name = names[0]
    for upper, label in zip(_PHASE_BOUNDS, names):
        if phase < upper:
            name = label
            break

    return MoonPhase(phase=phase, name=name, illumination=illumination)


def moon_separation(ra1: float, dec1: float, ra2: float, dec2: float) -> float:
    """
    Calculate angular separation between two celestial positions.

    Args:
        ra1, dec1: First position (hours, degrees)
        ra2, dec2: Second position (hours, degrees)

    Returns:
        Angular separation in degrees
    """
    ra1_rad = ra1 * HOURS_TO_RAD
    dec1_rad = dec1 * DEG_TO_RAD
    ra2_rad = ra2 * HOURS_TO_RAD
    dec2_rad = dec2 * DEG_TO_RAD

    # Spherical law of cosines
    cos_sep = (math.sin(dec1_rad) * math.sin(dec2_rad) +
               math.cos(dec1_rad) * math.cos(dec2_rad) * math.cos(ra1_rad - ra2_rad))

    return math.acos(_clamp_unit(cos_sep)) * RAD_TO_DEG
