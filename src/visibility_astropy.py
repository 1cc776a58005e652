"""
Astronomical Calculation Module for Night Visibility using Astropy
This module reimplements visibility_astro.py functionality using the astropy package

This module provides reference values for:
- Time conversions (JD, GMST, LST)
- Equatorial to horizontal coordinate transformation
- Geocentric Moon position
- Angular separation

All functions keep the same interface as visibility_astro.py so the closed-form
versions can be checked against them.
"""

import numpy as np
from datetime import datetime, timezone
import logging
import warnings

# Suppress astropy warnings for cleaner output
warnings.filterwarnings('ignore', category=UserWarning)

# Import astropy modules
from astropy import units as u
from astropy.time import Time
from astropy.coordinates import (
    SkyCoord, EarthLocation, PrecessedGeocentric,
    get_body, solar_system_ephemeris
)
from astropy.utils import iers

from visibility_astro import (
    HorizontalCoordinates, MoonPosition, ObserverLocation,
    AZIMUTH_EPSILON, DEG_TO_RAD, RAD_TO_DEG, HOURS_TO_RAD,
    hour_angle, normalize_angle
)

logger = logging.getLogger(__name__)

# Work from the bundled IERS tables, never the network
iers.conf.auto_download = False
iers.conf.iers_degraded_accuracy = 'warn'


def _time(instant: datetime) -> Time:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return Time(instant.astimezone(timezone.utc), scale='utc')


# ============================================================================
# Time Conversion Functions
# ============================================================================

def julian_day(instant: datetime) -> float:
    """
    Calculate Julian Day for an instant using astropy.

    Args:
        instant: Datetime; naive values are interpreted as UTC

    Returns:
        Julian Day
    """
    return _time(instant).jd


def gmst(jd: float) -> float:
    """
    Calculate Greenwich Mean Sidereal Time using astropy.

    Args:
        jd: Julian Day

    Returns:
        GMST in hours (0-24)
    """
    t = Time(jd, format='jd', scale='ut1')
    return t.sidereal_time('mean', 'greenwich').hour


def local_sidereal_time(instant: datetime, longitude: float) -> float:
    """
    Calculate Local Sidereal Time using astropy.

    Args:
        instant: Datetime of the observation
        longitude: Observer longitude in degrees (east positive)

    Returns:
        LST in hours (0-24)
    """
    # Treat the UTC clock reading as UT1, as the closed-form version does
    t = Time(julian_day(instant), format='jd', scale='ut1')

    # Latitude doesn't matter for LST
    location = EarthLocation(lon=longitude * u.deg, lat=0 * u.deg)

    return t.sidereal_time('mean', longitude=location.lon).hour


# ============================================================================
# Coordinate Transformation Functions
# ============================================================================

def equatorial_to_horizontal(ra: float, dec: float, observer: ObserverLocation,
                             instant: datetime) -> HorizontalCoordinates:
    """
    Calculate altitude and azimuth using astropy sidereal time.

    Args:
        ra: Right ascension in hours
        dec: Declination in degrees
        observer: Observer location
        instant: Datetime of the observation

    Returns:
        HorizontalCoordinates in degrees
    """
    ha = hour_angle(local_sidereal_time(instant, observer.longitude), ra)

    ha_rad = ha * HOURS_TO_RAD
    dec_rad = dec * DEG_TO_RAD
    lat_rad = observer.latitude * DEG_TO_RAD

    sin_alt = np.clip(np.sin(dec_rad) * np.sin(lat_rad) +
                      np.cos(dec_rad) * np.cos(lat_rad) * np.cos(ha_rad), -1.0, 1.0)
    alt_rad = np.arcsin(sin_alt)

    if abs(np.cos(alt_rad) * np.cos(lat_rad)) < AZIMUTH_EPSILON:
        return HorizontalCoordinates(altitude=float(alt_rad * RAD_TO_DEG), azimuth=0.0)

    # Azimuth from north through east
    az_rad = np.arctan2(-np.sin(ha_rad) * np.cos(dec_rad),
                        np.sin(dec_rad) * np.cos(lat_rad) -
                        np.cos(dec_rad) * np.sin(lat_rad) * np.cos(ha_rad))

    return HorizontalCoordinates(altitude=float(alt_rad * RAD_TO_DEG),
                                 azimuth=normalize_angle(float(az_rad * RAD_TO_DEG)))


# ============================================================================
# Moon Calculations
# ============================================================================

def moon_equatorial_position(instant: datetime) -> MoonPosition:
    """
    Calculate geocentric Moon position using astropy.

    The result is referred to the mean equator and equinox of date, the frame
    the closed-form series works in.

    Args:
        instant: Datetime of the observation

    Returns:
        MoonPosition with RA in hours and Dec in degrees
    """
    t = _time(instant)

    with solar_system_ephemeris.set('builtin'):
        moon = get_body('moon', t)

    of_date = moon.transform_to(PrecessedGeocentric(equinox=t, obstime=t))
    return MoonPosition(ra=float(of_date.ra.hour), dec=float(of_date.dec.deg))


def moon_separation(ra1: float, dec1: float, ra2: float, dec2: float) -> float:
    """
    Calculate angular separation between two celestial positions using astropy.

    Args:
        ra1, dec1: First position (hours, degrees)
        ra2, dec2: Second position (hours, degrees)

    Returns:
        Angular separation in degrees
    """
    c1 = SkyCoord(ra=ra1 * u.hour, dec=dec1 * u.deg)
    c2 = SkyCoord(ra=ra2 * u.hour, dec=dec2 * u.deg)
    return float(c1.separation(c2).deg)
