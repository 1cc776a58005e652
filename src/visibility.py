"""
Night Visibility Module

This module turns the closed-form calculations of visibility_astro into the
observing products used by the report layer:
- Observer location parsing ("lat, lon" text)
- Night altitude/azimuth curves (18:00 to 06:00 local, fixed cadence)
- Transit, rise and set extraction; circumpolar / never-rises classification
- Twelve-month visibility survey
- Moon altitude curve with the Moon position recomputed per sample

The night window is a fixed civil-clock interval, not a twilight computation.
Every entry point takes its date explicitly.
"""

import math
import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, List, Optional, Tuple, Union
from dataclasses import dataclass
import numpy as np

from visibility_astro import (
    EquatorialCoordinates, HorizontalCoordinates, MoonPosition, ObserverLocation,
    equatorial_to_horizontal, moon_equatorial_position
)

logger = logging.getLogger(__name__)

__all__ = [
    "Config", "ObserverLocation", "EquatorialCoordinates", "HorizontalCoordinates",
    "MoonPosition", "AltitudeDataPoint", "VisibilityResult", "HorizonCrossing",
    "AnnualVisibilityPoint", "AnnualVisibilityResult",
    "parse_observer_location", "parse_ra", "parse_dec",
    "night_window", "sample_night_curve", "classify_declination",
    "analyze_visibility", "horizon_crossings", "describe_visibility",
    "format_transit_time", "compute_annual_visibility", "moon_night_visibility",
]


# ============================================================================
# Constants and Configuration
# ============================================================================

class Config:
    """Configuration constants for visibility sampling"""

    # Night window (local civil clock)
    NIGHT_START_HOUR = 18
    NIGHT_END_HOUR = 6  # on the following day
    SAMPLE_INTERVAL_MINUTES = 15

    # Annual survey
    REPRESENTATIVE_DAY = 15
    MONTH_LABELS = {
        "en": ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"],
        "es": ["Ene", "Feb", "Mar", "Abr", "May", "Jun",
               "Jul", "Ago", "Sep", "Oct", "Nov", "Dic"],
    }

    # Description thresholds (transit altitude, degrees)
    VERY_LOW_ALTITUDE = 10.0
    LOW_ALTITUDE = 30.0
    GOOD_ALTITUDE = 60.0

    DESCRIPTIONS = {
        "en": {
            "never_rises": "Never rises from this location",
            "circumpolar": "Circumpolar - always visible",
            "very_low": "Very low visibility",
            "low": "Low visibility",
            "good": "Good visibility",
            "excellent": "Excellent visibility",
        },
        "es": {
            "never_rises": "Nunca visible desde esta ubicación",
            "circumpolar": "Circumpolar - siempre visible",
            "very_low": "Visibilidad muy baja",
            "low": "Visibilidad baja",
            "good": "Buena visibilidad",
            "excellent": "Excelente visibilidad",
        },
    }

    NO_TIME_LABEL = "--:--"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class AltitudeDataPoint:
    """One sample of a visibility curve"""
    time: datetime  # aware, in the observer's local zone
    altitude: float  # degrees above the horizon
    azimuth: float  # degrees from north, eastward
    hour_label: str  # "HH:MM", 24-hour local


@dataclass(frozen=True)
class VisibilityResult:
    """Night curve plus the events extracted from it"""
    data: Tuple[AltitudeDataPoint, ...]
    transit_time: Optional[datetime]
    transit_altitude: float
    rise_time: Optional[datetime]
    set_time: Optional[datetime]
    is_circumpolar: bool
    never_rises: bool


@dataclass(frozen=True)
class HorizonCrossing:
    """A sample where the object changed side of the horizon"""
    time: datetime
    kind: str  # "rise" or "set"


@dataclass(frozen=True)
class AnnualVisibilityPoint:
    """Summary of one representative night of a month"""
    month: int  # 1-12
    month_label: str
    max_altitude: float
    visible_hours: float
    transit_time: str  # "HH:MM" or "--:--"


@dataclass(frozen=True)
class AnnualVisibilityResult:
    """Twelve monthly points ordered Jan..Dec and the best month"""
    data: Tuple[AnnualVisibilityPoint, ...]
    best_month: int
    best_month_label: str
    is_circumpolar: bool
    never_rises: bool


# ============================================================================
# Coordinate Parsing
# ============================================================================

def parse_observer_location(text: str) -> Optional[ObserverLocation]:
    """
    Parse a "latitude, longitude" string.

    Args:
        text: Two comma separated decimal degrees, longitude east positive

    Returns:
        ObserverLocation, or None when the text is malformed or out of range
    """
    if not text:
        logger.warning("Empty observer location")
        return None

    parts = [p.strip() for p in text.split(',')]
    if len(parts) != 2:
        logger.warning(f"Observer location needs 2 fields, got {len(parts)}: {text!r}")
        return None

    try:
        latitude = float(parts[0])
        longitude = float(parts[1])
    except ValueError:
        logger.warning(f"Non-numeric observer location: {text!r}")
        return None

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        logger.warning(f"Non-finite observer location: {text!r}")
        return None
    if not (-90.0 <= latitude <= 90.0):
        logger.warning(f"Latitude out of range: {latitude}")
        return None
    if not (-180.0 <= longitude <= 180.0):
        logger.warning(f"Longitude out of range: {longitude}")
        return None

    return ObserverLocation(latitude=latitude, longitude=longitude)


def _parse_sexagesimal(text: str) -> Optional[Tuple[float, float, float]]:
    parts = text.split(':')
    if len(parts) != 3:
        return None
    try:
        values = tuple(float(p) for p in parts)
    except ValueError:
        return None
    if not all(math.isfinite(v) for v in values):
        return None
    return values


def parse_ra(text: str) -> Optional[float]:
    """Parse right ascension "HH:MM:SS.s" into decimal hours."""
    if not text or text == '#N/A':
        return None
    values = _parse_sexagesimal(text.strip())
    if values is None:
        logger.warning(f"Invalid right ascension: {text!r}")
        return None
    h, m, s = values
    return h + m / 60.0 + s / 3600.0


def parse_dec(text: str) -> Optional[float]:
    """Parse declination "+DD:MM:SS.s" into decimal degrees."""
    if not text or text == '#N/A':
        return None
    text = text.strip()
    sign = -1.0 if text.startswith('-') else 1.0
    # Exactly one leading sign
    unsigned = text[1:] if text[:1] in ('+', '-') else text
    values = _parse_sexagesimal(unsigned)
    if values is None:
        logger.warning(f"Invalid declination: {text!r}")
        return None
    d, m, s = values
    return sign * (d + m / 60.0 + s / 3600.0)


# ============================================================================
# Night Sampling
# ============================================================================

DateLike = Union[date, datetime]


def night_window(reference_date: DateLike,
                 tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """
    Start and end of the observing night for a calendar date.

    Args:
        reference_date: Date of the evening; an aware datetime supplies its
            own zone when ``tz`` is not given
        tz: Observer's local zone (default UTC)

    Returns:
        Tuple of (start, end) aware datetimes: 18:00 on the date and 06:00 on
        the following day
    """
    if isinstance(reference_date, datetime):
        if tz is None:
            tz = reference_date.tzinfo
        elif reference_date.tzinfo is not None:
            reference_date = reference_date.astimezone(tz)
        reference_date = reference_date.date()
    if tz is None:
        tz = timezone.utc

    start = datetime.combine(reference_date, time(Config.NIGHT_START_HOUR), tzinfo=tz)
    end = datetime.combine(reference_date + timedelta(days=1),
                           time(Config.NIGHT_END_HOUR), tzinfo=tz)
    return start, end


def _sample_window(position_at: Callable[[datetime], Tuple[float, float]],
                   observer: ObserverLocation, reference_date: DateLike,
                   tz: Optional[tzinfo]) -> List[AltitudeDataPoint]:
    start, end = night_window(reference_date, tz)
    local_tz = start.tzinfo
    step = timedelta(minutes=Config.SAMPLE_INTERVAL_MINUTES)

    # Same-zone subtraction is wall-clock, so a DST night still gets 49 samples
    num_samples = int((end - start) / step) + 1
    start_utc = start.astimezone(timezone.utc)

    data = []
    for i in range(num_samples):
        instant = (start_utc + i * step).astimezone(local_tz)
        ra, dec = position_at(instant)
        horizontal = equatorial_to_horizontal(ra, dec, observer, instant)
        data.append(AltitudeDataPoint(
            time=instant,
            altitude=horizontal.altitude,
            azimuth=horizontal.azimuth,
            hour_label=instant.strftime('%H:%M')
        ))
    return data


def sample_night_curve(ra: float, dec: float, observer: ObserverLocation,
                       reference_date: DateLike,
                       tz: Optional[tzinfo] = None) -> List[AltitudeDataPoint]:
    """
    Altitude/azimuth curve of a fixed object across one night.

    Args:
        ra: Right ascension in hours
        dec: Declination in degrees
        observer: Observer location
        reference_date: Date of the evening
        tz: Observer's local zone (default UTC)

    Returns:
        49 samples, 15 minutes apart, from 18:00 to 06:00 local
    """
    return _sample_window(lambda instant: (ra, dec), observer, reference_date, tz)


def moon_night_visibility(observer: ObserverLocation, reference_date: DateLike,
                          tz: Optional[tzinfo] = None) -> List[AltitudeDataPoint]:
    """
    Altitude/azimuth curve of the Moon across one night.

    The Moon moves about 13 degrees a day, so its position is recomputed at
    every sample instead of once per night.

    Args:
        observer: Observer location
        reference_date: Date of the evening
        tz: Observer's local zone (default UTC)

    Returns:
        Samples on the same window and cadence as sample_night_curve
    """
    def moon_at(instant: datetime) -> Tuple[float, float]:
        position = moon_equatorial_position(instant)
        return position.ra, position.dec

    return _sample_window(moon_at, observer, reference_date, tz)


# ============================================================================
# Visibility Analysis
# ============================================================================

def classify_declination(dec: float, latitude: float) -> Tuple[bool, bool]:
    """
    Geometric classification, independent of any sampled curve.

    Args:
        dec: Declination in degrees
        latitude: Observer latitude in degrees

    Returns:
        Tuple of (is_circumpolar, never_rises)
    """
    beyond_limit = abs(dec) > 90.0 - abs(latitude)
    same_side = np.sign(dec) == np.sign(latitude)
    return bool(beyond_limit and same_side), bool(beyond_limit and not same_side)


def analyze_visibility(data: List[AltitudeDataPoint], dec: float,
                       observer_latitude: float) -> VisibilityResult:
    """
    Extract transit, rise and set from a night curve.

    Only the first rise and the first following set are reported; use
    horizon_crossings for every crossing. The circumpolar / never-rises flags
    come from geometry and may disagree with the samples near the limit.

    Args:
        data: Night curve, chronologically ordered
        dec: Declination of the object in degrees
        observer_latitude: Observer latitude in degrees

    Returns:
        VisibilityResult
    """
    is_circumpolar, never_rises = classify_declination(dec, observer_latitude)

    transit_time = None
    transit_altitude = -90.0
    if data:
        altitudes = np.array([p.altitude for p in data])
        # argmax returns the first occurrence on ties
        transit = data[int(np.argmax(altitudes))]
        transit_time = transit.time
        transit_altitude = transit.altitude

    rise_time = None
    set_time = None
    was_above = False
    for point in data:
        is_above = point.altitude > 0
        if not was_above and is_above and rise_time is None:
            rise_time = point.time
        if was_above and not is_above and set_time is None:
            set_time = point.time
        was_above = is_above

    return VisibilityResult(
        data=tuple(data),
        transit_time=transit_time,
        transit_altitude=transit_altitude,
        rise_time=rise_time,
        set_time=set_time,
        is_circumpolar=is_circumpolar,
        never_rises=never_rises
    )


def horizon_crossings(data: List[AltitudeDataPoint]) -> List[HorizonCrossing]:
    """
    Every horizon crossing of a night curve, in order.

    A curve that starts above the horizon opens with a rise at its first
    sample, matching analyze_visibility.
    """
    if not data:
        return []

    above = np.array([p.altitude > 0 for p in data], dtype=int)
    # Prepend "below" so a curve starting above opens with a rise
    changes = np.diff(np.concatenate(([0], above)))

    crossings = []
    for index in np.flatnonzero(changes):
        kind = "rise" if changes[index] > 0 else "set"
        crossings.append(HorizonCrossing(time=data[index].time, kind=kind))
    return crossings


def describe_visibility(result: VisibilityResult, language: str = "en") -> str:
    """Qualitative description of a night's visibility ("en" or "es")."""
    texts = Config.DESCRIPTIONS.get(language, Config.DESCRIPTIONS["en"])

    if result.never_rises:
        return texts["never_rises"]
    if result.is_circumpolar:
        return texts["circumpolar"]
    if result.transit_altitude < Config.VERY_LOW_ALTITUDE:
        return texts["very_low"]
    if result.transit_altitude < Config.LOW_ALTITUDE:
        return texts["low"]
    if result.transit_altitude < Config.GOOD_ALTITUDE:
        return texts["good"]
    return texts["excellent"]


def format_transit_time(instant: Optional[datetime]) -> str:
    """Format an instant as "HH:MM" in its own zone, or "--:--" for None."""
    if instant is None:
        return Config.NO_TIME_LABEL
    return instant.strftime('%H:%M')


# ============================================================================
# Annual Survey
# ============================================================================

def compute_annual_visibility(ra: float, dec: float, observer: ObserverLocation,
                              year: int, tz: Optional[tzinfo] = None,
                              language: str = "en") -> AnnualVisibilityResult:
    """
    Maximum night altitude and visible hours for each month of a year.

    The 15th of each month stands for the whole month. The best month is the
    first one with the strictly greatest transit altitude.

    Args:
        ra: Right ascension in hours
        dec: Declination in degrees
        observer: Observer location
        year: Calendar year
        tz: Observer's local zone (default UTC)
        language: Month label language ("en" or "es")

    Returns:
        AnnualVisibilityResult with 12 points ordered Jan..Dec
    """
    labels = Config.MONTH_LABELS.get(language, Config.MONTH_LABELS["en"])
    is_circumpolar, never_rises = classify_declination(dec, observer.latitude)
    hours_per_sample = Config.SAMPLE_INTERVAL_MINUTES / 60.0

    data = []
    best_month = 0
    best_altitude = -math.inf

    for month in range(1, 13):
        night = date(year, month, Config.REPRESENTATIVE_DAY)
        visibility = analyze_visibility(
            sample_night_curve(ra, dec, observer, night, tz), dec, observer.latitude)

        altitudes = np.array([p.altitude for p in visibility.data])
        visible_hours = int(np.count_nonzero(altitudes > 0)) * hours_per_sample

        data.append(AnnualVisibilityPoint(
            month=month,
            month_label=labels[month - 1],
            max_altitude=visibility.transit_altitude,
            visible_hours=visible_hours,
            transit_time=format_transit_time(visibility.transit_time)
        ))

        if visibility.transit_altitude > best_altitude:
            best_altitude = visibility.transit_altitude
            best_month = month

    logger.info(f"Annual visibility RA={ra:.3f}h Dec={dec:+.3f} in {year}: "
                f"best month {labels[best_month - 1]} at {best_altitude:.1f} deg")

    return AnnualVisibilityResult(
        data=tuple(data),
        best_month=best_month,
        best_month_label=labels[best_month - 1],
        is_circumpolar=is_circumpolar,
        never_rises=never_rises
    )
