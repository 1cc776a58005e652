"""
Example Usage of the Night Visibility Engine

This file demonstrates how to use the visibility modules to:
1. Parse an observer location
2. Sample a night curve and extract rise/transit/set
3. Run a twelve-month visibility survey
4. Overlay the Moon on the same night

The engine never reads the clock; "tonight" is decided here, in the caller.
"""

import sys
import logging
from datetime import datetime, timezone

# Add src to path if running from project root
sys.path.insert(0, 'src')

from visibility import (
    Config, parse_observer_location, sample_night_curve, analyze_visibility,
    horizon_crossings, describe_visibility, format_transit_time,
    compute_annual_visibility, moon_night_visibility
)
from visibility_astro import moon_phase, moon_equatorial_position, moon_separation

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# Orion Nebula
TARGET_NAME = "M42"
TARGET_RA = 5.588  # hours
TARGET_DEC = -5.45  # degrees


def demonstrate_night_curve(observer, night, tz):
    """Sample one night and print the events"""

    print("\n" + "=" * 60)
    print(f"NIGHT CURVE FOR {TARGET_NAME} ON {night.isoformat()}")
    print("=" * 60)

    curve = sample_night_curve(TARGET_RA, TARGET_DEC, observer, night, tz)
    result = analyze_visibility(curve, TARGET_DEC, observer.latitude)

    for point in curve[::4]:
        print(f"  {point.hour_label}  alt {point.altitude:6.2f}  az {point.azimuth:6.2f}")

    print(f"\nTransit:   {format_transit_time(result.transit_time)} at {result.transit_altitude:.1f} deg")
    print(f"Rise:      {format_transit_time(result.rise_time)}")
    print(f"Set:       {format_transit_time(result.set_time)}")
    print(f"Verdict:   {describe_visibility(result)}")

    crossings = horizon_crossings(curve)
    if len(crossings) > 2:
        logger.info(f"{len(crossings)} horizon crossings tonight; only the first rise/set are reported")

    return curve


def demonstrate_annual_survey(observer, year, tz):
    """Run the twelve-month survey"""

    print("\n" + "=" * 60)
    print(f"ANNUAL VISIBILITY FOR {TARGET_NAME} IN {year}")
    print("=" * 60)

    result = compute_annual_visibility(TARGET_RA, TARGET_DEC, observer, year, tz)
    for point in result.data:
        print(f"  {point.month_label}  max alt {point.max_altitude:6.2f}  "
              f"visible {point.visible_hours:5.2f} h  transit {point.transit_time}")

    print(f"\nBest month: {result.best_month_label}")


def demonstrate_moon(observer, night, tz, now):
    """Overlay the Moon on the same night"""

    print("\n" + "=" * 60)
    print("MOON")
    print("=" * 60)

    phase = moon_phase(now)
    print(f"Phase: {phase.name} ({phase.illumination}% illuminated)")

    curve = moon_night_visibility(observer, night, tz)
    above = [p for p in curve if p.altitude > 0]
    print(f"Moon above the horizon for {len(above) * Config.SAMPLE_INTERVAL_MINUTES / 60:.2f} h tonight")

    moon = moon_equatorial_position(now)
    separation = moon_separation(TARGET_RA, TARGET_DEC, moon.ra, moon.dec)
    print(f"Moon-{TARGET_NAME} separation: {separation:.1f} deg")


def main():
    """Run the demonstration for the location given on the command line"""

    text = sys.argv[1] if len(sys.argv) > 1 else "40.4, -3.7"
    observer = parse_observer_location(text)
    if observer is None:
        print(f"No visibility data: invalid location {text!r}")
        return 1

    tz = timezone.utc
    now = datetime.now(tz)
    night = now.date()

    demonstrate_night_curve(observer, night, tz)
    demonstrate_annual_survey(observer, night.year, tz)
    demonstrate_moon(observer, night, tz, now)
    return 0


if __name__ == "__main__":
    sys.exit(main())
