#!/usr/bin/env python3
"""
Tests for visibility_astro.py functions
Time systems, coordinate transformation and the approximate Moon
"""

import sys
import os
from datetime import datetime, timedelta, timezone

import pytest

# Add src directory to path to import visibility_astro
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from visibility_astro import (
    ObserverLocation,
    SYNODIC_MONTH,
    KNOWN_NEW_MOON,
    julian_day,
    jd_to_datetime,
    gmst,
    local_sidereal_time,
    hour_angle,
    equatorial_to_horizontal,
    moon_mean_elements,
    moon_equatorial_position,
    moon_phase,
    moon_separation,
    normalize_angle
)


MADRID = ObserverLocation(latitude=40.4, longitude=-3.7)
J2000 = datetime(2000, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# Time conversions
# ============================================================================

def test_julian_day_reference_epoch():
    assert julian_day(J2000) == 2451545.0


def test_julian_day_naive_is_utc():
    assert julian_day(datetime(2000, 1, 1, 12)) == 2451545.0


def test_julian_day_converts_aware_to_utc():
    madrid_winter = timezone(timedelta(hours=1))
    assert julian_day(datetime(2000, 1, 1, 13, tzinfo=madrid_winter)) == 2451545.0


def test_julian_day_january_february_adjustment():
    # Meeus example 7.a: 1957 October 4.81
    assert julian_day(datetime(1957, 10, 4, 19, 26, 24)) == pytest.approx(2436116.31, abs=1e-6)
    # 1988 January 27.0
    assert julian_day(datetime(1988, 1, 27)) == pytest.approx(2447187.5, abs=1e-9)


def test_jd_to_datetime_round_trip():
    instant = datetime(2024, 3, 15, 21, 37, 12, tzinfo=timezone.utc)
    recovered = jd_to_datetime(julian_day(instant))
    assert recovered.tzinfo is not None
    assert abs(recovered - instant) < timedelta(milliseconds=1)


def test_gmst_at_j2000():
    assert gmst(2451545.0) == pytest.approx(18.697374558, abs=1e-8)


def test_gmst_meeus_example():
    # Meeus example 12.b: 1987 April 10, 19h21m00s UT -> 8h34m57.0896s
    jd = julian_day(datetime(1987, 4, 10, 19, 21, 0))
    assert gmst(jd) == pytest.approx(8 + 34 / 60 + 57.0896 / 3600, abs=1e-5)


def test_local_sidereal_time_adds_east_longitude():
    assert local_sidereal_time(J2000, 15.0) == pytest.approx(19.697374558, abs=1e-8)
    assert local_sidereal_time(J2000, -180.0) == pytest.approx(6.697374558, abs=1e-8)


def test_local_sidereal_time_range():
    for hour in range(0, 24, 3):
        lst_hours = local_sidereal_time(datetime(2024, 6, 1, hour), 179.9)
        assert 0.0 <= lst_hours < 24.0


# ============================================================================
# Coordinate transformation
# ============================================================================

def test_hour_angle_normalization():
    assert hour_angle(1.0, 23.0) == pytest.approx(2.0)
    assert hour_angle(23.0, 1.0) == pytest.approx(-2.0)
    assert hour_angle(12.0, 0.0) == pytest.approx(12.0)


def test_meridian_altitude_and_azimuth():
    instant = datetime(2024, 1, 15, 23, 0, tzinfo=timezone.utc)
    ra = local_sidereal_time(instant, MADRID.longitude)

    horizontal = equatorial_to_horizontal(ra, 0.0, MADRID, instant)

    assert horizontal.altitude == pytest.approx(49.6, abs=1e-6)
    assert horizontal.azimuth == pytest.approx(180.0, abs=1e-4)


def test_azimuth_quadrants():
    instant = datetime(2024, 1, 15, 23, 0, tzinfo=timezone.utc)
    lst_hours = local_sidereal_time(instant, MADRID.longitude)

    west = equatorial_to_horizontal(lst_hours - 3.0, 10.0, MADRID, instant)
    east = equatorial_to_horizontal(lst_hours + 3.0, 10.0, MADRID, instant)

    assert 180.0 < west.azimuth < 360.0
    assert 0.0 < east.azimuth < 180.0
    assert west.altitude == pytest.approx(east.altitude, abs=1e-9)


def test_zenith_azimuth_is_defined():
    instant = datetime(2024, 1, 15, 23, 0, tzinfo=timezone.utc)
    ra = local_sidereal_time(instant, MADRID.longitude)

    horizontal = equatorial_to_horizontal(ra, MADRID.latitude, MADRID, instant)

    assert horizontal.altitude == pytest.approx(90.0, abs=1e-6)
    assert horizontal.azimuth == 0.0


def test_pole_observer_azimuth_is_defined():
    north_pole = ObserverLocation(latitude=90.0, longitude=0.0)
    for hour in range(0, 24, 4):
        horizontal = equatorial_to_horizontal(7.5, 30.0, north_pole, datetime(2024, 5, 1, hour))
        assert horizontal.azimuth == 0.0
        assert horizontal.altitude == pytest.approx(30.0, abs=1e-6)


def test_horizontal_ranges():
    for dec in (-89.9, -45.0, 0.0, 45.0, 89.9):
        for ra in (0.0, 6.0, 12.0, 18.0, 23.99):
            horizontal = equatorial_to_horizontal(ra, dec, MADRID, datetime(2024, 9, 1, 2))
            assert -90.0 <= horizontal.altitude <= 90.0
            assert 0.0 <= horizontal.azimuth < 360.0


def test_normalize_angle():
    assert normalize_angle(-30.0) == pytest.approx(330.0)
    assert normalize_angle(720.0) == 0.0
    assert normalize_angle(-1e-15) < 360.0


# ============================================================================
# Moon
# ============================================================================

def test_moon_mean_elements_at_j2000():
    elements = moon_mean_elements(2451545.0)
    assert elements.mean_longitude == pytest.approx(218.3165)
    assert elements.ascending_node == pytest.approx(125.0446)


def test_moon_position_meeus_example():
    # Meeus example 47.a: 1992 April 12 0h -> RA 134.688470 deg, Dec +13.768368 deg
    position = moon_equatorial_position(datetime(1992, 4, 12, 0, 0))
    assert position.ra * 15.0 == pytest.approx(134.688470, abs=1.0)
    assert position.dec == pytest.approx(13.768368, abs=1.0)


def test_moon_position_ranges():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for day in range(0, 60, 3):
        position = moon_equatorial_position(start + timedelta(days=day))
        assert 0.0 <= position.ra < 24.0
        assert -30.0 < position.dec < 30.0


def test_moon_moves_within_a_night():
    evening = datetime(2024, 2, 10, 20, 0, tzinfo=timezone.utc)
    first = moon_equatorial_position(evening)
    later = moon_equatorial_position(evening + timedelta(hours=6))
    assert moon_separation(first.ra, first.dec, later.ra, later.dec) > 0.1


def test_moon_phase_cycle():
    new = moon_phase(KNOWN_NEW_MOON)
    assert new.phase == pytest.approx(0.0)
    assert new.name == "New Moon"
    assert new.illumination == 0

    full = moon_phase(KNOWN_NEW_MOON + timedelta(days=SYNODIC_MONTH / 2))
    assert full.phase == pytest.approx(0.5)
    assert full.name == "Full Moon"
    assert full.illumination == 100

    first_quarter = moon_phase(KNOWN_NEW_MOON + timedelta(days=SYNODIC_MONTH / 4))
    assert first_quarter.name == "First Quarter"
    assert first_quarter.illumination == 50


def test_moon_phase_end_of_cycle_is_new():
    late = moon_phase(KNOWN_NEW_MOON + timedelta(days=SYNODIC_MONTH * 0.97))
    assert late.name == "New Moon"


def test_moon_phase_spanish_names():
    assert moon_phase(KNOWN_NEW_MOON, language="es").name == "Luna nueva"
    full = moon_phase(KNOWN_NEW_MOON + timedelta(days=SYNODIC_MONTH / 2), "es")
    assert full.name == "Luna llena"
    assert full.illumination == 100
    last_quarter = moon_phase(KNOWN_NEW_MOON + timedelta(days=SYNODIC_MONTH * 0.75), "es")
    assert last_quarter.name == "Cuarto menguante"
    late = moon_phase(KNOWN_NEW_MOON + timedelta(days=SYNODIC_MONTH * 0.97), "es")
    assert late.name == "Luna nueva"


def test_moon_separation():
    assert moon_separation(0.0, 0.0, 6.0, 0.0) == pytest.approx(90.0)
    assert moon_separation(5.5, 23.5, 5.5, 23.5) == pytest.approx(0.0, abs=1e-5)
    assert moon_separation(0.0, 90.0, 13.0, -90.0) == pytest.approx(180.0)
