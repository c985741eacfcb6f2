"""Tests for the travel physics model."""

import pytest
from datetime import datetime, timedelta, timezone

from trustgate.data.schemas.location import GeoLocation
from trustgate.models.travel import (
    TravelConfig,
    TravelPhysics,
    distance_km,
    is_impossible,
)


LAGOS = GeoLocation(city="Lagos", country="Nigeria", latitude=6.5244, longitude=3.3792)
LONDON = GeoLocation(city="London", country="United Kingdom", latitude=51.5074, longitude=-0.1278)
IKEJA = GeoLocation(city="Ikeja", country="Nigeria", latitude=6.6018, longitude=3.3515)

T0 = datetime(2026, 1, 28, 14, 30, tzinfo=timezone.utc)


class TestDistance:
    """Haversine distance."""

    def test_zero_on_identical_points(self):
        assert distance_km(6.5244, 3.3792, 6.5244, 3.3792) == 0.0

    def test_symmetric(self):
        forward = distance_km(6.5244, 3.3792, 51.5074, -0.1278)
        backward = distance_km(51.5074, -0.1278, 6.5244, 3.3792)
        assert forward == pytest.approx(backward)

    def test_lagos_to_london(self):
        # Roughly 5,000 km great-circle
        assert distance_km(6.5244, 3.3792, 51.5074, -0.1278) == pytest.approx(5000, rel=0.02)

    def test_quarter_meridian(self):
        # Equator to pole is a quarter of the circumference
        expected = 6371.0 * 3.141592653589793 / 2
        assert distance_km(0.0, 0.0, 90.0, 0.0) == pytest.approx(expected)

    def test_custom_radius(self):
        physics = TravelPhysics(TravelConfig(earth_radius_km=1.0))
        assert physics.distance_km(0.0, 0.0, 0.0, 180.0) == pytest.approx(3.141592653589793)


class TestImpossibleTravel:
    """Speed-ceiling check."""

    def test_lagos_to_london_in_45_minutes(self):
        assert is_impossible(LAGOS, T0, LONDON, T0 + timedelta(minutes=45)) is True

    def test_lagos_to_london_in_8_hours(self):
        assert is_impossible(LAGOS, T0, LONDON, T0 + timedelta(hours=8)) is False

    def test_symmetric_in_time_ordering(self):
        later = T0 + timedelta(minutes=45)
        assert is_impossible(LAGOS, T0, LONDON, later) == is_impossible(LONDON, later, LAGOS, T0)
        assert is_impossible(LAGOS, later, LONDON, T0) is True

    def test_short_hop_never_impossible(self):
        # ~9 km apart, same instant: below the jitter floor
        assert is_impossible(LAGOS, T0, IKEJA, T0) is False

    def test_same_instant_far_apart(self):
        assert is_impossible(LAGOS, T0, LONDON, T0) is True

    def test_assessment_fields(self):
        assessment = TravelPhysics().assess(LAGOS, T0, LONDON, T0 + timedelta(minutes=45))

        assert assessment.elapsed_hours == pytest.approx(0.75)
        assert assessment.elapsed_minutes == 45
        assert assessment.max_coverable_km == pytest.approx(675.0)
        assert assessment.distance_km > assessment.max_coverable_km
        assert assessment.impossible is True

    def test_custom_speed_ceiling(self):
        # A 10,000 km/h ceiling makes the 45-minute hop possible
        physics = TravelPhysics(TravelConfig(max_speed_kmh=10000.0))
        assert physics.is_impossible(LAGOS, T0, LONDON, T0 + timedelta(minutes=45)) is False
