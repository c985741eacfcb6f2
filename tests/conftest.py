"""Shared test fixtures for TrustGate."""

from datetime import datetime, timezone

import pytest

from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.location import GeoLocation
from trustgate.data.schemas.login_attempt import LoginAttempt

LAGOS = GeoLocation(city="Lagos", country="Nigeria", latitude=6.5244, longitude=3.3792)
ABUJA = GeoLocation(city="Abuja", country="Nigeria", latitude=9.0765, longitude=7.3986)
LONDON = GeoLocation(city="London", country="United Kingdom", latitude=51.5074, longitude=-0.1278)

T0 = datetime(2026, 1, 28, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def lagos():
    return LAGOS


@pytest.fixture
def london():
    return LONDON


@pytest.fixture
def make_attempt():
    """Factory for login attempts with sensible defaults."""
    def _make(**overrides):
        fields = {
            "principal": "alice@company.com",
            "device_fingerprint": "fp_7a9c2e",
            "ip_address": "102.89.1.10",
            "location": LAGOS,
            "timestamp": T0,
        }
        fields.update(overrides)
        return LoginAttempt(**fields)
    return _make


@pytest.fixture
def make_baseline():
    """Factory for stored baselines: trusted device in Lagos, seen at T0."""
    def _make(**overrides):
        fields = {
            "principal": "alice@company.com",
            "trusted_fingerprint": "fp_7a9c2e",
            "last_location": LAGOS,
            "last_seen_at": T0,
            "version": 1,
        }
        fields.update(overrides)
        return TrustBaseline(**fields)
    return _make
