"""Data layer - schemas shared across the pipeline."""

from trustgate.data.schemas import (
    GeoLocation,
    DevicePosture,
    LoginAttempt,
    TrustBaseline,
    Decision,
    RiskFactor,
)

__all__ = [
    "GeoLocation",
    "DevicePosture",
    "LoginAttempt",
    "TrustBaseline",
    "Decision",
    "RiskFactor",
]
