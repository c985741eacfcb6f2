"""Data schemas - canonical Pydantic definitions."""

from trustgate.data.schemas.location import GeoLocation
from trustgate.data.schemas.login_attempt import DevicePosture, LoginAttempt
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.decision import Decision, RiskFactor

__all__ = [
    "GeoLocation",
    "DevicePosture",
    "LoginAttempt",
    "TrustBaseline",
    "Decision",
    "RiskFactor",
]
