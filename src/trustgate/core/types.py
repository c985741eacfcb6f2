"""Core types and enums."""

from enum import Enum


class AccessDecision(str, Enum):
    """Final access decisions."""
    GRANTED = "GRANTED"
    CHALLENGE = "CHALLENGE"
    BLOCKED = "BLOCKED"


class FactorStatus(str, Enum):
    """Severity of a single pillar's contribution."""
    OK = "ok"
    WARNING = "warning"
    DANGER = "danger"


class Pillar(str, Enum):
    """Trust pillars, in evaluation order."""
    IDENTITY = "identity"
    DEVICE = "device"
    LOCATION = "location"
    BEHAVIOR = "behavior"

    @property
    def display_name(self) -> str:
        return PILLAR_DISPLAY_NAMES[self]

    @property
    def rank(self) -> int:
        """Position in the fixed evaluation order."""
        return PILLAR_ORDER.index(self)


PILLAR_ORDER = (Pillar.IDENTITY, Pillar.DEVICE, Pillar.LOCATION, Pillar.BEHAVIOR)

PILLAR_DISPLAY_NAMES = {
    Pillar.IDENTITY: "Identity Verified",
    Pillar.DEVICE: "Device Status",
    Pillar.LOCATION: "Location",
    Pillar.BEHAVIOR: "Behavior",
}


class FactorCode(str, Enum):
    """Machine-readable outcome of a pillar evaluation."""
    CREDENTIALS_VERIFIED = "credentials_verified"
    TRUSTED_DEVICE = "trusted_device"
    NO_DEVICE_HISTORY = "no_device_history"
    NEW_DEVICE = "new_device"
    NONCOMPLIANT_DEVICE = "noncompliant_device"
    SAME_CITY = "same_city"
    SAME_COUNTRY = "same_country"
    DIFFERENT_COUNTRY = "different_country"
    NO_LOCATION_HISTORY = "no_location_history"
    IMPOSSIBLE_TRAVEL = "impossible_travel"
    NORMAL_PATTERN = "normal_pattern"
    FIRST_LOGIN = "first_login"
    DEGRADED = "degraded"


class Signal(str, Enum):
    """External signals that may be unavailable for an attempt."""
    GEOLOCATION = "geolocation"
    COMPLIANCE = "compliance"
