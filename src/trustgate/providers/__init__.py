"""External signal providers - identity, geolocation, device compliance."""

from trustgate.providers.identity import IdentityProvider, InMemoryIdentityProvider
from trustgate.providers.geolocation import (
    GeolocationProvider,
    IpApiGeolocationProvider,
    StaticGeolocationProvider,
)
from trustgate.providers.compliance import ComplianceProvider, StaticComplianceProvider

__all__ = [
    "IdentityProvider",
    "InMemoryIdentityProvider",
    "GeolocationProvider",
    "IpApiGeolocationProvider",
    "StaticGeolocationProvider",
    "ComplianceProvider",
    "StaticComplianceProvider",
]
