"""Travel physics - is the displacement between two logins achievable?

Great-circle distance between the two resolved locations is compared
with the distance coverable at commercial flight speed in the elapsed
time. Both checks are pure and deterministic.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from trustgate.data.schemas.location import GeoLocation
from trustgate.models.travel.config import TravelConfig


@dataclass(frozen=True)
class TravelAssessment:
    """Result of comparing two geolocated timestamps.

    Attributes:
        distance_km: Great-circle distance between the two points
        elapsed_hours: Absolute time between the two logins
        max_coverable_km: Distance reachable at the ceiling speed
        impossible: Whether the displacement is physically impossible
    """
    distance_km: float
    elapsed_hours: float
    max_coverable_km: float
    impossible: bool

    @property
    def elapsed_minutes(self) -> int:
        return int(self.elapsed_hours * 60)


class TravelPhysics:
    """Haversine distance and impossible-travel detection."""

    def __init__(self, config: Optional[TravelConfig] = None):
        self.config = config or TravelConfig()

    def distance_km(self, lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Great-circle distance in kilometres (haversine formula)."""
        phi1 = math.radians(lat1)
        phi2 = math.radians(lat2)
        d_phi = math.radians(lat2 - lat1)
        d_lambda = math.radians(lon2 - lon1)

        a = (
            math.sin(d_phi / 2) ** 2
            + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
        )
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        return self.config.earth_radius_km * c

    def assess(
        self,
        loc1: GeoLocation,
        t1: datetime,
        loc2: GeoLocation,
        t2: datetime,
    ) -> TravelAssessment:
        """Compare two geolocated timestamps. Argument order does not matter."""
        distance = self.distance_km(
            loc1.latitude, loc1.longitude, loc2.latitude, loc2.longitude
        )
        elapsed_hours = abs((t2 - t1).total_seconds()) / 3600.0
        max_coverable = elapsed_hours * self.config.max_speed_kmh

        impossible = distance > max_coverable and distance > self.config.min_distance_km

        return TravelAssessment(
            distance_km=distance,
            elapsed_hours=elapsed_hours,
            max_coverable_km=max_coverable,
            impossible=impossible,
        )

    def is_impossible(
        self,
        loc1: GeoLocation,
        t1: datetime,
        loc2: GeoLocation,
        t2: datetime,
    ) -> bool:
        return self.assess(loc1, t1, loc2, t2).impossible


_default_physics = TravelPhysics()


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Module-level haversine distance with the default Earth radius."""
    return _default_physics.distance_km(lat1, lon1, lat2, lon2)


def is_impossible(loc1: GeoLocation, t1: datetime, loc2: GeoLocation, t2: datetime) -> bool:
    """Module-level impossible-travel check with default limits."""
    return _default_physics.is_impossible(loc1, t1, loc2, t2)
