"""Configuration constants for the travel physics model.

Centralizes the physical limits so they can be tuned or overridden
in one place.
"""
from dataclasses import dataclass

from trustgate.common.constants import TravelConstants


@dataclass(frozen=True)
class TravelConfig:
    earth_radius_km: float = TravelConstants.EARTH_RADIUS_KM
    max_speed_kmh: float = TravelConstants.MAX_TRAVEL_SPEED_KMH
    # Displacements at or below this are treated as GPS/IP jitter
    min_distance_km: float = TravelConstants.MIN_MATERIAL_DISTANCE_KM
