"""Travel physics model.

Answers a single question: could the same person have physically
moved between these two logins?
"""

from trustgate.models.travel.config import TravelConfig
from trustgate.models.travel.physics import (
    TravelAssessment,
    TravelPhysics,
    distance_km,
    is_impossible,
)

__all__ = [
    "TravelConfig",
    "TravelAssessment",
    "TravelPhysics",
    "distance_km",
    "is_impossible",
]
