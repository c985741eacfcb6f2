"""Signal evaluators - one per trust pillar."""

from trustgate.evaluators.base import SignalEvaluator
from trustgate.evaluators.identity import IdentityEvaluator
from trustgate.evaluators.device import DeviceEvaluator
from trustgate.evaluators.location import LocationEvaluator
from trustgate.evaluators.behavior import BehaviorEvaluator


def default_evaluators() -> list[SignalEvaluator]:
    """Evaluators in the fixed pillar order."""
    return [
        IdentityEvaluator(),
        DeviceEvaluator(),
        LocationEvaluator(),
        BehaviorEvaluator(),
    ]


__all__ = [
    "SignalEvaluator",
    "IdentityEvaluator",
    "DeviceEvaluator",
    "LocationEvaluator",
    "BehaviorEvaluator",
    "default_evaluators",
]
