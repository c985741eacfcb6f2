"""TrustGate - Zero-Trust access decision engine."""

__version__ = "0.1.0"
__author__ = "TrustGate Team"

# Core exports
from trustgate.core.types import AccessDecision, FactorStatus, Pillar

__all__ = [
    "AccessDecision",
    "FactorStatus",
    "Pillar",
]
