"""Core module - shared enums."""

from trustgate.core.types import (
    AccessDecision,
    FactorCode,
    FactorStatus,
    Pillar,
    PILLAR_ORDER,
    Signal,
)

__all__ = [
    "AccessDecision",
    "FactorCode",
    "FactorStatus",
    "Pillar",
    "PILLAR_ORDER",
    "Signal",
]
