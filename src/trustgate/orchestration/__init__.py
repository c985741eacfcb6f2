"""Orchestration - signal routing, risk aggregation and the decision flow.

Components:
- SignalRouter: parallel, bounded pillar evaluation
- RiskAggregator: score, thresholds and reason text
- AccessDecisionFlow: the only place access decisions happen
"""

from trustgate.orchestration.decision_context import (
    AccessRequest,
    ResolvedSignals,
    DecisionOutcome,
)
from trustgate.orchestration.signal_router import (
    SignalRouter,
    RouterResult,
    PillarFailure,
    shutdown_executor,
)
from trustgate.orchestration.aggregator import RiskAggregator, classify, clamp_score
from trustgate.orchestration.reasons import ReasonCategory
from trustgate.orchestration.decision_flow import AccessDecisionFlow

__all__ = [
    "AccessRequest",
    "ResolvedSignals",
    "DecisionOutcome",
    "SignalRouter",
    "RouterResult",
    "PillarFailure",
    "shutdown_executor",
    "RiskAggregator",
    "classify",
    "clamp_score",
    "ReasonCategory",
    "AccessDecisionFlow",
]
