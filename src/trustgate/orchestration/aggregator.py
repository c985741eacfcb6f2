"""Risk Aggregator - sums pillar points into a bounded, classified score.

The decision is a pure function of the clamped score:

    score <= 30  -> GRANTED
    score <= 60  -> CHALLENGE
    otherwise    -> BLOCKED
"""

import logging
from typing import Optional, Sequence

from trustgate.common.constants import ScoringConstants
from trustgate.core.types import AccessDecision
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.decision import Decision, RiskFactor
from trustgate.data.schemas.login_attempt import LoginAttempt
from trustgate.orchestration.reasons import category_for, render_reason
from trustgate.orchestration.signal_router import SignalRouter


logger = logging.getLogger(__name__)


def clamp_score(score: int) -> int:
    return max(ScoringConstants.SCORE_MIN, min(ScoringConstants.SCORE_MAX, score))


def classify(score: int) -> AccessDecision:
    """Map a clamped score to an access decision."""
    if score <= ScoringConstants.GRANT_MAX:
        return AccessDecision.GRANTED
    if score <= ScoringConstants.CHALLENGE_MAX:
        return AccessDecision.CHALLENGE
    return AccessDecision.BLOCKED


def dominant_factor(factors: Sequence[RiskFactor]) -> RiskFactor:
    """Highest-point factor; ties go to the earlier pillar."""
    return min(factors, key=lambda f: (-f.points, f.pillar.rank))


class RiskAggregator:
    """Combines pillar factors into a Decision."""

    def __init__(self, router: Optional[SignalRouter] = None):
        self.router = router or SignalRouter()

    def evaluate(
        self,
        attempt: LoginAttempt,
        baseline: Optional[TrustBaseline],
    ) -> Decision:
        """Evaluate every pillar and aggregate the result. Never raises."""
        result = self.router.route(attempt, baseline)
        if result.degraded:
            logger.info(
                "Decision computed with degraded pillars",
                extra={
                    "attempt_id": attempt.attempt_id,
                    "pillars": [e.pillar for e in result.errors],
                },
            )
        return self.aggregate(result.factors, attempt.attempt_id)

    def aggregate(self, factors: Sequence[RiskFactor], attempt_id: str) -> Decision:
        """Sum, clamp, classify and explain an ordered list of factors."""
        if not factors:
            raise ValueError("At least one risk factor is required")

        score = clamp_score(sum(f.points for f in factors))
        dominant = dominant_factor(factors)
        category = category_for(dominant)

        return Decision(
            risk_score=score,
            decision=classify(score),
            risk_factors=tuple(factors),
            reason=render_reason(category, attempt_id, dominant.details),
            reason_category=category,
        )

    @staticmethod
    def blocked_decision(category: str, attempt_id: str) -> Decision:
        """Maximum-risk decision with no factors, for pre-evaluation failures."""
        return Decision(
            risk_score=ScoringConstants.SCORE_MAX,
            decision=AccessDecision.BLOCKED,
            risk_factors=(),
            reason=render_reason(category, attempt_id),
            reason_category=category,
        )
