"""Behavior evaluator - impossible travel between consecutive logins.

This evaluator answers: "Could the same person have been at both places?"
Not: "Is this fraud?"
"""

from typing import Optional

from trustgate.common.constants import ScoringConstants
from trustgate.core.types import FactorCode, FactorStatus, Pillar
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.decision import RiskFactor
from trustgate.data.schemas.login_attempt import LoginAttempt
from trustgate.evaluators.base import SignalEvaluator
from trustgate.models.travel import TravelPhysics


class BehaviorEvaluator(SignalEvaluator):
    """Scores the behavior pillar.

    Without a stored location there is nothing to compare against, so the
    attempt is a first login regardless of where it comes from.
    """

    pillar = Pillar.BEHAVIOR

    def __init__(self, physics: Optional[TravelPhysics] = None):
        self.physics = physics or TravelPhysics()

    def evaluate(
        self,
        attempt: LoginAttempt,
        baseline: Optional[TrustBaseline],
    ) -> RiskFactor:
        if baseline is None or not baseline.has_travel_history:
            return self._factor(
                FactorStatus.OK,
                ScoringConstants.BEHAVIOR_FIRST_LOGIN_POINTS,
                "First Login",
                FactorCode.FIRST_LOGIN,
            )

        if attempt.location is None:
            return self.degraded("travel check unavailable")

        assessment = self.physics.assess(
            baseline.last_location,
            baseline.last_seen_at,
            attempt.location,
            attempt.timestamp,
        )
        details = {
            "travel_distance_km": round(assessment.distance_km, 1),
            "max_coverable_km": round(assessment.max_coverable_km, 1),
            "time_since_last_login_minutes": assessment.elapsed_minutes,
            "previous_city": baseline.last_location.city,
            "current_city": attempt.location.city,
        }

        if assessment.impossible:
            return self._factor(
                FactorStatus.DANGER,
                ScoringConstants.BEHAVIOR_IMPOSSIBLE_TRAVEL_POINTS,
                "Impossible Travel",
                FactorCode.IMPOSSIBLE_TRAVEL,
                **details,
            )

        return self._factor(
            FactorStatus.OK,
            ScoringConstants.BEHAVIOR_NORMAL_POINTS,
            "Normal Pattern",
            FactorCode.NORMAL_PATTERN,
            **details,
        )
