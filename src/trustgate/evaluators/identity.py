"""Identity evaluator.

Credential and MFA verification happen upstream in the identity provider;
by the time an attempt reaches the evaluators the principal is known.
This pillar contributes a fixed base score for that verified identity.
"""

from typing import Optional

from trustgate.common.constants import ScoringConstants
from trustgate.core.types import FactorCode, FactorStatus, Pillar
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.decision import RiskFactor
from trustgate.data.schemas.login_attempt import LoginAttempt
from trustgate.evaluators.base import SignalEvaluator


class IdentityEvaluator(SignalEvaluator):
    """Scores the identity pillar."""

    pillar = Pillar.IDENTITY

    def evaluate(
        self,
        attempt: LoginAttempt,
        baseline: Optional[TrustBaseline],
    ) -> RiskFactor:
        return self._factor(
            FactorStatus.OK,
            ScoringConstants.IDENTITY_VERIFIED_POINTS,
            "Credentials Valid",
            FactorCode.CREDENTIALS_VERIFIED,
        )
