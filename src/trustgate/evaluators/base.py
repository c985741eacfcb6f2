"""Signal evaluator base class.

Every evaluator scores exactly one trust pillar from the current attempt
and the stored baseline. Evaluators are pure: no I/O, no side effects,
no decisions.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from trustgate.common.constants import ScoringConstants
from trustgate.core.types import FactorCode, FactorStatus, Pillar
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.decision import RiskFactor
from trustgate.data.schemas.login_attempt import LoginAttempt

STATUS_ICONS = {
    FactorStatus.OK: "✅",
    FactorStatus.WARNING: "⚠️",
    FactorStatus.DANGER: "🚨",
}


class SignalEvaluator(ABC):
    """Scores one pillar of a login attempt."""

    pillar: Pillar

    @abstractmethod
    def evaluate(
        self,
        attempt: LoginAttempt,
        baseline: Optional[TrustBaseline],
    ) -> RiskFactor:
        """Score the attempt against the baseline.

        Args:
            attempt: The attempt being evaluated
            baseline: Stored baseline, or None for a first-ever login

        Returns:
            RiskFactor for this evaluator's pillar
        """

    def degraded(self, reason: str) -> RiskFactor:
        """Neutral low-risk factor used when the pillar cannot be scored."""
        return self._factor(
            FactorStatus.WARNING,
            ScoringConstants.DEGRADED_POINTS,
            f"{self.pillar.display_name} Unavailable (degraded: {reason})",
            FactorCode.DEGRADED,
            degraded=True,
            degraded_reason=reason,
        )

    def _factor(
        self,
        status: FactorStatus,
        points: int,
        text: str,
        code: FactorCode,
        degraded: bool = False,
        **details: Any,
    ) -> RiskFactor:
        return RiskFactor(
            pillar=self.pillar,
            name=self.pillar.display_name,
            status=status,
            points=points,
            label=f"{STATUS_ICONS[status]} {text}",
            code=code,
            degraded=degraded,
            details=details,
        )
