"""Device evaluator.

Exact fingerprint comparison against the trusted device on record,
overridden by a failing compliance posture when the MDM agent reports one.
"""

from typing import Optional

from trustgate.common.constants import ScoringConstants
from trustgate.core.types import FactorCode, FactorStatus, Pillar, Signal
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.decision import RiskFactor
from trustgate.data.schemas.login_attempt import LoginAttempt
from trustgate.evaluators.base import SignalEvaluator


class DeviceEvaluator(SignalEvaluator):
    """Scores the device pillar."""

    pillar = Pillar.DEVICE

    def evaluate(
        self,
        attempt: LoginAttempt,
        baseline: Optional[TrustBaseline],
    ) -> RiskFactor:
        posture = attempt.posture
        if posture is not None and not posture.is_compliant:
            return self._factor(
                FactorStatus.DANGER,
                ScoringConstants.DEVICE_NONCOMPLIANT_POINTS,
                "Security Failures",
                FactorCode.NONCOMPLIANT_DEVICE,
                compliance_failures=posture.failures(),
            )

        compliance_degraded = attempt.is_degraded(Signal.COMPLIANCE)
        suffix = " (compliance unavailable)" if compliance_degraded else ""

        trusted = baseline.trusted_fingerprint if baseline is not None else None

        if trusted is None:
            return self._factor(
                FactorStatus.OK,
                ScoringConstants.DEVICE_NO_HISTORY_POINTS,
                f"No Device History{suffix}",
                FactorCode.NO_DEVICE_HISTORY,
                degraded=compliance_degraded,
            )

        if attempt.device_fingerprint == trusted:
            return self._factor(
                FactorStatus.OK,
                ScoringConstants.DEVICE_TRUSTED_POINTS,
                f"Trusted Device{suffix}",
                FactorCode.TRUSTED_DEVICE,
                degraded=compliance_degraded,
            )

        return self._factor(
            FactorStatus.WARNING,
            ScoringConstants.DEVICE_NEW_POINTS,
            f"New Device Detected{suffix}",
            FactorCode.NEW_DEVICE,
            degraded=compliance_degraded,
        )
