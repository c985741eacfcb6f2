"""Location evaluator - three-way city/country comparison."""

from typing import Optional

from trustgate.common.constants import ScoringConstants
from trustgate.core.types import FactorCode, FactorStatus, Pillar
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.decision import RiskFactor
from trustgate.data.schemas.login_attempt import LoginAttempt
from trustgate.evaluators.base import SignalEvaluator


class LocationEvaluator(SignalEvaluator):
    """Scores the location pillar."""

    pillar = Pillar.LOCATION

    def evaluate(
        self,
        attempt: LoginAttempt,
        baseline: Optional[TrustBaseline],
    ) -> RiskFactor:
        current = attempt.location
        if current is None:
            return self.degraded("geolocation unavailable")

        details = {"city": current.city, "country": current.country}
        previous = baseline.last_location if baseline is not None else None

        if previous is None:
            return self._factor(
                FactorStatus.OK,
                ScoringConstants.LOCATION_NO_HISTORY_POINTS,
                current.display,
                FactorCode.NO_LOCATION_HISTORY,
                **details,
            )

        details["previous_city"] = previous.city
        details["previous_country"] = previous.country

        if current.same_city(previous):
            return self._factor(
                FactorStatus.OK,
                ScoringConstants.LOCATION_SAME_CITY_POINTS,
                current.display,
                FactorCode.SAME_CITY,
                **details,
            )

        if current.same_country(previous):
            return self._factor(
                FactorStatus.WARNING,
                ScoringConstants.LOCATION_SAME_COUNTRY_POINTS,
                current.display,
                FactorCode.SAME_COUNTRY,
                **details,
            )

        return self._factor(
            FactorStatus.WARNING,
            ScoringConstants.LOCATION_DIFFERENT_COUNTRY_POINTS,
            current.display,
            FactorCode.DIFFERENT_COUNTRY,
            **details,
        )
