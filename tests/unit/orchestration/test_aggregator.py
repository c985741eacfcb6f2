"""Tests for risk aggregation, thresholds and reason selection."""

import itertools
from collections import defaultdict

import pytest

from trustgate.core.types import AccessDecision, FactorCode, FactorStatus, Pillar
from trustgate.data.schemas.decision import RiskFactor
from trustgate.orchestration.aggregator import (
    RiskAggregator,
    classify,
    clamp_score,
    dominant_factor,
)
from trustgate.orchestration.reasons import (
    REASON_TEMPLATES,
    ReasonCategory,
    category_for,
    render_reason,
)


def factor(pillar, points, code, status=None, **details):
    if status is None:
        status = FactorStatus.OK if points <= 10 else FactorStatus.WARNING
    return RiskFactor(
        pillar=pillar,
        name=pillar.display_name,
        status=status,
        points=points,
        label=code.value,
        code=code,
        details=details,
    )


DEVICE_OUTCOMES = [
    (5, FactorCode.TRUSTED_DEVICE),
    (25, FactorCode.NEW_DEVICE),
    (50, FactorCode.NONCOMPLIANT_DEVICE),
]
LOCATION_OUTCOMES = [
    (5, FactorCode.SAME_CITY),
    (15, FactorCode.SAME_COUNTRY),
    (25, FactorCode.DIFFERENT_COUNTRY),
]
BEHAVIOR_OUTCOMES = [
    (5, FactorCode.NORMAL_PATTERN),
    (10, FactorCode.FIRST_LOGIN),
    (60, FactorCode.IMPOSSIBLE_TRAVEL),
]


@pytest.fixture
def aggregator():
    return RiskAggregator()


class TestThresholds:

    @pytest.mark.parametrize("score,expected", [
        (0, AccessDecision.GRANTED),
        (30, AccessDecision.GRANTED),
        (31, AccessDecision.CHALLENGE),
        (60, AccessDecision.CHALLENGE),
        (61, AccessDecision.BLOCKED),
        (100, AccessDecision.BLOCKED),
    ])
    def test_classify_boundaries(self, score, expected):
        assert classify(score) == expected

    def test_clamp(self):
        assert clamp_score(-5) == 0
        assert clamp_score(42) == 42
        assert clamp_score(145) == 100

    def test_every_point_combination(self, aggregator):
        for device, location, behavior in itertools.product(
            DEVICE_OUTCOMES, LOCATION_OUTCOMES, BEHAVIOR_OUTCOMES
        ):
            factors = [
                factor(Pillar.IDENTITY, 10, FactorCode.CREDENTIALS_VERIFIED),
                factor(Pillar.DEVICE, *device),
                factor(Pillar.LOCATION, *location),
                factor(Pillar.BEHAVIOR, *behavior),
            ]
            decision = aggregator.aggregate(factors, "att_grid")
            raw = 10 + device[0] + location[0] + behavior[0]

            assert 0 <= decision.risk_score <= 100
            assert decision.risk_score == min(raw, 100)
            assert decision.decision == classify(decision.risk_score)


class TestAggregate:

    def test_trusted_login_granted(self, aggregator):
        factors = [
            factor(Pillar.IDENTITY, 10, FactorCode.CREDENTIALS_VERIFIED),
            factor(Pillar.DEVICE, 5, FactorCode.TRUSTED_DEVICE),
            factor(Pillar.LOCATION, 5, FactorCode.SAME_CITY),
            factor(Pillar.BEHAVIOR, 5, FactorCode.NORMAL_PATTERN),
        ]
        decision = aggregator.aggregate(factors, "att_trusted")

        assert decision.risk_score == 25
        assert decision.decision == AccessDecision.GRANTED
        assert decision.reason_category == ReasonCategory.TRUSTED
        assert decision.reason in REASON_TEMPLATES[ReasonCategory.TRUSTED]
        assert [f.pillar for f in decision.risk_factors] == [
            Pillar.IDENTITY, Pillar.DEVICE, Pillar.LOCATION, Pillar.BEHAVIOR,
        ]

    def test_impossible_travel_reason_uses_details(self, aggregator):
        factors = [
            factor(Pillar.IDENTITY, 10, FactorCode.CREDENTIALS_VERIFIED),
            factor(Pillar.DEVICE, 5, FactorCode.TRUSTED_DEVICE),
            factor(Pillar.LOCATION, 25, FactorCode.DIFFERENT_COUNTRY),
            factor(
                Pillar.BEHAVIOR, 60, FactorCode.IMPOSSIBLE_TRAVEL,
                status=FactorStatus.DANGER,
                travel_distance_km=5012.3,
                time_since_last_login_minutes=45,
                previous_city="Lagos",
                current_city="London",
            ),
        ]
        decision = aggregator.aggregate(factors, "att_travel")

        assert decision.risk_score == 100
        assert decision.decision == AccessDecision.BLOCKED
        assert decision.reason_category == ReasonCategory.IMPOSSIBLE_TRAVEL
        assert "Lagos" in decision.reason
        assert "London" in decision.reason
        assert "45" in decision.reason

    def test_empty_factors_rejected(self, aggregator):
        with pytest.raises(ValueError):
            aggregator.aggregate([], "att_empty")

    def test_blocked_decision(self):
        decision = RiskAggregator.blocked_decision(ReasonCategory.UNKNOWN_PRINCIPAL, "att_x")

        assert decision.risk_score == 100
        assert decision.decision == AccessDecision.BLOCKED
        assert decision.risk_factors == ()
        assert decision.reason == "Invalid credentials. User not found in system."


class TestDominantFactor:

    def test_highest_points_wins(self):
        factors = [
            factor(Pillar.DEVICE, 25, FactorCode.NEW_DEVICE),
            factor(Pillar.BEHAVIOR, 60, FactorCode.IMPOSSIBLE_TRAVEL, status=FactorStatus.DANGER),
        ]
        assert dominant_factor(factors).pillar == Pillar.BEHAVIOR

    def test_tie_goes_to_earlier_pillar(self):
        factors = [
            factor(Pillar.LOCATION, 25, FactorCode.DIFFERENT_COUNTRY),
            factor(Pillar.DEVICE, 25, FactorCode.NEW_DEVICE),
        ]
        assert dominant_factor(factors).pillar == Pillar.DEVICE


class TestReasons:

    def test_ok_factor_maps_to_trusted(self):
        assert category_for(factor(Pillar.BEHAVIOR, 10, FactorCode.FIRST_LOGIN)) == ReasonCategory.TRUSTED

    def test_warning_codes(self):
        assert category_for(factor(Pillar.DEVICE, 25, FactorCode.NEW_DEVICE)) == ReasonCategory.NEW_DEVICE
        assert category_for(factor(Pillar.LOCATION, 15, FactorCode.SAME_COUNTRY)) == ReasonCategory.LOCATION_CHANGE

    def test_same_attempt_same_text(self):
        first = render_reason(ReasonCategory.NEW_DEVICE, "att_replay")
        second = render_reason(ReasonCategory.NEW_DEVICE, "att_replay")
        assert first == second

    def test_missing_details_render_unknown(self):
        text = render_reason(ReasonCategory.DIFFERENT_COUNTRY, "att_sparse", {"country": "France"})
        assert "France" in text
        assert "unknown" in text

    def test_list_details_joined(self):
        text = render_reason(
            ReasonCategory.COMPROMISED_DEVICE,
            "att_posture",
            {"compliance_failures": ["firewall_disabled", "security_patches_outdated"]},
        )
        assert "firewall_disabled, security_patches_outdated" in text

    def test_every_template_formats(self):
        for templates in REASON_TEMPLATES.values():
            for template in templates:
                assert template.format_map(defaultdict(lambda: "x"))
