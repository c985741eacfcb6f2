"""RiskFactor and Decision schemas - canonical definitions."""

from typing import Any, Dict

from pydantic import BaseModel, Field

from trustgate.core.types import AccessDecision, FactorCode, FactorStatus, Pillar


class RiskFactor(BaseModel):
    """One pillar's contribution to the risk score."""
    pillar: Pillar = Field(..., description="Trust pillar that produced this factor")
    name: str = Field(..., description="Display name of the pillar")
    status: FactorStatus = Field(..., description="ok, warning or danger")
    points: int = Field(..., ge=0, description="Points added to the risk score")
    label: str = Field(..., description="Human-readable label")
    code: FactorCode = Field(..., description="Machine-readable outcome")
    degraded: bool = Field(default=False, description="Upstream signal was unavailable")
    details: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def to_public(self) -> Dict[str, Any]:
        """Shape exposed to API callers and dashboards."""
        return {
            "name": self.name,
            "status": self.status.value,
            "points": self.points,
            "label": self.label,
        }


class Decision(BaseModel):
    """Final access decision for one attempt."""
    risk_score: int = Field(..., ge=0, le=100, description="Clamped risk score")
    decision: AccessDecision = Field(..., description="GRANTED, CHALLENGE or BLOCKED")
    risk_factors: tuple[RiskFactor, ...] = Field(default=(), description="Ordered pillar factors")
    reason: str = Field(..., description="Human-readable justification")
    reason_category: str = Field(..., description="Category that selected the reason text")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "risk_score": 25,
                "decision": "GRANTED",
                "risk_factors": [],
                "reason": "All verification pillars passed.",
                "reason_category": "trusted",
            }
        },
    }

    def factor(self, pillar: Pillar) -> RiskFactor | None:
        for factor in self.risk_factors:
            if factor.pillar == pillar:
                return factor
        return None

    @property
    def is_degraded(self) -> bool:
        return any(f.degraded for f in self.risk_factors)
