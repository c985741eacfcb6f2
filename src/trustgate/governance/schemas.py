"""Governance schemas - the immutable audit record of an access decision."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from trustgate.core.types import FactorCode, Pillar
from trustgate.data.schemas.decision import Decision
from trustgate.data.schemas.login_attempt import LoginAttempt


DEVICE_DESCRIPTIONS = {
    FactorCode.TRUSTED_DEVICE: "Trusted Device",
    FactorCode.NO_DEVICE_HISTORY: "First Device",
    FactorCode.NEW_DEVICE: "Unknown Device",
    FactorCode.NONCOMPLIANT_DEVICE: "Compromised Device",
}


class AuditEntry(BaseModel):
    """A single immutable audit log entry.

    Exactly one entry exists per attempt id.
    """
    entry_id: str = Field(
        default_factory=lambda: f"aud_{uuid4().hex[:12]}",
        description="Unique entry identifier"
    )
    recorded_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Server time the entry was created"
    )
    attempt: LoginAttempt = Field(
        ...,
        description="The evaluated login attempt"
    )
    decision: Decision = Field(
        ...,
        description="The decision returned to the caller"
    )

    # Integrity
    previous_hash: Optional[str] = Field(
        default=None,
        description="Hash of previous entry (for chain integrity)"
    )
    entry_hash: Optional[str] = Field(
        default=None,
        description="Hash of this entry"
    )

    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context"
    )

    @property
    def attempt_id(self) -> str:
        return self.attempt.attempt_id

    @property
    def principal(self) -> str:
        return self.attempt.principal

    def to_jsonl(self) -> str:
        """Serialize entry to JSONL format."""
        return json.dumps(self.model_dump(mode="json"), default=str)

    @classmethod
    def from_jsonl(cls, line: str) -> "AuditEntry":
        """Deserialize entry from JSONL format."""
        return cls.model_validate(json.loads(line))

    def to_event(self) -> Dict[str, Any]:
        """Dashboard event published to live subscribers and the audit API."""
        location = self.attempt.location
        device_factor = self.decision.factor(Pillar.DEVICE)
        device = "Unknown Device"
        if device_factor is not None:
            device = DEVICE_DESCRIPTIONS.get(device_factor.code, device_factor.label)

        return {
            "id": self.entry_id,
            "attemptId": self.attempt_id,
            "timestamp": self.attempt.timestamp.isoformat(),
            "user": self.principal,
            "device": device,
            "location": location.display if location is not None else "Unknown",
            "riskScore": self.decision.risk_score,
            "decision": self.decision.decision.value,
            "reason": self.decision.reason,
            "riskFactors": [f.to_public() for f in self.decision.risk_factors],
        }
