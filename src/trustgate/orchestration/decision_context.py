"""Decision Context - immutable records flowing through the pipeline.

Frozen dataclasses: an inbound request is turned into a LoginAttempt,
evaluated into a Decision, and the whole lifecycle is summarised in a
DecisionOutcome returned to the caller.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from trustgate.data.schemas.decision import Decision
from trustgate.data.schemas.location import GeoLocation
from trustgate.data.schemas.login_attempt import DevicePosture, LoginAttempt
from trustgate.governance.schemas import AuditEntry


@dataclass(frozen=True)
class AccessRequest:
    """Raw inbound access request, before any signal resolution."""
    principal: str
    device_fingerprint: str
    ip_address: str
    user_agent: str = ""
    timestamp: Optional[datetime] = None
    attempt_id: Optional[str] = None

    def __post_init__(self):
        if not self.principal or not self.principal.strip():
            raise ValueError("principal is required")
        if self.device_fingerprint is None:
            raise ValueError("device_fingerprint is required")


@dataclass(frozen=True)
class ResolvedSignals:
    """External signals gathered for one attempt."""
    location: Optional[GeoLocation] = None
    posture: Optional[DevicePosture] = None
    degraded: tuple[str, ...] = ()


@dataclass(frozen=True)
class DecisionOutcome:
    """Everything the pipeline produced for one attempt.

    `audit_entry` is None when the attempt id had already been recorded.
    """
    context_id: str
    created_at: datetime
    attempt: LoginAttempt
    decision: Decision
    audit_entry: Optional[AuditEntry] = None
    baseline_updated: bool = False
    delivered: int = 0
    notes: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def create(
        cls,
        attempt: LoginAttempt,
        decision: Decision,
        audit_entry: Optional[AuditEntry] = None,
        baseline_updated: bool = False,
        delivered: int = 0,
        notes: tuple[str, ...] = (),
    ) -> "DecisionOutcome":
        return cls(
            context_id=f"ctx_{uuid4().hex[:12]}",
            created_at=datetime.now(timezone.utc),
            attempt=attempt,
            decision=decision,
            audit_entry=audit_entry,
            baseline_updated=baseline_updated,
            delivered=delivered,
            notes=notes,
        )
