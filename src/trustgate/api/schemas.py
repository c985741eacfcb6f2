"""API Schemas - Request/Response models for the API Gateway.

Wire names are camelCase; snake_case field names are accepted on input.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class CheckAccessRequest(BaseModel):
    """Request body for POST /check-access."""
    email: str = Field(..., min_length=1, description="Principal identifier")
    device_fingerprint: str = Field(
        ..., alias="deviceFingerprint", description="Claimed device fingerprint"
    )
    ip: str = Field(..., min_length=1, description="Client IP address")
    user_agent: str = Field(default="", alias="userAgent", description="Raw user-agent")
    timestamp: Optional[datetime] = Field(
        default=None, description="Attempt time; server time if omitted"
    )
    attempt_id: Optional[str] = Field(
        default=None, alias="attemptId", min_length=1,
        description="Client-supplied attempt id for idempotent retries"
    )

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "email": "alice@company.com",
                "deviceFingerprint": "fp_7a9c2e",
                "ip": "102.89.1.10",
                "userAgent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_2)",
            }
        },
    }


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class RiskFactorResponse(BaseModel):
    """One pillar's contribution, as shown to callers."""
    name: str
    status: Literal["ok", "warning", "danger"]
    points: int = Field(..., ge=0)
    label: str


class CheckAccessResponse(BaseModel):
    """Response for POST /check-access."""
    decision: Literal["GRANTED", "CHALLENGE", "BLOCKED"] = Field(
        ..., description="The access decision"
    )
    risk_score: int = Field(..., alias="riskScore", ge=0, le=100)
    reason: str = Field(..., description="Human-readable justification")
    risk_factors: List[RiskFactorResponse] = Field(default_factory=list, alias="riskFactors")
    attempt_id: str = Field(..., alias="attemptId")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "decision": "GRANTED",
                "riskScore": 25,
                "reason": "All verification pillars passed.",
                "riskFactors": [
                    {"name": "Identity Verified", "status": "ok", "points": 10, "label": "✅ Credentials Valid"},
                    {"name": "Device Status", "status": "ok", "points": 5, "label": "✅ Trusted Device"},
                    {"name": "Location", "status": "ok", "points": 5, "label": "✅ Lagos, Nigeria"},
                    {"name": "Behavior", "status": "ok", "points": 5, "label": "✅ Normal Pattern"},
                ],
                "attemptId": "att_0f3c9a1b2d4e5f60",
            }
        },
    }


class AuditEventResponse(BaseModel):
    """Dashboard view of one audit entry."""
    id: str
    attempt_id: str = Field(..., alias="attemptId")
    timestamp: str
    user: str
    device: str
    location: str
    risk_score: int = Field(..., alias="riskScore")
    decision: str
    reason: str
    risk_factors: List[RiskFactorResponse] = Field(default_factory=list, alias="riskFactors")

    model_config = {"populate_by_name": True}


class AuditListResponse(BaseModel):
    """Response for GET /audit."""
    entries: List[AuditEventResponse]
    count: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    request_id: Optional[str] = Field(
        default=None, description="Request ID for debugging"
    )
