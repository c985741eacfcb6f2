"""LoginAttempt schema - canonical definition."""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from trustgate.data.schemas.location import GeoLocation


def new_attempt_id() -> str:
    return f"att_{uuid4().hex[:16]}"


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DevicePosture(BaseModel):
    """Device compliance posture reported by the MDM agent."""
    disk_encrypted: bool = Field(default=True)
    firewall_enabled: bool = Field(default=True)
    os_patched: bool = Field(default=True)

    model_config = {"frozen": True}

    def failures(self) -> list[str]:
        """Names of the compliance checks that failed."""
        failed = []
        if not self.disk_encrypted:
            failed.append("disk_encryption_disabled")
        if not self.firewall_enabled:
            failed.append("firewall_disabled")
        if not self.os_patched:
            failed.append("security_patches_outdated")
        return failed

    @property
    def is_compliant(self) -> bool:
        return not self.failures()


class LoginAttempt(BaseModel):
    """A single inbound login attempt with its resolved context.

    Created once per request and never modified. `location` is None when
    geolocation could not be resolved; `degraded_signals` names every
    external signal that was unavailable.
    """
    attempt_id: str = Field(default_factory=new_attempt_id, description="Unique attempt identifier")
    principal: str = Field(..., min_length=1, description="Principal identifier (email)")
    device_fingerprint: str = Field(..., description="Claimed device fingerprint")
    ip_address: str = Field(..., description="Source IP address")
    location: Optional[GeoLocation] = Field(default=None, description="Resolved location")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Wall-clock time of the attempt",
    )
    user_agent: str = Field(default="", description="Raw client user-agent")
    posture: Optional[DevicePosture] = Field(default=None, description="Device compliance posture")
    degraded_signals: tuple[str, ...] = Field(default=(), description="Unavailable external signals")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "attempt_id": "att_0f3c9a1b2d4e5f60",
                "principal": "alice@company.com",
                "device_fingerprint": "fp_7a9c2e",
                "ip_address": "102.89.1.10",
                "location": {
                    "city": "Lagos",
                    "country": "Nigeria",
                    "latitude": 6.5244,
                    "longitude": 3.3792,
                },
                "timestamp": "2026-01-28T14:30:05Z",
                "user_agent": "Mozilla/5.0",
                "posture": None,
                "degraded_signals": [],
            }
        },
    }

    @field_validator("principal")
    @classmethod
    def _normalize_principal(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def is_degraded(self, signal: str) -> bool:
        return signal in self.degraded_signals
