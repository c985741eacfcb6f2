"""TrustBaseline schema - canonical definition."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from trustgate.data.schemas.location import GeoLocation
from trustgate.data.schemas.login_attempt import LoginAttempt, ensure_utc


class TrustBaseline(BaseModel):
    """Last known trusted state for a principal.

    `version` increments on every committed write and backs optimistic
    concurrency in stores that need it.
    """
    principal: str = Field(..., description="Principal identifier (email)")
    trusted_fingerprint: Optional[str] = Field(default=None, description="Last trusted device fingerprint")
    last_location: Optional[GeoLocation] = Field(default=None, description="Last known location")
    last_seen_at: Optional[datetime] = Field(default=None, description="Timestamp of last_location")
    version: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    @field_validator("last_seen_at")
    @classmethod
    def _normalize_last_seen(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @property
    def has_travel_history(self) -> bool:
        return self.last_location is not None and self.last_seen_at is not None

    def after_grant(
        self,
        attempt: LoginAttempt,
        trust_device: bool = True,
        trust_location: bool = True,
    ) -> "TrustBaseline":
        """Baseline after a granted attempt: device and location become trusted.

        Fields whose pillar was scored degraded are left unchanged.
        """
        update = {}
        if trust_device:
            update["trusted_fingerprint"] = attempt.device_fingerprint
        if trust_location and attempt.location is not None:
            update["last_location"] = attempt.location
            update["last_seen_at"] = attempt.timestamp
        if not update:
            return self
        update["version"] = self.version + 1
        return self.model_copy(update=update)

    def after_observation(self, attempt: LoginAttempt) -> "TrustBaseline":
        """Baseline after a non-granted attempt: only location/time move."""
        if attempt.location is None:
            return self
        return self.model_copy(update={
            "last_location": attempt.location,
            "last_seen_at": attempt.timestamp,
            "version": self.version + 1,
        })

    @classmethod
    def empty(cls, principal: str) -> "TrustBaseline":
        return cls(principal=principal)
