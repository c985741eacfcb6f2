"""Reason text selection.

Each decision carries a human-readable justification picked from a small
pool of templates for the category of its dominant factor. Selection is a
stable hash of the attempt id, so replaying an attempt yields the same text.
"""

import hashlib
from typing import Any, Mapping

from trustgate.core.types import FactorCode, FactorStatus
from trustgate.data.schemas.decision import RiskFactor


class ReasonCategory:
    TRUSTED = "trusted"
    NEW_DEVICE = "new_device"
    COMPROMISED_DEVICE = "compromised_device"
    LOCATION_CHANGE = "location_change"
    DIFFERENT_COUNTRY = "different_country"
    IMPOSSIBLE_TRAVEL = "impossible_travel"
    DEGRADED = "degraded"
    UNKNOWN_PRINCIPAL = "unknown_principal"
    IDENTITY_UNAVAILABLE = "identity_unavailable"
    SYSTEM_FAILURE = "system_failure"


REASON_TEMPLATES: dict[str, tuple[str, ...]] = {
    ReasonCategory.TRUSTED: (
        "All verification pillars passed. Device fingerprint matches the trusted "
        "registry and the login location is consistent with recent activity.",
        "Identity verified through credential match. Device and location are "
        "consistent with previous sessions. No anomalies detected.",
        "Security analysis complete: known device, expected location, normal "
        "access pattern. Zero anomalies detected across all pillars.",
    ),
    ReasonCategory.NEW_DEVICE: (
        "Credentials validated but device fingerprint unknown. Challenge with a "
        "second factor before trusting this device.",
        "Identity verified, however the device signature does not match the "
        "trusted record. Additional verification required.",
        "Valid credentials from an unrecognized device. Multi-factor challenge "
        "required to establish device trust.",
    ),
    ReasonCategory.COMPROMISED_DEVICE: (
        "Device security checks failed ({compliance_failures}). Access denied "
        "until the device is remediated.",
        "Device compliance violations detected: {compliance_failures}. Risk "
        "exceeds the acceptable threshold.",
    ),
    ReasonCategory.LOCATION_CHANGE: (
        "Login from {city}, {country} differs from the last known city "
        "{previous_city}. Additional verification recommended.",
        "Location pillar flagged: expected {previous_city}, detected {city}. "
        "Verification required before granting access.",
    ),
    ReasonCategory.DIFFERENT_COUNTRY: (
        "Login attempt from a different country. Last trusted location is "
        "{previous_country}, current attempt originates from {country}.",
        "Location pillar flagged: expected {previous_country}, detected "
        "{country}. Cross-border access requires enhanced authentication.",
    ),
    ReasonCategory.IMPOSSIBLE_TRAVEL: (
        "Login from {current_city} {time_since_last_login_minutes} minutes after "
        "a session in {previous_city}. {travel_distance_km} km cannot be covered "
        "in that time, indicating credential compromise.",
        "Impossible travel detected: {previous_city} to {current_city} "
        "({travel_distance_km} km) in {time_since_last_login_minutes} minutes. "
        "Stolen credentials highly likely.",
    ),
    ReasonCategory.DEGRADED: (
        "Some verification signals were unavailable. Decision made on the "
        "remaining pillars.",
    ),
    ReasonCategory.UNKNOWN_PRINCIPAL: (
        "Invalid credentials. User not found in system.",
    ),
    ReasonCategory.IDENTITY_UNAVAILABLE: (
        "Identity could not be verified. Access denied.",
    ),
    ReasonCategory.SYSTEM_FAILURE: (
        "An error occurred during security analysis. Please try again.",
    ),
}

_CODE_CATEGORIES = {
    FactorCode.NEW_DEVICE: ReasonCategory.NEW_DEVICE,
    FactorCode.NONCOMPLIANT_DEVICE: ReasonCategory.COMPROMISED_DEVICE,
    FactorCode.SAME_COUNTRY: ReasonCategory.LOCATION_CHANGE,
    FactorCode.DIFFERENT_COUNTRY: ReasonCategory.DIFFERENT_COUNTRY,
    FactorCode.IMPOSSIBLE_TRAVEL: ReasonCategory.IMPOSSIBLE_TRAVEL,
    FactorCode.DEGRADED: ReasonCategory.DEGRADED,
}


class _Defaulting(dict):
    def __missing__(self, key: str) -> str:
        return "unknown"


def category_for(factor: RiskFactor) -> str:
    """Reason category selected by a dominant factor."""
    if factor.status == FactorStatus.OK:
        return ReasonCategory.TRUSTED
    return _CODE_CATEGORIES.get(factor.code, ReasonCategory.TRUSTED)


def pick_template(category: str, attempt_id: str) -> str:
    pool = REASON_TEMPLATES[category]
    digest = hashlib.sha256(attempt_id.encode("utf-8")).digest()
    return pool[int.from_bytes(digest[:4], "big") % len(pool)]


def render_reason(category: str, attempt_id: str, details: Mapping[str, Any] | None = None) -> str:
    """Deterministic reason text for a category, formatted with factor details."""
    values = _Defaulting()
    for key, value in (details or {}).items():
        values[key] = ", ".join(value) if isinstance(value, (list, tuple)) else value
    return pick_template(category, attempt_id).format_map(values)
