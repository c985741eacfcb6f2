"""Custom exceptions for TrustGate.

Provides a hierarchy of exceptions for different error types.
All TrustGate exceptions inherit from TrustGateException.
"""

from typing import Any, Dict, Optional


class TrustGateException(Exception):
    """Base exception for all TrustGate errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: str = "TRUSTGATE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(TrustGateException):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIG_ERROR", details=details)


class EvaluatorError(TrustGateException):
    """Raised when a signal evaluator fails to score its pillar."""

    def __init__(
        self,
        message: str,
        pillar: str,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["pillar"] = pillar
        super().__init__(message, code="EVALUATOR_ERROR", details=details)


class ProviderError(TrustGateException):
    """Raised when an external signal provider is unavailable."""

    def __init__(
        self,
        message: str,
        provider: str,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["provider"] = provider
        super().__init__(message, code="PROVIDER_ERROR", details=details)


class RegistryError(TrustGateException):
    """Raised when the trust registry cannot be read or written."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="REGISTRY_ERROR", details=details)


class BaselineConflictError(RegistryError):
    """Raised when a baseline write loses an optimistic concurrency race."""

    def __init__(self, principal: str, expected_version: int):
        super().__init__(
            f"Baseline for {principal} changed concurrently",
            details={"principal": principal, "expected_version": expected_version},
        )
        self.code = "BASELINE_CONFLICT"


class AuditError(TrustGateException):
    """Raised when audit logging fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="AUDIT_ERROR", details=details)
