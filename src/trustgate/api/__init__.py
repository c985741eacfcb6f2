"""API - access decision service and endpoints.

Endpoints:
    POST /check-access
    GET  /audit
    WS   /ws/decisions

Only the public factor view (name, status, points, label) leaves the
service; factor details stay in the audit log.
"""

from trustgate.api.gateway import app
from trustgate.api.schemas import (
    CheckAccessRequest,
    CheckAccessResponse,
    ErrorResponse,
)
from trustgate.api.service import AccessEvaluationService

__all__ = [
    "app",
    "CheckAccessRequest",
    "CheckAccessResponse",
    "ErrorResponse",
    "AccessEvaluationService",
]
