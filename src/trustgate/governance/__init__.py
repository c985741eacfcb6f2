"""Governance - durable audit trail of access decisions."""

from trustgate.governance.schemas import AuditEntry

__all__ = ["AuditEntry"]
