"""Audit module - Immutable logging for all access decisions.

Components:
- AuditWriter: High-level facade used by the decision pipeline
- AuditStore: Abstract base class for storage backends
- InMemoryAuditStore / FileAuditStore / DynamoDBAuditStore: backends
- BackgroundAuditWriter: Async writer with retry
"""

from trustgate.governance.audit.store import (
    AuditStore,
    InMemoryAuditStore,
    FileAuditStore,
    AuditLogIntegrityError,
    DuplicateAuditEntryError,
)
from trustgate.governance.audit.dynamodb_store import DynamoDBAuditStore
from trustgate.governance.audit.background_writer import BackgroundAuditWriter
from trustgate.governance.audit.writer import AuditWriter
from trustgate.governance.audit.config import create_audit_store, create_audit_writer

__all__ = [
    "AuditWriter",
    "AuditStore",
    "InMemoryAuditStore",
    "FileAuditStore",
    "DynamoDBAuditStore",
    "AuditLogIntegrityError",
    "DuplicateAuditEntryError",
    "BackgroundAuditWriter",
    "create_audit_store",
    "create_audit_writer",
]
