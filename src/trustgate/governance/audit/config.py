"""Audit Layer Configuration and Initialization.

Factory methods for audit stores and the audit writer, driven by
`trustgate.common.config.Config`:

- TRUSTGATE_AUDIT_STORAGE_TYPE: "local" (default), "dynamodb" or "memory"
- TRUSTGATE_AUDIT_LOG_DIR: directory for JSONL logs
- TRUSTGATE_AUDIT_DYNAMODB_TABLE: DynamoDB table for audit entries
- AWS_DEFAULT_REGION: AWS region
"""

import logging
from typing import Optional

from trustgate.common.config import AuditStorageType, Config, get_config
from trustgate.governance.audit.store import AuditStore, FileAuditStore, InMemoryAuditStore
from trustgate.governance.audit.writer import AuditWriter

logger = logging.getLogger(__name__)


def create_audit_store(config: Optional[Config] = None) -> AuditStore:
    """Create the audit store selected by configuration."""
    config = config or get_config()
    storage_type = config.audit_storage_type

    if storage_type == AuditStorageType.DYNAMODB:
        from trustgate.governance.audit.dynamodb_store import DynamoDBAuditStore

        logger.info("Using DynamoDB audit store")
        return DynamoDBAuditStore(
            table_name=config.audit_dynamodb_table,
            region=config.aws_region,
        )

    if storage_type == AuditStorageType.LOCAL:
        logger.info(f"Using file audit store at {config.audit_log_dir}")
        return FileAuditStore(log_dir=config.audit_log_dir)

    if storage_type == AuditStorageType.MEMORY:
        logger.info("Using in-memory audit store")
        return InMemoryAuditStore()

    raise ValueError(f"Unknown storage type: {storage_type}")


def create_audit_writer(
    config: Optional[Config] = None,
    store: Optional[AuditStore] = None,
    use_background_writer: bool = True,
) -> AuditWriter:
    """Create an audit writer over the configured store."""
    config = config or get_config()
    return AuditWriter(
        store=store or create_audit_store(config),
        use_background_writer=use_background_writer,
        max_retries=config.audit_max_retries,
        retry_backoff=config.audit_retry_backoff,
    )


__all__ = [
    "create_audit_store",
    "create_audit_writer",
]
