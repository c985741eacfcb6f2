"""Trust registry factory."""

import logging
from typing import Optional

from trustgate.common.config import Config, RegistryStorageType, get_config
from trustgate.registry.store import InMemoryTrustRegistry, TrustRegistry

logger = logging.getLogger(__name__)


def create_trust_registry(config: Optional[Config] = None) -> TrustRegistry:
    """Create the trust registry selected by configuration."""
    config = config or get_config()

    if config.registry_storage_type == RegistryStorageType.DYNAMODB:
        from trustgate.registry.dynamodb_registry import DynamoDBTrustRegistry

        logger.info("Using DynamoDB trust registry")
        return DynamoDBTrustRegistry(
            table_name=config.registry_dynamodb_table,
            region=config.aws_region,
        )

    logger.info("Using in-memory trust registry")
    return InMemoryTrustRegistry()
