"""Trust registry - per-principal trusted device and location baseline."""

from trustgate.registry.store import TrustRegistry, InMemoryTrustRegistry
from trustgate.registry.dynamodb_registry import DynamoDBTrustRegistry
from trustgate.registry.config import create_trust_registry

__all__ = [
    "TrustRegistry",
    "InMemoryTrustRegistry",
    "DynamoDBTrustRegistry",
    "create_trust_registry",
]
