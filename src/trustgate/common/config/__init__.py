"""Configuration module - Centralized config management."""

from trustgate.common.config.settings import (
    Config,
    Environment,
    LogLevel,
    AuditStorageType,
    RegistryStorageType,
    GeolocationProviderType,
    BaselineUpdatePolicy,
    get_config,
    reset_config,
)

__all__ = [
    "Config",
    "Environment",
    "LogLevel",
    "AuditStorageType",
    "RegistryStorageType",
    "GeolocationProviderType",
    "BaselineUpdatePolicy",
    "get_config",
    "reset_config",
]
