"""Configuration management - Centralized configuration for TrustGate.

Provides environment-aware configuration with sensible defaults.
All configuration is loaded from environment variables with fallbacks.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from trustgate.common.constants import (
    AuditConstants,
    DispatcherConstants,
    ProviderConstants,
)
from trustgate.common.exceptions import ConfigurationError


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AuditStorageType(str, Enum):
    """Audit storage backend types."""
    LOCAL = "local"
    DYNAMODB = "dynamodb"
    MEMORY = "memory"


class RegistryStorageType(str, Enum):
    """Trust registry backend types."""
    MEMORY = "memory"
    DYNAMODB = "dynamodb"


class GeolocationProviderType(str, Enum):
    """IP geolocation provider types."""
    IP_API = "ip-api"
    NONE = "none"


class BaselineUpdatePolicy(str, Enum):
    """When the trust registry is refreshed after an attempt."""
    GRANTED = "granted"
    EVERY_ATTEMPT = "every_attempt"


def _get_project_root() -> Path:
    """Get the project root directory."""
    # settings.py -> config -> common -> trustgate -> src -> project_root
    current = Path(__file__).resolve()
    return current.parent.parent.parent.parent.parent


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Config:
    """Central configuration object for TrustGate.

    All settings can be overridden via environment variables prefixed with TRUSTGATE_.

    Example:
        TRUSTGATE_ENVIRONMENT=production
        TRUSTGATE_LOG_LEVEL=INFO
        TRUSTGATE_AUDIT_STORAGE_TYPE=dynamodb
    """

    # Core settings
    environment: Environment = field(
        default_factory=lambda: Environment(
            os.getenv("TRUSTGATE_ENVIRONMENT", "development")
        )
    )
    debug: bool = field(
        default_factory=lambda: _env_bool("TRUSTGATE_DEBUG")
    )
    log_level: LogLevel = field(
        default_factory=lambda: LogLevel(os.getenv("TRUSTGATE_LOG_LEVEL", "INFO"))
    )

    # Paths
    project_root: Path = field(default_factory=_get_project_root)

    # API settings
    api_host: str = field(
        default_factory=lambda: os.getenv("TRUSTGATE_API_HOST", "0.0.0.0")
    )
    api_port: int = field(
        default_factory=lambda: int(os.getenv("TRUSTGATE_API_PORT", "8000"))
    )
    cors_origins: list[str] = field(
        default_factory=lambda: [
            origin.strip()
            for origin in os.getenv(
                "TRUSTGATE_CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
            ).split(",")
            if origin.strip()
        ]
    )

    # Audit settings
    audit_storage_type: AuditStorageType = field(
        default_factory=lambda: AuditStorageType(
            os.getenv("TRUSTGATE_AUDIT_STORAGE_TYPE", "local")
        )
    )
    audit_log_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("TRUSTGATE_AUDIT_LOG_DIR", "./logs/audit")
        )
    )
    audit_dynamodb_table: Optional[str] = field(
        default_factory=lambda: os.getenv("TRUSTGATE_AUDIT_DYNAMODB_TABLE")
    )
    audit_max_retries: int = field(
        default_factory=lambda: int(
            os.getenv("TRUSTGATE_AUDIT_MAX_RETRIES", str(AuditConstants.MAX_WRITE_RETRIES))
        )
    )
    audit_retry_backoff: float = field(
        default_factory=lambda: float(
            os.getenv("TRUSTGATE_AUDIT_RETRY_BACKOFF", str(AuditConstants.RETRY_BACKOFF_SECONDS))
        )
    )

    # Trust registry settings
    registry_storage_type: RegistryStorageType = field(
        default_factory=lambda: RegistryStorageType(
            os.getenv("TRUSTGATE_REGISTRY_STORAGE_TYPE", "memory")
        )
    )
    registry_dynamodb_table: Optional[str] = field(
        default_factory=lambda: os.getenv("TRUSTGATE_REGISTRY_DYNAMODB_TABLE")
    )
    baseline_update_policy: BaselineUpdatePolicy = field(
        default_factory=lambda: BaselineUpdatePolicy(
            os.getenv("TRUSTGATE_BASELINE_UPDATE_POLICY", "granted")
        )
    )

    # AWS settings (for DynamoDB)
    aws_region: str = field(
        default_factory=lambda: os.getenv("AWS_DEFAULT_REGION", "us-east-1")
    )

    # External providers
    known_principals: list[str] = field(
        default_factory=lambda: [
            p.strip().lower()
            for p in os.getenv("TRUSTGATE_KNOWN_PRINCIPALS", "").split(",")
            if p.strip()
        ]
    )
    geolocation_provider: GeolocationProviderType = field(
        default_factory=lambda: GeolocationProviderType(
            os.getenv("TRUSTGATE_GEOLOCATION_PROVIDER", "ip-api")
        )
    )
    geolocation_url: str = field(
        default_factory=lambda: os.getenv(
            "TRUSTGATE_GEOLOCATION_URL", ProviderConstants.IP_API_URL
        )
    )
    provider_timeout_seconds: float = field(
        default_factory=lambda: float(
            os.getenv(
                "TRUSTGATE_PROVIDER_TIMEOUT",
                str(ProviderConstants.DEFAULT_TIMEOUT_SECONDS),
            )
        )
    )

    # Event dispatch
    dispatcher_queue_size: int = field(
        default_factory=lambda: int(
            os.getenv(
                "TRUSTGATE_DISPATCHER_QUEUE_SIZE",
                str(DispatcherConstants.SUBSCRIBER_QUEUE_SIZE),
            )
        )
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        # Create audit log directory if using local storage
        if self.audit_storage_type == AuditStorageType.LOCAL:
            self.audit_log_dir.mkdir(parents=True, exist_ok=True)

        if self.audit_storage_type == AuditStorageType.DYNAMODB:
            if not self.audit_dynamodb_table:
                raise ConfigurationError(
                    "TRUSTGATE_AUDIT_DYNAMODB_TABLE must be set when using DynamoDB audit storage"
                )

        if self.registry_storage_type == RegistryStorageType.DYNAMODB:
            if not self.registry_dynamodb_table:
                raise ConfigurationError(
                    "TRUSTGATE_REGISTRY_DYNAMODB_TABLE must be set when using the DynamoDB registry"
                )

        if self.provider_timeout_seconds <= 0:
            raise ConfigurationError(
                "TRUSTGATE_PROVIDER_TIMEOUT must be positive",
                details={"value": self.provider_timeout_seconds},
            )

        if self.dispatcher_queue_size < 1:
            raise ConfigurationError(
                "TRUSTGATE_DISPATCHER_QUEUE_SIZE must be at least 1",
                details={"value": self.dispatcher_queue_size},
            )

        # Warn about debug in production
        if self.environment == Environment.PRODUCTION and self.debug:
            import warnings
            warnings.warn(
                "Debug mode is enabled in production environment",
                RuntimeWarning,
                stacklevel=2
            )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT


# Singleton instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config: The global configuration singleton.
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
