"""Common utilities - logging, config, exceptions."""

from trustgate.common.logging.logger import get_logger
from trustgate.common.config import Config, get_config, reset_config
from trustgate.common.exceptions import (
    TrustGateException,
    ConfigurationError,
    EvaluatorError,
    ProviderError,
    RegistryError,
    BaselineConflictError,
    AuditError,
)

__all__ = [
    # Logging
    "get_logger",
    # Config
    "Config",
    "get_config",
    "reset_config",
    # Exceptions
    "TrustGateException",
    "ConfigurationError",
    "EvaluatorError",
    "ProviderError",
    "RegistryError",
    "BaselineConflictError",
    "AuditError",
]
