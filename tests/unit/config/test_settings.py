"""Tests for configuration settings.

Tests the Config class and environment variable handling.
"""

import os
import pytest
from pathlib import Path
from unittest.mock import patch

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
from trustgate.common.exceptions import ConfigurationError


class TestEnvironment:
    """Tests for Environment enum."""

    def test_environment_values(self):
        assert Environment.DEVELOPMENT.value == "development"
        assert Environment.STAGING.value == "staging"
        assert Environment.PRODUCTION.value == "production"

    def test_environment_from_string(self):
        assert Environment("development") == Environment.DEVELOPMENT
        assert Environment("production") == Environment.PRODUCTION


class TestLogLevel:
    """Tests for LogLevel enum."""

    def test_log_level_values(self):
        assert LogLevel.DEBUG.value == "DEBUG"
        assert LogLevel.INFO.value == "INFO"
        assert LogLevel.WARNING.value == "WARNING"
        assert LogLevel.ERROR.value == "ERROR"
        assert LogLevel.CRITICAL.value == "CRITICAL"


class TestStorageTypes:
    """Tests for backend enums."""

    def test_audit_storage_values(self):
        assert AuditStorageType.LOCAL.value == "local"
        assert AuditStorageType.DYNAMODB.value == "dynamodb"
        assert AuditStorageType.MEMORY.value == "memory"

    def test_registry_storage_values(self):
        assert RegistryStorageType.MEMORY.value == "memory"
        assert RegistryStorageType.DYNAMODB.value == "dynamodb"

    def test_update_policy_values(self):
        assert BaselineUpdatePolicy("granted") == BaselineUpdatePolicy.GRANTED
        assert BaselineUpdatePolicy("every_attempt") == BaselineUpdatePolicy.EVERY_ATTEMPT


class TestConfig:
    """Tests for Config class."""

    @pytest.fixture(autouse=True)
    def _memory_audit(self):
        """Keep tests from creating ./logs/audit unless they ask for it."""
        reset_config()
        with patch.dict(os.environ, {"TRUSTGATE_AUDIT_STORAGE_TYPE": "memory"}, clear=False):
            yield
        reset_config()

    def test_default_config(self):
        with patch.dict(os.environ, {"TRUSTGATE_AUDIT_STORAGE_TYPE": "memory"}, clear=True):
            config = Config()

            assert config.environment == Environment.DEVELOPMENT
            assert config.debug is False
            assert config.log_level == LogLevel.INFO
            assert config.api_host == "0.0.0.0"
            assert config.api_port == 8000
            assert config.registry_storage_type == RegistryStorageType.MEMORY
            assert config.geolocation_provider == GeolocationProviderType.IP_API
            assert config.baseline_update_policy == BaselineUpdatePolicy.GRANTED
            assert config.provider_timeout_seconds == 2.0
            assert config.known_principals == []

    def test_environment_from_env_var(self):
        with patch.dict(os.environ, {"TRUSTGATE_ENVIRONMENT": "production"}, clear=False):
            config = Config()
            assert config.environment == Environment.PRODUCTION

    def test_debug_mode(self):
        with patch.dict(os.environ, {"TRUSTGATE_DEBUG": "true"}, clear=False):
            assert Config().debug is True

        with patch.dict(os.environ, {"TRUSTGATE_DEBUG": "false"}, clear=False):
            assert Config().debug is False

    def test_api_config(self):
        with patch.dict(os.environ, {
            "TRUSTGATE_API_HOST": "127.0.0.1",
            "TRUSTGATE_API_PORT": "9000"
        }, clear=False):
            config = Config()
            assert config.api_host == "127.0.0.1"
            assert config.api_port == 9000

    def test_cors_origins_split(self):
        with patch.dict(os.environ, {
            "TRUSTGATE_CORS_ORIGINS": "https://soc.example.com, https://admin.example.com,"
        }, clear=False):
            config = Config()
            assert config.cors_origins == [
                "https://soc.example.com",
                "https://admin.example.com",
            ]

    def test_known_principals_normalized(self):
        with patch.dict(os.environ, {
            "TRUSTGATE_KNOWN_PRINCIPALS": " Alice@Company.com ,bob@company.com"
        }, clear=False):
            config = Config()
            assert config.known_principals == ["alice@company.com", "bob@company.com"]

    def test_audit_local_storage_creates_dir(self, tmp_path):
        audit_dir = tmp_path / "audit"
        with patch.dict(os.environ, {
            "TRUSTGATE_AUDIT_STORAGE_TYPE": "local",
            "TRUSTGATE_AUDIT_LOG_DIR": str(audit_dir),
        }, clear=False):
            config = Config()
            assert config.audit_storage_type == AuditStorageType.LOCAL
            assert config.audit_log_dir == Path(audit_dir)
            assert audit_dir.is_dir()

    def test_dynamodb_audit_requires_table(self):
        env = {"TRUSTGATE_AUDIT_STORAGE_TYPE": "dynamodb"}
        with patch.dict(os.environ, env, clear=False):
            os.environ.pop("TRUSTGATE_AUDIT_DYNAMODB_TABLE", None)
            with pytest.raises(ConfigurationError, match="TRUSTGATE_AUDIT_DYNAMODB_TABLE"):
                Config()

    def test_dynamodb_audit_with_table(self):
        with patch.dict(os.environ, {
            "TRUSTGATE_AUDIT_STORAGE_TYPE": "dynamodb",
            "TRUSTGATE_AUDIT_DYNAMODB_TABLE": "trustgate-audit",
        }, clear=False):
            config = Config()
            assert config.audit_storage_type == AuditStorageType.DYNAMODB
            assert config.audit_dynamodb_table == "trustgate-audit"

    def test_dynamodb_registry_requires_table(self):
        with patch.dict(os.environ, {"TRUSTGATE_REGISTRY_STORAGE_TYPE": "dynamodb"}, clear=False):
            os.environ.pop("TRUSTGATE_REGISTRY_DYNAMODB_TABLE", None)
            with pytest.raises(ConfigurationError, match="TRUSTGATE_REGISTRY_DYNAMODB_TABLE"):
                Config()

    def test_provider_timeout_must_be_positive(self):
        with patch.dict(os.environ, {"TRUSTGATE_PROVIDER_TIMEOUT": "0"}, clear=False):
            with pytest.raises(ConfigurationError) as exc_info:
                Config()
            assert exc_info.value.details["value"] == 0.0

    def test_dispatcher_queue_size_validated(self):
        with patch.dict(os.environ, {"TRUSTGATE_DISPATCHER_QUEUE_SIZE": "0"}, clear=False):
            with pytest.raises(ConfigurationError):
                Config()

    def test_invalid_update_policy_rejected(self):
        with patch.dict(os.environ, {"TRUSTGATE_BASELINE_UPDATE_POLICY": "sometimes"}, clear=False):
            with pytest.raises(ValueError):
                Config()

    def test_debug_in_production_warns(self):
        with patch.dict(os.environ, {
            "TRUSTGATE_ENVIRONMENT": "production",
            "TRUSTGATE_DEBUG": "true",
        }, clear=False):
            with pytest.warns(RuntimeWarning, match="Debug mode"):
                Config()

    def test_is_production(self):
        with patch.dict(os.environ, {"TRUSTGATE_ENVIRONMENT": "production"}, clear=False):
            config = Config()
            assert config.is_production is True
            assert config.is_development is False

    def test_is_development(self):
        with patch.dict(os.environ, {"TRUSTGATE_ENVIRONMENT": "development"}, clear=False):
            config = Config()
            assert config.is_development is True
            assert config.is_production is False


class TestGetConfig:
    """Tests for get_config singleton function."""

    @pytest.fixture(autouse=True)
    def _memory_audit(self):
        with patch.dict(os.environ, {"TRUSTGATE_AUDIT_STORAGE_TYPE": "memory"}, clear=False):
            yield
        reset_config()

    def test_get_config_returns_config(self):
        reset_config()
        assert isinstance(get_config(), Config)

    def test_get_config_returns_same_instance(self):
        reset_config()
        assert get_config() is get_config()

    def test_reset_config_clears_singleton(self):
        reset_config()
        config1 = get_config()
        reset_config()
        config2 = get_config()

        assert config1 is not config2
