"""Tests for engine configuration.

These tests cover:
1. Default business policy values
2. Environment variable loading
3. Cross-field validation
4. The configuration singleton
"""

import os
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from tool_lending.config import EngineConfig, get_config, reset_config


class TestEngineConfig:
    """Test configuration defaults and validation."""

    def test_default_configuration(self, clean_env):
        config = EngineConfig(_env_file=None)

        assert config.late_fee_rate == Decimal("0.5")
        assert config.auto_confirm_reservations is True
        assert config.usage_window_days == 30
        assert config.repair_window_days == 7
        assert config.excellent_to_good_usage_days == 20
        assert config.good_to_fair_usage_days == 15
        assert config.maintenance_lead_days == 1
        assert config.maintenance_usage_window_days == 90
        assert config.cancelled_retention_days == 30
        assert config.observability_enabled is False
        assert config.database_path == Path("data/tool_lending.db").absolute()

    def test_environment_variable_loading(self, clean_env):
        env_vars = {
            "TOOL_LENDING_LATE_FEE_RATE": "0.75",
            "TOOL_LENDING_AUTO_CONFIRM_RESERVATIONS": "false",
            "TOOL_LENDING_LOCK_TIMEOUT_SECONDS": "2.5",
            "TOOL_LENDING_LOG_LEVEL": "debug",
            "TOOL_LENDING_DATABASE_PATH": "/tmp/lending-test.db",
        }

        with patch.dict(os.environ, env_vars):
            config = EngineConfig(_env_file=None)

            assert config.late_fee_rate == Decimal("0.75")
            assert config.auto_confirm_reservations is False
            assert config.lock_timeout_seconds == 2.5
            assert config.log_level == "DEBUG"
            assert config.database_path == Path("/tmp/lending-test.db")

    def test_database_url_overrides_path(self):
        config = EngineConfig(database_url="postgresql://lending@db/lending")
        assert config.get_database_url() == "postgresql://lending@db/lending"

    def test_database_url_defaults_to_sqlite_path(self, tmp_path):
        config = EngineConfig(database_path=tmp_path / "x.db")
        assert config.get_database_url() == f"sqlite:///{tmp_path / 'x.db'}"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            EngineConfig(log_level="VERBOSE")

    def test_negative_late_fee_rate_rejected(self):
        with pytest.raises(ValidationError):
            EngineConfig(late_fee_rate=Decimal("-0.1"))

    def test_lock_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            EngineConfig(lock_timeout_seconds=0)

    def test_degradation_thresholds_must_be_ordered(self):
        with pytest.raises(ValidationError, match="good_to_fair_usage_days"):
            EngineConfig(excellent_to_good_usage_days=10, good_to_fair_usage_days=12)

    def test_repair_window_within_usage_window(self):
        with pytest.raises(ValidationError, match="repair_window_days"):
            EngineConfig(usage_window_days=5, repair_window_days=7)

    def test_logfire_token_hidden_from_repr(self):
        config = EngineConfig(logfire_token="super-secret")
        assert "super-secret" not in repr(config)


class TestConfigSingleton:
    def test_get_config_returns_same_instance(self):
        assert get_config() is get_config()

    def test_reset_config_creates_new_instance(self):
        first = get_config()
        reset_config()
        assert get_config() is not first
