"""Tests for GateConfig."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from fieldgate import FallbackRule, GateConfig, LogLevel, load_gate_config_from_env


class TestGateConfig:
    """Tests for GateConfig model."""

    def test_create_default_config(self) -> None:
        """Defaults are the safe production values."""
        config = GateConfig()
        assert config.debug is False
        assert config.fallback_rule == FallbackRule.DENY
        assert config.fallback_error == "Not Authorised!"
        assert config.cache_enabled is True
        assert config.log_level == LogLevel.INFO
        assert config.log_json is False

    def test_create_custom_config(self) -> None:
        config = GateConfig(
            debug=True,
            fallback_rule=FallbackRule.ALLOW,
            fallback_error="Forbidden",
            cache_enabled=False,
            log_level=LogLevel.DEBUG,
            log_json=True,
        )
        assert config.debug is True
        assert config.fallback_rule == FallbackRule.ALLOW
        assert config.fallback_error == "Forbidden"
        assert config.cache_enabled is False
        assert config.log_level == LogLevel.DEBUG
        assert config.log_json is True

    @pytest.mark.parametrize("value", ["allow", "ALLOW", " Allow "])
    def test_fallback_rule_from_string(self, value) -> None:
        assert GateConfig(fallback_rule=value).fallback_rule == FallbackRule.ALLOW

    def test_fallback_rule_invalid(self) -> None:
        with pytest.raises(ValueError, match="Invalid fallback rule"):
            GateConfig(fallback_rule="maybe")

    def test_fallback_rule_wrong_type(self) -> None:
        with pytest.raises(ValueError):
            GateConfig(fallback_rule=1)  # type: ignore[arg-type]

    def test_fallback_error_must_not_be_blank(self) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            GateConfig(fallback_error="   ")

    def test_log_level_from_string(self) -> None:
        """Test creating config with log level as string."""
        config = GateConfig(log_level="debug")
        assert config.log_level == LogLevel.DEBUG

    def test_log_level_invalid(self) -> None:
        """Test creating config with invalid log level."""
        with pytest.raises(ValueError, match="Invalid log level"):
            GateConfig(log_level="INVALID")

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            GateConfig(extra_field="value")  # type: ignore[call-arg]

    def test_frozen(self) -> None:
        config = GateConfig()
        with pytest.raises(ValidationError):
            config.debug = True  # type: ignore[misc]


class TestLoadGateConfigFromEnv:
    """Tests for load_gate_config_from_env function."""

    @patch.dict(os.environ, {}, clear=True)
    def test_load_defaults(self) -> None:
        """Test loading config with no environment variables."""
        config = load_gate_config_from_env()
        assert config == GateConfig()

    @patch.dict(
        os.environ,
        {
            "FIELDGATE_DEBUG": "true",
            "FIELDGATE_FALLBACK_RULE": "allow",
            "FIELDGATE_FALLBACK_ERROR": "Nope",
            "FIELDGATE_CACHE_ENABLED": "false",
            "LOG_LEVEL": "WARNING",
            "LOG_JSON": "1",
        },
        clear=True,
    )
    def test_load_from_env(self) -> None:
        """Test loading config from environment variables."""
        config = load_gate_config_from_env()
        assert config.debug is True
        assert config.fallback_rule == FallbackRule.ALLOW
        assert config.fallback_error == "Nope"
        assert config.cache_enabled is False
        assert config.log_level == LogLevel.WARNING
        assert config.log_json is True

    def test_debug_truthy_variants(self) -> None:
        """FIELDGATE_DEBUG accepts various true values."""
        for value in ("true", "1", "yes", "on", "TRUE"):
            with patch.dict(os.environ, {"FIELDGATE_DEBUG": value}, clear=True):
                assert load_gate_config_from_env().debug is True

    @patch.dict(os.environ, {"FIELDGATE_DEBUG": "nope"}, clear=True)
    def test_debug_other_values_are_false(self) -> None:
        assert load_gate_config_from_env().debug is False

    @patch.dict(os.environ, {"FIELDGATE_FALLBACK_RULE": "sometimes"}, clear=True)
    def test_invalid_env_value_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            load_gate_config_from_env()
