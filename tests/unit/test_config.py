"""Unit tests for configuration management."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from oaServiceControl.core.config_schema import (
    AppConfig,
    ControlConfig,
    DevConfig,
    LogLevel,
    NetworkConfig,
    StorageConfig,
)


class TestAppConfig:
    """Test AppConfig defaults and environment loading."""

    def test_defaults(self):
        config = AppConfig(_env_file=None)

        assert config.app_name == "oaServiceControl"
        assert config.network.port == 9090
        assert config.network.allowed_subnets == ["100.64.0.0/10"]
        assert config.logging.level == LogLevel.INFO
        assert config.remote.port == 22
        assert config.storage.inventory_path is None

    def test_control_defaults(self):
        """Test the default timings of the service controller."""
        control = AppConfig(_env_file=None).control

        assert control.status_timeout == 5.0
        assert control.action_timeout == 30.0
        assert control.wait_timeout == 30.0
        assert control.backoff_initial_delay == 0.1
        assert control.backoff_multiplier == 2.0
        assert control.backoff_max_delay == 5.0
        assert control.serialize_operations is True

    def test_nested_environment_variables(self):
        with patch.dict(os.environ, {
            "CONTROL__WAIT_TIMEOUT": "45",
            "REMOTE__PORT": "2222",
            "SECURITY__ENABLE_SUBNET_RESTRICTION": "false",
        }):
            config = AppConfig(_env_file=None)

        assert config.control.wait_timeout == 45.0
        assert config.remote.port == 2222
        assert config.security.enable_subnet_restriction is False

    def test_environment_modes(self):
        assert AppConfig(_env_file=None, environment="development").is_development()
        assert AppConfig(_env_file=None, environment="production").is_production()
        assert AppConfig(_env_file=None, dev={"debug": True}).is_development()


class TestSectionValidation:
    """Test validation of individual sections."""

    def test_invalid_subnet_rejected(self):
        with pytest.raises(ValidationError):
            NetworkConfig(allowed_subnets=["not-a-subnet"])

    def test_invalid_port_rejected(self):
        with pytest.raises(ValidationError):
            NetworkConfig(port=99999)

    def test_backoff_cap_below_initial_rejected(self):
        with pytest.raises(ValidationError):
            ControlConfig(backoff_initial_delay=2.0, backoff_max_delay=1.0)

    def test_multiplier_below_one_rejected(self):
        with pytest.raises(ValidationError):
            ControlConfig(backoff_multiplier=0.5)

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            ControlConfig(status_timeout=0)

    def test_backoff_schedule(self):
        schedule = ControlConfig(wait_timeout=12, backoff_max_delay=2).backoff_schedule()

        assert schedule.initial_delay == 0.1
        assert schedule.max_delay == 2
        assert schedule.deadline == 12

    def test_debug_enables_traceback(self):
        assert DevConfig(debug=True).include_traceback is True

    def test_inventory_path_expanded(self):
        config = StorageConfig(inventory_path="~/inventory.json")
        assert config.inventory_path == Path("~/inventory.json").expanduser().resolve()

    def test_empty_inventory_path_is_none(self):
        assert StorageConfig(inventory_path="").inventory_path is None
