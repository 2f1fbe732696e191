"""Tests for FocusHiveConfig configuration module."""

import os

import pytest

from focushive.config import FocusHiveConfig, get_config, reload_config


@pytest.fixture
def clean_env():
    """Save and restore environment variables after test."""
    original_env = os.environ.copy()
    for key in list(os.environ.keys()):
        if key.startswith("FOCUSHIVE_"):
            del os.environ[key]
    yield
    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)
    # Force config reload after each test
    from focushive import config as config_module

    config_module._config = None


def test_config_defaults(clean_env):
    """Test that config loads with default values when no env vars set."""
    config = FocusHiveConfig()

    assert config.redis_url is None
    assert config.server_host == "localhost"
    assert config.server_port == 5000
    assert config.log_level == "WARNING"
    assert config.jwt_algorithm == "HS256"
    assert config.sweep_interval_seconds == 60.0
    assert config.dedup_window_seconds == 3.0
    assert config.relay_enabled is True
    assert config.relay_active is False


def test_config_loads_from_environment(clean_env):
    """Test that config loads values from environment variables."""
    os.environ["FOCUSHIVE_REDIS_URL"] = "redis://test:6379"
    os.environ["FOCUSHIVE_SERVER_PORT"] = "8000"
    os.environ["FOCUSHIVE_LOG_LEVEL"] = "DEBUG"
    os.environ["FOCUSHIVE_SECRET_KEY"] = "test-secret"
    os.environ["FOCUSHIVE_SWEEP_GRACE_SECONDS"] = "30"

    config = FocusHiveConfig()

    assert config.redis_url == "redis://test:6379"
    assert config.server_port == 8000
    assert config.log_level == "DEBUG"
    assert config.secret_key == "test-secret"
    assert config.sweep_grace_seconds == 30.0
    assert config.relay_active is True


@pytest.mark.parametrize("value", ["false", "0", "no", "off"])
def test_relay_can_be_disabled(clean_env, value):
    """Test the relay flag parses common false values."""
    os.environ["FOCUSHIVE_REDIS_URL"] = "redis://test:6379"
    os.environ["FOCUSHIVE_RELAY_ENABLED"] = value

    assert FocusHiveConfig().relay_active is False


def test_invalid_integer_falls_back_to_default(clean_env):
    """Test malformed numbers use the default."""
    os.environ["FOCUSHIVE_SERVER_PORT"] = "not-a-port"
    assert FocusHiveConfig().server_port == 5000


def test_invalid_port_raises(clean_env):
    """Test out-of-range ports are rejected."""
    with pytest.raises(ValueError, match="Invalid port"):
        FocusHiveConfig(server_port=70000)


def test_invalid_sweep_interval_raises(clean_env):
    with pytest.raises(ValueError, match="sweep interval"):
        FocusHiveConfig(sweep_interval_seconds=0)


def test_invalid_log_level_falls_back(clean_env):
    """Test an unknown log level is replaced by WARNING."""
    assert FocusHiveConfig(log_level="LOUD").log_level == "WARNING"


def test_get_config_is_singleton(clean_env):
    """Test get_config caches and reload_config replaces the instance."""
    first = get_config()
    assert get_config() is first

    os.environ["FOCUSHIVE_SERVER_PORT"] = "9000"
    reloaded = reload_config()
    assert reloaded is not first
    assert reloaded.server_port == 9000
