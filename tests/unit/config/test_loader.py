"""
Redis Cache Manager — Configuration Loader Tests
"""

from pathlib import Path

import pytest

from redis_cache_manager.config import (
    CacheManagerConfig,
    Environment,
    LogFormat,
    LogLevel,
    get_config,
    loader,
    load_config,
    reload_config,
)
from redis_cache_manager.errors import ConfigurationError

MISSING_ENV_FILE = "/nonexistent/.env"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start each test from an unloaded config and no Redis variables."""
    monkeypatch.setattr(loader, "_config_instance", None)
    for name in ("REDIS_CONNECTION_STRING", "REDIS_URL", "LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")


def test_loads_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_CONNECTION_STRING", "  cache-1:6379,cache-2:6379,ssl=true  ")
    monkeypatch.setenv("LOG_FORMAT", "TEXT")

    config = load_config(env_file=MISSING_ENV_FILE)

    assert isinstance(config, CacheManagerConfig)
    assert config.environment == Environment.TEST.value
    assert config.log_level == LogLevel.DEBUG.value
    assert config.log_format == LogFormat.TEXT.value
    assert config.redis.connection_string == "cache-1:6379,cache-2:6379,ssl=true"


def test_redis_url_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/2")

    config = load_config(env_file=MISSING_ENV_FILE)

    assert config.redis.connection_string == "redis://localhost:6379/2"


def test_connection_string_wins_over_redis_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_URL", "redis://ignored:6379/0")
    monkeypatch.setenv("REDIS_CONNECTION_STRING", "preferred:6379")

    assert load_config(env_file=MISSING_ENV_FILE).redis.connection_string == "preferred:6379"


def test_missing_connection_string_is_empty() -> None:
    assert load_config(env_file=MISSING_ENV_FILE).redis.connection_string == ""


def test_config_is_cached_until_reload(monkeypatch: pytest.MonkeyPatch) -> None:
    first = load_config(env_file=MISSING_ENV_FILE)
    monkeypatch.setenv("REDIS_CONNECTION_STRING", "changed:6379")

    assert get_config() is first
    assert load_config() is first

    reloaded = reload_config(env_file=MISSING_ENV_FILE)

    assert reloaded is not first
    assert reloaded.redis.connection_string == "changed:6379"
    assert get_config() is reloaded


def test_invalid_log_level_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "LOUD")

    with pytest.raises(ConfigurationError) as exc_info:
        load_config(env_file=MISSING_ENV_FILE)

    assert exc_info.value.details["validation_errors"]


def test_loads_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Registered with monkeypatch so the values written by the .env file are undone afterwards
    monkeypatch.setenv("REDIS_CONNECTION_STRING", "placeholder:6379")
    monkeypatch.setenv("ENVIRONMENT", "test")

    env_file = tmp_path / ".env"
    env_file.write_text("REDIS_CONNECTION_STRING=from-file:6380,defaultDatabase=3\nENVIRONMENT=staging\n")

    config = load_config(env_file=str(env_file))

    assert config.redis.connection_string == "from-file:6380,defaultDatabase=3"
    assert config.environment == Environment.STAGING.value
