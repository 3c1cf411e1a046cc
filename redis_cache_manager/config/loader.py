"""
Redis Cache Manager — Configuration Loader

Builds the runtime configuration from environment variables, optionally
seeded from a .env file, and keeps one shared instance per process.

Recognised variables:
    REDIS_CONNECTION_STRING  connection string (REDIS_URL is used when unset)
    ENVIRONMENT              development | staging | production | test
    LOG_LEVEL                DEBUG | INFO | WARNING | ERROR | CRITICAL
    LOG_FORMAT               json | text
"""

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from .schemas import CacheManagerConfig

logger = logging.getLogger(__name__)

CONNECTION_STRING_VARS = ("REDIS_CONNECTION_STRING", "REDIS_URL")

_config_instance: CacheManagerConfig | None = None


def _apply_env_file(env_file: str | None) -> None:
    """Export the variables of ``env_file`` (default ./.env) if the file exists."""
    env_path = Path(env_file) if env_file else Path.cwd() / ".env"

    if not env_path.exists():
        logger.debug("No .env file at %s, using process environment only", env_path)
        return

    logger.info("Loading environment from %s", env_path)
    try:
        load_dotenv(env_path, override=True)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(
            "Failed to read .env file %s: %s",
            env_path,
            e,
            extra={"path": str(env_path), "error": str(e)},
            exc_info=True,
        )
        raise ConfigurationError(
            f"Failed to load environment file: {e}",
            details={"path": str(env_path), "error": str(e)},
        ) from e


def _connection_string_from_env() -> str:
    for name in CONNECTION_STRING_VARS:
        value = os.getenv(name)
        if value:
            return value
    return ""


def _environment_values() -> dict[str, Any]:
    return {
        "environment": os.getenv("ENVIRONMENT", "development"),
        "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
        "log_format": os.getenv("LOG_FORMAT", "json").lower(),
        "redis": {"connection_string": _connection_string_from_env()},
    }


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> CacheManagerConfig:
    """
    Load the shared configuration.

    Args:
        env_file: Path to a .env file (default: .env in the working directory)
        reload: Rebuild even if a configuration was already loaded

    Returns:
        Validated CacheManagerConfig instance

    Raises:
        ConfigurationError: If the .env file cannot be read or a value is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    _apply_env_file(env_file)
    values = _environment_values()

    try:
        config = CacheManagerConfig(**values)
    except ValidationError as e:
        logger.error(
            "Invalid cache manager configuration: %s",
            e,
            extra={"validation_errors": e.errors(), "fields": sorted(values)},
        )
        raise ConfigurationError(
            "Invalid cache manager configuration; check ENVIRONMENT, LOG_LEVEL and LOG_FORMAT",
            details={"validation_errors": e.errors()},
        ) from e

    _config_instance = config
    logger.info(
        "Configuration loaded (environment: %s)",
        config.environment,
        extra={
            "environment": config.environment,
            "connection_configured": bool(config.redis.connection_string),
        },
    )
    return config


def get_config() -> CacheManagerConfig:
    """Return the shared configuration, loading it on first access."""
    if _config_instance is None:
        return load_config()
    return _config_instance


def reload_config(env_file: str | None = None) -> CacheManagerConfig:
    """Discard the shared configuration and load it again."""
    return load_config(env_file=env_file, reload=True)
