"""
Redis Cache Manager — Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
All configuration is defined here and validated at startup.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    TEXT = "text"


class RedisSettings(BaseModel):
    """
    Settings handed to a cache manager.

    The connection string is the single required value. It may be left empty
    here so that the manager, not the settings model, reports the missing
    value as a ConfigurationError at construction time.
    """

    connection_string: str = Field(
        default="",
        description=(
            "Connection descriptor: 'host:port[,host:port...][,option=value...]' "
            "or a redis:// / rediss:// URL"
        ),
    )

    @field_validator("connection_string")
    @classmethod
    def strip_connection_string(cls, v: str) -> str:
        """Normalize surrounding whitespace."""
        return v.strip()

    model_config = ConfigDict(frozen=True)


class CacheManagerConfig(BaseModel):
    """Root configuration for the cache manager runtime."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Log output format")

    redis: RedisSettings = Field(default_factory=RedisSettings)

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)
