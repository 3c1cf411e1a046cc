"""
Redis Cache Manager - Core Error Types

Defines the exception hierarchy for the cache manager.
All exceptions inherit from RedisCacheManagerError for consistent error handling.

Taxonomy:
- ConfigurationError: fatal, raised while constructing a manager
- CacheConnectionError: connectivity failures, surfaced per operation
- CacheOperationError / CacheSerializationError: store-side or encode failures
- LockError: distributed lock misuse
Decode failures on read are NOT errors; they degrade to a cache miss.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    Standard error codes for structured error responses.

    Used by callers that need to map failures onto their own error surface.
    """

    # Configuration errors
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    MISSING_CONNECTION_STRING = "MISSING_CONNECTION_STRING"

    # Cache errors
    CACHE_UNAVAILABLE = "CACHE_UNAVAILABLE"
    CACHE_FAILURE = "CACHE_FAILURE"
    SERIALIZATION_FAILURE = "SERIALIZATION_FAILURE"

    # Lock errors
    LOCK_FAILURE = "LOCK_FAILURE"

    # Internal errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class RedisCacheManagerError(Exception):
    """Base exception for all cache manager errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(RedisCacheManagerError):
    """Raised when configuration is invalid or missing."""


class CacheError(RedisCacheManagerError):
    """Base exception for cache-related errors."""


class CacheConnectionError(CacheError):
    """Raised when the shared store connection cannot be established or is lost."""

    def __init__(self, backend: str, details: dict[str, Any] | None = None):
        message = f"Failed to connect to cache backend: {backend}"
        super().__init__(message, details)
        self.backend = backend


class CacheOperationError(CacheError):
    """Raised when the store rejects an operation or its arguments are invalid."""


class CacheSerializationError(CacheError):
    """Raised when a value cannot be encoded for storage."""


class LockError(RedisCacheManagerError):
    """Raised when a distributed lock cannot be created or used."""


def is_retryable_error(error: Exception) -> bool:
    """
    Check if an error is transient and worth retrying at the caller's layer.

    The manager itself never retries; it only re-establishes the shared
    connection on the next call after a connectivity failure.

    Args:
        error: Exception to check

    Returns:
        True if error is retryable (transient)
    """
    return isinstance(error, CacheConnectionError)


def extract_error_code(error: Exception) -> ErrorCode:
    """
    Extract appropriate ErrorCode from an exception.

    Args:
        error: Exception to categorize

    Returns:
        Appropriate ErrorCode for the exception
    """
    if isinstance(error, ConfigurationError):
        if error.details.get("field") == "connection_string":
            return ErrorCode.MISSING_CONNECTION_STRING
        return ErrorCode.INVALID_CONFIGURATION

    if isinstance(error, CacheConnectionError):
        return ErrorCode.CACHE_UNAVAILABLE

    if isinstance(error, CacheSerializationError):
        return ErrorCode.SERIALIZATION_FAILURE

    if isinstance(error, CacheError):
        return ErrorCode.CACHE_FAILURE

    if isinstance(error, LockError):
        return ErrorCode.LOCK_FAILURE

    return ErrorCode.INTERNAL_ERROR
