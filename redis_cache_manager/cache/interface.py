"""
Redis Cache Manager — Cache Interface

Defines the abstract interface that cache managers implement.
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from types import TracebackType
from typing import Any, Self


class CacheManagerInterface(ABC):
    """
    Abstract base class for cache managers.

    Every mutator is awaitable and reports its outcome, so connectivity
    failures reach the caller instead of being dropped.
    """

    @abstractmethod
    async def get(self, key: str, type_: Any = None) -> Any | None:
        """
        Retrieve a value from the cache.

        Args:
            key: Cache key
            type_: Type to decode the stored value into (plain JSON if None)

        Returns:
            Decoded value, or None if the key is absent or its payload
            cannot be decoded into ``type_``
        """
        pass

    @abstractmethod
    async def get_many(self, key: str, item_type: Any = None) -> list[Any] | None:
        """
        Retrieve a list stored under one key.

        Args:
            key: Cache key
            item_type: Type of each list element (plain JSON if None)

        Returns:
            Decoded list, or None if the key is absent, undecodable, or
            holds an empty list
        """
        pass

    @abstractmethod
    async def set(
        self,
        key: str,
        value: Any,
        expiry: timedelta | float | None = None,
    ) -> bool:
        """
        Store a value in the cache.

        Args:
            key: Cache key
            value: Value to cache (must be serializable); None is a no-op
            expiry: Time-to-live as timedelta or seconds (None = no expiry)

        Returns:
            True if stored, False if nothing was written (value was None)

        Raises:
            CacheOperationError: If expiry is zero or negative
        """
        pass

    @abstractmethod
    async def is_set(self, key: str) -> bool:
        """
        Check if a key exists in the cache.

        Args:
            key: Cache key to check

        Returns:
            True if key exists and is not expired, False otherwise
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """
        Delete a key from the cache. Removing an absent key is not an error.

        Args:
            key: Cache key to delete

        Returns:
            True if key was deleted, False if key didn't exist
        """
        pass

    @abstractmethod
    async def get_key_remaining_timeout(self, key: str) -> timedelta | None:
        """
        Remaining time-to-live of a key.

        Returns:
            Remaining TTL, or None if the key has no expiry or does not exist
        """
        pass

    @abstractmethod
    async def clear(self) -> int:
        """
        Clear all entries from the cache.

        Returns:
            Number of keys deleted
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Release every resource held by the manager. Idempotent.

        Should be called during graceful shutdown.
        """
        pass

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
