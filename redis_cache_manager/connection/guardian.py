"""
Redis Cache Manager — Connection Guardian

Owns the single shared connection handle of a cache manager:
- created lazily on first use
- validated before reuse (fast path without locking)
- replaced under an asyncio.Lock when found dead, with at most one
  establishment in flight
- closed together with the manager

A ConnectionHandle holds one redis.asyncio client per reachable endpoint. The
first reachable endpoint (descriptor order) is the primary used for key
operations; the others are only addressed per-server (e.g. key enumeration).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..errors import CacheConnectionError, CacheError, CacheOperationError
from .endpoints import ConnectionOptions, Endpoint

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Endpoint, ConnectionOptions], Redis]

_CONNECTIVITY_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


def create_redis_client(endpoint: Endpoint, options: ConnectionOptions) -> Redis:
    """Default client factory: a redis.asyncio client for one endpoint (connects lazily)."""
    return Redis(
        host=endpoint.host,
        port=endpoint.port,
        db=options.default_database,
        username=options.user,
        password=options.password,
        ssl=options.ssl,
        socket_connect_timeout=options.connect_timeout,
        socket_timeout=options.sync_timeout,
        client_name=options.client_name,
        decode_responses=False,
    )


async def close_clients(clients: Iterable[Redis]) -> None:
    """Close every client, logging (not raising) individual failures."""
    for client in clients:
        try:
            await client.aclose()
        except Exception as e:
            logger.error("Error closing Redis client: %s", e, extra={"error": str(e)}, exc_info=True)


class ConnectionHandle:
    """One live multiplexed connection to the endpoint set."""

    def __init__(
        self,
        options: ConnectionOptions,
        clients: dict[Endpoint, Redis],
        client_factory: ClientFactory,
        generation: int,
    ) -> None:
        if not clients:
            raise ValueError("a connection handle needs at least one client")
        self.options = options
        self.generation = generation
        self._client_factory = client_factory
        self._clients = clients
        self._primary = next(iter(clients))
        # Clients bound to a non-default database, keyed by (endpoint, db)
        self._extra_clients: dict[tuple[Endpoint, int], Redis] = {}
        self._connected = True
        self._closed = False

    @classmethod
    async def connect(
        cls,
        options: ConnectionOptions,
        client_factory: ClientFactory,
        generation: int,
    ) -> ConnectionHandle:
        """
        Establish a handle: create and PING a client per endpoint.

        Unreachable endpoints are dropped from the handle; establishment fails
        only when no endpoint answers.

        Raises:
            CacheConnectionError: If no endpoint could be reached
        """
        clients: dict[Endpoint, Redis] = {}
        failures: dict[str, str] = {}

        try:
            for endpoint in options.endpoints:
                client = client_factory(endpoint, options)
                try:
                    await client.ping()
                except (*_CONNECTIVITY_ERRORS, RedisError) as e:
                    logger.warning(
                        "Endpoint %s unreachable: %s",
                        endpoint,
                        e,
                        extra={"endpoint": str(endpoint), "error": str(e)},
                    )
                    failures[str(endpoint)] = str(e)
                    await close_clients([client])
                    continue
                except BaseException:
                    await close_clients([client])
                    raise
                clients[endpoint] = client
        except BaseException:
            # Cancelled or failed part-way: nothing will own these clients
            await close_clients(clients.values())
            raise

        if not clients:
            raise CacheConnectionError(
                "redis",
                details={"endpoints": [str(e) for e in options.endpoints], "errors": failures},
            )

        return cls(options, clients, client_factory, generation)

    @property
    def is_connected(self) -> bool:
        """Liveness flag: False once closed or after a connectivity failure."""
        return self._connected and not self._closed

    @property
    def endpoints(self) -> tuple[Endpoint, ...]:
        """Reachable endpoints, primary first."""
        return tuple(self._clients)

    @property
    def primary(self) -> Endpoint:
        return self._primary

    def mark_failed(self, error: BaseException | None = None) -> None:
        """Flag the handle as dead so the guardian replaces it on next acquire."""
        if self._connected:
            logger.warning(
                "Connection generation %d marked dead: %s",
                self.generation,
                error,
                extra={"generation": self.generation, "error": str(error)},
            )
        self._connected = False

    def get_server(self, endpoint: Endpoint, db: int | None = None) -> Redis:
        """Client addressing one specific server, bound to ``db`` (default database if None)."""
        if endpoint not in self._clients:
            raise CacheOperationError(
                f"Endpoint {endpoint} is not part of this connection",
                details={"endpoint": str(endpoint)},
            )
        if db is None or db == self.options.default_database:
            return self._clients[endpoint]

        key = (endpoint, db)
        if key not in self._extra_clients:
            db_options = self.options.model_copy(update={"default_database": db})
            self._extra_clients[key] = self._client_factory(endpoint, db_options)
        return self._extra_clients[key]

    def get_database(self, db: int | None = None) -> DatabaseHandle:
        """Obtain a database view on the primary endpoint."""
        index = self.options.default_database if db is None else db
        return DatabaseHandle(self, self.get_server(self._primary, index), index)

    @contextmanager
    def translate_errors(self, command: str, **context: Any) -> Iterator[None]:
        """
        Map redis-py exceptions onto the package taxonomy.

        Connectivity failures also mark this handle dead.
        """
        try:
            yield
        except _CONNECTIVITY_ERRORS as e:
            self.mark_failed(e)
            raise CacheConnectionError(
                "redis",
                details={"command": command, "generation": self.generation, "error": str(e), **context},
            ) from e
        except RedisError as e:
            raise CacheOperationError(
                f"Redis command {command} failed: {e}",
                details={"command": command, "error": str(e), **context},
            ) from e

    async def aclose(self) -> None:
        """Release every client of this handle. Idempotent."""
        if self._closed:
            return
        self._closed = True
        await close_clients([*self._clients.values(), *self._extra_clients.values()])
        self._extra_clients.clear()
        logger.debug("Closed connection generation %d", self.generation)


class DatabaseHandle:
    """Lightweight view of one database index through a connection handle."""

    def __init__(self, connection: ConnectionHandle, client: Redis, database: int) -> None:
        self.connection = connection
        self.database = database
        self._client = client

    async def exists(self, key: str) -> bool:
        with self.connection.translate_errors("EXISTS", key=key):
            return bool(await self._client.exists(key))

    async def get(self, key: str) -> bytes | None:
        with self.connection.translate_errors("GET", key=key):
            return await self._client.get(key)

    async def set(self, key: str, payload: bytes, expiry_ms: int | None = None) -> bool:
        with self.connection.translate_errors("SET", key=key):
            return bool(await self._client.set(key, payload, px=expiry_ms))

    async def delete(self, *keys: str | bytes) -> int:
        if not keys:
            return 0
        with self.connection.translate_errors("DEL", key_count=len(keys)):
            return int(await self._client.delete(*keys))

    async def pttl(self, key: str) -> int:
        with self.connection.translate_errors("PTTL", key=key):
            return int(await self._client.pttl(key))


class ConnectionGuardian:
    """
    Lazily creates, shares and replaces the connection handle of one manager.

    acquire() is safe to call from any number of concurrent tasks.
    """

    def __init__(
        self,
        options: ConnectionOptions,
        client_factory: ClientFactory = create_redis_client,
    ) -> None:
        self.options = options
        self._client_factory = client_factory
        self._current: ConnectionHandle | None = None
        self._lock = asyncio.Lock()
        self._generation = 0
        self._closed = False

    @property
    def current(self) -> ConnectionHandle | None:
        return self._current

    @property
    def generation(self) -> int:
        """Number of handles successfully established so far."""
        return self._generation

    @property
    def closed(self) -> bool:
        return self._closed

    async def acquire(self) -> ConnectionHandle:
        """
        Return the live handle, establishing or replacing it if needed.

        Raises:
            CacheConnectionError: If establishing a new handle fails
            CacheError: If the guardian has been closed
        """
        handle = self._current
        if handle is not None and handle.is_connected:
            return handle

        async with self._lock:
            if self._closed:
                raise CacheError("Cache manager has been closed", details={"operation": "acquire"})

            handle = self._current
            if handle is not None and handle.is_connected:
                return handle

            if handle is not None:
                self._current = None
                logger.info(
                    "Replacing dead connection generation %d",
                    handle.generation,
                    extra={"generation": handle.generation},
                )
                await handle.aclose()

            new_handle = await ConnectionHandle.connect(
                self.options,
                self._client_factory,
                self._generation + 1,
            )
            self._generation = new_handle.generation
            self._current = new_handle

            logger.info(
                "Established connection generation %d",
                new_handle.generation,
                extra={
                    "generation": new_handle.generation,
                    "connected_endpoints": [str(e) for e in new_handle.endpoints],
                    **self.options.describe(),
                },
            )
            return new_handle

    async def close(self) -> None:
        """Close the current handle and refuse further acquisitions. Idempotent."""
        async with self._lock:
            self._closed = True
            handle, self._current = self._current, None
        if handle is not None:
            await handle.aclose()
