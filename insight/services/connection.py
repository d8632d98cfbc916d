"""
ConnectionManager - Cooldown-guarded connections to the Redis store.

States:
- DISCONNECTED: No handle, the next acquire() attempts to connect
- CONNECTING: An attempt is in flight, other callers get nothing
- CONNECTED: Handle is usable
- COOLDOWN: The last attempt or operation failed, acquire() short-circuits

Transitions:
- DISCONNECTED → CONNECTING: acquire()
- COOLDOWN → CONNECTING: acquire() once the cooldown has elapsed
- CONNECTING → CONNECTED: PING succeeded
- CONNECTING → COOLDOWN: every connect attempt failed or the timeout hit
- CONNECTED → COOLDOWN: mark_failed() after a runtime error
- any → DISCONNECTED: reset()
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from insight.utils import capped_backoff, retry_async

# Errors a store operation can surface once a handle is in use
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    RedisError,
    OSError,
    asyncio.TimeoutError,
)


class ConnectionState(str, Enum):
    """Connection states."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    COOLDOWN = "COOLDOWN"


@dataclass
class ConnectionConfig:
    """Configuration for a managed store connection."""

    url: str | None = None  # None disables the connection entirely
    connect_timeout: float = 5.0  # Bound on the whole establish phase
    cooldown: float = 5.0  # Seconds before a failed connection is retried
    connect_attempts: int = 5
    retry_step: float = 0.2
    retry_cap: float = 2.0


ClientFactory = Callable[[str, ConnectionConfig], Redis]


def create_redis_client(url: str, config: ConnectionConfig) -> Redis:
    """Build an (unconnected) asyncio Redis client for ``url``."""
    kwargs: dict[str, Any] = {
        "socket_connect_timeout": config.connect_timeout,
        "socket_timeout": config.connect_timeout,
        "decode_responses": True,
    }
    if url.startswith("rediss://"):
        kwargs["ssl_cert_reqs"] = "none"
    return Redis.from_url(url, **kwargs)


class ConnectionManager:
    """
    Owns one Redis handle and its connection state.

    Usage:
        manager = ConnectionManager("cache", ConnectionConfig(url=redis_url))

        client = await manager.acquire()
        if client is None:
            return None  # treat as unavailable

        try:
            return await client.get(key)
        except CONNECTION_ERRORS as e:
            await manager.mark_failed(e)
            return None
    """

    def __init__(
        self,
        connection_id: str,
        config: ConnectionConfig | None = None,
        client_factory: ClientFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.connection_id = connection_id
        self.config = config or ConnectionConfig()
        self._client_factory = client_factory or create_redis_client
        self._clock = clock

        self._state = ConnectionState.DISCONNECTED
        self._client: Redis | None = None
        self._cooldown_started_at: float | None = None
        self._last_error: str | None = None
        self._connect_attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_configured(self) -> bool:
        return bool(self.config.url)

    @property
    def connect_attempts(self) -> int:
        """Total PING attempts made while establishing connections."""
        return self._connect_attempts

    async def acquire(self) -> Redis | None:
        """
        Return a usable handle, or None when the store is unavailable.

        Never raises. A connection in cooldown is not retried until the
        cooldown has elapsed.
        """
        if not self.is_configured:
            return None

        if self._state == ConnectionState.CONNECTED and self._client is not None:
            return self._client

        if self._state == ConnectionState.COOLDOWN and self._in_cooldown():
            return None

        if self._state == ConnectionState.CONNECTING:
            return None

        return await self._connect()

    async def mark_failed(self, error: BaseException) -> None:
        """Record a runtime error on the handle and enter cooldown."""
        client, self._client = self._client, None
        self._enter_cooldown(error)
        logger.warning(
            f"Redis '{self.connection_id}' error, cooling down for "
            f"{self.config.cooldown}s: {error}"
        )
        if client is not None:
            await self._close_client(client)

    async def reset(self) -> None:
        """Force-close the handle so the next acquire() starts from scratch."""
        client, self._client = self._client, None
        self._state = ConnectionState.DISCONNECTED
        self._cooldown_started_at = None
        if client is not None:
            await self._close_client(client)
        logger.debug(f"Redis '{self.connection_id}' reset")

    async def close(self) -> None:
        """Close the handle on shutdown."""
        if self._client is not None:
            await self.reset()
            logger.info(f"Redis '{self.connection_id}' disconnected")

    async def _connect(self) -> Redis | None:
        self._state = ConnectionState.CONNECTING
        client: Redis | None = None

        async def ping(attempt: int) -> None:
            self._connect_attempts += 1
            await client.ping()  # type: ignore[union-attr]

        try:
            client = self._client_factory(self.config.url or "", self.config)
            await asyncio.wait_for(
                retry_async(
                    ping,
                    attempts=self.config.connect_attempts,
                    delay=capped_backoff(self.config.retry_step, self.config.retry_cap),
                    retry_on=CONNECTION_ERRORS,
                ),
                timeout=self.config.connect_timeout,
            )
        except (*CONNECTION_ERRORS, ValueError) as e:
            if client is not None:
                await self._close_client(client)
            self._enter_cooldown(e)
            logger.error(f"Redis '{self.connection_id}' connection failed: {e}")
            return None
        except asyncio.CancelledError:
            self._state = ConnectionState.DISCONNECTED
            if client is not None:
                await self._close_client(client)
            logger.warning(f"Redis '{self.connection_id}' connect cancelled")
            raise

        self._client = client
        self._state = ConnectionState.CONNECTED
        self._cooldown_started_at = None
        self._last_error = None
        logger.info(f"Redis '{self.connection_id}' connected")
        return client

    def _enter_cooldown(self, error: BaseException) -> None:
        self._state = ConnectionState.COOLDOWN
        self._cooldown_started_at = self._clock()
        self._last_error = f"{type(error).__name__}: {error}"

    def _in_cooldown(self) -> bool:
        if self._cooldown_started_at is None:
            return False
        return self._clock() - self._cooldown_started_at < self.config.cooldown

    async def _close_client(self, client: Redis) -> None:
        try:
            await client.aclose()
        except CONNECTION_ERRORS as e:
            logger.debug(f"Redis '{self.connection_id}' close failed: {e}")

    def get_time_until_retry(self) -> float | None:
        """Get seconds until a cooling-down connection may be retried."""
        if self._state != ConnectionState.COOLDOWN or self._cooldown_started_at is None:
            return None

        remaining = self._cooldown_started_at + self.config.cooldown - self._clock()
        return max(0.0, remaining)

    def get_status(self) -> dict[str, Any]:
        """Get current status as dictionary."""
        return {
            "connection_id": self.connection_id,
            "configured": self.is_configured,
            "state": self._state.value,
            "last_error": self._last_error,
            "connect_attempts": self._connect_attempts,
            "time_until_retry": self.get_time_until_retry(),
        }


class ConnectionRegistry:
    """
    Registry of independent connection managers, one per connection id.

    Usage:
        registry = ConnectionRegistry(ConnectionConfig(url=redis_url))
        client = await registry.acquire(ConnectionRegistry.CACHE)
    """

    CACHE = "cache"
    TRACKING = "tracking"

    def __init__(
        self,
        default_config: ConnectionConfig | None = None,
        client_factory: ClientFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._managers: dict[str, ConnectionManager] = {}
        self._default_config = default_config or ConnectionConfig()
        self._client_factory = client_factory
        self._clock = clock

    def get(
        self,
        connection_id: str,
        config: ConnectionConfig | None = None,
    ) -> ConnectionManager:
        """Get or create the manager for a connection id."""
        if connection_id not in self._managers:
            self._managers[connection_id] = ConnectionManager(
                connection_id,
                config or self._default_config,
                client_factory=self._client_factory,
                clock=self._clock,
            )
        return self._managers[connection_id]

    async def acquire(self, connection_id: str) -> Redis | None:
        return await self.get(connection_id).acquire()

    def get_all_status(self) -> dict[str, dict[str, Any]]:
        """Get status of all managed connections."""
        return {
            connection_id: manager.get_status()
            for connection_id, manager in self._managers.items()
        }

    async def close_all(self) -> None:
        for manager in self._managers.values():
            await manager.close()
