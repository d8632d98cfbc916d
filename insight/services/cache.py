"""
ResultCache - Cache-aside storage of generated results in Redis.

Features:
- JSON payloads stored with SETEX, expiry owned entirely by Redis
- A store that is down or cooling down reads as a plain miss
- Writes are best effort and report their outcome instead of raising
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any

from loguru import logger

from insight.services.connection import CONNECTION_ERRORS, ConnectionManager

KEY_PREFIX = "insight"


def profile_cache_key(fingerprint_id: str, cross_browser_id: str) -> str:
    """Cache slot for a profile, derived from both identity fields."""
    return f"{KEY_PREFIX}:profile:{fingerprint_id}:{cross_browser_id}"


def auction_cache_key(profile_summary: str, country_code: str) -> str:
    """Cache slot for an auction: summary digest plus country code."""
    digest = hashlib.md5(profile_summary.encode()).hexdigest()
    return f"{KEY_PREFIX}:auction:{digest}:{country_code.upper()}"


class CacheWrite(str, Enum):
    """Outcome of a best-effort cache write. Callers may ignore it."""

    STORED = "stored"
    SKIPPED = "skipped"  # Store unavailable, nothing attempted
    FAILED = "failed"  # Store raised during the write


class ResultCache:
    """
    Cache-aside reads and writes against the cache connection.

    Usage:
        cache = ResultCache(cache_connection)

        payload = await cache.get(key)
        if payload is not None:
            return payload

        result = await compute()
        await cache.put(key, result, ttl=timedelta(days=30))
    """

    def __init__(self, connection: ConnectionManager, debug: bool = False):
        self._connection = connection
        self._debug = debug
        self._stats = CacheStats()

    async def get(self, key: str) -> dict[str, Any] | None:
        """
        Get a payload from the store.

        Returns None on a miss, when the store is unavailable, and when the
        stored value cannot be decoded.
        """
        client = await self._connection.acquire()
        if client is None:
            self._stats.unavailable += 1
            self._log(f"UNAVAILABLE: {key[:50]}...")
            return None

        try:
            raw = await client.get(key)
        except CONNECTION_ERRORS as e:
            self._stats.errors += 1
            logger.error(f"Redis get error for {key}: {e}")
            await self._connection.mark_failed(e)
            return None

        if raw is None:
            self._stats.misses += 1
            self._log(f"MISS: {key[:50]}...")
            return None

        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as e:
            self._stats.misses += 1
            logger.warning(f"Undecodable cache entry {key}: {e}")
            return None

        if not isinstance(payload, dict):
            self._stats.misses += 1
            logger.warning(f"Unexpected cache entry type for {key}: {type(payload)}")
            return None

        self._stats.hits += 1
        logger.info(f"Cache hit: {key}")
        return payload

    async def put(self, key: str, payload: dict[str, Any], ttl: timedelta) -> CacheWrite:
        """Store a payload with a TTL. Never raises."""
        client = await self._connection.acquire()
        if client is None:
            self._stats.skipped_writes += 1
            self._log(f"SKIP SET: {key[:50]}...")
            return CacheWrite.SKIPPED

        try:
            await client.setex(key, int(ttl.total_seconds()), json.dumps(payload))
        except CONNECTION_ERRORS as e:
            self._stats.errors += 1
            logger.error(f"Redis set error for {key}: {e}")
            await self._connection.mark_failed(e)
            return CacheWrite.FAILED

        self._stats.writes += 1
        logger.info(f"Cached: {key} (TTL: {ttl.total_seconds():.0f}s)")
        return CacheWrite.STORED

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[ResultCache] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    unavailable: int = 0
    writes: int = 0
    skipped_writes: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate over every lookup, unavailable ones included."""
        total = self.hits + self.misses + self.unavailable
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "unavailable": self.unavailable,
            "writes": self.writes,
            "skipped_writes": self.skipped_writes,
            "errors": self.errors,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
