"""
Service layer infrastructure - store connections, caching and rate limiting.

Provides:
- ConnectionManager: Cooldown-guarded Redis connections
- ResultCache: Cache-aside JSON payloads with best-effort writes
- RateLimiter: Per-caller fixed-window limiter
- VisitorTracker: Retry-wrapped unique visitor set
"""

from insight.services.errors import (
    ServiceError,
    StoreUnavailableError,
    ProviderError,
    ProviderTimeoutError,
    ProviderResponseError,
    EmptyResponseError,
    ResponseParseError,
)
from insight.services.connection import (
    ConnectionConfig,
    ConnectionManager,
    ConnectionRegistry,
    ConnectionState,
)
from insight.services.cache import CacheStats, CacheWrite, ResultCache
from insight.services.rate_limiter import RateLimiter, RateLimitWindow
from insight.services.visitors import VisitorTracker

__all__ = [
    # Errors
    "ServiceError",
    "StoreUnavailableError",
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderResponseError",
    "EmptyResponseError",
    "ResponseParseError",
    # Connections
    "ConnectionConfig",
    "ConnectionManager",
    "ConnectionRegistry",
    "ConnectionState",
    # Cache
    "CacheStats",
    "CacheWrite",
    "ResultCache",
    # Rate limiting
    "RateLimiter",
    "RateLimitWindow",
    # Visitors
    "VisitorTracker",
]
