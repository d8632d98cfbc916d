"""
PipelineContext - Everything the pipelines share, built once at start-up.

Owns both store connections, the rate limiters, the HTTP client and the
providers, and hands them to each component by reference.
"""

from datetime import timedelta

import httpx
from loguru import logger

from insight.ai.providers import ChatProvider, build_providers
from insight.auction.pipeline import AuctionPipeline
from insight.profile.pipeline import ProfilePipeline
from insight.services.cache import ResultCache
from insight.services.connection import (
    ClientFactory,
    ConnectionConfig,
    ConnectionRegistry,
)
from insight.services.maintenance import MaintenanceScheduler
from insight.services.rate_limiter import RateLimiter
from insight.services.visitors import VisitorTracker
from insight.settings import Settings


class PipelineContext:
    def __init__(
        self,
        settings: Settings,
        registry: ConnectionRegistry,
        http_client: httpx.AsyncClient,
        providers: list[ChatProvider],
    ):
        self.settings = settings
        self.registry = registry
        self.http_client = http_client
        self.providers = providers

        self.cache_connection = registry.get(ConnectionRegistry.CACHE)
        self.tracking_connection = registry.get(ConnectionRegistry.TRACKING)

        self.profile_limiter = RateLimiter(
            "profile", settings.rate_limit_window, settings.rate_limit_max
        )
        self.auction_limiter = RateLimiter(
            "auction", settings.rate_limit_window, settings.rate_limit_max
        )

        self.cache = ResultCache(self.cache_connection)
        self.visitors = VisitorTracker(self.tracking_connection)

        self.profiles = ProfilePipeline(
            self.cache,
            self.profile_limiter,
            providers,
            ttl=timedelta(seconds=settings.profile_cache_ttl),
        )
        self.auctions = AuctionPipeline(
            self.cache,
            self.auction_limiter,
            providers,
            ttl=timedelta(seconds=settings.auction_cache_ttl),
        )

        self.maintenance = MaintenanceScheduler(
            [self.profile_limiter, self.auction_limiter],
            interval_seconds=settings.rate_limit_sweep_interval,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        client_factory: ClientFactory | None = None,
    ) -> "PipelineContext":
        registry = ConnectionRegistry(
            ConnectionConfig(
                url=settings.redis_url,
                connect_timeout=settings.redis_connect_timeout,
                cooldown=settings.redis_cooldown,
            ),
            client_factory=client_factory,
        )
        if not settings.redis_url:
            logger.warning("REDIS_URL not set - caching and visitor tracking disabled")

        http_client = http_client or httpx.AsyncClient()
        return cls(settings, registry, http_client, build_providers(settings, http_client))

    def start(self) -> None:
        self.maintenance.start()

    async def close(self) -> None:
        self.maintenance.stop()
        await self.registry.close_all()
        await self.http_client.aclose()
        logger.info("Pipeline context closed")
