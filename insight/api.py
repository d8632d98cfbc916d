"""FastAPI server exposing the profile, auction and visitor endpoints."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger

from insight.auction.models import AuctionRequest
from insight.context import PipelineContext
from insight.profile.models import ProfileRequest, VisitRequest
from insight.settings import Settings, global_settings


class InsightServer:
    """HTTP surface over a shared PipelineContext."""

    def __init__(self, context: PipelineContext):
        self.context = context
        self.app = FastAPI(title="Visitor Insight", lifespan=self.lifespan)

        # Register routes
        self.app.post("/api/ai-profile")(self.ai_profile)
        self.app.post("/api/ai-auction")(self.ai_auction)
        self.app.post("/api/visits")(self.record_visit)
        self.app.get("/api/stats/unique-visitors")(self.unique_visitors)
        self.app.get("/health")(self.health_check)

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        self.context.start()
        logger.info("Visitor insight server started")
        try:
            yield
        finally:
            await self.context.close()
            logger.info("Visitor insight server stopped")

    async def ai_profile(self, body: ProfileRequest):
        """Generate (or recall) the profile for a fingerprint record.

        Args:
            body: Fingerprint record plus optional geolocation

        Returns:
            ``{"profile", "source", "error"?}``
        """
        response = await self.context.profiles.generate(body.client_info, body.geo)
        return response.model_dump(exclude_none=True)

    async def ai_auction(self, body: AuctionRequest, request: Request):
        """Simulate an RTB auction. Rate-limited per client address."""
        caller_id = request.client.host if request.client else "unknown"
        return await self.context.auctions.generate(body, caller_id)

    async def record_visit(self, body: VisitRequest):
        is_new = await self.context.visitors.record_visit(body.key.caller_id)
        total = await self.context.visitors.total_unique_count()
        return {"isNewVisitor": is_new, "totalUniqueVisitors": total}

    async def unique_visitors(self) -> int:
        return await self.context.visitors.total_unique_count()

    async def health_check(self):
        """Health check endpoint."""
        return {
            "status": "ok",
            "service": "visitor-insight",
            "providers": {
                provider.service_id: provider.is_configured()
                for provider in self.context.providers
            },
            "connections": self.context.registry.get_all_status(),
            "cache": self.context.cache.get_stats().to_dict(),
            "rateLimits": [
                self.context.profile_limiter.get_stats(),
                self.context.auction_limiter.get_stats(),
            ],
        }


def create_app(
    context: PipelineContext | None = None, settings: Settings | None = None
) -> FastAPI:
    """Create the FastAPI app.

    Args:
        context: Prebuilt pipeline context (tests inject one)
        settings: Settings used to build a context when none is given

    Returns:
        FastAPI app
    """
    if context is None:
        context = PipelineContext.from_settings(settings or global_settings)
    server = InsightServer(context)
    return server.app
