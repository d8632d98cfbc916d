from datetime import timedelta
from typing import Any

from loguru import logger

from insight.ai.prompts import AUCTION_TEMPLATE, build_auction_prompt
from insight.ai.providers import ChatProvider
from insight.auction.models import AuctionRequest, AuctionResult
from insight.chain import ChainRequest, FallbackChain
from insight.services.cache import ResultCache, auction_cache_key
from insight.services.rate_limiter import RateLimiter


def _attribute(result: AuctionResult, index: int, provider: ChatProvider) -> AuctionResult:
    # First provider in the chain is the primary one
    return result.model_copy(update={"source": "ai" if index == 0 else "secondary"})


class AuctionPipeline:
    """
    Profile summary in, simulated RTB auction out.

    The fallback carries no bids; callers estimate locally in that case.
    """

    def __init__(
        self,
        cache: ResultCache,
        rate_limiter: RateLimiter,
        providers: list[ChatProvider],
        ttl: timedelta = timedelta(hours=1),
    ):
        self.chain = FallbackChain(
            "auction",
            AuctionResult,
            cache,
            rate_limiter,
            providers,
            ttl,
            tag=_attribute,
        )

    async def generate(self, request: AuctionRequest, caller_id: str) -> dict[str, Any]:
        resolution = await self.chain.resolve(
            ChainRequest(
                cache_key=auction_cache_key(request.profile_summary, request.country_code),
                caller_id=caller_id,
                system_message=AUCTION_TEMPLATE.system_prompt,
                build_prompt=lambda: build_auction_prompt(
                    request.profile_summary, request.country, request.country_code
                ),
                fallback=AuctionResult.empty,
                temperature=AUCTION_TEMPLATE.temperature,
            )
        )
        if resolution.error:
            logger.info(f"[auction] Fallback for {caller_id}: {resolution.error}")
        return resolution.result.to_payload()
