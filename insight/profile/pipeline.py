from datetime import timedelta

from insight.ai.prompts import PROFILE_TEMPLATE, build_profile_prompt
from insight.ai.providers import ChatProvider
from insight.chain import ChainRequest, FallbackChain
from insight.profile.fallback import generate_fallback_profile
from insight.profile.models import (
    FingerprintRecord,
    GeoData,
    ProfileResponse,
    UserProfile,
)
from insight.services.cache import ResultCache, profile_cache_key
from insight.services.rate_limiter import RateLimiter


def _attribute(profile: UserProfile, index: int, provider: ChatProvider) -> UserProfile:
    return profile.model_copy(
        update={"ai_generated": True, "ai_source": provider.service_id}
    )


class ProfilePipeline:
    """Fingerprint record in, scored profile out. Always answers."""

    def __init__(
        self,
        cache: ResultCache,
        rate_limiter: RateLimiter,
        providers: list[ChatProvider],
        ttl: timedelta = timedelta(days=30),
    ):
        self.chain = FallbackChain(
            "profile",
            UserProfile,
            cache,
            rate_limiter,
            providers,
            ttl,
            tag=_attribute,
        )

    async def generate(
        self, record: FingerprintRecord, geo: GeoData | None = None
    ) -> ProfileResponse:
        key = record.key
        request = ChainRequest(
            cache_key=profile_cache_key(key.fingerprint_id, key.cross_browser_id),
            caller_id=key.caller_id,
            system_message=PROFILE_TEMPLATE.system_prompt,
            build_prompt=lambda: build_profile_prompt(record, geo),
            fallback=lambda: generate_fallback_profile(record, geo),
            temperature=PROFILE_TEMPLATE.temperature,
        )
        resolution = await self.chain.resolve(request)
        return ProfileResponse(
            profile=resolution.result.to_payload(),
            source=resolution.source,
            error=resolution.error,
        )
