"""
FallbackChain - Resolve a request through cache, providers and a local fallback.

Order of evaluation:
    1. cache lookup (hit returns immediately)
    2. availability gate (no configured provider -> fallback)
    3. rate gate (caller over its window limit -> fallback)
    4. providers in order, each response normalized against the schema
    5. deterministic fallback

Provider results are written through to the cache; fallback results never are.
``resolve`` does not raise.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Generic

from loguru import logger

from insight.ai.normalizer import M, ParseFailure, normalize, validate_document
from insight.ai.providers import ChatProvider
from insight.services.cache import ResultCache
from insight.services.errors import ProviderError
from insight.services.rate_limiter import RateLimiter

NO_PROVIDER = "No AI configured"
RATE_LIMITED = "Rate limited"


@dataclass
class ChainRequest(Generic[M]):
    """One unit of work for the chain."""

    cache_key: str
    caller_id: str
    system_message: str
    build_prompt: Callable[[], str]
    fallback: Callable[[], M]
    temperature: float = 0.5


@dataclass
class Resolution(Generic[M]):
    result: M
    source: str  # "cache" | "ai" | "fallback"
    error: str | None = None
    provider: str | None = None
    attempts: list[str] = field(default_factory=list)


class FallbackChain(Generic[M]):
    """
    Cache-aside inference with an ordered provider list.

    ``tag`` lets a pipeline stamp provider attribution onto a freshly
    generated result before it is cached.
    """

    def __init__(
        self,
        name: str,
        schema: type[M],
        cache: ResultCache,
        rate_limiter: RateLimiter,
        providers: list[ChatProvider],
        ttl: timedelta,
        tag: Callable[[M, int, ChatProvider], M] | None = None,
    ):
        self.name = name
        self.schema = schema
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.providers = providers
        self.ttl = ttl
        self.tag = tag

    def has_provider(self) -> bool:
        return any(provider.is_configured() for provider in self.providers)

    async def resolve(self, request: ChainRequest[M]) -> Resolution[M]:
        try:
            return await self._resolve(request)
        except Exception as e:
            logger.exception(f"[{self.name}] Unexpected error, using fallback: {e}")
            return self._fallback(request, f"Unexpected error: {type(e).__name__}")

    async def _resolve(self, request: ChainRequest[M]) -> Resolution[M]:
        cached = await self._from_cache(request.cache_key)
        if cached is not None:
            return Resolution(cached, "cache")

        if not self.has_provider():
            return self._fallback(request, NO_PROVIDER)

        if not self.rate_limiter.allow(request.caller_id):
            logger.info(f"[{self.name}] Rate limited {request.caller_id}, using fallback")
            return self._fallback(request, RATE_LIMITED)

        prompt = request.build_prompt()
        errors: list[str] = []

        for index, provider in enumerate(self.providers):
            if not provider.is_configured():
                continue

            result = await self._try_provider(provider, request, prompt, errors)
            if result is None:
                continue

            if self.tag is not None:
                result = self.tag(result, index, provider)
            await self.cache.put(request.cache_key, result.to_payload(), self.ttl)
            logger.info(f"[{self.name}] Generated by '{provider.service_id}'")
            return Resolution(result, "ai", provider=provider.service_id, attempts=errors)

        return self._fallback(request, "; ".join(errors) or NO_PROVIDER, errors)

    async def _from_cache(self, key: str) -> M | None:
        payload = await self.cache.get(key)
        if payload is None:
            return None

        outcome = validate_document(payload, self.schema)
        if isinstance(outcome, ParseFailure):
            logger.warning(f"[{self.name}] Ignoring cache entry {key}: {outcome.reason}")
            return None
        return outcome

    async def _try_provider(
        self,
        provider: ChatProvider,
        request: ChainRequest[M],
        prompt: str,
        errors: list[str],
    ) -> M | None:
        try:
            text = await provider.complete(
                request.system_message, prompt, temperature=request.temperature
            )
        except ProviderError as e:
            logger.warning(f"[{self.name}] Provider '{provider.service_id}' failed: {e}")
            errors.append(f"{provider.service_id}: {e}")
            return None

        outcome = normalize(text, self.schema)
        if isinstance(outcome, ParseFailure):
            logger.warning(
                f"[{self.name}] Unusable response from '{provider.service_id}': "
                f"{outcome.reason} | {outcome.excerpt!r}"
            )
            errors.append(f"{provider.service_id}: {outcome.reason}")
            return None
        return outcome

    def _fallback(
        self, request: ChainRequest[M], error: str, attempts: list[str] | None = None
    ) -> Resolution[M]:
        return Resolution(
            request.fallback(), "fallback", error=error, attempts=attempts or []
        )

