import itertools
import json
from collections.abc import Callable

import httpx
import pytest

from insight.ai.providers import build_providers
from insight.profile.fallback import generate_fallback_profile
from insight.profile.models import FingerprintRecord
from insight.profile.pipeline import ProfilePipeline
from insight.services.cache import ResultCache, profile_cache_key
from insight.services.connection import ConnectionConfig, ConnectionManager
from insight.services.rate_limiter import RateLimiter

from tests.fakes import FakeRedisFactory, FakeStore, ProviderStub, chat_response, make_settings

PROFILE_KEY = profile_cache_key("fp-123", "cb-456")


@pytest.fixture
def record(sample_record_data) -> FingerprintRecord:
    return FingerprintRecord.model_validate(sample_record_data)


@pytest.fixture
def limiter(clock) -> RateLimiter:
    return RateLimiter("profile", window=60.0, max_calls=2, clock=clock)


def build_pipeline(
    stub: ProviderStub,
    connection: ConnectionManager,
    limiter: RateLimiter,
    grok: bool = True,
    mimo: bool = True,
) -> ProfilePipeline:
    settings = make_settings(
        GROK_API_KEY="grok-key" if grok else "",
        OPENROUTER_API_KEY="openrouter-key" if mimo else "",
    )
    return ProfilePipeline(
        ResultCache(connection), limiter, build_providers(settings, stub.client())
    )


def ok(text: str) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: chat_response(text)


def status(code: int) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(code, text="upstream unavailable")


@pytest.mark.asyncio
async def test_cold_start_without_configuration_uses_fallback(record, offline_connection, limiter):
    stub = ProviderStub()
    pipeline = build_pipeline(stub, offline_connection, limiter, grok=False, mimo=False)

    response = await pipeline.generate(record)

    assert response.source == "fallback"
    assert response.error == "No AI configured"
    assert response.profile == generate_fallback_profile(record).to_payload()
    assert stub.requests == []
    # The availability gate comes before the rate gate
    assert len(limiter) == 0


@pytest.mark.asyncio
async def test_second_call_is_served_from_cache(record, connection, store, limiter, profile_text):
    stub = ProviderStub(grok=ok(profile_text))
    pipeline = build_pipeline(stub, connection, limiter)

    first = await pipeline.generate(record)
    second = await pipeline.generate(record)

    assert first.source == "ai"
    assert first.profile["aiGenerated"] is True
    assert first.profile["aiSource"] == "grok"
    assert second.source == "cache"
    assert json.dumps(second.profile) == json.dumps(first.profile)
    assert stub.calls_to("api.x.ai") == 1
    assert store.ttls[PROFILE_KEY] == 30 * 24 * 60 * 60
    assert json.loads(store.values[PROFILE_KEY]) == first.profile


@pytest.mark.asyncio
async def test_primary_request_shape(record, offline_connection, limiter, profile_text):
    stub = ProviderStub(grok=ok(profile_text))
    pipeline = build_pipeline(stub, offline_connection, limiter)

    await pipeline.generate(record)

    request = stub.requests[0]
    body = json.loads(request.content)
    assert request.headers["Authorization"] == "Bearer grok-key"
    assert body["model"] == "grok-4-1-fast-reasoning"
    assert body["stream"] is False
    assert body["temperature"] == 0.5
    assert [message["role"] for message in body["messages"]] == ["system", "user"]
    assert "fp-123" not in body["messages"][1]["content"]


@pytest.mark.asyncio
async def test_rate_limit_boundary(record, offline_connection, limiter, clock, profile_text):
    stub = ProviderStub(grok=ok(profile_text))
    pipeline = build_pipeline(stub, offline_connection, limiter)

    assert (await pipeline.generate(record)).source == "ai"
    assert (await pipeline.generate(record)).source == "ai"

    limited = await pipeline.generate(record)
    assert limited.source == "fallback"
    assert limited.error == "Rate limited"
    assert stub.calls_to("api.x.ai") == 2

    clock.advance(61)
    assert (await pipeline.generate(record)).source == "ai"
    assert stub.calls_to("api.x.ai") == 3


@pytest.mark.asyncio
async def test_secondary_used_when_primary_down(record, connection, store, limiter, profile_text):
    fenced = f"Sure!\n```json\n{profile_text[:-1]}, // done\n}}\n```"

    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    stub = ProviderStub(grok=timeout, mimo=ok(fenced))
    pipeline = build_pipeline(stub, connection, limiter)

    response = await pipeline.generate(record)

    assert response.source == "ai"
    assert response.error is None
    assert response.profile["aiSource"] == "mimo"
    assert response.profile["developerScore"] == 87
    assert PROFILE_KEY in store.values

    mimo_request = stub.requests[1]
    body = json.loads(mimo_request.content)
    assert mimo_request.headers["X-Title"] == "YourInfo Privacy Demo"
    assert body["max_tokens"] == 4096
    assert body["reasoning"] == {"enabled": False}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "primary",
    [
        ok("I cannot help with that."),
        ok('{"likelyDeveloper": "maybe", "developerScore": 10}'),
        ok(""),
        lambda request: httpx.Response(200, text="<html>gateway</html>"),
        lambda request: httpx.Response(200, json={"choices": []}),
    ],
)
async def test_unusable_primary_response_falls_through(record, offline_connection, limiter, profile_text, primary):
    stub = ProviderStub(grok=primary, mimo=ok(profile_text))
    pipeline = build_pipeline(stub, offline_connection, limiter)

    response = await pipeline.generate(record)

    assert response.source == "ai"
    assert response.profile["aiSource"] == "mimo"


@pytest.mark.asyncio
async def test_primary_server_error_falls_through(record, offline_connection, limiter, profile_text):
    stub = ProviderStub(grok=status(503), mimo=ok(profile_text))
    pipeline = build_pipeline(stub, offline_connection, limiter)

    response = await pipeline.generate(record)

    assert response.profile["aiSource"] == "mimo"


@pytest.mark.asyncio
async def test_all_providers_failing_returns_uncached_fallback(record, connection, store, limiter):
    stub = ProviderStub(grok=status(500), mimo=status(429))
    pipeline = build_pipeline(stub, connection, limiter)

    response = await pipeline.generate(record)

    assert response.source == "fallback"
    assert "grok: HTTP 500" in response.error
    assert "mimo: HTTP 429" in response.error
    assert response.profile == generate_fallback_profile(record).to_payload()
    assert store.values == {}


@pytest.mark.asyncio
async def test_unexpected_error_is_routed_to_fallback(record, offline_connection, limiter):
    def explode(request: httpx.Request) -> httpx.Response:
        raise RuntimeError("bug in transport")

    stub = ProviderStub(grok=explode)
    pipeline = build_pipeline(stub, offline_connection, limiter, mimo=False)

    response = await pipeline.generate(record)

    assert response.source == "fallback"
    assert response.error == "Unexpected error: RuntimeError"


@pytest.mark.asyncio
async def test_store_down_still_returns_ai_result(record, connection, store, limiter, profile_text):
    store.fail("ping", times=10)
    stub = ProviderStub(grok=ok(profile_text))
    pipeline = build_pipeline(stub, connection, limiter)

    response = await pipeline.generate(record)

    assert response.source == "ai"
    assert store.values == {}


@pytest.mark.asyncio
async def test_invalid_cache_entry_counts_as_miss(record, connection, store, limiter, profile_text):
    store.values[PROFILE_KEY] = json.dumps({"developerScore": "high"})
    stub = ProviderStub(grok=ok(profile_text))
    pipeline = build_pipeline(stub, connection, limiter)

    response = await pipeline.generate(record)

    assert response.source == "ai"
    assert json.loads(store.values[PROFILE_KEY])["developerScore"] == 87


@pytest.mark.asyncio
async def test_timezone_naming_a_zone_directory_still_reaches_provider(
    sample_record_data, offline_connection, limiter, profile_text
):
    record = FingerprintRecord.model_validate({**sample_record_data, "timezone": "America"})
    stub = ProviderStub(grok=ok(profile_text))
    pipeline = build_pipeline(stub, offline_connection, limiter)

    response = await pipeline.generate(record)

    assert response.source == "ai"
    assert response.error is None
    assert stub.calls_to("api.x.ai") == 1


@pytest.mark.asyncio
async def test_oversized_score_from_primary_is_clamped(record, offline_connection, limiter):
    document = '{"likelyDeveloper": true, "developerScore": 1' + "0" * 400 + "}"
    stub = ProviderStub(grok=ok(document))
    pipeline = build_pipeline(stub, offline_connection, limiter, mimo=False)

    response = await pipeline.generate(record)

    assert response.source == "ai"
    assert response.profile["developerScore"] == 100


@pytest.mark.asyncio
async def test_unconfigured_primary_is_skipped(record, offline_connection, limiter, profile_text):
    stub = ProviderStub(grok=ok(profile_text), mimo=ok(profile_text))
    pipeline = build_pipeline(stub, offline_connection, limiter, grok=False)

    response = await pipeline.generate(record)

    assert response.profile["aiSource"] == "mimo"
    assert stub.calls_to("api.x.ai") == 0


PROVIDER_MODES = ("ok", "down", "off")
STORE_MODES = ("up", "down", "off")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "grok_mode, mimo_mode, store_mode",
    list(itertools.product(PROVIDER_MODES, PROVIDER_MODES, STORE_MODES)),
)
async def test_always_returns_a_profile(record, clock, profile_text, grok_mode, mimo_mode, store_mode):
    store = FakeStore()
    if store_mode == "down":
        store.fail("ping", times=100)
    connection = ConnectionManager(
        "cache",
        ConnectionConfig(
            url=None if store_mode == "off" else "redis://fake",
            retry_step=0.0,
        ),
        client_factory=FakeRedisFactory(store),
        clock=clock,
    )

    def handler(mode: str):
        return ok(profile_text) if mode == "ok" else status(502)

    stub = ProviderStub(grok=handler(grok_mode), mimo=handler(mimo_mode))
    pipeline = build_pipeline(
        stub,
        connection,
        RateLimiter(clock=clock),
        grok=grok_mode != "off",
        mimo=mimo_mode != "off",
    )

    response = await pipeline.generate(record)

    assert response.profile
    assert isinstance(response.profile["developerScore"], int)
    expected = "ai" if "ok" in (grok_mode, mimo_mode) else "fallback"
    assert response.source == expected
