"""HTTP surface tests through FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from insight.api import create_app
from insight.context import PipelineContext

from tests.fakes import FakeRedisFactory, FakeStore, ProviderStub, chat_response, make_settings


def build_context(store: FakeStore, stub: ProviderStub | None = None, **env) -> PipelineContext:
    settings = make_settings(**env)
    return PipelineContext.from_settings(
        settings,
        http_client=(stub or ProviderStub()).client(),
        client_factory=FakeRedisFactory(store),
    )


@pytest.fixture
def context(store) -> PipelineContext:
    return build_context(store, REDIS_URL="redis://fake:6379/0")


@pytest.fixture
def client(context):
    with TestClient(create_app(context)) as test_client:
        yield test_client


def test_profile_without_providers_uses_fallback(client, sample_record_data):
    response = client.post("/api/ai-profile", json={"clientInfo": sample_record_data})

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "fallback"
    assert body["error"] == "No AI configured"
    assert body["profile"]["developerScore"] == 100
    assert body["profile"]["aiGenerated"] is False


def test_profile_is_generated_then_cached(store, sample_record_data, profile_text):
    stub = ProviderStub(grok=lambda request: chat_response(profile_text))
    context = build_context(store, stub, REDIS_URL="redis://fake", GROK_API_KEY="key")

    with TestClient(create_app(context)) as client:
        payload = {"clientInfo": sample_record_data, "geo": {"country": "Germany"}}
        first = client.post("/api/ai-profile", json=payload)
        second = client.post("/api/ai-profile", json=payload)

    assert first.json()["source"] == "ai"
    assert "error" not in first.json()
    assert second.json()["source"] == "cache"
    assert second.json()["profile"] == first.json()["profile"]
    assert stub.calls_to("api.x.ai") == 1


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"clientInfo": {"crossBrowserId": "cb"}},
        {"clientInfo": {"fingerprintId": "fp", "crossBrowserId": ""}},
        {"clientInfo": {"fingerprintId": "fp", "crossBrowserId": "cb", "deviceMemory": "lots"}},
    ],
)
def test_malformed_profile_request_is_rejected(client, payload):
    assert client.post("/api/ai-profile", json=payload).status_code == 422


def test_non_json_body_is_rejected(client):
    response = client.post(
        "/api/ai-profile", content=b"not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 422


def test_visits_are_counted_once(client, store):
    first = client.post("/api/visits", json={"fingerprintId": "fp", "crossBrowserId": "cb"})
    again = client.post("/api/visits", json={"fingerprintId": "fp", "crossBrowserId": "cb"})
    other = client.post("/api/visits", json={"fingerprintId": "fp2", "crossBrowserId": "cb"})

    assert first.json() == {"isNewVisitor": True, "totalUniqueVisitors": 1}
    assert again.json() == {"isNewVisitor": False, "totalUniqueVisitors": 1}
    assert other.json() == {"isNewVisitor": True, "totalUniqueVisitors": 2}
    assert client.get("/api/stats/unique-visitors").json() == 2
    assert store.sets["insight:unique_visitors"] == {"fp:cb", "fp2:cb"}


def test_visit_requires_both_ids(client):
    response = client.post("/api/visits", json={"fingerprintId": "fp"})

    assert response.status_code == 422


def test_visits_without_store(store):
    with TestClient(create_app(build_context(store))) as client:
        response = client.post("/api/visits", json={"fingerprintId": "fp", "crossBrowserId": "cb"})
        count = client.get("/api/stats/unique-visitors")

    assert response.json() == {"isNewVisitor": False, "totalUniqueVisitors": 0}
    assert count.json() == 0
    assert store.calls == []


def test_auction_fallback_and_validation(client):
    ok = client.post(
        "/api/ai-auction",
        json={"profileSummary": "Gamer", "country": "Japan", "countryCode": "JP"},
    )
    bad = client.post("/api/ai-auction", json={"profileSummary": "Gamer", "countryCode": "JPN"})

    assert ok.status_code == 200
    assert ok.json() == {"bids": [], "valueFactors": [], "source": "fallback"}
    assert bad.status_code == 422


def test_health_reports_components(client):
    client.post("/api/visits", json={"fingerprintId": "fp", "crossBrowserId": "cb"})

    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["providers"] == {"grok": False, "mimo": False}
    assert body["connections"]["tracking"]["state"] == "CONNECTED"
    assert body["connections"]["cache"]["state"] == "DISCONNECTED"
    assert "hit_rate" in body["cache"]
    assert [limiter["name"] for limiter in body["rateLimits"]] == ["profile", "auction"]


def test_lifespan_starts_and_releases_resources(context):
    with TestClient(create_app(context)) as client:
        assert client.get("/health").status_code == 200
        assert context.maintenance.is_running()

    assert not context.maintenance.is_running()
    assert context.http_client.is_closed
