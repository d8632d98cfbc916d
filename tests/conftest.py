import json
from typing import Any

import pytest

from insight.services.connection import ConnectionConfig, ConnectionManager
from tests.fakes import (
    AUCTION_DOCUMENT,
    PROFILE_DOCUMENT,
    FakeClock,
    FakeRedisFactory,
    FakeStore,
)


@pytest.fixture
def profile_text() -> str:
    return json.dumps(PROFILE_DOCUMENT)


@pytest.fixture
def auction_text() -> str:
    return json.dumps(AUCTION_DOCUMENT)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def redis_factory(store: FakeStore) -> FakeRedisFactory:
    return FakeRedisFactory(store)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fast_config() -> ConnectionConfig:
    """Connection config with no pauses between PING attempts."""
    return ConnectionConfig(url="redis://fake:6379/0", retry_step=0.0, connect_timeout=1.0)


@pytest.fixture
def connection(
    fast_config: ConnectionConfig, redis_factory: FakeRedisFactory, clock: FakeClock
) -> ConnectionManager:
    return ConnectionManager("cache", fast_config, client_factory=redis_factory, clock=clock)


@pytest.fixture
def sample_record_data() -> dict[str, Any]:
    return {
        "fingerprintId": "fp-123",
        "crossBrowserId": "cb-456",
        "screenWidth": 2560,
        "screenHeight": 1440,
        "devicePixelRatio": 2,
        "hardwareConcurrency": 12,
        "deviceMemory": 16,
        "webglRenderer": "ANGLE (NVIDIA GeForce RTX 3080)",
        "platform": "Linux x86_64",
        "languages": ["en-US", "en", "de"],
        "timezone": "Europe/Berlin",
        "fontsDetected": ["JetBrains Mono", "Arial"],
        "extensionsDetected": ["React DevTools"],
        "installedApps": ["Steam", "Discord"],
        "adBlockerDetected": True,
        "doNotTrack": True,
        "colorGamut": "p3",
        "gamepadsSupported": True,
        "advancedBehavior": {
            "devToolsOpen": True,
            "keyboardShortcutsUsed": ["Ctrl+C", "Ctrl+V", "Ctrl+Shift+I", "Ctrl+T"],
        },
        "someFutureField": {"ignored": True},
    }


@pytest.fixture
def offline_connection(redis_factory: FakeRedisFactory) -> ConnectionManager:
    """A cache connection with no store configured."""
    return ConnectionManager("cache", ConnectionConfig(url=None), client_factory=redis_factory)
