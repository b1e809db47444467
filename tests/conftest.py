"""
Pytest fixtures for testing the stock dashboard core.
"""

import random
from datetime import date

import httpx
import pytest
from fastapi.testclient import TestClient

from src.app.context import AppContext
from src.app.store import ClientStateStore
from src.core.cache import ResponseCache
from src.core.config import Settings
from src.core.models import Quote, WatchlistItem
from src.core.storage import MemoryStorage
from src.data_sources.alpha_vantage import AlphaVantageClient
from src.data_sources.fallback import FallbackSynthesizer

TODAY = date(2024, 1, 15)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    """Skip real backoff delays in provider calls."""
    monkeypatch.setattr("src.core.config.settings.retry_base_delay_ms", 0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def synthesizer():
    """Seeded synthesizer pinned to a fixed date."""
    return FallbackSynthesizer(rng=random.Random(42), today=lambda: TODAY)


@pytest.fixture
def fallback_client(synthesizer):
    """Provider client with no API key: always synthetic."""
    return AlphaVantageClient(api_key="", synthesizer=synthesizer, today=lambda: TODAY)


@pytest.fixture
def provider_payloads():
    """
    Map of Alpha Vantage function name to JSON payload (or status code).
    Tests fill it in; requests for unlisted functions get a 500.
    """
    return {}


@pytest.fixture
def provider_requests():
    return []


@pytest.fixture
def provider_client(synthesizer, provider_payloads, provider_requests):
    """Configured provider client backed by an httpx.MockTransport."""

    def handler(request: httpx.Request) -> httpx.Response:
        provider_requests.append(request)
        function = request.url.params.get("function")
        payload = provider_payloads.get(function)
        if payload is None:
            return httpx.Response(500)
        if isinstance(payload, int):
            return httpx.Response(payload)
        return httpx.Response(200, json=payload)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AlphaVantageClient(
        api_key="test-key",
        base_url="https://provider.test/query",
        synthesizer=synthesizer,
        http_client=http_client,
        today=lambda: TODAY,
    )


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def store(memory_storage):
    return ClientStateStore(memory_storage)


@pytest.fixture
def app_context(fallback_client, clock, store):
    """Context with synthetic data, in-memory state and a fake clock."""
    return AppContext(
        settings=Settings(),
        cache=ResponseCache(ttl_seconds=60, clock=clock),
        client=fallback_client,
        store=store,
    )


@pytest.fixture
def test_client(app_context):
    """Create a test client for the FastAPI app bound to app_context."""
    from src.app.api import app, get_context

    app.dependency_overrides[get_context] = lambda: app_context
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_quote():
    """Create a sample Quote for testing."""
    return Quote(
        symbol="AAPL",
        price=150.25,
        change=2.50,
        change_percent=1.69,
        volume=50000000,
        previous_close=147.75,
        open=148.00,
        high=151.00,
        low=147.50,
        market_cap=2500000000000,
        last_updated="2024-01-15",
    )


@pytest.fixture
def sample_watchlist_item():
    return WatchlistItem(symbol="AAPL", name="Apple Inc.", price=150.25, change_percent=1.69)
