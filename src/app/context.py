"""
Application context.
Owns the response cache, provider client and client state store for one
process, so nothing in the data layer depends on module-level state.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from src.app.accessors import (
    CompanyOverviewAccessor,
    MarketIndicesAccessor,
    MarketMoversAccessor,
    MarketNewsAccessor,
    StockChartAccessor,
    StockDataAccessor,
    StockQuoteAccessor,
    StockSearchAccessor,
)
from src.app.store import ClientStateStore
from src.core.cache import ResponseCache
from src.core.config import Settings, settings as default_settings
from src.core.storage import FileStorage, MemoryStorage, StateStorage
from src.data_sources.alpha_vantage import AlphaVantageClient


@dataclass
class AppContext:
    """Process-scoped services shared by every consumer."""

    settings: Settings
    cache: ResponseCache
    client: AlphaVantageClient
    store: ClientStateStore

    def quote_accessor(self) -> StockQuoteAccessor:
        return StockQuoteAccessor(self.client, self.cache)

    def overview_accessor(self) -> CompanyOverviewAccessor:
        return CompanyOverviewAccessor(self.client, self.cache)

    def chart_accessor(self) -> StockChartAccessor:
        return StockChartAccessor(self.client, self.cache)

    def news_accessor(self) -> MarketNewsAccessor:
        return MarketNewsAccessor(self.client, self.cache)

    def search_accessor(self) -> StockSearchAccessor:
        return StockSearchAccessor(self.client, self.cache)

    def indices_accessor(self) -> MarketIndicesAccessor:
        return MarketIndicesAccessor(self.client, self.cache)

    def movers_accessor(self) -> MarketMoversAccessor:
        return MarketMoversAccessor(self.client, self.cache)

    def stock_data_accessor(self) -> StockDataAccessor:
        return StockDataAccessor(self.client, self.cache)

    def reset(self) -> None:
        """Drop cached responses."""
        self.cache.clear()


def create_context(
    app_settings: Optional[Settings] = None,
    storage: Optional[StateStorage] = None,
    client: Optional[AlphaVantageClient] = None,
    persist: bool = True,
) -> AppContext:
    """
    Build a fresh context.

    Args:
        app_settings: Settings to use (defaults to the environment settings)
        storage: Storage backend for client state; a FileStorage at the
                 configured path when persist is true, memory otherwise
        client: Provider client override (tests inject fakes here)
        persist: Whether client state survives the process
    """
    app_settings = app_settings or default_settings
    if storage is None:
        storage = FileStorage(app_settings.storage_path) if persist else MemoryStorage()

    client = client or AlphaVantageClient(
        api_key=app_settings.alpha_vantage_api_key or "",
        base_url=app_settings.alpha_vantage_base_url,
    )
    if not client.configured:
        logger.info("No provider API key configured; serving synthetic market data")

    return AppContext(
        settings=app_settings,
        cache=ResponseCache(ttl_seconds=app_settings.cache_ttl_seconds),
        client=client,
        store=ClientStateStore(storage, recent_searches_limit=app_settings.recent_searches_limit),
    )
