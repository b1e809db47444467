"""
Data accessors.
Per-consumer async loaders with a data/loading/error envelope. Each accessor
consults the response cache, calls the provider client on a miss and
re-runs whenever its key parameters change.
"""

import asyncio
from typing import Any, Awaitable, Generic, List, Optional, Tuple, TypeVar

from loguru import logger

from src.core.cache import (
    INDICES_KEY,
    MOVERS_KEY,
    ResponseCache,
    chart_key,
    news_key,
    overview_key,
    quote_key,
    search_key,
)
from src.core.models import (
    ApiResponse,
    ChartPoint,
    CompanyOverview,
    MarketIndex,
    MarketMover,
    NewsItem,
    Quote,
    SearchResult,
    TimeRange,
)
from src.data_sources.alpha_vantage import AlphaVantageClient

T = TypeVar("T")

_UNSET = object()


class DataAccessor(Generic[T]):
    """
    Base loader.

    Subclasses define ``_cache_key`` and ``_fetch`` for their parameters.
    A generation counter guards against stale responses: when a newer load
    starts before an older one resolves, the older result is dropped.
    """

    failure_message = "Failed to fetch data"

    def __init__(self, client: AlphaVantageClient, cache: ResponseCache):
        self.client = client
        self.cache = cache
        self.data: Optional[T] = self._empty()
        self.loading = True
        self.error: Optional[str] = None
        self._params: Any = _UNSET
        self._generation = 0

    def _empty(self) -> Optional[T]:
        return None

    def _cache_key(self, *params) -> str:
        raise NotImplementedError

    def _fetch(self, *params) -> Awaitable[ApiResponse[T]]:
        raise NotImplementedError

    def _should_skip(self, *params) -> bool:
        return False

    @property
    def params(self) -> Optional[Tuple]:
        return None if self._params is _UNSET else self._params

    async def _load(self, *params) -> None:
        if self._params is not _UNSET and params == self._params:
            return
        if self._should_skip(*params):
            return
        self._params = params
        await self._run(params)

    async def refresh(self) -> None:
        """Re-run the last load regardless of parameters."""
        if self._params is not _UNSET:
            await self._run(self._params)

    async def _run(self, params: Tuple) -> None:
        self._generation += 1
        generation = self._generation
        self.loading = True
        self.error = None

        key = self._cache_key(*params)
        cached = self.cache.get(key)
        if cached is not None:
            self.data = cached
            self.loading = False
            return

        try:
            result = await self._fetch(*params)
            if generation != self._generation:
                logger.debug(f"Discarding superseded response for {key}")
                return
            if result.success:
                self.data = result.data
                self.cache.set(key, result.data)
            else:
                self.error = result.error
        except Exception as e:
            if generation != self._generation:
                return
            logger.error(f"Accessor failed for {key}: {e}")
            self.error = str(e) or self.failure_message
        if generation == self._generation:
            self.loading = False


class StockQuoteAccessor(DataAccessor[Quote]):
    failure_message = "Failed to fetch quote"

    def _should_skip(self, symbol: str) -> bool:
        return not symbol

    def _cache_key(self, symbol: str) -> str:
        return quote_key(symbol)

    def _fetch(self, symbol: str):
        return self.client.get_stock_quote(symbol)

    async def load(self, symbol: str) -> None:
        await self._load(symbol.upper())


class CompanyOverviewAccessor(DataAccessor[CompanyOverview]):
    failure_message = "Failed to fetch company overview"

    def _should_skip(self, symbol: str) -> bool:
        return not symbol

    def _cache_key(self, symbol: str) -> str:
        return overview_key(symbol)

    def _fetch(self, symbol: str):
        return self.client.get_company_overview(symbol)

    async def load(self, symbol: str) -> None:
        await self._load(symbol.upper())


class StockChartAccessor(DataAccessor[List[ChartPoint]]):
    failure_message = "Failed to fetch chart data"

    def _empty(self) -> List[ChartPoint]:
        return []

    def _should_skip(self, symbol: str, time_range: TimeRange) -> bool:
        return not symbol

    def _cache_key(self, symbol: str, time_range: TimeRange) -> str:
        return chart_key(symbol, time_range.value)

    def _fetch(self, symbol: str, time_range: TimeRange):
        return self.client.get_stock_chart(symbol, time_range)

    async def load(self, symbol: str, time_range: TimeRange) -> None:
        await self._load(symbol.upper(), TimeRange(time_range))


class MarketNewsAccessor(DataAccessor[List[NewsItem]]):
    """News for one symbol, or general market news when no symbol is given."""

    failure_message = "Failed to fetch news"

    def _empty(self) -> List[NewsItem]:
        return []

    def _cache_key(self, symbol: Optional[str]) -> str:
        return news_key(symbol)

    def _fetch(self, symbol: Optional[str]):
        return self.client.get_market_news(symbol)

    async def load(self, symbol: Optional[str] = None) -> None:
        await self._load(symbol.upper() if symbol else None)


class StockSearchAccessor(DataAccessor[List[SearchResult]]):
    failure_message = "Failed to search stocks"

    def _empty(self) -> List[SearchResult]:
        return []

    def _should_skip(self, query: str) -> bool:
        return not query.strip()

    def _cache_key(self, query: str) -> str:
        return search_key(query)

    def _fetch(self, query: str):
        return self.client.search_stocks(query)

    async def load(self, query: str) -> None:
        await self._load(query.strip())


class MarketIndicesAccessor(DataAccessor[List[MarketIndex]]):
    failure_message = "Failed to fetch market indices"

    def _empty(self) -> List[MarketIndex]:
        return []

    def _cache_key(self) -> str:
        return INDICES_KEY

    def _fetch(self):
        return self.client.get_market_indices()

    async def load(self) -> None:
        await self._load()


class MarketMoversAccessor(DataAccessor[List[MarketMover]]):
    failure_message = "Failed to fetch market movers"

    def _empty(self) -> List[MarketMover]:
        return []

    def _cache_key(self) -> str:
        return MOVERS_KEY

    def _fetch(self):
        return self.client.get_market_movers()

    async def load(self) -> None:
        await self._load()


class StockDataAccessor:
    """
    Quote, company overview and news for one symbol.

    ``loading`` is true while any part is loading; ``error`` is the first
    error among quote, overview and news, in that order.
    """

    def __init__(self, client: AlphaVantageClient, cache: ResponseCache):
        self.quote_accessor = StockQuoteAccessor(client, cache)
        self.overview_accessor = CompanyOverviewAccessor(client, cache)
        self.news_accessor = MarketNewsAccessor(client, cache)

    async def load(self, symbol: str) -> None:
        await asyncio.gather(
            self.quote_accessor.load(symbol),
            self.overview_accessor.load(symbol),
            self.news_accessor.load(symbol),
        )

    @property
    def quote(self) -> Optional[Quote]:
        return self.quote_accessor.data

    @property
    def overview(self) -> Optional[CompanyOverview]:
        return self.overview_accessor.data

    @property
    def news(self) -> List[NewsItem]:
        return self.news_accessor.data

    @property
    def loading(self) -> bool:
        return (
            self.quote_accessor.loading
            or self.overview_accessor.loading
            or self.news_accessor.loading
        )

    @property
    def error(self) -> Optional[str]:
        return (
            self.quote_accessor.error
            or self.overview_accessor.error
            or self.news_accessor.error
        )
