"""
Alpha Vantage market data client.
Primary data source for search, quotes, company overviews, charts and news.
Every call degrades to the fallback synthesizer on missing configuration,
provider error notices, empty payloads or any transport/parse failure.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Annotated, Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from loguru import logger
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from src.core.config import settings
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
from src.data_sources.fallback import FallbackSynthesizer
from src.data_sources.transport import fetch_with_retry

ERROR_FIELDS = ("Error Message", "Note", "Information")
NEWS_LIMIT = 20
SYMBOL_REQUIRED = "Symbol is required"


def _optional_number(value: Any) -> Any:
    """Provider uses "None", "-" or "" for missing numbers."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip() in ("", "None", "-", "N/A"):
        return None
    return value


def _optional_text(value: Any) -> Any:
    if isinstance(value, str) and value.strip() in ("", "None", "-"):
        return None
    return value


def _percent(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().rstrip("%")
    return value


OptionalNumber = Annotated[Optional[float], BeforeValidator(_optional_number)]
OptionalText = Annotated[Optional[str], BeforeValidator(_optional_text)]
Percent = Annotated[float, BeforeValidator(_percent)]


# ============================================================================
# Provider payload schemas
# ============================================================================

class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SearchMatchPayload(_Payload):
    symbol: str = Field(alias="1. symbol")
    name: str = Field(alias="2. name")
    type: str = Field(alias="3. type")
    region: str = Field(alias="4. region")
    market_open: str = Field(alias="5. marketOpen")
    market_close: str = Field(alias="6. marketClose")
    timezone: str = Field(alias="7. timezone")
    currency: str = Field(alias="8. currency")
    match_score: float = Field(alias="9. matchScore")

    def to_model(self) -> SearchResult:
        return SearchResult(**self.model_dump())


class GlobalQuotePayload(_Payload):
    symbol: str = Field(alias="01. symbol", min_length=1)
    open: float = Field(alias="02. open")
    high: float = Field(alias="03. high")
    low: float = Field(alias="04. low")
    price: float = Field(alias="05. price")
    volume: int = Field(alias="06. volume")
    latest_trading_day: str = Field(alias="07. latest trading day")
    previous_close: float = Field(alias="08. previous close")
    change: float = Field(alias="09. change")
    change_percent: Percent = Field(alias="10. change percent")

    def to_model(self) -> Quote:
        return Quote(
            symbol=self.symbol.upper(),
            price=self.price,
            change=self.change,
            change_percent=self.change_percent,
            volume=self.volume,
            previous_close=self.previous_close,
            open=self.open,
            high=self.high,
            low=self.low,
            market_cap=0,  # not part of GLOBAL_QUOTE
            last_updated=self.latest_trading_day,
        )


class OverviewPayload(_Payload):
    symbol: str = Field(alias="Symbol", min_length=1)
    name: str = Field(alias="Name")
    description: str = Field(default="", alias="Description")
    cik: OptionalText = Field(default=None, alias="CIK")
    exchange: OptionalText = Field(default=None, alias="Exchange")
    currency: OptionalText = Field(default=None, alias="Currency")
    country: OptionalText = Field(default=None, alias="Country")
    sector: OptionalText = Field(default=None, alias="Sector")
    industry: OptionalText = Field(default=None, alias="Industry")
    address: OptionalText = Field(default=None, alias="Address")
    fiscal_year_end: OptionalText = Field(default=None, alias="FiscalYearEnd")
    latest_quarter: OptionalText = Field(default=None, alias="LatestQuarter")
    dividend_date: OptionalText = Field(default=None, alias="DividendDate")
    ex_dividend_date: OptionalText = Field(default=None, alias="ExDividendDate")

    market_capitalization: OptionalNumber = Field(default=None, alias="MarketCapitalization")
    ebitda: OptionalNumber = Field(default=None, alias="EBITDA")
    pe_ratio: OptionalNumber = Field(default=None, alias="PERatio")
    peg_ratio: OptionalNumber = Field(default=None, alias="PEGRatio")
    book_value: OptionalNumber = Field(default=None, alias="BookValue")
    dividend_per_share: OptionalNumber = Field(default=None, alias="DividendPerShare")
    dividend_yield: OptionalNumber = Field(default=None, alias="DividendYield")
    eps: OptionalNumber = Field(default=None, alias="EPS")
    revenue_per_share_ttm: OptionalNumber = Field(default=None, alias="RevenuePerShareTTM")
    profit_margin: OptionalNumber = Field(default=None, alias="ProfitMargin")
    operating_margin_ttm: OptionalNumber = Field(default=None, alias="OperatingMarginTTM")
    return_on_assets_ttm: OptionalNumber = Field(default=None, alias="ReturnOnAssetsTTM")
    return_on_equity_ttm: OptionalNumber = Field(default=None, alias="ReturnOnEquityTTM")
    revenue_ttm: OptionalNumber = Field(default=None, alias="RevenueTTM")
    gross_profit_ttm: OptionalNumber = Field(default=None, alias="GrossProfitTTM")
    diluted_eps_ttm: OptionalNumber = Field(default=None, alias="DilutedEPSTTM")
    quarterly_earnings_growth_yoy: OptionalNumber = Field(
        default=None, alias="QuarterlyEarningsGrowthYOY"
    )
    quarterly_revenue_growth_yoy: OptionalNumber = Field(
        default=None, alias="QuarterlyRevenueGrowthYOY"
    )
    analyst_target_price: OptionalNumber = Field(default=None, alias="AnalystTargetPrice")
    trailing_pe: OptionalNumber = Field(default=None, alias="TrailingPE")
    forward_pe: OptionalNumber = Field(default=None, alias="ForwardPE")
    price_to_sales_ratio_ttm: OptionalNumber = Field(default=None, alias="PriceToSalesRatioTTM")
    price_to_book_ratio: OptionalNumber = Field(default=None, alias="PriceToBookRatio")
    ev_to_revenue: OptionalNumber = Field(default=None, alias="EVToRevenue")
    ev_to_ebitda: OptionalNumber = Field(default=None, alias="EVToEBITDA")
    beta: OptionalNumber = Field(default=None, alias="Beta")
    high_52_week: OptionalNumber = Field(default=None, alias="52WeekHigh")
    low_52_week: OptionalNumber = Field(default=None, alias="52WeekLow")
    moving_average_50_day: OptionalNumber = Field(default=None, alias="50DayMovingAverage")
    moving_average_200_day: OptionalNumber = Field(default=None, alias="200DayMovingAverage")
    shares_outstanding: OptionalNumber = Field(default=None, alias="SharesOutstanding")

    def to_model(self) -> CompanyOverview:
        data = self.model_dump()
        data["symbol"] = self.symbol.upper()
        return CompanyOverview(**data)


class BarPayload(_Payload):
    open: float = Field(alias="1. open")
    high: float = Field(alias="2. high")
    low: float = Field(alias="3. low")
    close: float = Field(alias="4. close")
    volume: int = Field(alias="5. volume")

    def to_model(self, timestamp: str) -> ChartPoint:
        return ChartPoint(date=timestamp, **self.model_dump())


# ============================================================================
# Chart request selection
# ============================================================================

# function, outputsize, time series key
CHART_SERIES = {
    TimeRange.ONE_DAY: ("TIME_SERIES_INTRADAY", "compact", "Time Series (5min)"),
    TimeRange.FIVE_DAYS: ("TIME_SERIES_DAILY", "compact", "Time Series (Daily)"),
    TimeRange.ONE_MONTH: ("TIME_SERIES_DAILY", "full", "Time Series (Daily)"),
    TimeRange.THREE_MONTHS: ("TIME_SERIES_DAILY", "full", "Time Series (Daily)"),
    TimeRange.SIX_MONTHS: ("TIME_SERIES_DAILY", "full", "Time Series (Daily)"),
    TimeRange.ONE_YEAR: ("TIME_SERIES_WEEKLY", "full", "Weekly Time Series"),
    TimeRange.FIVE_YEARS: ("TIME_SERIES_WEEKLY", "full", "Weekly Time Series"),
    TimeRange.MAX: ("TIME_SERIES_WEEKLY", "full", "Weekly Time Series"),
}


def filter_chart_window(
    points: List[ChartPoint], time_range: TimeRange, today: date
) -> List[ChartPoint]:
    """
    Trim an ascending series to the requested window.

    1D keeps the bars of the latest session in the series (intraday
    timestamps are exchange-local, so the host date is not comparable),
    5D the last five bars, MAX everything, and the other ranges every bar
    dated within the range's day count.
    """
    if time_range == TimeRange.ONE_DAY:
        if not points:
            return []
        prefix = points[-1].date[:10]
        return [p for p in points if p.date.startswith(prefix)]
    if time_range == TimeRange.FIVE_DAYS:
        return points[-5:]
    if time_range == TimeRange.MAX:
        return points
    cutoff = (today - timedelta(days=time_range.days)).isoformat()
    return [p for p in points if p.date[:10] >= cutoff]


class ProviderPayloadError(Exception):
    """Provider answered, but not with usable data."""


# ============================================================================
# Client
# ============================================================================

class AlphaVantageClient:
    """
    Alpha Vantage data source with synthetic fallback.

    Public coroutines never raise provider or network errors; they return
    the fallback result instead.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        synthesizer: Optional[FallbackSynthesizer] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.alpha_vantage_api_key
        self.base_url = base_url or settings.alpha_vantage_base_url
        self.synthesizer = synthesizer or FallbackSynthesizer()
        self.http_client = http_client
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _build_url(self, function: str, **params: str) -> str:
        query = {"function": function, **params, "apikey": self.api_key}
        return f"{self.base_url}?{urlencode(query)}"

    async def _query(self, function: str, **params: str) -> Dict[str, Any]:
        """Run one provider query and reject error/quota notices."""
        url = self._build_url(function, **params)
        response = await fetch_with_retry(url, client=self.http_client)
        data = response.json()
        if not isinstance(data, dict):
            raise ProviderPayloadError(f"Unexpected {function} payload type")
        for field in ERROR_FIELDS:
            if data.get(field):
                raise ProviderPayloadError(f"{field}: {data[field]}")
        return data

    def _fall_back(self, kind: str, reason: Any) -> None:
        logger.warning(f"Using fallback data for {kind}: {reason}")

    async def search_stocks(self, query: str) -> ApiResponse[List[SearchResult]]:
        """
        Search symbols by keyword.

        Args:
            query: Free-text keywords (symbol or company name)

        Returns:
            ApiResponse with matches; the fallback reports a failed envelope
            when nothing in its table matches.
        """
        if not self.configured:
            return self.synthesizer.search_response(query)
        try:
            data = await self._query("SYMBOL_SEARCH", keywords=query)
            matches = data.get("bestMatches") or []
            results = [SearchMatchPayload.model_validate(m).to_model() for m in matches]
            if not results:
                raise ProviderPayloadError(f"No matches for {query!r}")
            return ApiResponse.ok(results)
        except Exception as e:
            self._fall_back(f"search {query!r}", e)
            return self.synthesizer.search_response(query)

    async def get_stock_quote(self, symbol: str) -> ApiResponse[Quote]:
        """Get the latest quote for a symbol."""
        symbol = symbol.strip().upper()
        if not symbol:
            return ApiResponse.fail(SYMBOL_REQUIRED)
        if not self.configured:
            return ApiResponse.ok(self.synthesizer.quote(symbol))
        try:
            data = await self._query("GLOBAL_QUOTE", symbol=symbol)
            raw = data.get("Global Quote")
            if not raw:
                raise ProviderPayloadError(f"No quote for {symbol}")
            quote = GlobalQuotePayload.model_validate(raw).to_model()
            logger.info(f"Retrieved quote for {symbol}: ${quote.price:.2f}")
            return ApiResponse.ok(quote)
        except Exception as e:
            self._fall_back(f"quote {symbol}", e)
            return ApiResponse.ok(self.synthesizer.quote(symbol))

    async def get_company_overview(self, symbol: str) -> ApiResponse[CompanyOverview]:
        """Get company fundamentals for a symbol."""
        symbol = symbol.strip().upper()
        if not symbol:
            return ApiResponse.fail(SYMBOL_REQUIRED)
        if not self.configured:
            return ApiResponse.ok(self.synthesizer.company_overview(symbol))
        try:
            data = await self._query("OVERVIEW", symbol=symbol)
            if not data.get("Symbol"):
                raise ProviderPayloadError(f"No overview for {symbol}")
            return ApiResponse.ok(OverviewPayload.model_validate(data).to_model())
        except Exception as e:
            self._fall_back(f"overview {symbol}", e)
            return ApiResponse.ok(self.synthesizer.company_overview(symbol))

    async def get_stock_chart(
        self, symbol: str, time_range: TimeRange
    ) -> ApiResponse[List[ChartPoint]]:
        """
        Get an OHLCV series for a symbol over a time range.

        Granularity follows the range: intraday for 1D, daily up to 6M,
        weekly beyond. The parsed series is sorted ascending and trimmed to
        the requested window.
        """
        symbol = symbol.strip().upper()
        time_range = TimeRange(time_range)
        if not symbol:
            return ApiResponse.fail(SYMBOL_REQUIRED, data=[])
        if not self.configured:
            return ApiResponse.ok(self.synthesizer.chart(symbol, time_range))
        function, output_size, series_key = CHART_SERIES[time_range]
        params = {"symbol": symbol, "outputsize": output_size}
        if function == "TIME_SERIES_INTRADAY":
            params["interval"] = "5min"
        try:
            data = await self._query(function, **params)
            series = data.get(series_key)
            if not series:
                raise ProviderPayloadError(f"No {series_key} for {symbol}")
            points = sorted(
                (BarPayload.model_validate(bar).to_model(ts) for ts, bar in series.items()),
                key=lambda p: p.date,
            )
            points = filter_chart_window(points, time_range, self._today())
            if not points:
                raise ProviderPayloadError(f"No {time_range.value} bars in window for {symbol}")
            logger.info(f"Retrieved {len(points)} bars for {symbol} ({time_range.value})")
            return ApiResponse.ok(points)
        except Exception as e:
            self._fall_back(f"chart {symbol} {time_range.value}", e)
            return ApiResponse.ok(self.synthesizer.chart(symbol, time_range))

    async def get_market_news(self, symbol: Optional[str] = None) -> ApiResponse[List[NewsItem]]:
        """Get recent news, optionally scoped to one ticker."""
        symbol = symbol.strip().upper() if symbol else None
        if not self.configured:
            return ApiResponse.ok(self.synthesizer.news(symbol))
        params = {"tickers": symbol} if symbol else {}
        try:
            data = await self._query("NEWS_SENTIMENT", **params)
            feed = (data.get("feed") or [])[:NEWS_LIMIT]
            items = [NewsItem.model_validate(item) for item in feed]
            if not items:
                raise ProviderPayloadError(f"No news for {symbol or 'market'}")
            return ApiResponse.ok(items)
        except Exception as e:
            self._fall_back(f"news {symbol or 'general'}", e)
            return ApiResponse.ok(self.synthesizer.news(symbol))

    async def get_market_indices(self) -> ApiResponse[List[MarketIndex]]:
        """Headline indices. Always synthetic: the provider endpoint is too quota-hungry."""
        return ApiResponse.ok(self.synthesizer.indices())

    async def get_market_movers(self) -> ApiResponse[List[MarketMover]]:
        """Top movers. Always synthetic, like the indices."""
        return ApiResponse.ok(self.synthesizer.market_movers())
