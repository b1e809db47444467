"""
Pydantic models for market data and client state.
Defines the canonical Quote, SearchResult, CompanyOverview, ChartPoint,
NewsItem, MarketIndex, MarketMover and WatchlistItem shapes, plus the
ApiResponse envelope every provider call returns.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class TimeRange(str, Enum):
    """Chart window; controls both provider granularity and result window."""

    ONE_DAY = "1D"
    FIVE_DAYS = "5D"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    FIVE_YEARS = "5Y"
    MAX = "MAX"

    @property
    def days(self) -> int:
        """Calendar days covered by the range."""
        return TIME_RANGE_DAYS[self]


TIME_RANGE_DAYS = {
    TimeRange.ONE_DAY: 1,
    TimeRange.FIVE_DAYS: 5,
    TimeRange.ONE_MONTH: 30,
    TimeRange.THREE_MONTHS: 90,
    TimeRange.SIX_MONTHS: 180,
    TimeRange.ONE_YEAR: 365,
    TimeRange.FIVE_YEARS: 1825,
    TimeRange.MAX: 2555,
}


class ChartType(str, Enum):
    """Chart presentation preference."""

    LINE = "line"
    CANDLESTICK = "candlestick"
    VOLUME = "volume"


class Quote(BaseModel):
    """Latest stock quote."""

    symbol: str = Field(..., min_length=1, description="Uppercase ticker symbol")
    price: float = Field(..., description="Current price")
    change: float = Field(..., description="Price change since previous close")
    change_percent: float = Field(..., description="Change as a percentage")
    volume: int = Field(..., ge=0, description="Trading volume")
    previous_close: float = Field(..., description="Previous session close")
    open: float = Field(..., description="Session open")
    high: float = Field(..., description="Session high")
    low: float = Field(..., description="Session low")
    market_cap: float = Field(default=0, description="Market capitalization, 0 when unknown")
    last_updated: str = Field(..., description="Latest trading day (YYYY-MM-DD)")


class SearchResult(BaseModel):
    """Symbol search match."""

    symbol: str
    name: str
    type: str
    region: str
    market_open: str
    market_close: str
    timezone: str
    currency: str
    match_score: float = Field(..., ge=0, le=1)


class CompanyOverview(BaseModel):
    """Company fundamentals. Numeric fields are None when the provider omits them."""

    symbol: str
    name: str
    description: str = ""
    cik: Optional[str] = None
    exchange: Optional[str] = None
    currency: Optional[str] = None
    country: Optional[str] = None
    sector: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[str] = None
    fiscal_year_end: Optional[str] = None
    latest_quarter: Optional[str] = None
    dividend_date: Optional[str] = None
    ex_dividend_date: Optional[str] = None

    market_capitalization: Optional[float] = None
    ebitda: Optional[float] = None
    pe_ratio: Optional[float] = None
    peg_ratio: Optional[float] = None
    book_value: Optional[float] = None
    dividend_per_share: Optional[float] = None
    dividend_yield: Optional[float] = None
    eps: Optional[float] = None
    revenue_per_share_ttm: Optional[float] = None
    profit_margin: Optional[float] = None
    operating_margin_ttm: Optional[float] = None
    return_on_assets_ttm: Optional[float] = None
    return_on_equity_ttm: Optional[float] = None
    revenue_ttm: Optional[float] = None
    gross_profit_ttm: Optional[float] = None
    diluted_eps_ttm: Optional[float] = None
    quarterly_earnings_growth_yoy: Optional[float] = None
    quarterly_revenue_growth_yoy: Optional[float] = None
    analyst_target_price: Optional[float] = None
    trailing_pe: Optional[float] = None
    forward_pe: Optional[float] = None
    price_to_sales_ratio_ttm: Optional[float] = None
    price_to_book_ratio: Optional[float] = None
    ev_to_revenue: Optional[float] = None
    ev_to_ebitda: Optional[float] = None
    beta: Optional[float] = None
    high_52_week: Optional[float] = None
    low_52_week: Optional[float] = None
    moving_average_50_day: Optional[float] = None
    moving_average_200_day: Optional[float] = None
    shares_outstanding: Optional[float] = None


class ChartPoint(BaseModel):
    """OHLCV bar for one trading period."""

    date: str = Field(..., description="YYYY-MM-DD, or a timestamp for intraday bars")
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(..., ge=0)


class NewsTopic(BaseModel):
    topic: str
    relevance_score: float


class TickerSentiment(BaseModel):
    ticker: str
    relevance_score: float
    ticker_sentiment_score: float
    ticker_sentiment_label: str


class NewsItem(BaseModel):
    """Market news article with sentiment annotations."""

    title: str
    url: str
    time_published: str
    authors: List[str] = Field(default_factory=list)
    summary: str = ""
    banner_image: Optional[str] = None
    source: str
    category_within_source: Optional[str] = None
    source_domain: Optional[str] = None
    topics: List[NewsTopic] = Field(default_factory=list)
    overall_sentiment_score: float = 0.0
    overall_sentiment_label: str = "Neutral"
    ticker_sentiment: List[TickerSentiment] = Field(default_factory=list)


class MarketIndex(BaseModel):
    """Headline index (tracked through its ETF proxy)."""

    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    last_updated: str


class MarketMover(BaseModel):
    """Top gainer or loser for the session."""

    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    volume: int = Field(..., ge=0)


class WatchlistItem(BaseModel):
    """Tracked stock with an optional last-known price snapshot."""

    symbol: str = Field(..., min_length=1)
    name: str
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    price: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = None

    model_config = {"frozen": True}


class ApiResponse(BaseModel, Generic[T]):
    """Result envelope returned by every provider call."""

    data: Optional[T] = None
    error: Optional[str] = None
    success: bool

    @classmethod
    def ok(cls, data: T) -> "ApiResponse[T]":
        return cls(data=data, error=None, success=True)

    @classmethod
    def fail(cls, error: str, data: Optional[T] = None) -> "ApiResponse[T]":
        return cls(data=data, error=error, success=False)
