"""
Synthetic market data.
Keeps the dashboard populated when the real provider is unconfigured,
rate limited or failing. Values are random but structurally valid; inject a
seeded ``random.Random`` for reproducible output.
"""

import random
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, Optional

from src.core.models import (
    ApiResponse,
    ChartPoint,
    CompanyOverview,
    MarketIndex,
    MarketMover,
    NewsItem,
    NewsTopic,
    Quote,
    SearchResult,
    TickerSentiment,
    TimeRange,
)

POPULAR_STOCKS = [
    ("AAPL", "Apple Inc."),
    ("GOOGL", "Alphabet Inc."),
    ("MSFT", "Microsoft Corporation"),
    ("AMZN", "Amazon.com Inc."),
    ("TSLA", "Tesla Inc."),
    ("NVDA", "NVIDIA Corporation"),
    ("META", "Meta Platforms Inc."),
    ("NFLX", "Netflix Inc."),
]

# Proxy ETFs with a realistic base level
MARKET_INDICES = [
    ("SPY", "S&P 500", 445.60),
    ("QQQ", "NASDAQ 100", 375.40),
    ("DIA", "Dow Jones", 338.50),
]

OVERVIEW_TEMPLATE = CompanyOverview(
    symbol="AAPL",
    name="Apple Inc.",
    description=(
        "Apple Inc. designs, manufactures, and markets smartphones, personal "
        "computers, tablets, wearables, and accessories worldwide."
    ),
    cik="320193",
    exchange="NASDAQ",
    currency="USD",
    country="USA",
    sector="Technology",
    industry="Consumer Electronics",
    address="One Apple Park Way, Cupertino, CA 95014, United States",
    fiscal_year_end="September",
    latest_quarter="2024-06-30",
    dividend_date="2024-05-16",
    ex_dividend_date="2024-05-10",
    market_capitalization=2_800_000_000_000,
    ebitda=123_000_000_000,
    pe_ratio=28.5,
    peg_ratio=2.1,
    book_value=4.25,
    dividend_per_share=0.96,
    dividend_yield=0.52,
    eps=6.43,
    revenue_per_share_ttm=25.1,
    profit_margin=0.251,
    operating_margin_ttm=0.298,
    return_on_assets_ttm=0.202,
    return_on_equity_ttm=1.566,
    revenue_ttm=385_700_000_000,
    gross_profit_ttm=169_100_000_000,
    diluted_eps_ttm=6.43,
    quarterly_earnings_growth_yoy=0.051,
    quarterly_revenue_growth_yoy=0.049,
    analyst_target_price=195.0,
    trailing_pe=28.8,
    forward_pe=26.2,
    price_to_sales_ratio_ttm=7.25,
    price_to_book_ratio=43.6,
    ev_to_revenue=7.0,
    ev_to_ebitda=21.8,
    beta=1.24,
    high_52_week=199.62,
    low_52_week=164.08,
    moving_average_50_day=182.45,
    moving_average_200_day=178.90,
    shares_outstanding=15_334_100_000,
)

NEWS_TEMPLATES = [
    ("{name} Reports Strong Quarterly Earnings", "earnings",
     "{name} reported better-than-expected quarterly results driven by robust demand."),
    ("Analysts Update Price Targets on {symbol}", "financial_markets",
     "Several analysts revised their outlook on {name} following recent trading activity."),
    ("{name} Announces New Product Initiatives", "technology",
     "{name} outlined new initiatives aimed at expanding its market presence."),
]


def sentiment_label(score: float) -> str:
    """Map a sentiment score onto the provider's label buckets."""
    if score <= -0.35:
        return "Bearish"
    if score <= -0.15:
        return "Somewhat-Bearish"
    if score < 0.15:
        return "Neutral"
    if score < 0.35:
        return "Somewhat-Bullish"
    return "Bullish"


def _company_name(symbol: str) -> str:
    for known_symbol, name in POPULAR_STOCKS:
        if known_symbol == symbol:
            return name
    return f"{symbol} Corporation"


class FallbackSynthesizer:
    """Generators for every data kind. None of them can fail."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.rng = rng or random.Random()
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    def _uniform(self, low: float, high: float) -> float:
        return self.rng.uniform(low, high)

    def search(self, query: str) -> List[SearchResult]:
        """Match the popular-stocks table by symbol or name substring."""
        needle = query.strip().lower()
        results = []
        for symbol, name in POPULAR_STOCKS:
            if needle in symbol.lower() or needle in name.lower():
                results.append(SearchResult(
                    symbol=symbol,
                    name=name,
                    type="Equity",
                    region="United States",
                    market_open="09:30",
                    market_close="16:00",
                    timezone="UTC-04",
                    currency="USD",
                    match_score=1.0 if symbol.lower() == needle else 0.8,
                ))
        return results

    def quote(self, symbol: str) -> Quote:
        symbol = symbol.upper()
        price = self._uniform(100, 500)
        change = self._uniform(-10, 10)
        return Quote(
            symbol=symbol,
            price=round(price, 2),
            change=round(change, 2),
            change_percent=round(change / price * 100, 2),
            volume=self.rng.randint(10_000_000, 60_000_000),
            previous_close=round(price - change, 2),
            open=round(price + self._uniform(-2.5, 2.5), 2),
            high=round(price + self._uniform(0, 10), 2),
            low=round(price - self._uniform(0, 10), 2),
            market_cap=float(self.rng.randint(100_000_000_000, 1_100_000_000_000)),
            last_updated=self._today().isoformat(),
        )

    def company_overview(self, symbol: str) -> CompanyOverview:
        symbol = symbol.upper()
        name = _company_name(symbol)
        return OVERVIEW_TEMPLATE.model_copy(update={
            "symbol": symbol,
            "name": name,
            "description": f"{name} is a leading technology company focused on innovation and growth.",
            "market_capitalization": float(self.rng.randint(100_000_000_000, 1_100_000_000_000)),
            "pe_ratio": round(self._uniform(15, 35), 2),
            "eps": round(self._uniform(0, 10), 2),
            "high_52_week": round(self._uniform(150, 250), 2),
            "low_52_week": round(self._uniform(80, 130), 2),
        })

    def chart(self, symbol: str, time_range: TimeRange) -> List[ChartPoint]:
        """
        Random-walk OHLCV series with one point per calendar day.

        Produces ``time_range.days + 1`` points, the last dated today.
        """
        time_range = TimeRange(time_range)
        today = self._today()
        price = self._uniform(100, 400)
        points = []
        for offset in range(time_range.days, -1, -1):
            price = max(price + self._uniform(-5, 5), 10)
            open_ = round(price + self._uniform(-2.5, 2.5), 2)
            close = round(price, 2)
            points.append(ChartPoint(
                date=(today - timedelta(days=offset)).isoformat(),
                open=open_,
                high=round(max(open_, close) + self._uniform(0, 5), 2),
                low=round(min(open_, close) - self._uniform(0, 5), 2),
                close=close,
                volume=self.rng.randint(5_000_000, 55_000_000),
            ))
        return points

    def news(self, symbol: Optional[str] = None) -> List[NewsItem]:
        ticker = (symbol or "AAPL").upper()
        name = _company_name(ticker)
        published = datetime.combine(self._today(), time(14, 0))
        items = []
        for i, (title, topic, summary) in enumerate(NEWS_TEMPLATES):
            score = round(self._uniform(-0.5, 0.5), 3)
            label = sentiment_label(score)
            items.append(NewsItem(
                title=title.format(name=name, symbol=ticker),
                url=f"https://example.com/news/{ticker.lower()}-{i + 1}",
                time_published=(published - timedelta(hours=3 * i)).strftime("%Y%m%dT%H%M%S"),
                authors=["Market Desk"],
                summary=summary.format(name=name, symbol=ticker),
                banner_image="",
                source="Market News",
                category_within_source=topic,
                source_domain="example.com",
                topics=[NewsTopic(topic=topic, relevance_score=round(self._uniform(0.5, 1), 3))],
                overall_sentiment_score=score,
                overall_sentiment_label=label,
                ticker_sentiment=[TickerSentiment(
                    ticker=ticker,
                    relevance_score=round(self._uniform(0.5, 1), 3),
                    ticker_sentiment_score=score,
                    ticker_sentiment_label=label,
                )],
            ))
        return items

    def indices(self) -> List[MarketIndex]:
        # Stamped at the close of the synthetic session
        stamp = datetime.combine(self._today(), time(16, 0)).isoformat()
        results = []
        for symbol, name, base in MARKET_INDICES:
            change = self._uniform(-0.015, 0.015) * base
            price = base + change
            results.append(MarketIndex(
                symbol=symbol,
                name=name,
                price=round(price, 2),
                change=round(change, 2),
                change_percent=round(change / (price - change) * 100, 2),
                last_updated=stamp,
            ))
        return results

    def market_movers(self) -> List[MarketMover]:
        """Popular stocks with synthetic moves, biggest absolute movers first."""
        movers = []
        for symbol, name in POPULAR_STOCKS:
            quote = self.quote(symbol)
            movers.append(MarketMover(
                symbol=symbol,
                name=name,
                price=quote.price,
                change=quote.change,
                change_percent=quote.change_percent,
                volume=quote.volume,
            ))
        return sorted(movers, key=lambda m: abs(m.change_percent), reverse=True)

    # Envelope-returning variants used by the provider client

    def search_response(self, query: str) -> ApiResponse[List[SearchResult]]:
        results = self.search(query)
        if not results:
            return ApiResponse.fail(
                f'No stocks found matching "{query}". Try a different search term.',
                data=[],
            )
        return ApiResponse.ok(results)
