"""
Unit tests for the Alpha Vantage client and its fallback behaviour.
"""

from datetime import date

import pytest

from src.core.models import ChartPoint, TimeRange
from src.data_sources.alpha_vantage import NEWS_LIMIT, filter_chart_window

# Pinned by the synthesizer fixture
TODAY = date(2024, 1, 15)

GLOBAL_QUOTE = {
    "Global Quote": {
        "01. symbol": "IBM",
        "02. open": "185.0000",
        "03. high": "187.5000",
        "04. low": "184.2000",
        "05. price": "186.7500",
        "06. volume": "4125000",
        "07. latest trading day": "2024-01-12",
        "08. previous close": "185.9200",
        "09. change": "0.8300",
        "10. change percent": "0.4464%",
    }
}

SEARCH = {
    "bestMatches": [
        {
            "1. symbol": "TSCO.LON",
            "2. name": "Tesco PLC",
            "3. type": "Equity",
            "4. region": "United Kingdom",
            "5. marketOpen": "08:00",
            "6. marketClose": "16:30",
            "7. timezone": "UTC+01",
            "8. currency": "GBX",
            "9. matchScore": "0.7273",
        }
    ]
}


def bar(close):
    return {
        "1. open": str(close - 1),
        "2. high": str(close + 2),
        "3. low": str(close - 2),
        "4. close": str(close),
        "5. volume": "1000",
    }


def news_item(i):
    return {
        "title": f"Headline {i}",
        "url": f"https://news.test/{i}",
        "time_published": "20240115T120000",
        "authors": ["Reporter"],
        "summary": "Summary",
        "banner_image": None,
        "source": "Wire",
        "category_within_source": "n/a",
        "source_domain": "news.test",
        "topics": [{"topic": "Technology", "relevance_score": "0.9"}],
        "overall_sentiment_score": 0.2,
        "overall_sentiment_label": "Somewhat-Bullish",
        "ticker_sentiment": [
            {
                "ticker": "IBM",
                "relevance_score": "0.5",
                "ticker_sentiment_score": "0.1",
                "ticker_sentiment_label": "Neutral",
            }
        ],
    }


class TestUnconfigured:
    """Without an API key every call is synthetic and no request is made."""

    @pytest.mark.asyncio
    async def test_quote_is_synthetic(self, fallback_client):
        result = await fallback_client.get_stock_quote("aapl")

        assert fallback_client.configured is False
        assert result.success is True
        assert result.data.symbol == "AAPL"

    @pytest.mark.asyncio
    async def test_search_no_match_is_failed_envelope(self, fallback_client):
        result = await fallback_client.search_stocks("zzzz")

        assert result.success is False
        assert result.data == []

    @pytest.mark.asyncio
    async def test_chart_is_synthetic(self, fallback_client):
        result = await fallback_client.get_stock_chart("AAPL", TimeRange.ONE_MONTH)
        assert len(result.data) == 31


class TestBlankSymbol:
    """A blank symbol is reported as a failure, never raised."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("symbol", ["", "   "])
    async def test_quote_without_key(self, fallback_client, symbol):
        result = await fallback_client.get_stock_quote(symbol)

        assert result.success is False
        assert result.error == "Symbol is required"
        assert result.data is None

    @pytest.mark.asyncio
    async def test_quote_with_key_skips_request(self, provider_client, provider_requests):
        result = await provider_client.get_stock_quote("  ")

        assert result.success is False
        assert result.error == "Symbol is required"
        assert provider_requests == []

    @pytest.mark.asyncio
    async def test_overview_and_chart(self, fallback_client, provider_client):
        for client in (fallback_client, provider_client):
            overview = await client.get_company_overview(" ")
            chart = await client.get_stock_chart("", TimeRange.ONE_MONTH)

            assert overview.success is False
            assert chart.success is False
            assert chart.data == []


class TestQuote:
    """Tests for get_stock_quote."""

    @pytest.mark.asyncio
    async def test_maps_global_quote(self, provider_client, provider_payloads, provider_requests):
        provider_payloads["GLOBAL_QUOTE"] = GLOBAL_QUOTE

        result = await provider_client.get_stock_quote("ibm")

        assert result.success is True
        quote = result.data
        assert quote.symbol == "IBM"
        assert quote.price == 186.75
        assert quote.change == 0.83
        assert quote.change_percent == pytest.approx(0.4464)
        assert quote.volume == 4125000
        assert quote.previous_close == 185.92
        assert quote.market_cap == 0
        assert quote.last_updated == "2024-01-12"

        params = provider_requests[0].url.params
        assert params["symbol"] == "IBM"
        assert params["apikey"] == "test-key"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("notice", ["Note", "Error Message", "Information"])
    async def test_provider_notice_falls_back(self, provider_client, provider_payloads, notice):
        provider_payloads["GLOBAL_QUOTE"] = {notice: "API call frequency exceeded"}

        result = await provider_client.get_stock_quote("IBM")

        assert result.success is True
        assert result.data.symbol == "IBM"
        assert 100 <= result.data.price <= 500

    @pytest.mark.asyncio
    async def test_empty_global_quote_falls_back(self, provider_client, provider_payloads):
        provider_payloads["GLOBAL_QUOTE"] = {"Global Quote": {}}

        result = await provider_client.get_stock_quote("IBM")

        assert result.success is True
        assert result.data.symbol == "IBM"

    @pytest.mark.asyncio
    async def test_server_error_falls_back_without_raising(self, provider_client, provider_requests):
        result = await provider_client.get_stock_quote("IBM")

        assert result.success is True
        assert len(provider_requests) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_exhaustion_falls_back(self, provider_client, provider_payloads, provider_requests):
        provider_payloads["GLOBAL_QUOTE"] = 429

        result = await provider_client.get_stock_quote("IBM")

        assert result.success is True
        assert len(provider_requests) == 3


class TestSearch:
    """Tests for search_stocks."""

    @pytest.mark.asyncio
    async def test_maps_best_matches(self, provider_client, provider_payloads):
        provider_payloads["SYMBOL_SEARCH"] = SEARCH

        result = await provider_client.search_stocks("tesco")

        assert result.success is True
        match = result.data[0]
        assert match.symbol == "TSCO.LON"
        assert match.currency == "GBX"
        assert match.match_score == pytest.approx(0.7273)

    @pytest.mark.asyncio
    async def test_empty_matches_fall_back(self, provider_client, provider_payloads):
        provider_payloads["SYMBOL_SEARCH"] = {"bestMatches": []}

        result = await provider_client.search_stocks("apple")

        assert result.success is True
        assert [r.symbol for r in result.data] == ["AAPL"]


class TestOverview:
    """Tests for get_company_overview."""

    @pytest.mark.asyncio
    async def test_none_strings_become_missing(self, provider_client, provider_payloads):
        provider_payloads["OVERVIEW"] = {
            "Symbol": "IBM",
            "Name": "International Business Machines",
            "Sector": "TECHNOLOGY",
            "MarketCapitalization": "171000000000",
            "PERatio": "None",
            "PEGRatio": "-",
            "DividendYield": "0.0356",
        }

        result = await provider_client.get_company_overview("IBM")

        overview = result.data
        assert overview.name == "International Business Machines"
        assert overview.market_capitalization == 171_000_000_000
        assert overview.pe_ratio is None
        assert overview.peg_ratio is None
        assert overview.dividend_yield == pytest.approx(0.0356)
        assert overview.beta is None

    @pytest.mark.asyncio
    async def test_empty_payload_falls_back(self, provider_client, provider_payloads):
        provider_payloads["OVERVIEW"] = {}

        result = await provider_client.get_company_overview("ibm")

        assert result.data.symbol == "IBM"
        assert result.data.name == "IBM Corporation"


class TestChart:
    """Tests for get_stock_chart granularity and windowing."""

    @pytest.mark.asyncio
    async def test_intraday_request_and_latest_session_filter(self, provider_client, provider_payloads, provider_requests):
        provider_payloads["TIME_SERIES_INTRADAY"] = {
            "Time Series (5min)": {
                "2024-01-15 10:05:00": bar(101),
                "2024-01-12 15:55:00": bar(99),
                "2024-01-15 10:00:00": bar(100),
            }
        }

        result = await provider_client.get_stock_chart("IBM", TimeRange.ONE_DAY)

        params = provider_requests[0].url.params
        assert params["function"] == "TIME_SERIES_INTRADAY"
        assert params["interval"] == "5min"
        assert [p.date for p in result.data] == ["2024-01-15 10:00:00", "2024-01-15 10:05:00"]

    @pytest.mark.asyncio
    async def test_intraday_from_previous_session_is_kept(self, provider_client, provider_payloads):
        provider_payloads["TIME_SERIES_INTRADAY"] = {
            "Time Series (5min)": {
                "2024-01-12 15:55:00": bar(99),
                "2024-01-12 16:00:00": bar(100),
            }
        }

        result = await provider_client.get_stock_chart("IBM", TimeRange.ONE_DAY)

        assert [p.close for p in result.data] == [99, 100]

    @pytest.mark.asyncio
    async def test_daily_series_sorted_and_windowed(self, provider_client, provider_payloads, provider_requests):
        provider_payloads["TIME_SERIES_DAILY"] = {
            "Time Series (Daily)": {
                "2024-01-12": bar(120),
                "2023-11-01": bar(100),
                "2024-01-02": bar(110),
            }
        }

        result = await provider_client.get_stock_chart("IBM", TimeRange.ONE_MONTH)

        assert provider_requests[0].url.params["outputsize"] == "full"
        assert [p.date for p in result.data] == ["2024-01-02", "2024-01-12"]
        assert result.data[-1].close == 120

    @pytest.mark.asyncio
    async def test_one_year_uses_weekly_series(self, provider_client, provider_payloads, provider_requests):
        provider_payloads["TIME_SERIES_WEEKLY"] = {
            "Weekly Time Series": {"2024-01-12": bar(150), "2023-06-02": bar(140)}
        }

        result = await provider_client.get_stock_chart("IBM", TimeRange.ONE_YEAR)

        assert provider_requests[0].url.params["function"] == "TIME_SERIES_WEEKLY"
        assert len(result.data) == 2

    @pytest.mark.asyncio
    async def test_empty_window_falls_back(self, provider_client, provider_payloads):
        provider_payloads["TIME_SERIES_DAILY"] = {"Time Series (Daily)": {"2020-01-02": bar(50)}}

        result = await provider_client.get_stock_chart("IBM", TimeRange.THREE_MONTHS)

        assert len(result.data) == 91
        assert result.data[-1].date == TODAY.isoformat()


class TestNews:
    """Tests for get_market_news."""

    @pytest.mark.asyncio
    async def test_feed_is_capped(self, provider_client, provider_payloads, provider_requests):
        provider_payloads["NEWS_SENTIMENT"] = {"feed": [news_item(i) for i in range(30)]}

        result = await provider_client.get_market_news("ibm")

        assert len(result.data) == NEWS_LIMIT
        assert result.data[0].topics[0].relevance_score == 0.9
        assert provider_requests[0].url.params["tickers"] == "IBM"

    @pytest.mark.asyncio
    async def test_general_news_has_no_ticker_filter(self, provider_client, provider_payloads, provider_requests):
        provider_payloads["NEWS_SENTIMENT"] = {"feed": [news_item(1)]}

        await provider_client.get_market_news()

        assert "tickers" not in provider_requests[0].url.params


class TestMarketOverview:
    @pytest.mark.asyncio
    async def test_indices_and_movers_never_call_provider(self, provider_client, provider_requests):
        indices = await provider_client.get_market_indices()
        movers = await provider_client.get_market_movers()

        assert len(indices.data) == 3
        assert len(movers.data) == 8
        assert provider_requests == []


class TestFilterChartWindow:
    """Tests for filter_chart_window."""

    def points(self, dates):
        return [ChartPoint(date=d, open=1, high=1, low=1, close=1, volume=0) for d in dates]

    def test_five_days_keeps_last_five_bars(self):
        dates = [f"2024-01-{d:02d}" for d in range(2, 13)]
        result = filter_chart_window(self.points(dates), TimeRange.FIVE_DAYS, date(2024, 1, 15))
        assert [p.date for p in result] == dates[-5:]

    def test_max_keeps_everything(self):
        dates = ["1999-01-01", "2024-01-12"]
        result = filter_chart_window(self.points(dates), TimeRange.MAX, date(2024, 1, 15))
        assert len(result) == 2

    def test_cutoff_is_inclusive(self):
        dates = ["2023-12-15", "2023-12-16", "2024-01-15"]
        result = filter_chart_window(self.points(dates), TimeRange.ONE_MONTH, date(2024, 1, 15))
        assert [p.date for p in result] == ["2023-12-16", "2024-01-15"]

    def test_one_day_uses_latest_session(self):
        dates = ["2024-01-11 15:55:00", "2024-01-12 09:35:00", "2024-01-12 16:00:00"]
        result = filter_chart_window(self.points(dates), TimeRange.ONE_DAY, date(2024, 1, 13))
        assert [p.date for p in result] == dates[1:]

    def test_one_day_empty_series(self):
        assert filter_chart_window([], TimeRange.ONE_DAY, date(2024, 1, 15)) == []
