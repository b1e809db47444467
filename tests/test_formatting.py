"""
Unit tests for display formatting and market-hours helpers.
"""

from datetime import datetime

import pytest

from src.core.formatting import (
    format_currency,
    format_market_cap,
    format_number,
    format_optional,
    format_percentage,
    is_market_open,
    next_market_open,
    price_change_direction,
)


class TestFormatting:
    def test_currency(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(-2.5) == "-$2.50"
        assert format_currency(10, "EUR") == "EUR 10.00"

    def test_number_and_percentage(self):
        assert format_number(50000000) == "50,000,000"
        assert format_percentage(1.694) == "1.69%"

    @pytest.mark.parametrize(
        "value,expected",
        [(2.8e12, "2.80T"), (171e9, "171.00B"), (5.5e6, "5.50M"), (1500, "1.50K")],
    )
    def test_market_cap(self, value, expected):
        assert format_market_cap(value) == expected

    def test_optional(self):
        assert format_optional(None) == "N/A"
        assert format_optional(0.0) == "0.00"
        assert format_optional(2.8e12, format_market_cap) == "2.80T"

    def test_direction(self):
        assert price_change_direction(1.2) == "gain"
        assert price_change_direction(-0.1) == "loss"
        assert price_change_direction(0) == "neutral"


class TestMarketHours:
    """2024-01-15 is a Monday."""

    def test_open_during_session(self):
        assert is_market_open(datetime(2024, 1, 15, 10, 0)) is True

    def test_closed_before_open_and_after_close(self):
        assert is_market_open(datetime(2024, 1, 15, 9, 29)) is False
        assert is_market_open(datetime(2024, 1, 15, 16, 1)) is False

    def test_closed_on_weekend(self):
        assert is_market_open(datetime(2024, 1, 13, 12, 0)) is False

    def test_next_open_same_day(self):
        assert next_market_open(datetime(2024, 1, 15, 8, 0)) == datetime(2024, 1, 15, 9, 30)

    def test_next_open_skips_weekend(self):
        assert next_market_open(datetime(2024, 1, 12, 17, 0)) == datetime(2024, 1, 15, 9, 30)
