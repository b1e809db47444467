"""
Display formatting and market-hours helpers.
"""

from datetime import datetime, timedelta
from typing import Optional

NOT_AVAILABLE = "N/A"

MARKET_OPEN_MINUTES = 9 * 60 + 30
MARKET_CLOSE_MINUTES = 16 * 60


def format_currency(value: float, currency: str = "USD") -> str:
    symbol = "$" if currency == "USD" else f"{currency} "
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_number(value: float) -> str:
    return f"{value:,}"


def format_percentage(value: float) -> str:
    """Format a percentage value (1.5 means 1.5%)."""
    return f"{value:.2f}%"


def format_market_cap(value: float) -> str:
    """Abbreviate with T/B/M/K suffixes."""
    if value >= 1e12:
        return f"{value / 1e12:.2f}T"
    if value >= 1e9:
        return f"{value / 1e9:.2f}B"
    if value >= 1e6:
        return f"{value / 1e6:.2f}M"
    if value >= 1e3:
        return f"{value / 1e3:.2f}K"
    return str(value)


def format_optional(value: Optional[float], formatter=None) -> str:
    """Render a possibly-missing number; missing is N/A, never 0."""
    if value is None:
        return NOT_AVAILABLE
    return formatter(value) if formatter else f"{value:,.2f}"


def price_change_direction(change: float) -> str:
    if change > 0:
        return "gain"
    if change < 0:
        return "loss"
    return "neutral"


def is_market_open(now: Optional[datetime] = None) -> bool:
    """Weekdays between 09:30 and 16:00 local exchange time."""
    now = now or datetime.now()
    minutes = now.hour * 60 + now.minute
    return now.weekday() < 5 and MARKET_OPEN_MINUTES <= minutes <= MARKET_CLOSE_MINUTES


def next_market_open(now: Optional[datetime] = None) -> datetime:
    """Next weekday 09:30 strictly after now."""
    now = now or datetime.now()
    candidate = now.replace(hour=9, minute=30, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate
