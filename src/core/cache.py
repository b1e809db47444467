"""
In-memory response cache with per-entry expiry.
Entries expire on read; nothing runs in the background.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from loguru import logger


@dataclass(frozen=True)
class CacheEntry:
    """Cached payload and the clock reading at insertion."""

    key: str
    value: Any
    inserted_at: float


class ResponseCache:
    """
    Process-lifetime key/value store queried before any provider call.

    An entry is stale once ``now - inserted_at >= ttl_seconds``. Stale
    entries are ignored on read and overwritten on the next ``set``.
    """

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.inserted_at >= self.ttl_seconds:
            logger.debug(f"Cache entry expired: {key}")
            return None
        logger.debug(f"Cache hit: {key}")
        return entry.value

    def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous entry for the key."""
        self._entries[key] = CacheEntry(key=key, value=value, inserted_at=self._clock())

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


def quote_key(symbol: str) -> str:
    return f"quote-{symbol}"


def overview_key(symbol: str) -> str:
    return f"overview-{symbol}"


def chart_key(symbol: str, time_range: str) -> str:
    return f"chart-{symbol}-{time_range}"


def news_key(symbol: Optional[str] = None) -> str:
    return f"news-{symbol or 'general'}"


def search_key(query: str) -> str:
    return f"search-{query.strip().lower()}"


INDICES_KEY = "indices"
MOVERS_KEY = "movers"
