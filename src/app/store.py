"""
Client state store.
Single observable container for the watchlist, recent searches, chart
preferences and theme flag. Mutations go through the methods below; each one
notifies subscribers and writes the persisted fields to storage.
"""

from typing import Callable, List, Literal, Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from src.core.models import ChartType, TimeRange, WatchlistItem
from src.core.storage import StateStorage

STORAGE_VERSION = 1
DEFAULT_RECENT_SEARCHES_LIMIT = 10


class ClientState(BaseModel):
    """Persisted client state."""

    watchlist: List[WatchlistItem] = Field(default_factory=list)
    recent_searches: List[str] = Field(default_factory=list)
    selected_time_range: TimeRange = TimeRange.ONE_DAY
    selected_chart_type: ChartType = ChartType.LINE
    is_dark_mode: bool = False

    model_config = {"frozen": True}


Listener = Callable[[ClientState], None]


class ClientStateStore:
    """
    Observable state container.

    Invariants:
        - watchlist is unique by symbol and keeps insertion order
        - recent_searches is most-recent-first, deduplicated and bounded
    """

    def __init__(
        self,
        storage: Optional[StateStorage] = None,
        recent_searches_limit: int = DEFAULT_RECENT_SEARCHES_LIMIT,
    ):
        self._storage = storage
        self.recent_searches_limit = recent_searches_limit
        self._listeners: List[Listener] = []
        self._state = self._rehydrate()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _rehydrate(self) -> ClientState:
        if self._storage is None:
            return ClientState()
        blob = self._storage.read()
        if blob is None:
            return ClientState()
        if blob.get("version") != STORAGE_VERSION:
            # Older or unknown layouts are not migrated
            logger.warning(
                f"Stored state version {blob.get('version')!r} != {STORAGE_VERSION}; resetting to defaults"
            )
            return ClientState()
        try:
            state = ClientState.model_validate(blob.get("state") or {})
        except ValidationError as e:
            logger.warning(f"Stored state is invalid, resetting to defaults: {e}")
            return ClientState()
        return self._normalize(state)

    def _normalize(self, state: ClientState) -> ClientState:
        """Re-apply the watchlist and recent-search invariants to loaded state."""
        watchlist, seen = [], set()
        for item in state.watchlist:
            if item.symbol not in seen:
                seen.add(item.symbol)
                watchlist.append(item)
        recent = list(dict.fromkeys(state.recent_searches))[: self.recent_searches_limit]
        if len(watchlist) != len(state.watchlist) or recent != state.recent_searches:
            logger.warning("Stored state broke watchlist or recent-search invariants; repaired")
        return state.model_copy(update={"watchlist": watchlist, "recent_searches": recent})

    def _persist(self) -> None:
        if self._storage is None:
            return
        blob = {"state": self._state.model_dump(mode="json"), "version": STORAGE_VERSION}
        try:
            self._storage.write(blob)
        except OSError as e:
            logger.warning(f"Failed to persist client state: {e}")

    def _set(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)
        self._persist()
        for listener in list(self._listeners):
            listener(self._state)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def watchlist(self) -> List[WatchlistItem]:
        return list(self._state.watchlist)

    @property
    def recent_searches(self) -> List[str]:
        return list(self._state.recent_searches)

    @property
    def selected_time_range(self) -> TimeRange:
        return self._state.selected_time_range

    @property
    def selected_chart_type(self) -> ChartType:
        return self._state.selected_chart_type

    @property
    def is_dark_mode(self) -> bool:
        return self._state.is_dark_mode

    def in_watchlist(self, symbol: str) -> bool:
        return any(item.symbol == symbol for item in self._state.watchlist)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_to_watchlist(self, item: WatchlistItem) -> None:
        if self.in_watchlist(item.symbol):
            return
        self._set(watchlist=[*self._state.watchlist, item])

    def remove_from_watchlist(self, symbol: str) -> None:
        if not self.in_watchlist(symbol):
            return
        self._set(watchlist=[w for w in self._state.watchlist if w.symbol != symbol])

    def clear_watchlist(self) -> None:
        self._set(watchlist=[])

    def add_recent_search(self, symbol: str) -> None:
        others = [s for s in self._state.recent_searches if s != symbol]
        self._set(recent_searches=[symbol, *others][: self.recent_searches_limit])

    def clear_recent_searches(self) -> None:
        self._set(recent_searches=[])

    def set_time_range(self, time_range: TimeRange) -> None:
        self._set(selected_time_range=TimeRange(time_range))

    def set_chart_type(self, chart_type: ChartType) -> None:
        self._set(selected_chart_type=ChartType(chart_type))

    def toggle_dark_mode(self) -> None:
        self._set(is_dark_mode=not self._state.is_dark_mode)


# ============================================================================
# Watchlist view helpers
# ============================================================================

SortKey = Literal["symbol", "price", "change"]
SortOrder = Literal["asc", "desc"]


def filter_watchlist(items: List[WatchlistItem], query: str) -> List[WatchlistItem]:
    """Case-insensitive match on symbol or name."""
    needle = query.strip().lower()
    if not needle:
        return list(items)
    return [i for i in items if needle in i.symbol.lower() or needle in i.name.lower()]


def sort_watchlist(
    items: List[WatchlistItem], sort_by: SortKey = "symbol", order: SortOrder = "asc"
) -> List[WatchlistItem]:
    """Sort by symbol, snapshot price or snapshot change percent (missing counts as 0)."""
    if sort_by == "price":
        key = lambda i: i.price or 0
    elif sort_by == "change":
        key = lambda i: i.change_percent or 0
    else:
        key = lambda i: i.symbol
    return sorted(items, key=key, reverse=(order == "desc"))


def summarize_watchlist(items: List[WatchlistItem]) -> dict:
    """Total snapshot value and average change percent."""
    if not items:
        return {"count": 0, "total_value": 0.0, "average_change_percent": 0.0}
    total_value = sum(i.price or 0 for i in items)
    total_change = sum(i.change_percent or 0 for i in items)
    return {
        "count": len(items),
        "total_value": round(total_value, 2),
        "average_change_percent": round(total_change / len(items), 2),
    }
