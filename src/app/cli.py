"""
Command-line interface for the stock dashboard core.
Provides commands for quotes, fundamentals, charts, news, search and the
persisted watchlist / preferences.
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone

from loguru import logger

from src.core.logging import configure_logging


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity."""
    configure_logging(level="DEBUG" if verbose else "WARNING", json_output=False)


def _context():
    from src.app.context import create_context
    return create_context(persist=True)


def _dump(payload) -> None:
    if isinstance(payload, list):
        data = [item.model_dump(mode="json") for item in payload]
    else:
        data = payload.model_dump(mode="json")
    print(json.dumps(data, indent=2))


def _fail(message: str) -> None:
    logger.error(message)
    sys.exit(1)


def cmd_quote(args):
    """Handle quote command."""
    from src.core.formatting import format_currency, format_market_cap, format_number

    context = _context()
    accessor = context.quote_accessor()
    asyncio.run(accessor.load(args.symbol))
    if accessor.error:
        _fail(f"Failed to get quote for {args.symbol.upper()}: {accessor.error}")

    quote = accessor.data
    if args.json:
        _dump(quote)
        return

    sign = "+" if quote.change >= 0 else ""
    print(f"\n{'='*50}")
    print(f"  {quote.symbol} Quote")
    print(f"{'='*50}")
    print(f"  Price:      {format_currency(quote.price)}")
    print(f"  Change:     {sign}{quote.change:,.2f} ({sign}{quote.change_percent:.2f}%)")
    print(f"  Open:       {format_currency(quote.open)}")
    print(f"  High/Low:   {format_currency(quote.high)} / {format_currency(quote.low)}")
    print(f"  Prev Close: {format_currency(quote.previous_close)}")
    print(f"  Volume:     {format_number(quote.volume)}")
    if quote.market_cap:
        print(f"  Market Cap: {format_market_cap(quote.market_cap)}")
    print(f"  Updated:    {quote.last_updated}")
    print(f"{'='*50}\n")


def cmd_overview(args):
    """Handle overview command."""
    from src.core.formatting import format_market_cap, format_optional

    context = _context()
    accessor = context.overview_accessor()
    asyncio.run(accessor.load(args.symbol))
    if accessor.error:
        _fail(f"Failed to get overview for {args.symbol.upper()}: {accessor.error}")

    overview = accessor.data
    if args.json:
        _dump(overview)
        return

    print(f"\n{'='*60}")
    print(f"  {overview.name} ({overview.symbol})")
    print(f"{'='*60}")
    print(f"  {overview.sector or 'N/A'} / {overview.industry or 'N/A'} on {overview.exchange or 'N/A'}")
    print(f"  Market Cap:  {format_optional(overview.market_capitalization, format_market_cap)}")
    print(f"  P/E:         {format_optional(overview.pe_ratio)}")
    print(f"  EPS:         {format_optional(overview.eps)}")
    print(f"  Beta:        {format_optional(overview.beta)}")
    print(f"  52W High:    {format_optional(overview.high_52_week)}")
    print(f"  52W Low:     {format_optional(overview.low_52_week)}")
    print(f"  Div. Yield:  {format_optional(overview.dividend_yield)}")
    if overview.description:
        print(f"\n  {overview.description}")
    print(f"{'='*60}\n")


def cmd_chart(args):
    """Handle chart command."""
    from src.core.models import TimeRange

    context = _context()
    time_range = TimeRange(args.range) if args.range else context.store.selected_time_range
    accessor = context.chart_accessor()
    asyncio.run(accessor.load(args.symbol, time_range))
    if accessor.error:
        _fail(f"Failed to get chart for {args.symbol.upper()}: {accessor.error}")

    points = accessor.data
    if args.json:
        _dump(points)
        return

    if not points:
        print(f"No chart data found for {args.symbol.upper()}")
        return

    print(f"\n{'='*72}")
    print(f"  {args.symbol.upper()} {time_range.value} ({len(points)} points)")
    print(f"{'='*72}")
    print(f"  Period: {points[0].date} to {points[-1].date}")
    print("\n  Latest points:")
    print(f"  {'Date':<20} {'Open':>10} {'High':>10} {'Low':>10} {'Close':>10} {'Volume':>12}")
    print(f"  {'-'*20} {'-'*10} {'-'*10} {'-'*10} {'-'*10} {'-'*12}")
    for p in points[-5:]:
        print(f"  {p.date:<20} {p.open:>10.2f} {p.high:>10.2f} {p.low:>10.2f} {p.close:>10.2f} {p.volume:>12,}")
    print(f"{'='*72}\n")


def cmd_search(args):
    """Handle search command. Records the top match as a recent search."""
    context = _context()
    accessor = context.search_accessor()
    asyncio.run(accessor.load(args.query))
    if accessor.error:
        _fail(accessor.error)

    results = accessor.data
    if results:
        context.store.add_recent_search(results[0].symbol)

    if args.json:
        _dump(results)
        return

    print(f"\n  {'Symbol':<8} {'Name':<32} {'Type':<8} {'Region':<16} {'Score':>5}")
    for r in results:
        print(f"  {r.symbol:<8} {r.name[:32]:<32} {r.type:<8} {r.region[:16]:<16} {r.match_score:>5.2f}")
    print()


def cmd_news(args):
    """Handle news command."""
    context = _context()
    accessor = context.news_accessor()
    asyncio.run(accessor.load(args.symbol))
    if accessor.error:
        _fail(f"Failed to get news: {accessor.error}")

    items = accessor.data[: args.limit]
    if args.json:
        _dump(items)
        return

    for item in items:
        print(f"\n  {item.title}")
        print(f"  {item.source} | {item.time_published} | {item.overall_sentiment_label}")
        print(f"  {item.url}")
    print()


def cmd_indices(args):
    """Handle indices command."""
    context = _context()
    accessor = context.indices_accessor()
    asyncio.run(accessor.load())

    if args.json:
        _dump(accessor.data)
        return

    print(f"\n{'='*50}")
    for index in accessor.data:
        sign = "+" if index.change >= 0 else ""
        print(f"  {index.name:<12} {index.symbol:<5} {index.price:>10,.2f} ({sign}{index.change_percent:.2f}%)")
    print(f"{'='*50}\n")


def cmd_watchlist(args):
    """Handle watchlist subcommands."""
    from src.app.store import filter_watchlist, sort_watchlist, summarize_watchlist
    from src.core.models import WatchlistItem

    context = _context()
    store = context.store

    if args.action == "add":
        symbol = args.symbol.upper()
        if store.in_watchlist(symbol):
            print(f"{symbol} is already in the watchlist")
            return
        data = context.stock_data_accessor()
        asyncio.run(data.load(symbol))
        quote, overview = data.quote, data.overview
        store.add_to_watchlist(WatchlistItem(
            symbol=symbol,
            name=overview.name if overview else symbol,
            added_at=datetime.now(timezone.utc),
            price=quote.price if quote else None,
            change=quote.change if quote else None,
            change_percent=quote.change_percent if quote else None,
        ))
        print(f"Added {symbol} to the watchlist")
    elif args.action == "remove":
        store.remove_from_watchlist(args.symbol.upper())
        print(f"Removed {args.symbol.upper()} from the watchlist")
    elif args.action == "clear":
        store.clear_watchlist()
        print("Watchlist cleared")
    else:
        items = sort_watchlist(filter_watchlist(store.watchlist, args.filter or ""), args.sort, args.order)
        if args.json:
            _dump(items)
            return
        if not items:
            print("Your watchlist is empty")
            return
        for item in items:
            price = f"{item.price:>10,.2f}" if item.price is not None else f"{'N/A':>10}"
            change = f"{item.change_percent:+.2f}%" if item.change_percent is not None else "N/A"
            print(f"  {item.symbol:<8} {item.name[:30]:<30} {price} {change:>8}")
        summary = summarize_watchlist(items)
        print(f"\n  {summary['count']} stocks, total {summary['total_value']:,.2f}, "
              f"avg change {summary['average_change_percent']:+.2f}%")


def cmd_recent(args):
    """Handle recent searches subcommands."""
    store = _context().store
    if args.action == "clear":
        store.clear_recent_searches()
        print("Recent searches cleared")
        return
    for symbol in store.recent_searches:
        print(f"  {symbol}")


def cmd_prefs(args):
    """Handle preference subcommands."""
    store = _context().store
    if args.action == "range":
        store.set_time_range(args.value)
    elif args.action == "chart":
        store.set_chart_type(args.value)
    elif args.action == "dark":
        store.toggle_dark_mode()

    print(f"  Time range: {store.selected_time_range.value}")
    print(f"  Chart type: {store.selected_chart_type.value}")
    print(f"  Dark mode:  {'on' if store.is_dark_mode else 'off'}")


def cmd_test(args):
    """Test connection and configuration."""
    from src.core.config import settings

    print(f"\n{'='*50}")
    print("  Configuration Test")
    print(f"{'='*50}")

    print("\n  Settings:")
    print(f"    ALPHA_VANTAGE_API_KEY:  {'[SET]' if settings.alpha_vantage_api_key else '[NOT SET]'}")
    print(f"    ALPHA_VANTAGE_BASE_URL: {settings.alpha_vantage_base_url}")
    print(f"    CACHE_TTL_SECONDS:      {settings.cache_ttl_seconds}")
    print(f"    RETRY_MAX_ATTEMPTS:     {settings.retry_max_attempts}")
    print(f"    STATE FILE:             {settings.storage_path}")

    print("\n  Testing provider...")
    context = _context()
    result = asyncio.run(context.client.get_stock_quote("AAPL"))
    if result.success:
        source = "provider" if context.client.configured else "fallback"
        print(f"    ✓ quote ok ({source}) - AAPL: ${result.data.price:.2f}")
    else:
        print(f"    ✗ quote error: {result.error}")

    print(f"\n{'='*50}\n")


def main():
    """Main entry point."""
    from src.core.models import ChartType, TimeRange

    ranges = [r.value for r in TimeRange]
    parser = argparse.ArgumentParser(
        description="Stock dashboard: quotes, charts, fundamentals and watchlist",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src.app.cli quote AAPL
  python -m src.app.cli chart MSFT --range 3M
  python -m src.app.cli search apple
  python -m src.app.cli watchlist add NVDA
  python -m src.app.cli watchlist list --sort change --order desc
  python -m src.app.cli prefs dark
  python -m src.app.cli test
        """
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    quote_parser = subparsers.add_parser("quote", help="Get latest quote for a symbol")
    quote_parser.add_argument("symbol", help="Stock ticker symbol (e.g., AAPL)")
    quote_parser.add_argument("--json", action="store_true", help="Output as JSON")
    quote_parser.set_defaults(func=cmd_quote)

    overview_parser = subparsers.add_parser("overview", help="Get company fundamentals")
    overview_parser.add_argument("symbol", help="Stock ticker symbol")
    overview_parser.add_argument("--json", action="store_true", help="Output as JSON")
    overview_parser.set_defaults(func=cmd_overview)

    chart_parser = subparsers.add_parser("chart", help="Get chart data for a symbol")
    chart_parser.add_argument("symbol", help="Stock ticker symbol")
    chart_parser.add_argument("--range", choices=ranges,
                              help="Time range (defaults to the saved preference)")
    chart_parser.add_argument("--json", action="store_true", help="Output as JSON")
    chart_parser.set_defaults(func=cmd_chart)

    search_parser = subparsers.add_parser("search", help="Search stocks by symbol or name")
    search_parser.add_argument("query", help="Keywords")
    search_parser.add_argument("--json", action="store_true", help="Output as JSON")
    search_parser.set_defaults(func=cmd_search)

    news_parser = subparsers.add_parser("news", help="Get market news")
    news_parser.add_argument("--symbol", help="Optional ticker filter")
    news_parser.add_argument("--limit", type=int, default=10, help="Maximum articles")
    news_parser.add_argument("--json", action="store_true", help="Output as JSON")
    news_parser.set_defaults(func=cmd_news)

    indices_parser = subparsers.add_parser("indices", help="Show headline indices")
    indices_parser.add_argument("--json", action="store_true", help="Output as JSON")
    indices_parser.set_defaults(func=cmd_indices)

    watchlist_parser = subparsers.add_parser("watchlist", help="Manage the watchlist")
    watchlist_parser.add_argument("action", choices=["list", "add", "remove", "clear"])
    watchlist_parser.add_argument("symbol", nargs="?", help="Symbol for add/remove")
    watchlist_parser.add_argument("--filter", help="Filter by symbol or name")
    watchlist_parser.add_argument("--sort", choices=["symbol", "price", "change"], default="symbol")
    watchlist_parser.add_argument("--order", choices=["asc", "desc"], default="asc")
    watchlist_parser.add_argument("--json", action="store_true", help="Output as JSON")
    watchlist_parser.set_defaults(func=cmd_watchlist)

    recent_parser = subparsers.add_parser("recent", help="Show or clear recent searches")
    recent_parser.add_argument("action", choices=["list", "clear"], nargs="?", default="list")
    recent_parser.set_defaults(func=cmd_recent)

    prefs_parser = subparsers.add_parser("prefs", help="Show or change preferences")
    prefs_parser.add_argument("action", choices=["show", "range", "chart", "dark"],
                              nargs="?", default="show")
    prefs_parser.add_argument("value", nargs="?",
                              help=f"Range ({', '.join(ranges)}) or chart type "
                                   f"({', '.join(c.value for c in ChartType)})")
    prefs_parser.set_defaults(func=cmd_prefs)

    test_parser = subparsers.add_parser("test", help="Test configuration and connections")
    test_parser.set_defaults(func=cmd_test)

    args = parser.parse_args()

    setup_logging(verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "watchlist" and args.action in ("add", "remove") and not args.symbol:
        parser.error(f"watchlist {args.action} requires a symbol")
    if args.command == "prefs" and args.action in ("range", "chart"):
        valid = ranges if args.action == "range" else [c.value for c in ChartType]
        if args.value not in valid:
            parser.error(f"prefs {args.action} expects one of: {', '.join(valid)}")

    args.func(args)


if __name__ == "__main__":
    main()
