"""
FastAPI REST API for the stock dashboard core.
Serves quotes, fundamentals, charts, news and market overview data through
the data accessors (and therefore the response cache), plus a diagnostic
route that exercises the provider client directly.
"""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from loguru import logger

from src.app.accessors import DataAccessor
from src.app.context import AppContext, create_context
from src.core.formatting import is_market_open
from src.core.models import (
    ChartPoint,
    CompanyOverview,
    MarketIndex,
    MarketMover,
    NewsItem,
    Quote,
    SearchResult,
    TimeRange,
)

DIAGNOSTIC_PROVIDER = "Yahoo Finance (yahoo-finance2)"
DIAGNOSTIC_SYMBOL = "AAPL"


# ============================================================================
# API Response Models
# ============================================================================

class ChartResponse(BaseModel):
    """API response for chart data."""
    symbol: str
    time_range: TimeRange
    points: List[ChartPoint]
    count: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    provider_configured: bool
    market_open: bool
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Stock Dashboard API",
    description="Quotes, charts, fundamentals and news with cached, fallback-backed market data",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_context(request: Request) -> AppContext:
    """Per-process context, created on first use."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        context = create_context(persist=False)
        request.app.state.context = context
    return context


def _unwrap(accessor: DataAccessor, what: str):
    if accessor.error:
        raise HTTPException(status_code=404, detail=f"Could not fetch {what}: {accessor.error}")
    return accessor.data


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Stock Dashboard API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(context: AppContext = Depends(get_context)):
    """Shallow health check; makes no provider calls."""
    return HealthResponse(
        status="healthy",
        provider_configured=context.client.configured,
        market_open=is_market_open(),
        timestamp=datetime.now(timezone.utc),
    )


@app.get("/api/test-yahoo-finance", tags=["Diagnostics"])
async def test_provider(context: AppContext = Depends(get_context)):
    """
    Fetch an AAPL quote straight from the provider client.

    A handled failure still answers 200 with success=false; only an
    exception escaping the client produces a 500.
    """
    try:
        result = await context.client.get_stock_quote(DIAGNOSTIC_SYMBOL)
        return {
            "success": result.success,
            "data": jsonable_encoder(result.data),
            "error": result.error,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": DIAGNOSTIC_PROVIDER,
        }
    except Exception as e:
        logger.error(f"Diagnostic quote failed: {e!r}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "data": None,
                "error": str(e) or "Unknown error",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "provider": DIAGNOSTIC_PROVIDER,
            },
        )


@app.get(
    "/quote/{symbol}",
    response_model=Quote,
    responses={404: {"model": ErrorResponse}},
    tags=["Quotes"],
)
async def get_quote(symbol: str, context: AppContext = Depends(get_context)):
    """
    Get the latest quote for a stock symbol.

    - **symbol**: Stock symbol (e.g., AAPL, MSFT, GOOGL)
    """
    accessor = context.quote_accessor()
    await accessor.load(symbol)
    return _unwrap(accessor, f"quote for {symbol.upper()}")


@app.get(
    "/overview/{symbol}",
    response_model=CompanyOverview,
    responses={404: {"model": ErrorResponse}},
    tags=["Fundamentals"],
)
async def get_overview(symbol: str, context: AppContext = Depends(get_context)):
    """Get company fundamentals for a stock symbol."""
    accessor = context.overview_accessor()
    await accessor.load(symbol)
    return _unwrap(accessor, f"overview for {symbol.upper()}")


@app.get(
    "/chart/{symbol}",
    response_model=ChartResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Charts"],
)
async def get_chart(
    symbol: str,
    time_range: TimeRange = Query(default=TimeRange.ONE_MONTH, alias="range",
                                  description="1D, 5D, 1M, 3M, 6M, 1Y, 5Y or MAX"),
    context: AppContext = Depends(get_context),
):
    """
    Get OHLCV chart data for a stock symbol.

    - **symbol**: Stock symbol (e.g., AAPL)
    - **range**: Time range (1D, 5D, 1M, 3M, 6M, 1Y, 5Y, MAX)
    """
    accessor = context.chart_accessor()
    await accessor.load(symbol, time_range)
    points = _unwrap(accessor, f"chart for {symbol.upper()}")
    return ChartResponse(
        symbol=symbol.upper(),
        time_range=time_range,
        points=points,
        count=len(points),
    )


@app.get(
    "/news",
    response_model=List[NewsItem],
    responses={404: {"model": ErrorResponse}},
    tags=["News"],
)
async def get_news(
    symbol: Optional[str] = Query(default=None, description="Optional ticker filter"),
    context: AppContext = Depends(get_context),
):
    """Get market news, optionally for one ticker."""
    accessor = context.news_accessor()
    await accessor.load(symbol)
    return _unwrap(accessor, "news")


@app.get(
    "/search",
    response_model=List[SearchResult],
    responses={404: {"model": ErrorResponse}},
    tags=["Search"],
)
async def search(
    q: str = Query(..., min_length=1, description="Symbol or company name keywords"),
    context: AppContext = Depends(get_context),
):
    """Search stocks by symbol or company name."""
    accessor = context.search_accessor()
    await accessor.load(q)
    return _unwrap(accessor, f"search results for {q!r}")


@app.get("/indices", response_model=List[MarketIndex], tags=["Market"])
async def get_indices(context: AppContext = Depends(get_context)):
    """Headline market indices."""
    accessor = context.indices_accessor()
    await accessor.load()
    return _unwrap(accessor, "market indices")


@app.get("/movers", response_model=List[MarketMover], tags=["Market"])
async def get_movers(context: AppContext = Depends(get_context)):
    """Session top movers."""
    accessor = context.movers_accessor()
    await accessor.load()
    return _unwrap(accessor, "market movers")


# ============================================================================
# Run with: uvicorn src.app.api:app --reload
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    from src.core.config import settings
    from src.core.logging import configure_logging

    configure_logging(level=settings.log_level)
    uvicorn.run(app, host="0.0.0.0", port=8000)
