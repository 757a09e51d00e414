# main.py - Stock Screener API
# Rate-limited Alpha Vantage access with cache fallback, watchlist and recents

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from cache import StockCache, create_cache
from config import Settings, get_settings
from endpoints import CompanyOverviewEndpoint, QuoteEndpoint, TimeSeriesEndpoint, TimeSeriesInterval
from errors import FetchError, InvalidEndpointError, RateLimitedError, UnknownFetchError
from flows import DetailFlow, SearchFlow, WatchlistFlow
from middleware import MetricsMiddleware
from model import Stock, TimePeriod
from monitoring import APIMetrics
from rate_limiter import RateLimiter
from repository import ProfileStore, RecentlyViewedStore, RepositoryError, WatchlistRepository
from stock_client import StockDataClient
from utils import format_bytes, sanitize_symbol

logger = logging.getLogger(__name__)


# ===================================
# SERVICES
# ===================================

@dataclass
class ScreenerServices:
    settings: Settings
    client: StockDataClient
    cache: StockCache
    watchlist: WatchlistRepository
    recent: RecentlyViewedStore
    profile: ProfileStore
    watchlist_flow: WatchlistFlow


def build_services(settings: Settings) -> ScreenerServices:
    """Wire the shared limiter, client, cache and local stores"""
    limiter = RateLimiter(settings.rate_limit_requests, settings.rate_limit_window)
    client = StockDataClient.from_settings(settings, limiter)
    watchlist = WatchlistRepository(settings.data_dir)
    return ScreenerServices(
        settings=settings,
        client=client,
        cache=create_cache(settings),
        watchlist=watchlist,
        recent=RecentlyViewedStore(settings.data_dir, settings.max_recent_stocks),
        profile=ProfileStore(settings.data_dir),
        watchlist_flow=WatchlistFlow(client, watchlist, settings.watchlist_request_delay),
    )


# ===================================
# REQUEST MODELS
# ===================================

class RegisterRequest(BaseModel):
    name: str
    email: str
    profile_image_path: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str = ""


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    profile_image_path: Optional[str] = None


# ===================================
# FASTAPI APPLICATION
# ===================================

ERROR_STATUS = {
    RateLimitedError: 429,
    InvalidEndpointError: 400,
    UnknownFetchError: 503,
}


def _symbol(raw: str) -> str:
    try:
        return sanitize_symbol(raw)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _price_view(prices: Dict[str, Tuple[float, float]]) -> Dict[str, Dict[str, float]]:
    return {symbol: {"price": price, "change_percent": change} for symbol, (price, change) in prices.items()}


def create_app(services: Optional[ScreenerServices] = None) -> FastAPI:
    """Build the application; tests pass prebuilt services"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_services = getattr(app.state, "services", None) is None
        if owns_services:
            settings = get_settings()
            logging.basicConfig(
                level=settings.log_level.upper(),
                format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            app.state.services = build_services(settings)
        logger.info("🚀 Starting Stock Screener API")
        yield
        logger.info("🛑 Shutting down Stock Screener API")
        if owns_services:
            app.state.services.client.close()

    app = FastAPI(
        title="Stock Screener API",
        description="Search, watchlist and stock detail backed by a rate-limited Alpha Vantage client",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.metrics = APIMetrics()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware, metrics=app.state.metrics)

    @app.exception_handler(FetchError)
    async def fetch_error_handler(request: Request, exc: FetchError):
        status_code = ERROR_STATUS.get(type(exc), 502)
        headers = {"Retry-After": str(app.state.services.settings.rate_limit_window)} if status_code == 429 else None
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "detail": exc.description},
            headers=headers,
        )

    @app.exception_handler(RepositoryError)
    async def repository_error_handler(request: Request, exc: RepositoryError):
        logger.error(f"Local storage error: {exc}")
        return JSONResponse(status_code=500, content={"error": "RepositoryError", "detail": str(exc)})

    def svc() -> ScreenerServices:
        if app.state.services is None:
            raise HTTPException(status_code=503, detail="Service not initialized")
        return app.state.services

    # ===================================
    # HEALTH & LIMITER
    # ===================================

    @app.get("/")
    async def root():
        """Health check endpoint"""
        services = svc()
        return {
            "message": services.settings.app_name,
            "status": "healthy",
            "timestamp": datetime.now(),
            "version": services.settings.app_version,
            "remaining_requests": services.client.remaining_requests(),
        }

    @app.get("/limiter")
    async def limiter_status():
        return svc().client.rate_limiter.get_stats()

    @app.post("/limiter/reset")
    async def reset_limiter():
        services = svc()
        services.client.reset_limiter()
        return {"remaining_requests": services.client.remaining_requests()}

    @app.get("/metrics")
    async def metrics():
        return app.state.metrics.get_summary(svc().client.rate_limiter.get_stats())

    # ===================================
    # SEARCH & STOCK DATA
    # ===================================

    @app.get("/search")
    async def search(q: str = Query("", description="Keywords to search for")):
        flow = SearchFlow(svc().client)
        results = await flow.perform_search(q)
        return {
            "keywords": q,
            "results": [stock.model_dump() for stock in results],
            "error_message": flow.error_message,
        }

    @app.get("/stocks/{symbol}")
    async def stock_detail(symbol: str, name: Optional[str] = None,
                           stock_type: Optional[str] = Query(None, alias="type"),
                           region: Optional[str] = None):
        """Quote, daily history and overview, falling back to cached data"""
        services = svc()
        symbol = _symbol(symbol)
        stock = None
        if name:
            stock = Stock(symbol=symbol, name=name, type=stock_type or "Equity", region=region or "")
        flow = DetailFlow(
            symbol, services.client, services.cache,
            recent_store=services.recent, stock=stock,
            retry_seconds=services.settings.retry_countdown_seconds,
        )
        try:
            await flow.fetch_data()
            return {
                "symbol": symbol,
                "quote": flow.detail.model_dump() if flow.detail else None,
                "history": {
                    "trend": flow.history.trend.value,
                    "prices": flow.history.prices,
                } if flow.history else None,
                "overview": flow.overview.model_dump() if flow.overview else None,
                "offline": flow.is_offline,
                "error_message": flow.error_message,
                "retry_after": flow.retry_countdown,
            }
        finally:
            flow.close()

    @app.get("/stocks/{symbol}/quote")
    async def stock_quote(symbol: str):
        quote = await svc().client.fetch(QuoteEndpoint(_symbol(symbol)))
        return quote.model_dump()

    @app.get("/stocks/{symbol}/history")
    async def stock_history(symbol: str,
                            interval: TimeSeriesInterval = TimeSeriesInterval.DAILY,
                            period: TimePeriod = TimePeriod.ALL):
        history = await svc().client.fetch(TimeSeriesEndpoint(_symbol(symbol), interval))
        return {
            "symbol": history.symbol,
            "interval": interval.value,
            "period": period.value,
            "trend": history.trend.value,
            "prices": history.prices_for_period(period),
        }

    @app.get("/stocks/{symbol}/overview")
    async def stock_overview(symbol: str):
        overview = await svc().client.fetch(CompanyOverviewEndpoint(_symbol(symbol)))
        data: Dict[str, Any] = overview.model_dump()
        data["formatted"] = {
            "market_cap": overview.formatted_market_cap,
            "dividend_yield": overview.formatted_dividend_yield,
            "52_week_range": overview.formatted_52_week_range,
        }
        return data

    # ===================================
    # WATCHLIST & RECENTS
    # ===================================

    @app.get("/watchlist")
    async def get_watchlist():
        services = svc()
        return {
            "stocks": [stock.model_dump() for stock in services.watchlist.get_all()],
            "prices": _price_view(services.watchlist_flow.current_prices()),
        }

    @app.post("/watchlist", status_code=201)
    async def add_to_watchlist(stock: Stock):
        services = svc()
        services.watchlist.save(stock)
        return {"stocks": [s.model_dump() for s in services.watchlist.get_all()]}

    @app.delete("/watchlist/{symbol}")
    async def remove_from_watchlist(symbol: str):
        services = svc()
        services.watchlist.remove(_symbol(symbol))
        return {"stocks": [s.model_dump() for s in services.watchlist.get_all()]}

    @app.post("/watchlist/refresh")
    async def refresh_watchlist():
        flow = svc().watchlist_flow
        prices = await flow.refresh_prices()
        return {
            "prices": _price_view(prices),
            "status_message": flow.status_message,
        }

    @app.get("/recent")
    async def recent_stocks():
        return {"stocks": [s.model_dump() for s in svc().recent.get_all()]}

    @app.delete("/recent", status_code=204)
    async def clear_recent():
        svc().recent.clear()

    # ===================================
    # CACHE
    # ===================================

    @app.get("/cache")
    async def cache_info():
        size = svc().cache.size_estimate()
        return {"size_bytes": size, "size": format_bytes(size)}

    @app.delete("/cache", status_code=204)
    async def clear_cache():
        svc().cache.clear()

    # ===================================
    # PROFILE
    # ===================================

    @app.get("/profile")
    async def get_profile():
        user = svc().profile.current_user()
        if user is None:
            raise HTTPException(status_code=404, detail="Not logged in")
        return {**user.model_dump(mode="json"), "display_name": user.display_name, "initials": user.initials}

    @app.post("/profile/register", status_code=201)
    async def register(body: RegisterRequest):
        user = svc().profile.register(body.name, body.email, body.profile_image_path)
        return user.model_dump(mode="json")

    @app.post("/profile/login")
    async def login(body: LoginRequest):
        user = svc().profile.login(body.email)
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown email")
        return user.model_dump(mode="json")

    @app.post("/profile/logout", status_code=204)
    async def logout():
        svc().profile.logout()

    @app.patch("/profile")
    async def update_profile(body: ProfileUpdateRequest):
        user = svc().profile.update_profile(body.name, body.profile_image_path)
        if user is None:
            raise HTTPException(status_code=404, detail="Not logged in")
        return user.model_dump(mode="json")

    @app.delete("/profile", status_code=204)
    async def delete_profile():
        svc().profile.delete_account()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
