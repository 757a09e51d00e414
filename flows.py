# ===================================
# flows.py - Search, Detail and Watchlist Callers
# ===================================

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple

from cache import CacheKind, StockCache
from endpoints import CompanyOverviewEndpoint, QuoteEndpoint, SearchEndpoint, TimeSeriesEndpoint, TimeSeriesInterval
from errors import (
    ApiError,
    DecodingError,
    FetchError,
    InvalidEndpointError,
    NoDataError,
    RateLimitedError,
    TransportError,
    UnauthorizedError,
)
from model import CompanyOverview, Stock, StockHistory, StockQuote
from repository import RecentlyViewedStore, WatchlistRepository
from stock_client import StockDataClient

logger = logging.getLogger(__name__)

DEFAULT_RETRY_SECONDS = 60


# ===================================
# RETRY COUNTDOWN
# ===================================

class RetryCountdown:
    """Per-second countdown run as an asyncio task owned by one caller.

    ``cancel`` stops the task; callbacks never fire after cancellation.
    """

    def __init__(self, on_tick: Optional[Callable[[int], None]] = None,
                 on_finish: Optional[Callable[[], None]] = None,
                 tick_seconds: float = 1.0):
        self.on_tick = on_tick
        self.on_finish = on_finish
        self.tick_seconds = tick_seconds
        self.remaining = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, seconds: int) -> None:
        """Start (or restart) the countdown; requires a running event loop"""
        self.cancel()
        self.remaining = max(0, seconds)
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while self.remaining > 0:
            await asyncio.sleep(self.tick_seconds)
            self.remaining -= 1
            if self.on_tick:
                self.on_tick(self.remaining)
        if self.on_finish:
            self.on_finish()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.remaining = 0

    async def wait(self) -> None:
        """Wait for the countdown to finish; returns immediately when idle"""
        if self._task is not None:
            await asyncio.shield(self._task)


# ===================================
# SEARCH
# ===================================

def search_error_message(error: FetchError) -> str:
    if isinstance(error, RateLimitedError):
        return "Rate limit exceeded. Please wait a moment."
    if isinstance(error, InvalidEndpointError):
        return "Invalid request URL"
    if isinstance(error, NoDataError):
        return "No data received from server"
    if isinstance(error, DecodingError):
        return "Failed to process server response"
    if isinstance(error, TransportError):
        return f"Server error (Code: {error.status_code})"
    return error.description


class SearchFlow:
    def __init__(self, client: StockDataClient, debounce_seconds: float = 0.8):
        self.client = client
        self.debounce_seconds = debounce_seconds
        self.query = ""
        self.results: List[Stock] = []
        self.error_message: Optional[str] = None
        self.is_loading = False
        self._last_submitted: Optional[str] = None
        self._pending: Optional[asyncio.Task] = None

    async def perform_search(self, query: str) -> List[Stock]:
        """Search immediately; an empty query just clears the current results"""
        self.query = query
        if not query.strip():
            self.results = []
            self.error_message = None
            return self.results

        self.is_loading = True
        self.error_message = None
        try:
            self.results = await self.client.fetch(SearchEndpoint(query))
        except FetchError as e:
            self.error_message = search_error_message(e)
        finally:
            self.is_loading = False
        return self.results

    def update_query(self, text: str) -> None:
        """Debounced search: only the last text typed within the debounce window is searched"""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._debounced(text))

    async def _debounced(self, text: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        if text == self._last_submitted:
            return
        self._last_submitted = text
        await self.perform_search(text)

    async def wait_pending(self) -> None:
        if self._pending is not None:
            try:
                await self._pending
            except asyncio.CancelledError:
                pass

    def clear(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self.query = ""
        self.results = []
        self.error_message = None
        self._last_submitted = None


# ===================================
# STOCK DETAIL
# ===================================

class DetailFlow:
    """Loads one symbol's quote, daily history and overview.

    Any fetch failure falls back to the cached quote (and history, when
    present) and switches to offline mode. Only when nothing is cached does
    the error reach ``error_message``; a rate limit additionally starts the
    retry countdown, which clears the message when it reaches zero.
    """

    def __init__(self, symbol: str, client: StockDataClient, cache: StockCache,
                 recent_store: Optional[RecentlyViewedStore] = None,
                 stock: Optional[Stock] = None,
                 retry_seconds: int = DEFAULT_RETRY_SECONDS,
                 tick_seconds: float = 1.0):
        self.symbol = symbol.upper()
        self.client = client
        self.cache = cache
        self.retry_seconds = retry_seconds
        self.detail: Optional[StockQuote] = None
        self.history: Optional[StockHistory] = None
        self.overview: Optional[CompanyOverview] = None
        self.is_loading = False
        self.is_offline = False
        self.error_message: Optional[str] = None
        self.countdown = RetryCountdown(on_finish=self._clear_error, tick_seconds=tick_seconds)

        if stock is not None and recent_store is not None:
            recent_store.add(stock)

    @property
    def retry_countdown(self) -> int:
        return self.countdown.remaining

    def _clear_error(self) -> None:
        self.error_message = None

    async def fetch_data(self) -> None:
        self.is_loading = True
        self.error_message = None
        self.is_offline = False
        self.countdown.cancel()

        try:
            self.detail = await self.client.fetch(QuoteEndpoint(self.symbol))
            self.cache.put(self.symbol, self.detail, CacheKind.DETAIL)

            self.history = await self.client.fetch(
                TimeSeriesEndpoint(self.symbol, TimeSeriesInterval.DAILY)
            )
            self.cache.put(self.symbol, self.history, CacheKind.HISTORY)

            try:
                self.overview = await self.client.fetch(CompanyOverviewEndpoint(self.symbol))
            except FetchError as e:
                logger.info(f"Overview unavailable for {self.symbol}: {e.description}")
        except FetchError as e:
            if self._load_from_cache():
                logger.info(f"Showing cached data for {self.symbol} after: {e.description}")
                self.is_offline = True
            else:
                self._handle_error(e)
        finally:
            self.is_loading = False

    def _load_from_cache(self) -> bool:
        detail = self.cache.get(self.symbol, CacheKind.DETAIL)
        if detail is None:
            return False
        self.detail = detail
        history = self.cache.get(self.symbol, CacheKind.HISTORY)
        if history is not None:
            self.history = history
        return True

    def _handle_error(self, error: FetchError) -> None:
        if isinstance(error, RateLimitedError):
            self.error_message = f"Rate limit exceeded. Please wait {self.retry_seconds} seconds."
            self.countdown.start(self.retry_seconds)
        elif isinstance(error, UnauthorizedError):
            self.error_message = "Invalid API key. Please check your configuration."
        elif isinstance(error, DecodingError):
            self.error_message = "Failed to load stock data. Please try again."
        elif isinstance(error, ApiError):
            self.error_message = error.message
        else:
            self.error_message = error.description

    def close(self) -> None:
        """Stop any running countdown; call when the flow is discarded"""
        self.countdown.cancel()


# ===================================
# WATCHLIST
# ===================================

RATE_LIMIT_STATUS = "Rate limit reached. Pull to refresh later."


class WatchlistFlow:
    def __init__(self, client: StockDataClient, repository: WatchlistRepository,
                 request_delay: float = 0.2):
        self.client = client
        self.repository = repository
        self.request_delay = request_delay
        self.prices: Dict[str, Tuple[float, float]] = {}
        self.status_message: Optional[str] = None
        self.is_loading_prices = False

    def current_prices(self) -> Dict[str, Tuple[float, float]]:
        """Last known prices, limited to symbols still on the watchlist"""
        symbols = {stock.symbol for stock in self.repository.get_all()}
        self.prices = {symbol: price for symbol, price in self.prices.items() if symbol in symbols}
        return self.prices

    async def refresh_prices(self) -> Dict[str, Tuple[float, float]]:
        """Fetch quotes one symbol at a time, stopping at the first rate limit.

        Returns the (price, change percent) map collected so far. A refresh
        requested while another one is running is ignored.
        """
        if self.is_loading_prices:
            return self.prices

        self.is_loading_prices = True
        self.status_message = None
        try:
            stocks = self.repository.get_all()
            self.current_prices()
            for index, stock in enumerate(stocks):
                if index > 0:
                    await asyncio.sleep(self.request_delay)
                try:
                    quote = await self.client.fetch(QuoteEndpoint(stock.symbol))
                except RateLimitedError:
                    self.status_message = RATE_LIMIT_STATUS
                    logger.warning(f"Watchlist refresh stopped at {stock.symbol}: rate limited")
                    break
                except FetchError as e:
                    logger.warning(f"Skipping {stock.symbol}: {e.description}")
                    continue

                self.prices[stock.symbol] = (quote.price, quote.change_percent_value)
        finally:
            self.is_loading_prices = False

        return self.prices
