# ===================================
# stock_client.py - Rate-Limited Alpha Vantage Client
# ===================================

import asyncio
import logging
from typing import Any, Optional

import requests

from classifier import (
    ApiErrorOutcome,
    Malformed,
    RateLimited,
    Success,
    TransportOutcome,
    Unauthorized,
    classify_response,
)
from endpoints import Endpoint
from errors import (
    ApiError,
    DecodingError,
    FetchError,
    NoDataError,
    RateLimitedError,
    TransportError,
    UnauthorizedError,
    UnknownFetchError,
)
from rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.alphavantage.co/query"


class StockDataClient:
    """Single entry point for every Alpha Vantage call.

    Each fetch is admitted by the shared RateLimiter, sent as one GET request,
    classified, then decoded by the endpoint. Failures are raised as
    FetchError subclasses; the client never retries, callers decide how to
    react to a rate limit.
    """

    def __init__(self, api_key: str, rate_limiter: RateLimiter,
                 base_url: str = DEFAULT_BASE_URL,
                 request_timeout: float = 30, resource_timeout: float = 60,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.rate_limiter = rate_limiter
        self.base_url = base_url
        self.request_timeout = request_timeout
        self.resource_timeout = resource_timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    @classmethod
    def from_settings(cls, settings, rate_limiter: Optional[RateLimiter] = None) -> "StockDataClient":
        limiter = rate_limiter or RateLimiter(settings.rate_limit_requests, settings.rate_limit_window)
        return cls(
            api_key=settings.alpha_vantage_api_key,
            rate_limiter=limiter,
            base_url=settings.alpha_vantage_base_url,
            request_timeout=settings.request_timeout,
            resource_timeout=settings.resource_timeout,
        )

    def _get(self, params: dict) -> requests.Response:
        return self.session.get(self.base_url, params=params, timeout=self.request_timeout)

    async def fetch(self, endpoint: Endpoint) -> Any:
        """Fetch and decode one endpoint, raising a FetchError on any failure"""
        if not self.rate_limiter.try_admit():
            logger.warning(f"{endpoint.name} not sent: client-side rate limit reached")
            raise RateLimitedError()

        params = endpoint.to_query(self.api_key)
        logger.info(f"Fetching {endpoint.name} ({params['function']}) {endpoint.params()}")

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self._get, params),
                timeout=self.resource_timeout,
            )
        except (requests.exceptions.RequestException, asyncio.TimeoutError, OSError) as e:
            logger.error(f"Request failed for {endpoint.name}: {e}")
            raise UnknownFetchError(e) from e

        outcome = classify_response(response.status_code, response.content)

        if isinstance(outcome, Success):
            try:
                return endpoint.decode(outcome.payload)
            except DecodingError:
                logger.warning(f"Could not decode {endpoint.name} response")
                raise
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Could not decode {endpoint.name} response: {e}")
                raise DecodingError() from e

        error = self._error_for(outcome)
        logger.warning(f"{endpoint.name} failed: {error.description}")
        raise error

    @staticmethod
    def _error_for(outcome) -> FetchError:
        if isinstance(outcome, Unauthorized):
            return UnauthorizedError()
        if isinstance(outcome, RateLimited):
            return RateLimitedError()
        if isinstance(outcome, ApiErrorOutcome):
            return ApiError(outcome.message)
        if isinstance(outcome, TransportOutcome):
            return TransportError(outcome.status_code)
        if isinstance(outcome, Malformed) and outcome.reason == "empty":
            return NoDataError()
        return DecodingError()

    def remaining_requests(self) -> int:
        return self.rate_limiter.remaining_capacity()

    def reset_limiter(self) -> None:
        self.rate_limiter.reset()

    def close(self) -> None:
        self.session.close()
