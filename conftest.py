# conftest.py - Shared Test Fixtures

import json
from unittest.mock import Mock

import pytest

from rate_limiter import RateLimiter
from stock_client import StockDataClient

# Mock data for testing
MOCK_QUOTE_RESPONSE = {
    "Global Quote": {
        "01. symbol": "AAPL",
        "02. open": "148.00",
        "03. high": "151.00",
        "04. low": "147.50",
        "05. price": "150.25",
        "06. volume": "50000000",
        "07. latest trading day": "2024-01-05",
        "08. previous close": "147.75",
        "09. change": "2.50",
        "10. change percent": "1.6920%"
    }
}

MOCK_SEARCH_RESPONSE = {
    "bestMatches": [
        {"1. symbol": "AAPL", "2. name": "Apple Inc", "3. type": "Equity", "4. region": "United States",
         "8. currency": "USD", "9. matchScore": "1.0000"},
        {"1. symbol": "APLE", "2. name": "Apple Hospitality REIT Inc", "3. type": "ETF",
         "4. region": "United States", "8. currency": "USD", "9. matchScore": "0.6667"},
    ]
}

MOCK_DAILY_RESPONSE = {
    "Meta Data": {"1. Information": "Daily Prices", "2. Symbol": "AAPL"},
    "Time Series (Daily)": {
        "2024-01-03": {"1. open": "184.2", "2. high": "185.9", "3. low": "183.4",
                       "4. close": "184.25", "5. volume": "58414460"},
        "2024-01-02": {"1. open": "187.15", "2. high": "188.44", "3. low": "183.89",
                       "4. close": "185.64", "5. volume": "82488674"},
        "2024-01-04": {"1. open": "182.15", "2. high": "183.09", "3. low": "180.88",
                       "4. close": "181.91", "5. volume": "71983570"},
    }
}

MOCK_OVERVIEW_RESPONSE = {
    "Symbol": "AAPL",
    "Name": "Apple Inc",
    "Description": "Apple Inc. designs, manufactures, and markets smartphones...",
    "MarketCapitalization": "2500000000000",
    "DividendYield": "0.0055",
    "52WeekHigh": "199.62",
    "52WeekLow": "143.90",
    "PERatio": "25.5",
    "EPS": "6.13"
}

MOCK_RATE_LIMIT_RESPONSE = {
    "Note": "Thank you for using Alpha Vantage! Our standard API rate limit is 25 requests per day."
}


class FakeClock:
    """Manually advanced clock for time-dependent tests"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_response(body, status_code: int = 200) -> Mock:
    """Mock requests.Response carrying a JSON (or raw bytes) body"""
    response = Mock()
    response.status_code = status_code
    response.content = body if isinstance(body, bytes) else json.dumps(body).encode()
    return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    """Mock requests session answering every call with a quote"""
    mock = Mock()
    mock.get.return_value = make_response(MOCK_QUOTE_RESPONSE)
    return mock


@pytest.fixture
def limiter(clock):
    return RateLimiter(max_requests=5, window_seconds=60, clock=clock)


@pytest.fixture
def client(session, limiter):
    return StockDataClient(api_key="TESTKEY", rate_limiter=limiter, session=session)
