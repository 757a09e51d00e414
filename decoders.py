# ===================================
# decoders.py - Alpha Vantage Payload Decoders
# ===================================

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from errors import DecodingError
from model import CompanyOverview, PricePoint, Stock, StockHistory, StockQuote
from utils import to_float

logger = logging.getLogger(__name__)

QUOTE_FIELDS = {
    "symbol": "01. symbol",
    "open": "02. open",
    "high": "03. high",
    "low": "04. low",
    "price": "05. price",
    "volume": "06. volume",
    "previous_close": "08. previous close",
    "change": "09. change",
    "change_percent": "10. change percent",
}
QUOTE_NUMERIC_FIELDS = ("open", "high", "low", "price", "previous_close", "change")

SEARCH_FIELDS = {
    "symbol": "1. symbol",
    "name": "2. name",
    "type": "3. type",
    "region": "4. region",
}

POINT_FIELDS = {
    "open": "1. open",
    "high": "2. high",
    "low": "3. low",
    "close": "4. close",
    "volume": "5. volume",
}

MONTHLY_SERIES_KEY = "Monthly Time Series"
DAILY_SERIES_KEY = "Time Series (Daily)"
INTRADAY_SERIES_KEYS = tuple(
    f"Time Series ({interval})" for interval in ("60min", "30min", "15min", "5min", "1min")
)

OVERVIEW_FIELDS = {
    "symbol": "Symbol",
    "name": "Name",
    "description": "Description",
    "market_cap": "MarketCapitalization",
    "dividend_yield": "DividendYield",
    "fifty_two_week_high": "52WeekHigh",
    "fifty_two_week_low": "52WeekLow",
    "pe_ratio": "PERatio",
    "eps": "EPS",
}


def _require(container: Any, key: str) -> Any:
    if not isinstance(container, dict) or key not in container:
        raise DecodingError(f"Missing field '{key}'")
    return container[key]


def _require_string(container: Any, key: str) -> str:
    value = _require(container, key)
    if not isinstance(value, str):
        raise DecodingError(f"Field '{key}' is not a string")
    return value


# ===================================
# QUOTE
# ===================================

def extract_quote(payload: Dict[str, Any]) -> StockQuote:
    """Decode a GLOBAL_QUOTE response"""
    quote = _require(payload, "Global Quote")
    values = {name: _require_string(quote, key) for name, key in QUOTE_FIELDS.items()}
    for name in QUOTE_NUMERIC_FIELDS:
        values[name] = to_float(values[name])
    return StockQuote(**values)


# ===================================
# SYMBOL SEARCH
# ===================================

def extract_search_results(payload: Dict[str, Any]) -> List[Stock]:
    """Decode a SYMBOL_SEARCH response into its list of matches"""
    matches = _require(payload, "bestMatches")
    if not isinstance(matches, list):
        raise DecodingError("'bestMatches' is not a list")
    return [
        Stock(**{name: _require_string(match, key) for name, key in SEARCH_FIELDS.items()})
        for match in matches
    ]


# ===================================
# TIME SERIES
# ===================================

def _parse_series(raw: Any) -> Dict[str, PricePoint]:
    if not isinstance(raw, dict):
        raise DecodingError("Time series container is not a mapping")
    series = {}
    for date_key, point in raw.items():
        values = {name: _require_string(point, key) for name, key in POINT_FIELDS.items()}
        series[date_key] = PricePoint(
            open=to_float(values["open"]),
            high=to_float(values["high"]),
            low=to_float(values["low"]),
            close=to_float(values["close"]),
            volume=values["volume"],
        )
    return series


# Tried in order; the first key that is present and parses wins
SERIES_ATTEMPTS: List[Tuple[str, Callable[[Any], Dict[str, PricePoint]]]] = (
    [(MONTHLY_SERIES_KEY, _parse_series), (DAILY_SERIES_KEY, _parse_series)]
    + [(key, _parse_series) for key in INTRADAY_SERIES_KEYS]
)


def extract_history(payload: Dict[str, Any], symbol: Optional[str] = None) -> StockHistory:
    """Decode any of the monthly, daily or intraday time series responses.

    The symbol comes from ``Meta Data`` when present, otherwise from the
    requesting endpoint. A payload with none of the known series keys yields
    an empty series.
    """
    meta = payload.get("Meta Data")
    meta_symbol = meta.get("2. Symbol") if isinstance(meta, dict) else None
    resolved_symbol = meta_symbol if isinstance(meta_symbol, str) else symbol
    if resolved_symbol is None:
        raise DecodingError("Time series response has no symbol")

    for key, parser in SERIES_ATTEMPTS:
        if key not in payload:
            continue
        try:
            series = parser(payload[key])
        except DecodingError as e:
            logger.debug(f"Skipping '{key}' for {resolved_symbol}: {e}")
            continue
        return StockHistory(symbol=resolved_symbol, series=series)

    return StockHistory(symbol=resolved_symbol, series={})


# ===================================
# COMPANY OVERVIEW
# ===================================

def extract_company_overview(payload: Dict[str, Any]) -> CompanyOverview:
    """Decode an OVERVIEW response"""
    values = {"symbol": _require_string(payload, "Symbol")}
    for name, key in OVERVIEW_FIELDS.items():
        if name == "symbol":
            continue
        value = payload.get(key)
        values[name] = value if isinstance(value, str) else ""
    return CompanyOverview(**values)
