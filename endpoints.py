# ===================================
# endpoints.py - Alpha Vantage Endpoint Descriptors
# ===================================

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from decoders import extract_company_overview, extract_history, extract_quote, extract_search_results
from errors import InvalidEndpointError
from model import CompanyOverview, Stock, StockHistory, StockQuote


class Endpoint(ABC):
    """One logical Alpha Vantage call: a function name, its parameters and a decoder"""

    function: str = ""
    name: str = ""

    @abstractmethod
    def params(self) -> Dict[str, str]:
        ...

    def to_query(self, api_key: str) -> Dict[str, str]:
        """Complete query string parameters, including the shared API key"""
        query = {"function": self.function}
        query.update(self.params())
        query["apikey"] = api_key
        return query

    @abstractmethod
    def decode(self, payload: Dict[str, Any]) -> Any:
        ...


def _require_value(field: str, value: str) -> str:
    if not value or not value.strip():
        raise InvalidEndpointError(f"Endpoint parameter '{field}' cannot be empty")
    return value.strip()


@dataclass(frozen=True)
class QuoteEndpoint(Endpoint):
    symbol: str

    function = "GLOBAL_QUOTE"
    name = "Quote"

    def params(self) -> Dict[str, str]:
        return {"symbol": _require_value("symbol", self.symbol)}

    def decode(self, payload: Dict[str, Any]) -> StockQuote:
        return extract_quote(payload)


@dataclass(frozen=True)
class SearchEndpoint(Endpoint):
    keywords: str

    function = "SYMBOL_SEARCH"
    name = "Symbol Search"

    def params(self) -> Dict[str, str]:
        return {"keywords": _require_value("keywords", self.keywords)}

    def decode(self, payload: Dict[str, Any]) -> List[Stock]:
        return extract_search_results(payload)


class TimeSeriesInterval(str, Enum):
    INTRADAY = "intraday"
    DAILY = "daily"
    MONTHLY = "monthly"


TIME_SERIES_FUNCTIONS = {
    TimeSeriesInterval.INTRADAY: "TIME_SERIES_INTRADAY",
    TimeSeriesInterval.DAILY: "TIME_SERIES_DAILY",
    TimeSeriesInterval.MONTHLY: "TIME_SERIES_MONTHLY",
}


@dataclass(frozen=True)
class TimeSeriesEndpoint(Endpoint):
    symbol: str
    interval: TimeSeriesInterval = TimeSeriesInterval.DAILY
    intraday_interval: str = "60min"

    name = "Time Series"

    @property
    def function(self) -> str:
        return TIME_SERIES_FUNCTIONS[self.interval]

    def params(self) -> Dict[str, str]:
        params = {"symbol": _require_value("symbol", self.symbol)}
        if self.interval == TimeSeriesInterval.INTRADAY:
            params["interval"] = self.intraday_interval
            params["outputsize"] = "full"
        elif self.interval == TimeSeriesInterval.DAILY:
            params["outputsize"] = "full"
        return params

    def decode(self, payload: Dict[str, Any]) -> StockHistory:
        return extract_history(payload, symbol=self.symbol)


@dataclass(frozen=True)
class CompanyOverviewEndpoint(Endpoint):
    symbol: str

    function = "OVERVIEW"
    name = "Company Overview"

    def params(self) -> Dict[str, str]:
        return {"symbol": _require_value("symbol", self.symbol)}

    def decode(self, payload: Dict[str, Any]) -> CompanyOverview:
        return extract_company_overview(payload)
