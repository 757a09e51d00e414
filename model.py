# ===================================
# model.py - Stock Domain Models
# ===================================

import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field


class PriceTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


class TimePeriod(str, Enum):
    DAY = "1D"
    WEEK = "1W"
    MONTH = "1M"
    THREE_MONTHS = "3M"
    YEAR = "1Y"
    ALL = "ALL"


# Number of trailing data points shown per period; None keeps the full series
PERIOD_POINTS: Dict[TimePeriod, Optional[int]] = {
    TimePeriod.DAY: 7,
    TimePeriod.WEEK: 7,
    TimePeriod.MONTH: 30,
    TimePeriod.THREE_MONTHS: 90,
    TimePeriod.YEAR: 365,
    TimePeriod.ALL: None,
}


def _parse_number(value: str) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class Stock(BaseModel):
    """A symbol search match, also the record kept in watchlist and recents"""
    symbol: str
    name: str
    type: str
    region: str

    @computed_field
    @property
    def display_type(self) -> str:
        return {
            "equity": "Stock",
            "etf": "ETF",
            "crypto": "Crypto",
        }.get(self.type.lower(), self.type)


class StockQuote(BaseModel):
    symbol: str
    price: float = 0.0
    change: float = 0.0
    change_percent: str = ""
    high: float = 0.0
    low: float = 0.0
    open: float = 0.0
    previous_close: float = 0.0
    volume: str = ""

    @property
    def is_positive(self) -> bool:
        return self.change >= 0

    @property
    def formatted_price(self) -> str:
        return f"${self.price:.2f}"

    @property
    def formatted_change(self) -> str:
        sign = "+" if self.is_positive else ""
        return f"{sign}${self.change:.2f}"

    @property
    def formatted_change_percent(self) -> str:
        value = self.change_percent.replace("%", "")
        sign = "" if "-" in self.change_percent else "+"
        return f"{sign}{value}%"

    @property
    def change_percent_value(self) -> float:
        return _parse_number(self.change_percent.replace("%", "")) or 0.0


class PricePoint(BaseModel):
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0
    volume: str = ""


class StockHistory(BaseModel):
    symbol: str
    series: Dict[str, PricePoint] = Field(default_factory=dict)

    @property
    def prices(self) -> List[float]:
        """Close prices ordered by ascending date key"""
        return [self.series[key].close for key in sorted(self.series)]

    def prices_for_period(self, period: TimePeriod) -> List[float]:
        points = PERIOD_POINTS[period]
        prices = self.prices
        if points is None:
            return prices
        return prices[-points:]

    @property
    def trend(self) -> PriceTrend:
        prices = self.prices
        if len(prices) < 2:
            return PriceTrend.NEUTRAL
        first, last = prices[0], prices[-1]
        if last > first:
            return PriceTrend.UP
        if last < first:
            return PriceTrend.DOWN
        return PriceTrend.NEUTRAL


class CompanyOverview(BaseModel):
    symbol: str
    name: str = ""
    description: str = ""
    market_cap: str = ""
    dividend_yield: str = ""
    fifty_two_week_high: str = ""
    fifty_two_week_low: str = ""
    pe_ratio: str = ""
    eps: str = ""

    @property
    def formatted_market_cap(self) -> str:
        value = _parse_number(self.market_cap)
        if value is None:
            return "N/A"
        if value >= 1_000_000_000_000:
            return f"${value / 1_000_000_000_000:.2f}T"
        if value >= 1_000_000_000:
            return f"${value / 1_000_000_000:.2f}B"
        if value >= 1_000_000:
            return f"${value / 1_000_000:.2f}M"
        return f"${self.market_cap}"

    @property
    def formatted_dividend_yield(self) -> str:
        value = _parse_number(self.dividend_yield)
        if value is None:
            return "N/A"
        return f"{value * 100:.2f}%"

    @property
    def formatted_52_week_range(self) -> str:
        high = _parse_number(self.fifty_two_week_high)
        low = _parse_number(self.fifty_two_week_low)
        if high is None or low is None:
            return "N/A"
        return f"${low:.2f} - ${high:.2f}"


class CachedEntry(BaseModel):
    """Envelope written to the cache; cached_at is a POSIX timestamp"""
    payload: dict
    cached_at: float


class UserProfile(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    email: str
    profile_image_path: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def display_name(self) -> str:
        return self.name or self.email

    @property
    def initials(self) -> str:
        parts = self.name.split()
        if len(parts) >= 2:
            return (parts[0][:1] + parts[1][:1]).upper()
        if parts:
            return parts[0][:2].upper()
        return self.email[:2].upper()
