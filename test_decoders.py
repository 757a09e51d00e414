# test_decoders.py - Payload Decoder Tests
import copy

import pytest

from conftest import MOCK_DAILY_RESPONSE, MOCK_OVERVIEW_RESPONSE, MOCK_QUOTE_RESPONSE, MOCK_SEARCH_RESPONSE
from decoders import extract_company_overview, extract_history, extract_quote, extract_search_results
from errors import DecodingError
from model import PriceTrend, Stock, StockHistory, PricePoint, TimePeriod


class TestQuoteDecoder:
    def test_numeric_fields_are_coerced(self):
        quote = extract_quote(MOCK_QUOTE_RESPONSE)
        assert quote.symbol == "AAPL"
        assert quote.price == 150.25
        assert quote.change == 2.5
        assert quote.previous_close == 147.75
        assert quote.volume == "50000000"
        assert quote.change_percent == "1.6920%"

    def test_unparsable_price_falls_back_to_zero(self):
        payload = copy.deepcopy(MOCK_QUOTE_RESPONSE)
        payload["Global Quote"]["05. price"] = "not-a-number"
        assert extract_quote(payload).price == 0.0

    def test_empty_quote_is_decoding_error(self):
        with pytest.raises(DecodingError):
            extract_quote({"Global Quote": {}})

    def test_formatting(self):
        quote = extract_quote(MOCK_QUOTE_RESPONSE)
        assert quote.formatted_price == "$150.25"
        assert quote.formatted_change == "+$2.50"
        assert quote.formatted_change_percent == "+1.6920%"
        assert quote.change_percent_value == pytest.approx(1.692)


class TestSearchDecoder:
    def test_matches_and_display_type(self):
        results = extract_search_results(MOCK_SEARCH_RESPONSE)
        assert [s.symbol for s in results] == ["AAPL", "APLE"]
        assert results[0].display_type == "Stock"
        assert results[1].display_type == "ETF"

    @pytest.mark.parametrize("raw, shown", [
        ("EQUITY", "Stock"),
        ("Crypto", "Crypto"),
        ("Mutual Fund", "Mutual Fund"),
    ])
    def test_display_type_mapping(self, raw, shown):
        assert Stock(symbol="X", name="X", type=raw, region="US").display_type == shown

    def test_missing_matches_is_decoding_error(self):
        with pytest.raises(DecodingError):
            extract_search_results({})


class TestHistoryDecoder:
    def test_daily_series(self):
        history = extract_history(MOCK_DAILY_RESPONSE)
        assert history.symbol == "AAPL"
        assert history.prices == [185.64, 184.25, 181.91]
        assert history.trend == PriceTrend.DOWN

    def test_only_daily_key_present(self):
        payload = {"Time Series (Daily)": MOCK_DAILY_RESPONSE["Time Series (Daily)"]}
        history = extract_history(payload, symbol="AAPL")
        assert len(history.series) == 3

    def test_no_known_key_yields_empty_series(self):
        history = extract_history({"Meta Data": {"2. Symbol": "AAPL"}})
        assert history.series == {}
        assert history.trend == PriceTrend.NEUTRAL

    def test_monthly_preferred_over_daily(self):
        payload = dict(MOCK_DAILY_RESPONSE)
        payload["Monthly Time Series"] = {
            "2023-12-29": {"1. open": "1", "2. high": "2", "3. low": "1", "4. close": "1.5", "5. volume": "10"},
        }
        assert list(extract_history(payload).series) == ["2023-12-29"]

    def test_unparsable_monthly_falls_through_to_daily(self):
        payload = dict(MOCK_DAILY_RESPONSE)
        payload["Monthly Time Series"] = "garbage"
        assert len(extract_history(payload).series) == 3

    def test_intraday_key(self):
        payload = {"Time Series (60min)": {
            "2024-01-05 16:00:00": {"1. open": "1", "2. high": "2", "3. low": "1", "4. close": "x", "5. volume": "10"},
        }}
        history = extract_history(payload, symbol="IBM")
        assert history.series["2024-01-05 16:00:00"].close == 0.0


class TestHistoryModel:
    def make(self, closes):
        return StockHistory(symbol="T", series={
            f"2024-01-{i + 1:02d}": PricePoint(close=c) for i, c in enumerate(closes)
        })

    def test_trend(self):
        assert self.make([1, 2]).trend == PriceTrend.UP
        assert self.make([2, 1]).trend == PriceTrend.DOWN
        assert self.make([2, 5, 2]).trend == PriceTrend.NEUTRAL
        assert self.make([2]).trend == PriceTrend.NEUTRAL

    def test_prices_for_period(self):
        history = self.make(list(range(20)))
        assert history.prices_for_period(TimePeriod.WEEK) == list(range(13, 20))
        assert history.prices_for_period(TimePeriod.MONTH) == list(range(20))
        assert history.prices_for_period(TimePeriod.ALL) == list(range(20))


class TestOverviewDecoder:
    def test_overview_fields_and_formatting(self):
        overview = extract_company_overview(MOCK_OVERVIEW_RESPONSE)
        assert overview.name == "Apple Inc"
        assert overview.formatted_market_cap == "$2.50T"
        assert overview.formatted_dividend_yield == "0.55%"
        assert overview.formatted_52_week_range == "$143.90 - $199.62"

    def test_missing_values_format_as_na(self):
        overview = extract_company_overview({"Symbol": "XYZ", "DividendYield": "None"})
        assert overview.formatted_dividend_yield == "N/A"
        assert overview.formatted_market_cap == "N/A"

    def test_empty_overview_is_decoding_error(self):
        with pytest.raises(DecodingError):
            extract_company_overview({})
