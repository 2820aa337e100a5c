"""
Tests for stock_forecaster/ingestion/market_data.py.

What we test
------------
format_symbol() / company_name():
  - Suffixing, upper-casing, explicit exchange suffixes kept.

estimate_fundamentals():
  - Sector ranges, EPS derivation, share-count market cap, is_estimated flag.

fetch_stock_data():
  - Primary path: real overview fundamentals + chart prices.
  - Overview failure falls back to estimates; chart failure raises.
  - Fixture mode never touches the overview client.
"""

from __future__ import annotations

import httpx
import pytest

from stock_forecaster.ingestion.alphavantage_client import AlphaVantageClient
from stock_forecaster.ingestion.market_data import (
    MarketDataError,
    company_name,
    estimate_fundamentals,
    estimate_shares,
    fetch_stock_data,
    format_symbol,
    profile_for,
)
from stock_forecaster.ingestion.yahoo_client import ChartMeta, YahooChartClient

CHART = {
    "chart": {"result": [{
        "meta": {"symbol": "TCS.NS", "regularMarketPrice": 4100.0, "chartPreviousClose": 4000.0},
        "timestamp": [1735703100 + i * 86400 for i in range(30)],
        "indicators": {"quote": [{
            "open": [4000.0 + i for i in range(30)],
            "high": [4010.0 + i for i in range(30)],
            "low": [3990.0 + i for i in range(30)],
            "close": [4000.0 + i for i in range(30)],
            "volume": [1_000_000] * 30,
        }]},
    }]}
}

OVERVIEW = {"Symbol": "TCS.NS", "PERatio": "29.4", "ReturnOnEquityTTM": "0.47", "Sector": "TECHNOLOGY"}


def _clients(chart_response: httpx.Response, overview_response: httpx.Response):
    calls = {"chart": 0, "overview": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if "alphavantage" in request.url.host:
            calls["overview"] += 1
            return overview_response
        calls["chart"] += 1
        return chart_response

    http = httpx.Client(transport=httpx.MockTransport(handler))
    return YahooChartClient(http_client=http), AlphaVantageClient(http_client=http), calls


class TestSymbols:
    @pytest.mark.parametrize(
        "raw, expected",
        [("tcs", "TCS.NS"), (" infy ", "INFY.NS"), ("SBIN.BO", "SBIN.BO"), ("TCS.NS", "TCS.NS")],
    )
    def test_format_symbol(self, raw, expected):
        assert format_symbol(raw) == expected

    def test_format_symbol_custom_suffix(self):
        assert format_symbol("TCS", ".BO") == "TCS.BO"

    def test_company_name(self):
        assert company_name("TCS.NS") == "Tata Consultancy Services"
        assert company_name("UNKNOWN.BO") == "UNKNOWN"


class TestEstimateFundamentals:
    def test_midpoint_of_it_ranges(self, midpoint_rng):
        data = estimate_fundamentals("TCS.NS", 4100.0, ChartMeta(symbol="TCS.NS"), midpoint_rng)
        assert data.trailing_pe == pytest.approx(29.0)
        assert data.return_on_equity == pytest.approx(0.285)
        assert data.trailing_eps == pytest.approx(4100.0 / 29.0)
        assert data.market_cap == pytest.approx(50_000_000 * 4100.0)
        assert data.sector == "Technology"
        assert data.is_estimated is True

    def test_chart_market_cap_preferred(self, midpoint_rng):
        meta = ChartMeta(symbol="PNB.NS", market_cap=1.2e12, fifty_two_week_high=140.0)
        data = estimate_fundamentals("PNB.NS", 105.0, meta, midpoint_rng)
        assert data.market_cap == 1.2e12
        assert data.fifty_two_week_high == 140.0
        assert data.industry == "Banks"

    def test_unknown_symbol_uses_default_profile(self, rng):
        data = estimate_fundamentals("ZOMATO.NS", 250.0, ChartMeta(symbol="ZOMATO.NS"), rng)
        assert 20 <= data.trailing_pe <= 33
        assert data.sector == "Diversified"

    def test_profiles(self):
        assert profile_for("SBIN.NS").industry == "Banks"
        assert profile_for("MARUTI").industry == "Auto Manufacturers"

    @pytest.mark.parametrize("price, shares", [(50, 4e8), (300, 2e8), (800, 1e8), (4000, 5e7)])
    def test_share_tiers(self, price, shares):
        assert estimate_shares(price) == shares


class TestFetchStockData:
    def test_primary_path(self):
        chart_client, overview_client, calls = _clients(
            httpx.Response(200, json=CHART), httpx.Response(200, json=OVERVIEW)
        )
        snapshot = fetch_stock_data("tcs", chart_client, overview_client)
        assert snapshot.symbol == "TCS.NS"
        assert snapshot.info.current_price == 4100.0
        assert snapshot.info.change == pytest.approx(100.0)
        assert snapshot.info.change_percent == pytest.approx(2.5)
        assert snapshot.info.trailing_pe == pytest.approx(29.4)
        assert snapshot.info.is_estimated is False
        assert snapshot.info.long_name == "Tata Consultancy Services"
        assert len(snapshot.bars) == 30
        assert snapshot.indicators.sma20 == pytest.approx(sum(4010.0 + i for i in range(20)) / 20)
        assert calls == {"chart": 1, "overview": 1}

    def test_overview_note_falls_back_to_estimates(self, midpoint_rng):
        chart_client, overview_client, _ = _clients(
            httpx.Response(200, json=CHART), httpx.Response(200, json={"Note": "limit"})
        )
        snapshot = fetch_stock_data("TCS", chart_client, overview_client, rng=midpoint_rng)
        assert snapshot.info.is_estimated is True
        assert snapshot.info.trailing_pe == pytest.approx(29.0)

    def test_overview_http_error_falls_back(self, rng):
        chart_client, overview_client, _ = _clients(
            httpx.Response(200, json=CHART), httpx.Response(500)
        )
        assert fetch_stock_data("TCS", chart_client, overview_client, rng=rng).info.is_estimated

    def test_no_overview_client_estimates(self, rng):
        chart_client, _, calls = _clients(httpx.Response(200, json=CHART), httpx.Response(200))
        snapshot = fetch_stock_data("TCS", chart_client, None, rng=rng)
        assert snapshot.info.is_estimated is True
        assert calls["overview"] == 0

    @pytest.mark.parametrize("response", [httpx.Response(500), httpx.Response(200, json={"chart": {"result": []}})])
    def test_chart_failure_raises(self, response):
        chart_client, overview_client, _ = _clients(response, httpx.Response(200, json=OVERVIEW))
        with pytest.raises(MarketDataError, match="TCS.NS") as info:
            fetch_stock_data("TCS", chart_client, overview_client)
        assert info.value.symbol == "TCS.NS"

    def test_fixture_mode_is_offline(self, rng):
        chart_client, overview_client, calls = _clients(
            httpx.Response(500), httpx.Response(500)
        )
        snapshot = fetch_stock_data("INFY", chart_client, overview_client, rng=rng, fixture=True)
        assert calls == {"chart": 0, "overview": 0}
        assert snapshot.symbol == "INFY.NS"
        assert snapshot.info.is_estimated is True
        assert snapshot.info.current_price == snapshot.bars[-1].close
