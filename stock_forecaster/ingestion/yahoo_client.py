"""
Yahoo Finance chart API client.

API:   https://query1.finance.yahoo.com/v8/finance/chart/{symbol}
       ?interval=1d&range=1y&includePrePost=false

No API key required.

Response shape (abridged)::

    {"chart": {"result": [{
        "meta": {"symbol": "TCS.NS", "regularMarketPrice": 4102.5,
                 "chartPreviousClose": 4080.0, ...},
        "timestamp": [1718856900, ...],
        "indicators": {"quote": [{"open": [...], "high": [...],
                                  "low": [...], "close": [...],
                                  "volume": [...]}]}
    }], "error": null}}

Bars whose close is missing or zero are dropped.
"""

from __future__ import annotations

import logging
import random
import zlib
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import ClassVar, Optional

import httpx

from stock_forecaster.models.market import PriceBar
from stock_forecaster.utils.time_utils import IST, today_ist

logger = logging.getLogger(__name__)


# ── Response types ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ChartMeta:
    """Quote fields from the chart ``meta`` block."""

    symbol: str
    currency: str = "INR"
    regular_market_price: float = 0.0
    previous_close: float = 0.0
    day_high: Optional[float] = None
    day_low: Optional[float] = None
    volume: Optional[float] = None
    long_name: Optional[str] = None
    market_cap: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None


@dataclass
class ChartResponse:
    """Typed container for one chart fetch."""

    meta: ChartMeta
    bars: list[PriceBar] = field(default_factory=list)
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_fixture: bool = False


# ── Client ─────────────────────────────────────────────────────────────────────

class YahooChartClient:
    """Client for daily chart data.

    Usage (fixture mode, no network)::

        client = YahooChartClient()
        response = client.get_fixture_response("TCS.NS")

    Usage (real API)::

        client = YahooChartClient()
        response = client.fetch_chart("TCS.NS")
    """

    BASE_URL: ClassVar[str] = "https://query1.finance.yahoo.com/v8/finance/chart"

    # Anchor prices for the fixture walk; unknown symbols start at 1400.
    FIXTURE_PRICES: ClassVar[dict[str, float]] = {
        "RELIANCE": 2950.0,
        "TCS": 4100.0,
        "INFY": 1850.0,
        "HDFCBANK": 1650.0,
        "ICICIBANK": 1200.0,
        "SBIN": 820.0,
        "PNB": 105.0,
        "ITC": 465.0,
        "WIPRO": 520.0,
        "MARUTI": 12400.0,
        "^NSEI": 24500.0,
        "^NSEBANK": 52000.0,
        "^BSESN": 80500.0,
    }
    FIXTURE_BARS: ClassVar[int] = 250

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        chart_range: str = "1y",
        chart_interval: str = "1d",
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.chart_range = chart_range
        self.chart_interval = chart_interval
        self._http = http_client or httpx.Client(
            timeout=timeout, headers={"User-Agent": "Mozilla/5.0"}
        )

    def fetch_chart(
        self,
        symbol: str,
        range_: Optional[str] = None,
        interval: Optional[str] = None,
    ) -> ChartResponse:
        """Fetch daily bars and quote meta for ``symbol``.

        ``range_`` and ``interval`` default to the client's configured values.

        Raises:
            httpx.HTTPStatusError: On non-2xx API response.
            ValueError:            If the response carries no chart result.
        """
        resp = self._http.get(
            f"{self.base_url}/{symbol}",
            params={
                "interval": interval or self.chart_interval,
                "range": range_ or self.chart_range,
                "includePrePost": "false",
            },
        )
        resp.raise_for_status()
        response = parse_chart_payload(resp.json(), symbol)
        logger.info("Chart for %s: %d bars", symbol, len(response.bars))
        return response

    # ── Fixture / stub mode ────────────────────────────────────────────────────

    def get_fixture_response(
        self, symbol: str, end_date: Optional[date] = None
    ) -> ChartResponse:
        """Deterministic synthetic chart for ``symbol`` (same symbol, same bars).

        Bars are weekday closes ending at ``end_date`` (default: today on the
        exchange clock).
        """
        base = symbol.split(".")[0].upper()
        anchor = self.FIXTURE_PRICES.get(base, 1400.0)
        rng = random.Random(zlib.crc32(symbol.upper().encode()))

        dates: list[date] = []
        day = end_date or today_ist()
        while len(dates) < self.FIXTURE_BARS:
            if day.weekday() < 5:
                dates.append(day)
            day -= timedelta(days=1)
        dates.reverse()

        bars: list[PriceBar] = []
        price = anchor * 0.9
        for d in dates:
            open_ = price
            price = max(0.01, price * (1 + rng.gauss(0.0004, 0.014) + (anchor - price) * 0.0005 / anchor))
            high = max(open_, price) * (1 + rng.uniform(0.0, 0.01))
            low = min(open_, price) * (1 - rng.uniform(0.0, 0.01))
            bars.append(
                PriceBar(
                    date=d,
                    open=round(open_, 2),
                    high=round(high, 2),
                    low=round(low, 2),
                    close=round(price, 2),
                    volume=float(rng.randint(500_000, 5_000_000)),
                )
            )

        closes = [b.close for b in bars]
        last = bars[-1]
        meta = ChartMeta(
            symbol=symbol,
            regular_market_price=last.close,
            previous_close=bars[-2].close,
            day_high=last.high,
            day_low=last.low,
            volume=last.volume,
            fifty_two_week_high=max(closes),
            fifty_two_week_low=min(closes),
        )
        logger.debug("YahooChartClient: returning %d fixture bars for %s", len(bars), symbol)
        return ChartResponse(meta=meta, bars=bars, is_fixture=True)


# ── Response parser ────────────────────────────────────────────────────────────

def parse_chart_payload(data: dict, symbol: str) -> ChartResponse:
    """Parse a chart JSON payload into typed bars and meta.

    Raises:
        ValueError: If ``chart.result`` is missing or empty.
    """
    results = (data.get("chart") or {}).get("result") or []
    if not results:
        raise ValueError(f"Invalid chart data received for {symbol}.")
    result = results[0]

    raw_meta = result.get("meta") or {}
    meta = ChartMeta(
        symbol=raw_meta.get("symbol", symbol),
        currency=raw_meta.get("currency", "INR"),
        regular_market_price=float(raw_meta.get("regularMarketPrice") or 0.0),
        previous_close=float(
            raw_meta.get("chartPreviousClose") or raw_meta.get("previousClose") or 0.0
        ),
        day_high=raw_meta.get("regularMarketDayHigh") or None,
        day_low=raw_meta.get("regularMarketDayLow") or None,
        volume=raw_meta.get("regularMarketVolume") or None,
        long_name=raw_meta.get("longName") or None,
        market_cap=raw_meta.get("marketCap") or None,
        fifty_two_week_high=raw_meta.get("fiftyTwoWeekHigh") or None,
        fifty_two_week_low=raw_meta.get("fiftyTwoWeekLow") or None,
    )

    timestamps = result.get("timestamp") or []
    quote = ((result.get("indicators") or {}).get("quote") or [{}])[0]

    def _at(key: str, i: int) -> float:
        values = quote.get(key) or []
        return float(values[i] or 0.0) if i < len(values) else 0.0

    bars: list[PriceBar] = []
    for i, ts in enumerate(timestamps):
        close = _at("close", i)
        if not close:
            continue
        bars.append(
            PriceBar(
                date=datetime.fromtimestamp(ts, tz=timezone.utc).astimezone(IST).date(),
                open=_at("open", i),
                high=_at("high", i),
                low=_at("low", i),
                close=close,
                volume=_at("volume", i),
            )
        )

    return ChartResponse(meta=meta, bars=bars, is_fixture=False)
