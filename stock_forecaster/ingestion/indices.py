"""
Benchmark index quotes: NIFTY 50, Bank Nifty and Sensex.

Each index is read from the same chart endpoint as equities, using an
intraday window (``range=1d``, ``interval=1m``)::

    key        name         chart symbol
    NIFTY      Nifty 50     ^NSEI
    BANKNIFTY  Bank Nifty   ^NSEBANK
    SENSEX     Sensex       ^BSESN

``fetch_indices`` returns whichever indices could be fetched; it raises
``MarketDataError`` only when all of them fail.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, ConfigDict

from stock_forecaster.ingestion.market_data import MarketDataError
from stock_forecaster.ingestion.yahoo_client import ChartResponse, YahooChartClient

logger = logging.getLogger(__name__)

INDICES: dict[str, tuple[str, str]] = {
    "NIFTY": ("Nifty 50", "^NSEI"),
    "BANKNIFTY": ("Bank Nifty", "^NSEBANK"),
    "SENSEX": ("Sensex", "^BSESN"),
}

RECENT_POINTS = 10


class IndexQuote(BaseModel):
    """Latest level of one benchmark index."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    symbol: str
    price: float
    change: float
    change_percent: float
    high: float
    low: float
    volume: float
    recent: tuple[float, ...]
    """Last few intraday closes, oldest first (sparkline)."""


def quote_from_chart(key: str, chart: ChartResponse) -> IndexQuote:
    name, symbol = INDICES[key]
    meta = chart.meta
    price = meta.regular_market_price
    previous_close = meta.previous_close
    change = price - previous_close
    recent = tuple(b.close for b in chart.bars[-RECENT_POINTS:] if b.close > 0)
    return IndexQuote(
        key=key,
        name=name,
        symbol=symbol,
        price=price,
        change=change,
        change_percent=change / previous_close * 100 if previous_close else 0.0,
        high=meta.day_high or price,
        low=meta.day_low or price,
        volume=meta.volume or 0.0,
        recent=recent or (price,),
    )


def fetch_index(key: str, chart_client: YahooChartClient, fixture: bool = False) -> IndexQuote:
    """Fetch one index by key (``NIFTY``, ``BANKNIFTY`` or ``SENSEX``).

    Raises:
        ValueError:      Unknown index key.
        MarketDataError: If the chart cannot be retrieved.
    """
    key = key.upper()
    if key not in INDICES:
        raise ValueError(f"Unknown index '{key}'. Valid: {sorted(INDICES)}")
    symbol = INDICES[key][1]
    if fixture:
        chart = chart_client.get_fixture_response(symbol)
    else:
        try:
            chart = chart_client.fetch_chart(symbol, range_="1d", interval="1m")
        except (httpx.HTTPError, ValueError) as exc:
            raise MarketDataError(symbol, str(exc)) from exc
    return quote_from_chart(key, chart)


def fetch_indices(chart_client: YahooChartClient, fixture: bool = False) -> list[IndexQuote]:
    """Fetch every index in ``INDICES``; failures are logged and skipped.

    Raises:
        MarketDataError: If no index could be fetched.
    """
    quotes: list[IndexQuote] = []
    for key in INDICES:
        try:
            quotes.append(fetch_index(key, chart_client, fixture=fixture))
        except MarketDataError as exc:
            logger.warning("Index %s unavailable: %s", key, exc)
    if not quotes:
        raise MarketDataError("indices", "no index data received")
    logger.info("Fetched %d/%d indices", len(quotes), len(INDICES))
    return quotes
