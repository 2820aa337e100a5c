"""
Dashboard data loader.

Thin cached wrappers around the market-data layer and the forecast engine.
Market data is decorated with ``@st.cache_data`` so widget interactions do
not re-fetch quotes.

Forecasts are cached only when seeded: a seeded run is fully determined by
(symbol, price, horizon, model, seed).  An unseeded forecast is a fresh
stochastic run on every call.

Market-data functions return ``None`` / ``[]`` (rather than raising) when
nothing can be fetched so every view can show a "no data" message.
``forecast_or_none`` does the same for engine failures, after logging them.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import pandas as pd
import streamlit as st

from stock_forecaster.config import AppConfig, load_config
from stock_forecaster.forecasting.engine import run_forecast
from stock_forecaster.forecasting.random_source import default_random_source
from stock_forecaster.forecasting.seeding import resolve_current_price
from stock_forecaster.ingestion.alphavantage_client import AlphaVantageClient
from stock_forecaster.ingestion.indices import IndexQuote, fetch_indices
from stock_forecaster.ingestion.market_data import MarketDataError, fetch_stock_data, format_symbol
from stock_forecaster.ingestion.yahoo_client import YahooChartClient
from stock_forecaster.models.forecast import ForecastRequest, ForecastResult
from stock_forecaster.models.market import MarketSnapshot
from stock_forecaster.taxonomy.archetype_taxonomy import parse_selection
from stock_forecaster.utils.logging import configure_logging
from stock_forecaster.watchlist import Watchlist

logger = logging.getLogger(__name__)


@st.cache_resource
def get_config() -> AppConfig:
    config = load_config()
    configure_logging(config.logging)
    return config


def _chart_client(config: AppConfig) -> YahooChartClient:
    md = config.market_data
    return YahooChartClient(
        base_url=md.chart_base_url,
        timeout=md.timeout_seconds,
        chart_range=md.chart_range,
        chart_interval=md.chart_interval,
    )


@st.cache_data(ttl=300, show_spinner="Fetching market data...")
def load_snapshot(symbol: str, fixture: bool) -> Optional[MarketSnapshot]:
    """Quote, bars, indicators and fundamentals for ``symbol``, or ``None``."""
    config = get_config()
    md = config.market_data
    try:
        return fetch_stock_data(
            format_symbol(symbol, md.default_exchange_suffix),
            _chart_client(config),
            AlphaVantageClient(
                api_key=os.environ.get("ALPHA_VANTAGE_API_KEY"),
                base_url=md.overview_base_url,
                timeout=md.timeout_seconds,
            ),
            fixture=fixture,
        )
    except MarketDataError as exc:
        logger.warning("Dashboard could not load %s: %s", symbol, exc)
        return None


@st.cache_data(ttl=60, show_spinner=False)
def load_indices(fixture: bool) -> list[IndexQuote]:
    try:
        return fetch_indices(_chart_client(get_config()), fixture=fixture)
    except MarketDataError as exc:
        logger.warning("Dashboard could not load indices: %s", exc)
        return []


def load_watchlist() -> Watchlist:
    """The watchlist file from config; read fresh on every rerun.

    Raises:
        ValueError: If the file is malformed.
    """
    return Watchlist.load(Path(get_config().watchlist.path))


# ── Forecasts ─────────────────────────────────────────────────────────────────

def build_forecast(
    symbol: str,
    current_price: Optional[float],
    days: int,
    model: str,
    seed: Optional[int],
) -> ForecastResult:
    """Run the engine once.  Exceptions propagate."""
    config = get_config()
    request = ForecastRequest(
        symbol=symbol,
        current_price=resolve_current_price(current_price, config.forecast.demo_fallback_price),
        days=days,
        selection=parse_selection(model),
    )
    return run_forecast(
        request,
        rng=default_random_source(seed),
        history_points=config.forecast.history_points,
    )


@st.cache_data(show_spinner="Running forecast...")
def _load_seeded_forecast(
    symbol: str,
    current_price: Optional[float],
    days: int,
    model: str,
    seed: int,
) -> ForecastResult:
    return build_forecast(symbol, current_price, days, model, seed)


def load_forecast(
    symbol: str,
    current_price: Optional[float],
    days: int,
    model: str,
    seed: Optional[int],
) -> ForecastResult:
    """Cached when ``seed`` is given; otherwise a fresh run every call."""
    if seed is None:
        return build_forecast(symbol, current_price, days, model, None)
    return _load_seeded_forecast(symbol, current_price, days, model, seed)


def forecast_or_none(
    symbol: str,
    current_price: Optional[float],
    days: int,
    model: str,
    seed: Optional[int],
) -> Optional[ForecastResult]:
    """``load_forecast``, with any engine failure logged and mapped to ``None``."""
    try:
        return load_forecast(symbol, current_price, days, model, seed)
    except Exception:
        logger.exception("Forecast failed for %s", symbol)
        return None


def forecast_chart_frame(
    result: ForecastResult,
    snapshot: Optional[MarketSnapshot],
    history_days: int = 60,
) -> pd.DataFrame:
    """Recent closes followed by the forecast and its band, indexed by date."""
    rows: list[dict] = []
    if snapshot is not None:
        for bar in snapshot.bars[-history_days:]:
            rows.append({"date": bar.date, "actual": bar.close})
    for p in result.primary:
        rows.append({
            "date": p.date,
            "predicted": p.predicted_price,
            "upper": p.upper_bound,
            "lower": p.lower_bound,
        })
    frame = pd.DataFrame(rows, columns=["date", "actual", "predicted", "upper", "lower"])
    frame["date"] = pd.to_datetime(frame["date"])
    return frame.set_index("date").sort_index()
