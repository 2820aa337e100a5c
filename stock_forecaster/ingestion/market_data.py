"""
Market-data assembly: one ``MarketSnapshot`` per symbol.

Primary path
------------
    Alpha Vantage overview (fundamentals) + Yahoo chart (prices).

Fallback path (overview failed or no overview client)
-----------------------------------------------------
    Yahoo chart + sector-estimated fundamentals, flagged ``is_estimated``.

A chart failure has no fallback and raises ``MarketDataError``.

Sector estimate ranges (low + U(0,1) * span)::

    sector   P/E        P/B        ROE          curr. ratio  D/E        beta        div. yield
    banks    8.5+6      0.8+1.2    0.14+0.06    1.05+0.15    28+15      0.95+0.3    0.025+0.02
    it       24+10      5+5        0.22+0.13    2.8+1.2      3+7        0.85+0.35   0.02+0.015
    energy   14+8       1.4+1.6    0.10+0.10    1.4+0.6      18+22      1.05+0.45   0.035+0.035
    auto     16+11      2.2+2.3    0.12+0.10    1.6+0.7      22+28      1.15+0.55   0.015+0.025
    other    20+13      2.8+2.7    0.14+0.08    1.9+0.9      28+22      0.95+0.55   0.02+0.02

EPS is derived as ``price / P/E``; market cap, when the chart has none,
from a price-tiered share count.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from stock_forecaster.analysis.indicators import compute_indicators
from stock_forecaster.forecasting.random_source import RandomSource, default_random_source
from stock_forecaster.ingestion.alphavantage_client import AlphaVantageClient, DataUnavailableError
from stock_forecaster.ingestion.yahoo_client import ChartMeta, ChartResponse, YahooChartClient
from stock_forecaster.models.market import FundamentalData, MarketSnapshot, StockInfo

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".NS"


class MarketDataError(RuntimeError):
    """Raised when price data for a symbol cannot be retrieved.

    Attributes:
        symbol: The formatted symbol that was requested.
    """

    def __init__(self, symbol: str, reason: str) -> None:
        self.symbol = symbol
        super().__init__(f"Failed to fetch stock data for '{symbol}': {reason}")


# ── Symbol reference data ──────────────────────────────────────────────────────

COMPANY_NAMES: dict[str, str] = {
    "RELIANCE":   "Reliance Industries Limited",
    "TCS":        "Tata Consultancy Services",
    "INFY":       "Infosys Limited",
    "HDFCBANK":   "HDFC Bank Limited",
    "ICICIBANK":  "ICICI Bank Limited",
    "KOTAKBANK":  "Kotak Mahindra Bank",
    "BHARTIARTL": "Bharti Airtel Limited",
    "ITC":        "ITC Limited",
    "SBIN":       "State Bank of India",
    "LT":         "Larsen & Toubro Limited",
    "ASIANPAINT": "Asian Paints Limited",
    "MARUTI":     "Maruti Suzuki India Limited",
    "TATASTEEL":  "Tata Steel Limited",
    "ONGC":       "Oil and Natural Gas Corporation",
    "NTPC":       "NTPC Limited",
    "POWERGRID":  "Power Grid Corporation of India",
    "ULTRACEMCO": "UltraTech Cement Limited",
    "NESTLEIND":  "Nestle India Limited",
    "WIPRO":      "Wipro Limited",
    "TECHM":      "Tech Mahindra Limited",
    "PNB":        "Punjab National Bank",
}

SECTORS: dict[str, str] = {
    "TCS": "Technology", "INFY": "Technology", "WIPRO": "Technology", "TECHM": "Technology",
    "RELIANCE": "Energy", "ONGC": "Energy",
    "HDFCBANK": "Financial Services", "ICICIBANK": "Financial Services",
    "KOTAKBANK": "Financial Services", "SBIN": "Financial Services", "PNB": "Financial Services",
    "BHARTIARTL": "Communication Services",
    "ITC": "Tobacco",
    "NESTLEIND": "Food Products",
    "MARUTI": "Auto Manufacturers",
    "ASIANPAINT": "Materials", "ULTRACEMCO": "Materials", "TATASTEEL": "Materials",
    "LT": "Industrials",
    "NTPC": "Utilities", "POWERGRID": "Utilities",
}

INDUSTRIES: dict[str, str] = {
    "TCS": "Information Technology Services", "INFY": "Information Technology Services",
    "WIPRO": "Information Technology Services", "TECHM": "Information Technology Services",
    "RELIANCE": "Oil & Gas Refining & Marketing",
    "ONGC": "Oil & Gas Exploration & Production",
    "HDFCBANK": "Banks", "ICICIBANK": "Banks", "KOTAKBANK": "Banks",
    "SBIN": "Banks", "PNB": "Banks",
    "BHARTIARTL": "Telecom Services",
    "ITC": "Tobacco",
    "NESTLEIND": "Food Products",
    "MARUTI": "Auto Manufacturers",
    "ASIANPAINT": "Specialty Chemicals",
    "ULTRACEMCO": "Building Materials",
    "TATASTEEL": "Steel",
    "LT": "Engineering & Construction",
    "NTPC": "Electric Utilities", "POWERGRID": "Electric Utilities",
}


def format_symbol(symbol: str, suffix: str = DEFAULT_SUFFIX) -> str:
    """Append the exchange suffix to bare symbols: ``TCS -> TCS.NS``."""
    symbol = symbol.strip().upper()
    return symbol if "." in symbol else f"{symbol}{suffix}"


def base_symbol(symbol: str) -> str:
    return symbol.upper().replace(".NS", "").replace(".BO", "")


def company_name(symbol: str) -> str:
    base = base_symbol(symbol)
    return COMPANY_NAMES.get(base, base)


def default_sector(symbol: str) -> str:
    return SECTORS.get(base_symbol(symbol), "Diversified")


def default_industry(symbol: str) -> str:
    return INDUSTRIES.get(base_symbol(symbol), "Diversified")


# ── Sector estimates ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SectorProfile:
    """Estimate ranges as ``(low, span)`` pairs."""

    members: frozenset[str]
    pe: tuple[float, float]
    pb: tuple[float, float]
    roe: tuple[float, float]
    current_ratio: tuple[float, float]
    debt_to_equity: tuple[float, float]
    beta: tuple[float, float]
    dividend_yield: tuple[float, float]
    sector: Optional[str] = None
    industry: Optional[str] = None


SECTOR_PROFILES: tuple[SectorProfile, ...] = (
    SectorProfile(
        members=frozenset({"PNB", "SBIN", "HDFCBANK", "ICICIBANK", "KOTAKBANK", "AXISBANK"}),
        pe=(8.5, 6), pb=(0.8, 1.2), roe=(0.14, 0.06), current_ratio=(1.05, 0.15),
        debt_to_equity=(28, 15), beta=(0.95, 0.3), dividend_yield=(0.025, 0.02),
        sector="Financial Services", industry="Banks",
    ),
    SectorProfile(
        members=frozenset({"TCS", "INFY", "WIPRO", "TECHM", "HCLTECH", "LTI"}),
        pe=(24, 10), pb=(5, 5), roe=(0.22, 0.13), current_ratio=(2.8, 1.2),
        debt_to_equity=(3, 7), beta=(0.85, 0.35), dividend_yield=(0.02, 0.015),
        sector="Technology", industry="Information Technology Services",
    ),
    SectorProfile(
        members=frozenset({"RELIANCE", "ONGC", "IOC", "BPCL", "HPCL"}),
        pe=(14, 8), pb=(1.4, 1.6), roe=(0.10, 0.10), current_ratio=(1.4, 0.6),
        debt_to_equity=(18, 22), beta=(1.05, 0.45), dividend_yield=(0.035, 0.035),
        sector="Energy", industry="Oil & Gas Refining & Marketing",
    ),
    SectorProfile(
        members=frozenset({"MARUTI", "TATAMOTORS", "M&M", "BAJAJ-AUTO", "HEROMOTOCO"}),
        pe=(16, 11), pb=(2.2, 2.3), roe=(0.12, 0.10), current_ratio=(1.6, 0.7),
        debt_to_equity=(22, 28), beta=(1.15, 0.55), dividend_yield=(0.015, 0.025),
        sector="Consumer Cyclical", industry="Auto Manufacturers",
    ),
)

DEFAULT_PROFILE = SectorProfile(
    members=frozenset(),
    pe=(20, 13), pb=(2.8, 2.7), roe=(0.14, 0.08), current_ratio=(1.9, 0.9),
    debt_to_equity=(28, 22), beta=(0.95, 0.55), dividend_yield=(0.02, 0.02),
)


def profile_for(symbol: str) -> SectorProfile:
    base = base_symbol(symbol)
    return next((p for p in SECTOR_PROFILES if base in p.members), DEFAULT_PROFILE)


def estimate_shares(price: float) -> float:
    if price < 100:
        return 400_000_000
    if price < 500:
        return 200_000_000
    if price < 1000:
        return 100_000_000
    return 50_000_000


def estimate_fundamentals(
    symbol: str,
    current_price: float,
    meta: ChartMeta,
    rng: RandomSource,
) -> FundamentalData:
    """Sector-average fundamentals for ``symbol``, flagged ``is_estimated``."""
    profile = profile_for(symbol)

    def draw(bounds: tuple[float, float]) -> float:
        low, span = bounds
        return low + rng.random() * span

    pe = draw(profile.pe)
    pb = draw(profile.pb)
    roe = draw(profile.roe)
    current_ratio = draw(profile.current_ratio)
    debt_to_equity = draw(profile.debt_to_equity)
    beta = draw(profile.beta)
    dividend_yield = draw(profile.dividend_yield)

    market_cap = meta.market_cap or estimate_shares(current_price) * current_price

    return FundamentalData(
        market_cap=market_cap or None,
        trailing_pe=pe,
        price_to_book=pb,
        dividend_yield=dividend_yield,
        return_on_equity=roe,
        current_ratio=current_ratio,
        debt_to_equity=debt_to_equity,
        trailing_eps=current_price / pe if current_price else None,
        beta=beta,
        sector=profile.sector or default_sector(symbol),
        industry=profile.industry or default_industry(symbol),
        fifty_two_week_high=meta.fifty_two_week_high,
        fifty_two_week_low=meta.fifty_two_week_low,
        is_estimated=True,
    )


# ── Assembly ───────────────────────────────────────────────────────────────────

def _load_chart(symbol: str, chart_client: YahooChartClient, fixture: bool) -> ChartResponse:
    if fixture:
        return chart_client.get_fixture_response(symbol)
    try:
        return chart_client.fetch_chart(symbol)
    except (httpx.HTTPError, ValueError) as exc:
        raise MarketDataError(symbol, str(exc)) from exc


def _build_info(
    symbol: str,
    meta: ChartMeta,
    fundamentals: FundamentalData,
    current_price: float,
    long_name: str,
) -> StockInfo:
    previous_close = meta.previous_close
    change = current_price - previous_close
    change_percent = change / previous_close * 100 if previous_close else 0.0
    return StockInfo(
        **fundamentals.model_dump(),
        symbol=symbol,
        long_name=long_name,
        current_price=current_price,
        previous_close=previous_close,
        change=change,
        change_percent=change_percent,
        day_high=meta.day_high,
        day_low=meta.day_low,
        volume=meta.volume,
    )


def fetch_stock_data(
    symbol: str,
    chart_client: YahooChartClient,
    overview_client: Optional[AlphaVantageClient] = None,
    rng: Optional[RandomSource] = None,
    fixture: bool = False,
) -> MarketSnapshot:
    """Fetch prices, fundamentals and indicators for ``symbol``.

    Args:
        symbol:          Bare (``TCS``) or suffixed (``TCS.NS``) symbol.
        chart_client:    Price source.
        overview_client: Fundamentals source; ``None`` goes straight to estimates.
        rng:             Random source for estimated fundamentals.
        fixture:         Use the chart client's deterministic fixture data.

    Raises:
        MarketDataError: If chart data cannot be retrieved.
    """
    formatted = format_symbol(symbol)
    chart = _load_chart(formatted, chart_client, fixture)
    meta = chart.meta
    current_price = meta.regular_market_price or (chart.bars[-1].close if chart.bars else 0.0)
    indicators = compute_indicators([b.close for b in chart.bars])

    fundamentals: Optional[FundamentalData] = None
    if overview_client is not None and not fixture:
        try:
            fundamentals = overview_client.fetch_overview(formatted)
        except (DataUnavailableError, httpx.HTTPError) as exc:
            logger.warning(
                "Overview unavailable for %s, falling back to estimates: %s", formatted, exc
            )

    if fundamentals is not None:
        long_name = company_name(formatted)
    else:
        fundamentals = estimate_fundamentals(
            formatted, current_price, meta, rng or default_random_source()
        )
        long_name = meta.long_name or company_name(formatted)

    info = _build_info(formatted, meta, fundamentals, current_price, long_name)
    logger.info(
        "Fetched %s | price=%.2f | bars=%d | estimated=%s",
        formatted, current_price, len(chart.bars), info.is_estimated,
        extra={"symbol": formatted},
    )
    return MarketSnapshot(
        symbol=formatted,
        info=info,
        bars=tuple(chart.bars),
        indicators=indicators,
    )
