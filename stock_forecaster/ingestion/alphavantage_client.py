"""
Alpha Vantage company-overview client.

API:   https://www.alphavantage.co/query?function=OVERVIEW&symbol={symbol}&apikey={key}
Docs:  https://www.alphavantage.co/documentation/#company-overview

Credential setup (.env, gitignored):
  ALPHA_VANTAGE_API_KEY=your_key    # default: "demo"

The free tier answers over-quota requests with HTTP 200 and a ``Note``
field instead of data; unknown symbols come back as ``{}``.  Both raise
``DataUnavailableError`` so the caller can fall back to estimates.

The OVERVIEW endpoint has no current ratio or debt/equity; those stay null.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Optional

import httpx

from stock_forecaster.models.market import FundamentalData

logger = logging.getLogger(__name__)


class DataUnavailableError(RuntimeError):
    """Raised when a provider answers but has no usable data for a symbol.

    Attributes:
        symbol: The symbol that was requested.
    """

    def __init__(self, symbol: str, reason: str) -> None:
        self.symbol = symbol
        super().__init__(f"No data available for '{symbol}': {reason}")


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or value == "" or value == "None":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _str_or_none(value: Any) -> Optional[str]:
    if not value or value == "None":
        return None
    return str(value)


class AlphaVantageClient:
    """Client for the OVERVIEW fundamentals endpoint.

    Usage::

        import os
        client = AlphaVantageClient(api_key=os.environ.get("ALPHA_VANTAGE_API_KEY"))
        fundamentals = client.fetch_overview("TCS.NS")
    """

    BASE_URL: ClassVar[str] = "https://www.alphavantage.co/query"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key or "demo"
        self.base_url = base_url
        self._http = http_client or httpx.Client(timeout=timeout)

    def fetch_overview(self, symbol: str) -> FundamentalData:
        """Fetch company fundamentals for ``symbol``.

        Raises:
            httpx.HTTPStatusError: On non-2xx API response.
            DataUnavailableError:  On a rate-limit ``Note`` or an empty overview.
        """
        resp = self._http.get(
            self.base_url,
            params={"function": "OVERVIEW", "symbol": symbol, "apikey": self.api_key},
        )
        resp.raise_for_status()
        return parse_overview(resp.json(), symbol)


def parse_overview(data: dict, symbol: str) -> FundamentalData:
    """Map an OVERVIEW payload onto ``FundamentalData``.

    Raises:
        DataUnavailableError: If the payload is a rate-limit note or has no ``Symbol``.
    """
    if note := data.get("Note"):
        logger.warning("Alpha Vantage note for %s: %s", symbol, note)
        raise DataUnavailableError(symbol, "provider rate limit reached")
    if not data.get("Symbol"):
        raise DataUnavailableError(symbol, "empty overview response")

    return FundamentalData(
        market_cap=_float_or_none(data.get("MarketCapitalization")),
        trailing_pe=_float_or_none(data.get("PERatio")),
        price_to_book=_float_or_none(data.get("PriceToBookRatio")),
        dividend_yield=_float_or_none(data.get("DividendYield")),
        return_on_equity=_float_or_none(data.get("ReturnOnEquityTTM")),
        trailing_eps=_float_or_none(data.get("EPS")),
        beta=_float_or_none(data.get("Beta")),
        sector=_str_or_none(data.get("Sector")),
        industry=_str_or_none(data.get("Industry")),
        description=_str_or_none(data.get("Description")),
        fifty_two_week_high=_float_or_none(data.get("52WeekHigh")),
        fifty_two_week_low=_float_or_none(data.get("52WeekLow")),
        current_ratio=None,
        debt_to_equity=None,
        is_estimated=False,
    )
