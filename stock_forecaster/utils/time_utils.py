"""
Date and market-clock helpers.

Key concepts:
  - Timeframes: the three dashboard horizons (``1week``, ``1month``,
    ``3months``) and their trading-day counts.
  - Forecast dates: one calendar date per simulated day, starting the day
    after the base date.
  - NSE session: 09:15–15:30 Asia/Kolkata, Monday to Friday.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

IST = ZoneInfo("Asia/Kolkata")

MARKET_OPEN = time(9, 15)
MARKET_CLOSE = time(15, 30)

TIMEFRAME_DAYS: dict[str, int] = {
    "1week": 7,
    "1month": 30,
    "3months": 90,
}

_HORIZON_LABELS: dict[int, str] = {
    7: "1 week",
    30: "1 month",
    90: "3 months",
}


def timeframe_days(timeframe: str) -> int:
    """Return the simulated day count for a dashboard timeframe.

    Raises:
        ValueError: If ``timeframe`` is not one of ``TIMEFRAME_DAYS``.
    """
    try:
        return TIMEFRAME_DAYS[timeframe]
    except KeyError:
        raise ValueError(
            f"Unknown timeframe '{timeframe}'. Must be one of {sorted(TIMEFRAME_DAYS)}."
        ) from None


def horizon_label(days: int) -> str:
    """Human-readable label for a horizon, e.g. ``7 -> "1 week"``."""
    if days in _HORIZON_LABELS:
        return _HORIZON_LABELS[days]
    return "1 day" if days == 1 else f"{days} days"


def forecast_dates(start: date, days: int) -> list[date]:
    """Return ``days`` consecutive dates beginning the day after ``start``.

    Raises:
        ValueError: If ``days < 1``.
    """
    if days < 1:
        raise ValueError(f"days must be >= 1, got {days}.")
    return [start + timedelta(days=i) for i in range(1, days + 1)]


def is_market_open(now: Optional[datetime] = None) -> bool:
    """True while the NSE cash session is open.

    Naive datetimes are interpreted as UTC.
    """
    now = now or utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(IST)
    if local.weekday() >= 5:
        return False
    return MARKET_OPEN <= local.time().replace(second=0, microsecond=0) <= MARKET_CLOSE


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info."""
    return datetime.now(tz=timezone.utc)


def today_ist() -> date:
    """Current calendar date on the exchange clock."""
    return utcnow().astimezone(IST).date()
