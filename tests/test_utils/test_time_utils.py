"""Tests for timeframe, date and market-clock helpers."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from stock_forecaster.utils.time_utils import (
    forecast_dates,
    horizon_label,
    is_market_open,
    timeframe_days,
)


class TestTimeframes:
    @pytest.mark.parametrize("timeframe, days", [("1week", 7), ("1month", 30), ("3months", 90)])
    def test_known(self, timeframe, days):
        assert timeframe_days(timeframe) == days

    def test_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown timeframe"):
            timeframe_days("1year")

    @pytest.mark.parametrize("days, label", [(7, "1 week"), (30, "1 month"), (90, "3 months"), (1, "1 day"), (12, "12 days")])
    def test_horizon_label(self, days, label):
        assert horizon_label(days) == label


class TestForecastDates:
    def test_starts_day_after(self):
        assert forecast_dates(date(2026, 1, 30), 3) == [
            date(2026, 1, 31), date(2026, 2, 1), date(2026, 2, 2),
        ]

    def test_zero_days_raises(self):
        with pytest.raises(ValueError):
            forecast_dates(date(2026, 1, 1), 0)


class TestMarketClock:
    @pytest.mark.parametrize(
        "utc, expected",
        [
            (datetime(2026, 1, 5, 3, 44), False),   # 09:14 IST
            (datetime(2026, 1, 5, 3, 45), True),    # 09:15 IST
            (datetime(2026, 1, 5, 10, 0), True),    # 15:30 IST
            (datetime(2026, 1, 5, 10, 1), False),   # 15:31 IST
            (datetime(2026, 1, 10, 5, 0), False),   # Saturday
            (datetime(2026, 1, 11, 5, 0), False),   # Sunday
        ],
    )
    def test_session_hours(self, utc, expected):
        assert is_market_open(utc.replace(tzinfo=timezone.utc)) is expected

    def test_naive_datetime_read_as_utc(self):
        assert is_market_open(datetime(2026, 1, 5, 5, 0)) is True
