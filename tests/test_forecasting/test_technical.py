"""Tests for technical snapshot derivation, trend strength and direction."""

from __future__ import annotations

import math
import statistics

import pytest

from stock_forecaster.forecasting.technical import (
    DEFAULT_VOLATILITY,
    derive_snapshot,
    long_term_direction,
    trend_strength,
)
from stock_forecaster.models.market import HistoricalSeries


def _series(*prices: float) -> HistoricalSeries:
    return HistoricalSeries(prices=prices)


class TestDeriveSnapshot:
    def test_uptrend_values(self, uptrend_series):
        snap = derive_snapshot(uptrend_series)
        # gains 10+10+15 = 35, losses 5 → RS 7 → RSI 87.5
        assert snap.rsi == pytest.approx(87.5)
        assert snap.sma20 == pytest.approx(1415.0)
        assert snap.support == pytest.approx(1400.0 * 0.97)
        assert snap.resistance == pytest.approx(1430.0 * 1.03)

    def test_volatility_is_annualised_population_std(self, uptrend_series):
        p = uptrend_series.prices
        returns = [math.log(p[i] / p[i - 1]) for i in range(1, len(p))]
        expected = statistics.pstdev(returns) * math.sqrt(252)
        assert derive_snapshot(uptrend_series).volatility == pytest.approx(expected)

    def test_rsi_only_reads_first_fourteen_deltas(self):
        rising = [100.0 + i for i in range(15)]
        crash = [50.0] * 10
        snap = derive_snapshot(_series(*rising, *crash))
        # The crash happens after the 14th delta and is invisible to RSI.
        assert snap.rsi == pytest.approx(100 - 100 / (1 + 14 / 0.01))

    def test_sma20_is_whole_window_mean(self):
        prices = tuple(float(100 + i) for i in range(40))
        assert derive_snapshot(_series(*prices)).sma20 == pytest.approx(statistics.fmean(prices))

    def test_flat_series_has_zero_volatility(self, flat_series):
        snap = derive_snapshot(flat_series)
        assert snap.volatility == 0.0
        # No gains and no losses: RS = 0 / 0.01 → RSI 0.
        assert snap.rsi == pytest.approx(0.0)

    def test_single_point_defaults(self):
        snap = derive_snapshot(_series(1000.0))
        assert snap.rsi == 50.0
        assert snap.volatility == DEFAULT_VOLATILITY
        assert snap.sma20 == 1000.0
        assert snap.support == pytest.approx(960.0)
        assert snap.resistance == pytest.approx(1040.0)

    def test_empty_series_defaults(self):
        snap = derive_snapshot(_series())
        assert snap.rsi == 50.0
        assert snap.sma20 == 0.0

    def test_idempotent(self, choppy_series):
        assert derive_snapshot(choppy_series) == derive_snapshot(choppy_series)


class TestTrendStrength:
    def test_uptrend_with_one_dip(self, uptrend_series):
        assert trend_strength(uptrend_series) == pytest.approx(0.5)

    def test_only_last_five_points_count(self):
        series = _series(500.0, 400.0, 300.0, 100.0, 101.0, 102.0, 103.0, 104.0)
        assert trend_strength(series) == pytest.approx(1.0)

    def test_flat_moves_count_as_neither(self, flat_series):
        assert trend_strength(flat_series) == 0.0

    def test_short_window_uses_available_moves(self):
        assert trend_strength(_series(10.0, 9.0, 8.0)) == pytest.approx(-1.0)

    def test_single_point_is_zero(self):
        assert trend_strength(_series(10.0)) == 0.0


class TestLongTermDirection:
    @pytest.mark.parametrize(
        "prices, expected",
        [
            ((100.0, 90.0, 120.0), 1),
            ((100.0, 130.0, 95.0), -1),
            ((100.0, 130.0, 100.0), 0),
            ((100.0,), 0),
        ],
    )
    def test_sign_of_net_move(self, prices, expected):
        assert long_term_direction(_series(*prices)) == expected
