"""
Tests for stock_forecaster/forecasting/seeding.py.

What we test
------------
resolve_current_price():
  - Passes a usable price through; replaces None, NaN, 0 and negatives.

synthesize_history():
  - Produces the requested number of positive points.
  - With zero noise the walk rises monotonically from 0.95x toward the price.
  - Stays finite and positive at large price scales.
  - Rejects a non-positive price and fewer than two points.

resolve_series():
  - Supplied closes are used verbatim; otherwise a window is synthesized.
"""

from __future__ import annotations

import math
import random

import pytest

from stock_forecaster.forecasting.seeding import (
    DEMO_FALLBACK_PRICE,
    SYNTHETIC_POINTS,
    deviation_pct,
    resolve_current_price,
    resolve_series,
    synthesize_history,
)


class TestResolveCurrentPrice:
    def test_usable_price_passes_through(self):
        assert resolve_current_price(2500.0) == 2500.0

    @pytest.mark.parametrize("bad", [None, 0.0, -5.0, math.nan, math.inf])
    def test_unusable_price_uses_fallback(self, bad):
        assert resolve_current_price(bad) == DEMO_FALLBACK_PRICE

    def test_custom_fallback(self):
        assert resolve_current_price(None, fallback=999.0) == 999.0


class TestDeviationPct:
    def test_below_anchor_is_positive(self):
        assert deviation_pct(100.0, 95.0) == pytest.approx(5.0)

    def test_above_anchor_is_negative(self):
        assert deviation_pct(200.0, 210.0) == pytest.approx(-5.0)


class TestSynthesizeHistory:
    def test_default_length(self, rng):
        series = synthesize_history(1400.0, rng)
        assert len(series) == SYNTHETIC_POINTS
        assert all(p > 0 for p in series.prices)

    def test_custom_length(self, rng):
        assert len(synthesize_history(1400.0, rng, points=5)) == 5

    def test_noise_free_walk_converges_upward(self, midpoint_rng):
        series = synthesize_history(1400.0, midpoint_rng)
        prices = series.prices
        assert prices[0] > 1400.0 * 0.95
        assert all(b > a for a, b in zip(prices, prices[1:]))
        assert prices[-1] == pytest.approx(1400.0, rel=1e-3)
        assert prices[-1] <= 1400.0

    @pytest.mark.parametrize("price", [1.5, 105.0, 1400.0, 12400.0, 250_000.0])
    def test_walk_is_stable_at_any_scale(self, price):
        series = synthesize_history(price, random.Random(7))
        assert all(math.isfinite(p) and p > 0 for p in series.prices)
        assert all(abs(p / price - 1) < 0.2 for p in series.prices)

    def test_seeded_runs_are_reproducible(self):
        a = synthesize_history(1400.0, random.Random(3))
        b = synthesize_history(1400.0, random.Random(3))
        assert a == b

    def test_non_positive_price_raises(self, rng):
        with pytest.raises(ValueError, match="current_price"):
            synthesize_history(0.0, rng)

    def test_too_few_points_raises(self, rng):
        with pytest.raises(ValueError, match="points"):
            synthesize_history(1400.0, rng, points=1)


class TestResolveSeries:
    def test_supplied_prices_used_verbatim(self, midpoint_rng):
        series = resolve_series(1400.0, midpoint_rng, [1390.0, 1400.0])
        assert series.prices == (1390.0, 1400.0)
        assert midpoint_rng.calls == 0

    def test_empty_supplied_list_is_kept(self, midpoint_rng):
        assert len(resolve_series(1400.0, midpoint_rng, [])) == 0

    def test_missing_prices_synthesized(self, rng):
        assert len(resolve_series(1400.0, rng, None, points=12)) == 12
