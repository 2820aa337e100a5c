"""
Tests for stock_forecaster/models/forecast.py.

Covers validation rules on PredictionPoint, PerformanceMetrics,
FeatureImportance, StrategyVerdict and ForecastRequest, and the primary-run
check on ForecastResult.
"""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from stock_forecaster.models.forecast import (
    FeatureImportance,
    ForecastRequest,
    ForecastResult,
    MarketFactors,
    PerformanceMetrics,
    PredictionPoint,
    StrategyVerdict,
    Verdict,
)
from stock_forecaster.models.market import TechnicalSnapshot
from stock_forecaster.taxonomy.archetype_taxonomy import ModelSelection


def _point(**overrides) -> PredictionPoint:
    values = dict(
        date=date(2026, 1, 6), predicted_price=1400.0, upper_bound=1420.0, lower_bound=1380.0,
        confidence=80, trend="up", volatility_score=70, momentum_score=55, rsi=52,
        support=1350.0, resistance=1450.0,
    )
    values.update(overrides)
    return PredictionPoint(**values)


def _metrics(**overrides) -> PerformanceMetrics:
    values = dict(
        mape=4.0, rmse=100.0, directional_accuracy=85.0, sharpe_ratio=1.8,
        max_drawdown=7.0, win_rate=80.0, avg_return=10.0,
    )
    values.update(overrides)
    return PerformanceMetrics(**values)


def _result(runs, selection=ModelSelection.MOMENTUM, days=1) -> ForecastResult:
    return ForecastResult(
        symbol="TCS.NS",
        current_price=1400.0,
        days=days,
        selection=selection,
        snapshot=TechnicalSnapshot(rsi=50, sma20=1400, volatility=0.2, support=1300, resistance=1500),
        runs=runs,
        metrics=_metrics(),
        feature_importance=(FeatureImportance(name="Price Momentum", importance=80),),
        market_factors=MarketFactors(
            technical_score=80, fundamental_score=80, sentiment_score=70,
            market_regime_score=75, volume_score=78, macro_score=74,
        ),
        verdict=StrategyVerdict(verdict=Verdict.HOLD, rationale="Wait.", badge_color="bg-yellow-500"),
    )


class TestPredictionPoint:
    def test_valid(self):
        assert _point().trend == "up"

    def test_frozen(self):
        with pytest.raises(ValidationError):
            _point().predicted_price = 1.0

    @pytest.mark.parametrize("confidence", [67, 100])
    def test_confidence_range(self, confidence):
        with pytest.raises(ValidationError, match="confidence"):
            _point(confidence=confidence)

    def test_rsi_range(self):
        with pytest.raises(ValidationError):
            _point(rsi=101)

    def test_negative_lower_bound(self):
        with pytest.raises(ValidationError, match="lower_bound"):
            _point(lower_bound=-1.0, predicted_price=0.5, upper_bound=2.0)

    def test_band_ordering(self):
        with pytest.raises(ValidationError, match="lower_bound <= predicted_price"):
            _point(upper_bound=1390.0)

    def test_unknown_trend(self):
        with pytest.raises(ValidationError):
            _point(trend="sideways")


class TestOtherModels:
    def test_metrics_caps(self):
        with pytest.raises(ValidationError):
            _metrics(directional_accuracy=95.5)
        with pytest.raises(ValidationError):
            _metrics(win_rate=92.1)

    @pytest.mark.parametrize("value", [29, 101])
    def test_feature_importance_range(self, value):
        with pytest.raises(ValidationError):
            FeatureImportance(name="x", importance=value)

    def test_blank_rationale_rejected(self):
        with pytest.raises(ValidationError):
            StrategyVerdict(verdict=Verdict.BUY, rationale="  ", badge_color="bg-green-500")

    def test_verdict_values(self):
        assert Verdict.CONSIDER_SELL == "CONSIDER SELL"

    def test_request_defaults(self):
        request = ForecastRequest(current_price=100.0, days=7)
        assert request.selection is ModelSelection.ENSEMBLE
        assert request.historical_prices is None
        assert request.symbol == "DEMO"


class TestForecastResult:
    def test_primary_and_final_point(self):
        result = _result({"momentum": (_point(),)})
        assert result.primary == (result.final_point,)

    def test_selected_run_required(self):
        with pytest.raises(ValidationError, match="selected model"):
            _result({"ensemble": (_point(),)})

    def test_primary_length_must_match_days(self):
        with pytest.raises(ValidationError, match="expected 2"):
            _result({"momentum": (_point(),)}, days=2)
