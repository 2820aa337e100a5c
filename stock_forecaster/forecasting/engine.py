"""
Forecast engine facade.

``run_forecast(request)`` is the single entry point used by the CLI and the
dashboard.  For each request it:

  1. resolves the seed window (supplied closes, or a synthetic walk)
  2. runs the selected archetype, or every archetype plus the ensemble
  3. derives metrics, feature importance and market factors
  4. asks the strategy advisor for a verdict on the primary run's last day

A run is all-or-nothing.  Any exception propagates to the caller; nothing
is retried and no partial result is returned.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from stock_forecaster.forecasting.archetypes import model_for, params_for
from stock_forecaster.forecasting.ensemble import run_ensemble
from stock_forecaster.forecasting.metrics import (
    compute_performance_metrics,
    feature_importance,
    market_factors,
)
from stock_forecaster.forecasting.predictor import SingleModelPredictor, effective_volatility
from stock_forecaster.forecasting.random_source import RandomSource, default_random_source
from stock_forecaster.forecasting.seeding import SYNTHETIC_POINTS, resolve_series
from stock_forecaster.forecasting.technical import derive_snapshot, trend_strength
from stock_forecaster.models.forecast import ForecastRequest, ForecastResult
from stock_forecaster.recommendations.strategy import advise, percent_change
from stock_forecaster.utils.time_utils import horizon_label, today_ist

logger = logging.getLogger(__name__)


def run_forecast(
    request: ForecastRequest,
    rng: Optional[RandomSource] = None,
    start_date: Optional[date] = None,
    history_points: int = SYNTHETIC_POINTS,
) -> ForecastResult:
    """Produce a complete forecast for ``request``.

    Args:
        request:    Validated forecast request.
        rng:        Random source; an unseeded ``random.Random`` when omitted.
        start_date: Base date; day ``i`` is dated ``start_date + i``.
            Defaults to today on the exchange clock.
        history_points: Length of the synthetic seed window when the request
            carries no historical prices.

    Returns:
        ``ForecastResult`` with the primary run under ``request.selection``
        and, for the ensemble, every member run alongside it.

    Raises:
        ValueError: If ``request.current_price <= 0``.
    """
    if not request.current_price > 0:
        raise ValueError(f"current_price must be > 0, got {request.current_price}.")

    if rng is None:
        rng = default_random_source()
    start = start_date or today_ist()
    selection = request.selection

    logger.info(
        "Forecasting %s | model=%s | days=%d | price=%.2f",
        request.symbol, selection.value, request.days, request.current_price,
        extra={"symbol": request.symbol, "selection": selection.value, "days": request.days},
    )

    series = resolve_series(
        request.current_price, rng, request.historical_prices, points=history_points
    )

    if selection.archetype is None:
        runs = run_ensemble(series, request.current_price, request.days, rng, start_date=start)
    else:
        predictor = SingleModelPredictor(
            model_for(selection.archetype), series, request.current_price
        )
        runs = {selection.value: predictor.predict(request.days, rng, start_date=start)}

    snapshot = derive_snapshot(series)
    trend = trend_strength(series)
    sigma = effective_volatility(snapshot)

    metrics = compute_performance_metrics(sigma, trend, params_for(selection), rng)
    features = feature_importance(selection, rng)
    factors = market_factors(snapshot.rsi, trend, rng)

    final = runs[selection.value][-1]
    change = percent_change(final.predicted_price, request.current_price)
    verdict = advise(change, final.confidence, final.volatility_score, horizon_label(request.days))

    logger.info(
        "Forecast %s complete | final=%.2f (%+.2f%%) | verdict=%s",
        request.symbol, final.predicted_price, change, verdict.verdict.value,
    )

    return ForecastResult(
        symbol=request.symbol,
        current_price=request.current_price,
        days=request.days,
        selection=selection,
        snapshot=snapshot,
        runs=runs,
        metrics=metrics,
        feature_importance=features,
        market_factors=factors,
        verdict=verdict,
    )
