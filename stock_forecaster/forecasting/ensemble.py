"""
Ensemble combiner.

Runs every registered archetype over the same seed window, horizon and start
date, then averages the runs day by day.

Per day ``i``:
  - predicted / upper / lower: unrounded means of the member values
  - rsi, volatility_score:     rounded means
  - confidence:                ``round(min(99, mean + 5))``
  - trend:                     ``up`` if the mean price beat the previous
                               day's mean (the seed price on day 0), else
                               ``down``; the ensemble never reports neutral
  - date, momentum_score, support, resistance: taken from the first member
"""

from __future__ import annotations

import logging
import statistics
from datetime import date
from typing import Optional, Sequence

from stock_forecaster.forecasting.archetypes import ARCHETYPE_MODELS
from stock_forecaster.forecasting.predictor import SingleModelPredictor
from stock_forecaster.forecasting.random_source import RandomSource
from stock_forecaster.models.forecast import PredictionPoint
from stock_forecaster.models.market import HistoricalSeries
from stock_forecaster.taxonomy.archetype_taxonomy import ModelSelection
from stock_forecaster.utils.time_utils import today_ist

logger = logging.getLogger(__name__)

ENSEMBLE_CONFIDENCE_BONUS = 5
MAX_CONFIDENCE = 99


def combine_runs(
    runs: Sequence[Sequence[PredictionPoint]],
    current_price: float,
) -> tuple[PredictionPoint, ...]:
    """Average member runs into one ensemble run.

    Raises:
        ValueError: If ``runs`` is empty or the runs differ in length.
    """
    if not runs:
        raise ValueError("At least one run is required to build an ensemble.")
    lengths = {len(r) for r in runs}
    if len(lengths) != 1:
        raise ValueError(f"Member runs must have equal length, got {sorted(lengths)}.")

    combined: list[PredictionPoint] = []
    previous = current_price
    for day_points in zip(*runs):
        lead = day_points[0]
        predicted = statistics.fmean(p.predicted_price for p in day_points)
        confidence = statistics.fmean(p.confidence for p in day_points)

        combined.append(
            PredictionPoint(
                date=lead.date,
                predicted_price=predicted,
                upper_bound=statistics.fmean(p.upper_bound for p in day_points),
                lower_bound=statistics.fmean(p.lower_bound for p in day_points),
                confidence=round(min(MAX_CONFIDENCE, confidence + ENSEMBLE_CONFIDENCE_BONUS)),
                trend="up" if predicted > previous else "down",
                volatility_score=round(statistics.fmean(p.volatility_score for p in day_points)),
                momentum_score=lead.momentum_score,
                rsi=round(statistics.fmean(p.rsi for p in day_points)),
                support=lead.support,
                resistance=lead.resistance,
            )
        )
        previous = predicted

    return tuple(combined)


def run_ensemble(
    series: HistoricalSeries,
    current_price: float,
    days: int,
    rng: RandomSource,
    start_date: Optional[date] = None,
) -> dict[str, tuple[PredictionPoint, ...]]:
    """Run every archetype and combine them.

    Returns:
        ``{"ensemble": combined, <archetype value>: member run, ...}``.
    """
    start = start_date or today_ist()
    members: dict[str, tuple[PredictionPoint, ...]] = {}
    for model in ARCHETYPE_MODELS:
        predictor = SingleModelPredictor(model, series, current_price)
        members[model.archetype.value] = predictor.predict(days, rng, start_date=start)

    ensemble = combine_runs(list(members.values()), current_price)
    logger.debug(
        "Ensemble of %d members | days=%d | final=%.2f",
        len(members), days, ensemble[-1].predicted_price,
    )
    return {ModelSelection.ENSEMBLE.value: ensemble, **members}
