"""
Rule-based fundamental rating.

Five ratios are scored against fixed threshold tables.  Valuation ratios
(P/E, P/B) and leverage (debt/equity) are better when lower; profitability
(ROE) and liquidity (current ratio) are better when higher.

Per-metric tiers
----------------
    metric          Excellent  Very Good  Good   Average  Poor   (else Very Poor)
    pe              <= 10      <= 15      <= 20  <= 25    <= 35
    pb              <= 1.0     <= 1.5     <= 2.5 <= 3.5   <= 5.0
    roe             >= 0.25    >= 0.20    >= 0.15 >= 0.10 >= 0.05
    current_ratio   >= 2.5     >= 2.0     >= 1.5 >= 1.2   >= 1.0
    debt_to_equity  <= 10      <= 20      <= 40  <= 60    <= 80

A missing or zero ratio scores 0 and is excluded from the overall average.

Overall rating (mean of rated metrics)
--------------------------------------
    >= 85 Strong Buy, >= 70 Buy, >= 55 Hold, >= 40 Avoid, else Strong Sell.
    Data confidence = min(95, rated / 5 * 100).
"""

from __future__ import annotations

import statistics
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from stock_forecaster.models.market import FundamentalData

MetricName = Literal["pe", "pb", "roe", "current_ratio", "debt_to_equity"]

# (bound, score, label, investment, reason); the last row is the catch-all.
_Tier = tuple[float, int, str, str, str]

_LOWER_IS_BETTER: dict[str, list[_Tier]] = {
    "pe": [
        (10, 95, "Excellent", "Strong Buy", "Significantly undervalued with strong earnings potential"),
        (15, 85, "Very Good", "Buy", "Undervalued with good earnings growth"),
        (20, 70, "Good", "Buy", "Fairly valued with decent earnings"),
        (25, 55, "Average", "Hold", "Moderately valued, monitor for better entry"),
        (35, 35, "Poor", "Avoid", "Overvalued relative to earnings"),
        (float("inf"), 20, "Very Poor", "Strong Sell", "Extremely overvalued or negative earnings"),
    ],
    "pb": [
        (1.0, 95, "Excellent", "Strong Buy", "Trading below book value - exceptional value"),
        (1.5, 85, "Very Good", "Buy", "Great value relative to assets"),
        (2.5, 70, "Good", "Buy", "Reasonable price relative to book value"),
        (3.5, 55, "Average", "Hold", "Moderately priced, consider timing"),
        (5.0, 35, "Poor", "Avoid", "Expensive relative to tangible assets"),
        (float("inf"), 20, "Very Poor", "Strong Sell", "Severely overpriced relative to book value"),
    ],
    "debt_to_equity": [
        (10, 95, "Excellent", "Low Risk", "Very conservative debt levels"),
        (20, 85, "Very Good", "Low Risk", "Conservative debt management"),
        (40, 70, "Good", "Medium Risk", "Manageable debt levels"),
        (60, 55, "Average", "Medium Risk", "Moderate debt burden - monitor"),
        (80, 35, "Poor", "High Risk", "High debt levels - financial risk"),
        (float("inf"), 20, "Very Poor", "Very High Risk", "Excessive debt - avoid investment"),
    ],
}

_HIGHER_IS_BETTER: dict[str, list[_Tier]] = {
    "roe": [
        (0.25, 95, "Excellent", "Strong Buy", "Exceptional returns - highly profitable company"),
        (0.20, 85, "Very Good", "Buy", "Outstanding returns on shareholder equity"),
        (0.15, 70, "Good", "Buy", "Strong returns indicate good management"),
        (0.10, 55, "Average", "Hold", "Moderate returns, industry dependent"),
        (0.05, 35, "Poor", "Avoid", "Weak returns on equity"),
        (float("-inf"), 20, "Very Poor", "Strong Sell", "Very poor or negative returns"),
    ],
    "current_ratio": [
        (2.5, 90, "Excellent", "Low Risk", "Excellent liquidity - very safe investment"),
        (2.0, 80, "Very Good", "Low Risk", "Strong liquidity position"),
        (1.5, 70, "Good", "Medium Risk", "Adequate liquidity to meet obligations"),
        (1.2, 55, "Average", "Medium Risk", "Moderate liquidity - monitor closely"),
        (1.0, 40, "Poor", "High Risk", "Tight liquidity - financial stress possible"),
        (float("-inf"), 25, "Very Poor", "Very High Risk", "Severe liquidity concerns"),
    ],
}

_OVERALL_TIERS: list[tuple[float, str, str]] = [
    (85, "Strong Buy", "Excellent Investment Opportunity"),
    (70, "Buy", "Good Investment Opportunity"),
    (55, "Hold", "Average Investment - Monitor"),
    (40, "Avoid", "Below Average Investment"),
    (float("-inf"), "Strong Sell", "Poor Investment - High Risk"),
]

RATED_METRIC_COUNT = 5


class MetricRating(BaseModel):
    model_config = ConfigDict(frozen=True)

    metric: MetricName
    value: Optional[float]
    score: int
    label: str
    investment: str
    reason: str


class FundamentalRating(BaseModel):
    """Overall rating plus the per-metric breakdown it was averaged from."""

    model_config = ConfigDict(frozen=True)

    score: float
    label: str
    investment: str
    confidence: float
    metrics: tuple[MetricRating, ...]
    is_estimated: bool = False


def rate_metric(metric: MetricName, value: Optional[float]) -> MetricRating:
    """Score one ratio against its tier table.

    Raises:
        ValueError: If ``metric`` has no tier table.
    """
    if not value:
        return MetricRating(
            metric=metric, value=value, score=0, label="N/A",
            investment="Insufficient Data", reason="Data not available for analysis",
        )

    if metric in _LOWER_IS_BETTER:
        tiers = _LOWER_IS_BETTER[metric]
        matched = next(t for t in tiers if value <= t[0])
    elif metric in _HIGHER_IS_BETTER:
        tiers = _HIGHER_IS_BETTER[metric]
        matched = next(t for t in tiers if value >= t[0])
    else:
        raise ValueError(f"Unknown fundamental metric '{metric}'.")

    _, score, label, investment, reason = matched
    return MetricRating(
        metric=metric, value=value, score=score, label=label,
        investment=investment, reason=reason,
    )


def rate_fundamentals(data: FundamentalData) -> FundamentalRating:
    """Rate the five ratios of ``data`` and average the ones that were rated."""
    ratings = (
        rate_metric("pe", data.trailing_pe),
        rate_metric("pb", data.price_to_book),
        rate_metric("roe", data.return_on_equity),
        rate_metric("current_ratio", data.current_ratio),
        rate_metric("debt_to_equity", data.debt_to_equity),
    )
    rated = [r for r in ratings if r.score > 0]

    if not rated:
        return FundamentalRating(
            score=0.0, label="Insufficient Data", investment="Cannot Recommend",
            confidence=0.0, metrics=ratings, is_estimated=data.is_estimated,
        )

    avg_score = statistics.fmean(r.score for r in rated)
    confidence = min(95.0, len(rated) / RATED_METRIC_COUNT * 100)
    _, label, investment = next(t for t in _OVERALL_TIERS if avg_score >= t[0])

    return FundamentalRating(
        score=avg_score,
        label=label,
        investment=investment,
        confidence=confidence,
        metrics=ratings,
        is_estimated=data.is_estimated,
    )
