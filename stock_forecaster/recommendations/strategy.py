"""
Strategy advisor: maps a forecast's end state to a trading verdict.

Inputs
------
change_pct:       (final_predicted - current) / current * 100
confidence:       confidence of the final point
volatility_score: volatility score of the final point (higher = calmer);
                  a missing or zero score is read as 76
horizon:          human label, e.g. ``"1 week"``

risk = 100 - volatility_score

Verdict (first match wins)
--------------------------
    1. STRONG BUY    : change > 5   AND confidence > 85 AND risk < 40
    2. BUY           : change > 2   AND confidence > 75
    3. SELL          : change < -5  AND confidence > 80
    4. CONSIDER SELL : change < -2  AND confidence > 70
    5. HOLD          : all other cases

The advisor is a pure function: the same inputs always produce the same
verdict, rationale and badge.
"""

from __future__ import annotations

from typing import Optional

from stock_forecaster.models.forecast import StrategyVerdict, Verdict

DEFAULT_VOLATILITY_SCORE = 76.0

_BADGE_COLORS: dict[Verdict, str] = {
    Verdict.STRONG_BUY:    "bg-green-600 hover:bg-green-700",
    Verdict.BUY:           "bg-green-500 hover:bg-green-600",
    Verdict.SELL:          "bg-red-600 hover:bg-red-700",
    Verdict.CONSIDER_SELL: "bg-yellow-600 hover:bg-yellow-700",
    Verdict.HOLD:          "bg-gray-500 hover:bg-gray-600",
}


def percent_change(final_price: float, current_price: float) -> float:
    """Percentage move from ``current_price`` to ``final_price``.

    Raises:
        ValueError: If ``current_price <= 0``.
    """
    if current_price <= 0:
        raise ValueError(f"current_price must be > 0, got {current_price}.")
    return (final_price - current_price) / current_price * 100


def determine_verdict(
    change_pct: float,
    confidence: float,
    volatility_score: Optional[float],
) -> Verdict:
    """Apply the verdict rules in priority order."""
    risk = 100 - (volatility_score or DEFAULT_VOLATILITY_SCORE)

    if change_pct > 5 and confidence > 85 and risk < 40:
        return Verdict.STRONG_BUY
    if change_pct > 2 and confidence > 75:
        return Verdict.BUY
    if change_pct < -5 and confidence > 80:
        return Verdict.SELL
    if change_pct < -2 and confidence > 70:
        return Verdict.CONSIDER_SELL
    return Verdict.HOLD


def build_rationale(verdict: Verdict, change_pct: float, horizon: str) -> str:
    """One-sentence explanation for ``verdict``."""
    magnitude = f"{abs(change_pct):.1f}"
    if verdict is Verdict.STRONG_BUY:
        return (
            f"High-conviction signal for a potential {magnitude}% gain over "
            f"{horizon}. Favorable risk/reward."
        )
    if verdict is Verdict.BUY:
        return (
            f"Positive outlook with an expected gain of {magnitude}% over "
            f"{horizon}. Monitor volatility."
        )
    if verdict is Verdict.SELL:
        return (
            f"High probability of a significant correction of {magnitude}% over "
            f"{horizon}. Consider taking profits."
        )
    if verdict is Verdict.CONSIDER_SELL:
        return (
            f"Model indicates potential downside of {magnitude}% over "
            f"{horizon}. Caution is advised."
        )
    return (
        "Neutral outlook. The model does not signal a strong directional move "
        f"for the next {horizon}."
    )


def advise(
    change_pct: float,
    confidence: float,
    volatility_score: Optional[float],
    horizon: str,
) -> StrategyVerdict:
    """Return the verdict, rationale and badge colour for a forecast end state."""
    verdict = determine_verdict(change_pct, confidence, volatility_score)
    return StrategyVerdict(
        verdict=verdict,
        rationale=build_rationale(verdict, change_pct, horizon),
        badge_color=_BADGE_COLORS[verdict],
    )
