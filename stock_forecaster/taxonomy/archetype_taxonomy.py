"""
Forecast model taxonomy.

Three archetypes, each named after its behavioural role rather than the
sequence-model / boosting family it is loosely styled on:

  momentum             (UI: LSTM)        — extrapolates recent directional consistency
  contextual_trend     (UI: Transformer) — follows the long-run direction of the window
  indicator_reversion  (UI: XGBoost)     — pulls the path back toward RSI 50

``ModelSelection`` is what a caller may ask for: any single archetype, or the
``ensemble`` that averages all three.

This module has NO imports from any other ``stock_forecaster`` package.
"""

from enum import StrEnum


class ModelArchetype(StrEnum):
    """A single synthetic predictor variant."""

    MOMENTUM = "momentum"
    CONTEXTUAL_TREND = "contextual_trend"
    INDICATOR_REVERSION = "indicator_reversion"


class ModelSelection(StrEnum):
    """Model choice exposed to the dashboard and CLI."""

    ENSEMBLE = "ensemble"
    MOMENTUM = "momentum"
    CONTEXTUAL_TREND = "contextual_trend"
    INDICATOR_REVERSION = "indicator_reversion"

    @property
    def archetype(self) -> "ModelArchetype | None":
        """The single archetype this selection names, or ``None`` for the ensemble."""
        if self is ModelSelection.ENSEMBLE:
            return None
        return ModelArchetype(self.value)


# Names shown in the dashboard model toggle.
SELECTION_ALIASES: dict[str, ModelSelection] = {
    "lstm": ModelSelection.MOMENTUM,
    "transformer": ModelSelection.CONTEXTUAL_TREND,
    "xgboost": ModelSelection.INDICATOR_REVERSION,
}

DISPLAY_NAMES: dict[ModelSelection, str] = {
    ModelSelection.ENSEMBLE: "Ensemble",
    ModelSelection.MOMENTUM: "LSTM (momentum)",
    ModelSelection.CONTEXTUAL_TREND: "Transformer (contextual trend)",
    ModelSelection.INDICATOR_REVERSION: "XGBoost (indicator reversion)",
}


def parse_selection(value: str) -> ModelSelection:
    """Parse a selection name or UI alias (case-insensitive).

    Raises:
        ValueError: If ``value`` names no known model.
    """
    key = value.strip().lower().replace("-", "_")
    if key in SELECTION_ALIASES:
        return SELECTION_ALIASES[key]
    try:
        return ModelSelection(key)
    except ValueError:
        valid = sorted([s.value for s in ModelSelection] + list(SELECTION_ALIASES))
        raise ValueError(f"Unknown model '{value}'. Must be one of {valid}.") from None
