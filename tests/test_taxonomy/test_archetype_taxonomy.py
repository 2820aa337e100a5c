"""Tests for the model selection taxonomy."""

from __future__ import annotations

import pytest

from stock_forecaster.taxonomy.archetype_taxonomy import (
    DISPLAY_NAMES,
    ModelArchetype,
    ModelSelection,
    parse_selection,
)


class TestModelSelection:
    def test_ensemble_has_no_archetype(self):
        assert ModelSelection.ENSEMBLE.archetype is None

    @pytest.mark.parametrize("archetype", list(ModelArchetype))
    def test_single_selections_map_to_archetypes(self, archetype):
        assert ModelSelection(archetype.value).archetype is archetype

    def test_every_selection_has_display_name(self):
        assert set(DISPLAY_NAMES) == set(ModelSelection)


class TestParseSelection:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("ensemble", ModelSelection.ENSEMBLE),
            ("Momentum", ModelSelection.MOMENTUM),
            ("contextual-trend", ModelSelection.CONTEXTUAL_TREND),
            (" indicator_reversion ", ModelSelection.INDICATOR_REVERSION),
            ("LSTM", ModelSelection.MOMENTUM),
            ("transformer", ModelSelection.CONTEXTUAL_TREND),
            ("XGBoost", ModelSelection.INDICATOR_REVERSION),
        ],
    )
    def test_names_and_aliases(self, raw, expected):
        assert parse_selection(raw) is expected

    def test_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown model 'arima'"):
            parse_selection("arima")
