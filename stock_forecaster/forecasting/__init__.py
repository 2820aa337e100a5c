"""Synthetic multi-model forecasting engine: seeding, archetypes, ensemble, metrics."""
