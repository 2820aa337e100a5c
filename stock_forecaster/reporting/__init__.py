"""
stock_forecaster.reporting — Terminal formatting of forecasts and analyses.

Modules:
  formatters — ASCII terminal table formatters for Typer CLI commands.
"""
