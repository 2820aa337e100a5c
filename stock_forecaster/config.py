"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``STOCK_FORECASTER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

API keys (``ALPHA_VANTAGE_API_KEY``, ``GEMINI_API_KEY``) are NOT part of
``AppConfig``; they are read from the environment by the command that needs
them, after ``load_config()`` has loaded ``.env``.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

from stock_forecaster.taxonomy.archetype_taxonomy import parse_selection
from stock_forecaster.utils.time_utils import TIMEFRAME_DAYS

# ── Sub-config models ─────────────────────────────────────────────────────────


class MarketDataConfig(BaseModel):
    """Quote, chart and company-overview provider settings."""

    model_config = ConfigDict(frozen=True)

    chart_base_url: str = "https://query1.finance.yahoo.com/v8/finance/chart"
    overview_base_url: str = "https://www.alphavantage.co/query"
    default_exchange_suffix: str = ".NS"
    chart_range: str = "1y"
    chart_interval: str = "1d"
    timeout_seconds: float = 30.0

    @field_validator("default_exchange_suffix")
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        if v not in {".NS", ".BO"}:
            raise ValueError(f"default_exchange_suffix must be '.NS' or '.BO', got '{v}'.")
        return v


class ForecastConfig(BaseModel):
    """Forecast engine defaults."""

    model_config = ConfigDict(frozen=True)

    default_timeframe: str = "1week"
    default_model: str = "ensemble"
    demo_fallback_price: float = 1400.0
    history_points: int = 30
    random_seed: Optional[int] = None

    @field_validator("default_timeframe")
    @classmethod
    def validate_timeframe(cls, v: str) -> str:
        if v not in TIMEFRAME_DAYS:
            raise ValueError(
                f"default_timeframe must be one of {sorted(TIMEFRAME_DAYS)}, got '{v}'."
            )
        return v

    @field_validator("default_model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        return parse_selection(v).value

    @field_validator("demo_fallback_price")
    @classmethod
    def validate_fallback_price(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"demo_fallback_price must be > 0, got {v}.")
        return v

    @field_validator("history_points")
    @classmethod
    def validate_history_points(cls, v: int) -> int:
        if v < 2:
            raise ValueError(f"history_points must be >= 2, got {v}.")
        return v


class NewsConfig(BaseModel):
    """News polling settings."""

    model_config = ConfigDict(frozen=True)

    poll_interval_seconds: float = 20.0
    min_refresh_seconds: float = 3.0
    max_items: int = 20
    rss_url: Optional[str] = None


class AnalysisConfig(BaseModel):
    """Generative-language API settings for the narrative analysis."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.0-flash"
    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 8192
    timeout_seconds: float = 60.0

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError(f"temperature must be in [0.0, 2.0], got {v}.")
        return v


class WatchlistConfig(BaseModel):
    """Watchlist file location."""

    model_config = ConfigDict(frozen=True)

    path: str = "data/watchlist.json"

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("watchlist path must not be empty.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/stock_forecaster.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth."""

    model_config = ConfigDict(frozen=True)

    market_data: MarketDataConfig = MarketDataConfig()
    forecast: ForecastConfig = ForecastConfig()
    news: NewsConfig = NewsConfig()
    analysis: AnalysisConfig = AnalysisConfig()
    logging: LoggingConfig = LoggingConfig()
    watchlist: WatchlistConfig = WatchlistConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply STOCK_FORECASTER_* env vars to the raw config dict.

    Supported overrides:
      STOCK_FORECASTER_LOG_LEVEL  → raw["logging"]["level"]
      STOCK_FORECASTER_SEED       → raw["forecast"]["random_seed"]
      STOCK_FORECASTER_DEBUG      → raw["debug"]
    """
    if log_level := os.environ.get("STOCK_FORECASTER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if seed := os.environ.get("STOCK_FORECASTER_SEED"):
        raw.setdefault("forecast", {})["random_seed"] = int(seed)

    if debug := os.environ.get("STOCK_FORECASTER_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        market_data=MarketDataConfig(**raw.get("market_data", {})),
        forecast=ForecastConfig(**raw.get("forecast", {})),
        news=NewsConfig(**raw.get("news", {})),
        analysis=AnalysisConfig(**raw.get("analysis", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        watchlist=WatchlistConfig(**raw.get("watchlist", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
