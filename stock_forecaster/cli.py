"""
Stock Forecaster — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (fetch market data, run a forecast, poll news, etc.).
  5. Report result to stdout.

Install and run::

    pip install -e .
    stock-forecaster --help
    stock-forecaster validate-config
    stock-forecaster forecast TCS --timeframe 1month --model lstm
    stock-forecaster forecast --price 1400 --days 5 --seed 7 --json
    stock-forecaster technicals RELIANCE --fixture
    stock-forecaster fundamentals HDFCBANK
    stock-forecaster news INFY --watch 60
    stock-forecaster analyze TCS
    stock-forecaster indices --fixture
    stock-forecaster search --category Banking
    stock-forecaster watchlist add INFY

Credential setup (.env, gitignored):
  ALPHA_VANTAGE_API_KEY=...   → company fundamentals (falls back to estimates)
  GEMINI_API_KEY=...          → AI narrative analysis

Without credentials every command still runs: fundamentals are estimated
from sector profiles and ``analyze`` prints a neutral fallback.
"""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="stock-forecaster",
    help="Indian equity forecasting and analysis — research CLI.",
    add_completion=False,
)

logger = logging.getLogger(__name__)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from stock_forecaster.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config, console: bool = True):
    """Set up logging from config."""
    from stock_forecaster.utils.logging import configure_logging
    configure_logging(config.logging, console=console)


def _random_source(config, seed: Optional[int]):
    from stock_forecaster.forecasting.random_source import default_random_source
    return default_random_source(seed if seed is not None else config.forecast.random_seed)


def _fetch_snapshot(symbol: str, config, fixture: bool, rng=None):
    """Fetch a ``MarketSnapshot`` for ``symbol``.

    Raises:
        MarketDataError: If no price history is available.
    """
    from stock_forecaster.ingestion.alphavantage_client import AlphaVantageClient
    from stock_forecaster.ingestion.market_data import fetch_stock_data, format_symbol
    from stock_forecaster.ingestion.yahoo_client import YahooChartClient

    md = config.market_data
    chart_client = YahooChartClient(
        base_url=md.chart_base_url,
        timeout=md.timeout_seconds,
        chart_range=md.chart_range,
        chart_interval=md.chart_interval,
    )
    overview_client = AlphaVantageClient(
        api_key=os.environ.get("ALPHA_VANTAGE_API_KEY"),
        base_url=md.overview_base_url,
        timeout=md.timeout_seconds,
    )
    formatted = format_symbol(symbol, md.default_exchange_suffix)
    return fetch_stock_data(formatted, chart_client, overview_client, rng=rng, fixture=fixture)


def _fetch_snapshot_or_exit(symbol: str, config, fixture: bool, rng=None):
    """Fetch a ``MarketSnapshot``; exit 1 if no price history is available."""
    from stock_forecaster.ingestion.market_data import MarketDataError

    try:
        return _fetch_snapshot(symbol, config, fixture, rng=rng)
    except MarketDataError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Chart provider:    {config.market_data.chart_base_url}")
    typer.echo(f"  Exchange suffix:   {config.market_data.default_exchange_suffix}")
    typer.echo(f"  Default timeframe: {config.forecast.default_timeframe}")
    typer.echo(f"  Default model:     {config.forecast.default_model}")
    typer.echo(f"  News interval:     {config.news.poll_interval_seconds:.0f}s")
    typer.echo(f"  Analysis model:    {config.analysis.model}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("forecast")
def forecast(
    symbol: Optional[str] = typer.Argument(
        None,
        help="NSE/BSE symbol (e.g. TCS or TCS.NS). Omit for a demo forecast.",
    ),
    timeframe: Optional[str] = typer.Option(
        None,
        "--timeframe",
        "-t",
        help="1week, 1month or 3months. Uses config default if omitted.",
    ),
    days: Optional[int] = typer.Option(
        None,
        "--days",
        help="Explicit horizon in days; overrides --timeframe.",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="ensemble, momentum, contextual_trend, indicator_reversion (or lstm, transformer, xgboost).",
    ),
    price: Optional[float] = typer.Option(
        None,
        "--price",
        help="Current price to seed from; skips the market-data fetch.",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed for a reproducible run.",
    ),
    fixture: bool = typer.Option(
        False,
        "--fixture",
        help="Use deterministic fixture market data instead of live requests.",
    ),
    use_history: bool = typer.Option(
        False,
        "--use-history",
        help="Seed from the fetched daily closes instead of a synthetic window.",
    ),
    members: bool = typer.Option(
        False,
        "--members",
        help="For ensemble forecasts, also print each member model's run.",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the full result as JSON.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Run a multi-day price forecast and print the strategy verdict.

    \b
    Seed price resolution:
      --price given         → that price
      SYMBOL given          → latest market price (live, or --fixture)
      neither / fetch fails → demo fallback price from config
    """
    from stock_forecaster.forecasting.engine import run_forecast
    from stock_forecaster.forecasting.seeding import resolve_current_price
    from stock_forecaster.models.forecast import ForecastRequest
    from stock_forecaster.reporting.formatters import format_forecast
    from stock_forecaster.taxonomy.archetype_taxonomy import parse_selection
    from stock_forecaster.utils.time_utils import timeframe_days

    config = _load_config_or_exit(config_path)
    _configure_logging(config, console=not as_json)

    try:
        selection = parse_selection(model or config.forecast.default_model)
        horizon = days if days is not None else timeframe_days(
            timeframe or config.forecast.default_timeframe
        )
    except ValueError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    if horizon < 1:
        typer.echo("[ERROR] --days must be >= 1.", err=True)
        raise typer.Exit(code=1)

    rng = _random_source(config, seed)

    history: Optional[tuple[float, ...]] = None
    label = "DEMO"
    market_price: Optional[float] = price
    if symbol and price is None:
        from stock_forecaster.ingestion.market_data import MarketDataError

        label = symbol.strip().upper()
        try:
            snapshot = _fetch_snapshot(symbol, config, fixture, rng=rng)
        except MarketDataError as exc:
            logger.warning("Market data unavailable for %s: %s", label, exc)
            if not as_json:
                typer.echo(f"[WARN] {exc}; using demo price.", err=True)
        else:
            label = snapshot.symbol
            market_price = snapshot.info.current_price
            if use_history:
                history = tuple(snapshot.closes[-config.forecast.history_points:]) or None
    elif symbol:
        label = symbol.strip().upper()

    current_price = resolve_current_price(market_price, config.forecast.demo_fallback_price)

    try:
        request = ForecastRequest(
            symbol=label,
            current_price=current_price,
            days=horizon,
            selection=selection,
            historical_prices=history,
        )
        result = run_forecast(
            request, rng=rng, history_points=config.forecast.history_points
        )
    except Exception as exc:
        logger.exception("Forecast failed for %s", label)
        typer.echo(f"[ERROR] Forecast failed, no forecast available: {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    typer.echo(format_forecast(result, show_members=members))
    typer.echo("")
    typer.echo("[OK] Forecast complete.")


@app.command("quote")
def quote(
    symbol: str = typer.Argument(..., help="NSE/BSE symbol (e.g. TCS)."),
    fixture: bool = typer.Option(False, "--fixture", help="Use deterministic fixture data."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Print the latest quote and 52-week range."""
    from stock_forecaster.reporting.formatters import format_quote

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    snapshot = _fetch_snapshot_or_exit(symbol, config, fixture)
    typer.echo(format_quote(snapshot))
    typer.echo("")
    typer.echo("[OK] Quote fetched.")


@app.command("indices")
def indices(
    fixture: bool = typer.Option(False, "--fixture", help="Use deterministic fixture data."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Print NIFTY 50, Bank Nifty and Sensex levels."""
    from stock_forecaster.ingestion.indices import fetch_indices
    from stock_forecaster.ingestion.market_data import MarketDataError
    from stock_forecaster.ingestion.yahoo_client import YahooChartClient
    from stock_forecaster.reporting.formatters import format_indices

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    md = config.market_data
    client = YahooChartClient(base_url=md.chart_base_url, timeout=md.timeout_seconds)
    try:
        quotes = fetch_indices(client, fixture=fixture)
    except MarketDataError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(format_indices(quotes))
    typer.echo("")
    typer.echo("[OK] Indices fetched.")


@app.command("search")
def search(
    query: Optional[str] = typer.Argument(None, help="Symbol or company-name fragment."),
    category: Optional[str] = typer.Option(
        None,
        "--category",
        "-c",
        help="IT, Banking, Pharma, Auto, FMCG, Energy or Infrastructure.",
    ),
    limit: int = typer.Option(10, "--limit", help="Maximum matches to print."),
) -> None:
    """Suggest NSE symbols by name, symbol fragment or category.

    With no query and no category, prints the popular list.
    """
    from stock_forecaster.reporting.formatters import format_symbols
    from stock_forecaster.taxonomy.symbol_catalog import search_symbols, symbols_by_category

    if category:
        try:
            entries = symbols_by_category(category)
        except ValueError as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)
        title = f"{entries[0].category.value} Stocks ({len(entries)})" if entries else category
    else:
        entries = search_symbols(query or "", limit=limit)
        title = f"Matches for '{query}'" if query else "Popular Stocks"

    typer.echo(format_symbols(entries, title))


@app.command("watchlist")
def watchlist(
    action: str = typer.Argument("show", help="show, add or remove."),
    symbol: Optional[str] = typer.Argument(None, help="Symbol to add or remove."),
    fixture: bool = typer.Option(False, "--fixture", help="Quote from fixture data when adding."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Show, add to or remove from the local watchlist.

    \b
    stock-forecaster watchlist
    stock-forecaster watchlist add TCS
    stock-forecaster watchlist remove TCS
    """
    from stock_forecaster.ingestion.market_data import format_symbol
    from stock_forecaster.reporting.formatters import format_watchlist
    from stock_forecaster.watchlist import Watchlist, item_from_snapshot

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    action = action.lower()
    if action not in {"show", "add", "remove"}:
        typer.echo(f"[ERROR] Unknown action '{action}'. Use show, add or remove.", err=True)
        raise typer.Exit(code=1)
    if action != "show" and not symbol:
        typer.echo(f"[ERROR] '{action}' needs a SYMBOL.", err=True)
        raise typer.Exit(code=1)

    try:
        wl = Watchlist.load(Path(config.watchlist.path))
    except ValueError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    if action == "add":
        snapshot = _fetch_snapshot_or_exit(symbol, config, fixture)
        if not wl.add(item_from_snapshot(snapshot)):
            typer.echo(f"[ERROR] {snapshot.symbol} is already in the watchlist.", err=True)
            raise typer.Exit(code=1)
        wl.save()
        typer.echo(f"[OK] Added {snapshot.symbol}.")
    elif action == "remove":
        formatted = format_symbol(symbol, config.market_data.default_exchange_suffix)
        if not wl.remove(formatted):
            typer.echo(f"[ERROR] {formatted} is not in the watchlist.", err=True)
            raise typer.Exit(code=1)
        wl.save()
        typer.echo(f"[OK] Removed {formatted}.")

    typer.echo(format_watchlist(wl.items))


@app.command("technicals")
def technicals(
    symbol: str = typer.Argument(..., help="NSE/BSE symbol (e.g. TCS)."),
    fixture: bool = typer.Option(False, "--fixture", help="Use deterministic fixture data."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Compute SMA/RSI/MACD from daily closes and print buy/sell signals."""
    from stock_forecaster.analysis.signals import evaluate_signals
    from stock_forecaster.reporting.formatters import format_technicals

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    snapshot = _fetch_snapshot_or_exit(symbol, config, fixture)
    if not snapshot.bars:
        typer.echo(f"[ERROR] No price history for {snapshot.symbol}.", err=True)
        raise typer.Exit(code=1)

    overall = evaluate_signals(snapshot.info.current_price, snapshot.indicators)
    typer.echo(format_technicals(snapshot.info.current_price, snapshot.indicators, overall))
    typer.echo("")
    typer.echo("[OK] Technical analysis complete.")


@app.command("fundamentals")
def fundamentals(
    symbol: str = typer.Argument(..., help="NSE/BSE symbol (e.g. TCS)."),
    fixture: bool = typer.Option(False, "--fixture", help="Use deterministic fixture data."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for estimated ratios."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Rate valuation, profitability, liquidity and leverage ratios.

    Without ALPHA_VANTAGE_API_KEY (or in --fixture mode) the ratios are
    estimated from the symbol's sector profile and flagged [ESTIMATED].
    """
    from stock_forecaster.analysis.fundamentals import rate_fundamentals
    from stock_forecaster.reporting.formatters import format_fundamentals

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    snapshot = _fetch_snapshot_or_exit(symbol, config, fixture, rng=_random_source(config, seed))
    rating = rate_fundamentals(snapshot.info)
    typer.echo(format_fundamentals(snapshot.symbol, rating))
    typer.echo("")
    typer.echo("[OK] Fundamental analysis complete.")


@app.command("news")
def news(
    symbol: Optional[str] = typer.Argument(None, help="Optional symbol to focus on."),
    watch: float = typer.Option(
        0.0,
        "--watch",
        help="Keep polling for this many seconds, printing each update.",
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Polling interval in seconds. Uses config default if omitted.",
    ),
    rss_url: Optional[str] = typer.Option(
        None,
        "--rss",
        help="Read headlines from this RSS feed instead of the built-in generator.",
    ),
    breaking: bool = typer.Option(
        False,
        "--breaking",
        help="Push a simulated breaking-news item to the feed.",
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for generated headlines."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Print market news, optionally polling for updates.

    Headlines come from the RSS feed given by --rss (or ``news.rss_url`` in
    config); otherwise synthetic market headlines are generated.
    """
    from stock_forecaster.ingestion.news_service import (
        NewsService,
        RssNewsProvider,
        TemplateNewsProvider,
    )
    from stock_forecaster.reporting.formatters import format_news

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    url = rss_url or config.news.rss_url
    if url:
        provider = RssNewsProvider(url, limit=config.news.max_items)
    else:
        provider = TemplateNewsProvider(rng=_random_source(config, seed))

    service = NewsService(
        provider,
        max_items=config.news.max_items,
        min_refresh_seconds=config.news.min_refresh_seconds,
    )

    if watch <= 0:
        try:
            items = service.fetch_latest(symbol)
        except Exception as exc:
            logger.exception("News fetch failed")
            typer.echo(f"[ERROR] News fetch failed: {exc}", err=True)
            raise typer.Exit(code=1)
        if breaking:
            service.push_breaking()
            items = service.items
        typer.echo(format_news(items, symbol))
        typer.echo("")
        typer.echo("[OK] News fetched.")
        return

    unsubscribe = service.subscribe(lambda items: typer.echo(format_news(items, symbol)))
    service.start(symbol, interval=interval or config.news.poll_interval_seconds)
    try:
        if breaking:
            service.push_breaking()
        time.sleep(watch)
    except KeyboardInterrupt:
        typer.echo("Interrupted.")
    finally:
        service.stop()
        unsubscribe()
    typer.echo("")
    typer.echo("[OK] News watch finished.")


@app.command("analyze")
def analyze(
    symbol: str = typer.Argument(..., help="NSE/BSE symbol (e.g. TCS)."),
    fixture: bool = typer.Option(False, "--fixture", help="Use deterministic fixture data."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Ask the generative model for a narrative investment analysis.

    Requires GEMINI_API_KEY in .env; without it a neutral HOLD fallback is
    printed with the reason.
    """
    from stock_forecaster.analysis.ai_analysis import GeminiClient, analyze_stock
    from stock_forecaster.reporting.formatters import format_ai_analysis

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    snapshot = _fetch_snapshot_or_exit(symbol, config, fixture)
    client = GeminiClient(os.environ.get("GEMINI_API_KEY"), config.analysis)
    analysis = analyze_stock(snapshot.symbol, snapshot.info, client)

    typer.echo(format_ai_analysis(snapshot.symbol, analysis))
    typer.echo("")
    if analysis.error:
        typer.echo("[OK] Analysis unavailable; fallback shown.")
    else:
        typer.echo("[OK] Analysis complete.")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
