"""
ASCII terminal formatters for CLI commands.

All formatters accept already-computed models and return plain multi-line
strings suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).

Prices are shown in rupees without a currency symbol, two decimals with
thousands separators (``1,412.50``).  Estimated fundamentals carry an
``[ESTIMATED]`` banner so sector-profile figures are never mistaken for
reported ones.
"""

from __future__ import annotations

from typing import Optional

from stock_forecaster.analysis.ai_analysis import AIAnalysis
from stock_forecaster.analysis.fundamentals import FundamentalRating
from stock_forecaster.analysis.signals import OverallSignal
from stock_forecaster.ingestion.indices import IndexQuote
from stock_forecaster.ingestion.news_service import NewsItem
from stock_forecaster.models.forecast import ForecastResult, PredictionPoint
from stock_forecaster.models.market import MarketSnapshot, TechnicalIndicators
from stock_forecaster.taxonomy.archetype_taxonomy import DISPLAY_NAMES, ModelSelection
from stock_forecaster.taxonomy.symbol_catalog import SymbolEntry
from stock_forecaster.watchlist import WatchlistItem


def _price(value: Optional[float]) -> str:
    return f"{value:,.2f}" if value is not None else "N/A"


def _ratio(value: Optional[float], pct: bool = False) -> str:
    if value is None:
        return "N/A"
    return f"{value:.1%}" if pct else f"{value:.2f}"


def _bar(value: float, width: int = 20, scale: float = 100.0) -> str:
    filled = max(0, min(width, round(value / scale * width)))
    return "#" * filled + "." * (width - filled)


# ── Forecast ──────────────────────────────────────────────────────────────────


def format_prediction_table(points: tuple[PredictionPoint, ...], current_price: float) -> str:
    """Day-by-day table for one run.

    Columns: date, predicted price, change vs current, band, confidence,
    trend, RSI.
    """
    header = (
        f"  {'Date':<10}  {'Predicted':>11}  {'Change':>7}  "
        f"{'Lower':>11}  {'Upper':>11}  {'Conf':>4}  {'Trend':<7}  {'RSI':>3}"
    )
    lines = [header, "  " + "-" * (len(header) - 2)]
    for p in points:
        change = (p.predicted_price - current_price) / current_price
        lines.append(
            f"  {p.date.isoformat():<10}  {_price(p.predicted_price):>11}  {change:>+7.1%}  "
            f"{_price(p.lower_bound):>11}  {_price(p.upper_bound):>11}  "
            f"{p.confidence:>3}%  {p.trend:<7}  {p.rsi:>3}"
        )
    return "\n".join(lines)


def format_forecast(result: ForecastResult, show_members: bool = False) -> str:
    """Full forecast report: header, primary run, verdict and diagnostics.

    Args:
        result:       Engine output.
        show_members: For an ensemble forecast, also print each member run.
    """
    final = result.final_point
    change = (final.predicted_price - result.current_price) / result.current_price

    lines: list[str] = []
    lines.append("")
    lines.append(f"=== {result.days}-Day Forecast: {result.symbol} ===")
    lines.append(f"  Model:          {DISPLAY_NAMES[result.selection]}")
    lines.append(f"  Current price:  {_price(result.current_price)}")
    lines.append(
        f"  Final target:   {_price(final.predicted_price)} ({change:+.2%}) "
        f"on {final.date.isoformat()}"
    )
    lines.append(f"  Range:          {_price(final.lower_bound)} - {_price(final.upper_bound)}")
    lines.append(f"  Support/Resist: {_price(final.support)} / {_price(final.resistance)}")
    lines.append("")
    lines.append(format_prediction_table(result.primary, result.current_price))

    if show_members and result.selection is ModelSelection.ENSEMBLE:
        for key, run in result.runs.items():
            if key == ModelSelection.ENSEMBLE.value:
                continue
            lines.append("")
            lines.append(f"  [{DISPLAY_NAMES[ModelSelection(key)].upper()}]")
            lines.append(format_prediction_table(run, result.current_price))

    lines.append("")
    lines.append(f"  Verdict: [{result.verdict.verdict.value}]")
    lines.append(f"    {result.verdict.rationale}")
    lines.append(format_performance_metrics(result))
    lines.append(format_feature_importance(result))
    lines.append(format_market_factors(result))
    return "\n".join(lines)


def format_performance_metrics(result: ForecastResult) -> str:
    m = result.metrics
    snap = result.snapshot
    return "\n".join([
        "",
        "  Model performance (simulated)",
        f"    MAPE:                 {m.mape:6.2f}%",
        f"    RMSE:                 {m.rmse:6.2f}",
        f"    Directional accuracy: {m.directional_accuracy:6.1f}%",
        f"    Sharpe ratio:         {m.sharpe_ratio:6.2f}",
        f"    Max drawdown:         {m.max_drawdown:6.2f}%",
        f"    Win rate:             {m.win_rate:6.1f}%",
        f"    Avg return:           {m.avg_return:6.2f}%",
        "",
        "  Seed window",
        f"    RSI {snap.rsi:.1f} | mean {_price(snap.sma20)} | "
        f"volatility {snap.volatility:.1%}",
    ])


def format_feature_importance(result: ForecastResult) -> str:
    lines = ["", "  Feature importance"]
    for f in result.feature_importance:
        lines.append(f"    {f.name:<26}  {_bar(f.importance)}  {f.importance:>3}")
    return "\n".join(lines)


def format_market_factors(result: ForecastResult) -> str:
    mf = result.market_factors
    rows = [
        ("Technical", mf.technical_score),
        ("Fundamental", mf.fundamental_score),
        ("Sentiment", mf.sentiment_score),
        ("Market regime", mf.market_regime_score),
        ("Volume", mf.volume_score),
        ("Macro", mf.macro_score),
    ]
    lines = ["", "  Market factors"]
    for name, score in rows:
        lines.append(f"    {name:<14}  {_bar(score)}  {score:5.1f}")
    return "\n".join(lines)


# ── Market data ───────────────────────────────────────────────────────────────


def format_quote(snapshot: MarketSnapshot) -> str:
    info = snapshot.info
    lines = [
        "",
        f"=== {info.long_name} ({info.symbol}) ===",
        f"  Price:     {_price(info.current_price)}  "
        f"({info.change:+,.2f} / {info.change_percent:+.2f}%)",
        f"  Day range: {_price(info.day_low)} - {_price(info.day_high)}",
        f"  52w range: {_price(info.fifty_two_week_low)} - {_price(info.fifty_two_week_high)}",
        f"  Sector:    {info.sector or 'Unknown'} / {info.industry or 'Unknown'}",
        f"  Bars:      {len(snapshot.bars)}",
    ]
    return "\n".join(lines)


def format_indices(quotes: list[IndexQuote]) -> str:
    lines = ["", "=== Market Indices ==="]
    header = f"  {'Index':<11}  {'Level':>11}  {'Change':>10}  {'%':>7}  {'Day range':<25}"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for q in quotes:
        lines.append(
            f"  {q.name:<11}  {_price(q.price):>11}  {q.change:>+10,.2f}  "
            f"{q.change_percent:>+6.2f}%  {_price(q.low)} - {_price(q.high)}"
        )
    return "\n".join(lines)


def format_symbols(entries: list[SymbolEntry], title: str = "Symbols") -> str:
    lines = ["", f"=== {title} ==="]
    if not entries:
        lines.append("  (no matches)")
        return "\n".join(lines)
    for e in entries:
        lines.append(f"  {e.base:<12}  {e.category.value:<15}  {e.name}")
    return "\n".join(lines)


def format_watchlist(items: list[WatchlistItem]) -> str:
    lines = ["", "=== Watchlist ==="]
    if not items:
        lines.append("  (empty; add one with `watchlist add SYMBOL`)")
        return "\n".join(lines)
    for item in items:
        lines.append(
            f"  {item.symbol:<14}  {_price(item.price):>11}  {item.change_percent:>+6.2f}%  "
            f"{item.name}  (added {item.added_at:%Y-%m-%d})"
        )
    return "\n".join(lines)


def format_technicals(
    price: float,
    indicators: TechnicalIndicators,
    overall: OverallSignal,
) -> str:
    """Indicator values followed by per-indicator signals and the overall call."""
    lines = [
        "",
        "=== Technical Analysis ===",
        f"  Price:   {_price(price)}",
        f"  SMA 20:  {_price(indicators.sma20)}",
        f"  SMA 50:  {_price(indicators.sma50)}",
        f"  RSI 14:  {indicators.rsi:.1f}",
        f"  MACD:    line {indicators.macd.line:.3f} | signal {indicators.macd.signal:.3f} "
        f"| hist {indicators.macd.histogram:.3f}",
        "",
    ]
    header = f"  {'Indicator':<12}  {'Signal':<11}  {'Strength':<8}  Action"
    lines.append(header)
    lines.append("  " + "-" * 60)
    for s in overall.components:
        lines.append(f"  {s.indicator:<12}  {s.signal:<11}  {s.strength:<8}  {s.action}")
    lines.append("")
    lines.append(f"  Overall: [{overall.signal.upper()}] confidence {overall.confidence}%")
    lines.append(f"    {overall.action}")
    return "\n".join(lines)


def format_fundamentals(symbol: str, rating: FundamentalRating) -> str:
    lines = ["", f"=== Fundamental Analysis: {symbol} ==="]
    if rating.is_estimated:
        lines.append("  [ESTIMATED] Ratios derived from sector profile, not reported figures")
    header = f"  {'Metric':<15}  {'Value':>8}  {'Score':>5}  {'Rating':<10}  Investment"
    lines.append("")
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for m in rating.metrics:
        value = _ratio(m.value, pct=(m.metric == "roe"))
        lines.append(
            f"  {m.metric:<15}  {value:>8}  {m.score:>5}  {m.label:<10}  {m.investment}"
        )
    lines.append("")
    lines.append(
        f"  Overall: [{rating.label.upper()}] score {rating.score:.1f} | "
        f"data confidence {rating.confidence:.0f}%"
    )
    lines.append(f"    {rating.investment}")
    return "\n".join(lines)


# ── News ──────────────────────────────────────────────────────────────────────


_SENTIMENT_TAGS = {"positive": "[+]", "negative": "[-]", "neutral": "[=]"}


def format_news(items: list[NewsItem], symbol: Optional[str] = None) -> str:
    lines = ["", f"=== Market News{f': {symbol}' if symbol else ''} ==="]
    if not items:
        lines.append("  (no news available)")
        return "\n".join(lines)
    for n in items:
        breaking = "BREAKING " if n.is_breaking else ""
        lines.append(
            f"  {_SENTIMENT_TAGS[n.sentiment]} {breaking}{n.title}"
        )
        lines.append(
            f"      {n.source} | {n.category} | "
            f"{n.published_at.strftime('%Y-%m-%d %H:%M')} UTC | "
            f"sentiment {n.sentiment_score:+.2f}"
        )
    return "\n".join(lines)


# ── AI analysis ───────────────────────────────────────────────────────────────


def format_ai_analysis(symbol: str, analysis: AIAnalysis) -> str:
    lines = ["", f"=== AI Analysis: {symbol} ==="]
    if analysis.error:
        lines.append(f"  [UNAVAILABLE] {analysis.error}")
    lines.append(
        f"  Recommendation: [{analysis.recommendation}] confidence {analysis.confidence:.0f}% "
        f"| overall score {analysis.overall_score:.0f}"
    )
    lines.append(f"  Target price:   {_price(analysis.target_price)}")
    lines.append(f"  Risk level:     {analysis.risk_level}")
    if analysis.time_horizon:
        lines.append(f"  Time horizon:   {analysis.time_horizon}")

    for title, entries in (
        ("Strengths", analysis.strengths),
        ("Concerns", analysis.concerns),
        ("Catalysts", analysis.catalysts),
    ):
        if entries:
            lines.append("")
            lines.append(f"  {title}")
            lines.extend(f"    - {e}" for e in entries)

    if analysis.risk_factors:
        lines.append("")
        lines.append("  Risk factors")
        for rf in analysis.risk_factors:
            lines.append(f"    {rf.factor:<24}  {rf.level:<6}  {rf.score:5.1f}  {rf.description}")

    scores = [
        ("Fundamental", analysis.fundamental_score),
        ("Technical", analysis.technical_score),
        ("Sentiment", analysis.sentiment_score),
        ("Momentum", analysis.momentum_score),
        ("Value", analysis.value_score),
    ]
    scored = [(name, s) for name, s in scores if s is not None]
    if scored:
        lines.append("")
        lines.append("  Scores")
        for name, s in scored:
            lines.append(f"    {name:<12}  {_bar(s)}  {s:5.1f}")
    return "\n".join(lines)
