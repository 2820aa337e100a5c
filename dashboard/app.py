"""
Stock Forecaster — Streamlit Dashboard
======================================

Optional local analysis UI over the same engine the CLI uses.

App structure (5 tabs)
----------------------
  1. Forecast     — Forecast chart with band, day-by-day table, verdict,
                    simulated model metrics, feature importance and factors.
  2. Technicals   — SMA 20/50, RSI 14, MACD and the combined signal.
  3. Fundamentals — Ratio ratings; estimated ratios carry a warning badge.
  4. News         — Headlines, refreshed at most once per configured
                    interval per session; breaking items can be pushed.
  5. AI Analysis  — Narrative analysis (requires GEMINI_API_KEY).

The sidebar holds symbol search (free text, suggestions, category browse),
the forecast controls and the watchlist.  Benchmark index levels sit above
the tabs.

Usage
-----
    pip install -e ".[dashboard]"
    streamlit run dashboard/app.py
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

# ── Ensure project root is importable ────────────────────────────────────────
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import streamlit as st

# ── Must be the first Streamlit call ─────────────────────────────────────────
st.set_page_config(
    page_title="Stock Forecaster",
    layout="wide",
    initial_sidebar_state="expanded",
)

import pandas as pd

from dashboard.data_loader import (
    forecast_chart_frame,
    forecast_or_none,
    get_config,
    load_indices,
    load_snapshot,
    load_watchlist,
)
from stock_forecaster.analysis.ai_analysis import GeminiClient, analyze_stock
from stock_forecaster.analysis.fundamentals import rate_fundamentals
from stock_forecaster.analysis.signals import evaluate_signals
from stock_forecaster.ingestion.news_service import (
    NewsService,
    RssNewsProvider,
    TemplateNewsProvider,
)
from stock_forecaster.models.forecast import ForecastResult, Verdict
from stock_forecaster.models.market import MarketSnapshot
from stock_forecaster.taxonomy.archetype_taxonomy import DISPLAY_NAMES, ModelSelection
from stock_forecaster.taxonomy.symbol_catalog import (
    SymbolCategory,
    search_symbols,
    symbols_by_category,
)
from stock_forecaster.utils.time_utils import TIMEFRAME_DAYS, is_market_open
from stock_forecaster.watchlist import item_from_snapshot

logger = logging.getLogger(__name__)

config = get_config()

_TIMEFRAME_LABELS = {"1week": "1 Week", "1month": "1 Month", "3months": "3 Months"}
_SYMBOL_KEY = "symbol_input"


def _select_symbol(base: str) -> None:
    st.session_state[_SYMBOL_KEY] = base


# ── Sidebar ───────────────────────────────────────────────────────────────────

with st.sidebar:
    st.title("Stock Forecaster")
    st.caption("NSE / BSE equities — simulated multi-model forecasts")
    st.divider()

    st.session_state.setdefault(_SYMBOL_KEY, "TCS")
    symbol = st.text_input(
        "Symbol", key=_SYMBOL_KEY, help="Bare (TCS) or suffixed (TCS.NS)."
    )

    category = st.selectbox(
        "Browse", options=["Suggestions"] + [c.value for c in SymbolCategory]
    )
    suggestions = (
        search_symbols(symbol, limit=8) if category == "Suggestions"
        else symbols_by_category(category)
    )
    for entry in suggestions:
        st.button(
            f"{entry.base} · {entry.name}",
            key=f"pick_{entry.base}",
            on_click=_select_symbol,
            args=(entry.base,),
            use_container_width=True,
        )

    st.divider()

    timeframe = st.radio(
        "Timeframe",
        options=list(TIMEFRAME_DAYS),
        index=list(TIMEFRAME_DAYS).index(config.forecast.default_timeframe),
        format_func=lambda t: _TIMEFRAME_LABELS.get(t, t),
        horizontal=True,
    )

    selections = list(ModelSelection)
    model = st.selectbox(
        "Model",
        options=selections,
        index=selections.index(ModelSelection(config.forecast.default_model)),
        format_func=lambda s: DISPLAY_NAMES[s],
    )

    seed_text = st.text_input(
        "Seed (optional)",
        value="",
        help="Integer for reproducible (and cached) runs; blank gives a fresh run each time.",
    )
    seed = int(seed_text) if seed_text.strip().lstrip("-").isdigit() else None

    fixture = st.checkbox(
        "Fixture data",
        value=False,
        help="Use deterministic offline market data instead of live requests.",
    )

    if st.button("Clear cache", help="Re-fetch market data and re-run seeded forecasts."):
        st.cache_data.clear()
        st.rerun()

    st.divider()
    st.caption("Market open" if is_market_open() else "Market closed")


snapshot = load_snapshot(symbol, fixture) if symbol.strip() else None
label = snapshot.symbol if snapshot else (symbol.strip().upper() or "DEMO")


# ── Watchlist (sidebar) ───────────────────────────────────────────────────────

with st.sidebar:
    st.divider()
    st.subheader("Watchlist")
    try:
        watchlist = load_watchlist()
    except ValueError as exc:
        st.error(str(exc))
        watchlist = None

    if watchlist is not None:
        if snapshot is not None and snapshot.symbol not in watchlist:
            if st.button(f"Add {snapshot.symbol}"):
                watchlist.add(item_from_snapshot(snapshot))
                watchlist.save()
                st.rerun()
        if not len(watchlist):
            st.caption("Empty. Load a symbol and add it.")
        for item in watchlist.items:
            c_pick, c_del = st.columns([4, 1])
            c_pick.button(
                f"{item.symbol} {item.price:,.2f} ({item.change_percent:+.2f}%)",
                key=f"wl_{item.symbol}",
                on_click=_select_symbol,
                args=(item.symbol,),
            )
            if c_del.button("✕", key=f"wl_rm_{item.symbol}", help=f"Remove {item.symbol}"):
                watchlist.remove(item.symbol)
                watchlist.save()
                st.rerun()


# ── Header: indices and quote ─────────────────────────────────────────────────

index_quotes = load_indices(fixture)
if index_quotes:
    for col, q in zip(st.columns(len(index_quotes)), index_quotes):
        col.metric(q.name, f"{q.price:,.2f}", f"{q.change:+,.2f} ({q.change_percent:+.2f}%)")
else:
    st.caption("Index data unavailable.")

if snapshot is None:
    st.warning(
        f"No market data for **{label}**; forecasts use the demo price "
        f"{config.forecast.demo_fallback_price:,.2f}."
    )
else:
    info = snapshot.info
    c1, c2, c3, c4 = st.columns(4)
    c1.metric(info.long_name, f"{info.current_price:,.2f}", f"{info.change_percent:+.2f}%")
    c2.metric("Day range", f"{info.day_low or 0:,.2f} - {info.day_high or 0:,.2f}")
    c3.metric("52w range", f"{info.fifty_two_week_low or 0:,.2f} - {info.fifty_two_week_high or 0:,.2f}")
    c4.metric("Sector", info.sector or "Unknown")


tab_fc, tab_tech, tab_fund, tab_news, tab_ai = st.tabs(
    ["Forecast", "Technicals", "Fundamentals", "News", "AI Analysis"]
)


# ══════════════════════════════════════════════════════════════════════════════
# Tab 1: Forecast
# ══════════════════════════════════════════════════════════════════════════════

_VERDICT_STYLE = {
    Verdict.STRONG_BUY: st.success,
    Verdict.BUY: st.success,
    Verdict.HOLD: st.info,
    Verdict.CONSIDER_SELL: st.warning,
    Verdict.SELL: st.error,
}


def _render_forecast(result: ForecastResult, snapshot: MarketSnapshot | None) -> None:
    final = result.final_point

    st.header(f"{_TIMEFRAME_LABELS[timeframe]} forecast — {DISPLAY_NAMES[result.selection]}")
    _VERDICT_STYLE[result.verdict.verdict](
        f"**{result.verdict.verdict.value}** — {result.verdict.rationale}"
    )

    c1, c2, c3, c4 = st.columns(4)
    change = (final.predicted_price - result.current_price) / result.current_price
    c1.metric("Target", f"{final.predicted_price:,.2f}", f"{change:+.2%}")
    c2.metric("Range", f"{final.lower_bound:,.0f} - {final.upper_bound:,.0f}")
    c3.metric("Confidence", f"{final.confidence}%")
    c4.metric("Support / Resistance", f"{final.support:,.0f} / {final.resistance:,.0f}")

    st.line_chart(forecast_chart_frame(result, snapshot))

    with st.expander("Day-by-day predictions", expanded=False):
        st.dataframe(
            pd.DataFrame([p.model_dump() for p in result.primary]),
            use_container_width=True,
            hide_index=True,
        )

    if result.selection is ModelSelection.ENSEMBLE:
        with st.expander("Ensemble members", expanded=False):
            members = pd.DataFrame({
                DISPLAY_NAMES[ModelSelection(key)]: [p.predicted_price for p in run]
                for key, run in result.runs.items()
            }, index=[p.date for p in result.primary])
            st.line_chart(members)

    st.subheader("Model performance (simulated)")
    m = result.metrics
    p1, p2, p3, p4 = st.columns(4)
    p1.metric("MAPE", f"{m.mape:.2f}%")
    p2.metric("Directional accuracy", f"{m.directional_accuracy:.1f}%")
    p3.metric("Sharpe", f"{m.sharpe_ratio:.2f}")
    p4.metric("Win rate", f"{m.win_rate:.1f}%")

    col_f, col_m = st.columns(2)
    with col_f:
        st.subheader("Feature importance")
        st.bar_chart(
            pd.Series({f.name: f.importance for f in result.feature_importance}, name="importance")
        )
    with col_m:
        st.subheader("Market factors")
        mf = result.market_factors
        st.bar_chart(pd.Series({
            "Technical": mf.technical_score,
            "Fundamental": mf.fundamental_score,
            "Sentiment": mf.sentiment_score,
            "Market regime": mf.market_regime_score,
            "Volume": mf.volume_score,
            "Macro": mf.macro_score,
        }, name="score"))


with tab_fc:
    result = forecast_or_none(
        label,
        snapshot.info.current_price if snapshot else None,
        TIMEFRAME_DAYS[timeframe],
        model.value,
        seed,
    )
    if result is None:
        st.warning("No forecast available: the forecast engine failed. Details are in the log.")
    else:
        _render_forecast(result, snapshot)


# ══════════════════════════════════════════════════════════════════════════════
# Tab 2: Technicals
# ══════════════════════════════════════════════════════════════════════════════

with tab_tech:
    st.header("Technical Analysis")
    if snapshot is None or not snapshot.bars:
        st.info("No price history available for this symbol.")
    else:
        ind = snapshot.indicators
        overall = evaluate_signals(snapshot.info.current_price, ind)

        t1, t2, t3, t4 = st.columns(4)
        t1.metric("SMA 20", f"{ind.sma20:,.2f}")
        t2.metric("SMA 50", f"{ind.sma50:,.2f}")
        t3.metric("RSI 14", f"{ind.rsi:.1f}")
        t4.metric("MACD hist", f"{ind.macd.histogram:.3f}")

        st.subheader(f"Overall: {overall.signal} ({overall.confidence}%)")
        st.caption(overall.action)
        st.dataframe(
            pd.DataFrame([s.model_dump() for s in overall.components]),
            use_container_width=True,
            hide_index=True,
        )


# ══════════════════════════════════════════════════════════════════════════════
# Tab 3: Fundamentals
# ══════════════════════════════════════════════════════════════════════════════

with tab_fund:
    st.header("Fundamental Analysis")
    if snapshot is None:
        st.info("No fundamentals available for this symbol.")
    else:
        rating = rate_fundamentals(snapshot.info)
        if rating.is_estimated:
            st.warning("ESTIMATED — ratios derived from the sector profile, not reported figures.")
        f1, f2, f3 = st.columns(3)
        f1.metric("Rating", rating.label)
        f2.metric("Score", f"{rating.score:.1f}")
        f3.metric("Data confidence", f"{rating.confidence:.0f}%")
        st.caption(rating.investment)
        st.dataframe(
            pd.DataFrame([r.model_dump() for r in rating.metrics]),
            use_container_width=True,
            hide_index=True,
        )


# ══════════════════════════════════════════════════════════════════════════════
# Tab 4: News
# ══════════════════════════════════════════════════════════════════════════════

def _news_service() -> NewsService:
    if "news_service" not in st.session_state:
        if config.news.rss_url:
            provider = RssNewsProvider(config.news.rss_url, limit=config.news.max_items)
        else:
            provider = TemplateNewsProvider()
        st.session_state["news_service"] = NewsService(
            provider,
            max_items=config.news.max_items,
            min_refresh_seconds=config.news.min_refresh_seconds,
        )
    return st.session_state["news_service"]


with tab_news:
    st.header("Market News")
    service = _news_service()
    b_refresh, b_breaking = st.columns(2)
    if b_refresh.button("Refresh news") or not service.items:
        try:
            service.refresh(label)
        except Exception:
            logger.exception("News refresh failed for %s", label)
            st.warning("News could not be refreshed. Details are in the log.")
    if b_breaking.button("Simulate breaking news"):
        service.push_breaking()

    items = service.items
    if not items:
        st.info("No news available.")
    for n in items:
        prefix = "BREAKING — " if n.is_breaking else ""
        st.markdown(f"**{prefix}{n.title}**")
        st.caption(
            f"{n.source} | {n.category} | {n.published_at:%H:%M} UTC | "
            f"{n.sentiment} ({n.sentiment_score:+.2f})"
        )
        if n.description:
            st.write(n.description)


# ══════════════════════════════════════════════════════════════════════════════
# Tab 5: AI Analysis
# ══════════════════════════════════════════════════════════════════════════════

with tab_ai:
    st.header("AI Analysis")
    if snapshot is None:
        st.info("Load a symbol with market data to request an analysis.")
    elif st.button("Generate analysis"):
        client = GeminiClient(os.environ.get("GEMINI_API_KEY"), config.analysis)
        with st.spinner("Analyzing..."):
            analysis = analyze_stock(snapshot.symbol, snapshot.info, client)
        if analysis.error:
            st.error(analysis.error)
        a1, a2, a3, a4 = st.columns(4)
        a1.metric("Recommendation", analysis.recommendation)
        a2.metric("Confidence", f"{analysis.confidence:.0f}%")
        a3.metric("Target", f"{analysis.target_price:,.2f}")
        a4.metric("Risk", analysis.risk_level)
        for title, entries in (
            ("Strengths", analysis.strengths),
            ("Concerns", analysis.concerns),
            ("Catalysts", analysis.catalysts),
        ):
            if entries:
                st.subheader(title)
                st.markdown("\n".join(f"- {e}" for e in entries))
        if analysis.risk_factors:
            st.subheader("Risk factors")
            st.dataframe(
                pd.DataFrame([rf.model_dump() for rf in analysis.risk_factors]),
                use_container_width=True,
                hide_index=True,
            )
