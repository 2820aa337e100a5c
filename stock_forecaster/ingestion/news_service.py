"""
Market news: providers and a polled news service with subscribers.

Providers
---------
TemplateNewsProvider
    Synthetic Indian-market headlines.  Every third fetch for a symbol adds
    an earnings item about that symbol.  Each fetch returns 4-6 items
    published within the last 30 minutes.
RssNewsProvider
    Any RSS/Atom feed, parsed with feedparser; sentiment is a keyword count.

NewsService
-----------
Owned by whoever composes the application (CLI command, dashboard
session); there is no module-level instance.

    service = NewsService(TemplateNewsProvider())
    unsubscribe = service.subscribe(print_items)
    service.start("TCS.NS", interval=20.0)
    ...
    service.stop()
    unsubscribe()

``refresh`` fetches at most once per ``min_refresh_seconds``.  Items whose
id is already cached are ignored; when anything new arrives the cache is
re-sorted newest first, trimmed to ``max_items`` and pushed to every
subscriber.  Callbacks run on the caller's thread (the poller thread when
started) with no lock held.

``push`` bypasses the provider: it puts one item (e.g. ``breaking_news()``)
at the head of the cache and broadcasts it immediately.
"""

from __future__ import annotations

import calendar
import itertools
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, ClassVar, Literal, Optional, Protocol

import feedparser
import httpx
from pydantic import BaseModel, ConfigDict

from stock_forecaster.forecasting.random_source import RandomSource, default_random_source
from stock_forecaster.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

Sentiment = Literal["positive", "negative", "neutral"]
NewsCallback = Callable[[list["NewsItem"]], None]


class NewsItem(BaseModel):
    """One headline."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    url: str = ""
    source: str = ""
    published_at: datetime
    sentiment: Sentiment = "neutral"
    sentiment_score: float = 0.0
    category: str = "Market"
    is_breaking: bool = False


class NewsProvider(Protocol):
    def fetch(self, symbol: Optional[str] = None) -> list[NewsItem]: ...


# ── Providers ──────────────────────────────────────────────────────────────────

class TemplateNewsProvider:
    """Synthetic market headlines drawn from a fixed template set.

    Args:
        rng:   Random source for selection, timing and ids.
        clock: Returns the current aware datetime; defaults to UTC now.
    """

    TEMPLATES: ClassVar[list[dict]] = [
        {
            "title": "BREAKING: Nifty 50 surges past 25,000 mark on strong FII inflows",
            "description": "Indian benchmark index hits fresh record high as foreign institutional investors pour money into equities",
            "category": "Market", "sentiment": "positive", "sentiment_score": 0.9, "is_breaking": True,
        },
        {
            "title": "Bank Nifty rallies 2.5% on RBI's growth-supportive measures",
            "description": "Banking stocks lead market gains after central bank announces liquidity support measures",
            "category": "Banking", "sentiment": "positive", "sentiment_score": 0.8,
        },
        {
            "title": "IT sector gains momentum on favorable currency dynamics",
            "description": "Technology stocks benefit from rupee depreciation and strong demand from US clients",
            "category": "Technology", "sentiment": "positive", "sentiment_score": 0.75,
        },
        {
            "title": "Pharma stocks mixed after USFDA inspection updates",
            "description": "Pharmaceutical companies show varied performance on regulatory developments",
            "category": "Healthcare", "sentiment": "neutral", "sentiment_score": 0.1,
        },
        {
            "title": "Auto sector under pressure on rising commodity prices",
            "description": "Automobile manufacturers face margin concerns due to increased input costs",
            "category": "Automotive", "sentiment": "negative", "sentiment_score": -0.4,
        },
        {
            "title": "Energy stocks rally on crude oil price surge",
            "description": "Oil and gas companies benefit from global crude price momentum",
            "category": "Energy", "sentiment": "positive", "sentiment_score": 0.7,
        },
        {
            "title": "GDP growth projections raised by leading economists",
            "description": "Economic experts revise India's growth forecast upward on strong fundamentals",
            "category": "Economy", "sentiment": "positive", "sentiment_score": 0.85,
        },
        {
            "title": "FPIs turn net buyers after three months of selling",
            "description": "Foreign portfolio investors show renewed interest in Indian markets",
            "category": "Market", "sentiment": "positive", "sentiment_score": 0.8,
        },
        {
            "title": "Small-cap index outperforms benchmarks in today's session",
            "description": "Mid and small-cap stocks show strong momentum amid broad-based buying",
            "category": "Market", "sentiment": "positive", "sentiment_score": 0.7,
        },
        {
            "title": "Volatility expected ahead of monthly F&O expiry",
            "description": "Market experts advise caution as futures and options contracts near expiration",
            "category": "Market", "sentiment": "neutral", "sentiment_score": 0.0,
        },
    ]

    SOURCES: ClassVar[list[str]] = [
        "Economic Times", "Business Standard", "Mint", "Financial Express",
        "MoneyControl", "LiveMint", "Bloomberg Quint", "Reuters India",
        "CNBC TV18", "Business Today", "The Hindu BusinessLine",
    ]

    def __init__(
        self,
        rng: Optional[RandomSource] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.rng = rng or default_random_source()
        self.clock = clock or utcnow
        self._fetch_count = 0

    def fetch(self, symbol: Optional[str] = None) -> list[NewsItem]:
        self._fetch_count += 1
        now = self.clock()
        rng = self.rng

        templates = list(self.TEMPLATES)
        if symbol and self._fetch_count % 3 == 0:
            company = symbol.replace(".NS", "").replace(".BO", "")
            templates.insert(0, {
                "title": f"{company} shares jump 4% on strong Q3 earnings beat",
                "description": f"{company} reports better-than-expected quarterly results with improved margins",
                "category": "Earnings", "sentiment": "positive", "sentiment_score": 0.85,
                "is_breaking": rng.random() > 0.7,
            })

        count = 4 + int(rng.random() * 3)
        selected = sorted(templates, key=lambda _: rng.random())[:count]
        stamp = int(now.timestamp() * 1000)

        items: list[NewsItem] = []
        for index, template in enumerate(selected):
            minutes_ago = int(rng.random() * 30)
            token = f"{int(rng.random() * 16**9):09x}"
            items.append(
                NewsItem(
                    id=f"news_{stamp}_{self._fetch_count}_{index}_{token}",
                    title=template["title"],
                    description=template["description"],
                    url=f"https://example.com/news/{stamp}_{index}",
                    source=self.SOURCES[int(rng.random() * len(self.SOURCES))],
                    published_at=now - timedelta(minutes=minutes_ago),
                    sentiment=template["sentiment"],
                    sentiment_score=template["sentiment_score"] + (rng.random() - 0.5) * 0.1,
                    category=template["category"],
                    is_breaking=template.get("is_breaking", False),
                )
            )
        return items


_POSITIVE_WORDS = (
    "surge", "rally", "gain", "jump", "record", "beat", "upgrade", "rise", "soar",
    "strong", "outperform", "buy",
)
_NEGATIVE_WORDS = (
    "fall", "drop", "slump", "plunge", "loss", "miss", "downgrade", "weak",
    "decline", "crash", "sell-off", "pressure", "underperform",
)


def keyword_sentiment(text: str) -> tuple[Sentiment, float]:
    """Classify ``text`` by counting positive and negative market words.

    Returns ``(label, score)`` with score in [-1, 1].
    """
    lowered = text.lower()
    pos = sum(1 for w in _POSITIVE_WORDS if w in lowered)
    neg = sum(1 for w in _NEGATIVE_WORDS if w in lowered)
    if pos == neg:
        return "neutral", 0.0
    score = (pos - neg) / (pos + neg)
    return ("positive" if score > 0 else "negative"), score


class RssNewsProvider:
    """Headlines from an RSS/Atom feed.

    Args:
        url:         Feed URL.
        limit:       Maximum entries per fetch.
        http_client: Optional ``httpx.Client`` used to download the feed.
    """

    def __init__(
        self,
        url: str,
        limit: int = 20,
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.url = url
        self.limit = limit
        self._http = http_client or httpx.Client(timeout=timeout, follow_redirects=True)

    def fetch(self, symbol: Optional[str] = None) -> list[NewsItem]:
        """Download and parse the feed.

        Raises:
            httpx.HTTPStatusError: On non-2xx response.
        """
        resp = self._http.get(self.url)
        resp.raise_for_status()
        feed = feedparser.parse(resp.text)

        items: list[NewsItem] = []
        for entry in feed.entries[: self.limit]:
            if getattr(entry, "published_parsed", None):
                published_at = datetime.fromtimestamp(
                    calendar.timegm(entry.published_parsed), tz=timezone.utc
                )
            else:
                published_at = utcnow()

            title = getattr(entry, "title", "")
            summary = getattr(entry, "summary", "")[:500]
            link = getattr(entry, "link", "")
            sentiment, score = keyword_sentiment(f"{title} {summary}")
            title_lower = title.lower()
            if "earnings" in title_lower or "results" in title_lower:
                category = "Earnings"
            else:
                category = "Market"

            items.append(
                NewsItem(
                    id=getattr(entry, "id", "") or link or title,
                    title=title,
                    description=summary,
                    url=link,
                    source=feed.feed.get("title", "RSS"),
                    published_at=published_at,
                    sentiment=sentiment,
                    sentiment_score=score,
                    category=category,
                )
            )
        logger.debug("RssNewsProvider: parsed %d items from %s", len(items), self.url)
        return items


def breaking_news(
    now: Optional[datetime] = None, rng: Optional[RandomSource] = None
) -> NewsItem:
    """The canned market-wide breaking item pushed by ``NewsService.push_breaking``."""
    now = now or utcnow()
    rng = rng or default_random_source()
    token = f"{int(rng.random() * 16**9):09x}"
    return NewsItem(
        id=f"breaking_{int(now.timestamp() * 1000)}_{token}",
        title="BREAKING: Market hits circuit breaker as buying frenzy continues",
        description="Unprecedented buying activity triggers exchange safety measures",
        url="https://example.com/breaking-news",
        source="Market Watch",
        published_at=now,
        sentiment="positive",
        sentiment_score=0.95,
        category="Market",
        is_breaking=True,
    )


# ── Service ────────────────────────────────────────────────────────────────────

def _newest_first(items: list[NewsItem]) -> list[NewsItem]:
    return sorted(items, key=lambda n: n.published_at, reverse=True)


class NewsService:
    """Caches headlines from a provider and pushes updates to subscribers.

    Args:
        provider:            Headline source.
        max_items:           Cache size.
        min_refresh_seconds: Minimum spacing between provider fetches.
        clock:               Monotonic seconds, for the rate limit.
    """

    def __init__(
        self,
        provider: NewsProvider,
        max_items: int = 20,
        min_refresh_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.max_items = max_items
        self.min_refresh_seconds = min_refresh_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._cache: list[NewsItem] = []
        self._subscribers: dict[int, NewsCallback] = {}
        self._ids = itertools.count()
        self._last_fetch: Optional[float] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def items(self) -> list[NewsItem]:
        with self._lock:
            return list(self._cache)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def subscribe(self, callback: NewsCallback) -> Callable[[], None]:
        """Register ``callback``; it receives the cache now if non-empty.

        Returns:
            A function that removes the subscription (safe to call twice).
        """
        with self._lock:
            key = next(self._ids)
            self._subscribers[key] = callback
            cached = list(self._cache)
        logger.debug("News subscriber %d added", key)
        if cached:
            callback(cached)

        def unsubscribe() -> None:
            with self._lock:
                removed = self._subscribers.pop(key, None)
            if removed is not None:
                logger.debug("News subscriber %d removed", key)

        return unsubscribe

    def refresh(self, symbol: Optional[str] = None) -> bool:
        """Fetch, merge and broadcast.  Returns ``True`` if anything new arrived.

        Calls within ``min_refresh_seconds`` of the previous fetch are skipped.
        """
        with self._lock:
            now = self._clock()
            if self._last_fetch is not None and now - self._last_fetch < self.min_refresh_seconds:
                logger.debug("News refresh skipped: rate limited")
                return False
            self._last_fetch = now

        fetched = self.provider.fetch(symbol)

        with self._lock:
            known = {n.id for n in self._cache}
            fresh = [n for n in fetched if n.id not in known]
            if not fresh:
                return False
            self._cache = _newest_first(fresh + self._cache)[: self.max_items]
            snapshot = list(self._cache)
            callbacks = list(self._subscribers.values())

        logger.info(
            "News: %d new items for %s, broadcasting to %d subscribers",
            len(fresh), symbol or "market", len(callbacks),
        )
        for callback in callbacks:
            callback(list(snapshot))
        return True

    def push(self, item: NewsItem) -> bool:
        """Put ``item`` at the head of the cache and broadcast.

        Not rate limited.  Returns ``False`` (no broadcast) if the id is cached.
        """
        with self._lock:
            if any(n.id == item.id for n in self._cache):
                return False
            self._cache = [item, *self._cache][: self.max_items]
            snapshot = list(self._cache)
            callbacks = list(self._subscribers.values())

        logger.info("News: pushed %s to %d subscribers", item.id, len(callbacks))
        for callback in callbacks:
            callback(list(snapshot))
        return True

    def push_breaking(
        self, now: Optional[datetime] = None, rng: Optional[RandomSource] = None
    ) -> NewsItem:
        item = breaking_news(now, rng)
        self.push(item)
        return item

    def fetch_latest(self, symbol: Optional[str] = None) -> list[NewsItem]:
        """Replace the cache with a fresh fetch and return it (no broadcast)."""
        fetched = _newest_first(self.provider.fetch(symbol))[: self.max_items]
        with self._lock:
            self._cache = fetched
            self._last_fetch = self._clock()
        return list(fetched)

    def start(self, symbol: Optional[str] = None, interval: float = 20.0) -> None:
        """Poll in a background thread: once now, then every ``interval`` seconds."""
        self.stop()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(symbol, interval, self._stop_event),
            name="news-poller", daemon=True,
        )
        self._thread.start()
        logger.info("News polling started | symbol=%s | interval=%.1fs", symbol, interval)

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout)
        self._thread = None
        logger.info("News polling stopped")

    def _run(self, symbol: Optional[str], interval: float, stop_event: threading.Event) -> None:
        while True:
            self._poll_once(symbol)
            if stop_event.wait(interval):
                return

    def _poll_once(self, symbol: Optional[str]) -> None:
        try:
            self.refresh(symbol)
        except Exception as exc:
            logger.error("News refresh failed for %s: %s", symbol, exc, exc_info=True)
