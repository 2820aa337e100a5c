"""
Watchlist of symbols, persisted as a local JSON file.

File format (``config.watchlist.path``, default ``data/watchlist.json``)::

    [
      {"symbol": "TCS.NS", "name": "Tata Consultancy Services",
       "price": 4102.5, "change": 22.5, "change_percent": 0.55,
       "added_at": "2026-01-05T09:30:00Z"},
      ...
    ]

Newest entries come first.  A symbol appears at most once.

Usage::

    watchlist = Watchlist.load(Path("data/watchlist.json"))
    if watchlist.add(item_from_snapshot(snapshot)):
        watchlist.save()
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from stock_forecaster.models.market import MarketSnapshot
from stock_forecaster.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class WatchlistItem(BaseModel):
    """One watched symbol with the quote it had when added."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    price: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    added_at: datetime = Field(default_factory=utcnow)


def item_from_snapshot(snapshot: MarketSnapshot) -> WatchlistItem:
    info = snapshot.info
    return WatchlistItem(
        symbol=snapshot.symbol,
        name=info.long_name or snapshot.symbol,
        price=info.current_price,
        change=info.change,
        change_percent=info.change_percent,
    )


class Watchlist:
    """In-memory watchlist bound to a JSON file.

    Args:
        path:  File the list is saved to.
        items: Initial entries, newest first.
    """

    def __init__(self, path: Path, items: list[WatchlistItem] | None = None) -> None:
        self.path = Path(path)
        self._items: list[WatchlistItem] = list(items or [])

    @classmethod
    def load(cls, path: Path) -> "Watchlist":
        """Read ``path``; a missing file gives an empty watchlist.

        Raises:
            ValueError: If the file is not a JSON list of watchlist entries.
        """
        path = Path(path)
        if not path.exists():
            return cls(path)
        try:
            raw: Any = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("expected a JSON list")
            items = [WatchlistItem.model_validate(entry) for entry in raw]
        except (json.JSONDecodeError, ValidationError, ValueError) as exc:
            raise ValueError(f"Malformed watchlist file {path}: {exc}") from exc
        logger.debug("Loaded %d watchlist entries from %s", len(items), path)
        return cls(path, items)

    @property
    def items(self) -> list[WatchlistItem]:
        return list(self._items)

    @property
    def symbols(self) -> list[str]:
        return [item.symbol for item in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.upper() in self.symbols

    def add(self, item: WatchlistItem) -> bool:
        """Insert ``item`` at the head.  Returns ``False`` if already watched."""
        if item.symbol.upper() in self.symbols:
            return False
        self._items.insert(0, item.model_copy(update={"symbol": item.symbol.upper()}))
        logger.info("Watchlist: added %s", item.symbol)
        return True

    def remove(self, symbol: str) -> bool:
        """Drop ``symbol``.  Returns ``False`` if it was not watched."""
        symbol = symbol.upper()
        remaining = [item for item in self._items if item.symbol != symbol]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        logger.info("Watchlist: removed %s", symbol)
        return True

    def save(self) -> Path:
        """Write the list to ``path`` (parent dirs created if missing).

        Written to a sibling ``.tmp`` file, then moved into place.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [item.model_dump(mode="json") for item in self._items]
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)
        return self.path
