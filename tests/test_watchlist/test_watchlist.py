"""
Tests for stock_forecaster/watchlist.py.

What we test
------------
- A missing file loads as an empty watchlist; a malformed one raises.
- add() puts new symbols first and rejects duplicates.
- remove() reports whether anything was removed.
- save() round-trips through the JSON file and creates parent dirs.
- item_from_snapshot() copies the latest quote.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from stock_forecaster.watchlist import Watchlist, WatchlistItem, item_from_snapshot

ADDED = datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)


def _item(symbol: str, price: float = 100.0) -> WatchlistItem:
    return WatchlistItem(symbol=symbol, name=f"{symbol} Ltd", price=price, added_at=ADDED)


class TestLoad:
    def test_missing_file_is_empty(self, tmp_path):
        wl = Watchlist.load(tmp_path / "nope.json")
        assert len(wl) == 0
        assert wl.items == []

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "wl.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Malformed watchlist"):
            Watchlist.load(path)

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "wl.json"
        path.write_text('{"symbol": "TCS.NS"}', encoding="utf-8")
        with pytest.raises(ValueError, match="Malformed watchlist"):
            Watchlist.load(path)

    def test_invalid_entry(self, tmp_path):
        path = tmp_path / "wl.json"
        path.write_text('[{"name": "no symbol"}]', encoding="utf-8")
        with pytest.raises(ValueError, match="Malformed watchlist"):
            Watchlist.load(path)


class TestAddRemove:
    def test_newest_first(self, tmp_path):
        wl = Watchlist(tmp_path / "wl.json")
        assert wl.add(_item("TCS.NS"))
        assert wl.add(_item("INFY.NS"))
        assert wl.symbols == ["INFY.NS", "TCS.NS"]

    def test_duplicate_rejected(self, tmp_path):
        wl = Watchlist(tmp_path / "wl.json", [_item("TCS.NS", 100.0)])
        assert wl.add(_item("tcs.ns", 200.0)) is False
        assert len(wl) == 1
        assert wl.items[0].price == 100.0

    def test_symbol_normalised_to_upper(self, tmp_path):
        wl = Watchlist(tmp_path / "wl.json")
        wl.add(_item("sbin.ns"))
        assert wl.symbols == ["SBIN.NS"]
        assert "sbin.ns" in wl

    def test_remove(self, tmp_path):
        wl = Watchlist(tmp_path / "wl.json", [_item("TCS.NS"), _item("ITC.NS")])
        assert wl.remove("tcs.ns") is True
        assert wl.symbols == ["ITC.NS"]
        assert wl.remove("TCS.NS") is False


class TestSave:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "wl.json"
        wl = Watchlist(path)
        wl.add(_item("TCS.NS", 4100.0))
        wl.add(_item("INFY.NS", 1850.0))
        assert wl.save() == path

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert [entry["symbol"] for entry in raw] == ["INFY.NS", "TCS.NS"]
        assert not path.with_name("wl.json.tmp").exists()

        reloaded = Watchlist.load(path)
        assert reloaded.items == wl.items

    def test_save_after_remove_persists(self, tmp_path):
        path = tmp_path / "wl.json"
        wl = Watchlist(path, [_item("TCS.NS")])
        wl.save()
        wl.remove("TCS.NS")
        wl.save()
        assert Watchlist.load(path).items == []


def test_item_from_snapshot(sample_snapshot):
    item = item_from_snapshot(sample_snapshot)
    assert item.symbol == "TCS.NS"
    assert item.name == "Tata Consultancy Services Limited"
    assert item.price == 3850.0
    assert item.change == 50.0
    assert item.change_percent == pytest.approx(1.3158)
    assert item.added_at.tzinfo is not None
