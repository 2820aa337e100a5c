"""
Catalog of commonly traded NSE symbols, grouped by category.

Backs the symbol search box: free-text lookup, a curated "popular" list and
per-category browsing.  Symbols are stored with their ``.NS`` suffix.

Usage example::

    from stock_forecaster.taxonomy.symbol_catalog import search_symbols

    [e.symbol for e in search_symbols("bank", limit=3)]
    # ['BANKBARODA.NS', 'HDFCBANK.NS', 'ICICIBANK.NS']

This module has NO imports from any other ``stock_forecaster`` package.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class SymbolCategory(StrEnum):
    IT = "IT"
    BANKING = "Banking"
    PHARMA = "Pharma"
    AUTO = "Auto"
    FMCG = "FMCG"
    ENERGY = "Energy"
    INFRASTRUCTURE = "Infrastructure"


class SymbolEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    category: SymbolCategory

    @property
    def base(self) -> str:
        return self.symbol.split(".")[0]


def _entries(category: SymbolCategory, rows: list[tuple[str, str]]) -> list[SymbolEntry]:
    return [SymbolEntry(symbol=f"{s}.NS", name=n, category=category) for s, n in rows]


CATALOG: list[SymbolEntry] = [
    *_entries(SymbolCategory.IT, [
        ("TCS", "Tata Consultancy Services"),
        ("INFY", "Infosys Limited"),
        ("WIPRO", "Wipro Limited"),
        ("HCLTECH", "HCL Technologies Limited"),
        ("TECHM", "Tech Mahindra Limited"),
        ("LTIM", "LTIMindtree Limited"),
    ]),
    *_entries(SymbolCategory.BANKING, [
        ("HDFCBANK", "HDFC Bank Limited"),
        ("ICICIBANK", "ICICI Bank Limited"),
        ("SBIN", "State Bank of India"),
        ("KOTAKBANK", "Kotak Mahindra Bank"),
        ("AXISBANK", "Axis Bank Limited"),
        ("INDUSINDBK", "IndusInd Bank Limited"),
        ("PNB", "Punjab National Bank"),
        ("BANKBARODA", "Bank of Baroda"),
    ]),
    *_entries(SymbolCategory.PHARMA, [
        ("SUNPHARMA", "Sun Pharmaceutical Industries"),
        ("DRREDDY", "Dr. Reddy's Laboratories"),
        ("CIPLA", "Cipla Limited"),
        ("DIVISLAB", "Divi's Laboratories"),
        ("LUPIN", "Lupin Limited"),
    ]),
    *_entries(SymbolCategory.AUTO, [
        ("MARUTI", "Maruti Suzuki India Limited"),
        ("TATAMOTORS", "Tata Motors Limited"),
        ("M&M", "Mahindra & Mahindra Limited"),
        ("BAJAJ-AUTO", "Bajaj Auto Limited"),
        ("HEROMOTOCO", "Hero MotoCorp Limited"),
        ("EICHERMOT", "Eicher Motors Limited"),
    ]),
    *_entries(SymbolCategory.FMCG, [
        ("HINDUNILVR", "Hindustan Unilever Limited"),
        ("ITC", "ITC Limited"),
        ("NESTLEIND", "Nestle India Limited"),
        ("BRITANNIA", "Britannia Industries"),
        ("DABUR", "Dabur India Limited"),
        ("TATACONSUM", "Tata Consumer Products"),
    ]),
    *_entries(SymbolCategory.ENERGY, [
        ("RELIANCE", "Reliance Industries Limited"),
        ("ONGC", "Oil and Natural Gas Corporation"),
        ("NTPC", "NTPC Limited"),
        ("POWERGRID", "Power Grid Corporation of India"),
        ("BPCL", "Bharat Petroleum Corporation"),
        ("IOC", "Indian Oil Corporation"),
    ]),
    *_entries(SymbolCategory.INFRASTRUCTURE, [
        ("LT", "Larsen & Toubro Limited"),
        ("ULTRACEMCO", "UltraTech Cement Limited"),
        ("ADANIPORTS", "Adani Ports and SEZ"),
        ("GRASIM", "Grasim Industries"),
        ("DLF", "DLF Limited"),
    ]),
]

POPULAR: tuple[str, ...] = (
    "RELIANCE", "TCS", "HDFCBANK", "INFY", "ICICIBANK",
    "SBIN", "ITC", "MARUTI", "LT", "SUNPHARMA",
)

_BY_BASE: dict[str, SymbolEntry] = {e.base: e for e in CATALOG}


def popular_symbols() -> list[SymbolEntry]:
    return [_BY_BASE[s] for s in POPULAR]


def symbols_by_category(category: str) -> list[SymbolEntry]:
    """All catalog entries in ``category`` (case-insensitive).

    Raises:
        ValueError: If ``category`` is not a ``SymbolCategory``.
    """
    wanted = category.strip().lower()
    for member in SymbolCategory:
        if member.value.lower() == wanted:
            return [e for e in CATALOG if e.category is member]
    valid = [c.value for c in SymbolCategory]
    raise ValueError(f"Unknown category '{category}'. Must be one of {valid}.")


def search_symbols(query: str, limit: int = 10) -> list[SymbolEntry]:
    """Substring match on symbol or company name; symbol-prefix hits first.

    An empty query returns the popular list.
    """
    needle = query.strip().upper()
    if needle.endswith(".NS") or needle.endswith(".BO"):
        needle = needle[:-3]
    if not needle:
        return popular_symbols()[:limit]

    prefix = [e for e in CATALOG if e.base.startswith(needle)]
    rest = [
        e for e in CATALOG
        if e not in prefix and (needle in e.base or needle in e.name.upper())
    ]
    return (prefix + rest)[:limit]
