"""Product catalog and canonical-name resolution.

Every distributor spells products its own way; the catalog maps each alias,
item number and vendor code to one canonical product name. Resolution order:

  1. exact match on the normalized input (names, item numbers, vendor codes)
  2. substring match in either direction over name aliases, table order
  3. the raw input unchanged (logged once, counted in ``unmapped``)
"""
from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import yaml

from .logging_utils import LOGGER_NAME, log_warning


DEFAULT_CATALOG_PATH = Path(__file__).with_name("data") / "product_catalog.yaml"
VENDORS = ("alpine", "petes", "kehe", "vistar", "dot")

_WS_RX = re.compile(r"\s+")
_STRIP_RX = re.compile(r"[^\w\s&]")


def normalize_product_name(name: Optional[str]) -> str:
    """Upper-case, collapse whitespace and drop punctuation except ``&``."""

    if name is None:
        return ""
    text = _WS_RX.sub(" ", str(name).strip().upper())
    return _STRIP_RX.sub("", text).strip()


@dataclass
class ProductEntry:
    item_number: str
    canonical_name: str
    category: Optional[str] = None
    alternate_names: List[str] = field(default_factory=list)
    vendor_codes: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: dict) -> "ProductEntry":
        codes = payload.get("vendor_codes") or {}
        return cls(
            item_number=str(payload["item_number"]),
            canonical_name=str(payload["canonical_name"]),
            category=payload.get("category"),
            alternate_names=[str(a) for a in payload.get("alternate_names") or []],
            vendor_codes={k: [str(c) for c in v or []] for k, v in codes.items()},
        )

    def code_keys(self) -> List[str]:
        keys = [self.item_number]
        for codes in self.vendor_codes.values():
            keys.extend(codes)
        return keys

    def name_keys(self) -> List[str]:
        return [self.canonical_name, *self.alternate_names]


class ProductCatalog:
    """Alias lookup over a list of :class:`ProductEntry`."""

    def __init__(self, entries: Iterable[ProductEntry] = (), logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.entries: List[ProductEntry] = []
        self.conflicts: List[Tuple[str, str, str]] = []
        self.unmapped: Counter = Counter()
        self._lookup: Dict[str, str] = {}
        self._name_keys: Dict[str, str] = {}
        self._by_item: Dict[str, ProductEntry] = {}
        self._by_name: Dict[str, ProductEntry] = {}
        self._vendor_items: Dict[str, Dict[str, str]] = {v: {} for v in VENDORS}
        for entry in entries:
            self.add_mapping(entry)

    @classmethod
    def from_yaml(cls, path: str | Path | None = None, logger: Optional[logging.Logger] = None) -> "ProductCatalog":
        source = Path(path) if path else DEFAULT_CATALOG_PATH
        with open(source, "r", encoding="utf-8") as stream:
            payload = yaml.safe_load(stream) or {}
        entries = [ProductEntry.from_dict(p) for p in payload.get("products", [])]
        return cls(entries, logger=logger)

    # -- building ------------------------------------------------------------------

    def _register(self, key: str, canonical: str, is_name: bool) -> None:
        if not key:
            return
        existing = self._lookup.get(key)
        if existing is not None and existing != canonical:
            self.conflicts.append((key, existing, canonical))
            log_warning(self.logger, f"Alias {key!r} maps to both {existing!r} and {canonical!r}; keeping {existing!r}")
            return
        self._lookup[key] = canonical
        if is_name:
            self._name_keys.setdefault(key, canonical)

    def add_mapping(self, entry: ProductEntry) -> None:
        """Add a product; aliases already claimed by another product are reported as conflicts."""

        self.entries.append(entry)
        canonical = entry.canonical_name
        self._by_item.setdefault(entry.item_number, entry)
        self._by_name.setdefault(canonical, entry)
        for name in entry.name_keys():
            self._register(normalize_product_name(name), canonical, is_name=True)
        for code in entry.code_keys():
            self._register(normalize_product_name(code), canonical, is_name=False)
        for vendor, codes in entry.vendor_codes.items():
            table = self._vendor_items.setdefault(vendor, {})
            for code in codes:
                table.setdefault(str(code).strip(), entry.item_number)

    # -- resolution ----------------------------------------------------------------

    def lookup(self, raw: Optional[str]) -> Optional[str]:
        """Canonical name for ``raw`` or ``None``; no logging, no counting."""

        key = normalize_product_name(raw)
        if not key:
            return None
        exact = self._lookup.get(key)
        if exact is not None:
            return exact
        for alias, canonical in self._name_keys.items():
            if alias in key or key in alias:
                return canonical
        return None

    def map_to_canonical(self, raw: Optional[str]) -> str:
        """Resolve ``raw`` to its canonical name, or return it unchanged."""

        found = self.lookup(raw)
        if found is not None:
            return found
        text = "" if raw is None else str(raw).strip()
        if not text:
            return "" if raw is None else str(raw)
        if text not in self.unmapped:
            self.logger.info("[UNMAPPED] No product mapping for %r", text)
        self.unmapped[text] += 1
        return text

    def is_mapped(self, raw: Optional[str]) -> bool:
        return self.lookup(raw) is not None

    # -- catalog queries -----------------------------------------------------------

    def item_number_for_code(self, vendor: str, code: Optional[str]) -> Optional[str]:
        if code is None:
            return None
        return self._vendor_items.get(vendor, {}).get(str(code).strip())

    def item_number_from_alpine_code(self, code: Optional[str]) -> Optional[str]:
        return self.item_number_for_code("alpine", code)

    def item_number_from_petes_code(self, code: Optional[str]) -> Optional[str]:
        return self.item_number_for_code("petes", code)

    def item_number_from_vistar_code(self, code: Optional[str]) -> Optional[str]:
        return self.item_number_for_code("vistar", code)

    def item_number_from_kehe_upc(self, code: Optional[str]) -> Optional[str]:
        return self.item_number_for_code("kehe", code)

    def item_number_from_dot_code(self, code: Optional[str]) -> Optional[str]:
        return self.item_number_for_code("dot", code)

    def item_number_for_product(self, canonical_name: Optional[str]) -> Optional[str]:
        entry = self._by_name.get(canonical_name or "")
        return entry.item_number if entry else None

    def by_item_number(self, item_number: str) -> Optional[ProductEntry]:
        return self._by_item.get(str(item_number))

    def by_canonical_name(self, name: str) -> Optional[ProductEntry]:
        return self._by_name.get(name)

    def by_category(self, category: str) -> List[ProductEntry]:
        wanted = (category or "").lower()
        return [e for e in self.entries if (e.category or "").lower() == wanted]

    def categories(self) -> List[str]:
        return sorted({e.category for e in self.entries if e.category})

    def canonical_names(self) -> List[str]:
        return list(self._by_name)

    def unmapped_summary(self) -> Dict[str, int]:
        return dict(self.unmapped)
