"""Master pricing: case weight and case cost per item.

Used by parsers whose source files report quantities but no revenue or
weight (Tony's, Troia). The master workbook is optional; a built-in table
covers the core products when it is absent.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .logging_utils import LOGGER_NAME, log_system_event, log_warning
from .normalizers import clean_text, to_number


@dataclass(frozen=True)
class PricingEntry:
    item_number: str
    description: str
    case_weight: float
    case_cost: float
    unit_cost: float
    pack: Optional[str] = None
    size: Optional[str] = None


def _entry(item: str, description: str, weight: float, case_cost: float, unit_cost: float) -> PricingEntry:
    return PricingEntry(item, description, weight, case_cost, unit_cost)


DEFAULT_PRICING: List[PricingEntry] = [
    _entry("321", "Uncured Bacon Breakfast Burrito", 6.0, 33.60, 2.80),
    _entry("331", "Sausage Breakfast Burrito", 6.0, 33.60, 2.80),
    _entry("341", "Chile Verde Breakfast Burrito", 6.0, 33.60, 2.80),
    _entry("361", "Black Bean Breakfast Burrito", 6.0, 33.60, 2.80),
    _entry("311", "Chorizo Breakfast Burrito", 6.0, 33.60, 2.80),
    _entry("411", "Chicken Florentine Wrap", 6.0, 33.60, 2.80),
    _entry("421", "Chicken Parmesan Wrap", 6.0, 33.60, 2.80),
    _entry("431", "Chicken Bacon Ranch Wrap", 6.0, 33.60, 2.80),
    _entry("441", "Chicken Wrap", 6.0, 33.60, 2.80),
    _entry("451", "Chicken Curry Wrap", 6.0, 33.60, 2.80),
    _entry("841", "Turkey Sausage Breakfast Sandwich", 3.75, 25.20, 2.10),
    _entry("831", "Pesto Provolone Breakfast Sandwich", 3.75, 25.20, 2.10),
    _entry("811", "Bacon Breakfast Sandwich", 3.75, 25.20, 2.10),
    _entry("821", "Chorizo Breakfast Sandwich", 3.75, 25.20, 2.10),
    _entry("211", "Beef & Cheese Piroshki", 4.0, 26.40, 2.20),
    _entry("611", "Jumbo Beef Frank Bagel Dog", 6.0, 30.00, 2.50),
    _entry("612", "Jumbo Polish Sausage Bagel Dog", 6.0, 30.00, 2.50),
    _entry("131", "Italian Combo Calzone", 6.75, 37.20, 3.10),
    _entry("111", "Pesto Mushroom Calzone", 6.75, 37.20, 3.10),
    _entry("141", "Chicken Fajita Calzone", 6.75, 37.20, 3.10),
    _entry("122", "Spinach Feta Calzone", 6.75, 37.20, 3.10),
]

# Used when neither item number nor description finds an entry
BURRITO_DEFAULT = (33.60, 2.80)
SANDWICH_DEFAULT = (25.20, 2.10)
GENERIC_DEFAULT = (30.00, 2.50)
DEFAULT_CASE_WEIGHT = 6.0
SANDWICH_CASE_WEIGHT = 3.75
PIROSHKI_CASE_WEIGHT = 4.0

_WORD_RX = re.compile(r"[a-z0-9]+")

# Header names with their positional fallback (column letter A, E, F, G, H, J, K)
_COLUMNS = {
    "item_number": (("item #", "item#", "item no", "item"), 0),
    "description": (("description", "product"), 4),
    "pack": (("pack",), 5),
    "size": (("size",), 6),
    "case_weight": (("case wt", "case weight", "case lbs"), 7),
    "case_cost": (("case cost", "case price"), 9),
    "unit_cost": (("unit cost", "unit price"), 10),
}


def _words(text: str) -> set:
    return set(_WORD_RX.findall((text or "").lower()))


def _pick_sheet(sheet_names: List[str]) -> str:
    for wanted in ("fob distributor", "shelflife"):
        for name in sheet_names:
            if wanted in name.lower():
                return name
    return sheet_names[0]


def _column_positions(header: List[str]) -> Dict[str, int]:
    lowered = [clean_text(h).lower() for h in header]
    positions: Dict[str, int] = {}
    for key, (candidates, fallback) in _COLUMNS.items():
        found = None
        for candidate in candidates:
            for idx, cell in enumerate(lowered):
                if cell == candidate or (len(candidate) > 4 and candidate in cell):
                    found = idx
                    break
            if found is not None:
                break
        positions[key] = found if found is not None else fallback
    return positions


class MasterPricing:
    """Item pricing with item-number, exact-name, overlap and category lookups."""

    def __init__(self, entries: Optional[List[PricingEntry]] = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.entries: List[PricingEntry] = list(entries if entries is not None else DEFAULT_PRICING)
        self._by_item = {e.item_number: e for e in self.entries}
        self._by_description = {e.description.lower(): e for e in self.entries}

    @classmethod
    def from_workbook(cls, path: str | Path | None, logger: Optional[logging.Logger] = None) -> "MasterPricing":
        """Load the master workbook, or the built-in table when ``path`` is missing."""

        logger = logger or logging.getLogger(LOGGER_NAME)
        if not path or not Path(path).exists():
            if path:
                log_warning(logger, f"Master pricing workbook not found at {path}; using built-in pricing")
            return cls(logger=logger)
        sheets = pd.read_excel(path, sheet_name=None, header=None, dtype=object)
        sheet = _pick_sheet(list(sheets))
        frame = sheets[sheet]
        entries = cls._entries_from_frame(frame)
        log_system_event(logger, f"Loaded {len(entries)} pricing rows from sheet '{sheet}'")
        if not entries:
            log_warning(logger, "Master pricing workbook had no usable rows; using built-in pricing")
            return cls(logger=logger)
        return cls(entries, logger=logger)

    @staticmethod
    def _entries_from_frame(frame: pd.DataFrame) -> List[PricingEntry]:
        if len(frame.index) < 3:
            return []
        rows = frame.values.tolist()
        pos = _column_positions(rows[1])

        def cell(row: list, key: str):
            idx = pos[key]
            return row[idx] if idx < len(row) else None

        entries: List[PricingEntry] = []
        for row in rows[2:]:
            item = clean_text(cell(row, "item_number"))
            description = clean_text(cell(row, "description"))
            weight = to_number(cell(row, "case_weight"))
            if not item or not description or weight <= 0:
                continue
            entries.append(
                PricingEntry(
                    item_number=item,
                    description=description,
                    case_weight=weight,
                    case_cost=to_number(cell(row, "case_cost")),
                    unit_cost=to_number(cell(row, "unit_cost")),
                    pack=clean_text(cell(row, "pack")) or None,
                    size=clean_text(cell(row, "size")) or None,
                )
            )
        return entries

    def find(self, item_number: Optional[str] = None, name: Optional[str] = None) -> Optional[PricingEntry]:
        """Entry by item number, then exact description, then best word overlap."""

        if item_number:
            hit = self._by_item.get(str(item_number).strip())
            if hit:
                return hit
        if not name:
            return None
        hit = self._by_description.get(name.strip().lower())
        if hit:
            return hit
        wanted = _words(name)
        best, best_score = None, 0
        for entry in self.entries:
            score = len(wanted & _words(entry.description))
            if score > best_score:
                best, best_score = entry, score
        return best

    def pricing_for(self, item_number: Optional[str] = None, name: Optional[str] = None) -> tuple:
        """``(case_cost, unit_cost)`` for an item."""

        hit = self.find(item_number, name)
        if hit:
            return hit.case_cost, hit.unit_cost
        lowered = (name or "").lower()
        if "burrito" in lowered or "wrap" in lowered:
            return BURRITO_DEFAULT
        if "sandwich" in lowered:
            return SANDWICH_DEFAULT
        return GENERIC_DEFAULT

    def weight_for(self, item_number: Optional[str] = None, name: Optional[str] = None) -> float:
        """Case weight in pounds."""

        hit = self.find(item_number, name)
        if hit:
            return hit.case_weight
        lowered = (name or "").lower()
        if "sandwich" in lowered:
            return SANDWICH_CASE_WEIGHT
        if "piroshki" in lowered:
            return PIROSHKI_CASE_WEIGHT
        return DEFAULT_CASE_WEIGHT
