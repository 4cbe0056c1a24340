"""Alpine fixed-width sales recap (``IT415V``) text reports.

Layout::

    FROM : 06/01/25   THRU 06/30/25
    10045-001  CORNER MARKET #3          <- customer line, applies to rows below
        183922  BENNYS BEEF BAGEL DOG  12 CT   4   48   134.40  GFO12001
     CUSTOMER TOTAL :  ...

Product rows are tokenised on whitespace: item number, description, size
(``12 CT``, ``12/4 OZ``), cases, pieces, revenue (a trailing ``-`` marks a
credit) and an optional manufacturer item number.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from ..models import SalesRecord
from ..normalizers import (
    period_from_date_range_header,
    period_from_dotted_filename,
    round_half_up,
    to_cases,
    to_number,
)
from ..readers import read_text
from .base import BaseParser, GroupState, SkipCounter, fold_rows


SKIP_PREFIXES = (
    "IT415V",
    "SALES RECAP",
    "FROM :",
    "RUN DATE",
    "GALANT GALANT",
    "ALPINE",
    "DESCRIPTION",
    "-----",
)
SKIP_CONTAINS = ("MFG ITEM #", "CUSTOMER TOTAL :", "RUN TOTALS :")
CUSTOMER_RX = re.compile(r"^\s*(\d{4,5}-\d{3})\s+(.+)")
PRODUCT_LINE_RX = re.compile(r"^    \s*\d")
SIZE_UNITS = ("CT", "OZ")


@dataclass
class AlpineLine:
    item_number: str
    description: str
    size: str
    cases: int
    pieces: float
    revenue: float
    mfg_item_number: Optional[str]


def split_product_line(line: str) -> Optional[AlpineLine]:
    """Tokenise one product row; ``None`` when no size column can be found."""

    parts = line.split()
    if len(parts) < 6 or not parts[0].isdigit():
        return None
    size_idx = None
    for idx in range(1, len(parts)):
        token = parts[idx]
        nxt = parts[idx + 1] if idx + 1 < len(parts) else ""
        if token[:1].isdigit() and (nxt in SIZE_UNITS or "/" in token):
            size_idx = idx
            break
    if size_idx is None or size_idx < 2:
        return None
    has_unit = size_idx + 1 < len(parts) and parts[size_idx + 1] in SIZE_UNITS
    size = f"{parts[size_idx]} {parts[size_idx + 1]}" if has_unit else parts[size_idx]
    cases_idx = size_idx + (2 if has_unit else 1)

    def token(idx: int) -> str:
        return parts[idx] if idx < len(parts) else "0"

    mfg = " ".join(parts[cases_idx + 3:]).strip()
    return AlpineLine(
        item_number=parts[0],
        description=" ".join(parts[1:size_idx]),
        size=size,
        cases=to_cases(token(cases_idx)),
        pieces=to_number(token(cases_idx + 1)),
        revenue=round_half_up(to_number(token(cases_idx + 2)), 2),
        mfg_item_number=mfg or None,
    )


def _is_noise(stripped: str) -> bool:
    if not stripped or stripped == "SALES":
        return True
    if stripped.startswith(SKIP_PREFIXES):
        return True
    return any(marker in stripped for marker in SKIP_CONTAINS)


class AlpineParser(BaseParser):
    name = "alpine"
    supplier = "ALPINE"
    source_label = "ALPINE TXT"

    def _parse_file(self, path: Path, skips: SkipCounter) -> List[SalesRecord]:
        lines = read_text(path).splitlines()
        header = next((ln for ln in lines if "FROM :" in ln and "THRU" in ln), "")
        period = self.resolve_period(
            lambda: period_from_date_range_header(header),
            lambda: period_from_dotted_filename(path.name),
        )

        def step(state: GroupState, line: str) -> GroupState:
            stripped = line.strip()
            if _is_noise(stripped):
                skips.skip("non-data")
                return state
            customer = CUSTOMER_RX.match(stripped)
            if customer:
                state.group = (customer.group(1), customer.group(2).strip())
                return state
            if not PRODUCT_LINE_RX.match(line) or state.group is None:
                skips.skip("unrecognized")
                return state
            parsed = split_product_line(line)
            if parsed is None:
                skips.skip("no-size")
                return state
            state.records.append(self._record(parsed, state.group, period))
            return state

        return fold_rows(lines, step, GroupState()).records

    def _record(self, line: AlpineLine, customer: Tuple[str, str], period: str) -> SalesRecord:
        customer_id, customer_name = customer
        return SalesRecord(
            period=period,
            customer_name=customer_name,
            product_name=self.map_product(line.description),
            cases=line.cases,
            revenue=line.revenue,
            product_code=line.item_number,
            item_number=self.catalog.item_number_from_alpine_code(line.item_number),
            size=line.size,
            mfg_item_number=line.mfg_item_number,
            pieces=line.pieces,
            net_lbs=0.0,
            customer_id=customer_id,
        )
