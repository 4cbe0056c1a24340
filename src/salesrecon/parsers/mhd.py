"""MHD retailer usage workbooks with one column group per month.

Month columns are recognised by a month-name token in the header (``Jan``,
``February Sales``); each month may have a quantity and a revenue column.
The year comes from the filename or the preamble, whichever 20xx value is
most common.
"""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..columns import cell, find_header_row, is_blank_row, is_total_label, normalize_header, row_text
from ..logging_utils import log_system_event, log_warning
from ..models import SalesRecord
from ..normalizers import MONTH_TOKEN_RX, MONTHS, clean_text, format_period, round_half_up, to_cases, to_number
from ..readers import read_rows
from .base import BaseParser, MissingColumnsError, SkipCounter


YEAR_RX = re.compile(r"20\d{2}")
HEADER_TOKENS = ("customer", "account", "retailer", "product", "item", "description")
QTY_TOKENS = ("qty", "quantity", "cases", "units", "usage", "count")
REVENUE_TOKENS = ("sales", "revenue", "$", "dollar", "amount", "cost")
NUMERIC_TOKENS = ("qty", "quantity", "sales", "revenue", "$", "amount")
PRODUCT_EXACT = {"product", "product name", "productname", "item", "item name", "item description"}


@dataclass
class MonthColumns:
    month: int
    period: str
    qty_idx: Optional[int] = None
    revenue_idx: Optional[int] = None


def month_of(header: str) -> Optional[int]:
    match = MONTH_TOKEN_RX.search(header or "")
    return MONTHS[match.group(1).lower()] if match else None


def detect_year(rows: Sequence[Sequence], filename: str, default: int) -> int:
    """Most common ``20xx`` in the filename and preamble cells; ties go to the first seen."""

    found: List[str] = []
    found.extend(YEAR_RX.findall(filename or "")[:1])
    for row in rows[:20]:
        for value in list(row)[:10]:
            found.extend(YEAR_RX.findall(clean_text(value)))
    if not found:
        return default
    return int(Counter(found).most_common(1)[0][0])


def detect_month_columns(headers: Sequence, year: int) -> List[MonthColumns]:
    by_month: Dict[int, MonthColumns] = {}
    for idx, raw in enumerate(headers):
        header = normalize_header(raw)
        month = month_of(header)
        if month is None:
            continue
        entry = by_month.setdefault(month, MonthColumns(month, format_period(year, month)))
        is_qty = any(t in header for t in QTY_TOKENS)
        is_revenue = any(t in header for t in REVENUE_TOKENS)
        if is_qty and entry.qty_idx is None:
            entry.qty_idx = idx
        elif is_revenue and entry.revenue_idx is None:
            entry.revenue_idx = idx
        elif entry.qty_idx is None:
            entry.qty_idx = idx
        elif entry.revenue_idx is None:
            entry.revenue_idx = idx
    return [by_month[m] for m in sorted(by_month)]


def _first(headers: List[str], predicate, skip=()) -> Optional[int]:
    for idx, header in enumerate(headers):
        if idx in skip or not header:
            continue
        if predicate(header):
            return idx
    return None


def resolve_levels(headers: List[str]) -> Dict[str, Optional[int]]:
    """Customer (level 1), location (level 2) and product columns plus extras."""

    month_cols = {i for i, h in enumerate(headers) if month_of(h) is not None}
    level1 = _first(headers, lambda h: h == "customer")
    if level1 is None:
        level1 = _first(
            headers,
            lambda h: h in ("customer name", "customername")
            or ("customer" in h and not any(t in h for t in ("ship", "id", "number"))),
        )
    if level1 is None:
        level1 = _first(headers, lambda h: any(t in h for t in ("retailer", "banner", "chain", "account")))
    if level1 is None:
        level1 = 0

    level2 = _first(
        headers,
        lambda h: any(t in h for t in ("location", "store", "ship to", "ship-to", "site"))
        or h == "name"
        or ("customer" in h and "name" in h),
        skip={level1},
    )
    if level2 is None:
        level2 = _first(headers, lambda h: "name" in h or "location" in h, skip={level1})

    product = _first(headers, lambda h: h in PRODUCT_EXACT or "description" in h)
    if product is None:
        product = _first(
            headers, lambda h: any(t in h for t in ("product", "item", "sku")), skip={level1, level2}
        )
    if product is None:
        start = max(level1, level2 if level2 is not None else level1) + 1
        for idx in range(start, len(headers)):
            header = headers[idx]
            if header and idx not in month_cols and not any(t in header for t in NUMERIC_TOKENS):
                product = idx
                break

    return {
        "level1": level1,
        "level2": level2,
        "product": product,
        "code": _first(headers, lambda h: any(t in h for t in ("code", "sku", "upc", "item #")), skip=month_cols),
        "customer_id": _first(headers, lambda h: any(t in h for t in ("id", "number", "account #")), skip=month_cols),
        "size": _first(headers, lambda h: any(t in h for t in ("size", "pack", "oz", "unit")), skip=month_cols),
    }


def _looks_like_header(row: Sequence) -> bool:
    text = row_text(row)
    return any(token in text for token in HEADER_TOKENS)


def _has_three_cells(row: Sequence) -> bool:
    return sum(1 for value in row if clean_text(value)) >= 3


class MhdParser(BaseParser):
    name = "mhd"
    supplier = "MHD"
    source_label = "MHD XLSX"

    def _parse_file(self, path: Path, skips: SkipCounter) -> List[SalesRecord]:
        rows = read_rows(path)
        if not rows:
            return []
        header_idx = find_header_row(rows, _looks_like_header, 20)
        if header_idx is None:
            header_idx = find_header_row(rows, _has_three_cells, 20)
        if header_idx is None:
            log_warning(self.logger, f"MHD header row not found in {path.name}")
            return []
        headers = [normalize_header(h) for h in rows[header_idx]]
        now = self.context.now or datetime.now(timezone.utc)
        year = detect_year(rows[: header_idx + 1], path.name, now.year)
        months = detect_month_columns(headers, year)
        if not months:
            log_warning(self.logger, f"No month columns detected in {path.name}")
            return []
        cols = resolve_levels(headers)
        if cols["product"] is None:
            raise MissingColumnsError(["Product"], source=path.name)
        log_system_event(self.logger, f"MHD {path.name}: year {year}, {len(months)} month columns, columns {cols}")

        records: List[SalesRecord] = []
        for row in rows[header_idx + 1:]:
            if is_blank_row(row):
                skips.skip("blank")
                continue
            level1 = clean_text(cell(row, cols["level1"]))
            product_raw = clean_text(cell(row, cols["product"]))
            if not level1 and not product_raw:
                skips.skip("missing-fields")
                continue
            level2 = clean_text(cell(row, cols["level2"])) if cols["level2"] != cols["level1"] else ""
            if is_total_label(level1, level2, product_raw):
                skips.skip("total")
                continue
            product = self.map_product(product_raw or "Unknown Product")
            code = clean_text(cell(row, cols["code"])) or None
            for month in months:
                qty = to_number(cell(row, month.qty_idx))
                revenue = to_number(cell(row, month.revenue_idx))
                if qty == 0 and revenue == 0:
                    continue
                records.append(
                    SalesRecord(
                        period=month.period,
                        customer_name=level1 or "Unknown Retailer",
                        account_name=level2 or level1 or "Unknown Location",
                        product_name=product,
                        cases=to_cases(qty),
                        revenue=round_half_up(revenue, 2),
                        product_code=code,
                        item_number=self.catalog.item_number_for_product(product),
                        size=clean_text(cell(row, cols["size"])) or None,
                        pieces=0.0,
                        customer_id=clean_text(cell(row, cols["customer_id"])) or None,
                    )
                )
        return records
