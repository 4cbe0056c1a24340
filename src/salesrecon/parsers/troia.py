"""Troia Foods customer-by-product quantity matrices.

The sheet lists products in a ``PRODUCT LIST:`` preamble (rows 5-8, column A,
``code-name;`` entries) whose order matches the product columns that start at
column D of the header row. Quantities only; weight and revenue are priced
from the master price list. Troia is a direct distributor and counts toward
combined totals.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..columns import cell, find_header_row, is_blank_row, row_text
from ..logging_utils import log_warning
from ..models import SalesRecord
from ..normalizers import (
    clean_text,
    format_period,
    period_from_month_name,
    round_half_up,
    to_cases,
    to_number,
)
from ..readers import read_rows
from .base import BaseParser, SkipCounter


THRU_RX = re.compile(r"(\d{2})/(\d{2})/(\d{4})\s+THRU", flags=re.IGNORECASE)
FILENAME_DATE_RX = re.compile(r"(\d{2})/(\d{2})/(\d{4})")
PRODUCT_ENTRY_RX = re.compile(r"^(\d+)-(.+)$")
PRODUCT_LIST_LABEL = "PRODUCT LIST:"
PRODUCT_LIST_ROWS = slice(4, 8)
FIRST_PRODUCT_COLUMN = 3
STOP_HEADERS = {"TOTAL", "COUNT"}


@dataclass(frozen=True)
class ProductColumn:
    index: int
    code: str
    name: str


def period_from_report(rows: List[list]) -> Optional[str]:
    """``... FOR DATE RANGE 07/01/2025 THRU 07/31/2025`` in the first rows."""

    for row in rows[:10]:
        for value in row:
            match = THRU_RX.search(clean_text(value))
            if match:
                return format_period(int(match.group(3)), int(match.group(1)))
    return None


def period_from_filename_date(name: str) -> Optional[str]:
    match = FILENAME_DATE_RX.search(name or "")
    if not match:
        return None
    return format_period(int(match.group(3)), int(match.group(1)))


def product_list(rows: List[list]) -> List[tuple]:
    """``(code, name)`` pairs from the preamble, in column order."""

    entries = []
    for row in rows[PRODUCT_LIST_ROWS]:
        text = clean_text(cell(row, 0))
        if not text:
            continue
        text = text.replace(PRODUCT_LIST_LABEL, "").strip()
        for chunk in text.split(";"):
            match = PRODUCT_ENTRY_RX.match(chunk.strip())
            if match:
                entries.append((match.group(1).strip(), match.group(2).strip()))
    return entries


def product_columns(header: list, products: List[tuple]) -> List[ProductColumn]:
    columns = []
    for idx in range(FIRST_PRODUCT_COLUMN, len(header)):
        label = clean_text(header[idx])
        if not label or label.upper() in STOP_HEADERS:
            break
        offset = idx - FIRST_PRODUCT_COLUMN
        if offset < len(products):
            code, name = products[offset]
            columns.append(ProductColumn(idx, code, name))
    return columns


def _is_header(row: list) -> bool:
    text = row_text(row).upper()
    return "CUST #" in text and "DESCRIPTION" in text


class TroiaParser(BaseParser):
    name = "troia"
    supplier = "TROIA"
    source_label = "TROIA XLSX"

    def _parse_file(self, path: Path, skips: SkipCounter) -> List[SalesRecord]:
        rows = read_rows(path)
        if not rows:
            return []
        period = self.resolve_period(
            lambda: period_from_report(rows),
            lambda: period_from_month_name(path.name),
            lambda: period_from_filename_date(path.name),
        )
        header_idx = find_header_row(rows, _is_header, 15)
        if header_idx is None:
            log_warning(self.logger, f"Troia header row not found in {path.name}")
            return []
        columns = product_columns(rows[header_idx], product_list(rows))
        if not columns:
            log_warning(self.logger, f"Troia product list did not match any column in {path.name}")

        records: List[SalesRecord] = []
        for row in rows[header_idx + 1:]:
            if is_blank_row(row):
                skips.skip("blank")
                continue
            customer = clean_text(cell(row, 2))
            if not customer or "grand total" in customer.lower():
                skips.skip("non-data")
                continue
            customer_id = clean_text(cell(row, 0)) or None
            for column in columns:
                qty = to_number(cell(row, column.index))
                if qty == 0:
                    continue
                records.append(self._record(customer, customer_id, column, to_cases(qty), qty, period))
        return records

    def _record(self, customer: str, customer_id: Optional[str], column: ProductColumn, cases: int, qty: float, period: str) -> SalesRecord:
        product = self.map_product(column.name)
        item_number = self.catalog.item_number_for_product(product)
        case_cost, _unit_cost = self.pricing.pricing_for(item_number, product)
        weight = self.pricing.weight_for(item_number, product)
        return SalesRecord(
            period=period,
            customer_name=customer,
            product_name=product,
            cases=cases,
            revenue=round_half_up(qty * case_cost, 2),
            product_code=column.code,
            item_number=item_number,
            pieces=0.0,
            weight_lbs=round_half_up(cases * weight, 2),
            customer_id=customer_id,
            exclude_from_totals=False,
        )
