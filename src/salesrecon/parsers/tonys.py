"""Tony's Fine Foods warehouse shipment workbooks.

The header is the first row; columns A to J have a fixed meaning. One or
two "Quantity shipped <Mon YY> to <Mon YY>" columns carry the periods, so a
row can produce a record for each. The export has no dollars: revenue and
weight come from master pricing.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..columns import ColumnSpec, cell, is_blank_row, is_total_label, normalize_header, resolve_columns
from ..logging_utils import log_warning
from ..models import SalesRecord
from ..normalizers import clean_text, period_from_month_name, round_half_up, to_cases, to_number
from ..readers import read_rows
from .base import BaseParser, SkipCounter


COLUMNS: Dict[str, ColumnSpec] = {
    "warehouse": ColumnSpec(("warehouse",), fallback=0),
    "ship_to": ColumnSpec(("ship to customer", "ship to"), fallback=1),
    "store": ColumnSpec(("sh long description",), fallback=2),
    "item_number": ColumnSpec(("item number",), fallback=3),
    "brand": ColumnSpec(("brand code", "brand"), fallback=4),
    "description": ColumnSpec(("long description",), fallback=5, exclude=("sh ",)),
    "pack": ColumnSpec(("item pack",), fallback=7),
    "size": ColumnSpec(("item size",), fallback=8),
    "vendor_item": ColumnSpec(("vendor item",), fallback=9),
}
QUANTITY_HEADER = "quantity shipped"


def quantity_columns(headers: List[object], fallback_period) -> List[Tuple[int, str]]:
    """``(index, period)`` for every quantity-shipped column."""

    found = []
    for idx, header in enumerate(headers):
        if QUANTITY_HEADER in normalize_header(header):
            found.append((idx, period_from_month_name(clean_text(header)) or fallback_period()))
    return found


class TonysParser(BaseParser):
    name = "tonys"
    supplier = "TONYS"
    source_label = "TONY'S XLSX"

    def _parse_file(self, path: Path, skips: SkipCounter) -> List[SalesRecord]:
        rows = read_rows(path)
        if not rows:
            return []
        headers = rows[0]
        cols = resolve_columns(headers, COLUMNS)
        periods = quantity_columns(headers, self.current_period)
        if not periods:
            log_warning(self.logger, f"No 'Quantity shipped' columns in {path.name}")
            return []

        records: List[SalesRecord] = []
        for row in rows[1:]:
            if is_blank_row(row):
                skips.skip("blank")
                continue
            warehouse = clean_text(cell(row, cols["warehouse"]))
            store = clean_text(cell(row, cols["store"]))
            if is_total_label(warehouse, store, cell(row, cols["description"])):
                skips.skip("total")
                continue
            if not warehouse or not store:
                skips.skip("missing-fields")
                continue
            for idx, period in periods:
                qty = to_number(cell(row, idx))
                if qty == 0:
                    skips.skip("zero")
                    continue
                records.append(self._record(row, cols, warehouse, store, to_cases(qty), period))
        return records

    def _record(self, row: list, cols: Dict[str, Optional[int]], warehouse: str, store: str, cases: int, period: str) -> SalesRecord:
        brand = clean_text(cell(row, cols["brand"]))
        description = clean_text(cell(row, cols["description"]))
        raw_name = f"{brand} {description}".strip() if brand and description else (description or brand or "Unknown Product")
        product = self.map_product(raw_name)
        item_number = self.catalog.item_number_for_product(product)
        case_cost, _unit_cost = self.pricing.pricing_for(item_number, product)
        case_weight = self.pricing.weight_for(item_number, product)
        pack = clean_text(cell(row, cols["pack"]))
        size = clean_text(cell(row, cols["size"]))
        size_text = f"{pack}pk x {size}" if pack and size else (pack or size or None)
        return SalesRecord(
            period=period,
            customer_name=warehouse,
            account_name=store,
            product_name=product,
            cases=cases,
            revenue=round_half_up(cases * case_cost, 2),
            product_code=clean_text(cell(row, cols["item_number"])) or clean_text(cell(row, cols["vendor_item"])) or None,
            item_number=item_number,
            size=size_text,
            pieces=0.0,
            weight_lbs=round_half_up(cases * case_weight, 2),
            customer_id=clean_text(cell(row, cols["ship_to"])) or None,
        )
