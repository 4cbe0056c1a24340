"""Vistar OPCO sales CSV exports (``GALANT_YYYYMMDD.CSV``).

Three-tier hierarchy: OPCO (customer) -> operator (account) -> product.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from ..columns import (
    ColumnSpec,
    cell,
    find_header_row,
    has_all,
    is_blank_row,
    is_total_label,
    missing_columns,
    resolve_columns,
)
from ..logging_utils import log_warning
from ..models import SalesRecord
from ..normalizers import (
    clean_text,
    period_from_compact_date,
    period_from_report_cell,
    round_half_up,
    to_cases,
    to_number,
)
from ..readers import read_rows
from .base import BaseParser, MissingColumnsError, SkipCounter


COLUMNS: Dict[str, ColumnSpec] = {
    "report": ColumnSpec(("report",), exact=True),
    "opco": ColumnSpec(("opco desc",), exact=True),
    "customer_desc": ColumnSpec(("customer desc",), exact=True),
    "description": ColumnSpec(("item description",), exact=True),
    "brand": ColumnSpec(("brand",), exact=True),
    "qty": ColumnSpec(("qty shp",), exact=True),
    "cost": ColumnSpec(("cost",), exact=True),
    "item_id": ColumnSpec(("item id",), exact=True),
    "customer_id": ColumnSpec(("customer id",), exact=True),
    "pack": ColumnSpec(("pack",), exact=True),
    "size_oz": ColumnSpec(("size per oz",), exact=True),
}
REQUIRED = ("opco", "customer_desc", "qty", "cost")
REQUIRED_HEADERS = {
    "opco": "OPCO Desc",
    "customer_desc": "Customer Desc",
    "qty": "Qty Shp",
    "cost": "Cost",
}


class VistarParser(BaseParser):
    name = "vistar"
    supplier = "VISTAR"
    source_label = "VISTAR CSV"

    def _parse_file(self, path: Path, skips: SkipCounter) -> List[SalesRecord]:
        rows = read_rows(path)
        header_idx = find_header_row(rows, has_all("opco desc", "customer desc", "item description"), 20)
        if header_idx is None:
            log_warning(self.logger, f"Vistar header row not found in {path.name}")
            return []
        cols = resolve_columns(rows[header_idx], COLUMNS)
        missing = missing_columns(cols, REQUIRED)
        if missing:
            raise MissingColumnsError([REQUIRED_HEADERS[m] for m in missing], source=path.name)
        file_period = self.resolve_period(lambda: period_from_compact_date(path.name))

        records: List[SalesRecord] = []
        for row in rows[header_idx + 1:]:
            if is_blank_row(row):
                skips.skip("blank")
                continue
            if is_total_label(cell(row, cols["opco"]), cell(row, cols["customer_desc"]), cell(row, cols["description"])):
                skips.skip("total")
                continue
            record = self._record(row, cols, file_period)
            if record is None:
                skips.skip("missing-fields")
                continue
            records.append(record)
        return records

    def _record(self, row: list, cols: Dict[str, Optional[int]], file_period: str) -> Optional[SalesRecord]:
        opco = clean_text(cell(row, cols["opco"]))
        operator = clean_text(cell(row, cols["customer_desc"]))
        qty = to_number(cell(row, cols["qty"]))
        cost = to_number(cell(row, cols["cost"]))
        if not opco or not operator or (qty == 0 and cost == 0):
            return None
        item_id = clean_text(cell(row, cols["item_id"]))
        description = clean_text(cell(row, cols["description"])) or clean_text(cell(row, cols["brand"])) or "Unknown Product"
        product = self.map_first(item_id) or self.map_product(description)
        pack = clean_text(cell(row, cols["pack"]))
        size_oz = clean_text(cell(row, cols["size_oz"]))
        return SalesRecord(
            period=period_from_report_cell(cell(row, cols["report"])) or file_period,
            customer_name=opco,
            account_name=operator,
            product_name=product,
            cases=to_cases(qty),
            revenue=round_half_up(cost, 2),
            product_code=item_id or None,
            item_number=self.catalog.item_number_from_vistar_code(item_id),
            size=f"{pack}pk x {size_oz}oz" if pack and size_oz else (pack or size_oz or None),
            pieces=0.0,
            customer_id=clean_text(cell(row, cols["customer_id"])) or None,
        )
