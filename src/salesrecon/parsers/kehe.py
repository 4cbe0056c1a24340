"""KeHe distribution customer/product sales workbooks."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from ..columns import ColumnSpec, cell, find_header_row, has_all, is_blank_row, missing_columns, resolve_columns
from ..logging_utils import log_warning
from ..models import SalesRecord
from ..normalizers import (
    clean_text,
    period_from_dotted_filename,
    period_from_first_date,
    round_half_up,
    to_cases,
    to_number,
)
from ..readers import read_rows
from .base import BaseParser, MissingColumnsError, SkipCounter


DATE_RANGE_LABEL = "Date Range"
PERIOD_SCAN_ROWS = 15
HEADER_SCAN_ROWS = 20

COLUMNS: Dict[str, ColumnSpec] = {
    "customer": ColumnSpec(("customer name",)),
    "description": ColumnSpec(("product description",)),
    "brand": ColumnSpec(("brand name",)),
    "product_size": ColumnSpec(("product size",)),
    "uom": ColumnSpec(("uom",), exact=True),
    "qty": ColumnSpec(("current year qty", "cy qty")),
    "cost": ColumnSpec(("current year cost", "cy cost")),
    "upc": ColumnSpec(("upc",), exact=True),
    "address_book": ColumnSpec(("address book number",)),
}
REQUIRED = ("customer", "description", "qty", "cost")
REQUIRED_HEADERS = {
    "customer": "Customer Name",
    "description": "Product Description",
    "qty": "Current Year Qty",
    "cost": "Current Year Cost",
}


def period_from_date_range_row(rows: List[list]) -> Optional[str]:
    """Period from the ``Date Range | 1/1/2025 to 1/31/2025`` preamble row."""

    for row in rows[:PERIOD_SCAN_ROWS]:
        if clean_text(cell(row, 0)) == DATE_RANGE_LABEL and clean_text(cell(row, 1)):
            return period_from_first_date(clean_text(cell(row, 1)))
    return None


class KeheParser(BaseParser):
    name = "kehe"
    supplier = "KEHE"
    source_label = "KEHE XLSX"

    def _parse_file(self, path: Path, skips: SkipCounter) -> List[SalesRecord]:
        rows = read_rows(path)
        if not rows:
            return []
        period = self.resolve_period(
            lambda: period_from_date_range_row(rows),
            lambda: period_from_dotted_filename(path.name),
        )
        header_idx = find_header_row(rows, has_all("customer name", "product description"), HEADER_SCAN_ROWS)
        if header_idx is None:
            log_warning(self.logger, f"KeHe header row not found in {path.name}")
            return []
        cols = resolve_columns(rows[header_idx], COLUMNS)
        missing = missing_columns(cols, REQUIRED)
        if missing:
            raise MissingColumnsError([REQUIRED_HEADERS[m] for m in missing], source=path.name)

        records: List[SalesRecord] = []
        for row in rows[header_idx + 1:]:
            if is_blank_row(row):
                skips.skip("blank")
                continue
            customer = clean_text(cell(row, cols["customer"]))
            description = clean_text(cell(row, cols["description"]))
            qty = to_number(cell(row, cols["qty"]))
            cost = to_number(cell(row, cols["cost"]))
            if not customer or not description or (qty == 0 and cost == 0):
                skips.skip("missing-fields")
                continue
            brand = clean_text(cell(row, cols["brand"]))
            product_size = clean_text(cell(row, cols["product_size"]))
            uom = clean_text(cell(row, cols["uom"]))
            upc = clean_text(cell(row, cols["upc"]))
            raw_name = f"{brand} {description}".strip() if brand else description
            product = self.map_first(upc) or self.map_product(raw_name)
            records.append(
                SalesRecord(
                    period=period,
                    customer_name=customer,
                    product_name=product,
                    cases=to_cases(qty),
                    revenue=round_half_up(cost, 2),
                    product_code=upc or None,
                    item_number=self.catalog.item_number_from_kehe_upc(upc) or self.catalog.item_number_for_product(product),
                    size=f"{product_size} {uom}" if product_size and uom else (product_size or uom or None),
                    pieces=0.0,
                    customer_id=clean_text(cell(row, cols["address_book"])) or None,
                )
            )
        return records
