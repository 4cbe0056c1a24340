"""DOT Foods tab-separated shipment exports.

DOT is a sub-distributor: every record is excluded from combined totals.
Cases come from column T (index 19) when its header looks like a quantity,
otherwise from the first quantity-like header.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..columns import ColumnSpec, cell, is_blank_row, missing_columns, resolve_columns
from ..logging_utils import log_warning
from ..models import SalesRecord
from ..normalizers import clean_text, period_from_dotted_filename, round_half_up, to_number
from ..readers import read_delimited_rows
from .base import BaseParser, EmptyFileError, MissingColumnsError, SkipCounter


COLUMN_T = 19
QUANTITY_TOKENS = ("qty", "case", "quantity")
DATE_RANGE_RX = re.compile(r"(\d{4})-(\d{2})-")

COLUMNS: Dict[str, ColumnSpec] = {
    "date_range": ColumnSpec(("date range",)),
    "customer": ColumnSpec(("customer name",)),
    "description": ColumnSpec(("item full description", "item description")),
    "customer_item": ColumnSpec(("customer item #", "customer item#")),
    "dot_code": ColumnSpec(("dot #",), exact=True),
    "mfg_code": ColumnSpec(("mfg #",), exact=True),
    "dollars": ColumnSpec(("dollars",), exact=True),
    "gross_wt": ColumnSpec(("item gross wt",)),
    "net_wt": ColumnSpec(("item net wt",)),
}
REQUIRED = ("customer", "description", "dollars")
REQUIRED_HEADERS = {
    "customer": "Customer Name",
    "description": "Item Description",
    "dollars": "Dollars",
}


def quantity_column(headers: List[str]) -> int:
    lowered = [h.lower() for h in headers]
    at_t = lowered[COLUMN_T] if len(lowered) > COLUMN_T else ""
    if any(token in at_t for token in QUANTITY_TOKENS):
        return COLUMN_T
    for idx, header in enumerate(lowered):
        if any(token in header for token in QUANTITY_TOKENS):
            return idx
    return COLUMN_T


def _signed_weight(net: float, gross: float, cases: int) -> Optional[float]:
    if net == 0 and gross == 0:
        return None
    weight = net if net != 0 else gross
    if cases < 0 < weight:
        weight = -abs(weight)
    return weight


class DotParser(BaseParser):
    name = "dot"
    supplier = "DOT FOODS"
    source_label = "DOT CSV"

    def _parse_file(self, path: Path, skips: SkipCounter) -> List[SalesRecord]:
        rows = read_delimited_rows(path, "\t")
        if not rows or is_blank_row(rows[0]):
            raise EmptyFileError("Empty CSV file")
        headers = [clean_text(h) for h in rows[0]]
        cols = resolve_columns(headers, COLUMNS)
        missing = missing_columns(cols, REQUIRED)
        if missing:
            raise MissingColumnsError([REQUIRED_HEADERS[m] for m in missing], source="CSV")
        qty_idx = quantity_column(headers)
        if qty_idx == COLUMN_T and len(headers) <= COLUMN_T:
            log_warning(self.logger, f"DOT quantity column T not present in {path.name}")

        data = [row for row in rows[1:] if not is_blank_row(row)]
        skips["blank"] += len(rows) - 1 - len(data)
        period = self.resolve_period(
            lambda: self._period_from_first_row(data, cols["date_range"]),
            lambda: period_from_dotted_filename(path.name),
        )

        aggregated: Dict[Tuple[str, str, str], SalesRecord] = {}
        for row in data:
            record = self._record(row, cols, qty_idx, period)
            if record is None:
                skips.skip("missing-fields")
                continue
            key = (record.customer_name, record.product_name, record.period)
            if key in aggregated:
                aggregated[key] = _combine(aggregated[key], record)
            else:
                aggregated[key] = record
        return list(aggregated.values())

    @staticmethod
    def _period_from_first_row(data: List[List[str]], idx: Optional[int]) -> Optional[str]:
        if not data or idx is None:
            return None
        match = DATE_RANGE_RX.search(clean_text(cell(data[0], idx)))
        if not match:
            return None
        return f"{match.group(1)}-{match.group(2)}"

    def _record(self, row: List[str], cols: Dict[str, Optional[int]], qty_idx: int, period: str) -> Optional[SalesRecord]:
        customer = clean_text(cell(row, cols["customer"]))
        description = clean_text(cell(row, cols["description"]))
        revenue = round_half_up(to_number(cell(row, cols["dollars"])), 2)
        cases = int(round_half_up(to_number(cell(row, qty_idx)), 0))
        if not customer or not description or (cases == 0 and revenue == 0):
            return None
        dot_code = clean_text(cell(row, cols["dot_code"]))
        mfg_code = clean_text(cell(row, cols["mfg_code"]))
        customer_item = clean_text(cell(row, cols["customer_item"]))
        product = self.map_first(dot_code, mfg_code) or self.map_product(description)
        item_number = self.catalog.item_number_from_dot_code(dot_code) or self.catalog.item_number_for_product(product)
        return SalesRecord(
            period=period,
            customer_name=customer,
            product_name=product,
            cases=cases,
            revenue=revenue,
            product_code=dot_code or mfg_code or customer_item or None,
            item_number=item_number,
            mfg_item_number=mfg_code or None,
            pieces=0.0,
            weight_lbs=_signed_weight(
                to_number(cell(row, cols["net_wt"])), to_number(cell(row, cols["gross_wt"])), cases
            ),
            exclude_from_totals=True,
        )


def _combine(left: SalesRecord, right: SalesRecord) -> SalesRecord:
    weight = left.weight_lbs
    if right.weight_lbs is not None:
        weight = (weight or 0.0) + right.weight_lbs
    return SalesRecord.from_dict(
        {
            **left.to_dict(),
            "cases": left.cases + right.cases,
            "revenue": round_half_up(left.revenue + right.revenue, 2),
            "pieces": (left.pieces or 0.0) + (right.pieces or 0.0),
            "weight_lbs": weight,
        }
    )
