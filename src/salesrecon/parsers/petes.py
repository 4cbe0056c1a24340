"""Pete's Coffee sub-distributor sales workbooks.

Two layouts are seen in practice:

* the "Claras" ledger export, whose header has exact ``Account``/``Memo``/
  ``Qty``/``Ext`` style names, with ``59975 (CLARA'S ... 12/8oz)`` group rows
  naming the Pete's product code for the lines below them;
* a looser customer/product report located by a header pattern.

Pete's volume is already counted in a parent channel, so every record is
excluded from combined totals. When the sheet states a bottom line that the
lines do not add up to, an adjustment record makes up the difference.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..columns import ColumnSpec, cell, find_column, find_header_row, is_blank_row, normalize_header, row_text
from ..models import SalesRecord
from ..normalizers import (
    clean_text,
    period_from_dotted_filename,
    period_from_value,
    round_half_up,
    to_number,
)
from ..readers import read_rows
from ..reconciliation import reconcile
from .base import BaseParser, GroupState, SkipCounter, fold_rows


ACCOUNT_HEADERS = {"account", "account name", "customer", "store", "account#", "acct", "acct name"}
MEMO_HEADERS = {"memo", "description", "item", "product"}
QTY_HEADERS = {"qty", "quantity", "cases", "units"}
EXT_HEADERS = {"ext", "amount", "extended", "sales", "$"}

EXACT_COLUMNS: Dict[str, ColumnSpec] = {
    "customer": ColumnSpec(("account name", "account", "customer", "store", "acct name", "account#", "acct"), exact=True),
    "product": ColumnSpec(("memo", "description", "item", "product"), exact=True),
    "qty": ColumnSpec(("qty", "quantity", "cases", "units"), exact=True),
    "revenue": ColumnSpec(("ext", "amount", "extended", "sales", "$"), exact=True),
    "price": ColumnSpec(("price", "unit price", "u/p", "unit", "each", "cost"), exact=True),
    "date": ColumnSpec(("date", "period", "month"), exact=True),
    "code": ColumnSpec(("code", "sku", "item #", "item#", "product code"), exact=True),
}
FUZZY_COLUMNS: Dict[str, ColumnSpec] = {
    "customer": ColumnSpec(("name", "customer", "account", "store")),
    "product": ColumnSpec(("memo", "product", "item", "description")),
    "qty": ColumnSpec(("qty", "quantity", "cases", "units")),
    "price": ColumnSpec(("price", "unit", "each", "u/p", "unit price", "cost")),
    "date": ColumnSpec(("date", "period", "month")),
    "code": ColumnSpec(("code", "sku", "item #", "item#", "product code")),
}

COUNT_TOKENS = ("qty", "quantity", "cases", "units", "count")
NON_SALES_TOKENS = ("balance", "tax", "crv", "deposit")
REVENUE_TOKENS = ("revenue", "sales", "amount", "ext", "extended", "net", "net sales", "dollars", "$")

LOOSE_HEADER_RX = re.compile(r"(customer|account|store).*(product|item|description)")
PRODUCT_CODE_RX = re.compile(r"^(\d{5,6})\s*\((.+?)\)$")
TOTAL_ROW_RX = re.compile(r"(^|\s)(total|subtotal|grand total|balance|balance due)(:)?(\s|$)")
SHEET_CUSTOMER_RX = re.compile(r"^(Customer|Account|Store|Acct|Account Name)\s*[:#-]?\s*(.+)$", flags=re.IGNORECASE)
CUSTOMER_PREFIX_RX = re.compile(r"^(Employee Purchases|Staff|Internal|Admin)[:\s]*", flags=re.IGNORECASE)

BURRITO_CODES = {"59975", "59976", "59977"}
SANDWICH_CODES = {"59984", "59985", "59986", "59987"}


def is_claras_header(row: Sequence) -> bool:
    headers = {normalize_header(c) for c in row}
    return bool(
        headers & ACCOUNT_HEADERS and headers & MEMO_HEADERS and headers & QTY_HEADERS and headers & EXT_HEADERS
    )


def choose_revenue_column(headers: Sequence) -> Optional[int]:
    """Dollar column for line items; never a balance, tax or count column."""

    lowered = [normalize_header(h) for h in headers]
    for idx, header in enumerate(lowered):
        if not header or any(t in header for t in COUNT_TOKENS):
            continue
        if any(t in header for t in NON_SALES_TOKENS):
            continue
        if any(t in header for t in REVENUE_TOKENS):
            return idx
    for idx, header in enumerate(lowered):
        if header and not any(t in header for t in COUNT_TOKENS) and "total" in header:
            return idx
    return None


def balance_column(headers: Sequence) -> Optional[int]:
    for idx, header in enumerate(headers):
        if "balance" in normalize_header(header):
            return idx
    return None


def resolve_petes_columns(headers: Sequence, claras: bool) -> Dict[str, Optional[int]]:
    resolved: Dict[str, Optional[int]] = {}
    for key in ("customer", "product", "qty", "price", "date", "code"):
        exact = find_column(headers, EXACT_COLUMNS[key]) if claras else None
        resolved[key] = exact if exact is not None else find_column(headers, FUZZY_COLUMNS[key])
    exact_revenue = find_column(headers, EXACT_COLUMNS["revenue"]) if claras else None
    resolved["revenue"] = exact_revenue if exact_revenue is not None else choose_revenue_column(headers)
    resolved["balance"] = balance_column(headers)
    return resolved


def sheet_level_customer(rows: Sequence[Sequence]) -> Optional[str]:
    """``Customer: Acme`` (or a label cell followed by the name) near the top of the sheet."""

    for row in rows[:20]:
        values = list(row)
        for idx, value in enumerate(values):
            text = clean_text(value)
            match = SHEET_CUSTOMER_RX.match(text)
            if match and match.group(2).strip():
                return match.group(2).strip()
            if re.search(r"(customer|account|store|account name)", text, flags=re.IGNORECASE):
                nxt = clean_text(values[idx + 1]) if idx + 1 < len(values) else ""
                if nxt:
                    return nxt
    return None


def clean_customer_name(raw: str) -> str:
    """``Employee Purchases:jose Olea`` -> ``jose Olea``."""

    name = raw.split(":")[-1].strip() if ":" in raw else raw.strip()
    return CUSTOMER_PREFIX_RX.sub("", name).strip()


def product_code_header(row: Sequence) -> Optional[str]:
    for value in row:
        match = PRODUCT_CODE_RX.match(clean_text(value))
        if match:
            return match.group(1)
    return None


@dataclass
class PetesState(GroupState):
    reported_cases: Optional[float] = None
    reported_revenue: Optional[float] = None


class PetesParser(BaseParser):
    name = "petes"
    supplier = "PETE'S COFFEE"
    source_label = "PETE'S XLSX"

    def _parse_file(self, path: Path, skips: SkipCounter) -> List[SalesRecord]:
        rows = read_rows(path)
        if not rows:
            return []
        header_idx = find_header_row(rows, is_claras_header, 30)
        claras = header_idx is not None
        if header_idx is None:
            header_idx = find_header_row(rows, lambda r: bool(LOOSE_HEADER_RX.search(row_text(r))), 20) or 0
        cols = resolve_petes_columns(rows[header_idx], claras)
        sheet_customer = sheet_level_customer(rows) if cols["customer"] is None else None
        fallback_period = self.resolve_period(lambda: period_from_dotted_filename(path.name))

        def step(state: PetesState, row: Sequence) -> PetesState:
            code = product_code_header(row)
            if code:
                state.group = code
                return state
            if is_blank_row(row):
                skips.skip("blank")
                return state
            product_raw = clean_text(cell(row, cols["product"]))
            is_total = bool(TOTAL_ROW_RX.search(row_text(row)))
            if not product_raw or is_total:
                self._capture_totals(state, row, cols)
                skips.skip("total" if is_total else "missing-fields")
                return state
            raw_customer = clean_text(cell(row, cols["customer"])) if cols["customer"] is not None else (sheet_customer or "")
            customer = clean_customer_name(raw_customer)
            if not customer:
                skips.skip("missing-fields")
                return state
            state.records.append(self._record(row, cols, customer, product_raw, state.group, fallback_period))
            return state

        state = fold_rows(rows[header_idx + 1:], step, PetesState())
        return reconcile(
            state.records,
            state.reported_cases,
            state.reported_revenue,
            fallback_period,
            exclude_from_totals=True,
        )

    @staticmethod
    def _capture_totals(state: PetesState, row: Sequence, cols: Dict[str, Optional[int]]) -> None:
        qty = to_number(cell(row, cols["qty"]))
        if cols["qty"] is not None and qty != 0:
            state.reported_cases = qty
        source = cols["balance"] if cols["balance"] is not None else cols["revenue"]
        amount = to_number(cell(row, source))
        if source is not None and amount != 0:
            state.reported_revenue = round_half_up(amount, 2)

    def _record(
        self,
        row: Sequence,
        cols: Dict[str, Optional[int]],
        customer: str,
        product_raw: str,
        group_code: Optional[str],
        fallback_period: str,
    ) -> SalesRecord:
        raw_qty = to_number(cell(row, cols["qty"]))
        cases = int(round_half_up(raw_qty, 0))
        revenue = round_half_up(to_number(cell(row, cols["revenue"])), 2)
        if (not revenue or revenue == cases) and cols["price"] is not None:
            unit_price = to_number(cell(row, cols["price"]))
            if unit_price and raw_qty:
                revenue = round_half_up(unit_price * raw_qty, 2)

        by_code = self.catalog.lookup(group_code) if group_code else None
        product = by_code or self.map_product(product_raw)
        if by_code:
            item_number = self.catalog.item_number_from_petes_code(group_code)
        else:
            item_number = self.catalog.item_number_for_product(product)
        code_cell = clean_text(cell(row, cols["code"]))
        return SalesRecord(
            period=period_from_value(cell(row, cols["date"])) or fallback_period,
            customer_name=customer,
            product_name=product,
            cases=cases,
            revenue=revenue,
            product_code=group_code or code_cell or None,
            item_number=item_number,
            size=_pack_size(group_code, product),
            pieces=0.0,
            exclude_from_totals=True,
        )


def _pack_size(code: Optional[str], product: str) -> Optional[str]:
    lowered = product.lower()
    if code in BURRITO_CODES:
        return "12/8oz"
    if code in SANDWICH_CODES:
        return "12/cs"
    if "burrito" in lowered and any(t in lowered for t in ("bacon", "sausage", "chile", "verde")):
        return "12/8oz"
    if "sandwich" in lowered and any(t in lowered for t in ("chorizo", "pesto", "turkey", "bacon")):
        return "12/cs"
    return None
