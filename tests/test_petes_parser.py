import pandas as pd

from salesrecon.aggregation import channel_totals, product_breakdown
from salesrecon.parsers import get_parser
from salesrecon.reconciliation import ADJUSTMENT_PRODUCT


CLARAS_HEADER = ["Date", "Account", "Memo", "Qty", "Sales Price", "Ext"]


def _write_sheet(path, rows):
    pd.DataFrame(rows).to_excel(path, header=False, index=False)
    return path


def _sample_acme_rows():
    return [
        CLARAS_HEADER,
        ["2025-06-15", "Acme", "BACON BREAKFAST BURRITO", 2, "", 20],
        ["2025-06-15", "Acme", "BACON BREAKFAST BURRITO", 3, "", 30],
        ["2025-06-15", "Acme", "BACON BREAKFAST BURRITO", -1, "", -5],
        ["", "Total", "", 5, "", 50],
    ]


def test_bottom_line_adjustment_matches_stated_total(tmp_path, context):
    path = _write_sheet(tmp_path / "petes.xlsx", _sample_acme_rows())
    result = get_parser("petes", context).parse(path)

    normal = [r for r in result.records if not r.is_adjustment]
    adjustments = [r for r in result.records if r.is_adjustment]
    assert [r.cases for r in normal] == [2, 3, -1]
    assert [r.revenue for r in normal] == [20.0, 30.0, -5.0]
    assert all(r.period == "2025-06" and r.customer_name == "Acme" for r in result.records)
    assert all(r.exclude_from_totals for r in result.records)

    assert len(adjustments) == 1
    adjustment = adjustments[0]
    assert adjustment.cases == 1
    assert adjustment.revenue == 5.0
    assert adjustment.product_name == ADJUSTMENT_PRODUCT

    assert channel_totals(result.records)["cases"] == 5
    assert channel_totals(result.records)["revenue"] == 50.0
    assert ADJUSTMENT_PRODUCT not in set(product_breakdown(result.records)["product_name"])


def test_no_adjustment_when_lines_add_up(tmp_path, context):
    rows = _sample_acme_rows()
    rows[-1] = ["", "Total", "", 4, "", 45]
    result = get_parser("petes", context).parse(_write_sheet(tmp_path / "petes.xlsx", rows))
    assert not any(r.is_adjustment for r in result.records)
    assert len(result.records) == 3


def test_product_code_group_rows_and_customer_cleanup(tmp_path, context):
    rows = [
        CLARAS_HEADER,
        ["", "59977 (CLARA'S CHILE VERDE 12/8oz)", "", "", "", ""],
        ["2025-05-02", "Employee Purchases:jose Olea", "Burrito order", 2, 2.8, ""],
    ]
    result = get_parser("petes", context).parse(_write_sheet(tmp_path / "Petes 5.25.xlsx", rows))
    record = result.records[0]
    assert record.customer_name == "jose Olea"
    assert record.product_name == "Chile Verde Breakfast Burrito"
    assert record.item_number == "341"
    assert record.product_code == "59977"
    assert record.size == "12/8oz"
    assert record.revenue == 5.6


def test_loose_layout_with_sheet_level_customer(tmp_path, context):
    rows = [
        ["Item", "Qty", "Sales"],
        ["Beef & Cheese Piroshki", "(3)", "(30.00)"],
        [],
        ["Account: Downtown Cafe"],
    ]
    result = get_parser("petes", context).parse(_write_sheet(tmp_path / "Petes 4.25.xlsx", rows))
    record = result.records[0]
    assert record.customer_name == "Downtown Cafe"
    assert record.cases == -3
    assert record.revenue == -30.0
    assert record.period == "2025-04"
