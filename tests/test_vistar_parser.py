import pytest

from salesrecon.parsers import MissingColumnsError, get_parser


HEADER = [
    "Report",
    "OPCO Desc",
    "Customer ID",
    "Customer Desc",
    "Item ID",
    "Item Description",
    "Brand",
    "Pack",
    "Size per OZ",
    "Qty Shp",
    "Cost",
]


def _sample_vistar_csv(tmp_path, header=HEADER, extra=()):
    rows = [
        header,
        ["6.2025", "Vistar Northwest", "C1", "Campus Cafe", "GFO88000", "BURRITO BRKFST BCN EGG CHS", "CLARAS", "12", "8", "5", "168.00"],
        ["", "Vistar Northwest", "C2", "Airport Kiosk", "", "WRAP BRKFST CHILE EGG CHS", "CLARAS", "12", "8", "2", "67.20"],
        ["", "", "C3", "Orphan Row", "", "Something", "", "", "", "1", "1.00"],
    ]
    rows.extend(extra)
    path = tmp_path / "GALANT_20250731.CSV"
    path.write_text("\n".join(",".join(r) for r in rows) + "\n", encoding="utf-8")
    return path


def test_vistar_three_tier_records(tmp_path, context):
    result = get_parser("vistar", context).parse(_sample_vistar_csv(tmp_path))
    assert len(result.records) == 2
    first, second = result.records

    assert first.period == "2025-06"
    assert first.customer_name == "Vistar Northwest"
    assert first.account_name == "Campus Cafe"
    assert first.product_name == "Uncured Bacon Breakfast Burrito"
    assert first.item_number == "321"
    assert first.size == "12pk x 8oz"
    assert first.revenue == 168.0

    assert second.period == "2025-07"
    assert second.product_name == "Chile Verde Breakfast Burrito"
    assert second.customer_id == "C2"
    assert result.metadata.skipped_rows["missing-fields"] == 1


def test_vistar_total_rows_are_skipped(tmp_path, context):
    totals = [["", "Vistar Northwest Total", "", "", "", "", "", "", "", "7", "235.20"]]
    result = get_parser("vistar", context).parse(_sample_vistar_csv(tmp_path, extra=totals))
    assert len(result.records) == 2
    assert result.metadata.total_cases == 7
    assert result.metadata.skipped_rows["total"] == 1


def test_vistar_missing_cost_column_is_rejected(tmp_path, context):
    header = [h for h in HEADER if h != "Cost"]
    with pytest.raises(MissingColumnsError, match="Cost"):
        get_parser("vistar", context).parse(_sample_vistar_csv(tmp_path, header=header))
