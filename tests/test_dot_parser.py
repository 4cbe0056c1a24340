import pytest

from salesrecon.parsers import EmptyFileError, MissingColumnsError, get_parser


HEADER = ["Date Range", "Customer Name", "Item Description", "DOT #", "MFG #", "Dollars", "Cases", "Item Net Wt"]


def _sample_dot_file(tmp_path, rows, header=HEADER, name="DOT 6.25.txt"):
    path = tmp_path / name
    lines = ["\t".join(header)] + ["\t".join(row) for row in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_dot_rows_aggregate_per_customer_and_product(tmp_path, context):
    rows = [
        ["2025-06-01 - 2025-06-30", "Store A", "CLARAS BACON BURRITO", "763494", "", "120.00", "2", "12.5"],
        ["2025-06-01 - 2025-06-30", "Store A", "CLARAS BACON BURRITO", "763494", "", "120.00", "2", "12.5"],
        ["2025-06-01 - 2025-06-30", "Store A", "CLARAS BACON BURRITO", "763494", "", "(60.00)", "-1", "6.25"],
        ["", "", "", "", "", "", "", ""],
    ]
    result = get_parser("dot", context).parse(_sample_dot_file(tmp_path, rows))
    assert len(result.records) == 1
    record = result.records[0]
    assert record.period == "2025-06"
    assert record.product_name == "Uncured Bacon Breakfast Burrito"
    assert record.item_number == "321"
    assert record.cases == 3
    assert record.revenue == 180.00
    assert record.weight_lbs == 18.75
    assert record.exclude_from_totals is True


def test_dot_missing_columns_names_them(tmp_path, context):
    header = ["Date Range", "Customer Name", "Item Description", "Cases"]
    path = _sample_dot_file(tmp_path, [["2025-06-01", "Store A", "Burrito", "1"]], header=header)
    with pytest.raises(MissingColumnsError) as excinfo:
        get_parser("dot", context).parse(path)
    assert "Missing required columns in CSV" in str(excinfo.value)
    assert excinfo.value.missing == ["Dollars"]


def test_dot_empty_file_is_rejected(tmp_path, context):
    path = tmp_path / "empty.txt"
    path.write_text("", encoding="utf-8")
    with pytest.raises(EmptyFileError, match="Empty CSV file"):
        get_parser("dot", context).parse(path)


def test_dot_period_from_filename_without_date_range(tmp_path, context):
    header = ["Customer Name", "Item Description", "Dollars", "Qty"]
    path = _sample_dot_file(tmp_path, [["Store B", "Mystery Item", "10.00", "1"]], header=header, name="DOT 5.25.txt")
    result = get_parser("dot", context).parse(path)
    assert [r.period for r in result.records] == ["2025-05"]
