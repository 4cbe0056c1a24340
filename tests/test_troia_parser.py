import pandas as pd

from salesrecon.parsers import get_parser


def _sample_troia_workbook(path):
    rows = [
        ["TROIA FOODS SALES BY CUSTOMER FOR DATE RANGE 07/01/2025 THRU 07/31/2025"],
        ["Run date 08/02/2025"],
        ["Page 1"],
        ["Salesman: ALL"],
        ["PRODUCT LIST: 321-BACON BREAKFAST BURRITO; 211-BEEF & CHEESE PIROSHKI;"],
        ["Notes: none"],
        ["Prepared by sales"],
        ["Confidential"],
        ["CUST #", "", "DESCRIPTION", "321", "211", "TOTAL"],
        ["C100", "", "DOWNTOWN DELI", 4, "", 4],
        ["C200", "", "UPTOWN GROCER", "", 2, 2],
        ["", "", "GRAND TOTAL", 4, 2, 6],
    ]
    pd.DataFrame(rows).to_excel(path, header=False, index=False)
    return path


def test_troia_matrix_to_priced_records(tmp_path, context):
    result = get_parser("troia", context).parse(_sample_troia_workbook(tmp_path / "troia.xlsx"))
    assert len(result.records) == 2
    deli, grocer = result.records

    assert deli.period == "2025-07"
    assert deli.customer_name == "DOWNTOWN DELI"
    assert deli.customer_id == "C100"
    assert deli.product_name == "Uncured Bacon Breakfast Burrito"
    assert deli.product_code == "321"
    assert deli.cases == 4
    assert deli.revenue == 134.4
    assert deli.weight_lbs == 24.0
    assert deli.exclude_from_totals is False

    assert grocer.product_name == "Beef & Cheese Piroshki"
    assert grocer.revenue == 52.8
    assert result.metadata.skipped_rows["non-data"] == 1
