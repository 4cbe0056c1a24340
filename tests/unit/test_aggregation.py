from salesrecon.aggregation import (
    channel_totals,
    combined_totals,
    customer_hierarchy_pivot,
    monthly_totals,
    new_lost_customers,
    product_breakdown,
    rebuild_channel_view,
    split_customer_name,
)
from salesrecon.models import SalesRecord


def _record(period, customer, product="X", cases=1, revenue=10.0, **extra):
    return SalesRecord(period=period, customer_name=customer, product_name=product, cases=cases, revenue=revenue, **extra)


def _sample_records():
    return [
        _record("2025-07", "A"),
        _record("2025-07", "B"),
        _record("2025-08", "B"),
        _record("2025-08", "C"),
        _record("2025-09", "A"),
    ]


def test_new_customer_only_on_first_appearance():
    changes = new_lost_customers(_sample_records())
    assert changes["2025-07"].new == []
    assert changes["2025-07"].lost == []
    assert changes["2025-08"].new == ["C"]
    assert changes["2025-08"].lost == ["A"]
    assert changes["2025-09"].new == []
    assert changes["2025-09"].lost == ["B", "C"]


def test_new_lost_on_empty_input():
    assert new_lost_customers([]) == {}


def test_monthly_totals_with_deltas():
    monthly = monthly_totals(_sample_records() + [_record("2025-08", "C", cases=3, revenue=30.0)])
    assert list(monthly["period"]) == ["2025-07", "2025-08", "2025-09"]
    assert list(monthly["cases"]) == [2, 5, 1]
    assert list(monthly["accounts"]) == [2, 2, 1]
    assert list(monthly["cases_delta"]) == [2, 3, -4]
    assert list(monthly["avg_cases_per_account"]) == [1.0, 2.5, 1.0]


def test_monthly_totals_empty():
    monthly = monthly_totals([])
    assert monthly.empty
    assert "revenue_delta" in monthly.columns


def test_adjustment_excluded_from_products_but_in_totals():
    records = [
        _record("2025-06", "Acme", cases=4, revenue=45.0),
        _record("2025-06", "Acme", product="Sheet Bottom-Line Adjustment", cases=1, revenue=5.0, is_adjustment=True),
    ]
    products = product_breakdown(records)
    assert list(products["product_name"]) == ["X"]
    totals = channel_totals(records)
    assert totals["cases"] == 5
    assert totals["revenue"] == 50.0


def test_combined_totals_skip_excluded_channels():
    channels = {
        "alpine": [_record("2025-06", "A", cases=2, revenue=20.0)],
        "dot": [_record("2025-06", "B", cases=9, revenue=90.0, exclude_from_totals=True)],
    }
    assert combined_totals(channels) == {"cases": 2, "revenue": 20.0, "records": 1}


def test_split_customer_name():
    assert split_customer_name("Acme - Downtown") == ("Acme", "Downtown")
    assert split_customer_name("Employee: Jo") == ("Employee", "Jo")
    assert split_customer_name("Solo") == ("Solo", "")


def test_hierarchy_pivot_by_month():
    records = [
        _record("2025-01", "Acme - Downtown", cases=2),
        _record("2025-03", "Acme - Downtown", cases=3),
        _record("2025-03", "Vistar NW", cases=4, account_name="Campus Cafe"),
        _record("2024-03", "Acme - Downtown", cases=9),
        _record("2025-03", "Acme - Downtown", product="ADJ", cases=1, is_adjustment=True),
    ]
    pivot = customer_hierarchy_pivot(records, value="cases", year=2025)
    acme = pivot[pivot["customer"] == "Acme"].iloc[0]
    assert acme["account"] == "Downtown"
    assert acme["Jan"] == 2
    assert acme["Mar"] == 3
    assert acme["Total"] == 5
    vistar = pivot[pivot["customer"] == "Vistar NW"].iloc[0]
    assert vistar["account"] == "Campus Cafe"
    assert len(pivot) == 2


def test_rebuild_channel_view():
    view = rebuild_channel_view("alpine", _sample_records())
    assert view.periods == ["2025-07", "2025-08", "2025-09"]
    assert view.totals["cases"] == 5
    assert view.progress["A"].trends.status == "active"
    assert view.customer_changes["2025-08"].new == ["C"]


def test_hierarchy_pivot_defaults_to_latest_year():
    records = [
        _record("2024-03", "Acme - Downtown", cases=9),
        _record("2025-03", "Acme - Downtown", cases=3),
        _record("2026-01", "Acme - Downtown", product="ADJ", cases=1, is_adjustment=True),
    ]
    pivot = customer_hierarchy_pivot(records)
    assert len(pivot) == 1
    assert pivot.iloc[0]["Mar"] == 3
    assert pivot.iloc[0]["Total"] == 3


def test_rebuilt_view_carries_hierarchy_pivots():
    view = rebuild_channel_view("alpine", _sample_records() + [_record("2024-07", "A", cases=7)])
    assert sorted(view.hierarchy) == ["cases", "revenue"]
    cases = view.hierarchy["cases"]
    assert cases.set_index("customer")["Jul"].to_dict() == {"A": 1, "B": 1, "C": 0}
    assert view.hierarchy["revenue"]["Total"].sum() == 50.0
