from datetime import datetime, timezone

import pandas as pd

from salesrecon.normalizers import (
    clean_text,
    current_period,
    period_from_compact_date,
    period_from_date_range_header,
    period_from_dotted_filename,
    period_from_first_date,
    period_from_month_name,
    period_from_report_cell,
    period_from_value,
    resolve_period,
    round_currency,
    round_half_up,
    to_cases,
    to_number,
)


def test_to_number_handles_accounting_formats():
    assert to_number("(3)") == -3
    assert to_number("$1,234.50") == 1234.5
    assert to_number("45.10-") == -45.10
    assert to_number("12%") == 12
    assert to_number(7) == 7.0


def test_to_number_unreadable_values_are_zero():
    assert to_number(None) == 0.0
    assert to_number(float("nan")) == 0.0
    assert to_number("") == 0.0
    assert to_number("n/a") == 0.0
    assert to_number(float("inf")) == 0.0


def test_negative_quantities_survive_case_rounding():
    assert to_cases("(3)") == -3
    assert to_cases("2.5") == 3
    assert to_cases("1-") == -1


def test_rounding_is_half_up():
    assert round_half_up(2.675, 2) == 2.68
    assert round_currency("$20.005") == 20.01
    assert round_half_up(-0.5, 0) == -1.0


def test_clean_text_drops_float_suffix():
    assert clean_text(59975.0) == "59975"
    assert clean_text(None) == ""
    assert clean_text("  Acme ") == "Acme"


def test_date_range_header_uses_thru_date():
    assert period_from_date_range_header("FROM : 06/30/25 THRU 07/01/25") == "2025-07"
    assert period_from_date_range_header("FROM : 06/01/25") is None


def test_period_from_value_variants():
    assert period_from_value("2025-06-15") == "2025-06"
    assert period_from_value("6/15/25") == "2025-06"
    assert period_from_value(datetime(2025, 6, 30, 23, 0)) == "2025-06"
    assert period_from_value(pd.Timestamp("2025-03-01")) == "2025-03"
    assert period_from_value(45850) == "2025-07"
    assert period_from_value("not a date") is None


def test_filename_period_strategies():
    assert period_from_dotted_filename("Petes 6.25 sales.xlsx") == "2025-06"
    assert period_from_month_name("Troia- July 25 Sales.xlsx") == "2025-07"
    assert period_from_compact_date("GALANT_20250731.CSV") == "2025-07"
    assert period_from_report_cell("6.2024") == "2024-06"
    assert period_from_first_date("1/1/2025 to 1/31/2025") == "2025-01"


def test_resolve_period_falls_back_to_current_month():
    now = datetime(2025, 8, 15, tzinfo=timezone.utc)

    def broken():
        raise ValueError("bad header")

    assert resolve_period(lambda: None, broken, now=now) == "2025-08"
    assert resolve_period(lambda: "2025-02", now=now) == "2025-02"
    assert current_period(now) == "2025-08"
