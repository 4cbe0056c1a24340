"""Bottom-line reconciliation against totals stated inside a source file."""
from __future__ import annotations

from typing import List, Optional, Sequence

from .models import SalesRecord
from .normalizers import round_half_up


ADJUSTMENT_PRODUCT = "Sheet Bottom-Line Adjustment"
ADJUSTMENT_CODE = "ADJ"
UNKNOWN_CUSTOMER = "Unknown Customer"
REVENUE_TOLERANCE = 0.009


def bottom_line_adjustment(
    records: Sequence[SalesRecord],
    reported_cases: Optional[float],
    reported_revenue: Optional[float],
    fallback_period: str,
    exclude_from_totals: bool = False,
) -> Optional[SalesRecord]:
    """Synthetic record closing the gap between parsed lines and a stated grand total.

    Returns ``None`` when nothing was reported or the lines already add up.
    The adjustment is attributed to the first customer and period seen.
    """

    if reported_cases is None and reported_revenue is None:
        return None
    computed_revenue = sum(r.revenue for r in records)
    computed_cases = sum(r.cases for r in records)
    revenue_target = reported_revenue if reported_revenue is not None else computed_revenue
    cases_target = int(round_half_up(reported_cases, 0)) if reported_cases is not None else computed_cases
    revenue_diff = round_half_up(revenue_target - computed_revenue, 2)
    cases_diff = int(cases_target - computed_cases)
    if abs(revenue_diff) <= REVENUE_TOLERANCE and cases_diff == 0:
        return None
    first = records[0] if records else None
    return SalesRecord(
        period=first.period if first else fallback_period,
        customer_name=first.customer_name if first else UNKNOWN_CUSTOMER,
        product_name=ADJUSTMENT_PRODUCT,
        cases=cases_diff,
        revenue=revenue_diff,
        product_code=ADJUSTMENT_CODE,
        pieces=0.0,
        exclude_from_totals=exclude_from_totals,
        is_adjustment=True,
    )


def reconcile(
    records: List[SalesRecord],
    reported_cases: Optional[float],
    reported_revenue: Optional[float],
    fallback_period: str,
    exclude_from_totals: bool = False,
) -> List[SalesRecord]:
    """Return ``records`` plus the adjustment row when one is needed."""

    adjustment = bottom_line_adjustment(records, reported_cases, reported_revenue, fallback_period, exclude_from_totals)
    return records + [adjustment] if adjustment else list(records)
