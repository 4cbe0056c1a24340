"""Per-customer period summaries and trend classification.

The latest period is compared with the one immediately before it; there is
no trailing average. Everything is recomputed from the full record list.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from .models import SalesRecord
from .normalizers import round_half_up


TREND_THRESHOLD = 0.10
TOP_PRODUCTS = 5

INCREASING = "increasing"
DECREASING = "decreasing"
STABLE = "stable"
NEW = "new"
EXPANDING = "expanding"
CONTRACTING = "contracting"

STATUS_ACTIVE = "active"
STATUS_DECLINING = "declining"
STATUS_EMERGING = "emerging"
STATUS_LOST = "lost"


@dataclass
class ProductSummary:
    product_name: str
    revenue: float
    cases: int


@dataclass
class PeriodSummary:
    period: str
    total_revenue: float
    total_cases: int
    product_count: int
    top_products: List[ProductSummary] = field(default_factory=list)


@dataclass
class ProgressTrends:
    revenue_trend: str
    case_trend: str
    product_trend: str
    status: str


@dataclass
class CustomerProgressAnalysis:
    customer_name: str
    periods: List[PeriodSummary]
    trends: ProgressTrends


def classify_change(previous: float, current: float, threshold: float = TREND_THRESHOLD) -> str:
    """``increasing``/``decreasing`` beyond +/- ``threshold`` relative change, else ``stable``.

    A zero baseline has no relative change; the sign of ``current`` decides.
    """

    if previous == 0:
        if current > 0:
            return INCREASING
        if current < 0:
            return DECREASING
        return STABLE
    change = (current - previous) / abs(previous)
    if change > threshold:
        return INCREASING
    if change < -threshold:
        return DECREASING
    return STABLE


def classify_product_count(previous: int, current: int) -> str:
    if current > previous:
        return EXPANDING
    if current < previous:
        return CONTRACTING
    return STABLE


def summarize_period(period: str, records: Sequence[SalesRecord]) -> PeriodSummary:
    """Totals include adjustment records; the product counts and rankings do not."""

    revenue_by_product: Dict[str, float] = {}
    cases_by_product: Dict[str, int] = {}
    for record in records:
        if record.is_adjustment:
            continue
        revenue_by_product[record.product_name] = revenue_by_product.get(record.product_name, 0.0) + record.revenue
        cases_by_product[record.product_name] = cases_by_product.get(record.product_name, 0) + record.cases
    ranked = sorted(revenue_by_product.items(), key=lambda item: (-item[1], item[0]))[:TOP_PRODUCTS]
    return PeriodSummary(
        period=period,
        total_revenue=round_half_up(sum(r.revenue for r in records), 2),
        total_cases=int(sum(r.cases for r in records)),
        product_count=len(revenue_by_product),
        top_products=[
            ProductSummary(name, round_half_up(revenue, 2), int(cases_by_product[name])) for name, revenue in ranked
        ],
    )


def _trends(periods: List[PeriodSummary]) -> ProgressTrends:
    if not periods:
        return ProgressTrends(STABLE, STABLE, STABLE, STATUS_LOST)
    if len(periods) == 1:
        return ProgressTrends(NEW, NEW, NEW, STATUS_EMERGING)
    previous, latest = periods[-2], periods[-1]
    revenue_trend = classify_change(previous.total_revenue, latest.total_revenue)
    case_trend = classify_change(previous.total_cases, latest.total_cases)
    product_trend = classify_product_count(previous.product_count, latest.product_count)
    status = STATUS_DECLINING if DECREASING in (revenue_trend, case_trend) else STATUS_ACTIVE
    return ProgressTrends(revenue_trend, case_trend, product_trend, status)


def analyze_customer_progress(records: Iterable[SalesRecord], customer_name: str) -> CustomerProgressAnalysis:
    by_period: Dict[str, List[SalesRecord]] = {}
    for record in records:
        if record.customer_name == customer_name:
            by_period.setdefault(record.period, []).append(record)
    periods = [summarize_period(period, by_period[period]) for period in sorted(by_period)]
    return CustomerProgressAnalysis(customer_name, periods, _trends(periods))


def analyze_all_customers(records: Sequence[SalesRecord]) -> Dict[str, CustomerProgressAnalysis]:
    """Progress for every customer present in ``records``, keyed by name."""

    names = sorted({r.customer_name for r in records})
    return {name: analyze_customer_progress(records, name) for name in names}
