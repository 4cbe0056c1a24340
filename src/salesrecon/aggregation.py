"""Read-only views rebuilt from one channel's merged records.

Nothing here is maintained incrementally: every upload or period deletion
recomputes the full view from the record list.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

import pandas as pd

from .models import SalesRecord, records_to_frame
from .normalizers import round_half_up
from .progress import CustomerProgressAnalysis, analyze_all_customers


MONTH_LABELS = [calendar.month_abbr[m] for m in range(1, 13)]
MONTHLY_COLUMNS = [
    "period",
    "cases",
    "revenue",
    "accounts",
    "avg_cases_per_account",
    "cases_delta",
    "revenue_delta",
    "accounts_delta",
]
HIERARCHY_KEYS = ["customer", "account", "product"]
SUB_ACCOUNT_SEPARATORS = (" - ", ": ")


@dataclass
class CustomerChanges:
    new: List[str] = field(default_factory=list)
    lost: List[str] = field(default_factory=list)


@dataclass
class ChannelView:
    """Everything a dashboard shows for one channel."""

    channel: str
    monthly: pd.DataFrame
    customer_changes: Dict[str, CustomerChanges]
    progress: Dict[str, CustomerProgressAnalysis]
    products: pd.DataFrame
    totals: Dict[str, float]
    hierarchy: Dict[str, pd.DataFrame] = field(default_factory=dict)

    @property
    def periods(self) -> List[str]:
        return list(self.monthly["period"]) if not self.monthly.empty else []


def monthly_totals(records: Sequence[SalesRecord]) -> pd.DataFrame:
    """Cases, revenue and distinct accounts per period with month-over-month deltas."""

    df = records_to_frame(records)
    if df.empty:
        return pd.DataFrame(columns=MONTHLY_COLUMNS)
    grouped = (
        df.groupby("period", as_index=False)
        .agg(cases=("cases", "sum"), revenue=("revenue", "sum"), accounts=("customer_name", "nunique"))
        .sort_values("period")
        .reset_index(drop=True)
    )
    grouped["revenue"] = grouped["revenue"].apply(lambda v: round_half_up(v, 2))
    grouped["avg_cases_per_account"] = [
        cases / accounts if accounts else 0.0 for cases, accounts in zip(grouped["cases"], grouped["accounts"])
    ]
    grouped["cases_delta"] = grouped["cases"].diff().fillna(grouped["cases"])
    grouped["revenue_delta"] = grouped["revenue"].diff().fillna(grouped["revenue"]).round(2)
    grouped["accounts_delta"] = grouped["accounts"].diff().fillna(grouped["accounts"])
    return grouped[MONTHLY_COLUMNS]


def new_lost_customers(records: Sequence[SalesRecord]) -> Dict[str, CustomerChanges]:
    """New and lost customers for every populated period.

    New in M: never seen in any earlier period. Lost in M: present in the
    previous populated period, absent from M. The first period has neither.
    """

    by_period: Dict[str, Set[str]] = {}
    for record in records:
        by_period.setdefault(record.period, set()).add(record.customer_name)

    changes: Dict[str, CustomerChanges] = {}
    seen: Set[str] = set()
    previous: Optional[Set[str]] = None
    for period in sorted(by_period):
        current = by_period[period]
        if previous is None:
            changes[period] = CustomerChanges()
        else:
            changes[period] = CustomerChanges(new=sorted(current - seen), lost=sorted(previous - current))
        seen |= current
        previous = current
    return changes


def split_customer_name(name: str) -> Tuple[str, str]:
    """``"Acme - Downtown"`` -> ``("Acme", "Downtown")``; no separator gives an empty sub-account."""

    for separator in SUB_ACCOUNT_SEPARATORS:
        if separator in name:
            main, sub = name.split(separator, 1)
            return main.strip(), sub.strip()
    return name.strip(), ""


def latest_year(records: Sequence[SalesRecord]) -> Optional[int]:
    years = [int(r.period[:4]) for r in records if not r.is_adjustment]
    return max(years) if years else None


def customer_hierarchy_pivot(
    records: Sequence[SalesRecord],
    value: str = "cases",
    year: Optional[int] = None,
) -> pd.DataFrame:
    """Customer / sub-account / product rows with one column per calendar month.

    Sub-accounts come from the record's account name, else from a combined
    customer name. Adjustment records are not products and are left out.
    Only one calendar year is pivoted: ``year``, or the latest one present.
    """

    if value not in ("cases", "revenue"):
        raise ValueError(f"Unsupported pivot value '{value}'. Expected 'cases' or 'revenue'")
    if year is None:
        year = latest_year(records)
    rows = []
    for record in records:
        if record.is_adjustment:
            continue
        record_year, month = int(record.period[:4]), int(record.period[5:7])
        if year is not None and record_year != year:
            continue
        main, sub = split_customer_name(record.customer_name)
        rows.append(
            {
                "customer": main,
                "account": record.account_name or sub,
                "product": record.product_name,
                "month": MONTH_LABELS[month - 1],
                "value": getattr(record, value),
            }
        )
    if not rows:
        return pd.DataFrame(columns=HIERARCHY_KEYS + MONTH_LABELS + ["Total"])

    pivot = pd.pivot_table(
        pd.DataFrame(rows),
        index=HIERARCHY_KEYS,
        columns="month",
        values="value",
        aggfunc="sum",
        fill_value=0,
    )
    pivot = pivot.reindex(columns=MONTH_LABELS, fill_value=0)
    pivot["Total"] = pivot[MONTH_LABELS].sum(axis=1)
    pivot.columns.name = None
    return pivot.reset_index().sort_values(HIERARCHY_KEYS).reset_index(drop=True)


def product_breakdown(records: Sequence[SalesRecord], period: Optional[str] = None) -> pd.DataFrame:
    """Cases and revenue per product, highest revenue first, without adjustment rows."""

    selected = [r for r in records if not r.is_adjustment and (period is None or r.period == period)]
    df = records_to_frame(selected)
    if df.empty:
        return pd.DataFrame(columns=["product_name", "cases", "revenue"])
    out = df.groupby("product_name", as_index=False).agg(cases=("cases", "sum"), revenue=("revenue", "sum"))
    out["revenue"] = out["revenue"].round(2)
    return out.sort_values(["revenue", "product_name"], ascending=[False, True]).reset_index(drop=True)


def channel_totals(records: Sequence[SalesRecord]) -> Dict[str, float]:
    """Sums for one channel; adjustments count here."""

    return {
        "cases": int(sum(r.cases for r in records)),
        "revenue": round_half_up(sum(r.revenue for r in records), 2),
        "records": len(records),
    }


def combined_totals(channels: Mapping[str, Sequence[SalesRecord]]) -> Dict[str, float]:
    """All-businesses totals; records flagged ``exclude_from_totals`` are not double counted."""

    counted = [r for records in channels.values() for r in records if not r.exclude_from_totals]
    return channel_totals(counted)


def rebuild_channel_view(channel: str, records: Sequence[SalesRecord]) -> ChannelView:
    records = list(records)
    return ChannelView(
        channel=channel,
        monthly=monthly_totals(records),
        customer_changes=new_lost_customers(records),
        progress=analyze_all_customers(records),
        products=product_breakdown(records),
        totals=channel_totals(records),
        hierarchy={value: customer_hierarchy_pivot(records, value=value) for value in ("cases", "revenue")},
    )
