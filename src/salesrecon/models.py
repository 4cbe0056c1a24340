"""Canonical record types shared by parsers, merge and aggregation."""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

import pandas as pd


PERIOD_PATTERN = re.compile(r"^\d{4}-\d{2}$")


@dataclass(frozen=True)
class SalesRecord:
    """One line of "customer X bought product Y in period Z".

    Records are immutable; merges replace whole records by key.
    """

    period: str
    customer_name: str
    product_name: str
    cases: int = 0
    revenue: float = 0.0
    account_name: Optional[str] = None
    product_code: Optional[str] = None
    item_number: Optional[str] = None
    size: Optional[str] = None
    mfg_item_number: Optional[str] = None
    pieces: Optional[float] = None
    net_lbs: Optional[float] = None
    weight_lbs: Optional[float] = None
    customer_id: Optional[str] = None
    exclude_from_totals: bool = False
    is_adjustment: bool = False

    def __post_init__(self) -> None:
        if not PERIOD_PATTERN.match(str(self.period)):
            raise ValueError(f"Invalid period {self.period!r}; expected YYYY-MM")
        if not str(self.customer_name).strip():
            raise ValueError("SalesRecord requires a customer name")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SalesRecord":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in payload.items() if k in known})


class MergeKey(NamedTuple):
    """Composite identity used by the merge engine.

    A tuple key keeps names containing ``|`` from colliding.
    """

    period: str
    customer_name: str
    account_name: str
    product_name: str

    @classmethod
    def for_record(cls, record: SalesRecord, include_account: bool = True) -> "MergeKey":
        account = (record.account_name or "") if include_account else ""
        return cls(record.period, record.customer_name, account, record.product_name)


@dataclass
class ParsedMetadata:
    supplier: str
    periods: List[str] = field(default_factory=list)
    customers: List[str] = field(default_factory=list)
    products: List[str] = field(default_factory=list)
    total_revenue: float = 0.0
    total_cases: int = 0
    period_revenue: Dict[str, float] = field(default_factory=dict)
    skipped_rows: Dict[str, int] = field(default_factory=dict)


@dataclass
class ParseResult:
    """Records produced from one file (or several files of one distributor)."""

    records: List[SalesRecord]
    metadata: ParsedMetadata

    @property
    def is_empty(self) -> bool:
        return not self.records


RECORD_COLUMNS = [f.name for f in fields(SalesRecord)]


def records_to_frame(records: Iterable[SalesRecord]) -> pd.DataFrame:
    """Return a DataFrame with one row per record and stable columns."""

    rows = [r.to_dict() for r in records]
    if not rows:
        return pd.DataFrame(columns=RECORD_COLUMNS)
    return pd.DataFrame(rows, columns=RECORD_COLUMNS)
