"""Merge engine: last-write-wins by composite key, then size-bounded retention."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import MergeKey, SalesRecord


DEFAULT_WINDOWS_MONTHS = (24, 12)
DEFAULT_MAX_BYTES = 9216


@dataclass
class MergeResult:
    merged: List[SalesRecord]
    added_count: int


@dataclass
class RetentionResult:
    """Records kept after retention.

    ``window_months`` is the window that made the data fit, or ``None`` when
    even the shortest window overflowed and the oldest periods were dropped.
    """

    records: List[SalesRecord]
    window_months: Optional[int]
    dropped: int = 0
    dropped_periods: List[str] = field(default_factory=list)


def merge_and_rebuild(
    existing: Iterable[SalesRecord],
    new: Iterable[SalesRecord],
    include_account: bool = True,
) -> MergeResult:
    """Overlay ``new`` onto ``existing``; a record whose key already exists replaces it.

    ``added_count`` counts new records whose key was not present before.
    """

    by_key: Dict[MergeKey, SalesRecord] = {}
    for record in existing:
        by_key[MergeKey.for_record(record, include_account)] = record
    added = 0
    for record in new:
        key = MergeKey.for_record(record, include_account)
        if key not in by_key:
            added += 1
        by_key[key] = record
    return MergeResult(list(by_key.values()), added)


def serialized_size(records: Sequence[SalesRecord]) -> int:
    """UTF-8 byte length of the JSON document the store writes."""

    return len(json.dumps([r.to_dict() for r in records]).encode("utf-8"))


def _month_index(period: str) -> int:
    year, month = period.split("-")
    return int(year) * 12 + int(month) - 1


def within_window(records: Iterable[SalesRecord], months: int, now: Optional[datetime] = None) -> List[SalesRecord]:
    """Records whose period falls in the trailing ``months`` months, current month included."""

    now = now or datetime.now(timezone.utc)
    cutoff = now.year * 12 + now.month - 1 - (months - 1)
    return [r for r in records if _month_index(r.period) >= cutoff]


def apply_retention(
    records: Sequence[SalesRecord],
    windows_months: Sequence[int] = DEFAULT_WINDOWS_MONTHS,
    max_bytes: int = DEFAULT_MAX_BYTES,
    now: Optional[datetime] = None,
) -> RetentionResult:
    """Keep the longest window whose serialized size fits ``max_bytes``.

    When none fits, whole periods are dropped oldest first from the shortest
    window until it does.
    """

    records = list(records)
    candidate: List[SalesRecord] = records
    for months in windows_months:
        candidate = within_window(records, months, now)
        if serialized_size(candidate) <= max_bytes:
            return RetentionResult(candidate, months, len(records) - len(candidate))

    periods = sorted({r.period for r in candidate})
    dropped_periods: List[str] = []
    while candidate and serialized_size(candidate) > max_bytes:
        oldest = periods.pop(0)
        dropped_periods.append(oldest)
        candidate = [r for r in candidate if r.period != oldest]
    return RetentionResult(candidate, None, len(records) - len(candidate), dropped_periods)


def delete_period(records: Iterable[SalesRecord], period: str) -> Tuple[List[SalesRecord], int]:
    """Remove every record of ``period``; returns the survivors and how many were removed."""

    remaining: List[SalesRecord] = []
    deleted = 0
    for record in records:
        if record.period == period:
            deleted += 1
        else:
            remaining.append(record)
    return remaining, deleted
