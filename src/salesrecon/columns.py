"""Declarative column resolution for distributor layouts.

Each parser describes its columns as data: an ordered list of candidate
header names plus an optional positional fallback. A column found by name
always wins over the assumed position.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .normalizers import clean_text


# "Grand Total", "Subtotal:", "Total for Acme", "Acme Total"; not "Total Wine & More"
TOTAL_LABEL_RX = re.compile(
    r"^((grand|sub)\s*-?\s*)?totals?(\s+for\b.*|\s*:.*)?$|\s(grand\s+|sub-?)?total:?$",
    flags=re.IGNORECASE,
)


@dataclass(frozen=True)
class ColumnSpec:
    """How to find one column.

    ``candidates`` are lower-case header names tried in priority order.
    With ``exact`` the header must equal a candidate; otherwise containing it
    is enough. Headers containing any ``exclude`` token are never chosen.
    """

    candidates: Tuple[str, ...] = ()
    fallback: Optional[int] = None
    exact: bool = False
    exclude: Tuple[str, ...] = ()


def normalize_header(value: Any) -> str:
    return clean_text(value).lower()


def find_column(headers: Sequence[Any], spec: ColumnSpec) -> Optional[int]:
    lowered = [normalize_header(h) for h in headers]
    for candidate in spec.candidates:
        for idx, header in enumerate(lowered):
            if not header:
                continue
            if any(token in header for token in spec.exclude):
                continue
            if header == candidate or (not spec.exact and candidate in header):
                return idx
    if spec.fallback is not None and spec.fallback < len(lowered):
        return spec.fallback
    return None


def resolve_columns(headers: Sequence[Any], specs: Mapping[str, ColumnSpec]) -> Dict[str, Optional[int]]:
    """Resolve every spec against one header row."""

    return {name: find_column(headers, spec) for name, spec in specs.items()}


def missing_columns(resolved: Mapping[str, Optional[int]], required: Sequence[str]) -> List[str]:
    return [name for name in required if resolved.get(name) is None]


def cell(row: Sequence[Any], idx: Optional[int]) -> Any:
    if idx is None or idx < 0 or idx >= len(row):
        return None
    return row[idx]


def row_text(row: Sequence[Any]) -> str:
    """Lower-case join of all cells, for signature matching."""

    return " ".join(normalize_header(c) for c in row)


def is_blank_row(row: Sequence[Any]) -> bool:
    return all(not clean_text(c) for c in row)


def find_header_row(
    rows: Sequence[Sequence[Any]],
    predicate: Callable[[Sequence[Any]], bool],
    limit: int = 20,
) -> Optional[int]:
    """Index of the first row within ``limit`` rows accepted by ``predicate``."""

    for idx, row in enumerate(rows[:limit]):
        if predicate(row or []):
            return idx
    return None


def has_all(*tokens: str) -> Callable[[Sequence[Any]], bool]:
    """Predicate: the joined row text contains every token."""

    def check(row: Sequence[Any]) -> bool:
        text = row_text(row)
        return all(token in text for token in tokens)

    return check


def is_total_label(*values: Any) -> bool:
    """True when any of ``values`` is a total or subtotal label rather than a name."""

    return any(TOTAL_LABEL_RX.search(clean_text(v)) for v in values if clean_text(v))
