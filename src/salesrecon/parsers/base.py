"""Shared parser template, context object and error types."""
from __future__ import annotations

import functools
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from ..logging_utils import LOGGER_NAME, log_system_event
from ..models import ParsedMetadata, ParseResult, SalesRecord
from ..normalizers import current_period, resolve_period, round_half_up
from ..pricing import MasterPricing
from ..product_mapping import ProductCatalog


class MissingColumnsError(ValueError):
    """A file lacks columns the parser cannot work without."""

    def __init__(self, missing: Sequence[str], source: str = "file"):
        self.missing = list(missing)
        super().__init__(f"Missing required columns in {source}: {', '.join(self.missing)}")


class EmptyFileError(ValueError):
    """The file has no header line at all."""


@dataclass
class ParserContext:
    """Lookup services handed to every parser.

    ``now`` pins the fallback period; leave it ``None`` to use the clock.
    """

    catalog: ProductCatalog
    pricing: MasterPricing
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(LOGGER_NAME))
    now: Optional[datetime] = None

    @classmethod
    def from_config(cls, config: Optional[dict] = None, logger: Optional[logging.Logger] = None) -> "ParserContext":
        paths = (config or {}).get("paths", {}) or {}
        logger = logger or logging.getLogger(LOGGER_NAME)
        catalog = ProductCatalog.from_yaml(paths.get("product_catalog"), logger=logger)
        pricing = MasterPricing.from_workbook(paths.get("master_pricing"), logger=logger)
        return cls(catalog=catalog, pricing=pricing, logger=logger)


class SkipCounter(Counter):
    """Per-reason counts of rows a parser deliberately ignored."""

    def skip(self, reason: str) -> None:
        self[reason] += 1

    def summary(self) -> str:
        if not self:
            return "none"
        return ", ".join(f"{reason}={count}" for reason, count in sorted(self.items()))


S = TypeVar("S")


@dataclass
class GroupState:
    """Accumulator for row folds where a header row applies to the rows below it."""

    group: Any = None
    records: List[SalesRecord] = field(default_factory=list)


def fold_rows(rows: Iterable[Any], step: Callable[[S, Any], S], initial: S) -> S:
    return functools.reduce(step, rows, initial)


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(v for v in values if v))


def build_metadata(supplier: str, records: Sequence[SalesRecord], skips: Optional[Dict[str, int]] = None) -> ParsedMetadata:
    period_revenue: Dict[str, float] = {}
    for record in records:
        period_revenue[record.period] = period_revenue.get(record.period, 0.0) + record.revenue
    return ParsedMetadata(
        supplier=supplier,
        periods=sorted(_unique(r.period for r in records)),
        customers=_unique(r.customer_name for r in records),
        products=_unique(r.product_name for r in records),
        total_revenue=round_half_up(sum(r.revenue for r in records), 2),
        total_cases=int(sum(r.cases for r in records)),
        period_revenue={k: round_half_up(v, 2) for k, v in sorted(period_revenue.items())},
        skipped_rows=dict(skips or {}),
    )


class BaseParser:
    """Template for one distributor export format.

    Subclasses implement :meth:`_parse_file`; the base class applies the
    zero-row rule, builds metadata and logs the skip summary.
    """

    name = ""
    supplier = ""
    source_label = ""

    def __init__(self, context: ParserContext):
        self.context = context
        self.catalog = context.catalog
        self.pricing = context.pricing
        self.logger = context.logger

    # -- template ------------------------------------------------------------------

    def parse(self, path: str | Path) -> ParseResult:
        path = Path(path)
        skips = SkipCounter()
        parsed = self._parse_file(path, skips)
        records = []
        for record in parsed:
            if record.cases == 0 and record.revenue == 0 and not record.is_adjustment:
                skips.skip("zero")
                continue
            records.append(record)
        log_system_event(
            self.logger,
            f"{self.supplier}: parsed {len(records)} records from {path.name} (skipped: {skips.summary()})",
        )
        return ParseResult(records, build_metadata(self.supplier, records, skips))

    def parse_many(self, paths: Iterable[str | Path]) -> ParseResult:
        """Parse several files of this distributor into one sorted result."""

        records: List[SalesRecord] = []
        skips: Counter = Counter()
        for path in paths:
            result = self.parse(path)
            records.extend(result.records)
            skips.update(result.metadata.skipped_rows)
        records.sort(key=lambda r: (r.period, r.customer_name, r.product_name))
        metadata = build_metadata(self.supplier, records, skips)
        metadata.customers = sorted(metadata.customers)
        metadata.products = sorted(metadata.products)
        return ParseResult(records, metadata)

    def _parse_file(self, path: Path, skips: SkipCounter) -> List[SalesRecord]:
        raise NotImplementedError

    # -- helpers -------------------------------------------------------------------

    def resolve_period(self, *strategies: Callable[[], Optional[str]]) -> str:
        return resolve_period(*strategies, now=self.context.now)

    def current_period(self) -> str:
        return current_period(self.context.now)

    def map_product(self, raw: Any) -> str:
        return self.catalog.map_to_canonical(None if raw is None else str(raw))

    def map_first(self, *candidates: Optional[str]) -> Optional[str]:
        """Canonical name from the first candidate (code or name) the catalog knows."""

        for candidate in candidates:
            if candidate:
                found = self.catalog.lookup(candidate)
                if found:
                    return found
        return None
