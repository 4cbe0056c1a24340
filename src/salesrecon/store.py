"""Per-channel record stores and the atomic upload sequence.

One JSON file per channel under ``paths.data_dir``. An upload parses every
file first; only when all of them parse does it take the store lock and run
merge, retention, persist and view rebuild for each affected channel. Sink
rows are queued after the lock is released.
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .aggregation import ChannelView, combined_totals, rebuild_channel_view
from .config import AppConfig, ensure_directory
from .logging_utils import LOGGER_NAME, append_batch_log, log_error, log_system_event, log_warning
from .merge import apply_retention, delete_period, merge_and_rebuild
from .models import SalesRecord
from .parsers import SOURCE_LABELS, ParserContext, get_parser
from .sink import OutboundQueue, build_sink_rows


SPROUTS_CHANNEL = "sprouts"
KEHE_CHANNEL = "kehe"


@dataclass
class ChannelUploadStats:
    rows: int = 0
    added: int = 0
    kept: int = 0
    window_months: Optional[int] = None


@dataclass
class UploadResult:
    distributor: str
    total_rows: int
    channels: Dict[str, ChannelUploadStats] = field(default_factory=dict)
    unmapped: Dict[str, int] = field(default_factory=dict)


def route_records(distributor: str, records: Iterable[SalesRecord]) -> Dict[str, List[SalesRecord]]:
    """Split parsed records into channels.

    KeHe rows for Sprouts stores live in their own channel; every other
    distributor maps to the channel of the same name.
    """

    routed: Dict[str, List[SalesRecord]] = {}
    for record in records:
        channel = distributor
        if distributor == KEHE_CHANNEL and SPROUTS_CHANNEL in record.customer_name.lower():
            channel = SPROUTS_CHANNEL
        routed.setdefault(channel, []).append(record)
    return routed


class ChannelStore:
    """Owns the persisted record sets and their rebuilt views."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        context: Optional[ParserContext] = None,
        logger: Optional[logging.Logger] = None,
        outbound: Optional[OutboundQueue] = None,
    ):
        self.config = config or AppConfig()
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.context = context or ParserContext.from_config(self.config.as_dict(), self.logger)
        self.outbound = outbound
        self.data_dir = ensure_directory(self.config.paths.data_dir)
        self._lock = threading.Lock()
        self._views: Dict[str, ChannelView] = {}

    # -- persistence ---------------------------------------------------------------

    def _path(self, channel: str) -> Path:
        return self.data_dir / f"{channel}.json"

    def load(self, channel: str) -> List[SalesRecord]:
        path = self._path(channel)
        if not path.exists():
            return []
        payload = json.loads(path.read_text(encoding="utf-8") or "[]")
        return [SalesRecord.from_dict(item) for item in payload]

    def save(self, channel: str, records: Sequence[SalesRecord]) -> Path:
        path = self._path(channel)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps([r.to_dict() for r in records]), encoding="utf-8")
        tmp.replace(path)
        return path

    def channels(self) -> List[str]:
        return sorted(p.stem for p in self.data_dir.glob("*.json"))

    # -- views ---------------------------------------------------------------------

    def view(self, channel: str) -> ChannelView:
        with self._lock:
            if channel not in self._views:
                self._views[channel] = rebuild_channel_view(channel, self.load(channel))
            return self._views[channel]

    def combined(self) -> Dict[str, float]:
        return combined_totals({channel: self.load(channel) for channel in self.channels()})

    # -- operations ----------------------------------------------------------------

    def upload(self, distributor: str, paths: Sequence[str | Path], now: Optional[datetime] = None) -> UploadResult:
        """Parse ``paths`` with one distributor's parser and merge them into the store.

        Any parse error rejects the whole batch before anything is merged.
        """

        distributor = (distributor or "").strip().lower()
        parser = get_parser(distributor, self.context)
        try:
            parsed = parser.parse_many(paths)
        except Exception as exc:
            log_error(self.logger, f"Upload rejected for {distributor}: {exc}")
            append_batch_log(
                {"action": "upload", "distributor": distributor, "total_rows": 0, "note": str(exc)},
                self.config.as_dict(),
            )
            raise

        result = UploadResult(distributor, len(parsed.records))
        routed = route_records(distributor, parsed.records)
        retention = self.config.retention
        with self._lock:
            for channel, records in routed.items():
                merged = merge_and_rebuild(
                    self.load(channel), records, include_account=self.config.merge.include_account_in_key
                )
                kept = apply_retention(merged.merged, retention.windows_months, retention.max_bytes, now)
                if kept.window_months is None:
                    log_warning(
                        self.logger,
                        f"{channel}: data exceeds {retention.max_bytes} bytes at every window; "
                        f"dropped periods {', '.join(kept.dropped_periods)}",
                    )
                self.save(channel, kept.records)
                self._views[channel] = rebuild_channel_view(channel, kept.records)
                result.channels[channel] = ChannelUploadStats(
                    rows=len(records), added=merged.added_count, kept=len(kept.records), window_months=kept.window_months
                )
                log_system_event(
                    self.logger,
                    f"{channel}: merged {len(records)} rows ({merged.added_count} new), {len(kept.records)} retained",
                )

        result.unmapped = dict(self.context.catalog.unmapped)
        append_batch_log(
            {
                "action": "upload",
                "distributor": distributor,
                "total_rows": result.total_rows,
                "rows": {c: s.rows for c, s in result.channels.items()},
                "added": {c: s.added for c, s in result.channels.items()},
                "note": "",
            },
            self.config.as_dict(),
        )
        if self.outbound is not None:
            self.outbound.submit(build_sink_rows(parsed.records, SOURCE_LABELS.get(distributor, distributor.upper())))
        return result

    def delete_period(self, channel: str, period: str) -> int:
        """Remove one period from one channel and rebuild that channel's view."""

        with self._lock:
            remaining, deleted = delete_period(self.load(channel), period)
            if deleted:
                self.save(channel, remaining)
            self._views[channel] = rebuild_channel_view(channel, remaining)
        log_system_event(self.logger, f"{channel}: deleted {deleted} records for {period}")
        append_batch_log(
            {"action": "delete-period", "channel": channel, "period": period, "deleted": deleted},
            self.config.as_dict(),
        )
        return deleted
