"""Best-effort export of uploaded rows to the remote sheet sink.

Rows are posted as ``{"token": ..., "rows": [...]}`` from a background
worker so a slow or unavailable sink never holds up the local merge.
Failures are logged and dropped; local state is the source of truth.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from queue import Queue
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .logging_utils import LOGGER_NAME, log_error, log_system_event
from .models import SalesRecord
from .normalizers import round_half_up


BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
MID_MONTH_DAY = "15"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36[rem])
    return "".join(reversed(digits))


def djb2(text: str) -> int:
    """32-bit unsigned djb2 hash."""

    h = 5381
    for ch in text:
        h = ((h << 5) + h + ord(ch)) & 0xFFFFFFFF
    return h


def synthetic_invoice_key(date: str, customer_name: str, product_name: str, cases: int, revenue: float) -> str:
    """Deterministic ``SYN-YYYYMMDD-<hash>`` key so re-uploads dedupe downstream."""

    compact = date.replace("-", "")
    base = f"{compact}|{customer_name}|{product_name}|{int(cases)}|{round_half_up(revenue, 2):.2f}".upper()
    return f"SYN-{compact}-{_base36(djb2(base))}"


def build_sink_row(record: SalesRecord, source_label: str, uploaded_at: Optional[datetime] = None) -> List[Any]:
    """``[date, customer, product, code, cases, revenue, key, source, uploaded_at]``."""

    uploaded_at = uploaded_at or datetime.now(timezone.utc)
    date = f"{record.period}-{MID_MONTH_DAY}"
    revenue = round_half_up(record.revenue, 2)
    return [
        date,
        record.customer_name,
        record.product_name,
        record.product_code or "",
        int(record.cases),
        revenue,
        synthetic_invoice_key(date, record.customer_name, record.product_name, record.cases, revenue),
        source_label,
        uploaded_at.isoformat(),
    ]


def build_sink_rows(records: Sequence[SalesRecord], source_label: str, uploaded_at: Optional[datetime] = None) -> List[List[Any]]:
    uploaded_at = uploaded_at or datetime.now(timezone.utc)
    return [build_sink_row(r, source_label, uploaded_at) for r in records]


class SinkClient:
    """Thin httpx wrapper around the sink's append endpoint."""

    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url
        self.token = token
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def append(self, rows: List[List[Any]]) -> Dict[str, Any]:
        resp = self._client.post(self.url, json={"token": self.token, "rows": rows})
        resp.raise_for_status()
        try:
            return resp.json()
        except ValueError:
            return {}

    def close(self) -> None:
        self._client.close()


class OutboundQueue:
    """Single background worker draining row batches into a :class:`SinkClient`.

    Usage:
        outbound = OutboundQueue(client)
        outbound.start()
        outbound.submit(rows)
        outbound.stop()
    """

    def __init__(self, client: SinkClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self._queue: Queue[Optional[List[List[Any]]]] = Queue()
        self._worker: Optional[threading.Thread] = None
        self.sent = 0
        self.failed = 0

    def start(self) -> None:
        if self._worker is not None and self._worker.is_alive():
            return
        self._worker = threading.Thread(target=self._run, name="salesrecon-sink", daemon=True)
        self._worker.start()

    def submit(self, rows: List[List[Any]]) -> None:
        if rows:
            self._queue.put(rows)

    def _run(self) -> None:
        while True:
            rows = self._queue.get()
            try:
                if rows is None:
                    return
                self._send(rows)
            finally:
                self._queue.task_done()

    def _send(self, rows: List[List[Any]]) -> None:
        try:
            self.client.append(rows)
        except Exception as exc:
            self.failed += 1
            log_error(self.logger, f"Sink append of {len(rows)} rows failed: {exc}")
            return
        self.sent += 1
        log_system_event(self.logger, f"Sink accepted {len(rows)} rows")

    def drain(self) -> None:
        """Block until every submitted batch has been attempted."""

        self._queue.join()

    def stop(self) -> None:
        if self._worker is None:
            return
        self._queue.put(None)
        self._worker.join(timeout=5.0)
        self._worker = None
        self.client.close()
