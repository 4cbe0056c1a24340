import json
import re
from datetime import datetime, timezone

import httpx

from salesrecon.models import SalesRecord
from salesrecon.sink import OutboundQueue, SinkClient, _base36, build_sink_row, djb2, synthetic_invoice_key


UPLOADED_AT = datetime(2025, 8, 15, 9, 30, tzinfo=timezone.utc)


def _record(**overrides):
    payload = dict(period="2025-06", customer_name="Acme", product_name="Uncured Bacon Breakfast Burrito", cases=2, revenue=20.005)
    payload.update(overrides)
    return SalesRecord(**payload)


def test_djb2_and_base36():
    assert djb2("") == 5381
    assert djb2("a") == 177670
    assert _base36(0) == "0"
    assert _base36(35) == "Z"
    assert _base36(36) == "10"


def test_synthetic_key_is_deterministic():
    key = synthetic_invoice_key("2025-06-15", "Acme", "X", 2, 20.0)
    assert re.fullmatch(r"SYN-20250615-[0-9A-Z]+", key)
    assert key == synthetic_invoice_key("2025-06-15", "acme", "x", 2, 20.001)
    assert key != synthetic_invoice_key("2025-06-15", "Acme", "X", 3, 20.0)


def test_build_sink_row_layout():
    row = build_sink_row(_record(), "PETE'S XLSX", UPLOADED_AT)
    assert row[:6] == ["2025-06-15", "Acme", "Uncured Bacon Breakfast Burrito", "", 2, 20.01]
    assert row[6] == synthetic_invoice_key("2025-06-15", "Acme", "Uncured Bacon Breakfast Burrito", 2, 20.01)
    assert row[7] == "PETE'S XLSX"
    assert row[8] == "2025-08-15T09:30:00+00:00"


def test_client_posts_token_and_rows():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    client = SinkClient("https://sink.example/exec", "secret", transport=httpx.MockTransport(handler))
    assert client.append([["2025-06-15", "Acme"]]) == {"ok": True}
    assert seen == [{"token": "secret", "rows": [["2025-06-15", "Acme"]]}]
    client.close()


def test_outbound_queue_logs_failures_without_raising():
    def handler(request):
        return httpx.Response(500, text="boom")

    outbound = OutboundQueue(SinkClient("https://sink.example/exec", "secret", transport=httpx.MockTransport(handler)))
    outbound.start()
    outbound.submit([["row"]])
    outbound.submit([])
    outbound.drain()
    outbound.stop()
    assert outbound.failed == 1
    assert outbound.sent == 0
