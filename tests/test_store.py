import json

import httpx
import pandas as pd
import pytest

from salesrecon.config import AppConfig, PathsConfig, RetentionConfig
from salesrecon.logging_utils import read_batch_log
from salesrecon.models import SalesRecord
from salesrecon.parsers import MissingColumnsError
from salesrecon.sink import OutboundQueue, SinkClient
from salesrecon.store import ChannelStore, route_records


DOT_HEADER = ["Date Range", "Customer Name", "Item Description", "DOT #", "MFG #", "Dollars", "Cases", "Item Net Wt"]


def _config(tmp_path, **overrides):
    return AppConfig(paths=PathsConfig(data_dir=str(tmp_path / "data"), logs_dir=str(tmp_path / "logs")), **overrides)


def _dot_file(tmp_path, header=DOT_HEADER):
    rows = [
        ["2025-06-01 - 2025-06-30", "Store A", "CLARAS BACON BURRITO", "763494", "", "120.00", "2", "12.5"],
        ["2025-06-01 - 2025-06-30", "Store B", "CLARAS BACON BURRITO", "763494", "", "60.00", "1", "6.25"],
    ]
    path = tmp_path / "DOT 6.25.txt"
    lines = ["\t".join(header)] + ["\t".join(row[: len(header)]) for row in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _kehe_file(tmp_path):
    rows = [
        ["Date Range", "6/1/2025 to 6/30/2025"],
        ["Customer Name", "Address Book Number", "Brand Name", "Product Description", "UPC", "Current Year Qty", "Current Year Cost"],
        ["Sprouts Farmers Market #12", "1001", "CLARAS", "Bacon Breakfast Burrito", "611665888003", 4, 134.4],
        ["Natural Grocers", "1002", "CLARAS", "Bacon Breakfast Burrito", "611665888003", 1, 33.6],
    ]
    path = tmp_path / "kehe.xlsx"
    pd.DataFrame(rows).to_excel(path, header=False, index=False)
    return path


def test_upload_reupload_and_delete_period(tmp_path, context, fixed_now):
    config = _config(tmp_path)
    store = ChannelStore(config, context)
    path = _dot_file(tmp_path)

    first = store.upload("DOT", [path], now=fixed_now)
    assert first.total_rows == 2
    assert first.channels["dot"].added == 2
    assert first.channels["dot"].window_months == 24
    assert store.channels() == ["dot"]
    assert store.view("dot").totals["cases"] == 3

    second = store.upload("dot", [path], now=fixed_now)
    assert second.channels["dot"].added == 0
    assert len(store.load("dot")) == 2

    assert store.delete_period("dot", "2025-06") == 2
    assert store.load("dot") == []
    assert store.view("dot").periods == []

    log = read_batch_log(config.as_dict())
    assert [entry["action"] for entry in log] == ["upload", "upload", "delete-period"]
    assert log[0]["added"] == {"dot": 2}


def test_failed_parse_rejects_whole_batch(tmp_path, context, fixed_now):
    config = _config(tmp_path)
    store = ChannelStore(config, context)
    bad = _dot_file(tmp_path, header=[h for h in DOT_HEADER if h != "Dollars"])

    with pytest.raises(MissingColumnsError):
        store.upload("dot", [bad], now=fixed_now)

    assert store.channels() == []
    log = read_batch_log(config.as_dict())
    assert log[-1]["total_rows"] == 0
    assert "Dollars" in log[-1]["note"]


def test_kehe_sprouts_rows_get_their_own_channel(tmp_path, context, fixed_now):
    store = ChannelStore(_config(tmp_path), context)
    result = store.upload("kehe", [_kehe_file(tmp_path)], now=fixed_now)

    assert sorted(result.channels) == ["kehe", "sprouts"]
    assert [r.customer_name for r in store.load("sprouts")] == ["Sprouts Farmers Market #12"]
    assert [r.customer_name for r in store.load("kehe")] == ["Natural Grocers"]
    assert store.combined()["cases"] == 5


def test_route_records_leaves_other_distributors_alone():
    record = SalesRecord(period="2025-06", customer_name="Sprouts #4", product_name="X")
    assert list(route_records("dot", [record])) == ["dot"]


def test_retention_overflow_drops_oldest_periods(tmp_path, context, fixed_now):
    config = _config(tmp_path, retention=RetentionConfig(windows_months=[24, 12], max_bytes=400))
    store = ChannelStore(config, context)
    store.save(
        "dot",
        [SalesRecord(period="2025-01", customer_name=f"Old {i}", product_name="Uncured Bacon Breakfast Burrito", cases=1) for i in range(3)],
    )
    result = store.upload("dot", [_dot_file(tmp_path)], now=fixed_now)
    assert result.channels["dot"].window_months is None
    assert {r.period for r in store.load("dot")} <= {"2025-06"}


def test_upload_forwards_rows_to_sink(tmp_path, context, fixed_now):
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    outbound = OutboundQueue(SinkClient("https://sink.test/append", "secret", transport=httpx.MockTransport(handler)))
    outbound.start()
    store = ChannelStore(_config(tmp_path), context, outbound=outbound)
    store.upload("dot", [_dot_file(tmp_path)], now=fixed_now)
    outbound.drain()
    outbound.stop()

    assert outbound.sent == 1
    assert received[0]["token"] == "secret"
    assert [row[1] for row in received[0]["rows"]] == ["Store A", "Store B"]
    assert received[0]["rows"][0][7] == "DOT CSV"
