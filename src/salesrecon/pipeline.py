"""Command line entry point for uploads, period deletion and channel summaries.

Examples:
    salesrecon-pipeline upload alpine reports/7.1.25.txt reports/7.15.25.txt
    salesrecon-pipeline delete-period petes 2025-06
    salesrecon-pipeline summary --channel kehe
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .aggregation import ChannelView
from .config import AppConfig, load_and_validate_config, load_config
from .logging_utils import get_logger, log_system_event
from .parsers import PARSERS, ParserContext
from .sink import OutboundQueue, SinkClient
from .store import ChannelStore


DEFAULT_CONFIG = "config/salesrecon.yaml"


def _load_app_config(config_path: Optional[str]) -> AppConfig:
    """Validated configuration; defaults apply when the file does not exist."""

    raw: Dict[str, Any] = {}
    if config_path and Path(config_path).exists():
        raw = load_config(config_path)
    return load_and_validate_config(raw)


def build_store(config: AppConfig, logger: logging.Logger) -> ChannelStore:
    context = ParserContext.from_config(config.as_dict(), logger)
    outbound = None
    if config.sink.enabled:
        client = SinkClient(config.sink.url, config.sink.token or "", timeout=config.sink.timeout_seconds)
        outbound = OutboundQueue(client, logger)
        outbound.start()
    return ChannelStore(config, context, logger, outbound)


def summarize_view(view: ChannelView) -> Dict[str, Any]:
    return {
        "channel": view.channel,
        "totals": view.totals,
        "months": view.monthly.to_dict(orient="records"),
        "new_customers": {p: c.new for p, c in view.customer_changes.items()},
        "lost_customers": {p: c.lost for p, c in view.customer_changes.items()},
        "status": {name: a.trends.status for name, a in view.progress.items()},
        "hierarchy": {value: pivot.to_dict(orient="records") for value, pivot in view.hierarchy.items()},
    }


def run_upload(config_path: Optional[str], distributor: str, inputs: Sequence[str]) -> Dict[str, Any]:
    config = _load_app_config(config_path)
    logger = get_logger(config=config.as_dict())
    store = build_store(config, logger)
    try:
        result = store.upload(distributor, inputs)
    finally:
        if store.outbound is not None:
            store.outbound.drain()
            store.outbound.stop()
    log_system_event(logger, f"Upload complete: {result.total_rows} rows from {len(inputs)} file(s)")
    return {
        "distributor": result.distributor,
        "total_rows": result.total_rows,
        "channels": {c: vars(s) for c, s in result.channels.items()},
        "unmapped": result.unmapped,
    }


def run_delete_period(config_path: Optional[str], channel: str, period: str) -> int:
    config = _load_app_config(config_path)
    logger = get_logger(config=config.as_dict())
    return build_store(config, logger).delete_period(channel, period)


def run_summary(config_path: Optional[str], channel: Optional[str] = None) -> Dict[str, Any]:
    config = _load_app_config(config_path)
    logger = get_logger(config=config.as_dict())
    store = build_store(config, logger)
    channels: List[str] = [channel] if channel else store.channels()
    return {
        "channels": [summarize_view(store.view(c)) for c in channels],
        "combined": store.combined(),
    }


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""

    parser = argparse.ArgumentParser(description="Distributor sales report reconciliation")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Path to the configuration file")
    sub = parser.add_subparsers(dest="command", required=True)

    upload = sub.add_parser("upload", help="Parse distributor files and merge them into the store")
    upload.add_argument("distributor", choices=sorted(PARSERS), help="Distributor report format")
    upload.add_argument("inputs", nargs="+", help="Report files of that distributor")

    delete = sub.add_parser("delete-period", help="Remove one YYYY-MM period from one channel")
    delete.add_argument("channel", help="Channel name (distributor, or 'sprouts')")
    delete.add_argument("period", help="Period key, YYYY-MM")

    summary = sub.add_parser("summary", help="Print channel views as JSON")
    summary.add_argument("--channel", default=None, help="Only this channel")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""

    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if args.command == "upload":
        output: Any = run_upload(args.config, args.distributor, args.inputs)
    elif args.command == "delete-period":
        output = {"channel": args.channel, "period": args.period, "deleted": run_delete_period(args.config, args.channel, args.period)}
    else:
        output = run_summary(args.config, args.channel)
    print(json.dumps(output, indent=2, default=str))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI guard
    raise SystemExit(main())
