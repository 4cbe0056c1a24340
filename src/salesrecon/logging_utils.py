"""Logging helpers for the sales reconciliation pipeline.

Two sinks are maintained:
  - system.log: every parser, merge and upload event in a machine-friendly format
  - batches.jsonl: one JSON object per upload batch or period deletion

If a file handler cannot be attached the logger keeps console output only.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


SYSTEM_FMT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOGGER_NAME = "salesrecon"
BATCH_LOG_NAME = "batches.jsonl"


def _ensure_logs_dir(config: Optional[dict]) -> Path:
    paths = (config or {}).get("paths", {})
    logs_dir = Path(paths.get("logs_dir", "logs")).expanduser().resolve()
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def _safe_add_file_handler(logger: logging.Logger, path: Path, fmt: str, level: int) -> None:
    try:
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(fmt))
        logger.addHandler(fh)
    except Exception as exc:  # pragma: no cover - filesystem issues
        logger.warning("[WARNING] Failed to attach file handler %s (%s)", str(path), exc)


def get_logger(name: str = LOGGER_NAME, config: Optional[dict] = None) -> logging.Logger:
    """Return a logger with console + ``system.log`` handlers at INFO."""
    logs_dir = _ensure_logs_dir(config)
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    # Reset handlers to avoid duplication across repeated initializations
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers = []

    sh = logging.StreamHandler()
    sh.setLevel(logging.INFO)
    sh.setFormatter(logging.Formatter(SYSTEM_FMT))
    logger.addHandler(sh)

    _safe_add_file_handler(logger, logs_dir / "system.log", SYSTEM_FMT, logging.INFO)
    return logger


def log_system_event(logger: logging.Logger, message: str):
    logger.info("[SYSTEM] %s", message)


def log_warning(logger: logging.Logger, message: str):
    logger.warning("[WARNING] %s", message)


def log_error(logger: logging.Logger, message: str):
    logger.error("[ERROR] %s", message)


def append_batch_log(entry: Dict[str, Any], config: Optional[dict] = None) -> Dict[str, Any]:
    """Append one JSON line describing an upload batch.

    A ``timestamp`` is added when missing. Returns the entry as written.
    """

    payload = dict(entry)
    payload.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    out_path = _ensure_logs_dir(config) / BATCH_LOG_NAME
    with out_path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, default=str) + "\n")
    return payload


def read_batch_log(config: Optional[dict] = None) -> list[Dict[str, Any]]:
    path = _ensure_logs_dir(config) / BATCH_LOG_NAME
    if not path.exists():
        return []
    entries = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line:
            entries.append(json.loads(line))
    return entries
