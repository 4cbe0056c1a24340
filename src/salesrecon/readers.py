"""Raw file readers returning untyped cell grids.

Parsers work on ``List[List[Any]]`` rows so that header detection can scan
preamble lines before the real header. Spreadsheet cells keep their native
types (numbers stay numbers, dates stay datetimes); text files yield strings.
"""
from __future__ import annotations

import io
from pathlib import Path
from typing import Any, List, Optional

import pandas as pd


SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
OPENPYXL_SUFFIXES = {".xlsx", ".xlsm"}
DELIMITED_SUFFIXES = {".csv", ".tsv", ".txt"}
CANDIDATE_DELIMITERS = ("\t", ",", ";", "|")


def _excel_engine(path: Path) -> Optional[str]:
    return "openpyxl" if path.suffix.lower() in OPENPYXL_SUFFIXES else None


def _frame_to_rows(frame: pd.DataFrame) -> List[List[Any]]:
    cleaned = frame.astype(object).where(pd.notna(frame), None)
    return [list(row) for row in cleaned.itertuples(index=False, name=None)]


def read_sheet_rows(path: str | Path, sheet: int | str = 0) -> List[List[Any]]:
    """Read one worksheet without a header row."""

    path = Path(path)
    try:
        frame = pd.read_excel(path, sheet_name=sheet, header=None, dtype=object, engine=_excel_engine(path))
    except ValueError as exc:
        raise ValueError(f"Failed to read Excel file {path}: {exc}") from exc
    return _frame_to_rows(frame)


def read_text(path: str | Path) -> str:
    # Exports from older systems are not always valid UTF-8
    return Path(path).read_text(encoding="utf-8", errors="replace")


def _guess_delimiter(lines: List[str]) -> str:
    header = next((line for line in lines if line.strip()), "")
    counts = {d: header.count(d) for d in CANDIDATE_DELIMITERS}
    best = max(counts, key=counts.get)
    return best if counts[best] else ","


def read_delimited_rows(path: str | Path, delimiter: Optional[str] = None) -> List[List[Any]]:
    """Read a CSV/TSV into string rows padded to the widest line.

    Blank lines are kept as empty rows so row positions match the file. The
    delimiter is taken from the first non-empty line when omitted.
    """

    text = read_text(path).lstrip("\ufeff")
    lines = text.splitlines()
    if not any(line.strip() for line in lines):
        return []
    if delimiter is None:
        delimiter = _guess_delimiter(lines)
    width = max(line.count(delimiter) + 1 for line in lines)
    frame = pd.read_csv(
        io.StringIO(text),
        sep=delimiter,
        header=None,
        names=range(width),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=False,
        engine="python",
    )
    return _frame_to_rows(frame)


def read_rows(path: str | Path) -> List[List[Any]]:
    """Dispatch on file extension: spreadsheets read the first sheet."""

    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in SPREADSHEET_SUFFIXES:
        return read_sheet_rows(path)
    if suffix in DELIMITED_SUFFIXES:
        delimiter = {".tsv": "\t", ".csv": ","}.get(suffix)
        return read_delimited_rows(path, delimiter)
    raise ValueError(f"Unsupported input file extension for {path}")
