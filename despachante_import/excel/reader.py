from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

"""Spreadsheet decoder and row projection.

decode_file() buffers the whole upload and returns a Grid: the first sheet as an
ordered list of rows, each an ordered list of cell values (None for empty cells),
with every leading banner/title row preserved. project_rows() turns a Grid into
RawRows using a chosen row as the header.

CSV text is decoded with each configured encoding in turn; cp1252 covers the ANSI
exports produced by Excel on Brazilian Windows installs.
"""

logger = logging.getLogger(__name__)

Cell = Any  # str | int | float | datetime | None
Grid = list[list[Cell]]
RawRow = dict[str, Cell]

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv", ".txt"}
DEFAULT_ENCODINGS: tuple[str, ...] = ("utf-8-sig", "cp1252")
EMPTY_HEADER = "__EMPTY"


class DecodeError(Exception):
    """Raised when the uploaded file cannot be read as CSV or Excel."""


def cell_to_text(value: Cell) -> str:
    """Render a cell as text; integral floats lose their '.0'."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime | date):
        return value.isoformat()
    return str(value)


def _clean_cell(value: Any) -> Cell:
    if isinstance(value, str):
        return value
    if value is None or pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if hasattr(value, "item"):  # numpy scalar -> python scalar
        return value.item()
    return value


def _frame_to_grid(df: pd.DataFrame) -> Grid:
    return [[_clean_cell(v) for v in row] for row in df.itertuples(index=False, name=None)]


def _read_excel_bytes(data: bytes, suffix: str) -> Grid:
    # first sheet only, no header inference: banner rows stay in the grid
    engine = "xlrd" if suffix == ".xls" else "openpyxl"
    df = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, dtype=object, engine=engine)
    return _frame_to_grid(df)


def _parse_csv_text(text: str, sep: str) -> Grid:
    # csv rows can be ragged (a one-cell title line above a wide header)
    width = max((len(r) for r in csv.reader(io.StringIO(text), delimiter=sep)), default=0)
    if width == 0:
        return []
    df = pd.read_csv(
        io.StringIO(text),
        sep=sep,
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
        na_values=[""],
        skip_blank_lines=True,
    )
    return _frame_to_grid(df)


def _filled(row: list[Cell]) -> int:
    return sum(c is not None for c in row)


def _prefers_semicolon(comma_grid: Grid, semicolon_grid: Grid, scan_rows: int = 20) -> bool:
    """True when most of the top rows split into more cells on ';' than on ','.

    A single banner line such as "Relatório; Janeiro 2024" above a comma-separated
    table is outvoted by the table rows.
    """
    rows = [
        (c, s) for c, s in zip(comma_grid[:scan_rows], semicolon_grid[:scan_rows], strict=False)
        if _filled(c) or _filled(s)
    ]
    if not rows:
        return False
    wider = sum(_filled(s) > _filled(c) for c, s in rows)
    return wider * 2 > len(rows)


def _read_csv_bytes(data: bytes, encodings: Sequence[str]) -> Grid:
    text: str | None = None
    for enc in encodings:
        try:
            text = data.decode(enc)
            break
        except (UnicodeDecodeError, LookupError):
            logger.debug(f"csv decode with {enc} failed, trying next encoding")
            continue
    if text is None:
        raise DecodeError(f"could not decode CSV with encodings {list(encodings)}")

    grid = _parse_csv_text(text, ",")
    if ";" in text:
        semicolon_grid = _parse_csv_text(text, ";")
        if _prefers_semicolon(grid, semicolon_grid):
            logger.warning("CSV rows split on ';' rather than ',': reading with ';' separator")
            return semicolon_grid
    return grid


def decode_bytes(data: bytes, filename: str, encodings: Sequence[str] = DEFAULT_ENCODINGS) -> Grid:
    """Decode an uploaded file into a Grid. The suffix of `filename` selects the reader."""
    suffix = Path(filename).suffix.lower()
    try:
        if suffix in EXCEL_SUFFIXES:
            return _read_excel_bytes(data, suffix)
        if suffix in CSV_SUFFIXES:
            return _read_csv_bytes(data, encodings)
    except DecodeError:
        raise
    except Exception as e:
        raise DecodeError(f"failed to read '{filename}': {e}") from e
    raise DecodeError(f"unsupported file type '{suffix or filename}' (expected .csv, .xlsx or .xls)")


def decode_file(path: Path, encodings: Sequence[str] = DEFAULT_ENCODINGS) -> Grid:
    """Read `path` fully into memory and decode it."""
    try:
        data = path.read_bytes()
    except OSError as e:
        raise DecodeError(f"cannot read '{path}': {e}") from e
    return decode_bytes(data, path.name, encodings)


def _header_names(cells: Iterable[Cell], width: int) -> list[str]:
    names: list[str] = []
    seen: dict[str, int] = {}
    cells = list(cells)
    for i in range(width):
        name = cell_to_text(cells[i]) if i < len(cells) else ""
        if name == "":
            name = EMPTY_HEADER
        count = seen.get(name, 0)
        seen[name] = count + 1
        if count:
            name = f"{name}_{count}"
        names.append(name)
    return names


def project_rows(grid: Grid, start: int = 0) -> list[RawRow]:
    """Project the Grid into RawRows using grid[start] as the header row.

    Empty cells are left out of a row and rows without any value are skipped, so a
    missing key always means "no value in the sheet".
    """
    if start >= len(grid):
        return []
    data_part = grid[start + 1:]
    width = max((len(r) for r in [grid[start], *data_part]), default=0)
    columns = _header_names(grid[start], width)

    rows: list[RawRow] = []
    for raw in data_part:
        row: RawRow = {}
        for col, val in zip(columns, raw, strict=False):
            if val is None or (isinstance(val, str) and val.strip() == ""):
                continue
            row[col] = val
        if row:
            rows.append(row)
    return rows
