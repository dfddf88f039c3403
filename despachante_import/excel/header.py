from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .reader import Cell, Grid, cell_to_text

"""Header-row locator.

Exports often carry title, logo or blank rows above the real header. The locator
scans the top of the grid and accepts the first row whose joined, lower-cased cells
contain `data_entrada`, or at least two of the known header keywords. Without a
match it falls back to row 0 and reports detected=False.
"""

logger = logging.getLogger(__name__)

PRIMARY_TOKEN = "data_entrada"
HEADER_KEYWORDS: tuple[str, ...] = ("data_entrada", "data", "placa", "cliente", "valor", "tipo")
MIN_KEYWORD_HITS = 2
DEFAULT_SCAN_ROWS = 20


@dataclass(frozen=True)
class HeaderLocation:
    index: int
    detected: bool


def row_search_text(row: Sequence[Cell]) -> str:
    return " ".join(cell_to_text(c).strip().lower() for c in row)


def is_header_candidate(row: Sequence[Cell]) -> bool:
    text = row_search_text(row)
    if PRIMARY_TOKEN in text:
        return True
    hits = sum(1 for kw in HEADER_KEYWORDS if kw in text)
    return hits >= MIN_KEYWORD_HITS


def locate_header_row(grid: Grid, max_scan: int = DEFAULT_SCAN_ROWS) -> HeaderLocation:
    for idx, row in enumerate(grid[:max_scan]):
        if is_header_candidate(row):
            logger.debug(f"header row detected at index {idx}")
            return HeaderLocation(index=idx, detected=True)
    return HeaderLocation(index=0, detected=False)
