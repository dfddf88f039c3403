from __future__ import annotations

import math
import re
from datetime import UTC, date, datetime, timedelta
from numbers import Real
from typing import Any

"""Date and currency normalizers for spreadsheet cells.

parse_date() -> "YYYY-MM-DD" | None
    - numbers are spreadsheet serial dates (epoch 1899-12-30)
    - "D[D]/M[M]/YYYY" and "D[D]-M[M]-YYYY" are day-first
    - "YYYY-MM-DD..." is truncated to its first 10 characters
    - datetime/date values (xlsx date cells) are formatted directly

parse_currency() -> float
    - "R$ 1.234,56" -> 1234.56 (a comma marks Brazilian notation)
    - anything unparseable -> 0
"""

__all__ = [
    "SERIAL_UNIX_EPOCH_OFFSET",
    "parse_date",
    "parse_currency",
    "today_iso",
]

# days between 1899-12-30 and 1970-01-01
SERIAL_UNIX_EPOCH_OFFSET = 25569
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MS_PER_DAY = 86400 * 1000

_DAY_FIRST_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})")
_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_CURRENCY_STRIP_RE = re.compile(r"[^\d,.\-]")


def today_iso() -> str:
    return date.today().isoformat()


def _is_number(raw: Any) -> bool:
    return isinstance(raw, Real) and not isinstance(raw, bool)


def _serial_to_iso(serial: float) -> str | None:
    if not math.isfinite(serial):
        return None
    # rounded to the millisecond, then the UTC calendar day
    millis = round((serial - SERIAL_UNIX_EPOCH_OFFSET) * _MS_PER_DAY)
    try:
        return (_UNIX_EPOCH + timedelta(milliseconds=millis)).date().isoformat()
    except OverflowError:
        return None


def _is_calendar_date(year: str, month: str, day: str) -> bool:
    try:
        date(int(year), int(month), int(day))
    except ValueError:
        return False
    return True


def parse_date(raw: Any, *, strict: bool = False) -> str | None:
    """Normalize a date cell to ``YYYY-MM-DD``.

    Day-first strings are re-ordered without range checks unless ``strict`` is set,
    in which case impossible dates (month 13, 31/02) yield None.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    if _is_number(raw):
        return _serial_to_iso(float(raw))
    if not isinstance(raw, str):
        return None

    clean = raw.strip()
    m = _DAY_FIRST_RE.match(clean)
    if m:
        day, month, year = m.groups()
        if strict and not _is_calendar_date(year, month, day):
            return None
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    if _ISO_RE.match(clean):
        iso = clean[:10]
        if strict and not _is_calendar_date(iso[:4], iso[5:7], iso[8:10]):
            return None
        return iso
    return None


def _parse_float_prefix(text: str) -> float:
    """Parse the longest leading float in `text`; 0 when there is none."""
    m = re.match(r"^[-+]?(\d+\.?\d*|\.\d+)", text)
    if not m:
        return 0.0
    return float(m.group(0))


def parse_currency(raw: Any) -> float:
    """Normalize a currency cell to a float.

    Negative amounts keep their sign.
    """
    if raw is None:
        return 0.0
    if _is_number(raw):
        value = float(raw)
        return value if math.isfinite(value) else 0.0
    if not isinstance(raw, str):
        return 0.0

    cleaned = _CURRENCY_STRIP_RE.sub("", raw)
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    return _parse_float_prefix(cleaned)
