from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

A record is written for every rejected batch, and for file-level failures
(decode errors, missing data) where the row is unknown (row=-1, batch=-1).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Name of the imported spreadsheet
        batch: 1-based batch number. -1 for file-level errors
        row: 1-based index of the first data row of the batch. -1 if unknown
        error_type: Error classification in UPPER_SNAKE_CASE format
        db_message: Database error message or description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    batch: int
    row: int
    error_type: str  # UPPER_SNAKE
    db_message: str

    @staticmethod
    def create(file: str, batch: int, row: int, error_type: str, db_message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            batch=batch,
            row=row,
            error_type=error_type,
            db_message=db_message,
        )

    def to_json_line(self) -> str:
        # fixed key set: dataclass -> dict -> json
        return json.dumps(asdict(self), ensure_ascii=False)
