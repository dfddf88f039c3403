from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from ..db.batch_insert import BatchInsertError
from ..db.sink import ServiceSink
from ..excel.header import HeaderLocation, locate_header_row
from ..excel.reader import DecodeError, Grid, RawRow, decode_file, project_rows
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportConfig
from ..models.error_record import ErrorRecord
from ..models.import_result import BatchStatsAccumulator, ImportProgress, ImportReport
from ..models.service_record import ServiceRecord
from .field_mapper import FieldMapper
from .parsers import today_iso

"""Import orchestration.

prepare_import(): decode -> locate header -> project rows. Nothing is sent anywhere;
the result feeds the preview and, once confirmed, build_records().

run_import(): sends canonical records to a sink in fixed-size batches, strictly one
after another. A rejected batch counts all of its records as failed and the loop
moves on: no retry, no abort, no cross-batch atomicity.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "ProcessingError",
    "NoDataFoundError",
    "AuthenticationMissingError",
    "DecodeError",
    "PreparedImport",
    "prepare_grid",
    "prepare_import",
    "run_import",
]

DEFAULT_BATCH_SIZE = 50

ProgressCallback = Callable[[ImportProgress], None]


class ProcessingError(Exception):
    """Base exception for fatal import errors."""


class NoDataFoundError(ProcessingError):
    """The file decoded but holds no data rows below the header."""


class AuthenticationMissingError(ProcessingError):
    """No importing user identity is available."""


@dataclass
class PreparedImport:
    """Decoded and projected rows awaiting confirmation."""
    file_name: str
    header: HeaderLocation
    columns: list[str]
    rows: list[RawRow]
    mapper: FieldMapper = field(default_factory=FieldMapper)

    @property
    def total(self) -> int:
        return len(self.rows)

    def preview(self, limit: int = 5, *, today: str | None = None) -> list[ServiceRecord]:
        """Canonical mapping of the first `limit` rows."""
        today = today or today_iso()
        return [
            self.mapper.map_row(row, today=today, row_number=i + 1)
            for i, row in enumerate(self.rows[:limit])
        ]

    def build_records(self, *, today: str | None = None) -> list[ServiceRecord]:
        """Map every row; `today` is fixed once so all fallbacks share one date."""
        today = today or today_iso()
        return [
            self.mapper.map_row(row, today=today, row_number=i + 1)
            for i, row in enumerate(self.rows)
        ]


def prepare_grid(
    grid: Grid,
    file_name: str,
    *,
    mapper: FieldMapper | None = None,
    header_scan_rows: int = 20,
) -> PreparedImport:
    header = locate_header_row(grid, max_scan=header_scan_rows)
    if not header.detected:
        logger.warning(
            f"{file_name}: no header row found in the first {header_scan_rows} rows, using row 1"
        )
    rows = project_rows(grid, header.index)
    if not rows:
        raise NoDataFoundError(f"{file_name}: no data rows found")
    columns = list(dict.fromkeys(k for r in rows for k in r))
    logger.info(f"{file_name}: header at row {header.index + 1}, {len(rows)} data rows")
    return PreparedImport(
        file_name=file_name,
        header=header,
        columns=columns,
        rows=rows,
        mapper=mapper or FieldMapper(),
    )


def prepare_import(path: Path, config: ImportConfig | None = None) -> PreparedImport:
    """Decode `path` and project its rows.

    Raises:
        DecodeError: the file cannot be read
        NoDataFoundError: no data rows below the header
    """
    config = config or ImportConfig()
    grid = decode_file(path, config.csv_encodings)
    if not grid:
        raise NoDataFoundError(f"{path.name}: no data rows found")
    return prepare_grid(
        grid,
        path.name,
        mapper=FieldMapper.from_config(config),
        header_scan_rows=config.header_scan_rows,
    )


def _chunks(records: Sequence[ServiceRecord], size: int) -> list[Sequence[ServiceRecord]]:
    return [records[i:i + size] for i in range(0, len(records), size)]


def run_import(
    records: Sequence[ServiceRecord],
    user_id: str | None,
    sink: ServiceSink,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    on_progress: ProgressCallback | None = None,
    error_log: ErrorLogBuffer | None = None,
    file_name: str = "",
) -> ImportReport:
    """Submit records to `sink` in sequential batches.

    Args:
        records: canonical records (owner id is attached here)
        user_id: importing user's identity
        sink: persistence sink; a failed batch raises BatchInsertError
        batch_size: records per sink call
        on_progress: called after every batch with the new ImportProgress
        error_log: receives one ErrorRecord per failed batch
        file_name: source file name used in error records

    Raises:
        AuthenticationMissingError: before any batch when user_id is empty
    """
    if user_id is None or not str(user_id).strip():
        raise AuthenticationMissingError("no authenticated user: import aborted")
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    owned = [r.with_owner(str(user_id)) for r in records]
    start_time = datetime.now(UTC)
    stats = BatchStatsAccumulator()
    failed_batches: list[int] = []
    progress = ImportProgress.start(len(owned))

    for batch_no, chunk in enumerate(_chunks(owned, batch_size), start=1):
        first_row = (batch_no - 1) * batch_size + 1
        t0 = time.perf_counter()
        try:
            sink.insert_batch(chunk)
            ok = True
        except BatchInsertError as e:
            ok = False
            failed_batches.append(batch_no)
            logger.error(
                f"batch {batch_no} (rows {first_row}-{first_row + len(chunk) - 1}) failed: {e}"
            )
            if error_log is not None:
                error_log.append(
                    ErrorRecord.create(
                        file=file_name,
                        batch=batch_no,
                        row=first_row,
                        error_type="BATCH_INSERT_ERROR",
                        db_message=str(e),
                    )
                )
        stats.add_batch_time(time.perf_counter() - t0)

        progress = progress.advance(len(chunk), ok)
        if on_progress is not None:
            on_progress(progress)

    end_time = datetime.now(UTC)
    batches, avg_batch, p95_batch = stats.get_stats()
    return ImportReport(
        progress=progress,
        batches=batches,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        failed_batches=failed_batches,
        avg_batch_seconds=avg_batch,
        p95_batch_seconds=p95_batch,
    )
