from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, Protocol

import psycopg2

from ..models.service_record import DB_COLUMNS, ServiceRecord
from .batch_insert import BatchInsertError, BatchMetrics, InsertResult, batch_insert

"""Persistence sinks for canonical service records.

A sink inserts one batch per call and either returns an InsertResult or raises
BatchInsertError. Rows are scoped to their owner through the owner_user_id column;
visibility rules (row-level security) live in the database.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ServiceSink",
    "PostgresServiceSink",
    "DryRunSink",
]


class ServiceSink(Protocol):
    def insert_batch(self, records: Sequence[ServiceRecord]) -> InsertResult: ...


class PostgresServiceSink:
    """Inserts each batch in its own transaction (commit on success, rollback on error)."""

    def __init__(
        self,
        connection: Any,
        table: str = "services",
        *,
        returning: bool = True,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        self.connection = connection
        self.table = table
        self.returning = returning
        self.metrics_callback = metrics_callback

    def insert_batch(self, records: Sequence[ServiceRecord]) -> InsertResult:
        cursor = None
        try:
            cursor = self.connection.cursor()
            result = batch_insert(
                cursor,
                self.table,
                DB_COLUMNS,
                [r.to_db_row() for r in records],
                returning=self.returning,
                metrics_callback=self.metrics_callback,
            )
            self.connection.commit()
        except BatchInsertError:
            self._rollback()
            raise
        except Exception as e:
            # commit failures (constraint checks deferred to commit, lost connection)
            self._rollback()
            raise BatchInsertError(str(e)) from e
        finally:
            if cursor is not None:
                self._close(cursor)
        return result

    def _rollback(self) -> None:
        # a dropped connection cannot roll back; the batch is already counted as failed
        try:
            self.connection.rollback()
        except psycopg2.Error as e:
            logger.warning(f"rollback failed: {e}")

    def _close(self, cursor: Any) -> None:
        try:
            cursor.close()
        except psycopg2.Error as e:
            logger.debug(f"cursor close failed: {e}")


class DryRunSink:
    """Accepts every batch without touching a database (DISABLE_DB_CONNECT=1 / --dry-run)."""

    def __init__(self) -> None:
        self.batches: list[list[ServiceRecord]] = []

    def insert_batch(self, records: Sequence[ServiceRecord]) -> InsertResult:
        self.batches.append(list(records))
        logger.debug(f"dry-run: accepted batch of {len(records)} records")
        return InsertResult(inserted_rows=len(records))
