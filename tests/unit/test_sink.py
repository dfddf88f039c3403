from __future__ import annotations

from unittest.mock import MagicMock

import psycopg2
import pytest

from despachante_import.db.batch_insert import BatchInsertError
from despachante_import.db.sink import DryRunSink, PostgresServiceSink
from despachante_import.models.service_record import DB_COLUMNS, ServiceRecord
from despachante_import.services.importer import run_import


@pytest.fixture()
def captured_inserts(monkeypatch):
    import despachante_import.db.batch_insert as bi
    calls = []

    def fake_execute_values(cursor, sql, rows, page_size=1000):
        calls.append((sql, rows))

    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    return calls


def _record(**kw) -> ServiceRecord:
    return ServiceRecord(date="2024-02-01", value=1000.0, plate="ABC1234", client="LojaX", **kw)


def test_postgres_sink_commits_each_batch(captured_inserts):
    conn = MagicMock()
    conn.cursor.return_value.fetchall.return_value = [(1,)]
    sink = PostgresServiceSink(conn, "services")
    result = sink.insert_batch([_record(owner_user_id="u1")])

    assert result.inserted_rows == 1
    conn.commit.assert_called_once()
    conn.rollback.assert_not_called()
    conn.cursor.return_value.close.assert_called_once()

    sql, rows = captured_inserts[0]
    assert sql.startswith("INSERT INTO services (" + ",".join(f'"{c}"' for c in DB_COLUMNS) + ")")
    assert rows == [("2024-02-01", None, "Outros", 1000.0, "ABC1234", "", "", "LojaX", "", "u1")]


def test_postgres_sink_rolls_back_failed_batch(monkeypatch):
    import despachante_import.db.batch_insert as bi

    def boom(cursor, sql, rows, page_size=1000):
        raise RuntimeError("permission denied for table services")

    monkeypatch.setattr(bi, "execute_values", boom)
    conn = MagicMock()
    sink = PostgresServiceSink(conn)
    with pytest.raises(BatchInsertError, match="permission denied"):
        sink.insert_batch([_record()])
    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()


def test_postgres_sink_wraps_commit_errors(captured_inserts):
    conn = MagicMock()
    conn.commit.side_effect = RuntimeError("deferred constraint violated")
    sink = PostgresServiceSink(conn, returning=False)
    with pytest.raises(BatchInsertError, match="deferred"):
        sink.insert_batch([_record()])
    conn.rollback.assert_called_once()


def test_dry_run_sink_accepts_everything():
    sink = DryRunSink()
    result = sink.insert_batch([_record(), _record()])
    assert result.inserted_rows == 2
    assert len(sink.batches) == 1


def test_postgres_sink_failed_rollback_still_raises_batch_error(captured_inserts):
    conn = MagicMock()
    conn.commit.side_effect = psycopg2.OperationalError("server closed the connection unexpectedly")
    conn.rollback.side_effect = psycopg2.InterfaceError("connection already closed")
    sink = PostgresServiceSink(conn, returning=False)
    with pytest.raises(BatchInsertError, match="server closed"):
        sink.insert_batch([_record()])
    conn.rollback.assert_called_once()


def test_dropped_connection_fails_remaining_batches_only(captured_inserts):
    conn = MagicMock()
    cursor = MagicMock()
    closed = psycopg2.InterfaceError("connection already closed")
    conn.cursor.side_effect = [cursor, cursor, closed]
    conn.commit.side_effect = [None, psycopg2.OperationalError("server closed the connection unexpectedly")]
    conn.rollback.side_effect = closed
    sink = PostgresServiceSink(conn, returning=False)

    records = [_record() for _ in range(120)]
    report = run_import(records, "user-1", sink)

    assert report.success_count == 50
    assert report.error_count == 70
    assert report.failed_batches == [2, 3]
