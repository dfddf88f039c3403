from __future__ import annotations

import json

from despachante_import.models.error_record import ErrorRecord

EXPECTED_KEYS = {"timestamp", "file", "batch", "row", "error_type", "db_message"}


def test_error_log_line_has_fixed_keys():
    line = ErrorRecord.create("servicos.csv", 1, 1, "BATCH_INSERT_ERROR", "x").to_json_line()
    data = json.loads(line)
    assert set(data) == EXPECTED_KEYS
    assert isinstance(data["batch"], int)
    assert isinstance(data["row"], int)
    assert data["error_type"].isupper()
