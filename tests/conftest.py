# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from despachante_import.logging.init import APP_LOGGER_NAME, reset_logging


@pytest.fixture(autouse=True)
def _fresh_logging():
    # handlers bind sys.stdout at setup time; rebuild them per test for capsys
    reset_logging()
    yield
    logging.getLogger(APP_LOGGER_NAME).handlers.clear()
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("IMPORT_USER_ID", raising=False)
        monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """table: services
batch_size: 25
header_scan_rows: 20
preview_rows: 3
csv_encodings: [utf-8-sig, cp1252]
default_service_type: Outros
negative_values: zero
user_id: user-123
field_aliases:
  plate: [[placa, plate, matricula]]
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_xlsx() -> Callable[[Path, list[list[object]]], Path]:
    def _make(path: Path, rows: list[list[object]]) -> Path:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name="Planilha1", header=False, index=False)
        return path
    return _make


@pytest.fixture()
def make_csv() -> Callable[..., Path]:
    def _make(path: Path, text: str, encoding: str = "utf-8") -> Path:
        path.write_bytes(text.encode(encoding))
        return path
    return _make
