from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest

from despachante_import.excel.reader import (
    DecodeError,
    cell_to_text,
    decode_bytes,
    decode_file,
    project_rows,
)
from despachante_import.logging.init import setup_logging


def test_decode_xlsx_keeps_banner_rows(tmp_path: Path, make_xlsx):
    path = make_xlsx(tmp_path / "servicos.xlsx", [
        ["Relatório Mensal", None, None, None],
        ["Data_Entrada", "Placa", "Cliente", "Valor"],
        [45352, "ABC1234", "LojaX", 150.5],
    ])
    grid = decode_file(path)
    assert grid[0][0] == "Relatório Mensal"
    assert grid[0][1] is None
    assert grid[1] == ["Data_Entrada", "Placa", "Cliente", "Valor"]
    assert grid[2][0] == 45352
    assert grid[2][3] == 150.5


def test_decode_xlsx_date_cells_become_datetime(tmp_path: Path, make_xlsx):
    path = make_xlsx(tmp_path / "datas.xlsx", [["Data", "Placa"], [datetime(2024, 3, 5), "ABC"]])
    grid = decode_file(path)
    assert isinstance(grid[1][0], datetime)
    assert grid[1][0].date().isoformat() == "2024-03-05"


def test_decode_csv_cp1252(tmp_path: Path, make_csv):
    text = 'Relatório Mensal\nData_Entrada,Placa,Proprietário,Valor\n05/03/2024,ABC1234,José,"1.234,56"\n'
    path = make_csv(tmp_path / "legacy.csv", text, encoding="cp1252")
    grid = decode_file(path)
    assert grid[0] == ["Relatório Mensal", None, None, None]
    assert grid[1] == ["Data_Entrada", "Placa", "Proprietário", "Valor"]
    assert grid[2] == ["05/03/2024", "ABC1234", "José", "1.234,56"]


def test_decode_csv_utf8_with_bom(tmp_path: Path, make_csv):
    path = make_csv(tmp_path / "bom.csv", "Placa,Valor\nABC,10\n", encoding="utf-8-sig")
    grid = decode_file(path)
    assert grid[0] == ["Placa", "Valor"]


def test_decode_csv_semicolon_fallback(tmp_path: Path, make_csv, capsys):
    setup_logging()
    path = make_csv(tmp_path / "ponto_virgula.csv", "Data;Placa;Valor\n01/02/2024;ABC1234;150,00\n")
    grid = decode_file(path)
    assert grid[0] == ["Data", "Placa", "Valor"]
    assert grid[1] == ["01/02/2024", "ABC1234", "150,00"]
    assert "WARN" in capsys.readouterr().out


def test_decode_csv_semicolon_in_banner_keeps_comma_separator(tmp_path: Path, make_csv, capsys):
    setup_logging()
    text = "Relatório; Janeiro 2024\nData,Placa,Valor\n05/03/2024,ABC1234,150\n"
    grid = decode_file(make_csv(tmp_path / "banner.csv", text))
    assert grid[1] == ["Data", "Placa", "Valor"]
    assert project_rows(grid, 1) == [{"Data": "05/03/2024", "Placa": "ABC1234", "Valor": "150"}]
    assert "WARN" not in capsys.readouterr().out


def test_decode_csv_semicolon_with_plain_banner(tmp_path: Path, make_csv):
    text = "Relatório Mensal\nData;Placa;Valor\n01/02/2024;ABC1234;150,00\n02/02/2024;XYZ9876;80,00\n"
    grid = decode_file(make_csv(tmp_path / "banner_pv.csv", text))
    assert grid[1] == ["Data", "Placa", "Valor"]
    assert grid[3] == ["02/02/2024", "XYZ9876", "80,00"]


def test_decode_empty_csv_returns_empty_grid(tmp_path: Path, make_csv):
    path = make_csv(tmp_path / "empty.csv", "")
    assert decode_file(path) == []


def test_decode_corrupt_xlsx_raises(tmp_path: Path):
    path = tmp_path / "corrupt.xlsx"
    path.write_bytes(b"definitely not a zip archive")
    with pytest.raises(DecodeError):
        decode_file(path)


def test_decode_xls_uses_xlrd_engine(monkeypatch):
    import despachante_import.excel.reader as reader
    seen = {}

    def fake_read_excel(buf, **kwargs):
        seen.update(kwargs)
        return pd.DataFrame([["Data_Entrada", "Placa"], [45352, "ABC1234"]])

    monkeypatch.setattr(reader.pd, "read_excel", fake_read_excel)
    grid = decode_bytes(b"\xd0\xcf\x11\xe0", "legado.xls")
    assert seen["engine"] == "xlrd"
    assert seen["header"] is None
    assert grid == [["Data_Entrada", "Placa"], [45352, "ABC1234"]]


def test_decode_truncated_xls_raises_decode_error():
    with pytest.raises(DecodeError, match="failed to read .legado.xls."):
        decode_bytes(b"\xd0\xcf\x11\xe0", "legado.xls")


def test_decode_unsupported_type_raises():
    with pytest.raises(DecodeError, match="unsupported file type"):
        decode_bytes(b"%PDF-1.4", "relatorio.pdf")


def test_decode_missing_file_raises(tmp_path: Path):
    with pytest.raises(DecodeError, match="cannot read"):
        decode_file(tmp_path / "nope.csv")


def test_decode_undecodable_bytes_raise():
    with pytest.raises(DecodeError, match="could not decode"):
        decode_bytes(b"\xff\xfe\x81", "x.csv", encodings=("utf-8",))


def test_project_rows_uses_start_row_as_header():
    grid = [
        ["Relatório"],
        ["Data", "Placa"],
        ["01/01/2024", "AAA"],
        [None, None],
        ["02/01/2024", None],
    ]
    rows = project_rows(grid, 1)
    assert rows == [
        {"Data": "01/01/2024", "Placa": "AAA"},
        {"Data": "02/01/2024"},
    ]


def test_project_rows_names_blank_and_duplicate_headers():
    grid = [["placa", None, "placa"], ["A", "B", "C", "D"]]
    rows = project_rows(grid, 0)
    assert rows == [{"placa": "A", "__EMPTY": "B", "placa_1": "C", "__EMPTY_1": "D"}]


def test_project_rows_start_beyond_grid():
    assert project_rows([["a"]], 5) == []


def test_project_rows_skips_whitespace_cells():
    rows = project_rows([["Placa", "Valor"], ["  ", "10"]], 0)
    assert rows == [{"Valor": "10"}]


def test_cell_to_text():
    assert cell_to_text(None) == ""
    assert cell_to_text(12.0) == "12"
    assert cell_to_text(12.5) == "12.5"
    assert cell_to_text("x") == "x"
