from __future__ import annotations

from pathlib import Path

import pandas as pd

from despachante_import.models.service_record import ServiceRecord
from despachante_import.services.export import (
    EXPORT_COLUMNS,
    default_export_name,
    export_records,
    filter_by_client,
    format_date_br,
    total_value,
)

RECORDS = [
    ServiceRecord(date="2024-02-01", type="Licenciamento", value=150.0, plate="ABC1234",
                  model="Gol", owner="Maria", client="LojaX"),
    ServiceRecord(date="2024-02-03", type="Transferência", value=350.5, plate="XYZ9876",
                  model="Uno", owner="José", client="LojaY"),
    ServiceRecord(date="2024-02-05", type="Vistoria", value=80.0, plate="QWE4R56",
                  model="Onix", owner="Ana", client="LojaX"),
]


def test_format_date_br():
    assert format_date_br("2025-12-30") == "30/12/2025"
    assert format_date_br(None) == ""
    assert format_date_br("sem data") == "sem data"


def test_filter_and_total():
    lojax = filter_by_client(RECORDS, "LojaX")
    assert [r.plate for r in lojax] == ["ABC1234", "QWE4R56"]
    assert total_value(lojax) == 230.0
    assert len(filter_by_client(RECORDS, None)) == 3


def test_default_export_name():
    assert default_export_name(None) == "Servicos_Geral.xlsx"
    assert default_export_name("LojaX") == "Servicos_LojaX.xlsx"


def test_export_records_writes_service_list_layout(tmp_path: Path):
    path = tmp_path / "out" / "servicos.xlsx"
    count, total = export_records(RECORDS, path, client="LojaX")
    assert (count, total) == (2, 230.0)

    df = pd.read_excel(path, sheet_name="Serviços", dtype=object)
    assert list(df.columns) == EXPORT_COLUMNS
    assert df["Data"].tolist() == ["01/02/2024", "05/02/2024"]
    assert df["Placa"].tolist() == ["ABC1234", "QWE4R56"]
    assert df["Valor"].tolist() == [150, 80]


def test_export_all_records(tmp_path: Path):
    path = tmp_path / "todos.xlsx"
    count, total = export_records(RECORDS, path)
    assert count == 3
    assert total == 580.5
    assert len(pd.read_excel(path)) == 3
