from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from ..models.service_record import ServiceRecord

"""Export canonical records in the service list layout.

Columns: Data (DD/MM/YYYY), Tipo, Placa, Modelo, Proprietário, Cliente, Valor.
An optional client filter narrows the sheet to one store and the total to charge
is reported alongside.
"""

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["Data", "Tipo", "Placa", "Modelo", "Proprietário", "Cliente", "Valor"]
SHEET_NAME = "Serviços"


def format_date_br(iso_date: str | None) -> str:
    """'2025-12-30' -> '30/12/2025', split textually to avoid timezone shifts."""
    if not iso_date:
        return ""
    parts = iso_date.split("-")
    if len(parts) != 3:
        return iso_date
    year, month, day = parts
    return f"{day}/{month}/{year}"


def filter_by_client(records: Iterable[ServiceRecord], client: str | None) -> list[ServiceRecord]:
    if not client:
        return list(records)
    return [r for r in records if r.client == client]


def total_value(records: Iterable[ServiceRecord]) -> float:
    return sum(r.value for r in records)


def records_to_frame(records: Iterable[ServiceRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Data": format_date_br(r.date),
                "Tipo": r.type,
                "Placa": r.plate,
                "Modelo": r.model,
                "Proprietário": r.owner,
                "Cliente": r.client,
                "Valor": r.value,
            }
            for r in records
        ],
        columns=EXPORT_COLUMNS,
    )


def default_export_name(client: str | None) -> str:
    return f"Servicos_{client or 'Geral'}.xlsx"


def export_records(
    records: Iterable[ServiceRecord], path: Path, *, client: str | None = None
) -> tuple[int, float]:
    """Write records to an .xlsx file.

    Returns:
        (exported row count, total value of the exported rows)
    """
    selected = filter_by_client(records, client)
    df = records_to_frame(selected)
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        sheet = writer.sheets[SHEET_NAME]
        tipo_width = max([10, *(len(t) for t in df["Tipo"])])
        for letter, width in zip("ABCDEFG", [12, tipo_width, 10, 15, 20, 15, 10], strict=True):
            sheet.column_dimensions[letter].width = width
    total = total_value(selected)
    label = client or "Geral"
    logger.info(
        f"exported {len(selected)} services to {path} "
        f"(Total a Cobrar {label}: R$ {total:.2f})"
    )
    return len(selected), total
