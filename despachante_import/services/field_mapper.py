from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ..excel.reader import RawRow, cell_to_text
from ..models.config_models import ImportConfig
from ..models.service_record import ServiceRecord
from .parsers import parse_currency, parse_date, today_iso

"""Field mapper: RawRow (arbitrary, localized headers) -> ServiceRecord.

Every logical field has one or more alias lists in priority order. Headers are
compared after trim + lower-case, by exact equality. The first list that yields a
value wins, even if a later list would also match.
"""

logger = logging.getLogger(__name__)

AliasLists = Sequence[Sequence[str]]

DEFAULT_FIELD_ALIASES: dict[str, list[list[str]]] = {
    "date": [["data_entrada", "data entrada"], ["data", "date"]],
    "completion_date": [["data_fim", "data fim", "data_saida", "data saida", "completion_date"]],
    "type": [["tipo", "type", "serviço", "servico", "service"]],
    "value": [["valor", "value", "preço", "preco", "price"]],
    "plate": [["placa", "plate"]],
    "model": [["modelo", "model", "veículo", "veiculo", "vehicle"]],
    "owner": [["proprietário", "proprietario", "owner", "cliente final"]],
    "client": [["cliente", "client", "loja", "store"]],
    "dispatcher": [["despachante", "dispatcher"]],
}

TEXT_FIELDS = ("plate", "model", "owner", "client", "dispatcher")


def normalize_header(header: Any) -> str:
    return cell_to_text(header).strip().lower()


def get_field(row: RawRow, candidates: Sequence[str]) -> Any:
    """Return the first cell whose header matches one of `candidates`, else None."""
    wanted = {c.strip().lower() for c in candidates}
    for header, value in row.items():
        if normalize_header(header) in wanted:
            return value
    return None


def get_field_by_priority(row: RawRow, alias_lists: AliasLists) -> Any:
    for candidates in alias_lists:
        value = get_field(row, candidates)
        if value is not None:
            return value
    return None


def _text(value: Any) -> str:
    return cell_to_text(value).strip()


class FieldMapper:
    """Builds ServiceRecords from RawRows with a fixed alias table and policies."""

    def __init__(
        self,
        aliases: Mapping[str, AliasLists] | None = None,
        *,
        default_type: str = "Outros",
        strict_dates: bool = False,
        negative_values: str = "keep",
    ) -> None:
        merged: dict[str, AliasLists] = dict(DEFAULT_FIELD_ALIASES)
        if aliases:
            merged.update(aliases)
        self.aliases = merged
        self.default_type = default_type
        self.strict_dates = strict_dates
        self.negative_values = negative_values

    @classmethod
    def from_config(cls, config: ImportConfig) -> FieldMapper:
        return cls(
            config.field_aliases,
            default_type=config.default_service_type,
            strict_dates=config.strict_dates,
            negative_values=config.negative_values,
        )

    def lookup(self, row: RawRow, field: str) -> Any:
        return get_field_by_priority(row, self.aliases[field])

    def map_row(self, row: RawRow, *, today: str | None = None, row_number: int | None = None) -> ServiceRecord:
        """Map one RawRow. Unparseable dates/amounts degrade to today / 0."""
        where = f"row {row_number}" if row_number is not None else "row"

        date_raw = self.lookup(row, "date")
        entry_date = parse_date(date_raw, strict=self.strict_dates)
        if entry_date is None:
            if date_raw is not None:
                logger.debug(f"{where}: unparseable date {date_raw!r}, using today")
            entry_date = today or today_iso()

        completion_date = parse_date(self.lookup(row, "completion_date"), strict=self.strict_dates)

        value_raw = self.lookup(row, "value")
        value = parse_currency(value_raw)
        if value == 0 and value_raw not in (None, "", 0):
            logger.debug(f"{where}: unparseable value {value_raw!r}, using 0")
        if value < 0:
            if self.negative_values == "zero":
                logger.warning(f"{where}: negative value {value} replaced by 0")
                value = 0.0
            else:
                logger.warning(f"{where}: negative value {value} kept")

        fields = {name: _text(self.lookup(row, name)) for name in TEXT_FIELDS}
        return ServiceRecord(
            date=entry_date,
            completion_date=completion_date,
            type=_text(self.lookup(row, "type")) or self.default_type,
            value=value,
            **fields,
        )
