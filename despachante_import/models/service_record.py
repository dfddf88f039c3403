from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any

"""ServiceRecord model: the canonical, schema-conformant unit handed to the sink.

One record is built per spreadsheet data row at confirm time. Records are frozen;
the importing user's id is attached with `with_owner()` right before submission.
"""

__all__ = [
    "DB_COLUMNS",
    "ServiceRecord",
]

# Column order of the `services` table insert
DB_COLUMNS: tuple[str, ...] = (
    "date",
    "completion_date",
    "type",
    "value",
    "plate",
    "model",
    "owner",
    "client",
    "dispatcher",
    "owner_user_id",
)


@dataclass(frozen=True)
class ServiceRecord:
    """Normalized service row.

    Attributes:
        date: Entry date, always ``YYYY-MM-DD``
        completion_date: Completion date or None while the service is still open
        type: Service type (defaults to "Outros")
        value: Amount charged
        plate, model, owner, client, dispatcher: Free text, empty string when absent
        owner_user_id: Identity of the importing user (empty until submission)
    """
    date: str
    completion_date: str | None = None
    type: str = "Outros"
    value: float = 0.0
    plate: str = ""
    model: str = ""
    owner: str = ""
    client: str = ""
    dispatcher: str = ""
    owner_user_id: str = ""

    def with_owner(self, user_id: str) -> ServiceRecord:
        return replace(self, owner_user_id=user_id)

    def to_db_row(self) -> tuple[Any, ...]:
        """Values in `DB_COLUMNS` order for `execute_values`."""
        return tuple(getattr(self, col) for col in DB_COLUMNS)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
