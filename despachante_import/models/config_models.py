from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

"""Config dataclasses for the service importer.

`config.loader` builds these from the validated YAML document.
"""

NegativeValuePolicy = Literal["keep", "zero"]


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback.

    Environment variables (DATABASE_URL / PGDSN / PG*) take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an import run."""
    table: str = "services"
    batch_size: int = 50
    header_scan_rows: int = 20
    preview_rows: int = 5
    csv_encodings: tuple[str, ...] = ("utf-8-sig", "cp1252")
    default_service_type: str = "Outros"
    strict_dates: bool = False
    negative_values: NegativeValuePolicy = "keep"
    # logical field -> ordered alias lists (higher priority first); empty = built-in
    field_aliases: dict[str, list[list[str]]] = field(default_factory=dict)
    user_id: str | None = None
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
