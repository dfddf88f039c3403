from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DatabaseConfig, ImportConfig

"""Config loader.

Responsibilities:
- Load the YAML config (default config/import.yml)
- Validate it against the bundled JSON schema
- Apply defaults for every omitted key
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or if the
            config data fails validation (unknown keys, wrong types, bad enum values).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def config_from_dict(data: dict[str, Any]) -> ImportConfig:
    """Validate a raw mapping and build an ImportConfig with defaults applied."""
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")
    _validate_config_schema(data)

    defaults = ImportConfig()
    db_raw = data.get("database", {})
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(
        table=data.get("table", defaults.table),
        batch_size=data.get("batch_size", defaults.batch_size),
        header_scan_rows=data.get("header_scan_rows", defaults.header_scan_rows),
        preview_rows=data.get("preview_rows", defaults.preview_rows),
        csv_encodings=tuple(data.get("csv_encodings", defaults.csv_encodings)),
        default_service_type=data.get("default_service_type", defaults.default_service_type),
        strict_dates=data.get("strict_dates", defaults.strict_dates),
        negative_values=data.get("negative_values", defaults.negative_values),
        field_aliases=data.get("field_aliases", {}),
        user_id=data.get("user_id"),
        database=db,
    )


def load_config(path: Path, *, required: bool = True) -> ImportConfig:
    """Load config from `path`.

    With required=False a missing file yields the built-in defaults; an explicitly
    requested file that does not exist is always an error.
    """
    if not path.exists():
        if not required:
            return ImportConfig()
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    return config_from_dict(data)
