"""Domain models for the spreadsheet -> PostgreSQL service importer.

This package contains the dataclasses shared by the reader, the normalizers,
the batch orchestrator and the CLI.
"""

from .config_models import DatabaseConfig, ImportConfig
from .error_record import ErrorRecord
from .import_result import BatchStatsAccumulator, ImportProgress, ImportReport, StatusMessage
from .service_record import DB_COLUMNS, ServiceRecord

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    # Record models
    "DB_COLUMNS",
    "ServiceRecord",
    "ErrorRecord",
    # Processing models
    "BatchStatsAccumulator",
    "ImportProgress",
    "ImportReport",
    "StatusMessage",
]
