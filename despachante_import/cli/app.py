from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.connection import db_connection
from ..db.sink import DryRunSink, PostgresServiceSink, ServiceSink
from ..excel.reader import DecodeError
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.config_models import ImportConfig
from ..models.error_record import ErrorRecord
from ..models.import_result import ImportReport, StatusMessage
from ..models.service_record import ServiceRecord
from ..services.export import default_export_name, export_records
from ..services.importer import (
    AuthenticationMissingError,
    NoDataFoundError,
    PreparedImport,
    prepare_import,
    run_import,
)
from ..services.progress import ProgressBar
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env and config
- Decode the spreadsheet, locate the header, print a preview
- --preview / --export stop there; otherwise resolve the user identity and send the
  canonical records to PostgreSQL (or to a dry-run sink) in batches
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

USER_ID_ENV = "IMPORT_USER_ID"

MSG_DECODE_ERROR = "Erro ao ler o arquivo. Certifique-se que é um CSV ou Excel válido."
MSG_NO_DATA = "Nenhum dado encontrado no arquivo."
MSG_NO_USER = "Usuário não autenticado. Informe --user-id ou IMPORT_USER_ID."
MSG_EXPORT_ERROR = "Erro ao exportar a planilha. Verifique o caminho de destino."


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="despachante-import",
        description="Import service records from a CSV/Excel spreadsheet into PostgreSQL",
    )
    p.add_argument("file", type=Path, help="CSV or XLSX file to import")
    p.add_argument("--config", type=Path, default=None, help="YAML config (default config/import.yml)")
    p.add_argument("--user-id", default=None, help=f"Importing user id (falls back to ${USER_ID_ENV})")
    p.add_argument("--preview", action="store_true", help="Print the mapped preview rows and exit")
    p.add_argument("--export", type=Path, default=None, metavar="PATH",
                   help="Write the mapped records to an .xlsx file instead of importing")
    p.add_argument("--client", default=None, help="Only export services of this client")
    p.add_argument("--dry-run", action="store_true", help="Map and batch without a database")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def resolve_user_id(cli_value: str | None, cfg: ImportConfig) -> str:
    """Identity lookup order: --user-id, $IMPORT_USER_ID, config user_id."""
    for candidate in (cli_value, os.getenv(USER_ID_ENV), cfg.user_id):
        if candidate and candidate.strip():
            return candidate.strip()
    raise AuthenticationMissingError(MSG_NO_USER)


def _emit_status(logger: logging.Logger, status: StatusMessage) -> None:
    if status.kind == "success":
        logger.info(status.text)
    elif status.kind == "warning":
        logger.warning(status.text)
    else:
        logger.error(status.text)


def _file_level_error(error_log: ErrorLogBuffer, file_name: str, error_type: str, message: str) -> None:
    error_log.append(
        ErrorRecord.create(file=file_name, batch=-1, row=-1, error_type=error_type, db_message=message)
    )
    error_log.flush()


def _print_preview(logger: logging.Logger, prepared: PreparedImport, preview: list[ServiceRecord]) -> None:
    logger.info(f"{prepared.total} registros encontrados. colunas={prepared.columns}")
    for i, record in enumerate(preview, start=1):
        logger.info(f"  preview[{i}] {record.to_dict()}")


def _run_with_sink(
    prepared: PreparedImport,
    records: list[ServiceRecord],
    cfg: ImportConfig,
    user_id: str,
    sink: ServiceSink,
    error_log: ErrorLogBuffer,
) -> ImportReport:
    with ProgressBar(len(records)) as bar:
        return run_import(
            records,
            user_id,
            sink,
            batch_size=cfg.batch_size,
            on_progress=bar.update,
            error_log=error_log,
            file_name=prepared.file_name,
        )


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only read sys.argv when argv is None: an explicit [] comes from tests
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        if args.config is not None:
            cfg = load_config(args.config)
        else:
            cfg = load_config(DEFAULT_CONFIG_PATH, required=False)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    error_log = ErrorLogBuffer()
    file_name = args.file.name
    logger.info(f"Reading {args.file}")
    try:
        prepared = prepare_import(args.file, cfg)
    except DecodeError as e:
        logger.error(f"decode: {e}")
        _file_level_error(error_log, file_name, "DECODE_ERROR", str(e))
        _emit_status(logger, StatusMessage("error", MSG_DECODE_ERROR))
        return EXIT_FATAL
    except NoDataFoundError as e:
        logger.error(f"data: {e}")
        _file_level_error(error_log, file_name, "NO_DATA_FOUND", str(e))
        _emit_status(logger, StatusMessage("error", MSG_NO_DATA))
        return EXIT_FATAL

    if args.preview:
        _print_preview(logger, prepared, prepared.preview(cfg.preview_rows))
        return EXIT_SUCCESS_ALL

    # rows are mapped once; the preview reuses the first records
    records = prepared.build_records()
    _print_preview(logger, prepared, records[:cfg.preview_rows])

    if args.export is not None:
        target = args.export
        if target.suffix.lower() != ".xlsx":
            target = target / default_export_name(args.client)
        try:
            export_records(records, target, client=args.client)
        except OSError as e:
            logger.error(f"export: {e}")
            _file_level_error(error_log, file_name, "EXPORT_ERROR", str(e))
            _emit_status(logger, StatusMessage("error", MSG_EXPORT_ERROR))
            return EXIT_FATAL
        return EXIT_SUCCESS_ALL

    try:
        user_id = resolve_user_id(args.user_id, cfg)
    except AuthenticationMissingError as e:
        logger.error(f"auth: {e}")
        _emit_status(logger, StatusMessage("error", MSG_NO_USER))
        return EXIT_FATAL

    dry_run = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1"
    if dry_run:
        logger.info("dry-run: no database connection")
        report = _run_with_sink(prepared, records, cfg, user_id, DryRunSink(), error_log)
    else:
        try:
            with db_connection(cfg.database) as conn:
                sink = PostgresServiceSink(conn, cfg.table)
                report = _run_with_sink(prepared, records, cfg, user_id, sink, error_log)
        except psycopg2.Error as e:
            logger.error(f"database: {e}")
            _file_level_error(error_log, file_name, "DB_CONNECTION_ERROR", str(e))
            _emit_status(logger, StatusMessage("error", f"Falha na conexão com o banco: {e}"))
            return EXIT_FATAL

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log written to {log_path}")

    _emit_status(logger, report.status_message())
    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(report).removeprefix("SUMMARY "))

    return EXIT_SUCCESS_ALL if report.fully_succeeded else EXIT_PARTIAL_FAILURE
