from __future__ import annotations

from ..models.import_result import ImportReport

"""SUMMARY line rendering.

Format:
SUMMARY rows={total} success={success} failed={failed} batches={batches}
elapsed_sec={elapsed} throughput_rps={throughput}
"""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return f"{value:.3f}".rstrip('0').rstrip('.')


def render_summary_line(report: ImportReport) -> str:
    """Render the SUMMARY line for an import report.

    Examples:
        >>> from datetime import datetime, timezone
        >>> from despachante_import.models.import_result import ImportProgress
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> report = ImportReport(
        ...     progress=ImportProgress(current=120, total=120, success=70, errors=50),
        ...     batches=3, start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(report)
        'SUMMARY rows=120 success=70 failed=50 batches=3 elapsed_sec=2 throughput_rps=35'
    """
    progress = report.progress
    return (
        f"SUMMARY rows={progress.total} "
        f"success={progress.success} "
        f"failed={progress.errors} "
        f"batches={report.batches} "
        f"elapsed_sec={_format_number(report.elapsed_seconds)} "
        f"throughput_rps={_format_number(report.throughput_rows_per_sec)}"
    )
