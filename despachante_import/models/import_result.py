from __future__ import annotations

import statistics
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Literal

"""Progress and result models for the batch import.

ImportProgress is an immutable accumulator: the orchestrator threads it through the
batch loop and every step returns a new value, so the loop can be tested without a UI.
"""

__all__ = [
    "BatchStatsAccumulator",
    "ImportProgress",
    "ImportReport",
    "StatusMessage",
]

StatusKind = Literal["success", "warning", "error"]


@dataclass(frozen=True)
class ImportProgress:
    """Running progress tuple (rows processed, total rows, successes, errors)."""
    current: int
    total: int
    success: int = 0
    errors: int = 0

    @staticmethod
    def start(total: int) -> ImportProgress:
        return ImportProgress(current=0, total=total)

    def advance(self, batch_rows: int, ok: bool) -> ImportProgress:
        """Return the progress after one batch of `batch_rows` records."""
        return replace(
            self,
            current=min(self.current + batch_rows, self.total),
            success=self.success + (batch_rows if ok else 0),
            errors=self.errors + (0 if ok else batch_rows),
        )

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.current, self.total, self.success, self.errors)


@dataclass(frozen=True)
class StatusMessage:
    """Dismissable status message shown to the user after an import step."""
    kind: StatusKind
    text: str


@dataclass(frozen=True)
class ImportReport:
    """Final result of a batch import run."""
    progress: ImportProgress
    batches: int  # sink calls made
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    failed_batches: list[int] = field(default_factory=list)  # 1-based batch numbers
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0

    @property
    def success_count(self) -> int:
        return self.progress.success

    @property
    def error_count(self) -> int:
        return self.progress.errors

    @property
    def fully_succeeded(self) -> bool:
        return self.progress.errors == 0

    @property
    def throughput_rows_per_sec(self) -> float:
        if self.elapsed_seconds > 0:
            return self.progress.success / self.elapsed_seconds
        return 0.0

    def status_message(self) -> StatusMessage:
        if self.fully_succeeded:
            return StatusMessage(
                kind="success",
                text=f"{self.success_count} serviços importados com sucesso!",
            )
        return StatusMessage(
            kind="warning",
            text=(
                f"Importação concluída. {self.success_count} sucessos, "
                f"{self.error_count} erros."
            ),
        )


class BatchStatsAccumulator:
    """Collects per-batch timings and derives summary statistics."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Calculate batch statistics.

        Returns:
            tuple: (total_batches, avg_batch_seconds, p95_batch_seconds)
        """
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 19th of 20 inclusive quantiles = 95th percentile
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
