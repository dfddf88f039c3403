from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.import_result import ImportProgress

"""Progress display with tqdm (TTY only).

A single bar counts processed rows; its postfix shows success/error totals. In
non-TTY environments (CI, redirected output) no bar is created, to avoid ANSI
control sequence spam in logs.
"""

__all__ = [
    "ProgressBar",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressBar:
    """Row progress bar fed with ImportProgress snapshots."""

    def __init__(self, total_rows: int, *, description: str = "Importando") -> None:
        self.total_rows = total_rows
        self.description = description
        self.last: ImportProgress | None = None

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def update(self, progress: ImportProgress) -> None:
        """Advance the bar to `progress.current`."""
        previous = self.last.current if self.last is not None else 0
        self.last = progress
        if self.enabled and self.pbar is not None:
            self.pbar.update(progress.current - previous)
            self.pbar.set_postfix(success=progress.success, errors=progress.errors)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressBar:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
