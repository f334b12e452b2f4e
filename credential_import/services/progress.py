from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Commit progress display with tqdm (TTY only).

In non-TTY environments (CI, redirected output) the bar is disabled so no
ANSI control sequences end up in logs.
"""

__all__ = [
    "CommitProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class CommitProgress:
    """Progress bar over staged staff rows during commit."""

    def __init__(self, total_rows: int, *, description: str = "Importing staff") -> None:
        self.total_rows = total_rows
        self.description = description
        self.current_row = 0
        self.failed_rows = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="staff",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_row(self, staff_name: str) -> None:
        self.current_row += 1
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({staff_name})")

    def finish_row(self, success: bool = True) -> None:
        if not success:
            self.failed_rows += 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)
            if self.failed_rows:
                self.pbar.set_postfix(failed=self.failed_rows)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> CommitProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
