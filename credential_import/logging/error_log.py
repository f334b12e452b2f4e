from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.commit_result import CommitError
from ..models.error_record import ErrorRecord

"""Commit error log buffer.

- JSON Lines, fixed key set (see models.error_record)
- one file per run: logs/commit-errors-YYYYMMDD-HHMMSS.log (UTC), created on
  first flush that has records
- serial use only
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "error_type_for",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

_ERROR_TYPES = {
    "staff": "STAFF_CREATE_FAILED",
    "credential": "CREDENTIAL_ASSIGN_FAILED",
    "competency": "COMPETENCY_ASSIGN_FAILED",
}


def error_type_for(error: CommitError) -> str:
    return _ERROR_TYPES.get(error.kind, "COMMIT_FAILED")


class ErrorLogBuffer:
    """In-memory buffer for error records. flush() appends them as JSON Lines."""

    def __init__(self, source: str = "", logs_dir: Path | None = None) -> None:
        self.source = source
        self.logs_dir = logs_dir or LOGS_DIR
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.logs_dir / f"commit-errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def append_commit_error(self, error: CommitError) -> None:
        self.append(
            ErrorRecord.create(
                source=self.source,
                row=error.row if error.row is not None else -1,
                staff=error.staff,
                error_type=error_type_for(error),
                message=error.error,
            )
        )

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the file path, or None if nothing was written."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
