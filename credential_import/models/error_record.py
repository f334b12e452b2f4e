from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for commit error logging.

Each record is one JSON Lines entry with a fixed key set. row=-1 is used when
the failing staff entry has no known source row (for example a record that was
added by hand in the staging file).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        source: Spreadsheet or staging file name the import came from
        row: Source row number (1-based). -1 when unknown
        staff: Full name of the staff entry that failed
        error_type: UPPER_SNAKE_CASE classification (STAFF_CREATE_FAILED, ...)
        message: Database error message or description
    """
    timestamp: str
    source: str
    row: int
    staff: str
    error_type: str
    message: str

    @staticmethod
    def create(source: str, row: int, staff: str, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            source=source,
            row=row,
            staff=staff,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
