from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Commit pipeline result models."""

__all__ = [
    "CommitError",
    "CommitResult",
    "CommitTally",
]


@dataclass(frozen=True)
class CommitError:
    """A single persistence failure, attributed to one staff identity.

    kind is "staff" when the staff record itself could not be created (none of
    its assignments were attempted), otherwise "credential" or "competency".
    """
    staff: str
    error: str
    kind: str = "staff"
    row: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"staff": self.staff, "error": self.error, "type": self.kind, "row": self.row}


@dataclass(frozen=True)
class CommitResult:
    """Counts of what was actually created, plus collected errors."""
    staff_created: int
    credentials_assigned: int
    competencies_assigned: int
    errors: tuple[CommitError, ...] = ()
    staff_merged: int = 0  # 既存スタッフ再利用 (merge_existing 有効時のみ)
    skipped_excluded: int = 0
    elapsed_seconds: float = 0.0

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "staffCreated": self.staff_created,
            "credentialsAssigned": self.credentials_assigned,
            "competenciesAssigned": self.competencies_assigned,
            "staffMerged": self.staff_merged,
            "skippedExcluded": self.skipped_excluded,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class CommitTally:
    """Mutable counters used while the commit runs; frozen into CommitResult."""
    staff_created: int = 0
    staff_merged: int = 0
    credentials_assigned: int = 0
    competencies_assigned: int = 0
    skipped_excluded: int = 0
    errors: list[CommitError] = field(default_factory=list)

    def freeze(self, elapsed_seconds: float = 0.0) -> CommitResult:
        return CommitResult(
            staff_created=self.staff_created,
            credentials_assigned=self.credentials_assigned,
            competencies_assigned=self.competencies_assigned,
            errors=tuple(self.errors),
            staff_merged=self.staff_merged,
            skipped_excluded=self.skipped_excluded,
            elapsed_seconds=elapsed_seconds,
        )
