"""Domain models for the roster import pipeline.

Analysis models are immutable once produced; staging records are mutable
because the reviewer edits them before commit.
"""

from .column_analysis import (
    ColumnAnalysis,
    ColumnClassification,
    ColumnKind,
    CredentialType,
    RoleGroupSummary,
    SheetAnalysis,
)
from .commit_result import CommitError, CommitResult
from .mapping import ColumnMapping, ColumnTarget
from .staging import (
    ImportStats,
    ImportWarning,
    StagedCompetency,
    StagedCredential,
    StagedStaffRecord,
)

__all__ = [
    # Analysis
    "ColumnAnalysis",
    "ColumnClassification",
    "ColumnKind",
    "CredentialType",
    "RoleGroupSummary",
    "SheetAnalysis",
    # Mapping
    "ColumnMapping",
    "ColumnTarget",
    # Staging
    "ImportStats",
    "ImportWarning",
    "StagedCompetency",
    "StagedCredential",
    "StagedStaffRecord",
    # Commit
    "CommitError",
    "CommitResult",
]
