from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Column analysis models produced by the analyze phase.

A ColumnAnalysis is built once per sheet column and never changes afterwards;
the mapping the reviewer edits lives in models.mapping instead.
"""

__all__ = [
    "ColumnKind",
    "ColumnClassification",
    "ColumnAnalysis",
    "CredentialType",
    "RoleGroupSummary",
    "SheetAnalysis",
]


class ColumnKind(Enum):
    """What a classified column holds.

    - CREDENTIAL: renewing credential, cells are expiration dates
    - COMPETENCY: one-time completion, cells are completion dates
    """
    CREDENTIAL = "credential"
    COMPETENCY = "competency"


@dataclass(frozen=True)
class ColumnClassification:
    kind: ColumnKind
    suggested_name: str
    category: str
    is_expiring: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "suggestedName": self.suggested_name,
            "category": self.category,
            "isExpiring": self.is_expiring,
        }


@dataclass(frozen=True)
class ColumnAnalysis:
    """Header, sample cells and heuristic classification of one column."""
    index: int
    header: str
    has_data: bool
    sample_values: tuple[str, ...]  # 最大 5 件
    classification: ColumnClassification | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "header": self.header,
            "hasData": self.has_data,
            "sampleValues": list(self.sample_values),
            "classification": self.classification.to_dict() if self.classification else None,
        }


@dataclass(frozen=True)
class CredentialType:
    """Row of the credential-type catalog. The id is opaque to the import."""
    id: int
    name: str
    category: str
    renewal_period_months: int | None = None

    @property
    def is_expiring(self) -> bool:
        return self.renewal_period_months is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "renewal_period_months": self.renewal_period_months,
        }


@dataclass
class RoleGroupSummary:
    count: int = 0
    start_row: int = 0  # 最初に現れた行番号 (Excel 行)

    def to_dict(self) -> dict[str, int]:
        return {"count": self.count, "startRow": self.start_row}


@dataclass(frozen=True)
class SheetAnalysis:
    """Everything the reviewer needs to build a column mapping."""
    file_name: str
    sheet_name: str
    total_rows: int
    headers: list[str]
    columns: list[ColumnAnalysis]
    role_groups: dict[str, RoleGroupSummary]
    staff_preview: list[dict[str, Any]] = field(default_factory=list)
    existing_credential_types: list[CredentialType] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "sheetName": self.sheet_name,
            "totalRows": self.total_rows,
            "headers": list(self.headers),
            "columnAnalysis": [c.to_dict() for c in self.columns],
            "roleGroups": {role: g.to_dict() for role, g in self.role_groups.items()},
            "staffPreview": list(self.staff_preview),
            "existingCredentialTypes": [t.to_dict() for t in self.existing_credential_types],
        }
