from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .column_analysis import ColumnKind

"""Column mapping: which spreadsheet column feeds which target.

Each mapped data column holds exactly one ColumnTarget, so a column can never
be bound as a credential and a competency at the same time. An absent key means
the column is unmapped.
"""

__all__ = [
    "ColumnTarget",
    "ColumnMapping",
]


@dataclass(frozen=True)
class ColumnTarget:
    kind: ColumnKind
    credential_type_id: int

    @classmethod
    def credential(cls, credential_type_id: int) -> ColumnTarget:
        return cls(ColumnKind.CREDENTIAL, int(credential_type_id))

    @classmethod
    def competency(cls, credential_type_id: int) -> ColumnTarget:
        return cls(ColumnKind.COMPETENCY, int(credential_type_id))


@dataclass
class ColumnMapping:
    """Reviewer-adjustable mapping. Column indexes are 0-based."""
    name_column: int | None = 0
    contact_column: int | None = 1
    license_num_column: int | None = None
    targets: dict[int, ColumnTarget] = field(default_factory=dict)

    def _by_kind(self, kind: ColumnKind) -> dict[int, int]:
        return {
            col: t.credential_type_id
            for col, t in sorted(self.targets.items())
            if t.kind is kind
        }

    @property
    def credentials(self) -> dict[int, int]:
        """Column index -> credential type id for renewing credentials (ascending)."""
        return self._by_kind(ColumnKind.CREDENTIAL)

    @property
    def competencies(self) -> dict[int, int]:
        """Column index -> credential type id for one-time competencies (ascending)."""
        return self._by_kind(ColumnKind.COMPETENCY)

    def to_dict(self) -> dict[str, Any]:
        # JSON のキーは文字列になるため str() で揃える
        return {
            "nameColumn": self.name_column,
            "contactColumn": self.contact_column,
            "licenseNumColumn": self.license_num_column,
            "credentials": {str(k): v for k, v in self.credentials.items()},
            "competencies": {str(k): v for k, v in self.competencies.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ColumnMapping:
        """Build a mapping from its wire shape.

        The wire shape keeps two column-keyed maps; a column listed in both
        ends up as a competency (the later assignment wins).
        """
        def _opt_int(value: Any) -> int | None:
            if value is None or value == "":
                return None
            return int(value)

        mapping = cls(
            name_column=_opt_int(data.get("nameColumn", 0)),
            contact_column=_opt_int(data.get("contactColumn", 1)),
            license_num_column=_opt_int(data.get("licenseNumColumn")),
        )
        for col, type_id in (data.get("credentials") or {}).items():
            mapping.targets[int(col)] = ColumnTarget.credential(type_id)
        for col, type_id in (data.get("competencies") or {}).items():
            mapping.targets[int(col)] = ColumnTarget.competency(type_id)
        return mapping
