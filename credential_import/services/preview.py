from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..excel.dates import normalize_date
from ..excel.reader import FIRST_DATA_ROW
from ..excel.segmenter import UNASSIGNED_ROLE, RoleMatcher, segment_rows
from ..models.column_analysis import CredentialType
from ..models.mapping import ColumnMapping
from ..models.staging import (
    ImportStats,
    ImportWarning,
    StagedCompetency,
    StagedCredential,
    StagedStaffRecord,
)
from .extractor import DateNormalizer, extract_row
from .mapping_store import MappingError

"""Preview builder and the reviewer-editable staging dataset.

build_preview is deterministic: the same rows and mapping always give an
equal StagingDataset. All edits go through StagingDataset methods so the stat
counters stay consistent with the staged items.
"""

__all__ = [
    "StagingEditError",
    "ReviewCounts",
    "StagingDataset",
    "build_preview",
]

logger = logging.getLogger(__name__)

# レビュー画面/JSON のフィールド名 -> 属性名
EDITABLE_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "contact": "contact",
    "role": "role",
    "licenseNumber": "license_number",
    "employmentType": "employment_type",
}


class StagingEditError(Exception):
    """Raised when an edit addresses a missing row/item or carries bad data."""


@dataclass(frozen=True)
class ReviewCounts:
    ready: int
    warned: int
    excluded: int


@dataclass
class StagingDataset:
    staff: list[StagedStaffRecord] = field(default_factory=list)
    warnings: list[ImportWarning] = field(default_factory=list)
    stats: ImportStats = field(default_factory=ImportStats)

    def __len__(self) -> int:
        return len(self.staff)

    def _record(self, index: int) -> StagedStaffRecord:
        if not 0 <= index < len(self.staff):
            raise StagingEditError(f"no staged staff at index {index}")
        return self.staff[index]

    def _missing_dates(self) -> int:
        return sum(
            1
            for s in self.staff
            for item_date in (
                [c.expiration_date for c in s.credentials]
                + [c.completion_date for c in s.competencies]
            )
            if item_date is None
        )

    # -- field edits -----------------------------------------------------

    def edit_staff_field(self, index: int, field_name: str, value: str | None) -> StagedStaffRecord:
        """Set one editable field. full_name follows first/last automatically."""
        attr = EDITABLE_FIELDS.get(field_name) or (
            field_name if field_name in EDITABLE_FIELDS.values() else None
        )
        if attr is None:
            raise StagingEditError(f"field is not editable: {field_name}")
        record = self._record(index)
        text = "" if value is None else str(value).strip()
        if attr in ("first_name", "last_name", "role"):
            setattr(record, attr, text)
        else:
            setattr(record, attr, text or None)
        return record

    def _normalize_edit(self, value: str | None) -> str | None:
        if value is None or str(value).strip() == "":
            return None
        scratch: list[str] = []
        parsed = normalize_date(value, scratch)
        if parsed is None:
            raise StagingEditError(f"invalid date: {value!r}")
        return parsed

    def edit_credential_date(self, index: int, item_index: int, value: str | None) -> StagedCredential:
        record = self._record(index)
        if not 0 <= item_index < len(record.credentials):
            raise StagingEditError(f"no credential {item_index} for staff {index}")
        record.credentials[item_index].expiration_date = self._normalize_edit(value)
        self.stats.parse_errors = self._missing_dates()
        return record.credentials[item_index]

    def edit_competency_date(self, index: int, item_index: int, value: str | None) -> StagedCompetency:
        record = self._record(index)
        if not 0 <= item_index < len(record.competencies):
            raise StagingEditError(f"no competency {item_index} for staff {index}")
        record.competencies[item_index].completion_date = self._normalize_edit(value)
        self.stats.parse_errors = self._missing_dates()
        return record.competencies[item_index]

    # -- removals ----------------------------------------------------------

    def remove_credential(self, index: int, item_index: int) -> StagedCredential:
        record = self._record(index)
        if not 0 <= item_index < len(record.credentials):
            raise StagingEditError(f"no credential {item_index} for staff {index}")
        removed = record.credentials.pop(item_index)
        self.stats.total_credentials -= 1
        self.stats.parse_errors = self._missing_dates()
        return removed

    def remove_competency(self, index: int, item_index: int) -> StagedCompetency:
        record = self._record(index)
        if not 0 <= item_index < len(record.competencies):
            raise StagingEditError(f"no competency {item_index} for staff {index}")
        removed = record.competencies.pop(item_index)
        self.stats.total_competencies -= 1
        self.stats.parse_errors = self._missing_dates()
        return removed

    # -- exclusion ---------------------------------------------------------

    def set_excluded(self, index: int, excluded: bool = True) -> bool:
        record = self._record(index)
        record.excluded = excluded
        return record.excluded

    def toggle_excluded(self, index: int) -> bool:
        record = self._record(index)
        record.excluded = not record.excluded
        return record.excluded

    def excluded_indices(self) -> set[int]:
        return {i for i, s in enumerate(self.staff) if s.excluded}

    # -- review summaries ----------------------------------------------------

    def commit_stats(self) -> ImportStats:
        """Counts of what a commit would attempt (excluded rows left out)."""
        included = [s for s in self.staff if not s.excluded]
        return ImportStats(
            total_staff=len(included),
            total_credentials=sum(len(s.credentials) for s in included),
            total_competencies=sum(len(s.competencies) for s in included),
            parse_errors=self.stats.parse_errors,
        )

    def review_counts(self) -> ReviewCounts:
        excluded = sum(1 for s in self.staff if s.excluded)
        warned = sum(1 for s in self.staff if not s.excluded and s.warnings)
        return ReviewCounts(ready=len(self.staff) - excluded - warned, warned=warned, excluded=excluded)

    # -- wire shape ----------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "staff": [s.to_dict() for s in self.staff],
            "warnings": [w.to_dict() for w in self.warnings],
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StagingDataset:
        """Rebuild a dataset from its wire shape (possibly edited by hand)."""
        staff_raw = data.get("staff")
        if not isinstance(staff_raw, list):
            raise StagingEditError("staging data has no staff list")
        staff = [StagedStaffRecord.from_dict(s) for s in staff_raw]
        stats = (
            ImportStats.from_dict(data["stats"])
            if isinstance(data.get("stats"), Mapping)
            else ImportStats(
                total_staff=len(staff),
                total_credentials=sum(len(s.credentials) for s in staff),
                total_competencies=sum(len(s.competencies) for s in staff),
            )
        )
        return cls(
            staff=staff,
            warnings=[ImportWarning.from_dict(w) for w in data.get("warnings") or []],
            stats=stats,
        )


def _validate_mapping(mapping: ColumnMapping, headers: Sequence[str] | None) -> None:
    if mapping.name_column is None:
        raise MappingError("name column is not mapped")
    if headers is None:
        return
    width = len(headers)
    named = {
        "name column": mapping.name_column,
        "contact column": mapping.contact_column,
        "license number column": mapping.license_num_column,
    }
    for what, col in named.items():
        if col is not None and not 0 <= col < width:
            raise MappingError(f"{what} {col} is out of range (sheet has {width} columns)")
    for col in mapping.targets:
        if not 0 <= col < width:
            raise MappingError(f"mapped column {col} is out of range (sheet has {width} columns)")


def build_preview(
    rows: Sequence[Mapping[int, Any] | Sequence[Any]],
    mapping: ColumnMapping,
    *,
    headers: Sequence[str] | None = None,
    catalog: Iterable[CredentialType] | None = None,
    matcher: RoleMatcher | None = None,
    unassigned_role: str = UNASSIGNED_ROLE,
    first_row_number: int = FIRST_DATA_ROW,
    date_normalizer: DateNormalizer = normalize_date,
) -> StagingDataset:
    """Build the staging dataset for every data row, in sheet order.

    Raises MappingError when the mapping cannot be applied to this sheet; no
    partial dataset is returned in that case.
    """
    _validate_mapping(mapping, headers)
    matcher = matcher or RoleMatcher()
    catalog_by_id = {ct.id: ct for ct in catalog} if catalog is not None else None

    dataset = StagingDataset()
    for group in segment_rows(rows, matcher, unassigned_role):
        employment_type = matcher.employment_type(group.role)
        staff_role = matcher.staff_role(group.role)
        for seg_row in group.rows:
            record, row_warning = extract_row(
                seg_row.cells,
                mapping,
                role=staff_role,
                row_number=seg_row.offset + first_row_number,
                headers=headers,
                catalog=catalog_by_id,
                employment_type=employment_type,
                date_normalizer=date_normalizer,
            )
            if row_warning is not None:
                dataset.warnings.append(row_warning)
            if record is not None:
                dataset.staff.append(record)

    dataset.stats = ImportStats(
        total_staff=len(dataset.staff),
        total_credentials=sum(len(s.credentials) for s in dataset.staff),
        total_competencies=sum(len(s.competencies) for s in dataset.staff),
    )
    dataset.stats.parse_errors = dataset._missing_dates()
    logger.info(
        "preview: staff=%d credentials=%d competencies=%d warned_rows=%d",
        dataset.stats.total_staff,
        dataset.stats.total_credentials,
        dataset.stats.total_competencies,
        len(dataset.warnings),
    )
    return dataset
