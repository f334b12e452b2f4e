from __future__ import annotations

import numbers
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from ..excel.dates import normalize_date
from ..excel.reader import cell_text, column_label, is_blank
from ..models.column_analysis import ColumnKind, CredentialType
from ..models.mapping import ColumnMapping
from ..models.staging import (
    ImportWarning,
    StagedCompetency,
    StagedCredential,
    StagedStaffRecord,
)

"""Row extractor: one data row + column mapping -> staged staff record.

Field problems become warnings on the record; they never stop the import.
Mapped columns are read in ascending column index order, so the order of
warnings is reproducible.
"""

__all__ = [
    "DateNormalizer",
    "split_name",
    "extract_row",
]

DateNormalizer = Callable[[Any, list[str]], "str | None"]


def split_name(raw_name: str, warnings: list[str]) -> tuple[str, str]:
    """Split at the first whitespace run: "Mary Ann Smith" -> ("Mary", "Ann Smith").

    A single token becomes the last name with an empty first name.
    """
    parts = raw_name.split()
    if len(parts) >= 2:
        return parts[0], " ".join(parts[1:])
    warnings.append(f'Could not split name into first and last name: "{raw_name}"')
    return "", raw_name.strip()


def _optional_text(cells: Mapping[int, Any], column: int | None) -> str | None:
    if column is None:
        return None
    return cell_text(cells.get(column)) or None


def _is_zero(value: Any) -> bool:
    # 数値 0 のセルは空扱い
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and value == 0


def extract_row(
    cells: Mapping[int, Any],
    mapping: ColumnMapping,
    *,
    role: str,
    row_number: int,
    headers: Sequence[str] | None = None,
    catalog: Mapping[int, CredentialType] | None = None,
    employment_type: str | None = None,
    date_normalizer: DateNormalizer = normalize_date,
) -> tuple[StagedStaffRecord | None, ImportWarning | None]:
    """Extract a staged staff record from one row.

    Returns (record, row_warning). record is None when the name cell is empty;
    the row warning then says why the row was not staged. row_warning is None
    when the row produced no warnings.
    """
    if mapping.name_column is None:
        raise ValueError("name column is not mapped")

    raw_name = cell_text(cells.get(mapping.name_column))
    if not raw_name:
        label = column_label(headers, mapping.name_column)
        return None, ImportWarning(
            row=row_number,
            name="",
            warnings=(f"Row has data but no name in {label}; skipped",),
        )

    warnings: list[str] = []
    first_name, last_name = split_name(raw_name, warnings)
    record = StagedStaffRecord(
        first_name=first_name,
        last_name=last_name,
        role=role,
        source_row_number=row_number,
        contact=_optional_text(cells, mapping.contact_column),
        license_number=_optional_text(cells, mapping.license_num_column),
        employment_type=employment_type,
    )

    for column, target in sorted(mapping.targets.items()):
        raw = cells.get(column)
        if is_blank(raw) or _is_zero(raw):
            continue
        label = column_label(headers, column)
        if catalog is not None and target.credential_type_id not in catalog:
            warnings.append(f"{label}: unknown credential type id {target.credential_type_id}")
            continue

        field_warnings: list[str] = []
        parsed = date_normalizer(raw, field_warnings)
        warnings.extend(f"{label}: {w}" for w in field_warnings)
        if target.kind is ColumnKind.CREDENTIAL:
            record.credentials.append(
                StagedCredential(target.credential_type_id, parsed, column_name=label)
            )
        else:
            record.competencies.append(
                StagedCompetency(target.credential_type_id, parsed, column_name=label)
            )

    record.warnings.extend(warnings)
    if not warnings:
        return record, None
    return record, ImportWarning(row=row_number, name=record.full_name, warnings=tuple(warnings))
