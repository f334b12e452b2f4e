from __future__ import annotations

import logging
from collections.abc import Sequence

from ..excel.classifier import analyze_columns
from ..excel.reader import SheetData, cell_text, column_label
from ..excel.segmenter import UNASSIGNED_ROLE, RoleMatcher, segment_rows
from ..models.column_analysis import CredentialType, RoleGroupSummary, SheetAnalysis

"""Analyze phase: sheet -> column analysis + role group counts.

Nothing here depends on a column mapping; the result is what the reviewer
looks at to build one.
"""

__all__ = [
    "analyze_sheet",
]

logger = logging.getLogger(__name__)

STAFF_PREVIEW_ROWS = 10
PREVIEW_COLUMNS = 6


def analyze_sheet(
    sheet: SheetData,
    credential_types: Sequence[CredentialType] = (),
    *,
    matcher: RoleMatcher | None = None,
    unassigned_role: str = UNASSIGNED_ROLE,
    name_column: int = 0,
) -> SheetAnalysis:
    columns = analyze_columns(sheet.headers, sheet.rows)

    role_groups: dict[str, RoleGroupSummary] = {}
    staff_preview: list[dict] = []
    for group in segment_rows(sheet.rows, matcher or RoleMatcher(), unassigned_role):
        if group.header_offset is not None:
            start = group.header_offset + sheet.first_row_number
        elif group.rows:
            start = group.rows[0].offset + sheet.first_row_number
        else:  # pragma: no cover - segment_rows never yields this
            continue
        summary = role_groups.setdefault(group.role, RoleGroupSummary(count=0, start_row=start))
        for seg_row in group.rows:
            name = cell_text(seg_row.cells.get(name_column))
            if not name:
                continue
            summary.count += 1
            if len(staff_preview) < STAFF_PREVIEW_ROWS:
                staff_preview.append({
                    "row": seg_row.offset + sheet.first_row_number,
                    "name": name,
                    "role": group.role,
                    "sampleData": {
                        column_label(sheet.headers, i): cell_text(seg_row.cells.get(i))
                        for i in range(min(PREVIEW_COLUMNS, len(sheet.headers)))
                    },
                })

    classified = sum(1 for c in columns if c.classification is not None)
    counts = {role: g.count for role, g in role_groups.items()}
    logger.info(
        f"analyze: sheet={sheet.sheet_name!r} rows={len(sheet.rows)} columns={len(columns)} "
        f"classified={classified} role_groups={counts}"
    )
    return SheetAnalysis(
        file_name=sheet.file_name,
        sheet_name=sheet.sheet_name,
        total_rows=len(sheet.rows),
        headers=list(sheet.headers),
        columns=columns,
        role_groups=role_groups,
        staff_preview=staff_preview,
        existing_credential_types=list(credential_types),
    )
