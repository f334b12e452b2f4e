from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..config.loader import DEFAULT_ROLE_GROUPS, RoleGroupConfig
from .reader import as_cells, cell_text, is_blank

"""Role-group segmenter.

Rosters list staff under section rows such as "RN" or "Registered Nurses";
every data row belongs to the role of the closest section row above it. Rows
before the first section row go to the unassigned bucket.

A section row is recognised from its first cell only: the trimmed, lower-cased
text must contain a synonym starting at a word boundary. Plurals and suffixes
still match ("RNs", "Registered Nurses", "Cardiovascular Technologists"), a
synonym inside a word does not ("Bernard" is not "rn").
"""

__all__ = [
    "UNASSIGNED_ROLE",
    "SegmentRow",
    "RoleGroup",
    "RoleMatcher",
    "is_blank_row",
    "segment_rows",
]

UNASSIGNED_ROLE = "Unassigned"


@dataclass(frozen=True)
class SegmentRow:
    offset: int  # 入力行リスト内の 0 始まり位置
    cells: dict[int, Any]


@dataclass
class RoleGroup:
    role: str
    header_offset: int | None
    rows: list[SegmentRow] = field(default_factory=list)


def is_blank_row(cells: Mapping[int, Any]) -> bool:
    return all(is_blank(v) for v in cells.values())


class RoleMatcher:
    """Compiled synonym patterns for a set of role groups (first match wins)."""

    def __init__(self, role_groups: Sequence[RoleGroupConfig] = DEFAULT_ROLE_GROUPS) -> None:
        self.role_groups = tuple(role_groups)
        self._patterns: list[tuple[RoleGroupConfig, list[re.Pattern[str]]]] = [
            (
                group,
                [
                    re.compile(rf"(?<![a-z0-9]){re.escape(s.strip().lower())}")
                    for s in group.synonyms
                ],
            )
            for group in self.role_groups
        ]

    def detect(self, cells: Mapping[int, Any]) -> RoleGroupConfig | None:
        first = cell_text(cells.get(0)).lower()
        if not first:
            return None
        for group, patterns in self._patterns:
            if any(p.search(first) for p in patterns):
                return group
        return None

    def detect_role(self, cells: Mapping[int, Any]) -> str | None:
        group = self.detect(cells)
        return group.name if group else None

    def employment_type(self, role: str) -> str | None:
        for group in self.role_groups:
            if group.name == role:
                return group.employment_type
        return None

    def staff_role(self, role: str) -> str:
        """Role stored on staff records of a group (RCIS rows become "Tech")."""
        for group in self.role_groups:
            if group.name == role:
                return group.staff_role or group.name
        return role


def segment_rows(
    rows: Iterable[Mapping[int, Any] | Sequence[Any]],
    matcher: RoleMatcher | None = None,
    unassigned_role: str = UNASSIGNED_ROLE,
) -> Iterator[RoleGroup]:
    """Split rows into role groups in a single forward pass.

    Yields each group once its end is known (next section row or end of
    input). Section rows and blank rows never appear in RoleGroup.rows. A
    section row with no data rows below it still yields an empty group; an
    empty unassigned bucket is not yielded.
    """
    matcher = matcher or RoleMatcher()
    current = RoleGroup(role=unassigned_role, header_offset=None)
    for offset, raw in enumerate(rows):
        cells = as_cells(raw)
        if is_blank_row(cells):
            continue
        role = matcher.detect_role(cells)
        if role is not None:
            if current.header_offset is not None or current.rows:
                yield current
            current = RoleGroup(role=role, header_offset=offset)
            continue
        current.rows.append(SegmentRow(offset=offset, cells=cells))
    if current.header_offset is not None or current.rows:
        yield current
