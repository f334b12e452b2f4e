from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..models.column_analysis import (
    ColumnAnalysis,
    ColumnClassification,
    ColumnKind,
    CredentialType,
)
from ..models.mapping import ColumnMapping, ColumnTarget
from .reader import cell_text

"""Column classifier.

Classification looks at the header text only, never at cell values, so the
same header always yields the same result. Rules are plain data evaluated in
order, first match wins: renewing credentials first, then competencies.
"""

__all__ = [
    "ExpiringRule",
    "EXPIRING_CREDENTIAL_RULES",
    "COMPETENCY_KEYWORDS",
    "classify_column",
    "analyze_columns",
    "match_credential_type",
    "suggest_mapping",
]

SAMPLE_ROWS = 10
MAX_SAMPLES = 5


@dataclass(frozen=True)
class ExpiringRule:
    pattern: re.Pattern[str]
    suggested_name: str
    category: str


EXPIRING_CREDENTIAL_RULES: tuple[ExpiringRule, ...] = (
    ExpiringRule(re.compile(r"license", re.IGNORECASE), "State License", "License"),
    ExpiringRule(re.compile(r"acls", re.IGNORECASE), "ACLS", "Certification"),
    ExpiringRule(re.compile(r"bls", re.IGNORECASE), "BLS", "Certification"),
    ExpiringRule(re.compile(r"pals", re.IGNORECASE), "PALS", "Certification"),
)

COMPETENCY_KEYWORDS: tuple[str, ...] = (
    "angiojet", "impella", "ivus", "ffr", "volcano", "iabp", "shockwave", "ekos",
    "loop recorder", "penumbra", "flow triever", "tandem", "tr band", "tvp",
    "defibrillator", "abbott", "biotronik", "papyrus", "carto", "inservice",
)


def classify_column(
    header: str,
    expiring_rules: Sequence[ExpiringRule] = EXPIRING_CREDENTIAL_RULES,
    competency_keywords: Sequence[str] = COMPETENCY_KEYWORDS,
) -> ColumnClassification | None:
    """Classify a column by its header; None means "ignore by default"."""
    text = header or ""
    for rule in expiring_rules:
        if rule.pattern.search(text):
            return ColumnClassification(
                kind=ColumnKind.CREDENTIAL,
                suggested_name=rule.suggested_name,
                category=rule.category,
                is_expiring=True,
            )

    lower = text.lower()
    for keyword in competency_keywords:
        if keyword in lower:
            return ColumnClassification(
                kind=ColumnKind.COMPETENCY,
                suggested_name=text,
                category="Competency",
                is_expiring=False,
            )
    return None


def analyze_columns(
    headers: Sequence[str], rows: Sequence[Mapping[int, Any]]
) -> list[ColumnAnalysis]:
    sample_rows = rows[:SAMPLE_ROWS]
    result: list[ColumnAnalysis] = []
    for index, header in enumerate(headers):
        samples = [cell_text(r.get(index)) for r in sample_rows]
        samples = [s for s in samples if s]
        result.append(
            ColumnAnalysis(
                index=index,
                header=header,
                has_data=bool(samples),
                sample_values=tuple(samples[:MAX_SAMPLES]),
                classification=classify_column(header),
            )
        )
    return result


def _names_overlap(a: str, b: str) -> bool:
    a, b = a.lower().strip(), b.lower().strip()
    if not a or not b:
        return False
    return a in b or b in a


def match_credential_type(
    column: ColumnAnalysis, catalog: Iterable[CredentialType]
) -> CredentialType | None:
    """Find the first catalog entry whose name overlaps the column.

    Credentials compare against the suggested name ("BLS"), competencies
    against the raw header, since their suggested name is the header itself.
    """
    cls = column.classification
    if cls is None:
        return None
    needle = cls.suggested_name if cls.kind is ColumnKind.CREDENTIAL else column.header
    for ct in catalog:
        if _names_overlap(ct.name, needle):
            return ct
    return None


def suggest_mapping(
    columns: Sequence[ColumnAnalysis], catalog: Sequence[CredentialType]
) -> ColumnMapping:
    mapping = ColumnMapping()
    for column in columns:
        if column.index in (mapping.name_column, mapping.contact_column):
            continue
        match = match_credential_type(column, catalog)
        if match is None:
            continue
        if column.classification.kind is ColumnKind.CREDENTIAL:
            mapping.targets[column.index] = ColumnTarget.credential(match.id)
        else:
            mapping.targets[column.index] = ColumnTarget.competency(match.id)
    return mapping
