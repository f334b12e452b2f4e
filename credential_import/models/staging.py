from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Staging records: parsed import data awaiting review and commit.

StagedStaffRecord is mutable because the reviewer edits it in place. Its
full_name is derived from first_name/last_name on every access, so an edit to
either name can never leave a stale full name behind.
"""

__all__ = [
    "StagedCredential",
    "StagedCompetency",
    "StagedStaffRecord",
    "ImportWarning",
    "ImportStats",
]


@dataclass
class StagedCredential:
    """Renewing credential pending creation."""
    credential_type_id: int
    expiration_date: str | None
    column_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "credentialTypeId": self.credential_type_id,
            "expirationDate": self.expiration_date,
            "columnName": self.column_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StagedCredential:
        return cls(
            credential_type_id=int(data["credentialTypeId"]),
            expiration_date=data.get("expirationDate") or None,
            column_name=data.get("columnName", ""),
        )


@dataclass
class StagedCompetency:
    """One-time competency pending creation."""
    credential_type_id: int
    completion_date: str | None
    column_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "credentialTypeId": self.credential_type_id,
            "completionDate": self.completion_date,
            "columnName": self.column_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StagedCompetency:
        return cls(
            credential_type_id=int(data["credentialTypeId"]),
            completion_date=data.get("completionDate") or None,
            column_name=data.get("columnName", ""),
        )


@dataclass
class StagedStaffRecord:
    first_name: str
    last_name: str
    role: str
    source_row_number: int
    contact: str | None = None
    license_number: str | None = None
    employment_type: str | None = None
    credentials: list[StagedCredential] = field(default_factory=list)
    competencies: list[StagedCompetency] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    excluded: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "rowNumber": self.source_row_number,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
            "role": self.role,
            "contact": self.contact,
            "licenseNumber": self.license_number,
            "employmentType": self.employment_type,
            "credentials": [c.to_dict() for c in self.credentials],
            "competencies": [c.to_dict() for c in self.competencies],
            "warnings": list(self.warnings),
            "excluded": self.excluded,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StagedStaffRecord:
        # fullName は派生値なので入力側の値は無視する
        return cls(
            first_name=str(data.get("firstName") or ""),
            last_name=str(data.get("lastName") or ""),
            role=str(data.get("role") or ""),
            source_row_number=int(data.get("rowNumber", -1)),
            contact=data.get("contact") or None,
            license_number=data.get("licenseNumber") or None,
            employment_type=data.get("employmentType") or None,
            credentials=[StagedCredential.from_dict(c) for c in data.get("credentials") or []],
            competencies=[StagedCompetency.from_dict(c) for c in data.get("competencies") or []],
            warnings=list(data.get("warnings") or []),
            excluded=bool(data.get("excluded", False)),
        )


@dataclass(frozen=True)
class ImportWarning:
    """Row-level warning list shown to the reviewer. Never blocks commit."""
    row: int
    name: str
    warnings: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "name": self.name, "warnings": list(self.warnings)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImportWarning:
        return cls(
            row=int(data["row"]),
            name=str(data.get("name", "")),
            warnings=tuple(data.get("warnings") or ()),
        )


@dataclass
class ImportStats:
    total_staff: int = 0
    total_credentials: int = 0
    total_competencies: int = 0
    parse_errors: int = 0  # 日付変換に失敗した非空セル数

    def to_dict(self) -> dict[str, int]:
        return {
            "totalStaff": self.total_staff,
            "totalCredentials": self.total_credentials,
            "totalCompetencies": self.total_competencies,
            "parseErrors": self.parse_errors,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImportStats:
        return cls(
            total_staff=int(data.get("totalStaff", 0)),
            total_credentials=int(data.get("totalCredentials", 0)),
            total_competencies=int(data.get("totalCompetencies", 0)),
            parse_errors=int(data.get("parseErrors", 0)),
        )
