from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from ..models.column_analysis import CredentialType
from ..models.staging import StagedCompetency, StagedCredential, StagedStaffRecord
from .base import DuplicateStaffError, PersistenceError

"""In-memory catalog and staff store.

Used by the CLI mock mode (no database reachable, or DISABLE_DB_CONNECT=1)
and by tests. row_scope gives the same all-or-nothing behaviour per row as the
PostgreSQL store.
"""

__all__ = [
    "InMemoryCatalog",
    "InMemoryStaffStore",
]


class InMemoryCatalog:
    def __init__(
        self,
        types: Iterable[CredentialType] = (),
        default_renewal_months: int = 24,
    ) -> None:
        self._types: dict[int, CredentialType] = {t.id: t for t in types}
        self.default_renewal_months = default_renewal_months

    def list_all(self) -> list[CredentialType]:
        return sorted(self._types.values(), key=lambda t: (t.category, t.name))

    def create(self, name: str, category: str, is_expiring: bool) -> CredentialType:
        new_id = max(self._types, default=0) + 1
        created = CredentialType(
            id=new_id,
            name=name,
            category=category,
            renewal_period_months=self.default_renewal_months if is_expiring else None,
        )
        self._types[new_id] = created
        return created

    def ids(self) -> set[int]:
        return set(self._types)


@dataclass
class InMemoryStaffStore:
    known_type_ids: set[int] | None = None  # None = 型 ID チェックなし
    staff: dict[int, dict[str, Any]] = field(default_factory=dict)
    credentials: list[tuple[int, int, str | None]] = field(default_factory=list)
    competencies: list[tuple[int, int, str | None]] = field(default_factory=list)

    @contextmanager
    def row_scope(self) -> Iterator[None]:
        staff_keys = set(self.staff)
        n_cred, n_comp = len(self.credentials), len(self.competencies)
        try:
            yield
        except Exception:
            for key in set(self.staff) - staff_keys:
                del self.staff[key]
            del self.credentials[n_cred:]
            del self.competencies[n_comp:]
            raise

    def find_staff(self, first_name: str, last_name: str) -> int | None:
        for staff_id, row in self.staff.items():
            if (
                row["first_name"].lower() == first_name.lower()
                and row["last_name"].lower() == last_name.lower()
            ):
                return staff_id
        return None

    def update_staff(self, staff_id: int, record: StagedStaffRecord) -> None:
        row = self.staff.get(staff_id)
        if row is None:
            raise PersistenceError(f"staff {staff_id} not found")
        for key, value in (
            ("phone", record.contact),
            ("role", record.role),
            ("employment_type", record.employment_type),
        ):
            if value:
                row[key] = value

    def create_staff(self, record: StagedStaffRecord) -> int:
        if self.find_staff(record.first_name, record.last_name) is not None:
            raise DuplicateStaffError(f"staff already exists: {record.full_name}")
        new_id = max(self.staff, default=0) + 1
        self.staff[new_id] = {
            "first_name": record.first_name,
            "last_name": record.last_name,
            "phone": record.contact,
            "role": record.role,
            "employment_type": record.employment_type,
            "license_number": record.license_number,
            "status": "Active",
        }
        return new_id

    def _check(self, staff_id: int, credential_type_id: int) -> None:
        if staff_id not in self.staff:
            raise PersistenceError(f"staff {staff_id} not found")
        if self.known_type_ids is not None and credential_type_id not in self.known_type_ids:
            raise PersistenceError(f"credential type {credential_type_id} not found")

    def create_credential_assignment(self, staff_id: int, credential: StagedCredential) -> None:
        self._check(staff_id, credential.credential_type_id)
        self.credentials.append((staff_id, credential.credential_type_id, credential.expiration_date))

    def create_competency_assignment(self, staff_id: int, competency: StagedCompetency) -> None:
        self._check(staff_id, competency.credential_type_id)
        self.competencies.append((staff_id, competency.credential_type_id, competency.completion_date))
