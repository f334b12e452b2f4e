from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol

from ..models.column_analysis import CredentialType
from ..models.staging import StagedCompetency, StagedCredential, StagedStaffRecord

"""Persistence boundary used by the import pipeline.

Implementations: db.store (PostgreSQL via psycopg2) and db.memory (mock mode
and tests). Every failure is raised as PersistenceError so callers have a
single exception type to isolate per row.
"""

__all__ = [
    "PersistenceError",
    "DuplicateStaffError",
    "CredentialTypeCatalog",
    "StaffStore",
]


class PersistenceError(Exception):
    pass


class DuplicateStaffError(PersistenceError):
    pass


class CredentialTypeCatalog(Protocol):
    def list_all(self) -> list[CredentialType]: ...

    def create(self, name: str, category: str, is_expiring: bool) -> CredentialType: ...


class StaffStore(Protocol):
    def row_scope(self) -> AbstractContextManager[None]:
        """Unit of work for one staff row (commit on success, rollback on error)."""
        ...

    def find_staff(self, first_name: str, last_name: str) -> int | None: ...

    def update_staff(self, staff_id: int, record: StagedStaffRecord) -> None: ...

    def create_staff(self, record: StagedStaffRecord) -> int: ...

    def create_credential_assignment(self, staff_id: int, credential: StagedCredential) -> None: ...

    def create_competency_assignment(self, staff_id: int, competency: StagedCompetency) -> None: ...
