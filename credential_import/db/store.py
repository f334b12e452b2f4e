from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2

from ..models.column_analysis import CredentialType
from ..models.staging import StagedCompetency, StagedCredential, StagedStaffRecord
from .base import PersistenceError

"""PostgreSQL catalog and staff store (psycopg2).

The connection is expected in autocommit mode (see db.connection); row_scope
issues BEGIN/COMMIT/ROLLBACK itself, and every assignment runs under a
SAVEPOINT so one failed assignment leaves the rest of the row usable.
"""

__all__ = [
    "PgCredentialTypeCatalog",
    "PgStaffStore",
]

DEFAULT_EMPLOYMENT_TYPE = "Permanent"


def _db_message(e: Exception) -> str:
    return str(e).strip().splitlines()[0] if str(e).strip() else e.__class__.__name__


class PgCredentialTypeCatalog:
    def __init__(self, cursor: Any, default_renewal_months: int = 24, default_alert_days: int = 90) -> None:
        self.cursor = cursor
        self.default_renewal_months = default_renewal_months
        self.default_alert_days = default_alert_days

    def list_all(self) -> list[CredentialType]:
        try:
            self.cursor.execute(
                "SELECT id, name, category, renewal_period_months FROM credential_types "
                "ORDER BY category, name"
            )
            rows = self.cursor.fetchall()
        except psycopg2.Error as e:
            raise PersistenceError(f"failed listing credential types: {_db_message(e)}") from e
        return [CredentialType(id=r[0], name=r[1], category=r[2], renewal_period_months=r[3]) for r in rows]

    def create(self, name: str, category: str, is_expiring: bool) -> CredentialType:
        # 期限なし (competency) は更新周期/アラートとも NULL
        renewal = self.default_renewal_months if is_expiring else None
        alert = str(self.default_alert_days) if is_expiring else None
        try:
            self.cursor.execute(
                "INSERT INTO credential_types "
                "(name, category, renewal_period_months, alert_days, is_required, verification_required) "
                "VALUES (%s, %s, %s, %s, false, false) "
                "RETURNING id, name, category, renewal_period_months",
                (name, category, renewal, alert),
            )
            row = self.cursor.fetchone()
        except psycopg2.Error as e:
            raise PersistenceError(f"failed creating credential type {name!r}: {_db_message(e)}") from e
        return CredentialType(id=row[0], name=row[1], category=row[2], renewal_period_months=row[3])


class PgStaffStore:
    def __init__(self, cursor: Any, verified_by: int | None = None) -> None:
        self.cursor = cursor
        self.verified_by = verified_by

    @contextmanager
    def row_scope(self) -> Iterator[None]:
        self.cursor.execute("BEGIN")
        try:
            yield
        except Exception:
            try:
                self.cursor.execute("ROLLBACK")
            except psycopg2.Error:  # pragma: no cover - connection already broken
                pass
            raise
        try:
            self.cursor.execute("COMMIT")
        except psycopg2.Error as e:
            raise PersistenceError(f"commit failed: {_db_message(e)}") from e

    def _execute(self, sql: str, params: tuple[Any, ...]) -> None:
        try:
            self.cursor.execute(sql, params)
        except psycopg2.Error as e:
            raise PersistenceError(_db_message(e)) from e

    def find_staff(self, first_name: str, last_name: str) -> int | None:
        self._execute(
            "SELECT id FROM staff_members WHERE LOWER(first_name) = LOWER(%s) AND LOWER(last_name) = LOWER(%s)",
            (first_name, last_name),
        )
        row = self.cursor.fetchone()
        return row[0] if row else None

    def update_staff(self, staff_id: int, record: StagedStaffRecord) -> None:
        self._execute(
            "UPDATE staff_members SET "
            "phone = COALESCE(NULLIF(%s, ''), phone), "
            "role = COALESCE(NULLIF(%s, ''), role), "
            "employment_type = COALESCE(NULLIF(%s, ''), employment_type), "
            "updated_at = NOW() "
            "WHERE id = %s",
            (record.contact or "", record.role, record.employment_type or "", staff_id),
        )

    def create_staff(self, record: StagedStaffRecord) -> int:
        notes = f"License #: {record.license_number}" if record.license_number else None
        self._execute(
            "INSERT INTO staff_members (first_name, last_name, phone, role, employment_type, status, notes) "
            "VALUES (%s, %s, %s, %s, %s, 'Active', %s) RETURNING id",
            (
                record.first_name,
                record.last_name,
                record.contact,
                record.role,
                record.employment_type or DEFAULT_EMPLOYMENT_TYPE,
                notes,
            ),
        )
        row = self.cursor.fetchone()
        if row is None:
            raise PersistenceError("INSERT staff_members returned no id")
        return row[0]

    def _insert_assignment(self, sql: str, params: tuple[Any, ...]) -> None:
        self.cursor.execute("SAVEPOINT assignment")
        try:
            self.cursor.execute(sql, params)
        except psycopg2.Error as e:
            self.cursor.execute("ROLLBACK TO SAVEPOINT assignment")
            raise PersistenceError(_db_message(e)) from e
        self.cursor.execute("RELEASE SAVEPOINT assignment")

    def create_credential_assignment(self, staff_id: int, credential: StagedCredential) -> None:
        self._insert_assignment(
            "INSERT INTO staff_credentials "
            "(staff_id, credential_type_id, expiration_date, status, verified_by, verified_date) "
            "VALUES (%s, %s, %s, 'Active', %s, NOW()) ON CONFLICT DO NOTHING",
            (staff_id, credential.credential_type_id, credential.expiration_date, self.verified_by),
        )

    def create_competency_assignment(self, staff_id: int, competency: StagedCompetency) -> None:
        self._insert_assignment(
            "INSERT INTO staff_credentials "
            "(staff_id, credential_type_id, issue_date, status, verified_by, verified_date) "
            "VALUES (%s, %s, %s, 'Active', %s, NOW()) ON CONFLICT DO NOTHING",
            (staff_id, competency.credential_type_id, competency.completion_date, self.verified_by),
        )
