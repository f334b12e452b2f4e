from __future__ import annotations

import logging
from collections.abc import Sequence

from ..db.base import CredentialTypeCatalog
from ..models.column_analysis import ColumnKind, CredentialType
from ..models.mapping import ColumnMapping, ColumnTarget

"""Mapping store: the reviewer's column -> credential type bindings.

Owned by one import session and kept between the analyze and preview phases.
Binding a column replaces whatever it was bound to before, so a column is
never a credential and a competency at once.
"""

__all__ = [
    "MappingError",
    "MappingStore",
]

logger = logging.getLogger(__name__)


class MappingError(Exception):
    """Raised for mappings that cannot be applied (unmapped name column, bad index, unknown type)."""


class MappingStore:
    def __init__(
        self,
        catalog: CredentialTypeCatalog,
        mapping: ColumnMapping | None = None,
        column_count: int | None = None,
        credential_types: Sequence[CredentialType] | None = None,
    ) -> None:
        """
        Args:
            catalog: CredentialTypeCatalog used by create_type_and_bind
            mapping: initial mapping (defaults: name=0, contact=1)
            column_count: sheet width, enables column index checks
            credential_types: known catalog rows; listed from catalog when omitted
        """
        self._catalog = catalog
        self._mapping = mapping if mapping is not None else ColumnMapping()
        self.column_count = column_count
        types = credential_types if credential_types is not None else catalog.list_all()
        self._types: dict[int, CredentialType] = {ct.id: ct for ct in types}

    # -- reads -----------------------------------------------------------------

    @property
    def mapping(self) -> ColumnMapping:
        return self._mapping

    @property
    def credential_types(self) -> list[CredentialType]:
        return list(self._types.values())

    @property
    def name_column(self) -> int | None:
        return self._mapping.name_column

    @property
    def contact_column(self) -> int | None:
        return self._mapping.contact_column

    @property
    def license_num_column(self) -> int | None:
        return self._mapping.license_num_column

    @property
    def credentials(self) -> dict[int, int]:
        return self._mapping.credentials

    @property
    def competencies(self) -> dict[int, int]:
        return self._mapping.competencies

    def target(self, column: int) -> ColumnTarget | None:
        return self._mapping.targets.get(column)

    # -- validation ------------------------------------------------------------

    def _check_column(self, column: int | None, *, optional: bool = True) -> None:
        if column is None:
            if optional:
                return
            raise MappingError("column is required")
        if column < 0 or (self.column_count is not None and column >= self.column_count):
            raise MappingError(f"column {column} is out of range")

    def _check_type(self, credential_type_id: int) -> None:
        if credential_type_id not in self._types:
            raise MappingError(f"unknown credential type id: {credential_type_id}")

    # -- replace operations ------------------------------------------------------

    def set_name_column(self, column: int | None) -> None:
        self._check_column(column)
        self._mapping.name_column = column

    def set_contact_column(self, column: int | None) -> None:
        self._check_column(column)
        self._mapping.contact_column = column

    def set_license_num_column(self, column: int | None) -> None:
        self._check_column(column)
        self._mapping.license_num_column = column

    def bind_credential(self, column: int, credential_type_id: int) -> None:
        self._check_column(column, optional=False)
        self._check_type(credential_type_id)
        self._mapping.targets[column] = ColumnTarget.credential(credential_type_id)

    def bind_competency(self, column: int, credential_type_id: int) -> None:
        self._check_column(column, optional=False)
        self._check_type(credential_type_id)
        self._mapping.targets[column] = ColumnTarget.competency(credential_type_id)

    def unbind(self, column: int) -> ColumnTarget | None:
        return self._mapping.targets.pop(column, None)

    def replace(self, mapping: ColumnMapping) -> None:
        """Swap in a whole mapping (for example one loaded from a file)."""
        for col in (mapping.name_column, mapping.contact_column, mapping.license_num_column):
            self._check_column(col)
        for col, target in mapping.targets.items():
            self._check_column(col, optional=False)
            self._check_type(target.credential_type_id)
        self._mapping = mapping

    def create_type_and_bind(
        self, column: int, name: str, category: str, is_expiring: bool
    ) -> CredentialType:
        """Create a credential type and bind the column to it.

        Everything that can reject the binding is checked before the catalog
        write; if the write fails nothing is bound.
        """
        self._check_column(column, optional=False)
        name = (name or "").strip()
        category = (category or "").strip()
        if not name or not category:
            raise MappingError("name and category are required")

        created = self._catalog.create(name, category, is_expiring)
        self._types[created.id] = created
        kind = ColumnKind.CREDENTIAL if is_expiring else ColumnKind.COMPETENCY
        self._mapping.targets[column] = ColumnTarget(kind, created.id)
        logger.info(f"created credential type id={created.id} name={name!r} bound to column {column}")
        return created
