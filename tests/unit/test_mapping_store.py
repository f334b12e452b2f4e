from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from credential_import.db.base import CredentialTypeCatalog
from credential_import.models.column_analysis import ColumnKind, CredentialType
from credential_import.models.mapping import ColumnMapping, ColumnTarget
from credential_import.services.mapping_store import MappingError, MappingStore


@pytest.fixture()
def mapping_store(catalog) -> MappingStore:
    return MappingStore(catalog, column_count=6)


def test_defaults(mapping_store):
    assert mapping_store.name_column == 0
    assert mapping_store.contact_column == 1
    assert mapping_store.license_num_column is None
    assert mapping_store.credentials == {}
    assert mapping_store.competencies == {}
    assert {ct.id for ct in mapping_store.credential_types} == {1, 2, 3, 10}


def test_set_columns(mapping_store):
    mapping_store.set_name_column(2)
    mapping_store.set_contact_column(None)
    mapping_store.set_license_num_column(5)
    assert (mapping_store.name_column, mapping_store.contact_column, mapping_store.license_num_column) == (2, None, 5)

    with pytest.raises(MappingError):
        mapping_store.set_name_column(6)
    with pytest.raises(MappingError):
        mapping_store.set_contact_column(-1)


def test_bind_replaces_previous_target(mapping_store):
    mapping_store.bind_credential(3, 1)
    assert mapping_store.credentials == {3: 1}

    mapping_store.bind_competency(3, 10)
    assert mapping_store.credentials == {}
    assert mapping_store.competencies == {3: 10}
    assert mapping_store.target(3) == ColumnTarget(ColumnKind.COMPETENCY, 10)

    assert mapping_store.unbind(3) == ColumnTarget(ColumnKind.COMPETENCY, 10)
    assert mapping_store.unbind(3) is None
    assert mapping_store.target(3) is None


def test_bind_rejects_unknown_type_and_bad_column(mapping_store):
    with pytest.raises(MappingError, match="unknown credential type id: 42"):
        mapping_store.bind_credential(3, 42)
    with pytest.raises(MappingError):
        mapping_store.bind_competency(9, 10)
    assert mapping_store.mapping.targets == {}


def test_replace_validates_before_swapping(mapping_store):
    bad = ColumnMapping(targets={3: ColumnTarget.credential(42)})
    with pytest.raises(MappingError):
        mapping_store.replace(bad)
    assert mapping_store.mapping is not bad

    good = ColumnMapping(name_column=0, targets={4: ColumnTarget.credential(2)})
    mapping_store.replace(good)
    assert mapping_store.credentials == {4: 2}


def test_create_type_and_bind(mapping_store, catalog):
    created = mapping_store.create_type_and_bind(5, "Impella CP", "Competency", is_expiring=False)
    assert created.id == 11
    assert created.renewal_period_months is None
    assert mapping_store.competencies == {5: 11}
    assert created in catalog.list_all()
    assert created in mapping_store.credential_types

    expiring = mapping_store.create_type_and_bind(4, "PALS", "Certification", is_expiring=True)
    assert expiring.renewal_period_months == 24
    assert mapping_store.credentials == {4: 12}


def test_create_type_validation_happens_before_catalog_write():
    catalog = MagicMock()
    catalog.list_all.return_value = []
    store = MappingStore(catalog, column_count=3)

    with pytest.raises(MappingError):
        store.create_type_and_bind(1, "  ", "Certification", is_expiring=True)
    with pytest.raises(MappingError):
        store.create_type_and_bind(7, "PALS", "Certification", is_expiring=True)
    catalog.create.assert_not_called()


def test_create_type_failure_leaves_mapping_unchanged():
    catalog = MagicMock()
    catalog.list_all.return_value = [CredentialType(1, "BLS", "Certification", 24)]
    catalog.create.side_effect = RuntimeError("db down")
    store = MappingStore(catalog)
    store.bind_credential(3, 1)

    with pytest.raises(RuntimeError):
        store.create_type_and_bind(3, "PALS", "Certification", is_expiring=True)
    assert store.credentials == {3: 1}


def test_catalog_protocol_is_listed_only_when_types_missing():
    catalog = MagicMock(spec=CredentialTypeCatalog)
    catalog.list_all.return_value = [CredentialType(1, "BLS", "Certification", 24)]
    store = MappingStore(catalog)
    assert [ct.name for ct in store.credential_types] == ["BLS"]
    catalog.list_all.assert_called_once()

    other = MagicMock(spec=CredentialTypeCatalog)
    MappingStore(other, credential_types=[])
    other.list_all.assert_not_called()
