# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from credential_import.db.memory import InMemoryCatalog, InMemoryStaffStore
from credential_import.logging.init import reset_logging
from credential_import.models.column_analysis import CredentialType


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def credential_types() -> list[CredentialType]:
    return [
        CredentialType(id=1, name="BLS", category="Certification", renewal_period_months=24),
        CredentialType(id=2, name="ACLS", category="Certification", renewal_period_months=24),
        CredentialType(id=3, name="State License", category="License", renewal_period_months=24),
        CredentialType(id=10, name="Impella", category="Competency", renewal_period_months=None),
    ]


@pytest.fixture()
def catalog(credential_types) -> InMemoryCatalog:
    return InMemoryCatalog(credential_types)


@pytest.fixture()
def store(catalog) -> InMemoryStaffStore:
    return InMemoryStaffStore(known_type_ids=catalog.ids())


@pytest.fixture()
def roster_rows() -> list[list[object]]:
    """Header row + role groups, as they come out of an HR export."""
    return [
        ["Name", "Phone", "License #", "BLS", "ACLS", "Impella"],
        ["RN", None, None, None, None, None],
        ["Jane Doe", "555-1234", "RN123", "06/30/2026", "6/302025", "1/15/2024"],
        ["John Smith", "555-9876", None, None, "12/1/26", None],
        [None, None, None, None, None, None],
        ["RCIS", None, None, None, None, None],
        ["Mary Ann Jones", 5551111, None, "soon", None, "2/3/2023"],
    ]


def make_excel(path: Path, rows: list[list[object]], sheet: str = "Roster") -> Path:
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return path


@pytest.fixture()
def roster_xlsx(temp_workdir: Path, roster_rows) -> Path:
    return make_excel(temp_workdir / "data" / "roster.xlsx", roster_rows)


@pytest.fixture()
def write_xlsx():
    return make_excel
