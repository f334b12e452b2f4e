from __future__ import annotations

from credential_import.excel.reader import SheetData, normalize_rows
from credential_import.services.analyze import analyze_sheet


def _sheet(roster_rows) -> SheetData:
    return SheetData(
        sheet_name="Roster",
        headers=list(roster_rows[0]),
        rows=normalize_rows(roster_rows[1:]),
        file_name="roster.xlsx",
    )


def test_analyze_sheet(roster_rows, credential_types):
    analysis = analyze_sheet(_sheet(roster_rows), credential_types)

    assert analysis.total_rows == 6
    assert analysis.headers[3] == "BLS"
    classified = {c.header: c.classification for c in analysis.columns if c.classification}
    assert set(classified) == {"License #", "BLS", "ACLS", "Impella"}
    assert analysis.role_groups["RN"].count == 2
    assert analysis.role_groups["RN"].start_row == 2
    assert analysis.role_groups["RCIS"].count == 1
    assert analysis.role_groups["RCIS"].start_row == 6
    assert [p["name"] for p in analysis.staff_preview] == ["Jane Doe", "John Smith", "Mary Ann Jones"]
    assert analysis.staff_preview[0]["row"] == 3
    assert analysis.staff_preview[0]["sampleData"]["BLS"] == "06/30/2026"
    assert analysis.existing_credential_types == credential_types


def test_analysis_wire_shape(roster_rows):
    data = analyze_sheet(_sheet(roster_rows)).to_dict()
    assert set(data) == {
        "fileName", "sheetName", "totalRows", "headers", "columnAnalysis",
        "roleGroups", "staffPreview", "existingCredentialTypes",
    }
    assert data["roleGroups"]["RN"] == {"count": 2, "startRow": 2}
    bls = data["columnAnalysis"][3]
    assert bls["classification"] == {
        "type": "credential", "suggestedName": "BLS", "category": "Certification", "isExpiring": True,
    }
    assert data["columnAnalysis"][0]["classification"] is None


def test_rows_before_first_header_are_unassigned():
    sheet = SheetData("S", ["Name"], normalize_rows([["Walk In"], ["RN"], ["Jane Doe"]]))
    analysis = analyze_sheet(sheet)
    assert analysis.role_groups["Unassigned"].count == 1
    assert analysis.role_groups["Unassigned"].start_row == 2
    assert analysis.role_groups["RN"].start_row == 3
