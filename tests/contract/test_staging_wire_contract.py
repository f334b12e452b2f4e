from __future__ import annotations

import json
import re

from credential_import.db.memory import InMemoryStaffStore
from credential_import.logging.error_log import ErrorLogBuffer
from credential_import.models.mapping import ColumnMapping, ColumnTarget
from credential_import.services.commit import commit_staging
from credential_import.services.preview import StagingDataset, build_preview
from credential_import.services.summary import render_summary_line

STAFF_KEYS = {
    "rowNumber", "firstName", "lastName", "fullName", "role", "contact",
    "licenseNumber", "employmentType", "credentials", "competencies", "warnings", "excluded",
}
SUMMARY_RE = re.compile(
    r"^SUMMARY staff=\d+ merged=\d+ credentials=\d+ competencies=\d+ errors=\d+ excluded=\d+ elapsed_sec=\d+(\.\d+)?$"
)


def _dataset(roster_rows, credential_types) -> StagingDataset:
    mapping = ColumnMapping(targets={3: ColumnTarget.credential(1), 5: ColumnTarget.competency(10)})
    return build_preview(roster_rows[1:], mapping, headers=roster_rows[0], catalog=credential_types)


def test_staging_wire_keys(roster_rows, credential_types):
    data = json.loads(json.dumps(_dataset(roster_rows, credential_types).to_dict()))
    assert set(data) == {"staff", "warnings", "stats"}
    assert set(data["stats"]) == {"totalStaff", "totalCredentials", "totalCompetencies", "parseErrors"}
    assert all(set(s) == STAFF_KEYS for s in data["staff"])
    assert set(data["staff"][0]["credentials"][0]) == {"credentialTypeId", "expirationDate", "columnName"}
    assert set(data["staff"][0]["competencies"][0]) == {"credentialTypeId", "completionDate", "columnName"}
    assert all(set(w) == {"row", "name", "warnings"} for w in data["warnings"])


def test_staging_survives_json_and_commits(roster_rows, credential_types):
    original = _dataset(roster_rows, credential_types)
    rebuilt = StagingDataset.from_dict(json.loads(json.dumps(original.to_dict())))
    assert rebuilt == original

    result = commit_staging(rebuilt.staff, None, InMemoryStaffStore())
    assert result.staff_created == original.stats.total_staff
    assert result.credentials_assigned == original.stats.total_credentials
    assert result.competencies_assigned == original.stats.total_competencies


def test_mapping_wire_shape():
    mapping = ColumnMapping(license_num_column=2, targets={4: ColumnTarget.credential(2), 3: ColumnTarget.competency(10)})
    data = json.loads(json.dumps(mapping.to_dict()))
    assert data == {
        "nameColumn": 0,
        "contactColumn": 1,
        "licenseNumColumn": 2,
        "credentials": {"4": 2},
        "competencies": {"3": 10},
    }
    assert ColumnMapping.from_dict(data) == mapping


def test_error_log_and_summary_contract(tmp_path):
    store = InMemoryStaffStore(known_type_ids={1})
    dataset = StagingDataset.from_dict({
        "staff": [{
            "firstName": "Jane", "lastName": "Doe", "role": "RN", "rowNumber": 3,
            "credentials": [{"credentialTypeId": 99, "expirationDate": "2026-06-30"}],
        }],
    })
    buffer = ErrorLogBuffer(source="staging.json", logs_dir=tmp_path)
    result = commit_staging(dataset.staff, None, store, error_log=buffer)

    record = json.loads(buffer.flush().read_text(encoding="utf-8").splitlines()[0])
    assert set(record) == {"timestamp", "source", "row", "staff", "error_type", "message"}
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z", record["timestamp"])
    assert record["error_type"] == "CREDENTIAL_ASSIGN_FAILED"
    assert SUMMARY_RE.match(render_summary_line(result))
