from __future__ import annotations

from credential_import.config.loader import RoleGroupConfig
from credential_import.excel.segmenter import (
    UNASSIGNED_ROLE,
    RoleMatcher,
    is_blank_row,
    segment_rows,
)


def _names(group):
    return [r.cells.get(0) for r in group.rows]


def test_detect_role_headers():
    matcher = RoleMatcher()
    assert matcher.detect_role({0: "RN"}) == "RN"
    assert matcher.detect_role({0: "  Registered Nurse  "}) == "RN"
    assert matcher.detect_role({0: "rcis"}) == "RCIS"
    assert matcher.detect_role({0: "Cardiovascular Tech"}) == "RCIS"
    assert matcher.detect_role({0: "RNs"}) == "RN"
    assert matcher.detect_role({0: "Registered Nurses"}) == "RN"
    assert matcher.detect_role({0: "Techs"}) == "RCIS"
    assert matcher.detect_role({0: "Cardiovascular Technologists"}) == "RCIS"
    assert matcher.detect_role({0: "Misc/Agency"}) == "Miscellaneous"
    assert matcher.detect_role({0: "Jane Doe"}) is None
    # 単語境界: "Bernard" は rn を含むがヘッダではない
    assert matcher.detect_role({0: "Bernard Smith"}) is None
    assert matcher.detect_role({0: None, 1: "RN"}) is None


def test_is_blank_row():
    assert is_blank_row({0: None, 1: "  ", 2: ""})
    assert is_blank_row({})
    assert not is_blank_row({0: None, 1: "x"})


def test_segments_follow_headers_in_order():
    rows = [
        ["Early Person"],
        ["RN"],
        ["Jane Doe"],
        [None, None],
        ["John Smith"],
        ["RCIS"],
        ["Alex Kim"],
    ]
    groups = list(segment_rows(rows))
    assert [g.role for g in groups] == [UNASSIGNED_ROLE, "RN", "RCIS"]
    assert _names(groups[0]) == ["Early Person"]
    assert _names(groups[1]) == ["Jane Doe", "John Smith"]
    assert [r.offset for r in groups[1].rows] == [2, 4]
    assert groups[1].header_offset == 1
    assert _names(groups[2]) == ["Alex Kim"]


def test_header_without_rows_yields_empty_group():
    groups = list(segment_rows([["RN"], ["RCIS"], ["Alex Kim"]]))
    assert [(g.role, len(g.rows)) for g in groups] == [("RN", 0), ("RCIS", 1)]


def test_no_unassigned_group_when_sheet_starts_with_header():
    groups = list(segment_rows([[None], ["RN"], ["Jane Doe"]]))
    assert [g.role for g in groups] == ["RN"]


def test_segment_rows_is_lazy():
    def rows():
        yield ["RN"]
        yield ["Jane Doe"]
        yield ["RCIS"]
        raise AssertionError("read past the first boundary")

    first = next(segment_rows(rows()))
    assert first.role == "RN"
    assert _names(first) == ["Jane Doe"]


def test_custom_role_groups_and_unassigned_label():
    matcher = RoleMatcher([RoleGroupConfig("Tech", ("technician",), "PRN")])
    groups = list(segment_rows([["Sam Lee"], ["Technician"], ["Pat Doe"]], matcher, unassigned_role="None Given"))
    assert [g.role for g in groups] == ["None Given", "Tech"]
    assert matcher.employment_type("Tech") == "PRN"
    assert matcher.employment_type("Other") is None


def test_staff_role_per_group():
    matcher = RoleMatcher()
    assert matcher.staff_role("RCIS") == "Tech"
    assert matcher.staff_role("RN") == "RN"
    assert matcher.staff_role("Miscellaneous") == "Traveler"
    # 未知のグループ (Unassigned など) はそのまま
    assert matcher.staff_role("Unassigned") == "Unassigned"

    custom = RoleMatcher([RoleGroupConfig("EP", ("ep",), None)])
    assert custom.staff_role("EP") == "EP"
