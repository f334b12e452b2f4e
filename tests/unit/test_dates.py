from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

import pandas as pd
import pytest

from credential_import.excel.dates import MAX_SERIAL, normalize_date, serial_to_date


@pytest.mark.parametrize("empty", [None, "", "   ", float("nan"), pd.NaT, 0, 0.0])
def test_empty_values_return_none_without_warning(empty):
    warnings: list[str] = []
    assert normalize_date(empty, warnings) is None
    assert warnings == []


@pytest.mark.parametrize(
    "serial, expected",
    [
        (1, "1900-01-01"),
        (59, "1900-02-28"),
        (61, "1900-03-01"),
        (45658, "2025-01-01"),
        (46203, "2026-06-30"),
        (46203.75, "2026-06-30"),  # 時刻部分は捨てる
        (MAX_SERIAL, "9999-12-31"),
    ],
)
def test_serial_numbers(serial, expected):
    warnings: list[str] = []
    assert normalize_date(serial, warnings) == expected
    assert warnings == []


def test_serial_range_is_continuous():
    warnings: list[str] = []
    prev = date.fromisoformat(normalize_date(61, warnings))
    for serial in range(62, 3000):
        cur = date.fromisoformat(normalize_date(serial, warnings))
        assert cur - prev == timedelta(days=1)
        prev = cur
    assert warnings == []


@pytest.mark.parametrize("serial", [-5, 60, MAX_SERIAL + 1, 1e12])
def test_invalid_serial_warns(serial):
    warnings: list[str] = []
    assert normalize_date(serial, warnings) is None
    assert len(warnings) == 1
    assert warnings[0].startswith("Could not parse Excel date number: ")


def test_invalid_serial_message_formats_whole_floats():
    warnings: list[str] = []
    normalize_date(-3.0, warnings)
    assert warnings == ["Could not parse Excel date number: -3"]


def test_serial_to_date_rejects_leap_bug_day():
    with pytest.raises(ValueError):
        serial_to_date(60)


def test_native_dates():
    warnings: list[str] = []
    assert normalize_date(datetime(2026, 6, 30, 15, 45), warnings) == "2026-06-30"
    assert normalize_date(date(2024, 2, 29), warnings) == "2024-02-29"
    assert normalize_date(pd.Timestamp("2025-11-05"), warnings) == "2025-11-05"
    assert warnings == []


def test_aware_datetime_uses_utc_date():
    warnings: list[str] = []
    late_evening = datetime(2026, 6, 30, 22, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert normalize_date(late_evening, warnings) == "2026-07-01"
    assert normalize_date(datetime(2026, 6, 30, 1, 0, tzinfo=UTC), warnings) == "2026-06-30"


@pytest.mark.parametrize(
    "text, fixed, expected",
    [
        ("6/302025", "6/30/2025", "2025-06-30"),
        ("12/12024", "12/1/2024", "2024-12-01"),
        ("01/052026", "01/05/2026", "2026-01-05"),
    ],
)
def test_typo_repair(text, fixed, expected):
    warnings: list[str] = []
    assert normalize_date(text, warnings) == expected
    assert warnings == [f'Fixed date typo: "{text}" -> "{fixed}"']


def test_typo_repair_with_impossible_date_is_unparseable():
    warnings: list[str] = []
    assert normalize_date("2/302025", warnings) is None
    assert warnings == ['Could not parse date: "2/302025"']


@pytest.mark.parametrize(
    "text, expected",
    [
        ("06/30/2026", "2026-06-30"),
        ("6/30/2026", "2026-06-30"),
        ("2026-06-30", "2026-06-30"),
        ("2026/06/30", "2026-06-30"),
        ("June 30, 2026", "2026-06-30"),
        ("Jun 30 2026", "2026-06-30"),
        ("30 Jun 2026", "2026-06-30"),
        ("  06-30-2026 ", "2026-06-30"),
    ],
)
def test_generic_strings(text, expected):
    warnings: list[str] = []
    assert normalize_date(text, warnings) == expected
    assert warnings == []


@pytest.mark.parametrize(
    "text, expected",
    [
        ("6/30/26", "2026-06-30"),
        ("6/30/50", "2050-06-30"),
        ("6/30/51", "1951-06-30"),
        ("1/2/99", "1999-01-02"),
        ("1/2/00", "2000-01-02"),
    ],
)
def test_two_digit_year_pivot(text, expected):
    warnings: list[str] = []
    assert normalize_date(text, warnings) == expected
    assert warnings == []


@pytest.mark.parametrize("text", ["soon", "pending renewal", "13/45/2025", "n/a", "2025-13-01", "True"])
def test_unparseable_strings(text):
    warnings: list[str] = []
    assert normalize_date(text, warnings) is None
    assert warnings == [f'Could not parse date: "{text}"']


def test_only_appends_to_existing_warnings():
    warnings = ["earlier"]
    sink = warnings
    normalize_date("nope", warnings)
    normalize_date("6/302025", warnings)
    assert sink is warnings
    assert warnings[0] == "earlier"
    assert len(warnings) == 3


def test_never_raises_on_odd_input():
    warnings: list[str] = []
    assert normalize_date(True, warnings) is None
    assert normalize_date(object(), warnings) is None
    assert len(warnings) == 2
