from __future__ import annotations

import numbers
import re
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pandas as pd

"""Date normalizer: any cell value -> "YYYY-MM-DD" or None.

Warnings are appended to the caller's list (never replaced) whenever a value
has to be repaired or cannot be read. normalize_date never raises.

Spreadsheet serials follow the 1900 date system, including the phantom
1900-02-29 (serial 60), which has no real calendar date and is reported as
unparseable.
"""

__all__ = [
    "normalize_date",
    "serial_to_date",
    "MAX_SERIAL",
]

_EPOCH = date(1899, 12, 31)
_LEAP_BUG_SERIAL = 60
MAX_SERIAL = 2958465  # 9999-12-31

# "6/302025" -> 月/日 の直後に区切りなしで 4 桁年
_TYPO_RE = re.compile(r"^(\d{1,2})/(\d{1,2})(\d{4})$")
_MDY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")
_PIVOT = 50

# Generic parse attempts, tried in order.
_GENERIC_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%m-%d-%Y",
    "%m.%d.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%b %Y",
    "%B %Y",
)


def _fmt_number(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def serial_to_date(serial: float | int) -> date:
    """Convert a spreadsheet date serial to a date (time of day dropped).

    Raises ValueError for serials with no calendar date.
    """
    if pd.isna(serial):
        raise ValueError("serial is NaN")
    whole = int(serial)
    if whole < 1 or whole > MAX_SERIAL or whole == _LEAP_BUG_SERIAL:
        raise ValueError(f"serial out of range: {serial}")
    # 60 以降は存在しない 1900-02-29 の分を 1 日戻す
    if whole > _LEAP_BUG_SERIAL:
        whole -= 1
    return _EPOCH + timedelta(days=whole)


def _parse_generic(text: str) -> date | None:
    for fmt in _GENERIC_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _parse_mdy(text: str) -> date | None:
    m = _MDY_RE.match(text)
    if not m:
        return None
    month, day, year = (int(g) for g in m.groups())
    if len(m.group(3)) == 2:
        year += 1900 if year > _PIVOT else 2000
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _normalize_text(text: str, warnings: list[str]) -> str | None:
    typo = _TYPO_RE.match(text)
    if typo:
        month, day, year = typo.groups()
        fixed = f"{month}/{day}/{year}"
        try:
            repaired = date(int(year), int(month), int(day))
        except ValueError:
            repaired = None
        if repaired is not None:
            warnings.append(f'Fixed date typo: "{text}" -> "{fixed}"')
            return repaired.isoformat()

    parsed = _parse_generic(text) or _parse_mdy(text)
    if parsed is not None:
        return parsed.isoformat()

    warnings.append(f'Could not parse date: "{text}"')
    return None


def normalize_date(raw_value: Any, warnings: list[str]) -> str | None:
    """Normalize a raw cell value to "YYYY-MM-DD".

    Parameters
    ----------
    raw_value: Excel シリアル値 / datetime / date / 文字列 / 空
    warnings: 警告の追記先 (呼び出し側所有)

    Returns None for empty input (no warning) and for anything that cannot be
    read (exactly one warning appended).
    """
    if raw_value is None or raw_value is pd.NaT:
        return None

    # pandas.Timestamp も datetime のサブクラス
    if isinstance(raw_value, datetime):
        if raw_value.tzinfo is not None:
            raw_value = raw_value.astimezone(UTC)
        return raw_value.date().isoformat()
    if isinstance(raw_value, date):
        return raw_value.isoformat()

    if isinstance(raw_value, bool):
        warnings.append(f'Could not parse date: "{raw_value}"')
        return None

    if isinstance(raw_value, numbers.Real):
        # 0 は空セル扱い
        if raw_value == 0 or (isinstance(raw_value, float) and pd.isna(raw_value)):
            return None
        try:
            return serial_to_date(raw_value).isoformat()
        except (ValueError, OverflowError):
            warnings.append(f"Could not parse Excel date number: {_fmt_number(raw_value)}")
            return None

    text = str(raw_value).strip()
    if not text:
        return None
    return _normalize_text(text, warnings)
