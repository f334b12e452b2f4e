from __future__ import annotations

import io
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook reader.

The first sheet row is the column header row; every later row is returned as a
mapping of 0-based column index -> raw cell value (str, number, datetime or
None). Role group header rows stay in the row list: segmenting them is the
job of excel.segmenter, not of the reader.
"""

__all__ = [
    "WorkbookReadError",
    "EmptyWorkbookError",
    "SheetData",
    "read_workbook",
    "normalize_rows",
    "as_cells",
    "is_blank",
    "cell_text",
    "column_label",
]

# ヘッダ行 = Excel 1 行目。データ行は 2 行目から
FIRST_DATA_ROW = 2


class WorkbookReadError(Exception):
    """Raised when the file bytes cannot be read as a workbook."""


class EmptyWorkbookError(Exception):
    """Raised when the sheet has no header row or no data rows."""


@dataclass
class SheetData:
    sheet_name: str
    headers: list[str]
    rows: list[dict[int, Any]]
    file_name: str = ""
    first_row_number: int = FIRST_DATA_ROW


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, float) and pd.isna(value):
        return True
    return value is pd.NaT


def cell_text(value: Any) -> str:
    """Render a raw cell as trimmed display text ("" for blank cells).

    Whole floats lose their ".0" so phone or license numbers typed as numbers
    come back the way they were entered.
    """
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def column_label(headers: Sequence[str] | None, index: int) -> str:
    if headers and 0 <= index < len(headers) and headers[index]:
        return headers[index]
    return f"Column {index + 1}"


def as_cells(row: Mapping[int, Any] | Sequence[Any]) -> dict[int, Any]:
    """Accept either an index-keyed mapping or a plain list of cells."""
    if isinstance(row, Mapping):
        return {int(k): v for k, v in row.items()}
    return dict(enumerate(row))


def normalize_rows(
    raw_rows: Iterable[Mapping[int, Any] | Sequence[Any]],
    null_sentinels: Iterable[str] | None = None,
) -> list[dict[int, Any]]:
    """Convert blanks/NaN and null sentinel strings to None, trim strings."""
    sentinels = {s.upper() for s in null_sentinels} if null_sentinels else set()
    rows: list[dict[int, Any]] = []
    for raw in raw_rows:
        row: dict[int, Any] = {}
        for idx, val in as_cells(raw).items():
            if is_blank(val):
                row[idx] = None
                continue
            if isinstance(val, str):
                stripped = val.strip()
                if stripped.upper() in sentinels:
                    row[idx] = None
                    continue
                val = stripped
            elif isinstance(val, pd.Timestamp):
                val = val.to_pydatetime()
            row[idx] = val
        rows.append(row)
    return rows


def read_workbook(
    source: Path | bytes,
    sheet: int | str = 0,
    null_sentinels: Iterable[str] | None = None,
    file_name: str | None = None,
) -> SheetData:
    """Read one sheet of an .xlsx workbook.

    Parameters
    ----------
    source: ファイルパス or アップロードされた生バイト列
    sheet: シート index (0 = 先頭) またはシート名
    null_sentinels: 空セル扱いにする文字列 (大文字小文字無視)
    file_name: 表示用ファイル名 (bytes 入力時)
    """
    if isinstance(source, bytes | bytearray):
        handle: Any = io.BytesIO(source)
        name = file_name or ""
    else:
        handle = Path(source)
        name = file_name or handle.name

    try:
        xls = pd.ExcelFile(handle, engine="openpyxl")
        sheet_names = [str(s) for s in xls.sheet_names]
        if isinstance(sheet, int):
            if not 0 <= sheet < len(sheet_names):
                raise WorkbookReadError(f"sheet index {sheet} out of range ({len(sheet_names)} sheets)")
            sheet_name = sheet_names[sheet]
        else:
            if sheet not in sheet_names:
                raise WorkbookReadError(f"sheet not found: {sheet}")
            sheet_name = sheet
        # dtype=object: 日付セルは datetime のまま、数値は変換しない
        # 既定の NA 文字列変換は切り、null_sentinels だけで空扱いを決める
        df = xls.parse(sheet_name, header=None, dtype=object, keep_default_na=False, na_values=[""])
    except WorkbookReadError:
        raise
    except Exception as e:
        raise WorkbookReadError(f"could not read workbook {name or '<bytes>'}: {e}") from e

    if df.shape[0] == 0:
        raise EmptyWorkbookError(f"sheet '{sheet_name}' is empty")

    headers = [cell_text(v) for v in df.iloc[0].tolist()]
    data = normalize_rows((raw.tolist() for _, raw in df.iloc[1:].iterrows()), null_sentinels)
    if not data:
        raise EmptyWorkbookError(f"sheet '{sheet_name}' has a header row but no data rows")
    return SheetData(sheet_name=sheet_name, headers=headers, rows=data, file_name=name)
