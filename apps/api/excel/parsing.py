"""
Workbook parsing with openpyxl.

The first row of the first worksheet is the header row; every following row
becomes a dict keyed by header. Blank headers become "Column <n>".
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from io import BytesIO
from typing import Any
from zipfile import BadZipFile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from packages.shared.exceptions import ValidationError

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_CONTENT_TYPE = "application/vnd.ms-excel"
EXCEL_CONTENT_TYPES = frozenset({XLSX_CONTENT_TYPE, XLS_CONTENT_TYPE})

ZIP_MAGIC = b"PK\x03\x04"  # xlsx
OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"  # legacy xls

ONLY_EXCEL = "Only Excel files are allowed"
LEGACY_XLS = "Legacy .xls workbooks are not supported, save the file as .xlsx"


def check_upload(content_type: str | None, content: bytes) -> None:
    """
    Reject uploads that parse_workbook could never read.

    Both Excel content types are recognised, but only OOXML (zip) workbooks
    are accepted.

    Raises:
        ValidationError: For non-Excel content types and legacy .xls bytes
    """
    if content_type not in EXCEL_CONTENT_TYPES:
        raise ValidationError(ONLY_EXCEL)
    if content_type == XLS_CONTENT_TYPE or content.startswith(OLE_MAGIC):
        raise ValidationError(LEGACY_XLS)
    if not content.startswith(ZIP_MAGIC):
        raise ValidationError(ONLY_EXCEL)


@dataclass
class ParsedWorkbook:
    """First-sheet contents of a workbook."""

    sheet_names: list[str]
    columns: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)
    skipped_rows: int = 0


def _cell_value(value: Any) -> Any:
    if isinstance(value, datetime | date | time):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, str):
        return value.strip()
    return value


def _is_empty(values: tuple[Any, ...]) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in values)


def _header_names(header: tuple[Any, ...]) -> list[str]:
    names: list[str] = []
    for index, cell in enumerate(header, start=1):
        name = str(cell).strip() if cell is not None else ""
        if not name or name in names:
            name = f"Column {index}"
        names.append(name)
    return names


def parse_workbook(content: bytes) -> ParsedWorkbook:
    """
    Parse the first worksheet of an .xlsx workbook.

    Raises:
        ValidationError: If the content is not a readable workbook
    """
    try:
        workbook = openpyxl.load_workbook(BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
        raise ValidationError("Unable to read excel file", errors=[{"message": str(e)}]) from None

    try:
        sheet_names = list(workbook.sheetnames)
        sheet = workbook.worksheets[0] if workbook.worksheets else None
        if sheet is None:
            return ParsedWorkbook(sheet_names=sheet_names, columns=[])

        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return ParsedWorkbook(sheet_names=sheet_names, columns=[])

        columns = _header_names(header)
        parsed = ParsedWorkbook(sheet_names=sheet_names, columns=columns)
        for values in rows:
            if _is_empty(values):
                parsed.skipped_rows += 1
                continue
            parsed.rows.append(
                {
                    column: _cell_value(values[i]) if i < len(values) else None
                    for i, column in enumerate(columns)
                }
            )
        return parsed
    finally:
        workbook.close()
