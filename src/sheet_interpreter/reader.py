import logging
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from .sheet import Sheet

DEFAULT_SEPARATOR = "|"


def read_text(text: str, separator: str = DEFAULT_SEPARATOR) -> list[list[str]]:
    """Split text into rows of raw cell text. Empty cells are kept, so `a||b|`
    has four cells."""
    return [line.split(separator) for line in text.splitlines()]


def read_file(path: str | Path, separator: str = DEFAULT_SEPARATOR) -> list[list[str]]:
    rows = read_text(Path(path).read_text(encoding="utf-8"), separator)
    logging.debug(f"Read {len(rows)} rows from {path}")
    return rows


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    # bool first, it's a subclass of int
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def read_worksheet(ws: Worksheet) -> list[list[str]]:
    """Raw cell text of an openpyxl worksheet. Formulas are kept as text, so a
    cell holding "=A1 + 1" is read as a formula of this language."""
    rows = [
        [_cell_text(value) for value in row]
        for row in ws.iter_rows(values_only=True)
    ]
    # Trailing empty cells are openpyxl padding, not content
    for row in rows:
        while row and row[-1] == "":
            row.pop()
    logging.debug(f"Read {len(rows)} rows from worksheet {ws.title}")
    return rows


def load_sheet(path: str | Path, separator: str = DEFAULT_SEPARATOR) -> Sheet:
    """Load a delimited text file. Raises ParseError on a malformed formula."""
    return Sheet.from_text_rows(read_file(path, separator))


def load_workbook_sheet(path: str | Path, sheet_name: str | None = None) -> Sheet:
    """Load a worksheet of an .xlsx file, the active one by default."""
    wb = load_workbook(path)
    ws = wb[sheet_name] if sheet_name else wb.active
    assert isinstance(ws, Worksheet), f"No worksheet to read in {path}"
    return Sheet.from_text_rows(read_worksheet(ws))
