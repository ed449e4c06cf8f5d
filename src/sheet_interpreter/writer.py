from typing import Sequence

import pandas as pd
from openpyxl.worksheet.worksheet import Worksheet

from .types import (
    ArrayValue,
    BooleanValue,
    ErrorValue,
    NullValue,
    NumberValue,
    TextValue,
    Value,
)
from .utils import column_letter

DEFAULT_SEPARATOR = " | "
ERROR_MARKER = "#ERROR!"


def render(values: Sequence[Sequence[Value]], separator: str = DEFAULT_SEPARATOR) -> str:
    """One line per row, each value rendered with str()."""
    return "\n".join(separator.join(str(value) for value in row) for row in values)


def value_to_python(value: Value) -> None | float | str | bool:
    """Convert a value to what openpyxl and pandas expect in a cell."""
    if isinstance(value, NullValue):
        return None
    if isinstance(value, NumberValue):
        return float(value.value)
    if isinstance(value, BooleanValue):
        return value.value
    if isinstance(value, TextValue):
        return value.value
    if isinstance(value, ErrorValue):
        return ERROR_MARKER
    if isinstance(value, ArrayValue):
        return str(value)
    raise ValueError(f"Cannot write {value!r} to a cell")


def write_values(
    ws: Worksheet, values: Sequence[Sequence[Value]], row: int = 1, col: int = 1
) -> None:
    """Write evaluated values to a worksheet, starting at (row, col), one-based."""
    for row_idx, row_values in enumerate(values):
        for col_idx, value in enumerate(row_values):
            ws.cell(row=row + row_idx, column=col + col_idx, value=value_to_python(value))


def to_dataframe(values: Sequence[Sequence[Value]]) -> pd.DataFrame:
    """Values as a DataFrame with spreadsheet column names. Short rows are
    padded with None."""
    width = max((len(row) for row in values), default=0)
    data = [
        [value_to_python(value) for value in row] + [None] * (width - len(row))
        for row in values
    ]
    return pd.DataFrame(data, columns=[column_letter(i) for i in range(width)])
