import logging
from typing import NamedTuple, Optional, Sequence

from .cells import (
    CellContent,
    EmptyContent,
    Label,
    LabelContent,
    parse_cell,
)
from .errors import (
    ParseError,
    SheetStructureError,
    TokenizerError,
)
from .utils import format_address


class CellAddress(NamedTuple):
    """Zero-based (column, row) coordinates of a cell."""

    column: int
    row: int

    def shift_up(self, rows: int = 1) -> "CellAddress":
        return CellAddress(self.column, self.row - rows)

    def shift_down(self, rows: int = 1) -> "CellAddress":
        return CellAddress(self.column, self.row + rows)

    def with_column(self, column: int) -> "CellAddress":
        return CellAddress(column, self.row)

    def __str__(self) -> str:
        return format_address(self.column, self.row)


class CellGroup(NamedTuple):
    """Rows between two header rows. `labels` has one entry per column of the
    header, None where the header cell is empty."""

    start_row: int
    row_count: int
    labels: tuple[Optional[Label], ...]

    @property
    def last_row(self) -> int:
        return self.start_row + self.row_count - 1

    def has_label_at(self, column: int) -> bool:
        return column < len(self.labels) and self.labels[column] is not None


class LabelEntry(NamedTuple):
    column: int
    group: CellGroup


class Sheet:
    """A grid of cell contents, possibly ragged, with its label groups.

    A row whose first cell is a label is a header row. It opens a group made
    of the rows up to the next header row. The last group of the sheet is only
    closed by a following header row, so a sheet ending on a group body leaves
    that group (and its labels) out.
    """

    def __init__(self, cells: Sequence[Sequence[CellContent]]):
        self.cells: list[list[CellContent]] = [list(row) for row in cells]
        self.groups: list[CellGroup] = []
        self.label_index: dict[Label, LabelEntry] = {}
        self._load_groups()

    @classmethod
    def from_text_rows(cls, rows: Sequence[Sequence[str]]) -> "Sheet":
        """Parse raw cell text into a sheet. Parse errors are re-raised with the
        address of the offending cell."""
        cells: list[list[CellContent]] = []
        for row_idx, row in enumerate(rows):
            parsed_row = []
            for col_idx, text in enumerate(row):
                try:
                    parsed_row.append(parse_cell(text))
                except (ParseError, TokenizerError) as e:
                    address = CellAddress(col_idx, row_idx)
                    raise type(e)(f"{address}: {e}") from e
            cells.append(parsed_row)
        return cls(cells)

    def _load_groups(self) -> None:
        header: tuple[int, tuple[Optional[Label], ...]] | None = None
        for row_idx, row in enumerate(self.cells):
            if not row or not isinstance(row[0], LabelContent):
                continue

            if header is not None:
                header_row, labels = header
                group = CellGroup(header_row + 1, row_idx - header_row - 1, labels)
                self.groups.append(group)
                for column, label in enumerate(labels):
                    if label is not None:
                        self.label_index[label] = LabelEntry(column, group)

            header = (row_idx, self._header_labels(row_idx, row))

        if header is not None:
            logging.debug(
                f"Header row {header[0] + 1} is not followed by another header row,"
                " its group is left out"
            )

    def _header_labels(
        self, row_idx: int, row: list[CellContent]
    ) -> tuple[Optional[Label], ...]:
        labels: list[Optional[Label]] = []
        for col_idx, cell in enumerate(row):
            if isinstance(cell, LabelContent):
                labels.append(cell.label)
            elif isinstance(cell, EmptyContent):
                labels.append(None)
            else:
                raise SheetStructureError(
                    f"Header row {row_idx + 1} has a non-label cell at"
                    f" {CellAddress(col_idx, row_idx)}: {cell!r}"
                )
        return tuple(labels)

    @property
    def row_count(self) -> int:
        return len(self.cells)

    def contains(self, address: CellAddress) -> bool:
        return 0 <= address.row < len(self.cells) and 0 <= address.column < len(
            self.cells[address.row]
        )

    def get_cell(self, address: CellAddress) -> CellContent | None:
        """Return the content at `address`, None if it's outside the grid."""
        if not self.contains(address):
            return None
        return self.cells[address.row][address.column]

    def get_last_group_cell(self, column: int, row: int) -> CellAddress | None:
        """Address of the last row of the closest group above `row` that has a
        label in `column`."""
        for group in reversed(self.groups):
            if group.row_count > 0 and group.last_row <= row and group.has_label_at(column):
                return CellAddress(column, group.last_row)
        return None

    def get_cell_address_by_label(self, label: Label, row_offset: int) -> CellAddress | None:
        entry = self.label_index.get(label)
        if entry is None:
            return None
        if 0 <= row_offset < entry.group.row_count:
            return CellAddress(entry.column, entry.group.start_row + row_offset)
        return None
