import pytest

from sheet_interpreter.cells import EmptyContent, LabelContent, NumberContent
from sheet_interpreter.errors import ParseError, SheetStructureError
from sheet_interpreter.sheet import CellAddress, CellGroup, Sheet


@pytest.fixture
def grouped_sheet():
    return Sheet.from_text_rows(
        [
            ["!item", "!cost"],  # 0
            ["apple", "3"],  # 1
            ["pear", "4"],  # 2
            ["!total", "!count"],  # 3
            ["7", "2"],  # 4
            ["!end"],  # 5
            ["unclosed"],  # 6
        ]
    )


class TestCellAddress:
    def test_moves(self):
        address = CellAddress(2, 5)
        assert address.shift_up() == CellAddress(2, 4)
        assert address.shift_up(3) == CellAddress(2, 2)
        assert address.shift_down(2) == CellAddress(2, 7)
        assert address.with_column(0) == CellAddress(0, 5)

    def test_str(self):
        assert str(CellAddress(3, 3)) == "D4"
        assert str(CellAddress(0, 0)) == "A1"

    def test_hashable(self):
        assert len({CellAddress(1, 1), CellAddress(1, 1), CellAddress(1, 2)}) == 2


class TestGroups:
    def test_groups(self, grouped_sheet):
        assert grouped_sheet.groups == [
            CellGroup(1, 2, ("item", "cost")),
            CellGroup(4, 1, ("total", "count")),
        ]
        assert grouped_sheet.groups[0].last_row == 2
        assert grouped_sheet.groups[1].last_row == 4

    def test_last_group_is_not_closed(self, grouped_sheet):
        # "!end" opens a group that no header row closes
        assert "end" not in grouped_sheet.label_index

    def test_label_index(self, grouped_sheet):
        column, group = grouped_sheet.label_index["cost"]
        assert column == 1
        assert group.start_row == 1

    def test_cell_address_by_label(self, grouped_sheet):
        assert grouped_sheet.get_cell_address_by_label("cost", 0) == CellAddress(1, 1)
        assert grouped_sheet.get_cell_address_by_label("cost", 1) == CellAddress(1, 2)
        assert grouped_sheet.get_cell_address_by_label("cost", 2) is None
        assert grouped_sheet.get_cell_address_by_label("count", 0) == CellAddress(1, 4)
        assert grouped_sheet.get_cell_address_by_label("missing", 0) is None
        assert grouped_sheet.get_cell_address_by_label("end", 0) is None

    def test_last_group_cell(self, grouped_sheet):
        assert grouped_sheet.get_last_group_cell(1, 3) == CellAddress(1, 2)
        # The closest group wins
        assert grouped_sheet.get_last_group_cell(1, 6) == CellAddress(1, 4)
        # No group ends above row 1
        assert grouped_sheet.get_last_group_cell(1, 1) is None
        # No header defines column 2
        assert grouped_sheet.get_last_group_cell(2, 6) is None

    def test_empty_header_cells_leave_gaps(self):
        sheet = Sheet.from_text_rows([["!a", "", "!c"], ["1", "2", "3"], ["!next"]])
        assert sheet.groups[0].labels == ("a", None, "c")
        assert sheet.label_index["c"].column == 2
        assert sheet.get_last_group_cell(1, 2) is None
        assert sheet.get_last_group_cell(2, 2) == CellAddress(2, 1)

    def test_empty_group_body(self):
        sheet = Sheet.from_text_rows([["!a"], ["!b"], ["1"], ["!c"]])
        assert sheet.groups[0] == CellGroup(1, 0, ("a",))
        assert sheet.get_cell_address_by_label("a", 0) is None
        assert sheet.get_last_group_cell(0, 3) == CellAddress(0, 2)

    def test_header_row_with_values(self):
        with pytest.raises(SheetStructureError, match="non-label cell at B1"):
            Sheet.from_text_rows([["!a", "3"]])


class TestSheet:
    def test_ragged_rows(self):
        sheet = Sheet([[NumberContent(1), NumberContent(2)], [], [EmptyContent()]])
        assert sheet.row_count == 3
        assert sheet.contains(CellAddress(1, 0))
        assert not sheet.contains(CellAddress(0, 1))
        assert not sheet.contains(CellAddress(1, 2))
        assert not sheet.contains(CellAddress(0, -1))
        assert not sheet.contains(CellAddress(-1, 0))

    def test_get_cell(self):
        sheet = Sheet([[NumberContent(1), LabelContent("x")]])
        assert sheet.get_cell(CellAddress(1, 0)) == LabelContent("x")
        assert sheet.get_cell(CellAddress(2, 0)) is None
        assert sheet.get_cell(CellAddress(0, -1)) is None

    def test_parse_errors_carry_the_address(self):
        with pytest.raises(ParseError, match="^B2: ") as exc_info:
            Sheet.from_text_rows([["1"], ["2", "=1 +"]])
        assert isinstance(exc_info.value.__cause__, ParseError)
