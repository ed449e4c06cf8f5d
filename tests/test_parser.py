import pytest

from sheet_interpreter.ast import (
    BinaryOperation,
    CellReference,
    FunctionCall,
    IncFrom,
    LabelReference,
    LastColGroupCellReference,
    Literal,
    UpCellReference,
    UpFormulaReference,
    compare,
    shift_down,
)
from sheet_interpreter.cells import (
    EmptyContent,
    Formula,
    FormulaContent,
    LabelContent,
    NumberContent,
    TextContent,
    parse_cell,
)
from sheet_interpreter.errors import ParseError, TokenizerError
from sheet_interpreter.functions import SHEET_FUNCTIONS, UnknownFunction
from sheet_interpreter.parser import parse_formula
from sheet_interpreter.utils import format_formula


def call(name: str, *args) -> FunctionCall:
    return FunctionCall(name=name, function=SHEET_FUNCTIONS[name], arguments=args)


def formula(expr) -> FormulaContent:
    return FormulaContent(Formula(expr))


class TestFormulaParser:
    def test_simple_arithmetic(self):
        ast = parse_formula("1 + 2")
        assert isinstance(ast, BinaryOperation)
        assert ast.operator == "+"
        assert isinstance(ast.left, Literal) and ast.left.value == 1.0
        assert isinstance(ast.right, Literal) and ast.right.value == 2.0

        ast = parse_formula("(2 + 3) * 4")
        assert isinstance(ast, BinaryOperation)
        assert ast.operator == "*"
        assert isinstance(ast.left, BinaryOperation)
        assert ast.left.operator == "+"

    def test_additive_is_left_associative(self):
        ast = parse_formula("1 + 2*3 - 5")
        expected = BinaryOperation(
            BinaryOperation(
                Literal(1.0), "+", BinaryOperation(Literal(2.0), "*", Literal(3.0))
            ),
            "-",
            Literal(5.0),
        )
        assert compare(ast, expected)

        ast = parse_formula("10 - 2 - 3")
        assert compare(
            ast,
            BinaryOperation(
                BinaryOperation(Literal(10.0), "-", Literal(2.0)), "-", Literal(3.0)
            ),
        )

    def test_multiplicative_is_right_associative(self):
        ast = parse_formula("8 * 4 / 2")
        assert compare(
            ast,
            BinaryOperation(
                Literal(8.0), "*", BinaryOperation(Literal(4.0), "/", Literal(2.0))
            ),
        )

    def test_literals(self):
        assert compare(parse_formula('"abc"'), Literal("abc"))
        assert compare(parse_formula("1.25"), Literal(1.25))
        assert compare(parse_formula("-3"), Literal(-3.0))
        # Text and number literals never match
        assert not compare(Literal("1"), Literal(1.0))

    def test_cell_reference(self):
        ast = parse_formula("D4")
        assert isinstance(ast, CellReference)
        assert ast.column == 3
        assert ast.row == 3

        with pytest.raises(ParseError, match="Invalid cell reference"):
            parse_formula("D0")
        with pytest.raises(ParseError, match="Invalid cell reference"):
            parse_formula("AB4")

    def test_column_references(self):
        assert compare(parse_formula("D^"), UpCellReference(3))
        assert compare(parse_formula("D^v"), LastColGroupCellReference(3))
        assert not compare(UpCellReference(3), LastColGroupCellReference(3))

        with pytest.raises(ParseError, match="Invalid column"):
            parse_formula("DD^")

    def test_up_formula_reference(self):
        assert compare(parse_formula("^^"), UpFormulaReference())
        assert compare(parse_formula("^^^^"), UpFormulaReference(2))
        assert compare(
            parse_formula("^^ + 1"),
            BinaryOperation(UpFormulaReference(), "+", Literal(1.0)),
        )

    def test_label_reference(self):
        assert compare(parse_formula("@label<4>"), LabelReference("label", 3))
        assert compare(
            parse_formula("@label<1> + sum(1, 2)"),
            BinaryOperation(
                LabelReference("label", 0),
                "+",
                call("sum", Literal(1.0), Literal(2.0)),
            ),
        )

        with pytest.raises(ParseError, match="Invalid row offset"):
            parse_formula("@label<0>")
        with pytest.raises(ParseError):
            parse_formula("@label")

    def test_inc_from(self):
        assert compare(parse_formula("incFrom(1)"), IncFrom(1.0))
        assert compare(parse_formula("incFrom(-2.5)"), IncFrom(-2.5))

        with pytest.raises(ParseError):
            parse_formula("incFrom(A1)")

    def test_function_calls(self):
        assert compare(
            parse_formula("sum(1, 2) + D4"),
            BinaryOperation(
                call("sum", Literal(1.0), Literal(2.0)), "+", CellReference(3, 3)
            ),
        )
        assert compare(parse_formula("concat()"), call("concat"))

        ast = parse_formula("text(bte(@adjusted_cost<1>, @cost_threshold<1>))")
        assert compare(
            ast,
            call(
                "text",
                call(
                    "bte",
                    LabelReference("adjusted_cost", 0),
                    LabelReference("cost_threshold", 0),
                ),
            ),
        )

    def test_functions_compare_by_kind(self):
        assert not compare(parse_formula("sum(1)"), parse_formula("avg(1)"))
        assert not compare(parse_formula("sum(1)"), parse_formula("sum(1, 2)"))

    def test_unknown_function_is_not_a_parse_error(self):
        ast = parse_formula("summ(1, 2)")
        assert isinstance(ast, FunctionCall)
        assert ast.function == UnknownFunction("summ", "sum")
        assert compare(ast, parse_formula("summ(1, 2)"))

    def test_syntax_errors(self):
        with pytest.raises(ParseError, match="Unexpected end of formula"):
            parse_formula("1 +")
        with pytest.raises(ParseError, match="Unexpected token"):
            parse_formula("1 2")
        with pytest.raises(ParseError, match="closing parenthesis"):
            parse_formula("(1 + 2")
        with pytest.raises(ParseError):
            parse_formula("sum(1 2)")
        with pytest.raises(ParseError):
            parse_formula("")
        with pytest.raises(TokenizerError):
            parse_formula("1 % 2")


class TestShiftDown:
    def test_relative_nodes_move(self):
        assert compare(shift_down(CellReference(0, 0)), CellReference(0, 1))
        assert compare(shift_down(IncFrom(1.0)), IncFrom(2.0))
        assert compare(shift_down(LabelReference("cost", 0)), LabelReference("cost", 1))
        assert compare(shift_down(UpFormulaReference()), UpFormulaReference(2))

    def test_shift_several_rows(self):
        ast = parse_formula("sum(A1, incFrom(3)) * @cost<2> + ^^")
        assert compare(
            shift_down(ast, 5),
            parse_formula("sum(A6, incFrom(8)) * @cost<7> + ^^^^^^^^^^^^"),
        )
        assert compare(shift_down(shift_down(ast), 4), shift_down(ast, 5))

    def test_column_relative_nodes_stay(self):
        for node in (UpCellReference(2), LastColGroupCellReference(2), Literal(3.0)):
            assert compare(shift_down(node), node)

    def test_shift_recurses(self):
        ast = parse_formula("sum(A1, incFrom(3)) * @cost<2>")
        assert compare(
            shift_down(ast),
            parse_formula("sum(A2, incFrom(4)) * @cost<3>"),
        )
        # The original is left untouched
        assert compare(ast, parse_formula("sum(A1, incFrom(3)) * @cost<2>"))


class TestFormatFormula:
    @pytest.mark.parametrize(
        "text",
        [
            "1 + 2*3 - 5",
            "8 * 4 / 2",
            '"abc"',
            "-1 - -2",
            "sum(1, A1, @cost<2>) + text(D^)",
            "D^v * incFrom(3)",
            "^^^^ + ^^",
            "concat()",
        ],
    )
    def test_formatted_formula_parses_back(self, text):
        ast = parse_formula(text)
        assert compare(parse_formula(format_formula(ast)), ast)

    def test_format(self):
        assert format_formula(parse_formula("1 + 2*3")) == "1.0 + (2.0 * 3.0)"
        assert format_formula(parse_formula("@cost<2>")) == "@cost<2>"
        assert format_formula(UpFormulaReference(3)) == "^^^^^^"


class TestCellParsing:
    def test_empty_cell(self):
        assert parse_cell("") == EmptyContent()

    def test_text_cell(self):
        assert parse_cell("abc") == TextContent("abc")
        assert parse_cell("abc, def, ghj") == TextContent("abc, def, ghj")
        assert parse_cell("1 a") == TextContent("1 a")
        assert parse_cell(" ") == TextContent(" ")

    def test_number_cell(self):
        assert parse_cell("0") == NumberContent(0)
        assert parse_cell("1") == NumberContent(1)
        assert parse_cell("-1") == NumberContent(-1)
        assert parse_cell("+2") == NumberContent(2)
        assert parse_cell("1234.5678") == NumberContent(1234.5678)
        assert parse_cell("-1234.5678") == NumberContent(-1234.5678)
        # Must be a full match
        assert parse_cell("1.") == TextContent("1.")
        assert parse_cell("1e5") == TextContent("1e5")

    def test_label_cell(self):
        assert parse_cell("!label") == LabelContent("label")
        assert parse_cell("!") == LabelContent("")
        assert parse_cell("!label") != TextContent("label")

    def test_formula_cells(self):
        assert parse_cell("=1") == formula(Literal(1.0))
        assert parse_cell('="abc"') == formula(Literal("abc"))
        assert parse_cell("=sum(1, 2)") == formula(
            call("sum", Literal(1.0), Literal(2.0))
        )
        assert parse_cell("=D4") == formula(CellReference(3, 3))
        assert parse_cell("=^^") == formula(UpFormulaReference())
        assert parse_cell("=D^ + sum(1, 2)") == formula(
            BinaryOperation(
                UpCellReference(3), "+", call("sum", Literal(1.0), Literal(2.0))
            )
        )
        assert parse_cell("=1") != formula(Literal(2.0))

    def test_formula_syntax_errors_propagate(self):
        with pytest.raises(ParseError):
            parse_cell("=1 +")
        with pytest.raises(ParseError):
            parse_cell("=")
