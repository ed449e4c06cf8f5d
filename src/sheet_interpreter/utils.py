import re

from openpyxl.utils import column_index_from_string, get_column_letter

import sheet_interpreter.ast as ast

# One column letter followed by a one-based row number
CELL_REF_REGEX = re.compile(r"([A-Z])([1-9][0-9]*)")
COLUMN_REGEX = re.compile(r"[A-Z]")


def column_from_letter(letter: str) -> int | None:
    """Zero-based column index of a single column letter, None if invalid."""
    if not COLUMN_REGEX.fullmatch(letter):
        return None
    return column_index_from_string(letter) - 1


def column_letter(column: int) -> str:
    """Letter(s) of a zero-based column index."""
    return get_column_letter(column + 1)


def format_address(column: int, row: int) -> str:
    """Zero-based coordinates to A1 notation."""
    return f"{column_letter(column)}{row + 1}"


def extract_cell_reference(ref: str) -> ast.CellReference | None:
    """Parse a cell reference like D4, returning None if invalid."""
    match = CELL_REF_REGEX.fullmatch(ref)
    if match:
        col, row = match.groups()
        return ast.CellReference(
            column=column_index_from_string(col) - 1, row=int(row) - 1
        )
    return None


def _format_number(value: float) -> str:
    return repr(float(value))


def format_formula(node: ast.ASTNode) -> str:
    """Render an AST back to formula syntax, without the leading '='."""
    match node:
        case ast.Literal(value=str() as text):
            return f'"{text}"'
        case ast.Literal(value=value):
            return _format_number(value)
        case ast.BinaryOperation(left, operator, right):
            # Always parenthesize nested operations, the * and / chains
            # associate to the right
            parts = []
            for operand in (left, right):
                text = format_formula(operand)
                if isinstance(operand, ast.BinaryOperation):
                    text = f"({text})"
                parts.append(text)
            return f"{parts[0]} {operator} {parts[1]}"
        case ast.FunctionCall(name=name, arguments=arguments):
            return f"{name}({', '.join(format_formula(arg) for arg in arguments)})"
        case ast.IncFrom(start):
            return f"incFrom({_format_number(start)})"
        case ast.CellReference(column, row):
            return format_address(column, row)
        case ast.UpCellReference(column):
            return f"{column_letter(column)}^"
        case ast.LastColGroupCellReference(column):
            return f"{column_letter(column)}^v"
        case ast.LabelReference(label, offset):
            return f"@{label}<{offset + 1}>"
        case ast.UpFormulaReference(offset):
            return "^^" * offset
    raise ValueError(f"Unknown node type: {type(node)}")
