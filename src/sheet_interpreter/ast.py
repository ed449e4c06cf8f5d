from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from .functions import SheetFunction


class Literal(NamedTuple):
    value: float | str


class BinaryOperation(NamedTuple):
    left: "ASTNode"
    operator: str
    right: "ASTNode"


class FunctionCall(NamedTuple):
    name: str
    function: "SheetFunction"
    arguments: "tuple[ASTNode, ...]"


class IncFrom(NamedTuple):
    start: float


class CellReference(NamedTuple):
    """Absolute reference, e.g. D4. Both coordinates are zero-based."""

    column: int
    row: int


class UpCellReference(NamedTuple):
    """The cell right above the evaluated one, in another column, e.g. D^"""

    column: int


class LastColGroupCellReference(NamedTuple):
    """The last row of the closest label group above, e.g. D^v"""

    column: int


class LabelReference(NamedTuple):
    label: str
    # Zero-based, the syntax @label<n> is one-based
    offset: int


class UpFormulaReference(NamedTuple):
    """Inherit the formula `offset` rows above as if it had been copied down, e.g. ^^"""

    offset: int = 1


# Type alias for all possible AST nodes
ASTNode = (
    Literal
    | BinaryOperation
    | FunctionCall
    | IncFrom
    | CellReference
    | UpCellReference
    | LastColGroupCellReference
    | LabelReference
    | UpFormulaReference
)


def shift_down(node: ASTNode, rows: int = 1) -> ASTNode:
    """Return the expression obtained by copying `node` `rows` rows further down."""
    match node:
        case Literal() | UpCellReference() | LastColGroupCellReference():
            return node
        case BinaryOperation(left, operator, right):
            return BinaryOperation(
                shift_down(left, rows), operator, shift_down(right, rows)
            )
        case FunctionCall(name, function, arguments):
            return FunctionCall(
                name, function, tuple(shift_down(arg, rows) for arg in arguments)
            )
        case IncFrom(start):
            return IncFrom(start + rows)
        case CellReference(column, row):
            return CellReference(column, row + rows)
        case LabelReference(label, offset):
            return LabelReference(label, offset + rows)
        case UpFormulaReference(offset):
            return UpFormulaReference(offset + rows)
    raise ValueError(f"Unknown node type: {type(node)}")


def compare(left: ASTNode, right: ASTNode) -> bool:
    """Structural equality of two expressions.

    NamedTuple equality is plain tuple equality, so `UpCellReference(3)` would
    equal `LastColGroupCellReference(3)`. This checks the variant first.
    """
    if type(left) is not type(right):
        return False

    match left:
        case BinaryOperation():
            return (
                left.operator == right.operator
                and compare(left.left, right.left)
                and compare(left.right, right.right)
            )
        case FunctionCall():
            # Functions are compared by kind, not by name
            return (
                left.function == right.function
                and len(left.arguments) == len(right.arguments)
                and all(compare(a, b) for a, b in zip(left.arguments, right.arguments))
            )
        case Literal():
            # A text "1" is not the number 1
            if isinstance(left.value, str) != isinstance(right.value, str):
                return False
            return left.value == right.value
        case (
            IncFrom()
            | CellReference()
            | UpCellReference()
            | LastColGroupCellReference()
            | LabelReference()
            | UpFormulaReference()
        ):
            return tuple(left) == tuple(right)
    raise ValueError(f"Unknown node type: {type(left)}")
