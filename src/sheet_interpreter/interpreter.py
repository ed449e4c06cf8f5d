import logging
from typing import Iterator, List, NamedTuple, Optional

from typing_extensions import Self

from .ast import (
    ASTNode,
    BinaryOperation,
    CellReference,
    FunctionCall,
    IncFrom,
    LabelReference,
    LastColGroupCellReference,
    Literal,
    UpCellReference,
    UpFormulaReference,
    shift_down,
)
from .cells import FormulaContent
from .errors import CycleError
from .operators import BINARY_OPERATORS
from .sheet import CellAddress, Sheet
from .types import (
    ArgumentValue,
    ErrorValue,
    NumberValue,
    SpreadValue,
    Value,
    to_value,
)
from .utils import format_formula

detect_cycles_by_default = True


def enable_cycle_detection():
    global detect_cycles_by_default
    detect_cycles_by_default = True


def disable_cycle_detection():
    global detect_cycles_by_default
    detect_cycles_by_default = False


class ExpressionContext(NamedTuple):
    """Where an expression is evaluated: the cell it belongs to, the sheet,
    and the evaluator holding the memoized cell values."""

    address: CellAddress
    sheet: Sheet
    evaluator: "SheetEvaluator"

    def shift_up(self, rows: int = 1) -> Self:
        return self._replace(address=self.address.shift_up(rows))

    def with_address(self, address: CellAddress) -> Self:
        return self._replace(address=address)

    def evaluate(self, node: ASTNode) -> ArgumentValue:
        return evaluate_node(node, self)

    def value_at(self, address: CellAddress) -> Value:
        return self.evaluator.value_at(address)


def evaluate_node(node: ASTNode, context: ExpressionContext) -> ArgumentValue:
    """Evaluate an AST node in the context of a cell."""
    match node:
        case Literal(value):
            return to_value(value)

        case BinaryOperation(left, operator, right):
            if operator not in BINARY_OPERATORS:
                raise ValueError(f"Unknown operator: {operator}")
            return BINARY_OPERATORS[operator](
                evaluate_node(left, context), evaluate_node(right, context)
            )

        case FunctionCall():
            return _evaluate_function(node, context)

        case IncFrom(start):
            return NumberValue(start)

        case CellReference(column, row):
            return context.value_at(CellAddress(column, row))

        case UpCellReference(column):
            return context.value_at(_up_cell_address(node, context))

        case LastColGroupCellReference(column):
            address = context.sheet.get_last_group_cell(column, context.address.row)
            if address is None:
                return ErrorValue(
                    f"No label group above {context.address} for {format_formula(node)}"
                )
            return context.value_at(address)

        case LabelReference(label, offset):
            address = context.sheet.get_cell_address_by_label(label, offset)
            if address is None:
                return ErrorValue(f"Label {label} has no row {offset + 1}")
            return context.value_at(address)

        case UpFormulaReference():
            return _evaluate_up_formula(node, context)

    raise ValueError(f"Unknown node type: {type(node)}")


def _evaluate_function(node: FunctionCall, context: ExpressionContext) -> ArgumentValue:
    """Evaluate the arguments, splicing spread values, then call the function."""
    args: list[ArgumentValue] = []
    for arg in node.arguments:
        value = evaluate_node(arg, context)
        if isinstance(value, SpreadValue):
            args.extend(value.elements)
        else:
            args.append(value)
    return node.function(*args)


def _up_cell_address(node: UpCellReference, context: ExpressionContext) -> CellAddress:
    return context.address.with_column(node.column).shift_up()


def _inheritance_source(
    node: UpFormulaReference, context: ExpressionContext
) -> Optional[CellAddress]:
    """The cell a `^^` ends up inheriting from.

    Cells that are nothing but `^^` are followed upward, so a column filled
    down with `^^` resolves to the formula at its top in one step. None when
    the chain runs past the first row.
    """
    if context.address.row < node.offset:
        return None

    sources = context.evaluator.inheritance_sources
    visited: list[CellAddress] = []
    source: Optional[CellAddress]
    address = context.address.shift_up(node.offset)
    while True:
        if address in sources:
            source = sources[address]
            break
        cell = context.sheet.get_cell(address)
        if not isinstance(cell, FormulaContent) or not isinstance(
            cell.formula.expression, UpFormulaReference
        ):
            source = address
            break
        visited.append(address)
        offset = cell.formula.expression.offset
        if address.row < offset:
            source = None
            break
        address = address.shift_up(offset)

    for address in visited:
        sources[address] = source
    return source


def _inherited_expression(
    node: UpFormulaReference, context: ExpressionContext
) -> Optional[ASTNode]:
    """The formula `^^` inherits, as if copied down to the current cell."""
    source = _inheritance_source(node, context)
    if source is None:
        return None
    cell = context.sheet.get_cell(source)
    if not isinstance(cell, FormulaContent):
        return None
    return shift_down(cell.formula.expression, context.address.row - source.row)


def _evaluate_up_formula(
    node: UpFormulaReference, context: ExpressionContext
) -> ArgumentValue:
    source = _inheritance_source(node, context)
    if source is None:
        return ErrorValue(f"{context.address}: no formula above to inherit from")

    cell = context.sheet.get_cell(source)
    if cell is None:
        return ErrorValue(f"Reference out of bounds: {source}")

    expr = _inherited_expression(node, context)
    if expr is not None:
        return evaluate_node(expr, context)
    return cell.evaluate(context.with_address(source))


def get_references(node: ASTNode, context: ExpressionContext) -> set[CellAddress]:
    """Addresses of the cells `node` reads when evaluated in `context`."""
    refs: set[CellAddress] = set()
    _collect_references(node, context, refs)
    return refs


def _collect_references(
    node: ASTNode, context: ExpressionContext, refs: set[CellAddress]
) -> None:
    match node:
        case Literal() | IncFrom():
            pass
        case BinaryOperation(left=left, right=right):
            _collect_references(left, context, refs)
            _collect_references(right, context, refs)
        case FunctionCall(arguments=arguments):
            for arg in arguments:
                _collect_references(arg, context, refs)
        case CellReference(column, row):
            refs.add(CellAddress(column, row))
        case UpCellReference():
            refs.add(_up_cell_address(node, context))
        case LastColGroupCellReference(column):
            address = context.sheet.get_last_group_cell(column, context.address.row)
            if address is not None:
                refs.add(address)
        case LabelReference(label, offset):
            address = context.sheet.get_cell_address_by_label(label, offset)
            if address is not None:
                refs.add(address)
        case UpFormulaReference():
            expr = _inherited_expression(node, context)
            if expr is not None:
                _collect_references(expr, context, refs)
        case _:
            raise ValueError(f"Unknown node type: {type(node)}")


class EvaluationStack:
    """Addresses of the cells currently being evaluated, outermost first."""

    def __init__(self):
        self.stack: List[CellAddress] = []
        self.addresses: set[CellAddress] = set()

    def push(self, address: CellAddress) -> None:
        self.stack.append(address)
        self.addresses.add(address)

    def pop(self) -> None:
        self.addresses.discard(self.stack.pop())

    def contains(self, address: CellAddress) -> bool:
        return address in self.addresses

    def __len__(self) -> int:
        return len(self.stack)

    def format_cycle_path(self, address: CellAddress) -> str:
        """Format the cycle ending on `address` as a readable path."""
        start = self.stack.index(address)
        return " -> ".join(str(a) for a in [*self.stack[start:], address])


class SheetEvaluator:
    """Evaluates every cell of a sheet, each at most once.

    Cell values are memoized in a grid shaped like the sheet. Before a formula
    is evaluated, the cells it references are evaluated first. Dependencies
    are walked with an explicit stack, so long reference chains don't run
    into the recursion limit.
    """

    def __init__(self, sheet: Sheet, detect_cycles: bool | None = None):
        self.sheet = sheet
        self.detect_cycles = (
            detect_cycles_by_default if detect_cycles is None else detect_cycles
        )
        self.cache: list[list[Optional[Value]]] = [
            [None] * len(row) for row in sheet.cells
        ]
        self.evaluation_stack = EvaluationStack()
        # Cell made only of ^^ -> the cell its chain of ^^ ends on
        self.inheritance_sources: dict[CellAddress, Optional[CellAddress]] = {}

    def value_at(self, address: CellAddress) -> Value:
        """Return the value of the cell at `address`, evaluating it if needed."""
        cell = self.sheet.get_cell(address)
        if cell is None:
            return ErrorValue(f"Reference out of bounds: {address}")

        cached_result = self.cache[address.row][address.column]
        if cached_result is not None:
            return cached_result

        if self.evaluation_stack.contains(address):
            cycle_path = self.evaluation_stack.format_cycle_path(address)
            if not self.detect_cycles:
                raise CycleError(f"Detected cycle: {cycle_path}")
            logging.warning(f"Detected cycle: {cycle_path}")
            return ErrorValue(f"circular reference: {cycle_path}")

        self._evaluate_with_references(address)
        return self.cache[address.row][address.column]  # type: ignore[return-value]

    def _pending_references(self, address: CellAddress) -> Iterator[CellAddress]:
        cell = self.sheet.get_cell(address)
        if not isinstance(cell, FormulaContent):
            return iter(())
        context = ExpressionContext(address, self.sheet, self)
        return iter(sorted(get_references(cell.formula.expression, context)))

    def _is_pending(self, address: CellAddress) -> bool:
        return (
            self.sheet.contains(address)
            and self.cache[address.row][address.column] is None
            and not self.evaluation_stack.contains(address)
        )

    def _evaluate_with_references(self, root: CellAddress) -> None:
        """Evaluate `root` after the cells it references, deepest first.

        The evaluation stack doubles as the work list: a cell stays on it
        while its references are evaluated, which is how cycles are found.
        """
        depth = len(self.evaluation_stack)
        work = [(root, self._pending_references(root))]
        self.evaluation_stack.push(root)
        try:
            while work:
                address, refs = work[-1]
                ref = next((ref for ref in refs if self._is_pending(ref)), None)
                if ref is not None:
                    self.evaluation_stack.push(ref)
                    work.append((ref, self._pending_references(ref)))
                    continue

                work.pop()
                self._evaluate_cell(address)
                self.evaluation_stack.pop()
        finally:
            while len(self.evaluation_stack) > depth:
                self.evaluation_stack.pop()

    def _evaluate_cell(self, address: CellAddress) -> None:
        cell = self.sheet.get_cell(address)
        assert cell is not None, f"Evaluating {address} outside of the sheet"
        value = cell.evaluate(ExpressionContext(address, self.sheet, self))
        logging.debug(f"{address} = {value!r}")
        self.cache[address.row][address.column] = value

    def evaluate_sheet(self) -> list[list[Value]]:
        """Evaluate every cell, in row-major order, and return the value grid."""
        values: list[list[Value]] = []
        for row_idx, row in enumerate(self.sheet.cells):
            values.append(
                [self.value_at(CellAddress(col_idx, row_idx)) for col_idx in range(len(row))]
            )
        return values


def evaluate_sheet(sheet: Sheet, detect_cycles: bool | None = None) -> list[list[Value]]:
    return SheetEvaluator(sheet, detect_cycles=detect_cycles).evaluate_sheet()
