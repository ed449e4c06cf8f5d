"""Content of a single cell, and the parser turning raw cell text into it.

Cell text grammar, first match wins:

- `!name` is a label
- `=expr` is a formula
- an optionally signed decimal number is a number
- the empty string is an empty cell
- anything else is text, verbatim
"""

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from .ast import ASTNode, compare
from .parser import parse_formula
from .types import (
    ErrorValue,
    NullValue,
    NumberValue,
    SpreadValue,
    TextValue,
    Value,
)

if TYPE_CHECKING:
    from .interpreter import ExpressionContext

NUMBER_CELL_REGEX = re.compile(r"[+-]?[0-9]+(?:\.[0-9]+)?")

Label = str


class Formula:
    """A parsed formula. Two formulas are equal when their ASTs are
    structurally equal."""

    def __init__(self, expression: ASTNode):
        self.expression = expression

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Formula):
            return NotImplemented
        return compare(self.expression, other.expression)

    def __hash__(self) -> int:
        return hash(type(self.expression))

    def __repr__(self) -> str:
        return f"Formula({self.expression!r})"


@dataclass(frozen=True)
class EmptyContent:
    def evaluate(self, context: "ExpressionContext") -> Value:
        return NullValue()


@dataclass(frozen=True)
class TextContent:
    text: str

    def evaluate(self, context: "ExpressionContext") -> Value:
        return TextValue(self.text)


@dataclass(frozen=True)
class NumberContent:
    number: float

    def evaluate(self, context: "ExpressionContext") -> Value:
        return NumberValue(self.number)


@dataclass(frozen=True)
class LabelContent:
    label: Label

    def evaluate(self, context: "ExpressionContext") -> Value:
        return TextValue(f"!{self.label}")


@dataclass(frozen=True)
class FormulaContent:
    formula: Formula

    def evaluate(self, context: "ExpressionContext") -> Value:
        result = context.evaluate(self.formula.expression)
        if isinstance(result, SpreadValue):
            logging.debug(f"{context.address}: spread value outside of a function call")
            return ErrorValue("spread() can only be used as a function argument")
        return result


CellContent = Union[EmptyContent, TextContent, NumberContent, LabelContent, FormulaContent]


def parse_cell(text: str) -> CellContent:
    """Parse the raw text of a cell. Formula syntax errors propagate as ParseError
    or TokenizerError."""
    if text.startswith("!"):
        return LabelContent(text[1:])
    if text.startswith("="):
        return FormulaContent(Formula(parse_formula(text[1:])))
    if NUMBER_CELL_REGEX.fullmatch(text):
        return NumberContent(float(text))
    if text == "":
        return EmptyContent()
    return TextContent(text)
