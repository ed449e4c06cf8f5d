import re
from dataclasses import dataclass, field
from enum import IntEnum, auto
from typing import Iterable, Union

from .errors import CoercionError, SpreadError

# Text accepted as a number by the numeric functions, e.g. "-2", "1.5", ".5", "1e3"
NUMBER_TEXT_REGEX = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class ValueType(IntEnum):
    NULL = auto()
    ERROR = auto()
    NUMBER = auto()
    TEXT = auto()
    BOOLEAN = auto()
    ARRAY = auto()
    SPREAD = auto()


@dataclass(frozen=True)
class NullValue:
    def __str__(self) -> str:
        return ""


@dataclass(frozen=True)
class ErrorValue:
    # Two errors are the same value whatever their explanation
    message: str | None = field(default=None, compare=False)

    def __str__(self) -> str:
        return "Error"


@dataclass(frozen=True)
class NumberValue:
    value: float

    def __str__(self) -> str:
        return str(float(self.value))


@dataclass(frozen=True)
class TextValue:
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BooleanValue:
    value: bool

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class ArrayValue:
    elements: "tuple[Value, ...]"

    def __str__(self) -> str:
        return "[" + ", ".join(str(element) for element in self.elements) + "]"


@dataclass(frozen=True)
class SpreadValue:
    """Marker telling the enclosing function call to splice `elements` into its
    argument list. It is never a cell value."""

    elements: "tuple[Value, ...]"

    def __str__(self) -> str:
        raise SpreadError("spread() can only be used as a function argument")


# Values a cell can end up holding
Value = Union[NullValue, ErrorValue, NumberValue, TextValue, BooleanValue, ArrayValue]
# Values that can flow between an argument expression and its function call
ArgumentValue = Union[Value, SpreadValue]


def value_type(value: ArgumentValue) -> ValueType:
    """Return the ValueType for a given value."""
    if isinstance(value, NullValue):
        return ValueType.NULL
    if isinstance(value, ErrorValue):
        return ValueType.ERROR
    if isinstance(value, NumberValue):
        return ValueType.NUMBER
    if isinstance(value, TextValue):
        return ValueType.TEXT
    if isinstance(value, BooleanValue):
        return ValueType.BOOLEAN
    if isinstance(value, ArrayValue):
        return ValueType.ARRAY
    if isinstance(value, SpreadValue):
        return ValueType.SPREAD
    raise CoercionError(f"Unknown value: {value!r}")


def to_value(raw: None | bool | int | float | str) -> Value:
    """Wrap a plain Python scalar into a Value."""
    if raw is None:
        return NullValue()
    # bool first, it's a subclass of int
    if isinstance(raw, bool):
        return BooleanValue(raw)
    if isinstance(raw, (int, float)):
        return NumberValue(float(raw))
    if isinstance(raw, str):
        return TextValue(raw)
    raise CoercionError(f"Cannot convert {raw!r} to a value")


def is_error(value: ArgumentValue) -> bool:
    return isinstance(value, ErrorValue)


def as_number(value: ArgumentValue) -> float | None:
    """Numbers are taken as is, numeric text is parsed. Anything else gives None.

    Only plain decimal notation counts: no surrounding whitespace, no digit
    separators, no inf or nan.
    """
    if isinstance(value, NumberValue):
        return value.value
    if isinstance(value, TextValue) and NUMBER_TEXT_REGEX.fullmatch(value.value):
        return float(value.value)
    return None


def as_text(value: ArgumentValue) -> str | None:
    if isinstance(value, TextValue):
        return value.value
    return None


def coerce_to_number(value: ArgumentValue) -> float:
    """Strict version of `as_number`, raising CoercionError on failure."""
    number = as_number(value)
    if number is None:
        raise CoercionError(f"Cannot convert {value_type(value).name} '{value!r}' to number")
    return number


def aggregate_numbers(values: Iterable[ArgumentValue]) -> list[float]:
    """Coerce every value to a number, failing on the first one that can't be."""
    return [coerce_to_number(value) for value in values]
