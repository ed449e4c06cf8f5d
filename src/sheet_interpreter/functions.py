import logging
from typing import Any, Callable, NamedTuple, Optional, overload

from rapidfuzz import fuzz, process

from .errors import CoercionError
from .types import (
    ArgumentValue,
    ArrayValue,
    BooleanValue,
    ErrorValue,
    NumberValue,
    SpreadValue,
    TextValue,
    aggregate_numbers,
    as_text,
)

SheetFunction = Callable[..., ArgumentValue]

SHEET_FUNCTIONS: dict[str, SheetFunction] = {}

# Minimum rapidfuzz score for an unknown name to get a suggestion
SUGGESTION_CUTOFF = 75


@overload
def sheet_fn(fn: SheetFunction, *, name: Optional[str] = None) -> SheetFunction: ...
@overload
def sheet_fn(
    fn: None = None, *, name: Optional[str] = None
) -> Callable[[SheetFunction], SheetFunction]: ...


def sheet_fn(fn: SheetFunction | None = None, *, name: Optional[str] = None) -> Any:
    """Decorator to register a function under a formula name."""

    def decorator(fn: Any) -> Any:
        # On a staticmethod, register the underlying function but return the
        # descriptor so that the class attribute keeps working.
        underlying = fn.__func__ if isinstance(fn, staticmethod) else fn
        reg_name = name or underlying.__name__
        SHEET_FUNCTIONS[reg_name] = underlying
        setattr(underlying, "_sheet_fn_registered", True)
        return fn

    if fn:
        return decorator(fn)
    else:
        return decorator


class UnknownFunction(NamedTuple):
    """Stands in for a function name that isn't registered. Calling it always
    gives an error, so that a typo doesn't prevent the sheet from loading."""

    name: str
    suggestion: str | None = None

    def __call__(self, *args: ArgumentValue) -> ArgumentValue:
        message = f"Unknown function: {self.name}"
        if self.suggestion:
            message += f" (did you mean {self.suggestion}?)"
        return ErrorValue(message)


def suggest_function(name: str) -> str | None:
    match = process.extractOne(
        name, SHEET_FUNCTIONS.keys(), scorer=fuzz.ratio, score_cutoff=SUGGESTION_CUTOFF
    )
    return match[0] if match else None


def resolve_function(name: str) -> SheetFunction:
    """Look up a function by name, falling back on an UnknownFunction placeholder."""
    if name in SHEET_FUNCTIONS:
        return SHEET_FUNCTIONS[name]
    suggestion = suggest_function(name)
    logging.warning(
        f"Unknown function '{name}', it will evaluate to an error"
        + (f" (did you mean '{suggestion}'?)" if suggestion else "")
    )
    return UnknownFunction(name, suggestion)


def _numbers_or_error(
    name: str, args: tuple[ArgumentValue, ...]
) -> list[float] | ErrorValue:
    try:
        return aggregate_numbers(args)
    except CoercionError as e:
        return ErrorValue(f"{name}: {e}")


class SheetFunctions:
    """Collection of the functions available in formulas.

    Every function takes already evaluated values and returns a value. They
    never raise: wrong arity or wrong argument types give an ErrorValue.
    """

    @staticmethod
    def split(*args: ArgumentValue) -> ArgumentValue:
        """Split a text on a literal separator."""
        if len(args) != 2:
            return ErrorValue(f"split expects 2 arguments, got {len(args)}")
        text, separator = as_text(args[0]), as_text(args[1])
        if text is None or separator is None:
            return ErrorValue("split expects two texts")
        if not separator:
            return ErrorValue("split separator cannot be empty")
        return ArrayValue(tuple(TextValue(chunk) for chunk in text.split(separator)))

    @staticmethod
    def spread(*args: ArgumentValue) -> ArgumentValue:
        """Splice the elements of an array into the enclosing function call."""
        if len(args) != 1 or not isinstance(args[0], ArrayValue):
            return ErrorValue("spread expects a single array")
        return SpreadValue(args[0].elements)

    @staticmethod
    def sum(*args: ArgumentValue) -> ArgumentValue:
        numbers = _numbers_or_error("sum", args)
        if isinstance(numbers, ErrorValue):
            return numbers
        return NumberValue(sum(numbers))

    @staticmethod
    def bte(*args: ArgumentValue) -> ArgumentValue:
        """Bigger than or equal."""
        if len(args) != 2:
            return ErrorValue(f"bte expects 2 arguments, got {len(args)}")
        left, right = args
        if not isinstance(left, NumberValue) or not isinstance(right, NumberValue):
            return ErrorValue("bte expects two numbers")
        return BooleanValue(left.value >= right.value)

    @staticmethod
    def text(*args: ArgumentValue) -> ArgumentValue:
        if len(args) != 1:
            return ErrorValue(f"text expects 1 argument, got {len(args)}")
        return TextValue(str(args[0]))

    @staticmethod
    def concat(*args: ArgumentValue) -> ArgumentValue:
        return TextValue("".join(str(arg) for arg in args))

    @staticmethod
    def avg(*args: ArgumentValue) -> ArgumentValue:
        numbers = _numbers_or_error("avg", args)
        if isinstance(numbers, ErrorValue):
            return numbers
        if not numbers:
            return ErrorValue("avg of nothing")
        return NumberValue(sum(numbers) / len(numbers))

    @staticmethod
    def min(*args: ArgumentValue) -> ArgumentValue:
        numbers = _numbers_or_error("min", args)
        if isinstance(numbers, ErrorValue):
            return numbers
        return NumberValue(min(numbers)) if numbers else ErrorValue("min of nothing")

    @staticmethod
    def max(*args: ArgumentValue) -> ArgumentValue:
        numbers = _numbers_or_error("max", args)
        if isinstance(numbers, ErrorValue):
            return numbers
        return NumberValue(max(numbers)) if numbers else ErrorValue("max of nothing")

    @staticmethod
    def len(*args: ArgumentValue) -> ArgumentValue:
        if len(args) != 1 or as_text(args[0]) is None:
            return ErrorValue("len expects a single text")
        return NumberValue(float(len(as_text(args[0]) or "")))

    @staticmethod
    def upper(*args: ArgumentValue) -> ArgumentValue:
        if len(args) != 1 or as_text(args[0]) is None:
            return ErrorValue("upper expects a single text")
        return TextValue((as_text(args[0]) or "").upper())

    @staticmethod
    def lower(*args: ArgumentValue) -> ArgumentValue:
        if len(args) != 1 or as_text(args[0]) is None:
            return ErrorValue("lower expects a single text")
        return TextValue((as_text(args[0]) or "").lower())

    @sheet_fn(name="if")
    @staticmethod
    def if_(*args: ArgumentValue) -> ArgumentValue:
        """Return the second argument if the first is true, the third otherwise."""
        if len(args) != 3:
            return ErrorValue(f"if expects 3 arguments, got {len(args)}")
        condition, when_true, when_false = args
        if not isinstance(condition, BooleanValue):
            return ErrorValue("if expects a boolean condition")
        return when_true if condition.value else when_false


# Register all unregistered static methods on SheetFunctions by their method names
for _name, _member in SheetFunctions.__dict__.items():
    if _name.startswith("_"):
        continue
    if isinstance(_member, staticmethod):
        _func = _member.__func__
        if (
            not getattr(_func, "_sheet_fn_registered", False)
            and _name not in SHEET_FUNCTIONS
        ):
            SHEET_FUNCTIONS[_name] = _func
