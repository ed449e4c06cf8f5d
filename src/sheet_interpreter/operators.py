from typing import Callable

from .types import (
    ArgumentValue,
    ErrorValue,
    NumberValue,
    Value,
    is_error,
    value_type,
)


def _arithmetic(
    symbol: str,
    op: Callable[[float, float], float],
    left: ArgumentValue,
    right: ArgumentValue,
) -> Value:
    # Propagate errors
    if is_error(left):
        return left  # type: ignore[return-value]
    if is_error(right):
        return right  # type: ignore[return-value]

    if not isinstance(left, NumberValue) or not isinstance(right, NumberValue):
        return ErrorValue(
            f"Cannot apply '{symbol}' to {value_type(left).name} and {value_type(right).name}"
        )
    return NumberValue(op(left.value, right.value))


def add(left: ArgumentValue, right: ArgumentValue) -> Value:
    return _arithmetic("+", lambda l, r: l + r, left, right)


def subtract(left: ArgumentValue, right: ArgumentValue) -> Value:
    return _arithmetic("-", lambda l, r: l - r, left, right)


def multiply(left: ArgumentValue, right: ArgumentValue) -> Value:
    return _arithmetic("*", lambda l, r: l * r, left, right)


def divide(left: ArgumentValue, right: ArgumentValue) -> Value:
    # Division by zero is an Error value, never inf or nan
    try:
        return _arithmetic("/", lambda l, r: l / r, left, right)
    except ZeroDivisionError:
        return ErrorValue("division by zero")


BINARY_OPERATORS: dict[str, Callable[[ArgumentValue, ArgumentValue], Value]] = {
    "+": add,
    "-": subtract,
    "*": multiply,
    "/": divide,
}
