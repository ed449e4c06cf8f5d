class SheetInterpreterError(Exception):
    """Base class for hard failures raised by the sheet interpreter."""


class TokenizerError(SheetInterpreterError):
    pass


class ParseError(SheetInterpreterError):
    pass


class CoercionError(SheetInterpreterError):
    pass


class SheetStructureError(SheetInterpreterError):
    """Raised when a grid cannot be turned into a sheet, e.g. a malformed header row."""


class SpreadError(SheetInterpreterError):
    """Raised when a spread marker escapes the function call that should consume it."""


class CycleError(SheetInterpreterError):
    """Raised on a circular reference when cycles aren't turned into error values."""
