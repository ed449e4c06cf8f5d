from enum import Enum, auto
from typing import List, NamedTuple

from .errors import TokenizerError


class TokenType(Enum):
    IDENTIFIER = auto()
    NUMBER = auto()
    STRING = auto()
    OPERATOR = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    LABEL = auto()  # @name
    LANGLE = auto()
    RANGLE = auto()
    CARET = auto()  # D^
    CARET_V = auto()  # D^v
    UP_FORMULA = auto()  # ^^


class Token(NamedTuple):
    type: TokenType
    value: str
    position: int


class FormulaTokenizer:
    SINGLE_CHAR_TOKENS = {
        "(": TokenType.LPAREN,
        ")": TokenType.RPAREN,
        ",": TokenType.COMMA,
        "<": TokenType.LANGLE,
        ">": TokenType.RANGLE,
    }

    def __init__(self, formula: str):
        self.formula = formula.strip()
        self.pos = 0
        self.length = len(self.formula)

    def tokenize(self) -> List[Token]:
        """Tokenize the formula and return list of tokens."""
        tokens = []
        while self.pos < self.length:
            char = self.formula[self.pos]

            if char.isspace():
                self.pos += 1
                continue
            elif char == '"':
                tokens.append(self._tokenize_string())
            elif char.isdigit() or char == ".":
                tokens.append(self._tokenize_number())
            elif char.isalpha() or char == "_":
                tokens.append(self._tokenize_identifier())
            elif char == "@":
                tokens.append(self._tokenize_label())
            elif char == "^":
                tokens.append(self._tokenize_caret())
            elif char in "+-*/":
                tokens.append(Token(TokenType.OPERATOR, char, self.pos))
                self.pos += 1
            elif char in self.SINGLE_CHAR_TOKENS:
                tokens.append(Token(self.SINGLE_CHAR_TOKENS[char], char, self.pos))
                self.pos += 1
            else:
                raise TokenizerError(
                    f"Unexpected character: {char} at position {self.pos}"
                )

        return tokens

    def _is_identifier_char(self, pos: int) -> bool:
        return pos < self.length and (
            self.formula[pos].isalnum() or self.formula[pos] == "_"
        )

    def _tokenize_identifier(self) -> Token:
        """Tokenize an identifier (function name or cell reference)."""
        start = self.pos
        while self._is_identifier_char(self.pos):
            self.pos += 1
        return Token(TokenType.IDENTIFIER, self.formula[start : self.pos], start)

    def _tokenize_label(self) -> Token:
        """Tokenize a label reference name, everything between '@' and '<'."""
        start = self.pos
        self.pos += 1  # Skip '@'
        while (
            self.pos < self.length
            and self.formula[self.pos] != "<"
            and not self.formula[self.pos].isspace()
        ):
            self.pos += 1

        name = self.formula[start + 1 : self.pos]
        if not name:
            raise TokenizerError(f"Missing label name at position {start}")
        return Token(TokenType.LABEL, name, start)

    def _tokenize_caret(self) -> Token:
        """Tokenize ^^, ^v or a lone ^."""
        start = self.pos
        next_char = self.formula[self.pos + 1] if self.pos + 1 < self.length else None

        if next_char == "^":
            self.pos += 2
            return Token(TokenType.UP_FORMULA, "^^", start)
        # "^v" only if the v isn't the start of a longer identifier
        if next_char == "v" and not self._is_identifier_char(self.pos + 2):
            self.pos += 2
            return Token(TokenType.CARET_V, "^v", start)

        self.pos += 1
        return Token(TokenType.CARET, "^", start)

    def _tokenize_number(self) -> Token:
        """Tokenize a number (integer or decimal)."""
        start = self.pos
        seen_decimal = False
        has_digits = False
        seen_exponent = False

        while self.pos < self.length:
            char = self.formula[self.pos]

            if char.isdigit():
                has_digits = True
                self.pos += 1
            elif char == "." and not seen_decimal and not seen_exponent:
                seen_decimal = True
                self.pos += 1
            elif char == "." and seen_decimal:
                raise TokenizerError(
                    f"Invalid number format at position {start}: multiple decimal points"
                )
            elif (char == "e" or char == "E") and not seen_exponent and has_digits:
                seen_exponent = True
                self.pos += 1
                # Check for optional sign after e/E
                if self.pos < self.length and (self.formula[self.pos] in "+-"):
                    self.pos += 1
                # Must have at least one digit after e/E
                if self.pos >= self.length or not self.formula[self.pos].isdigit():
                    raise TokenizerError(
                        f"Invalid scientific notation at position {start}: missing exponent"
                    )
            else:
                break

        value = self.formula[start : self.pos]

        if value == ".":
            raise TokenizerError(
                f"Invalid number format at position {start}: lone decimal point"
            )
        elif not has_digits:
            raise TokenizerError(
                f"Invalid number format at position {start}: no digits"
            )
        elif value.endswith("."):
            raise TokenizerError(
                f"Invalid number format at position {start}: trailing decimal point"
            )

        return Token(TokenType.NUMBER, value, start)

    def _tokenize_string(self) -> Token:
        """Tokenize a string literal. There is no escaping: the string ends at
        the next double quote."""
        start = self.pos
        end = self.formula.find('"', start + 1)
        if end == -1:
            raise TokenizerError(
                f"Unterminated string literal '{self.formula[start + 1 :]}'"
            )
        self.pos = end + 1
        return Token(TokenType.STRING, self.formula[start + 1 : end], start)
