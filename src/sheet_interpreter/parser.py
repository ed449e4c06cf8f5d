from typing import List, Optional

from .errors import ParseError
from .functions import resolve_function
from .tokenizer import Token, TokenType, FormulaTokenizer
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
)
from .utils import column_from_letter, extract_cell_reference


def parse_formula(formula: str) -> ASTNode:
    """Helper function to parse a formula string into an AST."""
    tokens = FormulaTokenizer(formula).tokenize()
    return FormulaParser(tokens).parse()


class FormulaParser:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.current = 0

    def parse(self) -> ASTNode:
        """Parse tokens into an AST. The whole input has to be consumed."""
        self.current = 0
        expr = self.parse_expression()
        if (leftover := self.peek()) is not None:
            raise ParseError(
                f"Unexpected token: {leftover.type.name} '{leftover.value}'"
                f" at position {leftover.position}"
            )
        return expr

    def peek(self) -> Optional[Token]:
        """Look at the current token without consuming it."""
        if self.current >= len(self.tokens):
            return None
        return self.tokens[self.current]

    def read(self) -> Token:
        """Consume and return the current token."""
        if self.current >= len(self.tokens):
            raise ParseError("Unexpected end of formula")
        tok = self.tokens[self.current]
        self.current += 1
        return tok

    def read_if_match(self, *types: TokenType) -> Optional[Token]:
        """Consume and return current token if it matches any of the given types."""
        token = self.peek()
        if token is not None and token.type in types:
            self.current += 1
            return token
        return None

    def expect(self, *types: TokenType) -> Token:
        """Read and return the current token if it matches expected types, otherwise error."""
        token = self.read_if_match(*types)
        if token is None:
            curr = self.peek()
            type_names = " or ".join(t.name for t in types)
            raise ParseError(
                f"Expected {type_names}, got "
                f"{curr.type.name if curr else 'end of formula'}"
                f" at position {curr.position if curr else len(self.tokens)}"
            )
        return token

    def _peek_operator(self, valid_operators: set[str]) -> Optional[Token]:
        next_tok = self.peek()
        if (
            next_tok
            and next_tok.type == TokenType.OPERATOR
            and next_tok.value in valid_operators
        ):
            return next_tok
        return None

    def parse_expression(self) -> ASTNode:
        """Parse addition/subtraction (+, -), lowest precedence, left-associative."""
        left = self.parse_term()

        while operator := self._peek_operator({"+", "-"}):
            self.read()  # consume operator
            right = self.parse_term()
            left = BinaryOperation(left=left, operator=operator.value, right=right)

        return left

    def parse_term(self) -> ASTNode:
        """Parse multiplication/division (*, /).

        This recurses on the right, so `a * b / c` is `a * (b / c)`.
        """
        left = self.parse_factor()

        if operator := self._peek_operator({"*", "/"}):
            self.read()  # consume operator
            return BinaryOperation(
                left=left, operator=operator.value, right=self.parse_term()
            )

        return left

    def parse_factor(self) -> ASTNode:
        """Parse a factor (highest precedence: literals, references, functions)."""
        token = self.peek()
        if token is None:
            raise ParseError("Unexpected end of formula")

        if token.type == TokenType.UP_FORMULA:
            return self.parse_up_formula()

        elif token.type == TokenType.IDENTIFIER:
            return self.parse_identifier()

        elif token.type == TokenType.LABEL:
            return self.parse_label_reference()

        elif token.type == TokenType.LPAREN:
            self.read()  # consume '('
            expr = self.parse_expression()
            if not self.read_if_match(TokenType.RPAREN):
                raise ParseError("Expected closing parenthesis ')'")
            return expr

        elif token.type == TokenType.STRING:
            self.read()
            return Literal(token.value)

        elif token.type in (TokenType.NUMBER, TokenType.OPERATOR):
            return Literal(self.parse_number())

        raise ParseError(
            f"Unexpected token: {token.type.name} at position {token.position}"
        )

    def parse_number(self) -> float:
        """Parse a number literal, with an optional leading minus sign."""
        negative = False
        if self._peek_operator({"-"}):
            self.read()
            negative = True
        elif (token := self.peek()) and token.type == TokenType.OPERATOR:
            raise ParseError(
                f"Unexpected operator '{token.value}' at position {token.position}"
            )
        value = float(self.expect(TokenType.NUMBER).value)
        return -value if negative else value

    def parse_up_formula(self) -> UpFormulaReference:
        """Parse ^^, each extra ^^ looks one more row up."""
        offset = 0
        while self.read_if_match(TokenType.UP_FORMULA):
            offset += 1
        return UpFormulaReference(offset)

    def parse_identifier(self) -> ASTNode:
        """Parse an identifier (function call, cell reference or column reference)."""
        token = self.read()

        # Look ahead
        next_token = self.peek()

        if next_token and next_token.type == TokenType.LPAREN:
            self.read()  # consume '('
            if token.value == "incFrom":
                return self.parse_inc_from()
            return self.parse_function_call(token.value)

        if next_token and next_token.type == TokenType.CARET_V:
            self.read()  # consume '^v'
            return LastColGroupCellReference(self.parse_column(token))

        if next_token and next_token.type == TokenType.CARET:
            self.read()  # consume '^'
            return UpCellReference(self.parse_column(token))

        if cell_ref := extract_cell_reference(token.value):
            return cell_ref

        raise ParseError(
            f"Invalid cell reference: {token.value} at position {token.position}"
        )

    def parse_column(self, token: Token) -> int:
        column = column_from_letter(token.value)
        if column is None:
            raise ParseError(
                f"Invalid column: {token.value} at position {token.position}"
            )
        return column

    def parse_inc_from(self) -> IncFrom:
        """Parse the argument of incFrom(n), the '(' is already consumed."""
        start = self.parse_number()
        self.expect(TokenType.RPAREN)
        return IncFrom(start)

    def parse_label_reference(self) -> LabelReference:
        """Parse @label<n>, where n is a one-based row offset within the group."""
        label = self.read()
        self.expect(TokenType.LANGLE)
        number = self.expect(TokenType.NUMBER)
        self.expect(TokenType.RANGLE)

        if not number.value.isdigit() or int(number.value) < 1:
            raise ParseError(
                f"Invalid row offset for label {label.value}: {number.value}"
                f" at position {number.position}"
            )
        return LabelReference(label=label.value, offset=int(number.value) - 1)

    def parse_function_call(self, name: str) -> FunctionCall:
        """Parse a function call with its arguments."""
        function = resolve_function(name)
        args = []

        # Handle empty argument list
        if self.read_if_match(TokenType.RPAREN):
            return FunctionCall(name=name, function=function, arguments=())

        # Parse arguments
        while True:
            args.append(self.parse_expression())

            next_tok = self.peek()
            if not next_tok:
                raise ParseError("Unexpected end of formula in function call")

            if next_tok.type == TokenType.RPAREN:
                self.read()  # consume ')'
                break

            if next_tok.type == TokenType.COMMA:
                self.read()  # consume ','
                continue

            raise ParseError(
                f"Expected ',' or ')' in function call, got {next_tok.type.name}"
            )

        return FunctionCall(name=name, function=function, arguments=tuple(args))
