"""
Recursive descent parser for mathematical expressions.

This parser uses operator precedence climbing to build an Abstract Syntax Tree
from a token stream. Grammar, lowest to highest precedence:

    expression := term (('+' | '-') term)*
    term       := unary (('*' | '/' | '%') unary)*
    unary      := ('-' | '+') unary | power
    power      := primary ('^' unary)?          (right associative)
    primary    := NUMBER | IDENTIFIER | IDENTIFIER '(' args ')' | '(' expression ')'

Precedence and associativity come from the context's operator table.
"""

from ..core.config import get_settings
from ..core.errors import ErrorKind, ParseError
from ..core.logging import get_context_logger
from .ast import ASTNode, BinaryOp, FunctionCall, Number, UnaryOp, Variable, depth
from .context import Associativity, Context, default_context
from .tokenizer import Token, TokenType, tokenize

logger = get_context_logger(__name__, component="parser")


def insert_implicit_multiplication(tokens: list[Token]) -> list[Token]:
    """
    Insert explicit multiplication tokens where products are implied.

    Examples:
    - 2x → 2 * x
    - 2(x) → 2 * (x)
    - (x+1)(x-1) → (x+1) * (x-1)
    - (x)2, (x)y → (x) * 2, (x) * y

    An identifier followed by '(' is a function call and is left alone.

    Args:
        tokens: Original token list

    Returns:
        New token list with multiplication inserted
    """
    result: list[Token] = []

    for i, token in enumerate(tokens):
        result.append(token)

        if i >= len(tokens) - 1 or token.type == TokenType.EOF:
            continue

        next_token = tokens[i + 1]
        should_insert = False

        if token.type == TokenType.NUMBER:
            should_insert = next_token.type in (TokenType.IDENTIFIER, TokenType.LPAREN)

        elif token.type == TokenType.RPAREN:
            should_insert = next_token.type in (
                TokenType.NUMBER,
                TokenType.IDENTIFIER,
                TokenType.LPAREN,
            )

        if should_insert:
            result.append(Token(TokenType.OPERATOR, "*", token.pos + len(token.value)))

    return result


class Parser:
    """
    Recursive descent parser with operator precedence climbing.

    The parser builds an AST from a token stream, respecting:
    - Operator precedence (defined in context)
    - Operator associativity (left/right)
    - Unary minus binding looser than '^' (so -2^2 == -4)
    - Function calls with comma-separated arguments
    """

    def __init__(self, context: Context | None = None, max_depth: int | None = None):
        """
        Initialize parser with optional context.

        Args:
            context: Mathematical context (defaults to the process context)
            max_depth: Deepest nesting accepted (defaults to MAX_EXPRESSION_DEPTH)
        """
        self.context = context or default_context()
        self.max_depth = get_settings().MAX_EXPRESSION_DEPTH if max_depth is None else max_depth
        self.tokens: list[Token] = []
        self.pos = 0
        self.depth = 0

    def parse(self, expression: str) -> ASTNode:
        """
        Parse an expression string to an AST.

        Args:
            expression: The mathematical expression

        Returns:
            Root AST node

        Raises:
            ParseError: If the expression is invalid
        """
        tokens = tokenize(expression)
        ast = self.parse_tokens(tokens)
        logger.debug("Parsed expression", extra_data={"expression": expression})
        return ast

    def parse_tokens(self, tokens: list[Token]) -> ASTNode:
        """
        Parse an already tokenized expression.

        Args:
            tokens: Token list, optionally terminated by an EOF token

        Returns:
            Root AST node
        """
        tokens = list(tokens)
        if not tokens or tokens[-1].type != TokenType.EOF:
            end = tokens[-1].pos + len(tokens[-1].value) if tokens else 0
            tokens.append(Token(TokenType.EOF, "", end))

        self.tokens = insert_implicit_multiplication(tokens)
        self.pos = 0
        self.depth = 0

        if self.current().type == TokenType.EOF:
            raise ParseError(ErrorKind.EMPTY_EXPRESSION, position=self.current().pos)

        try:
            ast = self.parse_expression(0)
        except RecursionError:
            raise self._too_deep(self.current()) from None

        # Ensure we consumed all tokens (except EOF)
        if self.current().type != TokenType.EOF:
            raise self._unexpected(self.current())

        # Long flat chains parse iteratively but still build deep trees
        if depth(ast) > self.max_depth:
            raise self._too_deep(self.tokens[0])

        return ast

    def current(self) -> Token:
        """Get current token without consuming it."""
        return self.tokens[self.pos]

    def peek(self, offset: int = 1) -> Token:
        """Look ahead at token at offset from current position."""
        pos = self.pos + offset
        if pos < len(self.tokens):
            return self.tokens[pos]
        return self.tokens[-1]  # EOF

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return token

    def expect(self, token_type: TokenType, description: str) -> Token:
        """
        Consume a token of the expected type.

        Raises:
            ParseError: If current token doesn't match expected type
        """
        token = self.current()
        if token.type != token_type:
            raise self._unexpected(token, expected=description)
        return self.advance()

    def parse_expression(self, min_precedence: int = 0) -> ASTNode:
        """
        Parse an expression using operator precedence climbing.

        Args:
            min_precedence: Minimum precedence to consider

        Returns:
            AST node
        """
        self.depth += 1
        try:
            if self.depth > self.max_depth:
                raise self._too_deep(self.current())
            return self._climb(min_precedence)
        finally:
            self.depth -= 1

    def _climb(self, min_precedence: int) -> ASTNode:
        left = self.parse_prefix()

        while True:
            token = self.current()

            if token.type != TokenType.OPERATOR or not self.context.is_binary_operator(token.value):
                break

            precedence = self.context.get_operator_precedence(token.value)
            if precedence < min_precedence:
                break

            op_token = self.advance()

            assoc = self.context.get_operator_associativity(op_token.value)
            next_min_prec = precedence + (1 if assoc == Associativity.LEFT else 0)

            right = self.parse_expression(next_min_prec)
            left = BinaryOp(op_token.value, left, right)

        return left

    def parse_prefix(self) -> ASTNode:
        """
        Parse a prefix expression (unary operators or an atom).

        The operand of a unary operator only absorbs operators that bind
        tighter than the unary operator itself, i.e. '^'.
        """
        token = self.current()

        if token.type == TokenType.OPERATOR and token.value in ("-", "+"):
            op_token = self.advance()
            precedence = self.context.get_operator_precedence(op_token.value, is_unary=True)
            operand = self.parse_expression(precedence)
            return UnaryOp(op_token.value, operand)

        return self.parse_atom()

    def parse_atom(self) -> ASTNode:
        """
        Parse an atomic expression (number, variable, parentheses, call).

        Returns:
            AST node
        """
        token = self.current()

        if token.type == TokenType.NUMBER:
            self.advance()
            return Number(float(token.value))

        if token.type == TokenType.IDENTIFIER:
            if self.peek().type == TokenType.LPAREN:
                return self.parse_function_call()
            self.advance()
            return Variable(token.value)

        if token.type == TokenType.LPAREN:
            self.advance()
            expr = self.parse_expression()
            self.expect(TokenType.RPAREN, "')'")
            return expr

        raise self._unexpected(token, expected="number, variable, or '('")

    def parse_function_call(self) -> FunctionCall:
        """
        Parse a function call: func(arg1, arg2, ...).

        Returns:
            FunctionCall node
        """
        func_token = self.advance()
        self.expect(TokenType.LPAREN, "'('")

        args: list[ASTNode] = []

        if self.current().type != TokenType.RPAREN:
            args.append(self.parse_expression())

            while self.current().type == TokenType.COMMA:
                self.advance()
                args.append(self.parse_expression())

        self.expect(TokenType.RPAREN, "')'")

        return FunctionCall(func_token.value, tuple(args))

    def _too_deep(self, token: Token) -> ParseError:
        return ParseError(
            ErrorKind.UNEXPECTED_TOKEN,
            detail=f"Expression is nested more than {self.max_depth} levels deep",
            position=token.pos,
        )

    def _unexpected(self, token: Token, expected: str | None = None) -> ParseError:
        """Build the error for a token that cannot appear here."""
        suffix = f", expected {expected}" if expected else ""
        if token.type == TokenType.EOF:
            return ParseError(
                ErrorKind.UNEXPECTED_END,
                detail=f"Unexpected end of input{suffix}",
                position=token.pos,
            )
        return ParseError(
            ErrorKind.UNEXPECTED_TOKEN,
            detail=f"Unexpected token '{token.value}'{suffix}",
            position=token.pos,
        )


def parse(text: str, context: Context | None = None) -> ASTNode:
    """Parse ``text`` into an AST."""
    return Parser(context).parse(text)
