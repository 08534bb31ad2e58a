"""
Tokenizer for mathematical expressions.

This module provides regex-based tokenization. It recognizes numbers,
identifiers, the arithmetic operators, parentheses and commas, and records
the source offset of every token for diagnostics.

Implicit multiplication (``2x``, ``(a)(b)``) is not handled here; the parser
rewrites the token stream before precedence climbing.
"""

import re
from dataclasses import dataclass
from enum import Enum, auto

from ..core.errors import ErrorKind, ParseError
from ..core.logging import get_context_logger

logger = get_context_logger(__name__, component="tokenizer")


class TokenType(Enum):
    """Token types for mathematical expressions."""

    NUMBER = auto()
    IDENTIFIER = auto()
    OPERATOR = auto()
    LPAREN = auto()  # (
    RPAREN = auto()  # )
    COMMA = auto()
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """
    Represents a single token in the expression.

    Attributes:
        type: The token type
        value: The raw text of the token
        pos: Offset in the source string (for error reporting)
    """

    type: TokenType
    value: str
    pos: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, '{self.value}', pos={self.pos})"


OPERATOR_CHARS = "+-*/^%"


class Tokenizer:
    """
    Tokenizes mathematical expressions using a combined regex.

    The tokenizer handles:
    - Numbers (integers, decimals, leading-dot decimals, exponents)
    - Identifiers (function and variable names)
    - Operators + - * / ^ %
    - Parentheses and commas
    """

    # Order matters: earlier patterns win on a tie
    PATTERNS = {
        "NUMBER": r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?",
        "IDENTIFIER": r"[A-Za-z_][A-Za-z0-9_]*",
        "OPERATOR": r"[+\-*/^%]",
        "LPAREN": r"\(",
        "RPAREN": r"\)",
        "COMMA": r",",
        "WHITESPACE": r"\s+",
    }

    def __init__(self):
        self._compile_patterns()

    def _compile_patterns(self) -> None:
        """Compile regex patterns into one alternation with named groups."""
        pattern_parts = [f"(?P<{name}>{pattern})" for name, pattern in self.PATTERNS.items()]
        self.combined_pattern = re.compile("|".join(pattern_parts))

    def tokenize(self, expression: str) -> list[Token]:
        """
        Tokenize a mathematical expression.

        Args:
            expression: The expression to tokenize

        Returns:
            List of tokens, terminated by an EOF token

        Raises:
            ParseError: InvalidToken if the expression contains an unknown character
        """
        tokens: list[Token] = []
        pos = 0

        while pos < len(expression):
            match = self.combined_pattern.match(expression, pos)

            if not match:
                raise ParseError(
                    ErrorKind.INVALID_TOKEN,
                    detail=f"Unknown character '{expression[pos]}'",
                    position=pos,
                )

            kind = match.lastgroup
            value = match.group()
            token_pos = pos
            pos = match.end()

            if kind == "WHITESPACE":
                continue

            tokens.append(Token(TokenType[kind], value, token_pos))

        tokens.append(Token(TokenType.EOF, "", len(expression)))

        logger.debug(
            "Tokenized expression",
            extra_data={"expression": expression, "tokens": len(tokens) - 1},
        )
        return tokens


_tokenizer = Tokenizer()


def tokenize(text: str) -> list[Token]:
    """Tokenize ``text`` with the shared tokenizer (stateless)."""
    return _tokenizer.tokenize(text)
