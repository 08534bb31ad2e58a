"""Tests for the expression tokenizer."""

import pytest

from mathkit.core.errors import ErrorKind
from mathkit.parser.tokenizer import Token, TokenType, Tokenizer, tokenize


def kinds(text: str) -> list[TokenType]:
    return [token.type for token in tokenize(text)]


class TestNumbers:
    """Test numeric literal recognition."""

    @pytest.mark.parametrize("text", ["12", "1.5", ".5", "3.", "1e-3", "2.5E+10", "0"])
    def test_single_number(self, text):
        """Test every number form is one NUMBER token."""
        tokens = tokenize(text)
        assert tokens[0] == Token(TokenType.NUMBER, text, 0)
        assert tokens[1].type == TokenType.EOF

    def test_exponent_is_part_of_number(self):
        """Test '1e-3' is not split into 1, e, -, 3."""
        assert kinds("1e-3+2") == [
            TokenType.NUMBER,
            TokenType.OPERATOR,
            TokenType.NUMBER,
            TokenType.EOF,
        ]


class TestSymbols:
    """Test identifiers, operators and punctuation."""

    def test_full_expression(self):
        """Test a mixed expression yields the expected token stream."""
        tokens = tokenize("max(a, 2) ^ -x")
        assert [(t.type, t.value) for t in tokens] == [
            (TokenType.IDENTIFIER, "max"),
            (TokenType.LPAREN, "("),
            (TokenType.IDENTIFIER, "a"),
            (TokenType.COMMA, ","),
            (TokenType.NUMBER, "2"),
            (TokenType.RPAREN, ")"),
            (TokenType.OPERATOR, "^"),
            (TokenType.OPERATOR, "-"),
            (TokenType.IDENTIFIER, "x"),
            (TokenType.EOF, ""),
        ]

    @pytest.mark.parametrize("op", list("+-*/^%"))
    def test_operators(self, op):
        """Test each supported operator is an OPERATOR token."""
        assert tokenize(f"1{op}2")[1] == Token(TokenType.OPERATOR, op, 1)

    def test_identifier_case_preserved(self):
        """Test identifiers keep their case."""
        assert tokenize("PI")[0].value == "PI"

    def test_positions_skip_whitespace(self):
        """Test token offsets point into the original text."""
        tokens = tokenize("  x  +   10")
        assert [t.pos for t in tokens] == [2, 5, 9, 11]

    def test_no_implicit_multiplication(self):
        """Test the tokenizer leaves implicit products alone."""
        assert kinds("2x") == [TokenType.NUMBER, TokenType.IDENTIFIER, TokenType.EOF]


class TestErrors:
    """Test invalid input handling."""

    @pytest.mark.parametrize("text,position", [("2 $ 3", 2), ("x#", 1), ("1 + 2 = 3", 6)])
    def test_unknown_character(self, text, position, assert_error_kind):
        """Test unknown characters raise InvalidToken with their offset."""
        error = assert_error_kind(ErrorKind.INVALID_TOKEN, tokenize, text)
        assert error.position == position

    def test_empty_input_is_just_eof(self):
        """Test empty input tokenizes to the EOF sentinel."""
        assert tokenize("   ") == [Token(TokenType.EOF, "", 3)]

    def test_tokenizer_is_reusable(self):
        """Test one Tokenizer instance can be used repeatedly."""
        tokenizer = Tokenizer()
        assert tokenizer.tokenize("1") == tokenizer.tokenize("1")
