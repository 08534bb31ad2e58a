"""
MathKit Parser Package

This package turns expression text into an AST and evaluates it.
It includes tokenization, validation, precedence-climbing parsing,
context-driven evaluation, step tracing, symbolic differentiation and
canonical rendering.
"""

from .ast import ASTNode, Number, Variable, BinaryOp, UnaryOp, FunctionCall, free_variables
from .tokenizer import Token, TokenType, Tokenizer, tokenize
from .validator import ValidationResult, Validator, validate
from .parser import Parser, parse
from .context import Context, FunctionConfig, default_context
from .visitors import (
    DiffVisitor,
    EvalVisitor,
    EvaluationStep,
    StepEvalVisitor,
    StepTrace,
    StringVisitor,
    differentiate,
    evaluate,
    evaluate_with_steps,
    to_string,
)

__all__ = [
    "ASTNode",
    "Number",
    "Variable",
    "BinaryOp",
    "UnaryOp",
    "FunctionCall",
    "free_variables",
    "Token",
    "TokenType",
    "Tokenizer",
    "tokenize",
    "ValidationResult",
    "Validator",
    "validate",
    "Parser",
    "parse",
    "Context",
    "FunctionConfig",
    "default_context",
    "DiffVisitor",
    "EvalVisitor",
    "EvaluationStep",
    "StepEvalVisitor",
    "StepTrace",
    "StringVisitor",
    "differentiate",
    "evaluate",
    "evaluate_with_steps",
    "to_string",
]
