"""Restricted arithmetic evaluation for the calculator tool.

Expressions pass two gates. A character allow-list pattern rejects anything
outside digits, operators, parentheses and a fixed set of ``Math.*`` names.
Accepted strings are then parsed with ``ast`` and walked node by node; only
numeric literals, arithmetic operators and the whitelisted ``Math`` members
evaluate. Nothing reaches ``eval`` and no names resolve against module or
builtin state.

The first gate is a pattern, not a grammar, so it can be overly permissive
at the margins; the second gate is what actually bounds execution.
"""

import ast
import math
import operator
import re
from typing import Union

Number = Union[int, float]

MAX_EXPRESSION_LENGTH = 1000

UNSUPPORTED_CHARACTERS_ERROR = (
    "Expression contains unsupported characters. Only numbers, operators "
    "(+, -, *, /, ^, %), parentheses, and Math.* functions are allowed."
)
NON_FINITE_ERROR = "Expression did not evaluate to a finite number"

_MATH_NAMES = "abs|ceil|floor|round|sqrt|pow|min|max|log|log2|log10|sin|cos|tan|PI|E"

SAFE_MATH_PATTERN = re.compile(
    r"^[\d\s+\-*/().,%^e]+$"
    r"|^[\d\s+\-*/().,%^e]*(Math\.(" + _MATH_NAMES + r")[\d\s+\-*/().,%^e]*)+$"
)
PLAIN_ARITHMETIC_PATTERN = re.compile(r"^[\d\s+\-*/().^%eE]+$")


class SandboxError(ValueError):
    """Expression rejected or failed to evaluate."""


def _js_round(value: float) -> float:
    # Math.round rounds halves toward +Infinity
    return float(math.floor(value + 0.5))


_MATH_FUNCTIONS = {
    "abs": abs,
    "ceil": math.ceil,
    "floor": math.floor,
    "round": _js_round,
    "sqrt": math.sqrt,
    "pow": math.pow,
    "min": min,
    "max": max,
    "log": math.log,
    "log2": math.log2,
    "log10": math.log10,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
}

_MATH_CONSTANTS = {
    "PI": math.pi,
    "E": math.e,
}

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: math.pow,
    ast.Mod: math.fmod,
}

_UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def normalize_expression(expression: str) -> str:
    """Rewrite ``^`` as exponentiation and ``N%`` as ``(N/100)``."""
    normalized = expression.replace("^", "**")
    return re.sub(r"(\d+)%", r"(\1/100)", normalized)


def _is_math_member(node: ast.AST) -> bool:
    return (
        isinstance(node, ast.Attribute)
        and isinstance(node.value, ast.Name)
        and node.value.id == "Math"
    )


def _evaluate(node: ast.AST) -> float:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)

    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise SandboxError("Only numeric literals are allowed")
        return float(node.value)

    if isinstance(node, ast.BinOp):
        op = _BINARY_OPERATORS.get(type(node.op))
        if op is None:
            raise SandboxError(f"Operator {type(node.op).__name__} is not allowed")
        return op(_evaluate(node.left), _evaluate(node.right))

    if isinstance(node, ast.UnaryOp):
        op = _UNARY_OPERATORS.get(type(node.op))
        if op is None:
            raise SandboxError(f"Operator {type(node.op).__name__} is not allowed")
        return op(_evaluate(node.operand))

    if _is_math_member(node):
        if node.attr not in _MATH_CONSTANTS:
            raise SandboxError(f"Math.{node.attr} is not a supported constant")
        return _MATH_CONSTANTS[node.attr]

    if isinstance(node, ast.Call):
        if not _is_math_member(node.func) or node.func.attr not in _MATH_FUNCTIONS:
            raise SandboxError("Only Math.* functions can be called")
        if node.keywords or any(isinstance(arg, ast.Starred) for arg in node.args):
            raise SandboxError("Unsupported function call syntax")
        args = [_evaluate(arg) for arg in node.args]
        return float(_MATH_FUNCTIONS[node.func.attr](*args))

    raise SandboxError(f"Unsupported expression element: {type(node).__name__}")


def safe_eval(expression: str) -> Number:
    """
    Evaluate an arithmetic expression in a restricted context.

    Returns:
        The finite numeric result; integral values are returned as int

    Raises:
        SandboxError: If the expression is rejected or does not produce a finite number
    """
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise SandboxError(f"Expression too long (max {MAX_EXPRESSION_LENGTH} characters)")

    normalized = normalize_expression(expression)

    if not SAFE_MATH_PATTERN.match(normalized) and not PLAIN_ARITHMETIC_PATTERN.match(normalized):
        raise SandboxError(UNSUPPORTED_CHARACTERS_ERROR)

    try:
        tree = ast.parse(normalized.strip(), mode="eval")
    except SyntaxError:
        raise SandboxError("Invalid expression syntax")

    try:
        result = _evaluate(tree)
    except SandboxError:
        raise
    except (ArithmeticError, ValueError, TypeError, RecursionError):
        # Division by zero, domain errors and overflow are Infinity/NaN in JS terms
        raise SandboxError(NON_FINITE_ERROR)

    if not isinstance(result, (int, float)) or not math.isfinite(result):
        raise SandboxError(NON_FINITE_ERROR)

    if float(result).is_integer():
        return int(result)
    return result
