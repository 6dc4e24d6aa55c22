"""Safe amount expression evaluator.

Turns human amount expressions such as ``"1eur"``, ``"$10"``, ``"50k"`` or
``"(inbound - outbound) / 2"`` into a whole token count. Supports a
constrained arithmetic subset of Python expressions with no arbitrary code
execution.
"""

from __future__ import annotations

import ast
import math
import re
from typing import Any, Mapping


class AmountExpressionError(ValueError):
    """Raised when an amount expression is malformed or references unknown variables."""


_ALLOWED_FUNCS = {
    "abs": abs,
    "max": max,
    "min": min,
    "round": round,
}

# Suffix → multiplier applied to the number it follows ("10k", "0.1btc")
_UNIT_MULTIPLIERS = {
    "k": 1_000,
    "m": 1_000_000,
    "btc": 100_000_000,
    "ltc": 100_000_000,
    "sat": 1,
    "sats": 1,
}

# Currency sign prefix → fiat variable ("$10" → 10 * usd)
_CURRENCY_PREFIXES = {
    "$": "usd",
    "€": "eur",
}

_PREFIXED_AMOUNT = re.compile(r"([$€])\s*(\d+(?:\.\d+)?)")
_SUFFIXED_AMOUNT = re.compile(r"(?<![\w.])(\d+(?:\.\d+)?(?:e[+-]?\d+)?)[ \t]*([a-z_]+)(?!\w)")


def _expand_shorthand(expression: str) -> str:
    def prefixed(match: re.Match[str]) -> str:
        return f"({match.group(2)}*{_CURRENCY_PREFIXES[match.group(1)]})"

    def suffixed(match: re.Match[str]) -> str:
        number, suffix = match.group(1), match.group(2)
        multiplier = _UNIT_MULTIPLIERS.get(suffix)
        if multiplier is not None:
            return f"({number}*{multiplier})"
        return f"({number}*{suffix})"

    expanded = _PREFIXED_AMOUNT.sub(prefixed, expression)
    return _SUFFIXED_AMOUNT.sub(suffixed, expanded)


class _AmountEvaluator:
    def __init__(self, variables: Mapping[str, Any]):
        self.variables = variables

    def eval(self, expression: str) -> float:
        try:
            tree = ast.parse(expression, mode="eval")
        except SyntaxError as exc:
            raise AmountExpressionError(f"Malformed amount expression: {expression!r}") from exc
        return self._eval_node(tree)

    def _eval_node(self, node: ast.AST) -> Any:
        if isinstance(node, ast.Expression):
            return self._eval_node(node.body)

        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise AmountExpressionError(f"Unsupported literal: {node.value!r}")
            return node.value

        if isinstance(node, ast.Name):
            if node.id not in self.variables:
                raise AmountExpressionError(f"Unknown amount variable: {node.id}")
            return self.variables[node.id]

        if isinstance(node, ast.UnaryOp):
            operand = self._eval_node(node.operand)
            if isinstance(node.op, ast.USub):
                return -operand
            if isinstance(node.op, ast.UAdd):
                return +operand
            raise AmountExpressionError("Unsupported unary operator")

        if isinstance(node, ast.BinOp):
            left = self._eval_node(node.left)
            right = self._eval_node(node.right)
            try:
                if isinstance(node.op, ast.Add):
                    return left + right
                if isinstance(node.op, ast.Sub):
                    return left - right
                if isinstance(node.op, ast.Mult):
                    return left * right
                if isinstance(node.op, ast.Div):
                    return left / right
                if isinstance(node.op, ast.FloorDiv):
                    return left // right
                if isinstance(node.op, ast.Mod):
                    return left % right
            except ZeroDivisionError as exc:
                raise AmountExpressionError("Division by zero in amount expression") from exc
            raise AmountExpressionError("Unsupported binary operator")

        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name):
                raise AmountExpressionError("Only direct safe function calls are allowed")
            fn_name = node.func.id
            fn = _ALLOWED_FUNCS.get(fn_name)
            if fn is None:
                raise AmountExpressionError(f"Function '{fn_name}' is not allowed")
            if node.keywords:
                raise AmountExpressionError("Keyword arguments are not supported")
            args = [self._eval_node(arg) for arg in node.args]
            try:
                return fn(*args)
            except (TypeError, ValueError) as exc:
                raise AmountExpressionError(f"Invalid call to {fn_name}: {exc}") from exc

        raise AmountExpressionError(f"Unsupported expression node: {type(node).__name__}")


def evaluate_amount(expression: str, variables: Mapping[str, Any]) -> int:
    """Evaluate an amount expression to a whole number of tokens (rounded down)."""
    expr = str(expression or "").strip().lower()
    if not expr:
        raise AmountExpressionError("Amount expression is empty")

    value = _AmountEvaluator(variables).eval(_expand_shorthand(expr))
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AmountExpressionError(f"Amount expression did not produce a number: {value!r}")
    if not math.isfinite(value):
        raise AmountExpressionError("Amount expression produced a non-finite number")

    # Absorb float noise such as 0.1 * 3 == 0.30000000000000004
    return math.floor(round(value, 6))
