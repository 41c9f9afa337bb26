"""Sandboxed evaluation of gate formulas.

Formulas are user-authored text, so they never reach Python's eval(). They
are parsed with simpleeval, restricted further to a small numeric grammar:

- numeric literals and variable names bound by the caller
- arithmetic: ``+ - * /`` and unary ``+``/``-``
- comparisons: ``< > <= >= ==``
- parentheses

Function calls, attribute access, subscripts, conditionals, boolean
operators, string literals and multiple statements are all rejected.
Boolean results are coerced to 1/0.
"""
import ast
import logging
import math
import operator as op
from typing import Mapping, Union

from simpleeval import InvalidExpression, SimpleEval, safe_add, safe_mult

LOGGER = logging.getLogger(__name__)

Number = Union[int, float]

FORMULA_OPERATORS = {
    ast.Add: safe_add,
    ast.Sub: op.sub,
    ast.Mult: safe_mult,
    ast.Div: op.truediv,
    ast.USub: op.neg,
    ast.UAdd: op.pos,
    ast.Lt: op.lt,
    ast.Gt: op.gt,
    ast.LtE: op.le,
    ast.GtE: op.ge,
    ast.Eq: op.eq,
}

ALLOWED_SYNTAX = (
    ast.Expr,
    ast.Constant,
    ast.Name,
    ast.UnaryOp,
    ast.BinOp,
    ast.Compare,
)


class FormulaError(Exception):
    """Raised when a formula cannot be evaluated to a finite number."""

    pass


class FormulaEvaluator(SimpleEval):
    """simpleeval evaluator limited to arithmetic and comparisons over names."""

    def __init__(self, names: Mapping[str, Number]) -> None:
        super().__init__(operators=dict(FORMULA_OPERATORS), functions={}, names=dict(names))
        self.nodes = {
            node_type: handler
            for node_type, handler in self.nodes.items()
            if node_type in ALLOWED_SYNTAX
        }
        self.nodes[ast.Constant] = self._eval_numeric_constant

    def _eval_numeric_constant(self, node: ast.Constant) -> Number:
        # bool is an int subclass, so True/False are rejected explicitly
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise InvalidExpression(f"Only numeric literals are allowed, got {node.value!r}")
        return node.value


def _check_single_expression(expression: str) -> None:
    # simpleeval only warns about "a; b" and evaluates the first statement
    tree = ast.parse(expression.strip())
    if len(tree.body) != 1:
        raise FormulaError(f"Formula '{expression}' must be a single expression")


def evaluate_formula(expression: str, variables: Mapping[str, Number]) -> Number:
    """Evaluate ``expression`` against ``variables`` and return a number.

    Raises:
        FormulaError: on an empty expression, a parse error, a reference to an
            unbound variable, disallowed syntax, or a non-finite/non-numeric result.

    Example:
        >>> evaluate_formula("a * b", {"a": 2, "b": 3})
        6
        >>> evaluate_formula("a > 5", {"a": 10})
        1
    """
    if not expression or not expression.strip():
        raise FormulaError("Empty formula")

    try:
        _check_single_expression(expression)
        result = FormulaEvaluator(variables).eval(expression)
    except FormulaError:
        raise
    except InvalidExpression as e:
        raise FormulaError(f"Invalid formula '{expression}': {e}") from e
    except SyntaxError as e:
        raise FormulaError(f"Cannot parse formula '{expression}': {e.msg}") from e
    except (ArithmeticError, TypeError, ValueError) as e:
        raise FormulaError(f"Error evaluating '{expression}': {e}") from e
    except Exception as e:
        raise FormulaError(f"Unexpected error evaluating '{expression}': {e}") from e

    if isinstance(result, bool):
        return int(result)
    if not isinstance(result, (int, float)):
        raise FormulaError(f"Formula '{expression}' did not produce a number")
    try:
        finite = math.isfinite(result)
    except OverflowError:
        finite = False
    if not finite:
        raise FormulaError(f"Formula '{expression}' produced a non-finite result")
    return result


def try_evaluate_formula(
    expression: str, variables: Mapping[str, Number], default: Number = 0
) -> Number:
    """Evaluate a formula, returning ``default`` on any failure."""
    try:
        return evaluate_formula(expression, variables)
    except FormulaError as e:
        LOGGER.debug("Formula evaluation failed: %s", e)
        return default

