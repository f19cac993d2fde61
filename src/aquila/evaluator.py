"""Expression evaluation over plain strings.

There is no tokenizer: each rule below inspects the (whitespace free)
expression text, and the first rule that recognizes it wins. Splitting is
always done at nesting depth zero, so delimiters protect sub-expressions.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .eval.common import (
    check_delimiters,
    is_identifier,
    matching_close,
    normalize,
    split_top_level,
    strip_parens,
    wraps_whole,
)
from .eval.literals import parse_list, parse_scalar
from .eval.operators import OPERATOR_TIERS, apply_operator, split_operators
from .types import AqBool, AqPendingCall, AqValue, AquilaSyntaxError, AquilaTypeError, Variable, type_name

if TYPE_CHECKING:
    from .interpreter import Interpreter

LOGGER = logging.getLogger(__name__)

def evaluate(expr: str, interp: Interpreter) -> AqValue:
    text = _prepare(expr)
    if LOGGER.isEnabledFor(logging.DEBUG):
        LOGGER.debug("evaluate %r", text)
    return _eval(text, interp)

def _prepare(expr: str) -> str:
    text = normalize(expr)
    if not text:
        raise AquilaSyntaxError("Empty expression")
    check_delimiters(text)
    return text

def _eval(expr: str, interp: Interpreter) -> AqValue:
    expr = strip_parens(expr)
    if expr == '':
        raise AquilaSyntaxError("Empty expression")

    lst = parse_list(expr, lambda part: _eval(part, interp))
    if lst is not None:
        return lst

    scalar = parse_scalar(expr)
    if scalar is not None:
        return scalar

    for tier in OPERATOR_TIERS:
        split = split_operators(expr, tier)
        if split is None:
            continue

        operands, operators = split
        result = _eval(operands[0], interp)
        for op, operand in zip(operators, operands[1:]):
            result = apply_operator(op, result, _eval(operand, interp))
        return result

    if expr.startswith('!'):
        return _eval_not(expr[1:], interp)

    call = parse_call(expr)
    if call is not None:
        return interp.functions.call_value(call, interp)

    if expr.startswith('$'):
        return interp.scope.lookup(designator_name(expr)).read()

    raise AquilaSyntaxError(f"Cannot evaluate '{expr}'")

def _eval_not(operand: str, interp: Interpreter) -> AqBool:
    if not wraps_whole(operand, '('):
        raise AquilaSyntaxError(f"Negation expects a parenthesized operand: '!{operand}'")

    value = _eval(operand, interp)
    if not isinstance(value, AqBool):
        raise AquilaTypeError(f"Cannot negate a {type_name(value)}")
    return AqBool(not value.value)

def parse_call(expr: str) -> Optional[AqPendingCall]:
    """Recognize ``name(arg, ...)`` spanning the whole expression."""
    open_idx = expr.find('(')
    if open_idx <= 0 or not is_identifier(expr[:open_idx]):
        return None
    if matching_close(expr, open_idx) != len(expr) - 1:
        return None

    inner = expr[open_idx + 1:-1]
    args = tuple(split_top_level(inner)) if inner.strip() else ()
    return AqPendingCall(expr[:open_idx], args)

def designator_name(expr: str) -> str:
    """Name behind a ``$name`` designator (parentheses allowed)."""
    text = strip_parens(_prepare(expr))

    if not text.startswith('$'):
        raise AquilaSyntaxError(f"Expected a variable, got '{text}'")

    name = text[1:]
    if '[' in name:
        raise AquilaSyntaxError(
            f"Subscript access '{text}' is not supported in expressions; use list_at()"
        )
    if not is_identifier(name):
        raise AquilaSyntaxError(f"Invalid variable name '{name}'")

    return name

def resolve_variable(expr: str, interp: Interpreter) -> Variable:
    return interp.scope.lookup(designator_name(expr))

def is_designator(expr: str) -> bool:
    text = strip_parens(''.join(expr.split()))
    return text.startswith('$') and is_identifier(text[1:])
