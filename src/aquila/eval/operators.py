from __future__ import annotations

import math
from typing import List, Optional, Tuple

from typing_extensions import assert_never

from ..types import (
    AqBool,
    AqFloat,
    AqInt,
    AqList,
    AqNull,
    AqPendingCall,
    AqValue,
    AquilaArithmeticError,
    AquilaSyntaxError,
    AquilaTypeError,
    same_tag,
    type_name,
)
from .common import CLOSERS, OPENERS

# Loosest first. Within a tier operators share a precedence and fold left.
OPERATOR_TIERS: Tuple[str, ...] = (
    '&',
    '^',
    '|',
    ':~}{><',
    '+-',
    '*/%',
)
OPERATOR_SYMBOLS = ''.join(OPERATOR_TIERS)

SYMBOL_NAMES = {
    '|': '||', '^': 'xor', '&': '&&',
    ':': '!=', '~': '==', '}': '>=', '{': '<=', '>': '>', '<': '<',
    '+': '+', '-': '-', '*': '*', '/': '/', '%': '%',
}

def _is_binary_position(expr: str, idx: int) -> bool:
    """A sign directly after an operator (or at the start) is unary."""
    if expr[idx] not in '+-':
        return idx > 0
    if idx == 0:
        return False
    return expr[idx - 1] not in OPERATOR_SYMBOLS and expr[idx - 1] not in OPENERS and expr[idx - 1] != ','

def split_operators(expr: str, tier: str) -> Optional[Tuple[List[str], List[str]]]:
    """Split ``expr`` on every top-level operator of ``tier``.

    Returns (operands, operators) or None when the tier does not occur.
    """
    operands: List[str] = []
    operators: List[str] = []
    depth = 0
    start = 0

    for idx, ch in enumerate(expr):
        if ch in OPENERS:
            depth += 1
            continue
        if ch in CLOSERS:
            depth -= 1
            continue
        if depth != 0 or ch not in tier or not _is_binary_position(expr, idx):
            continue
        if ch in '+-' and _is_exponent_sign(expr, idx):
            continue
        operands.append(expr[start:idx])
        operators.append(ch)
        start = idx + 1

    if not operators:
        return None

    operands.append(expr[start:])
    for operand in operands:
        if operand == '':
            raise AquilaSyntaxError(f"Missing operand in '{expr}'")
    return operands, operators

def _is_exponent_sign(expr: str, idx: int) -> bool:
    # the sign in "1.5e-3" belongs to the literal
    if idx < 2 or expr[idx - 1] not in 'eE':
        return False
    j = idx - 2
    while j >= 0 and (expr[j].isdigit() or expr[j] in '.,'):
        j -= 1
    mantissa = expr[j + 1:idx - 1]
    if not mantissa or not any(c.isdigit() for c in mantissa):
        return False
    return j < 0 or not (expr[j].isalnum() or expr[j] in '_$')

def _int_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q

def _int_mod(a: int, b: int) -> int:
    return a - b * _int_div(a, b)

def _mismatch(op: str, left: AqValue, right: AqValue) -> AquilaTypeError:
    return AquilaTypeError(
        f"Operator '{SYMBOL_NAMES.get(op, op)}' is not defined for {type_name(left)} and {type_name(right)}"
    )

def _arith(op: str, left: AqValue, right: AqValue) -> AqValue:
    match left, right:
        case AqInt(value=a), AqInt(value=b):
            if op == '+':
                return AqInt(a + b)
            if op == '-':
                return AqInt(a - b)
            if op == '*':
                return AqInt(a * b)
            if b == 0:
                raise AquilaArithmeticError("Division by zero" if op == '/' else "Modulo by zero")
            return AqInt(_int_div(a, b) if op == '/' else _int_mod(a, b))
        case AqFloat(value=x), AqFloat(value=y):
            if op == '+':
                return AqFloat(x + y)
            if op == '-':
                return AqFloat(x - y)
            if op == '*':
                return AqFloat(x * y)
            if op == '%':
                raise _mismatch(op, left, right)
            if y == 0:
                raise AquilaArithmeticError("Division by zero")
            return AqFloat(x / y)
        case _:
            raise _mismatch(op, left, right)

def _compare(op: str, left: AqValue, right: AqValue) -> AqBool:
    match left, right:
        case (AqInt(value=a), AqInt(value=b)) | (AqFloat(value=a), AqFloat(value=b)):
            pass
        case _:
            raise _mismatch(op, left, right)

    if op == '<':
        return AqBool(a < b)
    if op == '>':
        return AqBool(a > b)
    if op == '{':
        return AqBool(a <= b)
    if op == '}':
        return AqBool(a >= b)
    if op == '~':
        return AqBool(a == b)
    return AqBool(a != b)

def _logic(op: str, left: AqValue, right: AqValue) -> AqBool:
    if not isinstance(left, AqBool) or not isinstance(right, AqBool):
        raise _mismatch(op, left, right)
    if op == '&':
        return AqBool(left.value and right.value)
    if op == '|':
        return AqBool(left.value or right.value)
    return AqBool(left.value != right.value)

def apply_operator(op: str, left: AqValue, right: AqValue) -> AqValue:
    if not same_tag(left, right):
        raise _mismatch(op, left, right)

    for operand in (left, right):
        match operand:
            case AqInt() | AqFloat() | AqBool():
                pass
            case AqNull() | AqList() | AqPendingCall():
                raise _mismatch(op, left, right)
            case _:
                assert_never(operand)

    if op in '+-*/%':
        result = _arith(op, left, right)
        if isinstance(result, AqFloat) and math.isnan(result.value):
            raise AquilaArithmeticError(f"'{SYMBOL_NAMES[op]}' produced NaN")
        return result
    if op in ':~}{><':
        return _compare(op, left, right)
    if op in '|^&':
        return _logic(op, left, right)

    raise AquilaSyntaxError(f"Unknown operator '{op}'")
