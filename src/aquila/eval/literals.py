from __future__ import annotations

import re
from typing import Callable, Optional

from ..types import AqBool, AqFloat, AqInt, AqList, AqValue, fits_i32
from .common import split_top_level, wraps_whole

_INT = re.compile(r'[+-]?\d+\Z')
_FLOAT = re.compile(r'[+-]?(?:\d+(?:[.,]\d*)?|[.,]\d+)(?:[eE][+-]?\d+)?[fF]?\Z')

def parse_scalar(expr: str) -> Optional[AqValue]:
    """Int, then bool keyword, then float. None when nothing matches."""
    if _INT.match(expr):
        number = int(expr)
        if fits_i32(number):
            return AqInt(number)
        return AqFloat(float(number))

    if expr == 'true':
        return AqBool(True)
    if expr == 'false':
        return AqBool(False)

    if _FLOAT.match(expr):
        text = expr.rstrip('fF').replace(',', '.')
        return AqFloat(float(text))

    return None

def parse_list(expr: str, evaluate: Callable[[str], AqValue]) -> Optional[AqList]:
    if not wraps_whole(expr, '['):
        return None

    inner = expr[1:-1]
    if inner == '':
        return AqList([])

    return AqList([evaluate(part) for part in split_top_level(inner)])
