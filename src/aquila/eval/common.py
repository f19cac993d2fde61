from __future__ import annotations

import re
from typing import Any, List, Optional, Sequence

from lark import Token, Tree

from ..types import AquilaSyntaxError

OPENERS = {'(': ')', '[': ']'}
CLOSERS = {')': '(', ']': '['}

# Longer spellings first so "<=" never reads as "<" followed by "=".
_OPERATOR_SPELLINGS = (
    ('&&', '&'),
    ('||', '|'),
    ('<=', '{'),
    ('>=', '}'),
    ('==', '~'),
    ('!=', ':'),
)
_XOR_WORD = re.compile(r'\bxor\b')
_IDENT = re.compile(r'[A-Za-z_][A-Za-z0-9_]*\Z')

def is_identifier(text: str) -> bool:
    return _IDENT.match(text) is not None

def normalize(expr: str) -> str:
    """Drop whitespace and rewrite operators to their one-character forms."""
    expr = _XOR_WORD.sub('^', expr)
    expr = ''.join(expr.split())

    for spelling, symbol in _OPERATOR_SPELLINGS:
        expr = expr.replace(spelling, symbol)

    return expr

def check_delimiters(expr: str) -> None:
    stack: List[str] = []

    for idx, ch in enumerate(expr):
        if ch in OPENERS:
            stack.append(ch)
        elif ch in CLOSERS:
            if not stack or stack[-1] != CLOSERS[ch]:
                raise AquilaSyntaxError(f"Unexpected '{ch}' at offset {idx} in '{expr}'")
            stack.pop()

    if stack:
        raise AquilaSyntaxError(f"Unclosed '{stack[-1]}' in '{expr}'")

def matching_close(expr: str, start: int) -> int:
    """Index of the delimiter closing the one opened at ``start``."""
    depth = 0

    for idx in range(start, len(expr)):
        ch = expr[idx]
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth -= 1
            if depth == 0:
                return idx

    raise AquilaSyntaxError(f"Unclosed '{expr[start]}' in '{expr}'")

def wraps_whole(expr: str, opener: str) -> bool:
    return len(expr) >= 2 and expr[0] == opener and matching_close(expr, 0) == len(expr) - 1

def strip_parens(expr: str) -> str:
    while wraps_whole(expr, '('):
        expr = expr[1:-1]
    return expr

def split_top_level(expr: str, separators: str=',') -> List[str]:
    """Split on separators that sit outside every ()/[] pair."""
    parts: List[str] = []
    depth = 0
    start = 0

    for idx, ch in enumerate(expr):
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth -= 1
        elif depth == 0 and ch in separators:
            parts.append(expr[start:idx])
            start = idx + 1

    parts.append(expr[start:])
    return parts

def split_words(line: str) -> List[str]:
    """Split an instruction line on top-level whitespace."""
    words: List[str] = []
    current: List[str] = []
    depth = 0

    for ch in line.strip():
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth -= 1

        if depth == 0 and ch.isspace():
            if current:
                words.append(''.join(current))
                current = []
            continue

        current.append(ch)

    if current:
        words.append(''.join(current))

    return words

# ---------- statement node helpers ----------

def token_kind(node: Any) -> Optional[str]:
    if isinstance(node, Token):
        return str(node.type)
    return None

def child_token(node: Tree, kind: str) -> Optional[str]:
    for child in node.children:
        if token_kind(child) == kind:
            return str(child.value)
    return None

def child_tokens(node: Tree, kind: str) -> List[str]:
    return [str(c.value) for c in node.children if token_kind(c) == kind]

def child_tree(node: Tree, label: str) -> Optional[Tree]:
    for child in node.children:
        if isinstance(child, Tree) and child.data == label:
            return child
    return None

def body_of(node: Tree, label: str='body') -> Sequence[Tree]:
    body = child_tree(node, label)
    if body is None:
        return []
    return body.children

def node_line(node: Any) -> Optional[int]:
    if not isinstance(node, Tree):
        return None
    meta = node.meta
    return getattr(meta, 'line', None)
