"""Turn statement descriptors into statement trees.

A descriptor is either one instruction line (``"decl int x 5"``) or a
``(header, children)`` pair for blocks (``("while ($x < 3)", [...])``).
The result is a list of ``lark.Tree`` nodes whose ``meta.line`` is the
1-based position of the descriptor in a pre-order walk.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple, Union

from lark import Token, Tree
from lark.tree import Meta

from .eval.common import is_identifier, matching_close, split_top_level, split_words, wraps_whole
from .types import TYPE_NAMES, AquilaError, AquilaSyntaxError

Descriptor = Union[str, Tuple[str, Sequence['Descriptor']], List[object], Tree]

RESERVED_KEYWORDS = frozenset({
    "if", "else", "end-if",
    "for", "end-for",
    "while", "end-while",
    "function", "end-function", "recursive",
    "decl", "safe", "overwrite",
    "trace", "null", "auto", "xor",
    *TYPE_NAMES,
})

DEFAULT_LITERALS = {"int": "0", "float": "0f", "bool": "false", "list": "[]"}

BLOCK_ENDS = {
    "while": "end-while",
    "for": "end-for",
    "if": "end-if",
    "function": "end-function",
}

_BLOCK_HEAD = re.compile(r'(while|for|if|function)\b')
_ASSIGNMENT = re.compile(r'(\$[^\s=]+)\s*=(?!=)\s*(.*)\Z', re.S)

def _node(label: str, children: List[object], line: int) -> Tree:
    meta = Meta()
    meta.line = line
    meta.empty = False
    return Tree(label, children, meta)

def check_name(name: str) -> str:
    if not is_identifier(name):
        raise AquilaSyntaxError(f"Invalid name '{name}'")
    if name in RESERVED_KEYWORDS:
        raise AquilaSyntaxError(f"'{name}' is a reserved keyword")
    return name

def _parenthesized(text: str, keyword: str) -> str:
    rest = text[len(keyword):].strip()
    if not rest or not wraps_whole(rest, '('):
        raise AquilaSyntaxError(f"'{keyword}' expects a parenthesized header, got '{text}'")
    return rest[1:-1].strip()

def _split_call(text: str) -> Optional[Tuple[str, List[str]]]:
    open_idx = text.find('(')
    if open_idx <= 0 or not is_identifier(text[:open_idx].strip()):
        return None
    if matching_close(text, open_idx) != len(text) - 1:
        return None

    inner = text[open_idx + 1:-1]
    args = split_top_level(inner) if inner.strip() else []
    return text[:open_idx].strip(), args

class InstructionBuilder:
    def __init__(self) -> None:
        self._line = 0

    def build(self, descriptors: Sequence[Descriptor]) -> List[Tree]:
        if isinstance(descriptors, (str, Tree)):
            descriptors = [descriptors]
        return [self._build_one(desc) for desc in descriptors]

    def _build_one(self, desc: Descriptor) -> Tree:
        if isinstance(desc, Tree):
            return desc

        self._line += 1
        line = self._line

        try:
            if isinstance(desc, str):
                return self._leaf(desc, line)
            if isinstance(desc, (tuple, list)) and len(desc) == 2 and isinstance(desc[0], str) \
                    and isinstance(desc[1], (tuple, list)):
                return self._block(desc[0], desc[1], line)
            raise AquilaSyntaxError(f"Malformed statement descriptor: {desc!r}")
        except AquilaError as exc:
            if exc.line is None:
                exc.line = line
            raise

    # ---------- leaves ----------

    def _leaf(self, text: str, line: int) -> Tree:
        text = text.strip()
        words = split_words(text)
        if not words:
            raise AquilaSyntaxError("Empty instruction")

        head = words[0]
        match head:
            case 'trace':
                if len(words) < 2:
                    raise AquilaSyntaxError("'trace' expects at least one variable")
                return _node('tracing', [Token('EXPR', w) for w in words[1:]], line)
            case 'decl':
                return self._declaration(words[1:], 'new', line)
            case 'overwrite':
                rest = words[2:] if len(words) > 1 and words[1] == 'decl' else words[1:]
                return self._declaration(rest, 'overwrite', line)
            case 'safe':
                if len(words) < 2 or words[1] != 'decl':
                    raise AquilaSyntaxError("'safe' must be followed by 'decl'")
                return self._declaration(words[2:], 'safe', line)

        m = _ASSIGNMENT.match(text)
        if m is not None:
            target, expr = m.group(1), m.group(2).strip()
            if '[' in target or '(' in target:
                raise AquilaSyntaxError(f"Only plain variables can be assigned, got '{target}'")
            check_name(target[1:])
            if not expr:
                raise AquilaSyntaxError(f"Missing value in assignment to '{target}'")
            return _node('assignment', [Token('TARGET', target), Token('EXPR', expr)], line)

        call = _split_call(text)
        if call is not None and call[0] not in BLOCK_ENDS:
            name, args = call
            return _node('void_call', [Token('NAME', name), *[Token('ARG', a) for a in args]], line)

        if _BLOCK_HEAD.match(text):
            raise AquilaSyntaxError(f"'{head}' needs a nested body")
        raise AquilaSyntaxError(f"Unknown instruction '{text}'")

    def _declaration(self, words: List[str], mode: str, line: int) -> Tree:
        if len(words) < 2:
            raise AquilaSyntaxError(f"Incomplete declaration '{' '.join(words)}'")

        first = words[0]
        if first in TYPE_NAMES:
            type_, name, rest = first, words[1], words[2:]
        elif first == 'auto':
            type_, name, rest = 'auto', words[1], words[2:]
            if not rest:
                raise AquilaSyntaxError(f"'auto' declaration of '{name}' needs a value")
        else:
            type_, name, rest = 'auto', first, words[1:]

        check_name(name)
        real = bool(rest)
        expr = ' '.join(rest) if rest else DEFAULT_LITERALS[type_]

        return _node('declaration', [
            Token('NAME', name),
            Token('TYPE', type_),
            Token('EXPR', expr),
            Token('ASSIGNED', 'true' if real else 'false'),
            Token('MODE', mode),
        ], line)

    # ---------- blocks ----------

    def _block(self, header: str, children: Sequence[Descriptor], line: int) -> Tree:
        header = header.strip()
        m = _BLOCK_HEAD.match(header)
        if m is None:
            raise AquilaSyntaxError(f"'{header}' cannot have a nested body")
        keyword = m.group(1)

        children = list(children)
        if children and isinstance(children[-1], str) and children[-1].strip() == BLOCK_ENDS[keyword]:
            children.pop()

        match keyword:
            case 'while':
                cond = _parenthesized(header, keyword)
                return _node('while_loop', [Token('EXPR', cond), self._body('body', children, line)], line)
            case 'for':
                return self._for(header, children, line)
            case 'if':
                return self._if(header, children, line)
            case _:
                return self._function(header, children, line)

    def _body(self, label: str, children: Sequence[Descriptor], line: int) -> Tree:
        return _node(label, [self._build_one(child) for child in children], line)

    def _for(self, header: str, children: Sequence[Descriptor], line: int) -> Tree:
        parts = [p.strip() for p in split_top_level(_parenthesized(header, 'for'))]
        if len(parts) != 3 or not all(parts):
            raise AquilaSyntaxError(f"'for' expects (init, condition, step), got '{header}'")

        init, cond, step = parts
        return _node('for_loop', [
            _node('init', [self._leaf(init, line)], line),
            Token('EXPR', cond),
            _node('step', [self._leaf(step, line)], line),
            self._body('body', children, line),
        ], line)

    def _if(self, header: str, children: Sequence[Descriptor], line: int) -> Tree:
        cond = _parenthesized(header, 'if')
        markers = [i for i, c in enumerate(children) if isinstance(c, str) and c.strip() == 'else']
        if len(markers) > 1:
            raise AquilaSyntaxError("'if' has more than one 'else'")

        if markers:
            split = markers[0]
            then_children, else_children = children[:split], children[split + 1:]
        else:
            then_children, else_children = children, []

        then_body = self._body('body', then_children, line)
        else_body = self._body('else_body', else_children, line)
        return _node('if_condition', [Token('EXPR', cond), then_body, else_body], line)

    def _function(self, header: str, children: Sequence[Descriptor], line: int) -> Tree:
        words = split_words(header)[1:]
        recursive = bool(words) and words[0] == 'recursive'
        if recursive:
            words = words[1:]
        if len(words) != 2:
            raise AquilaSyntaxError(f"Malformed function header '{header}'")

        type_, signature = words
        if type_ not in TYPE_NAMES and type_ not in ('auto', 'null'):
            raise AquilaSyntaxError(f"Unknown return type '{type_}'")

        call = _split_call(signature)
        if call is None:
            raise AquilaSyntaxError(f"Malformed function signature '{signature}'")
        name, params = call
        check_name(name)
        params = [check_name(p.strip().lstrip('$')) for p in params]
        if len(set(params)) != len(params):
            raise AquilaSyntaxError(f"Duplicate parameter in '{signature}'")

        return _node('function_def', [
            Token('NAME', name),
            Token('TYPE', type_),
            Token('RECURSIVE', 'true' if recursive else 'false'),
            _node('params', [Token('PARAM', p) for p in params], line),
            self._body('body', children, line),
        ], line)

def build(descriptors: Sequence[Descriptor]) -> List[Tree]:
    return InstructionBuilder().build(descriptors)
