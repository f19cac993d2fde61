from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from lark import Tree

from ..runtime import UserFunction
from ..types import AqPendingCall, Signal
from .common import body_of, child_token, child_tokens, child_tree

if TYPE_CHECKING:
    from ..interpreter import Interpreter

def eval_function_def(node: Tree, interp: Interpreter) -> Optional[Signal]:
    params_node = child_tree(node, 'params')
    params = child_tokens(params_node, 'PARAM') if params_node is not None else []

    fn = UserFunction(
        name=child_token(node, 'NAME') or '',
        return_type=child_token(node, 'TYPE') or 'auto',
        params=params,
        body=list(body_of(node)),
        recursive=child_token(node, 'RECURSIVE') == 'true',
    )
    interp.functions.define(fn)
    return None

def eval_void_call(node: Tree, interp: Interpreter) -> Optional[Signal]:
    call = AqPendingCall(child_token(node, 'NAME') or '', tuple(child_tokens(node, 'ARG')))
    return interp.functions.call_statement(call, interp)
