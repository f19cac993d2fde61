from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

from lark import Tree

from ..context import Status
from ..types import AqBool, AquilaTypeError, BreakSignal, ContinueSignal, ReturnSignal, Signal, type_name
from .common import body_of, child_token, child_tree

if TYPE_CHECKING:
    from ..interpreter import Interpreter

def eval_condition(expr: str, interp: Interpreter) -> bool:
    value = interp.evaluate(expr)
    if not isinstance(value, AqBool):
        raise AquilaTypeError(f"Condition '{expr}' is a {type_name(value)}, not a bool")
    return value.value

def _run_scoped(body: Sequence[Tree], interp: Interpreter) -> Optional[Signal]:
    interp.scope.push_block()
    try:
        return interp.run_block(body)
    finally:
        interp.scope.pop_block()

def run_loop(condition: str, body: Sequence[Tree], interp: Interpreter, step: Optional[Tree]=None) -> Optional[Signal]:
    """Run ``body`` while ``condition`` holds; ``step`` follows every iteration."""
    while eval_condition(condition, interp):
        signal = _run_scoped(body, interp)

        match signal:
            case BreakSignal():
                break
            case ReturnSignal():
                return signal
            case ContinueSignal() | None:
                pass

        if step is not None:
            interp.run_block([step])

    return None

def eval_while(node: Tree, interp: Interpreter) -> Optional[Signal]:
    condition = child_token(node, 'EXPR') or ''

    with interp.context.entered(Status.WHILE_LOOP_EXECUTION):
        return run_loop(condition, body_of(node), interp)

def eval_for(node: Tree, interp: Interpreter) -> Optional[Signal]:
    condition = child_token(node, 'EXPR') or ''
    init = child_tree(node, 'init')
    step = child_tree(node, 'step')

    with interp.context.entered(Status.FOR_LOOP_EXECUTION):
        interp.scope.push_block()
        try:
            if init is not None:
                interp.run_block(init.children)
            return run_loop(condition, body_of(node), interp, step=step.children[0] if step else None)
        finally:
            interp.scope.pop_block()

def eval_if(node: Tree, interp: Interpreter) -> Optional[Signal]:
    condition = child_token(node, 'EXPR') or ''

    with interp.context.entered(Status.IF_EXECUTION):
        branch = 'body' if eval_condition(condition, interp) else 'else_body'
        return _run_scoped(body_of(node, branch), interp)
