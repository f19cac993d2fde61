from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Dict, Optional, Sequence

from lark import Tree

from .context import Status
from .eval.bind import eval_assignment, eval_declaration, eval_tracing
from .eval.common import node_line
from .eval.fn import eval_function_def, eval_void_call
from .eval.loops import eval_for, eval_if, eval_while
from .types import (
    AqNull,
    AqValue,
    AquilaError,
    BreakSignal,
    ContinueSignal,
    InvariantViolation,
    ReturnSignal,
    Signal,
)

if TYPE_CHECKING:
    from .interpreter import Interpreter

LOGGER = logging.getLogger(__name__)

StmtHandler = Callable[[Tree, 'Interpreter'], Optional[Signal]]

_STMT_DISPATCH: Dict[str, StmtHandler] = {
    'declaration': eval_declaration,
    'assignment': eval_assignment,
    'while_loop': eval_while,
    'for_loop': eval_for,
    'if_condition': eval_if,
    'void_call': eval_void_call,
    'tracing': eval_tracing,
    'function_def': eval_function_def,
}

def _maybe_attach_line(exc: AquilaError, line: int) -> None:
    if exc.line is None and line:
        exc.line = line

def exec_stmt(node: Tree, interp: Interpreter) -> Optional[Signal]:
    handler = _STMT_DISPATCH.get(node.data)
    if handler is None:
        raise InvariantViolation(f"Unknown statement node '{node.data}'")

    line = node_line(node)
    if line is not None:
        interp.current_line = line

    if LOGGER.isEnabledFor(logging.DEBUG):
        LOGGER.debug("line %s: %s", interp.current_line, node.data)

    try:
        return handler(node, interp)
    except AquilaError as exc:
        _maybe_attach_line(exc, interp.current_line)
        raise

def exec_block(nodes: Sequence[Tree], interp: Interpreter) -> Optional[Signal]:
    """Run statements in order, checkpointing after each one.

    Stops at the first control-flow signal and hands it to the caller.
    """
    for node in nodes:
        signal = exec_stmt(node, interp)
        interp.checkpoint()
        if signal is not None:
            return signal

    return None

def run_program(statements: Sequence[Tree], interp: Interpreter) -> AqValue:
    with interp.context.entered(Status.INSTRUCTION_MAIN_LOOP):
        signal = exec_block(statements, interp)

    match signal:
        case None:
            result: AqValue = AqNull()
        case ReturnSignal(value=value):
            result = value
        case BreakSignal() | ContinueSignal():
            word = "break" if isinstance(signal, BreakSignal) else "continue"
            exc = InvariantViolation(f"{word} outside of a loop")
            _maybe_attach_line(exc, interp.current_line)
            raise exc

    interp.context.set(Status.INSTRUCTION_MAIN_FINISHED)
    return result
