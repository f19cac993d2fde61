from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from lark import Tree

from ..context import Status
from ..evaluator import designator_name
from ..types import (
    AqNull,
    AquilaNameError,
    AquilaTypeError,
    NameCollisionError,
    Signal,
    Variable,
    copy_value,
    default_value,
    same_tag,
    type_name,
)
from .common import child_token, child_tokens

if TYPE_CHECKING:
    from ..interpreter import Interpreter

def eval_declaration(node: Tree, interp: Interpreter) -> Optional[Signal]:
    name = child_token(node, 'NAME') or ''
    type_ = child_token(node, 'TYPE') or 'auto'
    expr = child_token(node, 'EXPR') or ''
    real = child_token(node, 'ASSIGNED') != 'false'
    mode = child_token(node, 'MODE') or 'new'

    with interp.context.entered(Status.DECLARATION_EXECUTION, name):
        existing = interp.scope.find(name)

        if existing is None and mode == 'overwrite':
            raise AquilaNameError(f"Cannot overwrite '{name}': it was never declared")
        if existing is not None:
            if mode == 'new' and not interp.settings.implicit_declaration_in_assignment:
                raise NameCollisionError(name)
            if existing.traced:
                raise AquilaNameError(f"Cannot redeclare traced variable '{name}'")

        if existing is None:
            # visible while the initializer runs, unreadable until assigned
            var = Variable(AqNull(), name=name, assigned=False)
            interp.scope.declare(name, var)
            value = interp.evaluate(expr)
        else:
            value = interp.evaluate(expr)
            var = existing

        if type_ != 'auto' and not same_tag(default_value(type_), value):
            raise AquilaTypeError(f"Cannot declare {type_} '{name}' with a {type_name(value)} value")

        var.force_set(copy_value(value))
        var.assigned = real

    return None

def eval_assignment(node: Tree, interp: Interpreter) -> Optional[Signal]:
    target = child_token(node, 'TARGET') or ''
    expr = child_token(node, 'EXPR') or ''

    with interp.context.entered(Status.ASSIGNMENT_EXECUTION, target):
        value = interp.evaluate(expr)
        name = designator_name(target)
        var = interp.scope.find(name)

        if var is None:
            if not interp.settings.implicit_declaration_in_assignment:
                raise AquilaNameError(f"Unknown variable '{name}'")
            interp.scope.declare(name, Variable(copy_value(value), name=name))
            return None

        var.assign(value)

    return None

def eval_tracing(node: Tree, interp: Interpreter) -> Optional[Signal]:
    with interp.context.entered(Status.TRACE_EXECUTION):
        for expr in child_tokens(node, 'EXPR'):
            interp.tracers.attach(interp.resolve_variable(expr))

    return None
