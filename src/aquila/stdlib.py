"""Built-in functions registered via aquila.runtime."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, List

from .evaluator import designator_name
from .runtime import ArgKind, register_builtin
from .tracer import Alteration, Event
from .types import (
    AqFloat,
    AqInt,
    AqList,
    AqValue,
    AquilaArithmeticError,
    AquilaIndexError,
    AquilaTypeError,
    BreakSignal,
    ContinueSignal,
    ReturnSignal,
    Variable,
    as_int,
    copy_value,
    normalize_index,
    render,
    type_name,
)

if TYPE_CHECKING:
    from .interpreter import Interpreter

def _expect_list(fn: str, value: AqValue) -> AqList:
    if not isinstance(value, AqList):
        raise AquilaTypeError(f"{fn}() expects a list, got {type_name(value)}")
    return value

# ---------- value functions ----------

@register_builtin("length", ArgKind.VALUE, returns_value=True)
def std_length(_interp: Interpreter, args: List[AqValue]) -> AqInt:
    return AqInt(len(_expect_list("length", args[0]).items))

@register_builtin("list_at", ArgKind.VALUE, ArgKind.VALUE, returns_value=True)
def std_list_at(_interp: Interpreter, args: List[AqValue]) -> AqValue:
    """Element at an index, or at a path of indexes for nested lists."""
    current = args[0]
    index = args[1]
    path = index.items if isinstance(index, AqList) else [index]
    if not path:
        raise AquilaIndexError("list_at() needs at least one index")

    for step in path:
        items = _expect_list("list_at", current).items
        current = items[normalize_index(as_int(step, "list_at()"), len(items))]

    return copy_value(current)

@register_builtin("copy_list", ArgKind.VALUE, returns_value=True)
def std_copy_list(_interp: Interpreter, args: List[AqValue]) -> AqValue:
    return copy_value(_expect_list("copy_list", args[0]))

@register_builtin("float2int", ArgKind.VALUE, returns_value=True)
def std_float2int(_interp: Interpreter, args: List[AqValue]) -> AqInt:
    value = args[0]
    if not isinstance(value, AqFloat):
        raise AquilaTypeError(f"float2int() expects a float, got {type_name(value)}")
    if math.isinf(value.value) or math.isnan(value.value):
        raise AquilaArithmeticError(f"Cannot convert {value!r} to an int")
    return AqInt(math.trunc(value.value))

@register_builtin("int2float", ArgKind.VALUE, returns_value=True)
def std_int2float(_interp: Interpreter, args: List[AqValue]) -> AqFloat:
    return AqFloat(float(as_int(args[0], "int2float()")))

@register_builtin("sqrt", ArgKind.VALUE, returns_value=True)
def std_sqrt(_interp: Interpreter, args: List[AqValue]) -> AqFloat:
    value = args[0]
    if not isinstance(value, (AqInt, AqFloat)):
        raise AquilaTypeError(f"sqrt() expects a number, got {type_name(value)}")
    if value.value < 0:
        raise AquilaArithmeticError(f"Square root of negative number {value!r}")
    return AqFloat(math.sqrt(value.value))

@register_builtin("random", returns_value=True)
def std_random(interp: Interpreter, _args: List[AqValue]) -> AqInt:
    return AqInt(interp.random.randrange(0, 2**31 - 1))

# ---------- control ----------

@register_builtin("return", ArgKind.VALUE)
def std_return(_interp: Interpreter, args: List[AqValue]) -> ReturnSignal:
    return ReturnSignal(args[0])

@register_builtin("break")
def std_break(_interp: Interpreter, _args: List[AqValue]) -> BreakSignal:
    return BreakSignal()

@register_builtin("continue")
def std_continue(_interp: Interpreter, _args: List[AqValue]) -> ContinueSignal:
    return ContinueSignal()

# ---------- output ----------

@register_builtin("print_value", ArgKind.VALUE)
def std_print_value(interp: Interpreter, args: List[AqValue]) -> None:
    interp.write(render(args[0]))

@register_builtin("print_value_endl", ArgKind.VALUE)
def std_print_value_endl(interp: Interpreter, args: List[AqValue]) -> None:
    interp.write(render(args[0]) + "\n")

@register_builtin("print_str", ArgKind.RAW)
def std_print_str(interp: Interpreter, args: List[str]) -> None:
    interp.write(args[0])

@register_builtin("print_str_endl", ArgKind.RAW)
def std_print_str_endl(interp: Interpreter, args: List[str]) -> None:
    interp.write(args[0] + "\n")

@register_builtin("print_endl")
def std_print_endl(interp: Interpreter, _args: List[AqValue]) -> None:
    interp.write("\n")

# ---------- variables and lists ----------

@register_builtin("delete_var", ArgKind.RAW)
def std_delete_var(interp: Interpreter, args: List[str]) -> None:
    name = designator_name(args[0])
    var = interp.scope.remove(name)
    tracer = var.tracer
    if tracer is not None:
        tracer.update(Event.capture(interp.context, Alteration("delete_var", var.name, copy_value(var.value))))
        interp.tracers.detach(var)

@register_builtin("delete_value_at", ArgKind.VARIABLE, ArgKind.VALUE)
def std_delete_value_at(_interp: Interpreter, args: list) -> None:
    target: Variable = args[0]
    target.remove_item(as_int(args[1], "delete_value_at()"))

@register_builtin("insert_value_at", ArgKind.VARIABLE, ArgKind.VALUE, ArgKind.VALUE)
def std_insert_value_at(_interp: Interpreter, args: list) -> None:
    target: Variable = args[0]
    target.insert_item(as_int(args[1], "insert_value_at()"), args[2])

@register_builtin("append_value", ArgKind.VARIABLE, ArgKind.VALUE)
def std_append_value(_interp: Interpreter, args: list) -> None:
    target: Variable = args[0]
    target.append_item(args[1])

@register_builtin("swap", ArgKind.VARIABLE, ArgKind.VALUE, ArgKind.VALUE)
def std_swap(interp: Interpreter, args: list) -> None:
    """Swap two elements as one traced event.

    The swap is done with remove/insert steps under a frozen context, then
    whatever those steps logged (nothing, unless flame mode is on) is
    squeezed into a single ``swap`` entry.
    """
    target: Variable = args[0]
    items = target.items()
    a = as_int(args[1], "swap()")
    b = as_int(args[2], "swap()")

    for idx in (a, b):
        if idx < 0 or idx >= len(items):
            raise AquilaIndexError(f"swap() index {idx} out of range for a list of length {len(items)}")

    tracer = target.tracer
    height = tracer.height if tracer is not None else 0
    before = copy_value(target.value)

    with interp.context.frozen():
        first, second = items[a], items[b]
        target.remove_item(a)
        target.insert_item(a, second)
        target.remove_item(b)
        target.insert_item(b, first)

    if tracer is not None:
        alteration = Alteration("swap", target.name, before, (AqInt(a), AqInt(b)))
        tracer.squeeze(tracer.height - height, Event.capture(interp.context, alteration))
