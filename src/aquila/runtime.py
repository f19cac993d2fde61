from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

from lark import Tree

from .context import Status
from .evaluator import is_designator, resolve_variable
from .types import (
    AqList,
    AqNull,
    AqPendingCall,
    AqValue,
    AquilaArityError,
    AquilaNameError,
    AquilaRecursionError,
    AquilaTypeError,
    BreakSignal,
    ContinueSignal,
    InvariantViolation,
    NameCollisionError,
    ReturnSignal,
    Signal,
    Variable,
    copy_value,
    default_value,
    same_tag,
    type_name,
)

if TYPE_CHECKING:
    from .interpreter import Interpreter

LOGGER = logging.getLogger(__name__)

_BUILTINS_INITIALIZED = False

def init_builtins() -> None:
    """Load the builtin catalog (idempotent) so register_builtin hooks run."""
    global _BUILTINS_INITIALIZED

    if _BUILTINS_INITIALIZED:
        return

    importlib.import_module("aquila.stdlib")
    _BUILTINS_INITIALIZED = True

class ArgKind(Enum):
    VALUE = "value"        # evaluated before the call
    VARIABLE = "variable"  # the Variable behind a $name, or a temporary one
    RAW = "raw"            # unevaluated text

BuiltinResult = Union[AqValue, Signal, None]
BuiltinFn = Callable[['Interpreter', List[Any]], BuiltinResult]

@dataclass(frozen=True)
class Builtin:
    name: str
    fn: BuiltinFn
    params: Tuple[ArgKind, ...]
    returns_value: bool

    @property
    def arity(self) -> int:
        return len(self.params)

class Builtins:
    functions: Dict[str, Builtin] = {}

def register_builtin(name: str, *params: ArgKind, returns_value: bool=False):
    def dec(fn: BuiltinFn):
        Builtins.functions[name] = Builtin(name=name, fn=fn, params=tuple(params), returns_value=returns_value)
        return fn

    return dec

@dataclass
class UserFunction:
    name: str
    return_type: str
    params: List[str]
    body: Sequence[Tree]
    recursive: bool = False

    def check_result(self, value: AqValue) -> None:
        if self.return_type in ("auto", "null"):
            return
        if not same_tag(default_value(self.return_type), value):
            raise AquilaTypeError(
                f"Function '{self.name}' is declared {self.return_type} but returned {type_name(value)}"
            )

class FunctionRegistry:
    """Builtins plus the user functions defined by the running program."""

    def __init__(self) -> None:
        self.user: Dict[str, UserFunction] = {}
        self._active: Dict[str, int] = {}

    def exists(self, name: str) -> bool:
        return name in Builtins.functions or name in self.user

    def builtin_names(self) -> FrozenSet[str]:
        return frozenset(Builtins.functions)

    def define(self, fn: UserFunction) -> None:
        if self.exists(fn.name):
            raise NameCollisionError(fn.name)
        self.user[fn.name] = fn
        LOGGER.debug("defined function %s(%s) -> %s", fn.name, ", ".join(fn.params), fn.return_type)

    def clear(self) -> None:
        self.user.clear()
        self._active.clear()

    def call_value(self, call: AqPendingCall, interp: Interpreter) -> AqValue:
        builtin = Builtins.functions.get(call.name)
        if builtin is not None and not builtin.returns_value:
            raise AquilaTypeError(f"'{call.name}' does not return a value")

        result = self._invoke(call, interp)
        if result is None or isinstance(result, (ReturnSignal, BreakSignal, ContinueSignal)):
            raise InvariantViolation(f"'{call.name}' produced no value")
        return result

    def call_statement(self, call: AqPendingCall, interp: Interpreter) -> Optional[Signal]:
        result = self._invoke(call, interp)
        if isinstance(result, (ReturnSignal, BreakSignal, ContinueSignal)):
            return result
        return None

    def _invoke(self, call: AqPendingCall, interp: Interpreter) -> BuiltinResult:
        builtin = Builtins.functions.get(call.name)
        if builtin is not None:
            result = self._call_builtin(builtin, call, interp)
        else:
            fn = self.user.get(call.name)
            if fn is None:
                raise AquilaNameError(f"Unknown function '{call.name}'")
            result = self._call_user(fn, call, interp)

        interp.tracers.on_call(call.name, call.args)
        return result

    def _call_builtin(self, builtin: Builtin, call: AqPendingCall, interp: Interpreter) -> BuiltinResult:
        texts: Tuple[str, ...] = call.args
        if builtin.params == (ArgKind.RAW,):
            texts = (",".join(call.args).strip(),)

        if len(texts) != builtin.arity:
            raise AquilaArityError(f"{builtin.name}() expects {builtin.arity} argument(s); got {len(texts)}")

        args = [_resolve_arg(kind, text, interp) for kind, text in zip(builtin.params, texts)]

        with interp.context.entered(Status.PREDEFINED_FUNCTION_CALL, builtin.name):
            return builtin.fn(interp, args)

    def _call_user(self, fn: UserFunction, call: AqPendingCall, interp: Interpreter) -> AqValue:
        if len(call.args) != len(fn.params):
            raise AquilaArityError(f"{fn.name}() expects {len(fn.params)} argument(s); got {len(call.args)}")

        depth = self._active.get(fn.name, 0)
        if depth and not fn.recursive:
            raise AquilaRecursionError(f"Function '{fn.name}' is not recursive but was called from within itself")

        bindings = {param: _bind_param(param, text, interp) for param, text in zip(fn.params, call.args)}

        line = interp.current_line
        self._active[fn.name] = depth + 1
        interp.scope.push_call(bindings)
        try:
            with interp.context.entered(Status.USER_FUNCTION_CALL, fn.name):
                signal = interp.run_block(fn.body)
        finally:
            interp.scope.pop_call()
            self._active[fn.name] = depth
            interp.current_line = line

        match signal:
            case None:
                result: AqValue = AqNull()
            case ReturnSignal(value=value):
                result = value
            case BreakSignal() | ContinueSignal():
                raise InvariantViolation(f"Loop control escaped the body of '{fn.name}'")

        fn.check_result(result)
        return result

def _resolve_arg(kind: ArgKind, text: str, interp: Interpreter) -> Any:
    match kind:
        case ArgKind.VALUE:
            return interp.evaluate(text)
        case ArgKind.VARIABLE:
            if is_designator(text):
                return resolve_variable(text, interp)
            return Variable(interp.evaluate(text))
        case ArgKind.RAW:
            return text.strip()

def _bind_param(param: str, text: str, interp: Interpreter) -> Variable:
    """Lists passed as bare variables are shared, everything else is copied."""
    if is_designator(text):
        var = resolve_variable(text, interp)
        if isinstance(var.read(), AqList):
            return var

    return Variable(copy_value(interp.evaluate(text)), name=param)
