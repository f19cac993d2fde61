from __future__ import annotations

import math
import struct
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Tuple, Union
from typing_extensions import TypeAlias, assert_never

if TYPE_CHECKING:
    from .tracer import VarTracer

# ---------- Value Model ----------

@dataclass
class AqNull:
    def __repr__(self) -> str:
        return "null"

@dataclass
class AqBool:
    value: bool
    def __repr__(self) -> str:
        return "true" if self.value else "false"

@dataclass
class AqInt:
    value: int
    def __post_init__(self) -> None:
        self.value = wrap_i32(self.value)
    def __repr__(self) -> str:
        return str(self.value)

@dataclass
class AqFloat:
    value: float
    def __post_init__(self) -> None:
        self.value = round_f32(self.value)
    def __repr__(self) -> str:
        v = self.value
        if math.isinf(v) or math.isnan(v):
            return str(v)
        return format(v, ".7g")

@dataclass
class AqList:
    items: List['AqValue'] = field(default_factory=list)
    def __repr__(self) -> str:
        return "[" + ", ".join(repr(x) for x in self.items) + "]"

@dataclass
class AqPendingCall:
    """A call that has been recognized but not yet run."""
    name: str
    args: Tuple[str, ...]
    def __repr__(self) -> str:
        return f"{self.name}({', '.join(self.args)})"

AqValue: TypeAlias = Union[AqNull, AqBool, AqInt, AqFloat, AqList, AqPendingCall]

_I32_MOD = 1 << 32
_I32_MAX = (1 << 31) - 1
_I32_MIN = -(1 << 31)
_F32_MAX = 3.4028234663852886e38

def wrap_i32(n: int) -> int:
    n &= _I32_MOD - 1
    return n - _I32_MOD if n > _I32_MAX else n

def fits_i32(n: int) -> bool:
    return _I32_MIN <= n <= _I32_MAX

def round_f32(x: float) -> float:
    if math.isnan(x) or math.isinf(x):
        return x
    if abs(x) > _F32_MAX:
        return math.copysign(math.inf, x)
    return struct.unpack("<f", struct.pack("<f", x))[0]

TYPE_NAMES = ("int", "float", "bool", "list")

def type_name(value: AqValue) -> str:
    match value:
        case AqNull():
            return "null"
        case AqBool():
            return "bool"
        case AqInt():
            return "int"
        case AqFloat():
            return "float"
        case AqList():
            return "list"
        case AqPendingCall():
            return "func"
        case _:
            assert_never(value)

def default_value(type_: str) -> AqValue:
    match type_:
        case "int":
            return AqInt(0)
        case "float":
            return AqFloat(0.0)
        case "bool":
            return AqBool(False)
        case "list":
            return AqList([])
        case _:
            raise AquilaTypeError(f"Unknown type '{type_}'")

def same_tag(a: AqValue, b: AqValue) -> bool:
    if isinstance(a, AqNull) or isinstance(b, AqNull):
        return True
    return type(a) is type(b)

def copy_value(value: AqValue) -> AqValue:
    """Deep copy for lists, fresh wrapper for scalars."""
    match value:
        case AqNull():
            return AqNull()
        case AqBool(value=b):
            return AqBool(b)
        case AqInt(value=n):
            return AqInt(n)
        case AqFloat(value=f):
            return AqFloat(f)
        case AqList(items=items):
            return AqList([copy_value(x) for x in items])
        case AqPendingCall(name=name, args=args):
            return AqPendingCall(name, args)
        case _:
            assert_never(value)

def render(value: AqValue) -> str:
    return repr(value)

# ---------- Named variables ----------

class Variable:
    """A named slot holding one value, optionally traced."""

    def __init__(self, value: AqValue, name: Optional[str]=None, assigned: bool=True):
        self.value = value
        self.name = name
        self.assigned = assigned
        self.usable = False
        self.tracer: Optional[VarTracer] = None

    def __repr__(self) -> str:
        state = repr(self.value) if self.assigned else "<unassigned>"
        return f"Variable({self.name!r}, {state})"

    @property
    def traced(self) -> bool:
        return self.tracer is not None

    def read(self) -> AqValue:
        if not self.assigned:
            raise AquilaAssignmentError(f"Variable '{self.name}' is used before being assigned")
        return self.value

    def assign(self, value: AqValue) -> None:
        if not same_tag(self.value, value):
            raise AquilaTypeError(
                f"Cannot assign {type_name(value)} to '{self.name}' holding {type_name(self.value)}"
            )
        before = copy_value(self.value)
        self.value = copy_value(value)
        self.assigned = True
        self._notify("set_value", before, (copy_value(value),))

    def force_set(self, value: AqValue) -> None:
        """Overwrite without type checks or tracing."""
        self.value = value
        self.assigned = True

    def items(self) -> List[AqValue]:
        value = self.read()
        if not isinstance(value, AqList):
            raise AquilaTypeError(f"'{self.name}' is a {type_name(value)}, not a list")
        return value.items

    def append_item(self, item: AqValue) -> None:
        items = self.items()
        before = copy_value(self.value)
        items.append(copy_value(item))
        self._notify("append_value", before, (item,))

    def insert_item(self, index: int, item: AqValue) -> None:
        items = self.items()
        if index < 0 or index > len(items):
            raise AquilaIndexError(f"Cannot insert at index {index} of a list of length {len(items)}")
        before = copy_value(self.value)
        items.insert(index, copy_value(item))
        self._notify("insert_value_at", before, (AqInt(index), item))

    def remove_item(self, index: int) -> AqValue:
        items = self.items()
        pos = normalize_index(index, len(items))
        before = copy_value(self.value)
        removed = items.pop(pos)
        self._notify("delete_value_at", before, (AqInt(index),))
        return removed

    def _notify(self, operation: str, before: AqValue, minor: Tuple[AqValue, ...]) -> None:
        if self.tracer is None:
            return
        self.tracer.on_mutation(operation, before, minor)

def normalize_index(index: int, length: int) -> int:
    """Validate an index; -1 designates the last element."""
    if index == -1 and length > 0:
        return length - 1
    if index < 0 or index >= length:
        raise AquilaIndexError(f"Index {index} out of range for a list of length {length}")
    return index

# ---------- Control flow results ----------

@dataclass(frozen=True)
class ReturnSignal:
    value: AqValue

@dataclass(frozen=True)
class BreakSignal:
    pass

@dataclass(frozen=True)
class ContinueSignal:
    pass

Signal: TypeAlias = Union[ReturnSignal, BreakSignal, ContinueSignal]

# ---------- Exceptions ----------

class AquilaError(Exception):
    line: Optional[int]

    def __init__(self, message: str):
        super().__init__(message)
        self.line = None

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __str__(self) -> str:
        msg = super().__str__()
        if self.line is None:
            return msg
        return f"{msg} (line {self.line})"

class AquilaSyntaxError(AquilaError):
    pass

class AquilaNameError(AquilaError):
    pass

class NameCollisionError(AquilaNameError):
    def __init__(self, name: str):
        super().__init__(f"Name '{name}' is already declared")
        self.name = name

class AquilaTypeError(AquilaError):
    pass

class AquilaArityError(AquilaTypeError):
    pass

class AquilaAssignmentError(AquilaError):
    pass

class AquilaIndexError(AquilaError):
    pass

class AquilaRecursionError(AquilaError):
    pass

class AquilaArithmeticError(AquilaError):
    pass

class InvariantViolation(AquilaError):
    """Internal misuse: corrupted tracers, unbalanced stacks, nested freezes."""

def as_int(value: AqValue, what: str) -> int:
    if not isinstance(value, AqInt):
        raise AquilaTypeError(f"{what} expects an int, got {type_name(value)}")
    return value.value
