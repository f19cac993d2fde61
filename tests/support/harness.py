from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

from aquila.builder import Descriptor
from aquila.config import Settings
from aquila.interpreter import Interpreter
from aquila.runner import run as run_program
from aquila.tracer import Alteration, Event, VarTracer
from aquila.types import (
    AqBool,
    AqFloat,
    AqInt,
    AqList,
    AqNull,
    AqValue,
    AquilaArithmeticError,
    AquilaArityError,
    AquilaAssignmentError,
    AquilaError,
    AquilaIndexError,
    AquilaNameError,
    AquilaRecursionError,
    AquilaSyntaxError,
    AquilaTypeError,
    InvariantViolation,
    NameCollisionError,
)

RuntimeExpectation = Optional[Tuple[str, object]]


def plain(value: AqValue) -> object:
    """Convert a runtime value into plain Python data for comparisons."""
    match value:
        case AqList(items=items):
            return [plain(item) for item in items]
        case AqNull():
            return None
        case _:
            return getattr(value, "value", value)


def verify_result(value: object, kind: str, expected: object) -> None:
    """Assert runtime result shape/value compatibility."""
    match kind:
        case "int":
            assert isinstance(value, AqInt), f"expected AqInt, got {type(value).__name__}"
            assert value.value == expected, f"expected {expected}, got {value.value}"
            return
        case "float":
            assert isinstance(
                value, AqFloat
            ), f"expected AqFloat, got {type(value).__name__}"
            assert (
                abs(value.value - float(expected)) <= 1e-6
            ), f"expected {expected}, got {value.value}"
            return
        case "bool":
            assert isinstance(value, AqBool), f"expected AqBool, got {type(value).__name__}"
            assert value.value is bool(expected), f"expected {expected}, got {value.value}"
            return
        case "null":
            assert isinstance(value, AqNull), f"expected AqNull, got {type(value).__name__}"
            return
        case "list":
            assert isinstance(value, AqList), f"expected AqList, got {type(value).__name__}"
            actual = plain(value)
            assert actual == expected, f"expected {expected!r}, got {actual!r}"
            return
        case _:
            raise AssertionError(f"unknown expectation kind {kind}")


def run_runtime_case(
    program: Sequence[Descriptor],
    expectation: RuntimeExpectation,
    expected_exc: Optional[type],
    settings: Optional[Settings] = None,
) -> None:
    """Execute one program scenario with optional expected exception."""
    if expected_exc is not None:
        with pytest.raises(expected_exc):
            run_program(program, settings)
        return

    result = run_program(program, settings)
    if expectation is not None:
        verify_result(result, expectation[0], expectation[1])


def run_expression_case(
    expr: str,
    expectation: RuntimeExpectation,
    expected_exc: Optional[type],
) -> None:
    """Evaluate one expression against a fresh interpreter."""
    interp = Interpreter()
    if expected_exc is not None:
        with pytest.raises(expected_exc):
            interp.evaluate(expr)
        return

    result = interp.evaluate(expr)
    if expectation is not None:
        verify_result(result, expectation[0], expectation[1])


def traced(program: List[Descriptor], name: str, settings: Optional[Settings] = None) -> Tuple[Interpreter, VarTracer]:
    """Run a program and return the interpreter plus the tracer of ``name``."""
    interp = Interpreter(settings)
    interp.execute(program)
    tracer = interp.scope.lookup(name).tracer
    assert tracer is not None, f"'{name}' is not traced"
    return interp, tracer


def operations(tracer: VarTracer) -> List[str]:
    return [event.alteration.operation for event in tracer.events]


__all__ = [
    "Alteration",
    "AquilaArithmeticError",
    "AquilaArityError",
    "AquilaAssignmentError",
    "AquilaError",
    "AquilaIndexError",
    "AquilaNameError",
    "AquilaRecursionError",
    "AquilaSyntaxError",
    "AquilaTypeError",
    "Event",
    "Interpreter",
    "InvariantViolation",
    "NameCollisionError",
    "Settings",
    "operations",
    "plain",
    "run_expression_case",
    "run_program",
    "run_runtime_case",
    "traced",
    "verify_result",
]
