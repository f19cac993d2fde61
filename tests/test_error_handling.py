from __future__ import annotations

import pytest

from tests.support.harness import (
    AquilaArithmeticError,
    AquilaError,
    AquilaNameError,
    AquilaSyntaxError,
    AquilaTypeError,
    NameCollisionError,
    run_program,
)


def test_runtime_error_reports_body_line() -> None:
    program = [
        "decl int i 0",
        (
            "while ($i < 3)",
            [
                "$i = $i + 1",
                "decl int bad 1 / 0",
            ],
        ),
    ]
    with pytest.raises(AquilaArithmeticError) as exc_info:
        run_program(program)

    err = exc_info.value
    assert err.line == 4
    assert str(err).endswith("(line 4)")


def test_build_error_reports_descriptor_line() -> None:
    with pytest.raises(AquilaSyntaxError) as exc_info:
        run_program(["decl int x 1", "decl int"])
    assert exc_info.value.line == 2


def test_build_error_inside_block() -> None:
    with pytest.raises(AquilaSyntaxError) as exc_info:
        run_program([("if (true)", ["decl int x 1", "what is this"])])
    assert exc_info.value.line == 3


def test_error_in_function_reports_body_line() -> None:
    program = [
        ("function int f($a)", ["return($a / 0)"]),
        "return(f(1))",
    ]
    with pytest.raises(AquilaArithmeticError) as exc_info:
        run_program(program)
    assert exc_info.value.line == 2


def test_error_kind_names_class() -> None:
    with pytest.raises(AquilaTypeError) as exc_info:
        run_program(["decl int x true"])
    assert exc_info.value.kind == "AquilaTypeError"
    assert exc_info.value.line == 1


def test_collision_is_a_name_error() -> None:
    with pytest.raises(AquilaNameError) as exc_info:
        run_program(["decl int x 1", "decl int x 2"])
    assert isinstance(exc_info.value, NameCollisionError)
    assert exc_info.value.name == "x"


def test_errors_share_a_base() -> None:
    with pytest.raises(AquilaError):
        run_program(["return($nope)"])


def test_error_without_line_has_plain_message() -> None:
    err = AquilaSyntaxError("boom")
    assert str(err) == "boom"
    err.line = 7
    assert str(err) == "boom (line 7)"
