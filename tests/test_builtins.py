from __future__ import annotations

import io

import pytest

from tests.support.harness import (
    AquilaArithmeticError,
    AquilaArityError,
    AquilaIndexError,
    AquilaNameError,
    AquilaTypeError,
    Interpreter,
    Settings,
    plain,
    run_program,
    run_runtime_case,
)

SCENARIOS = [
    pytest.param(
        ["decl list l [1, 2, 3, 4]", "swap($l, 0, 2)", "return($l)"],
        ("list", [3, 2, 1, 4]),
        None,
        id="swap",
    ),
    pytest.param(
        ["decl list l [1, 2]", "swap($l, 1, 1)", "return($l)"],
        ("list", [1, 2]),
        None,
        id="swap-same-index",
    ),
    pytest.param(["decl list l [1, 2]", "swap($l, 0, 9)"], None, AquilaIndexError, id="swap-out-of-range"),
    pytest.param(["decl list l [1, 2]", "swap($l, -1, 0)"], None, AquilaIndexError, id="swap-negative"),
    pytest.param(
        ["decl list l [1, 2, 3]", "delete_value_at($l, -1)", "return($l)"],
        ("list", [1, 2]),
        None,
        id="delete-last",
    ),
    pytest.param(
        ["decl list l [1, 2, 3]", "delete_value_at($l, 0)", "return($l)"],
        ("list", [2, 3]),
        None,
        id="delete-first",
    ),
    pytest.param(["decl list l []", "delete_value_at($l, -1)"], None, AquilaIndexError, id="delete-from-empty"),
    pytest.param(
        ["decl list l [1, 2]", "insert_value_at($l, 2, 3)", "return($l)"],
        ("list", [1, 2, 3]),
        None,
        id="insert-at-end",
    ),
    pytest.param(
        ["decl list l [2]", "insert_value_at($l, 0, [1])", "return($l)"],
        ("list", [[1], 2]),
        None,
        id="insert-nested",
    ),
    pytest.param(["decl list l [1]", "insert_value_at($l, 5, 0)"], None, AquilaIndexError, id="insert-out-of-range"),
    pytest.param(
        ["decl list l []", "append_value($l, 1 + 1)", "append_value($l, true)", "return($l)"],
        ("list", [2, True]),
        None,
        id="append-heterogeneous",
    ),
    pytest.param(["decl int x 1", "append_value($x, 2)"], None, AquilaTypeError, id="append-to-int"),
    pytest.param(["append_value([1], 2)", "return(1)"], ("int", 1), None, id="append-to-temporary"),
    pytest.param(["decl int x 1", "delete_var($x)", "return($x)"], None, AquilaNameError, id="delete-var"),
    pytest.param(["delete_var($ghost)"], None, AquilaNameError, id="delete-unknown-var"),
    pytest.param(
        ["decl int x 1", "delete_var($x)", "decl float x 2.5", "return($x)"],
        ("float", 2.5),
        None,
        id="redeclare-after-delete",
    ),
    pytest.param(
        ["decl list m [[1, 2], [3, 4]]", "return(list_at($m, [1, 1]))"],
        ("int", 4),
        None,
        id="list-at-path",
    ),
    pytest.param(
        ["decl list m [[1, 2]]", "decl list inner list_at($m, 0)", "append_value($inner, 3)", "return($m)"],
        ("list", [[1, 2]]),
        None,
        id="list-at-returns-copy",
    ),
    pytest.param(["return(list_at([1, 2], []))"], None, AquilaIndexError, id="list-at-empty-path"),
    pytest.param(["return(list_at([1, 2], true))"], None, AquilaTypeError, id="list-at-bool-index"),
    pytest.param(["return(sqrt(-1))"], None, AquilaArithmeticError, id="sqrt-negative"),
    pytest.param(["return(sqrt(true))"], None, AquilaTypeError, id="sqrt-bool"),
    pytest.param(["return(int2float(1.5))"], None, AquilaTypeError, id="int2float-of-float"),
    pytest.param(["return(random(1))"], None, AquilaArityError, id="random-takes-nothing"),
    pytest.param(["return()"], None, AquilaArityError, id="return-needs-value"),
    pytest.param(["break(1)"], None, AquilaArityError, id="break-takes-nothing"),
]


@pytest.mark.parametrize("program, expectation, expected_exc", SCENARIOS)
def test_builtins(program, expectation, expected_exc) -> None:
    run_runtime_case(program, expectation, expected_exc)


def test_print_builtins(interp: Interpreter, out: io.StringIO) -> None:
    interp.execute([
        "print_str(Hello, world)",
        "print_endl()",
        "print_value([1, 2.5, true])",
        "print_value_endl(3)",
        "print_str_endl(done)",
        "print_value($null)",
    ])
    assert out.getvalue() == "Hello, world\n[1, 2.5, true]3\ndone\nnull"


def test_print_value_of_variable(interp: Interpreter, out: io.StringIO) -> None:
    interp.execute(["decl list l [1, 2]", "append_value($l, 3)", "print_value_endl($l)"])
    assert out.getvalue() == "[1, 2, 3]\n"


def test_random_is_seeded() -> None:
    settings = Settings(random_seed=7)
    first = run_program(["return(random())"], settings)
    second = run_program(["return(random())"], settings)
    assert plain(first) == plain(second)
    assert 0 <= plain(first) < 2**31 - 1


def test_builtin_catalog_is_reserved() -> None:
    names = Interpreter().builtin_names()
    for expected in ("length", "list_at", "swap", "delete_var", "print_str", "return", "random"):
        assert expected in names
