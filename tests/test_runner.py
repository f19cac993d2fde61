from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from aquila.runner import main


def _write_program(tmp_path: Path, program: object) -> str:
    path = tmp_path / "program.json"
    path.write_text(json.dumps(program), encoding="utf-8")
    return str(path)


def test_runner_executes_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_program(tmp_path, ["decl int x 2", "return($x * 3)"])

    assert main([path]) == 0
    assert capsys.readouterr().out.strip() == "6"


def test_runner_accepts_nested_blocks(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_program(
        tmp_path,
        [
            "decl int s 0",
            ["for (decl int i 1, $i <= 3, $i = $i + 1)", ["$s = $s + $i"]],
            "print_str_endl(sum)",
            "return($s)",
        ],
    )

    assert main([path]) == 0
    assert capsys.readouterr().out == "sum\n6\n"


def test_runner_reads_stdin(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(["return([1, 2])"])))

    assert main(["-"]) == 0
    assert capsys.readouterr().out.strip() == "[1, 2]"


def test_runner_evaluates_expression(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["-e", "2 + 3 * 4"]) == 0
    assert capsys.readouterr().out.strip() == "14"


def test_runner_reports_errors(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["-e", "1 / 0"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith("AquilaArithmeticError:")


def test_runner_error_carries_line(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_program(tmp_path, ["decl int x 1", "$x = 1.5"])

    assert main([path]) == 1
    assert "(line 2)" in capsys.readouterr().err


def test_runner_flame_flag(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_program(tmp_path, ["decl list l [1, 2]", "trace $l", "swap($l, 0, 1)", "return($l)"])

    assert main(["--flame", path]) == 0
    assert capsys.readouterr().out.strip() == "[2, 1]"


@pytest.mark.parametrize(
    "argv",
    [
        pytest.param(["-e"], id="dangling-e"),
        pytest.param(["a.json", "b.json"], id="two-programs"),
        pytest.param(["missing.json"], id="missing-file"),
    ],
)
def test_runner_usage_errors(argv, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit):
        main(argv)


def test_runner_rejects_non_list_json(tmp_path: Path) -> None:
    path = _write_program(tmp_path, {"decl": "int"})
    with pytest.raises(SystemExit):
        main([path])
