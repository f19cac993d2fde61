from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .builder import Descriptor
from .config import Settings, configure_logging
from .interpreter import Interpreter
from .types import AqValue, AquilaError

def run(program: Sequence[Descriptor], settings: Optional[Settings]=None) -> AqValue:
    return Interpreter(settings).execute(program)

def _load_program(arg: Optional[str]) -> List[Descriptor]:
    """
    Resolve CLI input into a descriptor tree.
    - None or "-" => JSON read from stdin.
    - Otherwise the path of a JSON file.
    The JSON is a list whose items are instruction strings or
    [header, [children...]] pairs.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
    else:
        path = Path(arg)
        if not path.exists():
            raise SystemExit(f"No such file: {arg}")
        data = path.read_text(encoding="utf-8")

    try:
        program = json.loads(data)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid program JSON: {exc}") from None

    if not isinstance(program, list):
        raise SystemExit("Program JSON must be a list of statements")
    return program

def main(argv: Optional[List[str]]=None) -> int:
    settings = Settings.from_env()
    expr = None
    arg = None
    it = iter(sys.argv[1:] if argv is None else argv)

    for token in it:
        if token == "--debug":
            settings.debug = True
            continue

        if token == "--trace-debug":
            settings.trace_debug = True
            continue

        if token == "--flame":
            settings.flame_mode = True
            continue

        if token == "-e":
            try:
                expr = next(it)
            except StopIteration:
                raise SystemExit("-e flag requires an expression") from None
            continue

        if arg is None:
            arg = token
        else:
            raise SystemExit(f"Unexpected argument: {token}")

    configure_logging(settings)
    interp = Interpreter(settings)

    try:
        if expr is not None:
            print(interp.evaluate(expr))
        else:
            print(interp.execute(_load_program(arg)))
    except AquilaError as exc:
        print(f"{exc.kind}: {exc}", file=sys.stderr)
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
