from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Dict, List

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

from aquila.interpreter import Interpreter


@pytest.fixture
def out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def interp(out: io.StringIO) -> Interpreter:
    """Fresh interpreter writing program output into ``out``."""
    return Interpreter(out=out)


def pytest_collection_modifyitems(
    session: pytest.Session,
    config: pytest.Config,
    items: List[pytest.Item],
) -> None:
    """Fail fast if two scenarios end up with the same node ID."""
    del session
    del config

    seen: Dict[str, int] = {}
    duplicates: List[str] = []
    for item in items:
        if item.nodeid in seen:
            duplicates.append(item.nodeid)
            continue
        seen[item.nodeid] = 1

    if duplicates:
        lines = "\n".join(f"- {nodeid}" for nodeid in sorted(set(duplicates)))
        raise pytest.UsageError(f"Duplicate scenario ids:\n{lines}")
