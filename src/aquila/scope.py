from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Optional

from .types import AqNull, AquilaNameError, InvariantViolation, NameCollisionError, Variable

BlockFrame = Dict[str, Variable]

DEFAULT_BINDINGS: Dict[str, Callable[[], Variable]] = {
    "null": lambda: Variable(AqNull(), name="null"),
}

class ScopeStack:
    """Call frames, each an innermost-last list of block frames.

    Lookups never leave the current call frame: a function body sees its
    parameters and its own declarations, nothing from its caller.
    """

    def __init__(self) -> None:
        self._calls: List[List[BlockFrame]] = []
        self.push_call()

    @staticmethod
    def _defaults() -> BlockFrame:
        return {name: make() for name, make in DEFAULT_BINDINGS.items()}

    @property
    def call_depth(self) -> int:
        return len(self._calls)

    @property
    def block_depth(self) -> int:
        return len(self._calls[-1])

    def push_call(self, bindings: Optional[Dict[str, Variable]]=None) -> None:
        frame = self._defaults()
        if bindings:
            frame.update(bindings)
        self._calls.append([frame])

    def pop_call(self) -> None:
        if len(self._calls) <= 1:
            raise InvariantViolation("Cannot pop the main call frame")
        self._calls.pop()

    def push_block(self) -> None:
        self._calls[-1].append({})

    def pop_block(self) -> None:
        blocks = self._calls[-1]
        if len(blocks) <= 1:
            raise InvariantViolation("Cannot pop the base block frame of a call")
        blocks.pop()

    def find(self, name: str) -> Optional[Variable]:
        for block in reversed(self._calls[-1]):
            var = block.get(name)
            if var is not None:
                return var
        return None

    def lookup(self, name: str) -> Variable:
        var = self.find(name)
        if var is None:
            raise AquilaNameError(f"Unknown variable '{name}'")
        return var

    def exists(self, name: str) -> bool:
        return self.find(name) is not None

    def declare(self, name: str, var: Variable) -> None:
        if self.exists(name):
            raise NameCollisionError(name)
        var.name = name
        self._calls[-1][-1][name] = var

    def remove(self, name: str) -> Variable:
        for block in reversed(self._calls[-1]):
            if name in block:
                return block.pop(name)
        raise AquilaNameError(f"Unknown variable '{name}'")

    def variables(self) -> Iterator[Variable]:
        """Every variable reachable from the current call frame."""
        for block in self._calls[-1]:
            yield from block.values()

    def reset(self) -> None:
        self._calls.clear()
        self.push_call()
