"""The interpreter aggregate: scopes, functions, tracers and context of one run."""

from __future__ import annotations

import logging
import random
import sys
from typing import Dict, FrozenSet, List, Optional, Sequence, TextIO

from lark import Tree

from .builder import RESERVED_KEYWORDS, Descriptor, build
from .config import Settings
from .context import ExecutionContext, Status
from .engine import exec_block, run_program
from .evaluator import designator_name, evaluate, resolve_variable
from .runtime import FunctionRegistry, init_builtins
from .scope import ScopeStack
from .tracer import FuncTracer, Observer, TracerRegistry, VarTracer
from .types import AqValue, InvariantViolation, Signal, Variable

LOGGER = logging.getLogger(__name__)

class Interpreter:
    RESERVED_KEYWORDS = RESERVED_KEYWORDS

    def __init__(self, settings: Optional[Settings]=None, observer: Optional[Observer]=None,
                 out: Optional[TextIO]=None):
        init_builtins()
        self.settings = settings or Settings()
        self.context = ExecutionContext(
            flame_mode=self.settings.flame_mode,
            strict=self.settings.fail_on_context_assertions,
        )
        self.scope = ScopeStack()
        self.functions = FunctionRegistry()
        self.tracers = TracerRegistry(self.context)
        self.observer = observer
        self.out = out
        self.random = random.Random(self.settings.random_seed)
        self.current_line = 0
        self.usable_variables: List[str] = []

    # ---------- evaluation ----------

    def evaluate(self, expr: str) -> AqValue:
        return evaluate(expr, self)

    def resolve_variable(self, expr: str) -> Variable:
        return resolve_variable(expr, self)

    def execute(self, program: Sequence[Descriptor]) -> AqValue:
        """Build and run a program; returns its top-level return value or null."""
        self.context.clear()
        with self.context.entered(Status.BUILDING_INSTRUCTIONS):
            statements = build(program)
        LOGGER.debug("running %d top-level statement(s)", len(statements))
        return run_program(statements, self)

    def run_block(self, nodes: Sequence[Tree]) -> Optional[Signal]:
        return exec_block(nodes, self)

    def checkpoint(self) -> None:
        self.usable_variables.extend(self.tracers.checkpoint(self.scope.variables(), self.observer))

    def write(self, text: str) -> None:
        (self.out or sys.stdout).write(text)

    # ---------- debugging controls ----------

    def start_tracing(self, name: str) -> VarTracer:
        return self.tracers.attach(self.scope.lookup(_bare(name)))

    def trace_function(self, name: str, affected: Optional[Dict[int, int]]=None) -> FuncTracer:
        """Trace calls of ``name``; ``affected`` maps argument index to squeeze count."""
        return self.tracers.trace_function(name, affected or {}, self.resolve_variable)

    def rewind(self, name: str, n: int) -> None:
        bare = _bare(name)
        func = self.tracers.func_tracers.get(bare)
        var = self.scope.find(bare)

        if var is None and func is not None:
            func.rewind(n)
            return

        var = self.scope.lookup(bare)
        if var.tracer is None:
            raise InvariantViolation(f"Variable '{bare}' is not traced")
        var.tracer.rewind(n)

    def builtin_names(self) -> FrozenSet[str]:
        return self.functions.builtin_names()

    def snapshot(self) -> Dict[str, object]:
        """Usable variables, tracer heights and user functions, for inspection."""
        return {
            "line": self.current_line,
            "status": self.context.status.value,
            "usable_variables": list(self.usable_variables),
            "variables": {
                var.name: repr(var.value) for var in self.scope.variables()
                if var.usable and var.name is not None
            },
            "tracers": {t.name: t.height for t in self.tracers.var_tracers},
            "function_tracers": {name: t.height for name, t in self.tracers.func_tracers.items()},
            "functions": sorted(self.functions.user),
        }

    def reset(self) -> None:
        self.tracers.clear()
        self.scope.reset()
        self.functions.clear()
        self.context.clear()
        self.usable_variables.clear()
        self.current_line = 0

def _bare(name: str) -> str:
    return designator_name(name) if name.strip().startswith('$') else name.strip()
