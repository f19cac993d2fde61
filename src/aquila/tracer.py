"""Event-sourced history for traced variables and functions.

A variable tracer keeps two parallel LIFO logs: the value after each
mutation and the Event describing it. The first entry is always the
creation event pushed when tracing starts. Function tracers log calls and
fold the primitive events a call caused on its arguments into one entry
per argument (see ``VarTracer.squeeze``).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Iterable, List, Optional, Tuple

from .context import ExecutionContext, Status
from .types import AqNull, AqValue, InvariantViolation, Variable, copy_value

LOGGER = logging.getLogger(__name__)

@dataclass(frozen=True)
class Alteration:
    operation: str
    affected: Optional[str]
    main_value: Optional[AqValue]
    minor_values: Tuple[object, ...] = ()

@dataclass(frozen=True)
class Event:
    status: Status
    info: object
    alteration: Alteration

    @classmethod
    def capture(cls, context: ExecutionContext, alteration: Alteration) -> Event:
        return cls(status=context.status, info=context.info, alteration=alteration)

Observer = Callable[[Alteration], None]

class Tracer(ABC):
    def __init__(self, context: ExecutionContext):
        self.context = context
        self.values: List[object] = []
        self.events: List[Event] = []
        self.corrupted = False
        # bumped on every write; a squeeze may leave the height unchanged
        self.revision = 0
        self._awaiting: Deque[Event] = deque()

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    def height(self) -> int:
        return len(self.events)

    def _check(self) -> None:
        if self.corrupted:
            raise InvariantViolation(f"Tracer for '{self.name}' was drained and can no longer be used")

    def peek_event(self) -> Event:
        self._check()
        if not self.events:
            raise InvariantViolation(f"Tracer for '{self.name}' has no events")
        return self.events[-1]

    @property
    def awaiting(self) -> int:
        return len(self._awaiting)

    def await_event(self, event: Event) -> None:
        """Defer an event until the next checkpoint."""
        self._check()
        self._awaiting.append(event)

    def flush_awaiting(self) -> None:
        while self._awaiting:
            self.update(self._awaiting.popleft())

    def drain(self) -> List[Tuple[object, Event]]:
        """Empty both logs, newest first. The tracer is unusable afterwards."""
        self._check()
        pairs = list(zip(reversed(self.values), reversed(self.events)))
        self.values.clear()
        self.events.clear()
        self._awaiting.clear()
        self.corrupted = True
        return pairs

    @abstractmethod
    def update(self, event: Event) -> None:
        ...

    @abstractmethod
    def rewind(self, n: int) -> None:
        ...

class VarTracer(Tracer):
    def __init__(self, variable: Variable, context: ExecutionContext):
        super().__init__(context)
        self.variable = variable
        self.last_reported = 0
        self.update(Event.capture(context, Alteration("creation", variable.name, copy_value(variable.value))))

    def __repr__(self) -> str:
        return f"VarTracer({self.name!r}, height={self.height})"

    @property
    def name(self) -> str:
        return self.variable.name or "<anonymous>"

    def on_mutation(self, operation: str, before: AqValue, minor: Tuple[AqValue, ...]) -> None:
        """Hook fired by every primitive mutation of the traced variable."""
        if self.context.is_frozen:
            LOGGER.debug("%s on '%s' superseded by frozen context", operation, self.name)
            return
        self.update(Event.capture(self.context, Alteration(operation, self.variable.name, before, minor)))

    def update(self, event: Event) -> None:
        self._check()
        if self.context.is_frozen:
            raise InvariantViolation(f"Tracer write on '{self.name}' while the context is frozen")
        self.values.append(copy_value(self.variable.value))
        self.events.append(event)
        self.revision += 1
        LOGGER.debug("'%s' <- %s (height %d)", self.name, event.alteration.operation, self.height)

    def value_before(self, count: int) -> Optional[AqValue]:
        """The value logged just before the last ``count`` entries, if any."""
        if count < 0 or count >= len(self.values):
            return None
        value = self.values[-count - 1]
        return copy_value(value)  # type: ignore[arg-type]

    def squeeze(self, count: int, event: Event) -> None:
        """Replace the last ``count`` entries by one entry holding ``event``."""
        self._check()
        if count < 0 or count > self.height:
            raise InvariantViolation(f"Cannot squeeze {count} entries of '{self.name}' (height {self.height})")
        for _ in range(count):
            self.values.pop()
            self.events.pop()
        LOGGER.debug("squeezed %d entries of '%s' into %s", count, self.name, event.alteration.operation)
        self.update(event)

    def rewind(self, n: int) -> None:
        self._check()
        if n <= 1 or n > self.height:
            raise InvariantViolation(f"Cannot rewind '{self.name}' by {n} (height {self.height}, need 1 < n <= height)")

        value: object = None
        for _ in range(n):
            value = self.values.pop()
            self.events.pop()

        self.variable.force_set(copy_value(value))  # type: ignore[arg-type]
        self.last_reported = self.revision
        LOGGER.debug("rewound '%s' by %d to %r", self.name, n, value)

class FuncTracer(Tracer):
    """Logs calls of one function and squeezes the events of its affected arguments."""

    def __init__(self, name: str, affected: Dict[int, int], context: ExecutionContext,
                 resolve: Callable[[str], Variable]):
        super().__init__(context)
        self.function_name = name
        self.affected = dict(affected)
        self._resolve = resolve

    def __repr__(self) -> str:
        return f"FuncTracer({self.name!r}, affected={self.affected})"

    @property
    def name(self) -> str:
        return self.function_name

    def record_call(self, args: Tuple[str, ...]) -> None:
        self.await_event(Event.capture(self.context, Alteration(self.function_name, None, None, args)))

    def update(self, event: Event) -> None:
        self._check()
        args = event.alteration.minor_values
        self.values.append(args)
        self.events.append(event)
        self.revision += 1

        for index, steps in sorted(self.affected.items()):
            if index >= len(args):
                raise InvariantViolation(
                    f"'{self.function_name}' was called with {len(args)} argument(s), "
                    f"argument {index} is marked as affected"
                )
            var = self._resolve(str(args[index]))
            tracer = var.tracer
            if tracer is None:
                raise InvariantViolation(f"Argument '{var.name}' of '{self.function_name}' is not traced")
            alteration = Alteration(self.function_name, var.name, tracer.value_before(steps), args)
            tracer.squeeze(steps, Event.capture(self.context, alteration))

    def rewind(self, n: int) -> None:
        raise InvariantViolation(
            f"Function tracer '{self.function_name}' cannot be rewound; rewind the variables it affected"
        )

class TracerRegistry:
    def __init__(self, context: ExecutionContext):
        self.context = context
        self.var_tracers: List[VarTracer] = []
        self.func_tracers: Dict[str, FuncTracer] = {}

    def attach(self, variable: Variable) -> VarTracer:
        if variable.tracer is not None:
            raise InvariantViolation(f"Variable '{variable.name}' is already traced")
        tracer = VarTracer(variable, self.context)
        variable.tracer = tracer
        self.var_tracers.append(tracer)
        return tracer

    def detach(self, variable: Variable) -> None:
        tracer = variable.tracer
        if tracer is None:
            return
        variable.tracer = None
        self.var_tracers.remove(tracer)

    def trace_function(self, name: str, affected: Dict[int, int], resolve: Callable[[str], Variable]) -> FuncTracer:
        if name in self.func_tracers:
            raise InvariantViolation(f"Function '{name}' is already traced")
        tracer = FuncTracer(name, affected, self.context, resolve)
        self.func_tracers[name] = tracer
        return tracer

    def on_call(self, name: str, args: Tuple[str, ...]) -> None:
        tracer = self.func_tracers.get(name)
        if tracer is not None:
            tracer.record_call(args)

    def checkpoint(self, variables: Iterable[Variable], observer: Optional[Observer]) -> List[str]:
        """Run the post-statement protocol; returns names that became usable."""
        usable: List[str] = []
        for var in variables:
            if var.usable or not var.assigned or isinstance(var.value, AqNull):
                continue
            var.usable = True
            usable.append(var.name or "")

        for tracer in self.var_tracers:
            tracer.flush_awaiting()
        for func in self.func_tracers.values():
            func.flush_awaiting()

        for tracer in self.var_tracers:
            if tracer.corrupted or tracer.revision == tracer.last_reported:
                continue
            tracer.last_reported = tracer.revision
            if observer is not None and tracer.events:
                observer(tracer.events[-1].alteration)

        return usable

    def clear(self) -> None:
        for tracer in self.var_tracers:
            tracer.variable.tracer = None
        self.var_tracers.clear()
        self.func_tracers.clear()
