"""Execution context: where the interpreter currently is, plus the freeze guard."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from .types import InvariantViolation

LOGGER = logging.getLogger(__name__)

class Status(Enum):
    UNDEFINED = "undefined"
    READ_PURGE = "read_purge"
    MACRO_PREPROCESSING = "macro_preprocessing"
    BUILDING_RAW_INSTRUCTIONS = "building_raw_instructions"
    BUILDING_INSTRUCTIONS = "building_instructions"
    INSTRUCTION_MAIN_LOOP = "instruction_main_loop"
    TRACE_EXECUTION = "trace_execution"
    WHILE_LOOP_EXECUTION = "while_loop_execution"
    FOR_LOOP_EXECUTION = "for_loop_execution"
    IF_EXECUTION = "if_execution"
    DECLARATION_EXECUTION = "declaration_execution"
    ASSIGNMENT_EXECUTION = "assignment_execution"
    PREDEFINED_FUNCTION_CALL = "predefined_function_call"
    USER_FUNCTION_CALL = "user_function_call"
    INSTRUCTION_MAIN_FINISHED = "instruction_main_finished"

class ExecutionContext:
    def __init__(self, flame_mode: bool=False, strict: bool=False):
        self.flame_mode = flame_mode
        self.strict = strict
        self._stack: List[Tuple[Status, object]] = []
        self._frozen = False

    @property
    def status(self) -> Status:
        return self._stack[-1][0] if self._stack else Status.UNDEFINED

    @property
    def info(self) -> object:
        return self._stack[-1][1] if self._stack else None

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def set(self, status: Status, info: object=None) -> None:
        if self._frozen:
            return
        self._stack.append((status, info))

    def reset(self) -> None:
        if self._frozen:
            return
        if not self._stack:
            raise InvariantViolation("Execution context reset with an empty status stack")
        self._stack.pop()

    @contextmanager
    def entered(self, status: Status, info: object=None) -> Iterator[None]:
        self.set(status, info)
        try:
            yield
            self.expect(status, info)
        finally:
            self.reset()

    @contextmanager
    def frozen(self) -> Iterator[None]:
        """Suppress status changes and direct tracer writes for the block."""
        if self.flame_mode:
            yield
            return

        if self._frozen:
            raise InvariantViolation("Execution context is already frozen")

        self._frozen = True
        LOGGER.debug("context frozen at %s", self.status.value)
        try:
            yield
        finally:
            self._frozen = False
            LOGGER.debug("context unfrozen")

    def expect(self, status: Status, info: Optional[object]=None) -> None:
        """Check the current status when strict context assertions are on."""
        if not self.strict or self._frozen:
            return
        if self.status is not status or (info is not None and self.info != info):
            raise InvariantViolation(
                f"Expected context {status.value} ({info}), found {self.status.value} ({self.info})"
            )

    def clear(self) -> None:
        self._stack.clear()
        self._frozen = False
