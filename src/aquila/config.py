from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

ENV_PREFIX = "AQUILA_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}

@dataclass
class Settings:
    """Interpreter switches.

    ``flame_mode`` turns the freeze guard into a no-op, so compound builtins
    log every primitive step before squeezing them. ``fail_on_context_assertions``
    checks that each statement leaves the execution context as it found it.
    """

    debug: bool = False
    trace_debug: bool = False
    fail_on_context_assertions: bool = False
    flame_mode: bool = False
    implicit_declaration_in_assignment: bool = False
    random_seed: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]]=None) -> Settings:
        """Build settings from ``AQUILA_*`` variables, e.g. ``AQUILA_FLAME_MODE=1``."""
        env = os.environ if environ is None else environ
        settings = cls()

        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            raw = raw.strip()

            if f.name == "random_seed":
                try:
                    settings.random_seed = int(raw)
                except ValueError:
                    raise ValueError(f"{ENV_PREFIX}RANDOM_SEED must be an integer, got {raw!r}") from None
                continue

            lowered = raw.lower()
            if lowered in _TRUE:
                setattr(settings, f.name, True)
            elif lowered in _FALSE:
                setattr(settings, f.name, False)
            else:
                raise ValueError(f"{ENV_PREFIX}{f.name.upper()} expects a boolean, got {raw!r}")

        return settings

def configure_logging(settings: Settings) -> None:
    """Map the debug switches onto the package loggers."""
    logging.basicConfig(format="%(name)s: %(message)s")
    logging.getLogger("aquila").setLevel(logging.DEBUG if settings.debug else logging.WARNING)
    tracer_debug = settings.debug or settings.trace_debug
    logging.getLogger("aquila.tracer").setLevel(logging.DEBUG if tracer_debug else logging.WARNING)
