from __future__ import annotations

import logging

import pytest

from aquila.config import Settings, configure_logging


def test_defaults_without_environment() -> None:
    settings = Settings.from_env({})
    assert settings == Settings()
    assert settings.random_seed is None


def test_reads_prefixed_variables() -> None:
    settings = Settings.from_env({
        "AQUILA_FLAME_MODE": "1",
        "AQUILA_IMPLICIT_DECLARATION_IN_ASSIGNMENT": "yes",
        "AQUILA_DEBUG": "off",
        "AQUILA_RANDOM_SEED": " 3 ",
        "FLAME_MODE": "0",
    })
    assert settings.flame_mode is True
    assert settings.implicit_declaration_in_assignment is True
    assert settings.debug is False
    assert settings.random_seed == 3


@pytest.mark.parametrize(
    "environ",
    [
        pytest.param({"AQUILA_DEBUG": "maybe"}, id="bad-bool"),
        pytest.param({"AQUILA_RANDOM_SEED": "seven"}, id="bad-seed"),
    ],
)
def test_rejects_bad_values(environ) -> None:
    with pytest.raises(ValueError):
        Settings.from_env(environ)


def test_trace_debug_only_raises_tracer_logger() -> None:
    configure_logging(Settings(trace_debug=True))
    assert logging.getLogger("aquila").level == logging.WARNING
    assert logging.getLogger("aquila.tracer").level == logging.DEBUG

    configure_logging(Settings())
    assert logging.getLogger("aquila.tracer").level == logging.WARNING
