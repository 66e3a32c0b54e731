from __future__ import annotations

import io
import logging
from pathlib import Path

import pytest

from tslite import InterpreterConfig, MappingResolver, run_source

PROGRAMS_DIR = Path(__file__).parent / "programs"

# Modules the sample programs import.
SAMPLE_MODULES = {
    "main.js": {},
    "./stanFactory": {"stan": 1, "stoo": 2},
}


class Run:
    """Result of running a script: captured stdout plus the RunResult."""

    def __init__(self, output: str, result) -> None:
        self.output = output
        self.result = result

    @property
    def lines(self):
        return self.output.splitlines()


@pytest.fixture
def run():
    """Run a source string with stdout captured; extra kwargs go to InterpreterConfig."""

    def _run(source: str, modules=None, on_unhandled=None, **options) -> Run:
        out = io.StringIO()
        config = InterpreterConfig(stdout=out, resolver=MappingResolver(modules or {}), **options)
        result = run_source(source, config=config, on_unhandled=on_unhandled)
        return Run(out.getvalue(), result)

    return _run


@pytest.fixture
def stdout():
    return io.StringIO()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    # The CLI reconfigures the root logger; undo that between tests.
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
