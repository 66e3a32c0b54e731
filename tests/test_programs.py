"""Golden-output suite over the scripts in tests/programs/."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import PROGRAMS_DIR, SAMPLE_MODULES
from tslite import format_program, parse_program


def _programs():
    return sorted(PROGRAMS_DIR.glob("*.ts"))


@pytest.mark.parametrize("path", _programs(), ids=lambda p: p.stem)
def test_program_output(run, path: Path) -> None:
    expected = path.with_suffix(".out").read_text()
    outcome = run(path.read_text(), modules=SAMPLE_MODULES)
    assert outcome.output == expected
    assert outcome.result.unhandled == []


@pytest.mark.parametrize("path", _programs(), ids=lambda p: p.stem)
def test_pretty_printed_program_behaves_the_same(run, path: Path) -> None:
    printed = format_program(parse_program(path.read_text()))
    expected = path.with_suffix(".out").read_text()
    assert run(printed, modules=SAMPLE_MODULES).output == expected


def test_sample_globals(run) -> None:
    outcome = run((PROGRAMS_DIR / "sample.ts").read_text(), modules=SAMPLE_MODULES)
    globals_ = outcome.result.globals
    assert globals_["an"] == 0
    assert globals_["bu"] == 0
    assert globals_["result"] == 5
    assert globals_["stan"] == 1
    assert globals_["superStoo"] == 2
    assert "stoo" not in globals_
    assert "print" not in globals_
