from __future__ import annotations

import pytest

from tslite.config import DEFAULT_MAX_SCHEDULER_STEPS, InterpreterConfig


def test_defaults() -> None:
    config = InterpreterConfig()
    assert config.max_scheduler_steps == DEFAULT_MAX_SCHEDULER_STEPS
    assert config.lenient_imports is False
    assert config.stdout is None
    assert config.resolver is None


def test_steps_must_be_positive() -> None:
    with pytest.raises(ValueError):
        InterpreterConfig(max_scheduler_steps=0)


def test_from_env_reads_variables() -> None:
    config = InterpreterConfig.from_env({"TSLITE_MAX_STEPS": "25", "TSLITE_LENIENT_IMPORTS": "yes"})
    assert config.max_scheduler_steps == 25
    assert config.lenient_imports is True


def test_overrides_beat_environment() -> None:
    env = {"TSLITE_MAX_STEPS": "25", "TSLITE_LENIENT_IMPORTS": "1"}
    config = InterpreterConfig.from_env(env, max_scheduler_steps=7, lenient_imports=False)
    assert config.max_scheduler_steps == 7
    assert config.lenient_imports is False


def test_none_overrides_are_ignored() -> None:
    config = InterpreterConfig.from_env({"TSLITE_MAX_STEPS": "25"}, max_scheduler_steps=None)
    assert config.max_scheduler_steps == 25


@pytest.mark.parametrize(
    "env",
    [
        {"TSLITE_MAX_STEPS": "many"},
        {"TSLITE_MAX_STEPS": "0"},
        {"TSLITE_LENIENT_IMPORTS": "perhaps"},
    ],
)
def test_bad_environment_values(env) -> None:
    with pytest.raises(ValueError):
        InterpreterConfig.from_env(env)


def test_from_env_uses_process_environment(monkeypatch) -> None:
    monkeypatch.setenv("TSLITE_MAX_STEPS", "99")
    monkeypatch.delenv("TSLITE_LENIENT_IMPORTS", raising=False)
    assert InterpreterConfig.from_env().max_scheduler_steps == 99
