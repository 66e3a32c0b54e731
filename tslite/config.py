from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional, TextIO

from .modules import Resolver

DEFAULT_MAX_SCHEDULER_STEPS = 100_000

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


@dataclass
class InterpreterConfig:
    """
    Knobs for a single interpreter run.

    `max_scheduler_steps` bounds how many task resumptions the scheduler
    performs after the main program body; `lenient_imports` binds `undefined`
    for modules or exports the resolver does not know instead of failing.
    """

    max_scheduler_steps: int = DEFAULT_MAX_SCHEDULER_STEPS
    lenient_imports: bool = False
    stdout: Optional[TextIO] = None
    resolver: Optional[Resolver] = None

    def __post_init__(self) -> None:
        if self.max_scheduler_steps < 1:
            raise ValueError("max_scheduler_steps must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: object) -> "InterpreterConfig":
        """Defaults, then TSLITE_* environment variables, then `overrides`."""
        env = os.environ if environ is None else environ
        config = cls()
        steps = env.get("TSLITE_MAX_STEPS")
        if steps:
            try:
                config.max_scheduler_steps = int(steps)
            except ValueError:
                raise ValueError(f"TSLITE_MAX_STEPS must be an integer, got {steps!r}") from None
        lenient = env.get("TSLITE_LENIENT_IMPORTS")
        if lenient is not None:
            config.lenient_imports = _parse_bool("TSLITE_LENIENT_IMPORTS", lenient)
        updates = {key: value for key, value in overrides.items() if value is not None}
        config = replace(config, **updates)
        return config


def _parse_bool(name: str, text: str) -> bool:
    value = text.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {text!r}")
