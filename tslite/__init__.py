"""
tslite: a tree-walking interpreter for a TypeScript-flavoured scripting subset.

Source text goes through `tokenize` → `parse_program` (type annotations are
checked for shape and erased) → `evaluate`, which runs the program as the
main task of a cooperative scheduler.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Union

from .config import InterpreterConfig
from .errors import (
    LexError,
    ModuleNotFound,
    ParseError,
    RuntimeErrorKind,
    SchedulerStalled,
    TsliteError,
    TsRuntimeError,
)
from .interp import Interpreter, RunResult, evaluate
from .lexer import Token, TokenKind, tokenize
from .modules import JsonModuleResolver, MappingResolver, chain_resolvers
from .parser import parse_program
from .printer import format_program
from .runtime import default_environment


def run_source(
    source: str,
    config: Optional[InterpreterConfig] = None,
    on_unhandled: Optional[Callable[[TsRuntimeError], None]] = None,
) -> RunResult:
    program = parse_program(source)
    return evaluate(program, config=config, on_unhandled=on_unhandled)


def run_file(
    path: Union[str, Path],
    config: Optional[InterpreterConfig] = None,
    on_unhandled: Optional[Callable[[TsRuntimeError], None]] = None,
) -> RunResult:
    source = Path(path).read_text(encoding="utf-8")
    return run_source(source, config=config, on_unhandled=on_unhandled)


__all__ = [
    "Interpreter",
    "InterpreterConfig",
    "JsonModuleResolver",
    "LexError",
    "MappingResolver",
    "ModuleNotFound",
    "ParseError",
    "RunResult",
    "RuntimeErrorKind",
    "SchedulerStalled",
    "Token",
    "TokenKind",
    "TsRuntimeError",
    "TsliteError",
    "chain_resolvers",
    "default_environment",
    "evaluate",
    "format_program",
    "parse_program",
    "run_file",
    "run_source",
    "tokenize",
]
