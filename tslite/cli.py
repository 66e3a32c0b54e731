#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .config import InterpreterConfig
from .errors import TsliteError
from .interp import evaluate
from .lexer import tokenize
from .modules import JsonModuleResolver, parse_module_option
from .parser import parse_program
from .printer import format_program

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str], log_file: Optional[Path]) -> None:
    name = (level or os.environ.get("TSLITE_LOG_LEVEL") or "WARNING").upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level {name!r}")
    logging.basicConfig(
        level=numeric,
        format=LOG_FORMAT,
        filename=str(log_file) if log_file else None,
        force=True,
    )


def dump_tokens(source: str, out=None) -> None:
    out = out or sys.stdout
    for tok in tokenize(source):
        marker = "*" if tok.newline_before else " "
        print(f"{tok.line}:{tok.column}{marker} {tok.kind.value} {tok.text}", file=out)


def run_file(source_path: Path, config: InterpreterConfig, dump_ast: bool = False, dump_toks: bool = False) -> int:
    source = source_path.read_text(encoding="utf-8")
    if dump_toks:
        dump_tokens(source)
        return 0
    program = parse_program(source)
    if dump_ast:
        sys.stdout.write(format_program(program))
        return 0
    logger.info("running %s", source_path)
    result = evaluate(program, config=config)
    for err in result.unhandled:
        print(err.format(), file=sys.stderr)
    return 0


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="tslite", description="tslite: run a TypeScript-subset script")
    ap.add_argument("source", type=Path, help="Script file (.ts)")
    ap.add_argument(
        "--module",
        action="append",
        default=[],
        metavar="SPEC=PATH",
        help="Resolve import SPEC to the exports in JSON file PATH (repeatable)",
    )
    ap.add_argument(
        "--lenient-imports",
        action="store_true",
        default=None,
        help="Bind undefined for unknown modules and exports instead of failing",
    )
    ap.add_argument("--max-steps", type=int, help="Upper bound on scheduler resumptions after the main body")
    ap.add_argument("--dump-tokens", action="store_true", help="Print the token stream and exit")
    ap.add_argument("--dump-ast", action="store_true", help="Pretty-print the parsed program and exit")
    ap.add_argument("--log-level", help="Logging level (default: $TSLITE_LOG_LEVEL or WARNING)")
    ap.add_argument("--log-file", type=Path, help="Write log records to this file instead of stderr")
    args = ap.parse_args(argv)

    try:
        configure_logging(args.log_level, args.log_file)
    except ValueError as exc:
        ap.error(str(exc))

    resolver = JsonModuleResolver()
    for item in args.module:
        try:
            spec, path = parse_module_option(item)
        except ValueError as exc:
            ap.error(f"--module: {exc}")
        resolver.add(spec, path)

    try:
        config = InterpreterConfig.from_env(
            max_scheduler_steps=args.max_steps,
            lenient_imports=args.lenient_imports,
            resolver=resolver,
        )
    except ValueError as exc:
        ap.error(str(exc))

    if not args.source.is_file():
        print(f"tslite: cannot read {args.source}", file=sys.stderr)
        return 2

    try:
        return run_file(args.source, config, dump_ast=args.dump_ast, dump_toks=args.dump_tokens)
    except TsliteError as exc:
        logger.debug("run failed", exc_info=True)
        print(exc.format(), file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
