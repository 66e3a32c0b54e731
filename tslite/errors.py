from __future__ import annotations

from enum import Enum
from typing import Optional


class RuntimeErrorKind(str, Enum):
    UNDEFINED_VARIABLE = "UndefinedVariable"
    ASSIGN_TO_CONST = "AssignToConst"
    NOT_CALLABLE = "NotCallable"
    TYPE_MISMATCH = "TypeMismatch"
    UNHANDLED_REJECTION = "UnhandledRejection"
    REDECLARATION = "Redeclaration"
    UNCAUGHT_EXCEPTION = "UncaughtException"
    STACK_OVERFLOW = "StackOverflow"


class TsliteError(Exception):
    """
    Base for every error the pipeline reports to the host.

    The rendered message always starts with the error kind, followed by the
    source position (or the failing task) when one is known.
    """

    kind: str = "Error"

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        task: Optional[str] = None,
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        self.task = task
        super().__init__(self.format())

    def format(self) -> str:
        where = ""
        if self.line is not None:
            where = f" at {self.line}:{self.column}"
        if self.task is not None:
            where += f" in task {self.task}"
        return f"{self.kind}{where}: {self.message}"

    def __str__(self) -> str:
        return self.format()


class LexError(TsliteError):
    kind = "LexError"


class ParseError(TsliteError):
    kind = "ParseError"

    def __init__(self, expected: str, found: str, line: int, column: int) -> None:
        self.expected = expected
        self.found = found
        super().__init__(f"expected {expected}, found {found}", line, column)


class TsRuntimeError(TsliteError):
    def __init__(
        self,
        kind: RuntimeErrorKind,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        task: Optional[str] = None,
    ) -> None:
        self.error_kind = kind
        self.kind = kind.value
        super().__init__(message, line, column, task)


class ModuleNotFound(TsliteError):
    kind = "ModuleNotFound"

    def __init__(
        self,
        specifier: str,
        message: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        self.specifier = specifier
        super().__init__(message or f"cannot resolve module '{specifier}'", line, column)


class SchedulerStalled(TsliteError):
    kind = "SchedulerStalled"
