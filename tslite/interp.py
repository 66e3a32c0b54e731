from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass, field
from typing import Callable, Dict, Generator, List, Optional, Sequence, Tuple

from . import ast
from .config import InterpreterConfig
from .errors import ModuleNotFound, RuntimeErrorKind, TsliteError, TsRuntimeError
from .modules import to_runtime_value
from .runtime import (
    UNDEFINED,
    BuiltinFunction,
    ClassDescriptor,
    Environment,
    FunctionValue,
    Instance,
    RuntimeContext,
    builtin_member,
    default_environment,
    is_number,
    is_truthy,
    render,
    strict_equals,
    to_display_string,
    type_name,
)
from .scheduler import Scheduler, Task, TaskState, ThrowSignal

logger = logging.getLogger(__name__)

# Every statement/expression evaluator is a generator: `await` yields the
# awaited value up to the scheduler, which resumes the task later.
Eval = Generator[object, object, object]

_HOST_LOC = ast.Located(0, 0)


class ControlSignal(Exception):
    pass


class ReturnSignal(ControlSignal):
    def __init__(self, value: object) -> None:
        self.value = value


class BreakSignal(ControlSignal):
    pass


class ContinueSignal(ControlSignal):
    pass


class UserFunction(FunctionValue):
    def __init__(
        self,
        name: Optional[str],
        params: List[ast.Param],
        body: ast.Block | ast.Expr,
        env: Environment,
        is_async: bool = False,
        is_arrow: bool = False,
        home: Optional[ClassDescriptor] = None,
    ) -> None:
        self.name = name
        self.params = params
        self.body = body
        self.env = env
        self.is_async = is_async
        self.is_arrow = is_arrow
        self.home = home


class BoundMethod(FunctionValue):
    def __init__(self, function: UserFunction, receiver: object) -> None:
        self.function = function
        self.receiver = receiver
        self.name = function.name


@dataclass
class RunResult:
    """Top-level bindings of the program plus any unhandled rejections."""

    globals: Dict[str, object] = field(default_factory=dict)
    unhandled: List[TsRuntimeError] = field(default_factory=list)


def _mismatch(message: str, loc: ast.Located) -> TsRuntimeError:
    return TsRuntimeError(RuntimeErrorKind.TYPE_MISMATCH, message, loc.line, loc.column)


def _divide(left: float, right: float) -> float:
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _remainder(left: float, right: float) -> float:
    if right == 0 or math.isinf(left) or math.isnan(left) or math.isnan(right):
        return math.nan
    return math.fmod(left, right)


_ARITHMETIC: Dict[str, Callable[[float, float], float]] = {
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _divide,
    "%": _remainder,
}

_COMPARISON: Dict[str, Callable[[object, object], bool]] = {
    "<": lambda a, b: a < b,  # type: ignore[operator]
    "<=": lambda a, b: a <= b,  # type: ignore[operator]
    ">": lambda a, b: a > b,  # type: ignore[operator]
    ">=": lambda a, b: a >= b,  # type: ignore[operator]
}


class Interpreter:
    def __init__(
        self,
        config: Optional[InterpreterConfig] = None,
        root_env: Optional[Environment] = None,
        on_unhandled: Optional[Callable[[TsRuntimeError], None]] = None,
    ) -> None:
        self.config = config or InterpreterConfig()
        self.stdout = self.config.stdout or sys.stdout
        self.runtime_ctx = RuntimeContext(self.stdout)
        self.root_env = root_env if root_env is not None else default_environment()
        self.global_env = Environment(parent=self.root_env, function_scope=True)
        self.scheduler = Scheduler(self.config.max_scheduler_steps)
        self.interfaces: Dict[str, List[str]] = {}
        self.on_unhandled = on_unhandled

    def run(self, program: ast.Program) -> RunResult:
        try:
            main = self.scheduler.run("main", self._exec_program(program))
        except RecursionError:
            raise TsRuntimeError(RuntimeErrorKind.STACK_OVERFLOW, "maximum call depth exceeded") from None
        unhandled = [self._report_unhandled(task) for task in self.scheduler.unhandled]
        self._check_uncaught(main)
        return RunResult(globals=self.global_env.snapshot(), unhandled=unhandled)

    def call(self, name: str, *args: object) -> object:
        """Invoke a top-level function of the last program from the host."""
        func = self.global_env.lookup(name)
        self.scheduler.unhandled.clear()
        try:
            task = self.scheduler.run(name, self._invoke(func, list(args), _HOST_LOC))
        except RecursionError:
            raise TsRuntimeError(RuntimeErrorKind.STACK_OVERFLOW, "maximum call depth exceeded") from None
        for pending in self.scheduler.unhandled:
            self._report_unhandled(pending)
        self._check_uncaught(task)
        result = task.result
        if isinstance(result, Task) and result.state is TaskState.FULFILLED:
            return result.result
        return result

    def _check_uncaught(self, task: Task) -> None:
        if task.state is not TaskState.REJECTED:
            return
        origin = task.rejection
        raise TsRuntimeError(
            RuntimeErrorKind.UNCAUGHT_EXCEPTION,
            f"uncaught {render(task.result, nested=True)}",
            origin.line if origin else None,
            origin.column if origin else None,
        )

    def _report_unhandled(self, task: Task) -> TsRuntimeError:
        if task.error is not None:
            # runtime error that ended a detached task
            err = TsRuntimeError(
                RuntimeErrorKind.UNHANDLED_REJECTION,
                f"unhandled {task.error.kind}: {task.error.message}",
                task.error.line,
                task.error.column,
                task=task.label,
            )
        else:
            origin = task.rejection
            err = TsRuntimeError(
                RuntimeErrorKind.UNHANDLED_REJECTION,
                f"unhandled rejection {render(task.result, nested=True)}",
                origin.line if origin else None,
                origin.column if origin else None,
                task=task.label,
            )
        logger.warning("%s", err)
        if self.on_unhandled is not None:
            self.on_unhandled(err)
        return err

    # -- program & imports ----------------------------------------------

    def _exec_program(self, program: ast.Program) -> Eval:
        for stmt in program.statements:
            if isinstance(stmt, ast.ImportDecl):
                self._bind_import(stmt)
        yield from self._execute_block(program.statements, self.global_env)
        return UNDEFINED

    def _bind_import(self, decl: ast.ImportDecl) -> None:
        loc = decl.loc
        resolver = self.config.resolver
        exports = resolver(decl.specifier) if resolver is not None else None
        if exports is None:
            if not self.config.lenient_imports:
                raise ModuleNotFound(decl.specifier, line=loc.line, column=loc.column)
            logger.warning("module %r not found, binding undefined", decl.specifier)
            exports = {}
        else:
            logger.debug("resolved module %r (%d exports)", decl.specifier, len(exports))
        for binding in decl.bindings:
            if binding.name == "*":
                value: object = {str(k): to_runtime_value(v, str(k)) for k, v in exports.items()}
            elif binding.name in exports:
                value = to_runtime_value(exports[binding.name], binding.name)
            elif self.config.lenient_imports:
                value = UNDEFINED
            else:
                raise ModuleNotFound(
                    decl.specifier,
                    f"module '{decl.specifier}' has no export '{binding.name}'",
                    loc.line,
                    loc.column,
                )
            self.global_env.define(binding.local, value, const=True, line=loc.line, column=loc.column)

    # -- statements -----------------------------------------------------

    def _execute_block(self, statements: Sequence[ast.Stmt], env: Environment) -> Eval:
        for stmt in statements:
            if isinstance(stmt, ast.FunctionDecl):
                fn = UserFunction(stmt.name, stmt.params, stmt.body, env, is_async=stmt.is_async)
                env.hoist(stmt.name, fn)
        for stmt in statements:
            yield from self._exec_stmt(stmt, env)

    def _exec_stmt(self, stmt: ast.Stmt, env: Environment) -> Eval:
        if isinstance(stmt, ast.ExprStmt):
            yield from self._eval_expr(stmt.value, env)
            return None
        if isinstance(stmt, ast.VarDecl):
            yield from self._exec_var(stmt, env)
            return None
        if isinstance(stmt, ast.Block):
            yield from self._execute_block(stmt.statements, Environment(parent=env))
            return None
        if isinstance(stmt, ast.IfStmt):
            condition = yield from self._eval_expr(stmt.condition, env)
            if is_truthy(condition):
                yield from self._exec_stmt(stmt.then_branch, env)
            elif stmt.else_branch is not None:
                yield from self._exec_stmt(stmt.else_branch, env)
            return None
        if isinstance(stmt, ast.ForStmt):
            yield from self._exec_for(stmt, env)
            return None
        if isinstance(stmt, ast.ForOfStmt):
            yield from self._exec_for_of(stmt, env)
            return None
        if isinstance(stmt, ast.WhileStmt):
            while is_truthy((yield from self._eval_expr(stmt.condition, env))):
                try:
                    yield from self._exec_stmt(stmt.body, env)
                except BreakSignal:
                    break
                except ContinueSignal:
                    continue
            return None
        if isinstance(stmt, ast.SwitchStmt):
            yield from self._exec_switch(stmt, env)
            return None
        if isinstance(stmt, ast.ReturnStmt):
            value = UNDEFINED
            if stmt.value is not None:
                value = yield from self._eval_expr(stmt.value, env)
            raise ReturnSignal(value)
        if isinstance(stmt, ast.BreakStmt):
            raise BreakSignal()
        if isinstance(stmt, ast.ContinueStmt):
            raise ContinueSignal()
        if isinstance(stmt, ast.ThrowStmt):
            value = yield from self._eval_expr(stmt.value, env)
            raise ThrowSignal(value, stmt.loc.line, stmt.loc.column)
        if isinstance(stmt, ast.TryStmt):
            yield from self._exec_try(stmt, env)
            return None
        if isinstance(stmt, ast.ClassDecl):
            self._declare_class(stmt, env)
            return None
        if isinstance(stmt, ast.InterfaceDecl):
            members = list(stmt.members)
            for parent in stmt.extends:
                members.extend(self.interfaces.get(parent, []))
            self.interfaces[stmt.name] = members
            return None
        if isinstance(stmt, (ast.FunctionDecl, ast.TypeAliasDecl, ast.ImportDecl)):
            return None
        raise TsRuntimeError(
            RuntimeErrorKind.TYPE_MISMATCH,
            f"unsupported statement {type(stmt).__name__}",
            stmt.loc.line,
            stmt.loc.column,
        )

    def _exec_var(self, stmt: ast.VarDecl, env: Environment) -> Eval:
        value: object = UNDEFINED
        if stmt.value is not None:
            value = yield from self._eval_expr(stmt.value, env)
            if isinstance(value, UserFunction) and value.name is None:
                value.name = stmt.name
        if stmt.kind == "var":
            env.declare_var(stmt.name, value, stmt.value is not None)
        else:
            env.define(stmt.name, value, const=stmt.kind == "const", line=stmt.loc.line, column=stmt.loc.column)

    def _exec_for(self, stmt: ast.ForStmt, env: Environment) -> Eval:
        loop_env = Environment(parent=env)
        if stmt.init is not None:
            yield from self._exec_stmt(stmt.init, loop_env)
        # Each iteration runs in a copy of the loop scope so closures created
        # in the body keep the values of their own iteration.
        iter_env = loop_env.copy()
        while True:
            if stmt.condition is not None:
                condition = yield from self._eval_expr(stmt.condition, iter_env)
                if not is_truthy(condition):
                    break
            try:
                yield from self._exec_stmt(stmt.body, iter_env)
            except BreakSignal:
                break
            except ContinueSignal:
                pass
            iter_env = iter_env.copy()
            if stmt.update is not None:
                yield from self._eval_expr(stmt.update, iter_env)

    def _exec_for_of(self, stmt: ast.ForOfStmt, env: Environment) -> Eval:
        iterable = yield from self._eval_expr(stmt.iterable, env)
        if not isinstance(iterable, (list, str)):
            raise _mismatch(f"{type_name(iterable)} is not iterable", stmt.iterable.loc)
        idx = 0
        while idx < len(iterable):
            item = iterable[idx]
            idx += 1
            iter_env = Environment(parent=env)
            if stmt.kind == "var":
                iter_env.declare_var(stmt.name, item, True)
            else:
                iter_env.define(stmt.name, item, const=stmt.kind == "const")
            try:
                yield from self._exec_stmt(stmt.body, iter_env)
            except BreakSignal:
                break
            except ContinueSignal:
                continue

    def _exec_switch(self, stmt: ast.SwitchStmt, env: Environment) -> Eval:
        value = yield from self._eval_expr(stmt.discriminant, env)
        switch_env = Environment(parent=env)
        start: Optional[int] = None
        for idx, case in enumerate(stmt.cases):
            if case.test is None:
                continue
            candidate = yield from self._eval_expr(case.test, switch_env)
            if strict_equals(value, candidate):
                start = idx
                break
        if start is None:
            start = next((idx for idx, case in enumerate(stmt.cases) if case.test is None), None)
            if start is None:
                return None
        try:
            for case in stmt.cases[start:]:
                yield from self._execute_block(case.body, switch_env)
        except BreakSignal:
            pass
        return None

    def _exec_try(self, stmt: ast.TryStmt, env: Environment) -> Eval:
        try:
            yield from self._execute_block(stmt.body.statements, Environment(parent=env))
        except ThrowSignal as signal:
            if stmt.handler is None:
                yield from self._exec_finalizer(stmt, env)
                raise signal
            handler_env = Environment(parent=env)
            if stmt.catch_name is not None:
                handler_env.define(stmt.catch_name, signal.value)
            try:
                yield from self._execute_block(stmt.handler.statements, handler_env)
            except (ThrowSignal, ControlSignal) as pending:
                yield from self._exec_finalizer(stmt, env)
                raise pending
        except ControlSignal as pending:
            yield from self._exec_finalizer(stmt, env)
            raise pending
        yield from self._exec_finalizer(stmt, env)

    def _exec_finalizer(self, stmt: ast.TryStmt, env: Environment) -> Eval:
        if stmt.finalizer is not None:
            yield from self._execute_block(stmt.finalizer.statements, Environment(parent=env))

    def _declare_class(self, stmt: ast.ClassDecl, env: Environment) -> None:
        superclass: Optional[ClassDescriptor] = None
        if stmt.superclass is not None:
            parent = env.lookup(stmt.superclass, stmt.loc.line, stmt.loc.column)
            if not isinstance(parent, ClassDescriptor):
                raise _mismatch(f"class {stmt.name} cannot extend {type_name(parent)}", stmt.loc)
            superclass = parent
        desc = ClassDescriptor(
            name=stmt.name,
            superclass=superclass,
            fields=list(stmt.fields),
            interfaces=list(stmt.implements),
            env=env,
        )
        for method in stmt.methods:
            desc.methods[method.name] = UserFunction(
                method.name, method.params, method.body, env, is_async=method.is_async, home=desc
            )
        for iface in desc.interfaces:
            for member in self.interfaces.get(iface, []):
                if desc.find_method(member) is None and not any(f.name == member for f in stmt.fields):
                    logger.debug("class %s does not implement %s.%s", stmt.name, iface, member)
        env.define(stmt.name, desc, line=stmt.loc.line, column=stmt.loc.column)

    # -- expressions ----------------------------------------------------

    def _eval_expr(self, expr: ast.Expr, env: Environment) -> Eval:
        if isinstance(expr, ast.Literal):
            return expr.value
        if isinstance(expr, ast.Name):
            return env.lookup(expr.ident, expr.loc.line, expr.loc.column)
        if isinstance(expr, ast.This):
            return env.lookup("this")
        if isinstance(expr, ast.Binary):
            return (yield from self._eval_binary(expr, env))
        if isinstance(expr, ast.Unary):
            operand = yield from self._eval_expr(expr.operand, env)
            return self._eval_unary(expr, operand)
        if isinstance(expr, ast.Call):
            return (yield from self._eval_call(expr, env))
        if isinstance(expr, ast.Member):
            obj = yield from self._eval_expr(expr.value, env)
            return self._get_member(obj, expr.attr, expr.loc)
        if isinstance(expr, ast.Index):
            obj = yield from self._eval_expr(expr.value, env)
            key = yield from self._eval_expr(expr.index, env)
            return self._get_index(obj, key, expr.loc)
        if isinstance(expr, ast.Assign):
            return (yield from self._eval_assign(expr, env))
        if isinstance(expr, ast.Update):
            return (yield from self._eval_update(expr, env))
        if isinstance(expr, ast.Conditional):
            condition = yield from self._eval_expr(expr.condition, env)
            branch = expr.then_value if is_truthy(condition) else expr.else_value
            return (yield from self._eval_expr(branch, env))
        if isinstance(expr, ast.ArrayLiteral):
            items = []
            for element in expr.elements:
                items.append((yield from self._eval_expr(element, env)))
            return items
        if isinstance(expr, ast.ObjectLiteral):
            obj: Dict[str, object] = {}
            for prop in expr.properties:
                value = yield from self._eval_expr(prop.value, env)
                if isinstance(value, UserFunction) and value.name is None:
                    value.name = prop.key
                obj[prop.key] = value
            return obj
        if isinstance(expr, ast.Await):
            awaited = yield from self._eval_expr(expr.value, env)
            return (yield awaited)
        if isinstance(expr, ast.New):
            cls = yield from self._eval_expr(expr.cls, env)
            args = yield from self._eval_args(expr.args, env)
            if not isinstance(cls, ClassDescriptor):
                raise TsRuntimeError(
                    RuntimeErrorKind.NOT_CALLABLE,
                    f"{self._describe(expr.cls)} is not a constructor",
                    expr.loc.line,
                    expr.loc.column,
                )
            return (yield from self._construct(cls, args))
        if isinstance(expr, ast.SuperCall):
            return (yield from self._eval_super_call(expr, env))
        if isinstance(expr, ast.ArrowFunction):
            return UserFunction(None, expr.params, expr.body, env, is_async=expr.is_async, is_arrow=True)
        if isinstance(expr, ast.FunctionExpr):
            if expr.name is None:
                return UserFunction(None, expr.params, expr.body, env, is_async=expr.is_async)
            fn_env = Environment(parent=env)
            fn = UserFunction(expr.name, expr.params, expr.body, fn_env, is_async=expr.is_async)
            fn_env.define(expr.name, fn)
            return fn
        raise _mismatch(f"unsupported expression {type(expr).__name__}", expr.loc)

    def _eval_args(self, args: Sequence[ast.Expr], env: Environment) -> Eval:
        values: List[object] = []
        for arg in args:
            values.append((yield from self._eval_expr(arg, env)))
        return values

    def _eval_binary(self, expr: ast.Binary, env: Environment) -> Eval:
        left = yield from self._eval_expr(expr.left, env)
        if expr.op == "&&":
            return (yield from self._eval_expr(expr.right, env)) if is_truthy(left) else left
        if expr.op == "||":
            return left if is_truthy(left) else (yield from self._eval_expr(expr.right, env))
        right = yield from self._eval_expr(expr.right, env)
        return self._binary_op(expr.op, left, right, expr.loc)

    def _binary_op(self, op: str, left: object, right: object, loc: ast.Located) -> object:
        if op in ("===", "=="):
            return strict_equals(left, right)
        if op in ("!==", "!="):
            return not strict_equals(left, right)
        if op == "+":
            if isinstance(left, str) or isinstance(right, str):
                return to_display_string(left) + to_display_string(right)
            if is_number(left) and is_number(right):
                return float(left) + float(right)  # type: ignore[arg-type]
        elif op in _ARITHMETIC:
            if is_number(left) and is_number(right):
                return _ARITHMETIC[op](float(left), float(right))  # type: ignore[arg-type]
        elif op in _COMPARISON:
            if (is_number(left) and is_number(right)) or (isinstance(left, str) and isinstance(right, str)):
                return _COMPARISON[op](left, right)
        raise _mismatch(f"cannot apply '{op}' to {type_name(left)} and {type_name(right)}", loc)

    def _eval_unary(self, expr: ast.Unary, operand: object) -> object:
        if expr.op == "!":
            return not is_truthy(operand)
        if expr.op == "void":
            return UNDEFINED
        if not is_number(operand):
            raise _mismatch(f"cannot apply unary '{expr.op}' to {type_name(operand)}", expr.loc)
        value = float(operand)  # type: ignore[arg-type]
        return -value if expr.op == "-" else value

    def _eval_assign(self, expr: ast.Assign, env: Environment) -> Eval:
        ref = yield from self._resolve_target(expr.target, env)
        if expr.op == "=":
            value = yield from self._eval_expr(expr.value, env)
        else:
            current = self._read_ref(ref, expr.target, env)
            operand = yield from self._eval_expr(expr.value, env)
            value = self._binary_op(expr.op[:-1], current, operand, expr.loc)
        self._write_ref(ref, value, expr.target, env)
        return value

    def _eval_update(self, expr: ast.Update, env: Environment) -> Eval:
        ref = yield from self._resolve_target(expr.target, env)
        current = self._read_ref(ref, expr.target, env)
        if not is_number(current):
            raise _mismatch(f"cannot apply '{expr.op}' to {type_name(current)}", expr.loc)
        old = float(current)  # type: ignore[arg-type]
        new = old + 1 if expr.op == "++" else old - 1
        self._write_ref(ref, new, expr.target, env)
        return new if expr.prefix else old

    def _resolve_target(self, target: ast.Expr, env: Environment) -> Eval:
        """Evaluate the container and key of an assignment target once."""
        if isinstance(target, ast.Name):
            return (None, target.ident)
        if isinstance(target, ast.Member):
            obj = yield from self._eval_expr(target.value, env)
            return (obj, target.attr)
        if isinstance(target, ast.Index):
            obj = yield from self._eval_expr(target.value, env)
            key = yield from self._eval_expr(target.index, env)
            return (obj, key)
        raise _mismatch("invalid assignment target", target.loc)

    def _read_ref(self, ref: Tuple[object, object], target: ast.Expr, env: Environment) -> object:
        obj, key = ref
        if isinstance(target, ast.Name):
            return env.lookup(str(key), target.loc.line, target.loc.column)
        if isinstance(target, ast.Member):
            return self._get_member(obj, str(key), target.loc)
        return self._get_index(obj, key, target.loc)

    def _write_ref(self, ref: Tuple[object, object], value: object, target: ast.Expr, env: Environment) -> None:
        obj, key = ref
        if isinstance(target, ast.Name):
            env.assign(str(key), value, target.loc.line, target.loc.column)
        elif isinstance(target, ast.Member):
            self._set_member(obj, str(key), value, target.loc)
        else:
            self._set_index(obj, key, value, target.loc)

    def _get_member(self, obj: object, attr: str, loc: ast.Located) -> object:
        if isinstance(obj, Instance):
            if attr in obj.fields:
                return obj.fields[attr]
            method = obj.cls.find_method(attr)
            if isinstance(method, UserFunction):
                return BoundMethod(method, obj)
            return UNDEFINED
        if isinstance(obj, dict):
            return obj.get(attr, UNDEFINED)
        if obj is None or obj is UNDEFINED:
            raise _mismatch(f"cannot read property '{attr}' of {type_name(obj)}", loc)
        if isinstance(obj, (ClassDescriptor, FunctionValue)) and attr == "name":
            return obj.name or ""
        return builtin_member(obj, attr)

    def _set_member(self, obj: object, attr: str, value: object, loc: ast.Located) -> None:
        if isinstance(obj, Instance):
            obj.fields[attr] = value
        elif isinstance(obj, dict):
            obj[attr] = value
        else:
            raise _mismatch(f"cannot set property '{attr}' on {type_name(obj)}", loc)

    def _get_index(self, obj: object, key: object, loc: ast.Located) -> object:
        if isinstance(obj, (list, str)) and is_number(key):
            idx = float(key)  # type: ignore[arg-type]
            if idx.is_integer() and 0 <= idx < len(obj):
                return obj[int(idx)]
            return UNDEFINED
        if isinstance(obj, (dict, Instance)):
            return self._get_member(obj, to_display_string(key), loc)
        if isinstance(obj, (list, str)):
            return builtin_member(obj, to_display_string(key))
        raise _mismatch(f"cannot index {type_name(obj)}", loc)

    def _set_index(self, obj: object, key: object, value: object, loc: ast.Located) -> None:
        if isinstance(obj, list):
            idx = float(key) if is_number(key) else math.nan  # type: ignore[arg-type]
            if not idx.is_integer() or idx < 0:
                raise _mismatch(f"invalid array index {render(key, nested=True)}", loc)
            pos = int(idx)
            if pos >= len(obj):
                obj.extend([UNDEFINED] * (pos + 1 - len(obj)))
            obj[pos] = value
            return
        if isinstance(obj, (dict, Instance)):
            self._set_member(obj, to_display_string(key), value, loc)
            return
        raise _mismatch(f"cannot set index on {type_name(obj)}", loc)

    # -- calls ----------------------------------------------------------

    def _describe(self, expr: ast.Expr) -> str:
        if isinstance(expr, ast.Name):
            return f"'{expr.ident}'"
        if isinstance(expr, ast.Member):
            return f"'{expr.attr}'"
        return "expression"

    def _eval_call(self, expr: ast.Call, env: Environment) -> Eval:
        this: object = UNDEFINED
        if isinstance(expr.func, ast.Member):
            this = yield from self._eval_expr(expr.func.value, env)
            func = self._get_member(this, expr.func.attr, expr.func.loc)
        else:
            func = yield from self._eval_expr(expr.func, env)
        args = yield from self._eval_args(expr.args, env)
        if not isinstance(func, FunctionValue):
            if isinstance(func, ClassDescriptor):
                message = f"class {func.name} cannot be invoked without 'new'"
            else:
                message = f"{self._describe(expr.func)} is not callable ({type_name(func)})"
            raise TsRuntimeError(RuntimeErrorKind.NOT_CALLABLE, message, expr.loc.line, expr.loc.column)
        return (yield from self._invoke(func, args, expr.loc, this))

    def _invoke(self, func: object, args: List[object], loc: ast.Located, this: object = UNDEFINED) -> Eval:
        if isinstance(func, BuiltinFunction):
            try:
                return func.impl(self.runtime_ctx, args)
            except TsliteError as exc:
                if exc.line is None:
                    exc.line, exc.column = loc.line, loc.column
                raise
        if isinstance(func, BoundMethod):
            return (yield from self._call_function(func.function, args, func.receiver))
        if isinstance(func, UserFunction):
            return (yield from self._call_function(func, args, this))
        raise TsRuntimeError(
            RuntimeErrorKind.NOT_CALLABLE, f"{type_name(func)} is not callable", loc.line, loc.column
        )

    def _call_function(self, fn: UserFunction, args: List[object], this: object) -> Eval:
        if fn.is_async:
            return self.scheduler.spawn(fn.name or "anonymous", self._run_body(fn, args, this))
        return (yield from self._run_body(fn, args, this))

    def _run_body(self, fn: UserFunction, args: List[object], this: object) -> Eval:
        call_env = Environment(parent=fn.env, function_scope=True)
        if not fn.is_arrow:
            call_env.define("this", this)
            call_env.define("super", fn.home.superclass if fn.home is not None else None)
        for idx, param in enumerate(fn.params):
            value = args[idx] if idx < len(args) else UNDEFINED
            if value is UNDEFINED and param.default is not None:
                value = yield from self._eval_expr(param.default, call_env)
            call_env.define(param.name, value)
        if isinstance(fn.body, ast.Block):
            try:
                yield from self._execute_block(fn.body.statements, call_env)
            except ReturnSignal as signal:
                return signal.value
            return UNDEFINED
        return (yield from self._eval_expr(fn.body, call_env))

    def _construct(self, cls: ClassDescriptor, args: List[object]) -> Eval:
        instance = Instance(cls)
        for klass in cls.chain():
            for fld in klass.fields:
                value: object = UNDEFINED
                if fld.value is not None:
                    field_env = Environment(parent=klass.env, function_scope=True)
                    field_env.define("this", instance)
                    field_env.define("super", klass.superclass)
                    value = yield from self._eval_expr(fld.value, field_env)
                instance.fields[fld.name] = value
        ctor = cls.find_method("constructor")
        if isinstance(ctor, UserFunction):
            yield from self._run_body(ctor, args, instance)
        return instance

    def _eval_super_call(self, expr: ast.SuperCall, env: Environment) -> Eval:
        parent = env.lookup("super", expr.loc.line, expr.loc.column)
        if not isinstance(parent, ClassDescriptor):
            raise _mismatch("'super' call outside a derived class constructor", expr.loc)
        this = env.lookup("this")
        args = yield from self._eval_args(expr.args, env)
        ctor = parent.find_method("constructor")
        if isinstance(ctor, UserFunction):
            yield from self._run_body(ctor, args, this)
        return UNDEFINED


def evaluate(
    program: ast.Program,
    root_env: Optional[Environment] = None,
    config: Optional[InterpreterConfig] = None,
    on_unhandled: Optional[Callable[[TsRuntimeError], None]] = None,
) -> RunResult:
    """Run `program` as the main task under `root_env` and drain the task queue."""
    return Interpreter(config, root_env=root_env, on_unhandled=on_unhandled).run(program)


def run_program(
    program: ast.Program,
    stdout=None,
    resolver=None,
    **config: object,
) -> RunResult:
    cfg = InterpreterConfig(stdout=stdout, resolver=resolver, **config)  # type: ignore[arg-type]
    return evaluate(program, config=cfg)
