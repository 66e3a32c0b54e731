from __future__ import annotations

import re
from typing import List, Optional

from . import ast
from .lexer import format_number
from .parser import BINARY_PRECEDENCE

INDENT = "    "

_IDENT_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

# Expression precedence levels; binary operators sit between CONDITIONAL and
# UNARY, shifted by _BINARY_BASE.
ASSIGNMENT = 1
CONDITIONAL = 2
_BINARY_BASE = 2
UNARY = 9
POSTFIX = 10
CALL = 11
PRIMARY = 12


def format_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def format_key(key: str) -> str:
    if _IDENT_RE.match(key):
        return key
    return format_string(key)


def format_params(params: List[ast.Param]) -> str:
    parts = []
    for param in params:
        if param.default is None:
            parts.append(param.name)
        else:
            parts.append(f"{param.name} = {format_expr(param.default, ASSIGNMENT)}")
    return ", ".join(parts)


def format_generics(generics: Optional[ast.GenericParams]) -> str:
    if generics is None or not generics.names:
        return ""
    return "<" + ", ".join(generics.names) + ">"


def _precedence(expr: ast.Expr) -> int:
    if isinstance(expr, (ast.Assign, ast.ArrowFunction)):
        return ASSIGNMENT
    if isinstance(expr, ast.Conditional):
        return CONDITIONAL
    if isinstance(expr, ast.Binary):
        return _BINARY_BASE + BINARY_PRECEDENCE[expr.op]
    if isinstance(expr, (ast.Unary, ast.Await)):
        return UNARY
    if isinstance(expr, ast.Update):
        return UNARY if expr.prefix else POSTFIX
    if isinstance(expr, (ast.Call, ast.Member, ast.Index, ast.New, ast.SuperCall)):
        return CALL
    return PRIMARY


def format_expr(expr: ast.Expr, min_prec: int = 0) -> str:
    text = _format_expr(expr)
    if _precedence(expr) < min_prec:
        return f"({text})"
    return text


def _format_callee(expr: ast.Expr) -> str:
    # `new` binds to the nearest argument list, so calls in the constructor
    # position need parentheses.
    node = expr
    while isinstance(node, ast.Member):
        node = node.value
    if isinstance(node, (ast.Name, ast.This)):
        return format_expr(expr, CALL)
    return f"({_format_expr(expr)})"


def _format_object(expr: ast.Expr) -> str:
    if isinstance(expr, ast.Literal) and isinstance(expr.value, float):
        return f"({_format_expr(expr)})"
    return format_expr(expr, CALL)


def _format_expr(expr: ast.Expr) -> str:
    if isinstance(expr, ast.Literal):
        value = expr.value
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float):
            return format_number(value)
        return format_string(str(value))
    if isinstance(expr, ast.Name):
        return expr.ident
    if isinstance(expr, ast.This):
        return "this"
    if isinstance(expr, ast.ArrayLiteral):
        return "[" + ", ".join(format_expr(e, ASSIGNMENT) for e in expr.elements) + "]"
    if isinstance(expr, ast.ObjectLiteral):
        if not expr.properties:
            return "{}"
        parts = []
        for prop in expr.properties:
            if prop.shorthand:
                parts.append(prop.key)
            else:
                parts.append(f"{format_key(prop.key)}: {format_expr(prop.value, ASSIGNMENT)}")
        return "{" + ", ".join(parts) + "}"
    if isinstance(expr, ast.Binary):
        prec = BINARY_PRECEDENCE[expr.op] + _BINARY_BASE
        left = format_expr(expr.left, prec)
        right = format_expr(expr.right, prec + 1)
        return f"{left} {expr.op} {right}"
    if isinstance(expr, ast.Unary):
        operand = format_expr(expr.operand, UNARY)
        if expr.op == "void":
            return f"void {operand}"
        if operand.startswith(expr.op):
            return f"{expr.op} {operand}"
        return f"{expr.op}{operand}"
    if isinstance(expr, ast.Await):
        return f"await {format_expr(expr.value, UNARY)}"
    if isinstance(expr, ast.Update):
        target = format_expr(expr.target, CALL)
        return f"{expr.op}{target}" if expr.prefix else f"{target}{expr.op}"
    if isinstance(expr, ast.Assign):
        return f"{format_expr(expr.target, CALL)} {expr.op} {format_expr(expr.value, ASSIGNMENT)}"
    if isinstance(expr, ast.Conditional):
        cond = format_expr(expr.condition, CONDITIONAL + 1)
        then = format_expr(expr.then_value, ASSIGNMENT)
        other = format_expr(expr.else_value, ASSIGNMENT)
        return f"{cond} ? {then} : {other}"
    if isinstance(expr, ast.Call):
        args = ", ".join(format_expr(a, ASSIGNMENT) for a in expr.args)
        return f"{format_expr(expr.func, CALL)}({args})"
    if isinstance(expr, ast.Member):
        return f"{_format_object(expr.value)}.{expr.attr}"
    if isinstance(expr, ast.Index):
        return f"{_format_object(expr.value)}[{format_expr(expr.index)}]"
    if isinstance(expr, ast.New):
        args = ", ".join(format_expr(a, ASSIGNMENT) for a in expr.args)
        return f"new {_format_callee(expr.cls)}({args})"
    if isinstance(expr, ast.SuperCall):
        args = ", ".join(format_expr(a, ASSIGNMENT) for a in expr.args)
        return f"super({args})"
    if isinstance(expr, ast.ArrowFunction):
        prefix = "async " if expr.is_async else ""
        head = f"{prefix}({format_params(expr.params)}) =>"
        if isinstance(expr.body, ast.Block):
            return f"{head} {_inline_block(expr.body)}"
        body = format_expr(expr.body, ASSIGNMENT)
        if isinstance(expr.body, ast.ObjectLiteral):
            body = f"({body})"
        return f"{head} {body}"
    if isinstance(expr, ast.FunctionExpr):
        prefix = "async " if expr.is_async else ""
        name = f" {expr.name}" if expr.name else ""
        head = f"{prefix}function{name}{format_generics(expr.type_params)}({format_params(expr.params)})"
        return f"{head} {_inline_block(expr.body)}"
    raise TypeError(f"cannot format expression {type(expr).__name__}")


def _inline_block(block: ast.Block) -> str:
    lines = _format_block_lines("", block)
    return "\n".join(lines)


def _indent(lines: List[str]) -> List[str]:
    out = []
    for line in lines:
        for part in line.split("\n"):
            out.append(INDENT + part if part else part)
    return out


def _format_block_lines(header: str, block: ast.Block) -> List[str]:
    opener = f"{header} {{" if header else "{"
    if not block.statements:
        return [opener + "}"]
    lines = [opener]
    for stmt in block.statements:
        lines.extend(_indent(format_stmt(stmt)))
    lines.append("}")
    return lines


def _format_body(header: str, body: ast.Stmt) -> List[str]:
    if isinstance(body, ast.Block):
        return _format_block_lines(header, body)
    return [header] + _indent(format_stmt(body))


def _format_var(decl: ast.VarDecl) -> str:
    if decl.value is None:
        return f"{decl.kind} {decl.name}"
    return f"{decl.kind} {decl.name} = {format_expr(decl.value, ASSIGNMENT)}"


def _needs_statement_parens(text: str) -> bool:
    if text.startswith(("{", "function", "async function")):
        return True
    return text[:1] in ("-", "+") and text[:2] not in ("--", "++")


def format_stmt(stmt: ast.Stmt) -> List[str]:
    """Render one statement as unindented lines; nested bodies are indented."""
    if isinstance(stmt, ast.Block):
        return _format_block_lines("", stmt)
    if isinstance(stmt, ast.VarDecl):
        return [_format_var(stmt)]
    if isinstance(stmt, ast.ExprStmt):
        text = format_expr(stmt.value)
        if _needs_statement_parens(text):
            text = f"({text})"
        return text.split("\n")
    if isinstance(stmt, ast.FunctionDecl):
        prefix = "async " if stmt.is_async else ""
        header = f"{prefix}function {stmt.name}{format_generics(stmt.type_params)}({format_params(stmt.params)})"
        return _format_block_lines(header, stmt.body)
    if isinstance(stmt, ast.ClassDecl):
        return _format_class(stmt)
    if isinstance(stmt, ast.InterfaceDecl):
        header = f"interface {stmt.name}{format_generics(stmt.type_params)}"
        if stmt.extends:
            header += " extends " + ", ".join(stmt.extends)
        if not stmt.members:
            return [header + " {}"]
        return [header + " {"] + _indent([f"{m}()" for m in stmt.members]) + ["}"]
    if isinstance(stmt, ast.TypeAliasDecl):
        return [f"type {stmt.name}{format_generics(stmt.type_params)} = any"]
    if isinstance(stmt, ast.ImportDecl):
        return [_format_import(stmt)]
    if isinstance(stmt, ast.IfStmt):
        lines = _format_body(f"if ({format_expr(stmt.condition)})", stmt.then_branch)
        if stmt.else_branch is None:
            return lines
        if isinstance(stmt.else_branch, ast.IfStmt):
            else_lines = format_stmt(stmt.else_branch)
            else_lines[0] = "else " + else_lines[0]
        else:
            else_lines = _format_body("else", stmt.else_branch)
        if isinstance(stmt.then_branch, ast.Block):
            lines[-1] += " " + else_lines[0]
            return lines + else_lines[1:]
        return lines + else_lines
    if isinstance(stmt, ast.ForStmt):
        if stmt.init is None:
            init = ""
        elif isinstance(stmt.init, ast.VarDecl):
            init = _format_var(stmt.init)
        else:
            assert isinstance(stmt.init, ast.ExprStmt)
            init = format_expr(stmt.init.value)
        cond = f" {format_expr(stmt.condition)}" if stmt.condition is not None else ""
        update = f" {format_expr(stmt.update)}" if stmt.update is not None else ""
        return _format_body(f"for ({init};{cond};{update})", stmt.body)
    if isinstance(stmt, ast.ForOfStmt):
        return _format_body(f"for ({stmt.kind} {stmt.name} of {format_expr(stmt.iterable)})", stmt.body)
    if isinstance(stmt, ast.WhileStmt):
        return _format_body(f"while ({format_expr(stmt.condition)})", stmt.body)
    if isinstance(stmt, ast.SwitchStmt):
        lines = [f"switch ({format_expr(stmt.discriminant)}) {{"]
        for case in stmt.cases:
            label = "default:" if case.test is None else f"case {format_expr(case.test)}:"
            body: List[str] = []
            for inner in case.body:
                body.extend(format_stmt(inner))
            lines.extend(_indent([label] + _indent(body)))
        lines.append("}")
        return lines
    if isinstance(stmt, ast.BreakStmt):
        return ["break"]
    if isinstance(stmt, ast.ContinueStmt):
        return ["continue"]
    if isinstance(stmt, ast.ReturnStmt):
        if stmt.value is None:
            return ["return"]
        return f"return {format_expr(stmt.value)}".split("\n")
    if isinstance(stmt, ast.ThrowStmt):
        return f"throw {format_expr(stmt.value)}".split("\n")
    if isinstance(stmt, ast.TryStmt):
        lines = _format_block_lines("try", stmt.body)
        if stmt.handler is not None:
            header = f"catch ({stmt.catch_name})" if stmt.catch_name else "catch"
            handler = _format_block_lines(header, stmt.handler)
            lines[-1] += " " + handler[0]
            lines.extend(handler[1:])
        if stmt.finalizer is not None:
            finalizer = _format_block_lines("finally", stmt.finalizer)
            lines[-1] += " " + finalizer[0]
            lines.extend(finalizer[1:])
        return lines
    raise TypeError(f"cannot format statement {type(stmt).__name__}")


def _format_class(decl: ast.ClassDecl) -> List[str]:
    header = f"class {decl.name}{format_generics(decl.type_params)}"
    if decl.superclass:
        header += f" extends {decl.superclass}"
    if decl.implements:
        header += " implements " + ", ".join(decl.implements)
    members: List[str] = []
    for fld in decl.fields:
        if fld.value is None:
            members.append(format_key(fld.name))
        else:
            members.extend(f"{format_key(fld.name)} = {format_expr(fld.value, ASSIGNMENT)}".split("\n"))
    for method in decl.methods:
        prefix = "async " if method.is_async else ""
        head = f"{prefix}{method.name}{format_generics(method.type_params)}({format_params(method.params)})"
        members.extend(_format_block_lines(head, method.body))
    if not members:
        return [header + " {}"]
    return [header + " {"] + _indent(members) + ["}"]


def _format_import(decl: ast.ImportDecl) -> str:
    spec = format_string(decl.specifier)
    if not decl.bindings:
        return f"import {spec}"
    if len(decl.bindings) == 1 and decl.bindings[0].name == "*":
        return f"import * as {decl.bindings[0].local} from {spec}"
    if len(decl.bindings) == 1 and decl.bindings[0].name == "default":
        return f"import {decl.bindings[0].local} from {spec}"
    names = []
    for binding in decl.bindings:
        if binding.alias and binding.alias != binding.name:
            names.append(f"{binding.name} as {binding.alias}")
        else:
            names.append(binding.name)
    return "import { " + ", ".join(names) + f" }} from {spec}"


def format_program(program: ast.Program) -> str:
    lines: List[str] = []
    for stmt in program.statements:
        lines.extend(format_stmt(stmt))
    return "\n".join(lines) + "\n" if lines else ""
