from __future__ import annotations

import pytest

from tslite import ast
from tslite.errors import ParseError
from tslite.parser import parse_program


def _stmts(source: str):
    return parse_program(source).statements


def _expr(source: str) -> ast.Expr:
    (stmt,) = _stmts(source)
    assert isinstance(stmt, ast.ExprStmt)
    return stmt.value


def test_statements_separated_by_newlines() -> None:
    stmts = _stmts("let a = 1\nlet b = 2; const c = 3")
    assert [type(s) for s in stmts] == [ast.VarDecl] * 3
    assert [s.name for s in stmts] == ["a", "b", "c"]


def test_missing_separator_is_an_error() -> None:
    with pytest.raises(ParseError) as info:
        _stmts("let a = 1 let b = 2")
    assert info.value.found == "let"
    assert (info.value.line, info.value.column) == (1, 11)


def test_return_value_must_start_on_same_line() -> None:
    (fn,) = [s for s in _stmts("function f() {\n    return\n    1\n}") if isinstance(s, ast.FunctionDecl)]
    ret, tail = fn.body.statements
    assert isinstance(ret, ast.ReturnStmt) and ret.value is None
    assert isinstance(tail, ast.ExprStmt)


def test_call_parens_on_next_line_start_a_new_statement() -> None:
    decl, stmt = _stmts("let a = b\n(c)")
    assert isinstance(decl.value, ast.Name)
    assert isinstance(stmt, ast.ExprStmt)
    assert isinstance(stmt.value, ast.Name) and stmt.value.ident == "c"


def test_binary_precedence() -> None:
    expr = _expr("1 + 2 * 3 === 7 || x && y")
    assert isinstance(expr, ast.Binary) and expr.op == "||"
    eq = expr.left
    assert eq.op == "==="
    assert eq.left.op == "+"
    assert eq.left.right.op == "*"
    assert expr.right.op == "&&"


def test_binary_operators_are_left_associative() -> None:
    expr = _expr("a - b - c")
    assert expr.op == "-"
    assert isinstance(expr.left, ast.Binary)
    assert isinstance(expr.right, ast.Name)


def test_assignment_is_right_associative() -> None:
    expr = _expr("a = b += 1")
    assert isinstance(expr, ast.Assign) and expr.op == "="
    assert isinstance(expr.value, ast.Assign) and expr.value.op == "+="


def test_invalid_assignment_target() -> None:
    with pytest.raises(ParseError):
        _stmts("1 = 2")
    with pytest.raises(ParseError):
        _stmts("f()++")


def test_conditional_and_unary() -> None:
    expr = _expr("!a ? -b : void c")
    assert isinstance(expr, ast.Conditional)
    assert expr.condition.op == "!"
    assert expr.then_value.op == "-"
    assert expr.else_value.op == "void"


def test_arrow_functions() -> None:
    (decl,) = _stmts("const f = async (a, b: number = 1): Promise<number> => a + b")
    arrow = decl.value
    assert isinstance(arrow, ast.ArrowFunction)
    assert arrow.is_async
    assert [p.name for p in arrow.params] == ["a", "b"]
    assert arrow.params[0].default is None
    assert isinstance(arrow.params[1].default, ast.Literal)
    assert isinstance(arrow.body, ast.Binary)

    single = _expr("x => x")
    assert isinstance(single, ast.ArrowFunction)
    assert [p.name for p in single.params] == ["x"]


def test_parenthesized_expression_is_not_an_arrow() -> None:
    expr = _expr("(a + b) * 2")
    assert isinstance(expr, ast.Binary) and expr.op == "*"
    assert expr.left.op == "+"


def test_generic_call_versus_comparison() -> None:
    call = _expr("make<number, string>(1)")
    assert isinstance(call, ast.Call)
    assert call.func.ident == "make"
    comparison = _expr("a < b")
    assert isinstance(comparison, ast.Binary) and comparison.op == "<"


def test_as_cast_is_erased() -> None:
    expr = _expr("x as number + 1")
    assert isinstance(expr, ast.Binary)
    assert isinstance(expr.left, ast.Name)


def test_function_generics_and_annotations_are_erased() -> None:
    (fn,) = _stmts("function doStuff<T extends number | string>(one: T, two?: T[]): number { return 5 }")
    assert isinstance(fn, ast.FunctionDecl)
    assert fn.type_params.names == ["T"]
    assert [p.name for p in fn.params] == ["one", "two"]


def test_duplicate_type_parameters() -> None:
    with pytest.raises(ParseError):
        _stmts("function f<T, T>(x: T) {}")


def test_interface_members() -> None:
    (iface,) = _stmts(
        "interface I extends Base {\n"
        "    a(x: number): void;\n"
        "    b?: string\n"
        "    readonly c: (n: number) => Promise<string>\n"
        "}"
    )
    assert isinstance(iface, ast.InterfaceDecl)
    assert iface.extends == ["Base"]
    assert iface.members == ["a", "b", "c"]


def test_type_alias() -> None:
    (alias,) = _stmts("type Pair<T> = {first: T; second: T} | [T, T] | string[]")
    assert isinstance(alias, ast.TypeAliasDecl)
    assert alias.name == "Pair"
    assert alias.type_params.names == ["T"]


def test_type_is_still_an_identifier() -> None:
    (decl,) = _stmts("let type = 1")
    assert decl.name == "type"


def test_class_declaration() -> None:
    (cls,) = _stmts(
        "class B<T> extends A implements I, J {\n"
        "    private count: number = 0\n"
        "    label?: string\n"
        "    constructor(n: number) { super(n) }\n"
        "    async load(): Promise<T> { return await this.fetch() }\n"
        "}"
    )
    assert isinstance(cls, ast.ClassDecl)
    assert cls.superclass == "A"
    assert cls.implements == ["I", "J"]
    assert [f.name for f in cls.fields] == ["count", "label"]
    assert cls.fields[1].value is None
    assert [m.name for m in cls.methods] == ["constructor", "load"]
    assert cls.methods[1].is_async


def test_imports() -> None:
    bare, named, star, default = _stmts(
        'import "main.js"\n'
        'import { stan, stoo as superStoo } from "./stanFactory"\n'
        'import * as ns from "lib"\n'
        'import thing from "other"'
    )
    assert bare.specifier == "main.js" and bare.bindings == []
    assert [(b.name, b.local) for b in named.bindings] == [("stan", "stan"), ("stoo", "superStoo")]
    assert star.bindings[0].name == "*" and star.bindings[0].local == "ns"
    assert default.bindings[0].name == "default" and default.bindings[0].local == "thing"


def test_import_only_at_top_level() -> None:
    with pytest.raises(ParseError):
        _stmts('if (x) {\n    import "a"\n}')


def test_for_loops() -> None:
    classic, of_loop = _stmts("for (let i = 0; i < 3; i++) {}\nfor (const v of items) print(v)")
    assert isinstance(classic, ast.ForStmt)
    assert isinstance(classic.init, ast.VarDecl)
    assert isinstance(classic.update, ast.Update) and not classic.update.prefix
    assert isinstance(of_loop, ast.ForOfStmt)
    assert (of_loop.kind, of_loop.name) == ("const", "v")


def test_switch_cases() -> None:
    (stmt,) = _stmts('switch (x) {\n    case 1:\n    case 2:\n        print("low")\n        break\n    default:\n        print("high")\n}')
    assert [case.test is None for case in stmt.cases] == [False, False, True]
    assert stmt.cases[0].body == []
    assert len(stmt.cases[1].body) == 2


def test_duplicate_default_clause() -> None:
    with pytest.raises(ParseError):
        _stmts("switch (x) {\n    default:\n        break\n    default:\n        break\n}")


def test_try_statement() -> None:
    (stmt,) = _stmts("try {\n    f()\n} catch (e: unknown) {\n    g(e)\n} finally {\n    h()\n}")
    assert stmt.catch_name == "e"
    assert stmt.handler is not None and stmt.finalizer is not None


def test_try_needs_catch_or_finally() -> None:
    with pytest.raises(ParseError):
        _stmts("try {\n    f()\n}")


def test_object_literal_forms() -> None:
    (decl,) = _stmts('const o = {a: 1, "b c": 2, d, go(x) { return x }}')
    props = decl.value.properties
    assert [p.key for p in props] == ["a", "b c", "d", "go"]
    assert props[2].shorthand
    assert isinstance(props[3].value, ast.FunctionExpr)


@pytest.mark.parametrize(
    "source",
    [
        "return 1",
        "break",
        "while (x) {\n    function f() {\n        break\n    }\n}",
        "switch (x) {\n    case 1:\n        continue\n}",
        "function f() {\n    await g()\n}",
        "const x",
        "let = 5",
        "f(1, 2",
        "class {}",
    ],
)
def test_parse_errors(source: str) -> None:
    with pytest.raises(ParseError):
        _stmts(source)


def test_parse_error_reports_expected_and_found() -> None:
    with pytest.raises(ParseError) as info:
        _stmts("let = 5")
    err = info.value
    assert err.expected == "identifier"
    assert err.found == "="
    assert (err.line, err.column) == (1, 5)
    assert str(err) == "ParseError at 1:5: expected identifier, found ="


def test_top_level_await_is_allowed() -> None:
    (stmt,) = _stmts("await task")
    assert isinstance(stmt.value, ast.Await)
