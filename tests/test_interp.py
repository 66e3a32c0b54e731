from __future__ import annotations

import pytest

from tslite import InterpreterConfig, Interpreter, MappingResolver, parse_program, run_file, run_source
from tslite.interp import run_program
from tslite.errors import LexError, RuntimeErrorKind, TsRuntimeError
from tslite.runtime import UNDEFINED


def _runtime_error(run, source: str) -> TsRuntimeError:
    with pytest.raises(TsRuntimeError) as info:
        run(source)
    return info.value


def test_print_renders_values(run) -> None:
    out = run('print("s", 1.5, [1, "a", [true, null]], {a: 1, b: "x"}, undefined)').output
    assert out == 's 1.5 [1, "a", [true, null]] {a: 1, b: "x"} undefined\n'


def test_print_functions_and_classes(run) -> None:
    source = "function named() {}\nconst anon = () => 1\nclass K {}\nprint(named, anon, K, [], {})"
    assert run(source).output == "[Function: named] [Function: anon] [class K] [] {}\n"


def test_print_circular_structure(run) -> None:
    out = run("const a = [1]\na.push(a)\nprint(a)").output
    assert out == "[1, [Circular]]\n"


def test_number_formatting(run) -> None:
    out = run("print(0.1 + 0.2, 10 / 4, 7 % 3, -7 % 3, 1 / 0, -1 / 0, 0 / 0)").output
    assert out == "0.30000000000000004 2.5 1 -1 Infinity -Infinity NaN\n"


def test_string_concatenation(run) -> None:
    out = run('print("n=" + 1 + 2, 1 + 2 + "x", "a" + null + undefined + true + [1, 2])').output
    assert out == "n=12 3x anullundefinedtrue1,2\n"


def test_strict_equality(run) -> None:
    out = run('print(1 === 1, 1 == "1", "a" !== "b", null === undefined, [1] === [1], NaN === NaN)').output
    assert out == "true false true false false false\n"


def test_truthiness(run) -> None:
    source = '''
for (const v of [0, "", null, undefined, false, NaN, 1, "a", [], {}]) {
    print(v ? "t" : "f")
}
'''
    assert run(source).lines == ["f"] * 6 + ["t"] * 4


def test_logical_operators_return_operands(run) -> None:
    assert run('print(0 || "fallback", 1 && "second", null && f())').output == "fallback second null\n"


def test_comparisons(run) -> None:
    assert run('print(1 < 2, 2 <= 2, "b" > "a", "a" >= "b")').output == "true true true false\n"


def test_mixed_comparison_is_a_type_mismatch(run) -> None:
    err = _runtime_error(run, 'print(1 < "2")')
    assert err.error_kind is RuntimeErrorKind.TYPE_MISMATCH
    assert (err.line, err.column) == (1, 9)


def test_arithmetic_on_non_numbers(run) -> None:
    err = _runtime_error(run, "let a = [1] - 2")
    assert err.error_kind is RuntimeErrorKind.TYPE_MISMATCH


def test_assign_to_const(run) -> None:
    err = _runtime_error(run, "const x = 1\nx = 2")
    assert err.error_kind is RuntimeErrorKind.ASSIGN_TO_CONST
    assert (err.line, err.column) == (2, 1)
    assert str(err) == "AssignToConst at 2:1: cannot assign to constant 'x'"


def test_undefined_variable(run) -> None:
    err = _runtime_error(run, "print(y)")
    assert err.error_kind is RuntimeErrorKind.UNDEFINED_VARIABLE
    assert (err.line, err.column) == (1, 7)


def test_redeclaration(run) -> None:
    err = _runtime_error(run, "let a = 1\nlet a = 2")
    assert err.error_kind is RuntimeErrorKind.REDECLARATION
    assert err.line == 2


def test_block_scoping_allows_shadowing(run) -> None:
    source = "let a = 1\n{\n    let a = 2\n    print(a)\n}\nprint(a)"
    assert run(source).lines == ["2", "1"]


def test_not_callable(run) -> None:
    err = _runtime_error(run, "const n = 5\nn()")
    assert err.error_kind is RuntimeErrorKind.NOT_CALLABLE
    assert "'n'" in err.message


def test_output_before_runtime_error_is_kept(stdout) -> None:
    config = InterpreterConfig(stdout=stdout)
    with pytest.raises(TsRuntimeError):
        run_source('print("first")\nmissing()', config=config)
    assert stdout.getvalue() == "first\n"


def test_lex_error_prevents_any_output(stdout) -> None:
    with pytest.raises(LexError):
        run_source('print(1)\nlet s = "oops', config=InterpreterConfig(stdout=stdout))
    assert stdout.getvalue() == ""


def test_for_loop_closures_capture_each_iteration(run) -> None:
    source = '''
const fs = []
for (let i = 0; i < 3; i++) {
    fs.push(() => i)
}
for (const f of fs) {
    print(f())
}
'''
    assert run(source).lines == ["0", "1", "2"]


def test_switch_fallthrough(run) -> None:
    source = '''
function pick(v) {
    switch (v) {
        case 1:
            print("one")
        case 2:
            print("two")
            break
        default:
            print("other")
    }
}
pick(1)
pick(2)
pick(3)
pick("1")
'''
    assert run(source).lines == ["one", "two", "two", "other", "other"]


def test_switch_without_match_or_default(run) -> None:
    assert run('switch (3) {\n    case 1:\n        print("x")\n}\nprint("after")').lines == ["after"]


def test_while_with_break_and_continue(run) -> None:
    source = '''
let n = 0
let total = 0
while (true) {
    n++
    if (n % 2 === 0) {
        continue
    }
    if (n > 7) {
        break
    }
    total += n
}
print(total)
'''
    assert run(source).output == "16\n"


def test_compound_assignment_and_update(run) -> None:
    assert run("let i = 5\ni += 2\ni *= 3\nprint(i, i++, i, --i)").output == "21 21 22 21\n"


def test_var_is_function_scoped(run) -> None:
    source = '''
function f() {
    if (true) {
        var v = 3
    }
    return v
}
print(f())
'''
    assert run(source).output == "3\n"


def test_function_declarations_are_hoisted(run) -> None:
    assert run("print(sq(3))\nfunction sq(x) {\n    return x * x\n}").output == "9\n"


def test_default_parameters(run) -> None:
    source = "function f(a, b = a * 2) {\n    return a + b\n}\nprint(f(1), f(1, 5), f(1, undefined))"
    assert run(source).output == "3 6 3\n"


def test_missing_arguments_are_undefined(run) -> None:
    assert run("function f(a, b) {\n    return b\n}\nprint(f(1))").output == "undefined\n"


def test_array_methods(run) -> None:
    source = '''
const xs = [1, 2]
print(xs.push(3), xs.length, xs.join("-"), xs.includes(2), xs.indexOf(5), xs.pop(), xs)
'''
    assert run(source).output == "3 3 1-2-3 true -1 3 [1, 2]\n"


def test_indexing(run) -> None:
    source = 'const xs = [10, 20]\nxs[3] = 40\nprint(xs, xs[1], xs[9], "abc"[1], "abc".length)'
    assert run(source).output == "[10, 20, undefined, 40] 20 undefined b 3\n"


def test_object_members(run) -> None:
    source = 'const o = {a: 1, greet(name) {\n    return "hi " + name\n}}\no.b = 2\nprint(o.greet("bo"), o.b, o.missing)'
    assert run(source).output == "hi bo 2 undefined\n"


def test_reading_member_of_undefined(run) -> None:
    err = _runtime_error(run, "let u\nprint(u.x)")
    assert err.error_kind is RuntimeErrorKind.TYPE_MISMATCH
    assert "undefined" in err.message


def test_recursion(run) -> None:
    source = "function fact(n) {\n    return n <= 1 ? 1 : n * fact(n - 1)\n}\nprint(fact(10))"
    assert run(source).output == "3628800\n"


def test_runaway_recursion_is_a_stack_overflow(run) -> None:
    err = _runtime_error(run, "function f(n) {\n    return f(n + 1)\n}\nf(0)")
    assert err.error_kind is RuntimeErrorKind.STACK_OVERFLOW


def test_try_catch_finally(run) -> None:
    source = '''
try {
    throw {code: 42}
} catch (e) {
    print(e.code)
} finally {
    print("done")
}
'''
    assert run(source).lines == ["42", "done"]


def test_finally_runs_on_return(run) -> None:
    source = '''
function f() {
    try {
        return "body"
    } finally {
        print("finally")
    }
}
print(f())
'''
    assert run(source).lines == ["finally", "body"]


def test_finally_runs_when_rethrowing(run) -> None:
    source = '''
function f() {
    try {
        throw "inner"
    } finally {
        print("cleanup")
    }
}
try {
    f()
} catch (e) {
    print("outer " + e)
}
'''
    assert run(source).lines == ["cleanup", "outer inner"]


def test_uncaught_throw(run) -> None:
    err = _runtime_error(run, 'print("a")\nthrow "oops"')
    assert err.error_kind is RuntimeErrorKind.UNCAUGHT_EXCEPTION
    assert (err.line, err.column) == (2, 1)
    assert '"oops"' in err.message


def test_runtime_errors_are_not_catchable(run) -> None:
    source = 'try {\n    print(missing)\n} catch (e) {\n    print("caught")\n}'
    err = _runtime_error(run, source)
    assert err.error_kind is RuntimeErrorKind.UNDEFINED_VARIABLE


def test_globals_snapshot(run) -> None:
    result = run('let a = 1\nconst b = "x"\nvar c').result
    assert result.globals == {"a": 1.0, "b": "x", "c": UNDEFINED}


def test_generic_function_is_erased(run) -> None:
    source = '''
function doStuff<T extends number | string>(one: T): number {
    print("stuff", one)
    return 5
}
print(doStuff(1), doStuff<string>("s"))
'''
    assert run(source).lines == ["stuff 1", "stuff s", "5 5"]


def test_interpreter_call_from_host(stdout) -> None:
    interp = Interpreter(InterpreterConfig(stdout=stdout))
    interp.run(parse_program("function add(a, b) {\n    print(a, b)\n    return a + b\n}"))
    assert interp.call("add", 2.0, 3.0) == 5.0
    assert stdout.getvalue() == "2 3\n"


def test_interpreter_call_awaits_async_functions(stdout) -> None:
    interp = Interpreter(InterpreterConfig(stdout=stdout))
    interp.run(parse_program("async function later(x) {\n    await null\n    return x * 2\n}"))
    assert interp.call("later", 4.0) == 8.0


def test_run_program_helper(stdout) -> None:
    program = parse_program('import { who } from "m"\nprint("hi " + who)')
    result = run_program(program, stdout=stdout, resolver=MappingResolver({"m": {"who": "there"}}))
    assert stdout.getvalue() == "hi there\n"
    assert result.globals["who"] == "there"


def test_run_file(tmp_path, stdout) -> None:
    path = tmp_path / "script.ts"
    path.write_text("let total: number = 0\nfor (const n of [1, 2, 3]) {\n    total += n\n}\nprint(total)\n")
    result = run_file(path, config=InterpreterConfig(stdout=stdout))
    assert stdout.getvalue() == "6\n"
    assert result.globals["total"] == 6.0
