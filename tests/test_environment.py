from __future__ import annotations

import pytest

from tslite.errors import RuntimeErrorKind, TsRuntimeError
from tslite.runtime import UNDEFINED, Environment, default_environment, render


def test_lookup_walks_parents() -> None:
    root = Environment()
    root.define("a", 1.0)
    child = Environment(parent=root)
    assert child.lookup("a") == 1.0
    child.assign("a", 2.0)
    assert root.lookup("a") == 2.0


def test_undefined_name() -> None:
    with pytest.raises(TsRuntimeError) as info:
        Environment().lookup("nope", 3, 4)
    assert info.value.error_kind is RuntimeErrorKind.UNDEFINED_VARIABLE
    assert (info.value.line, info.value.column) == (3, 4)


def test_const_and_redeclaration() -> None:
    env = Environment()
    env.define("c", 1.0, const=True)
    with pytest.raises(TsRuntimeError) as info:
        env.assign("c", 2.0)
    assert info.value.error_kind is RuntimeErrorKind.ASSIGN_TO_CONST
    with pytest.raises(TsRuntimeError) as info:
        env.define("c", 3.0)
    assert info.value.error_kind is RuntimeErrorKind.REDECLARATION


def test_var_lands_in_function_scope() -> None:
    fn_scope = Environment(parent=Environment(), function_scope=True)
    block = Environment(parent=Environment(parent=fn_scope))
    block.declare_var("v", 1.0, True)
    assert "v" in fn_scope.bindings
    block.declare_var("v", UNDEFINED, False)
    assert fn_scope.lookup("v") == 1.0


def test_copy_is_independent() -> None:
    env = Environment(parent=Environment())
    env.define("i", 0.0)
    clone = env.copy()
    clone.assign("i", 1.0)
    assert env.lookup("i") == 0.0
    assert clone.parent is env.parent


def test_default_environment() -> None:
    env = default_environment()
    assert render(env.lookup("print")) == "[Function: print]"
    assert env.lookup("undefined") is UNDEFINED
    assert env.lookup("this") is UNDEFINED
    with pytest.raises(TsRuntimeError):
        env.assign("print", 1.0)
