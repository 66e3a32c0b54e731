from __future__ import annotations

from typing import Dict, Optional

from ..errors import RuntimeErrorKind, TsRuntimeError


class Binding:
    __slots__ = ("value", "const")

    def __init__(self, value: object, const: bool = False) -> None:
        self.value = value
        self.const = const


class Environment:
    """
    Lexical scope: a name → binding map chained to its enclosing scope.

    Function bodies (and the global scope) are marked `function_scope`, which
    is where `var` declarations land. Parents are held strongly; closures keep
    their defining scopes alive for as long as the closure itself lives.
    """

    def __init__(self, parent: Optional[Environment] = None, function_scope: bool = False) -> None:
        self.parent = parent
        self.function_scope = function_scope or parent is None
        self.bindings: Dict[str, Binding] = {}

    def define(
        self,
        name: str,
        value: object,
        const: bool = False,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        if name in self.bindings:
            raise TsRuntimeError(
                RuntimeErrorKind.REDECLARATION,
                f"'{name}' is already declared in this scope",
                line,
                column,
            )
        self.bindings[name] = Binding(value, const)

    def hoist(self, name: str, value: object) -> None:
        """Bind a function declaration; a later declaration of the same name wins."""
        self.bindings[name] = Binding(value)

    def declare_var(self, name: str, value: object, has_value: bool) -> None:
        scope = self
        while not scope.function_scope and scope.parent is not None:
            scope = scope.parent
        existing = scope.bindings.get(name)
        if existing is None:
            scope.bindings[name] = Binding(value)
        elif has_value:
            existing.value = value

    def _find(self, name: str) -> Optional[Binding]:
        env: Optional[Environment] = self
        while env is not None:
            binding = env.bindings.get(name)
            if binding is not None:
                return binding
            env = env.parent
        return None

    def lookup(self, name: str, line: Optional[int] = None, column: Optional[int] = None) -> object:
        binding = self._find(name)
        if binding is None:
            raise TsRuntimeError(RuntimeErrorKind.UNDEFINED_VARIABLE, f"'{name}' is not defined", line, column)
        return binding.value

    def assign(self, name: str, value: object, line: Optional[int] = None, column: Optional[int] = None) -> None:
        binding = self._find(name)
        if binding is None:
            raise TsRuntimeError(RuntimeErrorKind.UNDEFINED_VARIABLE, f"'{name}' is not defined", line, column)
        if binding.const:
            raise TsRuntimeError(
                RuntimeErrorKind.ASSIGN_TO_CONST, f"cannot assign to constant '{name}'", line, column
            )
        binding.value = value

    def copy(self) -> Environment:
        """Sibling scope with fresh bindings holding the current values."""
        clone = Environment(self.parent, self.function_scope)
        clone.bindings = {name: Binding(b.value, b.const) for name, b in self.bindings.items()}
        return clone

    def snapshot(self) -> Dict[str, object]:
        return {name: b.value for name, b in self.bindings.items()}
