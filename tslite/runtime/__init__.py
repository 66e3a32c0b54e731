from __future__ import annotations

import math
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ..lexer import format_number
from ..scheduler import Task, TaskState
from .environment import Binding, Environment


class _Undefined:
    _instance: Optional["_Undefined"] = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


class FunctionValue:
    """Marker base for every callable script value."""

    name: Optional[str]


BuiltinImpl = Callable[["RuntimeContext", Sequence[object]], object]


@dataclass
class BuiltinFunction(FunctionValue):
    name: str
    impl: BuiltinImpl


@dataclass(eq=False)
class ClassDescriptor:
    """Runtime view of a class declaration; methods are already closures."""

    name: str
    superclass: Optional["ClassDescriptor"]
    fields: List[object] = field(default_factory=list)
    methods: Dict[str, object] = field(default_factory=dict)
    interfaces: List[str] = field(default_factory=list)
    env: Optional[Environment] = None

    def find_method(self, name: str) -> Optional[object]:
        cls: Optional[ClassDescriptor] = self
        while cls is not None:
            if name in cls.methods:
                return cls.methods[name]
            cls = cls.superclass
        return None

    def chain(self) -> List["ClassDescriptor"]:
        """Superclass-first list of this class and its ancestors."""
        out: List[ClassDescriptor] = []
        cls: Optional[ClassDescriptor] = self
        while cls is not None:
            out.append(cls)
            cls = cls.superclass
        out.reverse()
        return out


@dataclass(eq=False)
class Instance:
    cls: ClassDescriptor
    fields: Dict[str, object] = field(default_factory=dict)


class RuntimeContext:
    def __init__(self, stdout) -> None:
        self.stdout = stdout


def is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_truthy(value: object) -> bool:
    if value is UNDEFINED or value is None or value is False:
        return False
    if value is True:
        return True
    if is_number(value):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def type_name(value: object) -> str:
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, ClassDescriptor):
        return "class"
    if isinstance(value, Task):
        return "Promise"
    if isinstance(value, FunctionValue):
        return "function"
    return "object"


def strict_equals(left: object, right: object) -> bool:
    if is_number(left) and is_number(right):
        return left == right
    if type_name(left) != type_name(right):
        return False
    if isinstance(left, (str, bool)):
        return left == right
    return left is right


def to_display_string(value: object) -> str:
    """String conversion used by `+` concatenation and `join`."""
    if isinstance(value, str):
        return value
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(float(value))
    if isinstance(value, list):
        return ",".join("" if v is None or v is UNDEFINED else to_display_string(v) for v in value)
    if isinstance(value, (dict, Instance)):
        return "[object Object]"
    return render(value)


def _quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n") + '"'


def render(value: object, nested: bool = False, _seen: Optional[set] = None) -> str:
    """Format a value the way `print` shows it."""
    if isinstance(value, str):
        return _quote(value) if nested else value
    if value is UNDEFINED or value is None or isinstance(value, bool) or is_number(value):
        return to_display_string(value)
    seen = _seen if _seen is not None else set()
    if id(value) in seen:
        return "[Circular]"
    if isinstance(value, list):
        seen.add(id(value))
        try:
            return "[" + ", ".join(render(v, True, seen) for v in value) + "]"
        finally:
            seen.discard(id(value))
    if isinstance(value, dict):
        seen.add(id(value))
        try:
            return _render_fields(value, seen)
        finally:
            seen.discard(id(value))
    if isinstance(value, Instance):
        seen.add(id(value))
        try:
            return f"{value.cls.name} {_render_fields(value.fields, seen)}"
        finally:
            seen.discard(id(value))
    if isinstance(value, ClassDescriptor):
        return f"[class {value.name}]"
    if isinstance(value, Task):
        if value.state is TaskState.PENDING:
            return "Promise { <pending> }"
        if value.error is not None:
            return f"Promise {{ <rejected> {value.error.kind} }}"
        prefix = "<rejected> " if value.state is TaskState.REJECTED else ""
        return f"Promise {{ {prefix}{render(value.result, True, seen)} }}"
    name = getattr(value, "name", None) or "anonymous"
    return f"[Function: {name}]"


def _render_fields(fields: Mapping[str, object], seen: set) -> str:
    if not fields:
        return "{}"
    parts = [f"{key}: {render(val, True, seen)}" for key, val in fields.items()]
    return "{" + ", ".join(parts) + "}"


def _builtin_print(ctx: RuntimeContext, args: Sequence[object]) -> object:
    text = " ".join(render(arg) for arg in args)
    ctx.stdout.write(text + "\n")
    ctx.stdout.flush()
    return UNDEFINED


BUILTINS: Mapping[str, BuiltinFunction] = {
    "print": BuiltinFunction(name="print", impl=_builtin_print),
}

GLOBAL_CONSTANTS: Mapping[str, object] = {
    "undefined": UNDEFINED,
    "NaN": math.nan,
    "Infinity": math.inf,
}


def _array_push(items: list, ctx: RuntimeContext, args: Sequence[object]) -> object:
    items.extend(args)
    return float(len(items))


def _array_pop(items: list, ctx: RuntimeContext, args: Sequence[object]) -> object:
    return items.pop() if items else UNDEFINED


def _array_join(items: list, ctx: RuntimeContext, args: Sequence[object]) -> object:
    sep = "," if not args or args[0] is UNDEFINED else to_display_string(args[0])
    return sep.join("" if v is None or v is UNDEFINED else to_display_string(v) for v in items)


def _array_includes(items: list, ctx: RuntimeContext, args: Sequence[object]) -> object:
    needle = args[0] if args else UNDEFINED
    return any(strict_equals(item, needle) for item in items)


def _array_index_of(items: list, ctx: RuntimeContext, args: Sequence[object]) -> object:
    needle = args[0] if args else UNDEFINED
    for idx, item in enumerate(items):
        if strict_equals(item, needle):
            return float(idx)
    return -1.0


_ARRAY_METHODS = {
    "push": _array_push,
    "pop": _array_pop,
    "join": _array_join,
    "includes": _array_includes,
    "indexOf": _array_index_of,
}


def builtin_member(value: object, name: str) -> object:
    """Members of primitive values (arrays, strings); UNDEFINED if absent."""
    if isinstance(value, list):
        if name == "length":
            return float(len(value))
        method = _ARRAY_METHODS.get(name)
        if method is not None:
            return BuiltinFunction(name=f"Array.{name}", impl=partial(method, value))
        return UNDEFINED
    if isinstance(value, str):
        if name == "length":
            return float(len(value))
    return UNDEFINED


def default_environment() -> Environment:
    """Root scope holding the builtins and global constants."""
    env = Environment()
    for name, builtin in BUILTINS.items():
        env.define(name, builtin, const=True)
    for name, value in GLOBAL_CONSTANTS.items():
        env.define(name, value, const=True)
    env.define("this", UNDEFINED, const=True)
    return env


__all__ = [
    "BUILTINS",
    "Binding",
    "BuiltinFunction",
    "ClassDescriptor",
    "Environment",
    "FunctionValue",
    "GLOBAL_CONSTANTS",
    "Instance",
    "RuntimeContext",
    "UNDEFINED",
    "builtin_member",
    "default_environment",
    "is_number",
    "is_truthy",
    "render",
    "strict_equals",
    "to_display_string",
    "type_name",
]
