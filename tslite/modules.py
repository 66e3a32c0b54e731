"""
Host-side module resolvers.

A resolver maps an import specifier to the module's exports, or returns None
when it does not know the module. The interpreter never touches the file
system on its own; whatever a resolver returns is what the script sees.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Union

from .errors import ModuleNotFound
from .runtime import UNDEFINED, BuiltinFunction, FunctionValue, RuntimeContext

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Optional[Mapping[str, object]]]


def to_runtime_value(value: object, name: str = "anonymous") -> object:
    """Convert a host Python value into the interpreter's value model."""
    if value is None or isinstance(value, (bool, str)) or value is UNDEFINED:
        return value
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, (list, tuple)):
        return [to_runtime_value(v) for v in value]
    if isinstance(value, Mapping):
        return {str(k): to_runtime_value(v, str(k)) for k, v in value.items()}
    if isinstance(value, FunctionValue):
        return value
    if callable(value):
        host = value

        def impl(ctx: RuntimeContext, args):
            return to_runtime_value(host(*args))

        return BuiltinFunction(name=getattr(value, "__name__", name), impl=impl)
    return value


class MappingResolver:
    """In-memory modules: `{specifier: {export: value}}`."""

    def __init__(self, modules: Optional[Mapping[str, Mapping[str, object]]] = None) -> None:
        self.modules: Dict[str, Mapping[str, object]] = dict(modules or {})

    def add(self, specifier: str, exports: Mapping[str, object]) -> None:
        self.modules[specifier] = exports

    def __call__(self, specifier: str) -> Optional[Mapping[str, object]]:
        return self.modules.get(specifier)


class JsonModuleResolver:
    """Modules backed by JSON files whose top-level object holds the exports."""

    def __init__(self, paths: Optional[Mapping[str, Union[str, Path]]] = None) -> None:
        self.paths: Dict[str, Path] = {spec: Path(p) for spec, p in (paths or {}).items()}
        self._cache: Dict[str, Mapping[str, object]] = {}

    def add(self, specifier: str, path: Union[str, Path]) -> None:
        self.paths[specifier] = Path(path)
        self._cache.pop(specifier, None)

    def __call__(self, specifier: str) -> Optional[Mapping[str, object]]:
        if specifier in self._cache:
            return self._cache[specifier]
        path = self.paths.get(specifier)
        if path is None:
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ModuleNotFound(specifier, f"cannot load module '{specifier}' from {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ModuleNotFound(specifier, f"module file {path} must contain a JSON object")
        logger.debug("loaded module %r from %s", specifier, path)
        self._cache[specifier] = data
        return data


def chain_resolvers(*resolvers: Resolver) -> Resolver:
    """First resolver that knows the specifier wins."""

    def resolve(specifier: str) -> Optional[Mapping[str, object]]:
        for resolver in resolvers:
            exports = resolver(specifier)
            if exports is not None:
                return exports
        return None

    return resolve


def parse_module_option(text: str) -> tuple[str, Path]:
    """Split a `SPEC=PATH` command-line value."""
    spec, sep, path = text.partition("=")
    if not sep or not spec or not path:
        raise ValueError(f"expected SPEC=PATH, got {text!r}")
    return spec, Path(path)
