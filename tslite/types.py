"""
Type-annotation skeleton.

Annotations are parsed into these nodes so the parser can check that they are
well formed; the nodes never reach the AST. Only names survive erasure
(generic parameter names, interface member names).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


class TypeNode:
    pass


@dataclass(frozen=True)
class TypeRef(TypeNode):
    name: str
    args: Tuple[TypeNode, ...] = ()

    def __str__(self) -> str:  # pragma: no cover - debugging helper
        if not self.args:
            return self.name
        inner = ", ".join(str(a) for a in self.args)
        return f"{self.name}<{inner}>"


@dataclass(frozen=True)
class LiteralType(TypeNode):
    value: object


@dataclass(frozen=True)
class UnionType(TypeNode):
    members: Tuple[TypeNode, ...]


@dataclass(frozen=True)
class IntersectionType(TypeNode):
    members: Tuple[TypeNode, ...]


@dataclass(frozen=True)
class ArrayType(TypeNode):
    element: TypeNode


@dataclass(frozen=True)
class TupleType(TypeNode):
    elements: Tuple[TypeNode, ...]


@dataclass(frozen=True)
class FunctionType(TypeNode):
    params: Tuple[TypeNode, ...]
    result: TypeNode


@dataclass(frozen=True)
class TypeMember:
    name: str
    type: Optional[TypeNode]
    optional: bool = False
    is_method: bool = False


@dataclass(frozen=True)
class ObjectType(TypeNode):
    members: Tuple[TypeMember, ...]

    def member_names(self) -> Tuple[str, ...]:
        return tuple(m.name for m in self.members)


@dataclass(frozen=True)
class TypeParam:
    name: str
    constraint: Optional[TypeNode] = None
    default: Optional[TypeNode] = None
