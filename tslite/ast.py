from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(frozen=True)
class Located:
    line: int
    column: int


@dataclass
class GenericParams:
    """Names of erased generic parameters (`<T extends U, V>`)."""

    names: List[str]


@dataclass
class Param:
    name: str
    default: Optional["Expr"] = None


class Stmt:
    loc: Located


class Expr:
    loc: Located


@dataclass
class Block(Stmt):
    loc: Located
    statements: List[Stmt]


@dataclass
class VarDecl(Stmt):
    loc: Located
    kind: str  # "const" | "let" | "var"
    name: str
    value: Optional[Expr] = None


@dataclass
class FunctionDecl(Stmt):
    loc: Located
    name: str
    params: List[Param]
    body: Block
    is_async: bool = False
    type_params: Optional[GenericParams] = None


@dataclass
class FieldDecl:
    loc: Located
    name: str
    value: Optional[Expr] = None


@dataclass
class MethodDecl:
    loc: Located
    name: str
    params: List[Param]
    body: Block
    is_async: bool = False
    type_params: Optional[GenericParams] = None


@dataclass
class ClassDecl(Stmt):
    loc: Located
    name: str
    superclass: Optional[str] = None
    implements: List[str] = field(default_factory=list)
    fields: List[FieldDecl] = field(default_factory=list)
    methods: List[MethodDecl] = field(default_factory=list)
    type_params: Optional[GenericParams] = None


@dataclass
class InterfaceDecl(Stmt):
    loc: Located
    name: str
    extends: List[str] = field(default_factory=list)
    members: List[str] = field(default_factory=list)
    type_params: Optional[GenericParams] = None


@dataclass
class TypeAliasDecl(Stmt):
    loc: Located
    name: str
    type_params: Optional[GenericParams] = None


@dataclass
class ImportBinding:
    name: str
    alias: Optional[str] = None

    @property
    def local(self) -> str:
        return self.alias or self.name


@dataclass
class ImportDecl(Stmt):
    loc: Located
    specifier: str
    bindings: List[ImportBinding] = field(default_factory=list)


@dataclass
class IfStmt(Stmt):
    loc: Located
    condition: Expr
    then_branch: Stmt
    else_branch: Optional[Stmt] = None


@dataclass
class ForStmt(Stmt):
    loc: Located
    init: Optional[Stmt]
    condition: Optional[Expr]
    update: Optional[Expr]
    body: Stmt


@dataclass
class ForOfStmt(Stmt):
    loc: Located
    kind: str
    name: str
    iterable: Expr
    body: Stmt


@dataclass
class WhileStmt(Stmt):
    loc: Located
    condition: Expr
    body: Stmt


@dataclass
class SwitchCase:
    loc: Located
    test: Optional[Expr]  # None for `default`
    body: List[Stmt]


@dataclass
class SwitchStmt(Stmt):
    loc: Located
    discriminant: Expr
    cases: List[SwitchCase]


@dataclass
class BreakStmt(Stmt):
    loc: Located


@dataclass
class ContinueStmt(Stmt):
    loc: Located


@dataclass
class ReturnStmt(Stmt):
    loc: Located
    value: Optional[Expr]


@dataclass
class ThrowStmt(Stmt):
    loc: Located
    value: Expr


@dataclass
class TryStmt(Stmt):
    loc: Located
    body: Block
    catch_name: Optional[str] = None
    handler: Optional[Block] = None
    finalizer: Optional[Block] = None


@dataclass
class ExprStmt(Stmt):
    loc: Located
    value: Expr


@dataclass
class Literal(Expr):
    loc: Located
    value: object


@dataclass
class Name(Expr):
    loc: Located
    ident: str


@dataclass
class This(Expr):
    loc: Located


@dataclass
class ArrayLiteral(Expr):
    loc: Located
    elements: List[Expr]


@dataclass
class Property:
    key: str
    value: Expr
    shorthand: bool = False


@dataclass
class ObjectLiteral(Expr):
    loc: Located
    properties: List[Property]


@dataclass
class Binary(Expr):
    loc: Located
    op: str
    left: Expr
    right: Expr


@dataclass
class Unary(Expr):
    loc: Located
    op: str
    operand: Expr


@dataclass
class Update(Expr):
    loc: Located
    op: str  # "++" | "--"
    prefix: bool
    target: Expr


@dataclass
class Assign(Expr):
    loc: Located
    op: str  # "=", "+=", ...
    target: Expr
    value: Expr


@dataclass
class Conditional(Expr):
    loc: Located
    condition: Expr
    then_value: Expr
    else_value: Expr


@dataclass
class Call(Expr):
    loc: Located
    func: Expr
    args: List[Expr]


@dataclass
class Member(Expr):
    loc: Located
    value: Expr
    attr: str


@dataclass
class Index(Expr):
    loc: Located
    value: Expr
    index: Expr


@dataclass
class New(Expr):
    loc: Located
    cls: Expr
    args: List[Expr]


@dataclass
class SuperCall(Expr):
    loc: Located
    args: List[Expr]


@dataclass
class Await(Expr):
    loc: Located
    value: Expr


@dataclass
class ArrowFunction(Expr):
    loc: Located
    params: List[Param]
    body: Union[Block, Expr]
    is_async: bool = False


@dataclass
class FunctionExpr(Expr):
    loc: Located
    name: Optional[str]
    params: List[Param]
    body: Block
    is_async: bool = False
    type_params: Optional[GenericParams] = None


@dataclass
class Program:
    statements: List[Stmt]
