from __future__ import annotations

from typing import Callable, Iterable, Iterator, List, Optional, TypeVar

from . import ast
from . import types as T
from .errors import ParseError
from .lexer import CONTEXTUAL_KEYWORDS, Token, TokenKind, tokenize

_R = TypeVar("_R")

BINARY_PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 3,
    "!=": 3,
    "===": 3,
    "!==": 3,
    "<": 4,
    "<=": 4,
    ">": 4,
    ">=": 4,
    "+": 5,
    "-": 5,
    "*": 6,
    "/": 6,
    "%": 6,
}
_AS_PRECEDENCE = 4

ASSIGN_OPS = frozenset({"=", "+=", "-=", "*=", "/=", "%="})
UNARY_OPS = frozenset({"!", "-", "+"})
ACCESS_MODIFIERS = frozenset({"public", "private", "protected", "readonly", "declare"})


def parse_program(source: str) -> ast.Program:
    return Parser(tokenize(source)).parse_program()


class Parser:
    """
    Recursive-descent parser with precedence climbing for binary operators.

    Tokens are pulled lazily from the lexer and buffered, so the parser can
    rewind after a failed speculative parse (arrow-function heads, explicit
    call type arguments). Type annotations are parsed into `types` nodes and
    dropped; only names that matter at runtime reach the AST.
    """

    def __init__(self, tokens: Iterable[Token]) -> None:
        self._source: Iterator[Token] = iter(tokens)
        self._buffer: List[Token] = []
        self._pos = 0
        self._function_depth = 0
        self._loop_depth = 0
        self._switch_depth = 0
        self._block_depth = 0
        self._in_async = False

    # -- token helpers --------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        idx = self._pos + offset
        while idx >= len(self._buffer):
            if self._buffer and self._buffer[-1].kind is TokenKind.EOF:
                return self._buffer[-1]
            self._buffer.append(next(self._source))
        return self._buffer[idx]

    def _advance(self) -> Token:
        tok = self._peek()
        if tok.kind is not TokenKind.EOF:
            self._pos += 1
        return tok

    def _at_punct(self, value: str) -> bool:
        return self._peek().is_punct(value)

    def _at_keyword(self, value: str) -> bool:
        return self._peek().is_keyword(value)

    def _accept_punct(self, value: str) -> bool:
        if self._at_punct(value):
            self._advance()
            return True
        return False

    def _expect_punct(self, value: str) -> Token:
        if not self._at_punct(value):
            raise self._error(f"'{value}'")
        return self._advance()

    def _expect_keyword(self, value: str) -> Token:
        if not self._at_keyword(value):
            raise self._error(f"'{value}'")
        return self._advance()

    def _is_name(self, tok: Token) -> bool:
        if tok.kind is TokenKind.IDENTIFIER:
            return True
        return tok.kind is TokenKind.KEYWORD and tok.value in CONTEXTUAL_KEYWORDS

    def _expect_name(self) -> Token:
        tok = self._peek()
        if not self._is_name(tok):
            raise self._error("identifier")
        return self._advance()

    def _expect_property_name(self) -> str:
        tok = self._peek()
        if tok.kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD):
            self._advance()
            return str(tok.value)
        raise self._error("property name")

    def _error(self, expected: str) -> ParseError:
        tok = self._peek()
        return ParseError(expected, tok.text, tok.line, tok.column)

    def _loc(self, tok: Optional[Token] = None) -> ast.Located:
        tok = tok or self._peek()
        return ast.Located(line=tok.line, column=tok.column)

    def _speculate(self, parse: Callable[[], _R]) -> Optional[_R]:
        mark = self._pos
        saved = (self._function_depth, self._loop_depth, self._switch_depth, self._block_depth, self._in_async)
        try:
            return parse()
        except ParseError:
            self._pos = mark
            (
                self._function_depth,
                self._loop_depth,
                self._switch_depth,
                self._block_depth,
                self._in_async,
            ) = saved
            return None

    def _end_statement(self) -> None:
        tok = self._peek()
        if tok.is_punct(";"):
            self._advance()
            return
        if tok.is_punct("}") or tok.kind is TokenKind.EOF or tok.newline_before:
            return
        raise self._error("';' or newline")

    # -- statements -----------------------------------------------------

    def parse_program(self) -> ast.Program:
        statements: List[ast.Stmt] = []
        while self._peek().kind is not TokenKind.EOF:
            statements.append(self._parse_statement())
        return ast.Program(statements=statements)

    def _parse_statement(self) -> ast.Stmt:
        tok = self._peek()
        if tok.is_punct(";"):
            self._advance()
            return ast.Block(loc=self._loc(tok), statements=[])
        if tok.is_punct("{"):
            return self._parse_block()
        if tok.kind is TokenKind.KEYWORD:
            value = tok.value
            if value in ("const", "let", "var"):
                decl = self._parse_var_decl()
                self._end_statement()
                return decl
            if value == "function":
                return self._parse_function_decl(is_async=False)
            if value == "async" and self._peek(1).is_keyword("function") and not self._peek(1).newline_before:
                self._advance()
                return self._parse_function_decl(is_async=True)
            if value == "class":
                return self._parse_class_decl()
            if value == "interface" and self._is_name(self._peek(1)):
                return self._parse_interface_decl()
            if value == "type" and self._is_name(self._peek(1)):
                return self._parse_type_alias()
            if value == "import":
                return self._parse_import()
            if value == "if":
                return self._parse_if()
            if value == "for":
                return self._parse_for()
            if value == "while":
                return self._parse_while()
            if value == "switch":
                return self._parse_switch()
            if value == "break":
                return self._parse_break()
            if value == "continue":
                return self._parse_continue()
            if value == "return":
                return self._parse_return()
            if value == "throw":
                return self._parse_throw()
            if value == "try":
                return self._parse_try()
        expr = self._parse_expression()
        self._end_statement()
        return ast.ExprStmt(loc=self._loc(tok), value=expr)

    def _parse_block(self) -> ast.Block:
        start = self._expect_punct("{")
        statements: List[ast.Stmt] = []
        self._block_depth += 1
        try:
            while not self._at_punct("}"):
                if self._peek().kind is TokenKind.EOF:
                    raise self._error("'}'")
                statements.append(self._parse_statement())
        finally:
            self._block_depth -= 1
        self._advance()
        return ast.Block(loc=self._loc(start), statements=statements)

    def _parse_function_body(self, is_async: bool) -> ast.Block:
        return self._in_function(is_async, self._parse_block)

    def _in_function(self, is_async: bool, parse: Callable[[], _R]) -> _R:
        saved = (self._loop_depth, self._switch_depth, self._in_async)
        self._function_depth += 1
        self._loop_depth = 0
        self._switch_depth = 0
        self._in_async = is_async
        try:
            return parse()
        finally:
            self._function_depth -= 1
            self._loop_depth, self._switch_depth, self._in_async = saved

    def _parse_var_decl(self) -> ast.VarDecl:
        kind_tok = self._advance()
        name_tok = self._expect_name()
        if self._accept_punct(":"):
            self._parse_type()
        value: Optional[ast.Expr] = None
        if self._accept_punct("="):
            value = self._parse_assignment()
        elif kind_tok.value == "const":
            raise self._error("'=' (const declarations need an initializer)")
        return ast.VarDecl(loc=self._loc(kind_tok), kind=str(kind_tok.value), name=str(name_tok.value), value=value)

    def _parse_function_decl(self, is_async: bool) -> ast.FunctionDecl:
        start = self._expect_keyword("function")
        name_tok = self._expect_name()
        type_params = self._parse_generic_params()
        params = self._parse_params()
        if self._accept_punct(":"):
            self._parse_type()
        body = self._parse_function_body(is_async)
        return ast.FunctionDecl(
            loc=self._loc(start),
            name=str(name_tok.value),
            params=params,
            body=body,
            is_async=is_async,
            type_params=type_params,
        )

    def _parse_params(self) -> List[ast.Param]:
        self._expect_punct("(")
        params: List[ast.Param] = []
        while not self._at_punct(")"):
            name_tok = self._peek()
            if name_tok.is_keyword("this"):
                self._advance()
            else:
                name_tok = self._expect_name()
            self._accept_punct("?")
            if self._accept_punct(":"):
                self._parse_type()
            default: Optional[ast.Expr] = None
            if self._accept_punct("="):
                default = self._parse_assignment()
            if not name_tok.is_keyword("this"):
                params.append(ast.Param(name=str(name_tok.value), default=default))
            if not self._accept_punct(","):
                break
        self._expect_punct(")")
        return params

    def _parse_generic_params(self) -> Optional[ast.GenericParams]:
        if not self._at_punct("<"):
            return None
        self._advance()
        names: List[str] = []
        params: List[T.TypeParam] = []
        while True:
            name_tok = self._expect_name()
            constraint = default = None
            if self._at_keyword("extends"):
                self._advance()
                constraint = self._parse_type()
            if self._accept_punct("="):
                default = self._parse_type()
            name = str(name_tok.value)
            if name in names:
                raise ParseError("distinct type parameter names", name, name_tok.line, name_tok.column)
            names.append(name)
            params.append(T.TypeParam(name=name, constraint=constraint, default=default))
            if not self._accept_punct(","):
                break
        self._expect_punct(">")
        return ast.GenericParams(names=[p.name for p in params])

    def _parse_class_decl(self) -> ast.ClassDecl:
        start = self._expect_keyword("class")
        name_tok = self._expect_name()
        type_params = self._parse_generic_params()
        superclass: Optional[str] = None
        if self._at_keyword("extends"):
            self._advance()
            superclass = str(self._expect_name().value)
            if self._at_punct("<"):
                self._parse_type_args()
        implements: List[str] = []
        if self._at_keyword("implements"):
            self._advance()
            while True:
                ref = self._parse_type_ref()
                implements.append(ref.name)
                if not self._accept_punct(","):
                    break
        decl = ast.ClassDecl(
            loc=self._loc(start),
            name=str(name_tok.value),
            superclass=superclass,
            implements=implements,
            type_params=type_params,
        )
        self._expect_punct("{")
        while not self._accept_punct("}"):
            if self._peek().kind is TokenKind.EOF:
                raise self._error("'}'")
            if self._accept_punct(";"):
                continue
            self._parse_class_member(decl)
        return decl

    def _parse_class_member(self, decl: ast.ClassDecl) -> None:
        while (
            self._peek().kind is TokenKind.IDENTIFIER
            and self._peek().value in ACCESS_MODIFIERS
            and not self._peek(1).newline_before
            and self._peek(1).kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD)
        ):
            self._advance()
        is_async = False
        if (
            self._at_keyword("async")
            and not self._peek(1).newline_before
            and self._peek(1).kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD)
        ):
            self._advance()
            is_async = True
        name_tok = self._peek()
        name = self._expect_property_name()
        if self._at_punct("(") or self._at_punct("<"):
            type_params = self._parse_generic_params()
            params = self._parse_params()
            if self._accept_punct(":"):
                self._parse_type()
            body = self._parse_function_body(is_async)
            decl.methods.append(
                ast.MethodDecl(
                    loc=self._loc(name_tok),
                    name=name,
                    params=params,
                    body=body,
                    is_async=is_async,
                    type_params=type_params,
                )
            )
            return
        if is_async:
            raise self._error("'('")
        self._accept_punct("?")
        if self._accept_punct(":"):
            self._parse_type()
        value: Optional[ast.Expr] = None
        if self._accept_punct("="):
            value = self._parse_assignment()
        self._end_statement()
        decl.fields.append(ast.FieldDecl(loc=self._loc(name_tok), name=name, value=value))

    def _parse_interface_decl(self) -> ast.InterfaceDecl:
        start = self._expect_keyword("interface")
        name_tok = self._expect_name()
        type_params = self._parse_generic_params()
        extends: List[str] = []
        if self._at_keyword("extends"):
            self._advance()
            while True:
                extends.append(self._parse_type_ref().name)
                if not self._accept_punct(","):
                    break
        body = self._parse_object_type()
        return ast.InterfaceDecl(
            loc=self._loc(start),
            name=str(name_tok.value),
            extends=extends,
            members=list(body.member_names()),
            type_params=type_params,
        )

    def _parse_type_alias(self) -> ast.TypeAliasDecl:
        start = self._expect_keyword("type")
        name_tok = self._expect_name()
        type_params = self._parse_generic_params()
        self._expect_punct("=")
        self._parse_type()
        self._end_statement()
        return ast.TypeAliasDecl(loc=self._loc(start), name=str(name_tok.value), type_params=type_params)

    def _parse_import(self) -> ast.ImportDecl:
        start = self._expect_keyword("import")
        if self._block_depth or self._function_depth:
            raise ParseError("import at module top level", "import", start.line, start.column)
        bindings: List[ast.ImportBinding] = []
        if self._peek().kind is not TokenKind.STRING:
            if self._accept_punct("*"):
                self._expect_keyword("as")
                bindings.append(ast.ImportBinding(name="*", alias=str(self._expect_name().value)))
            elif self._accept_punct("{"):
                while not self._at_punct("}"):
                    name = self._expect_property_name()
                    alias: Optional[str] = None
                    if self._at_keyword("as"):
                        self._advance()
                        alias = str(self._expect_name().value)
                    bindings.append(ast.ImportBinding(name=name, alias=alias))
                    if not self._accept_punct(","):
                        break
                self._expect_punct("}")
            else:
                bindings.append(ast.ImportBinding(name="default", alias=str(self._expect_name().value)))
            self._expect_keyword("from")
        spec_tok = self._peek()
        if spec_tok.kind is not TokenKind.STRING:
            raise self._error("module specifier string")
        self._advance()
        self._end_statement()
        return ast.ImportDecl(loc=self._loc(start), specifier=str(spec_tok.value), bindings=bindings)

    def _parse_if(self) -> ast.IfStmt:
        start = self._expect_keyword("if")
        self._expect_punct("(")
        condition = self._parse_expression()
        self._expect_punct(")")
        then_branch = self._parse_statement()
        else_branch: Optional[ast.Stmt] = None
        if self._at_keyword("else"):
            self._advance()
            else_branch = self._parse_statement()
        return ast.IfStmt(loc=self._loc(start), condition=condition, then_branch=then_branch, else_branch=else_branch)

    def _parse_loop_body(self) -> ast.Stmt:
        self._loop_depth += 1
        try:
            return self._parse_statement()
        finally:
            self._loop_depth -= 1

    def _parse_for(self) -> ast.Stmt:
        start = self._expect_keyword("for")
        self._expect_punct("(")
        tok = self._peek()
        if tok.kind is TokenKind.KEYWORD and tok.value in ("const", "let", "var") and self._peek(2).is_keyword("of"):
            self._advance()
            name_tok = self._expect_name()
            self._expect_keyword("of")
            iterable = self._parse_expression()
            self._expect_punct(")")
            body = self._parse_loop_body()
            return ast.ForOfStmt(
                loc=self._loc(start), kind=str(tok.value), name=str(name_tok.value), iterable=iterable, body=body
            )
        init: Optional[ast.Stmt] = None
        if not self._at_punct(";"):
            if tok.kind is TokenKind.KEYWORD and tok.value in ("const", "let", "var"):
                init = self._parse_var_decl()
            else:
                init = ast.ExprStmt(loc=self._loc(tok), value=self._parse_expression())
        self._expect_punct(";")
        condition = None if self._at_punct(";") else self._parse_expression()
        self._expect_punct(";")
        update = None if self._at_punct(")") else self._parse_expression()
        self._expect_punct(")")
        body = self._parse_loop_body()
        return ast.ForStmt(loc=self._loc(start), init=init, condition=condition, update=update, body=body)

    def _parse_while(self) -> ast.WhileStmt:
        start = self._expect_keyword("while")
        self._expect_punct("(")
        condition = self._parse_expression()
        self._expect_punct(")")
        body = self._parse_loop_body()
        return ast.WhileStmt(loc=self._loc(start), condition=condition, body=body)

    def _parse_switch(self) -> ast.SwitchStmt:
        start = self._expect_keyword("switch")
        self._expect_punct("(")
        discriminant = self._parse_expression()
        self._expect_punct(")")
        self._expect_punct("{")
        cases: List[ast.SwitchCase] = []
        seen_default = False
        self._switch_depth += 1
        self._block_depth += 1
        try:
            while not self._accept_punct("}"):
                tok = self._peek()
                test: Optional[ast.Expr] = None
                if tok.is_keyword("case"):
                    self._advance()
                    test = self._parse_expression()
                elif tok.is_keyword("default"):
                    if seen_default:
                        raise ParseError("a single 'default' clause", "default", tok.line, tok.column)
                    self._advance()
                    seen_default = True
                else:
                    raise self._error("'case', 'default' or '}'")
                self._expect_punct(":")
                body: List[ast.Stmt] = []
                while not (self._at_keyword("case") or self._at_keyword("default") or self._at_punct("}")):
                    if self._peek().kind is TokenKind.EOF:
                        raise self._error("'}'")
                    body.append(self._parse_statement())
                cases.append(ast.SwitchCase(loc=self._loc(tok), test=test, body=body))
        finally:
            self._switch_depth -= 1
            self._block_depth -= 1
        return ast.SwitchStmt(loc=self._loc(start), discriminant=discriminant, cases=cases)

    def _parse_break(self) -> ast.BreakStmt:
        tok = self._expect_keyword("break")
        if not (self._loop_depth or self._switch_depth):
            raise ParseError("'break' inside a loop or switch", "break", tok.line, tok.column)
        self._end_statement()
        return ast.BreakStmt(loc=self._loc(tok))

    def _parse_continue(self) -> ast.ContinueStmt:
        tok = self._expect_keyword("continue")
        if not self._loop_depth:
            raise ParseError("'continue' inside a loop", "continue", tok.line, tok.column)
        self._end_statement()
        return ast.ContinueStmt(loc=self._loc(tok))

    def _parse_return(self) -> ast.ReturnStmt:
        tok = self._expect_keyword("return")
        if not self._function_depth:
            raise ParseError("'return' inside a function", "return", tok.line, tok.column)
        nxt = self._peek()
        value: Optional[ast.Expr] = None
        if not (nxt.is_punct(";") or nxt.is_punct("}") or nxt.kind is TokenKind.EOF or nxt.newline_before):
            value = self._parse_expression()
        self._end_statement()
        return ast.ReturnStmt(loc=self._loc(tok), value=value)

    def _parse_throw(self) -> ast.ThrowStmt:
        tok = self._expect_keyword("throw")
        if self._peek().newline_before:
            raise self._error("expression on the same line as 'throw'")
        value = self._parse_expression()
        self._end_statement()
        return ast.ThrowStmt(loc=self._loc(tok), value=value)

    def _parse_try(self) -> ast.TryStmt:
        start = self._expect_keyword("try")
        body = self._parse_block()
        stmt = ast.TryStmt(loc=self._loc(start), body=body)
        if self._at_keyword("catch"):
            self._advance()
            if self._accept_punct("("):
                stmt.catch_name = str(self._expect_name().value)
                if self._accept_punct(":"):
                    self._parse_type()
                self._expect_punct(")")
            stmt.handler = self._parse_block()
        if self._at_keyword("finally"):
            self._advance()
            stmt.finalizer = self._parse_block()
        if stmt.handler is None and stmt.finalizer is None:
            raise self._error("'catch' or 'finally'")
        return stmt

    # -- expressions ----------------------------------------------------

    def _parse_expression(self) -> ast.Expr:
        return self._parse_assignment()

    def _parse_assignment(self) -> ast.Expr:
        arrow = self._parse_arrow_function()
        if arrow is not None:
            return arrow
        start = self._peek()
        left = self._parse_conditional()
        tok = self._peek()
        if tok.kind is TokenKind.PUNCTUATION and tok.value in ASSIGN_OPS:
            if not isinstance(left, (ast.Name, ast.Member, ast.Index)):
                raise ParseError("assignable target", start.text, start.line, start.column)
            self._advance()
            value = self._parse_assignment()
            return ast.Assign(loc=self._loc(tok), op=str(tok.value), target=left, value=value)
        return left

    def _parse_arrow_function(self) -> Optional[ast.ArrowFunction]:
        start = self._peek()
        is_async = False
        offset = 0
        if start.is_keyword("async"):
            nxt = self._peek(1)
            if nxt.newline_before or not (nxt.is_punct("(") or self._is_name(nxt)):
                return None
            is_async = True
            offset = 1
        head = self._peek(offset)
        if self._is_name(head) and self._peek(offset + 1).is_punct("=>"):
            if is_async:
                self._advance()
            self._advance()
            self._advance()
            params = [ast.Param(name=str(head.value))]
        elif head.is_punct("("):
            if is_async:
                self._advance()
            params = self._speculate(self._parse_arrow_head)
            if params is None:
                if is_async:
                    self._pos -= 1
                return None
        else:
            return None
        if self._at_punct("{"):
            body: ast.Block | ast.Expr = self._parse_function_body(is_async)
        else:
            body = self._in_function(is_async, self._parse_assignment)
        return ast.ArrowFunction(loc=self._loc(start), params=params, body=body, is_async=is_async)

    def _parse_arrow_head(self) -> List[ast.Param]:
        params = self._parse_params()
        if self._accept_punct(":"):
            self._parse_type()
        tok = self._peek()
        if not tok.is_punct("=>") or tok.newline_before:
            raise self._error("'=>'")
        self._advance()
        return params

    def _parse_conditional(self) -> ast.Expr:
        condition = self._parse_binary(1)
        if not self._at_punct("?"):
            return condition
        tok = self._advance()
        then_value = self._parse_assignment()
        self._expect_punct(":")
        else_value = self._parse_assignment()
        return ast.Conditional(loc=self._loc(tok), condition=condition, then_value=then_value, else_value=else_value)

    def _parse_binary(self, min_prec: int) -> ast.Expr:
        left = self._parse_unary()
        while True:
            tok = self._peek()
            if tok.is_keyword("as") and not tok.newline_before and _AS_PRECEDENCE >= min_prec:
                self._advance()
                self._parse_type()
                continue
            prec = BINARY_PRECEDENCE.get(str(tok.value)) if tok.kind is TokenKind.PUNCTUATION else None
            if prec is None or prec < min_prec:
                return left
            self._advance()
            right = self._parse_binary(prec + 1)
            left = ast.Binary(loc=self._loc(tok), op=str(tok.value), left=left, right=right)

    def _parse_unary(self) -> ast.Expr:
        tok = self._peek()
        if tok.kind is TokenKind.PUNCTUATION and tok.value in UNARY_OPS:
            self._advance()
            return ast.Unary(loc=self._loc(tok), op=str(tok.value), operand=self._parse_unary())
        if tok.is_keyword("void"):
            self._advance()
            return ast.Unary(loc=self._loc(tok), op="void", operand=self._parse_unary())
        if tok.is_keyword("await"):
            if self._function_depth and not self._in_async:
                raise ParseError("'await' inside an async function", "await", tok.line, tok.column)
            self._advance()
            return ast.Await(loc=self._loc(tok), value=self._parse_unary())
        if tok.is_punct("++") or tok.is_punct("--"):
            self._advance()
            target = self._parse_unary()
            self._check_update_target(target, tok)
            return ast.Update(loc=self._loc(tok), op=str(tok.value), prefix=True, target=target)
        return self._parse_postfix()

    def _parse_postfix(self) -> ast.Expr:
        expr = self._parse_call_member()
        tok = self._peek()
        if (tok.is_punct("++") or tok.is_punct("--")) and not tok.newline_before:
            self._check_update_target(expr, tok)
            self._advance()
            return ast.Update(loc=self._loc(tok), op=str(tok.value), prefix=False, target=expr)
        return expr

    def _check_update_target(self, target: ast.Expr, tok: Token) -> None:
        if not isinstance(target, (ast.Name, ast.Member, ast.Index)):
            raise ParseError(f"assignable operand for '{tok.value}'", tok.text, tok.line, tok.column)

    def _parse_call_member(self) -> ast.Expr:
        if self._at_keyword("new"):
            expr = self._parse_new()
        else:
            expr = self._parse_primary()
        while True:
            tok = self._peek()
            if tok.is_punct("."):
                self._advance()
                expr = ast.Member(loc=self._loc(tok), value=expr, attr=self._expect_property_name())
            elif tok.is_punct("[") and not tok.newline_before:
                self._advance()
                index = self._parse_expression()
                self._expect_punct("]")
                expr = ast.Index(loc=self._loc(tok), value=expr, index=index)
            elif tok.is_punct("(") and not tok.newline_before:
                expr = ast.Call(loc=self._loc(tok), func=expr, args=self._parse_args())
            elif tok.is_punct("<") and isinstance(expr, (ast.Name, ast.Member)):
                if self._speculate(self._parse_call_type_args) is None:
                    return expr
            else:
                return expr

    def _parse_call_type_args(self) -> bool:
        self._parse_type_args()
        tok = self._peek()
        if not tok.is_punct("(") or tok.newline_before:
            raise self._error("'('")
        return True

    def _parse_new(self) -> ast.Expr:
        start = self._expect_keyword("new")
        if self._at_keyword("new"):
            cls = self._parse_new()
        else:
            cls = self._parse_primary()
        while self._at_punct("."):
            tok = self._advance()
            cls = ast.Member(loc=self._loc(tok), value=cls, attr=self._expect_property_name())
        if self._at_punct("<"):
            self._parse_type_args()
        args: List[ast.Expr] = []
        if self._at_punct("(") and not self._peek().newline_before:
            args = self._parse_args()
        return ast.New(loc=self._loc(start), cls=cls, args=args)

    def _parse_args(self) -> List[ast.Expr]:
        self._expect_punct("(")
        args: List[ast.Expr] = []
        while not self._at_punct(")"):
            args.append(self._parse_assignment())
            if not self._accept_punct(","):
                break
        self._expect_punct(")")
        return args

    def _parse_primary(self) -> ast.Expr:
        tok = self._peek()
        loc = self._loc(tok)
        if tok.kind in (TokenKind.NUMBER, TokenKind.STRING):
            self._advance()
            return ast.Literal(loc=loc, value=tok.value)
        if tok.kind is TokenKind.KEYWORD:
            if tok.value in ("true", "false"):
                self._advance()
                return ast.Literal(loc=loc, value=tok.value == "true")
            if tok.value == "null":
                self._advance()
                return ast.Literal(loc=loc, value=None)
            if tok.value == "this":
                self._advance()
                return ast.This(loc=loc)
            if tok.value == "super":
                self._advance()
                if not self._function_depth:
                    raise ParseError("'super' inside a constructor", "super", tok.line, tok.column)
                return ast.SuperCall(loc=loc, args=self._parse_args())
            if tok.value == "function":
                return self._parse_function_expr(is_async=False)
            if tok.value == "async" and self._peek(1).is_keyword("function") and not self._peek(1).newline_before:
                self._advance()
                return self._parse_function_expr(is_async=True)
        if self._is_name(tok):
            self._advance()
            return ast.Name(loc=loc, ident=str(tok.value))
        if tok.is_punct("("):
            self._advance()
            expr = self._parse_expression()
            self._expect_punct(")")
            return expr
        if tok.is_punct("["):
            return self._parse_array_literal()
        if tok.is_punct("{"):
            return self._parse_object_literal()
        raise self._error("expression")

    def _parse_function_expr(self, is_async: bool) -> ast.FunctionExpr:
        start = self._expect_keyword("function")
        name: Optional[str] = None
        if self._is_name(self._peek()):
            name = str(self._advance().value)
        type_params = self._parse_generic_params()
        params = self._parse_params()
        if self._accept_punct(":"):
            self._parse_type()
        body = self._parse_function_body(is_async)
        return ast.FunctionExpr(
            loc=self._loc(start), name=name, params=params, body=body, is_async=is_async, type_params=type_params
        )

    def _parse_array_literal(self) -> ast.ArrayLiteral:
        start = self._expect_punct("[")
        elements: List[ast.Expr] = []
        while not self._at_punct("]"):
            elements.append(self._parse_assignment())
            if not self._accept_punct(","):
                break
        self._expect_punct("]")
        return ast.ArrayLiteral(loc=self._loc(start), elements=elements)

    def _parse_object_literal(self) -> ast.ObjectLiteral:
        start = self._expect_punct("{")
        properties: List[ast.Property] = []
        while not self._at_punct("}"):
            key_tok = self._peek()
            if key_tok.kind in (TokenKind.STRING, TokenKind.NUMBER):
                self._advance()
                key = key_tok.text if key_tok.kind is TokenKind.NUMBER else str(key_tok.value)
            else:
                key = self._expect_property_name()
            if self._accept_punct(":"):
                properties.append(ast.Property(key=key, value=self._parse_assignment()))
            elif self._at_punct("("):
                params = self._parse_params()
                if self._accept_punct(":"):
                    self._parse_type()
                body = self._parse_function_body(False)
                method = ast.FunctionExpr(loc=self._loc(key_tok), name=key, params=params, body=body)
                properties.append(ast.Property(key=key, value=method))
            elif self._is_name(key_tok):
                properties.append(
                    ast.Property(key=key, value=ast.Name(loc=self._loc(key_tok), ident=key), shorthand=True)
                )
            else:
                raise self._error("':'")
            if not self._accept_punct(","):
                break
        self._expect_punct("}")
        return ast.ObjectLiteral(loc=self._loc(start), properties=properties)

    # -- type annotations (erased) --------------------------------------

    def _parse_type(self) -> T.TypeNode:
        self._accept_punct("|")
        members = [self._parse_intersection_type()]
        while self._accept_punct("|"):
            members.append(self._parse_intersection_type())
        if len(members) == 1:
            return members[0]
        return T.UnionType(members=tuple(members))

    def _parse_intersection_type(self) -> T.TypeNode:
        members = [self._parse_postfix_type()]
        while self._accept_punct("&"):
            members.append(self._parse_postfix_type())
        if len(members) == 1:
            return members[0]
        return T.IntersectionType(members=tuple(members))

    def _parse_postfix_type(self) -> T.TypeNode:
        node = self._parse_primary_type()
        while self._at_punct("[") and self._peek(1).is_punct("]") and not self._peek().newline_before:
            self._advance()
            self._advance()
            node = T.ArrayType(element=node)
        return node

    def _parse_primary_type(self) -> T.TypeNode:
        tok = self._peek()
        if tok.is_punct("("):
            fn = self._speculate(self._parse_function_type)
            if fn is not None:
                return fn
            self._advance()
            inner = self._parse_type()
            self._expect_punct(")")
            return inner
        if tok.is_punct("{"):
            return self._parse_object_type()
        if tok.is_punct("["):
            self._advance()
            elements: List[T.TypeNode] = []
            while not self._at_punct("]"):
                elements.append(self._parse_type())
                if not self._accept_punct(","):
                    break
            self._expect_punct("]")
            return T.TupleType(elements=tuple(elements))
        if tok.kind in (TokenKind.STRING, TokenKind.NUMBER):
            self._advance()
            return T.LiteralType(value=tok.value)
        if tok.kind is TokenKind.KEYWORD and tok.value in ("true", "false", "null", "void", "this"):
            self._advance()
            return T.TypeRef(name=str(tok.value))
        return self._parse_type_ref()

    def _parse_type_ref(self) -> T.TypeRef:
        tok = self._peek()
        if not self._is_name(tok):
            raise self._error("type")
        self._advance()
        name = str(tok.value)
        while self._at_punct(".") and self._is_name(self._peek(1)):
            self._advance()
            name += "." + str(self._advance().value)
        args: tuple = ()
        if self._at_punct("<") and not self._peek().newline_before:
            args = tuple(self._parse_type_args())
        return T.TypeRef(name=name, args=args)

    def _parse_type_args(self) -> List[T.TypeNode]:
        self._expect_punct("<")
        args = [self._parse_type()]
        while self._accept_punct(","):
            args.append(self._parse_type())
        self._expect_punct(">")
        return args

    def _parse_function_type(self) -> T.FunctionType:
        self._expect_punct("(")
        params: List[T.TypeNode] = []
        while not self._at_punct(")"):
            self._expect_name()
            self._accept_punct("?")
            self._expect_punct(":")
            params.append(self._parse_type())
            if not self._accept_punct(","):
                break
        self._expect_punct(")")
        self._expect_punct("=>")
        return T.FunctionType(params=tuple(params), result=self._parse_type())

    def _parse_object_type(self) -> T.ObjectType:
        self._expect_punct("{")
        members: List[T.TypeMember] = []
        while not self._at_punct("}"):
            tok = self._peek()
            if tok.kind is TokenKind.IDENTIFIER and tok.value == "readonly" and self._peek(1).kind in (
                TokenKind.IDENTIFIER,
                TokenKind.KEYWORD,
            ):
                self._advance()
                tok = self._peek()
            if tok.kind is TokenKind.STRING:
                self._advance()
                name = str(tok.value)
            else:
                name = self._expect_property_name()
            optional = self._accept_punct("?")
            if self._at_punct("(") or self._at_punct("<"):
                self._parse_generic_params()
                self._parse_params()
                result = self._parse_type() if self._accept_punct(":") else None
                members.append(T.TypeMember(name=name, type=result, optional=optional, is_method=True))
            else:
                self._expect_punct(":")
                members.append(T.TypeMember(name=name, type=self._parse_type(), optional=optional))
            if self._accept_punct(",") or self._accept_punct(";"):
                continue
            nxt = self._peek()
            if not (nxt.is_punct("}") or nxt.newline_before):
                raise self._error("',', ';' or newline")
        self._expect_punct("}")
        return T.ObjectType(members=tuple(members))
