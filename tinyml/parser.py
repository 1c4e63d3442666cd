"""TinyML Parser — LL(1) recursive-descent parser.

Parses a token stream into an AST, pulling tokens lazily with one token of
lookahead. Expressions are layered from loosest to tightest binding:

    if / let / fn        only when the current token is that keyword
    comparison           < > <= >=        left-associative
    additive             + -              left-associative
    multiplicative       * /              left-associative
    application          f a b            left-associative juxtaposition
    atom

Types climb in two tiers: ``*`` binds tighter than ``->`` and both are
right-associative. There is no parenthesised type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from tinyml.ast_nodes import (
    Program, Declaration, ValDecl, FunDecl, MatchArm,
    Literal, IntLit, CharLit, StringLit, BoolLit,
    Pattern, LiteralPattern, WildcardPattern, VarPattern, TuplePattern,
    Expr, LiteralExpr, VarExpr, UnitExpr, ParenExpr, TupleExpr, ListExpr,
    IfExpr, LetExpr, FnExpr, BinOpExpr, AppExpr,
    TypeNode, IntType, CharType, StringType, BoolType, VarType,
    ArrowType, ProductType,
)
from tinyml.config import ParserConfig
from tinyml.errors import (
    CompileError, ParseError, SourceLocation, TinyMLError,
    nesting_error, unexpected_token,
)
from tinyml.lexer import Token, TokenType, iter_tokens

logger = logging.getLogger(__name__)


LITERAL_START = frozenset({
    TokenType.INT_LIT, TokenType.CHAR_LIT, TokenType.STRING_LIT, TokenType.BOOL_LIT,
})
ATOM_START = LITERAL_START | {TokenType.IDENT, TokenType.LPAREN, TokenType.LBRACKET}
EXPR_START = ATOM_START | {TokenType.IF, TokenType.LET, TokenType.FN}
PATTERN_START = LITERAL_START | {TokenType.UNDERSCORE, TokenType.IDENT, TokenType.LPAREN}
DECL_START = frozenset({TokenType.VAL, TokenType.FUN})

TYPE_ATOMS = {
    TokenType.INT: IntType,
    TokenType.CHAR: CharType,
    TokenType.STRING: StringType,
    TokenType.BOOL: BoolType,
}
TYPE_START = frozenset(TYPE_ATOMS) | {TokenType.TYVAR}

COMPARISON_OPS = frozenset({TokenType.LT, TokenType.GT, TokenType.LTE, TokenType.GTE})
ADDITIVE_OPS = frozenset({TokenType.PLUS, TokenType.MINUS})
MULTIPLICATIVE_OPS = frozenset({TokenType.STAR, TokenType.SLASH})


class Parser:
    """LL(1) recursive-descent parser for TinyML."""

    def __init__(self, tokens: Iterable[Token], filename: str = "<stdin>",
                 config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig(filename=filename)
        self.filename = filename
        self._tokens: Iterator[Token] = iter(tokens)
        self._tok: Token = self._pull()
        self._depth = 0
        # Tokens tested for and declined since the last one was consumed.
        # They were acceptable at the current position, so errors report them.
        self._declined: set[TokenType] = set()

    def _pull(self) -> Token:
        tok = next(self._tokens, None)
        if tok is None:
            # A token source that ends without EOF still terminates the parse.
            return Token(TokenType.EOF, "", SourceLocation(0, 0, 0, self.filename))
        return tok

    def _peek(self) -> TokenType:
        return self._tok.type

    def _loc(self) -> SourceLocation:
        return self._tok.location

    def _advance(self) -> Token:
        tok = self._tok
        if tok.type != TokenType.EOF:
            self._tok = self._pull()
        self._declined.clear()
        return tok

    def _error(self, production: str, expected: Iterable[TokenType]) -> ParseError:
        tok = self._tok
        err = unexpected_token(
            production,
            (tt.name for tt in self._declined.union(expected)),
            tok.describe(),
            tok.location,
        )
        logger.debug("parse error: %s", err)
        return ParseError(err)

    def _expect(self, tt: TokenType, production: str) -> Token:
        if self._tok.type != tt:
            raise self._error(production, (tt,))
        return self._advance()

    def _at(self, types: frozenset[TokenType]) -> bool:
        if self._peek() in types:
            return True
        self._declined.update(types)
        return False

    def _match(self, tt: TokenType) -> Optional[Token]:
        if self._peek() == tt:
            return self._advance()
        self._declined.add(tt)
        return None

    def _descend(self, production: str) -> None:
        self._depth += 1
        if self._depth > self.config.max_depth:
            raise ParseError(nesting_error(production, self.config.max_depth, self._loc()))

    def _run(self, production: str, parse_fn):
        # max_depth can be configured beyond what the interpreter stack holds.
        try:
            return parse_fn()
        except RecursionError:
            logger.debug("recursion limit reached at depth %d", self._depth)
            raise ParseError(
                nesting_error(production, self._depth, self._loc())
            ) from None

    # -------------------------------------------------------------------
    # Top-level
    # -------------------------------------------------------------------

    def parse(self) -> Program:
        return self._run("prog", self._parse_program)

    def parse_expression(self) -> Expr:
        """Parse a single expression that must span the whole input."""
        return self._run("exp", lambda: self._parse_whole(self._parse_expression, "exp"))

    def parse_pattern(self) -> Pattern:
        """Parse a single pattern that must span the whole input."""
        return self._run("pat", lambda: self._parse_whole(self._parse_pattern, "pat"))

    def parse_type(self) -> TypeNode:
        """Parse a single type that must span the whole input."""
        return self._run("typ", lambda: self._parse_whole(self._parse_type, "typ"))

    def _parse_whole(self, parse_fn, production: str):
        node = parse_fn()
        self._expect(TokenType.EOF, production)
        return node

    def _parse_program(self) -> Program:
        loc = self._loc()
        decls: list[Declaration] = []
        while self._peek() != TokenType.EOF:
            if self._peek() not in DECL_START:
                raise self._error("prog", DECL_START | {TokenType.EOF})
            decls.extend(self._parse_declaration_seq())
        logger.debug("parsed %d declarations from %s", len(decls), self.filename)
        return Program(declarations=tuple(decls), filename=self.filename, location=loc)

    # -------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------

    def _parse_declaration_seq(self) -> list[Declaration]:
        # dec ; dec ; dec is flattened, source order kept.
        decls = [self._parse_declaration()]
        while self._match(TokenType.SEMICOLON):
            decls.append(self._parse_declaration())
        return decls

    def _parse_declaration(self) -> Declaration:
        tt = self._peek()
        if tt == TokenType.VAL:
            return self._parse_val()
        elif tt == TokenType.FUN:
            return self._parse_fun()
        raise self._error("dec", DECL_START)

    def _parse_val(self) -> ValDecl:
        loc = self._loc()
        self._expect(TokenType.VAL, "dec")
        pattern = self._parse_pattern()
        type_ann: Optional[TypeNode] = None
        if self._match(TokenType.COLON):
            type_ann = self._parse_type()
        elif self._peek() != TokenType.EQUALS:
            raise self._error("dec", (TokenType.COLON, TokenType.EQUALS))
        self._expect(TokenType.EQUALS, "dec")
        expr = self._parse_expression()
        return ValDecl(pattern=pattern, type_annotation=type_ann, expr=expr, location=loc)

    def _parse_fun(self) -> FunDecl:
        loc = self._loc()
        self._expect(TokenType.FUN, "dec")
        name = self._expect(TokenType.IDENT, "dec").value
        arms = self._parse_match()
        type_ann: Optional[TypeNode] = None
        if self._match(TokenType.COLON):
            type_ann = self._parse_type()
        return FunDecl(name=name, arms=arms, type_annotation=type_ann, location=loc)

    # -------------------------------------------------------------------
    # Match arms
    # -------------------------------------------------------------------

    def _parse_match(self) -> tuple[MatchArm, ...]:
        # Curried ``x => fn y => fn z => ...`` is read in a loop rather than
        # by recursion. The innermost fn takes every following arm.
        curried: list[tuple[SourceLocation, Pattern, SourceLocation]] = []
        loc = self._loc()
        pattern = self._parse_pattern()
        self._expect(TokenType.FAT_ARROW, "match")
        while self._peek() == TokenType.FN:
            curried.append((loc, pattern, self._advance().location))
            loc = self._loc()
            pattern = self._parse_pattern()
            self._expect(TokenType.FAT_ARROW, "match")

        arms = [MatchArm(pattern=pattern, body=self._parse_expression(), location=loc)]
        while self._match(TokenType.BAR):
            arms.append(self._parse_arm())

        result = tuple(arms)
        while curried:
            loc, pattern, fn_loc = curried.pop()
            inner = FnExpr(arms=result, location=fn_loc)
            result = (MatchArm(pattern=pattern, body=inner, location=loc),)
        return result

    def _parse_arm(self) -> MatchArm:
        loc = self._loc()
        pattern = self._parse_pattern()
        self._expect(TokenType.FAT_ARROW, "match")
        body = self._parse_expression()
        return MatchArm(pattern=pattern, body=body, location=loc)

    # -------------------------------------------------------------------
    # Patterns
    # -------------------------------------------------------------------

    def _parse_pattern(self) -> Pattern:
        self._descend("pat")
        loc = self._loc()
        tt = self._peek()

        if tt in LITERAL_START:
            pat: Pattern = LiteralPattern(literal=self._parse_literal(), location=loc)
        elif tt == TokenType.UNDERSCORE:
            self._advance()
            pat = WildcardPattern(location=loc)
        elif tt == TokenType.IDENT:
            pat = VarPattern(name=self._advance().value, location=loc)
        elif tt == TokenType.LPAREN:
            self._advance()
            first = self._parse_pattern()
            self._expect(TokenType.COMMA, "pat")
            second = self._parse_pattern()
            self._expect(TokenType.RPAREN, "pat")
            pat = TuplePattern(first=first, second=second, location=loc)
        else:
            raise self._error("pat", PATTERN_START)

        self._depth -= 1
        return pat

    # -------------------------------------------------------------------
    # Types (two-tier right-recursive climb)
    # -------------------------------------------------------------------

    def _parse_type(self) -> TypeNode:
        parts = [self._parse_product_type()]
        while self._match(TokenType.ARROW):
            parts.append(self._parse_product_type())
        result = parts.pop()
        while parts:
            param = parts.pop()
            result = ArrowType(param=param, result=result, location=param.location)
        return result

    def _parse_product_type(self) -> TypeNode:
        parts = [self._parse_type_atom()]
        while self._match(TokenType.STAR):
            parts.append(self._parse_type_atom())
        result = parts.pop()
        while parts:
            left = parts.pop()
            result = ProductType(left=left, right=result, location=left.location)
        return result

    def _parse_type_atom(self) -> TypeNode:
        loc = self._loc()
        tt = self._peek()
        if tt in TYPE_ATOMS:
            self._advance()
            return TYPE_ATOMS[tt](location=loc)
        if tt == TokenType.TYVAR:
            return VarType(name=self._advance().value, location=loc)
        raise self._error("typ", TYPE_START)

    # -------------------------------------------------------------------
    # Expressions (precedence layering)
    # -------------------------------------------------------------------

    def _parse_expression(self) -> Expr:
        self._descend("exp")
        tt = self._peek()
        if tt == TokenType.IF:
            expr = self._parse_if()
        elif tt == TokenType.LET:
            expr = self._parse_let()
        elif tt == TokenType.FN:
            expr = self._parse_fn()
        elif tt in ATOM_START:
            expr = self._parse_comparison()
        else:
            raise self._error("exp", EXPR_START)
        self._depth -= 1
        return expr

    def _parse_if(self) -> IfExpr:
        # An ``else if`` chain is read in a loop and folded from the right.
        heads: list[tuple[SourceLocation, Expr, Expr]] = []
        while True:
            loc = self._loc()
            self._expect(TokenType.IF, "exp")
            condition = self._parse_expression()
            self._expect(TokenType.THEN, "exp")
            then_branch = self._parse_expression()
            self._expect(TokenType.ELSE, "exp")
            heads.append((loc, condition, then_branch))
            if self._peek() != TokenType.IF:
                break

        expr = self._parse_expression()
        while heads:
            loc, condition, then_branch = heads.pop()
            expr = IfExpr(condition=condition, then_branch=then_branch,
                          else_branch=expr, location=loc)
        return expr

    def _parse_let(self) -> LetExpr:
        loc = self._loc()
        self._expect(TokenType.LET, "exp")
        decls = self._parse_declaration_seq()
        self._expect(TokenType.IN, "exp")
        body = self._parse_expression()
        self._expect(TokenType.END, "exp")
        return LetExpr(declarations=tuple(decls), body=body, location=loc)

    def _parse_fn(self) -> FnExpr:
        loc = self._loc()
        self._expect(TokenType.FN, "exp")
        return FnExpr(arms=self._parse_match(), location=loc)

    def _parse_comparison(self) -> Expr:
        left = self._parse_additive()
        while self._at(COMPARISON_OPS):
            loc = self._loc()
            op = self._advance().value
            right = self._parse_additive()
            left = BinOpExpr(op=op, left=left, right=right, location=loc)
        return left

    def _parse_additive(self) -> Expr:
        left = self._parse_multiplicative()
        while self._at(ADDITIVE_OPS):
            loc = self._loc()
            op = self._advance().value
            right = self._parse_multiplicative()
            left = BinOpExpr(op=op, left=left, right=right, location=loc)
        return left

    def _parse_multiplicative(self) -> Expr:
        left = self._parse_application()
        while self._at(MULTIPLICATIVE_OPS):
            loc = self._loc()
            op = self._advance().value
            right = self._parse_application()
            left = BinOpExpr(op=op, left=left, right=right, location=loc)
        return left

    def _parse_application(self) -> Expr:
        loc = self._loc()
        expr = self._parse_atom()
        while self._at(ATOM_START):
            arg = self._parse_atom()
            expr = AppExpr(func=expr, arg=arg, location=loc)
        return expr

    def _parse_atom(self) -> Expr:
        tt = self._peek()
        loc = self._loc()

        if tt in LITERAL_START:
            return LiteralExpr(literal=self._parse_literal(), location=loc)

        if tt == TokenType.IDENT:
            return VarExpr(name=self._advance().value, location=loc)

        if tt == TokenType.LPAREN:
            self._advance()
            if self._match(TokenType.RPAREN):
                return UnitExpr(location=loc)
            first = self._parse_expression()
            if self._match(TokenType.RPAREN):
                return ParenExpr(expr=first, location=loc)
            if self._peek() != TokenType.COMMA:
                raise self._error("atom", (TokenType.COMMA, TokenType.RPAREN))
            elements = [first]
            while self._match(TokenType.COMMA):
                elements.append(self._parse_expression())
            self._close_group(TokenType.RPAREN)
            return TupleExpr(elements=tuple(elements), location=loc)

        if tt == TokenType.LBRACKET:
            self._advance()
            elements = []
            if not self._match(TokenType.RBRACKET):
                elements.append(self._parse_expression())
                while self._match(TokenType.COMMA):
                    elements.append(self._parse_expression())
                self._close_group(TokenType.RBRACKET)
            return ListExpr(elements=tuple(elements), location=loc)

        raise self._error("atom", ATOM_START)

    def _close_group(self, closer: TokenType) -> None:
        if self._peek() != closer:
            raise self._error("atom", (TokenType.COMMA, closer))
        self._advance()

    def _parse_literal(self) -> Literal:
        loc = self._loc()
        tok = self._advance()
        if tok.type == TokenType.INT_LIT:
            return IntLit(value=int(tok.value), negated=tok.negated, location=loc)
        if tok.type == TokenType.CHAR_LIT:
            return CharLit(value=tok.value, location=loc)
        if tok.type == TokenType.STRING_LIT:
            return StringLit(value=tok.value, location=loc)
        return BoolLit(value=tok.value == "true", location=loc)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

@dataclass
class ParseResult:
    program: Optional[Program]
    errors: list[TinyMLError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.program is not None and not self.errors


def _make_parser(source: str, filename: Optional[str],
                 config: Optional[ParserConfig]) -> Parser:
    config = config or ParserConfig()
    name = filename or config.filename
    return Parser(iter_tokens(source, name), name, config)


def parse(source: str, filename: Optional[str] = None,
          config: Optional[ParserConfig] = None) -> Program:
    """Parse TinyML source code into an AST.

    Raises ``LexError`` or ``ParseError`` (both ``CompileError``) on the
    first malformed token or unexpected token.
    """
    return _make_parser(source, filename, config).parse()


def try_parse(source: str, filename: Optional[str] = None,
              config: Optional[ParserConfig] = None) -> ParseResult:
    """Parse TinyML source code, returning errors as values."""
    try:
        program = parse(source, filename, config)
    except CompileError as e:
        return ParseResult(program=None, errors=list(e.errors))
    return ParseResult(program=program)


def parse_expression(source: str, filename: Optional[str] = None,
                     config: Optional[ParserConfig] = None) -> Expr:
    return _make_parser(source, filename, config).parse_expression()


def parse_pattern(source: str, filename: Optional[str] = None,
                  config: Optional[ParserConfig] = None) -> Pattern:
    return _make_parser(source, filename, config).parse_pattern()


def parse_type(source: str, filename: Optional[str] = None,
               config: Optional[ParserConfig] = None) -> TypeNode:
    return _make_parser(source, filename, config).parse_type()
