"""TinyML AST Node definitions.

Top-level constructs: val and fun declarations.
Expressions, binary-only tuple patterns, match arms and type annotations.

Every node is frozen and holds its children in tuples, so a tree cannot be
changed once the parser has built it. ``location`` is ignored by equality:
two trees with the same shape compare equal wherever they were parsed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from tinyml.errors import SourceLocation


@dataclass(frozen=True)
class Node:
    location: Optional[SourceLocation] = field(
        default=None, compare=False, repr=False, kw_only=True,
    )


# ---------------------------------------------------------------------------
# Literals
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Literal(Node):
    """Base class for literal values."""


@dataclass(frozen=True)
class IntLit(Literal):
    """Integer literal; ``~`` in the source sets ``negated``."""
    value: int
    negated: bool = False

    @property
    def signed_value(self) -> int:
        return -self.value if self.negated else self.value


@dataclass(frozen=True)
class CharLit(Literal):
    value: str


@dataclass(frozen=True)
class StringLit(Literal):
    value: str


@dataclass(frozen=True)
class BoolLit(Literal):
    value: bool


# ---------------------------------------------------------------------------
# Type annotations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TypeNode(Node):
    """Base class for type annotations."""


@dataclass(frozen=True)
class IntType(TypeNode):
    def __str__(self) -> str:
        return "int"


@dataclass(frozen=True)
class CharType(TypeNode):
    def __str__(self) -> str:
        return "char"


@dataclass(frozen=True)
class StringType(TypeNode):
    def __str__(self) -> str:
        return "string"


@dataclass(frozen=True)
class BoolType(TypeNode):
    def __str__(self) -> str:
        return "bool"


@dataclass(frozen=True)
class VarType(TypeNode):
    """Type variable; ``name`` excludes the leading quote."""
    name: str

    def __str__(self) -> str:
        return f"'{self.name}"


@dataclass(frozen=True)
class ArrowType(TypeNode):
    param: TypeNode
    result: TypeNode

    def __str__(self) -> str:
        return f"({self.param} -> {self.result})"


@dataclass(frozen=True)
class ProductType(TypeNode):
    left: TypeNode
    right: TypeNode

    def __str__(self) -> str:
        return f"({self.left} * {self.right})"


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Pattern(Node):
    """Base class for patterns."""


@dataclass(frozen=True)
class LiteralPattern(Pattern):
    literal: Literal


@dataclass(frozen=True)
class WildcardPattern(Pattern):
    """The _ pattern — matches anything."""


@dataclass(frozen=True)
class VarPattern(Pattern):
    """Matches anything and binds to a name."""
    name: str


@dataclass(frozen=True)
class TuplePattern(Pattern):
    """Exactly two sub-patterns: ``(p1, p2)``."""
    first: Pattern
    second: Pattern


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Expr(Node):
    """Base class for expressions."""


@dataclass(frozen=True)
class LiteralExpr(Expr):
    literal: Literal


@dataclass(frozen=True)
class VarExpr(Expr):
    name: str


@dataclass(frozen=True)
class UnitExpr(Expr):
    """The ``()`` value."""


@dataclass(frozen=True)
class ParenExpr(Expr):
    expr: Expr


@dataclass(frozen=True)
class TupleExpr(Expr):
    elements: tuple[Expr, ...]


@dataclass(frozen=True)
class ListExpr(Expr):
    elements: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class IfExpr(Expr):
    condition: Expr
    then_branch: Expr
    else_branch: Expr


@dataclass(frozen=True)
class LetExpr(Expr):
    declarations: tuple[Declaration, ...]
    body: Expr


@dataclass(frozen=True)
class MatchArm(Node):
    """A single ``pattern => expression`` clause."""
    pattern: Pattern
    body: Expr


@dataclass(frozen=True)
class FnExpr(Expr):
    arms: tuple[MatchArm, ...]


@dataclass(frozen=True)
class BinOpExpr(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class AppExpr(Expr):
    func: Expr
    arg: Expr


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValDecl(Node):
    pattern: Pattern
    type_annotation: Optional[TypeNode]
    expr: Expr


@dataclass(frozen=True)
class FunDecl(Node):
    name: str
    arms: tuple[MatchArm, ...]
    type_annotation: Optional[TypeNode] = None


Declaration = Union[ValDecl, FunDecl]


@dataclass(frozen=True)
class Program(Node):
    declarations: tuple[Declaration, ...] = ()
    filename: str = field(default="<stdin>", compare=False)
