"""Indented text rendering of a TinyML AST, one node per line.

    >>> print(dump(parse("val x = f 1")))
    Program
      ValDecl
        VarPattern name='x'
        AppExpr
          VarExpr name='f'
          LiteralExpr
            IntLit value=1 negated=False
"""

from __future__ import annotations

from dataclasses import fields

from tinyml.ast_nodes import Node
from tinyml.visitor import NodeVisitor, iter_child_nodes

_HIDDEN_FIELDS = frozenset({"location", "filename"})


class _DumpVisitor(NodeVisitor):
    def __init__(self, indent: str, show_locations: bool):
        self.indent = indent
        self.show_locations = show_locations
        self.depth = 0
        self.lines: list[str] = []

    def _label(self, node: Node) -> str:
        parts = [type(node).__name__]
        for f in fields(node):
            if f.name in _HIDDEN_FIELDS:
                continue
            value = getattr(node, f.name)
            if isinstance(value, (str, int, bool)):
                parts.append(f"{f.name}={value!r}")
        if self.show_locations and node.location is not None:
            parts.append(f"@{node.location.line}:{node.location.column}")
        return " ".join(parts)

    def generic_visit(self, node: Node) -> None:
        self.lines.append(self.indent * self.depth + self._label(node))
        self.depth += 1
        for child in iter_child_nodes(node):
            self.visit(child)
        self.depth -= 1


def dump(node: Node, indent: str = "  ", show_locations: bool = False) -> str:
    """Render ``node`` and its subtree as indented text."""
    visitor = _DumpVisitor(indent, show_locations)
    visitor.visit(node)
    return "\n".join(visitor.lines)
