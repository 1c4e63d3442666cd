"""Visitor base class for TinyML ASTs."""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Iterator

from tinyml.ast_nodes import Node


def iter_child_nodes(node: Node) -> Iterator[Node]:
    """Yield the direct children of ``node`` in field order."""
    for f in fields(node):
        if f.name == "location":
            continue
        value = getattr(node, f.name)
        if isinstance(value, Node):
            yield value
        elif isinstance(value, tuple):
            for item in value:
                if isinstance(item, Node):
                    yield item


class NodeVisitor:
    """Override ``visit_<ClassName>`` methods, or ``generic_visit`` for a
    catch-all. The default walks every child and returns None.
    """

    def visit(self, node: Node) -> Any:
        method = f"visit_{type(node).__name__}"
        handler = getattr(self, method, self.generic_visit)
        return handler(node)

    def generic_visit(self, node: Node) -> Any:
        for child in iter_child_nodes(node):
            self.visit(child)
        return None
