"""
Depth-first walker over the engine's syntax model.

Dispatch works like ``ast.NodeVisitor``: ``scan`` calls ``visit_<kind>`` when
the subclass defines one and ``generic_visit`` otherwise. ``generic_visit``
scans every child in source order, so an override that wants to keep
descending calls ``self.generic_visit(node)``.

    class IdentifierNames(TreeVisitor):
        def __init__(self):
            self.names = []

        def visit_identifier(self, node):
            self.names.append(node.name)
"""

from typing import Iterable, Optional, Union

from .syntax import SyntaxNode


class TreeVisitor:
    """Base class for visitors over ``SyntaxNode`` trees."""

    def scan(self, node: Union[SyntaxNode, Iterable[SyntaxNode], None]) -> None:
        if node is None:
            return
        if not isinstance(node, SyntaxNode):
            for item in node:
                self.scan(item)
            return
        method = getattr(self, 'visit_' + node.kind, self.generic_visit)
        method(node)

    def generic_visit(self, node: SyntaxNode) -> None:
        for child in node.children:
            self.scan(child)

    # Named hooks for the typed node kinds. They only recurse; subclasses
    # override the ones they care about.

    def visit_compilation_unit(self, node) -> None:
        self.generic_visit(node)

    def visit_class(self, node) -> None:
        self.generic_visit(node)

    def visit_method(self, node) -> None:
        self.generic_visit(node)

    def visit_variable(self, node) -> None:
        self.generic_visit(node)

    def visit_annotation(self, node) -> None:
        self.generic_visit(node)

    def visit_identifier(self, node) -> None:
        self.generic_visit(node)

    def visit_member_access(self, node) -> None:
        self.generic_visit(node)

    def visit_method_invocation(self, node) -> None:
        self.generic_visit(node)

    def visit_try(self, node) -> None:
        self.generic_visit(node)


def find_all(root: Optional[SyntaxNode], kind: str):
    """Return every node of ``kind`` below ``root`` (inclusive), in source order."""
    if root is None:
        return []
    return [node for node in root.walk() if node.kind == kind]
