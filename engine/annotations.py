"""
Annotation matching helpers shared by the rules.
"""

from typing import Optional, Set

from .syntax import ClassDecl, Modifiers, VariableDecl
from .visitor import TreeVisitor


def is_annotated_with(modifiers: Optional[Modifiers], qualified_name: str) -> bool:
    """Check whether a declaration carries the annotation ``qualified_name``.

    Only exact fully-qualified names match. Annotations whose name could not be
    resolved while building the tree never match, so a same-named annotation
    from another framework is not mistaken for the target.
    """
    if modifiers is None:
        return False
    return any(annotation.qualified_name == qualified_name
               for annotation in modifiers.annotations)


class AnnotatedFieldCollector(TreeVisitor):
    """Collects names of the fields of one class that carry an annotation.

    Only direct members of the scanned class are eligible: nested and anonymous
    class bodies, method bodies and initializer blocks are not entered.

    Usage:
        names = AnnotatedFieldCollector(JCR_PROPERTY).collect(class_decl)
    """

    def __init__(self, annotation_name: str):
        self._annotation_name = annotation_name
        self._root: Optional[ClassDecl] = None
        self._names: Set[str] = set()

    def collect(self, class_decl: ClassDecl) -> Set[str]:
        self._root = class_decl
        self._names = set()
        self.scan(class_decl)
        return self._names

    def visit_class(self, node: ClassDecl) -> None:
        if node is not self._root:
            return
        self.scan(node.members)

    def visit_variable(self, node: VariableDecl) -> None:
        if is_annotated_with(node.modifiers, self._annotation_name):
            self._names.add(node.name)

    def generic_visit(self, node) -> None:
        # Anything that is not a field (methods, initializer blocks) is skipped.
        return
