"""
Rule flagging reads of Slice ``@JcrProperty`` fields from constructors.

Slice populates fields annotated with ``@JcrProperty`` after the object is
constructed, so a constructor of a ``@SliceResource`` class that reads such a
field sees its default value.

Known false positives, kept on purpose for recall:
- any qualified access ``x.name`` is flagged when ``name`` is an annotated
  field name, whatever ``x`` is (method calls ``x.name()`` included);
- a bare ``name`` that refers to a local variable or a lambda parameter of
  the constructor is flagged; only constructor parameters shadow fields.
"""

from typing import Iterator, List, Optional, Set

from engine.annotations import AnnotatedFieldCollector, is_annotated_with
from engine.params import RuleProperty
from engine.rule import BaseRule
from engine.syntax import ClassDecl, Identifier, MemberAccess, MethodDecl
from engine.types import Finding, Priority, RuleContext, RuleMeta
from engine.visitor import TreeVisitor

from .tags import Tags

SLICE_RESOURCE_ANNOTATION = "com.cognifide.slice.mapper.annotation.SliceResource"
JCR_PROPERTY_ANNOTATION = "com.cognifide.slice.mapper.annotation.JcrProperty"


class JcrPropertyFieldsInConstructorRule(BaseRule):
    RULE_KEY = "AEM-12"
    RULE_MESSAGE = "Fields annotated by @JcrProperty shouldn't be accessed from constructor."

    meta = RuleMeta(
        key=RULE_KEY,
        name=RULE_MESSAGE,
        priority=Priority.MAJOR,
        tags=(Tags.AEM, Tags.SLICE),
    )

    slice_resource_annotation = RuleProperty(
        key="sliceResourceAnnotation",
        description="Fully-qualified name of the annotation marking Slice models",
        default_value=SLICE_RESOURCE_ANNOTATION,
    )

    jcr_property_annotation = RuleProperty(
        key="jcrPropertyAnnotation",
        description="Fully-qualified name of the annotation marking injected fields",
        default_value=JCR_PROPERTY_ANNOTATION,
    )

    def visit(self, ctx: RuleContext) -> Iterator[Finding]:
        if ctx.tree is None:
            return iter(())
        scanner = _SliceResourceScanner(self, ctx)
        scanner.scan(ctx.tree)
        return iter(scanner.findings)


class _SliceResourceScanner(TreeVisitor):
    """Finds Slice resource classes in a file and checks their constructors.

    The annotated-field set belongs to the class being visited; a nested class
    gets its own set and never sees the fields of the class around it.
    """

    def __init__(self, rule: JcrPropertyFieldsInConstructorRule, ctx: RuleContext):
        self._rule = rule
        self._ctx = ctx
        self._fields_stack: List[Optional[Set[str]]] = []
        self.findings: List[Finding] = []

    def visit_class(self, node: ClassDecl) -> None:
        fields = None
        if is_annotated_with(node.modifiers, self._rule.slice_resource_annotation):
            fields = AnnotatedFieldCollector(self._rule.jcr_property_annotation).collect(node)
        self._fields_stack.append(fields)
        self.generic_visit(node)
        self._fields_stack.pop()

    def visit_method(self, node: MethodDecl) -> None:
        fields = self._fields_stack[-1] if self._fields_stack else None
        if node.is_constructor and fields:
            detector = ConstructorUsageDetector(fields, node.parameter_names)
            detector.scan(node.body)
            self.findings.extend(self._ctx.finding(self._rule, usage, self._rule.RULE_MESSAGE)
                                 for usage in detector.usages)
        # Local and anonymous classes in the body are visited as classes of their own
        self.generic_visit(node)


class ConstructorUsageDetector(TreeVisitor):
    """Walks one constructor body and records reads of annotated fields.

    Args:
        annotated_fields: names of the annotated fields of the owning class
        parameters: names of the constructor's parameters
    """

    def __init__(self, annotated_fields: Set[str], parameters: Set[str]):
        self._annotated_fields = annotated_fields
        self._parameters = parameters
        self.usages = []

    def visit_member_access(self, node: MemberAccess) -> None:
        if node.identifier is not None and node.identifier.name in self._annotated_fields:
            self.usages.append(node)
        # The member name is qualified, so it is not a bare reference
        self.scan(node.expression)

    def visit_identifier(self, node: Identifier) -> None:
        if not node.symbol.is_variable:
            return
        name = node.symbol.name
        if name not in self._parameters and name in self._annotated_fields:
            self.usages.append(node)
