"""
Rule to detect ResourceResolvers opened from a factory and never closed.

A resolver obtained from ``ResourceResolverFactory`` holds a JCR session until
it is closed. The rule tracks, per method, the local variables that receive a
resolver from one of the factory methods and reports those that are not
closed in a ``finally`` block, are not try-with-resources resources and are
not handed back to the caller.

Resolvers borrowed from elsewhere (``resource.getResourceResolver()``, a
helper of another class) belong to their owner and are ignored.
"""

from typing import Dict, Iterator, List, Optional, Set

from engine.params import RuleProperty
from engine.rule import BaseRule
from engine.syntax import (
    ClassDecl, Identifier, MemberAccess, MethodDecl, MethodInvocation, SyntaxNode,
    TryStatement, VariableDecl, VariableScope,
)
from engine.types import Finding, Priority, RuleContext, RuleMeta
from engine.visitor import TreeVisitor

from .tags import Tags

RESOURCE_RESOLVER_FACTORY = "org.apache.sling.api.resource.ResourceResolverFactory"

FACTORY_METHODS = {
    "getResourceResolver",
    "getServiceResourceResolver",
    "getAdministrativeResourceResolver",
}


class ResourceResolverShouldBeClosedRule(BaseRule):
    RULE_KEY = "AEM-3"
    RULE_MESSAGE = "ResourceResolver should be closed in finally block."

    meta = RuleMeta(
        key=RULE_KEY,
        name=RULE_MESSAGE,
        priority=Priority.CRITICAL,
        tags=(Tags.AEM, Tags.SLING, Tags.BUG),
    )

    factory_type = RuleProperty(
        key="factoryType",
        description="Fully-qualified name of the type whose methods open resolvers",
        default_value=RESOURCE_RESOLVER_FACTORY,
    )

    def visit(self, ctx: RuleContext) -> Iterator[Finding]:
        if ctx.tree is None:
            return iter(())
        scanner = _MethodScanner(self, ctx)
        scanner.scan(ctx.tree)
        return iter(scanner.findings)


class _MethodScanner(TreeVisitor):
    """Checks every method body of the file, nested classes included."""

    def __init__(self, rule: ResourceResolverShouldBeClosedRule, ctx: RuleContext):
        self._rule = rule
        self._ctx = ctx
        self.findings: List[Finding] = []

    def visit_method(self, node: MethodDecl) -> None:
        if node.body is not None:
            usage = ResolverUsage(self._rule.factory_type)
            usage.scan(node.body)
            self.findings.extend(self._ctx.finding(self._rule, opened, self._rule.RULE_MESSAGE)
                                 for opened in usage.unclosed())
        self.generic_visit(node)


class ResolverUsage(TreeVisitor):
    """Collects what one method body does with factory resolvers.

    Bodies of local and anonymous classes are not entered; their methods are
    checked on their own.
    """

    def __init__(self, factory_type: str):
        self._factory_type = factory_type
        self._finally_depth = 0
        self.opened: Dict[str, SyntaxNode] = {}  # variable -> first acquisition
        self.resources: Set[str] = set()
        self.closed: Set[str] = set()
        self.returned: Set[str] = set()

    def unclosed(self) -> List[SyntaxNode]:
        released = self.resources | self.closed | self.returned
        return [node for name, node in self.opened.items() if name not in released]

    def visit_class(self, node: ClassDecl) -> None:
        return

    def visit_variable(self, node: VariableDecl) -> None:
        if node.symbol.scope == VariableScope.LOCAL and self.is_factory_call(node.initializer):
            self.opened.setdefault(node.name, node)
        self.generic_visit(node)

    def visit_assignment_expression(self, node: SyntaxNode) -> None:
        if len(node.children) == 2:
            target, value = node.children
            if (isinstance(target, Identifier) and target.symbol.scope == VariableScope.LOCAL
                    and self.is_factory_call(value)):
                self.opened.setdefault(target.name, node)
        self.generic_visit(node)

    def visit_try(self, node: TryStatement) -> None:
        for resource in node.resources:
            if isinstance(resource, VariableDecl):
                self.resources.add(resource.name)
            elif isinstance(resource, Identifier):
                self.resources.add(resource.name)
        self.scan(node.resources)
        self.scan(node.body)
        self.scan(node.catches)
        self._finally_depth += 1
        self.scan(node.finally_block)
        self._finally_depth -= 1

    def visit_method_invocation(self, node: MethodInvocation) -> None:
        if (self._finally_depth and node.method_name == "close" and not node.arguments
                and isinstance(node.receiver, Identifier)):
            self.closed.add(node.receiver.name)
        self.generic_visit(node)

    def visit_return_statement(self, node: SyntaxNode) -> None:
        value = _unwrap(node.children[0]) if node.children else None
        if isinstance(value, Identifier):
            self.returned.add(value.name)
        self.generic_visit(node)

    def is_factory_call(self, expression: Optional[SyntaxNode]) -> bool:
        expression = _unwrap(expression)
        if not isinstance(expression, MethodInvocation) or expression.method_name not in FACTORY_METHODS:
            return False
        receiver = _unwrap(expression.receiver)
        if isinstance(receiver, MemberAccess):
            # this.factory
            receiver = receiver.identifier
        return (isinstance(receiver, Identifier) and receiver.symbol.is_variable
                and receiver.symbol.type_name == self._factory_type)


def _unwrap(node: Optional[SyntaxNode]) -> Optional[SyntaxNode]:
    """Strip redundant parentheses around an expression."""
    while node is not None and node.kind == "parenthesized_expression" and len(node.children) == 1:
        node = node.children[0]
    return node
