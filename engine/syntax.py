"""
Syntax model consumed by the rules.

The Java adapter converts the concrete tree-sitter tree into these nodes. Names
are resolved while the tree is built: annotations carry their fully-qualified
name and identifiers carry a ``Symbol``, so rules never need to look back at
imports or enclosing scopes.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterator, List, Optional


class SymbolKind:
    VARIABLE = "variable"
    METHOD = "method"
    TYPE = "type"
    LABEL = "label"
    UNKNOWN = "unknown"


class VariableScope:
    FIELD = "field"
    PARAMETER = "parameter"
    LOCAL = "local"


@dataclass(frozen=True)
class Symbol:
    """What a name refers to."""
    name: str
    kind: str = SymbolKind.UNKNOWN
    scope: Optional[str] = None  # VariableScope for variable symbols
    type_name: Optional[str] = None  # qualified declared type, when resolvable

    @property
    def is_variable(self) -> bool:
        return self.kind == SymbolKind.VARIABLE


@dataclass(eq=False)
class SyntaxNode:
    """A node of the syntax tree.

    Generic nodes keep the front end's node type as ``kind`` and own an
    explicit ``children`` list. Typed subclasses compute ``children`` from
    their fields, always in source order.
    """
    kind: str
    start_byte: int = 0
    end_byte: int = 0
    line: int = 1
    column: int = 1
    nodes: List['SyntaxNode'] = field(default_factory=list)

    @property
    def children(self) -> List['SyntaxNode']:
        return self.nodes

    def walk(self) -> Iterator['SyntaxNode']:
        """Yield this node and all its descendants, depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()


def _present(*parts) -> List[SyntaxNode]:
    result = []
    for part in parts:
        if part is None:
            continue
        if isinstance(part, list):
            result.extend(part)
        else:
            result.append(part)
    return result


@dataclass(eq=False)
class Annotation(SyntaxNode):
    """``@Name(...)``; ``qualified_name`` is None when it could not be resolved."""
    kind: str = "annotation"
    name: str = ""
    qualified_name: Optional[str] = None
    arguments: List[SyntaxNode] = field(default_factory=list)

    @property
    def children(self) -> List[SyntaxNode]:
        return list(self.arguments)


@dataclass(eq=False)
class Modifiers(SyntaxNode):
    kind: str = "modifiers"
    annotations: List[Annotation] = field(default_factory=list)
    keywords: FrozenSet[str] = frozenset()

    @property
    def children(self) -> List[SyntaxNode]:
        return list(self.annotations)


@dataclass(eq=False)
class Identifier(SyntaxNode):
    kind: str = "identifier"
    name: str = ""
    symbol: Symbol = field(default_factory=lambda: Symbol(""))

    @property
    def children(self) -> List[SyntaxNode]:
        return []


@dataclass(eq=False)
class MemberAccess(SyntaxNode):
    """Qualified access ``expression.identifier``."""
    kind: str = "member_access"
    expression: Optional[SyntaxNode] = None
    identifier: Optional[Identifier] = None

    @property
    def children(self) -> List[SyntaxNode]:
        return _present(self.expression, self.identifier)


@dataclass(eq=False)
class MethodInvocation(SyntaxNode):
    """``select(arguments)`` where select is an Identifier or a MemberAccess."""
    kind: str = "method_invocation"
    method_select: Optional[SyntaxNode] = None
    arguments: List[SyntaxNode] = field(default_factory=list)

    @property
    def method_name(self) -> str:
        if isinstance(self.method_select, MemberAccess):
            return self.method_select.identifier.name
        if isinstance(self.method_select, Identifier):
            return self.method_select.name
        return ""

    @property
    def receiver(self) -> Optional[SyntaxNode]:
        if isinstance(self.method_select, MemberAccess):
            return self.method_select.expression
        return None

    @property
    def children(self) -> List[SyntaxNode]:
        return _present(self.method_select, self.arguments)


@dataclass(eq=False)
class VariableDecl(SyntaxNode):
    """A field, parameter or local variable declaration (one declarator)."""
    kind: str = "variable"
    name: str = ""
    type_name: str = ""
    modifiers: Optional[Modifiers] = None
    initializer: Optional[SyntaxNode] = None
    symbol: Symbol = field(default_factory=lambda: Symbol(""))

    @property
    def children(self) -> List[SyntaxNode]:
        return _present(self.modifiers, self.initializer)


@dataclass(eq=False)
class MethodDecl(SyntaxNode):
    kind: str = "method"
    name: str = ""
    modifiers: Optional[Modifiers] = None
    parameters: List[VariableDecl] = field(default_factory=list)
    body: Optional[SyntaxNode] = None
    is_constructor: bool = False

    @property
    def parameter_names(self) -> FrozenSet[str]:
        return frozenset(param.name for param in self.parameters)

    @property
    def children(self) -> List[SyntaxNode]:
        return _present(self.modifiers, self.parameters, self.body)


@dataclass(eq=False)
class ClassDecl(SyntaxNode):
    """A class, interface, enum, record or anonymous class body (name None)."""
    kind: str = "class"
    name: Optional[str] = None
    modifiers: Optional[Modifiers] = None
    members: List[SyntaxNode] = field(default_factory=list)

    @property
    def constructors(self) -> List[MethodDecl]:
        return [m for m in self.members if isinstance(m, MethodDecl) and m.is_constructor]

    @property
    def fields(self) -> List[VariableDecl]:
        return [m for m in self.members if isinstance(m, VariableDecl)]

    @property
    def children(self) -> List[SyntaxNode]:
        return _present(self.modifiers, self.members)


@dataclass(eq=False)
class TryStatement(SyntaxNode):
    kind: str = "try"
    resources: List[SyntaxNode] = field(default_factory=list)
    body: Optional[SyntaxNode] = None
    catches: List[SyntaxNode] = field(default_factory=list)
    finally_block: Optional[SyntaxNode] = None

    @property
    def children(self) -> List[SyntaxNode]:
        return _present(self.resources, self.body, self.catches, self.finally_block)


@dataclass(eq=False)
class CompilationUnit(SyntaxNode):
    kind: str = "compilation_unit"
    package: str = ""
    imports: List[str] = field(default_factory=list)
    types: List[SyntaxNode] = field(default_factory=list)

    @property
    def children(self) -> List[SyntaxNode]:
        return list(self.types)
