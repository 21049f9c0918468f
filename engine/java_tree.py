"""
Conversion of tree-sitter Java trees into the engine's syntax model.

The builder walks the concrete tree once, in source order, and resolves names
on the way:

- annotation names are resolved to fully-qualified names through the file's
  single-type imports, fully-qualified usage, the well-known ``java.lang``
  types, or the file's own package. A simple name that could only come
  from an on-demand (``*``) import is left unresolved.
- identifiers are looked up in the enclosing scopes (fields of the enclosing
  classes, method and lambda parameters, locals declared so far). A name that
  is not declared in the file gets an ``unknown`` symbol; method names, labels
  and annotation element names get their own symbol kinds.

Anything the builder has no dedicated handling for becomes a generic
``SyntaxNode`` whose kind is the tree-sitter node type.
"""

import re
from typing import Dict, List, Optional, Tuple

from .syntax import (
    Annotation, ClassDecl, CompilationUnit, Identifier, MemberAccess, MethodDecl,
    MethodInvocation, Modifiers, Symbol, SymbolKind, SyntaxNode, TryStatement,
    VariableDecl, VariableScope,
)

# Implicitly imported java.lang types the resolver recognises by simple name
JAVA_LANG_TYPES = {
    "Override", "Deprecated", "SuppressWarnings", "FunctionalInterface", "SafeVarargs",
    "Object", "String", "StringBuilder", "Boolean", "Byte", "Character", "Short",
    "Integer", "Long", "Float", "Double", "Number", "Void", "Class", "Enum", "Iterable",
    "AutoCloseable", "Runnable", "Thread", "Throwable", "Exception", "RuntimeException",
    "Error", "Math", "System",
}

PRIMITIVE_TYPES = {"boolean", "byte", "char", "short", "int", "long", "float", "double", "void"}

SKIPPED_NODES = {"line_comment", "block_comment", "package_declaration", "import_declaration"}

# Nodes that open a block scope for local declarations
SCOPE_NODES = {"block", "constructor_body", "switch_block", "for_statement", "static_initializer"}

LABEL_CONTEXTS = {"labeled_statement", "break_statement", "continue_statement"}

FIELD_DECLARATIONS = {"field_declaration", "constant_declaration"}

_CLASS_SCOPE = "class"
_BLOCK_SCOPE = "block"


class JavaTreeBuilder:
    """Builds a ``CompilationUnit`` from a tree-sitter ``program`` node.

    A builder holds the import table and scope stack of one file; create a new
    one per file.
    """

    def __init__(self, source: bytes):
        self._source = source
        self._package = ""
        self._imports: Dict[str, str] = {}  # simple name -> qualified name
        self._on_demand: List[str] = []
        self._scopes: List[Tuple[str, Dict[str, Symbol]]] = []

    # === Entry point ===

    def build(self, root) -> CompilationUnit:
        imports = []
        for child in root.named_children:
            if child.type == "package_declaration":
                name_node = self._first_named(child, ("scoped_identifier", "identifier"))
                if name_node is not None:
                    self._package = self._name_text(name_node)
            elif child.type == "import_declaration":
                imports.append(self._register_import(child))

        self._push(_BLOCK_SCOPE)
        types = self._convert_all(root.named_children)
        self._pop()

        return CompilationUnit(package=self._package, imports=imports, types=types,
                               **self._position(root))

    # === Name resolution ===

    def _register_import(self, node) -> str:
        is_static = any(child.type == "static" for child in node.children)
        on_demand = any(child.type == "asterisk" for child in node.children)
        name_node = self._first_named(node, ("scoped_identifier", "identifier"))
        name = self._name_text(name_node) if name_node is not None else ""

        if on_demand:
            if not is_static:
                self._on_demand.append(name)
            return name + ".*"
        if not is_static and name:
            self._imports[name.rsplit(".", 1)[-1]] = name
        return name

    def resolve_type_name(self, written_name: str) -> Optional[str]:
        """Fully-qualified name of a type or annotation as written, or None."""
        name = re.sub(r"\s+", "", written_name)
        if not name:
            return None
        if "." in name:
            head, _, rest = name.partition(".")
            if head in self._imports:
                return f"{self._imports[head]}.{rest}"
            return name
        if name in self._imports:
            return self._imports[name]
        if name in JAVA_LANG_TYPES:
            return "java.lang." + name
        if self._on_demand:
            return None
        return f"{self._package}.{name}" if self._package else name

    def declared_type(self, type_text: str) -> Optional[str]:
        """Resolve the type of a declaration, ignoring type arguments and dimensions."""
        text = re.sub(r"@[\w.]+(\([^)]*\))?", " ", type_text)
        previous = None
        while previous != text:
            previous = text
            text = re.sub(r"<[^<>]*>", "", text)
        text = text.replace("[]", "").replace("...", "").strip()
        if not text or text == "var":
            return None
        base = text.split()[-1]
        if base in PRIMITIVE_TYPES:
            return base
        return self.resolve_type_name(base)

    def _variable_symbol(self, name: str, scope: str, type_text: str = "") -> Symbol:
        return Symbol(name, SymbolKind.VARIABLE, scope, self.declared_type(type_text))

    def _push(self, kind: str, symbols: Optional[Dict[str, Symbol]] = None) -> None:
        self._scopes.append((kind, dict(symbols or {})))

    def _pop(self) -> None:
        self._scopes.pop()

    def _declare(self, symbol: Symbol) -> None:
        self._scopes[-1][1][symbol.name] = symbol

    def _resolve(self, name: str) -> Symbol:
        for _, symbols in reversed(self._scopes):
            if name in symbols:
                return symbols[name]
        return Symbol(name, SymbolKind.UNKNOWN)

    def _resolve_field(self, name: str) -> Symbol:
        """Resolve ``this.name``: only the innermost class's fields count."""
        for kind, symbols in reversed(self._scopes):
            if kind == _CLASS_SCOPE:
                return symbols.get(name, Symbol(name, SymbolKind.UNKNOWN))
        return Symbol(name, SymbolKind.UNKNOWN)

    # === Generic conversion ===

    def _convert(self, node) -> List[SyntaxNode]:
        if node is None or node.type in SKIPPED_NODES:
            return []
        handler = getattr(self, "_convert_" + node.type, None)
        if handler is not None:
            result = handler(node)
            if result is None:
                return []
            return result if isinstance(result, list) else [result]

        opens_scope = node.type in SCOPE_NODES
        if opens_scope:
            self._push(_BLOCK_SCOPE)
        if node.type in LABEL_CONTEXTS:
            nodes = []
            for child in node.named_children:
                if child.type == "identifier":
                    nodes.append(self._identifier(child, Symbol(self._text(child), SymbolKind.LABEL)))
                else:
                    nodes.extend(self._convert(child))
        else:
            nodes = self._convert_all(node.named_children)
        if opens_scope:
            self._pop()
        return [SyntaxNode(kind=node.type, nodes=nodes, **self._position(node))]

    def _convert_all(self, nodes) -> List[SyntaxNode]:
        result = []
        for node in nodes:
            result.extend(self._convert(node))
        return result

    def _convert_one(self, node) -> Optional[SyntaxNode]:
        converted = self._convert(node)
        return converted[0] if converted else None

    # === Declarations ===

    def _convert_class_declaration(self, node) -> ClassDecl:
        modifiers = self._modifiers(node)
        name_node = node.child_by_field_name("name")
        body = node.child_by_field_name("body")

        record_components = []
        if node.type == "record_declaration":
            params = node.child_by_field_name("parameters")
            if params is not None:
                record_components = [p for p in params.named_children if p.type == "formal_parameter"]

        symbols = {name: self._variable_symbol(name, VariableScope.FIELD, type_text)
                   for name, type_text in self._fields(body, record_components)}
        self._push(_CLASS_SCOPE, symbols)
        members = [self._formal_parameter(p, VariableScope.FIELD) for p in record_components]
        members.extend(self._class_members(body))
        self._pop()

        return ClassDecl(name=self._text(name_node) if name_node is not None else None,
                         modifiers=modifiers, members=members, **self._position(node))

    _convert_interface_declaration = _convert_class_declaration
    _convert_enum_declaration = _convert_class_declaration
    _convert_record_declaration = _convert_class_declaration
    _convert_annotation_type_declaration = _convert_class_declaration

    def _convert_class_body(self, node) -> ClassDecl:
        """Anonymous class body, e.g. ``new Runnable() { ... }``."""
        symbols = {name: self._variable_symbol(name, VariableScope.FIELD, type_text)
                   for name, type_text in self._fields(node, [])}
        self._push(_CLASS_SCOPE, symbols)
        members = self._class_members(node)
        self._pop()
        return ClassDecl(name=None, members=members, **self._position(node))

    def _fields(self, body, record_components) -> List[Tuple[str, str]]:
        """(name, written type) of every field a class body declares."""
        fields = []
        for component in record_components:
            name_node = component.child_by_field_name("name")
            if name_node is not None:
                fields.append((self._text(name_node), self._text(component.child_by_field_name("type"))))
        for member in self._body_members(body):
            if member.type in FIELD_DECLARATIONS:
                type_text = self._text(member.child_by_field_name("type"))
                for declarator in member.children_by_field_name("declarator"):
                    name_node = declarator.child_by_field_name("name")
                    if name_node is not None:
                        fields.append((self._text(name_node), type_text))
            elif member.type == "enum_constant":
                name_node = member.child_by_field_name("name")
                if name_node is not None:
                    fields.append((self._text(name_node), ""))
        return fields

    def _body_members(self, body) -> List:
        if body is None:
            return []
        members = []
        for child in body.named_children:
            if child.type == "enum_body_declarations":
                members.extend(child.named_children)
            else:
                members.append(child)
        return members

    def _class_members(self, body) -> List[SyntaxNode]:
        members = []
        for member in self._body_members(body):
            if member.type == "enum_constant":
                members.append(self._enum_constant(member))
            else:
                members.extend(self._convert(member))
        return members

    def _enum_constant(self, node) -> VariableDecl:
        name_node = node.child_by_field_name("name")
        name = self._text(name_node) if name_node is not None else ""
        parts = self._convert(node.child_by_field_name("arguments"))
        parts.extend(self._convert(node.child_by_field_name("body")))
        initializer = SyntaxNode(kind="enum_constant", nodes=parts, **self._position(node)) if parts else None
        return VariableDecl(name=name, modifiers=self._modifiers(node), initializer=initializer,
                            symbol=Symbol(name, SymbolKind.VARIABLE, VariableScope.FIELD),
                            **self._position(node))

    def _convert_field_declaration(self, node) -> List[VariableDecl]:
        return self._declarators(node, VariableScope.FIELD, declare=False)

    _convert_constant_declaration = _convert_field_declaration

    def _convert_local_variable_declaration(self, node) -> List[VariableDecl]:
        return self._declarators(node, VariableScope.LOCAL, declare=True)

    def _declarators(self, node, scope: str, declare: bool) -> List[VariableDecl]:
        modifiers = self._modifiers(node)
        type_node = node.child_by_field_name("type")
        type_name = self._text(type_node) if type_node is not None else ""
        result = []
        for declarator in node.children_by_field_name("declarator"):
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                continue
            name = self._text(name_node)
            symbol = self._variable_symbol(name, scope, type_name)
            if declare:
                self._declare(symbol)
            initializer = self._convert_one(declarator.child_by_field_name("value"))
            result.append(VariableDecl(name=name, type_name=type_name, modifiers=modifiers,
                                       initializer=initializer, symbol=symbol,
                                       **self._position(declarator)))
        return result

    def _convert_method_declaration(self, node) -> MethodDecl:
        modifiers = self._modifiers(node)
        name_node = node.child_by_field_name("name")
        is_constructor = node.type in ("constructor_declaration", "compact_constructor_declaration")

        self._push(_BLOCK_SCOPE)
        parameters = []
        params_node = node.child_by_field_name("parameters")
        if params_node is not None:
            for param in params_node.named_children:
                if param.type in ("formal_parameter", "spread_parameter"):
                    decl = self._formal_parameter(param, VariableScope.PARAMETER)
                    self._declare(decl.symbol)
                    parameters.append(decl)
        body = self._convert_one(node.child_by_field_name("body"))
        self._pop()

        return MethodDecl(name=self._text(name_node) if name_node is not None else "",
                          modifiers=modifiers, parameters=parameters, body=body,
                          is_constructor=is_constructor, **self._position(node))

    _convert_constructor_declaration = _convert_method_declaration
    _convert_compact_constructor_declaration = _convert_method_declaration

    def _formal_parameter(self, node, scope: str) -> VariableDecl:
        if node.type == "spread_parameter":
            declarator = self._first_named(node, ("variable_declarator",))
            name_node = declarator.child_by_field_name("name") if declarator is not None else None
            type_node = next((c for c in node.named_children
                              if c.type not in ("modifiers", "variable_declarator")), None)
        else:
            name_node = node.child_by_field_name("name")
            type_node = node.child_by_field_name("type")
        name = self._text(name_node) if name_node is not None else ""
        return VariableDecl(name=name, type_name=self._text(type_node) if type_node is not None else "",
                            modifiers=self._modifiers(node),
                            symbol=self._variable_symbol(name, scope, self._text(type_node)),
                            **self._position(node))

    def _local(self, node, name_node, type_text: str, initializer=None) -> VariableDecl:
        name = self._text(name_node)
        symbol = self._variable_symbol(name, VariableScope.LOCAL, type_text)
        self._declare(symbol)
        return VariableDecl(name=name, type_name=type_text, modifiers=self._modifiers(node),
                            initializer=initializer, symbol=symbol, **self._position(node))

    # === Modifiers and annotations ===

    def _modifiers(self, node) -> Optional[Modifiers]:
        modifiers = next((c for c in node.children if c.type == "modifiers"), None)
        if modifiers is None:
            return None
        annotations = [self._convert_annotation(c) for c in modifiers.named_children
                       if c.type in ("annotation", "marker_annotation")]
        keywords = frozenset(c.type for c in modifiers.children if not c.is_named)
        return Modifiers(annotations=annotations, keywords=keywords, **self._position(modifiers))

    def _convert_annotation(self, node) -> Annotation:
        name_node = node.child_by_field_name("name")
        written = self._text(name_node) if name_node is not None else ""
        arguments_node = node.child_by_field_name("arguments")
        arguments = self._convert_all(arguments_node.named_children) if arguments_node is not None else []
        return Annotation(name=written, qualified_name=self.resolve_type_name(written),
                          arguments=arguments, **self._position(node))

    _convert_marker_annotation = _convert_annotation

    def _convert_element_value_pair(self, node) -> SyntaxNode:
        key = node.child_by_field_name("key")
        nodes = []
        if key is not None:
            nodes.append(self._identifier(key, Symbol(self._text(key), SymbolKind.METHOD)))
        nodes.extend(self._convert(node.child_by_field_name("value")))
        return SyntaxNode(kind=node.type, nodes=nodes, **self._position(node))

    # === Expressions ===

    def _convert_identifier(self, node) -> Identifier:
        return self._identifier(node, self._resolve(self._text(node)))

    def _identifier(self, node, symbol: Symbol) -> Identifier:
        return Identifier(name=self._text(node), symbol=symbol, **self._position(node))

    def _convert_field_access(self, node) -> SyntaxNode:
        obj = node.child_by_field_name("object")
        member = node.child_by_field_name("field")
        if member is None or member.type != "identifier":
            # Outer.this and friends
            return SyntaxNode(kind=node.type, nodes=self._convert_all(node.named_children),
                              **self._position(node))
        name = self._text(member)
        if obj is not None and obj.type == "this":
            symbol = self._resolve_field(name)
        else:
            symbol = Symbol(name, SymbolKind.UNKNOWN)
        return MemberAccess(expression=self._convert_one(obj), identifier=self._identifier(member, symbol),
                            **self._position(node))

    def _convert_method_invocation(self, node) -> MethodInvocation:
        name_node = node.child_by_field_name("name")
        obj = node.child_by_field_name("object")
        arguments_node = node.child_by_field_name("arguments")

        method = self._identifier(name_node, Symbol(self._text(name_node), SymbolKind.METHOD))
        if obj is not None:
            start = self._position(obj)
            start["end_byte"] = name_node.end_byte
            method_select = MemberAccess(expression=self._convert_one(obj), identifier=method, **start)
        else:
            method_select = method
        arguments = self._convert_all(arguments_node.named_children) if arguments_node is not None else []
        return MethodInvocation(method_select=method_select, arguments=arguments, **self._position(node))

    def _convert_method_reference(self, node) -> SyntaxNode:
        nodes = []
        after_separator = False
        for child in node.children:
            if child.type == "::":
                after_separator = True
            elif child.is_named:
                if after_separator and child.type == "identifier":
                    nodes.append(self._identifier(child, Symbol(self._text(child), SymbolKind.METHOD)))
                else:
                    nodes.extend(self._convert(child))
        return SyntaxNode(kind=node.type, nodes=nodes, **self._position(node))

    def _convert_lambda_expression(self, node) -> SyntaxNode:
        self._push(_BLOCK_SCOPE)
        nodes = []
        params = node.child_by_field_name("parameters")
        if params is not None:
            if params.type == "identifier":
                nodes.append(self._lambda_parameter(params))
            elif params.type == "inferred_parameters":
                nodes.extend(self._lambda_parameter(p) for p in params.named_children if p.type == "identifier")
            else:
                for param in params.named_children:
                    if param.type in ("formal_parameter", "spread_parameter"):
                        decl = self._formal_parameter(param, VariableScope.PARAMETER)
                        self._declare(decl.symbol)
                        nodes.append(decl)
        nodes.extend(self._convert(node.child_by_field_name("body")))
        self._pop()
        return SyntaxNode(kind=node.type, nodes=nodes, **self._position(node))

    def _lambda_parameter(self, node) -> VariableDecl:
        name = self._text(node)
        symbol = Symbol(name, SymbolKind.VARIABLE, VariableScope.PARAMETER)
        self._declare(symbol)
        return VariableDecl(name=name, symbol=symbol, **self._position(node))

    # === Statements ===

    def _convert_try_statement(self, node) -> TryStatement:
        body = self._convert_one(node.child_by_field_name("body"))
        catches, finally_block = self._handlers(node)
        return TryStatement(body=body, catches=catches, finally_block=finally_block, **self._position(node))

    def _convert_try_with_resources_statement(self, node) -> TryStatement:
        self._push(_BLOCK_SCOPE)
        resources = []
        resource_list = node.child_by_field_name("resources")
        if resource_list is not None:
            for resource in resource_list.named_children:
                if resource.type != "resource":
                    continue
                name_node = resource.child_by_field_name("name")
                if name_node is None:
                    resources.extend(self._convert_all(resource.named_children))
                    continue
                type_node = resource.child_by_field_name("type")
                initializer = self._convert_one(resource.child_by_field_name("value"))
                resources.append(self._local(resource, name_node,
                                             self._text(type_node) if type_node is not None else "",
                                             initializer))
        body = self._convert_one(node.child_by_field_name("body"))
        catches, finally_block = self._handlers(node)
        self._pop()
        return TryStatement(resources=resources, body=body, catches=catches,
                            finally_block=finally_block, **self._position(node))

    def _handlers(self, node):
        catches = []
        finally_block = None
        for child in node.named_children:
            if child.type == "catch_clause":
                catches.extend(self._convert(child))
            elif child.type == "finally_clause":
                finally_block = self._convert_one(self._first_named(child, ("block",)))
        return catches, finally_block

    def _convert_catch_clause(self, node) -> SyntaxNode:
        self._push(_BLOCK_SCOPE)
        nodes = []
        param = self._first_named(node, ("catch_formal_parameter",))
        if param is not None:
            name_node = param.child_by_field_name("name")
            catch_type = self._first_named(param, ("catch_type",))
            if name_node is not None:
                nodes.append(self._local(param, name_node,
                                         self._text(catch_type) if catch_type is not None else ""))
        nodes.extend(self._convert(node.child_by_field_name("body")))
        self._pop()
        return SyntaxNode(kind=node.type, nodes=nodes, **self._position(node))

    def _convert_enhanced_for_statement(self, node) -> SyntaxNode:
        self._push(_BLOCK_SCOPE)
        value = self._convert(node.child_by_field_name("value"))
        nodes = []
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            type_node = node.child_by_field_name("type")
            nodes.append(self._local(node, name_node, self._text(type_node) if type_node is not None else ""))
        nodes.extend(value)
        nodes.extend(self._convert(node.child_by_field_name("body")))
        self._pop()
        return SyntaxNode(kind=node.type, nodes=nodes, **self._position(node))

    def _convert_instanceof_expression(self, node) -> SyntaxNode:
        # `o instanceof String s` binds s in the enclosing scope
        nodes = self._convert(node.child_by_field_name("left"))
        type_node = node.child_by_field_name("right")
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            nodes.append(self._local(name_node, name_node, self._text(type_node)))
        else:
            nodes.extend(self._convert(type_node))
            nodes.extend(self._convert(node.child_by_field_name("pattern")))
        return SyntaxNode(kind=node.type, nodes=nodes, **self._position(node))

    def _convert_type_pattern(self, node) -> List[SyntaxNode]:
        children = node.named_children
        if len(children) < 2 or children[-1].type != "identifier":
            return [SyntaxNode(kind=node.type, nodes=self._convert_all(children), **self._position(node))]
        type_text = " ".join(self._text(c) for c in children[:-1])
        return [self._local(node, children[-1], type_text)]

    # === Helpers ===

    def _text(self, node) -> str:
        if node is None:
            return ""
        return self._source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def _name_text(self, node) -> str:
        return re.sub(r"\s+", "", self._text(node))

    @staticmethod
    def _first_named(node, types):
        return next((c for c in node.named_children if c.type in types), None)

    @staticmethod
    def _position(node) -> Dict[str, int]:
        row, column = node.start_point
        return {
            "start_byte": node.start_byte,
            "end_byte": node.end_byte,
            "line": row + 1,
            "column": column + 1,
        }


def build_compilation_unit(tree, source: bytes) -> CompilationUnit:
    """Convert a parsed tree-sitter tree of ``source`` into a CompilationUnit."""
    return JavaTreeBuilder(source).build(tree.root_node)
