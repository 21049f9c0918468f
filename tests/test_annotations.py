"""
Tests for annotation matching and the annotated-field collector.
"""

from engine.annotations import AnnotatedFieldCollector, is_annotated_with
from engine.syntax import (
    Annotation, ClassDecl, MethodDecl, Modifiers, SyntaxNode, Symbol, SymbolKind,
    VariableDecl, VariableScope,
)

JCR_PROPERTY = "com.cognifide.slice.mapper.annotation.JcrProperty"


def modifiers(*qualified_names):
    return Modifiers(annotations=[
        Annotation(name=(q or "Unknown").rsplit(".", 1)[-1], qualified_name=q) for q in qualified_names
    ])


def field(name, *annotations):
    return VariableDecl(name=name, modifiers=modifiers(*annotations) if annotations else None,
                        symbol=Symbol(name, SymbolKind.VARIABLE, VariableScope.FIELD))


class TestIsAnnotatedWith:

    def test_exact_qualified_name_matches(self):
        """Test that an annotation matches by its fully qualified name."""
        assert is_annotated_with(modifiers("a.B", JCR_PROPERTY), JCR_PROPERTY)

    def test_no_modifiers_or_no_annotations(self):
        """Test declarations without modifiers or annotations."""
        assert not is_annotated_with(None, JCR_PROPERTY)
        assert not is_annotated_with(Modifiers(), JCR_PROPERTY)

    def test_same_simple_name_in_other_package_does_not_match(self):
        """Test that a same-named annotation from another package does not match."""
        assert not is_annotated_with(modifiers("org.other.JcrProperty"), JCR_PROPERTY)

    def test_prefix_and_unresolved_names_do_not_match(self):
        """Test that prefixes and unresolved names never match."""
        assert not is_annotated_with(modifiers("com.cognifide.slice.mapper.annotation"), JCR_PROPERTY)
        assert not is_annotated_with(modifiers(None), JCR_PROPERTY)


class TestAnnotatedFieldCollector:

    def test_collects_only_annotated_fields(self):
        """Test that only fields carrying the annotation are collected."""
        cls = ClassDecl(name="Model", members=[
            field("title", JCR_PROPERTY),
            field("plain"),
            field("other", "org.other.Inject"),
            field("text", "org.other.Inject", JCR_PROPERTY),
        ])

        assert AnnotatedFieldCollector(JCR_PROPERTY).collect(cls) == {"title", "text"}

    def test_empty_set_when_nothing_is_annotated(self):
        """Test the empty result for a class without annotated fields."""
        cls = ClassDecl(name="Model", members=[field("plain")])

        assert AnnotatedFieldCollector(JCR_PROPERTY).collect(cls) == set()

    def test_nested_classes_and_method_bodies_are_not_entered(self):
        """Test that nested classes and method bodies are not collected."""
        inner = ClassDecl(name="Inner", members=[field("innerField", JCR_PROPERTY)])
        local = VariableDecl(name="local", modifiers=modifiers(JCR_PROPERTY),
                             symbol=Symbol("local", SymbolKind.VARIABLE, VariableScope.LOCAL))
        method = MethodDecl(name="m", body=SyntaxNode(kind="block", nodes=[local]))
        cls = ClassDecl(name="Outer", members=[field("outerField", JCR_PROPERTY), inner, method])

        assert AnnotatedFieldCollector(JCR_PROPERTY).collect(cls) == {"outerField"}

    def test_collector_can_be_reused_per_class(self):
        """Test that one collector serves several classes."""
        collector = AnnotatedFieldCollector(JCR_PROPERTY)
        first = collector.collect(ClassDecl(name="A", members=[field("a", JCR_PROPERTY)]))
        second = collector.collect(ClassDecl(name="B", members=[field("b", JCR_PROPERTY)]))

        assert first == {"a"}
        assert second == {"b"}
