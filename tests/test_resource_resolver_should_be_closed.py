"""
Tests for the AEM-3 rule: factory ResourceResolvers must be closed in finally.
"""

from pathlib import Path

import pytest

from engine.types import RuleContext
from rules.resource_resolver_should_be_closed import ResourceResolverShouldBeClosedRule

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "java"

HEADER = """\
package com.example;

import java.util.Map;
import org.apache.sling.api.resource.ResourceResolver;
import org.apache.sling.api.resource.ResourceResolverFactory;

"""


def run_fixture(java_adapter, name, rule=None):
    path = FIXTURES_DIR / name
    text = path.read_text(encoding="utf-8")
    ctx = RuleContext(file_path=str(path), text=text, tree=java_adapter.parse(text))
    return list((rule or ResourceResolverShouldBeClosedRule()).visit(ctx))


@pytest.fixture
def run_rule(make_context):
    def run(source, rule=None):
        return list((rule or ResourceResolverShouldBeClosedRule()).visit(make_context(HEADER + source)))
    return run


class TestResourceResolverShouldBeClosedRule:

    def test_meta(self):
        """Test that rule metadata is correct."""
        rule = ResourceResolverShouldBeClosedRule()

        assert rule.key == "AEM-3"
        assert rule.meta.priority.value == "CRITICAL"
        assert rule.factory_type == "org.apache.sling.api.resource.ResourceResolverFactory"

    def test_resolver_not_closed_in_finally_block(self, java_adapter):
        """Test the findings on the servlet fixture."""
        findings = run_fixture(java_adapter, "SampleServlet.java")

        assert [f.line for f in findings] == [15, 45, 52]
        assert all(f.rule == "AEM-3" for f in findings)
        assert all(f.message == "ResourceResolver should be closed in finally block." for f in findings)
        assert all(f.severity == "CRITICAL" for f in findings)

    def test_resolver_coming_from_different_class_is_ignored(self, java_adapter):
        """Test that resolvers not obtained from the factory are ignored."""
        assert run_fixture(java_adapter, "ResourceResolverConsumer.java") == []

    def test_factory_parameter_and_local_factory(self, run_rule):
        """Test factories held in parameters and locals."""
        findings = run_rule("""\
class Service {
    void fromParameter(ResourceResolverFactory factory) throws Exception {
        ResourceResolver resolver = factory.getResourceResolver(null);
    }

    void fromLocal(Lookup lookup) throws Exception {
        ResourceResolverFactory factory = lookup.factory();
        ResourceResolver resolver = factory.getServiceResourceResolver(null);
    }
}
""")
        assert [f.line for f in findings] == [9, 14]

    def test_close_outside_finally_still_reported(self, run_rule):
        """Test that closing outside a finally block is reported."""
        findings = run_rule("""\
class Service {
    void run(ResourceResolverFactory factory) throws Exception {
        ResourceResolver resolver = factory.getResourceResolver(null);
        try {
            resolver.getResource("/");
        } finally {
            resolver.getResource("/tmp");
        }
        resolver.close();
    }
}
""")
        assert len(findings) == 1

    def test_close_in_nested_finally(self, run_rule):
        """Test closing in the finally block of a nested try."""
        findings = run_rule("""\
class Service {
    void run(ResourceResolverFactory factory) throws Exception {
        ResourceResolver resolver = factory.getResourceResolver(null);
        try {
            try {
                resolver.getResource("/");
            } finally {
                resolver.close();
            }
        } catch (RuntimeException e) {
            throw e;
        }
    }
}
""")
        assert findings == []

    def test_methods_of_local_classes_are_checked_on_their_own(self, run_rule):
        """Test that methods of anonymous classes are checked separately."""
        findings = run_rule("""\
class Service {
    private ResourceResolverFactory factory;

    Runnable task() {
        ResourceResolver resolver = null;
        try {
            resolver = factory.getResourceResolver(null);
        } finally {
            resolver.close();
        }
        return new Runnable() {
            public void run() {
                ResourceResolver leaked = factory.getResourceResolver(null);
            }
        };
    }
}
""")
        assert [f.line for f in findings] == [19]

    def test_configured_factory_type(self, run_rule):
        """Test a configured factory type."""
        source = """\
import com.example.pool.ResolverPool;

class Service {
    void run(ResolverPool pool, ResourceResolverFactory factory) throws Exception {
        ResourceResolver pooled = pool.getResourceResolver(null);
        ResourceResolver resolver = factory.getResourceResolver(null);
    }
}
"""
        rule = ResourceResolverShouldBeClosedRule(factoryType="com.example.pool.ResolverPool")

        assert [f.line for f in run_rule(source, rule)] == [11]
        assert [f.line for f in run_rule(source)] == [12]
