"""
Tests for rule definitions and the rules repository.
"""

import pytest

from engine.params import RuleParamType
from engine.repository import ParamDefinition, RuleDefinition, RulesRepository
from engine.types import Priority, RuleStatus


def definition(key="AEM-1", params=()):
    return RuleDefinition(key=key, name="Name", markdown_description="Desc",
                          severity=Priority.MAJOR, params=tuple(params))


class TestRulesRepository:

    def setup_method(self):
        self.repository = RulesRepository("AEM Rules", "java")

    def test_add_and_lookup(self):
        """Test adding and looking up rule definitions."""
        self.repository.add_rule(definition("AEM-1"))
        self.repository.add_rule(definition("AEM-2"))

        assert len(self.repository) == 2
        assert "AEM-1" in self.repository
        assert self.repository.rule("AEM-2").key == "AEM-2"
        assert self.repository.rule("AEM-9") is None
        assert [r.key for r in self.repository.rules] == ["AEM-1", "AEM-2"]
        assert self.repository.name == "AEM Rules"

    def test_duplicate_rule_key_is_rejected(self):
        """Test that a duplicate rule key is rejected."""
        self.repository.add_rule(definition("AEM-1"))

        with pytest.raises(ValueError, match="declared several times"):
            self.repository.add_rule(definition("AEM-1"))

    def test_duplicate_param_key_is_rejected(self):
        """Test that a duplicate parameter key is rejected."""
        params = [ParamDefinition("limit"), ParamDefinition("limit", type=RuleParamType.INTEGER)]

        with pytest.raises(ValueError, match="parameter 'limit'"):
            self.repository.add_rule(definition("AEM-1", params))
        assert "AEM-1" not in self.repository


class TestRuleDefinition:

    def test_to_dict(self):
        """Test the dictionary export of a rule definition."""
        rule = RuleDefinition(
            key="AEM-1", name="Name", markdown_description="Desc", severity=Priority.BLOCKER,
            template=True, status=RuleStatus.DEPRECATED, tags=frozenset({"b", "a"}),
            params=(ParamDefinition("mode", "Mode", "x", RuleParamType.single_select_list("x", "y")),),
        )

        assert rule.to_dict() == {
            "key": "AEM-1",
            "name": "Name",
            "description": "Desc",
            "severity": "BLOCKER",
            "template": True,
            "status": "DEPRECATED",
            "tags": ["a", "b"],
            "params": [
                {"key": "mode", "description": "Mode", "default_value": "x",
                 "type": 'SINGLE_SELECT_LIST,values="x,y"'},
            ],
        }

    def test_param_lookup(self):
        """Test parameter lookup by key."""
        rule = definition(params=[ParamDefinition("a"), ParamDefinition("b")])

        assert rule.param("b").key == "b"
        assert rule.param("c") is None
