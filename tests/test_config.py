"""
Tests for engine configuration loading.
"""

import logging

import pytest
import yaml

from engine.config import (
    EngineConfig, apply_rule_params, find_config_file, get_default_config, get_rule_severity,
    load_config, save_config,
)
from engine.errors import RuleConfigurationError
from rules.jcr_property_fields_in_constructor import JcrPropertyFieldsInConstructorRule
from rules.resource_resolver_should_be_closed import ResourceResolverShouldBeClosedRule


class TestLoadConfig:

    def test_defaults(self):
        """Test the default configuration values."""
        config = get_default_config()

        assert config.enabled_rules == []
        assert config.max_findings_per_file == 50
        assert config.rule_severities == {}
        assert "AEM-12" in config.rule_params

    def test_file_values_merge_over_defaults(self, tmp_path):
        """Test that file values are merged over the defaults."""
        path = tmp_path / ".aem-rules.yml"
        path.write_text(yaml.safe_dump({
            "enabled_rules": ["AEM-*"],
            "rule_severities": {"AEM-3": "BLOCKER"},
            "rule_params": {
                "AEM-12": {"jcrPropertyAnnotation": "com.example.Inject"},
                "AEM-3": {"factoryType": "com.example.Factory"},
            },
        }))

        config = load_config(str(path))

        assert config.enabled_rules == ["AEM-*"]
        assert config.max_findings_per_file == 50
        assert config.rule_severities == {"AEM-3": "BLOCKER"}
        assert config.rule_params["AEM-12"] == {
            "sliceResourceAnnotation": "com.cognifide.slice.mapper.annotation.SliceResource",
            "jcrPropertyAnnotation": "com.example.Inject",
        }
        assert config.rule_params["AEM-3"] == {"factoryType": "com.example.Factory"}

    def test_defaults_are_not_shared_between_loads(self, tmp_path):
        """Test that loading a file never mutates the defaults."""
        path = tmp_path / ".aem-rules.yml"
        path.write_text("rule_params:\n  AEM-12:\n    jcrPropertyAnnotation: x\n")

        load_config(str(path))

        assert get_default_config().rule_params["AEM-12"]["jcrPropertyAnnotation"] == \
            "com.cognifide.slice.mapper.annotation.JcrProperty"

    def test_invalid_file_falls_back_to_defaults(self, tmp_path, caplog):
        """Test that malformed YAML falls back to defaults with a warning."""
        path = tmp_path / ".aem-rules.yml"
        path.write_text("enabled_rules: [unclosed\n")

        with caplog.at_level(logging.WARNING, logger="engine.config"):
            config = load_config(str(path))

        assert config == get_default_config()
        assert "Failed to load config" in caplog.text

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test that a missing file yields the defaults."""
        assert load_config(str(tmp_path / "missing.yml")) == get_default_config()

    def test_save_and_reload(self, tmp_path):
        """Test saving a configuration and loading it back."""
        config = EngineConfig(enabled_rules=["AEM-3"], max_findings_per_file=5,
                              rule_severities={"AEM-3": "MINOR"}, rule_params={})
        path = tmp_path / "nested" / "aem-rules.yml"

        save_config(config, str(path))
        reloaded = load_config(str(path))

        assert reloaded.enabled_rules == ["AEM-3"]
        assert reloaded.max_findings_per_file == 5
        assert reloaded.rule_severities == {"AEM-3": "MINOR"}


class TestFindConfigFile:

    def test_walks_up_from_start_path(self, tmp_path):
        """Test that the config file is searched in parent directories."""
        (tmp_path / ".aem-rules.yml").write_text("{}")
        source = tmp_path / "core" / "src" / "Foo.java"
        source.parent.mkdir(parents=True)
        source.write_text("class Foo {}")

        assert find_config_file(str(source)) == str(tmp_path / ".aem-rules.yml")
        assert find_config_file(str(source.parent)) == str(tmp_path / ".aem-rules.yml")

    def test_prefers_hidden_yml(self, tmp_path):
        """Test the lookup order of config file names."""
        (tmp_path / "aem-rules.yaml").write_text("{}")
        (tmp_path / ".aem-rules.yml").write_text("{}")

        assert find_config_file(str(tmp_path)) == str(tmp_path / ".aem-rules.yml")


class TestRuleSettings:

    def test_rule_severity_override(self):
        """Test per-rule severity overrides."""
        config = EngineConfig(rule_severities={"AEM-3": "BLOCKER"})

        assert get_rule_severity("AEM-3", config, "CRITICAL") == "BLOCKER"
        assert get_rule_severity("AEM-12", config, "MAJOR") == "MAJOR"

    def test_apply_rule_params(self):
        """Test that configured parameters reach the rule instances."""
        rules = [JcrPropertyFieldsInConstructorRule(), ResourceResolverShouldBeClosedRule()]
        config = EngineConfig(rule_params={"AEM-3": {"factoryType": "com.example.Factory"}})

        apply_rule_params(rules, config)

        assert rules[1].factory_type == "com.example.Factory"
        assert rules[0].jcr_property_annotation == "com.cognifide.slice.mapper.annotation.JcrProperty"

    def test_apply_rule_params_rejects_unknown_parameter(self):
        """Test that an unknown configured parameter is an error."""
        config = EngineConfig(rule_params={"AEM-3": {"colour": "red"}})

        with pytest.raises(RuleConfigurationError):
            apply_rule_params([ResourceResolverShouldBeClosedRule()], config)
