"""
AEM rules engine package.

This package provides the syntax model, the tree visitor, rule metadata
loading and the runner used by the AEM Java rules.
"""

from .types import (
    Finding, RuleMeta, Rule, RuleContext, LanguageAdapter,
    Priority, RuleStatus, Cardinality,
)

from .errors import RuleConfigurationError

from .registry import (
    register_rule, register_adapter, get_adapter, get_rule,
    get_all_rules, get_enabled_rules, discover_rules, clear
)

from .config import (
    EngineConfig, load_config, get_default_config, save_config, find_config_file,
    get_rule_severity, apply_rule_params
)

__all__ = [
    # Types
    "Finding", "RuleMeta", "Rule", "RuleContext", "LanguageAdapter",
    "Priority", "RuleStatus", "Cardinality",

    # Errors
    "RuleConfigurationError",

    # Registry
    "register_rule", "register_adapter", "get_adapter", "get_rule",
    "get_all_rules", "get_enabled_rules", "discover_rules", "clear",

    # Config
    "EngineConfig", "load_config", "get_default_config", "save_config", "find_config_file",
    "get_rule_severity", "apply_rule_params",
]
