"""
Registry for rules and language adapters.

This module provides a central registry to register and discover rule
instances and language adapters.
"""

import fnmatch
import importlib
import os
import pkgutil
import sys
from typing import Dict, List, Optional

from .errors import RuleConfigurationError
from .types import LanguageAdapter, Rule


class Registry:
    """Central registry for rules and adapters."""

    def __init__(self):
        self._rules: List[Rule] = []
        self._adapters: Dict[str, LanguageAdapter] = {}
        self._rule_index: Dict[str, Rule] = {}  # key -> rule

    def register_rule(self, rule: Rule) -> None:
        """Register a rule instance. A second rule with the same key is ignored."""
        if rule.key in self._rule_index:
            return

        self._rules.append(rule)
        self._rule_index[rule.key] = rule

    def register_adapter(self, language: str, adapter: LanguageAdapter) -> None:
        """Register a language adapter. Silently skips if already registered."""
        if language in self._adapters:
            return

        self._adapters[language] = adapter

    def get_adapter(self, language: str) -> Optional[LanguageAdapter]:
        return self._adapters.get(language)

    def get_adapter_for_file(self, file_path: str) -> Optional[LanguageAdapter]:
        """Get adapter for a file based on its extension."""
        ext = os.path.splitext(file_path)[1].lower()

        for adapter in self._adapters.values():
            if ext in adapter.file_extensions:
                return adapter
        return None

    def get_rule(self, rule_key: str) -> Optional[Rule]:
        return self._rule_index.get(rule_key)

    def get_all_rules(self) -> List[Rule]:
        return self._rules.copy()

    def get_rules(self, filter_keys: Optional[List[str]] = None) -> List[Rule]:
        """Get rules, optionally filtered by keys."""
        if filter_keys is None:
            return self.get_all_rules()

        rules = []
        for rule_key in filter_keys:
            rule = self.get_rule(rule_key)
            if rule:
                rules.append(rule)
            else:
                print(f"Warning: Rule '{rule_key}' not found", file=sys.stderr)
        return rules

    def get_rule_keys(self) -> List[str]:
        return list(self._rule_index.keys())

    def get_rules_for_language(self, language: str) -> List[Rule]:
        return [rule for rule in self._rules if language in rule.meta.langs]

    def get_enabled_rules(self, enabled_patterns: List[str], language: str) -> List[Rule]:
        """Get the rules of ``language`` whose key matches one of the patterns.

        An empty pattern list enables every rule.
        """
        language_rules = self.get_rules_for_language(language)
        if not enabled_patterns or enabled_patterns == ["*"]:
            return language_rules

        return [rule for rule in language_rules
                if any(fnmatch.fnmatch(rule.key, pattern) for pattern in enabled_patterns)]

    def list_supported_languages(self) -> List[str]:
        return list(self._adapters.keys())

    def discover_rules(self, entry_packages: List[str]) -> int:
        """
        Auto-discover and register rules from packages.

        Every module of the packages may expose a ``RULES`` list of rule
        classes (or instances).

        Returns:
            Number of rules discovered and registered
        """
        initial_count = len(self._rules)

        for package_name in entry_packages:
            try:
                package = importlib.import_module(package_name)
            except ImportError as e:
                print(f"Warning: Could not import package {package_name}: {e}", file=sys.stderr)
                continue

            self._extract_rules_from_module(package, package_name)
            if hasattr(package, '__path__'):
                for _, modname, _ in pkgutil.walk_packages(package.__path__, package.__name__ + "."):
                    try:
                        module = importlib.import_module(modname)
                    except ImportError as e:
                        print(f"Warning: Failed to import {modname}: {e}", file=sys.stderr)
                        continue
                    self._extract_rules_from_module(module, modname)

        return len(self._rules) - initial_count

    def _extract_rules_from_module(self, module, module_name: str) -> None:
        rules = getattr(module, 'RULES', None)
        if not isinstance(rules, list):
            return
        for rule in rules:
            try:
                self.register_rule(rule() if isinstance(rule, type) else rule)
            except RuleConfigurationError as e:
                print(f"Warning: Failed to register rule from {module_name}: {e}", file=sys.stderr)

    def clear(self) -> None:
        """Clear all registered rules and adapters (mainly for testing)."""
        self._rules.clear()
        self._adapters.clear()
        self._rule_index.clear()


# Global registry instance
_global_registry = Registry()


def load_default_adapters() -> None:
    """Register the Java adapter with the global registry."""
    from .java_adapter import default_java_adapter
    _global_registry.register_adapter("java", default_java_adapter)


# Convenience functions that operate on the global registry
def register_rule(rule: Rule) -> None:
    _global_registry.register_rule(rule)


def register_adapter(language: str, adapter: LanguageAdapter) -> None:
    _global_registry.register_adapter(language, adapter)


def get_adapter(language: str) -> Optional[LanguageAdapter]:
    return _global_registry.get_adapter(language)


def get_adapter_for_file(file_path: str) -> Optional[LanguageAdapter]:
    return _global_registry.get_adapter_for_file(file_path)


def get_rule(rule_key: str) -> Optional[Rule]:
    return _global_registry.get_rule(rule_key)


def get_all_rules() -> List[Rule]:
    return _global_registry.get_all_rules()


def get_enabled_rules(enabled_patterns: List[str], language: str) -> List[Rule]:
    return _global_registry.get_enabled_rules(enabled_patterns, language)


def discover_rules(entry_packages: List[str]) -> int:
    return _global_registry.discover_rules(entry_packages)


def clear() -> None:
    _global_registry.clear()


def get_registry() -> Registry:
    """Get the global registry instance (for advanced usage)."""
    return _global_registry
