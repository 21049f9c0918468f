"""
Configuration management for the AEM rules engine.

Settings are read from a YAML file (``.aem-rules.yml``) and merged over the
defaults below. Rule parameters configured there are applied to rule
instances with ``apply_rule_params``.
"""

import copy
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from .errors import RuleConfigurationError

logger = logging.getLogger(__name__)

CONFIG_NAMES = [".aem-rules.yml", ".aem-rules.yaml", "aem-rules.yml", "aem-rules.yaml"]


@dataclass
class EngineConfig:
    """Configuration for the rules engine."""

    # Rule key patterns to run (fnmatch); empty means all rules
    enabled_rules: List[str] = field(default_factory=list)
    max_findings_per_file: int = 50

    # Rule severity overrides (rule key -> severity)
    rule_severities: Dict[str, str] = field(default_factory=dict)

    # Rule parameters (rule key -> {param key -> value})
    rule_params: Dict[str, Dict[str, Any]] = field(default_factory=dict)


_DEFAULTS: Dict[str, Any] = {
    "enabled_rules": [],
    "max_findings_per_file": 50,
    "rule_severities": {},
    "rule_params": {
        "AEM-12": {
            "sliceResourceAnnotation": "com.cognifide.slice.mapper.annotation.SliceResource",
            "jcrPropertyAnnotation": "com.cognifide.slice.mapper.annotation.JcrProperty",
        },
    },
}


def load_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Path to config file (YAML). If None, uses defaults.

    Returns:
        EngineConfig instance
    """
    defaults = copy.deepcopy(_DEFAULTS)

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f) or {}

            merged_config = defaults.copy()
            merged_config.update({k: v for k, v in file_config.items() if k in defaults})

            # Deep merge rule severities
            if "rule_severities" in file_config:
                merged_config["rule_severities"] = dict(defaults["rule_severities"])
                merged_config["rule_severities"].update(file_config["rule_severities"] or {})

            # Deep merge rule params
            if "rule_params" in file_config:
                merged_config["rule_params"] = defaults["rule_params"]
                for rule_key, params in (file_config["rule_params"] or {}).items():
                    merged_config["rule_params"].setdefault(rule_key, {}).update(params or {})

            return EngineConfig(**merged_config)

        except (OSError, yaml.YAMLError, AttributeError, TypeError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}; using default configuration")

    return EngineConfig(**defaults)


def get_default_config() -> EngineConfig:
    """Get default configuration without loading from file."""
    return load_config(None)


def save_config(config: EngineConfig, config_path: str) -> None:
    """Save configuration to ``config_path`` as YAML."""
    config_dict = {
        "enabled_rules": config.enabled_rules,
        "max_findings_per_file": config.max_findings_per_file,
        "rule_severities": config.rule_severities,
        "rule_params": config.rule_params,
    }

    directory = os.path.dirname(config_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.dump(config_dict, f, default_flow_style=False, indent=2)


def find_config_file(start_path: str = ".") -> Optional[str]:
    """
    Find configuration file by walking up the directory tree.

    Looks for ``CONFIG_NAMES`` in order in each directory.

    Returns:
        Path to config file or None if not found
    """
    current_path = os.path.abspath(start_path)
    if os.path.isfile(current_path):
        current_path = os.path.dirname(current_path)

    while True:
        for config_name in CONFIG_NAMES:
            config_path = os.path.join(current_path, config_name)
            if os.path.exists(config_path):
                return config_path

        parent_path = os.path.dirname(current_path)
        if parent_path == current_path:
            break
        current_path = parent_path

    return None


def get_rule_severity(rule_key: str, config: EngineConfig, default_severity: str) -> str:
    """Configured severity for a rule, falling back to ``default_severity``."""
    if config.rule_severities and rule_key in config.rule_severities:
        return config.rule_severities[rule_key]
    return default_severity


def apply_rule_params(rules, config: EngineConfig) -> None:
    """
    Configure rule instances with the parameters of ``config.rule_params``.

    Raises:
        RuleConfigurationError: a rule rejects one of its parameters
    """
    for rule in rules:
        params = config.rule_params.get(rule.key)
        if not params:
            continue
        if not hasattr(rule, "configure"):
            raise RuleConfigurationError(f"Rule {rule.key} does not accept parameters")
        rule.configure(params)
