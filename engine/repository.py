"""
Rule definitions and the repository they are registered with.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from .params import RuleParamType
from .types import Priority, RuleStatus


@dataclass(frozen=True)
class ParamDefinition:
    key: str
    description: str = ""
    default_value: str = ""
    type: RuleParamType = RuleParamType.STRING


@dataclass(frozen=True)
class RuleDefinition:
    """Metadata record describing one rule."""
    key: str
    name: Optional[str]
    markdown_description: str
    severity: Priority
    template: bool = False
    status: RuleStatus = RuleStatus.READY
    tags: FrozenSet[str] = frozenset()
    params: Tuple[ParamDefinition, ...] = ()

    def param(self, key: str) -> Optional[ParamDefinition]:
        for param in self.params:
            if param.key == key:
                return param
        return None

    def to_dict(self) -> Dict:
        return {
            "key": self.key,
            "name": self.name,
            "description": self.markdown_description,
            "severity": self.severity.value,
            "template": self.template,
            "status": self.status.value,
            "tags": sorted(self.tags),
            "params": [
                {
                    "key": p.key,
                    "description": p.description,
                    "default_value": p.default_value,
                    "type": str(p.type),
                }
                for p in self.params
            ],
        }


class RulesRepository:
    """Collects the rule definitions of one repository (e.g. "AEM Rules").

    Rule keys are unique within the repository and parameter keys are unique
    within a rule; duplicates raise ``ValueError``.
    """

    def __init__(self, key: str, language: str, name: str = ""):
        self.key = key
        self.language = language
        self.name = name or key
        self._rules: Dict[str, RuleDefinition] = {}

    def add_rule(self, rule: RuleDefinition) -> RuleDefinition:
        if rule.key in self._rules:
            raise ValueError(f"The rule '{rule.key}' of repository '{self.key}' is declared several times")
        param_keys = [p.key for p in rule.params]
        duplicates = sorted({k for k in param_keys if param_keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"The parameter '{duplicates[0]}' is declared several times on rule '{rule.key}'")
        self._rules[rule.key] = rule
        return rule

    def rule(self, key: str) -> Optional[RuleDefinition]:
        return self._rules.get(key)

    @property
    def rules(self) -> List[RuleDefinition]:
        return list(self._rules.values())

    def __contains__(self, key: str) -> bool:
        return key in self._rules

    def __len__(self) -> int:
        return len(self._rules)
