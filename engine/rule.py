"""
Base class for rules of the catalogue.
"""

from typing import Any, Dict, Iterable

from .errors import RuleConfigurationError
from .params import declared_properties
from .types import Finding, RuleContext, RuleMeta


def class_key(rule_class: type) -> str:
    """Fully-qualified name of a rule class, used when its key is blank."""
    return f"{rule_class.__module__}.{rule_class.__qualname__}"


class BaseRule:
    """Shared behavior of rules: key lookup and parameter configuration.

    Subclasses declare ``meta`` and any ``RuleProperty`` attributes, and
    implement ``visit``.
    """

    meta: RuleMeta

    def __init__(self, **params: Any):
        self.configure(params)

    @property
    def key(self) -> str:
        return self.meta.key or class_key(type(self))

    def configure(self, params: Dict[str, Any]) -> None:
        """Apply parameter values keyed by parameter key (or attribute name)."""
        properties = declared_properties(type(self))
        by_key = {prop.param_key: prop for prop in properties.values()}
        for key, value in params.items():
            prop = by_key.get(key) or properties.get(key)
            if prop is None:
                raise RuleConfigurationError(f"Rule {self.key} has no parameter '{key}'")
            try:
                setattr(self, prop.attribute, value)
            except ValueError as e:
                raise RuleConfigurationError(
                    f"Invalid value {value!r} for parameter '{key}' of rule {self.key}") from e

    def parameters(self) -> Dict[str, Any]:
        """Current parameter values keyed by parameter key."""
        return {prop.param_key: getattr(self, prop.attribute)
                for prop in declared_properties(type(self)).values()}

    def visit(self, ctx: RuleContext) -> Iterable[Finding]:
        raise NotImplementedError
