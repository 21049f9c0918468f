"""
Builds rule definitions from the declarations of rule classes.

Each rule class declares a ``meta`` RuleMeta and zero or more RuleProperty
attributes. The loader turns them into ``RuleDefinition`` records, reads each
rule's markdown description from the package resources
(``rules/<key>.md``) and registers the definitions with a repository.
"""

import logging
from importlib import resources
from typing import Dict, Iterable, List, Optional

from .errors import RuleConfigurationError
from .params import RuleParamType, RuleProperty, declared_properties, type_for_native
from .repository import ParamDefinition, RuleDefinition, RulesRepository
from .rule import class_key
from .types import Cardinality, RuleMeta

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "No description yet."
DESCRIPTIONS_ANCHOR = "engine.resources"


class RulesLoader:
    """Loads rule definitions, isolating failures per rule class.

    Attributes:
        errors: rule class -> error, for classes whose load or registration failed
    """

    def __init__(self, descriptions_anchor: str = DESCRIPTIONS_ANCHOR):
        self._descriptions_anchor = descriptions_anchor
        self.errors: Dict[type, ValueError] = {}

    def load(self, repository: RulesRepository, rule_classes: Iterable[type]) -> List[RuleDefinition]:
        """Register a definition for every loadable rule class, in input order."""
        definitions = []
        for rule_class in rule_classes:
            try:
                definition = self.load_rule(rule_class)
            except RuleConfigurationError as e:
                logger.error(f"Cannot load rule {class_key(rule_class)}: {e}")
                self.errors[rule_class] = e
                continue
            if definition is None:
                continue
            try:
                repository.add_rule(definition)
            except ValueError as e:
                logger.error(f"Cannot register rule {class_key(rule_class)}: {e}")
                self.errors[rule_class] = e
                continue
            definitions.append(definition)
        return definitions

    def load_rule(self, rule_class: type) -> Optional[RuleDefinition]:
        """Build the definition of one rule class.

        Returns None (after logging a warning) when the class declares no
        RuleMeta.

        Raises:
            RuleConfigurationError: a parameter declares an unknown type
        """
        meta = getattr(rule_class, 'meta', None)
        if not isinstance(meta, RuleMeta):
            logger.warning(f"The class {class_key(rule_class)} should declare a 'meta' {RuleMeta.__name__}")
            return None

        key = meta.key.strip() or class_key(rule_class)
        name = meta.name.strip() or None
        description = self.get_description_from_resources(key) or DEFAULT_DESCRIPTION

        params = tuple(self._load_parameter(prop)
                       for prop in declared_properties(rule_class).values())

        return RuleDefinition(
            key=key,
            name=name,
            markdown_description=description,
            severity=meta.priority,
            template=meta.cardinality == Cardinality.MULTIPLE,
            status=meta.status,
            tags=frozenset(meta.tags),
            params=params,
        )

    def get_description_from_resources(self, rule_key: str) -> Optional[str]:
        path = f"rules/{rule_key}.md"
        try:
            return resources.files(self._descriptions_anchor).joinpath(path).read_text(encoding="utf-8")
        except (OSError, ModuleNotFoundError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read resource file with rule description: {path} ({e})")
            return None

    def _load_parameter(self, prop: RuleProperty) -> ParamDefinition:
        if prop.type.strip():
            try:
                param_type = RuleParamType.parse(prop.type.strip())
            except ValueError as e:
                raise RuleConfigurationError(f"Invalid property type [{prop.type}]") from e
        else:
            param_type = self.guess_type(prop.native_type)

        return ParamDefinition(
            key=prop.param_key,
            description=prop.description,
            default_value=prop.default_value,
            type=param_type,
        )

    @staticmethod
    def guess_type(native_type: Optional[type]) -> RuleParamType:
        return type_for_native(native_type)
