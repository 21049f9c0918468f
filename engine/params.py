"""
Rule parameter declarations and parameter types.

Rules declare their parameters as ``RuleProperty`` class attributes:

    class MyRule(BaseRule):
        max_depth = RuleProperty(key="maxDepth", default_value="3",
                                 description="Maximum allowed depth", native_type=int)

The rules loader turns every declared property into a parameter definition;
on a rule instance the attribute reads back the configured (or default) value.
"""

import re
from typing import Any, Dict, Optional, Tuple


class RuleParamType:
    """Type of a rule parameter, e.g. ``INTEGER`` or a select list.

    The textual form is the one used in rule declarations:
    ``TYPE[,multiple=true][,values="a,b,c"]``.
    """

    STRING_NAME = "STRING"
    TEXT_NAME = "TEXT"
    BOOLEAN_NAME = "BOOLEAN"
    INTEGER_NAME = "INTEGER"
    FLOAT_NAME = "FLOAT"
    SINGLE_SELECT_LIST_NAME = "SINGLE_SELECT_LIST"

    ALLOWED_TYPES = (STRING_NAME, TEXT_NAME, BOOLEAN_NAME, INTEGER_NAME, FLOAT_NAME,
                     SINGLE_SELECT_LIST_NAME)

    # Splits on commas that are not inside double quotes
    _OPTION_SEPARATOR = re.compile(r',(?=(?:[^"]*"[^"]*")*[^"]*$)')

    def __init__(self, type_name: str, multiple: bool = False, values: Tuple[str, ...] = ()):
        self.type_name = type_name
        self.multiple = multiple
        self.values = tuple(values)

    @classmethod
    def single_select_list(cls, *values: str) -> 'RuleParamType':
        return cls(cls.SINGLE_SELECT_LIST_NAME, multiple=False, values=values)

    @classmethod
    def multiple_list_of_values(cls, *values: str) -> 'RuleParamType':
        return cls(cls.SINGLE_SELECT_LIST_NAME, multiple=True, values=values)

    @classmethod
    def parse(cls, text: str) -> 'RuleParamType':
        """Parse the textual form of a parameter type.

        Raises:
            ValueError: the type name is not one of ALLOWED_TYPES, or an option
                is malformed or unknown.
        """
        parts = [part.strip() for part in cls._OPTION_SEPARATOR.split(text.strip())]
        type_name = parts[0]
        if type_name not in cls.ALLOWED_TYPES:
            raise ValueError(f"Unsupported parameter type: {type_name}")

        multiple = False
        values: Tuple[str, ...] = ()
        for option in parts[1:]:
            if not option:
                continue
            name, sep, raw = option.partition("=")
            if not sep:
                raise ValueError(f"Malformed parameter type option: {option}")
            name = name.strip()
            raw = raw.strip()
            if name == "multiple":
                multiple = raw.lower() == "true"
            elif name == "values":
                raw = raw.strip('"')
                values = tuple(v.strip() for v in raw.split(",") if v.strip())
            else:
                raise ValueError(f"Unknown parameter type option: {name}")
        return cls(type_name, multiple=multiple, values=values)

    def convert(self, raw: Any) -> Any:
        """Convert a raw (usually string) value to this type's Python value."""
        if raw is None or not isinstance(raw, str):
            return raw
        if self.type_name == self.INTEGER_NAME:
            return int(raw) if raw.strip() else None
        if self.type_name == self.FLOAT_NAME:
            return float(raw) if raw.strip() else None
        if self.type_name == self.BOOLEAN_NAME:
            return raw.strip().lower() == "true"
        if self.type_name == self.SINGLE_SELECT_LIST_NAME and self.multiple:
            return [v.strip() for v in raw.split(",") if v.strip()]
        return raw

    def __str__(self) -> str:
        text = self.type_name
        if self.multiple:
            text += ",multiple=true"
        if self.values:
            text += ',values="' + ",".join(self.values) + '"'
        return text

    def __repr__(self) -> str:
        return f"RuleParamType({str(self)!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, RuleParamType):
            return NotImplemented
        return (self.type_name, self.multiple, self.values) == \
            (other.type_name, other.multiple, other.values)

    def __hash__(self) -> int:
        return hash((self.type_name, self.multiple, self.values))


RuleParamType.STRING = RuleParamType(RuleParamType.STRING_NAME)
RuleParamType.TEXT = RuleParamType(RuleParamType.TEXT_NAME)
RuleParamType.BOOLEAN = RuleParamType(RuleParamType.BOOLEAN_NAME)
RuleParamType.INTEGER = RuleParamType(RuleParamType.INTEGER_NAME)
RuleParamType.FLOAT = RuleParamType(RuleParamType.FLOAT_NAME)


# Native type -> parameter type; anything else is a STRING
TYPE_FOR_NATIVE: Dict[type, RuleParamType] = {
    int: RuleParamType.INTEGER,
    float: RuleParamType.FLOAT,
    bool: RuleParamType.BOOLEAN,
}


def type_for_native(native_type: Optional[type]) -> RuleParamType:
    return TYPE_FOR_NATIVE.get(native_type, RuleParamType.STRING)


class RuleProperty:
    """A configurable parameter of a rule, declared as a class attribute."""

    def __init__(self, key: str = "", description: str = "", default_value: str = "",
                 type: str = "", native_type: type = str):
        self.key = key
        self.description = description
        self.default_value = default_value
        self.type = type
        self.native_type = native_type
        self.attribute = ""

    def __set_name__(self, owner, name):
        self.attribute = name

    @property
    def param_key(self) -> str:
        return self.key.strip() or self.attribute

    def coerce(self, raw: Any) -> Any:
        """Convert a configured value to the property's value type."""
        if self.type.strip():
            return RuleParamType.parse(self.type).convert(raw)
        return type_for_native(self.native_type).convert(raw)

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        if self.attribute in instance.__dict__:
            return instance.__dict__[self.attribute]
        return self.coerce(self.default_value)

    def __set__(self, instance, value):
        instance.__dict__[self.attribute] = self.coerce(value)

    def __repr__(self) -> str:
        return f"RuleProperty({self.param_key!r}, default={self.default_value!r})"


def declared_properties(rule_class: type) -> Dict[str, RuleProperty]:
    """All properties of a rule class, inherited ones included.

    Base-class properties come first; a subclass redeclaring an attribute
    replaces the inherited property in place.
    """
    properties: Dict[str, RuleProperty] = {}
    for klass in reversed(rule_class.__mro__):
        for name, value in vars(klass).items():
            if isinstance(value, RuleProperty):
                properties[name] = value
    return properties
