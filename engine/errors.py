"""
Exceptions raised by the AEM rules engine.
"""


class RuleConfigurationError(ValueError):
    """A rule declaration or its configured parameters are invalid.

    Raised while loading one rule's metadata or applying parameter values to a
    rule; it never aborts loading of the other rules.
    """
