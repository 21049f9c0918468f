"""
AEM Rules package

This package contains the rules that analyze AEM Java code. The engine's
registry discovers the ``RULES`` list of this package and instantiates each
rule class; the rules loader builds the rule definitions of the catalogue
from the same classes.

To add a new rule:
1. Create a Python file in this directory (e.g., my_rule.py)
2. Define a ``BaseRule`` subclass with a ``meta`` RuleMeta and its
   ``RuleProperty`` parameters
3. Add the class to ``RULES`` below
4. Describe the rule in ``engine/resources/rules/<key>.md``

Example rule structure:

```python
class MyRule(BaseRule):
    meta = RuleMeta(key="AEM-99", name="Do not do that", priority=Priority.MINOR)

    def visit(self, ctx: RuleContext) -> Iterable[Finding]:
        for node in find_all(ctx.tree, "method_invocation"):
            yield ctx.finding(self, node, "Do not do that")
```
"""

from typing import List

from engine.loader import RulesLoader
from engine.repository import RulesRepository

from .jcr_property_fields_in_constructor import JcrPropertyFieldsInConstructorRule
from .resource_resolver_should_be_closed import ResourceResolverShouldBeClosedRule

REPOSITORY_KEY = "AEM Rules"
REPOSITORY_NAME = "AEM Rules"
LANGUAGE = "java"

# Catalogue of rule classes, in registration order
RULES: List[type] = [
    ResourceResolverShouldBeClosedRule,
    JcrPropertyFieldsInConstructorRule,
]


def create_repository(loader: RulesLoader = None) -> RulesRepository:
    """Build the repository holding the definitions of every rule in ``RULES``."""
    repository = RulesRepository(REPOSITORY_KEY, LANGUAGE, REPOSITORY_NAME)
    (loader or RulesLoader()).load(repository, RULES)
    return repository
