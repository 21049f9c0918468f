"""
Core types for the AEM rules engine.

This module provides shared dataclasses and types used across the engine,
the Java adapter, and the rules.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Protocol, Tuple
from abc import ABC, abstractmethod


class Priority(str, Enum):
    """Severity levels a rule can be declared with."""
    INFO = "INFO"
    MINOR = "MINOR"
    MAJOR = "MAJOR"
    CRITICAL = "CRITICAL"
    BLOCKER = "BLOCKER"


class RuleStatus(str, Enum):
    """Lifecycle status of a rule."""
    READY = "READY"
    BETA = "BETA"
    DEPRECATED = "DEPRECATED"
    REMOVED = "REMOVED"


class Cardinality(str, Enum):
    """SINGLE rules are concrete; MULTIPLE rules are parametrizable templates."""
    SINGLE = "SINGLE"
    MULTIPLE = "MULTIPLE"


@dataclass(frozen=True)
class Finding:
    """A finding represents an issue detected by a rule."""
    rule: str
    message: str
    file: str
    start_byte: int
    end_byte: int
    severity: str
    line: int = 1
    column: int = 1


@dataclass(frozen=True)
class RuleMeta:
    """Declarative metadata of a rule class.

    A rule class declares one ``meta`` attribute; the rules loader reads it to
    build the rule definition registered with a repository.

    Attributes:
        key: Unique rule key (e.g., "AEM-12"). Blank means "use the class name".
        name: Human-readable rule name
        priority: Default severity of the rule's findings
        tags: Tags attached to the rule definition
        status: Lifecycle status
        cardinality: MULTIPLE marks the rule as a template
        langs: Languages the rule can analyze
    """
    key: str = ""
    name: str = ""
    priority: Priority = Priority.MAJOR
    tags: Tuple[str, ...] = ()
    status: RuleStatus = RuleStatus.READY
    cardinality: Cardinality = Cardinality.SINGLE
    langs: Tuple[str, ...] = ("java",)


@dataclass
class RuleContext:
    """Context passed to rules during execution."""
    file_path: str
    text: str
    tree: Any  # engine.syntax.CompilationUnit

    def finding(self, rule: 'Rule', node, message: str) -> Finding:
        """Build a finding for ``rule`` located at a syntax node."""
        return Finding(
            rule=rule.key,
            message=message,
            file=self.file_path,
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            severity=rule.meta.priority.value,
            line=node.line,
            column=node.column,
        )


class Rule(Protocol):
    """Protocol for all rules in the engine.

    Rules analyze one file and return findings. Rule instances only hold their
    configuration; all per-file state lives in visitors created by ``visit``.
    """
    meta: RuleMeta

    @property
    def key(self) -> str:
        ...

    def visit(self, ctx: RuleContext) -> Iterable[Finding]:
        """Visit a file and return findings.

        Args:
            ctx: Rule context containing file path, text and syntax tree

        Returns:
            Iterable of findings for this file
        """
        ...


class LanguageAdapter(ABC):
    """Abstract base class for language adapters."""

    @property
    @abstractmethod
    def language_id(self) -> str:
        """Return the language identifier (e.g., 'java')."""
        pass

    @property
    @abstractmethod
    def file_extensions(self) -> Tuple[str, ...]:
        """Return supported file extensions (e.g., ('.java',))."""
        pass

    @abstractmethod
    def parse(self, text: str) -> Any:
        """Parse text and return the engine's syntax tree, or None on failure."""
        pass

    @abstractmethod
    def list_files(self, paths: List[str]) -> List[str]:
        """List all files matching this adapter's extensions in the given paths."""
        pass
