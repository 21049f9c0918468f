"""
Shared fixtures for the AEM rules tests.
"""

import textwrap
from pathlib import Path

import pytest

from engine import registry
from engine.java_adapter import JavaAdapter
from engine.types import RuleContext

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "java"


@pytest.fixture(scope="session")
def java_adapter():
    return JavaAdapter()


@pytest.fixture
def parse_java(java_adapter):
    """Parse a (possibly indented) Java snippet into a CompilationUnit."""
    def parse(source: str):
        return java_adapter.parse(textwrap.dedent(source))
    return parse


@pytest.fixture
def make_context(java_adapter):
    """Build the RuleContext a rule sees for a Java snippet."""
    def make(source: str, file_path: str = "Sample.java") -> RuleContext:
        text = textwrap.dedent(source)
        return RuleContext(file_path=file_path, text=text, tree=java_adapter.parse(text))
    return make


@pytest.fixture
def clean_registry():
    """Give a test an empty global registry and clear it again afterwards."""
    registry.clear()
    yield registry.get_registry()
    registry.clear()
