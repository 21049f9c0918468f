"""
Java language adapter backed by tree-sitter.
"""
import logging
import os
from typing import List, Optional, Tuple

import tree_sitter

from .java_tree import build_compilation_unit
from .syntax import CompilationUnit
from .types import LanguageAdapter

logger = logging.getLogger(__name__)


class JavaAdapter(LanguageAdapter):
    """Parses Java with tree-sitter and converts the result to the syntax model."""

    def __init__(self):
        self._parser = None

    @property
    def language_id(self) -> str:
        return "java"

    @property
    def file_extensions(self) -> Tuple[str, ...]:
        return (".java",)

    def _get_parser(self):
        """Get or create the tree-sitter parser."""
        if self._parser is None:
            try:
                from tree_sitter_java import language

                java_language = tree_sitter.Language(language())
                self._parser = tree_sitter.Parser(java_language)
            except ImportError as e:
                logger.warning(f"tree-sitter-java not available: {e}")
                self._parser = None
        return self._parser

    def parse_tree(self, text):
        """Parse text and return the raw tree-sitter tree."""
        parser = self._get_parser()
        if parser is None:
            return None
        text_bytes = text.encode('utf-8') if isinstance(text, str) else text
        return parser.parse(text_bytes)

    def parse(self, text) -> Optional[CompilationUnit]:
        """Parse text and return the file's CompilationUnit."""
        text_bytes = text.encode('utf-8') if isinstance(text, str) else text
        tree = self.parse_tree(text_bytes)
        if tree is None:
            return None
        return build_compilation_unit(tree, text_bytes)

    def list_files(self, paths: List[str]) -> List[str]:
        """List all Java files in the given paths."""
        java_files = []

        for path in paths:
            if os.path.isfile(path):
                if path.endswith(self.file_extensions):
                    java_files.append(path)
            elif os.path.isdir(path):
                for root, dirs, files in os.walk(path):
                    # Skip hidden and build output directories
                    dirs[:] = [d for d in dirs if not d.startswith('.') and d not in ('target', 'build', 'node_modules')]

                    for file in files:
                        if file.endswith(self.file_extensions):
                            java_files.append(os.path.join(root, file))

        return sorted(java_files)


default_java_adapter = JavaAdapter()
