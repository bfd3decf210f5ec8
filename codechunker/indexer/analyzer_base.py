"""Base class shared by the per-language analyzers."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from threading import Event
from typing import List, Optional, Sequence, Union

from .grammars import LanguageRegistry
from .models import CodeChunk
from .walker import AnalysisContext, TreeWalker

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class PathAnalyzer(ABC):
    """Turns filesystem roots into symbol chunks for one language."""

    language: str = ""

    def __init__(
        self,
        registry: Optional[LanguageRegistry] = None,
        include_tests: bool = False,
        follow_gitignore: bool = False,
    ):
        """Initialize the analyzer.

        Args:
            registry: Language registry, a fresh one is loaded when omitted
            include_tests: Whether test files are analyzed
            follow_gitignore: Whether to respect a .gitignore at each root
        """
        self.registry = registry or LanguageRegistry()
        self.include_tests = include_tests
        self.follow_gitignore = follow_gitignore
        self.walker = TreeWalker(self.registry, include_tests=include_tests, follow_gitignore=follow_gitignore)

    @abstractmethod
    def analyze_paths(
        self,
        paths: Sequence[PathLike],
        context: Optional[AnalysisContext] = None,
    ) -> List[CodeChunk]:
        """Analyze roots and return chunks sorted by file and line.

        Args:
            paths: Files or directories, processed in the given order
            context: Per-invocation state; created when omitted

        Returns:
            List of chunks

        Raises:
            RootPathError: If a root does not exist
            AnalysisCancelled: If the context's cancel event is set
        """

    @staticmethod
    def new_context(cancel_event: Optional[Event] = None) -> AnalysisContext:
        return AnalysisContext(cancel_event=cancel_event)

    @staticmethod
    def read_source(file_path: Path) -> Optional[bytes]:
        """Read a file, logging and returning None on failure."""
        try:
            with open(file_path, "rb") as f:
                return f.read()
        except OSError as e:
            logger.warning(f"Cannot read {file_path}: {e}")
            return None
