"""Filesystem traversal with per-language skip and include rules."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from threading import Event
from typing import Callable, Iterator, List, Optional, Set

from gitignore_parser import parse_gitignore

from ..errors import AnalysisCancelled, RootPathError
from .grammars import LanguageConfig, LanguageRegistry
from .models import sort_chunks

logger = logging.getLogger(__name__)


@dataclass
class AnalysisContext:
    """State for one analysis invocation.

    Created per call and passed down through the analyzers; nothing here
    outlives the invocation.
    """

    visited_dirs: Set[str] = field(default_factory=set)
    cancel_event: Optional[Event] = None
    files_seen: int = 0

    def mark_visited(self, directory: Path) -> bool:
        """Record a directory as converted.

        Args:
            directory: Directory about to be analyzed

        Returns:
            True if the directory had not been visited before
        """
        key = os.path.normcase(str(directory.resolve()))
        if key in self.visited_dirs:
            return False
        self.visited_dirs.add(key)
        return True

    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def check_cancelled(self, chunks: List) -> None:
        """Raise AnalysisCancelled with the partial result if cancellation was requested."""
        if self.is_cancelled():
            logger.info(f"Cancellation requested after {self.files_seen} files")
            raise AnalysisCancelled(sort_chunks(chunks))


class TreeWalker:
    """Enumerate candidate source files under analysis roots."""

    def __init__(
        self,
        registry: LanguageRegistry,
        include_tests: bool = False,
        follow_gitignore: bool = False,
    ):
        """Initialize the walker.

        Args:
            registry: Language registry holding skip and include rules
            include_tests: Whether test files are yielded
            follow_gitignore: Whether to respect a .gitignore at the root
        """
        self.registry = registry
        self.include_tests = include_tests
        self.follow_gitignore = follow_gitignore

    def _config(self, language: str) -> LanguageConfig:
        config = self.registry.get_language_config(language)
        if config is None:
            raise ValueError(f"Unknown language: {language}")
        return config

    def _load_gitignore(self, root: Path) -> Optional[Callable[[str], bool]]:
        if not self.follow_gitignore:
            return None
        gitignore_path = root / ".gitignore"
        if not gitignore_path.exists():
            return None
        try:
            matcher = parse_gitignore(gitignore_path)
            logger.info(f"Loaded .gitignore from {gitignore_path}")
            return matcher
        except Exception as e:
            logger.warning(f"Error parsing .gitignore: {e}")
            return None

    def accepts_file(self, file_path: Path, language: str) -> bool:
        """Check extension and test-file rules for one file."""
        config = self._config(language)
        if not config.matches_extension(file_path):
            return False
        if not self.include_tests and config.is_test_file(file_path.name):
            return False
        return True

    def walk(self, root: Path, language: str) -> Iterator[Path]:
        """Yield candidate files for a language under a root.

        Skip rules are evaluated before descending into a directory and are
        never applied to the root itself.

        Args:
            root: File or directory to scan
            language: Language tag

        Yields:
            Paths of matching files; a directory's files come sorted before its
            subdirectories, which are visited in sorted order

        Raises:
            RootPathError: If the root does not exist
        """
        root = Path(root)
        config = self._config(language)
        if not root.exists():
            raise RootPathError(str(root))

        if root.is_file():
            if config.matches_extension(root):
                yield root
            return

        gitignore_matcher = self._load_gitignore(root)

        def on_error(error: OSError) -> None:
            logger.warning(f"Cannot read directory {error.filename}: {error}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            current = Path(dirpath)
            kept = []
            for dir_name in sorted(dirnames):
                if config.is_skipped_dir(dir_name):
                    logger.debug(f"Skipping directory {current / dir_name}")
                    continue
                if gitignore_matcher and gitignore_matcher(str((current / dir_name).resolve())):
                    continue
                kept.append(dir_name)
            dirnames[:] = kept

            for file_name in sorted(filenames):
                file_path = current / file_name
                if not self.accepts_file(file_path, language):
                    continue
                if gitignore_matcher and gitignore_matcher(str(file_path.resolve())):
                    continue
                yield file_path

    def find_route_files(self, root: Path, language: str = "php") -> List[Path]:
        """Discover framework route files under a root.

        A route file lives in a directory literally named ``routes`` and has
        one of the configured route file names. A root that is itself such a
        file is returned as-is.

        Args:
            root: Project root or a single route file
            language: Language whose route rules apply

        Returns:
            Route file paths in enumeration order
        """
        root = Path(root)
        config = self._config(language)
        if not config.route_dir or not config.route_files:
            return []
        if not root.exists():
            raise RootPathError(str(root))

        if root.is_file():
            return [root] if root.name in config.route_files else []

        route_files: List[Path] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in config.route_skip_dirs)
            current = Path(dirpath)
            if current.name != config.route_dir:
                continue
            for file_name in sorted(filenames):
                if file_name in config.route_files:
                    route_files.append(current / file_name)

        logger.debug(f"Found {len(route_files)} route files under {root}")
        return route_files
