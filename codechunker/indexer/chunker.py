"""Symbol-level code chunking across the supported languages."""

import logging
from pathlib import Path
from threading import Event
from typing import Dict, List, Optional, Sequence, Type

import blake3

from ..errors import AnalysisCancelled, UnsupportedLanguageError
from .analyzer_base import PathAnalyzer, PathLike
from .golang_analyzer import GoAnalyzer
from .grammars import LanguageRegistry
from .html_analyzer import HtmlAnalyzer
from .laravel.adapter import LaravelAdapter
from .models import CodeChunk, sort_chunks
from .python_analyzer import PythonAnalyzer

logger = logging.getLogger(__name__)


class CodeChunker:
    """Dispatch analysis to the analyzer registered for a language."""

    ANALYZERS: Dict[str, Type[PathAnalyzer]] = {
        "go": GoAnalyzer,
        "php": LaravelAdapter,
        "python": PythonAnalyzer,
        "html": HtmlAnalyzer,
    }

    def __init__(
        self,
        registry: Optional[LanguageRegistry] = None,
        include_tests: bool = False,
        follow_gitignore: bool = False,
    ):
        """Initialize the chunker.

        Args:
            registry: Language registry, loaded from the bundled config when omitted
            include_tests: Whether test files are analyzed
            follow_gitignore: Whether to respect a .gitignore at each root
        """
        self.registry = registry or LanguageRegistry()
        self.include_tests = include_tests
        self.follow_gitignore = follow_gitignore

    def get_analyzer(self, language: str, route_files: Optional[Sequence[PathLike]] = None) -> PathAnalyzer:
        """Build a fresh analyzer for a language tag or alias.

        Raises:
            UnsupportedLanguageError: If no analyzer handles the language
        """
        canonical = self.registry.normalize_language(language)
        analyzer_cls = self.ANALYZERS.get(canonical)
        if analyzer_cls is None or self.registry.get_language_config(canonical) is None:
            raise UnsupportedLanguageError(f"Unsupported language: {language}")

        kwargs = {"include_tests": self.include_tests, "follow_gitignore": self.follow_gitignore}
        if analyzer_cls is LaravelAdapter:
            kwargs["route_files"] = route_files
        return analyzer_cls(self.registry, **kwargs)

    def chunk_paths(
        self,
        paths: Sequence[PathLike],
        language: str,
        route_files: Optional[Sequence[PathLike]] = None,
        cancel_event: Optional[Event] = None,
    ) -> List[CodeChunk]:
        """Analyze roots and return identified chunks ordered by file and line.

        Args:
            paths: Files or directories, processed in the given order
            language: Language tag or alias (go, php, laravel, python, html)
            route_files: Explicit route files for PHP projects
            cancel_event: Set to stop the run early

        Returns:
            List of code chunks

        Raises:
            UnsupportedLanguageError: If the language has no analyzer
            RootPathError: If a root does not exist
            AnalysisCancelled: If cancel_event was set; carries the partial
                result with ids assigned
        """
        analyzer = self.get_analyzer(language, route_files)
        context = analyzer.new_context(cancel_event)
        logger.info(f"Chunking {len(paths)} root(s) as {analyzer.language}")

        try:
            chunks = analyzer.analyze_paths(paths, context)
        except AnalysisCancelled as e:
            self._assign_ids(e.chunks)
            raise

        self._assign_ids(chunks)
        logger.info(f"Extracted {len(chunks)} chunks from {context.files_seen} files")
        return sort_chunks(chunks)

    def chunk_directory(self, directory: PathLike, language: str) -> List[CodeChunk]:
        """Chunk a single directory tree."""
        return self.chunk_paths([Path(directory)], language)

    def _assign_ids(self, chunks: List[CodeChunk]) -> None:
        for chunk in chunks:
            if not chunk.id:
                chunk.id = self._generate_chunk_id(chunk)

    @staticmethod
    def _generate_chunk_id(chunk: CodeChunk) -> str:
        """Generate a stable ID for a chunk using Blake3 hash.

        Args:
            chunk: Chunk to identify

        Returns:
            Hexadecimal hash string
        """
        hash_input = f"{chunk.file_path}:{chunk.start_line}-{chunk.end_line}:{chunk.kind.value}:{chunk.name}"
        return blake3.blake3(hash_input.encode()).hexdigest()[:16]
