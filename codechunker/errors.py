"""Exceptions raised by the chunker."""

from typing import List, Optional


class ChunkerError(Exception):
    """Base class for chunker errors."""


class RootPathError(ChunkerError):
    """Raised when an analysis root does not exist or cannot be read."""

    def __init__(self, path: str, reason: str = "does not exist"):
        self.path = path
        super().__init__(f"Root path {path} {reason}")


class UnsupportedLanguageError(ChunkerError):
    """Raised when no analyzer is registered for a language tag."""


class AnalysisCancelled(ChunkerError):
    """Raised when a cancellation signal interrupts an analysis run.

    Attributes:
        chunks: Chunks collected before cancellation, sorted
    """

    def __init__(self, chunks: Optional[List] = None):
        self.chunks = chunks or []
        super().__init__(f"Analysis cancelled after {len(self.chunks)} chunks")
