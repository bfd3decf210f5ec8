"""Tests for the language-dispatching chunker."""

import threading

import pytest

from codechunker.errors import AnalysisCancelled, RootPathError, UnsupportedLanguageError
from codechunker.indexer.chunker import CodeChunker
from codechunker.indexer.laravel.adapter import LaravelAdapter
from codechunker.indexer.models import ChunkKind

GO_SOURCE = "package calc\n\n// Add sums two ints.\nfunc Add(a, b int) int {\n\treturn a + b\n}\n\n// Zero is nothing.\nconst Zero = 0\n"


class TripAfter(threading.Event):
    """Event that reports set after a number of checks."""

    def __init__(self, checks: int):
        super().__init__()
        self.checks = checks

    def is_set(self) -> bool:
        self.checks -= 1
        return self.checks < 0


class TestDispatch:
    """Language selection."""

    def test_unsupported_language(self, tmp_path, registry):
        with pytest.raises(UnsupportedLanguageError):
            CodeChunker(registry).chunk_paths([tmp_path], "rust")

    def test_alias_selects_laravel_adapter(self, registry):
        assert isinstance(CodeChunker(registry).get_analyzer("laravel"), LaravelAdapter)

    def test_missing_root(self, tmp_path, registry):
        with pytest.raises(RootPathError):
            CodeChunker(registry).chunk_paths([tmp_path / "absent"], "go")


class TestChunkIds:
    """Identifiers and output invariants."""

    def test_ids_assigned_and_stable(self, write_tree, registry):
        root = write_tree({"calc/calc.go": GO_SOURCE})
        first = CodeChunker(registry).chunk_paths([root], "go")
        second = CodeChunker(registry).chunk_paths([root], "go")

        assert [c.name for c in first] == ["Add", "Zero"]
        assert all(len(c.id) == 16 for c in first)
        assert len({c.id for c in first}) == len(first)
        assert [c.to_dict() for c in first] == [c.to_dict() for c in second]

    def test_sorted_across_roots(self, write_tree, registry):
        root = write_tree({"b/b.py": "def second():\n    pass\n", "a/a.py": "def first():\n    pass\n"})
        chunks = CodeChunker(registry).chunk_paths([root / "b", root / "a"], "python")
        assert [c.name for c in chunks] == ["first", "second"]

    def test_line_invariants(self, write_tree, registry):
        root = write_tree({"calc/calc.go": GO_SOURCE})
        for chunk in CodeChunker(registry).chunk_paths([root], "go"):
            assert 1 <= chunk.start_line <= chunk.end_line
            if chunk.selection_start_line is not None:
                assert chunk.start_line <= chunk.selection_start_line <= chunk.end_line


class TestCancellation:
    """Cancellation returns the partial result."""

    def test_cancel_before_start(self, write_tree, registry):
        root = write_tree({"a.py": "def a():\n    pass\n"})
        event = threading.Event()
        event.set()
        with pytest.raises(AnalysisCancelled) as excinfo:
            CodeChunker(registry).chunk_paths([root], "python", cancel_event=event)
        assert excinfo.value.chunks == []

    def test_partial_result_has_ids(self, write_tree, registry):
        root = write_tree(
            {
                "a.py": "def a():\n    pass\n",
                "b.py": "def b():\n    pass\n",
                "c.py": "def c():\n    pass\n",
            }
        )
        with pytest.raises(AnalysisCancelled) as excinfo:
            CodeChunker(registry).chunk_paths([root], "python", cancel_event=TripAfter(2))
        partial = excinfo.value.chunks
        assert [c.name for c in partial] == ["a", "b"]
        assert all(c.id for c in partial)
        assert all(c.kind == ChunkKind.FUNCTION for c in partial)
