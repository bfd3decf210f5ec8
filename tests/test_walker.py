"""Tests for file discovery and language configuration."""

import threading

import pytest

from codechunker.errors import AnalysisCancelled, RootPathError
from codechunker.indexer.models import ChunkKind, CodeChunk
from codechunker.indexer.walker import AnalysisContext, TreeWalker


def relative(paths, root):
    return [str(p.relative_to(root)).replace("\\", "/") for p in paths]


class TestLanguageRegistry:
    """Language detection and alias handling."""

    def test_detect_language_by_extension(self, registry):
        assert registry.detect_language("main.go") == "go"
        assert registry.detect_language("User.php") == "php"
        assert registry.detect_language("app.py") == "python"
        assert registry.detect_language("index.HTML") == "html"
        assert registry.detect_language("README.md") is None

    @pytest.mark.parametrize(
        "alias,canonical",
        [("laravel", "php"), ("php-laravel", "php"), ("golang", "go"), ("static-html", "html"), ("Python", "python")],
    )
    def test_aliases_resolve(self, registry, alias, canonical):
        assert registry.normalize_language(alias) == canonical
        assert registry.get_language_config(alias).name == canonical

    def test_hidden_and_configured_dirs_are_skipped(self, registry):
        config = registry.get_language_config("python")
        assert config.is_skipped_dir(".git")
        assert config.is_skipped_dir(".cache")
        assert config.is_skipped_dir("__pycache__")
        assert config.is_skipped_dir("mypkg.egg-info")
        assert not config.is_skipped_dir("src")


class TestTreeWalker:
    """Walking roots with skip rules."""

    def test_skips_vendor_and_hidden_dirs(self, write_tree, registry):
        root = write_tree(
            {
                "main.go": "package main\n",
                "pkg/util.go": "package pkg\n",
                "vendor/lib/lib.go": "package lib\n",
                ".hidden/x.go": "package x\n",
                "testdata/fixture.go": "package fixture\n",
                "notes.txt": "ignored\n",
            }
        )
        walker = TreeWalker(registry)
        assert relative(walker.walk(root, "go"), root) == ["main.go", "pkg/util.go"]

    def test_skip_rules_do_not_apply_to_root(self, write_tree, registry):
        root = write_tree({"vendor/lib/lib.go": "package lib\n", "vendor/lib/nested/vendor/x.go": "package x\n"})
        walker = TreeWalker(registry)
        found = relative(walker.walk(root / "vendor", "go"), root)
        assert found == ["vendor/lib/lib.go"]

    def test_test_files_excluded_unless_requested(self, write_tree, registry):
        root = write_tree({"svc.go": "package svc\n", "svc_test.go": "package svc\n"})
        assert relative(TreeWalker(registry).walk(root, "go"), root) == ["svc.go"]
        with_tests = TreeWalker(registry, include_tests=True)
        assert relative(with_tests.walk(root, "go"), root) == ["svc.go", "svc_test.go"]

    def test_single_file_root(self, write_tree, registry):
        root = write_tree({"one.py": "X = 1\n"})
        assert list(TreeWalker(registry).walk(root / "one.py", "python")) == [root / "one.py"]

    def test_missing_root_raises(self, tmp_path, registry):
        with pytest.raises(RootPathError):
            list(TreeWalker(registry).walk(tmp_path / "missing", "go"))

    def test_gitignore_respected_when_enabled(self, write_tree, registry):
        root = write_tree(
            {
                ".gitignore": "generated/\n",
                "keep.py": "A = 1\n",
                "generated/out.py": "B = 2\n",
            }
        )
        assert relative(TreeWalker(registry).walk(root, "python"), root) == ["keep.py", "generated/out.py"]
        ignoring = TreeWalker(registry, follow_gitignore=True)
        assert relative(ignoring.walk(root, "python"), root) == ["keep.py"]

    def test_find_route_files(self, write_tree, registry):
        root = write_tree(
            {
                "routes/web.php": "<?php\n",
                "routes/api.php": "<?php\n",
                "routes/helpers.php": "<?php\n",
                "vendor/pkg/routes/web.php": "<?php\n",
                "app/web.php": "<?php\n",
            }
        )
        found = relative(TreeWalker(registry).find_route_files(root), root)
        assert found == ["routes/api.php", "routes/web.php"]


class TestAnalysisContext:
    """Per-invocation state."""

    def test_mark_visited_once(self, tmp_path):
        context = AnalysisContext()
        assert context.mark_visited(tmp_path)
        assert not context.mark_visited(tmp_path)

    def test_check_cancelled_carries_sorted_partial_result(self):
        event = threading.Event()
        context = AnalysisContext(cancel_event=event)
        chunks = [
            CodeChunk(kind=ChunkKind.FUNCTION, name="b", package="p", language="go", file_path="b.go", start_line=1, end_line=2),
            CodeChunk(kind=ChunkKind.FUNCTION, name="a", package="p", language="go", file_path="a.go", start_line=5, end_line=6),
        ]
        context.check_cancelled(chunks)

        event.set()
        with pytest.raises(AnalysisCancelled) as excinfo:
            context.check_cancelled(chunks)
        assert [c.name for c in excinfo.value.chunks] == ["a", "b"]
