"""Tests for chunk models and runtime settings."""

from pathlib import Path

from codechunker.indexer.models import ChunkKind, CodeChunk, sort_chunks
from codechunker.settings import get_env_config


def make(name, file_path="a.go", start=1, **kwargs):
    return CodeChunk(
        kind=ChunkKind.FUNCTION,
        name=name,
        package="p",
        language="go",
        file_path=file_path,
        start_line=start,
        end_line=start,
        **kwargs,
    )


def test_to_dict_uses_kind_value():
    data = make("Run", metadata={"receiver": ""}).to_dict()
    assert data["kind"] == "function"
    assert data["metadata"] == {"receiver": ""}
    assert data["id"] == ""


def test_embedding_text_skips_empty_parts():
    chunk = make("Run", signature="func Run()", docstring="Run starts it.")
    assert chunk.embedding_text() == "Run starts it.\n\nfunc Run()"


def test_sort_is_stable():
    chunks = [make("c", "b.go", 1), make("a", "a.go", 3), make("b", "a.go", 3), make("d", "a.go", 1)]
    assert [c.name for c in sort_chunks(chunks)] == ["d", "a", "b", "c"]


def test_env_config(monkeypatch):
    monkeypatch.setenv("WORKSPACE_PATH", "/src/app")
    monkeypatch.setenv("CHUNK_LANGUAGE", "laravel")
    monkeypatch.setenv("INCLUDE_TESTS", "TRUE")
    monkeypatch.setenv("ROUTE_FILES", "routes/web.php, routes/api.php,")
    monkeypatch.delenv("FOLLOW_GITIGNORE", raising=False)

    config = get_env_config()
    assert config["workspace_path"] == Path("/src/app")
    assert config["language"] == "laravel"
    assert config["include_tests"] is True
    assert config["follow_gitignore"] is False
    assert config["route_files"] == ["routes/web.php", "routes/api.php"]
