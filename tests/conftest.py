"""Pytest configuration and fixtures."""

import textwrap
from pathlib import Path
from typing import Callable, Dict

import pytest

from codechunker.indexer.grammars import LanguageRegistry


@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Write a mapping of relative paths to dedented file contents under tmp_path."""

    def _write(files: Dict[str, str]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
        return tmp_path

    return _write


@pytest.fixture(scope="session")
def registry() -> LanguageRegistry:
    return LanguageRegistry()

