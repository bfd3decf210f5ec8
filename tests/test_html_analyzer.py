"""Tests for HTML section chunking."""

import pytest

from codechunker.indexer.html_analyzer import HtmlAnalyzer
from codechunker.indexer.models import ChunkKind

GUIDE = """
<!DOCTYPE html>
<html>
<head>
  <title>Widget Guide</title>
  <style>body { color: red; }</style>
</head>
<body>
  <h1 id="intro" class="title main">Introduction</h1>
  <p>Widgets are small.</p>
  <!-- hidden note -->
  <h2>Install</h2>
  <p>Run the installer:</p>
  <pre><code>pip install widget</code></pre>
  <h2>Usage</h2>
  <p>Call <code>widget.run()</code> to start.</p>
  <script>var x = 1;</script>
  <h3>Advanced</h3>
  <p>Tune it.</p>
</body>
</html>
"""


@pytest.fixture
def sections(write_tree, registry):
    root = write_tree({"docs/guide.html": GUIDE})
    return HtmlAnalyzer(registry).analyze_paths([root])


class TestSections:
    """One chunk per heading."""

    def test_section_names_and_kinds(self, sections):
        assert [(c.kind, c.name) for c in sections] == [
            (ChunkKind.SECTION, "Introduction"),
            (ChunkKind.SECTION, "Install"),
            (ChunkKind.SECTION, "Usage"),
            (ChunkKind.SECTION, "Advanced"),
        ]
        assert {c.package for c in sections} == {"Widget Guide"}

    def test_line_ranges(self, sections):
        assert [(c.start_line, c.end_line) for c in sections] == [(8, 10), (11, 13), (14, 16), (17, 20)]

    def test_text_skips_comments_and_scripts(self, sections):
        intro, _, usage, _ = sections
        assert intro.docstring == "Widgets are small."
        assert usage.docstring == "Call widget.run() to start."
        assert intro.signature == "<h1>Introduction</h1>"

    def test_code_blocks(self, sections):
        install, usage = sections[1], sections[2]
        assert install.code == "pip install widget"
        assert install.metadata["code_blocks"] == 1
        assert usage.code == "widget.run()"

    def test_metadata(self, sections):
        intro, install, _, advanced = sections
        assert intro.metadata["html_id"] == "intro"
        assert intro.metadata["class"] == "title main"
        assert intro.metadata["heading_level"] == 1
        assert install.metadata["parent_sections"] == ["Introduction"]
        assert advanced.metadata["parent_sections"] == ["Introduction", "Usage"]
        assert advanced.metadata["page_title"] == "Widget Guide"


class TestFallback:
    """Pages without headings."""

    def test_file_chunk_when_no_headings(self, write_tree, registry):
        root = write_tree({"plain.html": "<html><head><title>Plain</title></head><body><p>Just text.</p></body></html>\n"})
        chunks = HtmlAnalyzer(registry).analyze_paths([root])
        assert len(chunks) == 1
        assert chunks[0].kind == ChunkKind.FILE
        assert chunks[0].name == "Plain"
        assert chunks[0].docstring == "Just text."
        assert (chunks[0].start_line, chunks[0].end_line) == (1, 1)

    def test_empty_page_yields_nothing(self, write_tree, registry):
        root = write_tree({"empty.html": "<html><body></body></html>\n"})
        assert HtmlAnalyzer(registry).analyze_paths([root]) == []


class TestErrors:
    """Per-file failures."""

    def test_failing_page_does_not_stop_the_run(self, write_tree, registry, monkeypatch):
        root = write_tree(
            {
                "a_broken.html": "<html><body><h1>Broken</h1></body></html>\n",
                "b_fine.html": "<html><body><h1>Fine</h1><p>Works.</p></body></html>\n",
            }
        )
        analyzer = HtmlAnalyzer(registry)
        analyze_soup = analyzer.analyze_soup

        def failing_soup(soup, file_path, line_count):
            if file_path.endswith("a_broken.html"):
                raise RuntimeError("unexpected markup")
            return analyze_soup(soup, file_path, line_count)

        monkeypatch.setattr(analyzer, "analyze_soup", failing_soup)
        chunks = analyzer.analyze_paths([root])
        assert [c.name for c in chunks] == ["Fine"]
