"""Tests for Go package analysis."""

import pytest

from codechunker.indexer.golang_analyzer import GoAnalyzer, clean_doc, extract_examples
from codechunker.indexer.models import ChunkKind

SHAPES = '''
// Package shapes provides geometry helpers.
package shapes

import (
	"fmt"
	m "math"
)

// MaxSides is the largest polygon supported.
const MaxSides int = 12

var registry = map[string]int{}

// Shape is anything with an area.
type Shape interface {
	// Area returns the surface.
	Area() float64
}

// Circle is a round shape.
type Circle struct {
	Radius float64 `json:"radius"`
	label  string
}

// NewCircle builds a circle.
//
// Example:
//   c := NewCircle(2)
func NewCircle(r float64) *Circle {
	return &Circle{Radius: r}
}

// Area returns the circle area.
func (c *Circle) Area() float64 {
	return m.Pi * c.Radius * c.Radius
}

func (c *Circle) String() string {
	return fmt.Sprintf("circle(%v)", c.Radius)
}

func helper() {}
'''


def find(chunks, name, kind):
    matches = [c for c in chunks if c.name == name and c.kind == kind]
    assert len(matches) == 1, f"expected one {kind.value} named {name}"
    return matches[0]


@pytest.fixture
def shapes_chunks(write_tree, registry):
    root = write_tree({"shapes/shapes.go": SHAPES})
    return GoAnalyzer(registry).analyze_paths([root])


class TestGoAnalyzer:
    """Symbol extraction from a Go package."""

    def test_exported_symbols_only(self, shapes_chunks):
        names = {(c.kind, c.name) for c in shapes_chunks}
        assert (ChunkKind.FUNCTION, "helper") not in names
        assert not any(c.name in ("registry", "label") for c in shapes_chunks)
        assert (ChunkKind.FUNCTION, "NewCircle") in names

    def test_package_doc_becomes_file_chunk(self, shapes_chunks):
        doc = find(shapes_chunks, "shapes", ChunkKind.FILE)
        assert doc.docstring == "Package shapes provides geometry helpers."
        assert doc.signature == "package shapes"
        assert doc.start_line == 1
        assert doc.metadata["imports"] == {"fmt": "fmt", "m": "math"}

    def test_function_signature_and_doc(self, shapes_chunks):
        fn = find(shapes_chunks, "NewCircle", ChunkKind.FUNCTION)
        assert fn.signature == "func NewCircle(r float64) *Circle"
        assert fn.docstring.startswith("NewCircle builds a circle.")
        assert fn.metadata["params"] == [{"name": "r", "type": "float64"}]
        assert fn.metadata["examples"] == ["  c := NewCircle(2)"]
        assert fn.code.startswith("func NewCircle")
        assert fn.package == "shapes"

    def test_type_with_methods(self, shapes_chunks):
        circle = find(shapes_chunks, "Circle", ChunkKind.TYPE)
        assert circle.signature == "struct Circle"
        assert circle.docstring == "Circle is a round shape."
        assert circle.metadata["method_names"] == ["Area", "String"]
        assert circle.metadata["fields"] == [
            {"name": "Radius", "type": "float64", "tag": '`json:"radius"`', "description": ""}
        ]

        area = find(shapes_chunks, "Area", ChunkKind.METHOD)
        assert area.signature == "func (c *Circle) Area() float64"
        assert area.metadata["receiver"] == "Circle"
        assert area.docstring == "Area returns the circle area."
        string = find(shapes_chunks, "String", ChunkKind.METHOD)
        assert string.docstring == ""
        assert string.end_line == string.start_line + 2

    def test_interface(self, shapes_chunks):
        shape = find(shapes_chunks, "Shape", ChunkKind.INTERFACE)
        assert shape.signature == "interface Shape"
        methods = shape.metadata["methods"]
        assert [m["name"] for m in methods] == ["Area"]
        assert methods[0]["signature"] == "Area() float64"
        assert methods[0]["description"] == "Area returns the surface."

    def test_constant(self, shapes_chunks):
        const = find(shapes_chunks, "MaxSides", ChunkKind.CONST)
        assert const.signature == "const MaxSides int"
        assert const.code == "12"
        assert const.docstring == "MaxSides is the largest polygon supported."

    def test_chunks_sorted_and_ranges_valid(self, shapes_chunks):
        keys = [(c.file_path, c.start_line) for c in shapes_chunks]
        assert keys == sorted(keys)
        for chunk in shapes_chunks:
            assert 1 <= chunk.start_line <= chunk.end_line


class TestGoPackages:
    """Cross-file and error handling behavior."""

    def test_methods_declared_in_another_file(self, write_tree, registry):
        root = write_tree(
            {
                "store/store.go": "package store\n\n// Store keeps items.\ntype Store struct{}\n",
                "store/get.go": "package store\n\n// Get fetches an item.\nfunc (s *Store) Get(key string) (string, error) {\n\treturn \"\", nil\n}\n",
            }
        )
        chunks = GoAnalyzer(registry).analyze_paths([root])
        get = find(chunks, "Get", ChunkKind.METHOD)
        assert get.file_path.endswith("get.go")
        assert get.signature == "func (s *Store) Get(key string) (string, error)"
        assert get.start_line == 4
        assert get.end_line == 6

    def test_malformed_file_is_skipped(self, write_tree, registry):
        root = write_tree(
            {
                "good/good.go": "package good\n\n// Ok works.\nfunc Ok() {}\n",
                "bad/bad.go": "package bad\n\nfunc Broken( {\n",
            }
        )
        chunks = GoAnalyzer(registry).analyze_paths([root])
        assert [c.name for c in chunks] == ["Ok"]

    def test_malformed_file_dropped_from_same_package(self, write_tree, registry):
        root = write_tree(
            {
                "shapes/area.go": "package shapes\n\n// Area is a unit area.\nconst Area = 1\n",
                "shapes/broken.go": "package shapes\n\nfunc Perimeter( {\n",
            }
        )
        chunks = GoAnalyzer(registry).analyze_paths([root])
        assert [c.name for c in chunks] == ["Area"]
        assert chunks[0].file_path.endswith("area.go")

    def test_test_files_ignored_even_with_include_tests(self, write_tree, registry):
        root = write_tree(
            {
                "calc/calc.go": "package calc\n\nfunc Add(a, b int) int { return a + b }\n",
                "calc/calc_test.go": "package calc\n\nfunc TestAdd(t *testing.T) {}\n",
            }
        )
        chunks = GoAnalyzer(registry, include_tests=True).analyze_paths([root])
        assert [c.name for c in chunks] == ["Add"]
        assert chunks[0].signature == "func Add(a int, b int) int"

    def test_package_visited_once_for_overlapping_roots(self, write_tree, registry):
        root = write_tree({"lib/lib.go": "package lib\n\nfunc Run() {}\n"})
        chunks = GoAnalyzer(registry).analyze_paths([root, root / "lib"])
        assert [c.name for c in chunks] == ["Run"]


class TestDocHelpers:
    """Comment cleanup helpers."""

    def test_clean_doc_trims_and_drops_blank_lines(self):
        assert clean_doc("  first\n\n   second  \n") == "first\nsecond"

    def test_extract_examples_stops_at_blank_line(self):
        doc = "Does a thing.\nUsage:\n  x := Do()\n  x.Run()\n\nMore text."
        assert extract_examples(doc) == ["  x := Do()\n  x.Run()"]
