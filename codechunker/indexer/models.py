"""Data models for symbol chunks."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ChunkKind(str, Enum):
    """Kinds of symbol chunks emitted by the analyzers."""

    FUNCTION = "function"
    METHOD = "method"
    TYPE = "type"
    INTERFACE = "interface"
    CONST = "const"
    VAR = "var"
    CLASS = "class"
    PROPERTY = "property"
    TRAIT = "trait"
    ROUTE = "route"
    FILE = "file"
    SECTION = "section"


@dataclass
class CodeChunk:
    """One indexable symbol extracted from a source file."""

    kind: ChunkKind
    name: str
    package: str  # Go package, PHP namespace, Python module or page title
    language: str
    file_path: str
    start_line: int  # 1-based, inclusive
    end_line: int  # 1-based, inclusive
    signature: str = ""
    docstring: str = ""
    code: str = ""
    selection_start_line: Optional[int] = None  # name-only range for navigation
    selection_end_line: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = ""  # Blake3 hash, assigned at emission

    def embedding_text(self) -> str:
        """Build the text handed to the embedding pipeline.

        Returns:
            Docstring, signature and code joined by blank lines
        """
        parts = [part for part in (self.docstring, self.signature, self.code) if part]
        return "\n\n".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Render the chunk as a plain, JSON-serializable record."""
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


@dataclass
class ParamInfo:
    """A function or method parameter."""

    name: str
    type: str


@dataclass
class ReturnInfo:
    """A function return value."""

    type: str
    description: str = ""


@dataclass
class FieldInfo:
    """A field of a struct or record type."""

    name: str
    type: str
    tag: str = ""  # raw struct tag text, including quotes
    description: str = ""


@dataclass
class MethodInfo:
    """A method declared on an interface or type."""

    name: str
    signature: str
    description: str = ""
    params: List[ParamInfo] = field(default_factory=list)
    returns: List[ReturnInfo] = field(default_factory=list)


@dataclass
class RelationDescriptor:
    """An ORM association declared by a model method."""

    name: str  # method that declares the relation
    relation_kind: str  # hasOne, hasMany, belongsTo, ...
    related_type: str  # resolved fully-qualified class name
    foreign_key: str = ""
    local_key: str = ""


@dataclass
class RouteDescriptor:
    """A single HTTP route registration."""

    method: str  # HTTP verb, upper case
    uri: str
    controller: str
    action: str
    file_path: str
    line: int
    name: str = ""  # from a chained ->name('...')
    middleware: List[str] = field(default_factory=list)
    description: str = ""


def sort_chunks(chunks: Iterable[CodeChunk]) -> List[CodeChunk]:
    """Order chunks by file path and start line.

    The sort is stable, so chunks sharing a position keep their
    extraction order.

    Args:
        chunks: Chunks in any order

    Returns:
        New sorted list
    """
    return sorted(chunks, key=lambda chunk: (chunk.file_path, chunk.start_line))
