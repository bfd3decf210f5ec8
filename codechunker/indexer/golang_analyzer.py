"""Go package analysis using the tree-sitter Go grammar.

A directory is one Go package. Analysis runs in two phases:

1. The declaration bodies of every function and method are indexed by a
   stable key (``Name`` or ``Recv.Name``) straight from the parsed trees.
2. Documentation is read the way ``go/doc`` presents a package: comments
   are attached to declarations, methods are grouped under their receiver
   types and unexported identifiers are dropped. Code excerpts and end
   lines are then looked up through the phase 1 index by key.
"""

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from tree_sitter import Node

from .analyzer_base import PathAnalyzer, PathLike
from .grammars import create_parser
from .models import ChunkKind, CodeChunk, FieldInfo, MethodInfo, ParamInfo, ReturnInfo, sort_chunks
from .syntax import (
    children_of_type,
    end_line,
    first_child_of_type,
    node_text,
    preceding_comments,
    source_excerpt,
    start_line,
)
from .walker import AnalysisContext

logger = logging.getLogger(__name__)

TYPE_KINDS = {
    "struct_type": "struct",
    "interface_type": "interface",
    "slice_type": "array",
    "array_type": "array",
    "map_type": "map",
    "channel_type": "channel",
    "function_type": "function",
}

LITERAL_NODE_TYPES = {
    "int_literal",
    "float_literal",
    "imaginary_literal",
    "rune_literal",
    "interpreted_string_literal",
    "raw_string_literal",
    "identifier",
    "true",
    "false",
    "nil",
    "iota",
}

EXAMPLE_MARKERS = ("Example:", "Usage:", "```go")


@dataclass
class GoSourceFile:
    """A parsed Go file."""

    path: Path
    root: Node
    lines: List[str]


@dataclass
class BodySpan:
    """Location and text of a declaration, captured before docs are read."""

    file_path: str
    start_line: int
    end_line: int
    code: str


@dataclass
class GoFunction:
    name: str
    signature: str
    receiver: str = ""
    description: str = ""
    params: List[ParamInfo] = field(default_factory=list)
    returns: List[ReturnInfo] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)
    file_path: str = ""
    start_line: int = 0
    end_line: int = 0
    name_line: int = 0
    code: str = ""


@dataclass
class GoType:
    name: str
    kind: str
    description: str = ""
    fields: List[FieldInfo] = field(default_factory=list)
    methods: List[MethodInfo] = field(default_factory=list)  # interface methods
    method_names: List[str] = field(default_factory=list)  # bound methods
    file_path: str = ""
    start_line: int = 0
    end_line: int = 0
    name_line: int = 0
    code: str = ""


@dataclass
class GoValue:
    """A package-level constant or variable."""

    name: str
    type: str
    value: str
    is_const: bool
    description: str = ""
    file_path: str = ""
    start_line: int = 0
    end_line: int = 0
    name_line: int = 0


@dataclass
class GoPackage:
    """Symbol table for one package directory."""

    name: str
    path: str
    description: str = ""
    doc_file: str = ""
    doc_start_line: int = 0
    doc_end_line: int = 0
    imports: Dict[str, str] = field(default_factory=dict)  # alias -> import path
    functions: List[GoFunction] = field(default_factory=list)
    types: List[GoType] = field(default_factory=list)
    constants: List[GoValue] = field(default_factory=list)
    variables: List[GoValue] = field(default_factory=list)


@dataclass
class DocDecl:
    key: str
    node: Node
    source: GoSourceFile
    doc: str


@dataclass
class DocType:
    name: str
    spec: Node
    range_node: Node
    source: GoSourceFile
    doc: str
    methods: List[DocDecl] = field(default_factory=list)


@dataclass
class DocValue:
    spec: Node
    source: GoSourceFile
    doc: str
    is_const: bool


@dataclass
class DocPackage:
    """Documentation view of a package, in the shape go/doc produces."""

    name: str = ""
    doc: str = ""
    doc_source: Optional[GoSourceFile] = None
    doc_start_line: int = 0
    doc_end_line: int = 0
    funcs: List[DocDecl] = field(default_factory=list)
    types: List[DocType] = field(default_factory=list)
    values: List[DocValue] = field(default_factory=list)


def is_exported(name: str) -> bool:
    return bool(name) and name[0].isupper()


def comment_text(comments: List[Node]) -> str:
    """Strip comment markers from a comment group.

    Tool directives such as ``//go:generate`` are dropped.
    """
    lines: List[str] = []
    for comment in comments:
        text = node_text(comment)
        if text.startswith("//"):
            body = text[2:]
            if body.startswith("go:") or body.startswith("line "):
                continue
            lines.append(body[1:] if body.startswith(" ") else body)
        elif text.startswith("/*"):
            body = text[2:-2] if text.endswith("*/") else text[2:]
            lines.extend(body.splitlines())
    return "\n".join(lines)


def clean_doc(doc: str) -> str:
    """Trim every line and drop blank ones."""
    return "\n".join(line.strip() for line in doc.splitlines() if line.strip())


def extract_examples(doc: str) -> List[str]:
    """Pull usage snippets out of a doc comment.

    A snippet starts after a line beginning with ``Example:``, ``Usage:`` or
    a ```go fence and runs until a blank line or a closing fence.

    Args:
        doc: Raw doc comment text

    Returns:
        List of example snippets
    """
    examples: List[str] = []
    current: List[str] = []
    in_example = False
    for line in doc.splitlines():
        trimmed = line.strip()
        if trimmed.startswith(EXAMPLE_MARKERS):
            in_example = True
            continue
        if not in_example:
            continue
        if not trimmed or trimmed.startswith("```"):
            if current:
                examples.append("\n".join(current))
                current = []
            in_example = False
            continue
        current.append(line)
    if current:
        examples.append("\n".join(current))
    return examples


def type_to_string(node: Optional[Node]) -> str:
    """Render a type expression in a fixed textual form."""
    if node is None:
        return "unknown"
    node_type = node.type
    if node_type in ("type_identifier", "identifier", "field_identifier", "package_identifier"):
        return node_text(node)
    if node_type == "pointer_type":
        inner = node.named_children[-1] if node.named_children else None
        return "*" + type_to_string(inner)
    if node_type in ("slice_type", "array_type"):
        return "[]" + type_to_string(node.child_by_field_name("element"))
    if node_type == "map_type":
        key = type_to_string(node.child_by_field_name("key"))
        value = type_to_string(node.child_by_field_name("value"))
        return f"map[{key}]{value}"
    if node_type == "qualified_type":
        package = node_text(node.child_by_field_name("package"))
        name = node_text(node.child_by_field_name("name"))
        return f"{package}.{name}"
    if node_type == "interface_type":
        return "interface{}"
    if node_type in ("parenthesized_type", "type_elem") and len(node.named_children) == 1:
        return type_to_string(node.named_children[0])
    if node_type == "generic_type":
        base = type_to_string(node.child_by_field_name("type"))
        arguments = node.child_by_field_name("type_arguments")
        if arguments is None:
            return base
        rendered = ", ".join(type_to_string(arg) for arg in arguments.named_children)
        return f"{base}[{rendered}]"
    return "unknown"


def value_to_string(node: Optional[Node]) -> str:
    """Render a constant initializer; non-literal expressions become '...'."""
    if node is None:
        return ""
    if node.type in LITERAL_NODE_TYPES:
        return node_text(node)
    return "..."


def parse_parameters(param_list: Optional[Node]) -> List[ParamInfo]:
    """Flatten a parameter list so that ``a, b int`` yields two entries."""
    params: List[ParamInfo] = []
    if param_list is None:
        return params
    for declaration in param_list.named_children:
        if declaration.type not in ("parameter_declaration", "variadic_parameter_declaration"):
            continue
        type_str = type_to_string(declaration.child_by_field_name("type"))
        if declaration.type == "variadic_parameter_declaration":
            type_str = "..." + type_str
        names = [node_text(name) for name in declaration.children_by_field_name("name")]
        if names:
            params.extend(ParamInfo(name=name, type=type_str) for name in names)
        else:
            params.append(ParamInfo(name="", type=type_str))
    return params


def format_parameters(params: List[ParamInfo]) -> str:
    return ", ".join(f"{p.name} {p.type}" if p.name else p.type for p in params)


def parse_results(result: Optional[Node]) -> tuple:
    """Parse a result clause.

    Returns:
        Tuple of (returns, rendered suffix). A single unnamed result is
        rendered without parentheses.
    """
    if result is None:
        return [], ""
    if result.type == "parameter_list":
        items = parse_parameters(result)
        returns = [ReturnInfo(type=item.type) for item in items]
        if len(items) == 1 and not items[0].name:
            return returns, " " + items[0].type
        return returns, f" ({format_parameters(items)})"
    rendered = type_to_string(result)
    return [ReturnInfo(type=rendered)], " " + rendered


def receiver_type_name(receiver: Optional[Node]) -> str:
    """Base type name of a method receiver, pointer and type arguments stripped."""
    if receiver is None:
        return ""
    declaration = first_child_of_type(receiver, "parameter_declaration")
    if declaration is None:
        return ""
    type_node = declaration.child_by_field_name("type")
    while type_node is not None and type_node.type in ("pointer_type", "generic_type", "parenthesized_type"):
        if type_node.type == "generic_type":
            type_node = type_node.child_by_field_name("type")
        else:
            type_node = type_node.named_children[-1] if type_node.named_children else None
    return node_text(type_node)


def type_kind(type_node: Optional[Node]) -> str:
    if type_node is None:
        return "alias"
    return TYPE_KINDS.get(type_node.type, "alias")


class GoAnalyzer(PathAnalyzer):
    """Extract exported Go declarations as chunks."""

    language = "go"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.parser = create_parser("go")

    def analyze_paths(
        self,
        paths: Sequence[PathLike],
        context: Optional[AnalysisContext] = None,
    ) -> List[CodeChunk]:
        context = context or self.new_context()
        chunks: List[CodeChunk] = []

        for root in paths:
            for file_path in self.walker.walk(Path(root), self.language):
                context.check_cancelled(chunks)
                context.files_seen += 1
                directory = file_path.parent
                if not context.mark_visited(directory):
                    continue
                try:
                    package = self.analyze_package(directory)
                except Exception as e:
                    logger.warning(f"Error analyzing Go package {directory}: {e}")
                    continue
                if package is None:
                    continue
                chunks.extend(self.convert(package))

        logger.info(f"Extracted {len(chunks)} Go chunks from {len(context.visited_dirs)} directories")
        return sort_chunks(chunks)

    def analyze_package(self, directory: Path) -> Optional[GoPackage]:
        """Analyze the non-test Go files of one directory.

        Args:
            directory: Package directory

        Returns:
            Package symbol table, or None when no file could be parsed
        """
        files = self._parse_files(directory)
        if not files:
            logger.debug(f"No parseable Go files in {directory}")
            return None

        bodies = self._index_bodies(files)
        docs = self._read_docs(files)
        return self._build_package(directory, files, docs, bodies)

    def _parse_files(self, directory: Path) -> List[GoSourceFile]:
        """Parse the package's non-test sources.

        ``*_test.go`` files are never part of the package API, so they are
        left out regardless of ``include_tests``.
        """
        files: List[GoSourceFile] = []
        for file_path in sorted(directory.glob("*.go")):
            if not file_path.is_file() or file_path.name.endswith("_test.go"):
                continue
            source = self.read_source(file_path)
            if source is None:
                continue
            tree = self.parser.parse(source)
            if tree.root_node.has_error:
                logger.warning(f"Skipping {file_path}: syntax errors")
                continue
            lines = source.decode("utf-8", errors="replace").splitlines()
            files.append(GoSourceFile(path=file_path, root=tree.root_node, lines=lines))
        return files

    @staticmethod
    def _declaration_key(node: Node) -> str:
        name = node_text(node.child_by_field_name("name"))
        if node.type == "method_declaration":
            receiver = receiver_type_name(node.child_by_field_name("receiver"))
            return f"{receiver}.{name}"
        return name

    def _index_bodies(self, files: List[GoSourceFile]) -> Dict[str, BodySpan]:
        """Phase 1: map declaration keys to their body locations."""
        index: Dict[str, BodySpan] = {}
        for source in files:
            for node in children_of_type(source.root, "function_declaration", "method_declaration"):
                key = self._declaration_key(node)
                if not key or key in index:
                    continue
                body = node.child_by_field_name("body")
                first = start_line(node)
                last = end_line(body) if body is not None else end_line(node)
                index[key] = BodySpan(
                    file_path=str(source.path),
                    start_line=first,
                    end_line=last,
                    code=source_excerpt(source.lines, first, last),
                )
        return index

    def _read_docs(self, files: List[GoSourceFile]) -> DocPackage:
        """Phase 2: attach comments and group exported declarations."""
        docs = DocPackage()
        pending_methods: List[tuple] = []

        for source in files:
            clause = first_child_of_type(source.root, "package_clause")
            if clause is not None:
                if not docs.name:
                    docs.name = node_text(first_child_of_type(clause, "package_identifier"))
                comments = preceding_comments(clause)
                text = comment_text(comments)
                if text.strip() and not docs.doc:
                    docs.doc = text
                    docs.doc_source = source
                    docs.doc_start_line = start_line(comments[0])
                    docs.doc_end_line = end_line(clause)

            for node in source.root.children:
                if node.type == "function_declaration":
                    name = node_text(node.child_by_field_name("name"))
                    if is_exported(name):
                        docs.funcs.append(DocDecl(name, node, source, comment_text(preceding_comments(node))))
                elif node.type == "method_declaration":
                    name = node_text(node.child_by_field_name("name"))
                    receiver = receiver_type_name(node.child_by_field_name("receiver"))
                    if is_exported(name) and is_exported(receiver):
                        decl = DocDecl(f"{receiver}.{name}", node, source, comment_text(preceding_comments(node)))
                        pending_methods.append((receiver, decl))
                elif node.type == "type_declaration":
                    docs.types.extend(self._doc_types(node, source))
                elif node.type in ("const_declaration", "var_declaration"):
                    docs.values.extend(self._doc_values(node, source))

        types_by_name = {doc_type.name: doc_type for doc_type in docs.types}
        for receiver, decl in pending_methods:
            owner = types_by_name.get(receiver)
            if owner is None:
                logger.debug(f"Dropping method {decl.key}: receiver type not exported here")
                continue
            owner.methods.append(decl)
        return docs

    def _doc_types(self, declaration: Node, source: GoSourceFile) -> List[DocType]:
        specs = children_of_type(declaration, "type_spec", "type_alias")
        grouped = first_child_of_type(declaration, "(") is not None
        decl_doc = comment_text(preceding_comments(declaration))
        result: List[DocType] = []
        for spec in specs:
            name = node_text(spec.child_by_field_name("name"))
            if not is_exported(name):
                continue
            if grouped:
                doc = comment_text(preceding_comments(spec)) or (decl_doc if len(specs) == 1 else "")
                range_node = spec
            else:
                doc = decl_doc
                range_node = declaration
            result.append(DocType(name=name, spec=spec, range_node=range_node, source=source, doc=doc))
        return result

    def _doc_values(self, declaration: Node, source: GoSourceFile) -> List[DocValue]:
        is_const = declaration.type == "const_declaration"
        spec_type = "const_spec" if is_const else "var_spec"
        specs = children_of_type(declaration, spec_type)
        for spec_list in children_of_type(declaration, "var_spec_list"):
            specs.extend(children_of_type(spec_list, spec_type))

        decl_doc = comment_text(preceding_comments(declaration))
        result: List[DocValue] = []
        for spec in specs:
            names = [node_text(name) for name in spec.children_by_field_name("name")]
            if not any(is_exported(name) for name in names):
                continue
            doc = comment_text(preceding_comments(spec)) or decl_doc
            result.append(DocValue(spec=spec, source=source, doc=doc, is_const=is_const))
        return result

    def _build_package(
        self,
        directory: Path,
        files: List[GoSourceFile],
        docs: DocPackage,
        bodies: Dict[str, BodySpan],
    ) -> GoPackage:
        package = GoPackage(name=docs.name, path=str(directory), description=clean_doc(docs.doc))
        if docs.doc_source is not None:
            package.doc_file = str(docs.doc_source.path)
            package.doc_start_line = docs.doc_start_line
            package.doc_end_line = docs.doc_end_line

        for source in files:
            self._collect_imports(source, package.imports)

        for decl in docs.funcs:
            package.functions.append(self._build_function(decl, bodies))

        for doc_type in docs.types:
            go_type = self._build_type(doc_type)
            for method_decl in doc_type.methods:
                package.functions.append(self._build_function(method_decl, bodies))
                go_type.method_names.append(node_text(method_decl.node.child_by_field_name("name")))
            package.types.append(go_type)

        for doc_value in docs.values:
            for value in self._build_values(doc_value):
                if value.is_const:
                    package.constants.append(value)
                else:
                    package.variables.append(value)

        logger.debug(
            f"Package {package.name} at {directory}: {len(package.functions)} functions, "
            f"{len(package.types)} types"
        )
        return package

    @staticmethod
    def _collect_imports(source: GoSourceFile, imports: Dict[str, str]) -> None:
        for declaration in children_of_type(source.root, "import_declaration"):
            specs = children_of_type(declaration, "import_spec")
            for spec_list in children_of_type(declaration, "import_spec_list"):
                specs.extend(children_of_type(spec_list, "import_spec"))
            for spec in specs:
                path = node_text(spec.child_by_field_name("path")).strip('"`')
                alias = node_text(spec.child_by_field_name("name")) or path.rsplit("/", 1)[-1]
                imports.setdefault(alias, path)

    def _build_function(self, decl: DocDecl, bodies: Dict[str, BodySpan]) -> GoFunction:
        node = decl.node
        name_node = node.child_by_field_name("name")
        name = node_text(name_node)

        receiver_str = ""
        receiver = ""
        if node.type == "method_declaration":
            receiver_node = node.child_by_field_name("receiver")
            receiver = receiver_type_name(receiver_node)
            receiver_str = f"({format_parameters(parse_parameters(receiver_node))}) "

        params = parse_parameters(node.child_by_field_name("parameters"))
        returns, result_str = parse_results(node.child_by_field_name("result"))
        signature = f"func {receiver_str}{name}({format_parameters(params)}){result_str}"

        span = bodies.get(decl.key)
        if span is None:
            first, last = start_line(node), end_line(node)
            span = BodySpan(str(decl.source.path), first, last, source_excerpt(decl.source.lines, first, last))

        return GoFunction(
            name=name,
            signature=signature,
            receiver=receiver,
            description=clean_doc(decl.doc),
            params=params,
            returns=returns,
            examples=extract_examples(decl.doc),
            file_path=span.file_path,
            start_line=span.start_line,
            end_line=span.end_line,
            name_line=start_line(name_node) if name_node is not None else span.start_line,
            code=span.code,
        )

    def _build_type(self, doc_type: DocType) -> GoType:
        spec = doc_type.spec
        type_node = spec.child_by_field_name("type")
        kind = type_kind(type_node)
        first, last = start_line(doc_type.range_node), end_line(doc_type.range_node)
        name_node = spec.child_by_field_name("name")

        go_type = GoType(
            name=doc_type.name,
            kind=kind,
            description=clean_doc(doc_type.doc),
            file_path=str(doc_type.source.path),
            start_line=first,
            end_line=last,
            name_line=start_line(name_node) if name_node is not None else first,
            code=source_excerpt(doc_type.source.lines, first, last),
        )
        if kind == "struct":
            go_type.fields = self._struct_fields(type_node)
        elif kind == "interface":
            go_type.methods = self._interface_methods(type_node)
        return go_type

    @staticmethod
    def _struct_fields(struct_node: Node) -> List[FieldInfo]:
        fields: List[FieldInfo] = []
        field_list = first_child_of_type(struct_node, "field_declaration_list")
        if field_list is None:
            return fields
        for declaration in children_of_type(field_list, "field_declaration"):
            type_node = declaration.child_by_field_name("type")
            type_str = type_to_string(type_node)
            tag = node_text(declaration.child_by_field_name("tag"))
            description = clean_doc(comment_text(preceding_comments(declaration)))
            names = [node_text(name) for name in declaration.children_by_field_name("name")]
            if not names:
                # embedded field, named after its type
                names = [type_str.lstrip("*").rsplit(".", 1)[-1]]
            for name in names:
                if is_exported(name):
                    fields.append(FieldInfo(name=name, type=type_str, tag=tag, description=description))
        return fields

    @staticmethod
    def _interface_methods(interface_node: Node) -> List[MethodInfo]:
        methods: List[MethodInfo] = []
        for element in children_of_type(interface_node, "method_elem", "method_spec"):
            name = node_text(element.child_by_field_name("name"))
            if not is_exported(name):
                continue
            params = parse_parameters(element.child_by_field_name("parameters"))
            returns, result_str = parse_results(element.child_by_field_name("result"))
            methods.append(
                MethodInfo(
                    name=name,
                    signature=f"{name}({format_parameters(params)}){result_str}",
                    description=clean_doc(comment_text(preceding_comments(element))),
                    params=params,
                    returns=returns,
                )
            )
        return methods

    @staticmethod
    def _build_values(doc_value: DocValue) -> List[GoValue]:
        spec = doc_value.spec
        type_node = spec.child_by_field_name("type")
        type_str = type_to_string(type_node) if type_node is not None else ""
        value_list = spec.child_by_field_name("value")
        values = list(value_list.named_children) if value_list is not None else []
        first, last = start_line(spec), end_line(spec)

        result: List[GoValue] = []
        for index, name_node in enumerate(spec.children_by_field_name("name")):
            name = node_text(name_node)
            if not is_exported(name):
                continue
            result.append(
                GoValue(
                    name=name,
                    type=type_str,
                    value=value_to_string(values[index]) if index < len(values) else "",
                    is_const=doc_value.is_const,
                    description=clean_doc(doc_value.doc),
                    file_path=str(doc_value.source.path),
                    start_line=first,
                    end_line=last,
                    name_line=start_line(name_node),
                )
            )
        return result

    def convert(self, package: GoPackage) -> List[CodeChunk]:
        """Flatten a package symbol table into chunks."""
        chunks: List[CodeChunk] = []

        if package.doc_file:
            chunks.append(
                CodeChunk(
                    kind=ChunkKind.FILE,
                    name=package.name,
                    package=package.name,
                    language=self.language,
                    file_path=package.doc_file,
                    start_line=package.doc_start_line,
                    end_line=max(package.doc_end_line, package.doc_start_line),
                    signature=f"package {package.name}",
                    docstring=package.description,
                    metadata={"imports": dict(package.imports)},
                )
            )

        for fn in package.functions:
            chunks.append(
                CodeChunk(
                    kind=ChunkKind.METHOD if fn.receiver else ChunkKind.FUNCTION,
                    name=fn.name,
                    package=package.name,
                    language=self.language,
                    file_path=fn.file_path,
                    start_line=fn.start_line,
                    end_line=fn.end_line,
                    selection_start_line=fn.name_line,
                    selection_end_line=fn.name_line,
                    signature=fn.signature,
                    docstring=fn.description,
                    code=fn.code,
                    metadata={
                        "receiver": fn.receiver,
                        "is_method": bool(fn.receiver),
                        "params": [asdict(p) for p in fn.params],
                        "returns": [asdict(r) for r in fn.returns],
                        "examples": fn.examples,
                    },
                )
            )

        for go_type in package.types:
            chunks.append(
                CodeChunk(
                    kind=ChunkKind.INTERFACE if go_type.kind == "interface" else ChunkKind.TYPE,
                    name=go_type.name,
                    package=package.name,
                    language=self.language,
                    file_path=go_type.file_path,
                    start_line=go_type.start_line,
                    end_line=go_type.end_line,
                    selection_start_line=go_type.name_line,
                    selection_end_line=go_type.name_line,
                    signature=f"{go_type.kind} {go_type.name}",
                    docstring=go_type.description,
                    code=go_type.code,
                    metadata={
                        "type_kind": go_type.kind,
                        "fields": [asdict(f) for f in go_type.fields],
                        "methods": [asdict(m) for m in go_type.methods],
                        "method_names": go_type.method_names,
                        "is_export": True,
                    },
                )
            )

        for value in package.constants + package.variables:
            keyword = "const" if value.is_const else "var"
            chunks.append(
                CodeChunk(
                    kind=ChunkKind.CONST if value.is_const else ChunkKind.VAR,
                    name=value.name,
                    package=package.name,
                    language=self.language,
                    file_path=value.file_path,
                    start_line=value.start_line,
                    end_line=value.end_line,
                    selection_start_line=value.name_line,
                    selection_end_line=value.name_line,
                    signature=f"{keyword} {value.name} {value.type}".rstrip(),
                    docstring=value.description,
                    code=value.value,
                )
            )

        return chunks
