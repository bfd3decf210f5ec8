"""PHP source analysis using the tree-sitter PHP grammar."""

import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

from tree_sitter import Node

from .analyzer_base import PathAnalyzer, PathLike
from .grammars import create_parser
from .models import ChunkKind, CodeChunk, sort_chunks
from .phpdoc import PHPDoc, parse_phpdoc
from .syntax import children_of_type, end_line, first_child_of_type, node_text, preceding_comments, source_excerpt, start_line
from .walker import AnalysisContext

logger = logging.getLogger(__name__)

MAX_CLASS_CODE_LINES = 50
GLOBAL_NAMESPACE = "global"

USE_ITEM_RE = re.compile(r"^\\?([\w\\]+)(?:\s+as\s+(\w+))?$", re.IGNORECASE)
WHITESPACE_RE = re.compile(r"\s+")

LITERAL_VALUE_TYPES = {
    "string",
    "encapsed_string",
    "integer",
    "float",
    "boolean",
    "null",
    "name",
    "qualified_name",
    "class_constant_access_expression",
}


@dataclass
class PhpParameter:
    name: str  # without the leading $
    type: str = ""
    default: str = ""
    by_ref: bool = False
    variadic: bool = False

    def render(self) -> str:
        prefix = f"{self.type} " if self.type else ""
        ref = "&" if self.by_ref else ""
        dots = "..." if self.variadic else ""
        return f"{prefix}{ref}{dots}${self.name}"


@dataclass
class PhpMethod:
    name: str
    visibility: str = "public"
    is_static: bool = False
    is_abstract: bool = False
    is_final: bool = False
    params: List[PhpParameter] = field(default_factory=list)
    return_type: str = ""
    doc: PHPDoc = field(default_factory=PHPDoc)
    start_line: int = 0
    end_line: int = 0
    name_line: int = 0
    code: str = ""
    node: Optional[Node] = field(default=None, repr=False, compare=False)

    @property
    def signature(self) -> str:
        static = "static " if self.is_static else ""
        params = ", ".join(param.render() for param in self.params)
        returns = f": {self.return_type}" if self.return_type else ""
        return f"{self.visibility} {static}function {self.name}({params}){returns}"


@dataclass
class PhpProperty:
    name: str
    visibility: str = "public"
    type: str = ""
    default: str = ""
    is_static: bool = False
    is_readonly: bool = False
    doc: PHPDoc = field(default_factory=PHPDoc)
    start_line: int = 0
    end_line: int = 0
    value_node: Optional[Node] = field(default=None, repr=False, compare=False)

    @property
    def signature(self) -> str:
        type_part = f"{self.type} " if self.type else ""
        return f"{self.visibility} {type_part}${self.name}"


@dataclass
class PhpConstant:
    name: str
    value: str
    visibility: str = "public"
    doc: PHPDoc = field(default_factory=PHPDoc)
    start_line: int = 0
    end_line: int = 0


@dataclass
class PhpClass:
    name: str
    namespace: str = ""
    extends: str = ""
    implements: List[str] = field(default_factory=list)
    traits: List[str] = field(default_factory=list)
    is_abstract: bool = False
    is_final: bool = False
    is_readonly: bool = False
    methods: List[PhpMethod] = field(default_factory=list)
    properties: List[PhpProperty] = field(default_factory=list)
    constants: List[PhpConstant] = field(default_factory=list)
    doc: PHPDoc = field(default_factory=PHPDoc)
    file_path: str = ""
    start_line: int = 0
    end_line: int = 0
    name_line: int = 0
    code: str = ""
    imports: Dict[str, str] = field(default_factory=dict)
    node: Optional[Node] = field(default=None, repr=False, compare=False)

    @property
    def fqn(self) -> str:
        return f"{self.namespace}\\{self.name}" if self.namespace else self.name

    def get_method(self, name: str) -> Optional[PhpMethod]:
        for method in self.methods:
            if method.name == name:
                return method
        return None

    def get_property(self, name: str) -> Optional[PhpProperty]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


@dataclass
class PhpInterface:
    name: str
    namespace: str = ""
    extends: List[str] = field(default_factory=list)
    methods: List[PhpMethod] = field(default_factory=list)
    constants: List[PhpConstant] = field(default_factory=list)
    doc: PHPDoc = field(default_factory=PHPDoc)
    start_line: int = 0
    end_line: int = 0
    name_line: int = 0
    code: str = ""


@dataclass
class PhpTrait:
    name: str
    namespace: str = ""
    methods: List[PhpMethod] = field(default_factory=list)
    properties: List[PhpProperty] = field(default_factory=list)
    doc: PHPDoc = field(default_factory=PHPDoc)
    start_line: int = 0
    end_line: int = 0
    name_line: int = 0
    code: str = ""


@dataclass
class PhpFunction:
    name: str
    namespace: str = ""
    params: List[PhpParameter] = field(default_factory=list)
    return_type: str = ""
    doc: PHPDoc = field(default_factory=PHPDoc)
    start_line: int = 0
    end_line: int = 0
    name_line: int = 0
    code: str = ""

    @property
    def signature(self) -> str:
        params = ", ".join(param.render() for param in self.params)
        returns = f": {self.return_type}" if self.return_type else ""
        return f"function {self.name}({params}){returns}"


@dataclass
class PhpFileUnit:
    """Symbol table for one PHP file."""

    file_path: str
    namespace: str = ""
    imports: Dict[str, str] = field(default_factory=dict)  # alias -> FQN
    classes: List[PhpClass] = field(default_factory=list)
    interfaces: List[PhpInterface] = field(default_factory=list)
    traits: List[PhpTrait] = field(default_factory=list)
    functions: List[PhpFunction] = field(default_factory=list)
    constants: List[PhpConstant] = field(default_factory=list)


@dataclass
class _Scope:
    """Namespace and imports in effect while visiting declarations."""

    namespace: str = ""
    imports: Dict[str, str] = field(default_factory=dict)


def collapse_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text).strip()


def parse_use_declaration(node: Node) -> List[Tuple[str, str]]:
    """Parse a namespace ``use`` statement into (alias, fqn) pairs.

    Handles aliases, comma lists and group uses such as
    ``use App\\Models\\{User, Post as Article};``. Function and constant
    imports are ignored.

    Args:
        node: namespace_use_declaration node

    Returns:
        List of (alias, fully-qualified name) pairs in source order
    """
    text = collapse_whitespace(node_text(node)).rstrip(";").strip()
    text = re.sub(r"^use\s+", "", text, flags=re.IGNORECASE)
    if re.match(r"^(function|const)\s", text, re.IGNORECASE):
        return []

    group = re.match(r"^([^{]*)\{(.*)\}$", text)
    if group:
        prefix = group.group(1).strip().rstrip("\\")
        items = [f"{prefix}\\{item.strip()}" for item in group.group(2).split(",") if item.strip()]
    else:
        items = [item.strip() for item in text.split(",") if item.strip()]

    pairs: List[Tuple[str, str]] = []
    for item in items:
        match = USE_ITEM_RE.match(item)
        if not match:
            logger.debug(f"Unrecognized use clause: {item}")
            continue
        fqn = match.group(1)
        alias = match.group(2) or fqn.rsplit("\\", 1)[-1]
        pairs.append((alias, fqn))
    return pairs


def modifier_set(node: Node) -> Set[str]:
    """Collect modifier keywords (public, static, abstract, ...) of a declaration."""
    modifiers: Set[str] = set()
    for child in node.children:
        if child.type.endswith("_modifier"):
            modifiers.add(node_text(child).lower())
        elif child.type == "modifiers":
            modifiers.update(node_text(grandchild).lower() for grandchild in child.children)
    return modifiers


def visibility_of(modifiers: Set[str]) -> str:
    for visibility in ("public", "protected", "private"):
        if visibility in modifiers:
            return visibility
    return "public"


def doc_comment(node: Node) -> PHPDoc:
    comments = preceding_comments(node)
    for comment in reversed(comments):
        text = node_text(comment)
        if text.startswith("/**"):
            return parse_phpdoc(text)
    return PHPDoc()


def render_value(node: Optional[Node]) -> str:
    """Render a constant or default value; complex expressions become '...'."""
    if node is None:
        return ""
    if node.type in LITERAL_VALUE_TYPES:
        return collapse_whitespace(node_text(node))
    if node.type == "unary_op_expression" and len(node.named_children) == 1:
        return collapse_whitespace(node_text(node))
    return "..."


def parse_parameters(node: Optional[Node]) -> List[PhpParameter]:
    params: List[PhpParameter] = []
    if node is None:
        return params
    for param in node.named_children:
        if param.type not in ("simple_parameter", "variadic_parameter", "property_promotion_parameter"):
            continue
        name_node = param.child_by_field_name("name")
        if name_node is None:
            name_node = first_child_of_type(param, "variable_name")
        if name_node is not None and name_node.type == "by_ref":
            name_node = first_child_of_type(name_node, "variable_name")
        by_ref = any(child.type in ("reference_modifier", "&", "by_ref") for child in param.children)
        params.append(
            PhpParameter(
                name=node_text(name_node).lstrip("$"),
                type=collapse_whitespace(node_text(param.child_by_field_name("type"))),
                default=render_value(param.child_by_field_name("default_value")),
                by_ref=by_ref,
                variadic=param.type == "variadic_parameter",
            )
        )
    return params


def property_default(element: Node) -> Optional[Node]:
    """Find the initializer expression of a property element."""
    value = element.child_by_field_name("default_value")
    if value is not None:
        return value
    initializer = first_child_of_type(element, "property_initializer")
    if initializer is not None and initializer.named_children:
        return initializer.named_children[-1]
    others = [child for child in element.named_children if child.type != "variable_name"]
    return others[-1] if others else None


class PhpAnalyzer(PathAnalyzer):
    """Extract PHP classes, interfaces, traits and functions as chunks."""

    language = "php"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.parser = create_parser("php")

    def analyze_paths(
        self,
        paths: Sequence[PathLike],
        context: Optional[AnalysisContext] = None,
    ) -> List[CodeChunk]:
        units = self.analyze_units(paths, context)
        chunks: List[CodeChunk] = []
        for unit in units:
            chunks.extend(self.convert(unit))
        return sort_chunks(chunks)

    def analyze_units(
        self,
        paths: Sequence[PathLike],
        context: Optional[AnalysisContext] = None,
    ) -> List[PhpFileUnit]:
        """Parse every PHP file under the roots into per-file symbol tables.

        Args:
            paths: Files or directories, in caller order
            context: Per-invocation state; created when omitted

        Returns:
            One unit per successfully parsed file
        """
        context = context or self.new_context()
        units: List[PhpFileUnit] = []
        seen: Set[str] = set()

        for root in paths:
            for file_path in self.walker.walk(Path(root), self.language):
                if context.is_cancelled():
                    context.check_cancelled([chunk for done in units for chunk in self.convert(done)])
                context.files_seen += 1
                key = str(file_path.resolve())
                if key in seen:
                    continue
                seen.add(key)
                try:
                    unit = self.analyze_file(file_path)
                except Exception as e:
                    logger.warning(f"Error analyzing PHP file {file_path}: {e}")
                    continue
                if unit is not None:
                    units.append(unit)

        logger.info(f"Parsed {len(units)} PHP files")
        return units

    def analyze_file(self, file_path: Path) -> Optional[PhpFileUnit]:
        """Parse one PHP file.

        Returns:
            The file's symbol table, or None if it cannot be read or parsed
        """
        source = self.read_source(file_path)
        if source is None:
            return None
        tree = self.parser.parse(source)
        if tree.root_node.has_error:
            logger.warning(f"Skipping {file_path}: syntax errors")
            return None

        lines = source.decode("utf-8", errors="replace").splitlines()
        unit = PhpFileUnit(file_path=str(file_path))
        self._visit_statements(tree.root_node, unit, lines, _Scope())
        return unit

    def _visit_statements(self, parent: Node, unit: PhpFileUnit, lines: List[str], scope: _Scope) -> None:
        for node in parent.named_children:
            node_type = node.type
            if node_type == "namespace_definition":
                namespace = node_text(node.child_by_field_name("name")).strip("\\")
                if not unit.namespace:
                    unit.namespace = namespace
                body = node.child_by_field_name("body")
                if body is not None:
                    self._visit_statements(body, unit, lines, _Scope(namespace=namespace))
                else:
                    scope = _Scope(namespace=namespace)
            elif node_type == "namespace_use_declaration":
                for alias, fqn in parse_use_declaration(node):
                    scope.imports.setdefault(alias, fqn)
                    unit.imports.setdefault(alias, fqn)
            elif node_type == "class_declaration":
                unit.classes.append(self._parse_class(node, unit, lines, scope))
            elif node_type == "interface_declaration":
                unit.interfaces.append(self._parse_interface(node, lines, scope))
            elif node_type == "trait_declaration":
                unit.traits.append(self._parse_trait(node, lines, scope))
            elif node_type == "function_definition":
                unit.functions.append(self._parse_function(node, lines, scope))
            elif node_type == "const_declaration":
                unit.constants.extend(self._parse_constants(node))
            elif node_type == "compound_statement":
                self._visit_statements(node, unit, lines, scope)

    def _parse_class(self, node: Node, unit: PhpFileUnit, lines: List[str], scope: _Scope) -> PhpClass:
        name_node = node.child_by_field_name("name")
        modifiers = modifier_set(node)
        first, last = start_line(node), end_line(node)

        php_class = PhpClass(
            name=node_text(name_node),
            namespace=scope.namespace,
            is_abstract="abstract" in modifiers,
            is_final="final" in modifiers,
            is_readonly="readonly" in modifiers,
            doc=doc_comment(node),
            file_path=unit.file_path,
            start_line=first,
            end_line=last,
            name_line=start_line(name_node) if name_node is not None else first,
            code=source_excerpt(lines, first, last, MAX_CLASS_CODE_LINES),
            imports=dict(scope.imports),
            node=node,
        )

        base = first_child_of_type(node, "base_clause")
        if base is not None and base.named_children:
            php_class.extends = node_text(base.named_children[0])
        interfaces = first_child_of_type(node, "class_interface_clause")
        if interfaces is not None:
            php_class.implements = [node_text(child) for child in interfaces.named_children if child.type != "comment"]

        body = node.child_by_field_name("body")
        if body is not None:
            self._parse_members(body, php_class, lines)
        return php_class

    def _parse_members(self, body: Node, owner, lines: List[str]) -> None:
        for member in body.named_children:
            if member.type == "method_declaration":
                owner.methods.append(self._parse_method(member, lines))
            elif member.type == "property_declaration" and hasattr(owner, "properties"):
                owner.properties.extend(self._parse_properties(member))
            elif member.type == "const_declaration" and hasattr(owner, "constants"):
                owner.constants.extend(self._parse_constants(member))
            elif member.type == "use_declaration" and hasattr(owner, "traits"):
                owner.traits.extend(
                    node_text(child) for child in member.named_children if child.type in ("name", "qualified_name")
                )

    def _parse_method(self, node: Node, lines: List[str]) -> PhpMethod:
        name_node = node.child_by_field_name("name")
        modifiers = modifier_set(node)
        first, last = start_line(node), end_line(node)
        return PhpMethod(
            name=node_text(name_node),
            visibility=visibility_of(modifiers),
            is_static="static" in modifiers,
            is_abstract="abstract" in modifiers,
            is_final="final" in modifiers,
            params=parse_parameters(node.child_by_field_name("parameters")),
            return_type=collapse_whitespace(node_text(node.child_by_field_name("return_type"))),
            doc=doc_comment(node),
            start_line=first,
            end_line=last,
            name_line=start_line(name_node) if name_node is not None else first,
            code=source_excerpt(lines, first, last),
            node=node,
        )

    def _parse_properties(self, node: Node) -> List[PhpProperty]:
        modifiers = modifier_set(node)
        doc = doc_comment(node)
        declared_type = collapse_whitespace(node_text(node.child_by_field_name("type")))
        properties: List[PhpProperty] = []
        for element in children_of_type(node, "property_element"):
            value = property_default(element)
            properties.append(
                PhpProperty(
                    name=node_text(first_child_of_type(element, "variable_name")).lstrip("$"),
                    visibility=visibility_of(modifiers),
                    type=declared_type or doc.var_type,
                    default=render_value(value),
                    is_static="static" in modifiers,
                    is_readonly="readonly" in modifiers,
                    doc=doc,
                    start_line=start_line(node),
                    end_line=end_line(node),
                    value_node=value,
                )
            )
        return properties

    def _parse_constants(self, node: Node) -> List[PhpConstant]:
        visibility = visibility_of(modifier_set(node))
        doc = doc_comment(node)
        constants: List[PhpConstant] = []
        for element in children_of_type(node, "const_element"):
            named = element.named_children
            if not named:
                continue
            value = named[-1] if len(named) > 1 else None
            constants.append(
                PhpConstant(
                    name=node_text(named[0]),
                    value=render_value(value),
                    visibility=visibility,
                    doc=doc,
                    start_line=start_line(node),
                    end_line=end_line(node),
                )
            )
        return constants

    def _parse_interface(self, node: Node, lines: List[str], scope: _Scope) -> PhpInterface:
        name_node = node.child_by_field_name("name")
        first, last = start_line(node), end_line(node)
        interface = PhpInterface(
            name=node_text(name_node),
            namespace=scope.namespace,
            doc=doc_comment(node),
            start_line=first,
            end_line=last,
            name_line=start_line(name_node) if name_node is not None else first,
            code=source_excerpt(lines, first, last, MAX_CLASS_CODE_LINES),
        )
        base = first_child_of_type(node, "base_clause")
        if base is not None:
            interface.extends = [node_text(child) for child in base.named_children if child.type != "comment"]
        body = node.child_by_field_name("body")
        if body is not None:
            self._parse_members(body, interface, lines)
        return interface

    def _parse_trait(self, node: Node, lines: List[str], scope: _Scope) -> PhpTrait:
        name_node = node.child_by_field_name("name")
        first, last = start_line(node), end_line(node)
        trait = PhpTrait(
            name=node_text(name_node),
            namespace=scope.namespace,
            doc=doc_comment(node),
            start_line=first,
            end_line=last,
            name_line=start_line(name_node) if name_node is not None else first,
            code=source_excerpt(lines, first, last, MAX_CLASS_CODE_LINES),
        )
        body = node.child_by_field_name("body")
        if body is not None:
            self._parse_members(body, trait, lines)
        return trait

    def _parse_function(self, node: Node, lines: List[str], scope: _Scope) -> PhpFunction:
        name_node = node.child_by_field_name("name")
        first, last = start_line(node), end_line(node)
        return PhpFunction(
            name=node_text(name_node),
            namespace=scope.namespace,
            params=parse_parameters(node.child_by_field_name("parameters")),
            return_type=collapse_whitespace(node_text(node.child_by_field_name("return_type"))),
            doc=doc_comment(node),
            start_line=first,
            end_line=last,
            name_line=start_line(name_node) if name_node is not None else first,
            code=source_excerpt(lines, first, last),
        )

    def convert(self, unit: PhpFileUnit) -> List[CodeChunk]:
        """Flatten one file's symbol table into chunks."""
        chunks: List[CodeChunk] = []

        for php_class in unit.classes:
            package = php_class.namespace or GLOBAL_NAMESPACE
            chunks.append(
                self._chunk(
                    ChunkKind.CLASS,
                    php_class.name,
                    package,
                    unit.file_path,
                    php_class.start_line,
                    php_class.end_line,
                    php_class.name_line,
                    signature=self._class_signature(php_class),
                    docstring=php_class.doc.description,
                    code=php_class.code,
                    metadata={
                        "fqn": php_class.fqn,
                        "extends": php_class.extends,
                        "implements": php_class.implements,
                        "traits": php_class.traits,
                        "is_abstract": php_class.is_abstract,
                        "is_final": php_class.is_final,
                    },
                )
            )
            chunks.extend(self._member_chunks(php_class, package, unit.file_path))

        for interface in unit.interfaces:
            package = interface.namespace or GLOBAL_NAMESPACE
            extends = f" extends {', '.join(interface.extends)}" if interface.extends else ""
            chunks.append(
                self._chunk(
                    ChunkKind.INTERFACE,
                    interface.name,
                    package,
                    unit.file_path,
                    interface.start_line,
                    interface.end_line,
                    interface.name_line,
                    signature=f"interface {interface.name}{extends}",
                    docstring=interface.doc.description,
                    code=interface.code,
                    metadata={"extends": interface.extends, "methods": [m.name for m in interface.methods]},
                )
            )
            chunks.extend(self._member_chunks(interface, package, unit.file_path))

        for trait in unit.traits:
            package = trait.namespace or GLOBAL_NAMESPACE
            chunks.append(
                self._chunk(
                    ChunkKind.TRAIT,
                    trait.name,
                    package,
                    unit.file_path,
                    trait.start_line,
                    trait.end_line,
                    trait.name_line,
                    signature=f"trait {trait.name}",
                    docstring=trait.doc.description,
                    code=trait.code,
                    metadata={"methods": [m.name for m in trait.methods]},
                )
            )
            chunks.extend(self._member_chunks(trait, package, unit.file_path))

        for function in unit.functions:
            chunks.append(
                self._chunk(
                    ChunkKind.FUNCTION,
                    function.name,
                    function.namespace or GLOBAL_NAMESPACE,
                    unit.file_path,
                    function.start_line,
                    function.end_line,
                    function.name_line,
                    signature=function.signature,
                    docstring=function.doc.description,
                    code=function.code,
                    metadata={
                        "params": [asdict(p) for p in function.params],
                        "return_type": function.return_type or function.doc.return_type,
                    },
                )
            )

        for constant in unit.constants:
            chunks.append(self._constant_chunk(constant, unit.namespace or GLOBAL_NAMESPACE, unit.file_path, ""))

        return chunks

    @staticmethod
    def _class_signature(php_class: PhpClass) -> str:
        prefix = ""
        if php_class.is_abstract:
            prefix = "abstract "
        elif php_class.is_final:
            prefix = "final "
        signature = f"{prefix}class {php_class.name}"
        if php_class.extends:
            signature += f" extends {php_class.extends}"
        if php_class.implements:
            signature += f" implements {', '.join(php_class.implements)}"
        return signature

    def _member_chunks(self, owner, package: str, file_path: str) -> List[CodeChunk]:
        chunks: List[CodeChunk] = []
        for method in owner.methods:
            chunks.append(
                self._chunk(
                    ChunkKind.METHOD,
                    method.name,
                    package,
                    file_path,
                    method.start_line,
                    method.end_line,
                    method.name_line,
                    signature=method.signature,
                    docstring=method.doc.description,
                    code=method.code,
                    metadata={
                        "class_name": owner.name,
                        "visibility": method.visibility,
                        "is_static": method.is_static,
                        "is_abstract": method.is_abstract,
                        "params": [asdict(p) for p in method.params],
                        "return_type": method.return_type or method.doc.return_type,
                        "throws": method.doc.throws,
                        "deprecated": method.doc.deprecated is not None,
                    },
                )
            )

        for prop in getattr(owner, "properties", []):
            chunks.append(
                self._chunk(
                    ChunkKind.PROPERTY,
                    prop.name,
                    package,
                    file_path,
                    prop.start_line,
                    prop.end_line,
                    prop.start_line,
                    signature=prop.signature,
                    docstring=prop.doc.description,
                    code=prop.default,
                    metadata={
                        "class_name": owner.name,
                        "visibility": prop.visibility,
                        "type": prop.type,
                        "is_static": prop.is_static,
                    },
                )
            )

        for constant in getattr(owner, "constants", []):
            chunks.append(self._constant_chunk(constant, package, file_path, owner.name))
        return chunks

    def _constant_chunk(self, constant: PhpConstant, package: str, file_path: str, owner: str) -> CodeChunk:
        return self._chunk(
            ChunkKind.CONST,
            constant.name,
            package,
            file_path,
            constant.start_line,
            constant.end_line,
            constant.start_line,
            signature=f"const {constant.name} = {constant.value}",
            docstring=constant.doc.description,
            code=constant.value,
            metadata={"class_name": owner, "visibility": constant.visibility},
        )

    def _chunk(
        self,
        kind: ChunkKind,
        name: str,
        package: str,
        file_path: str,
        first: int,
        last: int,
        name_line: int,
        **fields,
    ) -> CodeChunk:
        return CodeChunk(
            kind=kind,
            name=name,
            package=package,
            language=self.language,
            file_path=file_path,
            start_line=first,
            end_line=max(first, last),
            selection_start_line=name_line,
            selection_end_line=name_line,
            **fields,
        )
