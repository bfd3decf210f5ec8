"""Python module analysis by line and indentation scanning.

No grammar is involved. Physical lines are grouped into logical lines
(joined while a bracket or triple-quoted string is open) and classified
with anchored regular expressions. Anything that matches nothing is
simply not recognized; the scanner never fails on malformed input.
"""

import inspect
import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .analyzer_base import PathAnalyzer, PathLike
from .models import ChunkKind, CodeChunk, sort_chunks
from .syntax import source_excerpt
from .walker import AnalysisContext

logger = logging.getLogger(__name__)

MAX_CODE_LINES = 100
MAX_PACKAGE_DEPTH = 5
TAB_WIDTH = 4

DECORATOR_RE = re.compile(r"^@(\w+(?:\.\w+)*)(?:\s*\(.*\))?\s*(?:#.*)?$")
CLASS_RE = re.compile(r"^class\s+(\w+)")
DEF_RE = re.compile(r"^(async\s+)?def\s+(\w+)\s*(?:\[[^\]]*\])?\s*\(")
IMPORT_RE = re.compile(r"^import\s+(.+)$")
FROM_IMPORT_RE = re.compile(r"^from\s+(\S+)\s+import\s+(.+)$")
ASSIGN_RE = re.compile(r"^([A-Za-z_]\w*)\s*(?::\s*([^=]+?))?\s*=(?!=)\s*(.+)$")
ANNOTATION_RE = re.compile(r"^([A-Za-z_]\w*)\s*:\s*([^=]+)$")
METACLASS_RE = re.compile(r"metaclass\s*=\s*([\w.]+)")
DOCSTRING_START_RE = re.compile(r"^([rRuUbB]{0,2})(\"\"\"|''')")
YIELD_RE = re.compile(r"\byield\b")
CAPITALIZED_RE = re.compile(r"\b([A-Z]\w*)\b")

SELF_CALL_RE = re.compile(r"\bself\.(\w+)\s*\(")
CLS_CALL_RE = re.compile(r"\bcls\.(\w+)\s*\(")
SUPER_CALL_RE = re.compile(r"\bsuper\(\)\.(\w+)\s*\(")
CLASS_CALL_RE = re.compile(r"\b([A-Z]\w+)\.(\w+)\s*\(")
BARE_CALL_RE = re.compile(r"(?<![.\w])(\w+)\s*\(")

KEYWORDS = {
    "and", "as", "assert", "async", "await", "break", "class", "continue", "def", "del", "elif",
    "else", "except", "finally", "for", "from", "global", "if", "import", "in", "is", "lambda",
    "nonlocal", "not", "or", "pass", "raise", "return", "try", "while", "with", "yield", "match",
    "case", "print",
}

BUILTIN_FUNCTIONS = {
    "abs", "all", "any", "bool", "bytearray", "bytes", "callable", "chr", "classmethod", "dict",
    "dir", "divmod", "enumerate", "filter", "float", "format", "frozenset", "getattr", "hasattr",
    "hash", "id", "input", "int", "isinstance", "issubclass", "iter", "len", "list", "map", "max",
    "memoryview", "min", "next", "object", "open", "ord", "pow", "property", "range", "repr",
    "reversed", "round", "set", "setattr", "slice", "sorted", "staticmethod", "str", "sum", "super",
    "tuple", "type", "vars", "zip",
}

BUILTIN_TYPES = {
    "ABC", "Annotated", "Any", "AsyncGenerator", "AsyncIterator", "Awaitable", "Callable",
    "ChainMap", "ClassVar", "Concatenate", "Coroutine", "Counter", "DefaultDict", "Deque", "Dict",
    "False", "Final", "FrozenSet", "Generator", "Generic", "Iterable", "Iterator", "List", "Literal",
    "Mapping", "MutableMapping", "MutableSequence", "Never", "NoReturn", "None", "Optional",
    "OrderedDict", "ParamSpec", "Protocol", "Self", "Sequence", "Set", "True", "Tuple", "Type",
    "TypeAlias", "TypeVar", "Union",
}

MAPPING_WRAPPERS = {"Dict", "dict", "Mapping", "MutableMapping", "DefaultDict", "OrderedDict"}
ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}


@dataclass
class LogicalLine:
    """One or more physical lines forming a single statement."""

    start: int  # 0-based index of the first physical line
    end: int  # 0-based index of the last physical line
    indent: int
    text: str  # stripped and joined with single spaces


@dataclass
class PyParameter:
    name: str
    type: str = ""
    kind: str = ""  # "*" or "**" for star parameters

    def render(self) -> str:
        annotation = f": {self.type}" if self.type else ""
        return f"{self.kind}{self.name}{annotation}"


@dataclass
class PyCall:
    name: str
    receiver: str = ""
    class_name: str = ""
    line: int = 0


@dataclass
class PyFunction:
    name: str
    params: List[PyParameter] = field(default_factory=list)
    return_type: str = ""
    decorators: List[str] = field(default_factory=list)
    docstring: str = ""
    is_async: bool = False
    is_generator: bool = False
    is_static: bool = False
    is_classmethod: bool = False
    is_abstract: bool = False
    is_property: bool = False
    calls: List[PyCall] = field(default_factory=list)
    type_deps: List[str] = field(default_factory=list)
    start_line: int = 0
    end_line: int = 0
    code: str = ""
    class_name: str = ""

    @property
    def signature(self) -> str:
        prefix = "async " if self.is_async else ""
        params = ", ".join(param.render() for param in self.params)
        returns = f" -> {self.return_type}" if self.return_type else ""
        return f"{prefix}def {self.name}({params}){returns}"


@dataclass
class PyProperty:
    name: str
    type: str = ""
    docstring: str = ""
    has_getter: bool = False
    has_setter: bool = False
    has_deleter: bool = False
    start_line: int = 0
    end_line: int = 0
    code: str = ""


@dataclass
class PyVariable:
    name: str
    type: str = ""
    value: str = ""
    is_constant: bool = False
    start_line: int = 0
    end_line: int = 0


@dataclass
class PyClass:
    name: str
    bases: List[str] = field(default_factory=list)
    bases_text: str = ""
    decorators: List[str] = field(default_factory=list)
    metaclass: str = ""
    docstring: str = ""
    methods: List[PyFunction] = field(default_factory=list)
    properties: List[PyProperty] = field(default_factory=list)
    class_vars: List[PyVariable] = field(default_factory=list)
    is_dataclass: bool = False
    is_abstract: bool = False
    is_enum: bool = False
    is_protocol: bool = False
    is_mixin: bool = False
    dependencies: List[str] = field(default_factory=list)
    start_line: int = 0
    end_line: int = 0
    code: str = ""

    @property
    def signature(self) -> str:
        return f"class {self.name}({self.bases_text})" if self.bases_text else f"class {self.name}"


@dataclass
class PyImport:
    module: str
    name: str = ""  # imported name for from-imports
    alias: str = ""
    line: int = 0


@dataclass
class PythonModule:
    """Symbol table for one Python file."""

    name: str
    file_path: str
    line_count: int = 0
    docstring: str = ""
    imports: List[PyImport] = field(default_factory=list)
    import_table: Dict[str, str] = field(default_factory=dict)  # alias -> dotted name
    classes: List[PyClass] = field(default_factory=list)
    functions: List[PyFunction] = field(default_factory=list)
    variables: List[PyVariable] = field(default_factory=list)


def indentation(line: str) -> int:
    width = 0
    for char in line:
        if char == " ":
            width += 1
        elif char == "\t":
            width += TAB_WIDTH
        else:
            break
    return width


def scan_logical_lines(lines: List[str]) -> List[LogicalLine]:
    """Group physical lines into logical lines.

    Tracks bracket depth, triple-quoted strings and backslash
    continuations. Blank lines outside a statement produce nothing.

    Args:
        lines: File content split into lines

    Returns:
        Logical lines in order
    """
    logical: List[LogicalLine] = []
    parts: List[str] = []
    start = 0
    depth = 0
    triple: Optional[str] = None

    for index, line in enumerate(lines):
        if not parts and triple is None and depth == 0:
            if not line.strip():
                continue
            start = index

        parts.append(line.strip())
        depth, triple, backslash = _scan_line(line, depth, triple)

        if triple is None and depth == 0 and not backslash:
            logical.append(LogicalLine(start, index, indentation(lines[start]), " ".join(p for p in parts if p)))
            parts = []

    if parts:
        logical.append(LogicalLine(start, len(lines) - 1, indentation(lines[start]), " ".join(p for p in parts if p)))
    return logical


def _scan_line(line: str, depth: int, triple: Optional[str]) -> Tuple[int, Optional[str], bool]:
    position = 0
    length = len(line)
    while position < length:
        if triple is not None:
            close = line.find(triple, position)
            if close < 0:
                return depth, triple, False
            position = close + 3
            triple = None
            continue

        char = line[position]
        if char == "#":
            break
        if char in "\"'":
            if line.startswith(char * 3, position):
                triple = char * 3
                position += 3
                continue
            position = _skip_string(line, position + 1, char)
            continue
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth = max(depth - 1, 0)
        position += 1

    backslash = triple is None and line.rstrip().endswith("\\") and "#" not in line
    return depth, triple, backslash


def _skip_string(line: str, position: int, quote: str) -> int:
    while position < len(line):
        char = line[position]
        if char == "\\":
            position += 2
            continue
        if char == quote:
            return position + 1
        position += 1
    return position


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split on a separator that is not nested inside brackets or strings."""
    parts: List[str] = []
    depth = 0
    quote = ""
    current: List[str] = []
    for char in text:
        if quote:
            current.append(char)
            if char == quote:
                quote = ""
            continue
        if char in "\"'":
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def matching_paren(text: str, open_index: int) -> int:
    """Index of the bracket closing the one at open_index, or -1."""
    depth = 0
    quote = ""
    for index in range(open_index, len(text)):
        char = text[index]
        if quote:
            if char == quote:
                quote = ""
            continue
        if char in "\"'":
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
            if depth == 0:
                return index
    return -1


def parse_parameters(text: str) -> List[PyParameter]:
    params: List[PyParameter] = []
    for raw in split_top_level(text):
        if raw in ("*", "/"):
            continue
        kind = ""
        if raw.startswith("**"):
            kind, raw = "**", raw[2:]
        elif raw.startswith("*"):
            kind, raw = "*", raw[1:]
        declaration = split_top_level(raw, "=")[0] if "=" in raw else raw
        name, _, annotation = declaration.partition(":")
        params.append(PyParameter(name=name.strip(), type=annotation.strip(), kind=kind))
    return params


def is_constant_name(name: str) -> bool:
    stripped = name.lstrip("_")
    return bool(stripped) and stripped[0].isupper() and not any(char.islower() for char in stripped)


def type_dependencies(annotations: List[str]) -> List[str]:
    """Capitalized names in type annotations, minus typing builtins."""
    deps: List[str] = []
    for annotation in annotations:
        for name in CAPITALIZED_RE.findall(annotation):
            if name not in BUILTIN_TYPES and name not in deps:
                deps.append(name)
    return deps


def base_type_name(base: str) -> str:
    """Strip generic wrappers: ``List[User]`` -> ``User``, ``Dict[str, User]`` -> ``User``."""
    base = base.strip()
    open_index = base.find("[")
    if open_index < 0 or not base.endswith("]"):
        return base
    outer = base[:open_index].rsplit(".", 1)[-1]
    arguments = split_top_level(base[open_index + 1 : -1])
    if not arguments:
        return outer
    inner = arguments[-1] if outer in MAPPING_WRAPPERS else arguments[0]
    return base_type_name(inner)


def extract_docstring(lines: List[str], index: int, limit: int) -> str:
    """Read a triple-quoted docstring starting at or after a physical line.

    Args:
        lines: File lines
        index: 0-based line where the docstring may start
        limit: 0-based last line the docstring may occupy

    Returns:
        Cleaned docstring text, or an empty string
    """
    while index <= limit and index < len(lines) and not lines[index].strip():
        index += 1
    if index > limit or index >= len(lines):
        return ""

    first = lines[index].strip()
    match = DOCSTRING_START_RE.match(first)
    if not match:
        return ""
    quote = match.group(2)
    rest = first[match.end():]

    close = rest.find(quote)
    if close >= 0:
        return inspect.cleandoc(rest[:close])

    collected = [rest]
    for line in lines[index + 1 : limit + 1]:
        close = line.find(quote)
        if close >= 0:
            collected.append(line[:close])
            return inspect.cleandoc("\n".join(collected))
        collected.append(line)
    return ""


def module_name(file_path: Path) -> str:
    """Dotted module name, walking up through package directories."""
    parts = [] if file_path.stem == "__init__" else [file_path.stem]
    directory = file_path.parent
    for _ in range(MAX_PACKAGE_DEPTH):
        if not (directory / "__init__.py").exists():
            break
        parts.insert(0, directory.name)
        directory = directory.parent
    if not parts:
        parts = [file_path.parent.name]
    return ".".join(parts)


class PythonAnalyzer(PathAnalyzer):
    """Extract Python classes, functions and module variables as chunks."""

    language = "python"

    def analyze_paths(
        self,
        paths: Sequence[PathLike],
        context: Optional[AnalysisContext] = None,
    ) -> List[CodeChunk]:
        context = context or self.new_context()
        chunks: List[CodeChunk] = []
        seen = set()

        for root in paths:
            for file_path in self.walker.walk(Path(root), self.language):
                context.check_cancelled(chunks)
                context.files_seen += 1
                key = str(file_path.resolve())
                if key in seen:
                    continue
                seen.add(key)
                try:
                    module = self.analyze_file(file_path)
                except Exception as e:
                    logger.warning(f"Error analyzing Python file {file_path}: {e}")
                    continue
                if module is not None:
                    chunks.extend(self.convert(module))

        logger.info(f"Extracted {len(chunks)} Python chunks")
        return sort_chunks(chunks)

    def analyze_file(self, file_path: Path) -> Optional[PythonModule]:
        source = self.read_source(file_path)
        if source is None:
            return None
        text = source.decode("utf-8", errors="replace")
        return self.analyze_source(text, file_path)

    def analyze_source(self, text: str, file_path: Path) -> PythonModule:
        """Build the symbol table for one module's source text."""
        lines = text.splitlines()
        logical = scan_logical_lines(lines)
        module = PythonModule(name=module_name(file_path), file_path=str(file_path), line_count=len(lines))

        first_statement = next((ll for ll in logical if not ll.text.startswith("#")), None)
        if first_statement is not None and DOCSTRING_START_RE.match(first_statement.text):
            module.docstring = extract_docstring(lines, first_statement.start, first_statement.end)

        decorators: List[str] = []
        for position, line in enumerate(logical):
            if line.indent != 0 or line.text.startswith("#"):
                continue

            decorator = DECORATOR_RE.match(line.text)
            if decorator:
                decorators.append(decorator.group(1))
                continue

            if CLASS_RE.match(line.text):
                module.classes.append(self._parse_class(lines, logical, position, decorators))
            elif DEF_RE.match(line.text):
                module.functions.append(self._parse_function(lines, logical, position, decorators))
            elif line.text.startswith(("import ", "from ")):
                self._parse_import(line, module)
            else:
                variable = self._parse_variable(line)
                if variable is not None:
                    module.variables.append(variable)
            decorators = []

        return module

    @staticmethod
    def _block_end(lines: List[str], logical: List[LogicalLine], position: int) -> int:
        """0-based last line of the block opened by logical[position]."""
        header = logical[position]
        for following in logical[position + 1 :]:
            if following.indent <= header.indent:
                return max(following.start - 1, header.end)
        return max(len(lines) - 1, header.end)

    def _parse_class(
        self,
        lines: List[str],
        logical: List[LogicalLine],
        position: int,
        decorators: List[str],
    ) -> PyClass:
        header = logical[position]
        name = CLASS_RE.match(header.text).group(1)
        bases_text = ""
        open_index = header.text.find("(", len("class ") + len(name))
        colon_index = header.text.find(":")
        if open_index >= 0 and (colon_index < 0 or open_index < colon_index):
            close_index = matching_paren(header.text, open_index)
            if close_index > open_index:
                bases_text = header.text[open_index + 1 : close_index].strip()

        arguments = split_top_level(bases_text)
        bases = [arg for arg in arguments if "=" not in arg]
        metaclass_match = METACLASS_RE.search(bases_text)
        end = self._block_end(lines, logical, position)

        py_class = PyClass(
            name=name,
            bases=bases,
            bases_text=", ".join(arguments),
            decorators=list(decorators),
            metaclass=metaclass_match.group(1) if metaclass_match else "",
            docstring=extract_docstring(lines, header.end + 1, end),
            start_line=header.start + 1,
            end_line=end + 1,
            code=source_excerpt(lines, header.start + 1, end + 1, MAX_CODE_LINES),
        )
        self._parse_class_body(lines, logical, position, end, py_class)

        base_names = [base.rsplit(".", 1)[-1] for base in bases]
        py_class.is_dataclass = any(d.rsplit(".", 1)[-1] == "dataclass" for d in decorators)
        py_class.is_enum = any(base in ENUM_BASES for base in base_names)
        py_class.is_protocol = any(base == "Protocol" or base.startswith("Protocol[") for base in base_names)
        py_class.is_mixin = "Mixin" in name or any("Mixin" in base for base in bases)
        py_class.is_abstract = (
            any(base == "ABC" or "Abstract" in base for base in base_names)
            or py_class.metaclass.rsplit(".", 1)[-1] == "ABCMeta"
            or any(method.is_abstract for method in py_class.methods)
        )
        py_class.dependencies = self._class_dependencies(py_class)
        return py_class

    def _parse_class_body(
        self,
        lines: List[str],
        logical: List[LogicalLine],
        position: int,
        end: int,
        py_class: PyClass,
    ) -> None:
        header = logical[position]
        body = [index for index in range(position + 1, len(logical)) if logical[index].start <= end]
        if not body:
            return
        body_indent = next((logical[i].indent for i in body if not logical[i].text.startswith("#")), None)
        if body_indent is None or body_indent <= header.indent:
            return

        properties: Dict[str, PyProperty] = {}
        decorators: List[str] = []
        for index in body:
            line = logical[index]
            if line.indent != body_indent or line.text.startswith("#"):
                continue
            decorator = DECORATOR_RE.match(line.text)
            if decorator:
                decorators.append(decorator.group(1))
                continue

            if DEF_RE.match(line.text):
                method = self._parse_function(lines, logical, index, decorators, class_name=py_class.name)
                py_class.methods.append(method)
                self._merge_property(method, decorators, properties)
            else:
                variable = self._parse_variable(line)
                if variable is not None:
                    py_class.class_vars.append(variable)
            decorators = []

        py_class.properties = list(properties.values())

    @staticmethod
    def _merge_property(method: PyFunction, decorators: List[str], properties: Dict[str, PyProperty]) -> None:
        for decorator in decorators:
            if decorator == "property":
                prop = properties.setdefault(method.name, PyProperty(name=method.name))
                prop.has_getter = True
                prop.type = method.return_type
                prop.docstring = method.docstring
                prop.start_line = method.start_line
                prop.end_line = max(prop.end_line, method.end_line)
                prop.code = method.code
                method.is_property = True
            elif decorator.endswith((".setter", ".deleter")):
                base, _, accessor = decorator.rpartition(".")
                prop = properties.setdefault(base, PyProperty(name=base, start_line=method.start_line))
                if accessor == "setter":
                    prop.has_setter = True
                else:
                    prop.has_deleter = True
                prop.end_line = max(prop.end_line, method.end_line)
                method.is_property = True

    def _parse_function(
        self,
        lines: List[str],
        logical: List[LogicalLine],
        position: int,
        decorators: List[str],
        class_name: str = "",
    ) -> PyFunction:
        header = logical[position]
        match = DEF_RE.match(header.text)
        open_index = match.end() - 1
        close_index = matching_paren(header.text, open_index)
        params_text = header.text[open_index + 1 : close_index] if close_index > open_index else ""
        return_type = ""
        if close_index > open_index:
            tail = header.text[close_index + 1 :]
            arrow = re.match(r"\s*->\s*(.+?)\s*:(?:\s*#.*)?", tail)
            if arrow:
                return_type = arrow.group(1)

        params = parse_parameters(params_text)
        end = self._block_end(lines, logical, position)
        body_lines = lines[header.end + 1 : end + 1]
        bare_decorators = [d.rsplit(".", 1)[-1] for d in decorators]

        function = PyFunction(
            name=match.group(2),
            params=params,
            return_type=return_type,
            decorators=list(decorators),
            docstring=extract_docstring(lines, header.end + 1, end),
            is_async=bool(match.group(1)),
            is_generator=any(YIELD_RE.search(line) for line in body_lines),
            is_static="staticmethod" in bare_decorators,
            is_classmethod="classmethod" in bare_decorators,
            is_abstract="abstractmethod" in bare_decorators,
            calls=self._find_calls(body_lines, header.end + 2),
            type_deps=type_dependencies([param.type for param in params] + [return_type]),
            start_line=header.start + 1,
            end_line=end + 1,
            code=source_excerpt(lines, header.start + 1, end + 1, MAX_CODE_LINES),
            class_name=class_name,
        )
        return function

    @staticmethod
    def _find_calls(body_lines: List[str], first_line: int) -> List[PyCall]:
        calls: List[PyCall] = []
        seen = set()

        def add(name: str, receiver: str, class_name: str, line: int) -> None:
            key = f"{receiver}.{name}"
            if key not in seen:
                seen.add(key)
                calls.append(PyCall(name=name, receiver=receiver, class_name=class_name, line=line))

        for offset, raw in enumerate(body_lines):
            stripped = raw.strip()
            if not stripped or stripped.startswith("#"):
                continue
            line_number = first_line + offset
            for name in SELF_CALL_RE.findall(stripped):
                add(name, "self", "", line_number)
            for name in CLS_CALL_RE.findall(stripped):
                add(name, "cls", "", line_number)
            for name in SUPER_CALL_RE.findall(stripped):
                add(name, "super", "", line_number)
            for class_name, name in CLASS_CALL_RE.findall(stripped):
                add(name, class_name, class_name, line_number)
            if stripped.startswith(("def ", "async def ", "class ")):
                continue
            for name in BARE_CALL_RE.findall(stripped):
                if name in KEYWORDS or name in BUILTIN_FUNCTIONS or name.isdigit():
                    continue
                add(name, "", "", line_number)
        return calls

    @staticmethod
    def _class_dependencies(py_class: PyClass) -> List[str]:
        deps: List[str] = []

        def add(name: str) -> None:
            if name and name not in BUILTIN_TYPES and name not in BUILTIN_FUNCTIONS and name not in deps:
                deps.append(name)

        for base in py_class.bases:
            add(base_type_name(base))
        add(py_class.metaclass)
        for method in py_class.methods:
            for dep in method.type_deps:
                add(dep)
        for variable in py_class.class_vars:
            for dep in type_dependencies([variable.type]):
                add(dep)
        return deps

    @staticmethod
    def _parse_import(line: LogicalLine, module: PythonModule) -> None:
        text = line.text.split("#", 1)[0].strip()
        line_number = line.start + 1

        from_match = FROM_IMPORT_RE.match(text)
        if from_match:
            source = from_match.group(1)
            names = from_match.group(2).strip().strip("()").rstrip("\\")
            for item in split_top_level(names):
                name, _, alias = item.partition(" as ")
                name, alias = name.strip(), alias.strip()
                if not name:
                    continue
                module.imports.append(PyImport(module=source, name=name, alias=alias, line=line_number))
                if name != "*":
                    module.import_table.setdefault(alias or name, f"{source}.{name}")
            return

        import_match = IMPORT_RE.match(text)
        if import_match:
            for item in split_top_level(import_match.group(1)):
                target, _, alias = item.partition(" as ")
                target, alias = target.strip(), alias.strip()
                module.imports.append(PyImport(module=target, alias=alias, line=line_number))
                module.import_table.setdefault(alias or target, target)

    @staticmethod
    def _parse_variable(line: LogicalLine) -> Optional[PyVariable]:
        text = line.text
        match = ASSIGN_RE.match(text)
        if match:
            name, annotation, value = match.group(1), match.group(2) or "", match.group(3)
        else:
            match = ANNOTATION_RE.match(text)
            if not match:
                return None
            name, annotation, value = match.group(1), match.group(2), ""
        if name in KEYWORDS:
            return None
        return PyVariable(
            name=name,
            type=annotation.strip(),
            value=value.strip(),
            is_constant=is_constant_name(name),
            start_line=line.start + 1,
            end_line=line.end + 1,
        )

    def convert(self, module: PythonModule) -> List[CodeChunk]:
        """Flatten a module symbol table into chunks."""
        chunks: List[CodeChunk] = []

        if module.docstring:
            chunks.append(
                self._chunk(
                    ChunkKind.FILE,
                    module.name,
                    module,
                    1,
                    max(module.line_count, 1),
                    signature=f"module {module.name}",
                    docstring=module.docstring,
                    metadata={"imports": dict(module.import_table)},
                )
            )

        for py_class in module.classes:
            chunks.append(
                self._chunk(
                    ChunkKind.CLASS,
                    py_class.name,
                    module,
                    py_class.start_line,
                    py_class.end_line,
                    signature=py_class.signature,
                    docstring=py_class.docstring,
                    code=py_class.code,
                    metadata={
                        "bases": py_class.bases,
                        "decorators": py_class.decorators,
                        "metaclass": py_class.metaclass,
                        "is_dataclass": py_class.is_dataclass,
                        "is_abstract": py_class.is_abstract,
                        "is_enum": py_class.is_enum,
                        "is_protocol": py_class.is_protocol,
                        "is_mixin": py_class.is_mixin,
                        "class_vars": [asdict(var) for var in py_class.class_vars],
                        "dependencies": py_class.dependencies,
                    },
                )
            )

            for method in py_class.methods:
                if method.is_property:
                    continue
                chunks.append(self._function_chunk(ChunkKind.METHOD, method, module))

            for prop in py_class.properties:
                type_part = f": {prop.type}" if prop.type else ""
                chunks.append(
                    self._chunk(
                        ChunkKind.PROPERTY,
                        prop.name,
                        module,
                        prop.start_line,
                        max(prop.end_line, prop.start_line),
                        signature=f"@property {prop.name}{type_part}",
                        docstring=prop.docstring,
                        code=prop.code,
                        metadata={
                            "class_name": py_class.name,
                            "has_getter": prop.has_getter,
                            "has_setter": prop.has_setter,
                            "has_deleter": prop.has_deleter,
                        },
                    )
                )

        for function in module.functions:
            chunks.append(self._function_chunk(ChunkKind.FUNCTION, function, module))

        for variable in module.variables:
            type_part = f": {variable.type}" if variable.type else ""
            if variable.is_constant:
                chunks.append(
                    self._chunk(
                        ChunkKind.CONST,
                        variable.name,
                        module,
                        variable.start_line,
                        variable.end_line,
                        signature=f"{variable.name}{type_part} = {variable.value}",
                        code=variable.value,
                    )
                )
            else:
                chunks.append(
                    self._chunk(
                        ChunkKind.VAR,
                        variable.name,
                        module,
                        variable.start_line,
                        variable.end_line,
                        signature=f"{variable.name}{type_part}",
                        code=variable.value,
                    )
                )

        return chunks

    def _function_chunk(self, kind: ChunkKind, function: PyFunction, module: PythonModule) -> CodeChunk:
        metadata = {
            "is_async": function.is_async,
            "decorators": function.decorators,
            "params": [asdict(p) for p in function.params if p.name not in ("self", "cls")],
            "return_type": function.return_type,
        }
        if kind == ChunkKind.METHOD:
            metadata.update(
                {
                    "class_name": function.class_name,
                    "is_static": function.is_static,
                    "is_classmethod": function.is_classmethod,
                    "is_abstract": function.is_abstract,
                    "calls": [asdict(call) for call in function.calls],
                    "type_deps": function.type_deps,
                }
            )
        else:
            metadata.update(
                {
                    "is_generator": function.is_generator,
                    "calls": [asdict(call) for call in function.calls],
                    "type_deps": function.type_deps,
                }
            )
        return self._chunk(
            kind,
            function.name,
            module,
            function.start_line,
            function.end_line,
            signature=function.signature,
            docstring=function.docstring,
            code=function.code,
            metadata=metadata,
        )

    def _chunk(self, kind: ChunkKind, name: str, module: PythonModule, first: int, last: int, **fields) -> CodeChunk:
        return CodeChunk(
            kind=kind,
            name=name,
            package=module.name,
            language=self.language,
            file_path=module.file_path,
            start_line=first,
            end_line=max(first, last),
            selection_start_line=first,
            selection_end_line=first,
            **fields,
        )
