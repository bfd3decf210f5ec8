"""Constant folding for the literal expressions Laravel declares on classes.

Only a closed set of expression shapes is understood. Syntax nodes are
first lowered into those variants; everything else becomes
``Unsupported`` and folds to an empty result, never to a guess.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from tree_sitter import Node

from ..syntax import children_of_type, first_child_of_type, node_text

PLAIN_STRING_PARTS = {"string_content", "string_value", "escape_sequence"}
CLOSURE_TYPES = {"anonymous_function", "anonymous_function_creation_expression", "arrow_function"}


@dataclass(frozen=True)
class StringLiteral:
    value: str


@dataclass(frozen=True)
class ListLiteral:
    items: Tuple["Expr", ...]


@dataclass(frozen=True)
class MapLiteral:
    entries: Tuple[Tuple["Expr", "Expr"], ...]


@dataclass(frozen=True)
class Identifier:
    name: str


@dataclass(frozen=True)
class QualifiedName:
    name: str


@dataclass(frozen=True)
class ClassReference:
    """``Foo::class``; class_name keeps any leading backslash."""

    class_name: str


@dataclass(frozen=True)
class Unsupported:
    node_type: str


Expr = Union[StringLiteral, ListLiteral, MapLiteral, Identifier, QualifiedName, ClassReference, Unsupported]


def _unquote_single(body: str) -> str:
    return body.replace("\\\\", "\x00").replace("\\'", "'").replace("\x00", "\\")


def _unquote_double(body: str) -> str:
    return (
        body.replace("\\\\", "\x00")
        .replace('\\"', '"')
        .replace("\\$", "$")
        .replace("\\n", "\n")
        .replace("\\t", "\t")
        .replace("\x00", "\\")
    )


def to_expr(node: Optional[Node]) -> Expr:
    """Lower a syntax node into the closed expression variant type."""
    if node is None:
        return Unsupported("missing")

    node_type = node.type
    if node_type == "argument" and node.named_children:
        return to_expr(node.named_children[-1])
    if node_type == "parenthesized_expression" and len(node.named_children) == 1:
        return to_expr(node.named_children[0])

    if node_type == "string":
        text = node_text(node)
        if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
            return StringLiteral(_unquote_single(text[1:-1]))
        return Unsupported(node_type)

    if node_type == "encapsed_string":
        if any(child.type not in PLAIN_STRING_PARTS for child in node.named_children):
            return Unsupported("interpolated_string")
        text = node_text(node)
        if len(text) >= 2 and text[0] == text[-1] == '"':
            return StringLiteral(_unquote_double(text[1:-1]))
        return Unsupported(node_type)

    if node_type in ("name", "boolean", "null"):
        return Identifier(node_text(node))

    if node_type == "qualified_name":
        return QualifiedName(node_text(node).lstrip("\\"))

    if node_type == "class_constant_access_expression":
        text = node_text(node)
        if text.lower().endswith("::class"):
            return ClassReference(text[: -len("::class")].strip())
        return Unsupported(node_type)

    if node_type == "array_creation_expression":
        return _array_to_expr(node)

    return Unsupported(node_type)


def _array_to_expr(node: Node) -> Expr:
    items: List[Expr] = []
    entries: List[Tuple[Expr, Expr]] = []
    for element in children_of_type(node, "array_element_initializer"):
        named = element.named_children
        if not named or first_child_of_type(element, "variadic_unpacking") is not None:
            return Unsupported("spread")
        if first_child_of_type(element, "=>") is not None and len(named) >= 2:
            entries.append((to_expr(named[0]), to_expr(named[-1])))
        else:
            items.append(to_expr(named[-1]))

    if items and entries:
        return Unsupported("mixed_array")
    if entries:
        return MapLiteral(tuple(entries))
    return ListLiteral(tuple(items))


def fold_string(expr: Expr) -> Optional[str]:
    """Fold an expression to a string, or None when it is not string-like."""
    if isinstance(expr, StringLiteral):
        return expr.value
    if isinstance(expr, (Identifier, QualifiedName)):
        return expr.name
    if isinstance(expr, ClassReference):
        return expr.class_name.lstrip("\\")
    return None


def evaluate_string(node: Optional[Node]) -> str:
    value = fold_string(to_expr(node))
    return value if value is not None else ""


def evaluate_string_list(node: Optional[Node]) -> List[str]:
    """Evaluate a list of strings; any unsupported element empties the result."""
    expr = to_expr(node)
    if not isinstance(expr, ListLiteral):
        return []
    values: List[str] = []
    for item in expr.items:
        value = fold_string(item)
        if value is None:
            return []
        values.append(value)
    return values


def evaluate_string_map(node: Optional[Node]) -> Dict[str, str]:
    """Evaluate a key => value map of strings; any unsupported entry empties the result."""
    expr = to_expr(node)
    if isinstance(expr, ListLiteral) and not expr.items:
        return {}
    if not isinstance(expr, MapLiteral):
        return {}
    values: Dict[str, str] = {}
    for key_expr, value_expr in expr.entries:
        key, value = fold_string(key_expr), fold_string(value_expr)
        if key is None or value is None:
            return {}
        values[key] = value
    return values


def evaluate_bool(node: Optional[Node], default: bool) -> bool:
    expr = to_expr(node)
    if isinstance(expr, Identifier):
        lowered = expr.name.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return default


def is_closure(node: Optional[Node]) -> bool:
    if node is not None and node.type == "argument" and node.named_children:
        node = node.named_children[-1]
    return node is not None and node.type in CLOSURE_TYPES
