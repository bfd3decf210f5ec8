"""Eloquent model detection and metadata extraction."""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from tree_sitter import Node

from ..models import RelationDescriptor
from ..php_analyzer import PhpClass, PhpFileUnit
from ..syntax import node_text
from .literals import (
    ClassReference,
    StringLiteral,
    evaluate_bool,
    evaluate_string,
    evaluate_string_list,
    evaluate_string_map,
    to_expr,
)

logger = logging.getLogger(__name__)

RELATION_KINDS = (
    "hasOne",
    "hasMany",
    "belongsTo",
    "belongsToMany",
    "hasManyThrough",
    "morphTo",
    "morphMany",
    "morphToMany",
    "morphedByMany",
)

MODEL_BASES = (
    "Model",
    "Eloquent\\Model",
    "Illuminate\\Database\\Eloquent\\Model",
    "Authenticatable",
)
MODEL_BASE_SUFFIXES = ("\\Model", "\\Authenticatable")

LIST_PROPERTIES = ("fillable", "guarded", "hidden", "visible", "appends", "dates", "with")

ACCESSOR_RE = re.compile(r"^get([A-Z]\w*)Attribute$")
MUTATOR_RE = re.compile(r"^set([A-Z]\w*)Attribute$")
SCOPE_PREFIX = "scope"

CALL_TYPES = ("member_call_expression", "nullsafe_member_call_expression")


@dataclass
class EloquentModel:
    """Declarative configuration of one Eloquent model."""

    class_name: str
    fqn: str
    namespace: str
    file_path: str
    table: str = ""
    primary_key: str = ""
    fillable: List[str] = field(default_factory=list)
    guarded: List[str] = field(default_factory=list)
    hidden: List[str] = field(default_factory=list)
    visible: List[str] = field(default_factory=list)
    appends: List[str] = field(default_factory=list)
    dates: List[str] = field(default_factory=list)
    with_relations: List[str] = field(default_factory=list)
    casts: Dict[str, str] = field(default_factory=dict)
    timestamps: bool = True
    soft_deletes: bool = False
    relations: List[RelationDescriptor] = field(default_factory=list)
    scopes: List[str] = field(default_factory=list)
    accessors: List[str] = field(default_factory=list)
    mutators: List[str] = field(default_factory=list)


def snake_case(name: str) -> str:
    """Convert StudlyCase to snake_case the way Laravel's Str::snake does."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def is_model_base(name: str) -> bool:
    name = name.lstrip("\\")
    return name in MODEL_BASES or name.endswith(MODEL_BASE_SUFFIXES)


def resolve_class_name(token: str, php_class: PhpClass, is_string: bool = False) -> str:
    """Resolve a class token to a fully-qualified name.

    Leading backslashes and string literals are already fully qualified.
    Otherwise the first matching import alias wins, and failing that the
    token is qualified with the class's namespace.

    Args:
        token: Class name as written, optionally with ``::class``
        php_class: Class in whose file the token appears
        is_string: Whether the token came from a string literal

    Returns:
        Fully-qualified class name, or an empty string for an empty token
    """
    token = token.strip()
    if token.endswith("::class"):
        token = token[: -len("::class")]
    if not token:
        return ""
    if token.startswith("\\") or is_string:
        return token.lstrip("\\")

    head, separator, rest = token.partition("\\")
    if head in php_class.imports:
        target = php_class.imports[head]
        return f"{target}\\{rest}" if separator else target
    if php_class.namespace:
        return f"{php_class.namespace}\\{token}"
    return token


class EloquentAnalyzer:
    """Second pass over PHP classes that recognizes Eloquent models."""

    def __init__(self, units: List[PhpFileUnit]):
        """Initialize with the parsed PHP files.

        Args:
            units: Per-file symbol tables produced by PhpAnalyzer
        """
        self.units = units
        self.classes: Dict[str, PhpClass] = {}
        for unit in units:
            for php_class in unit.classes:
                self.classes.setdefault(php_class.fqn, php_class)

    def is_model(self, php_class: PhpClass) -> bool:
        """Check whether a class extends an Eloquent base, directly or through analyzed parents."""
        visited: Set[str] = set()
        current: Optional[PhpClass] = php_class
        while current is not None and current.extends:
            if current.fqn in visited:
                return False
            visited.add(current.fqn)

            parent = resolve_class_name(current.extends, current)
            if is_model_base(current.extends) or is_model_base(parent):
                return True
            current = self.classes.get(parent)
        return False

    def analyze_models(self) -> List[EloquentModel]:
        """Extract every detected model, skipping classes that fail."""
        models: List[EloquentModel] = []
        for unit in self.units:
            for php_class in unit.classes:
                if not self.is_model(php_class):
                    continue
                try:
                    models.append(self.analyze_model(php_class))
                except Exception as e:
                    logger.warning(f"Error extracting model metadata for {php_class.fqn}: {e}")
        logger.info(f"Detected {len(models)} Eloquent models")
        return models

    def analyze_model(self, php_class: PhpClass) -> EloquentModel:
        model = EloquentModel(
            class_name=php_class.name,
            fqn=php_class.fqn,
            namespace=php_class.namespace,
            file_path=php_class.file_path,
        )

        model.table = self._string_property(php_class, "table")
        model.primary_key = self._string_property(php_class, "primaryKey")
        for name in LIST_PROPERTIES:
            prop = php_class.get_property(name)
            values = evaluate_string_list(prop.value_node) if prop is not None else []
            setattr(model, "with_relations" if name == "with" else name, values)

        casts = php_class.get_property("casts")
        if casts is not None:
            model.casts = evaluate_string_map(casts.value_node)
        timestamps = php_class.get_property("timestamps")
        if timestamps is not None:
            model.timestamps = evaluate_bool(timestamps.value_node, default=True)
        model.soft_deletes = any("SoftDeletes" in trait for trait in php_class.traits)

        model.relations = self.extract_relations(php_class)
        model.scopes, model.accessors, model.mutators = self._naming_conventions(php_class)
        return model

    @staticmethod
    def _string_property(php_class: PhpClass, name: str) -> str:
        prop = php_class.get_property(name)
        if prop is None:
            return ""
        return evaluate_string(prop.value_node)

    @staticmethod
    def _naming_conventions(php_class: PhpClass) -> Tuple[List[str], List[str], List[str]]:
        scopes: List[str] = []
        accessors: List[str] = []
        mutators: List[str] = []
        for method in php_class.methods:
            if method.visibility != "public":
                continue
            name = method.name
            if name.startswith(SCOPE_PREFIX) and len(name) > len(SCOPE_PREFIX) and name[len(SCOPE_PREFIX)].isupper():
                scope = name[len(SCOPE_PREFIX):]
                scopes.append(scope[0].lower() + scope[1:])
                continue
            accessor = ACCESSOR_RE.match(name)
            if accessor:
                accessors.append(snake_case(accessor.group(1)))
                continue
            mutator = MUTATOR_RE.match(name)
            if mutator:
                mutators.append(snake_case(mutator.group(1)))
        return scopes, accessors, mutators

    def extract_relations(self, php_class: PhpClass) -> List[RelationDescriptor]:
        """Find relation declarations in the top-level statements of each method."""
        relations: List[RelationDescriptor] = []
        for method in php_class.methods:
            body = method.node.child_by_field_name("body") if method.node is not None else None
            if body is None:
                continue
            for statement in body.named_children:
                if statement.type not in ("return_statement", "expression_statement"):
                    continue
                for expression in statement.named_children:
                    relation = self._relation_from_expression(expression, method.name, php_class)
                    if relation is not None:
                        relations.append(relation)
                        break
        return relations

    def _relation_from_expression(self, expression: Node, method_name: str, php_class: PhpClass) -> Optional[RelationDescriptor]:
        # walk down chained calls like $this->hasMany(Post::class)->latest()
        current: Optional[Node] = expression
        while current is not None and current.type in CALL_TYPES:
            receiver = current.child_by_field_name("object")
            called = node_text(current.child_by_field_name("name"))
            if receiver is not None and node_text(receiver) == "$this" and called in RELATION_KINDS:
                return self._build_relation(current, called, method_name, php_class)
            current = receiver
        return None

    @staticmethod
    def _build_relation(call: Node, kind: str, method_name: str, php_class: PhpClass) -> RelationDescriptor:
        arguments = call.child_by_field_name("arguments")
        args = [arg for arg in arguments.named_children if arg.type == "argument"] if arguments is not None else []
        exprs = [to_expr(arg) for arg in args]

        related = ""
        if exprs:
            first = exprs[0]
            if isinstance(first, ClassReference):
                related = resolve_class_name(first.class_name, php_class)
            elif isinstance(first, StringLiteral):
                related = resolve_class_name(first.value, php_class, is_string=True)

        def string_at(index: int) -> str:
            if index < len(exprs) and isinstance(exprs[index], StringLiteral):
                return exprs[index].value
            return ""

        return RelationDescriptor(
            name=method_name,
            relation_kind=kind,
            related_type=related,
            foreign_key=string_at(1),
            local_key=string_at(2),
        )
