"""Laravel route file parsing.

Recognizes calls on the ``Route`` facade:

- ``get``/``post``/``put``/``patch``/``delete``/``options``/``any``: one route
- ``match``: one route per verb in the literal verb list
- ``resource``: the seven conventional CRUD routes
- ``apiResource``: the five CRUD routes without HTML forms
- ``group``: not expanded; routes nested in the closure are still found
  but carry no group prefix
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from tree_sitter import Node

from ..grammars import create_parser
from ..models import RouteDescriptor
from ..syntax import iter_descendants, node_text, start_line
from .literals import (
    ClassReference,
    ListLiteral,
    StringLiteral,
    evaluate_string,
    evaluate_string_list,
    fold_string,
    is_closure,
    to_expr,
)

logger = logging.getLogger(__name__)

ROUTE_FACADE = "Route"
SINGLE_VERB_METHODS = ("get", "post", "put", "patch", "delete", "options", "any")

# action -> (verb, uri suffix), in expansion order
RESOURCE_ROUTES = (
    ("index", "GET", ""),
    ("create", "GET", "/create"),
    ("store", "POST", ""),
    ("show", "GET", "/{id}"),
    ("edit", "GET", "/{id}/edit"),
    ("update", "PUT/PATCH", "/{id}"),
    ("destroy", "DELETE", "/{id}"),
)
API_RESOURCE_ACTIONS = ("index", "store", "show", "update", "destroy")
RESOURCE_ACTIONS = tuple(action for action, _, _ in RESOURCE_ROUTES)

REGISTRATION_METHODS = SINGLE_VERB_METHODS + ("match", "resource", "apiResource")
CALL_TYPES = ("member_call_expression", "nullsafe_member_call_expression")


def is_route_facade(node: Optional[Node]) -> bool:
    name = node_text(node).strip()
    return name == ROUTE_FACADE or name.endswith("\\" + ROUTE_FACADE)


def call_arguments(call: Node) -> List[Node]:
    arguments = call.child_by_field_name("arguments")
    if arguments is None:
        return []
    return [arg for arg in arguments.named_children if arg.type == "argument"]


def parse_action(node: Optional[Node]) -> Tuple[str, str]:
    """Parse a route action argument into (controller, action).

    Accepted shapes are ``[Controller::class, 'action']``,
    ``'Controller@action'`` and a closure (controller ``Closure``).
    Anything else yields empty strings.
    """
    if node is None:
        return "", ""
    if is_closure(node):
        return "Closure", ""

    expr = to_expr(node)
    if isinstance(expr, ListLiteral) and len(expr.items) == 2:
        controller_expr, action_expr = expr.items
        if isinstance(controller_expr, (ClassReference, StringLiteral)) and isinstance(action_expr, StringLiteral):
            return fold_string(controller_expr) or "", action_expr.value
        return "", ""
    if isinstance(expr, StringLiteral) and "@" in expr.value:
        controller, action = expr.value.split("@", 1)
        return controller, action
    return "", ""


def resource_controller(node: Optional[Node]) -> str:
    expr = to_expr(node)
    if isinstance(expr, (ClassReference, StringLiteral)):
        return fold_string(expr) or ""
    return ""


class RouteParser:
    """Extract route registrations from Laravel route files."""

    def __init__(self):
        self.parser = create_parser("php")

    def parse_files(self, file_paths: Sequence[Path]) -> List[RouteDescriptor]:
        routes: List[RouteDescriptor] = []
        for file_path in file_paths:
            routes.extend(self.parse_file(Path(file_path)))
        return routes

    def parse_file(self, file_path: Path) -> List[RouteDescriptor]:
        """Parse one route file.

        Unreadable files are logged and contribute no routes. Files with
        syntax errors are parsed best-effort.

        Args:
            file_path: Route file path

        Returns:
            Routes in call-site order
        """
        try:
            with open(file_path, "rb") as f:
                source = f.read()
        except OSError as e:
            logger.warning(f"Cannot read route file {file_path}: {e}")
            return []

        tree = self.parser.parse(source)
        if tree.root_node.has_error:
            logger.warning(f"Route file {file_path} has syntax errors, parsing best-effort")

        routes: List[RouteDescriptor] = []
        for call in iter_descendants(tree.root_node, "scoped_call_expression", *CALL_TYPES):
            try:
                routes.extend(self._routes_for_call(call, str(file_path)))
            except Exception as e:
                logger.warning(f"Error parsing route at {file_path}:{start_line(call)}: {e}")

        logger.debug(f"Parsed {len(routes)} routes from {file_path}")
        return routes

    def _routes_for_call(self, call: Node, file_path: str) -> List[RouteDescriptor]:
        method = node_text(call.child_by_field_name("name"))
        if method not in REGISTRATION_METHODS:
            return []

        if call.type == "scoped_call_expression":
            if not is_route_facade(call.child_by_field_name("scope")):
                return []
            middleware: List[str] = []
        else:
            # Route::middleware('auth')->get(...)
            middleware = self._chain_middleware(call)
            if middleware is None:
                return []

        route_name, trailing_middleware = self._chained_options(call)
        middleware = middleware + trailing_middleware
        args = call_arguments(call)
        line = start_line(call)

        def make(verb: str, uri: str, controller: str, action: str, description: str = "") -> RouteDescriptor:
            return RouteDescriptor(
                method=verb,
                uri=uri,
                controller=controller,
                action=action,
                file_path=file_path,
                line=line,
                name=route_name,
                middleware=list(middleware),
                description=description,
            )

        if method in SINGLE_VERB_METHODS:
            uri = evaluate_string(args[0]) if args else ""
            controller, action = parse_action(args[1] if len(args) > 1 else None)
            return [make(method.upper(), uri, controller, action)]

        if method == "match":
            verbs = evaluate_string_list(args[0]) if args else []
            uri = evaluate_string(args[1]) if len(args) > 1 else ""
            controller, action = parse_action(args[2] if len(args) > 2 else None)
            return [make(verb.upper(), uri, controller, action) for verb in verbs]

        name = evaluate_string(args[0]) if args else ""
        controller = resource_controller(args[1]) if len(args) > 1 else ""
        allowed = RESOURCE_ACTIONS if method == "resource" else API_RESOURCE_ACTIONS
        return [
            make(verb, f"{name}{suffix}", controller, action, f"Resource route for {name}.{action}")
            for action, verb, suffix in RESOURCE_ROUTES
            if action in allowed
        ]

    @staticmethod
    def _chain_middleware(call: Node) -> Optional[List[str]]:
        """Walk the receiver chain of an instance call down to the Route facade.

        Returns:
            Middleware named along the chain, or None if the chain does not
            start at the facade
        """
        middleware: List[str] = []
        current = call.child_by_field_name("object")
        while current is not None:
            name = node_text(current.child_by_field_name("name"))
            if name == "middleware":
                middleware.extend(RouteParser._middleware_values(current))
            if current.type == "scoped_call_expression":
                if not is_route_facade(current.child_by_field_name("scope")):
                    return None
                middleware.reverse()
                return middleware
            if current.type not in CALL_TYPES:
                return None
            current = current.child_by_field_name("object")
        return None

    @staticmethod
    def _chained_options(call: Node) -> Tuple[str, List[str]]:
        """Read ``->name()`` and ``->middleware()`` calls chained after a registration."""
        route_name = ""
        middleware: List[str] = []
        current = call
        parent = call.parent
        while parent is not None and parent.type in CALL_TYPES:
            receiver = parent.child_by_field_name("object")
            if receiver is None or receiver != current:
                break
            option = node_text(parent.child_by_field_name("name"))
            if option == "name":
                args = call_arguments(parent)
                route_name = evaluate_string(args[0]) if args else ""
            elif option == "middleware":
                middleware.extend(RouteParser._middleware_values(parent))
            current = parent
            parent = parent.parent
        return route_name, middleware

    @staticmethod
    def _middleware_values(call: Node) -> List[str]:
        values: List[str] = []
        for arg in call_arguments(call):
            single = evaluate_string(arg)
            if single:
                values.append(single)
            else:
                values.extend(evaluate_string_list(arg))
        return values
