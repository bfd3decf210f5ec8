"""Laravel-aware PHP analysis: PHP chunks plus Eloquent and route metadata."""

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..analyzer_base import PathAnalyzer, PathLike
from ..models import ChunkKind, CodeChunk, RouteDescriptor, sort_chunks
from ..php_analyzer import PhpAnalyzer, PhpFileUnit
from ..walker import AnalysisContext
from .controllers import ControllerAnalyzer, LaravelController
from .eloquent import EloquentAnalyzer, EloquentModel
from .routes import RouteParser

logger = logging.getLogger(__name__)

FRAMEWORK = "laravel"
LARAVEL_NAMESPACE_PREFIXES = ("App\\Models", "App\\Http\\Controllers", "Illuminate\\")
LARAVEL_BASE_CLASSES = ("Model", "Controller", "Authenticatable")


def is_laravel_project(units: List[PhpFileUnit]) -> bool:
    """Guess whether parsed PHP files belong to a Laravel application."""
    for unit in units:
        for php_class in unit.classes:
            if php_class.namespace.startswith(LARAVEL_NAMESPACE_PREFIXES):
                return True
            parent = php_class.extends.lstrip("\\")
            if parent in LARAVEL_BASE_CLASSES or parent.startswith("Illuminate\\"):
                return True
    return False


def model_metadata(model: EloquentModel) -> Dict[str, Any]:
    return {
        "framework": FRAMEWORK,
        "laravel_type": "model",
        "table": model.table,
        "primary_key": model.primary_key,
        "fillable": model.fillable,
        "guarded": model.guarded,
        "hidden": model.hidden,
        "visible": model.visible,
        "appends": model.appends,
        "dates": model.dates,
        "with": model.with_relations,
        "casts": model.casts,
        "relations": [asdict(relation) for relation in model.relations],
        "scopes": model.scopes,
        "accessors": model.accessors,
        "mutators": model.mutators,
        "soft_deletes": model.soft_deletes,
        "timestamps": model.timestamps,
    }


def controller_metadata(controller: LaravelController) -> Dict[str, Any]:
    return {
        "framework": FRAMEWORK,
        "laravel_type": "controller",
        "is_api": controller.is_api,
        "is_resource": controller.is_resource,
        "actions": [asdict(action) for action in controller.actions],
    }


def route_chunk(route: RouteDescriptor) -> CodeChunk:
    """Build the chunk emitted for one route registration."""
    description = route.description or f"Route {route.method} {route.uri} -> {route.controller}@{route.action}"
    metadata: Dict[str, Any] = {
        "method": route.method,
        "uri": route.uri,
        "controller": route.controller,
        "action": route.action,
        "framework": FRAMEWORK,
    }
    if route.name:
        metadata["route_name"] = route.name
    if route.middleware:
        metadata["middleware"] = route.middleware

    return CodeChunk(
        kind=ChunkKind.ROUTE,
        name=f"{route.method} {route.uri}",
        package="routes",
        language="php",
        file_path=route.file_path,
        start_line=route.line,
        end_line=route.line,
        selection_start_line=route.line,
        selection_end_line=route.line,
        signature=f"Route::{route.method.lower()}('{route.uri}', ...)",
        docstring=description,
        metadata=metadata,
    )


class LaravelAdapter(PathAnalyzer):
    """PHP analyzer that adds Eloquent, controller and route metadata."""

    language = "php"

    def __init__(self, *args, route_files: Optional[Sequence[PathLike]] = None, **kwargs):
        """Initialize the adapter.

        Args:
            route_files: Explicit route files; discovered under each root when
                omitted
        """
        super().__init__(*args, **kwargs)
        self.php_analyzer = PhpAnalyzer(
            self.registry,
            include_tests=self.include_tests,
            follow_gitignore=self.follow_gitignore,
        )
        self.route_parser = RouteParser()
        self.controller_analyzer = ControllerAnalyzer()
        self.route_files = list(route_files) if route_files else None

    def analyze_paths(
        self,
        paths: Sequence[PathLike],
        context: Optional[AnalysisContext] = None,
    ) -> List[CodeChunk]:
        context = context or self.new_context()
        units = self.php_analyzer.analyze_units(paths, context)

        chunks: List[CodeChunk] = []
        for unit in units:
            chunks.extend(self.php_analyzer.convert(unit))

        if is_laravel_project(units):
            self.enrich(chunks, units)
        else:
            logger.debug("No Laravel markers found, skipping model enrichment")

        for route_file in self.resolve_route_files(paths):
            context.check_cancelled(chunks)
            for route in self.route_parser.parse_file(route_file):
                chunks.append(route_chunk(route))

        logger.info(f"Extracted {len(chunks)} PHP chunks from {len(units)} files")
        return sort_chunks(chunks)

    def enrich(self, chunks: List[CodeChunk], units: List[PhpFileUnit]) -> None:
        """Merge model and controller metadata into matching class chunks."""
        updates: Dict[str, Dict[str, Any]] = {}

        for controller in self.controller_analyzer.analyze_controllers(units):
            updates[controller.fqn] = controller_metadata(controller)
        for model in EloquentAnalyzer(units).analyze_models():
            updates[model.fqn] = model_metadata(model)

        enriched = 0
        for chunk in chunks:
            if chunk.kind != ChunkKind.CLASS:
                continue
            update = updates.get(chunk.metadata.get("fqn", ""))
            if update:
                chunk.metadata.update(update)
                enriched += 1
        logger.debug(f"Enriched {enriched} class chunks with Laravel metadata")

    def resolve_route_files(self, paths: Sequence[PathLike]) -> List[Path]:
        """Use the explicit route files, or discover them under each root."""
        if self.route_files is not None:
            candidates = [Path(path) for path in self.route_files]
        else:
            candidates = []
            for root in paths:
                candidates.extend(self.walker.find_route_files(Path(root), self.language))

        unique: List[Path] = []
        seen = set()
        for candidate in candidates:
            key = str(candidate.resolve())
            if key not in seen:
                seen.add(key)
                unique.append(candidate)
        return unique
