"""Laravel controller detection."""

import logging
from dataclasses import dataclass, field
from typing import List

from ..php_analyzer import PhpClass, PhpFileUnit
from .routes import RESOURCE_ACTIONS

logger = logging.getLogger(__name__)

CONTROLLER_BASES = ("Controller", "BaseController", "ApiController")
RESOURCE_THRESHOLD = 4

# action name -> HTTP verbs, for conventional names
ACTION_VERBS = {
    "index": ["GET"],
    "show": ["GET"],
    "create": ["GET"],
    "edit": ["GET"],
    "store": ["POST"],
    "update": ["PUT", "PATCH"],
    "destroy": ["DELETE"],
}
VERB_PREFIXES = (
    (("get", "show", "list", "find", "search", "fetch"), ["GET"]),
    (("store", "save", "add", "post", "submit"), ["POST"]),
    (("update", "put"), ["PUT", "PATCH"]),
    (("delete", "destroy", "remove"), ["DELETE"]),
)


@dataclass
class ControllerAction:
    name: str
    http_methods: List[str]
    line: int


@dataclass
class LaravelController:
    class_name: str
    fqn: str
    file_path: str
    is_api: bool = False
    is_resource: bool = False
    actions: List[ControllerAction] = field(default_factory=list)


def guess_http_methods(action: str) -> List[str]:
    if action in ACTION_VERBS:
        return list(ACTION_VERBS[action])
    lowered = action.lower()
    for prefixes, verbs in VERB_PREFIXES:
        if lowered.startswith(prefixes):
            return list(verbs)
    return ["GET"]


class ControllerAnalyzer:
    """Recognize controller classes among parsed PHP files."""

    @staticmethod
    def is_controller(php_class: PhpClass) -> bool:
        if "Controllers" in php_class.namespace:
            return True
        parent = php_class.extends.lstrip("\\")
        return parent in CONTROLLER_BASES or parent.endswith("\\Controller")

    @staticmethod
    def is_api_controller(php_class: PhpClass) -> bool:
        namespace = php_class.namespace
        return (
            "\\Api" in namespace
            or "\\API" in namespace
            or php_class.name.endswith("ApiController")
            or "/Api/" in php_class.file_path.replace("\\", "/")
        )

    def analyze_controllers(self, units: List[PhpFileUnit]) -> List[LaravelController]:
        controllers: List[LaravelController] = []
        for unit in units:
            for php_class in unit.classes:
                if self.is_controller(php_class):
                    controllers.append(self.analyze_controller(php_class))
        logger.info(f"Detected {len(controllers)} controllers")
        return controllers

    def analyze_controller(self, php_class: PhpClass) -> LaravelController:
        actions = [
            ControllerAction(name=method.name, http_methods=guess_http_methods(method.name), line=method.start_line)
            for method in php_class.methods
            if method.visibility == "public" and not method.name.startswith("__") and not method.is_static
        ]
        action_names = {action.name for action in actions}
        resource_count = sum(1 for name in RESOURCE_ACTIONS if name in action_names)

        return LaravelController(
            class_name=php_class.name,
            fqn=php_class.fqn,
            file_path=php_class.file_path,
            is_api=self.is_api_controller(php_class),
            is_resource=resource_count >= RESOURCE_THRESHOLD,
            actions=actions,
        )
