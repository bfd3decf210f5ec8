"""Runtime configuration read from environment variables."""

import os
from pathlib import Path
from typing import Any, Dict, List


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def get_env_config() -> Dict[str, Any]:
    """Get configuration from environment variables."""
    return {
        "workspace_path": Path(os.getenv("WORKSPACE_PATH", "/workspace")),
        "language": os.getenv("CHUNK_LANGUAGE", "go"),
        "include_tests": _env_flag("INCLUDE_TESTS", "false"),
        "follow_gitignore": _env_flag("FOLLOW_GITIGNORE", "false"),
        "route_files": _env_list("ROUTE_FILES"),
        "output_path": os.getenv("OUTPUT_PATH", ""),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }
