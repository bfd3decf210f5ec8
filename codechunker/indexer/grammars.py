"""Language configuration, detection and tree-sitter parser setup."""

import fnmatch
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import tree_sitter_go as tsgo
import tree_sitter_php as tsphp
from tree_sitter import Language, Parser

logger = logging.getLogger(__name__)

# Language module mapping for grammar-backed languages
LANGUAGE_MODULES = {
    "go": tsgo,
    "php": tsphp,
}

# Modules that use non-standard language function names
LANGUAGE_FUNCTION_OVERRIDES = {
    "php": "language_php",
}

# Alternative tags accepted for a language
LANGUAGE_ALIASES = {
    "golang": "go",
    "laravel": "php",
    "php-laravel": "php",
    "py": "python",
    "htm": "html",
    "web": "html",
    "static-html": "html",
}


class LanguageConfig:
    """File discovery rules for one language."""

    def __init__(
        self,
        name: str,
        extensions: List[str],
        tree_sitter_language: Optional[str],
        skip_dirs: List[str],
        test_file_patterns: List[str],
        route_dir: Optional[str] = None,
        route_files: Optional[List[str]] = None,
        route_skip_dirs: Optional[List[str]] = None,
    ):
        """Initialize language configuration.

        Args:
            name: Language name (go, php, python, html)
            extensions: List of file extensions
            tree_sitter_language: Tree-sitter language identifier, None for
                languages analyzed without a grammar
            skip_dirs: Directory name patterns never descended into
            test_file_patterns: File name patterns that mark test files
            route_dir: Directory name holding route files
            route_files: Route file names inside route_dir
            route_skip_dirs: Directory names skipped while looking for routes
        """
        self.name = name
        self.extensions = extensions
        self.tree_sitter_language = tree_sitter_language
        self.skip_dirs = skip_dirs
        self.test_file_patterns = test_file_patterns
        self.route_dir = route_dir
        self.route_files = route_files or []
        self.route_skip_dirs = route_skip_dirs or []

    def matches_extension(self, file_path: Path) -> bool:
        return file_path.suffix.lower() in self.extensions

    def is_skipped_dir(self, dir_name: str) -> bool:
        """Check a directory name against the skip list.

        Hidden directories are always skipped.

        Args:
            dir_name: Bare directory name

        Returns:
            True if the directory must not be descended into
        """
        if dir_name.startswith(".") and dir_name not in (".", ".."):
            return True
        return any(fnmatch.fnmatchcase(dir_name, pattern) for pattern in self.skip_dirs)

    def is_test_file(self, file_name: str) -> bool:
        return any(fnmatch.fnmatchcase(file_name, pattern) for pattern in self.test_file_patterns)


class LanguageRegistry:
    """Registry of language configurations."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize language registry.

        Args:
            config_path: Path to languages.json config file
        """
        if config_path is None:
            config_path = Path(__file__).parent.parent / "config" / "languages.json"

        self.config_path = config_path
        self.languages: Dict[str, LanguageConfig] = {}
        self.extension_map: Dict[str, str] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load language configurations from JSON file."""
        try:
            with open(self.config_path, "r") as f:
                config_data = json.load(f)

            for lang_name, lang_config in config_data.items():
                language = LanguageConfig(
                    name=lang_name,
                    extensions=lang_config["extensions"],
                    tree_sitter_language=lang_config.get("tree_sitter_language"),
                    skip_dirs=lang_config.get("skip_dirs", []),
                    test_file_patterns=lang_config.get("test_file_patterns", []),
                    route_dir=lang_config.get("route_dir"),
                    route_files=lang_config.get("route_files"),
                    route_skip_dirs=lang_config.get("route_skip_dirs"),
                )
                self.languages[lang_name] = language

                for ext in language.extensions:
                    self.extension_map[ext] = lang_name

            logger.debug(f"Loaded {len(self.languages)} language configurations")

        except Exception as e:
            logger.error(f"Error loading language config from {self.config_path}: {e}")
            raise

    def normalize_language(self, language: str) -> str:
        """Map an alias such as ``laravel`` to its canonical language tag."""
        tag = language.strip().lower()
        return LANGUAGE_ALIASES.get(tag, tag)

    def detect_language(self, file_path: str) -> Optional[str]:
        """Detect language from file extension.

        Args:
            file_path: Path to the file

        Returns:
            Language name or None if not recognized
        """
        extension = Path(file_path).suffix.lower()
        if extension in self.extension_map:
            return self.extension_map[extension]

        logger.debug(f"Unknown file extension: {extension}")
        return None

    def get_language_config(self, language: str) -> Optional[LanguageConfig]:
        """Get configuration for a language tag or alias.

        Args:
            language: Language name

        Returns:
            Language configuration or None if not found
        """
        return self.languages.get(self.normalize_language(language))

    def get_supported_languages(self) -> List[str]:
        return list(self.languages.keys())

    def is_supported_file(self, file_path: str) -> bool:
        return self.detect_language(file_path) is not None


def create_parser(language: str) -> Parser:
    """Create a tree-sitter parser for a grammar-backed language.

    Args:
        language: Tree-sitter language identifier (go, php)

    Returns:
        Parser bound to the language grammar

    Raises:
        ValueError: If no grammar module is known for the language
    """
    module = LANGUAGE_MODULES.get(language)
    if module is None:
        raise ValueError(f"No tree-sitter grammar for language: {language}")

    lang_func_name = LANGUAGE_FUNCTION_OVERRIDES.get(language, "language")
    lang_func = getattr(module, lang_func_name)

    parser = Parser()
    parser.language = Language(lang_func())
    logger.debug(f"Initialized parser for {language}")
    return parser
