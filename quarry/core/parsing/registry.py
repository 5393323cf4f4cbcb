"""
Parser Registry — Routes files to language-specific configurations.

Central registry that maps file extensions to LanguageConfig instances
and hands out tree-sitter parsers for them.
Enables adding new language support without modifying core code.

Usage:
    registry = ParserRegistry()
    registry.register(PYTHON_CONFIG)
    registry.register(RUST_CONFIG)

    config = registry.resolve("src/main.rs")
    # Returns RUST_CONFIG, or raises UnsupportedLanguage
"""

import threading
from pathlib import PurePosixPath
from typing import Dict, List, Set, TYPE_CHECKING

from tree_sitter_language_pack import get_parser

from ..errors import UnsupportedLanguage
from .config import LanguageConfig

if TYPE_CHECKING:
    from tree_sitter import Parser


class ParserRegistry:
    """
    Registry of language configurations.

    Maps file extensions to LanguageConfig instances for routing.
    Parsers are created lazily and kept per thread, since a tree-sitter
    Parser must not be used by two threads at once.
    """

    def __init__(self):
        """Initialize empty registry."""
        self._configs: Dict[str, LanguageConfig] = {}  # name -> config
        self._extension_map: Dict[str, str] = {}  # ext -> config name
        self._local = threading.local()

    def register(self, config: LanguageConfig) -> None:
        """
        Register a language configuration.

        Args:
            config: LanguageConfig to register

        Raises:
            ValueError: If extension already registered to different config
        """
        for ext in config.extensions:
            existing = self._extension_map.get(ext)
            if existing is not None and existing != config.name:
                raise ValueError(
                    f"Extension {ext} already registered to {existing}, "
                    f"cannot register to {config.name}"
                )

        self._configs[config.name] = config
        for ext in config.extensions:
            self._extension_map[ext] = config.name

    def unregister(self, name: str) -> bool:
        """
        Unregister a language configuration by name.

        Returns:
            True if unregistered, False if not found
        """
        if name not in self._configs:
            return False

        config = self._configs.pop(name)
        for ext in config.extensions:
            if self._extension_map.get(ext) == name:
                del self._extension_map[ext]
        return True

    def resolve(self, path: str) -> LanguageConfig:
        """
        Get the language config for a path or bare extension.

        Args:
            path: File path ("src/app.py") or extension (".py")

        Raises:
            UnsupportedLanguage: If no registered language handles it
        """
        ext = _extension_of(path)
        config_name = self._extension_map.get(ext)
        if config_name is None:
            raise UnsupportedLanguage(
                f"Unsupported file type: {ext or path}",
                path=path,
            )
        return self._configs[config_name]

    def get_config_by_name(self, name: str) -> LanguageConfig:
        return self._configs[name]

    def parser_for(self, config: LanguageConfig) -> 'Parser':
        """
        Get a tree-sitter parser for a language (lazy, per thread).

        Raises:
            UnsupportedLanguage: If the grammar is not available
        """
        parsers = getattr(self._local, "parsers", None)
        if parsers is None:
            parsers = self._local.parsers = {}

        parser = parsers.get(config.tree_sitter_name)
        if parser is None:
            try:
                parser = get_parser(config.tree_sitter_name)
            except (LookupError, ValueError) as e:
                raise UnsupportedLanguage(
                    f"Grammar '{config.tree_sitter_name}' is not available: {e}"
                ) from e
            parsers[config.tree_sitter_name] = parser
        return parser

    def supported_extensions(self) -> Set[str]:
        """Get all supported file extensions (e.g., {'.py', '.rs'})."""
        return set(self._extension_map.keys())

    def supported_languages(self) -> List[str]:
        """Get list of registered language names."""
        return list(self._configs.keys())

    def is_supported(self, path: str) -> bool:
        return _extension_of(path) in self._extension_map

    def __len__(self) -> int:
        return len(self._configs)

    def __contains__(self, name: str) -> bool:
        return name in self._configs


def _extension_of(path: str) -> str:
    if path.startswith(".") and "/" not in path and path.count(".") == 1:
        return path.lower()
    return PurePosixPath(path).suffix.lower()


def default_registry() -> ParserRegistry:
    """Create a registry with every built-in language registered."""
    from .languages import ALL_LANGUAGES

    registry = ParserRegistry()
    for config in ALL_LANGUAGES:
        registry.register(config)
    return registry
