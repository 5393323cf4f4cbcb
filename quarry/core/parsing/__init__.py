"""
Parsing module — Language-agnostic symbol extraction via tree-sitter.

This module provides the grammar registry and the symbol extractor:
- LanguageConfig: Per-language parsing rules
- SymbolQuery: CST node to symbol mapping
- ParserRegistry: Extension-based routing and per-thread parsers
- TreeSitterExtractor: Content bytes to SymbolTable

Design principle: Add new languages via config, not code changes.

Usage:
    from quarry.core.parsing import LanguageConfig, SymbolQuery, ParserRegistry
    from quarry.core.symbols import SymbolKind

    # Define language config
    config = LanguageConfig(
        name="go",
        tree_sitter_name="go",
        extensions={'.go'},
        symbol_queries=[
            SymbolQuery(node_type="function_declaration", kind=SymbolKind.FUNCTION),
        ],
    )

    # Register
    registry = ParserRegistry()
    registry.register(config)

    # Use
    config = registry.resolve("cmd/main.go")
"""

from .config import LanguageConfig, SymbolQuery
from .registry import ParserRegistry, default_registry
from .extractor import ParsedFile, TreeSitterExtractor
from .exclusions import ExclusionConfig

__all__ = [
    'LanguageConfig',
    'SymbolQuery',
    'ParserRegistry',
    'default_registry',
    'ParsedFile',
    'TreeSitterExtractor',
    'ExclusionConfig',
]
