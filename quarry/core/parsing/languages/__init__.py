"""
Language configurations for symbol extraction.

Each language has its own module defining:
- Symbol queries (what CST nodes define symbols, which open a scope)
- Reference token and chain node types
- Custom hooks (naming, kinds, docstrings, visibility)

Supported languages:
- python.py: Python (.py, .pyi)
- rust.py: Rust (.rs)
- javascript.py: JavaScript (.js, .jsx, .mjs, .cjs)
- typescript.py: TypeScript (.ts, .mts, .cts) and TSX (.tsx)
"""

from .python import PYTHON_CONFIG
from .rust import RUST_CONFIG
from .javascript import JAVASCRIPT_CONFIG
from .typescript import TYPESCRIPT_CONFIG, TSX_CONFIG

ALL_LANGUAGES = [
    PYTHON_CONFIG,
    RUST_CONFIG,
    JAVASCRIPT_CONFIG,
    TYPESCRIPT_CONFIG,
    TSX_CONFIG,
]

__all__ = [
    'ALL_LANGUAGES',
    'PYTHON_CONFIG',
    'RUST_CONFIG',
    'JAVASCRIPT_CONFIG',
    'TYPESCRIPT_CONFIG',
    'TSX_CONFIG',
]
