"""
Core — Code-intelligence data layer for quarry

Contains the foundational pieces:
- Symbols: Symbol, SymbolKind, Span, SymbolTable (per-file, flat)
- Address: ``path::dotted.symbol`` parsing and resolution
- Errors: Structured failure taxonomy (every failure has a ``kind``)
- Envelope: Uniform success/failure result wrapper
- Parsing: Grammar registry and tree-sitter symbol extractor
- Cache: (path, digest) keyed Symbol Table cache
- Context / References / Impact: the query engines built on tables

Only dependency-free modules are re-exported here; the query engines
are imported from their own modules.
"""

from .errors import (
    QuarryError, AddressFormatError, UnsupportedLanguage, ParseError,
    SymbolNotFound, AmbiguousSymbol, NoFilesMatched, FileNotFound,
    InvalidTarget, InvalidRequest, Cancelled, TaskTimeout, InternalError,
)
from .symbols import Span, Symbol, SymbolKind, SymbolTable
from .address import SymbolAddress, Resolution, resolve_symbol
from .envelope import Envelope

__all__ = [
    # Errors
    'QuarryError', 'AddressFormatError', 'UnsupportedLanguage', 'ParseError',
    'SymbolNotFound', 'AmbiguousSymbol', 'NoFilesMatched', 'FileNotFound',
    'InvalidTarget', 'InvalidRequest', 'Cancelled', 'TaskTimeout', 'InternalError',
    # Data model
    'Span', 'Symbol', 'SymbolKind', 'SymbolTable',
    # Addressing
    'SymbolAddress', 'Resolution', 'resolve_symbol',
    # Results
    'Envelope',
]
