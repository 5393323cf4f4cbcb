"""
Symbols — Per-file symbol tables built from tree-sitter parses.

A SymbolTable is a flat, source-ordered map from qualified path to
Symbol. Nesting is expressed by each symbol's ``parent`` address
(a back-reference by qualified path), never by owning child lists.

Usage:
    table = extractor.extract("src/app.py", content, digest)
    greet = table.get("Greeter.greet")
    for ancestor in table.ancestors(greet):
        print(ancestor.signature)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


QUALIFIER = "."
DUPLICATE_MARKER = "#"


class SymbolKind(Enum):
    """Kinds of addressable code constructs."""
    FUNCTION = "function"
    METHOD = "method"
    CLASS = "class"
    STRUCT = "struct"
    ENUM = "enum"
    INTERFACE = "interface"
    TYPE = "type"
    CONSTANT = "constant"
    VARIABLE = "variable"
    MODULE = "module"

    @property
    def is_type_like(self) -> bool:
        """Functions nested in type-like scopes are methods."""
        return self in TYPE_LIKE_KINDS


TYPE_LIKE_KINDS = frozenset({
    SymbolKind.CLASS,
    SymbolKind.STRUCT,
    SymbolKind.ENUM,
    SymbolKind.INTERFACE,
    SymbolKind.TYPE,
})


@dataclass(frozen=True)
class Span:
    """Source range, 1-based lines and 1-based byte columns (end inclusive line)."""
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    def contains(self, other: 'Span') -> bool:
        """True if ``other`` lies within this span."""
        if (other.start_line, other.start_column) < (self.start_line, self.start_column):
            return False
        if (other.end_line, other.end_column) > (self.end_line, self.end_column):
            return False
        return True

    def contains_point(self, line: int, column: int) -> bool:
        return (self.start_line, self.start_column) <= (line, column) <= (self.end_line, self.end_column)

    def to_dict(self) -> Dict[str, int]:
        return {
            "start_line": self.start_line,
            "start_column": self.start_column,
            "end_line": self.end_line,
            "end_column": self.end_column,
        }


@dataclass(frozen=True)
class Symbol:
    """A named, addressable construct extracted from one file."""
    path: str                    # Repository-relative file path
    kind: SymbolKind
    name: str                    # Bare name (e.g., "greet")
    qualified_name: str          # Dotted path within the file (e.g., "Greeter.greet")
    span: Span
    signature: str = ""
    docstring: Optional[str] = None
    visibility: str = "public"   # "public" | "private"
    parent: Optional[str] = None  # Qualified name of enclosing symbol
    name_line: int = 0           # Position of the name token
    name_column: int = 0
    depth: int = 0               # Nesting level (0 = top level)

    @property
    def address(self) -> str:
        return f"{self.path}::{self.qualified_name}"

    @property
    def is_public(self) -> bool:
        return self.visibility == "public"

    def to_dict(self, signature_only: bool = False) -> Dict[str, Any]:
        if signature_only:
            return {
                "name": self.name,
                "qualified_name": self.qualified_name,
                "signature": self.signature,
            }
        return {
            "path": self.path,
            "kind": self.kind.value,
            "name": self.name,
            "qualified_name": self.qualified_name,
            "visibility": self.visibility,
            "span": self.span.to_dict(),
            "signature": self.signature,
            "docstring": self.docstring,
            "parent": self.parent,
        }


@dataclass
class SymbolTable:
    """
    All symbols of one file, keyed by qualified path in source order.

    Built once per (path, digest) by the extractor and treated as
    immutable afterwards; the cache hands the same instance to
    concurrent readers.
    """
    path: str
    language: str
    digest: str = ""
    partial: bool = False
    error_lines: List[int] = field(default_factory=list)
    _symbols: Dict[str, Symbol] = field(default_factory=dict, repr=False)

    # =========================================================================
    # Construction (extractor only)
    # =========================================================================

    def unique_name(self, qualified_name: str) -> str:
        """Return ``qualified_name`` or the next free ``name#n`` variant."""
        if qualified_name not in self._symbols:
            return qualified_name
        n = 2
        while f"{qualified_name}{DUPLICATE_MARKER}{n}" in self._symbols:
            n += 1
        return f"{qualified_name}{DUPLICATE_MARKER}{n}"

    def add(self, symbol: Symbol) -> Symbol:
        if symbol.qualified_name in self._symbols:
            raise ValueError(f"Duplicate qualified name: {symbol.qualified_name}")
        self._symbols[symbol.qualified_name] = symbol
        return symbol

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, qualified_name: str) -> Optional[Symbol]:
        return self._symbols.get(qualified_name)

    def __contains__(self, qualified_name: str) -> bool:
        return qualified_name in self._symbols

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._symbols.values())

    def __len__(self) -> int:
        return len(self._symbols)

    def symbols(self, public_only: bool = False) -> List[Symbol]:
        """All symbols in source order, optionally only public ones."""
        return [s for s in self._symbols.values() if s.is_public or not public_only]

    def qualified_names(self) -> List[str]:
        return list(self._symbols.keys())

    def by_name(self, name: str) -> List[Symbol]:
        """Symbols with the given bare name, in source order."""
        return [s for s in self._symbols.values() if s.name == name]

    def top_level(self) -> List[Symbol]:
        return [s for s in self._symbols.values() if s.parent is None]

    def children(self, qualified_name: str) -> List[Symbol]:
        return [s for s in self._symbols.values() if s.parent == qualified_name]

    def ancestors(self, symbol: Symbol) -> List[Symbol]:
        """Enclosing symbols, outermost first."""
        chain: List[Symbol] = []
        current = symbol.parent
        while current is not None:
            parent = self._symbols.get(current)
            if parent is None:
                break
            chain.append(parent)
            current = parent.parent
        chain.reverse()
        return chain

    def enclosing(self, line: int, column: int) -> Optional[Symbol]:
        """Innermost symbol whose span contains the position."""
        best: Optional[Symbol] = None
        for symbol in self._symbols.values():
            if symbol.span.contains_point(line, column):
                if best is None or symbol.depth > best.depth:
                    best = symbol
        return best

    def definition_sites(self) -> Dict[tuple, Symbol]:
        """Map of (line, column) of every name token to its symbol."""
        return {(s.name_line, s.name_column): s for s in self._symbols.values()}

    def to_dict(self, public_only: bool = False, signature_only: bool = False) -> Dict[str, Any]:
        symbols = self.symbols(public_only=public_only)
        return {
            "path": self.path,
            "language": self.language,
            "partial": self.partial,
            "error_lines": list(self.error_lines),
            "count": len(symbols),
            "symbols": [s.to_dict(signature_only=signature_only) for s in symbols],
        }
