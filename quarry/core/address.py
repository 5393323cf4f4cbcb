"""
Symbol Address — ``path::dotted.symbol`` request strings.

Addresses are parsed and validated before any content is read, so a
malformed request never costs I/O. Resolution against a SymbolTable
follows a fixed order:

1. Exact qualified-path match
2. Suffix match (``greet`` finds ``Greeter.greet``), first in source order
3. Not found, with close-name suggestions

Usage:
    address = SymbolAddress.parse("src/app.py::Greeter.greet")
    resolution = resolve_symbol(table, address.symbol)
    resolution.symbol, resolution.alternates
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from rapidfuzz import fuzz, process

from .errors import AddressFormatError, AmbiguousSymbol, SymbolNotFound
from .symbols import DUPLICATE_MARKER, QUALIFIER, Symbol, SymbolTable

SEPARATOR = "::"

MAX_SUGGESTIONS = 5
SUGGESTION_CUTOFF = 60

_SEGMENT = re.compile(r"^#?[^\s.:/\\#]+(?:#[0-9]+)?$")
_DRIVE = re.compile(r"^[A-Za-z]:")
_DUPLICATE_SUFFIX = re.compile(re.escape(DUPLICATE_MARKER) + r"[0-9]+")


@dataclass(frozen=True)
class SymbolAddress:
    """Immutable ``(relative path, dotted symbol path | "")`` pair."""
    path: str
    symbol: str = ""

    @property
    def is_file(self) -> bool:
        """True when the address denotes a whole file."""
        return not self.symbol

    @property
    def segments(self) -> List[str]:
        return self.symbol.split(QUALIFIER) if self.symbol else []

    def __str__(self) -> str:
        return f"{self.path}{SEPARATOR}{self.symbol}" if self.symbol else self.path

    @classmethod
    def parse(cls, text: str, require_symbol: bool = False) -> 'SymbolAddress':
        """
        Parse and validate an address string.

        Args:
            text: ``path`` or ``path::dotted.symbol``
            require_symbol: Reject whole-file addresses

        Raises:
            AddressFormatError: If the string is malformed
        """
        if not isinstance(text, str) or not text.strip():
            raise AddressFormatError("Address is empty", address=str(text))
        if text.count(SEPARATOR) > 1:
            raise AddressFormatError(
                f"Address has more than one '{SEPARATOR}' separator",
                address=text,
            )

        path, sep, symbol = text.partition(SEPARATOR)
        validate_path(path, address=text)

        if not sep:
            if require_symbol:
                raise AddressFormatError(
                    f"Expected '<path>{SEPARATOR}<symbol>', got a file path",
                    address=text,
                )
            return cls(path=path)

        _validate_symbol(symbol, address=text)
        return cls(path=path, symbol=symbol)


def validate_path(path: str, address: Optional[str] = None) -> str:
    """
    Validate a repository-relative, forward-slash path.

    Raises:
        AddressFormatError: On empty, absolute or non-normalized paths
    """
    address = address if address is not None else path
    if not path:
        raise AddressFormatError("Path is empty", address=address)
    if "\\" in path:
        raise AddressFormatError("Path must use forward slashes", address=address, path=path)
    if path.startswith("/") or _DRIVE.match(path):
        raise AddressFormatError("Path must be repository-relative", address=address, path=path)
    for segment in path.split("/"):
        if segment in ("", ".", ".."):
            raise AddressFormatError(
                f"Path segment '{segment}' is not allowed",
                address=address,
                path=path,
            )
    return path


def _validate_symbol(symbol: str, address: str) -> None:
    if not symbol:
        raise AddressFormatError(f"Symbol path after '{SEPARATOR}' is empty", address=address)
    for segment in symbol.split(QUALIFIER):
        if not _SEGMENT.match(segment):
            raise AddressFormatError(f"Invalid symbol segment '{segment}'", address=address)


# =============================================================================
# Resolution
# =============================================================================

@dataclass
class Resolution:
    """Outcome of looking up a dotted symbol path in one table."""
    symbol: Symbol
    alternates: List[Symbol] = field(default_factory=list)

    @property
    def ambiguous(self) -> bool:
        return bool(self.alternates)

    @property
    def alternate_count(self) -> int:
        return len(self.alternates)


def find_matches(table: SymbolTable, symbol_path: str) -> List[Symbol]:
    """
    All symbols matching a dotted path, best first.

    An exact qualified match wins alone. Otherwise suffix matches are
    returned in source order, innermost first when they start at the
    same position.
    """
    exact = table.get(symbol_path)
    if exact is not None:
        return [exact]

    suffix = QUALIFIER + symbol_path
    matches = [
        s for s in table
        if s.qualified_name.endswith(suffix)
        or strip_duplicate_marker(s.qualified_name) == symbol_path
        or strip_duplicate_marker(s.qualified_name).endswith(suffix)
    ]
    matches.sort(key=lambda s: (s.span.start_line, s.span.start_column, -s.depth))
    return matches


def resolve_symbol(table: SymbolTable, symbol_path: str, strict: bool = False) -> Resolution:
    """
    Resolve a dotted symbol path against a table.

    Raises:
        SymbolNotFound: With close-name suggestions when nothing matches
        AmbiguousSymbol: When ``strict`` and several symbols match
    """
    matches = find_matches(table, symbol_path)
    address = f"{table.path}{SEPARATOR}{symbol_path}"

    if not matches:
        raise SymbolNotFound(
            f"Symbol '{symbol_path}' not found in {table.path}",
            path=table.path,
            address=address,
            suggestions=suggest(table, symbol_path),
        )
    if strict and len(matches) > 1:
        raise AmbiguousSymbol(
            f"'{symbol_path}' matches {len(matches)} symbols in {table.path}",
            path=table.path,
            address=address,
            candidates=[s.qualified_name for s in matches],
        )
    return Resolution(symbol=matches[0], alternates=matches[1:])


def suggest(table: SymbolTable, symbol_path: str, limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Closest qualified names for a failed lookup."""
    choices = table.qualified_names()
    if not choices:
        return []
    results = process.extract(
        symbol_path,
        choices,
        scorer=fuzz.WRatio,
        limit=limit,
        score_cutoff=SUGGESTION_CUTOFF,
    )
    return [choice for choice, _score, _index in results]


def strip_duplicate_marker(qualified_name: str) -> str:
    """Qualified path without duplicate markers (``Foo.bar#2`` to ``Foo.bar``)."""
    return _DUPLICATE_SUFFIX.sub("", qualified_name)
