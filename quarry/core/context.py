"""
Context Builder — minimal usage context for one symbol.

A context answers "how do I use this": the symbol's signature and doc
comment plus the signature of every enclosing container, outermost
first. The body is never included; output size depends on nesting
depth only, not on file length.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .address import Resolution, SymbolAddress, resolve_symbol
from .symbols import Span, Symbol, SymbolTable


@dataclass(frozen=True)
class AncestorContext:
    name: str
    kind: str
    signature: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "kind": self.kind, "signature": self.signature}


@dataclass(frozen=True)
class Context:
    """Signature, doc and ancestor signatures of a resolved symbol."""
    address: str
    name: str
    kind: str
    visibility: str
    signature: str
    doc: Optional[str]
    span: Span
    ancestors: List[AncestorContext] = field(default_factory=list)
    alternates: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "address": self.address,
            "name": self.name,
            "kind": self.kind,
            "visibility": self.visibility,
            "signature": self.signature,
            "doc": self.doc,
            "span": self.span.to_dict(),
            "ancestors": [a.to_dict() for a in self.ancestors],
        }
        if self.alternates:
            data["alternates"] = len(self.alternates)
            data["alternate_paths"] = list(self.alternates)
        return data


def build_context(table: SymbolTable, symbol: Symbol, alternates: Optional[List[Symbol]] = None) -> Context:
    """Assemble the context of ``symbol`` from its own table."""
    return Context(
        address=symbol.address,
        name=symbol.name,
        kind=symbol.kind.value,
        visibility=symbol.visibility,
        signature=symbol.signature,
        doc=symbol.docstring,
        span=symbol.span,
        ancestors=[
            AncestorContext(name=a.name, kind=a.kind.value, signature=a.signature)
            for a in table.ancestors(symbol)
        ],
        alternates=[s.qualified_name for s in alternates or []],
    )


def context_for(table: SymbolTable, address: SymbolAddress, strict: bool = False) -> Context:
    """
    Resolve an address in its table and build the context.

    Raises:
        SymbolNotFound, AmbiguousSymbol: From resolution
    """
    resolution: Resolution = resolve_symbol(table, address.symbol, strict=strict)
    return build_context(table, resolution.symbol, resolution.alternates)
