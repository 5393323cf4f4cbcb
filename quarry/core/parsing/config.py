"""
Parsing configuration data structures.

Defines LanguageConfig and SymbolQuery — the declarative description of
how one grammar's concrete syntax tree maps onto symbols.

Design principle: New languages are added via config, not code changes.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Set, Tuple, TYPE_CHECKING

from ..symbols import SymbolKind

if TYPE_CHECKING:
    from tree_sitter import Node


@dataclass(frozen=True)
class SymbolQuery:
    """
    Defines which CST nodes define symbols.

    Attributes:
        node_type: Tree-sitter node type (e.g., "function_definition")
        kind: Symbol kind produced (may be refined by the language hook)
        name_field: CST field holding the symbol name (default: "name")
        body_field: Field (dotted for nested fields, e.g. "value.body") whose
            start ends the signature; None means the signature is the first line
        scope: Whether the node opens a new qualification level (class, module)
            rather than staying a leaf (function, field)
        emit: Whether the node itself becomes a symbol; scope-only nodes
            (Rust ``impl`` blocks) contribute a qualifier but no entry
    """
    node_type: str
    kind: SymbolKind
    name_field: str = "name"
    body_field: Optional[str] = "body"
    scope: bool = False
    emit: bool = True


@dataclass
class LanguageConfig:
    """
    Configuration for parsing a specific programming language.

    Encapsulates all language-specific rules:
    - File extensions to match
    - Tree-sitter grammar name
    - Symbol queries
    - Token types scanned for references
    - Custom hooks for naming, kinds, signatures, docstrings, visibility

    Attributes:
        name: Human-readable name (e.g., "Python", "Rust")
        tree_sitter_name: Grammar name in tree-sitter-language-pack
        extensions: File extensions this config handles (e.g., {'.py'})
        symbol_queries: SymbolQuery entries, at most one per node type
        comment_types: Node types that are comments
        doc_prefixes: Comment prefixes that mark doc comments (empty: any)
        wrapper_types: Node types that wrap a definition (decorators, export)
            and belong to the symbol's span
        doc_skip_types: Siblings skipped when searching for a leading doc
            comment (e.g., Rust attributes)
        reference_types: Leaf node types that can reference a symbol by name
        chain_types: Node types forming qualified chains (``a.b``, ``A::b``)
        receivers: Names standing for the enclosing type inside methods
        signature_from_anchor: Start signatures at the outermost wrapper
            (``export const foo = ...``) instead of the definition node
        max_file_size: Skip files larger than this (bytes)
    """
    # Identity
    name: str
    tree_sitter_name: str
    extensions: Set[str]

    # Extraction rules
    symbol_queries: List[SymbolQuery] = field(default_factory=list)
    comment_types: FrozenSet[str] = frozenset({"comment"})
    doc_prefixes: Tuple[str, ...] = ()
    wrapper_types: FrozenSet[str] = frozenset()
    doc_skip_types: FrozenSet[str] = frozenset()
    signature_from_anchor: bool = False
    max_file_size: int = 1_000_000

    # Reference scanning
    reference_types: FrozenSet[str] = frozenset({"identifier"})
    chain_types: FrozenSet[str] = frozenset()
    receivers: Tuple[str, ...] = ()

    # Customization hooks (optional)
    # name_extractor(node, query, source) -> name Node or None
    # kind_refiner(node, name, kind, source) -> SymbolKind
    # signature_extractor(node, anchor, source) -> str or None (use default)
    # docstring_extractor(node, anchor, source) -> str or None
    # visibility_detector(node, anchor, name, scope_kind, source) -> "public" | "private"
    name_extractor: Optional[Callable[..., Optional['Node']]] = None
    kind_refiner: Optional[Callable[..., SymbolKind]] = None
    signature_extractor: Optional[Callable[..., str]] = None
    docstring_extractor: Optional[Callable[..., Optional[str]]] = None
    visibility_detector: Optional[Callable[..., str]] = None

    _by_node_type: Dict[str, SymbolQuery] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self.extensions = {ext.lower() for ext in self.extensions}
        for query in self.symbol_queries:
            if query.node_type in self._by_node_type:
                raise ValueError(
                    f"{self.name}: duplicate query for node type {query.node_type}"
                )
            self._by_node_type[query.node_type] = query

    def query_for(self, node_type: str) -> Optional[SymbolQuery]:
        """Get the query matching a node type, if any."""
        return self._by_node_type.get(node_type)

    @property
    def definition_types(self) -> FrozenSet[str]:
        return frozenset(self._by_node_type)

    def matches_extension(self, ext: str) -> bool:
        """Check if this config handles the given extension."""
        return ext.lower() in self.extensions
