"""
Rust language configuration for symbol extraction.

Symbol types extracted:
- function / method: fn items, methods inside impl and trait blocks
- struct / enum / interface (trait) / type: type definitions
- constant: const and static items, enum variants
- variable: struct fields
- module: inline mod blocks

``impl`` blocks are not symbols themselves; they only qualify their
methods with the implemented type (``Point.new``).
"""

from typing import Optional, TYPE_CHECKING

from ...symbols import SymbolKind
from ..config import LanguageConfig, SymbolQuery
from ..nodes import name_field_node

if TYPE_CHECKING:
    from tree_sitter import Node


# =============================================================================
# Symbol Queries
# =============================================================================

RUST_QUERIES = [
    SymbolQuery(node_type="function_item", kind=SymbolKind.FUNCTION),
    # Trait method declarations without a body: fn area(&self) -> f64;
    SymbolQuery(node_type="function_signature_item", kind=SymbolKind.FUNCTION, body_field=None),
    SymbolQuery(node_type="struct_item", kind=SymbolKind.STRUCT, scope=True),
    SymbolQuery(node_type="field_declaration", kind=SymbolKind.VARIABLE, body_field=None),
    SymbolQuery(node_type="enum_item", kind=SymbolKind.ENUM, scope=True),
    SymbolQuery(node_type="enum_variant", kind=SymbolKind.CONSTANT, body_field=None),
    SymbolQuery(node_type="trait_item", kind=SymbolKind.INTERFACE, scope=True),
    SymbolQuery(
        node_type="impl_item",
        kind=SymbolKind.STRUCT,
        name_field="type",
        scope=True,
        emit=False,
    ),
    SymbolQuery(node_type="mod_item", kind=SymbolKind.MODULE, scope=True),
    SymbolQuery(node_type="const_item", kind=SymbolKind.CONSTANT, body_field=None),
    SymbolQuery(node_type="static_item", kind=SymbolKind.CONSTANT, body_field=None),
    SymbolQuery(node_type="type_item", kind=SymbolKind.TYPE, body_field=None),
]

_NAME_TYPES = frozenset({"identifier", "type_identifier", "field_identifier"})


# =============================================================================
# Custom Hooks
# =============================================================================

def rust_name_extractor(node: 'Node', query: SymbolQuery, source: bytes) -> Optional['Node']:
    """
    Name token of a Rust item.

    For ``impl<T> Trait for Wrapper<T>`` the name is ``Wrapper``: generic
    arguments and module paths are peeled off the implemented type.
    """
    if node.type != "impl_item":
        return name_field_node(node, query.name_field, _NAME_TYPES)

    target = node.child_by_field_name("type")
    while target is not None and target.type in ("generic_type", "scoped_type_identifier"):
        field_name = "type" if target.type == "generic_type" else "name"
        target = target.child_by_field_name(field_name)
    if target is None or target.type != "type_identifier":
        return None
    return target


def rust_visibility_detector(
    node: 'Node',
    anchor: 'Node',
    name: str,
    scope_kind: Optional[SymbolKind],
    source: bytes,
) -> str:
    """
    Determine Rust item visibility.

    ``pub`` (in any form) is public. Trait members and enum variants are
    as visible as their container and are reported public.
    """
    if scope_kind == SymbolKind.INTERFACE or node.type == "enum_variant":
        return "public"
    for child in node.children:
        if child.type == "visibility_modifier":
            return "public"
    return "private"


# =============================================================================
# Configuration
# =============================================================================

RUST_CONFIG = LanguageConfig(
    name="rust",
    tree_sitter_name="rust",
    extensions={'.rs'},
    symbol_queries=RUST_QUERIES,
    comment_types=frozenset({"line_comment", "block_comment"}),
    doc_prefixes=("///", "/**"),
    doc_skip_types=frozenset({"attribute_item"}),
    reference_types=_NAME_TYPES,
    chain_types=frozenset({"scoped_identifier", "scoped_type_identifier", "field_expression"}),
    receivers=("self", "Self"),
    name_extractor=rust_name_extractor,
    visibility_detector=rust_visibility_detector,
)
