"""
TypeScript language configuration for symbol extraction.

Extends JavaScript queries with TypeScript-specific constructs:
- interface: Interface declarations and their members
- type: Type alias declarations
- enum: Enum declarations
- class: Abstract class declarations
- module: ``namespace`` blocks

TSX shares everything but the grammar.
"""

from ...symbols import SymbolKind
from ..config import LanguageConfig, SymbolQuery
from .javascript import (
    JAVASCRIPT_QUERIES,
    JAVASCRIPT_REFERENCE_TYPES,
    JAVASCRIPT_WRAPPERS,
    javascript_kind_refiner,
    javascript_visibility_detector,
)


# =============================================================================
# Symbol Queries
# =============================================================================

TYPESCRIPT_SPECIFIC_QUERIES = [
    # Interface declarations: interface Foo { bar(): void }
    SymbolQuery(node_type="interface_declaration", kind=SymbolKind.INTERFACE, scope=True),
    SymbolQuery(node_type="property_signature", kind=SymbolKind.VARIABLE, body_field=None),
    SymbolQuery(node_type="method_signature", kind=SymbolKind.FUNCTION, body_field=None),
    # Type aliases: type Foo = Bar | Baz
    SymbolQuery(node_type="type_alias_declaration", kind=SymbolKind.TYPE, body_field=None),
    # Enum declarations: enum Color { Red, Green }
    SymbolQuery(node_type="enum_declaration", kind=SymbolKind.ENUM),
    # Abstract classes: abstract class Foo {}
    SymbolQuery(node_type="abstract_class_declaration", kind=SymbolKind.CLASS, scope=True),
    SymbolQuery(node_type="abstract_method_signature", kind=SymbolKind.FUNCTION, body_field=None),
    # Class fields: private count: number = 0
    SymbolQuery(node_type="public_field_definition", kind=SymbolKind.VARIABLE, body_field="value.body"),
    # Overload signatures: function foo(a: string): void;
    SymbolQuery(node_type="function_signature", kind=SymbolKind.FUNCTION, body_field=None),
    # namespace Foo {}
    SymbolQuery(node_type="internal_module", kind=SymbolKind.MODULE, scope=True),
]

TYPESCRIPT_QUERIES = JAVASCRIPT_QUERIES + TYPESCRIPT_SPECIFIC_QUERIES

TYPESCRIPT_REFERENCE_TYPES = JAVASCRIPT_REFERENCE_TYPES | frozenset({"type_identifier"})


# =============================================================================
# Configuration
# =============================================================================

def _typescript_config(name: str, grammar: str, extensions: set) -> LanguageConfig:
    return LanguageConfig(
        name=name,
        tree_sitter_name=grammar,
        extensions=extensions,
        symbol_queries=TYPESCRIPT_QUERIES,
        wrapper_types=JAVASCRIPT_WRAPPERS,
        signature_from_anchor=True,
        reference_types=TYPESCRIPT_REFERENCE_TYPES,
        chain_types=frozenset({"member_expression", "nested_type_identifier"}),
        receivers=("this",),
        kind_refiner=javascript_kind_refiner,
        visibility_detector=javascript_visibility_detector,
    )


TYPESCRIPT_CONFIG = _typescript_config("typescript", "typescript", {'.ts', '.mts', '.cts'})

TSX_CONFIG = _typescript_config("tsx", "tsx", {'.tsx'})
