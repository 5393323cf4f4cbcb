"""
JavaScript language configuration for symbol extraction.

Defines JAVASCRIPT_CONFIG with tree-sitter queries and custom hooks
for extracting symbols from JavaScript files (.js, .jsx, .mjs, .cjs).

Symbol types extracted:
- class: Class declarations (open a qualification level)
- function: Function declarations and functions bound to variables
- method: Methods and function-valued fields inside classes
- constant / variable: const, let and var bindings, class fields
"""

from typing import Optional, TYPE_CHECKING

from ...symbols import SymbolKind
from ..config import LanguageConfig, SymbolQuery
from ..nodes import node_text

if TYPE_CHECKING:
    from tree_sitter import Node


# =============================================================================
# Symbol Queries
# =============================================================================

JAVASCRIPT_QUERIES = [
    # Class declarations: class Foo {}
    SymbolQuery(node_type="class_declaration", kind=SymbolKind.CLASS, scope=True),
    # Function declarations: function foo() {}
    SymbolQuery(node_type="function_declaration", kind=SymbolKind.FUNCTION),
    # Generator functions: function* foo() {}
    SymbolQuery(node_type="generator_function_declaration", kind=SymbolKind.FUNCTION),
    # Method definitions inside classes
    SymbolQuery(node_type="method_definition", kind=SymbolKind.FUNCTION),
    # Class fields: count = 0; #secret;
    SymbolQuery(
        node_type="field_definition",
        kind=SymbolKind.VARIABLE,
        name_field="property",
        body_field="value.body",
    ),
    # const foo = () => {}, let bar = 1
    SymbolQuery(
        node_type="variable_declarator",
        kind=SymbolKind.VARIABLE,
        body_field="value.body",
    ),
]

JAVASCRIPT_WRAPPERS = frozenset({"export_statement", "lexical_declaration", "variable_declaration"})

JAVASCRIPT_REFERENCE_TYPES = frozenset({
    "identifier",
    "property_identifier",
    "shorthand_property_identifier",
    "private_property_identifier",
})

FUNCTION_VALUE_TYPES = frozenset({
    "arrow_function",
    "function",
    "function_expression",
    "generator_function",
})


# =============================================================================
# Custom Hooks
# =============================================================================

def javascript_kind_refiner(node: 'Node', name: str, kind: SymbolKind, source: bytes) -> SymbolKind:
    """
    Refine bindings by their value.

    Function-valued bindings and fields are functions (methods in a
    class); other ``const`` bindings are constants.
    """
    if kind != SymbolKind.VARIABLE:
        return kind
    value = node.child_by_field_name("value")
    if value is not None and value.type in FUNCTION_VALUE_TYPES:
        return SymbolKind.FUNCTION
    declaration = node.parent
    if (
        node.type == "variable_declarator"
        and declaration is not None
        and declaration.type == "lexical_declaration"
        and node_text(declaration.children[0], source) == "const"
    ):
        return SymbolKind.CONSTANT
    return kind


def is_exported(node: 'Node') -> bool:
    """Check whether a declaration sits inside an ``export`` statement."""
    parent = node.parent
    while parent is not None and parent.type in JAVASCRIPT_WRAPPERS:
        if parent.type == "export_statement":
            return True
        parent = parent.parent
    return False


def javascript_visibility_detector(
    node: 'Node',
    anchor: 'Node',
    name: str,
    scope_kind: Optional[SymbolKind],
    source: bytes,
) -> str:
    """
    Determine JavaScript/TypeScript visibility.

    Top level: public only when exported.
    Class members: public unless ``#private`` or marked private/protected.
    """
    if scope_kind is None or not scope_kind.is_type_like:
        return "public" if is_exported(node) else "private"
    if name.startswith("#"):
        return "private"
    for child in node.children:
        if child.type == "accessibility_modifier":
            if node_text(child, source) in ("private", "protected"):
                return "private"
    return "public"


# =============================================================================
# Configuration
# =============================================================================

JAVASCRIPT_CONFIG = LanguageConfig(
    name="javascript",
    tree_sitter_name="javascript",
    extensions={'.js', '.jsx', '.mjs', '.cjs'},
    symbol_queries=JAVASCRIPT_QUERIES,
    wrapper_types=JAVASCRIPT_WRAPPERS,
    signature_from_anchor=True,
    reference_types=JAVASCRIPT_REFERENCE_TYPES,
    chain_types=frozenset({"member_expression"}),
    receivers=("this",),
    kind_refiner=javascript_kind_refiner,
    visibility_detector=javascript_visibility_detector,
)
