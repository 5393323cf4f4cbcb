"""
Python language configuration for symbol extraction.

Defines PYTHON_CONFIG with tree-sitter queries and custom hooks.

Symbol types extracted:
- class: Class definitions (open a qualification level)
- function / method: Functions, methods inside classes
- constant / variable: Module and class level assignments
"""

import re
from typing import Optional, TYPE_CHECKING

from ...symbols import SymbolKind
from ..config import LanguageConfig, SymbolQuery
from ..nodes import clean_comment, clean_string_literal, header_text, leading_comments, node_text

if TYPE_CHECKING:
    from tree_sitter import Node


# =============================================================================
# Symbol Queries
# =============================================================================

PYTHON_QUERIES = [
    # Class definitions: class Foo(Base):
    SymbolQuery(
        node_type="class_definition",
        kind=SymbolKind.CLASS,
        scope=True,
    ),
    # Function definitions: def foo(): (methods when nested in a class)
    SymbolQuery(
        node_type="function_definition",
        kind=SymbolKind.FUNCTION,
    ),
    # Assignments: MAX_SIZE = 10, name: str = "x"
    SymbolQuery(
        node_type="assignment",
        kind=SymbolKind.VARIABLE,
        name_field="left",
        body_field=None,
    ),
]


# =============================================================================
# Custom Hooks
# =============================================================================

_CONSTANT_NAME = re.compile(r"^_*[A-Z][A-Z0-9_]*$")


def python_kind_refiner(node: 'Node', name: str, kind: SymbolKind, source: bytes) -> SymbolKind:
    """UPPER_CASE assignments are constants."""
    if node.type == "assignment" and _CONSTANT_NAME.match(name):
        return SymbolKind.CONSTANT
    return kind


def python_signature_extractor(node: 'Node', anchor: 'Node', source: bytes) -> Optional[str]:
    """
    Extract Python function/class signature.

    For functions: def foo(arg1, arg2, *args, **kwargs) -> ReturnType
    For classes: class Foo(Base1, Base2)

    Returns None for assignments so the default first-line rule applies.
    """
    if node.type not in ("class_definition", "function_definition"):
        return None
    header = header_text(node, node.child_by_field_name("body"), source)
    return header.rstrip(":").rstrip()


def python_docstring_extractor(node: 'Node', anchor: 'Node', source: bytes) -> Optional[str]:
    """
    Extract Python docstring from a definition.

    Looks for a string literal as first statement in the function/class
    body, then falls back to ``#`` comments directly above the definition.
    """
    body = node.child_by_field_name("body")
    if body is not None:
        for stmt in body.named_children:
            if stmt.type == "comment":
                continue
            if stmt.type == "expression_statement" and stmt.named_children:
                expr = stmt.named_children[0]
                if expr.type == "string":
                    return clean_string_literal(node_text(expr, source)) or None
            break

    comments = leading_comments(anchor, frozenset({"comment"}))
    if not comments:
        return None
    return "\n".join(clean_comment(node_text(c, source)) for c in comments).strip() or None


def python_visibility_detector(
    node: 'Node',
    anchor: 'Node',
    name: str,
    scope_kind: Optional[SymbolKind],
    source: bytes,
) -> str:
    """
    Determine Python symbol visibility.

    Convention: underscore prefix = private, dunder names are public.
    """
    if name.startswith("__") and name.endswith("__"):
        return "public"
    return "private" if name.startswith("_") else "public"


# =============================================================================
# Configuration
# =============================================================================

PYTHON_CONFIG = LanguageConfig(
    name="python",
    tree_sitter_name="python",
    extensions={'.py', '.pyi'},
    symbol_queries=PYTHON_QUERIES,
    wrapper_types=frozenset({"decorated_definition", "expression_statement"}),
    reference_types=frozenset({"identifier"}),
    chain_types=frozenset({"attribute"}),
    receivers=("self", "cls"),
    kind_refiner=python_kind_refiner,
    signature_extractor=python_signature_extractor,
    docstring_extractor=python_docstring_extractor,
    visibility_detector=python_visibility_detector,
)
