"""
Tree-sitter node helpers shared by the extractor, language hooks and
the reference scanner.

All offsets from tree-sitter are byte offsets, so text is always sliced
from the raw source bytes and decoded afterwards.
"""

import inspect
from typing import Iterator, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from tree_sitter import Node


def node_text(node: 'Node', source: bytes) -> str:
    """Decoded source text of a node."""
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def field_path(node: 'Node', path: str) -> Optional['Node']:
    """Follow a dotted field path ("value.body") from a node."""
    current: Optional['Node'] = node
    for name in path.split("."):
        if current is None:
            return None
        current = current.child_by_field_name(name)
    return current


def name_field_node(node: 'Node', field_name: str, allowed_types) -> Optional['Node']:
    """Child in ``field_name`` if it is a plain name token of an allowed type."""
    child = node.child_by_field_name(field_name)
    if child is None or child.type not in allowed_types:
        return None
    return child


def end_row(node: 'Node') -> int:
    """Last row holding text of the node (line comments may own the newline)."""
    row, column = node.end_point
    if column == 0 and row > node.start_point[0]:
        return row - 1
    return row


def first_line(text: str) -> str:
    return text.split("\n", 1)[0].strip()


def header_text(start: 'Node', body: Optional['Node'], source: bytes) -> str:
    """
    Source text from ``start`` up to (not including) ``body``.

    Falls back to the first line of ``start`` when there is no body.
    """
    if body is None or body.start_byte <= start.start_byte:
        return first_line(node_text(start, source))
    text = source[start.start_byte:body.start_byte].decode("utf-8", errors="replace")
    return text.rstrip()


def leaves(node: 'Node') -> Iterator['Node']:
    """Yield leaf nodes in source order (iterative, safe on deep trees)."""
    cursor = node.walk()
    visited_children = False
    while True:
        if not visited_children:
            if cursor.goto_first_child():
                continue
            yield cursor.node
        if cursor.goto_next_sibling():
            visited_children = False
        elif cursor.goto_parent():
            visited_children = True
        else:
            break


def error_lines(root: 'Node') -> List[int]:
    """1-based lines of ERROR and MISSING nodes below ``root``."""
    lines: List[int] = []
    if not root.has_error:
        return lines
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            lines.append(node.start_point[0] + 1)
            continue
        if node.has_error:
            stack.extend(node.children)
    return sorted(set(lines))


def leading_comments(
    anchor: 'Node',
    comment_types,
    skip_types=frozenset(),
) -> List['Node']:
    """
    Comment nodes directly above ``anchor``, top to bottom.

    A blank line between two comments (or between the last comment and
    the anchor) ends the block. Nodes of ``skip_types`` (attributes) may
    sit between the comments and the anchor.
    """
    comments: List['Node'] = []
    expected_row = anchor.start_point[0]
    sibling = anchor.prev_sibling
    while sibling is not None:
        if sibling.type in skip_types:
            expected_row = sibling.start_point[0]
            sibling = sibling.prev_sibling
            continue
        if sibling.type not in comment_types:
            break
        if end_row(sibling) < expected_row - 1:
            break
        before = sibling.prev_sibling
        if before is not None and end_row(before) == sibling.start_point[0]:
            # trailing comment of the previous statement
            break
        comments.append(sibling)
        expected_row = sibling.start_point[0]
        sibling = sibling.prev_sibling
    comments.reverse()
    return comments


def clean_comment(text: str) -> str:
    """Strip comment markers (//, ///, #, /** */) and leading asterisks."""
    text = text.strip()
    if text.startswith("/*"):
        text = text[2:]
        if text.endswith("*/"):
            text = text[:-2]
        text = text.lstrip("*!")
        lines = [line.strip() for line in text.split("\n")]
        lines = [line[1:].strip() if line.startswith("*") else line for line in lines]
        return "\n".join(lines).strip()

    lines = []
    for line in text.split("\n"):
        line = line.strip()
        for marker in ("///", "//!", "//", "#"):
            if line.startswith(marker):
                line = line[len(marker):]
                break
        lines.append(line[1:] if line.startswith(" ") else line)
    return "\n".join(lines).strip()


def clean_string_literal(text: str) -> str:
    """Strip prefixes and quotes from a string literal and dedent it."""
    text = text.strip()
    text = text.lstrip("rRbBuUfF")
    for quote in ('"""', "'''", '"', "'"):
        if text.startswith(quote) and text.endswith(quote) and len(text) >= 2 * len(quote):
            text = text[len(quote):-len(quote)]
            break
    return inspect.cleandoc(text)
