"""
TreeSitterExtractor — Unified symbol extraction using tree-sitter CSTs.

Extracts symbols from any registered language based on its
LanguageConfig queries and produces one SymbolTable per file.

Design principle: Language-agnostic extraction driven by configuration.

Usage:
    from quarry.core.parsing import TreeSitterExtractor, default_registry

    extractor = TreeSitterExtractor(default_registry())
    table = extractor.extract("src/app.py", content_bytes, digest)
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

import structlog

from ..errors import ParseError, UnsupportedLanguage
from ..symbols import Span, Symbol, SymbolKind, SymbolTable
from .config import LanguageConfig, SymbolQuery
from .nodes import (
    clean_comment,
    error_lines,
    field_path,
    header_text,
    leading_comments,
    name_field_node,
    node_text,
)
from .registry import ParserRegistry

if TYPE_CHECKING:
    from tree_sitter import Node, Tree

log = structlog.get_logger()


@dataclass(frozen=True)
class ParsedFile:
    """A parsed file: its language, raw bytes and concrete syntax tree."""
    path: str
    config: LanguageConfig
    source: bytes
    tree: 'Tree'


@dataclass(frozen=True)
class _Scope:
    """Qualification level during the walk."""
    qualified: str = ""
    kind: Optional[SymbolKind] = None
    parent: Optional[str] = None   # Nearest emitted enclosing symbol
    depth: int = 0


class TreeSitterExtractor:
    """
    Extracts symbols from source code using tree-sitter parsing.

    Uses LanguageConfig to determine which CST nodes define symbols
    and which of them open a new qualification level.
    """

    def __init__(self, registry: ParserRegistry, max_file_size: Optional[int] = None):
        """
        Initialize extractor with parser registry.

        Args:
            registry: ParserRegistry providing language configs and parsers
            max_file_size: Override for every language's size limit (bytes)
        """
        self.registry = registry
        self.max_file_size = max_file_size

    def parse(self, path: str, source: bytes) -> ParsedFile:
        """
        Parse file content into a concrete syntax tree.

        Syntax errors do not fail the parse; tree-sitter recovers and
        the resulting tree carries ERROR nodes.

        Raises:
            UnsupportedLanguage: If the extension is not registered
            ParseError: If the content is not parseable text at all
        """
        config = self.registry.resolve(path)

        limit = self.max_file_size or config.max_file_size
        if len(source) > limit:
            raise ParseError(
                f"File is {len(source)} bytes, over the {limit} byte limit",
                path=path,
            )
        if b"\x00" in source:
            raise ParseError("Binary content cannot be parsed", path=path)
        try:
            source.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Content is not valid UTF-8: {e}", path=path) from e

        parser = self.registry.parser_for(config)
        tree = parser.parse(source)
        if tree is None:
            raise ParseError("Parser produced no tree", path=path)
        return ParsedFile(path=path, config=config, source=source, tree=tree)

    def extract(self, path: str, source: bytes, digest: str = "") -> SymbolTable:
        """
        Parse content and build its symbol table.

        Args:
            path: Repository-relative path (selects the language)
            source: File content
            digest: Content digest recorded on the table (cache key)

        Returns:
            SymbolTable in source order; ``partial`` is set when the
            content had syntax errors
        """
        return self.extract_parsed(self.parse(path, source), digest)

    def extract_parsed(self, parsed: ParsedFile, digest: str = "") -> SymbolTable:
        """Build the symbol table of an already parsed file."""
        root = parsed.tree.root_node
        table = SymbolTable(
            path=parsed.path,
            language=parsed.config.name,
            digest=digest,
            partial=root.has_error,
            error_lines=error_lines(root),
        )

        try:
            self._walk(root, parsed, table, _Scope())
        except RecursionError as e:
            raise ParseError("Syntax tree is nested too deeply", path=parsed.path) from e

        log.debug(
            "symbol_table_built",
            path=parsed.path,
            language=parsed.config.name,
            symbols=len(table),
            partial=table.partial,
        )
        return table

    # =========================================================================
    # Tree walk
    # =========================================================================

    def _walk(self, node: 'Node', parsed: ParsedFile, table: SymbolTable, scope: _Scope) -> None:
        """
        Recursively walk the CST in source order.

        Scope queries recurse with a new qualification level; leaf
        queries stop the descent. ERROR nodes are walked like any other
        node so definitions that survived a syntax error are kept.
        """
        query = parsed.config.query_for(node.type)
        if query is None:
            for child in node.children:
                self._walk(child, parsed, table, scope)
            return

        name_node = self._name_node(node, query, parsed)
        if name_node is None:
            return
        name = node_text(name_node, parsed.source)
        kind = self._symbol_kind(node, query, name, scope, parsed)
        qualified = f"{scope.qualified}.{name}" if scope.qualified else name

        symbol: Optional[Symbol] = None
        if query.emit:
            symbol = self._build_symbol(
                node=node,
                query=query,
                name=name,
                name_node=name_node,
                kind=kind,
                qualified=table.unique_name(qualified),
                scope=scope,
                parsed=parsed,
            )
            table.add(symbol)

        if query.scope:
            if symbol is not None:
                inner = _Scope(
                    qualified=symbol.qualified_name,
                    kind=kind,
                    parent=symbol.qualified_name,
                    depth=scope.depth + 1,
                )
            else:
                inner = _Scope(qualified=qualified, kind=kind, parent=scope.parent, depth=scope.depth)
            for child in node.children:
                self._walk(child, parsed, table, inner)

    def _name_node(self, node: 'Node', query: SymbolQuery, parsed: ParsedFile) -> Optional['Node']:
        config = parsed.config
        if config.name_extractor:
            return config.name_extractor(node, query, parsed.source)
        # Destructuring, computed or string names are not addressable
        return name_field_node(node, query.name_field, config.reference_types)

    def _symbol_kind(
        self,
        node: 'Node',
        query: SymbolQuery,
        name: str,
        scope: _Scope,
        parsed: ParsedFile,
    ) -> SymbolKind:
        kind = query.kind
        if parsed.config.kind_refiner:
            kind = parsed.config.kind_refiner(node, name, kind, parsed.source)
        if kind == SymbolKind.FUNCTION and scope.kind is not None and scope.kind.is_type_like:
            kind = SymbolKind.METHOD
        return kind

    def _anchor(self, node: 'Node', config: LanguageConfig) -> 'Node':
        """
        Outermost wrapper (decorators, export, declaration) owned by ``node``.

        Stops below a wrapper shared with another definition
        (``const a = 1, b = 2``) so sibling spans never overlap.
        """
        anchor = node
        while anchor.parent is not None and anchor.parent.type in config.wrapper_types:
            shared = any(
                child.type in config.definition_types
                and (child.start_byte, child.end_byte) != (anchor.start_byte, anchor.end_byte)
                for child in anchor.parent.named_children
            )
            if shared:
                break
            anchor = anchor.parent
        return anchor

    def _build_symbol(
        self,
        node: 'Node',
        query: SymbolQuery,
        name: str,
        name_node: 'Node',
        kind: SymbolKind,
        qualified: str,
        scope: _Scope,
        parsed: ParsedFile,
    ) -> Symbol:
        config = parsed.config
        source = parsed.source
        anchor = self._anchor(node, config)

        signature = None
        if config.signature_extractor:
            signature = config.signature_extractor(node, anchor, source)
        if signature is None:
            start = anchor if config.signature_from_anchor else node
            body = field_path(node, query.body_field) if query.body_field else None
            signature = header_text(start, body, source)

        if config.docstring_extractor:
            docstring = config.docstring_extractor(node, anchor, source)
        else:
            docstring = leading_doc(anchor, config, source)

        if config.visibility_detector:
            visibility = config.visibility_detector(node, anchor, name, scope.kind, source)
        else:
            visibility = "private" if name.startswith("_") else "public"

        return Symbol(
            path=parsed.path,
            kind=kind,
            name=name,
            qualified_name=qualified,
            span=Span(
                start_line=anchor.start_point[0] + 1,  # tree-sitter is 0-indexed
                start_column=anchor.start_point[1] + 1,
                end_line=node.end_point[0] + 1,
                end_column=node.end_point[1] + 1,
            ),
            signature=signature,
            docstring=docstring or None,
            visibility=visibility,
            parent=scope.parent,
            name_line=name_node.start_point[0] + 1,
            name_column=name_node.start_point[1] + 1,
            depth=scope.depth,
        )

    def is_available(self, language: str) -> bool:
        """Check if a registered language's grammar can be loaded."""
        try:
            self.registry.parser_for(self.registry.get_config_by_name(language))
        except KeyError:
            return False
        except UnsupportedLanguage as e:
            log.warning("grammar_unavailable", language=language, error=str(e))
            return False
        return True


def leading_doc(anchor: 'Node', config: LanguageConfig, source: bytes) -> Optional[str]:
    """
    Doc comment block directly above ``anchor``.

    Only comments starting with one of ``config.doc_prefixes`` count
    (any comment when the language declares none).
    """
    comments = leading_comments(anchor, config.comment_types, config.doc_skip_types)
    texts = [node_text(c, source) for c in comments]
    if config.doc_prefixes:
        # Keep the trailing run of doc comments only
        run = []
        for text in reversed(texts):
            if not text.lstrip().startswith(config.doc_prefixes):
                break
            run.append(text)
        texts = list(reversed(run))
    if not texts:
        return None
    doc = "\n".join(clean_comment(t) for t in texts).strip()
    return doc or None
