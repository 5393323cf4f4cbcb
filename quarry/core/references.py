"""
Reference Scanner — who mentions a symbol, by name.

Scans the token stream of every candidate file for occurrences of a
target symbol's bare name. There is no type checking and no import
resolution; each occurrence is graded instead:

- exact: the occurrence verifiably resolves to the target through the
  candidate's own Symbol Table, either as the tail of a qualified chain
  (``Greeter.greet``, ``self.greet``, ``Point::new``) or, in the defining
  file, as a bare name found by scope lookup
- heuristic: everything else (a same-named token whose meaning cannot
  be verified without semantic analysis)

The defining site itself and the definition names of other symbols are
never reported.
"""

import re
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import structlog

from ..orchestrator import make_task, outcome_error
from .address import strip_duplicate_marker
from .cache import TableLoader
from .errors import Cancelled, QuarryError
from .globbing import compile_glob
from .parsing.exclusions import ExclusionConfig
from .parsing.nodes import leaves, node_text
from .symbols import QUALIFIER, Symbol, SymbolKind, SymbolTable

if TYPE_CHECKING:
    from tree_sitter import Node
    from ..orchestrator import TaskOrchestrator
    from .parsing import ParsedFile

log = structlog.get_logger()

_WHITESPACE = re.compile(r"\s+")


class Confidence(Enum):
    """How well an occurrence is verified."""
    EXACT = "exact"
    HEURISTIC = "heuristic"


@dataclass(frozen=True)
class Reference:
    """One occurrence of a target's name in a candidate file."""
    path: str
    line: int
    column: int
    text: str                    # The matched token
    confidence: Confidence
    snippet: str = ""            # Source line holding the occurrence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "text": self.text,
            "confidence": self.confidence.value,
            "snippet": self.snippet,
        }


@dataclass
class ScanResult:
    """References to one target across the candidate set."""
    target: str                                   # Target address
    references: List[Reference] = field(default_factory=list)
    files_scanned: int = 0
    files_skipped: int = 0
    skipped: List[Dict[str, str]] = field(default_factory=list)  # {path, kind, message}


class ReferenceScanner:
    """
    Name-based reference scanner over a content source.

    Usage:
        scanner = ReferenceScanner(loader, orchestrator, exclusions)
        result = scanner.scan(target_symbol, within="src/**/*.py")
    """

    def __init__(
        self,
        loader: TableLoader,
        orchestrator: Optional['TaskOrchestrator'] = None,
        exclusions: Optional[ExclusionConfig] = None,
    ):
        self.loader = loader
        self.orchestrator = orchestrator
        self.exclusions = exclusions or ExclusionConfig(include_tests=True)

    @property
    def registry(self):
        return self.loader.extractor.registry

    # =========================================================================
    # Candidate selection
    # =========================================================================

    def candidates(self, within: Optional[str] = None) -> List[str]:
        """
        Files to scan: the listing (optionally glob-filtered), supported
        languages only, minus excluded paths.
        """
        regex = compile_glob(within) if within else None
        paths = []
        for path in self.loader.source.list_files():
            if regex is not None and not regex.match(path):
                continue
            if not self.registry.is_supported(path):
                continue
            language = self.registry.resolve(path).name
            if self.exclusions.is_excluded(path, language):
                continue
            paths.append(path)
        return paths

    # =========================================================================
    # Scanning
    # =========================================================================

    def scan(
        self,
        target: Symbol,
        within: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
        parallel: bool = True,
    ) -> ScanResult:
        """
        Scan all candidates for references to ``target``.

        Unreadable or unparsable candidates are skipped and counted,
        never fatal.

        Args:
            target: Resolved target symbol
            within: Optional glob restricting the candidate set
            cancel: Caller's cancellation signal
            parallel: Fan candidates out to the orchestrator pool. Pass
                False when already running inside a pool worker.
        """
        paths = self.candidates(within)
        if target.path not in paths:
            # The defining file always counts, even when filtered or excluded
            paths.append(target.path)

        result = ScanResult(target=target.address)

        if parallel and self.orchestrator is not None:
            tasks = [
                make_task(fn=self.scan_file, args=(path, target), name=f"scan:{path}")
                for path in paths
            ]
            outcomes = self.orchestrator.run_ordered(tasks, cancel=cancel)
            for path, outcome in zip(paths, outcomes):
                if outcome.success:
                    result.files_scanned += 1
                    result.references.extend(outcome.result)
                else:
                    self._record_skip(result, path, outcome_error(outcome))
        else:
            for path in paths:
                if cancel is not None and cancel.is_set():
                    self._record_skip(result, path, Cancelled("Cancelled before start", path=path))
                    continue
                try:
                    refs = self.scan_file(path, target)
                except QuarryError as e:
                    self._record_skip(result, path, e)
                    continue
                result.files_scanned += 1
                result.references.extend(refs)

        log.debug(
            "references_scanned",
            target=target.address,
            references=len(result.references),
            scanned=result.files_scanned,
            skipped=result.files_skipped,
        )
        return result

    def _record_skip(self, result: ScanResult, path: str, error: QuarryError) -> None:
        result.files_skipped += 1
        result.skipped.append({"path": path, "kind": error.kind, "message": error.message})

    def scan_file(self, path: str, target: Symbol) -> List[Reference]:
        """
        References to ``target`` in one file.

        Raises:
            FileNotFound, UnsupportedLanguage, ParseError
        """
        content = self.loader.source.read(path)
        name = target.name
        if name.encode("utf-8") not in content.data:
            return []

        extractor = self.loader.extractor
        parsed = extractor.parse(path, content.data)
        table = self.loader.cache.get_or_populate(
            path,
            content.digest,
            lambda: extractor.extract_parsed(parsed, content.digest),
        )
        return list(self._find(parsed, table, target))

    def _find(self, parsed: 'ParsedFile', table: SymbolTable, target: Symbol):
        config = parsed.config
        source = parsed.source
        definitions = table.definition_sites()
        in_defining_file = parsed.path == target.path

        for leaf in leaves(parsed.tree.root_node):
            if leaf.type not in config.reference_types:
                continue
            if node_text(leaf, source) != target.name:
                continue

            line = leaf.start_point[0] + 1
            column = leaf.start_point[1] + 1
            if (line, column) in definitions:
                # Defining site of the target or of another symbol
                continue

            confidence = self._classify(leaf, parsed, table, target, in_defining_file)
            yield Reference(
                path=parsed.path,
                line=line,
                column=column,
                text=target.name,
                confidence=confidence,
                snippet=_line_text(source, leaf),
            )

    # =========================================================================
    # Confidence
    # =========================================================================

    def _classify(
        self,
        leaf: 'Node',
        parsed: 'ParsedFile',
        table: SymbolTable,
        target: Symbol,
        in_defining_file: bool,
    ) -> Confidence:
        target_path = strip_duplicate_marker(target.qualified_name)
        chain = _chain_of(leaf, parsed.config.chain_types)

        if chain is not None:
            normalized = self._normalize_chain(chain, parsed, table)
            if normalized is not None and (
                normalized == target_path or normalized.endswith(QUALIFIER + target_path)
            ):
                return Confidence.EXACT
            return Confidence.HEURISTIC

        if in_defining_file:
            resolved = _scope_lookup(table, leaf, target.name)
            if resolved is not None and resolved == target.qualified_name:
                return Confidence.EXACT
        return Confidence.HEURISTIC

    def _normalize_chain(self, chain: 'Node', parsed: 'ParsedFile', table: SymbolTable) -> Optional[str]:
        """
        Dotted form of a qualified chain with receivers replaced.

        Returns None when the chain starts with a receiver outside any
        method (nothing to substitute).
        """
        text = _WHITESPACE.sub("", node_text(chain, parsed.source))
        text = text.replace("?.", ".").replace("::", QUALIFIER)
        head, _, rest = text.partition(QUALIFIER)
        if head in parsed.config.receivers:
            owner = _receiver_type(table, chain.start_point[0] + 1, chain.start_point[1] + 1)
            if owner is None:
                return None
            text = f"{owner}{QUALIFIER}{rest}" if rest else owner
        return text


def _chain_of(leaf: 'Node', chain_types) -> Optional['Node']:
    """
    Outermost chain node whose tail is ``leaf``, or None if the leaf is
    a bare name or sits in a non-tail position (``foo.bar`` for ``foo``).
    """
    chain = None
    node = leaf
    while node.parent is not None and node.parent.type in chain_types:
        if node.parent.end_byte != node.end_byte:
            break
        node = node.parent
        chain = node
    return chain


def _receiver_type(table: SymbolTable, line: int, column: int) -> Optional[str]:
    """Qualified path of the type a ``self``/``this`` at a position refers to."""
    symbol = table.enclosing(line, column)
    while symbol is not None:
        if symbol.kind == SymbolKind.METHOD:
            owner = symbol.qualified_name.rpartition(QUALIFIER)[0]
            return strip_duplicate_marker(owner) if owner else None
        if symbol.kind.is_type_like:
            return strip_duplicate_marker(symbol.qualified_name)
        symbol = table.get(symbol.parent) if symbol.parent else None
    return None


def _scope_lookup(table: SymbolTable, leaf: 'Node', name: str) -> Optional[str]:
    """
    Resolve a bare name through the enclosing scopes, innermost outward.

    Returns the qualified path found, or None.
    """
    enclosing = table.enclosing(leaf.start_point[0] + 1, leaf.start_point[1] + 1)
    scope = enclosing.qualified_name if enclosing is not None else ""
    while True:
        candidate = f"{scope}{QUALIFIER}{name}" if scope else name
        if candidate in table:
            return candidate
        if not scope:
            return None
        scope = scope.rpartition(QUALIFIER)[0]


def _line_text(source: bytes, leaf: 'Node') -> str:
    """The source line holding the occurrence, stripped."""
    start = source.rfind(b"\n", 0, leaf.start_byte) + 1
    end = source.find(b"\n", leaf.start_byte)
    if end == -1:
        end = len(source)
    return source[start:end].decode("utf-8", errors="replace").strip()
