"""
CodeIntel — Service facade over the code-intelligence core

Wires the grammar registry, extractor, Symbol Table cache, reference
scanner and batch coordinator around one content source, and exposes
every operation through the uniform result envelope. No exception
escapes a public method: structured failures become failure envelopes,
anything unexpected is logged with its traceback and reported as
``internal``.

Usage:
    from quarry import CodeIntel, InMemorySource

    intel = CodeIntel(InMemorySource({"a.py": "def foo():\n    pass\n"}))
    intel.symbols("a.py").to_dict()
    intel.context("a.py::foo")
    intel.affected("a.py::foo")
    intel.bulk("symbols", ["src/**/*.py"])
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from .batch import Action, BatchCoordinator, BatchPlan
from .config import Config
from .core.address import SymbolAddress, resolve_symbol
from .core.cache import SymbolCache, TableLoader
from .core.context import context_for
from .core.envelope import Envelope
from .core.errors import InternalError, InvalidTarget, NoFilesMatched, QuarryError
from .core.globbing import expand, is_pattern
from .core.impact import analyze
from .core.parsing import ParserRegistry, TreeSitterExtractor, default_registry
from .core.references import ReferenceScanner
from .core.sources import ContentSource
from .orchestrator import TaskOrchestrator

log = structlog.get_logger()


class CodeIntel:
    """
    Code-intelligence operations over one content source.

    Single-item calls (symbols, context) run on the calling thread;
    ``affected`` fans its candidate scan out to the worker pool, and
    ``bulk`` runs every unit there.
    """

    def __init__(
        self,
        source: ContentSource,
        cache: Optional[SymbolCache] = None,
        registry: Optional[ParserRegistry] = None,
        orchestrator: Optional[TaskOrchestrator] = None,
        config: Optional[Config] = None,
    ):
        """
        Args:
            source: File-reading collaborator (bytes + listing)
            cache: Shared Symbol Table cache; a private one if None
            registry: Grammar registry; all built-in languages if None
            orchestrator: Worker pool; one from the environment if None
            config: Scan settings; defaults if None

        Raises:
            ValueError: If the configuration is invalid
        """
        self.config = config if config is not None else Config()
        error = self.config.validate()
        if error:
            raise ValueError(error)

        self.source = source
        self.registry = registry if registry is not None else default_registry()
        self.cache = cache if cache is not None else SymbolCache()
        self.exclusions = self.config.scan.exclusions()
        self.extractor = TreeSitterExtractor(self.registry, max_file_size=self.config.scan.max_file_size)
        self.loader = TableLoader(source, self.extractor, self.cache)

        self._owns_orchestrator = orchestrator is None
        self.orchestrator = orchestrator if orchestrator is not None else TaskOrchestrator()

        self.scanner = ReferenceScanner(self.loader, self.orchestrator, self.exclusions)
        self.coordinator = BatchCoordinator(self.run_unit, source, self.orchestrator)

    # =========================================================================
    # Public operations
    # =========================================================================

    def symbols(self, target: str, public_only: bool = False, signature_only: bool = False) -> Envelope:
        """
        Symbol Table of a file, or one symbol of it.

        ``path`` returns the table, ``path::dotted.name`` the single best
        match (with an alternate count when ambiguous). A glob pattern is
        answered as a one-target batch.
        """
        def op() -> Tuple[str, Any]:
            if not isinstance(target, str):
                raise InvalidTarget(f"Target must be a string, got {type(target).__name__}")
            if "::" not in target and is_pattern(target):
                result = self.coordinator.run(BatchPlan.create("symbols", [target], public_only))
                return "batch", result.to_dict()
            address = SymbolAddress.parse(target)
            return self._symbols_of(address, public_only, signature_only)

        return self._respond("symbols", op)

    def context(self, address: str) -> Envelope:
        """Signature, doc and ancestor signatures of one symbol."""
        def op() -> Tuple[str, Any]:
            return self._context_of(SymbolAddress.parse(address, require_symbol=True))

        return self._respond("context", op)

    def affected(
        self,
        address: str,
        within: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Envelope:
        """
        Impact Report for one symbol.

        Args:
            address: ``path::dotted.name`` of the target
            within: Optional glob restricting the files scanned
            cancel: Abandons candidate files not yet scanned
        """
        def op() -> Tuple[str, Any]:
            parsed = SymbolAddress.parse(address, require_symbol=True)
            return self._affected_of(parsed, within=within, cancel=cancel, parallel=True)

        return self._respond("affected", op)

    def files(self, pattern: Optional[str] = None, with_symbols: bool = False) -> Envelope:
        """
        Listing of the source, optionally glob-filtered.

        Each entry has path, extension and language (None when no
        grammar handles it). ``with_symbols`` adds the symbol count and
        names of each parseable file, or the failure kind.
        """
        def op() -> Tuple[str, Any]:
            listing = self.source.list_files()
            paths = expand(pattern, listing) if pattern else listing
            if pattern and not paths:
                raise NoFilesMatched(f"Pattern '{pattern}' matched no files", path=pattern)

            entries = [self._file_entry(path, with_symbols) for path in paths]
            return "files", {
                "pattern": pattern,
                "files": entries,
                "count": len(entries),
            }

        return self._respond("files", op)

    def bulk(
        self,
        action: str,
        targets: List[str],
        public_only: bool = False,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> Envelope:
        """
        Apply one action to many targets.

        Only a malformed request (unknown action, no targets) fails the
        whole call; everything else is reported per target.
        """
        def op() -> Tuple[str, Any]:
            plan = BatchPlan.create(action, targets, public_only=public_only)
            result = self.coordinator.run(plan, cancel=cancel, timeout=timeout)
            return "batch", result.to_dict()

        return self._respond("bulk", op)

    # =========================================================================
    # Cache lifecycle
    # =========================================================================

    def invalidate(self, path: str) -> bool:
        """Drop the cached table of a file the caller knows is gone or changed."""
        return self.cache.invalidate(path)

    def stats(self) -> Dict[str, Any]:
        return {
            "cache": self.cache.stats(),
            "orchestrator": self.orchestrator.get_stats(),
        }

    def close(self) -> None:
        """Shut down the worker pool if this instance created it."""
        if self._owns_orchestrator:
            self.orchestrator.shutdown(wait=True)

    def __enter__(self) -> 'CodeIntel':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # =========================================================================
    # Units (raise QuarryError)
    # =========================================================================

    def run_unit(self, action: Action, address: SymbolAddress, public_only: bool) -> Tuple[str, Any]:
        """One batch unit; runs inside a pool worker."""
        if action == Action.SYMBOLS:
            return self._symbols_of(address, public_only, signature_only=False)
        if action == Action.CONTEXT:
            return self._context_of(address)
        # Already on a worker: scan candidates on this thread
        return self._affected_of(address, within=None, cancel=None, parallel=False)

    def _symbols_of(self, address: SymbolAddress, public_only: bool, signature_only: bool) -> Tuple[str, Any]:
        table = self.loader.load(address.path)
        if address.is_file:
            return "symbols", table.to_dict(public_only=public_only, signature_only=signature_only)

        resolution = resolve_symbol(table, address.symbol)
        data = resolution.symbol.to_dict(signature_only=signature_only)
        if resolution.ambiguous:
            data["alternates"] = resolution.alternate_count
            data["alternate_paths"] = [s.qualified_name for s in resolution.alternates]
        return "symbol", data

    def _context_of(self, address: SymbolAddress) -> Tuple[str, Any]:
        table = self.loader.load(address.path)
        return "context", context_for(table, address).to_dict()

    def _affected_of(
        self,
        address: SymbolAddress,
        within: Optional[str],
        cancel: Optional[threading.Event],
        parallel: bool,
    ) -> Tuple[str, Any]:
        table = self.loader.load(address.path)
        resolution = resolve_symbol(table, address.symbol)
        scan = self.scanner.scan(resolution.symbol, within=within or None, cancel=cancel, parallel=parallel)
        data = analyze(scan).to_dict()
        if resolution.ambiguous:
            data["alternates"] = resolution.alternate_count
        return "affected", data

    def _file_entry(self, path: str, with_symbols: bool) -> Dict[str, Any]:
        name = path.rsplit("/", 1)[-1]
        extension = name[name.rfind("."):] if "." in name else None
        language = self.registry.resolve(path).name if self.registry.is_supported(path) else None
        entry: Dict[str, Any] = {"path": path, "extension": extension, "language": language}

        if with_symbols and language is not None:
            try:
                table = self.loader.load(path)
            except QuarryError as e:
                entry["error"] = e.kind
            else:
                entry["symbol_count"] = len(table)
                entry["symbols"] = [s.name for s in table]
        return entry

    # =========================================================================
    # Envelope boundary
    # =========================================================================

    def _respond(self, operation: str, op: Callable[[], Tuple[str, Any]]) -> Envelope:
        try:
            payload_type, data = op()
        except QuarryError as e:
            log.debug("operation_failed", operation=operation, kind=e.kind, message=e.message)
            return Envelope.fail(e)
        except Exception as e:
            log.exception("operation_crashed", operation=operation)
            return Envelope.fail(InternalError(f"{type(e).__name__}: {e}"))
        return Envelope.ok(payload_type, data)
