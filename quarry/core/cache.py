"""
SymbolCache — Process-wide Symbol Table cache keyed by (path, digest).

Passed explicitly to every component that needs tables; there is no
module-level instance. Entries are immutable once written, so the only
synchronization is around the lookup itself. Factories run outside the
lock: two workers racing on the same key may both build the table, and
the first one stored wins. A build never replaces an entry whose digest
changed while it ran.

Invalidation is driven by callers: a read that reports a new digest
replaces the old entry, a read that reports the file gone calls
``invalidate``.
"""

import threading
from typing import Callable, Dict, Optional, Tuple, TYPE_CHECKING

import structlog

from .errors import FileNotFound
from .symbols import SymbolTable

if TYPE_CHECKING:
    from .parsing import TreeSitterExtractor
    from .sources import ContentSource, FileContent

log = structlog.get_logger()


class SymbolCache:
    """Concurrency-safe get-or-populate store of SymbolTables."""

    def __init__(self):
        self._entries: Dict[str, Tuple[str, SymbolTable]] = {}  # path -> (digest, table)
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, path: str, digest: str) -> Optional[SymbolTable]:
        with self._lock:
            entry = self._entries.get(path)
            if entry is not None and entry[0] == digest:
                return entry[1]
        return None

    def get_or_populate(
        self,
        path: str,
        digest: str,
        factory: Callable[[], SymbolTable],
    ) -> SymbolTable:
        """
        Return the cached table for (path, digest), building it on a miss.

        Args:
            path: Repository-relative path
            digest: Content digest reported by the content source
            factory: Builds the table; exceptions propagate and nothing
                is cached

        Returns:
            The stored table (the first writer's, on a race). A table
            built while another digest was stored for the path is returned
            without being cached
        """
        with self._lock:
            entry = self._entries.get(path)
            if entry is not None and entry[0] == digest:
                self._hits += 1
                return entry[1]
            self._misses += 1
            observed = entry[0] if entry is not None else None

        table = factory()

        with self._lock:
            entry = self._entries.get(path)
            if entry is not None and entry[0] == digest:
                # Another worker populated it first
                return entry[1]
            if entry is not None and entry[0] != observed:
                # A different digest was stored meanwhile; leave it in place
                log.debug("cache_write_skipped", path=path, stored_digest=entry[0], digest=digest)
                return table
            if entry is not None:
                log.debug("cache_replaced", path=path, old_digest=entry[0], digest=digest)
            self._entries[path] = (digest, table)
        return table

    def invalidate(self, path: str) -> bool:
        """Drop the entry for a path. Returns True if one existed."""
        with self._lock:
            removed = self._entries.pop(path, None) is not None
        if removed:
            log.debug("cache_invalidated", path=path)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._entries


class TableLoader:
    """
    Reads content through a source and returns its cached Symbol Table.

    Usage:
        loader = TableLoader(source, extractor, cache)
        table = loader.load("src/app.py")
    """

    def __init__(self, source: 'ContentSource', extractor: 'TreeSitterExtractor', cache: SymbolCache):
        self.source = source
        self.extractor = extractor
        self.cache = cache

    def load(self, path: str) -> SymbolTable:
        """
        Symbol Table for the current content of ``path``.

        Raises:
            FileNotFound: If the source no longer has the file (the
                cache entry is dropped)
            UnsupportedLanguage, ParseError: From extraction
        """
        try:
            content = self.source.read(path)
        except FileNotFound:
            self.cache.invalidate(path)
            raise
        return self.load_content(content)

    def load_content(self, content: 'FileContent') -> SymbolTable:
        """Symbol Table for already read content."""
        return self.cache.get_or_populate(
            content.path,
            content.digest,
            lambda: self.extractor.extract(content.path, content.data, content.digest),
        )
