"""
Content Sources — where file bytes and listings come from.

The code-intelligence core never touches the working tree directly.
It asks a ContentSource for bytes per path and for the repository
listing; the source may be a directory, a VCS blob store or a set of
editor buffers.

Usage:
    source = DirectorySource("/path/to/repo")
    content = source.read("src/app.py")
    content.digest   # xxhash64 hex digest, the cache key
"""

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

import xxhash

from .errors import FileNotFound
from .parsing.exclusions import ExclusionConfig


def content_digest(data: bytes) -> str:
    """Content hash used as the Symbol Table cache key (xxhash64, hex)."""
    return xxhash.xxh64(data).hexdigest()


@dataclass(frozen=True)
class FileContent:
    """Bytes of one file with their digest."""
    path: str
    data: bytes
    digest: str

    @classmethod
    def of(cls, path: str, data: bytes) -> 'FileContent':
        return cls(path=path, data=data, digest=content_digest(data))


class ContentSource(Protocol):
    """File-reading collaborator consumed by the core."""

    def read(self, path: str) -> FileContent:
        """
        Read one file.

        Raises:
            FileNotFound: If the path does not exist in this source
        """
        ...

    def list_files(self) -> List[str]:
        """Repository-relative, forward-slash paths of all files."""
        ...


class InMemorySource:
    """
    Dict-backed source (editor buffers, tests).

    Thread-safe: batch workers read while a caller may ``put`` new buffers.
    """

    def __init__(self, files: Optional[Dict[str, Union[str, bytes]]] = None):
        self._files: Dict[str, bytes] = {}
        self._lock = threading.Lock()
        for path, data in (files or {}).items():
            self.put(path, data)

    def put(self, path: str, data: Union[str, bytes]) -> FileContent:
        if isinstance(data, str):
            data = data.encode("utf-8")
        with self._lock:
            self._files[path] = data
        return FileContent.of(path, data)

    def remove(self, path: str) -> bool:
        with self._lock:
            return self._files.pop(path, None) is not None

    def read(self, path: str) -> FileContent:
        with self._lock:
            data = self._files.get(path)
        if data is None:
            raise FileNotFound(f"File not found: {path}", path=path)
        return FileContent.of(path, data)

    def list_files(self) -> List[str]:
        with self._lock:
            return sorted(self._files)


class DirectorySource:
    """
    Reads a working-tree directory.

    The listing skips excluded paths (VCS metadata, build output,
    dependency folders) so globs never wander into them.
    """

    def __init__(self, root: Union[str, Path], exclusions: Optional[ExclusionConfig] = None):
        self.root = Path(root).resolve()
        self.exclusions = exclusions or ExclusionConfig(include_tests=True)

    def _full_path(self, path: str) -> Path:
        full = (self.root / path).resolve()
        if full != self.root and self.root not in full.parents:
            raise FileNotFound(f"Path escapes the repository: {path}", path=path)
        return full

    def read(self, path: str) -> FileContent:
        full = self._full_path(path)
        try:
            data = full.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise FileNotFound(f"File not found: {path}", path=path) from e
        except OSError as e:
            raise FileNotFound(f"Cannot read {path}: {e.strerror}", path=path) from e
        return FileContent.of(path, data)

    def list_files(self) -> List[str]:
        """Walk the tree, pruning excluded directories of every language."""
        files = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            rel_dir = Path(dirpath).relative_to(self.root).as_posix()
            prefix = "" if rel_dir == "." else rel_dir + "/"
            dirnames[:] = [d for d in dirnames if not self.exclusions.is_pruned_dir(prefix + d)]
            for filename in filenames:
                rel = prefix + filename
                if self.exclusions.is_excluded_anywhere(rel):
                    continue
                files.append(rel)
        return sorted(files)
