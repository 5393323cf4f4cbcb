"""
Errors — Structured failure taxonomy for code-intelligence operations.

Every failure carries a machine-readable ``kind`` plus the offending
path or address so callers can retry or branch without parsing messages.

Usage:
    from quarry.core.errors import SymbolNotFound, QuarryError

    try:
        resolve_symbol(table, "Greeter.greet")
    except QuarryError as e:
        print(e.to_dict())   # {"error": True, "kind": "symbol_not_found", ...}
"""

from typing import Any, Dict, List, Optional


class QuarryError(Exception):
    """
    Base class for all structured failures.

    Attributes:
        kind: Stable identifier for the failure class (snake_case)
        message: Human-readable explanation
        path: Repository-relative file path involved, if any
        address: Full symbol address involved, if any
    """

    kind = "error"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        address: Optional[str] = None,
        **details: Any
    ):
        self.message = message
        self.path = path
        self.address = address
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as the failure half of the result envelope."""
        data: Dict[str, Any] = {
            "error": True,
            "kind": self.kind,
            "message": self.message,
        }
        if self.path is not None:
            data["path"] = self.path
        if self.address is not None:
            data["address"] = self.address
        data.update(self.details)
        return data


class AddressFormatError(QuarryError):
    """Raised when a ``path::symbol`` string is malformed (before any I/O)."""
    kind = "address_format"


class UnsupportedLanguage(QuarryError):
    """Raised when no registered language handles a file's extension."""
    kind = "unsupported_language"


class ParseError(QuarryError):
    """Raised when content cannot be parsed at all (not for partial parses)."""
    kind = "parse_error"


class SymbolNotFound(QuarryError):
    """Raised when a symbol path matches nothing in a file's table."""
    kind = "symbol_not_found"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        address: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(message, path=path, address=address,
                         suggestions=list(suggestions or []))

    @property
    def suggestions(self) -> List[str]:
        return self.details["suggestions"]


class AmbiguousSymbol(QuarryError):
    """Raised in strict lookups when several symbols share a name."""
    kind = "ambiguous_symbol"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        address: Optional[str] = None,
        candidates: Optional[List[str]] = None
    ):
        super().__init__(message, path=path, address=address,
                         candidates=list(candidates or []))

    @property
    def candidates(self) -> List[str]:
        return self.details["candidates"]


class NoFilesMatched(QuarryError):
    """Raised when a glob pattern expands to zero files."""
    kind = "no_files_matched"


class FileNotFound(QuarryError):
    """Raised by content sources when a path does not exist."""
    kind = "file_not_found"


class InvalidTarget(QuarryError):
    """Raised when a batch target's type does not fit the requested action."""
    kind = "invalid_target"


class InvalidRequest(QuarryError):
    """Raised when a top-level request is malformed as a whole."""
    kind = "invalid_request"


class Cancelled(QuarryError):
    """Reported for batch units abandoned after the caller withdrew."""
    kind = "cancelled"


class TaskTimeout(QuarryError):
    """Reported for batch units that exceeded the per-unit timeout."""
    kind = "timeout"


class InternalError(QuarryError):
    """Wraps unexpected exceptions at the service boundary."""
    kind = "internal"
