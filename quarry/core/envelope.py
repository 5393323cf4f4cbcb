"""
Envelope — Uniform result wrapper for every operation

Success and failure share one shape so the (external) output layer can
render or pipe any result without knowing which operation produced it:

    success: {"error": false, "type": "symbols", "data": {...}}
    failure: {"error": true, "kind": "file_not_found", "message": "...", "path": "..."}

Usage:
    envelope = Envelope.ok("context", ctx.to_dict())
    envelope = Envelope.fail(exc)
    print(envelope.to_json(pretty=True))
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import orjson

from .errors import QuarryError


# =============================================================================
# Envelope
# =============================================================================

@dataclass(frozen=True)
class Envelope:
    """
    One operation's outcome.

    Attributes:
        type: Payload type ("symbols", "symbol", "context", "affected",
              "files", "batch"); None for failures
        data: Success payload
        error: Structured failure
    """
    type: Optional[str] = None
    data: Any = None
    error: Optional[QuarryError] = None

    @classmethod
    def ok(cls, type: str, data: Any) -> 'Envelope':
        return cls(type=type, data=data)

    @classmethod
    def fail(cls, error: QuarryError) -> 'Envelope':
        return cls(error=error)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[str]:
        """Failure kind, None on success."""
        return self.error.kind if self.error is not None else None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return self.error.to_dict()
        return {"error": False, "type": self.type, "data": self.data}

    def to_json(self, pretty: bool = False) -> str:
        """
        Serialize with orjson.

        Args:
            pretty: Indent output (two spaces) instead of compact

        Returns:
            JSON string
        """
        option = orjson.OPT_INDENT_2 if pretty else 0
        return orjson.dumps(self.to_dict(), option=option, default=str).decode("utf-8")
