"""Typed errors raised by the tagging engine and its persistence layer.

Every error carries a short machine code plus an HTTP status so the web layer
can turn it into a JSON response without a per-endpoint mapping.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class TaggerError(Exception):
    """Base class for all engine errors."""

    error = "tagger_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details:
            out["details"] = self.details
        return out


class DuplicateIdentifier(TaggerError):
    error = "duplicate_identifier"
    status_code = 409

    def __init__(self, tag_id: int) -> None:
        super().__init__(f"Tag with ID {tag_id} already exists", {"id": tag_id})


class NotFound(TaggerError):
    error = "not_found"
    status_code = 404

    def __init__(self, kind: str, key: Any) -> None:
        super().__init__(f"{kind} '{key}' is not registered", {"kind": kind, "key": key})


class PathCollision(TaggerError):
    error = "path_collision"
    status_code = 409

    def __init__(self, path: str) -> None:
        super().__init__(f"Path '{path}' already belongs to another song", {"path": path})


class MoveFailed(TaggerError):
    error = "move_failed"

    def __init__(self, src: str, dst: str, reason: str = "") -> None:
        msg = f"Could not move '{src}' to '{dst}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"src": src, "dst": dst})


class DeleteFailed(TaggerError):
    error = "delete_failed"

    def __init__(self, path: str, reason: str = "") -> None:
        msg = f"Could not delete '{path}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"path": path})


class PersistenceError(TaggerError):
    """I/O or encoding failure while reading or writing a project document."""

    error = "persistence_error"


class CorruptDocument(TaggerError):
    """Project document parsed but is structurally invalid."""

    error = "corrupt_document"
    status_code = 422
