"""
Error taxonomy for a chat turn.

Each error carries the HTTP status the web layer reports for it:
- ValidationError / EmptyTurnError: malformed turn (400)
- NotFoundError: unknown restaurant or conversation (404)
- UpstreamError: completion or speech provider failure (provider status)
- StreamTimeoutError: stream exceeded its wall-clock budget (504)
- PersistenceError: post-stream write failed (logged only)
- ConfigurationError: required setting missing at call time (500)
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional


class TurnError(Exception):
    """Base class for chat turn failures."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_api(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(TurnError):
    """Raised when the turn payload has the wrong shape."""

    status_code = 400

    def __init__(self, details: List[Dict[str, str]], message: str = "Validation failed") -> None:
        super().__init__(message)
        self.details = details

    def to_api(self) -> Dict[str, Any]:
        return {"error": self.message, "details": self.details}


class NotFoundError(TurnError):
    status_code = 404


class EmptyTurnError(TurnError):
    """Raised when no user/assistant message survives filtering."""

    status_code = 400

    def __init__(self, message: str = "At least one user or assistant message is required") -> None:
        super().__init__(message)


class UpstreamError(TurnError):
    """Raised when a hosted provider returns a failure."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code or 502


class StreamTimeoutError(TurnError):
    status_code = 504


class PersistenceError(TurnError):
    pass


class ConfigurationError(TurnError):
    pass


__all__ = [
    "TurnError",
    "ValidationError",
    "NotFoundError",
    "EmptyTurnError",
    "UpstreamError",
    "StreamTimeoutError",
    "PersistenceError",
    "ConfigurationError",
]
