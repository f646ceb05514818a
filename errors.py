"""
Error hierarchy for the ranking and rotation engine.

Helpers and the repository raise these; ``main.py`` turns them into JSON
responses using ``status_code``. Each error carries a human-readable
``message``, a ``details`` dict with structured context and a stable
``error_code`` for clients.
"""

from typing import Any, Dict, Optional


class RankingError(Exception):
    """Base class for every error this service reports to callers."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


class UnauthorizedError(RankingError):
    """Caller identity or API key required but missing or wrong."""

    status_code = 401


class NotFoundError(RankingError):
    """No matching user, problem, challenge or leaderboard entry."""

    status_code = 404


class InvalidInputError(RankingError):
    """Missing or malformed date, user id, period or paging parameter."""

    status_code = 400


class ConflictError(RankingError):
    """
    A unique constraint rejected a write.

    Challenge creation recovers from this by re-reading the winning row, so
    it only reaches a caller when that recovery itself keeps failing.
    """

    status_code = 409


class StorageFailureError(RankingError):
    """The store was unreachable or returned an unexpected error. Not retried here."""

    status_code = 503
