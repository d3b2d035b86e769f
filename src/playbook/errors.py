"""
Error types raised by the PlayBook core.

The HTTP layer maps each kind to a status code:
ValidationError -> 400, NotFoundError -> 404, ConflictError -> 409
(MatchLockedError -> 403).
"""

from typing import Any, Optional


class PlaybookError(Exception):
    """Base class for all PlayBook errors."""


class ValidationError(PlaybookError):
    """Input rejected before any work was done."""


class NotFoundError(PlaybookError):
    """A referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: Any = None, message: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message or f"{entity} {entity_id} not found")


class ConflictError(PlaybookError):
    """Stored state changed underneath an update, or the update would clobber it."""


class MatchLockedError(ConflictError):
    """The match is finalized and its result can no longer be edited."""
