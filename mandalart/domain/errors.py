"""Domain error hierarchy for clean exception handling."""
from __future__ import annotations


class DomainError(Exception):
    """Base for all domain errors."""


class NotFoundError(DomainError):
    """Referenced node or request not found."""


class ValidationError(DomainError):
    """Invalid input or state."""


class InvalidMoveError(ValidationError):
    """Move would make a node its own ancestor."""


class ConflictError(DomainError):
    """Resource conflict."""


class SlotOccupiedError(ConflictError):
    """Target slot already holds a sibling."""


class RemoteFailureError(DomainError):
    """The project store rejected a write or could not be reached."""
