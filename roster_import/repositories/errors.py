"""
Persistence-layer exceptions and the message-based error classifier.
"""

from __future__ import annotations

_DUPLICATE_MARKERS = ("duplicate", "unique constraint", "already exists")
_CONSTRAINT_MARKERS = ("foreign key", "constraint", "not null")


class PersistenceError(RuntimeError):
    """Base exception for persistence collaborator failures."""


class DuplicateEntryError(PersistenceError):
    """Raised when a write collides with an existing unique value."""


class ConstraintViolationError(PersistenceError):
    """Raised when a write breaks a foreign-key or other constraint."""


class PersistenceUnavailableError(PersistenceError):
    """Raised when the persistence service cannot be reached at all."""


def classify_persistence_error(exc: BaseException) -> PersistenceError:
    """
    Map an arbitrary collaborator failure onto the persistence taxonomy.

    Classification is by substring match on the driver message, so it only
    distinguishes what the message text reveals.
    """

    if isinstance(exc, PersistenceError):
        return exc

    original = getattr(exc, "orig", None)
    message = str(original if original is not None else exc)
    lowered = message.lower()
    if any(marker in lowered for marker in _DUPLICATE_MARKERS):
        return DuplicateEntryError(message)
    if any(marker in lowered for marker in _CONSTRAINT_MARKERS):
        return ConstraintViolationError(message)
    return PersistenceError(message)
