"""
roster_import/repositories package marker.
"""

from roster_import.repositories.errors import (
    ConstraintViolationError,
    DuplicateEntryError,
    PersistenceError,
    PersistenceUnavailableError,
    classify_persistence_error,
)
from roster_import.repositories.gateway import EntityStore, ExecuteResult, PersistenceGateway
from roster_import.repositories.sqlalchemy_gateway import SQLAlchemyGateway

__all__ = [
    "ConstraintViolationError",
    "DuplicateEntryError",
    "EntityStore",
    "ExecuteResult",
    "PersistenceError",
    "PersistenceGateway",
    "PersistenceUnavailableError",
    "SQLAlchemyGateway",
    "classify_persistence_error",
]
