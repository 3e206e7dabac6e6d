"""
roster_import/domain/results.py

Import run options and the aggregate result handed back to callers.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

EMPTY_SOURCE_MESSAGE = "CSV file is empty or invalid"
NO_VALID_ROWS_MESSAGE = "No valid records to import"


class ImportState:
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ImportOptions:
    """
    Caller-supplied overrides for one import run.

    ``class_id`` only applies to student imports and replaces any class
    reference present in the rows.
    """

    class_id: int | None = None


@dataclass(frozen=True)
class RowError:
    """
    One row-scoped problem. ``row_number`` is None for run-level notes.
    """

    row_number: int | None
    message: str


@dataclass(frozen=True)
class ImportResult:
    """
    End-of-run summary for one entity-kind import.

    Entities are exposed as read-only views so the result cannot be edited
    after the run hands it back.
    """

    kind: str
    state: str
    total_rows: int
    succeeded: int
    entities: tuple[Mapping[str, Any], ...] = ()
    row_errors: tuple[RowError, ...] = ()
    warnings: tuple[str, ...] = ()
    secondary_errors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        frozen = tuple(MappingProxyType(dict(entity)) for entity in self.entities)
        object.__setattr__(self, "entities", frozen)

    @property
    def errors(self) -> list[str]:
        return [error.message for error in self.row_errors]

    @property
    def no_valid_rows(self) -> bool:
        return self.succeeded == 0
