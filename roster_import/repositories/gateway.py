"""
Interface of the persistence collaborator used by the import pipeline.

Every call is a coroutine; implementations raise ``PersistenceError``
subclasses (see ``roster_import.repositories.errors``) on failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol


@dataclass(frozen=True)
class ExecuteResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    affected_count: int = 0


class EntityStore(Protocol):
    """
    Per-kind persistence operations.
    """

    async def create(self, record: Mapping[str, Any]) -> dict[str, Any]:
        ...

    async def exists_by_code(self, code: str) -> bool:
        ...

    async def exists_by_field(self, field: str, value: Any) -> bool:
        ...

    async def list(self) -> list[dict[str, Any]]:
        ...


class PersistenceGateway(Protocol):
    def store(self, kind: str) -> EntityStore:
        ...

    async def execute(
        self,
        statement: str,
        params: Mapping[str, Any] | None = None,
    ) -> ExecuteResult:
        ...
