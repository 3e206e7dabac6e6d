"""
tests/fakes.py

In-memory persistence gateway for importer tests.

Stores honour the same unique columns as the ORM models and raise the
same ``PersistenceError`` subclasses, so importer code paths behave as they
would against a real database. Hooks allow tests to force identifier
collisions, inject failures and observe concurrency.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable
from typing import Any, Mapping

from roster_import.domain.records import EntityKind
from roster_import.repositories.errors import DuplicateEntryError, PersistenceError
from roster_import.repositories.gateway import ExecuteResult

_UNIQUE_FIELDS: dict[str, tuple[str, ...]] = {
    EntityKind.STUDENT: ("admission_number",),
    EntityKind.TEACHER: ("employee_id", "email"),
    EntityKind.CLASS: (),
    EntityKind.SUBJECT: (),
    EntityKind.PARENT: ("email",),
    EntityKind.USER_ACCOUNT: ("username",),
}

_CODE_FIELD: dict[str, str] = {
    EntityKind.STUDENT: "admission_number",
    EntityKind.TEACHER: "employee_id",
    EntityKind.CLASS: "name",
    EntityKind.SUBJECT: "name",
    EntityKind.PARENT: "email",
    EntityKind.USER_ACCOUNT: "username",
}


class InMemoryStore:
    def __init__(self, kind: str, ids: itertools.count) -> None:
        self.kind = kind
        self.rows: list[dict[str, Any]] = []
        self.create_calls: list[dict[str, Any]] = []
        self.code_checks: list[str] = []
        self.forced_taken_codes: set[str] = set()
        self.collide_next_checks = 0
        self.collisions_per_create = 0
        self.create_failure: Callable[[Mapping[str, Any]], Exception | None] | None = None
        self.create_delay_seconds = 0.0
        self.in_flight = 0
        self.max_in_flight = 0
        self._ids = ids

    async def create(self, record: Mapping[str, Any]) -> dict[str, Any]:
        self.create_calls.append(dict(record))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.create_delay_seconds:
                await asyncio.sleep(self.create_delay_seconds)
            if self.create_failure is not None:
                failure = self.create_failure(record)
                if failure is not None:
                    raise failure
            for field in _UNIQUE_FIELDS[self.kind]:
                value = record.get(field)
                if value is not None and any(row.get(field) == value for row in self.rows):
                    raise DuplicateEntryError(
                        f'duplicate key value violates unique constraint "{self.kind}_{field}_key"'
                    )
            stored = {"id": next(self._ids), **record}
            self.rows.append(stored)
            self.collide_next_checks = self.collisions_per_create
            return dict(stored)
        finally:
            self.in_flight -= 1

    async def exists_by_code(self, code: str) -> bool:
        self.code_checks.append(code)
        if self.collide_next_checks > 0:
            self.collide_next_checks -= 1
            return True
        if code in self.forced_taken_codes:
            return True
        return any(row.get(_CODE_FIELD[self.kind]) == code for row in self.rows)

    async def exists_by_field(self, field: str, value: Any) -> bool:
        return any(row.get(field) == value for row in self.rows)

    async def list(self) -> list[dict[str, Any]]:
        return [dict(row) for row in self.rows]

    def seed(self, **values: Any) -> dict[str, Any]:
        stored = {"id": next(self._ids), **values}
        self.rows.append(stored)
        return stored


class InMemoryGateway:
    def __init__(self) -> None:
        ids = itertools.count(1)
        self._stores = {kind: InMemoryStore(kind, ids) for kind in _UNIQUE_FIELDS}
        self.statements: list[tuple[str, dict[str, Any]]] = []

    def store(self, kind: str) -> InMemoryStore:
        return self._stores[kind]

    async def execute(
        self,
        statement: str,
        params: Mapping[str, Any] | None = None,
    ) -> ExecuteResult:
        self.statements.append((statement, dict(params or {})))
        return ExecuteResult()


def fail_when(predicate: Callable[[Mapping[str, Any]], bool], error: PersistenceError):
    """
    Build a ``create_failure`` hook raising ``error`` for matching payloads.
    """

    def _hook(record: Mapping[str, Any]) -> Exception | None:
        return error if predicate(record) else None

    return _hook
