"""
roster_import/repositories/sqlalchemy_gateway.py

SQLAlchemy-backed persistence gateway.

Sessions are synchronous; each call runs in a worker thread via
``asyncio.to_thread`` inside its own transaction so the import loop can
await it like any other collaborator call.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from sqlalchemy import inspect, select, text
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from db.base import Base
from db.models import Parent, SchoolClass, Student, Subject, Teacher, UserAccount
from roster_import.domain.records import EntityKind
from roster_import.repositories.errors import (
    PersistenceError,
    PersistenceUnavailableError,
    classify_persistence_error,
)
from roster_import.repositories.gateway import ExecuteResult

logger = logging.getLogger(__name__)

_MODEL_BY_KIND: dict[str, type[Base]] = {
    EntityKind.STUDENT: Student,
    EntityKind.TEACHER: Teacher,
    EntityKind.CLASS: SchoolClass,
    EntityKind.SUBJECT: Subject,
    EntityKind.PARENT: Parent,
    EntityKind.USER_ACCOUNT: UserAccount,
}

# Column holding each kind's human-facing identifying code.
_CODE_COLUMN_BY_KIND: dict[str, str] = {
    EntityKind.STUDENT: "admission_number",
    EntityKind.TEACHER: "employee_id",
    EntityKind.CLASS: "name",
    EntityKind.SUBJECT: "name",
    EntityKind.PARENT: "email",
    EntityKind.USER_ACCOUNT: "username",
}

# Driver messages for connection failures that SQLAlchemy reports as a
# plain OperationalError (e.g. when the first connect is refused).
_UNREACHABLE_MARKERS = (
    "unable to open database file",
    "could not connect",
    "connection refused",
    "connection is closed",
    "server closed the connection",
    "terminating connection",
    "could not translate host name",
)


def model_to_dict(instance: Base) -> dict[str, Any]:
    return {attr.key: getattr(instance, attr.key) for attr in inspect(instance).mapper.column_attrs}


def _driver_message(exc: SQLAlchemyError) -> str:
    original = getattr(exc, "orig", None)
    return str(original if original is not None else exc)


def _translate(exc: SQLAlchemyError) -> PersistenceError:
    """
    Only a lost or unreachable database is fatal to a run. Lock waits,
    deadlocks and statement timeouts stay row-scoped.
    """

    if isinstance(exc, (DisconnectionError, InterfaceError)) or getattr(exc, "connection_invalidated", False):
        return PersistenceUnavailableError(_driver_message(exc))
    if isinstance(exc, OperationalError):
        message = _driver_message(exc)
        if any(marker in message.lower() for marker in _UNREACHABLE_MARKERS):
            return PersistenceUnavailableError(message)
    return classify_persistence_error(exc)


class SQLAlchemyEntityStore:
    """
    EntityStore over one ORM model.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session],
        model: type[Base],
        code_column: str,
    ) -> None:
        self._session_factory = session_factory
        self._model = model
        self._columns = {attr.key for attr in inspect(model).column_attrs}
        self._code_column = code_column

    async def create(self, record: Mapping[str, Any]) -> dict[str, Any]:
        return await asyncio.to_thread(self._create_sync, dict(record))

    async def exists_by_code(self, code: str) -> bool:
        return await self.exists_by_field(self._code_column, code)

    async def exists_by_field(self, field: str, value: Any) -> bool:
        self._require_column(field)
        return await asyncio.to_thread(self._exists_sync, field, value)

    async def list(self) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._list_sync)

    def _create_sync(self, payload: dict[str, Any]) -> dict[str, Any]:
        unknown = sorted(set(payload) - self._columns)
        if unknown:
            raise PersistenceError(
                f"Unknown column(s) for {self._model.__tablename__}: {', '.join(unknown)}"
            )

        try:
            with self._session_factory() as session:
                with session.begin():
                    instance = self._model(**payload)
                    session.add(instance)
                    session.flush()
                    created = model_to_dict(instance)
        except SQLAlchemyError as exc:
            raise _translate(exc) from exc

        logger.debug("Created %s id=%s", self._model.__tablename__, created.get("id"))
        return created

    def _exists_sync(self, field: str, value: Any) -> bool:
        column = getattr(self._model, field)
        try:
            with self._session_factory() as session:
                found = session.execute(
                    select(self._model.id).where(column == value).limit(1)
                ).first()
        except SQLAlchemyError as exc:
            raise _translate(exc) from exc
        return found is not None

    def _list_sync(self) -> list[dict[str, Any]]:
        try:
            with self._session_factory() as session:
                instances = session.scalars(select(self._model).order_by(self._model.id)).all()
                return [model_to_dict(instance) for instance in instances]
        except SQLAlchemyError as exc:
            raise _translate(exc) from exc

    def _require_column(self, field: str) -> None:
        if field not in self._columns:
            raise ValueError(f"Unknown column '{field}' for {self._model.__tablename__}.")


class SQLAlchemyGateway:
    """
    PersistenceGateway backed by the roster ORM models.
    """

    def __init__(self, *, session_factory: sessionmaker[Session] | None = None) -> None:
        if session_factory is None:
            from db.session import get_session_factory

            session_factory = get_session_factory()
        self._session_factory = session_factory
        self._stores = {
            kind: SQLAlchemyEntityStore(
                session_factory=session_factory,
                model=model,
                code_column=_CODE_COLUMN_BY_KIND[kind],
            )
            for kind, model in _MODEL_BY_KIND.items()
        }

    def store(self, kind: str) -> SQLAlchemyEntityStore:
        try:
            return self._stores[kind]
        except KeyError:
            raise ValueError(f"Unsupported entity kind '{kind}'.") from None

    async def execute(
        self,
        statement: str,
        params: Mapping[str, Any] | None = None,
    ) -> ExecuteResult:
        return await asyncio.to_thread(self._execute_sync, statement, dict(params or {}))

    def _execute_sync(self, statement: str, params: dict[str, Any]) -> ExecuteResult:
        try:
            with self._session_factory() as session:
                with session.begin():
                    result = session.execute(text(statement), params)
                    if result.returns_rows:
                        rows = [dict(row._mapping) for row in result]
                        return ExecuteResult(rows=rows, affected_count=len(rows))
                    return ExecuteResult(rows=[], affected_count=max(0, result.rowcount))
        except SQLAlchemyError as exc:
            raise _translate(exc) from exc
