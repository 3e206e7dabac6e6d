"""
roster_import/services/importers.py

Import orchestration: one importer per entity kind.

A run tokenizes the source, then walks the rows strictly in order:

    validate -> resolve identifier and references -> persist -> queue
    secondary effects -> report progress

Row-level problems (validation failures, duplicate identifiers, rejected
writes) are recorded against their row number and the run moves on. Only
losing the persistence service altogether stops a run; that surfaces as
``ImportFailedError``. Rows are processed one at a time so a parent
created for row N is visible to row N+1.
"""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from db.models.user_account import UserRole
from roster_import.config import ImportSettings, get_import_settings
from roster_import.domain.records import (
    ClassRecord,
    EntityKind,
    NormalizedRecord,
    ParentRecord,
    Rejected,
    StudentRecord,
    SubjectRecord,
    TeacherRecord,
)
from roster_import.domain.results import (
    EMPTY_SOURCE_MESSAGE,
    NO_VALID_ROWS_MESSAGE,
    ImportOptions,
    ImportResult,
    ImportState,
    RowError,
)
from roster_import.logging_utils import log_event
from roster_import.parsing.tokenizer import CSVTokenizer, SourceInput
from roster_import.repositories.errors import (
    ConstraintViolationError,
    DuplicateEntryError,
    PersistenceError,
    PersistenceUnavailableError,
)
from roster_import.repositories.gateway import PersistenceGateway
from roster_import.services.account_provisioning import account_provisioning_job
from roster_import.services.dependency_resolver import ClassResolver, ParentResolver
from roster_import.services.effect_queue import (
    EffectOutcome,
    SecondaryEffectJob,
    ThrottledEffectQueue,
)
from roster_import.services.errors import (
    DuplicateIdentifierError,
    ImportFailedError,
    RowImportError,
)
from roster_import.services.identifier_generator import IdentifierGenerator
from roster_import.validators.base import RowValidator
from roster_import.validators.entity_validators import build_validator

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class RunContext:
    """
    State owned by exactly one ``run()`` call.
    """

    options: ImportOptions
    identifiers: IdentifierGenerator
    parents: ParentResolver
    classes: ClassResolver
    effects: ThrottledEffectQueue
    effect_futures: list[asyncio.Future[EffectOutcome]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def enqueue(self, job: SecondaryEffectJob) -> None:
        self.effect_futures.append(self.effects.enqueue(job))


class EntityImporter(ABC):
    """
    Drives one entity-kind import end to end.

    Run state lives in locals and the ``RunContext`` of each ``run()`` call,
    so one importer may serve several runs, concurrent ones included. The
    outcome is reported only through ``ImportResult`` or ``ImportFailedError``.
    """

    kind: str

    def __init__(
        self,
        *,
        gateway: PersistenceGateway,
        settings: ImportSettings | None = None,
        validator: RowValidator | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._gateway = gateway
        self._settings = settings or get_import_settings()
        self._validator = validator or build_validator(self.kind, self._settings)
        self._rng = rng

    async def run(
        self,
        source: SourceInput,
        *,
        options: ImportOptions | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ImportResult:
        """
        Import every row of ``source`` and return the aggregate result.

        Raises ``ImportSourceError`` when the source cannot be read and
        ``ImportFailedError`` when the persistence service is lost mid-run.
        """

        rows = list(CSVTokenizer(source))
        total = len(rows)
        state = ImportState.RUNNING
        log_event(logger, logging.INFO, "import_started", kind=self.kind, total_rows=total)

        if not rows:
            return ImportResult(
                kind=self.kind,
                state=ImportState.COMPLETED,
                total_rows=0,
                succeeded=0,
                row_errors=(RowError(row_number=None, message=EMPTY_SOURCE_MESSAGE),),
            )

        context = self._new_context(options or ImportOptions())
        entities: list[dict[str, Any]] = []
        row_errors: list[RowError] = []
        accepted = 0
        processed = 0

        try:
            for row in rows:
                if cancel_event is not None and cancel_event.is_set():
                    state = ImportState.CANCELLED
                    row_errors.append(
                        RowError(
                            row_number=None,
                            message=f"Import cancelled after {processed} of {total} rows",
                        )
                    )
                    break

                outcome = self._validator.validate_row(row)
                if isinstance(outcome, Rejected):
                    self._record_error(row_errors, outcome.row_number, outcome.message)
                else:
                    accepted += 1
                    entity = await self._import_row(outcome, context, row_errors)
                    if entity is not None:
                        entities.append(entity)

                processed += 1
                if on_progress is not None:
                    on_progress(processed, total)
        except PersistenceUnavailableError as exc:
            logger.exception("Import of %s rows failed after %d of %d rows", self.kind, processed, total)
            log_event(
                logger,
                logging.ERROR,
                "import_failed",
                kind=self.kind,
                state=ImportState.FAILED,
                processed=processed,
                total_rows=total,
                error=str(exc),
            )
            raise ImportFailedError(
                f"Import of {self.kind} rows stopped: {exc}",
                kind=self.kind,
                processed=processed,
                total=total,
            ) from exc

        if accepted == 0 and state != ImportState.CANCELLED:
            row_errors.append(RowError(row_number=None, message=NO_VALID_ROWS_MESSAGE))

        secondary_errors = await self._settle_effects(context)
        if state == ImportState.RUNNING:
            state = ImportState.COMPLETED

        result = ImportResult(
            kind=self.kind,
            state=state,
            total_rows=total,
            succeeded=len(entities),
            entities=tuple(entities),
            row_errors=tuple(row_errors),
            warnings=tuple(context.warnings),
            secondary_errors=secondary_errors,
        )
        log_event(
            logger,
            logging.INFO,
            "import_completed",
            kind=self.kind,
            state=result.state,
            total_rows=total,
            succeeded=result.succeeded,
            failed_rows=sum(1 for error in row_errors if error.row_number is not None),
            secondary_failures=len(secondary_errors),
        )
        return result

    # ------------------------------------------------------------------
    # Per-row steps
    # ------------------------------------------------------------------

    async def _import_row(
        self,
        record: NormalizedRecord,
        context: RunContext,
        row_errors: list[RowError],
    ) -> dict[str, Any] | None:
        row_number = record.row_number
        try:
            return await self._import_record(record, context)
        except PersistenceUnavailableError:
            raise
        except RowImportError as exc:
            self._record_error(row_errors, row_number, f"Row {row_number}: {exc}")
        except PersistenceError as exc:
            self._record_error(
                row_errors,
                row_number,
                f"Row {row_number}: Error importing {self.kind} {self._describe(record)}: {exc}",
            )
        return None

    @abstractmethod
    async def _import_record(self, record: Any, context: RunContext) -> dict[str, Any]:
        """
        Resolve, persist and queue effects for one accepted record.
        """

    @abstractmethod
    def _describe(self, record: Any) -> str:
        """
        Short human label for messages, e.g. the person's full name.
        """

    async def _create(self, payload: dict[str, Any], record: Any) -> dict[str, Any]:
        try:
            return await self._gateway.store(self.kind).create(payload)
        except PersistenceUnavailableError:
            raise
        except PersistenceError as exc:
            raise RowImportError(self._creation_failure_message(record, payload, exc)) from exc

    def _creation_failure_message(
        self,
        record: Any,
        payload: dict[str, Any],
        exc: PersistenceError,
    ) -> str:
        if isinstance(exc, DuplicateEntryError):
            return f"{self.kind.capitalize()} {self._describe(record)} already exists"
        return f"Failed to create {self.kind}: {exc}"

    async def _unique_code(
        self,
        candidate: str | None,
        context: RunContext,
        *,
        duplicate_message: Callable[[str], str],
    ) -> str:
        store = self._gateway.store(self.kind)
        try:
            return await context.identifiers.ensure_unique(
                candidate,
                store.exists_by_code,
                kind=self.kind,
            )
        except DuplicateIdentifierError as exc:
            raise DuplicateIdentifierError(
                duplicate_message(exc.identifier or ""),
                identifier=exc.identifier,
            ) from exc

    async def _ensure_field_free(self, field_name: str, value: str, *, message: str) -> None:
        if await self._gateway.store(self.kind).exists_by_field(field_name, value):
            raise DuplicateIdentifierError(message, identifier=value)

    def _queue_account(
        self,
        context: RunContext,
        *,
        entity: dict[str, Any],
        role: str,
        row_number: int,
        username: str | None,
        email: str | None,
    ) -> None:
        context.enqueue(
            account_provisioning_job(
                store=self._gateway.store(EntityKind.USER_ACCOUNT),
                entity=entity,
                role=role,
                row_number=row_number,
                username=username,
                email=email,
            )
        )

    # ------------------------------------------------------------------
    # Run plumbing
    # ------------------------------------------------------------------

    def _new_context(self, options: ImportOptions) -> RunContext:
        overrides: dict[str, Any] = {}
        if self._rng is not None:
            overrides["rng"] = self._rng
        return RunContext(
            options=options,
            identifiers=IdentifierGenerator.from_settings(self._settings, **overrides),
            parents=ParentResolver(
                store=self._gateway.store(EntityKind.PARENT),
                email_domain=self._settings.parent_email_domain,
            ),
            classes=ClassResolver(store=self._gateway.store(EntityKind.CLASS)),
            effects=ThrottledEffectQueue.from_settings(self._settings),
        )

    async def _settle_effects(self, context: RunContext) -> tuple[str, ...]:
        if not context.effect_futures or not self._settings.wait_for_secondary_effects:
            return ()

        await context.effects.join()
        failures: list[str] = []
        for future in context.effect_futures:
            outcome = future.result()
            if not outcome.succeeded:
                failures.append(f"{outcome.label} failed: {outcome.error}")
        return tuple(failures)

    def _record_error(self, row_errors: list[RowError], row_number: int, message: str) -> None:
        row_errors.append(RowError(row_number=row_number, message=message))
        if self._settings.log_row_errors:
            logger.info("Row rejected kind=%s row=%d: %s", self.kind, row_number, message)


class StudentImporter(EntityImporter):
    """
    Students: admission number, optional class override, parent link and
    an optional login account when the row carries a username.
    """

    kind = EntityKind.STUDENT

    def _describe(self, record: StudentRecord) -> str:
        return record.full_name

    async def _import_record(self, record: StudentRecord, context: RunContext) -> dict[str, Any]:
        admission_number = await self._unique_code(
            record.admission_number,
            context,
            duplicate_message=lambda code: (
                f"Admission number {code} already exists for student: {record.full_name}"
            ),
        )

        if context.options.class_id is not None:
            class_id = context.options.class_id
        else:
            class_id = await context.classes.resolve(record.class_name)

        resolution = await context.parents.resolve(
            parent_name=record.parent_name,
            parent_phone=record.parent_phone,
            parent_email=record.parent_email,
        )
        if resolution.warning:
            context.warnings.append(
                f"Row {record.row_number}: {resolution.warning}; student imported without parent link"
            )

        entity = await self._create(
            {
                "admission_number": admission_number,
                "first_name": record.first_name,
                "last_name": record.last_name,
                "other_name": record.other_name,
                "gender": record.gender,
                "date_of_birth": record.date_of_birth,
                "class_id": class_id,
                "class_name": record.class_name,
                "level": record.level,
                "parent_id": resolution.parent_id,
                "status": record.status,
                "academic_year": record.academic_year,
                "admission_date": record.admission_date,
                "email": record.email,
            },
            record,
        )

        if record.username:
            self._queue_account(
                context,
                entity=entity,
                role=UserRole.STUDENT,
                row_number=record.row_number,
                username=record.username,
                email=record.email,
            )
        return entity

    def _creation_failure_message(
        self,
        record: StudentRecord,
        payload: dict[str, Any],
        exc: PersistenceError,
    ) -> str:
        if isinstance(exc, DuplicateEntryError):
            return f"Student with admission number {payload['admission_number']} already exists"
        if isinstance(exc, ConstraintViolationError):
            return f"Invalid class or parent reference for student {record.full_name}"
        return f"Failed to create student: {exc}"


class TeacherImporter(EntityImporter):
    kind = EntityKind.TEACHER

    def _describe(self, record: TeacherRecord) -> str:
        return record.full_name

    async def _import_record(self, record: TeacherRecord, context: RunContext) -> dict[str, Any]:
        employee_id = await self._unique_code(
            record.employee_id,
            context,
            duplicate_message=lambda code: (
                f"Employee ID {code} already exists for teacher: {record.full_name}"
            ),
        )
        await self._ensure_field_free(
            "email",
            record.email,
            message=f"Email {record.email} already exists for teacher: {record.full_name}",
        )

        entity = await self._create(
            {
                "employee_id": employee_id,
                "first_name": record.first_name,
                "last_name": record.last_name,
                "other_name": record.other_name,
                "gender": record.gender,
                "email": record.email,
                "phone": record.phone,
                "qualification": record.qualification,
                "specialization": list(record.specialization),
                "status": record.status,
                "is_class_teacher": record.is_class_teacher,
            },
            record,
        )

        self._queue_account(
            context,
            entity=entity,
            role=UserRole.TEACHER,
            row_number=record.row_number,
            username=record.username,
            email=record.email,
        )
        return entity


class ClassImporter(EntityImporter):
    kind = EntityKind.CLASS

    def _describe(self, record: ClassRecord) -> str:
        return record.name

    async def _import_record(self, record: ClassRecord, context: RunContext) -> dict[str, Any]:
        return await self._create(
            {
                "name": record.name,
                "level": record.level,
                "section": record.section,
                "capacity": record.capacity,
                "class_teacher_id": record.class_teacher_id,
                "status": record.status,
            },
            record,
        )


class SubjectImporter(EntityImporter):
    kind = EntityKind.SUBJECT

    def _describe(self, record: SubjectRecord) -> str:
        return record.name

    async def _import_record(self, record: SubjectRecord, context: RunContext) -> dict[str, Any]:
        return await self._create(
            {
                "name": record.name,
                "category": record.category,
                "subject_type": record.subject_type,
                "description": record.description,
                "is_core": record.is_core,
                "status": record.status,
            },
            record,
        )


class ParentImporter(EntityImporter):
    kind = EntityKind.PARENT

    def _describe(self, record: ParentRecord) -> str:
        return record.full_name

    async def _import_record(self, record: ParentRecord, context: RunContext) -> dict[str, Any]:
        await self._ensure_field_free(
            "email",
            record.email,
            message=f"Email {record.email} already exists for parent: {record.full_name}",
        )

        entity = await self._create(
            {
                "first_name": record.first_name,
                "last_name": record.last_name,
                "other_name": record.other_name,
                "gender": record.gender,
                "email": record.email,
                "phone": record.phone,
                "status": record.status,
            },
            record,
        )

        self._queue_account(
            context,
            entity=entity,
            role=UserRole.PARENT,
            row_number=record.row_number,
            username=record.username,
            email=record.email,
        )
        return entity


_IMPORTER_BY_KIND: dict[str, type[EntityImporter]] = {
    EntityKind.STUDENT: StudentImporter,
    EntityKind.TEACHER: TeacherImporter,
    EntityKind.CLASS: ClassImporter,
    EntityKind.SUBJECT: SubjectImporter,
    EntityKind.PARENT: ParentImporter,
}


def build_importer(
    kind: str,
    *,
    gateway: PersistenceGateway,
    settings: ImportSettings | None = None,
) -> EntityImporter:
    try:
        importer_cls = _IMPORTER_BY_KIND[kind]
    except KeyError:
        allowed = ", ".join(sorted(_IMPORTER_BY_KIND))
        raise ValueError(f"Unsupported entity kind '{kind}'. Allowed kinds: {allowed}.") from None
    return importer_cls(gateway=gateway, settings=settings)


async def import_students(
    source: SourceInput,
    *,
    gateway: PersistenceGateway,
    options: ImportOptions | None = None,
    on_progress: ProgressCallback | None = None,
    settings: ImportSettings | None = None,
) -> ImportResult:
    importer = StudentImporter(gateway=gateway, settings=settings)
    return await importer.run(source, options=options, on_progress=on_progress)


async def import_teachers(
    source: SourceInput,
    *,
    gateway: PersistenceGateway,
    on_progress: ProgressCallback | None = None,
    settings: ImportSettings | None = None,
) -> ImportResult:
    importer = TeacherImporter(gateway=gateway, settings=settings)
    return await importer.run(source, on_progress=on_progress)


async def import_classes(
    source: SourceInput,
    *,
    gateway: PersistenceGateway,
    on_progress: ProgressCallback | None = None,
    settings: ImportSettings | None = None,
) -> ImportResult:
    importer = ClassImporter(gateway=gateway, settings=settings)
    return await importer.run(source, on_progress=on_progress)


async def import_subjects(
    source: SourceInput,
    *,
    gateway: PersistenceGateway,
    on_progress: ProgressCallback | None = None,
    settings: ImportSettings | None = None,
) -> ImportResult:
    importer = SubjectImporter(gateway=gateway, settings=settings)
    return await importer.run(source, on_progress=on_progress)


async def import_parents(
    source: SourceInput,
    *,
    gateway: PersistenceGateway,
    on_progress: ProgressCallback | None = None,
    settings: ImportSettings | None = None,
) -> ImportResult:
    importer = ParentImporter(gateway=gateway, settings=settings)
    return await importer.run(source, on_progress=on_progress)
