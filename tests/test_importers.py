"""
tests/test_importers.py

End-to-end importer tests against the in-memory gateway.

Coverage
--------
- Partial success and row-ordered errors
- Declared and generated admission numbers
- Parent reuse within a run and parent failure degradation
- Class override and class lookup by name
- Account provisioning as a secondary effect
- Progress reporting, cancellation and fatal persistence loss
- Empty and fully-invalid sources
"""

from __future__ import annotations

import asyncio
import csv
import io
import random
import re

import pytest

from fakes import InMemoryGateway, fail_when
from roster_import.config import ImportSettings
from roster_import.domain.records import EntityKind
from roster_import.domain.results import (
    EMPTY_SOURCE_MESSAGE,
    NO_VALID_ROWS_MESSAGE,
    ImportOptions,
    ImportState,
)
from roster_import.parsing.tokenizer import ImportSourceError
from roster_import.repositories.errors import (
    ConstraintViolationError,
    PersistenceError,
    PersistenceUnavailableError,
)
from roster_import.services.errors import ImportFailedError
from roster_import.services.importers import (
    ClassImporter,
    ParentImporter,
    StudentImporter,
    SubjectImporter,
    TeacherImporter,
    build_importer,
    import_students,
)

STUDENT_HEADER = [
    "admissionNumber",
    "firstName",
    "lastName",
    "gender",
    "className",
    "parentName",
    "parentPhone",
    "username",
]
ADMISSION_PATTERN = re.compile(r"^GRA/\d{4}/\d{4}$")


def _csv(header: list[str], rows: list[list[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def _student(
    first_name: str,
    *,
    admission_number: str = "",
    gender: str = "Male",
    class_name: str = "JSS 1A",
    parent_name: str = "",
    parent_phone: str = "",
    username: str = "",
) -> list[str]:
    return [admission_number, first_name, "Doe", gender, class_name, parent_name, parent_phone, username]


@pytest.fixture()
def settings() -> ImportSettings:
    return ImportSettings(effect_batch_delay_seconds=0, log_row_errors=False)


@pytest.fixture()
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


def _student_importer(gateway: InMemoryGateway, settings: ImportSettings) -> StudentImporter:
    return StudentImporter(gateway=gateway, settings=settings, rng=random.Random(3))


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------


class TestStudentImport:
    @pytest.mark.asyncio
    async def test_invalid_rows_do_not_stop_valid_ones(self, gateway, settings) -> None:
        source = _csv(
            STUDENT_HEADER,
            [
                _student("Ann", gender=""),
                _student("Ben"),
                _student("", gender="Male"),
                _student("Cal"),
                _student("Dee", gender="Unknown"),
                _student("Eve"),
            ],
        )

        result = await _student_importer(gateway, settings).run(source)

        assert result.state == ImportState.COMPLETED
        assert result.total_rows == 6
        assert result.succeeded == 3
        assert [entity["first_name"] for entity in result.entities] == ["Ben", "Cal", "Eve"]
        assert [error.row_number for error in result.row_errors] == [1, 3, 5]
        assert result.errors == [
            "Row 1: Gender required",
            "Row 3: First name required",
            "Row 5: Invalid gender (must be Male or Female)",
        ]

    @pytest.mark.asyncio
    async def test_missing_admission_numbers_are_generated(self, gateway, settings) -> None:
        source = _csv(STUDENT_HEADER, [_student("Ben"), _student("Cal")])

        result = await _student_importer(gateway, settings).run(source)

        codes = [entity["admission_number"] for entity in result.entities]
        assert all(ADMISSION_PATTERN.match(code) for code in codes)
        assert len(set(codes)) == 2

    @pytest.mark.asyncio
    async def test_existing_admission_number_is_reported_as_duplicate(self, gateway, settings) -> None:
        gateway.store(EntityKind.STUDENT).seed(admission_number="GRA/2026/0001", first_name="Old")
        source = _csv(
            STUDENT_HEADER,
            [_student("John", admission_number="GRA/2026/0001"), _student("Mary")],
        )

        result = await _student_importer(gateway, settings).run(source)

        assert result.succeeded == 1
        assert result.errors == ["Row 1: Admission number GRA/2026/0001 already exists for student: John Doe"]
        assert [entity["first_name"] for entity in result.entities] == ["Mary"]

    @pytest.mark.asyncio
    async def test_generation_survives_forced_collisions(self, gateway, settings) -> None:
        store = gateway.store(EntityKind.STUDENT)
        store.collide_next_checks = 10
        source = _csv(STUDENT_HEADER, [_student("Ben")])

        result = await _student_importer(gateway, settings).run(source)

        assert result.succeeded == 1
        assert len(store.code_checks) == 11

    @pytest.mark.asyncio
    async def test_rows_sharing_a_parent_create_it_once(self, gateway, settings) -> None:
        source = _csv(
            STUDENT_HEADER,
            [
                _student("Ben", parent_name="Jane Doe", parent_phone="08012345678"),
                _student("Cal", parent_name="Jane Doe", parent_phone="0801 234 5678"),
            ],
        )

        result = await _student_importer(gateway, settings).run(source)

        parents = gateway.store(EntityKind.PARENT).rows
        assert len(parents) == 1
        assert parents[0]["email"] == "jane.doe@parent.com"
        assert {entity["parent_id"] for entity in result.entities} == {parents[0]["id"]}

    @pytest.mark.asyncio
    async def test_parent_failure_becomes_warning(self, gateway, settings) -> None:
        gateway.store(EntityKind.PARENT).create_failure = fail_when(
            lambda record: True,
            ConstraintViolationError("check constraint failed"),
        )
        source = _csv(STUDENT_HEADER, [_student("Ben", parent_name="Jane Doe", parent_phone="08012345678")])

        result = await _student_importer(gateway, settings).run(source)

        assert result.succeeded == 1
        assert result.entities[0]["parent_id"] is None
        assert result.warnings == (
            "Row 1: Parent Jane Doe could not be created: check constraint failed; "
            "student imported without parent link",
        )
        assert result.row_errors == ()

    @pytest.mark.asyncio
    async def test_class_override_applies_to_every_row(self, gateway, settings) -> None:
        gateway.store(EntityKind.CLASS).seed(name="JSS 1A", level="JSS")
        source = _csv(STUDENT_HEADER, [_student("Ben"), _student("Cal", class_name="SS 2B")])

        result = await _student_importer(gateway, settings).run(source, options=ImportOptions(class_id=42))

        assert [entity["class_id"] for entity in result.entities] == [42, 42]

    @pytest.mark.asyncio
    async def test_class_is_looked_up_by_name(self, gateway, settings) -> None:
        school_class = gateway.store(EntityKind.CLASS).seed(name="JSS 1A", level="JSS")
        source = _csv(STUDENT_HEADER, [_student("Ben", class_name="jss 1a"), _student("Cal", class_name="SS 3")])

        result = await _student_importer(gateway, settings).run(source)

        assert [entity["class_id"] for entity in result.entities] == [school_class["id"], None]
        assert gateway.store(EntityKind.CLASS).create_calls == []

    @pytest.mark.asyncio
    async def test_account_is_provisioned_only_with_username(self, gateway, settings) -> None:
        source = _csv(STUDENT_HEADER, [_student("Ben", username="ben.doe"), _student("Cal")])

        result = await _student_importer(gateway, settings).run(source)

        accounts = gateway.store(EntityKind.USER_ACCOUNT).rows
        assert [account["username"] for account in accounts] == ["ben.doe"]
        assert accounts[0]["role"] == "student"
        assert accounts[0]["linked_id"] == result.entities[0]["id"]
        assert result.secondary_errors == ()

    @pytest.mark.asyncio
    async def test_rejected_foreign_key_gets_friendly_message(self, gateway, settings) -> None:
        gateway.store(EntityKind.STUDENT).create_failure = fail_when(
            lambda record: record["first_name"] == "Ben",
            ConstraintViolationError("violates foreign key constraint"),
        )
        source = _csv(STUDENT_HEADER, [_student("Ben"), _student("Cal")])

        result = await _student_importer(gateway, settings).run(source)

        assert result.errors == ["Row 1: Invalid class or parent reference for student Ben Doe"]
        assert result.succeeded == 1

    @pytest.mark.asyncio
    async def test_unclassified_failure_is_row_scoped(self, gateway, settings) -> None:
        gateway.store(EntityKind.STUDENT).create_failure = fail_when(
            lambda record: record["first_name"] == "Ben",
            PersistenceError("disk quota exceeded"),
        )
        source = _csv(STUDENT_HEADER, [_student("Ben")])

        result = await _student_importer(gateway, settings).run(source)

        assert result.errors == ["Row 1: Failed to create student: disk quota exceeded"]
        assert result.succeeded == 0

    @pytest.mark.asyncio
    async def test_progress_is_reported_after_every_row(self, gateway, settings) -> None:
        source = _csv(STUDENT_HEADER, [_student("Ben"), _student("", gender=""), _student("Cal")])
        progress: list[tuple[int, int]] = []

        await _student_importer(gateway, settings).run(
            source,
            on_progress=lambda processed, total: progress.append((processed, total)),
        )

        assert progress == [(1, 3), (2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_lost_persistence_aborts_run(self, gateway, settings) -> None:
        gateway.store(EntityKind.STUDENT).create_failure = fail_when(
            lambda record: record["first_name"] == "Cal",
            PersistenceUnavailableError("connection refused"),
        )
        importer = _student_importer(gateway, settings)
        source = _csv(STUDENT_HEADER, [_student("Ben"), _student("Cal"), _student("Dee")])

        with pytest.raises(ImportFailedError) as excinfo:
            await importer.run(source)

        assert excinfo.value.processed == 1
        assert excinfo.value.total == 3
        assert excinfo.value.kind == EntityKind.STUDENT
        assert [row["first_name"] for row in gateway.store(EntityKind.STUDENT).rows] == ["Ben"]

    @pytest.mark.asyncio
    async def test_cancellation_stops_between_rows(self, gateway, settings) -> None:
        cancel = asyncio.Event()
        source = _csv(STUDENT_HEADER, [_student(name) for name in ("Ben", "Cal", "Dee", "Eve")])

        def _on_progress(processed: int, total: int) -> None:
            if processed == 2:
                cancel.set()

        result = await _student_importer(gateway, settings).run(
            source,
            on_progress=_on_progress,
            cancel_event=cancel,
        )

        assert result.state == ImportState.CANCELLED
        assert result.succeeded == 2
        assert result.errors == ["Import cancelled after 2 of 4 rows"]

    @pytest.mark.asyncio
    async def test_empty_source(self, gateway, settings) -> None:
        result = await _student_importer(gateway, settings).run("")

        assert result.total_rows == 0
        assert result.errors == [EMPTY_SOURCE_MESSAGE]
        assert result.no_valid_rows

    @pytest.mark.asyncio
    async def test_no_valid_rows(self, gateway, settings) -> None:
        source = _csv(STUDENT_HEADER, [_student("", gender=""), _student("Ben", gender="X")])

        result = await _student_importer(gateway, settings).run(source)

        assert result.succeeded == 0
        assert result.errors[-1] == NO_VALID_ROWS_MESSAGE
        assert gateway.store(EntityKind.STUDENT).create_calls == []

    @pytest.mark.asyncio
    async def test_unreadable_source_raises(self, gateway, settings) -> None:
        with pytest.raises(ImportSourceError):
            await _student_importer(gateway, settings).run(b"firstName\n\xff\xfe\n")

    @pytest.mark.asyncio
    async def test_facade_function(self, gateway, settings) -> None:
        result = await import_students(
            _csv(STUDENT_HEADER, [_student("Ben")]),
            gateway=gateway,
            options=ImportOptions(class_id=7),
            settings=settings,
        )

        assert result.kind == EntityKind.STUDENT
        assert result.entities[0]["class_id"] == 7


# ---------------------------------------------------------------------------
# Teachers and parents
# ---------------------------------------------------------------------------


TEACHER_HEADER = ["firstName", "lastName", "email", "employeeId", "specialization", "username"]


class TestTeacherImport:
    @pytest.mark.asyncio
    async def test_teacher_gets_employee_id_and_account(self, gateway, settings) -> None:
        source = _csv(TEACHER_HEADER, [["Jane", "Smith", "jane@school.com", "", "Mathematics;Physics", ""]])

        result = await TeacherImporter(gateway=gateway, settings=settings).run(source)

        teacher = result.entities[0]
        assert teacher["employee_id"].startswith("TCH/")
        assert teacher["specialization"] == ["Mathematics", "Physics"]
        account = gateway.store(EntityKind.USER_ACCOUNT).rows[0]
        assert account["username"] == "janesmith"
        assert account["role"] == "teacher"
        assert account["linked_id"] == teacher["id"]

    @pytest.mark.asyncio
    async def test_duplicate_email_is_row_error(self, gateway, settings) -> None:
        gateway.store(EntityKind.TEACHER).seed(employee_id="TCH001", email="jane@school.com")
        source = _csv(TEACHER_HEADER, [["Jane", "Smith", "jane@school.com", "TCH002", "", ""]])

        result = await TeacherImporter(gateway=gateway, settings=settings).run(source)

        assert result.errors[0] == "Row 1: Email jane@school.com already exists for teacher: Jane Smith"

    @pytest.mark.asyncio
    async def test_duplicate_employee_id_is_row_error(self, gateway, settings) -> None:
        gateway.store(EntityKind.TEACHER).seed(employee_id="TCH001", email="old@school.com")
        source = _csv(TEACHER_HEADER, [["Jane", "Smith", "jane@school.com", "TCH001", "", ""]])

        result = await TeacherImporter(gateway=gateway, settings=settings).run(source)

        assert result.errors[0] == "Row 1: Employee ID TCH001 already exists for teacher: Jane Smith"

    @pytest.mark.asyncio
    async def test_account_failure_does_not_fail_the_row(self, gateway, settings) -> None:
        gateway.store(EntityKind.USER_ACCOUNT).seed(username="janesmith")
        source = _csv(
            TEACHER_HEADER,
            [
                ["Jane", "Smith", "jane@school.com", "", "", ""],
                ["Tom", "Ade", "tom@school.com", "", "", "tom.ade"],
            ],
        )

        result = await TeacherImporter(gateway=gateway, settings=settings).run(source)

        assert result.succeeded == 2
        assert result.row_errors == ()
        assert result.secondary_errors == (
            "Row 1: teacher account for Jane Smith failed: Username janesmith already exists",
        )
        assert [row["username"] for row in gateway.store(EntityKind.USER_ACCOUNT).rows] == [
            "janesmith",
            "tom.ade",
        ]


class TestParentImport:
    @pytest.mark.asyncio
    async def test_duplicate_parent_email(self, gateway, settings) -> None:
        gateway.store(EntityKind.PARENT).seed(email="john.doe@parent.com", phone="08012345678")
        source = _csv(
            ["firstName", "lastName", "email", "phone"],
            [
                ["John", "Doe", "john.doe@parent.com", "08012345678"],
                ["Ada", "Obi", "ada.obi@parent.com", "08022223333"],
            ],
        )

        result = await ParentImporter(gateway=gateway, settings=settings).run(source)

        assert result.errors == ["Row 1: Email john.doe@parent.com already exists for parent: John Doe"]
        assert result.succeeded == 1
        assert gateway.store(EntityKind.USER_ACCOUNT).rows[0]["role"] == "parent"


# ---------------------------------------------------------------------------
# Classes and subjects
# ---------------------------------------------------------------------------


class TestClassAndSubjectImport:
    @pytest.mark.asyncio
    async def test_classes_are_created_with_defaults(self, gateway, settings) -> None:
        source = _csv(["name", "level", "capacity"], [["JSS 1A", "jss", ""], ["SS 2B", "SS", "40"]])

        result = await ClassImporter(gateway=gateway, settings=settings).run(source)

        assert [(entity["name"], entity["level"], entity["capacity"]) for entity in result.entities] == [
            ("JSS 1A", "JSS", 30),
            ("SS 2B", "SS", 40),
        ]
        assert gateway.store(EntityKind.USER_ACCOUNT).rows == []

    @pytest.mark.asyncio
    async def test_subjects_are_created(self, gateway, settings) -> None:
        source = _csv(
            ["name", "category", "subjectType", "isCore"],
            [["Mathematics", "JSS", "Core", ""], ["Music", "Primary", "", "true"]],
        )

        result = await SubjectImporter(gateway=gateway, settings=settings).run(source)

        assert [(entity["name"], entity["is_core"]) for entity in result.entities] == [
            ("Mathematics", True),
            ("Music", True),
        ]

    @pytest.mark.asyncio
    async def test_result_entities_are_read_only(self, gateway, settings) -> None:
        result = await ClassImporter(gateway=gateway, settings=settings).run("name,level\nJSS 1A,JSS\n")

        with pytest.raises(TypeError):
            result.entities[0]["name"] = "SS 3C"  # type: ignore[index]
        assert gateway.store(EntityKind.CLASS).rows[0]["name"] == "JSS 1A"

    @pytest.mark.asyncio
    async def test_concurrent_runs_on_one_importer_are_independent(self, gateway, settings) -> None:
        gateway.store(EntityKind.CLASS).create_delay_seconds = 0.01
        importer = ClassImporter(gateway=gateway, settings=settings)
        cancel = asyncio.Event()

        def _cancel_after_first(processed: int, total: int) -> None:
            cancel.set()

        cancelled, completed = await asyncio.gather(
            importer.run(
                _csv(["name", "level"], [["JSS 1A", "JSS"], ["JSS 1B", "JSS"], ["JSS 1C", "JSS"]]),
                on_progress=_cancel_after_first,
                cancel_event=cancel,
            ),
            importer.run(_csv(["name", "level"], [["SS 1A", "SS"], ["SS 1B", "SS"], ["SS 1C", "SS"]])),
        )

        assert cancelled.state == ImportState.CANCELLED
        assert [entity["name"] for entity in cancelled.entities] == ["JSS 1A"]
        assert completed.state == ImportState.COMPLETED
        assert [entity["name"] for entity in completed.entities] == ["SS 1A", "SS 1B", "SS 1C"]
        assert completed.row_errors == ()


def test_build_importer_dispatches_by_kind(gateway, settings) -> None:
    assert isinstance(build_importer(EntityKind.PARENT, gateway=gateway, settings=settings), ParentImporter)
    with pytest.raises(ValueError):
        build_importer(EntityKind.USER_ACCOUNT, gateway=gateway, settings=settings)


# ---------------------------------------------------------------------------
# Reference scenarios
# ---------------------------------------------------------------------------


class TestReferenceScenarios:
    @pytest.mark.asyncio
    async def test_missing_last_name_rejects_only_that_row(self, gateway, settings) -> None:
        source = "firstName,lastName,gender,className\nJohn,Doe,Male,JSS1A\nJane,,Female,JSS1A\n"

        result = await _student_importer(gateway, settings).run(source)

        assert [(entity["first_name"], entity["last_name"]) for entity in result.entities] == [("John", "Doe")]
        assert len(result.row_errors) == 1
        assert result.row_errors[0].row_number == 2
        assert "last name required" in result.row_errors[0].message.lower()

    @pytest.mark.asyncio
    async def test_shared_parent_is_persisted_once(self, gateway, settings) -> None:
        source = (
            "firstName,lastName,gender,className,parentName,parentPhone\n"
            "Tola,Smith,Female,JSS1A,Jane Smith,08011112222\n"
            "Tobi,Smith,Male,JSS1A,Jane Smith,08011112222\n"
        )

        result = await _student_importer(gateway, settings).run(source)

        parents = gateway.store(EntityKind.PARENT).rows
        assert len(parents) == 1
        assert [entity["parent_id"] for entity in result.entities] == [parents[0]["id"]] * 2

    @pytest.mark.asyncio
    async def test_used_admission_number_creates_nothing(self, gateway, settings) -> None:
        gateway.store(EntityKind.STUDENT).forced_taken_codes.add("GRA/0001")
        source = "admissionNumber,firstName,lastName,gender,className\nGRA/0001,John,Doe,Male,JSS1A\n"

        result = await _student_importer(gateway, settings).run(source)

        assert result.entities == ()
        assert result.errors[0] == "Row 1: Admission number GRA/0001 already exists for student: John Doe"
        assert gateway.store(EntityKind.STUDENT).create_calls == []

    @pytest.mark.asyncio
    async def test_distinct_codes_under_per_row_collisions(self, gateway, settings) -> None:
        store = gateway.store(EntityKind.STUDENT)
        store.collide_next_checks = store.collisions_per_create = 4
        source = _csv(STUDENT_HEADER, [_student(f"Kid{index}") for index in range(12)])

        result = await _student_importer(gateway, settings).run(source)

        codes = [entity["admission_number"] for entity in result.entities]
        assert len(codes) == 12
        assert len(set(codes)) == 12
        assert len(store.code_checks) == 12 * 5

    @pytest.mark.asyncio
    async def test_account_provisioning_respects_batch_bound(self, gateway) -> None:
        settings = ImportSettings(effect_batch_size=5, effect_batch_delay_seconds=0.01, log_row_errors=False)
        accounts = gateway.store(EntityKind.USER_ACCOUNT)
        accounts.create_delay_seconds = 0.01
        source = _csv(
            TEACHER_HEADER,
            [[f"Teacher{index}", "Ade", f"t{index}@school.com", "", "", ""] for index in range(15)],
        )

        result = await TeacherImporter(gateway=gateway, settings=settings).run(source)

        assert result.succeeded == 15
        assert len(accounts.rows) == 15
        assert 1 <= accounts.max_in_flight <= 5
