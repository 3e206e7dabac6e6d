"""
roster_import/domain/records.py

Typed rows flowing through the import pipeline: raw tokenized rows,
per-kind normalized records and validation outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Union

DEFAULT_STATUS = "Active"


class EntityKind:
    STUDENT = "student"
    TEACHER = "teacher"
    CLASS = "class"
    SUBJECT = "subject"
    PARENT = "parent"
    USER_ACCOUNT = "user_account"


IMPORTABLE_KINDS: tuple[str, ...] = (
    EntityKind.STUDENT,
    EntityKind.TEACHER,
    EntityKind.CLASS,
    EntityKind.SUBJECT,
    EntityKind.PARENT,
)


class Gender:
    MALE = "Male"
    FEMALE = "Female"

    ALL: tuple[str, ...] = (MALE, FEMALE)


class SchoolLevel:
    CRECHE = "Creche"
    NURSERY = "Nursery"
    PRIMARY = "Primary"
    JSS = "JSS"
    SS = "SS"

    ALL: tuple[str, ...] = (CRECHE, NURSERY, PRIMARY, JSS, SS)


class SubjectType:
    CORE = "Core"
    ELECTIVE = "Elective"

    ALL: tuple[str, ...] = (CORE, ELECTIVE)


@dataclass(frozen=True)
class RawRow:
    """
    One tokenized data line keyed by header column names.

    ``row_number`` is the 1-based data-row position (header excluded).
    Malformed rows carry the header/actual field counts and no values.
    """

    row_number: int
    values: Mapping[str, str] = field(default_factory=dict)
    expected_fields: int | None = None
    actual_fields: int | None = None

    @property
    def is_malformed(self) -> bool:
        return self.expected_fields is not None

    def get(self, column: str) -> str | None:
        return self.values.get(column)


@dataclass(frozen=True)
class StudentRecord:
    row_number: int
    first_name: str
    last_name: str
    gender: str
    class_name: str
    academic_year: str
    other_name: str | None = None
    admission_number: str | None = None
    date_of_birth: date | None = None
    admission_date: date | None = None
    level: str | None = None
    status: str = DEFAULT_STATUS
    parent_name: str | None = None
    parent_phone: str | None = None
    parent_email: str | None = None
    username: str | None = None
    email: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class TeacherRecord:
    row_number: int
    first_name: str
    last_name: str
    email: str
    other_name: str | None = None
    gender: str | None = None
    employee_id: str | None = None
    phone: str | None = None
    qualification: str | None = None
    specialization: tuple[str, ...] = ()
    status: str = DEFAULT_STATUS
    is_class_teacher: bool = False
    username: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class ClassRecord:
    row_number: int
    name: str
    level: str
    capacity: int
    section: str | None = None
    status: str = DEFAULT_STATUS
    class_teacher_id: int | None = None


@dataclass(frozen=True)
class SubjectRecord:
    row_number: int
    name: str
    category: str
    subject_type: str = SubjectType.ELECTIVE
    description: str | None = None
    status: str = DEFAULT_STATUS
    is_core: bool = False


@dataclass(frozen=True)
class ParentRecord:
    row_number: int
    first_name: str
    last_name: str
    email: str
    other_name: str | None = None
    gender: str | None = None
    phone: str | None = None
    status: str = DEFAULT_STATUS
    username: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


NormalizedRecord = Union[StudentRecord, TeacherRecord, ClassRecord, SubjectRecord, ParentRecord]


@dataclass(frozen=True)
class Rejected:
    """
    A row that failed validation, with every violated constraint.
    """

    row_number: int
    reasons: tuple[str, ...]

    @property
    def message(self) -> str:
        return f"Row {self.row_number}: {', '.join(self.reasons)}"


@dataclass(frozen=True)
class ValidationResult:
    accepted: list[NormalizedRecord] = field(default_factory=list)
    rejected: list[Rejected] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [rejection.message for rejection in self.rejected]
