"""
roster_import/validators/entity_validators.py

One row validator per importable entity kind.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

from roster_import.config import ImportSettings, get_import_settings
from roster_import.domain.records import (
    DEFAULT_STATUS,
    ClassRecord,
    EntityKind,
    Gender,
    ParentRecord,
    RawRow,
    SchoolLevel,
    StudentRecord,
    SubjectRecord,
    SubjectType,
    TeacherRecord,
)
from roster_import.validators.base import RowValidator

_LEVELS_TEXT = ", ".join(SchoolLevel.ALL)
STUDENT_GENDER_MESSAGE = "Invalid gender (must be Male or Female)"
OPTIONAL_GENDER_MESSAGE = "Invalid gender (must be Male, Female, or empty)"


class StudentRowValidator(RowValidator):
    """
    Students: first name, last name, gender and class name are required.

    Admission numbers are optional and generated downstream when absent.
    ``today`` supplies the academic-year and admission-date defaults.
    """

    kind = EntityKind.STUDENT

    def __init__(self, *, today: Callable[[], date] | None = None) -> None:
        self._today = today or date.today

    def _build_record(self, row: RawRow, errors: list[str]) -> StudentRecord | None:
        first_name = self._required(row, "firstName", "First name", errors)
        last_name = self._required(row, "lastName", "Last name", errors)
        gender_raw = self._required(row, "gender", "Gender", errors)
        class_name = self._required(row, "className", "Class name", errors)

        gender = self._choice(
            gender_raw or None,
            Gender.ALL,
            errors,
            message=STUDENT_GENDER_MESSAGE,
        )
        date_of_birth = self._iso_date(
            self._optional(row, "dateOfBirth"), errors, label="dateOfBirth"
        )
        admission_date = self._iso_date(
            self._optional(row, "admissionDate"), errors, label="admissionDate"
        )
        parent_phone = self._phone(
            self._optional(row, "parentPhone"), errors, label="parent phone"
        )
        level = self._choice(
            self._optional(row, "level"),
            SchoolLevel.ALL,
            errors,
            message=f"Invalid level (must be one of: {_LEVELS_TEXT})",
        )
        email = self._email(self._optional(row, "email"), errors)
        parent_email = self._email(self._optional(row, "parentEmail"), errors, label="parent email")

        if errors:
            return None

        today = self._today()
        return StudentRecord(
            row_number=row.row_number,
            first_name=first_name,
            last_name=last_name,
            gender=gender,
            class_name=class_name,
            academic_year=self._optional(row, "academicYear") or str(today.year),
            other_name=self._optional(row, "otherName"),
            admission_number=self._optional(row, "admissionNumber"),
            date_of_birth=date_of_birth,
            admission_date=admission_date or today,
            level=level,
            status=self._optional(row, "status") or DEFAULT_STATUS,
            parent_name=self._optional(row, "parentName"),
            parent_phone=parent_phone,
            parent_email=parent_email,
            username=self._optional(row, "username"),
            email=email,
        )


class TeacherRowValidator(RowValidator):
    """
    Teachers: first name, last name and email are required.
    """

    kind = EntityKind.TEACHER

    def _build_record(self, row: RawRow, errors: list[str]) -> TeacherRecord | None:
        first_name = self._required(row, "firstName", "First name", errors)
        last_name = self._required(row, "lastName", "Last name", errors)
        email = self._required(row, "email", "Email", errors)

        self._email(email or None, errors)
        phone = self._phone(self._optional(row, "phone"), errors)
        gender = self._choice(
            self._optional(row, "gender"),
            Gender.ALL,
            errors,
            message=OPTIONAL_GENDER_MESSAGE,
        )

        specialization_raw = self._optional(row, "specialization")
        specialization = self._split_list(specialization_raw)
        if specialization_raw is not None and not specialization:
            errors.append("At least one specialization required")

        is_class_teacher = self._boolean(
            self._optional(row, "isClassTeacher"), errors, label="isClassTeacher"
        )

        if errors:
            return None

        return TeacherRecord(
            row_number=row.row_number,
            first_name=first_name,
            last_name=last_name,
            email=email,
            other_name=self._optional(row, "otherName"),
            gender=gender,
            employee_id=self._optional(row, "employeeId"),
            phone=phone,
            qualification=self._optional(row, "qualification"),
            specialization=specialization,
            status=self._optional(row, "status") or DEFAULT_STATUS,
            is_class_teacher=is_class_teacher,
            username=self._optional(row, "username"),
        )


class ClassRowValidator(RowValidator):
    kind = EntityKind.CLASS

    def __init__(self, *, default_capacity: int = 30) -> None:
        self._default_capacity = default_capacity

    def _build_record(self, row: RawRow, errors: list[str]) -> ClassRecord | None:
        name = self._required(row, "name", "Class name", errors)
        level_raw = self._required(row, "level", "Level", errors)
        level = self._choice(
            level_raw or None,
            SchoolLevel.ALL,
            errors,
            message=f"Invalid level (must be one of: {_LEVELS_TEXT})",
        )
        capacity = self._positive_int(
            self._optional(row, "capacity"),
            errors,
            message="Capacity must be a positive number",
        )
        class_teacher_id = self._positive_int(
            self._optional(row, "classTeacherId"),
            errors,
            message="Class teacher ID must be a positive number",
        )

        if errors:
            return None

        return ClassRecord(
            row_number=row.row_number,
            name=name,
            level=level,
            capacity=capacity or self._default_capacity,
            section=self._optional(row, "section"),
            status=self._optional(row, "status") or DEFAULT_STATUS,
            class_teacher_id=class_teacher_id,
        )


class SubjectRowValidator(RowValidator):
    kind = EntityKind.SUBJECT

    def _build_record(self, row: RawRow, errors: list[str]) -> SubjectRecord | None:
        name = self._required(row, "name", "Subject name", errors)
        category_raw = self._required(row, "category", "Category", errors)
        category = self._choice(
            category_raw or None,
            SchoolLevel.ALL,
            errors,
            message=f"Invalid category (must be one of: {_LEVELS_TEXT})",
        )
        subject_type = self._choice(
            self._optional(row, "subjectType"),
            SubjectType.ALL,
            errors,
            message="Invalid subject type (must be Core or Elective)",
        )
        is_core = self._boolean(self._optional(row, "isCore"), errors, label="isCore")

        if errors:
            return None

        subject_type = subject_type or SubjectType.ELECTIVE
        return SubjectRecord(
            row_number=row.row_number,
            name=name,
            category=category,
            subject_type=subject_type,
            description=self._optional(row, "description"),
            status=self._optional(row, "status") or DEFAULT_STATUS,
            is_core=is_core or subject_type == SubjectType.CORE,
        )


class ParentRowValidator(RowValidator):
    kind = EntityKind.PARENT

    def _build_record(self, row: RawRow, errors: list[str]) -> ParentRecord | None:
        first_name = self._required(row, "firstName", "First name", errors)
        last_name = self._required(row, "lastName", "Last name", errors)
        email = self._required(row, "email", "Email", errors)

        self._email(email or None, errors)
        phone = self._phone(self._optional(row, "phone"), errors)
        gender = self._choice(
            self._optional(row, "gender"),
            Gender.ALL,
            errors,
            message=OPTIONAL_GENDER_MESSAGE,
        )

        if errors:
            return None

        return ParentRecord(
            row_number=row.row_number,
            first_name=first_name,
            last_name=last_name,
            email=email,
            other_name=self._optional(row, "otherName"),
            gender=gender,
            phone=phone,
            status=self._optional(row, "status") or DEFAULT_STATUS,
            username=self._optional(row, "username"),
        )


def build_validator(kind: str, settings: ImportSettings | None = None) -> RowValidator:
    """
    Return the validator for one importable entity kind.
    """

    effective = settings or get_import_settings()
    if kind == EntityKind.STUDENT:
        return StudentRowValidator()
    if kind == EntityKind.TEACHER:
        return TeacherRowValidator()
    if kind == EntityKind.CLASS:
        return ClassRowValidator(default_capacity=effective.default_class_capacity)
    if kind == EntityKind.SUBJECT:
        return SubjectRowValidator()
    if kind == EntityKind.PARENT:
        return ParentRowValidator()
    raise ValueError(f"Unsupported entity kind '{kind}'.")
