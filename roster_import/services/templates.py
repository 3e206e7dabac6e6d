"""
Downloadable CSV templates: header line plus one sample row per kind.
"""

from __future__ import annotations

import csv
import io

from roster_import.domain.records import EntityKind

_TEMPLATES: dict[str, tuple[tuple[str, str], ...]] = {
    EntityKind.STUDENT: (
        ("admissionNumber (Optional - will be auto-generated if empty)", ""),
        ("firstName", "John"),
        ("lastName", "Doe"),
        ("otherName", "Michael"),
        ("gender", "Male"),
        ("dateOfBirth", "2010-05-15"),
        ("className", "JSS 1A"),
        ("level", "JSS"),
        ("status", "Active"),
        ("parentName", "Jane Doe"),
        ("parentPhone", "08012345678"),
        ("academicYear", "2024"),
        ("admissionDate", "2024-09-01"),
    ),
    EntityKind.TEACHER: (
        ("firstName", "Jane"),
        ("lastName", "Smith"),
        ("otherName", "Mary"),
        ("gender", "Female"),
        ("employeeId", "TCH001"),
        ("email", "jane.smith@school.com"),
        ("phone", "08012345678"),
        ("qualification", "B.Ed Mathematics"),
        ("specialization", "Mathematics;Physics"),
        ("status", "Active"),
        ("isClassTeacher", "true"),
        ("username", "jane.smith"),
    ),
    EntityKind.CLASS: (
        ("name", "JSS 1A"),
        ("level", "JSS"),
        ("section", "A"),
        ("capacity", "30"),
        ("status", "Active"),
        ("classTeacherId", ""),
    ),
    EntityKind.SUBJECT: (
        ("name", "Mathematics"),
        ("category", "JSS"),
        ("subjectType", "Core"),
        ("description", "Mathematics for Junior Secondary"),
        ("status", "Active"),
        ("isCore", "true"),
    ),
    EntityKind.PARENT: (
        ("firstName", "John"),
        ("lastName", "Doe"),
        ("otherName", "Michael"),
        ("gender", "Male"),
        ("email", "john.doe@parent.com"),
        ("phone", "08012345678"),
        ("status", "Active"),
        ("username", "john.doe"),
    ),
}


def template_columns(kind: str) -> list[str]:
    return [column for column, _ in _template_for(kind)]


def generate_template(kind: str) -> str:
    """
    Render the template for ``kind`` as CSV text (no trailing newline).

    The output parses back through ``CSVTokenizer`` into exactly one valid
    row for that kind.
    """

    columns = _template_for(kind)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([column for column, _ in columns])
    writer.writerow([sample for _, sample in columns])
    return buffer.getvalue().rstrip("\n")


def _template_for(kind: str) -> tuple[tuple[str, str], ...]:
    try:
        return _TEMPLATES[kind]
    except KeyError:
        allowed = ", ".join(sorted(_TEMPLATES))
        raise ValueError(f"No template for kind '{kind}'. Allowed kinds: {allowed}.") from None
