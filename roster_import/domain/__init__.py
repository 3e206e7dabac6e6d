"""
roster_import/domain package marker.
"""

from roster_import.domain.records import (
    DEFAULT_STATUS,
    IMPORTABLE_KINDS,
    ClassRecord,
    EntityKind,
    Gender,
    NormalizedRecord,
    ParentRecord,
    RawRow,
    Rejected,
    SchoolLevel,
    StudentRecord,
    SubjectRecord,
    SubjectType,
    TeacherRecord,
    ValidationResult,
)
from roster_import.domain.results import (
    EMPTY_SOURCE_MESSAGE,
    NO_VALID_ROWS_MESSAGE,
    ImportOptions,
    ImportResult,
    ImportState,
    RowError,
)

__all__ = [
    "ClassRecord",
    "DEFAULT_STATUS",
    "EMPTY_SOURCE_MESSAGE",
    "EntityKind",
    "Gender",
    "IMPORTABLE_KINDS",
    "ImportOptions",
    "ImportResult",
    "ImportState",
    "NO_VALID_ROWS_MESSAGE",
    "NormalizedRecord",
    "ParentRecord",
    "RawRow",
    "Rejected",
    "RowError",
    "SchoolLevel",
    "StudentRecord",
    "SubjectRecord",
    "SubjectType",
    "TeacherRecord",
    "ValidationResult",
]
