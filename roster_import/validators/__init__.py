"""
roster_import/validators package marker.
"""

from roster_import.validators.base import RowValidator
from roster_import.validators.entity_validators import (
    ClassRowValidator,
    ParentRowValidator,
    StudentRowValidator,
    SubjectRowValidator,
    TeacherRowValidator,
    build_validator,
)

__all__ = [
    "ClassRowValidator",
    "ParentRowValidator",
    "RowValidator",
    "StudentRowValidator",
    "SubjectRowValidator",
    "TeacherRowValidator",
    "build_validator",
]
