"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.parent import Parent
from db.models.school_class import SchoolClass
from db.models.student import Student
from db.models.subject import Subject
from db.models.teacher import Teacher
from db.models.user_account import UserAccount, UserRole

__all__ = [
    "Parent",
    "SchoolClass",
    "Student",
    "Subject",
    "Teacher",
    "UserAccount",
    "UserRole",
]
