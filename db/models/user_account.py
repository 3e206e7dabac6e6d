"""
db/models/user_account.py

Login account provisioned for an imported teacher, parent or student.
"""

from __future__ import annotations

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, IntegerPrimaryKeyMixin, TimestampMixin


class UserRole:
    STUDENT = "student"
    TEACHER = "teacher"
    PARENT = "parent"


class UserAccount(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "user_accounts"

    username: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="student, teacher, parent",
    )
    linked_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Primary key of the student/teacher/parent row",
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Active")

    __table_args__ = (Index("ix_user_accounts_role_linked_id", "role", "linked_id"),)
