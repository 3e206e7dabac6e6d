"""
db/models/student.py

Student model: one enrolled learner, keyed by a unique admission number.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, IntegerPrimaryKeyMixin, PersonMixin, TimestampMixin


class Student(Base, IntegerPrimaryKeyMixin, PersonMixin, TimestampMixin):
    __tablename__ = "students"

    admission_number: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="Human-readable code, e.g. GRA/2026/0042",
    )
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    class_id: Mapped[int | None] = mapped_column(
        ForeignKey("classes.id", ondelete="SET NULL"),
        nullable=True,
    )
    class_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    level: Mapped[str | None] = mapped_column(String(32), nullable=True)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("parents.id", ondelete="SET NULL"),
        nullable=True,
    )
    academic_year: Mapped[str] = mapped_column(String(16), nullable=False)
    admission_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_students_class_id", "class_id"),
        Index("ix_students_parent_id", "parent_id"),
    )
