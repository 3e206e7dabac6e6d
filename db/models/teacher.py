"""
db/models/teacher.py

Teacher model: a staff member keyed by a unique employee ID and email.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, IntegerPrimaryKeyMixin, PersonMixin, TimestampMixin


class Teacher(Base, IntegerPrimaryKeyMixin, PersonMixin, TimestampMixin):
    __tablename__ = "teachers"

    employee_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    qualification: Mapped[str | None] = mapped_column(String(255), nullable=True)
    specialization: Mapped[list[Any]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Subjects the teacher specialises in",
    )
    is_class_teacher: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
