"""
db/models/school_class.py

Class (form/arm) model, e.g. "JSS 1A" at level JSS.
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, IntegerPrimaryKeyMixin, TimestampMixin


class SchoolClass(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "classes"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    level: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Creche, Nursery, Primary, JSS, SS",
    )
    section: Mapped[str | None] = mapped_column(String(32), nullable=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    class_teacher_id: Mapped[int | None] = mapped_column(
        ForeignKey("teachers.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Active")

    __table_args__ = (Index("ix_classes_name", "name"),)
