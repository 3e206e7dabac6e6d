"""
db/models/parent.py

Parent / guardian model. Students link to it through students.parent_id.
"""

from __future__ import annotations

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, IntegerPrimaryKeyMixin, PersonMixin, TimestampMixin


class Parent(Base, IntegerPrimaryKeyMixin, PersonMixin, TimestampMixin):
    __tablename__ = "parents"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)

    __table_args__ = (Index("ix_parents_phone", "phone"),)
