"""
roster_import/api/dependencies.py

Shared FastAPI dependencies for import endpoints.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import File, HTTPException, Path, UploadFile, status

from roster_import.config import ImportSettings, get_import_settings
from roster_import.domain.records import IMPORTABLE_KINDS, EntityKind
from roster_import.repositories.gateway import PersistenceGateway
from roster_import.repositories.sqlalchemy_gateway import SQLAlchemyGateway

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    if not filename.endswith(".csv") and content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


_KIND_ALIASES = {
    "students": EntityKind.STUDENT,
    "teachers": EntityKind.TEACHER,
    "classes": EntityKind.CLASS,
    "subjects": EntityKind.SUBJECT,
    "parents": EntityKind.PARENT,
}


def get_entity_kind(kind: str = Path(..., description="Entity kind to import")) -> str:
    """
    Accept singular or plural kind names ("student", "students").
    """

    normalized = kind.strip().lower()
    normalized = _KIND_ALIASES.get(normalized, normalized)
    if normalized not in IMPORTABLE_KINDS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown import kind '{kind}'. Allowed kinds: {', '.join(IMPORTABLE_KINDS)}.",
        )
    return normalized


@lru_cache(maxsize=1)
def get_gateway() -> PersistenceGateway:
    """
    Process-wide SQLAlchemy gateway; overridden in tests.
    """

    return SQLAlchemyGateway()


def get_settings() -> ImportSettings:
    return get_import_settings()
