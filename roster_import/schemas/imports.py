"""
roster_import/schemas/imports.py

Response schemas for roster import endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from roster_import.domain.results import ImportResult


class RowErrorResponse(BaseModel):
    """
    API response model for one row-scoped (or run-level) error.
    """

    row_number: int | None = Field(default=None, ge=1)
    message: str


class ImportResultResponse(BaseModel):
    """
    API response model for one import run.
    """

    kind: str
    state: str
    success: bool
    total_rows: int = Field(..., ge=0)
    imported: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    entities: list[dict[str, Any]] = Field(default_factory=list)
    errors: list[RowErrorResponse] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    secondary_errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ImportResult) -> "ImportResultResponse":
        return cls(
            kind=result.kind,
            state=result.state,
            success=result.succeeded > 0,
            total_rows=result.total_rows,
            imported=result.succeeded,
            failed=sum(1 for error in result.row_errors if error.row_number is not None),
            entities=[dict(entity) for entity in result.entities],
            errors=[
                RowErrorResponse(row_number=error.row_number, message=error.message)
                for error in result.row_errors
            ],
            warnings=list(result.warnings),
            secondary_errors=list(result.secondary_errors),
        )
