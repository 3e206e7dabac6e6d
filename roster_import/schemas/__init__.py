"""
roster_import/schemas package marker.
"""

from roster_import.schemas.imports import ImportResultResponse, RowErrorResponse

__all__ = ["ImportResultResponse", "RowErrorResponse"]
