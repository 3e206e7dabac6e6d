"""
Row-scoped and run-level import exceptions.
"""

from __future__ import annotations


class RowImportError(Exception):
    """
    Raised when one accepted row cannot be imported; the run continues.
    """


class DuplicateIdentifierError(RowImportError):
    """
    Raised when a declared identifier or unique field is already in use.
    """

    def __init__(self, message: str, *, identifier: str | None = None) -> None:
        super().__init__(message)
        self.identifier = identifier


class ImportFailedError(RuntimeError):
    """
    Raised when a run stops on a non-row-level failure.
    """

    def __init__(self, message: str, *, kind: str, processed: int, total: int) -> None:
        super().__init__(message)
        self.kind = kind
        self.processed = processed
        self.total = total
