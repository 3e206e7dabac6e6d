"""
roster_import/validators/base.py

Shared row-validation mechanics. Subclasses describe one entity kind's
columns; this base collects every violated constraint for a row before
deciding whether it is accepted.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from datetime import date

from roster_import.domain.records import NormalizedRecord, RawRow, Rejected, ValidationResult

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\d\s\-+()]+$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MIN_PHONE_DIGITS = 10
LIST_DELIMITER = ";"

_TRUE_TOKENS = {"true"}
_FALSE_TOKENS = {"false"}


class RowValidator(ABC):
    """
    Validates and normalizes tokenized rows for one entity kind.
    """

    kind: str

    def validate(self, rows: Iterable[RawRow]) -> ValidationResult:
        """
        Split rows into accepted records and rejections, preserving order.
        """

        result = ValidationResult()
        for row in rows:
            outcome = self.validate_row(row)
            if isinstance(outcome, Rejected):
                result.rejected.append(outcome)
            else:
                result.accepted.append(outcome)
        return result

    def validate_row(self, row: RawRow) -> NormalizedRecord | Rejected:
        if row.is_malformed:
            return Rejected(
                row_number=row.row_number,
                reasons=(f"Expected {row.expected_fields} fields but found {row.actual_fields}",),
            )

        errors: list[str] = []
        record = self._build_record(row, errors)
        if errors or record is None:
            return Rejected(row_number=row.row_number, reasons=tuple(errors))
        return record

    @abstractmethod
    def _build_record(self, row: RawRow, errors: list[str]) -> NormalizedRecord | None:
        """
        Append one message per violated constraint; return the record when clean.
        """

    # ------------------------------------------------------------------
    # Field helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _is_blank(value: str | None) -> bool:
        return value is None or value.strip() == ""

    def _required(self, row: RawRow, column: str, label: str, errors: list[str]) -> str:
        value = row.get(column)
        if self._is_blank(value):
            errors.append(f"{label} required")
            return ""
        return value.strip()

    def _optional(self, row: RawRow, column: str) -> str | None:
        value = row.get(column)
        if self._is_blank(value):
            return None
        return value.strip()

    def _email(self, value: str | None, errors: list[str], *, label: str = "email") -> str | None:
        if value and not EMAIL_PATTERN.match(value):
            errors.append(f"Invalid {label} format")
        return value

    def _phone(self, value: str | None, errors: list[str], *, label: str = "phone") -> str | None:
        if value is None:
            return None
        digits = re.sub(r"\D", "", value)
        if not PHONE_PATTERN.match(value) or len(digits) < MIN_PHONE_DIGITS:
            errors.append(f"Invalid {label} format")
        return value

    def _iso_date(self, value: str | None, errors: list[str], *, label: str) -> date | None:
        if value is None:
            return None
        if ISO_DATE_PATTERN.match(value):
            try:
                return date.fromisoformat(value)
            except ValueError:
                pass
        errors.append(f"Invalid {label} date format (use YYYY-MM-DD)")
        return None

    def _choice(
        self,
        value: str | None,
        allowed: Sequence[str],
        errors: list[str],
        *,
        message: str,
    ) -> str | None:
        """
        Match case-insensitively and return the canonical spelling.
        """

        if value is None:
            return None
        canonical = {option.lower(): option for option in allowed}
        matched = canonical.get(value.lower())
        if matched is None:
            errors.append(message)
        return matched

    def _boolean(self, value: str | None, errors: list[str], *, label: str) -> bool:
        if value is None:
            return False
        lowered = value.lower()
        if lowered in _TRUE_TOKENS:
            return True
        if lowered in _FALSE_TOKENS:
            return False
        errors.append(f"Invalid {label} value (must be true or false)")
        return False

    def _positive_int(self, value: str | None, errors: list[str], *, message: str) -> int | None:
        if value is None:
            return None
        try:
            parsed = int(value)
        except ValueError:
            errors.append(message)
            return None
        if parsed <= 0:
            errors.append(message)
            return None
        return parsed

    @staticmethod
    def _split_list(value: str | None) -> tuple[str, ...]:
        if value is None:
            return ()
        return tuple(item.strip() for item in value.split(LIST_DELIMITER) if item.strip())
