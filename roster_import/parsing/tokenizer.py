"""
roster_import/parsing/tokenizer.py

Delimited-text tokenizer producing header-keyed rows.
"""

from __future__ import annotations

import csv
import io
import re
from collections.abc import Iterator
from typing import IO, Union

from roster_import.domain.records import RawRow

SourceInput = Union[str, bytes, bytearray, IO[str], IO[bytes]]

_HEADER_HINT_PATTERN = re.compile(r"\s*\(.*\)\s*$")


class ImportSourceError(ValueError):
    """
    Raised when the import source cannot be decoded or tokenized.
    """


def read_source_text(source: SourceInput) -> str:
    """
    Return the full source as text; bytes are decoded as UTF-8 (BOM stripped).
    """

    if isinstance(source, str):
        return source.lstrip("\ufeff")

    if isinstance(source, (bytes, bytearray)):
        raw = bytes(source)
    else:
        data = source.read()
        if isinstance(data, str):
            return data.lstrip("\ufeff")
        raw = data

    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ImportSourceError("CSV must be UTF-8 encoded.") from exc


def _is_blank_line(cells: list[str]) -> bool:
    return not cells or (len(cells) == 1 and not cells[0].strip())


def _clean_header_cell(cell: str) -> str:
    return _HEADER_HINT_PATTERN.sub("", cell.strip())


class CSVTokenizer:
    """
    Restartable row sequence over one delimited text source.

    Each iteration re-reads the text from the start. The first non-blank
    line is the header. Quoted fields may contain the delimiter, newlines
    and doubled quotes. Blank lines are skipped. A data line whose field
    count differs from the header is yielded as a malformed ``RawRow``.
    """

    def __init__(self, source: SourceInput, *, delimiter: str = ",") -> None:
        self._text = read_source_text(source)
        self._delimiter = delimiter

    @property
    def header(self) -> tuple[str, ...]:
        for cells in self._records():
            return tuple(_clean_header_cell(cell) for cell in cells)
        return ()

    def __iter__(self) -> Iterator[RawRow]:
        header: tuple[str, ...] | None = None
        row_number = 0

        for cells in self._records():
            if header is None:
                header = tuple(_clean_header_cell(cell) for cell in cells)
                continue

            row_number += 1
            if len(cells) != len(header):
                yield RawRow(
                    row_number=row_number,
                    expected_fields=len(header),
                    actual_fields=len(cells),
                )
                continue

            yield RawRow(row_number=row_number, values=dict(zip(header, cells)))

    def _records(self) -> Iterator[list[str]]:
        reader = csv.reader(io.StringIO(self._text, newline=""), delimiter=self._delimiter)
        try:
            for cells in reader:
                if _is_blank_line(cells):
                    continue
                yield cells
        except csv.Error as exc:
            raise ImportSourceError(f"Invalid CSV format: {exc}") from exc


def parse_rows(source: SourceInput, *, delimiter: str = ",") -> list[RawRow]:
    """
    Tokenize a whole source eagerly.
    """

    return list(CSVTokenizer(source, delimiter=delimiter))
