"""
roster_import/parsing package marker.
"""

from roster_import.parsing.tokenizer import (
    CSVTokenizer,
    ImportSourceError,
    SourceInput,
    parse_rows,
    read_source_text,
)

__all__ = [
    "CSVTokenizer",
    "ImportSourceError",
    "SourceInput",
    "parse_rows",
    "read_source_text",
]
