"""
roster_import/config.py

Environment-driven settings for the roster import pipeline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class ImportSettings:
    """
    Runtime settings for bulk roster imports.
    """

    effect_batch_size: int = 50
    effect_batch_delay_seconds: float = 0.1
    identifier_max_attempts: int = 100
    admission_number_prefix: str = "GRA"
    employee_id_prefix: str = "TCH"
    identifier_suffix_width: int = 4
    parent_email_domain: str = "parent.com"
    default_class_capacity: int = 30
    wait_for_secondary_effects: bool = True
    log_row_errors: bool = True


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached import settings from environment variables.
    """

    return ImportSettings(
        effect_batch_size=max(1, _get_int_env("IMPORT_EFFECT_BATCH_SIZE", 50)),
        effect_batch_delay_seconds=max(0, _get_int_env("IMPORT_EFFECT_BATCH_DELAY_MS", 100)) / 1000.0,
        identifier_max_attempts=max(1, _get_int_env("IMPORT_IDENTIFIER_MAX_ATTEMPTS", 100)),
        admission_number_prefix=_get_str_env("IMPORT_ADMISSION_PREFIX", "GRA"),
        employee_id_prefix=_get_str_env("IMPORT_EMPLOYEE_ID_PREFIX", "TCH"),
        identifier_suffix_width=max(1, _get_int_env("IMPORT_IDENTIFIER_SUFFIX_WIDTH", 4)),
        parent_email_domain=_get_str_env("IMPORT_PARENT_EMAIL_DOMAIN", "parent.com"),
        default_class_capacity=max(1, _get_int_env("IMPORT_DEFAULT_CLASS_CAPACITY", 30)),
        wait_for_secondary_effects=_get_bool_env("IMPORT_WAIT_FOR_SECONDARY_EFFECTS", True),
        log_row_errors=_get_bool_env("IMPORT_LOG_ROW_ERRORS", True),
    )
