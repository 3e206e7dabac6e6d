"""
roster_import/services/identifier_generator.py

Human-readable identifier generation with collision retry.

Codes look like ``GRA/2026/0042``: a kind prefix, the current year and a
zero-padded random suffix. The existence check is advisory; the database
unique constraint remains the final arbiter.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime

from roster_import.config import ImportSettings
from roster_import.domain.records import EntityKind
from roster_import.services.errors import DuplicateIdentifierError

logger = logging.getLogger(__name__)

ExistsCheck = Callable[[str], Awaitable[bool]]


class IdentifierGenerator:
    """
    Issues identifiers for one import run.

    Identifiers handed out by this instance are remembered, so two rows of
    the same run never receive the same code even before either is
    persisted.
    """

    def __init__(
        self,
        *,
        prefixes: Mapping[str, str],
        max_attempts: int = 100,
        suffix_width: int = 4,
        rng: random.Random | None = None,
        current_year: Callable[[], int] | None = None,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        self._prefixes = dict(prefixes)
        self._max_attempts = max(1, max_attempts)
        self._suffix_width = max(1, suffix_width)
        self._rng = rng or random.Random()
        self._current_year = current_year or (lambda: datetime.now().year)
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)
        self._issued: set[str] = set()

    @classmethod
    def from_settings(cls, settings: ImportSettings, **overrides: object) -> "IdentifierGenerator":
        options: dict[str, object] = {
            "prefixes": {
                EntityKind.STUDENT: settings.admission_number_prefix,
                EntityKind.TEACHER: settings.employee_id_prefix,
            },
            "max_attempts": settings.identifier_max_attempts,
            "suffix_width": settings.identifier_suffix_width,
        }
        options.update(overrides)
        return cls(**options)  # type: ignore[arg-type]

    def generate(self, kind: str) -> str:
        """
        Synthesize one candidate code for ``kind``; not checked for uniqueness.
        """

        suffix = self._rng.randrange(10**self._suffix_width)
        return self._format(kind, suffix)

    async def ensure_unique(
        self,
        candidate: str | None,
        exists_check: ExistsCheck,
        *,
        kind: str,
    ) -> str:
        """
        Return ``candidate`` when it is free, or a freshly generated code.

        A supplied candidate that is already taken raises
        ``DuplicateIdentifierError``. Generated codes are retried up to
        ``max_attempts`` times; after that a timestamp-derived code is
        returned without consulting ``exists_check``.
        """

        if candidate:
            if candidate in self._issued or await exists_check(candidate):
                raise DuplicateIdentifierError(
                    f"Identifier {candidate} already exists",
                    identifier=candidate,
                )
            self._issued.add(candidate)
            return candidate

        for attempt in range(1, self._max_attempts + 1):
            generated = self.generate(kind)
            if generated in self._issued:
                continue
            if not await exists_check(generated):
                self._issued.add(generated)
                return generated
            logger.debug("Identifier collision kind=%s attempt=%d code=%s", kind, attempt, generated)

        fallback = self._timestamp_fallback(kind)
        logger.warning(
            "Identifier retries exhausted kind=%s attempts=%d; using timestamp code %s",
            kind,
            self._max_attempts,
            fallback,
        )
        self._issued.add(fallback)
        return fallback

    def _timestamp_fallback(self, kind: str) -> str:
        modulus = 10**self._suffix_width
        suffix = self._clock_ms() % modulus
        candidate = self._format(kind, suffix)
        for _ in range(modulus):
            if candidate not in self._issued:
                break
            suffix = (suffix + 1) % modulus
            candidate = self._format(kind, suffix)
        return candidate

    def _format(self, kind: str, suffix: int) -> str:
        try:
            prefix = self._prefixes[kind]
        except KeyError:
            raise ValueError(f"No identifier prefix configured for kind '{kind}'.") from None
        return f"{prefix}/{self._current_year()}/{suffix:0{self._suffix_width}d}"
