"""
roster_import/services/effect_queue.py

Throttled queue for secondary effects (e.g. login-account provisioning).

Jobs are drained in fixed-size batches. Every job in a batch runs
concurrently and settles independently; after each batch the drainer
pauses before taking the next one, so at most ``batch_size`` operations
are ever in flight against the persistence service.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from roster_import.config import ImportSettings
from roster_import.logging_utils import log_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecondaryEffectJob:
    """
    Deferred unit of work queued after a primary entity is persisted.
    """

    label: str
    run: Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class EffectOutcome:
    label: str
    succeeded: bool
    result: Any = None
    error: str | None = None


class ThrottledEffectQueue:
    """
    Single-drainer batch runner.

    ``enqueue`` returns a future that resolves to an ``EffectOutcome`` once
    the job has run. Failures never propagate: they are logged and reported
    as unsuccessful outcomes. Jobs are not retried.
    """

    def __init__(self, *, batch_size: int = 50, batch_delay_seconds: float = 0.1) -> None:
        self._batch_size = max(1, batch_size)
        self._batch_delay_seconds = max(0.0, batch_delay_seconds)
        self._pending: deque[tuple[SecondaryEffectJob, asyncio.Future[EffectOutcome]]] = deque()
        self._drain_task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(cls, settings: ImportSettings) -> "ThrottledEffectQueue":
        return cls(
            batch_size=settings.effect_batch_size,
            batch_delay_seconds=settings.effect_batch_delay_seconds,
        )

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_idle(self) -> bool:
        return self._drain_task is None or self._drain_task.done()

    def enqueue(self, job: SecondaryEffectJob) -> asyncio.Future[EffectOutcome]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[EffectOutcome] = loop.create_future()
        self._pending.append((job, future))
        if self.is_idle:
            self._drain_task = loop.create_task(self._drain())
        return future

    async def join(self) -> None:
        """
        Wait until every job queued so far (and any queued meanwhile) has run.
        """

        while not self.is_idle:
            await self._drain_task

    async def _drain(self) -> None:
        while self._pending:
            take = min(self._batch_size, len(self._pending))
            batch = [self._pending.popleft() for _ in range(take)]
            outcomes = await asyncio.gather(*(self._run_job(job, future) for job, future in batch))
            log_event(
                logger,
                logging.DEBUG,
                "effect_batch_completed",
                size=len(batch),
                failed=sum(1 for outcome in outcomes if not outcome.succeeded),
                remaining=len(self._pending),
            )
            await asyncio.sleep(self._batch_delay_seconds)

    async def _run_job(
        self,
        job: SecondaryEffectJob,
        future: asyncio.Future[EffectOutcome],
    ) -> EffectOutcome:
        try:
            result = await job.run()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Secondary effect failed label=%r: %s", job.label, exc)
            outcome = EffectOutcome(label=job.label, succeeded=False, error=str(exc) or type(exc).__name__)
        else:
            outcome = EffectOutcome(label=job.label, succeeded=True, result=result)

        if not future.done():
            future.set_result(outcome)
        return outcome
