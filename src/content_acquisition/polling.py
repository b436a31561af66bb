"""Polling loop for deferred server-side jobs."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from content_acquisition.errors import (
    HTTPStatusError,
    JobFailedError,
    PollingTimeoutError,
    TransientNetworkError,
    UnexpectedResponseError,
)
from content_acquisition.models import ExtractJob, JobStatus
from content_acquisition.retry import Sleep
from content_acquisition.transport import Transport

logger = logging.getLogger(__name__)


class JobPoller:
    """
    Checks a job's status endpoint every ``interval`` seconds until the job
    completes, fails, or the caller's wall-clock budget runs out.

    A failed status check does not end polling: the job may still be running
    server-side, so the error is logged and the next tick tries again.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        interval: float = 2.0,
        status_timeout: float | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self.interval = interval
        self.status_timeout = status_timeout or interval
        self._sleep = sleep
        self._clock = clock

    async def _check(self, path: str) -> tuple[ExtractJob, Any]:
        response = await self._transport.request("GET", path, timeout=self.status_timeout)
        body = response.raise_for_status().body
        if not isinstance(body, dict):
            raise UnexpectedResponseError(f"status check returned {type(body).__name__}")
        job_id = path.rstrip("/").rsplit("/", 1)[-1]
        return ExtractJob(id=job_id, status=JobStatus.parse(body.get("status"))), body

    async def poll(self, path: str, budget: float) -> Any:
        """
        Return the payload of the completed job at ``path``.

        Raises:
            JobFailedError: the service reported the job failed or cancelled.
            PollingTimeoutError: ``budget`` seconds passed with the job
                still running.
        """
        start = self._clock()
        checks = 0

        while self._clock() - start < budget:
            checks += 1
            try:
                job, body = await self._check(path)
            except (TransientNetworkError, HTTPStatusError, UnexpectedResponseError) as exc:
                logger.warning("Poll %d of %s failed: %s", checks, path, exc)
            else:
                if job.status is JobStatus.COMPLETED:
                    if body.get("data"):
                        logger.info(
                            "Job %s completed after %.1fs", job.id, self._clock() - start
                        )
                        return body["data"]
                    logger.debug("Job %s completed without data yet", job.id)
                elif job.status.is_terminal:
                    reason = body.get("error") or f"Job {job.status.value}"
                    logger.warning("Job %s %s: %s", job.id, job.status.value, reason)
                    raise JobFailedError(reason)
                else:
                    logger.debug("Job %s still %s...", job.id, job.status.value)

            remaining = budget - (self._clock() - start)
            if remaining <= 0:
                break
            await self._sleep(min(self.interval, remaining))

        logger.info(
            "Job at %s timed out after %gs and %d checks (continuing without results)",
            path, budget, checks,
        )
        raise PollingTimeoutError(f"Polling timeout after {budget:g}s")
