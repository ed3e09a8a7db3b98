"""Client-side polling of a job until it reaches a terminal state.

Polling never changes the job. Giving up (timeout, cancellation) only stops
the observer; dispatch keeps running on the server.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

import httpx

from learnwiki.constants import POLL_INTERVAL_SECONDS, POLL_MAX_RETRIES, POLL_TIMEOUT_SECONDS
from learnwiki.errors import StorageUnavailableError
from learnwiki.jobs.models import GenerationJob, JobStatus
from learnwiki.store.schemas import WikiPage

logger = logging.getLogger(__name__)

FetchJob = Callable[[str], Awaitable[Optional[GenerationJob]]]

# Fetch errors worth another attempt on the next tick.
TRANSIENT_ERRORS: tuple[type[Exception], ...] = (httpx.TransportError, StorageUnavailableError)


class PollError(Exception):
    """Base exception for polling outcomes other than success."""

    def __init__(self, job_id: str, message: str) -> None:
        super().__init__(message)
        self.job_id = job_id
        self.message = message


class JobFailedError(PollError):
    """The job reached the failed state. ``message`` is its stored error."""

    pass


class JobNotFoundError(PollError):
    """The job disappeared while being polled."""

    pass


class PollTimeoutError(PollError):
    """The job did not finish within the polling deadline."""

    pass


async def wait_for_job(
    fetch_job: FetchJob,
    job_id: str,
    interval: float = POLL_INTERVAL_SECONDS,
    timeout: float = POLL_TIMEOUT_SECONDS,
    max_retries: int = POLL_MAX_RETRIES,
) -> WikiPage:
    """Poll ``fetch_job`` every ``interval`` seconds until the job finishes.

    Args:
        fetch_job: Async callable returning the job, or None if it is missing.
        job_id: Job to watch.
        interval: Delay between polls.
        timeout: Hard limit on total polling time.
        max_retries: Consecutive transient fetch errors tolerated before the
            last one is raised.

    Returns:
        The job's output page.

    Raises:
        JobFailedError: The job failed.
        JobNotFoundError: The job does not exist.
        PollTimeoutError: The deadline passed first.
    """
    loop = asyncio.get_running_loop()
    started = loop.time()
    deadline = started + timeout
    failures = 0

    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            raise PollTimeoutError(job_id, f"Timed out after {timeout:g}s waiting for job {job_id}")

        try:
            job = await asyncio.wait_for(fetch_job(job_id), timeout=remaining)
        except asyncio.TimeoutError as e:
            raise PollTimeoutError(
                job_id, f"Timed out after {timeout:g}s waiting for job {job_id}"
            ) from e
        except TRANSIENT_ERRORS as e:
            failures += 1
            if failures > max_retries:
                raise
            logger.warning(f"Polling {job_id} failed ({failures}/{max_retries}): {e}")
        else:
            failures = 0
            if job is None:
                raise JobNotFoundError(job_id, f"Job not found: {job_id}")
            if job.status == JobStatus.COMPLETED:
                if job.output is None:
                    raise JobFailedError(job_id, "Job completed without output")
                logger.debug(f"Job {job_id} completed after {loop.time() - started:.1f}s")
                return job.output
            if job.status == JobStatus.FAILED:
                raise JobFailedError(job_id, job.error or "Job failed")

        await asyncio.sleep(max(0.0, min(interval, deadline - loop.time())))
