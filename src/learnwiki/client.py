"""Async HTTP client for the learnwiki API.

Wraps the job endpoints and implements fire-and-poll generation:

    async with WikiClient("http://localhost:8000", library="physics") as client:
        page = await client.generate("wiki_page", {"topic": "Entropy"})
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from learnwiki.config import load_settings
from learnwiki.constants import LIBRARY_HEADER
from learnwiki.errors import (
    ConflictError,
    GenerationError,
    NotFoundError,
    ProtectedLibraryError,
    StorageUnavailableError,
    ValidationError,
    WikiError,
)
from learnwiki.jobs.models import GenerationJob
from learnwiki.jobs.polling import wait_for_job
from learnwiki.store.schemas import WikiPage

logger = logging.getLogger(__name__)

_STATUS_ERRORS: dict[int, type[WikiError]] = {
    400: ValidationError,
    403: ProtectedLibraryError,
    404: NotFoundError,
    409: ConflictError,
    502: GenerationError,
    503: StorageUnavailableError,
}


def _raise_for_status(response: httpx.Response) -> None:
    """Raise the WikiError matching an error response."""
    if response.is_success:
        return
    try:
        body = response.json()
    except ValueError:
        body = None
    message = body.get("error") if isinstance(body, dict) else None
    message = message or response.text
    error_cls = _STATUS_ERRORS.get(response.status_code, WikiError)
    raise error_cls(message or f"HTTP {response.status_code}")


class WikiClient:
    """Client for one library of a learnwiki server."""

    def __init__(
        self,
        base_url: str,
        library: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        poll_interval: Optional[float] = None,
        poll_timeout: Optional[float] = None,
        poll_max_retries: Optional[int] = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Server root, e.g. http://localhost:8000.
            library: Library to scope every call to. None uses the server default.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (ASGITransport in tests).
            poll_interval: Delay between job polls.
            poll_timeout: Hard limit on total polling time.
            poll_max_retries: Consecutive transport errors tolerated while polling.

        Polling options left as None come from the [jobs] config section.
        """
        headers = {LIBRARY_HEADER: library} if library else {}
        self._http = httpx.AsyncClient(
            base_url=base_url, headers=headers, timeout=timeout, transport=transport
        )
        self.library = library
        jobs = load_settings().jobs
        self.poll_interval = jobs.poll_interval_seconds if poll_interval is None else poll_interval
        self.poll_timeout = jobs.poll_timeout_seconds if poll_timeout is None else poll_timeout
        self.poll_max_retries = (
            jobs.poll_max_retries if poll_max_retries is None else poll_max_retries
        )

    async def __aenter__(self) -> "WikiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def create_job(self, job_type: str, job_input: dict[str, Any]) -> GenerationJob:
        """Create a pending job without dispatching it."""
        response = await self._http.post("/api/jobs", json={"type": job_type, "input": job_input})
        _raise_for_status(response)
        return GenerationJob.model_validate(response.json())

    async def submit_job(self, job_type: str, job_input: dict[str, Any]) -> GenerationJob:
        """Create a job and have the server dispatch it in the background."""
        response = await self._http.post(
            "/api/jobs/submit", json={"type": job_type, "input": job_input}
        )
        _raise_for_status(response)
        return GenerationJob.model_validate(response.json())

    async def process_job(self, job_id: str) -> GenerationJob:
        """Dispatch a job and wait for the request to finish."""
        response = await self._http.post(f"/api/jobs/{job_id}/process")
        _raise_for_status(response)
        return GenerationJob.model_validate(response.json())

    async def get_job(self, job_id: str) -> Optional[GenerationJob]:
        """Fetch a job. Returns None if it does not exist."""
        response = await self._http.get(f"/api/jobs/{job_id}")
        if response.status_code == 404:
            return None
        _raise_for_status(response)
        return GenerationJob.model_validate(response.json())

    async def list_jobs(self) -> list[GenerationJob]:
        response = await self._http.get("/api/jobs")
        _raise_for_status(response)
        return [GenerationJob.model_validate(item) for item in response.json()]

    async def wait(self, job_id: str) -> WikiPage:
        """Poll a job until it completes and return its page."""
        return await wait_for_job(
            self.get_job,
            job_id,
            interval=self.poll_interval,
            timeout=self.poll_timeout,
            max_retries=self.poll_max_retries,
        )

    async def generate(self, job_type: str, job_input: dict[str, Any]) -> WikiPage:
        """Submit a job and poll it to completion.

        Raises:
            ValidationError: If the server rejects the input.
            JobFailedError: If generation failed.
            PollTimeoutError: If the job did not finish in time.
        """
        job = await self.submit_job(job_type, job_input)
        logger.info(f"Submitted job {job.id}, polling every {self.poll_interval:g}s")
        return await self.wait(job.id)
