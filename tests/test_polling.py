"""Job polling contract tests."""

import httpx
import pytest

from learnwiki.jobs.models import GenerationJob, JobStatus, JobType, TopicInput
from learnwiki.jobs.polling import (
    JobFailedError,
    JobNotFoundError,
    PollTimeoutError,
    wait_for_job,
)
from learnwiki.store.schemas import WikiPage

PAGE = WikiPage(id="entropy-1", title="Entropy", content="# Entropy")


def make_job(status: JobStatus, **kwargs) -> GenerationJob:
    return GenerationJob(
        id="job-1",
        status=status,
        type=JobType.WIKI_PAGE,
        input=TopicInput(topic="Entropy"),
        created_at=1,
        updated_at=1,
        **kwargs,
    )


class ScriptedFetch:
    """Returns (or raises) the scripted results in order, repeating the last."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self, job_id: str):
        result = self.results[min(self.calls, len(self.results) - 1)]
        self.calls += 1
        if isinstance(result, Exception):
            raise result
        return result


async def test_resolves_with_output_when_completed():
    fetch = ScriptedFetch(
        make_job(JobStatus.PENDING),
        make_job(JobStatus.PROCESSING),
        make_job(JobStatus.COMPLETED, output=PAGE),
    )

    page = await wait_for_job(fetch, "job-1", interval=0.001, timeout=5)

    assert page == PAGE
    assert fetch.calls == 3


async def test_rejects_with_stored_error_when_failed():
    fetch = ScriptedFetch(make_job(JobStatus.FAILED, error="model unavailable"))

    with pytest.raises(JobFailedError) as exc_info:
        await wait_for_job(fetch, "job-1", interval=0.001, timeout=5)

    assert exc_info.value.message == "model unavailable"
    assert exc_info.value.job_id == "job-1"


async def test_missing_job_rejects_immediately():
    fetch = ScriptedFetch(make_job(JobStatus.PENDING), None)

    with pytest.raises(JobNotFoundError):
        await wait_for_job(fetch, "job-1", interval=0.001, timeout=5)

    assert fetch.calls == 2


async def test_times_out_when_job_never_finishes():
    fetch = ScriptedFetch(make_job(JobStatus.PROCESSING))

    with pytest.raises(PollTimeoutError):
        await wait_for_job(fetch, "job-1", interval=0.01, timeout=0.05)


async def test_transient_errors_are_retried():
    fetch = ScriptedFetch(
        httpx.ConnectError("refused"),
        httpx.ConnectError("refused"),
        make_job(JobStatus.COMPLETED, output=PAGE),
    )

    page = await wait_for_job(fetch, "job-1", interval=0.001, timeout=5, max_retries=3)

    assert page == PAGE


async def test_persistent_transient_errors_give_up():
    fetch = ScriptedFetch(httpx.ConnectError("refused"))

    with pytest.raises(httpx.ConnectError):
        await wait_for_job(fetch, "job-1", interval=0.001, timeout=5, max_retries=2)

    assert fetch.calls == 3


async def test_polling_against_the_store_leaves_job_untouched(store):
    job = make_job(JobStatus.PROCESSING)
    store.jobs.save(job)

    async def fetch(job_id):
        return store.jobs.get(job_id)

    with pytest.raises(PollTimeoutError):
        await wait_for_job(fetch, job.id, interval=0.01, timeout=0.05)

    assert store.jobs.get(job.id) == job
