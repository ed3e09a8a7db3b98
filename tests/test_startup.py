"""Application startup and health tests."""

from learnwiki.api import deps
from learnwiki.constants import INTERRUPTED_MESSAGE
from learnwiki.jobs.models import GenerationJob, JobStatus, JobType, TopicInput
from learnwiki.main import _cleanup_orphaned_jobs, app, lifespan


def make_job(job_id: str, status: JobStatus) -> GenerationJob:
    return GenerationJob(
        id=job_id,
        status=status,
        type=JobType.WIKI_PAGE,
        input=TopicInput(topic="Entropy"),
        created_at=1,
        updated_at=1,
    )


async def test_health_check(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_cleanup_fails_interrupted_jobs_in_every_library(registry):
    registry.get("default").jobs.save(make_job("a", JobStatus.PROCESSING))
    registry.get("physics").jobs.save(make_job("b", JobStatus.PROCESSING))
    registry.get("physics").jobs.save(make_job("c", JobStatus.PENDING))

    assert _cleanup_orphaned_jobs(registry) == 2

    interrupted = registry.get("physics").jobs.get("b")
    assert interrupted.status == JobStatus.FAILED
    assert interrupted.error == INTERRUPTED_MESSAGE
    assert registry.get("physics").jobs.get("c").status == JobStatus.PENDING


async def test_lifespan_cleans_up_and_closes(app_state):
    registry = deps.get_registry()
    registry.get("default").jobs.save(make_job("a", JobStatus.PROCESSING))

    async with lifespan(app):
        job = deps.get_registry().get("default").jobs.get("a")
        assert job.status == JobStatus.FAILED

    assert deps._registry_instance is None
