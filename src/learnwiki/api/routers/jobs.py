"""Generation job endpoints."""

from fastapi import APIRouter, Depends, status

from learnwiki.api.deps import get_engine
from learnwiki.api.schemas import OperationResult
from learnwiki.errors import NotFoundError
from learnwiki.jobs.engine import JobEngine
from learnwiki.jobs.models import GenerationJob, JobCreate

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.post("", response_model=GenerationJob)
async def create_job(
    request: JobCreate,
    engine: JobEngine = Depends(get_engine),
) -> GenerationJob:
    """Create a pending job. Nothing runs until it is processed."""
    return engine.create(request.type, request.input)


@router.post("/submit", response_model=GenerationJob, status_code=status.HTTP_202_ACCEPTED)
async def submit_job(
    request: JobCreate,
    engine: JobEngine = Depends(get_engine),
) -> GenerationJob:
    """Create a job and start processing it in the background.

    Returns immediately with the pending job; poll GET /api/jobs/{id}.
    """
    return engine.submit(request.type, request.input)


@router.post("/{job_id}/process", response_model=GenerationJob)
async def process_job(
    job_id: str,
    engine: JobEngine = Depends(get_engine),
) -> GenerationJob:
    """Run a pending job to completion.

    A completed job is returned unchanged. A job that is already being
    processed (or has failed) answers 409.
    """
    return await engine.process(job_id)


@router.get("", response_model=list[GenerationJob])
async def list_jobs(engine: JobEngine = Depends(get_engine)) -> list[GenerationJob]:
    """List all jobs, most recent first."""
    return engine.list()


@router.get("/{job_id}", response_model=GenerationJob)
async def get_job(
    job_id: str,
    engine: JobEngine = Depends(get_engine),
) -> GenerationJob:
    """Get a job by ID."""
    job = engine.get(job_id)
    if job is None:
        raise NotFoundError(f"Job not found: {job_id}")
    return job


@router.delete("/{job_id}", response_model=OperationResult)
async def delete_job(
    job_id: str,
    engine: JobEngine = Depends(get_engine),
) -> OperationResult:
    return OperationResult(removed=1 if engine.delete(job_id) else 0)


@router.delete("", response_model=OperationResult)
async def delete_all_jobs(engine: JobEngine = Depends(get_engine)) -> OperationResult:
    return OperationResult(removed=engine.delete_all())
