"""Generation job lifecycle: create, dispatch, execute, record the outcome.

States run ``pending -> processing -> completed | failed``. Completed and
failed are terminal. Processing a completed job returns it unchanged;
processing a job that is running or failed is a conflict.

Generation failures never escape ``process``: they are written to the job
(and to the placeholder page) so pollers see them. Storage faults do
propagate.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from learnwiki.config import Settings, load_settings
from learnwiki.constants import DEFAULT_LIBRARY, FAILED_CONTENT, GENERATING_CONTENT
from learnwiki.db.tenants import TenantRegistry, validate_library_name
from learnwiki.errors import ConflictError, GenerationError, NotFoundError, WikiError
from learnwiki.generation.generator import GeneratedPage, PageGenerator
from learnwiki.jobs.ids import make_job_id, make_page_id
from learnwiki.jobs.models import (
    GenerationJob,
    JobStatus,
    QuestionInput,
    SelectionInput,
    TopicInput,
    parse_job_input,
    parse_job_type,
)
from learnwiki.store.schemas import WikiPage, now_ms
from learnwiki.store.tenant import TenantStore

logger = logging.getLogger(__name__)


@dataclass
class _Target:
    """Where a job's page will be written."""

    page_id: str
    title: str
    parent_id: Optional[str] = None
    parent_title: Optional[str] = None
    existing: Optional[WikiPage] = None  # Non-placeholder page that already answers the job


class JobEngine:
    """Runs generation jobs for one library."""

    def __init__(
        self,
        registry: TenantRegistry,
        library: str = DEFAULT_LIBRARY,
        generator: Optional[PageGenerator] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.registry = registry
        self.library = validate_library_name(library or DEFAULT_LIBRARY)
        self.generator = generator
        settings = settings or load_settings()
        self.generation_timeout = settings.jobs.generation_timeout_seconds
        self._tasks: set[asyncio.Task] = set()

    @property
    def store(self) -> TenantStore:
        # Looked up per use: the registry may close idle handles between awaits.
        return self.registry.get(self.library)

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def create(self, job_type: Any, payload: Any) -> GenerationJob:
        """Validate input and persist a new pending job.

        Raises:
            ValidationError: If the type is unknown or the input is missing
                fields required for that type. Nothing is persisted.
        """
        job_type = parse_job_type(job_type)
        job_input = parse_job_input(job_type, payload)

        store = self.store
        created_at = now_ms()
        job_id = make_job_id(job_type.value, created_at)
        while store.jobs.exists(job_id):
            job_id = make_job_id(job_type.value, created_at)

        job = GenerationJob(
            id=job_id,
            status=JobStatus.PENDING,
            type=job_type,
            input=job_input,
            created_at=created_at,
            updated_at=created_at,
        )
        store.jobs.save(job)
        logger.info(f"Created job {job.id} in library '{self.library}'")
        return job

    def get(self, job_id: str) -> Optional[GenerationJob]:
        return self.store.jobs.get(job_id)

    def list(self) -> list[GenerationJob]:
        """All jobs, most recent first."""
        return self.store.jobs.get_all()

    def delete(self, job_id: str) -> bool:
        return self.store.jobs.delete(job_id)

    def delete_all(self) -> int:
        return self.store.jobs.delete_all()

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def process(self, job_id: str) -> GenerationJob:
        """Run a pending job to a terminal state and return it.

        Raises:
            NotFoundError: If the job does not exist.
            ConflictError: If the job is already processing or has failed.
        """
        store = self.store
        job = store.jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}")
        if job.status == JobStatus.COMPLETED:
            return job
        if job.status == JobStatus.FAILED:
            raise ConflictError(f"Job {job_id} has failed; create a new job to retry")
        if job.status == JobStatus.PROCESSING or not store.jobs.claim(job_id):
            latest = store.jobs.get(job_id)
            if latest is not None and latest.status == JobStatus.COMPLETED:
                return latest
            raise ConflictError("Job is already being processed")

        logger.info(f"Processing job {job_id} ({job.type.value})")
        await self._execute(job)

        final = self.store.jobs.get(job_id)
        if final is None:
            raise NotFoundError(f"Job not found: {job_id}")
        return final

    def submit(self, job_type: Any, payload: Any) -> GenerationJob:
        """Create a job and schedule its processing before returning.

        Must be called from a running event loop.
        """
        job = self.create(job_type, payload)
        self.schedule(job.id)
        return job

    def schedule(self, job_id: str) -> asyncio.Task:
        """Process a job in a tracked background task."""
        task = asyncio.create_task(self._process_in_background(job_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _process_in_background(self, job_id: str) -> None:
        try:
            await self.process(job_id)
        except ConflictError as e:
            logger.info(f"Skipped background dispatch of {job_id}: {e.message}")
        except WikiError as e:
            logger.error(f"Background dispatch of job {job_id} failed: {e.message}")

    async def drain(self) -> None:
        """Wait for every scheduled background task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def _execute(self, job: GenerationJob) -> None:
        try:
            target = self._resolve_target(self.store, job)
        except GenerationError as e:
            self._fail(job, None, e.message)
            return

        if target.existing is not None:
            self._complete(job, target.existing, link=False)
            logger.info(f"Job {job.id} reused existing page {target.existing.id}")
            return

        self._write_placeholder(target)

        try:
            generated = await asyncio.wait_for(
                self._call_generator(job, target), timeout=self.generation_timeout
            )
        except asyncio.TimeoutError:
            self._fail(job, target, f"Generation timed out after {self.generation_timeout:g}s")
            return
        except GenerationError as e:
            self._fail(job, target, e.message)
            return
        except Exception as e:
            # The generator is opaque; whatever it raises is a failed generation.
            self._fail(job, target, str(e) or type(e).__name__)
            return

        page = WikiPage(
            id=target.page_id,
            title=generated.title,
            content=generated.content,
            related_topics=generated.related_topics,
            suggested_questions=generated.suggested_questions,
            created_at=now_ms(),
            parent_id=target.parent_id,
            is_placeholder=False,
        )
        self._complete(job, page, link=True)
        logger.info(f"Completed job {job.id} -> page {page.id}")

    def _resolve_target(self, store: TenantStore, job: GenerationJob) -> _Target:
        job_input = job.input
        if isinstance(job_input, TopicInput):
            return self._resolve_topic(store, job_input)

        if isinstance(job_input, QuestionInput):
            return _Target(
                page_id=self._fresh_page_id(store, job_input.question),
                title=job_input.question,
                parent_id=job_input.parent_id,
            )

        if isinstance(job_input, SelectionInput):
            parent = store.pages.get(job_input.parent_id)
            if parent is None:
                raise GenerationError(
                    f"Parent page not found for selection job: {job_input.parent_id}"
                )
            return _Target(
                page_id=self._fresh_page_id(store, job_input.selected_text),
                title=job_input.selected_text,
                parent_id=parent.id,
                parent_title=parent.title,
            )

        raise GenerationError(f"Unsupported job type: {job.type.value}")

    def _resolve_topic(self, store: TenantStore, job_input: TopicInput) -> _Target:
        if job_input.existing_page_id:
            current = store.pages.get(job_input.existing_page_id)
            return _Target(
                page_id=job_input.existing_page_id,
                title=job_input.topic,
                parent_id=job_input.parent_id or (current.parent_id if current else None),
            )

        match = store.pages.find_by_title(job_input.topic)
        if match is None:
            return _Target(
                page_id=self._fresh_page_id(store, job_input.topic),
                title=job_input.topic,
                parent_id=job_input.parent_id,
            )

        target = _Target(
            page_id=match.id,
            title=job_input.topic,
            parent_id=job_input.parent_id or match.parent_id,
        )
        if not match.is_placeholder and not job_input.force_regenerate:
            target.existing = match
        return target

    def _fresh_page_id(self, store: TenantStore, text: str) -> str:
        timestamp = now_ms()
        page_id = make_page_id(text, timestamp)
        while store.pages.exists(page_id):
            timestamp += 1
            page_id = make_page_id(text, timestamp)
        return page_id

    async def _call_generator(self, job: GenerationJob, target: _Target) -> GeneratedPage:
        if self.generator is None:
            raise GenerationError("No page generator configured")

        job_input = job.input
        if isinstance(job_input, TopicInput):
            result = await self.generator.generate_topic(
                job_input.topic, refresh=job_input.force_regenerate
            )
        elif isinstance(job_input, QuestionInput):
            result = await self.generator.answer_question(
                job_input.question, job_input.current_page_content
            )
        elif isinstance(job_input, SelectionInput):
            result = await self.generator.explain_selection(
                job_input.selected_text, job_input.context, target.parent_title or ""
            )
        else:
            raise GenerationError(f"Unsupported job type: {job.type.value}")

        if isinstance(result, GeneratedPage):
            return result
        try:
            return GeneratedPage.model_validate(result)
        except PydanticValidationError as e:
            raise GenerationError(f"Generator returned a malformed page: {e}") from e

    # -------------------------------------------------------------------------
    # Outcomes
    # -------------------------------------------------------------------------

    def _write_placeholder(self, target: _Target) -> None:
        store = self.store
        current = store.pages.get(target.page_id)
        if current is not None and not current.is_placeholder:
            # Regenerating a real page: keep its content until the new one lands.
            return
        store.pages.save(
            WikiPage(
                id=target.page_id,
                title=target.title,
                content=GENERATING_CONTENT,
                created_at=current.created_at if current else now_ms(),
                parent_id=target.parent_id,
                is_placeholder=True,
            )
        )

    def _complete(self, job: GenerationJob, page: WikiPage, link: bool) -> None:
        store = self.store
        with store.db.transaction():
            if link:
                store.pages.save(page)
                store.knowledge.link(page.id, page.title, page.parent_id)
            store.jobs.update_output(job.id, page)

    def _fail(self, job: GenerationJob, target: Optional[_Target], error: str) -> None:
        logger.warning(f"Job {job.id} failed: {error}")
        store = self.store
        with store.db.transaction():
            if target is not None:
                current = store.pages.get(target.page_id)
                if current is not None and current.is_placeholder:
                    store.pages.save(current.model_copy(update={"content": FAILED_CONTENT}))
            store.jobs.update_status(job.id, JobStatus.FAILED, error)
