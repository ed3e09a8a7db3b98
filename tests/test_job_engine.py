"""Job engine lifecycle tests."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from learnwiki.config import Config, JobsConfig
from learnwiki.constants import FAILED_CONTENT, GENERATING_CONTENT
from learnwiki.errors import ConflictError, GenerationError, NotFoundError, ValidationError
from learnwiki.generation import InMemoryGenerationCache, LLMPageGenerator
from learnwiki.jobs.engine import JobEngine
from learnwiki.jobs.models import JobStatus, JobType
from learnwiki.store.schemas import KnowledgeNode, WikiPage

from conftest import FakeGenerator


def make_engine(registry, generator, library="default", timeout=5.0) -> JobEngine:
    settings = Config(
        jobs=JobsConfig(
            poll_interval_seconds=0.01,
            poll_timeout_seconds=5.0,
            poll_max_retries=3,
            generation_timeout_seconds=timeout,
        )
    )
    return JobEngine(registry, library, generator, settings)


@pytest.fixture
def engine(registry, generator):
    return make_engine(registry, generator)


# =============================================================================
# Create
# =============================================================================


def test_create_persists_pending_job(engine, store):
    job = engine.create("wiki_page", {"topic": "Entropy"})

    assert job.status == JobStatus.PENDING
    assert job.type == JobType.WIKI_PAGE
    assert job.id.startswith("job-wiki_page-")
    assert store.jobs.get(job.id) == job


def test_create_with_missing_fields_persists_nothing(engine, store):
    with pytest.raises(ValidationError):
        engine.create("question", {"question": "Why?"})

    assert store.jobs.get_all() == []


def test_create_with_unknown_type_rejected(engine):
    with pytest.raises(ValidationError):
        engine.create("essay", {"topic": "Entropy"})


# =============================================================================
# Process
# =============================================================================


async def test_process_completes_topic_job(engine, store, generator):
    job = engine.create("wiki_page", {"topic": "Entropy"})

    done = await engine.process(job.id)

    assert done.status == JobStatus.COMPLETED
    assert done.output.title == "Entropy"
    assert done.output.is_placeholder is False
    assert store.pages.get(done.output.id) == done.output
    assert store.knowledge.get(done.output.id).depth == 0
    assert generator.calls == [("topic", ("Entropy",))]


async def test_process_missing_job_is_not_found(engine):
    with pytest.raises(NotFoundError):
        await engine.process("job-nope")


async def test_reprocessing_completed_job_is_idempotent(engine, generator):
    job = engine.create("wiki_page", {"topic": "Entropy"})
    first = await engine.process(job.id)

    second = await engine.process(job.id)

    assert second.output == first.output
    assert len(generator.calls) == 1


async def test_concurrent_dispatch_invokes_generator_once(registry):
    gate = asyncio.Event()
    generator = FakeGenerator(gate=gate)
    engine = make_engine(registry, generator)
    job = engine.create("wiki_page", {"topic": "Entropy"})

    first = asyncio.create_task(engine.process(job.id))
    await asyncio.sleep(0)  # let the first dispatch claim the job
    with pytest.raises(ConflictError):
        await engine.process(job.id)

    gate.set()
    done = await first

    assert done.status == JobStatus.COMPLETED
    assert len(generator.calls) == 1


async def test_placeholder_visible_while_generating(registry, store):
    gate = asyncio.Event()
    engine = make_engine(registry, FakeGenerator(gate=gate))
    job = engine.create("wiki_page", {"topic": "Entropy"})

    task = asyncio.create_task(engine.process(job.id))
    await asyncio.sleep(0)

    placeholders = store.pages.get_all()
    assert len(placeholders) == 1
    assert placeholders[0].is_placeholder
    assert placeholders[0].content == GENERATING_CONTENT
    assert store.jobs.get(job.id).status == JobStatus.PROCESSING

    gate.set()
    done = await task
    assert done.output.id == placeholders[0].id
    assert store.pages.get(done.output.id).is_placeholder is False


async def test_generator_failure_fails_job(registry, store, failing_generator):
    engine = make_engine(registry, failing_generator)
    job = engine.create("wiki_page", {"topic": "Entropy"})

    done = await engine.process(job.id)

    assert done.status == JobStatus.FAILED
    assert done.error == "model unavailable"
    assert done.output is None
    page = store.pages.get_all()[0]
    assert page.is_placeholder
    assert page.content == FAILED_CONTENT
    assert page.is_failed


async def test_unexpected_generator_exception_fails_job(registry):
    engine = make_engine(registry, FakeGenerator(error=RuntimeError("socket closed")))
    job = engine.create("wiki_page", {"topic": "Entropy"})

    done = await engine.process(job.id)

    assert done.status == JobStatus.FAILED
    assert "socket closed" in done.error


async def test_failed_job_is_not_retried(registry, failing_generator):
    engine = make_engine(registry, failing_generator)
    job = engine.create("wiki_page", {"topic": "Entropy"})
    await engine.process(job.id)

    with pytest.raises(ConflictError):
        await engine.process(job.id)
    assert len(failing_generator.calls) == 1


async def test_generation_timeout_fails_job(registry):
    engine = make_engine(registry, FakeGenerator(delay=1.0), timeout=0.05)
    job = engine.create("wiki_page", {"topic": "Entropy"})

    done = await engine.process(job.id)

    assert done.status == JobStatus.FAILED
    assert "timed out" in done.error


async def test_missing_generator_fails_job(registry):
    engine = make_engine(registry, None)
    job = engine.create("wiki_page", {"topic": "Entropy"})

    done = await engine.process(job.id)

    assert done.status == JobStatus.FAILED


# =============================================================================
# Per-Type Execution
# =============================================================================


async def test_topic_reuses_existing_page_without_generating(engine, store, generator):
    existing = WikiPage(id="entropy-1", title="Entropy", content="# Entropy", created_at=1)
    store.pages.save(existing)
    job = engine.create("wiki_page", {"topic": "  entropy "})

    done = await engine.process(job.id)

    assert done.output == existing
    assert generator.calls == []


async def test_topic_fills_matching_placeholder(engine, store):
    store.pages.save(
        WikiPage(id="entropy-1", title="Entropy", content=FAILED_CONTENT, is_placeholder=True)
    )
    job = engine.create("wiki_page", {"topic": "Entropy"})

    done = await engine.process(job.id)

    assert done.output.id == "entropy-1"
    assert [p.id for p in store.pages.get_all()] == ["entropy-1"]


async def test_force_regenerate_replaces_content_in_place(engine, store, generator):
    store.pages.save(WikiPage(id="entropy-1", title="Entropy", content="stale", created_at=1))
    job = engine.create("wiki_page", {"topic": "Entropy", "forceRegenerate": True})

    done = await engine.process(job.id)

    assert done.output.id == "entropy-1"
    assert store.pages.get("entropy-1").content != "stale"
    assert len(store.pages.get_all()) == 1
    assert len(generator.calls) == 1
    assert generator.refreshes == [True]


async def test_force_regenerate_bypasses_generation_cache(registry, store):
    versions = iter(range(1, 10))

    async def respond(*args, **kwargs):
        return json.dumps({"title": "Entropy", "content": f"version {next(versions)}"})

    llm = MagicMock()
    llm.generate_with_json = AsyncMock(side_effect=respond)
    engine = make_engine(registry, LLMPageGenerator(llm, InMemoryGenerationCache()))
    first = await engine.process(engine.create("wiki_page", {"topic": "Entropy"}).id)

    regen = await engine.process(
        engine.create("wiki_page", {"topic": "Entropy", "forceRegenerate": True}).id
    )

    assert llm.generate_with_json.call_count == 2
    assert first.output.content == "version 1"
    assert regen.output.id == first.output.id
    assert store.pages.get(first.output.id).content == "version 2"


async def test_existing_page_id_is_honoured(engine, store):
    job = engine.create("wiki_page", {"topic": "Entropy", "existingPageId": "loading-42"})

    done = await engine.process(job.id)

    assert done.output.id == "loading-42"


async def test_question_mints_fresh_ids(engine, store, generator):
    store.pages.save(WikiPage(id="thermo", title="Thermo", content="Heat"))
    store.knowledge.link("thermo", "Thermo")
    payload = {"question": "Why?", "currentPageContent": "Heat", "parentId": "thermo"}

    first = await engine.process(engine.create("question", payload).id)
    second = await engine.process(engine.create("question", payload).id)

    assert first.output.id != second.output.id
    assert first.output.id.startswith("why-")
    assert first.output.parent_id == "thermo"
    assert store.knowledge.get("thermo").children == [first.output.id, second.output.id]
    assert generator.calls[0] == ("question", ("Why?", "Heat"))


async def test_selection_links_under_parent(engine, store, generator):
    store.pages.save(WikiPage(id="thermo", title="Thermodynamics", content="..."))
    store.knowledge.save(KnowledgeNode(id="thermo", title="Thermodynamics", depth=2))
    job = engine.create(
        "selection",
        {"selectedText": "heat death", "context": "the heat death of", "parentId": "thermo"},
    )

    done = await engine.process(job.id)

    node = store.knowledge.get(done.output.id)
    assert node.depth == 3
    assert node.parent == "thermo"
    assert generator.calls == [("selection", ("heat death", "the heat death of", "Thermodynamics"))]


async def test_selection_with_missing_parent_fails(engine, store, generator):
    job = engine.create(
        "selection", {"selectedText": "heat", "context": "ctx", "parentId": "ghost"}
    )

    done = await engine.process(job.id)

    assert done.status == JobStatus.FAILED
    assert "ghost" in done.error
    assert generator.calls == []
    assert store.pages.get_all() == []


# =============================================================================
# Background Dispatch
# =============================================================================


async def test_submit_processes_in_background(engine):
    job = engine.submit("wiki_page", {"topic": "Entropy"})
    assert job.status == JobStatus.PENDING

    await engine.drain()

    assert engine.get(job.id).status == JobStatus.COMPLETED


async def test_engines_are_scoped_to_their_library(registry, generator):
    physics = make_engine(registry, generator, library="physics")
    job = physics.create("wiki_page", {"topic": "Entropy"})
    await physics.process(job.id)

    assert registry.get("default").jobs.get(job.id) is None
    assert registry.get("default").pages.get_all() == []
    assert len(registry.get("physics").pages.get_all()) == 1


def test_generation_error_is_wiki_error():
    assert GenerationError("x").status_code == 502
