"""Shared pytest fixtures for all tests.

These fixtures properly clean up resources to prevent file descriptor leaks.
"""

import asyncio
import gc
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient

from learnwiki.config import load_settings
from learnwiki.db.tenants import TenantRegistry
from learnwiki.errors import GenerationError
from learnwiki.generation import GeneratedPage


class FakeGenerator:
    """PageGenerator double that records calls and returns canned pages."""

    def __init__(
        self,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        gate: Optional[asyncio.Event] = None,
    ):
        self.error = error
        self.delay = delay
        self.gate = gate
        self.calls: list[tuple[str, tuple]] = []
        self.refreshes: list[bool] = []

    async def _respond(self, kind: str, args: tuple, title: str) -> GeneratedPage:
        self.calls.append((kind, args))
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return GeneratedPage(
            title=title,
            content=f"# {title}\n\nGenerated content about {title}.",
            related_topics=[f"{title} history", f"{title} applications"],
            suggested_questions=[f"Why does {title} matter?"],
        )

    async def generate_topic(self, topic: str, refresh: bool = False) -> GeneratedPage:
        self.refreshes.append(refresh)
        return await self._respond("topic", (topic,), topic)

    async def answer_question(self, question: str, page_content: str) -> GeneratedPage:
        return await self._respond("question", (question, page_content), question)

    async def explain_selection(
        self, selected_text: str, context: str, page_title: str
    ) -> GeneratedPage:
        return await self._respond(
            "selection", (selected_text, context, page_title), selected_text
        )


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Release SQLite handles left behind by a test."""
    yield
    gc.collect()


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Point the service at a temporary data directory with no provider keys."""
    data_dir = tmp_path / "learnwiki"
    monkeypatch.setenv("LEARNWIKI_DATA_DIR", str(data_dir))
    monkeypatch.delenv("LEARNWIKI_CONFIG", raising=False)
    for key in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GOOGLE_API_KEY", "ACTIVE_PROVIDER"):
        monkeypatch.delenv(key, raising=False)
    load_settings.cache_clear()
    yield data_dir
    load_settings.cache_clear()


@pytest.fixture
def registry(tmp_path):
    """A library registry over a temporary directory."""
    registry = TenantRegistry(tmp_path / "libraries")
    yield registry
    registry.close_all()


@pytest.fixture
def store(registry):
    """The default library's store."""
    return registry.get()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def failing_generator():
    return FakeGenerator(error=GenerationError("model unavailable"))


@pytest.fixture
def app_state(generator):
    """Reset API singletons and swap in the fake generator.

    Yields:
        dict with 'app' and 'generator'
    """
    from learnwiki.api import deps
    from learnwiki.main import app

    deps.get_settings.cache_clear()
    deps._reset_engine_instances()
    deps._reset_registry_instance()
    deps._reset_generator_instance()
    deps._reset_llm_instance()
    app.dependency_overrides[deps.get_generator] = lambda: generator

    yield {"app": app, "generator": generator}

    app.dependency_overrides.clear()
    deps._reset_engine_instances()
    deps._reset_registry_instance()
    deps._reset_generator_instance()
    deps.get_settings.cache_clear()


@pytest.fixture
async def client(app_state):
    """Async test client against the app."""
    async with AsyncClient(
        transport=ASGITransport(app=app_state["app"]),
        base_url="http://test",
    ) as client:
        yield client
