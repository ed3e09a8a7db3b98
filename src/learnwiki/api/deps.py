"""FastAPI dependency injection functions."""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from learnwiki.config import Settings, load_settings
from learnwiki.constants import DEFAULT_LIBRARY
from learnwiki.db.tenants import TenantRegistry, validate_library_name
from learnwiki.generation import InMemoryGenerationCache, LLMPageGenerator, PageGenerator
from learnwiki.jobs.engine import JobEngine
from learnwiki.llm.client import LLMClient
from learnwiki.sessions import SessionTracker
from learnwiki.store.tenant import TenantStore

logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return load_settings()


# =============================================================================
# Library Scoping
# =============================================================================


def get_library(x_database_name: Optional[str] = Header(default=None)) -> str:
    """Library named by the request header; blank or missing means default.

    Raises:
        ValidationError: If the name is not a safe identifier.
    """
    name = (x_database_name or "").strip() or DEFAULT_LIBRARY
    return validate_library_name(name)


_registry_instance: TenantRegistry | None = None


def get_registry() -> TenantRegistry:
    """Get the process-wide library registry."""
    global _registry_instance
    if _registry_instance is None:
        settings = get_settings()
        _registry_instance = TenantRegistry(
            settings.libraries_dir, max_open=settings.storage.max_open_stores
        )
    return _registry_instance


def _reset_registry_instance() -> None:
    """Close and forget the registry (for testing only)."""
    global _registry_instance
    if _registry_instance is not None:
        _registry_instance.close_all()
        _registry_instance = None


def get_store(
    library: str = Depends(get_library),
    registry: TenantRegistry = Depends(get_registry),
) -> TenantStore:
    """Get the store of the request's library, creating it on first use."""
    return registry.get(library)


def get_session_tracker(store: TenantStore = Depends(get_store)) -> SessionTracker:
    return SessionTracker(store, breadcrumb_limit=get_settings().storage.breadcrumb_limit)


# =============================================================================
# Generation
# =============================================================================

_llm_instance: LLMClient | None = None


def get_llm() -> LLMClient:
    """Get LLM client instance."""
    global _llm_instance
    if _llm_instance is None:
        settings = get_settings()
        _llm_instance = LLMClient(
            provider=settings.llm_provider,
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            endpoint=settings.llm_endpoint,
            log_path=settings.llm_log_path,
            timeout=settings.jobs.generation_timeout_seconds,
            config=settings.llm,
        )
    return _llm_instance


def _reset_llm_instance() -> None:
    """Reset LLM client instance (for testing only)."""
    global _llm_instance
    _llm_instance = None


_generator_instance: PageGenerator | None = None


def get_generator() -> PageGenerator:
    """Get the page generator shared by every library."""
    global _generator_instance
    if _generator_instance is None:
        settings = get_settings()
        cache = InMemoryGenerationCache(
            max_entries=settings.cache.max_entries, ttl_seconds=settings.cache.ttl_seconds
        )
        _generator_instance = LLMPageGenerator(get_llm(), cache)
    return _generator_instance


def _reset_generator_instance() -> None:
    """Reset the page generator (for testing only)."""
    global _generator_instance
    _generator_instance = None


# Per-library engines, so background dispatch tasks outlive the request
_engine_instances: dict[str, JobEngine] = {}


def get_engine(
    library: str = Depends(get_library),
    registry: TenantRegistry = Depends(get_registry),
    generator: PageGenerator = Depends(get_generator),
) -> JobEngine:
    """Get the job engine for the request's library."""
    engine = _engine_instances.get(library)
    if engine is None or engine.registry is not registry or engine.generator is not generator:
        engine = JobEngine(registry, library, generator, get_settings())
        _engine_instances[library] = engine
    return engine


def all_engines() -> list[JobEngine]:
    return list(_engine_instances.values())


def _reset_engine_instances() -> None:
    """Forget cached engines (for testing only)."""
    _engine_instances.clear()


def discard_engine(library: str) -> None:
    """Forget the engine of a deleted library."""
    _engine_instances.pop(library, None)
