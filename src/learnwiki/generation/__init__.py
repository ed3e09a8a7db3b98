"""Page generation collaborator and its cache."""

from learnwiki.generation.cache import GenerationCache, InMemoryGenerationCache, cache_key
from learnwiki.generation.generator import (
    GeneratedPage,
    LLMPageGenerator,
    PageGenerator,
    parse_generated_page,
)

__all__ = [
    # Cache
    "GenerationCache",
    "InMemoryGenerationCache",
    "cache_key",
    # Generator
    "GeneratedPage",
    "LLMPageGenerator",
    "PageGenerator",
    "parse_generated_page",
]
