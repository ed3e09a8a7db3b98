"""LLM-backed page generator tests."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from learnwiki.errors import GenerationError
from learnwiki.generation import InMemoryGenerationCache, LLMPageGenerator, parse_generated_page
from learnwiki.generation.prompts import MAX_PAGE_CONTEXT_CHARS, get_question_prompt
from learnwiki.llm import LLMRateLimitError

PAGE_JSON = json.dumps(
    {
        "title": "Entropy",
        "content": "# Entropy\n\nA measure of disorder.",
        "relatedTopics": ["Heat"],
        "suggestedQuestions": ["Why does it increase?"],
    }
)


@pytest.fixture
def mock_llm():
    llm = MagicMock()
    llm.generate_with_json = AsyncMock(return_value=PAGE_JSON)
    return llm


# =============================================================================
# Parsing
# =============================================================================


def test_parse_bare_json():
    page = parse_generated_page(PAGE_JSON)

    assert page.title == "Entropy"
    assert page.related_topics == ["Heat"]


def test_parse_fenced_json():
    page = parse_generated_page(f"```json\n{PAGE_JSON}\n```")

    assert page.title == "Entropy"


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        "[1, 2, 3]",
        json.dumps({"title": "Entropy"}),
        json.dumps({"title": "", "content": "x"}),
    ],
)
def test_malformed_output_is_a_generation_error(raw):
    with pytest.raises(GenerationError):
        parse_generated_page(raw)


# =============================================================================
# Generator
# =============================================================================


async def test_generate_topic_calls_llm(mock_llm):
    generator = LLMPageGenerator(mock_llm)

    page = await generator.generate_topic("Entropy")

    assert page.title == "Entropy"
    prompt = mock_llm.generate_with_json.call_args.args[0]
    assert "Entropy" in prompt


async def test_repeat_request_served_from_cache(mock_llm):
    generator = LLMPageGenerator(mock_llm, InMemoryGenerationCache())

    await generator.generate_topic("Entropy")
    await generator.generate_topic("  entropy")

    assert mock_llm.generate_with_json.call_count == 1


async def test_refresh_bypasses_cache_and_stores_result(mock_llm):
    generator = LLMPageGenerator(mock_llm, InMemoryGenerationCache())
    await generator.generate_topic("Entropy")
    mock_llm.generate_with_json.return_value = PAGE_JSON.replace("disorder", "spread")

    refreshed = await generator.generate_topic("Entropy", refresh=True)
    cached = await generator.generate_topic("Entropy")

    assert mock_llm.generate_with_json.call_count == 2
    assert "spread" in refreshed.content
    assert cached.content == refreshed.content


async def test_question_cache_is_scoped_to_page_content(mock_llm):
    generator = LLMPageGenerator(mock_llm, InMemoryGenerationCache())

    await generator.answer_question("Why?", "Page one")
    await generator.answer_question("Why?", "Page two")

    assert mock_llm.generate_with_json.call_count == 2


async def test_cached_pages_are_copies(mock_llm):
    generator = LLMPageGenerator(mock_llm, InMemoryGenerationCache())

    first = await generator.generate_topic("Entropy")
    first.related_topics.append("mutated")
    second = await generator.generate_topic("Entropy")

    assert second.related_topics == ["Heat"]


async def test_selection_prompt_includes_page_title(mock_llm):
    generator = LLMPageGenerator(mock_llm)

    await generator.explain_selection("heat death", "...the heat death of...", "Entropy")

    prompt = mock_llm.generate_with_json.call_args.args[0]
    assert "heat death" in prompt
    assert "Entropy" in prompt


async def test_llm_errors_become_generation_errors(mock_llm):
    mock_llm.generate_with_json.side_effect = LLMRateLimitError("Rate limit exceeded")
    generator = LLMPageGenerator(mock_llm)

    with pytest.raises(GenerationError) as exc_info:
        await generator.generate_topic("Entropy")

    assert "Rate limit" in exc_info.value.message


def test_question_prompt_truncates_long_pages():
    prompt = get_question_prompt("Why?", "x" * (MAX_PAGE_CONTEXT_CHARS + 500))

    assert "x" * MAX_PAGE_CONTEXT_CHARS in prompt
    assert "x" * (MAX_PAGE_CONTEXT_CHARS + 1) not in prompt
