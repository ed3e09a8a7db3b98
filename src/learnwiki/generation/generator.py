"""Page generation collaborator.

The job engine only knows the ``PageGenerator`` protocol. ``LLMPageGenerator``
implements it on top of ``LLMClient``; tests substitute their own.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from typing import Optional, Protocol

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from learnwiki.errors import GenerationError
from learnwiki.generation.cache import GenerationCache, cache_key
from learnwiki.generation.prompts import (
    QUESTION_SYSTEM_PROMPT,
    SELECTION_SYSTEM_PROMPT,
    TOPIC_SYSTEM_PROMPT,
    get_question_prompt,
    get_selection_prompt,
    get_topic_prompt,
)
from learnwiki.llm.client import LLMClient, LLMError
from learnwiki.store.schemas import CamelModel

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```\s*$", re.DOTALL | re.IGNORECASE)


class GeneratedPage(CamelModel):
    """Page-shaped result of one generation call.

    The engine stamps id, createdAt, parentId and isPlaceholder onto this
    when it persists the page.
    """

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    related_topics: list[str] = Field(default_factory=list)
    suggested_questions: list[str] = Field(default_factory=list)


class PageGenerator(Protocol):
    """Turns a job's typed input into page content."""

    async def generate_topic(self, topic: str, refresh: bool = False) -> GeneratedPage: ...

    async def answer_question(self, question: str, page_content: str) -> GeneratedPage: ...

    async def explain_selection(
        self, selected_text: str, context: str, page_title: str
    ) -> GeneratedPage: ...


def parse_generated_page(raw: str) -> GeneratedPage:
    """Parse an LLM response into a GeneratedPage.

    Accepts bare JSON or JSON wrapped in a ```json fence.

    Raises:
        GenerationError: If the response is not a JSON object with a
            non-empty title and content.
    """
    text = raw.strip()
    match = _FENCE_RE.match(text)
    if match:
        text = match.group(1).strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Generator returned invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise GenerationError("Generator returned JSON that is not an object")

    try:
        return GeneratedPage.model_validate(data)
    except PydanticValidationError as e:
        fields = ", ".join(sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]}))
        raise GenerationError(f"Generator returned an incomplete page ({fields})") from e


class LLMPageGenerator:
    """PageGenerator backed by an LLM, with an optional short-lived cache."""

    def __init__(self, llm: LLMClient, cache: Optional[GenerationCache] = None) -> None:
        self.llm = llm
        self.cache = cache

    async def _generate(
        self, key: str, system_prompt: str, prompt: str, refresh: bool = False
    ) -> GeneratedPage:
        # A refresh skips the read but still stores the new result.
        if self.cache is not None and not refresh:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Generation cache hit: {key}")
                return cached.model_copy(deep=True)

        try:
            raw = await self.llm.generate_with_json(prompt, system_prompt=system_prompt)
        except LLMError as e:
            raise GenerationError(str(e)) from e

        page = parse_generated_page(raw)
        if self.cache is not None:
            self.cache.set(key, page)
        return page.model_copy(deep=True)

    async def generate_topic(self, topic: str, refresh: bool = False) -> GeneratedPage:
        return await self._generate(
            cache_key("wiki", topic),
            TOPIC_SYSTEM_PROMPT,
            get_topic_prompt(topic),
            refresh=refresh,
        )

    async def answer_question(self, question: str, page_content: str) -> GeneratedPage:
        scope = hashlib.sha1(page_content.encode("utf-8")).hexdigest()[:12]
        return await self._generate(
            cache_key("question", question, scope),
            QUESTION_SYSTEM_PROMPT,
            get_question_prompt(question, page_content),
        )

    async def explain_selection(
        self, selected_text: str, context: str, page_title: str
    ) -> GeneratedPage:
        return await self._generate(
            cache_key("selection", selected_text, page_title.lower().strip()),
            SELECTION_SYSTEM_PROMPT,
            get_selection_prompt(selected_text, context, page_title),
        )
