"""Prompt templates for page generation."""

from dataclasses import dataclass
from typing import Any


@dataclass
class PromptTemplate:
    """A template for generating prompts with variable substitution."""

    template: str

    def render(self, **kwargs: Any) -> str:
        """Render the template with the given variables.

        Raises:
            KeyError: If a required variable is missing.
        """
        return self.template.format(**kwargs)


# =============================================================================
# System Prompts
# =============================================================================
# Every prompt asks for the same JSON page shape so one parser handles all
# three job types.

TOPIC_SYSTEM_PROMPT = """You are an expert educator. Create a comprehensive wiki page as JSON:
{
  "title": "Topic Title",
  "content": "Markdown content with ## headings, **bold**, lists, examples",
  "relatedTopics": ["Topic 1", "Topic 2", "Topic 3"],
  "suggestedQuestions": ["Question 1?", "Question 2?", "Question 3?"]
}"""

QUESTION_SYSTEM_PROMPT = """Expert educator answering questions. Return JSON:
{
  "title": "Concise answer title",
  "content": "Markdown answer with examples",
  "relatedTopics": ["Topic 1", "Topic 2"],
  "suggestedQuestions": ["Question 1?", "Question 2?"]
}"""

SELECTION_SYSTEM_PROMPT = """Expert educator explaining highlighted text. Return JSON:
{
  "title": "Clear concept title",
  "content": "Markdown explanation with examples",
  "relatedTopics": ["Topic 1", "Topic 2", "Topic 3"],
  "suggestedQuestions": ["Question 1?", "Question 2?", "Question 3?"]
}"""


# =============================================================================
# User Prompts
# =============================================================================

TOPIC_TEMPLATE = PromptTemplate(
    'Create a comprehensive wiki page about "{topic}" with overview, key concepts, '
    "details, and applications."
)

QUESTION_TEMPLATE = PromptTemplate(
    """Current page:
{page_content}

Question: {question}

Answer comprehensively, building on the current topic."""
)

SELECTION_TEMPLATE = PromptTemplate(
    """Page: {page_title}
Selected: "{selected_text}"
Context: "{context}"

Explain "{selected_text}" as it relates to "{page_title}"."""
)

# Keep question prompts bounded when the current page is long.
MAX_PAGE_CONTEXT_CHARS = 6000


def get_topic_prompt(topic: str) -> str:
    return TOPIC_TEMPLATE.render(topic=topic)


def get_question_prompt(question: str, page_content: str) -> str:
    """Prompt for answering a question in the context of the current page."""
    if len(page_content) > MAX_PAGE_CONTEXT_CHARS:
        page_content = page_content[:MAX_PAGE_CONTEXT_CHARS] + "\n..."
    return QUESTION_TEMPLATE.render(question=question, page_content=page_content)


def get_selection_prompt(selected_text: str, context: str, page_title: str) -> str:
    return SELECTION_TEMPLATE.render(
        selected_text=selected_text, context=context, page_title=page_title
    )
