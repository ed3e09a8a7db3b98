"""Pydantic models for the entities persisted in a library store.

Field names are snake_case in Python and camelCase on the wire, matching the
JSON shapes the browser client has always used (``relatedTopics``,
``createdAt``, ...). Both spellings are accepted on input.
"""

import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from learnwiki.constants import FAILED_MARKER, GENERATING_MARKER


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MindmapPosition(CamelModel):
    """2D coordinate of a page on the mind map (UI concern)."""

    x: float
    y: float


class WikiPage(CamelModel):
    """A generated content unit."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    content: str
    related_topics: list[str] = Field(default_factory=list)
    suggested_questions: list[str] = Field(default_factory=list)
    created_at: int = Field(default_factory=now_ms)
    parent_id: Optional[str] = None
    is_placeholder: bool = False
    mindmap_position: Optional[MindmapPosition] = None

    @property
    def is_generating(self) -> bool:
        """True while this placeholder is waiting for content."""
        return self.is_placeholder and self.content.startswith(GENERATING_MARKER)

    @property
    def is_failed(self) -> bool:
        """True if this placeholder records a failed generation."""
        return self.is_placeholder and self.content.startswith(FAILED_MARKER)


class Breadcrumb(CamelModel):
    """One entry in a session's navigation history."""

    id: str
    title: str


class LearningSession(CamelModel):
    """One browsing path through pages."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    started_at: int = Field(default_factory=now_ms)
    pages: list[str] = Field(default_factory=list)
    current_page_id: str
    breadcrumbs: list[Breadcrumb] = Field(default_factory=list)


class Bookmark(CamelModel):
    """A pinned page."""

    page_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    timestamp: int = Field(default_factory=now_ms)


class KnowledgeNode(CamelModel):
    """A node in the generated-content tree, keyed by page id."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    children: list[str] = Field(default_factory=list)
    parent: Optional[str] = None
    depth: int = Field(..., ge=0)


class PageView(CamelModel):
    """Per-page view accounting."""

    page_id: str
    first_viewed_at: int
    last_viewed_at: int
    view_count: int = Field(..., ge=1)


class DuplicateGroup(CamelModel):
    """Pages sharing a normalized title, newest first."""

    title: str
    count: int
    pages: list[WikiPage]
