"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from learnwiki.store.schemas import CamelModel, DuplicateGroup, KnowledgeNode


class OperationResult(CamelModel):
    """Outcome of a write that returns no entity."""

    success: bool = True
    removed: Optional[int] = None
    added: Optional[bool] = None
    count: Optional[int] = None


class DuplicateReport(CamelModel):
    """Duplicate titles found without deleting anything."""

    total_pages: int
    unique_titles: int
    duplicates_found: int
    duplicate_groups: list[DuplicateGroup]


class VisitRequest(CamelModel):
    """A navigation event to record in the current session."""

    page_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    from_history: bool = False


class PageViewRequest(CamelModel):
    page_id: str = Field(..., min_length=1)


class MindmapBatch(CamelModel):
    """Several knowledge nodes saved in one transaction."""

    nodes: list[KnowledgeNode]


class LibraryCreate(CamelModel):
    name: str


class LibraryResponse(CamelModel):
    """Library metadata."""

    name: str
    size: int
    created: datetime
    modified: datetime
    is_default: bool = False
