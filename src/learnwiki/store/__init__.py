"""Per-library persistence: entity models and table repositories.

Repositories and ``TenantStore`` live in their own modules
(``learnwiki.store.tenant``); only the entity models are re-exported here.
"""

from learnwiki.store.schemas import (
    Bookmark,
    Breadcrumb,
    DuplicateGroup,
    KnowledgeNode,
    LearningSession,
    MindmapPosition,
    PageView,
    WikiPage,
    now_ms,
)

__all__ = [
    "Bookmark",
    "Breadcrumb",
    "DuplicateGroup",
    "KnowledgeNode",
    "LearningSession",
    "MindmapPosition",
    "PageView",
    "WikiPage",
    "now_ms",
]
