"""One library's store: every repository over a single SQLite file."""

from __future__ import annotations

import logging

from learnwiki.db.connection import Database
from learnwiki.store.bookmarks import BookmarkRepository
from learnwiki.store.jobs import JobRepository
from learnwiki.store.knowledge import KnowledgeRepository
from learnwiki.store.page_views import PageViewRepository
from learnwiki.store.pages import PageRepository
from learnwiki.store.sessions import SessionRepository

logger = logging.getLogger(__name__)


class TenantStore:
    """All tables of one library, sharing one connection.

    Operations on different libraries never contend. Multi-statement
    operations on one library run inside ``db.transaction()``.
    """

    def __init__(self, name: str, db: Database) -> None:
        self.name = name
        self.db = db
        self.pages = PageRepository(db)
        self.sessions = SessionRepository(db)
        self.bookmarks = BookmarkRepository(db)
        self.knowledge = KnowledgeRepository(db)
        self.page_views = PageViewRepository(db)
        self.jobs = JobRepository(db)

    def _cascade(self, page_id: str) -> bool:
        removed = self.pages.delete(page_id)
        self.knowledge.unlink(page_id)
        self.bookmarks.delete(page_id)
        self.page_views.delete(page_id)
        return removed

    def delete_page(self, page_id: str) -> bool:
        """Delete a page and everything derived from it.

        Removes its knowledge node (stripping it from the parent's children
        and detaching its own children), its bookmark and its view record,
        all in one transaction. Returns False if the page did not exist.
        """
        with self.db.transaction():
            return self._cascade(page_id)

    def delete_all_pages(self) -> int:
        """Delete every page with its knowledge nodes, bookmarks and views.

        The current-session pointer is cleared too, since its trail can only
        name deleted pages. Returns the number of pages removed.
        """
        with self.db.transaction():
            removed = self.pages.delete_all()
            self.knowledge.delete_all()
            self.bookmarks.delete_all()
            self.page_views.delete_all()
            self.sessions.set_current(None)
        logger.info(f"Deleted {removed} page(s) from library '{self.name}'")
        return removed

    def remove_duplicate_pages(self) -> int:
        """Keep only the newest page of each normalized title.

        Runs as a single transaction; concurrent readers see either the
        original set or the deduplicated one. Returns the number removed.
        """
        with self.db.transaction():
            losers = self.pages.duplicate_ids()
            for page_id in losers:
                self._cascade(page_id)
        if losers:
            logger.info(f"Removed {len(losers)} duplicate page(s) from library '{self.name}'")
        return len(losers)

    def close(self) -> None:
        self.db.close()
