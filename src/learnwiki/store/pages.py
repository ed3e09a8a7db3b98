"""Wiki page repository."""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from learnwiki.db.connection import Database
from learnwiki.store.schemas import DuplicateGroup, MindmapPosition, WikiPage

logger = logging.getLogger(__name__)


def normalize_title(title: str) -> str:
    """Case- and whitespace-insensitive form of a title used for matching."""
    return " ".join(title.split()).casefold()


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PageRepository:
    """SQLite-backed wiki pages of one library."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def _row_to_page(self, row: sqlite3.Row) -> WikiPage:
        """Convert a database row to a WikiPage."""
        position = row["mindmap_position"]
        return WikiPage(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            related_topics=json.loads(row["related_topics"]),
            suggested_questions=json.loads(row["suggested_questions"]),
            created_at=row["created_at"],
            parent_id=row["parent_id"],
            is_placeholder=bool(row["is_placeholder"]),
            mindmap_position=MindmapPosition.model_validate_json(position) if position else None,
        )

    def get_all(self) -> list[WikiPage]:
        """List all pages, newest first."""
        cursor = self.db.execute("SELECT * FROM wiki_pages ORDER BY created_at DESC")
        return [self._row_to_page(row) for row in cursor.fetchall()]

    def get(self, page_id: str) -> Optional[WikiPage]:
        """Get a page by ID. Returns None if not found."""
        row = self.db.execute("SELECT * FROM wiki_pages WHERE id = ?", (page_id,)).fetchone()
        return self._row_to_page(row) if row else None

    def exists(self, page_id: str) -> bool:
        row = self.db.execute("SELECT 1 FROM wiki_pages WHERE id = ?", (page_id,)).fetchone()
        return row is not None

    def save(self, page: WikiPage) -> WikiPage:
        """Insert a page or fully replace the one with the same ID."""
        self.db.execute(
            """
            INSERT OR REPLACE INTO wiki_pages
            (id, title, content, related_topics, suggested_questions,
             created_at, parent_id, is_placeholder, mindmap_position)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                page.id,
                page.title,
                page.content,
                json.dumps(page.related_topics),
                json.dumps(page.suggested_questions),
                page.created_at,
                page.parent_id,
                1 if page.is_placeholder else 0,
                page.mindmap_position.model_dump_json() if page.mindmap_position else None,
            ),
        )
        self.db.commit()
        return page

    def search(self, query: str) -> list[WikiPage]:
        """Case-insensitive substring search over title and content, newest first."""
        pattern = f"%{_escape_like(query.lower())}%"
        cursor = self.db.execute(
            """
            SELECT * FROM wiki_pages
            WHERE LOWER(title) LIKE ? ESCAPE '\\' OR LOWER(content) LIKE ? ESCAPE '\\'
            ORDER BY created_at DESC
            """,
            (pattern, pattern),
        )
        return [self._row_to_page(row) for row in cursor.fetchall()]

    def find_by_title(self, title: str) -> Optional[WikiPage]:
        """Newest page whose normalized title equals the given one."""
        wanted = normalize_title(title)
        for page in self.get_all():
            if normalize_title(page.title) == wanted:
                return page
        return None

    def duplicate_groups(self) -> list[DuplicateGroup]:
        """Report groups of pages sharing a normalized title, without deleting."""
        groups: dict[str, list[WikiPage]] = {}
        for page in self.get_all():
            groups.setdefault(normalize_title(page.title), []).append(page)
        return [
            DuplicateGroup(title=pages[0].title, count=len(pages), pages=pages)
            for pages in groups.values()
            if len(pages) > 1
        ]

    def duplicate_ids(self) -> list[str]:
        """IDs of every page that is not the newest of its title group."""
        cursor = self.db.execute("SELECT id, title FROM wiki_pages ORDER BY created_at DESC, id")
        seen: set[str] = set()
        losers = []
        for row in cursor.fetchall():
            key = normalize_title(row["title"])
            if key in seen:
                losers.append(row["id"])
            else:
                seen.add(key)
        return losers

    def delete(self, page_id: str) -> bool:
        """Delete the page row only. Returns True if a row was removed."""
        cursor = self.db.execute("DELETE FROM wiki_pages WHERE id = ?", (page_id,))
        self.db.commit()
        return cursor.rowcount > 0

    def delete_all(self) -> int:
        cursor = self.db.execute("DELETE FROM wiki_pages")
        self.db.commit()
        return cursor.rowcount
