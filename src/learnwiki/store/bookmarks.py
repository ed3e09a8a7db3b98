"""Bookmark repository."""

from __future__ import annotations

import sqlite3
from typing import Optional

from learnwiki.db.connection import Database
from learnwiki.store.schemas import Bookmark


class BookmarkRepository:
    """SQLite-backed bookmarks of one library. First write wins per page."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def _row_to_bookmark(self, row: sqlite3.Row) -> Bookmark:
        return Bookmark(page_id=row["page_id"], title=row["title"], timestamp=row["timestamp"])

    def get_all(self) -> list[Bookmark]:
        """List bookmarks, most recent first."""
        cursor = self.db.execute("SELECT * FROM bookmarks ORDER BY timestamp DESC")
        return [self._row_to_bookmark(row) for row in cursor.fetchall()]

    def get(self, page_id: str) -> Optional[Bookmark]:
        row = self.db.execute("SELECT * FROM bookmarks WHERE page_id = ?", (page_id,)).fetchone()
        return self._row_to_bookmark(row) if row else None

    def add(self, bookmark: Bookmark) -> bool:
        """Bookmark a page. Returns False if it was already bookmarked."""
        cursor = self.db.execute(
            "INSERT OR IGNORE INTO bookmarks (page_id, title, timestamp) VALUES (?, ?, ?)",
            (bookmark.page_id, bookmark.title, bookmark.timestamp),
        )
        self.db.commit()
        return cursor.rowcount > 0

    def save(self, bookmark: Bookmark) -> Bookmark:
        """Insert a bookmark or fully replace the one for the same page."""
        self.db.execute(
            "INSERT OR REPLACE INTO bookmarks (page_id, title, timestamp) VALUES (?, ?, ?)",
            (bookmark.page_id, bookmark.title, bookmark.timestamp),
        )
        self.db.commit()
        return bookmark

    def delete(self, page_id: str) -> bool:
        cursor = self.db.execute("DELETE FROM bookmarks WHERE page_id = ?", (page_id,))
        self.db.commit()
        return cursor.rowcount > 0

    def delete_all(self) -> int:
        cursor = self.db.execute("DELETE FROM bookmarks")
        self.db.commit()
        return cursor.rowcount
