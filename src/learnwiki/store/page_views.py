"""Page view accounting."""

from __future__ import annotations

import sqlite3
from typing import Optional

from learnwiki.db.connection import Database
from learnwiki.errors import StorageUnavailableError
from learnwiki.store.schemas import PageView, now_ms


class PageViewRepository:
    """SQLite-backed per-page view counters of one library."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def _row_to_view(self, row: sqlite3.Row) -> PageView:
        return PageView(
            page_id=row["page_id"],
            first_viewed_at=row["first_viewed_at"],
            last_viewed_at=row["last_viewed_at"],
            view_count=row["view_count"],
        )

    def get_all(self) -> list[PageView]:
        """List view records, most recently viewed first."""
        cursor = self.db.execute("SELECT * FROM page_views ORDER BY last_viewed_at DESC")
        return [self._row_to_view(row) for row in cursor.fetchall()]

    def get(self, page_id: str) -> Optional[PageView]:
        row = self.db.execute("SELECT * FROM page_views WHERE page_id = ?", (page_id,)).fetchone()
        return self._row_to_view(row) if row else None

    def viewed_ids(self) -> list[str]:
        """IDs of every viewed page, for cheap membership checks."""
        cursor = self.db.execute("SELECT page_id FROM page_views")
        return [row["page_id"] for row in cursor.fetchall()]

    def record_view(self, page_id: str, viewed_at: Optional[int] = None) -> PageView:
        """Count one view of a page.

        The first view creates the row with a count of 1. Later views bump the
        count and lastViewedAt; firstViewedAt never changes.
        """
        viewed_at = now_ms() if viewed_at is None else viewed_at
        with self.db.transaction():
            self.db.execute(
                """
                INSERT INTO page_views (page_id, first_viewed_at, last_viewed_at, view_count)
                VALUES (?, ?, ?, 1)
                ON CONFLICT(page_id) DO UPDATE SET
                    last_viewed_at = excluded.last_viewed_at,
                    view_count = view_count + 1
                """,
                (page_id, viewed_at, viewed_at),
            )
            view = self.get(page_id)
        if view is None:
            raise StorageUnavailableError(f"View record for {page_id} was not written")
        return view

    def save(self, view: PageView) -> PageView:
        """Insert a view record or fully replace the one for the same page."""
        self.db.execute(
            """
            INSERT OR REPLACE INTO page_views
            (page_id, first_viewed_at, last_viewed_at, view_count)
            VALUES (?, ?, ?, ?)
            """,
            (view.page_id, view.first_viewed_at, view.last_viewed_at, view.view_count),
        )
        self.db.commit()
        return view

    def delete(self, page_id: str) -> bool:
        cursor = self.db.execute("DELETE FROM page_views WHERE page_id = ?", (page_id,))
        self.db.commit()
        return cursor.rowcount > 0

    def delete_all(self) -> int:
        cursor = self.db.execute("DELETE FROM page_views")
        self.db.commit()
        return cursor.rowcount
