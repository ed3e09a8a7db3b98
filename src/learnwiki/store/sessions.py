"""Learning session repository and the per-library current-session pointer."""

from __future__ import annotations

import json
import sqlite3
from typing import Optional

from learnwiki.constants import CURRENT_SESSION_KEY
from learnwiki.db.connection import Database
from learnwiki.store.schemas import Breadcrumb, LearningSession


class SessionRepository:
    """SQLite-backed learning sessions of one library."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def _row_to_session(self, row: sqlite3.Row) -> LearningSession:
        return LearningSession(
            id=row["id"],
            name=row["name"],
            started_at=row["started_at"],
            pages=json.loads(row["pages"]),
            current_page_id=row["current_page_id"],
            breadcrumbs=[Breadcrumb(**crumb) for crumb in json.loads(row["breadcrumbs"])],
        )

    def get_all(self) -> list[LearningSession]:
        """List all sessions, most recently started first."""
        cursor = self.db.execute("SELECT * FROM learning_sessions ORDER BY started_at DESC")
        return [self._row_to_session(row) for row in cursor.fetchall()]

    def get(self, session_id: str) -> Optional[LearningSession]:
        """Get a session by ID. Returns None if not found."""
        row = self.db.execute(
            "SELECT * FROM learning_sessions WHERE id = ?", (session_id,)
        ).fetchone()
        return self._row_to_session(row) if row else None

    def save(self, session: LearningSession) -> LearningSession:
        """Insert a session or fully replace the one with the same ID."""
        self.db.execute(
            """
            INSERT OR REPLACE INTO learning_sessions
            (id, name, started_at, pages, current_page_id, breadcrumbs)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                session.id,
                session.name,
                session.started_at,
                json.dumps(session.pages),
                session.current_page_id,
                json.dumps([crumb.model_dump() for crumb in session.breadcrumbs]),
            ),
        )
        self.db.commit()
        return session

    def delete(self, session_id: str) -> bool:
        with self.db.transaction():
            cursor = self.db.execute("DELETE FROM learning_sessions WHERE id = ?", (session_id,))
            if self.get_current_id() == session_id:
                self.set_current(None)
        return cursor.rowcount > 0

    def delete_all(self) -> int:
        """Delete every session and clear the current-session pointer."""
        with self.db.transaction():
            cursor = self.db.execute("DELETE FROM learning_sessions")
            self.set_current(None)
        return cursor.rowcount

    def get_current_id(self) -> Optional[str]:
        """ID of the current session, or None if none is set."""
        row = self.db.execute(
            "SELECT value FROM app_state WHERE key = ?", (CURRENT_SESSION_KEY,)
        ).fetchone()
        return row["value"] if row else None

    def set_current(self, session_id: Optional[str]) -> None:
        """Point the library at a session. None clears the pointer."""
        if session_id is None:
            self.db.execute("DELETE FROM app_state WHERE key = ?", (CURRENT_SESSION_KEY,))
        else:
            self.db.execute(
                "INSERT OR REPLACE INTO app_state (key, value) VALUES (?, ?)",
                (CURRENT_SESSION_KEY, session_id),
            )
        self.db.commit()

    def get_current(self) -> Optional[LearningSession]:
        """The current session, or None if unset or dangling."""
        session_id = self.get_current_id()
        return self.get(session_id) if session_id else None
