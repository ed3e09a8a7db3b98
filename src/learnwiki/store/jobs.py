"""Generation job repository."""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from learnwiki.db.connection import Database
from learnwiki.jobs.models import GenerationJob, JobStatus
from learnwiki.store.schemas import WikiPage, now_ms

logger = logging.getLogger(__name__)


class JobRepository:
    """SQLite-backed generation jobs of one library."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def _row_to_job(self, row: sqlite3.Row) -> GenerationJob:
        return GenerationJob(
            id=row["id"],
            status=row["status"],
            type=row["type"],
            input=json.loads(row["input"]),
            output=WikiPage.model_validate_json(row["output"]) if row["output"] else None,
            error=row["error"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def get_all(self) -> list[GenerationJob]:
        """List all jobs, most recent first."""
        cursor = self.db.execute("SELECT * FROM generation_jobs ORDER BY created_at DESC")
        return [self._row_to_job(row) for row in cursor.fetchall()]

    def get_pending(self) -> list[GenerationJob]:
        """List pending jobs, oldest first."""
        cursor = self.db.execute(
            "SELECT * FROM generation_jobs WHERE status = ? ORDER BY created_at ASC",
            (JobStatus.PENDING.value,),
        )
        return [self._row_to_job(row) for row in cursor.fetchall()]

    def get(self, job_id: str) -> Optional[GenerationJob]:
        """Get a job by ID. Returns None if not found."""
        row = self.db.execute("SELECT * FROM generation_jobs WHERE id = ?", (job_id,)).fetchone()
        return self._row_to_job(row) if row else None

    def exists(self, job_id: str) -> bool:
        row = self.db.execute("SELECT 1 FROM generation_jobs WHERE id = ?", (job_id,)).fetchone()
        return row is not None

    def save(self, job: GenerationJob) -> GenerationJob:
        """Insert a job or fully replace the one with the same ID."""
        self.db.execute(
            """
            INSERT OR REPLACE INTO generation_jobs
            (id, status, type, input, output, error, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                job.id,
                job.status.value,
                job.type.value,
                job.input.model_dump_json(by_alias=True),
                job.output.model_dump_json(by_alias=True) if job.output else None,
                job.error,
                job.created_at,
                job.updated_at,
            ),
        )
        self.db.commit()
        return job

    def update_status(
        self, job_id: str, status: JobStatus, error: Optional[str] = None
    ) -> bool:
        """Set a job's status and error. Returns False if the job does not exist."""
        cursor = self.db.execute(
            "UPDATE generation_jobs SET status = ?, error = ?, updated_at = ? WHERE id = ?",
            (status.value, error, now_ms(), job_id),
        )
        self.db.commit()
        return cursor.rowcount > 0

    def update_output(self, job_id: str, page: WikiPage) -> bool:
        """Record a job's output page and mark it completed."""
        cursor = self.db.execute(
            """
            UPDATE generation_jobs
            SET output = ?, status = ?, error = NULL, updated_at = ?
            WHERE id = ?
            """,
            (page.model_dump_json(by_alias=True), JobStatus.COMPLETED.value, now_ms(), job_id),
        )
        self.db.commit()
        return cursor.rowcount > 0

    def claim(self, job_id: str) -> bool:
        """Move a job from pending to processing.

        The transition is a single conditional UPDATE, so of several
        concurrent callers exactly one sees True.
        """
        cursor = self.db.execute(
            "UPDATE generation_jobs SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
            (JobStatus.PROCESSING.value, now_ms(), job_id, JobStatus.PENDING.value),
        )
        self.db.commit()
        return cursor.rowcount == 1

    def fail_interrupted(self, message: str) -> int:
        """Mark every processing job as failed. Returns the number changed."""
        cursor = self.db.execute(
            "UPDATE generation_jobs SET status = ?, error = ?, updated_at = ? WHERE status = ?",
            (JobStatus.FAILED.value, message, now_ms(), JobStatus.PROCESSING.value),
        )
        self.db.commit()
        return cursor.rowcount

    def delete(self, job_id: str) -> bool:
        cursor = self.db.execute("DELETE FROM generation_jobs WHERE id = ?", (job_id,))
        self.db.commit()
        return cursor.rowcount > 0

    def delete_all(self) -> int:
        cursor = self.db.execute("DELETE FROM generation_jobs")
        self.db.commit()
        return cursor.rowcount
