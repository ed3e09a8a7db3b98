"""Database layer for learnwiki."""

from learnwiki.db.connection import Database
from learnwiki.db.migrations import run_migrations

__all__ = ["Database", "run_migrations"]
