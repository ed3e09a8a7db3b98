"""Database migrations and schema management for library stores."""

from learnwiki.db.connection import Database

# Schema version for tracking migrations
SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Generated wiki pages
-- Lists are JSON arrays; created_at is epoch milliseconds
CREATE TABLE IF NOT EXISTS wiki_pages (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    related_topics TEXT NOT NULL,
    suggested_questions TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    parent_id TEXT,  -- Weak reference to the page this one was spawned from
    is_placeholder INTEGER NOT NULL DEFAULT 0,
    mindmap_position TEXT  -- JSON {"x": .., "y": ..}, stored opaquely
);

-- Browsing paths through pages
CREATE TABLE IF NOT EXISTS learning_sessions (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    started_at INTEGER NOT NULL,
    pages TEXT NOT NULL,  -- JSON array of visited page ids
    current_page_id TEXT NOT NULL,
    breadcrumbs TEXT NOT NULL  -- JSON array of {"id", "title"}, most recent last
);

-- Pinned pages, first write wins
CREATE TABLE IF NOT EXISTS bookmarks (
    page_id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    timestamp INTEGER NOT NULL
);

-- Tree mirroring page ancestry
CREATE TABLE IF NOT EXISTS knowledge_nodes (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    children TEXT NOT NULL,  -- JSON array of child ids, append-only
    parent TEXT,
    depth INTEGER NOT NULL
);

-- Per-page view accounting
CREATE TABLE IF NOT EXISTS page_views (
    page_id TEXT PRIMARY KEY,
    first_viewed_at INTEGER NOT NULL,
    last_viewed_at INTEGER NOT NULL,
    view_count INTEGER NOT NULL DEFAULT 1
);

-- Generation job tracking
CREATE TABLE IF NOT EXISTS generation_jobs (
    id TEXT PRIMARY KEY,
    status TEXT NOT NULL DEFAULT 'pending',  -- 'pending', 'processing', 'completed', 'failed'
    type TEXT NOT NULL,  -- 'wiki_page', 'question', 'selection'
    input TEXT NOT NULL,  -- JSON payload matching type
    output TEXT,  -- JSON page, set when completed
    error TEXT,  -- Set when failed
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

-- Small key-value area (current session pointer)
CREATE TABLE IF NOT EXISTS app_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_pages_title ON wiki_pages(title);
CREATE INDEX IF NOT EXISTS idx_pages_parent ON wiki_pages(parent_id);
CREATE INDEX IF NOT EXISTS idx_pages_created ON wiki_pages(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_sessions_started ON learning_sessions(started_at DESC);
CREATE INDEX IF NOT EXISTS idx_bookmarks_timestamp ON bookmarks(timestamp DESC);
CREATE INDEX IF NOT EXISTS idx_nodes_parent ON knowledge_nodes(parent);
CREATE INDEX IF NOT EXISTS idx_page_views_last ON page_views(last_viewed_at DESC);
CREATE INDEX IF NOT EXISTS idx_jobs_status ON generation_jobs(status, created_at);
CREATE INDEX IF NOT EXISTS idx_jobs_created ON generation_jobs(created_at DESC);
"""


def run_migrations(db: Database) -> None:
    """Run database migrations to set up or upgrade schema.

    Args:
        db: Database connection to run migrations on.
    """
    exists = db.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
    ).fetchone()
    current_version = 0
    if exists:
        result = db.execute("SELECT MAX(version) FROM schema_version").fetchone()
        current_version = result[0] or 0

    if current_version < SCHEMA_VERSION:
        # executescript auto-commits, so the version insert is handled separately
        db.executescript(SCHEMA_SQL)

        db.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        db.commit()
