"""learnwiki: a personal wiki generator backed by per-library SQLite stores."""

__version__ = "0.1.0"
