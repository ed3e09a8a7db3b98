"""Library registry: maps library names to open per-library stores."""

from __future__ import annotations

import logging
import re
import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from learnwiki.constants import (
    DEFAULT_LIBRARY,
    LIBRARY_FILE_PREFIX,
    LIBRARY_FILE_SUFFIX,
    LIBRARY_NAME_PATTERN,
)
from learnwiki.db.connection import Database
from learnwiki.db.migrations import run_migrations
from learnwiki.errors import ProtectedLibraryError, ValidationError
from learnwiki.store.tenant import TenantStore

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(LIBRARY_NAME_PATTERN)


def validate_library_name(name: str) -> str:
    """Return the name unchanged if it is a safe library identifier.

    Raises:
        ValidationError: If the name contains anything but letters, digits,
            hyphens and underscores.
    """
    if not isinstance(name, str) or not _NAME_RE.fullmatch(name):
        raise ValidationError(
            "Invalid library name. Use only letters, numbers, hyphens, and underscores."
        )
    return name


@dataclass
class LibraryInfo:
    """Filesystem metadata for one library."""

    name: str
    path: Path
    size: int
    created: datetime
    modified: datetime


class TenantRegistry:
    """Get-or-create registry of library stores.

    Structure:
        {libraries_dir}/
            wiki-default.db
            wiki-{name}.db

    Open handles are cached and reused. When more than ``max_open`` are open
    the least recently used one is closed, except the default library which
    stays open for the lifetime of the registry.
    """

    def __init__(self, libraries_dir: Path, max_open: int = 16) -> None:
        self.libraries_dir = libraries_dir
        self.max_open = max(1, max_open)
        self._lock = threading.RLock()
        self._open: OrderedDict[str, TenantStore] = OrderedDict()
        libraries_dir.mkdir(parents=True, exist_ok=True)
        self.get(DEFAULT_LIBRARY)

    def path_for(self, name: str) -> Path:
        """Physical file backing a library."""
        validate_library_name(name)
        return self.libraries_dir / f"{LIBRARY_FILE_PREFIX}{name}{LIBRARY_FILE_SUFFIX}"

    def get(self, name: Optional[str] = None) -> TenantStore:
        """Return the store for a library, creating it on first use.

        A missing or blank name selects the default library.
        """
        name = validate_library_name(name or DEFAULT_LIBRARY)
        with self._lock:
            store = self._open.get(name)
            if store is not None:
                self._open.move_to_end(name)
                return store

            path = self.path_for(name)
            is_new = not path.exists()
            db = Database(path)
            run_migrations(db)
            store = TenantStore(name, db)
            self._open[name] = store
            logger.info(f"{'Created' if is_new else 'Opened'} library '{name}' at {path}")
            self._evict()
            return store

    def _evict(self) -> None:
        while len(self._open) > self.max_open:
            victim = next((n for n in self._open if n != DEFAULT_LIBRARY), None)
            if victim is None:
                return
            self._open.pop(victim).close()
            logger.info(f"Closed idle library '{victim}'")

    def create(self, name: str) -> bool:
        """Create a library. Returns False if it already exists."""
        with self._lock:
            if self.exists(name):
                return False
            self.get(name)
            return True

    def exists(self, name: str) -> bool:
        """Check whether a library has been created."""
        with self._lock:
            return name in self._open or self.path_for(name).exists()

    def list_names(self) -> list[str]:
        """List all library names, sorted. Always includes the default."""
        names = {DEFAULT_LIBRARY}
        for path in self.libraries_dir.glob(f"{LIBRARY_FILE_PREFIX}*{LIBRARY_FILE_SUFFIX}"):
            name = path.name[len(LIBRARY_FILE_PREFIX) : -len(LIBRARY_FILE_SUFFIX)]
            if _NAME_RE.fullmatch(name):
                names.add(name)
        return sorted(names)

    def info(self, name: str) -> Optional[LibraryInfo]:
        """Get size and timestamps for a library. Returns None if not found."""
        path = self.path_for(name)
        try:
            st = path.stat()
        except FileNotFoundError:
            return None
        # st_birthtime only exists on some platforms
        created = getattr(st, "st_birthtime", st.st_ctime)
        return LibraryInfo(
            name=name,
            path=path,
            size=st.st_size,
            created=datetime.fromtimestamp(created, tz=timezone.utc),
            modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    def delete(self, name: str) -> bool:
        """Delete a library and its file. Returns False if it does not exist.

        Raises:
            ProtectedLibraryError: For the default library.
        """
        validate_library_name(name)
        if name == DEFAULT_LIBRARY:
            raise ProtectedLibraryError("Cannot delete the default library")

        with self._lock:
            store = self._open.pop(name, None)
            if store is not None:
                store.close()
            path = self.path_for(name)
            if not path.exists():
                return False
            path.unlink()
            for suffix in ("-journal", "-wal", "-shm"):
                sidecar = path.with_name(path.name + suffix)
                if sidecar.exists():
                    sidecar.unlink()
            logger.info(f"Deleted library '{name}'")
            return True

    def close_all(self) -> None:
        """Close every cached handle."""
        with self._lock:
            for store in self._open.values():
                store.close()
            self._open.clear()
