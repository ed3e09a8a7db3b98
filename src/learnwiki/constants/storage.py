"""Library (tenant store) layout and naming.

Each library is an independent SQLite file under the data directory. These
settings control how library names map to files and how requests select a
library.
"""

# =============================================================================
# Library Names
# =============================================================================
# Library names become part of a file name, so they are restricted to a safe
# character set. The default library always exists and cannot be deleted.

DEFAULT_LIBRARY = "default"
LIBRARY_NAME_PATTERN = r"^[a-zA-Z0-9_-]+$"

# =============================================================================
# File Layout
# =============================================================================
# Libraries live in {data_dir}/libraries/wiki-{name}.db.

LIBRARIES_DIR = "libraries"
LIBRARY_FILE_PREFIX = "wiki-"
LIBRARY_FILE_SUFFIX = ".db"

# =============================================================================
# Request Scoping
# =============================================================================
# Every API call names its library in this header. A missing or blank header
# selects the default library.

LIBRARY_HEADER = "x-database-name"

# =============================================================================
# Sessions
# =============================================================================
# Breadcrumb trails keep only the most recent entries. Crumbs whose id starts
# with LOADING_PREFIX stand in for pages that are still being generated.

BREADCRUMB_LIMIT = 10
LOADING_PREFIX = "loading-"
CURRENT_SESSION_KEY = "current_session"
