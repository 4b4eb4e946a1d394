"""Configuration constants for the knowledge base."""

import os
from pathlib import Path

# Database location. KB_DATABASE overrides the default.
DATABASE_ENV_VAR = "KB_DATABASE"
DEFAULT_DATABASE_PATH: Path = Path("~/.local/share/knowledge-base/kb.db").expanduser()

# User recorded as created_by by the CLI. KB_USER overrides the default.
USER_ENV_VAR = "KB_USER"
DEFAULT_USER = "local"

# Overrides the log level chosen by --verbose / quiet mode.
LOG_LEVEL_ENV_VAR = "KB_LOG_LEVEL"

# Seconds SQLite waits for the write lock before giving up.
BUSY_TIMEOUT_SECONDS: float = 5.0

MAX_TITLE_LENGTH = 255

# Recursive descendant queries stop at this depth.
MAX_TREE_DEPTH = 256

# Search paging bounds.
DEFAULT_SEARCH_LIMIT = 20
MAX_SEARCH_LIMIT = 100

# Tokens in an FTS5 snippet fragment.
SNIPPET_TOKENS = 16

# Manual snippet windowing.
SNIPPET_MAX_LENGTH = 200
SNIPPET_LEAD = 50

# Fallback substring window around the first occurrence.
FALLBACK_CONTEXT = 50
FALLBACK_HEAD = 100

# Every fallback result gets the same rank; ordering there is by recency.
FALLBACK_RANK: float = 0.0

ELLIPSIS = "..."
ENGINE_HIGHLIGHT_OPEN = "<b>"
ENGINE_HIGHLIGHT_CLOSE = "</b>"
HIGHLIGHT_OPEN = '<mark class="search-highlight">'
HIGHLIGHT_CLOSE = "</mark>"


def resolve_database_path() -> Path:
    """Return the database path from KB_DATABASE or the default location."""
    env_path = os.environ.get(DATABASE_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_DATABASE_PATH
