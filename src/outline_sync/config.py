"""Configuration constants for outline-sync."""

import os
from pathlib import Path

# API token location. First file found is used.
API_TOKEN_FILES: list[Path] = [
    Path("~/.config/dynalist-backup-token.txt").expanduser(),
    Path("~/.config/secret/dynalist-backup-token.txt").expanduser(),
    Path(f"/run/user/{os.getuid()}/dynalist-token"),
]

# Directory with the sync database. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/outline-sync").expanduser(),
    Path("~/.config/outline-sync").expanduser(),
]

# Cache directory, used only when caching is requested.
API_CACHE_PREFIX: str = "/tmp/outline-sync-cache/cache-"

DATABASE_NAME = "sync.db"

# Namespace for stored page states (one per host notebook/graph).
DEFAULT_GRAPH = "default"

# Inactivity window before local edits are encoded and published.
DEBOUNCE_SECONDS: float = 1.0

# Property that ties a host page to its shared page id.
SHARED_PAGE_PROPERTY = "samepage"


def resolve_data_directory() -> Path:
    """Return the data directory.

    OUTLINE_SYNC_DATA_DIR wins; otherwise the first existing entry of DATA_DIRECTORIES,
    falling back to the first entry.
    """
    env_dir = os.environ.get("OUTLINE_SYNC_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]
