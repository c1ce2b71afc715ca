from __future__ import annotations

from pathlib import Path

from gatehouse_core.home import GatehousePaths

DEFAULT_DB_FILENAME = "core.sqlite3"


def resolve_db_path(paths: GatehousePaths) -> Path:
    """Resolve the account database path under the configured `db_dir`."""

    return paths.db_dir / DEFAULT_DB_FILENAME
