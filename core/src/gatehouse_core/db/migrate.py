from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from gatehouse_core.db.migrations import MIGRATIONS

logger = logging.getLogger(__name__)


def apply_migrations(db_path: Path) -> list[str]:
    """Apply pending migrations to a SQLite DB and return the names applied.

    Safe to run multiple times; works from a blank DB to latest.
    """

    db_path.parent.mkdir(parents=True, exist_ok=True)

    applied_now: list[str] = []
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations ("
            " name TEXT PRIMARY KEY,"
            " applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"
            ");"
        )

        applied = {
            row[0] for row in conn.execute("SELECT name FROM schema_migrations;").fetchall()
        }

        for name, sql in MIGRATIONS:
            if name in applied:
                continue

            conn.executescript(sql)
            conn.execute("INSERT INTO schema_migrations (name) VALUES (?);", (name,))
            applied_now.append(name)
            logger.info("Applied migration %s", name)

    return applied_now
