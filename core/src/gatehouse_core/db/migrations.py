from __future__ import annotations

MIGRATIONS: list[tuple[str, str]] = [
    (
        "0001_accounts",
        """
CREATE TABLE IF NOT EXISTS accounts (
    account_id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    password_hash TEXT NOT NULL,
    is_admin INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    UNIQUE(username)
);

CREATE INDEX IF NOT EXISTS idx_accounts_is_admin ON accounts(is_admin);
""",
    )
]
