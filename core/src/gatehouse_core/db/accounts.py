from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError

from gatehouse_core.db.ids import new_account_id
from gatehouse_core.errors import AccountCreationError

_hasher = PasswordHasher()


def _utc_now_sqlite_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


@dataclass(frozen=True)
class AccountRow:
    account_id: str
    username: str
    password_hash: str
    is_admin: bool
    created_at: str


def _row_from_db(row: sqlite3.Row) -> AccountRow:
    return AccountRow(
        account_id=row["account_id"],
        username=row["username"],
        password_hash=row["password_hash"],
        is_admin=bool(int(row["is_admin"])),
        created_at=row["created_at"],
    )


def hash_password(password: str) -> str:
    return str(_hasher.hash(password))


def verify_password(account: AccountRow, password: str) -> bool:
    try:
        return bool(_hasher.verify(account.password_hash, password))
    except VerificationError:
        return False


def admin_account_exists(db_path: Path) -> bool:
    with _connect(db_path) as conn:
        row = conn.execute("SELECT 1 FROM accounts WHERE is_admin = 1 LIMIT 1;").fetchone()
    return row is not None


def get_account_by_username(db_path: Path, *, username: str) -> AccountRow | None:
    with _connect(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM accounts WHERE username = ?;",
            (username,),
        ).fetchone()
    return _row_from_db(row) if row is not None else None


def _insert_account(
    conn: sqlite3.Connection, *, username: str, password: str, is_admin: bool
) -> AccountRow:
    row = AccountRow(
        account_id=new_account_id(),
        username=username,
        password_hash=hash_password(password),
        is_admin=is_admin,
        created_at=_utc_now_sqlite_iso(),
    )
    try:
        conn.execute(
            """
            INSERT INTO accounts (account_id, username, password_hash, is_admin, created_at)
            VALUES (?, ?, ?, ?, ?);
            """.strip(),
            (row.account_id, row.username, row.password_hash, int(row.is_admin), row.created_at),
        )
    except sqlite3.IntegrityError as exc:
        raise AccountCreationError(f"Account {username!r} already exists") from exc
    return row


def create_account(
    db_path: Path, *, username: str, password: str, is_admin: bool = False
) -> AccountRow:
    with _connect(db_path) as conn:
        return _insert_account(conn, username=username, password=password, is_admin=is_admin)


def create_admin_account(db_path: Path, *, username: str, password: str) -> AccountRow:
    """Create the initial administrator.

    Refuses when an administrator already exists; the check and the insert share
    one write transaction so concurrent callers cannot both succeed.
    """

    with _connect(db_path) as conn:
        conn.execute("BEGIN IMMEDIATE;")
        existing = conn.execute("SELECT 1 FROM accounts WHERE is_admin = 1 LIMIT 1;").fetchone()
        if existing is not None:
            raise AccountCreationError("Can't create initial user as an administrator exists")
        return _insert_account(conn, username=username, password=password, is_admin=True)


class SqliteAccountStore:
    """Account store collaborator backed by the core SQLite database."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def account_exists(self) -> bool:
        return admin_account_exists(self.db_path)

    def create_account(self, username: str, password: str) -> None:
        create_admin_account(self.db_path, username=username, password=password)
