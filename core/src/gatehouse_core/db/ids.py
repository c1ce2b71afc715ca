from __future__ import annotations

import hashlib
import uuid


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def new_account_id() -> str:
    """Generate a new account ID (64-char SHA-256 hex of a random UUID)."""

    return sha256_hex(uuid.uuid4().bytes)
