from __future__ import annotations

import logging
import os

from gatehouse_core.welcome.gate import AccountStore

logger = logging.getLogger(__name__)

ADMIN_ENV = "GATEHOUSE_ADMIN"
ADMIN_PASSWORD_ENV = "GATEHOUSE_ADMIN_PASSWORD"


def bootstrap_admin_from_env(
    accounts: AccountStore, environ: dict[str, str] | None = None
) -> bool:
    """Create the initial administrator from environment variables.

    Only acts when no administrator exists and both variables are set.
    Returns True when an account was created.
    """

    env = os.environ if environ is None else environ

    username = (env.get(ADMIN_ENV) or "").strip()
    password = env.get(ADMIN_PASSWORD_ENV) or ""
    if not username:
        return False

    if accounts.account_exists():
        return False

    if not password:
        logger.warning("%s is set but %s is empty; skipping", ADMIN_ENV, ADMIN_PASSWORD_ENV)
        return False

    accounts.create_account(username, password)
    logger.info("Created initial admin user with username %s", username)
    return True
