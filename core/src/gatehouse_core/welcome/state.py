from __future__ import annotations

import threading
from collections.abc import Callable


class BootstrapState:
    """Process-wide "is an initial administrator still needed?" flag.

    The first read queries `account_exists` once under a lock; later reads
    return the cached answer without locking. Once satisfied, it stays so.
    """

    def __init__(self, account_exists: Callable[[], bool]) -> None:
        self._account_exists = account_exists
        self._lock = threading.Lock()
        self._needs_bootstrap: bool | None = None

    def needs_bootstrap(self) -> bool:
        value = self._needs_bootstrap
        if value is None:
            with self._lock:
                value = self._needs_bootstrap
                if value is None:
                    value = not self._account_exists()
                    self._needs_bootstrap = value
        return value

    def mark_satisfied(self) -> None:
        with self._lock:
            self._needs_bootstrap = False
