from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

APP_DIR_NAME = "gatehouse"


@dataclass(frozen=True)
class GatehousePaths:
    home: Path
    db_dir: Path
    logs_dir: Path
    config_dir: Path
    themes_dir: Path

    @property
    def core_config_path(self) -> Path:
        return self.config_dir / "core.json"


def resolve_gatehouse_home(environ: dict[str, str] | None = None) -> Path:
    """Return the data directory for this install.

    `GATEHOUSE_HOME` wins; otherwise `$XDG_DATA_HOME/gatehouse`, falling back
    to `~/.local/share/gatehouse`.
    """

    env = os.environ if environ is None else environ

    raw = (env.get("GATEHOUSE_HOME") or "").strip()
    if raw:
        candidate = Path(raw).expanduser()
        # Relative values hang off the user's home, never the CWD.
        if not candidate.is_absolute():
            candidate = Path.home() / candidate
        return candidate.resolve()

    xdg = (env.get("XDG_DATA_HOME") or "").strip()
    data_root = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return (data_root / APP_DIR_NAME).resolve()


def ensure_gatehouse_layout(home: Path) -> GatehousePaths:
    paths = GatehousePaths(
        home=home,
        db_dir=home / "db",
        logs_dir=home / "logs",
        config_dir=home / "config",
        themes_dir=home / "themes",
    )
    for path in (paths.home, paths.db_dir, paths.logs_dir, paths.config_dir, paths.themes_dir):
        path.mkdir(parents=True, exist_ok=True)
    return paths
