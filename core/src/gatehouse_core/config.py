from __future__ import annotations

import json
import secrets
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from gatehouse_core.home import GatehousePaths

DEFAULT_ADMIN_CREATION_MESSAGE = (
    "or set the environment variables GATEHOUSE_ADMIN and GATEHOUSE_ADMIN_PASSWORD "
    "before starting the server"
)


class NetworkConfig(BaseModel):
    bind_host: str = Field(default="127.0.0.1")
    core_port: int = Field(default=8080, ge=1, le=65535)


class PathOverrides(BaseModel):
    db_dir: str | None = None
    logs_dir: str | None = None
    themes_dir: str | None = None


class AuthConfig(BaseModel):
    secret_key: str | None = Field(
        default=None,
        description="Key used to sign welcome-form state tokens; generated on first start",
    )


class LoggingConfig(BaseModel):
    max_size_mb: int = Field(
        default=10, ge=1, description="Max size of a log file in MB before rolling."
    )
    backup_count: int = Field(default=5, ge=1, description="Number of log archives to keep.")


class WelcomeConfig(BaseModel):
    path: str = Field(default="/", description="Mount path of the welcome page")

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        value = (value or "").strip()
        if not value.startswith("/"):
            value = "/" + value
        if len(value) > 1:
            value = value.rstrip("/") or "/"
        return value


class ThemeConfig(BaseModel):
    name: str = Field(default="default")
    static_max_age: int = Field(
        default=2592000, ge=0, description="Cache-Control max-age for theme resources"
    )


class FeaturesConfig(BaseModel):
    admin_console: bool = Field(default=True)


class AdminConfig(BaseModel):
    console_path: str = Field(default="/admin/")
    local_admin_url: str | None = Field(
        default=None,
        description=(
            "URL shown to remote visitors for local setup. If omitted, derived from "
            "localhost + network.core_port + welcome.path."
        ),
    )


class BootstrapConfig(BaseModel):
    csrf_ttl_seconds: int = Field(default=300, ge=1)
    forwarding_headers: list[str] = Field(
        default_factory=lambda: ["X-Forwarded-For", "Forwarded"],
        description="Headers whose presence marks a request as proxied (never local)",
    )
    admin_creation_message: str = Field(default=DEFAULT_ADMIN_CREATION_MESSAGE)


class CoreConfig(BaseModel):
    version: str = Field(default="1")
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    paths: PathOverrides = Field(default_factory=PathOverrides)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    welcome: WelcomeConfig = Field(default_factory=WelcomeConfig)
    theme: ThemeConfig = Field(default_factory=ThemeConfig)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)


def _read_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_core_config(paths: GatehousePaths) -> CoreConfig:
    """Load config from ${GATEHOUSE_HOME}/config/core.json.

    - If missing: returns defaults.
    - Validation is performed by Pydantic.
    """

    config_path = paths.core_config_path
    if not config_path.exists():
        return CoreConfig()

    raw = _read_json(config_path)
    return CoreConfig.model_validate(raw)


def write_core_config(paths: GatehousePaths, config: CoreConfig) -> None:
    """Persist config to ${GATEHOUSE_HOME}/config/core.json."""

    payload = config.model_dump(mode="json", exclude_none=True)
    paths.config_dir.mkdir(parents=True, exist_ok=True)
    paths.core_config_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def ensure_secret_key(paths: GatehousePaths, config: CoreConfig) -> CoreConfig:
    """Ensure a signing key exists and is stored in config.

    If missing, generate a new key and persist it to core.json.
    """

    raw = (config.auth.secret_key or "").strip()
    if raw:
        return config

    key = secrets.token_urlsafe(32)
    updated_auth = config.auth.model_copy(update={"secret_key": key})
    updated = config.model_copy(update={"auth": updated_auth})
    write_core_config(paths, updated)
    return updated


def resolve_configured_paths(paths: GatehousePaths, config: CoreConfig) -> GatehousePaths:
    """Apply user-configurable path overrides from config.

    config/ itself is not configurable.
    """

    def _resolve_dir(raw: str | None, default: Path) -> Path:
        if raw is None or not str(raw).strip():
            return default
        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = (paths.home / candidate).resolve()
        else:
            candidate = candidate.resolve()
        return candidate

    db_dir = _resolve_dir(config.paths.db_dir, paths.db_dir)
    logs_dir = _resolve_dir(config.paths.logs_dir, paths.logs_dir)
    themes_dir = _resolve_dir(config.paths.themes_dir, paths.themes_dir)

    for p in (db_dir, logs_dir, themes_dir):
        p.mkdir(parents=True, exist_ok=True)

    return GatehousePaths(
        home=paths.home,
        db_dir=db_dir,
        logs_dir=logs_dir,
        config_dir=paths.config_dir,
        themes_dir=themes_dir,
    )
