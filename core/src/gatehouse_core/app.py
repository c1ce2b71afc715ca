from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gatehouse_core import __version__
from gatehouse_core.bootstrap import bootstrap_admin_from_env
from gatehouse_core.config import (
    CoreConfig,
    ensure_secret_key,
    load_core_config,
    resolve_configured_paths,
)
from gatehouse_core.db import resolve_db_path
from gatehouse_core.db.accounts import SqliteAccountStore
from gatehouse_core.db.migrate import apply_migrations
from gatehouse_core.errors import GateError, error_response
from gatehouse_core.features import FeatureFlags
from gatehouse_core.home import GatehousePaths, ensure_gatehouse_layout, resolve_gatehouse_home
from gatehouse_core.models import fail
from gatehouse_core.themes import BUNDLED_THEMES_DIR, ThemeProvider
from gatehouse_core.welcome.csrf import CsrfGuard
from gatehouse_core.welcome.gate import BootstrapGate
from gatehouse_core.welcome.origin import OriginClassifier
from gatehouse_core.welcome.router import create_welcome_router
from gatehouse_core.welcome.state import BootstrapState

logger = logging.getLogger(__name__)


def _configure_logging(paths: GatehousePaths, config: CoreConfig) -> None:
    log_path = paths.logs_dir / "core.log"
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=config.logging.max_size_mb * 1024 * 1024,
        backupCount=config.logging.backup_count,
        encoding="utf-8",
    )
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    file_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    # Avoid adding duplicate handlers if reloaded
    if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        root.addHandler(file_handler)


def _local_admin_url(config: CoreConfig) -> str:
    if config.admin.local_admin_url:
        return config.admin.local_admin_url
    suffix = "/" if config.welcome.path == "/" else config.welcome.path + "/"
    return f"http://localhost:{config.network.core_port}{suffix}"


def build_gate(paths: GatehousePaths, config: CoreConfig) -> BootstrapGate:
    db_path = resolve_db_path(paths)
    accounts = SqliteAccountStore(db_path)
    return BootstrapGate(
        state=BootstrapState(accounts.account_exists),
        accounts=accounts,
        themes=ThemeProvider(
            name=config.theme.name,
            themes_dirs=[paths.themes_dir, BUNDLED_THEMES_DIR],
        ),
        features=FeatureFlags(config.features),
        csrf=CsrfGuard(
            config.auth.secret_key or "",
            ttl_seconds=config.bootstrap.csrf_ttl_seconds,
        ),
        origin=OriginClassifier(config.bootstrap.forwarding_headers),
        admin_console_path=config.admin.console_path,
        local_admin_url=_local_admin_url(config),
        admin_creation_message=config.bootstrap.admin_creation_message,
        product_name="Gatehouse",
        product_version=__version__,
    )


def create_app() -> FastAPI:
    home = resolve_gatehouse_home()
    paths = ensure_gatehouse_layout(home)
    config = load_core_config(paths)
    paths = resolve_configured_paths(paths, config)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        nonlocal config
        config = ensure_secret_key(paths, config)
        _configure_logging(paths, config)

        logger.info("Gatehouse Core starting up")
        logger.info("Logs directory: %s", paths.logs_dir)

        db_path = resolve_db_path(paths)
        apply_migrations(db_path)
        bootstrap_admin_from_env(SqliteAccountStore(db_path))

        app.state.gatehouse_home = home
        app.state.gatehouse_paths = paths
        app.state.gatehouse_config = config
        app.state.db_path = db_path
        app.state.static_max_age = config.theme.static_max_age
        app.state.welcome_gate = build_gate(paths, config)

        yield

    app = FastAPI(title="Gatehouse Core", version=__version__, lifespan=_lifespan)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} - {response.status_code}")
        return response

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=fail(
                code="validation_error",
                message="Request validation failed",
                details=exc.errors(),
            ).model_dump(mode="json"),
        )

    def _status_to_code(status_code: int) -> str:
        if status_code == 403:
            return "forbidden"
        if status_code == 404:
            return "not_found"
        if status_code == 405:
            return "method_not_allowed"
        if 400 <= status_code < 500:
            return "client_error"
        return "server_error"

    @app.exception_handler(GateError)
    async def _gate_error_handler(request: Request, exc: GateError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request to %s failed: %s", request.url.path, exc)
        return error_response(exc)

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(
                code=_status_to_code(exc.status_code),
                message=str(exc.detail),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(
                code=_status_to_code(exc.status_code),
                message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content=fail(code="internal_error", message="Internal server error").model_dump(
                mode="json"
            ),
        )

    app.include_router(create_welcome_router(config.welcome.path))

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app
