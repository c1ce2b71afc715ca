from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

from gatehouse_core.errors import (
    AccountCreationError,
    GateError,
    NonLocalAttemptError,
    ThemeUnavailableError,
)
from gatehouse_core.features import Feature, FeatureFlags
from gatehouse_core.themes import Theme
from gatehouse_core.welcome.context import RequestContext
from gatehouse_core.welcome.csrf import CsrfGuard
from gatehouse_core.welcome.origin import OriginClassifier
from gatehouse_core.welcome.state import BootstrapState

logger = logging.getLogger(__name__)

INDEX_TEMPLATE = "index.html"
RESOURCES_PATH = "welcome-content"

USER_CREATED = "User created"
USERNAME_MISSING = "Username is missing"
PASSWORD_MISSING = "Password is missing"
PASSWORD_MISMATCH = "Password and confirmation doesn't match"


class AccountStore(Protocol):
    def account_exists(self) -> bool: ...

    def create_account(self, username: str, password: str) -> None: ...


class ThemeSource(Protocol):
    def get_active_theme(self) -> Theme | None: ...


class GateState(StrEnum):
    NOT_NEEDED = "not_needed"
    NEEDS_SETUP = "needs_setup"


@dataclass(frozen=True)
class CreationRequest:
    username: str | None = None
    password: str | None = None
    password_confirmation: str | None = None
    state_checker: str | None = None


@dataclass(frozen=True)
class PageResult:
    status_code: int
    body: str | None = None
    location: str | None = None


class BootstrapGate:
    """Decides what the welcome page does for each request.

    GET renders the page (or redirects to the admin console); POST creates the
    initial administrator when one is still needed. Rejections are raised as
    GateError subclasses and turned into responses by the router.
    """

    def __init__(
        self,
        *,
        state: BootstrapState,
        accounts: AccountStore,
        themes: ThemeSource,
        features: FeatureFlags,
        csrf: CsrfGuard,
        origin: OriginClassifier,
        admin_console_path: str = "/admin/",
        local_admin_url: str = "",
        admin_creation_message: str = "",
        product_name: str = "Gatehouse",
        product_version: str = "",
    ) -> None:
        self.state = state
        self.accounts = accounts
        self.themes = themes
        self.features = features
        self.csrf = csrf
        self.origin = origin
        self.admin_console_path = admin_console_path
        self.local_admin_url = local_admin_url
        self.admin_creation_message = admin_creation_message
        self.product_name = product_name
        self.product_version = product_version

    def current_state(self) -> GateState:
        if self.state.needs_bootstrap():
            return GateState.NEEDS_SETUP
        return GateState.NOT_NEEDED

    def admin_url(self, ctx: RequestContext) -> str:
        return ctx.base_url.rstrip("/") + "/" + self.admin_console_path.lstrip("/")

    def render_page(
        self,
        ctx: RequestContext,
        *,
        success_message: str | None = None,
        error_message: str | None = None,
    ) -> PageResult:
        theme = self.themes.get_active_theme()
        if theme is None:
            raise ThemeUnavailableError("No active theme")

        bootstrap = self.current_state() is GateState.NEEDS_SETUP
        admin_console_enabled = self.features.is_feature_enabled(Feature.ADMIN_CONSOLE)
        redirect_to_admin = theme.get_bool_property("redirectToAdmin")
        admin_url = self.admin_url(ctx)

        if redirect_to_admin and not bootstrap and admin_console_enabled and success_message is None:
            return PageResult(status_code=302, location=admin_url)

        local_user = self.origin.is_local(ctx)
        view_model: dict[str, Any] = {
            "bootstrap": bootstrap,
            "admin_console_enabled": admin_console_enabled,
            "properties": theme.properties,
            "admin_url": admin_url,
            "base_url": ctx.base_url,
            "product_name": self.product_name,
            "product_version": self.product_version,
            "resources_path": RESOURCES_PATH,
            "local_user": local_user,
        }

        if bootstrap:
            view_model["local_admin_url"] = self.local_admin_url
            view_model["admin_user_creation_message"] = self.admin_creation_message
            if local_user:
                view_model["state_checker"] = self.csrf.issue(ctx)

        if success_message is not None:
            view_model["success_message"] = success_message
        if error_message is not None:
            view_model["error_message"] = error_message

        body = theme.render(view_model, INDEX_TEMPLATE)
        return PageResult(status_code=200 if error_message is None else 400, body=body)

    def submit(self, ctx: RequestContext, form: CreationRequest) -> PageResult:
        if self.current_state() is GateState.NOT_NEEDED:
            return self.render_page(ctx)

        if not self.origin.is_local(ctx):
            logger.warning(
                "Rejected non-local attempt to create initial user from %s", ctx.remote_address
            )
            raise NonLocalAttemptError(f"Non-local attempt from {ctx.remote_address}")

        self.csrf.check(ctx, form.state_checker)

        username = (form.username or "").strip()
        if not username:
            return self.render_page(ctx, error_message=USERNAME_MISSING)

        password = form.password
        if not password:
            return self.render_page(ctx, error_message=PASSWORD_MISSING)

        if password != form.password_confirmation:
            return self.render_page(ctx, error_message=PASSWORD_MISMATCH)

        self.csrf.expire(ctx)

        # The token is already expired; failures must stay GateErrors so the
        # expiring cookie is still sent.
        try:
            self.accounts.create_account(username, password)
        except GateError:
            raise
        except Exception as exc:
            raise AccountCreationError(f"Failed to create {username!r}: {exc}") from exc

        self.state.mark_satisfied()
        logger.info("Created initial admin user with username %s", username)
        return self.render_page(ctx, success_message=USER_CREATED)
