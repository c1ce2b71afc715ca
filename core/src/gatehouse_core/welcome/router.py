from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.responses import Response

from gatehouse_core.errors import GateError, error_response
from gatehouse_core.themes import Theme
from gatehouse_core.welcome.context import RequestContext, build_request_context
from gatehouse_core.welcome.csrf import STATE_CHECKER_FIELD
from gatehouse_core.welcome.gate import BootstrapGate, CreationRequest, PageResult

logger = logging.getLogger(__name__)


def request_context(request: Request) -> RequestContext:
    return build_request_context(request)


def get_gate(request: Request) -> BootstrapGate:
    gate = getattr(request.app.state, "welcome_gate", None)
    if gate is None:
        raise HTTPException(status_code=500, detail="Welcome gate not initialized")
    return gate


def _apply_cookies(response: Response, ctx: RequestContext) -> Response:
    for c in ctx.response_cookies:
        response.set_cookie(
            c.key,
            c.value,
            max_age=c.max_age,
            path=c.path,
            secure=c.secure,
            httponly=c.httponly,
        )
    return response


def _to_response(result: PageResult) -> Response:
    if result.location is not None:
        return RedirectResponse(url=result.location, status_code=result.status_code)
    return HTMLResponse(
        content=result.body or "",
        status_code=result.status_code,
        headers={"Cache-Control": "no-cache"},
    )


def _fail(exc: GateError) -> Response:
    if exc.status_code >= 500:
        logger.error("Welcome request failed: %s", exc)
    return error_response(exc)


def create_welcome_router(path: str = "/") -> APIRouter:
    """Build the welcome router mounted at `path` (normalized, no trailing slash)."""

    router = APIRouter(tags=["welcome"])
    base = "" if path == "/" else path

    if base:

        @router.get(base, include_in_schema=False)
        async def welcome_redirect(request: Request) -> RedirectResponse:
            target = request.url.replace(path=request.url.path + "/")
            return RedirectResponse(url=str(target), status_code=303)

    @router.get(base + "/", response_class=HTMLResponse)
    def welcome_page(
        gate: BootstrapGate = Depends(get_gate),  # noqa: B008
        ctx: RequestContext = Depends(request_context),  # noqa: B008
    ) -> Response:
        try:
            result = gate.render_page(ctx)
        except GateError as exc:
            return _apply_cookies(_fail(exc), ctx)
        return _apply_cookies(_to_response(result), ctx)

    @router.post(base + "/", response_class=HTMLResponse)
    def welcome_submit(
        gate: BootstrapGate = Depends(get_gate),  # noqa: B008
        ctx: RequestContext = Depends(request_context),  # noqa: B008
        username: str | None = Form(default=None),
        password: str | None = Form(default=None),
        password_confirmation: str | None = Form(default=None, alias="passwordConfirmation"),
        state_checker: str | None = Form(default=None, alias=STATE_CHECKER_FIELD),
    ) -> Response:
        form = CreationRequest(
            username=username,
            password=password,
            password_confirmation=password_confirmation,
            state_checker=state_checker,
        )
        try:
            result = gate.submit(ctx, form)
        except GateError as exc:
            return _apply_cookies(_fail(exc), ctx)
        return _apply_cookies(_to_response(result), ctx)

    @router.get(base + "/welcome-content/{resource_path:path}")
    def welcome_resource(
        resource_path: str,
        request: Request,
        gate: BootstrapGate = Depends(get_gate),  # noqa: B008
    ) -> Response:
        theme: Theme | None = gate.themes.get_active_theme()
        if theme is None:
            return Response(status_code=404)

        try:
            found = theme.read_resource(resource_path)
        except GateError as exc:
            return _fail(exc)
        if found is None:
            return Response(status_code=404)

        content, media_type = found
        max_age = getattr(request.app.state, "static_max_age", 0)
        return Response(
            content=content,
            media_type=media_type,
            headers={"Cache-Control": f"max-age={max_age}"},
        )

    return router
