"""Error taxonomy for the welcome/bootstrap surface.

Every rejection carries its HTTP status, a machine code and a public message.
The mapping to a response happens in `error_response`, nowhere else.
"""

from __future__ import annotations

from fastapi.responses import JSONResponse

from gatehouse_core.models import fail


class GateError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    message: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        # `detail` is for logs only; it never reaches the client.
        super().__init__(detail or self.message)
        self.detail = detail


class ThemeUnavailableError(GateError):
    status_code = 400
    code = "theme_unavailable"
    message = "The theme is not available"


class HostResolutionError(GateError):
    status_code = 500
    code = "internal_error"
    message = "Internal server error"


class NonLocalAttemptError(GateError):
    status_code = 400
    code = "bad_request"
    message = "Bad request"


class ForbiddenError(GateError):
    status_code = 403
    code = "forbidden"
    message = "Forbidden"


class MissingTokenError(ForbiddenError):
    pass


class TokenMismatchError(ForbiddenError):
    pass


class TokenExpiredError(ForbiddenError):
    pass


class AccountCreationError(GateError):
    status_code = 500
    code = "internal_error"
    message = "Internal server error"


class ResourceReadError(GateError):
    status_code = 500
    code = "internal_error"
    message = "Internal server error"


def error_response(exc: GateError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=fail(code=exc.code, message=exc.message).model_dump(mode="json"),
        headers={"Cache-Control": "no-cache"},
    )
