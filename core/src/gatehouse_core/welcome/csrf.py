from __future__ import annotations

import hmac
import secrets
import time
from collections.abc import Callable
from typing import Any, Final

from itsdangerous import BadData, SignatureExpired, TimestampSigner, URLSafeTimedSerializer

from gatehouse_core.errors import (
    ForbiddenError,
    MissingTokenError,
    TokenExpiredError,
    TokenMismatchError,
)
from gatehouse_core.welcome.context import CookieSpec, RequestContext

STATE_CHECKER_COOKIE: Final[str] = "WELCOME_STATE_CHECKER"
STATE_CHECKER_FIELD: Final[str] = "stateChecker"
DEFAULT_TTL_SECONDS: Final[int] = 300

_SALT: Final[str] = "gatehouse.welcome.state-checker"


class _ClockedSigner(TimestampSigner):
    def __init__(self, *args: Any, clock: Callable[[], float] = time.time, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._clock = clock

    def get_timestamp(self) -> int:
        return int(self._clock())


class CsrfGuard:
    """Issues and checks the welcome form state token.

    The token is a 256-bit random nonce serialized by itsdangerous with a
    signed timestamp. The same value is put in the form and in an HttpOnly
    cookie scoped to the page path; a submission is accepted only when both
    match, the signature is ours and the token is at most `ttl_seconds` old.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.ttl_seconds = ttl_seconds
        self._serializer = URLSafeTimedSerializer(
            secret_key,
            salt=_SALT,
            signer=_ClockedSigner,
            signer_kwargs={"clock": clock},
        )

    def _cookie(self, ctx: RequestContext, value: str, max_age: int) -> CookieSpec:
        return CookieSpec(
            key=STATE_CHECKER_COOKIE,
            value=value,
            path=ctx.path,
            max_age=max_age,
            secure=ctx.is_secure,
            httponly=True,
        )

    def new_token(self) -> str:
        return self._serializer.dumps(secrets.token_urlsafe(32))

    def issue(self, ctx: RequestContext) -> str:
        token = self.new_token()
        ctx.response_cookies.append(self._cookie(ctx, token, self.ttl_seconds))
        return token

    def check(self, ctx: RequestContext, submitted: str | None) -> None:
        """Raise a ForbiddenError subclass unless `submitted` is acceptable."""

        cookie_value = ctx.cookies.get(STATE_CHECKER_COOKIE)
        if cookie_value is None:
            raise MissingTokenError("No state checker cookie")

        if not submitted or not hmac.compare_digest(
            cookie_value.encode("utf-8"), submitted.encode("utf-8")
        ):
            raise TokenMismatchError("State checker cookie does not match the form")

        try:
            self._serializer.loads(submitted, max_age=self.ttl_seconds)
        except SignatureExpired as exc:
            raise TokenExpiredError("State checker has expired") from exc
        except BadData as exc:
            raise TokenMismatchError("State checker signature is invalid") from exc

    def validate(self, ctx: RequestContext, submitted: str | None) -> bool:
        try:
            self.check(ctx, submitted)
        except ForbiddenError:
            return False
        return True

    def expire(self, ctx: RequestContext) -> None:
        ctx.response_cookies.append(self._cookie(ctx, "", 0))
