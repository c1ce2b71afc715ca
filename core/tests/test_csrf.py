from __future__ import annotations

import pytest

from gatehouse_core.errors import (
    ForbiddenError,
    MissingTokenError,
    TokenExpiredError,
    TokenMismatchError,
)
from gatehouse_core.welcome.context import RequestContext
from gatehouse_core.welcome.csrf import STATE_CHECKER_COOKIE, CsrfGuard


class _Clock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _ctx(*, cookies: dict[str, str] | None = None, scheme: str = "http") -> RequestContext:
    return RequestContext(
        remote_address="127.0.0.1",
        local_address="127.0.0.1",
        scheme=scheme,
        path="/setup/",
        base_url=f"{scheme}://localhost/",
        headers={},
        cookies=cookies or {},
    )


def test_issue_sets_scoped_httponly_cookie() -> None:
    guard = CsrfGuard("k" * 32)
    ctx = _ctx()

    token = guard.issue(ctx)

    assert token.count(".") >= 2  # payload, timestamp, signature
    [cookie] = ctx.response_cookies
    assert cookie.key == STATE_CHECKER_COOKIE
    assert cookie.value == token
    assert cookie.path == "/setup/"
    assert cookie.max_age == 300
    assert cookie.httponly is True
    assert cookie.secure is False


def test_issue_marks_cookie_secure_on_https() -> None:
    guard = CsrfGuard("k" * 32)
    ctx = _ctx(scheme="https")

    guard.issue(ctx)

    assert ctx.response_cookies[0].secure is True


def test_tokens_are_unique() -> None:
    guard = CsrfGuard("k" * 32)
    assert guard.new_token() != guard.new_token()


def test_matching_token_is_accepted() -> None:
    guard = CsrfGuard("k" * 32)
    token = guard.new_token()

    guard.check(_ctx(cookies={STATE_CHECKER_COOKIE: token}), token)
    assert guard.validate(_ctx(cookies={STATE_CHECKER_COOKIE: token}), token) is True


def test_missing_cookie_is_rejected() -> None:
    guard = CsrfGuard("k" * 32)
    token = guard.new_token()

    with pytest.raises(MissingTokenError):
        guard.check(_ctx(), token)
    assert guard.validate(_ctx(), token) is False


@pytest.mark.parametrize("submitted", [None, "", "something-else"])
def test_mismatched_token_is_rejected(submitted: str | None) -> None:
    guard = CsrfGuard("k" * 32)
    token = guard.new_token()

    with pytest.raises(TokenMismatchError):
        guard.check(_ctx(cookies={STATE_CHECKER_COOKIE: token}), submitted)


def test_failures_share_the_forbidden_kind() -> None:
    assert issubclass(MissingTokenError, ForbiddenError)
    assert issubclass(TokenMismatchError, ForbiddenError)
    assert issubclass(TokenExpiredError, ForbiddenError)
    assert MissingTokenError.message == TokenMismatchError.message


def test_forged_token_is_rejected() -> None:
    guard = CsrfGuard("k" * 32)
    other = CsrfGuard("z" * 32)
    forged = other.new_token()

    with pytest.raises(TokenMismatchError):
        guard.check(_ctx(cookies={STATE_CHECKER_COOKIE: forged}), forged)


def test_expired_token_is_rejected() -> None:
    clock = _Clock()
    guard = CsrfGuard("k" * 32, ttl_seconds=300, clock=clock)
    token = guard.new_token()
    ctx = _ctx(cookies={STATE_CHECKER_COOKIE: token})

    clock.now += 300
    guard.check(ctx, token)

    clock.now += 1
    with pytest.raises(TokenExpiredError):
        guard.check(ctx, token)


def test_expire_clears_cookie() -> None:
    guard = CsrfGuard("k" * 32)
    ctx = _ctx()

    guard.expire(ctx)

    [cookie] = ctx.response_cookies
    assert cookie.key == STATE_CHECKER_COOKIE
    assert cookie.value == ""
    assert cookie.max_age == 0
    assert cookie.path == "/setup/"
    assert cookie.httponly is True


def test_empty_secret_is_refused() -> None:
    with pytest.raises(ValueError):
        CsrfGuard("")


@pytest.mark.parametrize("token", ["no-separators", "a.b.c"])
def test_malformed_token_is_rejected(token: str) -> None:
    guard = CsrfGuard("k" * 32)

    with pytest.raises(TokenMismatchError):
        guard.check(_ctx(cookies={STATE_CHECKER_COOKIE: token}), token)


def test_token_from_the_future_is_rejected() -> None:
    clock = _Clock()
    guard = CsrfGuard("k" * 32, clock=clock)
    token = guard.new_token()
    clock.now -= 60

    assert guard.validate(_ctx(cookies={STATE_CHECKER_COOKIE: token}), token) is False
